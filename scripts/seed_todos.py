"""
Insert a handful of sample todos into the configured data API.
Needs SUPABASE_URL and SUPABASE_ANON_KEY (env or .env).

Usage: python scripts/seed_todos.py [user_id]
"""
import asyncio
import logging
import sys
from pathlib import Path

# Allow running as a plain script from the repo root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pipeline.main import insert_records  # noqa: E402

DEFAULT_USER_ID = "123e4567-e89b-12d3-a456-426614174000"

SAMPLE_TODOS = [
    ("Buy groceries", False),
    ("Walk the dog", True),
    ("Finish project", False),
    ("Read book", True),
    ("Learn Rust", True),
    ("Build IC app", False),
]


def sample_rows(user_id: str) -> list:
    return [{"title": title, "is_done": done, "user_id": user_id} for title, done in SAMPLE_TODOS]


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    user_id = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_USER_ID
    result = asyncio.run(insert_records("todos", sample_rows(user_id)))
    if result.ok:
        print(f"Inserted {len(SAMPLE_TODOS)} todos:\n{result.data}")
        return 0
    print(f"Insert failed: {result.error}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
