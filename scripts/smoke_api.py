"""
Smoke test of a running Ask REST Data server against a live data API.
Start the server first (uvicorn app:app), then:

Usage: python scripts/smoke_api.py [base_url]
"""
import sys
import time

import requests

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://127.0.0.1:8000"
URL = f"{BASE_URL}/api/query"

tests = [
    # TODOS
    ("todos", "get all todos", "all"),
    ("todos", "show completed todos", "filtered"),
    ("todos", "find incomplete todos", "filtered"),
    ("todos", "show todos with title like dog", "search"),
    ("todos", "show latest todos", "sorted"),
    ("todos", "show top 5 todos", "limited"),
    ("todos", "show todo with id 1", "by_id"),
    # USERS
    ("users", "get all users", "all"),
    # POSTS
    ("posts", "show posts", "all"),
]


def run_tests():
    results = []
    current_table = None

    for table, question, qtype in tests:
        if table != current_table:
            current_table = table
            print(f"\n===== {table.upper()} =====")

        start = time.time()
        try:
            r = requests.post(URL, json={"question": question}, timeout=30)
            data = r.json()
            elapsed = int((time.time() - start) * 1000)

            if data.get("success", False):
                status = "PASS"
                rows = data.get("data") or []
                print(f"  PASS ({elapsed}ms) | {question}")
                print(f"    query: {data.get('query')}")
                for row in rows[:2] if isinstance(rows, list) else []:
                    vals = [f"{k}={v}" for k, v in row.items()]
                    print(f"    -> {', '.join(vals)}")
                print(f"    [{len(rows) if isinstance(rows, list) else 1} rows, {qtype}]")
            else:
                status = "FAIL"
                print(f"  FAIL ({elapsed}ms) | {question}")
                print(f"    ERROR: {data.get('error', 'unknown error')}")

            results.append((table, question, status, elapsed))
        except requests.RequestException as e:
            elapsed = int((time.time() - start) * 1000)
            print(f"  ERROR ({elapsed}ms) | {question}")
            print(f"    {e}")
            results.append((table, question, "ERROR", elapsed))

    print(f"\n{'=' * 60}")
    print("SMOKE TEST SUMMARY")
    print(f"{'=' * 60}")
    passed = sum(1 for _, _, s, _ in results if s == "PASS")
    failed = len(results) - passed
    print(f"Total: {len(results)} | Passed: {passed} | Failed: {failed}")
    print(f"Total Time: {sum(t for _, _, _, t in results)}ms")
    if failed:
        print("\nFAILED TESTS:")
        for tbl, q, s, _ in results:
            if s != "PASS":
                print(f"  [{tbl}] {q} -> {s}")
    print(f"{'=' * 60}")
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(run_tests())
