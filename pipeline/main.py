"""
CLI entry point for Ask REST Data.
Pipeline: question -> LLM parse (heuristic fallback) -> PostgREST query -> data API -> result.
"""
from __future__ import annotations
import asyncio
import logging
import sys
from typing import Any, Dict, Optional, Union

from llm.openai_client import ChatLLM, load_api_key, make_openai_chat_llm, make_openai_parse_llm
from llm.prompt_templates import GENERAL_CHAT_PROMPT
from .data_client import DataApiClient
from .errors import ConfigurationError
from .resolver import compare_parsers, resolve_query
from .schema import ChatMessage, ChatRole, FetchResult, ParseResult, to_payloads

logger = logging.getLogger(__name__)

DATABASE_PROMPT_WORDS = ("todo", "user", "post", "show", "get", "find", "all", "select")


def get_parse_llm() -> Optional[ChatLLM]:
    """Build the parsing LLM if a key is configured; None means heuristic-only."""
    if not load_api_key():
        return None
    try:
        return make_openai_parse_llm()
    except Exception:  # noqa: BLE001
        logger.exception("Failed to initialize LLM client, continuing with heuristic builder")
        return None


async def parse_question(question: str, llm: Optional[ChatLLM] = None) -> ParseResult:
    """Resolve a question to a ParseResult, using the configured LLM when present."""
    return await resolve_query(question, llm if llm is not None else get_parse_llm())


async def _with_client(client: Optional[DataApiClient], action) -> FetchResult:
    """Run action(client), creating (and closing) a client from env when none is given."""
    if client is not None:
        return await action(client)
    try:
        owned = DataApiClient.from_env()
    except ConfigurationError as exc:
        logger.error("Data API not configured: %s", exc)
        return FetchResult.failure(str(exc))
    async with owned:
        return await action(owned)


async def resolve_and_fetch(
    user_query: str,
    llm: Optional[ChatLLM] = None,
    client: Optional[DataApiClient] = None,
) -> FetchResult:
    """Resolve the question, then fetch the matching rows. Always returns a FetchResult."""
    logger.info("Query received: %s", user_query[:200])
    parsed = await parse_question(user_query, llm)
    logger.info("Parse result: table=%s, query=%s", parsed.table, parsed.query)
    if not parsed.ok:
        return FetchResult.failure(parsed.error)
    return await _with_client(client, lambda c: c.fetch(parsed.table, parsed.query))


async def run_query(
    user_query: str,
    llm: Optional[ChatLLM] = None,
    client: Optional[DataApiClient] = None,
) -> Dict[str, Any]:
    """Like resolve_and_fetch, but also report the parse that was used."""
    parsed = await parse_question(user_query, llm)
    if not parsed.ok:
        return {"parse": parsed.to_dict(), "data": None, "error": parsed.error}
    fetched = await _with_client(client, lambda c: c.fetch(parsed.table, parsed.query))
    return {"parse": parsed.to_dict(), "data": fetched.data, "error": fetched.error}


async def insert_records(
    table: str,
    rows: Union[str, Dict[str, Any], list],
    client: Optional[DataApiClient] = None,
) -> FetchResult:
    return await _with_client(client, lambda c: c.insert(table, rows))


async def debug_parse(user_query: str, llm: Optional[ChatLLM] = None) -> Dict[str, Any]:
    """Show what the LLM and the heuristic builder each make of the question."""
    return await compare_parsers(user_query, llm if llm is not None else get_parse_llm())


def is_database_prompt(prompt: str) -> bool:
    lowered = prompt.lower()
    return any(word in lowered for word in DATABASE_PROMPT_WORDS)


async def handle_prompt(
    prompt: str,
    llm: Optional[ChatLLM] = None,
    chat_llm: Optional[ChatLLM] = None,
    client: Optional[DataApiClient] = None,
) -> str:
    """
    Answer a free-form prompt. Database-looking prompts go through the query
    pipeline; anything else is sent to the chat model.
    """
    if is_database_prompt(prompt):
        logger.info("Detected database query, processing with natural language parser")
        result = await resolve_and_fetch(prompt, llm=llm, client=client)
        if result.ok:
            return f"Database query executed successfully. Results:\n{result.data}"
        return f"Database query failed: {result.error}"

    logger.info("Detected general prompt, calling chat model")
    if chat_llm is None:
        if not load_api_key():
            return "The language model is not configured. Set GROQ_API_KEY to enable general prompts."
        chat_llm = make_openai_chat_llm(max_tokens=500)

    messages = [
        ChatMessage(role=ChatRole.SYSTEM, content=GENERAL_CHAT_PROMPT),
        ChatMessage(role=ChatRole.USER, content=prompt),
    ]
    try:
        return await chat_llm(to_payloads(messages))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Chat model call failed: %s", exc)
        if "timeout" in str(exc).lower() or "timed out" in str(exc).lower():
            return "The language model took too long to respond. Please try again with a shorter prompt."
        return f"The language model is currently unavailable: {exc}"


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    question = " ".join(sys.argv[1:]) if len(sys.argv) > 1 else None
    if not question:
        try:
            question = input("Ask REST Data > ").strip()
        except KeyboardInterrupt:
            return 0

    response = asyncio.run(run_query(question))

    print("\n--- Parse ---")
    parse = response["parse"]
    print(f"Table: {parse['table'] or 'N/A'}, Query: {parse['query'] or 'N/A'}")

    print("\n--- Result ---")
    if response.get("data") is not None:
        print(response["data"])
    else:
        print("No result. Reason:", response.get("error"))

    return 0 if response.get("error") is None else 1


if __name__ == "__main__":
    raise SystemExit(main())
