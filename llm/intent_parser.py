"""
Remote parsing layer: asks a language model to turn a natural language request
into {"table", "query", "error"} JSON. The model is used only for parsing;
it never sees or touches data.
"""
from __future__ import annotations
import json
import logging
from typing import List

from llm.openai_client import ChatLLM
from llm.prompt_templates import USER_QUERY_TEMPLATE, build_system_prompt
from pipeline.errors import RemoteResponseMalformed, RemoteServiceUnavailable
from pipeline.schema import ChatMessage, ChatRole, ParseResult, to_payloads, validate_parse_payload

logger = logging.getLogger(__name__)


def build_chat_exchange(user_query: str) -> List[ChatMessage]:
    """System message (schema + output contract) followed by the user's request."""
    return [
        ChatMessage(role=ChatRole.SYSTEM, content=build_system_prompt()),
        ChatMessage(role=ChatRole.USER, content=USER_QUERY_TEMPLATE.format(query=user_query)),
    ]


def _strip_markdown_fences(text: str) -> str:
    """Remove markdown code fences from LLM output."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_reply(raw: str) -> ParseResult:
    """Decode and validate the model's reply. Raises RemoteResponseMalformed."""
    try:
        payload = json.loads(_strip_markdown_fences(raw))
    except (TypeError, json.JSONDecodeError) as exc:
        raise RemoteResponseMalformed(f"LLM did not return valid JSON: {exc}") from exc
    return validate_parse_payload(payload)


async def parse_remote(user_query: str, llm: ChatLLM) -> ParseResult:
    """
    Make one call to the language model and return its parse.

    Raises:
        RemoteServiceUnavailable: the call itself failed (network, timeout, API error).
        RemoteResponseMalformed: the reply was not the expected JSON shape.
    """
    messages = to_payloads(build_chat_exchange(user_query))
    try:
        raw = await llm(messages)
    except Exception as exc:  # noqa: BLE001
        raise RemoteServiceUnavailable(f"LLM call failed: {exc}") from exc

    logger.debug("LLM raw reply: %s", raw)
    result = parse_reply(raw)
    logger.info("Parsed via LLM: table=%s, query=%s, error=%s", result.table, result.query, result.error)
    return result


__all__ = ["build_chat_exchange", "parse_reply", "parse_remote"]
