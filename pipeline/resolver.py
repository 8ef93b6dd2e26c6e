"""
Query resolution: language model first, heuristic builder on failure.

Two states, no retries:
    REMOTE   -> success with error == null  : done, return the remote parse
             -> reply carries an error       : go to FALLBACK
             -> unreachable / malformed reply: go to FALLBACK
    FALLBACK -> return the heuristic parse as-is (success or error)
"""
from __future__ import annotations
import logging
from enum import Enum
from typing import Optional

from llm.intent_parser import parse_remote
from llm.openai_client import ChatLLM
from .errors import RemoteResponseMalformed, RemoteServiceUnavailable
from .query_builder import BuilderOptions, FULL_OPTIONS, build_query
from .schema import ParseResult

logger = logging.getLogger(__name__)


class ResolutionState(Enum):
    REMOTE = "remote"
    FALLBACK = "fallback"


async def _try_remote(user_query: str, llm: Optional[ChatLLM]) -> Optional[ParseResult]:
    """Return the remote parse, or None when the fallback should take over."""
    if llm is None:
        logger.info("No LLM configured, using heuristic builder")
        return None
    try:
        result = await parse_remote(user_query, llm)
    except RemoteServiceUnavailable as exc:
        logger.warning("LLM unavailable, using fallback: %s", exc)
        return None
    except RemoteResponseMalformed as exc:
        logger.warning("Failed to parse LLM response, using fallback: %s", exc)
        return None
    if not result.ok:
        logger.info("LLM returned error '%s', using fallback", result.error)
        return None
    return result


async def resolve_query(
    user_query: str,
    llm: Optional[ChatLLM] = None,
    options: BuilderOptions = FULL_OPTIONS,
) -> ParseResult:
    """Resolve free text to a single authoritative ParseResult."""
    state = ResolutionState.REMOTE
    result = await _try_remote(user_query, llm)
    if result is not None:
        logger.info("Resolved in state %s", state.value)
        return result

    state = ResolutionState.FALLBACK
    result = build_query(user_query, options)
    logger.info("Resolved in state %s (error=%s)", state.value, result.error)
    return result


async def compare_parsers(user_query: str, llm: Optional[ChatLLM] = None) -> dict:
    """Run both parsers on the same text and report each outcome, for debugging."""
    remote_result: Optional[ParseResult] = None
    remote_error: Optional[str] = None
    if llm is None:
        remote_error = "LLM not configured"
    else:
        try:
            remote_result = await parse_remote(user_query, llm)
        except (RemoteServiceUnavailable, RemoteResponseMalformed) as exc:
            remote_error = str(exc)

    heuristic = build_query(user_query)
    resolved = remote_result if remote_result is not None and remote_result.ok else heuristic
    return {
        "query": user_query,
        "remote": {
            "result": remote_result.to_dict() if remote_result is not None else None,
            "error": remote_error,
        },
        "heuristic": heuristic.to_dict(),
        "resolved": resolved.to_dict(),
    }


__all__ = ["ResolutionState", "resolve_query", "compare_parsers"]
