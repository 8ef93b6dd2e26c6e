"""
OpenAI-compatible chat client wrapper (Groq by default).
Reads the API key from environment or .env file at repo root.
Each call is a single attempt: retries are disabled on the client.
"""
from __future__ import annotations
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from pipeline.config import LLMSettings, load_llm_settings, read_setting

logger = logging.getLogger(__name__)

ChatLLM = Callable[[List[Dict[str, str]]], Awaitable[str]]


def load_api_key() -> str | None:
    """Load GROQ_API_KEY (or OPENAI_API_KEY) from environment or .env."""
    return read_setting("GROQ_API_KEY") or read_setting("OPENAI_API_KEY")


def _make_client(api_key: str, settings: LLMSettings) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.base_url,
        timeout=settings.timeout,
        max_retries=0,
    )


def make_openai_chat_llm(
    settings: Optional[LLMSettings] = None,
    temperature: float = 0.1,
    max_tokens: int = 300,
) -> ChatLLM:
    """
    Return an async callable(messages) -> reply text using Chat Completions.
    Messages are already-serialized {"role", "content"} dicts.
    """
    api_key = load_api_key()
    if not api_key:
        raise RuntimeError("GROQ_API_KEY not set (env or .env).")

    settings = settings or load_llm_settings()
    client = _make_client(api_key, settings)

    async def _llm(messages: List[Dict[str, str]]) -> str:
        logger.info("Calling chat model %s with %d messages", settings.model, len(messages))
        completion = await client.chat.completions.create(
            model=settings.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=1.0,
            stream=False,
        )
        content = completion.choices[0].message.content
        if content is None:
            raise ValueError("No content in chat completion response")
        return content

    return _llm


def make_openai_parse_llm(settings: Optional[LLMSettings] = None) -> ChatLLM:
    """Chat callable tuned for JSON query parsing (low temperature, short replies)."""
    return make_openai_chat_llm(settings=settings, temperature=0.1, max_tokens=300)


__all__ = ["ChatLLM", "make_openai_chat_llm", "make_openai_parse_llm", "load_api_key"]
