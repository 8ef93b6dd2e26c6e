"""
Settings for Ask REST Data.
Values come from the environment, falling back to a .env file at the repo root.
There are no built-in defaults for URLs or keys: a missing value is an error.
"""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError

REPO_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_LLM_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_LLM_MODEL = "llama-3.1-8b-instant"
DEFAULT_LLM_TIMEOUT_SECONDS = 25.0
DEFAULT_DATA_API_TIMEOUT_SECONDS = 30.0


def read_setting(name: str) -> Optional[str]:
    """Read NAME from the environment or the repo .env file."""
    value = os.getenv(name)
    if value:
        return value
    env_path = REPO_ROOT / ".env"
    if env_path.exists():
        for line in env_path.read_text().splitlines():
            if line.strip().startswith(f"{name}="):
                return line.split("=", 1)[1].strip().strip("\"' ") or None
    return None


def _read_float(name: str, default: float) -> float:
    raw = read_setting(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from exc


@dataclass(frozen=True)
class DataApiSettings:
    base_url: str
    api_key: str
    timeout: float = DEFAULT_DATA_API_TIMEOUT_SECONDS


def load_data_api_settings() -> DataApiSettings:
    """Load the data API URL and key. Raises ConfigurationError if either is unset."""
    base_url = read_setting("SUPABASE_URL")
    if not base_url:
        raise ConfigurationError("SUPABASE_URL not set (env or .env).")
    api_key = read_setting("SUPABASE_ANON_KEY")
    if not api_key:
        raise ConfigurationError("SUPABASE_ANON_KEY not set (env or .env).")
    return DataApiSettings(
        base_url=base_url.rstrip("/"),
        api_key=api_key,
        timeout=_read_float("DATA_API_TIMEOUT_SECONDS", DEFAULT_DATA_API_TIMEOUT_SECONDS),
    )


@dataclass(frozen=True)
class LLMSettings:
    base_url: str = DEFAULT_LLM_BASE_URL
    model: str = DEFAULT_LLM_MODEL
    timeout: float = DEFAULT_LLM_TIMEOUT_SECONDS


def load_llm_settings() -> LLMSettings:
    return LLMSettings(
        base_url=read_setting("LLM_BASE_URL") or DEFAULT_LLM_BASE_URL,
        model=read_setting("LLM_MODEL") or DEFAULT_LLM_MODEL,
        timeout=_read_float("LLM_TIMEOUT_SECONDS", DEFAULT_LLM_TIMEOUT_SECONDS),
    )


__all__ = [
    "read_setting",
    "DataApiSettings",
    "load_data_api_settings",
    "LLMSettings",
    "load_llm_settings",
]
