"""
Schema and result types for Ask REST Data.
Defines the known tables and their columns, the parse/fetch result shapes,
the chat exchange sent to the remote model, and validation of remote replies.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple

from .errors import RemoteResponseMalformed

TABLES: Tuple[str, ...] = ("todos", "users", "posts")

TABLE_COLUMNS: Dict[str, List[str]] = {
    "todos": ["id", "title", "description", "is_done", "due_date", "status", "created_at"],
    "users": ["id", "name", "email", "created_at"],
    "posts": ["id", "title", "content", "user_id", "created_at"],
}

COLUMN_TYPES: Dict[str, str] = {
    "id": "integer",
    "title": "text",
    "description": "text",
    "is_done": "boolean",
    "due_date": "timestamp",
    "status": "text",
    "created_at": "timestamp",
    "name": "text",
    "email": "text",
    "content": "text",
    "user_id": "integer",
}


def describe_schema() -> str:
    """One line per table, e.g. '- users: id (integer), name (text), ...'."""
    lines = []
    for table in TABLES:
        cols = ", ".join(f"{c} ({COLUMN_TYPES[c]})" for c in TABLE_COLUMNS[table])
        lines.append(f"- {table}: {cols}")
    return "\n".join(lines)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class ParseResult:
    """Outcome of turning free text into a table + PostgREST query string."""
    table: str
    query: str
    error: Optional[str] = None

    @classmethod
    def success(cls, table: str, query: str) -> "ParseResult":
        return cls(table=table, query=query, error=None)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(table="", query="", error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FetchResult:
    """Outcome of a data API call. Exactly one of data/error is set."""
    data: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: str) -> "FetchResult":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: str) -> "FetchResult":
        return cls(data=None, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# CHAT EXCHANGE
# =============================================================================

class ChatRole(Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatMessage:
    role: ChatRole
    content: str

    def to_payload(self) -> Dict[str, str]:
        """Serialize for the chat completions API."""
        if self.role is ChatRole.SYSTEM:
            role = "system"
        elif self.role is ChatRole.USER:
            role = "user"
        elif self.role is ChatRole.ASSISTANT:
            role = "assistant"
        else:
            raise ValueError(f"Unsupported chat role: {self.role!r}")
        return {"role": role, "content": self.content}


def to_payloads(messages: List[ChatMessage]) -> List[Dict[str, str]]:
    return [m.to_payload() for m in messages]


# =============================================================================
# REMOTE REPLY VALIDATION
# =============================================================================

def _check_query_tokens(query: str) -> None:
    """Reject query strings that could not be sent to PostgREST as-is."""
    tokens = query.split("&")
    if not tokens[0].startswith("select="):
        raise RemoteResponseMalformed(f"Query must start with a select clause: '{query}'")
    for token in tokens:
        key, sep, value = token.partition("=")
        if not key or not sep or not value:
            raise RemoteResponseMalformed(f"Malformed query token '{token}'")
    if "%" in query:
        raise RemoteResponseMalformed(f"Query contains percent-encoding or SQL wildcards: '{query}'")
    if "#" in query or not query.isprintable():
        raise RemoteResponseMalformed(f"Query contains characters that cannot be sent in a URL: {query!r}")


def validate_parse_payload(payload: Any) -> ParseResult:
    """
    Validate a decoded remote reply and convert it to a ParseResult.

    Expected shape: {"table": str, "query": str, "error": str | null}.
    A reply without an error must name a known table and carry a well-formed
    query; anything else raises RemoteResponseMalformed.
    """
    if not isinstance(payload, dict):
        raise RemoteResponseMalformed(f"Expected a JSON object, got {type(payload).__name__}")

    table = payload.get("table")
    query = payload.get("query")
    error = payload.get("error")

    if not isinstance(table, str) or not isinstance(query, str):
        raise RemoteResponseMalformed("Fields 'table' and 'query' must be strings")
    if error is not None and not isinstance(error, str):
        raise RemoteResponseMalformed("Field 'error' must be a string or null")

    if error is not None:
        return ParseResult.failure(error)

    table = table.strip()
    query = query.strip()
    if table not in TABLES:
        raise RemoteResponseMalformed(f"Unknown table '{table}'. Allowed: {', '.join(TABLES)}")
    _check_query_tokens(query)
    return ParseResult.success(table, query)


__all__ = [
    "TABLES",
    "TABLE_COLUMNS",
    "describe_schema",
    "ParseResult",
    "FetchResult",
    "ChatRole",
    "ChatMessage",
    "to_payloads",
    "validate_parse_payload",
]
