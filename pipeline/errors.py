"""
Error types for the query pipeline.
Parse-side errors end up in ParseResult.error, fetch-side errors in FetchResult.error.
The two remote-parse errors never reach callers: the resolver recovers from them
by falling back to the heuristic builder.
"""
from __future__ import annotations


class QueryPipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(QueryPipelineError):
    """Raised when a required setting (URL, key) is missing."""


# Parse side
class UnparseableInput(QueryPipelineError):
    """Raised when the text contains none of the known query keywords."""


class UnknownTable(QueryPipelineError):
    """Raised when no table can be inferred, or a table name is not allowed."""


class AmbiguousQuery(QueryPipelineError):
    """Raised when the text would only produce a bare full-table select."""


class RemoteServiceUnavailable(QueryPipelineError):
    """Raised when the language model cannot be reached or errors out."""


class RemoteResponseMalformed(QueryPipelineError):
    """Raised when the language model reply is not the expected JSON shape."""


# Fetch side
class UpstreamHttpError(QueryPipelineError):
    """Raised for a non-2xx response from the data API."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code} - {body}")


class TransportFailure(QueryPipelineError):
    """Raised when the data API cannot be reached (connection error, timeout)."""


class EncodingError(QueryPipelineError):
    """Raised when a response body is not valid UTF-8."""
