"""
Heuristic query builder for Ask REST Data.
Maps a natural language request to a table name and a PostgREST query string
(e.g. "select=*&is_done=eq.true&order=created_at.desc") without calling any
remote service.

Clauses are always emitted in this order:
    select, is_done, due_date, status, title search, id, order, limit
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from .errors import AmbiguousQuery, UnknownTable, UnparseableInput, QueryPipelineError
from .extractor import extract_id, extract_search_term
from .schema import ParseResult, TABLE_COLUMNS

logger = logging.getLogger(__name__)

QUERY_KEYWORDS = (
    "todo", "task", "user", "post",
    "show", "get", "find", "list", "all",
    "completed", "done", "incomplete", "pending",
    "due", "date", "title", "id",
)

# Checked in order; first hit wins.
TABLE_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("todos", ("todo", "task")),
    ("users", ("user",)),
    ("posts", ("post",)),
]

GENERIC_QUERY_WORDS = ("show", "get", "find", "all", "completed", "done")
RETRIEVAL_WORDS = ("all", "everything", "show", "get", "list")

DONE_WORDS = ("completed", "done", "finished")
NOT_DONE_WORDS = ("incomplete", "not done", "pending", "unfinished")
NEGATORS = ("not", "incomplete", "false", "unfinished", "pending", "not done")

STATUS_VALUES = ("active", "archived")

TITLE_SEARCH_PATTERNS = ("title contains ", "title like ")
SEARCH_STOPWORDS = {"id", "due", "no", "status"}
# Would end or split the query string, or be read as a wildcard.
UNSAFE_TERM_CHARS = ("#", "&", "%")

DESC_WORDS = ("latest", "newest", "recent")
ASC_WORDS = ("oldest", "first")
SUPPORTED_LIMITS = (5, 10)

_ONLY_COLUMN_RE = re.compile(r"\b(?:only|just)\s+(\w+)")
_PAIR_COLUMN_RE = re.compile(r"\b(\w+)\s+and\s+(\w+)\b")
_LIMIT_RE = re.compile(r"\b(?:first|top)\s+(\d+)\b")
_TRAILING_LIMIT_RE = re.compile(r"\b(?:first|top)\s+(\d+)$")
_ALL_RE = re.compile(r"\b(?:all|everything)\b")
_ID_PHRASE_RE = re.compile(r"\b(?:with |having )?id \d+\s*")


@dataclass(frozen=True)
class BuilderOptions:
    """Feature switches for the heuristic builder."""
    columns: bool = True
    status: bool = True
    due_date: bool = True
    search: bool = True
    ids: bool = True
    sort: bool = True
    limit: bool = True
    # Reject a bare "select=*" unless a retrieval word was used.
    require_filters: bool = True
    # Table used when none is named but generic query words are present.
    default_table: Optional[str] = "todos"
    # "all"/"everything" means select=* with no further filters.
    all_selects_everything: bool = True


FULL_OPTIONS = BuilderOptions()

MINIMAL_OPTIONS = BuilderOptions(
    columns=False,
    status=False,
    due_date=False,
    search=False,
    sort=False,
    limit=False,
    require_filters=True,
    default_table=None,
    all_selects_everything=True,
)


def _has_any(text: str, words) -> bool:
    return any(w in text for w in words)


# =============================================================================
# TABLE INFERENCE
# =============================================================================

def infer_table(text: str, options: BuilderOptions = FULL_OPTIONS) -> str:
    for table, keywords in TABLE_KEYWORDS:
        if _has_any(text, keywords):
            return table
    if options.default_table and _has_any(text, GENERIC_QUERY_WORDS):
        return options.default_table
    raise UnknownTable(
        f"Could not determine table from query '{text}'. "
        "Please specify 'todos', 'users', or 'posts'."
    )


# =============================================================================
# CLAUSE HELPERS
# =============================================================================

def _select_clause(text: str, table: str, options: BuilderOptions) -> str:
    if not options.columns:
        return "select=*"
    known = TABLE_COLUMNS[table]
    columns: List[str] = []
    for match in _ONLY_COLUMN_RE.finditer(text):
        if match.group(1) in known:
            columns.append(match.group(1))
    for match in _PAIR_COLUMN_RE.finditer(text):
        left, right = match.groups()
        if left in known and right in known:
            columns.extend([left, right])
    if not columns:
        return "select=*"
    ordered = list(dict.fromkeys(columns))
    return "select=" + ",".join(ordered)


def _done_clause(text: str) -> Optional[str]:
    if _has_any(text, DONE_WORDS):
        # negation wins over "completed"/"done"
        if _has_any(text, NEGATORS):
            return "is_done=eq.false"
        return "is_done=eq.true"
    if _has_any(text, NOT_DONE_WORDS):
        return "is_done=eq.false"
    return None


def _due_date_clause(text: str) -> Optional[str]:
    if "due" not in text:
        return None
    if "no due" in text or "without due" in text:
        return "due_date=is.null"
    if "null" in text and "not null" not in text:
        return "due_date=is.null"
    return "due_date=not.is.null"


def _status_clause(text: str) -> Optional[str]:
    if "status" not in text:
        return None
    for value in STATUS_VALUES:
        if re.search(rf"\b{value}\b", text):
            return f"status=eq.{value}"
    return None


def _usable_term(term: Optional[str]) -> bool:
    if not term or term in SEARCH_STOPWORDS:
        return False
    if not term.isprintable() or _has_any(term, UNSAFE_TERM_CHARS):
        logger.info("Dropping search term %r: not URL-safe", term)
        return False
    return True


def _title_search_clause(text: str) -> Optional[str]:
    for pattern in TITLE_SEARCH_PATTERNS:
        pos = text.find(pattern)
        if pos != -1:
            term = text[pos + len(pattern):].split(" ", 1)[0]
            if term:
                return f"title=ilike.*{term}*" if _usable_term(term) else None

    term = extract_search_term(_ID_PHRASE_RE.sub("", text))
    if _usable_term(term):
        return f"title=ilike.*{term}*"
    return None


def _limit_value(text: str) -> Optional[int]:
    for match in _LIMIT_RE.finditer(text):
        value = int(match.group(1))
        if value in SUPPORTED_LIMITS:
            return value
    return None


def _id_clause(text: str, limit: Optional[int]) -> Optional[str]:
    record_id = extract_id(text)
    if record_id is None:
        return None
    # "show first 10" ends in a number, but that number is the limit
    trailing = _TRAILING_LIMIT_RE.search(text)
    if limit is not None and trailing and int(trailing.group(1)) == record_id:
        return None
    return f"id=eq.{record_id}"


def _sort_clause(text: str) -> Optional[str]:
    if _has_any(text, DESC_WORDS):
        return "order=created_at.desc"
    if _has_any(text, ASC_WORDS):
        return "order=created_at.asc"
    return None


def build_clauses(text: str, table: str, options: BuilderOptions = FULL_OPTIONS) -> List[str]:
    """Return the ordered clause list for an already lower-cased request."""
    if table != "todos":
        return ["select=*"]

    if options.all_selects_everything and _ALL_RE.search(text):
        return ["select=*"]

    limit = _limit_value(text) if options.limit else None
    candidates = [
        _select_clause(text, table, options),
        _done_clause(text),
        _due_date_clause(text) if options.due_date else None,
        _status_clause(text) if options.status else None,
        _title_search_clause(text) if options.search else None,
        _id_clause(text, limit) if options.ids else None,
        _sort_clause(text) if options.sort else None,
        f"limit={limit}" if limit is not None else None,
    ]
    return [c for c in candidates if c]


# =============================================================================
# PUBLIC API
# =============================================================================

def _build(text: str, options: BuilderOptions) -> ParseResult:
    if not _has_any(text, QUERY_KEYWORDS):
        raise UnparseableInput(
            f"Unable to parse '{text}' as a database query. "
            "Please use words like 'show todos', 'get users', 'find completed tasks', etc."
        )

    table = infer_table(text, options)
    clauses = build_clauses(text, table, options)

    if options.require_filters and clauses == ["select=*"] and not _has_any(text, RETRIEVAL_WORDS):
        raise AmbiguousQuery(
            f"Query '{text}' doesn't specify what to retrieve. "
            "Try 'show all todos', 'get completed tasks', etc."
        )

    return ParseResult.success(table, "&".join(clauses))


def build_query(user_query: str, options: BuilderOptions = FULL_OPTIONS) -> ParseResult:
    """
    Deterministically map a natural language request to a ParseResult.
    Never raises for bad input: rejections come back in ParseResult.error.
    """
    text = (user_query or "").strip().lower()
    try:
        result = _build(text, options)
    except QueryPipelineError as exc:
        logger.info("Heuristic builder rejected '%s': %s", text, exc)
        return ParseResult.failure(str(exc))
    logger.info("Heuristic builder: table=%s, query=%s", result.table, result.query)
    return result


def with_options(**overrides) -> BuilderOptions:
    """FULL_OPTIONS with some switches changed."""
    return replace(FULL_OPTIONS, **overrides)


__all__ = [
    "BuilderOptions",
    "FULL_OPTIONS",
    "MINIMAL_OPTIONS",
    "build_query",
    "build_clauses",
    "infer_table",
    "with_options",
]
