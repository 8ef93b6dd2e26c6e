"""
Token extraction helpers for the heuristic query builder.
Callers are expected to lower-case the text first.
"""
from __future__ import annotations
from typing import Optional

SEARCH_LEAD_INS = (
    "with ",
    "containing ",
    "contains ",
    "about ",
    "titled ",
    "named ",
    "like ",
)

ID_LEAD_INS = ("id ", "with id ", "having id ")
MAX_ID = 2**32 - 1


def _first_word(text: str) -> str:
    """Everything up to the first space (or the whole string)."""
    end = text.find(" ")
    return text if end == -1 else text[:end]


def _parse_unsigned(token: str) -> Optional[int]:
    if not token.isascii() or not token.isdigit():
        return None
    value = int(token)
    return value if value <= MAX_ID else None


def extract_search_term(text: str) -> Optional[str]:
    """
    Return the quoted substring if there is one, otherwise the word following
    the first lead-in keyword found (checked in SEARCH_LEAD_INS order).
    """
    start = text.find('"')
    if start != -1:
        end = text.find('"', start + 1)
        if end != -1:
            return text[start + 1:end]

    for keyword in SEARCH_LEAD_INS:
        pos = text.find(keyword)
        if pos != -1:
            return _first_word(text[pos + len(keyword):])

    return None


def extract_id(text: str) -> Optional[int]:
    """
    Return the integer after 'id', 'with id' or 'having id'; failing that,
    the last whitespace-separated token if it is an integer.
    """
    for keyword in ID_LEAD_INS:
        pos = text.find(keyword)
        if pos != -1:
            value = _parse_unsigned(_first_word(text[pos + len(keyword):]))
            if value is not None:
                return value

    words = text.split()
    if words:
        return _parse_unsigned(words[-1])
    return None


__all__ = ["extract_search_term", "extract_id", "SEARCH_LEAD_INS", "ID_LEAD_INS"]
