# src/modules/search/sanitizer.py

import re

# Operators of the text-search query grammar: boolean (& |), negation (! ~),
# grouping ( ), weights/prefix (: *), phrase distance (< >), quoting and backslash.
RESERVED_CHARACTERS = "&|!():*<>\\'\"~"

_RESERVED_PATTERN = re.compile("[" + re.escape(RESERVED_CHARACTERS) + "]")
_WHITESPACE_PATTERN = re.compile(r"\s+")

def sanitize_query(raw: str) -> str:
    """
    Make a free-text query safe to embed in a text-search expression.

    Reserved operator characters are removed, whitespace runs collapse to a
    single space and the result is trimmed. Sanitizing is idempotent.
    """
    if not raw:
        return ""
    stripped = _RESERVED_PATTERN.sub(" ", raw)
    return _WHITESPACE_PATTERN.sub(" ", stripped).strip()

def normalize_query(raw: str) -> str:
    """Sanitized, lower-cased form used as the cache key."""
    return sanitize_query(raw).lower()

def query_terms(query: str) -> list:
    return [term for term in query.split(" ") if term]
