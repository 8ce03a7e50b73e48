# src/cache/keys.py — v1
"""Cache key construction. Two namespaces share one store, split by prefix."""

from __future__ import annotations

METADATA_PREFIX = "song:"
SOURCE_PREFIX = "stream:"


def normalize_query(query: str) -> str:
    """Lower-case and trim a query so case/whitespace variants share an entry."""
    return query.strip().lower()


def metadata_key(query: str) -> str:
    return f"{METADATA_PREFIX}{normalize_query(query)}"


def source_key(query: str) -> str:
    return f"{SOURCE_PREFIX}{normalize_query(query)}"
