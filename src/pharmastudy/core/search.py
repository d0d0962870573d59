"""Search limits and matching rules shared by the API and the local store."""

from __future__ import annotations

from typing import Iterable

MAX_ITEM_RESULTS = 50
MAX_CHAPTER_RESULTS = 10
MAX_TOPIC_RESULTS = 10


def normalize_query(query: str | None) -> str:
    """Trim and lower-case a query. Empty means "no search"."""
    return (query or "").strip().lower()


def contains(query: str, *fields: str | None) -> bool:
    """Case-insensitive substring match against any non-empty field."""
    return any(query in field.lower() for field in fields if field)


def item_matches(query: str, name, scientific_name, description, properties: Iterable) -> bool:
    """Item match rule: name, scientific name, description or any property key/value.

    ``properties`` yields (key, value) pairs.
    """
    if contains(query, name, scientific_name, description):
        return True
    return any(contains(query, key, value) for key, value in properties)
