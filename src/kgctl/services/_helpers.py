"""Shared service-layer helper functions."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel


def dump(model: BaseModel) -> dict[str, Any]:
    """JSON-ready dict of a pydantic model (datetimes as ISO strings)."""
    return model.model_dump(mode="json")


def dump_all(models: Iterable[BaseModel]) -> list[dict[str, Any]]:
    return [m.model_dump(mode="json") for m in models]


def count_by(values: Iterable[str]) -> dict[str, int]:
    """Occurrences per value, most frequent first (ties keep first-seen order).

    Examples:
        >>> count_by(["person", "place", "person"])
        {'person': 2, 'place': 1}
    """
    counts: dict[str, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return dict(sorted(counts.items(), key=lambda kv: -kv[1]))
