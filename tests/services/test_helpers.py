"""Tests for service-layer helpers."""

from __future__ import annotations

from kgctl.domain.types import Node
from kgctl.services._helpers import count_by, dump, dump_all


def test_count_by_orders_by_frequency() -> None:
    assert list(count_by(["b", "a", "a", "c", "b", "a"]).items()) == [
        ("a", 3),
        ("b", 2),
        ("c", 1),
    ]


def test_count_by_ties_keep_first_seen() -> None:
    assert list(count_by(["y", "x"])) == ["y", "x"]


def test_count_by_empty() -> None:
    assert count_by([]) == {}


def test_dump() -> None:
    assert dump(Node(id="a", label="x")) == {"id": "a", "label": "x", "properties": {}}


def test_dump_all() -> None:
    assert [d["id"] for d in dump_all([Node(id="a", label="x"), Node(id="b", label="x")])] == [
        "a",
        "b",
    ]
