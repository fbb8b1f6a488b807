"""Scoring, pattern matching, ranking, and merging of query matches.

Pure functions over domain models; the engine supplies the graph data.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence

from pydantic import JsonValue

from kgctl.domain.queries import EdgePattern, NodePattern, QueryContext, QueryMatch
from kgctl.domain.types import Edge, Node

# Semantic / structured weights by hybrid strategy.
WEIGHTED_SPLIT = (0.6, 0.4)
EVEN_SPLIT = (0.5, 0.5)


def serialize_properties(properties: Mapping[str, JsonValue]) -> str:
    """Lowercase compact JSON of a property map, the text relevance runs on."""
    return json.dumps(properties, separators=(",", ":"), ensure_ascii=False).lower()


def relevance(node: Node, text: str) -> float:
    """Fraction of whitespace-separated query terms found in the node's properties.

    Terms are matched as substrings, so ``"ali"`` matches ``"alice"``.
    """
    terms = text.lower().split()
    if not terms:
        return 0.0
    haystack = serialize_properties(node.properties)
    return sum(1 for term in terms if term in haystack) / len(terms)


def _properties_match(
    expected: Mapping[str, JsonValue] | None, actual: Mapping[str, JsonValue]
) -> bool:
    if not expected:
        return True
    return all(key in actual and actual[key] == value for key, value in expected.items())


def node_matches(node: Node, pattern: NodePattern) -> bool:
    if pattern.id is not None and pattern.id != node.id:
        return False
    if pattern.label is not None and pattern.label != node.label:
        return False
    return _properties_match(pattern.properties, node.properties)


def edge_matches(edge: Edge, pattern: EdgePattern) -> bool:
    if pattern.source is not None and pattern.source != edge.source:
        return False
    if pattern.target is not None and pattern.target != edge.target:
        return False
    if pattern.label is not None and pattern.label != edge.label:
        return False
    return _properties_match(pattern.properties, edge.properties)


def matches_any_node(node: Node, patterns: Iterable[NodePattern]) -> bool:
    return any(node_matches(node, p) for p in patterns)


def matches_any_edge(edge: Edge, patterns: Iterable[EdgePattern]) -> bool:
    return any(edge_matches(edge, p) for p in patterns)


def induced_edges(node_ids: set[str], edges: Iterable[Edge]) -> list[Edge]:
    """Edges whose source and target both lie in *node_ids*."""
    return [e for e in edges if e.source in node_ids and e.target in node_ids]


def node_context(node: Node) -> str:
    name = node.properties.get("name") or ""
    source = node.properties.get("sourceDocument") or ""
    return f"{node.label}: {name} ({source})"


def rank_and_filter(
    matches: Sequence[QueryMatch], context: QueryContext | None
) -> list[QueryMatch]:
    """Sort by descending score, then apply min_confidence and max_results."""
    ranked = sorted(matches, key=lambda m: m.score, reverse=True)
    if context is None:
        return ranked
    if context.min_confidence is not None:
        ranked = [m for m in ranked if m.score >= context.min_confidence]
    if context.max_results is not None:
        ranked = ranked[: context.max_results]
    return ranked


def merge_matches(
    semantic: Sequence[QueryMatch],
    structured: Sequence[QueryMatch],
    weights: tuple[float, float],
) -> list[QueryMatch]:
    """Combine two match lists keyed by their node-id sets.

    A key present in both lists scores ``ws * s + wt * t`` and keeps the
    semantic match's nodes, edges and context; a key present in one list
    keeps its own weighted score. Within a list, a later match with the
    same key replaces an earlier one.
    """
    semantic_weight, structured_weight = weights
    by_semantic = {m.key: m for m in semantic}
    by_structured = {m.key: m for m in structured}

    merged: list[QueryMatch] = []
    for key, match in by_semantic.items():
        score = match.score * semantic_weight
        other = by_structured.get(key)
        if other is not None:
            score += other.score * structured_weight
        merged.append(match.model_copy(update={"score": score}))
    for key, match in by_structured.items():
        if key not in by_semantic:
            merged.append(match.model_copy(update={"score": match.score * structured_weight}))
    return merged


def average_score(matches: Sequence[QueryMatch]) -> float:
    if not matches:
        return 0.0
    return sum(m.score for m in matches) / len(matches)
