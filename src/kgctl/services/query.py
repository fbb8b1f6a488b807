"""QueryService — semantic, structured, and hybrid search over the graph.

Thin layer over :class:`QueryEngine`: validates raw query payloads,
converts ``QueryExecutionError`` into a failed ServiceResult, and shapes
matches into JSON-ready dicts.
"""

from __future__ import annotations

from typing import Any

import pydantic

from kgctl.domain.errors import QueryExecutionError
from kgctl.domain.queries import (
    QUERY_ADAPTER,
    HybridQuery,
    HybridStrategy,
    QueryContext,
    QueryMatch,
    QueryResult,
    SemanticPart,
    SemanticQuery,
    SemanticQueryOptions,
    StructuredPart,
    StructuredPatterns,
    StructuredQuery,
)
from kgctl.services._helpers import dump, dump_all
from kgctl.services.base import BaseService
from kgctl.services.result import ServiceResult, error_result, failure


class QueryService(BaseService):
    """Runs queries and reports query-engine statistics."""

    def query(self, query: Any) -> ServiceResult:
        """Execute a query model or a raw mapping with a ``type`` discriminator."""
        warnings = self._start_warnings()
        if isinstance(query, dict):
            try:
                query = QUERY_ADAPTER.validate_python(query)
            except pydantic.ValidationError as exc:
                return failure(
                    "query",
                    "INVALID_QUERY",
                    "Query payload is not a valid semantic, structured, or hybrid query",
                    detail={"errors": [str(e["msg"]) for e in exc.errors()]},
                    warnings=warnings,
                )
        return self._run("query", query, warnings)

    def semantic_search(
        self,
        text: str,
        *,
        options: SemanticQueryOptions | None = None,
        context: QueryContext | None = None,
    ) -> ServiceResult:
        query = SemanticQuery(
            text=text, options=options or SemanticQueryOptions(), context=context
        )
        return self._run("semantic_search", query, self._start_warnings())

    def structured_search(
        self,
        patterns: StructuredPatterns,
        *,
        context: QueryContext | None = None,
    ) -> ServiceResult:
        query = StructuredQuery(patterns=patterns, context=context)
        return self._run("structured_search", query, self._start_warnings())

    def hybrid_search(
        self,
        text: str,
        patterns: StructuredPatterns,
        *,
        strategy: HybridStrategy = "weighted",
        options: SemanticQueryOptions | None = None,
        context: QueryContext | None = None,
    ) -> ServiceResult:
        query = HybridQuery(
            semantic=SemanticPart(text=text, options=options or SemanticQueryOptions()),
            structured=StructuredPart(patterns=patterns),
            strategy=strategy,
            context=context,
        )
        return self._run("hybrid_search", query, self._start_warnings())

    def stats(self) -> ServiceResult:
        """Query counters: totals, timing, success rate, cache hits."""
        return ServiceResult(
            ok=True,
            op="query_stats",
            data=dump(self._workspace.query.get_stats()),
        )

    def clear_cache(self) -> ServiceResult:
        self._workspace.query.clear_cache()
        return ServiceResult(ok=True, op="clear_cache", data={"cleared": True})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, op: str, query: Any, warnings: list[str]) -> ServiceResult:
        try:
            result = self._workspace.query.execute(query)
        except QueryExecutionError as exc:
            exc.detail.setdefault("kind", str(exc.kind))
            return error_result(op, exc, warnings=warnings)

        include_sources = bool(
            getattr(query, "context", None) and query.context.include_sources
        )
        return ServiceResult(
            ok=True,
            op=op,
            data=_result_payload(result, include_sources=include_sources),
            warnings=warnings,
        )


def _result_payload(result: QueryResult, *, include_sources: bool) -> dict[str, Any]:
    meta = result.metadata
    return {
        "strategy": meta.strategy,
        "total_results": meta.total_results,
        "count": len(result.matches),
        "confidence": meta.confidence,
        "execution_time_ms": meta.execution_time_ms,
        "matches": [_match_payload(m, include_sources=include_sources) for m in result.matches],
    }


def _match_payload(match: QueryMatch, *, include_sources: bool) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "score": match.score,
        "context": match.context,
        "nodes": dump_all(match.nodes),
        "edges": dump_all(match.edges),
    }
    if include_sources:
        payload["sources"] = sorted(
            {
                str(n.properties["sourceDocument"])
                for n in match.nodes
                if n.properties.get("sourceDocument")
            }
        )
    return payload
