"""QueryEngine — semantic, structured, and hybrid execution over a GraphStore.

Results are cached by canonical query JSON for ``cache_ttl`` seconds.
The cache is not tied to the graph revision: a repeated query inside the
TTL returns the earlier result even if the graph changed since.

Hybrid queries with the ``parallel`` strategy run both halves on a
lazily-created ThreadPoolExecutor; call :meth:`shutdown` to release it.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from kgctl.domain.errors import QueryErrorKind, QueryExecutionError
from kgctl.domain.queries import (
    HybridQuery,
    PatternCount,
    QueryMatch,
    QueryResult,
    QueryResultMeta,
    QueryStats,
    SemanticPart,
    SemanticQuery,
    SemanticQueryOptions,
    StructuredPatterns,
    StructuredQuery,
)
from kgctl.infrastructure.graph.engine import GraphEngine
from kgctl.infrastructure.graph.store import GraphStore
from kgctl.infrastructure.query.cache import QueryCache, cache_key
from kgctl.infrastructure.query.matching import (
    EVEN_SPLIT,
    WEIGHTED_SPLIT,
    average_score,
    induced_edges,
    matches_any_edge,
    matches_any_node,
    merge_matches,
    node_context,
    rank_and_filter,
    relevance,
)

logger = logging.getLogger(__name__)

_SUPPORTED = (SemanticQuery, StructuredQuery, HybridQuery)


class _Counters:
    """Execution counters, guarded by their own lock."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.by_type: dict[str, int] = {}
        self.total_ms = 0.0
        self.failures = 0
        self.cache_hits = 0


class QueryEngine:
    """Executes queries against a store and keeps a result cache and stats."""

    def __init__(
        self,
        store: GraphStore,
        *,
        cache_ttl: float = 300.0,
        max_workers: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._graph = GraphEngine(store)
        self._cache = QueryCache(cache_ttl, clock=clock)
        self._counters = _Counters()
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    @property
    def graph(self) -> GraphEngine:
        return self._graph

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, query: Any) -> QueryResult:
        """Run *query*, serving from the cache when a fresh entry exists.

        Raises:
            QueryExecutionError: ``UNSUPPORTED_QUERY_TYPE`` for an object that
                is not a query variant, ``INTERNAL_FAILURE`` for anything
                that goes wrong while executing one.
        """
        if not isinstance(query, _SUPPORTED):
            with self._counters.lock:
                self._counters.failures += 1
            query_type = getattr(query, "type", type(query).__name__)
            msg = f"Unsupported query type: {query_type}"
            raise QueryExecutionError(msg, kind=QueryErrorKind.UNSUPPORTED_QUERY_TYPE, query=query)

        started = time.perf_counter()
        try:
            key = cache_key(query)
            cached = self._cache.get(key)
            if cached is not None:
                with self._counters.lock:
                    self._counters.cache_hits += 1
                logger.debug("Cache hit for %s query", query.type)
                return cached

            match query:
                case SemanticQuery():
                    result = self._run_semantic(query)
                case StructuredQuery():
                    result = self._run_structured(query)
                case HybridQuery():
                    result = self._run_hybrid(query)
        except QueryExecutionError:
            raise
        except Exception as exc:
            with self._counters.lock:
                self._counters.failures += 1
            msg = f"Query execution failed: {exc}"
            raise QueryExecutionError(
                msg, kind=QueryErrorKind.INTERNAL_FAILURE, query=query
            ) from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        result = result.model_copy(
            update={
                "metadata": result.metadata.model_copy(update={"execution_time_ms": elapsed_ms})
            }
        )
        with self._counters.lock:
            by_type = self._counters.by_type
            by_type[query.type] = by_type.get(query.type, 0) + 1
            self._counters.total_ms += elapsed_ms
        self._cache.put(key, result)
        logger.debug(
            "%s query: %d matches in %.2f ms",
            query.type,
            len(result.matches),
            elapsed_ms,
        )
        return result

    def semantic_search(
        self, text: str, options: SemanticQueryOptions | None = None
    ) -> QueryResult:
        return self.execute(SemanticQuery(text=text, options=options or SemanticQueryOptions()))

    def structured_search(self, patterns: StructuredPatterns) -> QueryResult:
        return self.execute(StructuredQuery(patterns=patterns))

    def get_stats(self) -> QueryStats:
        """Aggregate counters over successful, non-cached executions."""
        c = self._counters
        with c.lock:
            total = sum(c.by_type.values())
            attempts = total + c.failures
            return QueryStats(
                total_queries=total,
                average_execution_time_ms=c.total_ms / total if total else 0.0,
                success_rate=total / attempts if attempts else 1.0,
                cache_hits=c.cache_hits,
                common_patterns=[
                    PatternCount(pattern=name, count=count)
                    for name, count in sorted(c.by_type.items(), key=lambda kv: -kv[1])
                ],
            )

    def clear_cache(self) -> None:
        """Drop every cached result. Stats are left untouched."""
        self._cache.clear()

    def shutdown(self) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _semantic_matches(self, part: SemanticPart | SemanticQuery) -> list[QueryMatch]:
        threshold = part.options.similarity_threshold
        snapshot = self._store.get_graph_data()
        matches: list[QueryMatch] = []
        for seed in snapshot.nodes:
            score = relevance(seed, part.text)
            if score <= threshold:
                continue
            reached = [
                node
                for node_id in self._graph.reachable(seed.id, part.options.max_distance)
                if (node := self._store.get_node(node_id)) is not None
            ]
            nodes = [seed, *reached]
            matches.append(
                QueryMatch(
                    nodes=nodes,
                    edges=induced_edges({n.id for n in nodes}, snapshot.edges),
                    score=score,
                    context=node_context(seed),
                )
            )
        return matches

    def _structured_matches(self, patterns: StructuredPatterns) -> list[QueryMatch]:
        snapshot = self._store.get_graph_data()
        matches: list[QueryMatch] = []
        for node in snapshot.nodes:
            if not matches_any_node(node, patterns.nodes):
                continue
            edges = [
                e
                for e in snapshot.edges
                if node.id in (e.source, e.target) and matches_any_edge(e, patterns.edges)
            ]
            others: dict[str, None] = {}
            for edge in edges:
                for endpoint in (edge.source, edge.target):
                    if endpoint != node.id:
                        others[endpoint] = None
            connected = [n for i in others if (n := self._store.get_node(i)) is not None]
            matches.append(
                QueryMatch(
                    nodes=[node, *connected],
                    edges=edges,
                    score=1.0,
                    context=node_context(node),
                )
            )
        return matches

    def _run_semantic(self, query: SemanticQuery) -> QueryResult:
        matches = self._semantic_matches(query)
        return _result(matches, query, confidence=average_score(matches), strategy="semantic")

    def _run_structured(self, query: StructuredQuery) -> QueryResult:
        matches = self._structured_matches(query.patterns)
        return _result(matches, query, confidence=1.0, strategy="structured")

    def _run_hybrid(self, query: HybridQuery) -> QueryResult:
        if query.strategy == "parallel":
            executor = self._ensure_executor()
            semantic_future = executor.submit(self._semantic_matches, query.semantic)
            structured_future = executor.submit(
                self._structured_matches, query.structured.patterns
            )
            semantic, structured = semantic_future.result(), structured_future.result()
        else:
            semantic = self._semantic_matches(query.semantic)
            structured = self._structured_matches(query.structured.patterns)

        # Each side is ranked and limited on its own, then again after merging.
        semantic = rank_and_filter(semantic, query.context)
        structured = rank_and_filter(structured, query.context)
        weights = WEIGHTED_SPLIT if query.strategy == "weighted" else EVEN_SPLIT
        merged = merge_matches(semantic, structured, weights)
        return _result(
            merged, query, confidence=average_score(merged), strategy=f"hybrid-{query.strategy}"
        )

    def _ensure_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="kgctl-query"
                )
            return self._executor


def _result(
    matches: list[QueryMatch],
    query: SemanticQuery | StructuredQuery | HybridQuery,
    *,
    confidence: float,
    strategy: str,
) -> QueryResult:
    return QueryResult(
        matches=rank_and_filter(matches, query.context),
        metadata=QueryResultMeta(
            total_results=len(matches),
            execution_time_ms=0.0,
            confidence=confidence,
            strategy=strategy,
        ),
    )
