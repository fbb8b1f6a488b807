"""GraphEngine — lazy NetworkX view over a GraphStore.

The view is rebuilt when the store's revision moves past the one it was
built from. Edge endpoints missing from the node set still appear in the
NetworkX graph (NetworkX adds them implicitly) but carry no attributes;
:meth:`neighbors` skips them.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterator
from typing import TYPE_CHECKING

import networkx as nx

if TYPE_CHECKING:
    from kgctl.domain.types import GraphSnapshot
    from kgctl.infrastructure.graph.store import GraphStore

_Graph = nx.MultiDiGraph


def build_graph(snapshot: GraphSnapshot) -> _Graph:
    """Build a MultiDiGraph keyed by node id, one edge per stored edge."""
    g: _Graph = nx.MultiDiGraph()
    for node in snapshot.nodes:
        g.add_node(node.id, label=node.label, properties=node.properties, stored=True)
    for edge in snapshot.edges:
        g.add_edge(
            edge.source,
            edge.target,
            key=edge.id,
            label=edge.label,
            properties=edge.properties,
        )
    return g


class GraphEngine:
    """Traversal helpers over a revision-tracked NetworkX graph."""

    def __init__(self, store: GraphStore) -> None:
        self._store = store
        self._graph: _Graph | None = None
        self._built_revision = -1
        self._lock = threading.Lock()

    @property
    def graph(self) -> _Graph:
        """Return the graph, rebuilding if the store changed since last build."""
        with self._lock:
            revision = self._store.revision
            if self._graph is None or revision != self._built_revision:
                self._graph = build_graph(self._store.get_graph_data())
                self._built_revision = revision
            return self._graph

    def invalidate(self) -> None:
        """Drop the cached graph, forcing a rebuild on next access."""
        with self._lock:
            self._graph = None

    def neighbors(self, node_id: str) -> list[str]:
        """Stored nodes adjacent to *node_id*, ignoring edge direction."""
        return list(_stored_neighbors(self.graph, node_id))

    def reachable(self, start: str, max_distance: int) -> list[str]:
        """Breadth-first search from *start* up to *max_distance* hops.

        Returns reached node ids in visit order, excluding *start*.
        Each node is visited at most once.
        """
        g = self.graph
        visited: set[str] = {start}
        order: list[str] = []
        queue: deque[tuple[str, int]] = deque([(start, 0)])

        while queue:
            node_id, distance = queue.popleft()
            if distance >= max_distance:
                continue
            for neighbor in _stored_neighbors(g, node_id):
                if neighbor in visited:
                    continue
                visited.add(neighbor)
                order.append(neighbor)
                queue.append((neighbor, distance + 1))
        return order


def _stored_neighbors(g: _Graph, node_id: str) -> Iterator[str]:
    if node_id not in g:
        return
    for neighbor in nx.all_neighbors(g, node_id):
        if g.nodes[neighbor].get("stored"):
            yield neighbor
