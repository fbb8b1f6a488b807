"""GraphStore — in-memory property graph with a dirty-flag autosave policy.

Nodes and edges live in id-keyed dicts guarded by one re-entrant lock.
Referential integrity is not enforced: deleting a node leaves the edges
that point at it in place.

Mutations are not transactional. ``update_graph`` applies the node list,
then the edge list; a failure part-way leaves the earlier part applied.

Autosave: every mutation sets a dirty flag. After the mutation the store
calls its ``persist`` callback if the store is dirty and at least
``autosave_interval`` seconds have passed since the last save. This is a
heuristic, not a durability guarantee; callers that need the snapshot on
disk call :meth:`save`.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Hashable, Iterable
from datetime import UTC, datetime
from typing import Any

from kgctl.domain.types import (
    Edge,
    EdgeRef,
    GraphSnapshot,
    GraphStats,
    GraphUpdate,
    Node,
    NodeRef,
    ProcessingResult,
    UpdateType,
)

logger = logging.getLogger(__name__)

PersistCallback = Callable[[GraphSnapshot], None]

_LABEL_KEY = "label"


def _index_key(value: Any) -> Hashable | None:
    """Return the index bucket key for *value*, or None for non-scalars.

    Booleans are kept apart from numbers so ``True`` never matches ``1``.
    """
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("num", value)
    if isinstance(value, str):
        return ("str", value)
    if value is None:
        return ("null", None)
    return None


class GraphStore:
    """Single owner of the node/edge collections and the document registry."""

    def __init__(
        self,
        *,
        autosave_interval: float = 5.0,
        indexed_properties: Iterable[str] = ("name", "sourceDocument"),
        persist: PersistCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._documents: dict[str, None] = {}
        self._lock = threading.RLock()

        self._autosave_interval = autosave_interval
        self._indexed = tuple(dict.fromkeys([_LABEL_KEY, *indexed_properties]))
        # key -> bucket -> node ids (dict keeps insertion order)
        self._index: dict[str, dict[Hashable, dict[str, None]]] = {k: {} for k in self._indexed}
        self._persist = persist
        self._clock = clock

        self._last_updated = datetime.now(UTC)
        self._last_saved = clock()
        self._dirty = False
        self._revision = 0

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_document(self, result: ProcessingResult) -> None:
        """Upsert the entities and relations of one processed document."""
        created_at = datetime.now(UTC).isoformat()
        path = result.metadata.path

        with self._lock:
            self._documents[path] = None
            for entity in result.entities:
                self._put_node(
                    Node(
                        id=entity.id,
                        label=entity.type,
                        properties={
                            **entity.properties,
                            "name": entity.name,
                            "sourceDocument": path,
                            "confidence": entity.confidence,
                            "createdAt": created_at,
                        },
                    )
                )
            for relation in result.relations:
                self._edges[relation.id] = Edge(
                    id=relation.id,
                    source=relation.source,
                    target=relation.target,
                    label=relation.type,
                    properties={
                        **relation.properties,
                        "sourceDocument": path,
                        "confidence": relation.confidence,
                        "createdAt": created_at,
                    },
                )
            self._touch()

        logger.debug(
            "Added document %s (%d entities, %d relations)",
            path,
            len(result.entities),
            len(result.relations),
        )
        self._maybe_autosave()

    def update_graph(self, op: GraphUpdate) -> None:
        """Apply an add/update/delete operation to nodes, then edges."""
        with self._lock:
            try:
                match op.type:
                    case UpdateType.ADD:
                        for node_ref in op.nodes:
                            self._put_node(self._node_from_ref(node_ref))
                        for edge_ref in op.edges:
                            self._edges[edge_ref.id] = self._edge_from_ref(edge_ref)
                    case UpdateType.UPDATE:
                        for node_ref in op.nodes:
                            self._merge_node(node_ref)
                        for edge_ref in op.edges:
                            self._merge_edge(edge_ref)
                    case UpdateType.DELETE:
                        for node_ref in op.nodes:
                            self._drop_node(node_ref.id)
                        for edge_ref in op.edges:
                            self._edges.pop(edge_ref.id, None)
            finally:
                # Whatever was applied before a failure still counts as a change.
                self._touch()
        self._maybe_autosave()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Edge | None:
        return self._edges.get(edge_id)

    def find_nodes(self, predicate: Callable[[Node], bool]) -> list[Node]:
        with self._lock:
            return [n for n in self._nodes.values() if predicate(n)]

    def find_edges(self, predicate: Callable[[Edge], bool]) -> list[Edge]:
        with self._lock:
            return [e for e in self._edges.values() if predicate(e)]

    def find_nodes_by(self, key: str, value: Any) -> list[Node]:
        """Return nodes whose *key* equals *value*.

        *key* is ``"label"`` or a property name. Indexed keys are answered
        from the index; other keys fall back to a full scan.
        """
        with self._lock:
            index_key = _index_key(value)
            if key in self._index and index_key is not None:
                return [self._nodes[i] for i in self._index[key].get(index_key, {})]
            if key == _LABEL_KEY:
                return [n for n in self._nodes.values() if n.label == value]
            return [
                n
                for n in self._nodes.values()
                if key in n.properties and n.properties[key] == value
            ]

    def edges_touching(self, node_id: str) -> list[Edge]:
        with self._lock:
            return [e for e in self._edges.values() if node_id in (e.source, e.target)]

    def get_graph_data(self) -> GraphSnapshot:
        with self._lock:
            return GraphSnapshot(nodes=list(self._nodes.values()), edges=list(self._edges.values()))

    def get_stats(self) -> GraphStats:
        with self._lock:
            return GraphStats(
                node_count=len(self._nodes),
                edge_count=len(self._edges),
                document_count=len(self._documents),
                last_updated=self._last_updated,
                storage_size=self._storage_size(),
            )

    @property
    def documents(self) -> list[str]:
        with self._lock:
            return list(self._documents)

    @property
    def revision(self) -> int:
        """Mutation counter, bumped on every change to nodes or edges."""
        return self._revision

    @property
    def dirty(self) -> bool:
        return self._dirty

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Drop all nodes, edges, and registered documents."""
        with self._lock:
            self._nodes.clear()
            self._edges.clear()
            self._documents.clear()
            for bucket in self._index.values():
                bucket.clear()
            self._touch()

    def load(self, snapshot: GraphSnapshot) -> None:
        """Replace the contents with *snapshot* without marking the store dirty.

        The document registry is not part of a snapshot and starts empty.
        """
        with self._lock:
            self.clear()
            for node in snapshot.nodes:
                self._put_node(node)
            for edge in snapshot.edges:
                self._edges[edge.id] = edge
            self._dirty = False
            self._last_saved = self._clock()
        logger.debug(
            "Loaded snapshot (%d nodes, %d edges)", len(snapshot.nodes), len(snapshot.edges)
        )

    def save(self) -> None:
        """Hand the current snapshot to the persist callback."""
        if self._persist is None:
            return
        with self._lock:
            snapshot = self.get_graph_data()
            self._persist(snapshot)
            self._dirty = False
            self._last_saved = self._clock()

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _touch(self) -> None:
        self._last_updated = datetime.now(UTC)
        self._dirty = True
        self._revision += 1

    def _maybe_autosave(self) -> None:
        if self._persist is None or not self._dirty:
            return
        if self._clock() - self._last_saved < self._autosave_interval:
            return
        logger.debug("Autosave triggered (revision %d)", self._revision)
        self.save()

    def _index_entries(self, node: Node) -> Iterable[tuple[str, Hashable]]:
        for key in self._indexed:
            if key == _LABEL_KEY:
                value = node.label
            elif key in node.properties:
                value = node.properties[key]
            else:
                continue
            index_key = _index_key(value)
            if index_key is not None:
                yield key, index_key

    def _put_node(self, node: Node) -> None:
        self._unindex(node.id)
        self._nodes[node.id] = node
        for key, index_key in self._index_entries(node):
            self._index[key].setdefault(index_key, {})[node.id] = None

    def _drop_node(self, node_id: str) -> None:
        self._unindex(node_id)
        self._nodes.pop(node_id, None)

    def _unindex(self, node_id: str) -> None:
        existing = self._nodes.get(node_id)
        if existing is None:
            return
        for key, index_key in self._index_entries(existing):
            bucket = self._index[key].get(index_key)
            if bucket is not None:
                bucket.pop(node_id, None)
                if not bucket:
                    del self._index[key][index_key]

    def _merge_node(self, ref: NodeRef) -> None:
        existing = self._nodes.get(ref.id)
        if existing is None:
            return
        update: dict[str, Any] = {}
        if ref.label is not None:
            update["label"] = ref.label
        if ref.properties is not None:
            update["properties"] = {**existing.properties, **ref.properties}
        self._put_node(existing.model_copy(update=update))

    def _merge_edge(self, ref: EdgeRef) -> None:
        existing = self._edges.get(ref.id)
        if existing is None:
            return
        update: dict[str, Any] = {
            field: getattr(ref, field)
            for field in ("source", "target", "label")
            if getattr(ref, field) is not None
        }
        if ref.properties is not None:
            update["properties"] = {**existing.properties, **ref.properties}
        self._edges[ref.id] = existing.model_copy(update=update)

    @staticmethod
    def _node_from_ref(ref: NodeRef) -> Node:
        if not ref.label:
            msg = f"Cannot add node {ref.id!r} without a label"
            raise ValueError(msg)
        return Node(id=ref.id, label=ref.label, properties=ref.properties or {})

    @staticmethod
    def _edge_from_ref(ref: EdgeRef) -> Edge:
        missing = [f for f in ("source", "target", "label") if not getattr(ref, f)]
        if missing:
            msg = f"Cannot add edge {ref.id!r} without {', '.join(missing)}"
            raise ValueError(msg)
        return Edge(
            id=ref.id,
            source=ref.source or "",
            target=ref.target or "",
            label=ref.label or "",
            properties=ref.properties or {},
        )

    def _storage_size(self) -> int:
        nodes = [n.model_dump(mode="json") for n in self._nodes.values()]
        edges = [e.model_dump(mode="json") for e in self._edges.values()]
        return len(json.dumps(nodes, separators=(",", ":"))) + len(
            json.dumps(edges, separators=(",", ":"))
        )
