"""Graph records and the producer boundary types.

Nodes and edges are frozen: the store replaces a record on every mutation,
so snapshots and cached query results never observe later writes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, JsonValue

Properties = dict[str, JsonValue]


class UpdateType(StrEnum):
    """Mutation kinds accepted by ``GraphStore.update_graph``."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


# --- Graph records ---


class Node(BaseModel):
    """Graph vertex for one extracted entity. ``label`` is the entity type."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    properties: Properties = Field(default_factory=dict)


class Edge(BaseModel):
    """Directed connection for one extracted relation.

    ``source`` and ``target`` are node ids. They are not checked against the
    node set: an edge may outlive either endpoint.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    target: str
    label: str = ""
    properties: Properties = Field(default_factory=dict)


class GraphSnapshot(BaseModel):
    """The complete (nodes, edges) pair persisted as a single unit."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges


class NodeRef(BaseModel):
    """Node payload inside a ``GraphUpdate``.

    Only ``id`` is required; ``add`` additionally needs ``label``.
    """

    id: str
    label: str | None = None
    properties: Properties | None = None


class EdgeRef(BaseModel):
    """Edge payload inside a ``GraphUpdate``.

    Only ``id`` is required; ``add`` additionally needs ``source``,
    ``target`` and ``label``.
    """

    id: str
    source: str | None = None
    target: str | None = None
    label: str | None = None
    properties: Properties | None = None


class GraphUpdate(BaseModel):
    """One add/update/delete operation over nodes and edges."""

    type: UpdateType
    nodes: list[NodeRef] = Field(default_factory=list)
    edges: list[EdgeRef] = Field(default_factory=list)


class GraphStats(BaseModel):
    """In-memory store statistics.

    ``storage_size`` is the length of the serialized node and edge lists,
    an estimate of memory footprint rather than the size on disk.
    """

    node_count: int
    edge_count: int
    document_count: int
    last_updated: datetime
    storage_size: int


class PersistenceStats(BaseModel):
    """Aggregate statistics over all persisted snapshots."""

    total_graphs: int
    total_size: int
    last_modified: datetime | None = None


# --- Producer boundary ---


class Entity(BaseModel):
    """An entity emitted by the extraction producer."""

    id: str
    type: str
    name: str
    properties: Properties = Field(default_factory=dict)
    source_document: str = ""
    confidence: float = 1.0


class Relation(BaseModel):
    """A directed relation between two entity ids."""

    id: str
    type: str
    source: str
    target: str
    properties: Properties = Field(default_factory=dict)
    source_document: str = ""
    confidence: float = 1.0


class DocumentMetadata(BaseModel):
    """Where a processed document came from."""

    filename: str
    type: str
    path: str
    processed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ProcessingResult(BaseModel):
    """Producer output for one document."""

    entities: list[Entity] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)
    metadata: DocumentMetadata
