"""Query shapes, match results, and engine statistics.

``Query`` is a discriminated union on ``type``; use :data:`QUERY_ADAPTER`
to validate raw payloads (JSON files, CLI input) into the right variant.

Pattern fields are compared by literal equality. Values such as ``".*"``
or ``"involves|uses"`` are not interpreted as regular expressions.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter

from kgctl.domain.types import Edge, Node

HybridStrategy = Literal["parallel", "sequential", "weighted"]


class QueryContext(BaseModel):
    """Post-processing controls shared by every query variant.

    ``timeout`` is accepted for compatibility but not enforced.
    """

    max_results: int | None = Field(default=None, ge=0)
    min_confidence: float | None = None
    include_sources: bool | None = None
    timeout: float | None = None


class SemanticQueryOptions(BaseModel):
    use_embeddings: bool = False
    similarity_threshold: float = 0.5
    max_distance: int = Field(default=2, ge=0)
    context_window: int | None = None


class NodePattern(BaseModel):
    """Matches a node when every specified field is equal."""

    id: str | None = None
    label: str | None = None
    properties: dict[str, JsonValue] | None = None


class EdgePattern(BaseModel):
    """Matches an edge when every specified field is equal."""

    source: str | None = None
    target: str | None = None
    label: str | None = None
    properties: dict[str, JsonValue] | None = None


class StructuredPatterns(BaseModel):
    nodes: list[NodePattern] = Field(default_factory=list)
    edges: list[EdgePattern] = Field(default_factory=list)


# --- Query variants ---


class SemanticQuery(BaseModel):
    type: Literal["semantic"] = "semantic"
    text: str
    options: SemanticQueryOptions = Field(default_factory=SemanticQueryOptions)
    context: QueryContext | None = None


class StructuredQuery(BaseModel):
    type: Literal["structured"] = "structured"
    patterns: StructuredPatterns = Field(default_factory=StructuredPatterns)
    context: QueryContext | None = None


class SemanticPart(BaseModel):
    text: str
    options: SemanticQueryOptions = Field(default_factory=SemanticQueryOptions)


class StructuredPart(BaseModel):
    patterns: StructuredPatterns = Field(default_factory=StructuredPatterns)


class HybridQuery(BaseModel):
    type: Literal["hybrid"] = "hybrid"
    semantic: SemanticPart
    structured: StructuredPart
    strategy: HybridStrategy = "weighted"
    context: QueryContext | None = None


Query = Annotated[SemanticQuery | StructuredQuery | HybridQuery, Field(discriminator="type")]

QUERY_ADAPTER: TypeAdapter[SemanticQuery | StructuredQuery | HybridQuery] = TypeAdapter(Query)


# --- Results ---


class QueryMatch(BaseModel):
    """One result unit: a node neighbourhood with its score."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    score: float
    context: str = ""

    @property
    def key(self) -> str:
        """Sorted, comma-joined set of node ids (hybrid merge key)."""
        return ",".join(sorted({n.id for n in self.nodes}))


class QueryResultMeta(BaseModel):
    total_results: int
    execution_time_ms: float
    confidence: float
    strategy: str


class QueryResult(BaseModel):
    """Ranked matches. Cached instances are shared; treat them as read-only."""

    model_config = ConfigDict(frozen=True)

    matches: list[QueryMatch] = Field(default_factory=list)
    metadata: QueryResultMeta


class PatternCount(BaseModel):
    pattern: str
    count: int


class QueryStats(BaseModel):
    total_queries: int
    average_execution_time_ms: float
    success_rate: float
    cache_hits: int = 0
    common_patterns: list[PatternCount] = Field(default_factory=list)
