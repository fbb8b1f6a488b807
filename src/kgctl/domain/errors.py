"""Exception taxonomy for graph ingestion, persistence, and querying.

Services translate these into ``ServiceError`` codes; see ``code`` on each
class. A missing snapshot is not an error for ``load_graph`` (it yields an
empty snapshot) but raises ``GraphNotFoundError`` for delete and export.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class KgError(Exception):
    """Base class for all kgctl domain errors."""

    code = "KG_ERROR"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail or {}


class ExtractionError(KgError):
    """The entity/relation producer failed or no producer is registered."""

    code = "EXTRACTION_FAILED"


class GraphMutationError(KgError):
    """A snapshot could not be read from or written to storage."""

    code = "PERSISTENCE_FAILED"


class ValidationError(KgError):
    """A snapshot payload does not have the required graph structure."""

    code = "INVALID_GRAPH_DATA"


class GraphNotFoundError(KgError):
    """No persisted snapshot exists for the requested identifier."""

    code = "NOT_FOUND"


class QueryErrorKind(StrEnum):
    UNSUPPORTED_QUERY_TYPE = "UNSUPPORTED_QUERY_TYPE"
    INTERNAL_FAILURE = "INTERNAL_FAILURE"


class QueryExecutionError(KgError):
    """A query could not be executed.

    Carries the original query object and, through ``__cause__``, the
    underlying exception.
    """

    code = "QUERY_EXECUTION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        kind: QueryErrorKind,
        query: Any,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.kind = kind
        self.query = query
