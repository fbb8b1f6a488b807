"""Pluggy hook specifications for document extraction and graph lifecycle events.

``extract_document`` is the producer boundary: the first plugin returning a
non-None ``ProcessingResult`` wins. The ``post_*`` hooks are notifications;
their failures are logged as warnings by the services.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from kgctl.domain.types import DocumentMetadata, ProcessingResult

hookspec = pluggy.HookspecMarker("kgctl")


class KgctlHookSpec:
    """Hook specifications for the kgctl plugin system."""

    @hookspec(firstresult=True)
    def extract_document(
        self,
        content: str,
        metadata: DocumentMetadata,
    ) -> ProcessingResult | None:
        """Turn document text into entities and relations.

        Return None to let the next plugin handle the document.
        """

    @hookspec
    def post_document_added(
        self,
        path: str,
        entity_count: int,
        relation_count: int,
    ) -> None:
        """Called after a document's entities and relations reach the store."""

    @hookspec
    def post_import(
        self,
        identifier: str,
        source: str,
        node_count: int,
        edge_count: int,
    ) -> None:
        """Called after a snapshot import replaced the in-memory graph."""

    @hookspec
    def post_clear(self, identifier: str) -> None:
        """Called after the graph and its persisted snapshot were wiped."""
