"""IngestService — read documents, extract entities, add them to the graph.

Extraction goes through the ``extract_document`` plugin hook; the first
plugin returning a result wins. After a document reaches the store the
snapshot is saved explicitly, so ingestion never depends on the autosave
timer.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pydantic

from kgctl.domain.errors import ExtractionError, GraphMutationError, KgError
from kgctl.domain.types import DocumentMetadata, ProcessingResult
from kgctl.services._helpers import dump
from kgctl.services.base import BaseService
from kgctl.services.result import ServiceResult, error_result

logger = logging.getLogger(__name__)


class IngestService(BaseService):
    """Turns documents on disk into graph nodes and edges."""

    def process_document(self, path: Path) -> ServiceResult:
        """Extract one document and add it to the graph."""
        warnings = self._start_warnings()
        try:
            result = self._prepare(path)
        except KgError as exc:
            return error_result("process_document", exc, warnings=warnings)
        self._add(result, warnings)
        try:
            self._workspace.save()
        except KgError as exc:
            return error_result("process_document", exc, warnings=warnings)

        self._notify_added(result, warnings)
        return ServiceResult(
            ok=True,
            op="process_document",
            data={**_summary(result), "result": dump(result)},
            warnings=warnings,
        )

    def process_documents(self, paths: list[Path]) -> ServiceResult:
        """Best-effort batch ingestion.

        A document that cannot be read or extracted is skipped and reported
        as a warning; the rest are still ingested. The result is ``ok`` even
        if every document fails.
        """
        warnings = self._start_warnings()
        processed: list[ProcessingResult] = []
        failed: list[str] = []

        for path in paths:
            try:
                result = self._prepare(path)
            except KgError as exc:
                logger.warning("Skipping %s: %s", path, exc.message)
                warnings.append(f"Skipped {path}: {exc.message}")
                failed.append(str(path))
                continue
            self._add(result, warnings)
            processed.append(result)

        if processed:
            try:
                self._workspace.save()
            except KgError as exc:
                return error_result("process_documents", exc, warnings=warnings)
        for result in processed:
            self._notify_added(result, warnings)

        return ServiceResult(
            ok=True,
            op="process_documents",
            data={
                "count": len(processed),
                "items": [_summary(r) for r in processed],
                "failed": failed,
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare(self, path: Path) -> ProcessingResult:
        content = self._read(path)
        metadata = DocumentMetadata(
            filename=path.name,
            type=path.suffix.lower(),
            path=str(path),
        )
        return self._extract(content, metadata)

    def _add(self, result: ProcessingResult, warnings: list[str]) -> None:
        """Put *result* in the store. A failed autosave is reported as a warning."""
        try:
            self._workspace.store.add_document(result)
        except GraphMutationError as exc:
            path = result.metadata.path
            logger.warning("Autosave failed after %s: %s", path, exc.message)
            warnings.append(f"Autosave failed after {path}: {exc.message}")

    def _read(self, path: Path) -> str:
        encoding = self._workspace.settings.extract.encoding
        try:
            return path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Cannot read {path}: {exc}"
            raise ExtractionError(msg, detail={"path": str(path)}) from exc

    def _extract(self, content: str, metadata: DocumentMetadata) -> ProcessingResult:
        try:
            result = self._workspace.plugin_manager.hook.extract_document(
                content=content, metadata=metadata
            )
        except Exception as exc:
            msg = f"Extraction failed for {metadata.path}: {exc}"
            raise ExtractionError(msg, detail={"path": metadata.path}) from exc
        if result is None:
            msg = f"No extractor plugin handled {metadata.path}"
            raise ExtractionError(msg, detail={"path": metadata.path})
        if isinstance(result, ProcessingResult):
            return result
        try:
            return ProcessingResult.model_validate(result)
        except pydantic.ValidationError as exc:
            msg = f"Extractor returned malformed output for {metadata.path}"
            raise ExtractionError(msg, detail={"path": metadata.path}) from exc

    def _notify_added(self, result: ProcessingResult, warnings: list[str]) -> None:
        self._dispatch_event(
            "post_document_added",
            {
                "path": result.metadata.path,
                "entity_count": len(result.entities),
                "relation_count": len(result.relations),
            },
            warnings,
        )


def _summary(result: ProcessingResult) -> dict[str, Any]:
    return {
        "path": result.metadata.path,
        "filename": result.metadata.filename,
        "entity_count": len(result.entities),
        "relation_count": len(result.relations),
    }
