"""Built-in regex entity/relation extractor.

Cheap and deterministic rather than accurate: runs of capitalised words
become ``entity`` nodes, ``@handles`` and ``#tags`` get their own types,
and a handful of sentence shapes become relations:

- "X is Y"            -> IS_A
- "X works at Y"      -> WORKS_AT
- "X founded Y"       -> FOUNDED (also "created", "started")
- "X met Y"           -> MET

Ids are slugs of the entity name, so re-ingesting a document overwrites
its nodes instead of duplicating them. Install a plugin implementing
``extract_document`` to replace it.
"""

from __future__ import annotations

import logging
import re

import pluggy

from kgctl.config.models import ExtractConfig
from kgctl.domain.types import DocumentMetadata, Entity, ProcessingResult, Relation

hookimpl = pluggy.HookimplMarker("kgctl")

logger = logging.getLogger(__name__)

_WORD = r"[A-Za-z][A-Za-z0-9_\-']*"
_NAME_RUN = re.compile(r"\b(?:[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+){0,4})\b")
_MARKER = re.compile(r"[@#]" + _WORD)
_LINE_SPLIT = re.compile(r"[\n\r]+")
_STRIP_CHARS = " .,:;\t\"'"

# (pattern, relation type, confidence)
_RELATION_PATTERNS: list[tuple[re.Pattern[str], str, float]] = [
    (re.compile(r"(?P<x>.+?)\s+works\s+at\s+(?P<y>.+)", re.IGNORECASE), "WORKS_AT", 0.7),
    (
        re.compile(r"(?P<x>.+?)\s+(?:founded|created|started)\s+(?P<y>.+)", re.IGNORECASE),
        "FOUNDED",
        0.7,
    ),
    (re.compile(r"(?P<x>.+?)\s+met\s+(?P<y>.+)", re.IGNORECASE), "MET", 0.55),
    (re.compile(r"(?P<x>.+?)\s+is\s+(?:an?\s+|the\s+)?(?P<y>.+)", re.IGNORECASE), "IS_A", 0.6),
]

_NAME_CONFIDENCE = 0.8
_MARKER_CONFIDENCE = 0.9
_PHRASE_CONFIDENCE = 0.5


def slugify(text: str) -> str:
    """Lowercase, hyphen-joined ASCII slug; ``"unknown"`` if nothing is left."""
    s = re.sub(r"\s+", " ", text.strip())
    s = re.sub(r"[^A-Za-z0-9 _\-]", "", s)
    s = s.strip().lower().replace(" ", "-")
    s = re.sub(r"-+", "-", s)
    return s or "unknown"


class RegexExtractorPlugin:
    """Fallback ``extract_document`` implementation based on regular expressions."""

    def __init__(self, config: ExtractConfig | None = None) -> None:
        self._config = config or ExtractConfig()

    @hookimpl(trylast=True)
    def extract_document(self, content: str, metadata: DocumentMetadata) -> ProcessingResult:
        entities, relations = self.extract(content, source=metadata.path)
        logger.debug(
            "Regex extractor: %d entities, %d relations from %s",
            len(entities),
            len(relations),
            metadata.path,
        )
        return ProcessingResult(entities=entities, relations=relations, metadata=metadata)

    def extract(self, text: str, *, source: str = "") -> tuple[list[Entity], list[Relation]]:
        entities: dict[str, Entity] = {}
        relations: dict[str, Relation] = {}
        if not text.strip():
            return [], []

        for m in _NAME_RUN.finditer(text):
            name = m.group(0).strip()
            if len(name) < self._config.min_entity_len:
                continue
            self._add_entity(entities, "entity", name, _NAME_CONFIDENCE, source, m.start())

        for m in _MARKER.finditer(text):
            token = m.group(0)
            kind = "handle" if token.startswith("@") else "tag"
            self._add_entity(entities, kind, token, _MARKER_CONFIDENCE, source, m.start())

        for line in (t.strip() for t in _LINE_SPLIT.split(text)):
            if not line:
                continue
            for pattern, rel_type, confidence in _RELATION_PATTERNS:
                mm = pattern.fullmatch(line)
                if mm is None:
                    continue
                x = mm.group("x").strip(_STRIP_CHARS)
                y = mm.group("y").strip(_STRIP_CHARS)
                if len(x) < self._config.min_entity_len or len(y) < self._config.min_entity_len:
                    continue
                source_id = self._add_entity(entities, "entity", x, _PHRASE_CONFIDENCE, source)
                target_id = self._add_entity(entities, "entity", y, _PHRASE_CONFIDENCE, source)
                rel_id = f"rel:{source_id}:{rel_type.lower()}:{target_id}"
                relations.setdefault(
                    rel_id,
                    Relation(
                        id=rel_id,
                        type=rel_type,
                        source=source_id,
                        target=target_id,
                        properties={"sentence": line},
                        source_document=source,
                        confidence=confidence,
                    ),
                )
                break

        return list(entities.values()), list(relations.values())

    @staticmethod
    def _add_entity(
        entities: dict[str, Entity],
        kind: str,
        name: str,
        confidence: float,
        source: str,
        position: int | None = None,
    ) -> str:
        prefix = "ent" if kind == "entity" else kind
        entity_id = f"{prefix}:{slugify(name)}"
        if entity_id not in entities:
            properties = {} if position is None else {"position": position}
            entities[entity_id] = Entity(
                id=entity_id,
                type=kind,
                name=name,
                properties=properties,
                source_document=source,
                confidence=confidence,
            )
        return entity_id
