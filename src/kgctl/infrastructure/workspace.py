"""Workspace — the single dependency injected into every service.

Owns one GraphStore, the PersistenceAdapter that backs it, the QueryEngine
reading from it, and (lazily) the plugin manager. On construction the
configured snapshot (``main`` by default) is loaded into the store; the
store's autosave writes back to that same snapshot.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from kgctl.domain.errors import KgError
from kgctl.domain.types import GraphSnapshot
from kgctl.infrastructure.graph.store import GraphStore
from kgctl.infrastructure.persistence import PersistenceAdapter
from kgctl.infrastructure.query.engine import QueryEngine

if TYPE_CHECKING:
    from kgctl.config.settings import KgSettings
    from kgctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class Workspace:
    """Repository tying the in-memory graph to its on-disk snapshot.

    Constructed once per CLI invocation from :class:`KgSettings` and kept
    in ``click.Context.obj``. Services receive it via :class:`BaseService`.
    """

    def __init__(self, settings: KgSettings) -> None:
        self._settings = settings
        self._persistence = PersistenceAdapter(
            settings.graphs_dir, backup=settings.persistence.backup
        )
        self._store = GraphStore(
            autosave_interval=settings.store.autosave_interval,
            indexed_properties=settings.store.indexed_properties,
            persist=self._persist,
        )
        self._query = QueryEngine(
            self._store,
            cache_ttl=settings.query.cache_ttl,
            max_workers=settings.query.max_workers,
        )
        self._plugin_manager: PluginManager | None = None
        self.load_warnings: list[str] = []
        self.reload()

    @property
    def settings(self) -> KgSettings:
        return self._settings

    @property
    def root(self) -> Path:
        """The data directory holding snapshots and local plugins."""
        return self._settings.data_dir

    @property
    def identifier(self) -> str:
        """Snapshot identifier the store loads from and autosaves to."""
        return self._settings.persistence.identifier

    @property
    def store(self) -> GraphStore:
        return self._store

    @property
    def persistence(self) -> PersistenceAdapter:
        return self._persistence

    @property
    def query(self) -> QueryEngine:
        return self._query

    @property
    def plugin_manager(self) -> PluginManager:
        """The plugin manager, created and loaded on first access."""
        if self._plugin_manager is None:
            self._plugin_manager = self._init_plugins()
        return self._plugin_manager

    def reload(self) -> None:
        """Replace the store contents with the persisted snapshot.

        A snapshot that cannot be read leaves the store empty; the failure is
        logged and kept in :attr:`load_warnings`.
        """
        try:
            snapshot = self._persistence.load_graph(self.identifier)
        except KgError as exc:
            logger.warning("Could not load graph %s: %s", self.identifier, exc.message)
            self.load_warnings.append(f"Could not load graph {self.identifier!r}: {exc.message}")
            self._store.load(GraphSnapshot())
            return
        self._store.load(snapshot)

    def save(self) -> None:
        """Write the store to its snapshot now, regardless of the autosave timer."""
        self._store.save()

    def close(self) -> None:
        """Flush unsaved changes and release worker threads."""
        if self._store.dirty:
            self._store.save()
        self._query.shutdown()

    def _persist(self, snapshot: GraphSnapshot) -> None:
        self._persistence.save_graph(snapshot, self.identifier)

    def _init_plugins(self) -> PluginManager:
        from kgctl.plugins.builtins.regex_extractor import RegexExtractorPlugin
        from kgctl.plugins.manager import PluginManager

        pm = PluginManager()
        pm.discover_and_load(local_dir=self._settings.plugins_dir)
        if self._settings.plugins.builtin_extractor:
            pm.register_plugin(
                RegexExtractorPlugin(config=self._settings.extract), name="regex-extractor"
            )
        logger.debug("Plugins loaded: %s", ", ".join(pm.list_plugin_names()))
        return pm
