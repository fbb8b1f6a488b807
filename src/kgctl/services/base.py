"""BaseService — shared foundation for the ingest, query, and graph services.

Every service receives the :class:`Workspace` at construction time and
reaches the store, query engine, persistence adapter, and plugins
through it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kgctl.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class GraphService(BaseService):
            def stats(self) -> ServiceResult:
                store_stats = self._workspace.store.get_stats()
                ...
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    def _start_warnings(self) -> list[str]:
        """Warnings every result should carry (e.g. a snapshot that failed to load)."""
        return list(self._workspace.load_warnings)

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Call lifecycle hook *hook_name* on every registered plugin.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        try:
            hook = getattr(self._workspace.plugin_manager.hook, hook_name)
            hook(**payload)
        except Exception:
            logger.warning("Plugin hook %s failed", hook_name, exc_info=True)
            warnings.append(f"Plugin hook {hook_name} failed")
