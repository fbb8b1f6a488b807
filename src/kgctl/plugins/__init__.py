"""Extension layer — plugin system via pluggy.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus single-file plugins from the data directory.
INVARIANT: Lifecycle hook failures are warnings, never errors.
"""

from kgctl.plugins.manager import PluginManager

__all__ = ["PluginManager"]
