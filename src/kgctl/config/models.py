"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, kgctl.toml only contains overrides.
An empty kgctl.toml is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    # Seconds between autosaves of a dirty store. 0 saves after every mutation.
    autosave_interval: float = Field(default=5.0, ge=0)
    # Node property keys served from the in-memory index (label is always indexed).
    indexed_properties: list[str] = Field(default_factory=lambda: ["name", "sourceDocument"])


class PersistenceConfig(BaseModel):
    """[persistence] section."""

    model_config = {"frozen": True}

    directory: str = "graphs"
    backup: bool = True
    identifier: str = "main"


class QueryConfig(BaseModel):
    """[query] section."""

    model_config = {"frozen": True}

    cache_ttl: float = Field(default=300.0, ge=0)
    max_workers: int = Field(default=2, ge=1)


class ExtractConfig(BaseModel):
    """[extract] section."""

    model_config = {"frozen": True}

    encoding: str = "utf-8"
    min_entity_len: int = 2


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    builtin_extractor: bool = True
    local_dir: str = "plugins"
