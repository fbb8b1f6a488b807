"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``KGCTL_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``kgctl.toml`` found by walking up from the start dir
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from kgctl.config.models import (
    ExtractConfig,
    PersistenceConfig,
    PluginsConfig,
    QueryConfig,
    StoreConfig,
)

CONFIG_FILENAME = "kgctl.toml"
CONFIG_ENV_VAR = "KGCTL_CONFIG"
DATA_DIRNAME = ".kgctl"


def find_config(start: Path | None = None) -> Path | None:
    """Locate ``kgctl.toml``.

    ``KGCTL_CONFIG`` wins when set (and is honoured only if it names an
    existing file). Otherwise walks up from *start* (default: cwd).
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidate = Path(env_path)
        return candidate if candidate.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a discovered ``kgctl.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# The TOML path must reach settings_customise_sources, which pydantic calls
# as a classmethod during __init__.
_tls = threading.local()


class KgSettings(BaseSettings):
    """Unified settings for the kgctl CLI and library entry points.

    Attributes:
        data_dir: Directory holding snapshots and local plugins. Defaults to
            ``.kgctl`` next to the discovered ``kgctl.toml`` (or in the CWD).
        config_path: The TOML file in effect, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "KGCTL_",
        "env_nested_delimiter": "__",
    }

    data_dir: Path = Field(default_factory=lambda: Path.cwd() / DATA_DIRNAME)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    store: StoreConfig = Field(default_factory=StoreConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    extract: ExtractConfig = Field(default_factory=ExtractConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @property
    def graphs_dir(self) -> Path:
        return self.data_dir / self.persistence.directory

    @property
    def plugins_dir(self) -> Path:
        return self.data_dir / self.plugins.local_dir

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        start_dir: Path | None = None,
        data_dir: Path | None = None,
        **cli_flags: Any,
    ) -> KgSettings:
        """Construct settings from a CLI invocation.

        An explicit *config_path* that does not exist is ignored rather
        than searched around. *data_dir* (``--data-dir``) overrides both
        the environment and the TOML file.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(start_dir)

        init_kwargs: dict[str, Any] = {k: v for k, v in cli_flags.items() if v is not None}
        if data_dir is not None:
            init_kwargs["data_dir"] = data_dir
        elif "KGCTL_DATA_DIR" not in os.environ:
            base = toml_path.parent if toml_path else (start_dir or Path.cwd())
            toml_data_dir = _toml_value(toml_path, "data_dir")
            init_kwargs["data_dir"] = (
                base / toml_data_dir if toml_data_dir else base / DATA_DIRNAME
            )

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **init_kwargs)
        finally:
            _tls.toml_path = None


def _toml_value(toml_path: Path | None, key: str) -> Any:
    """Read one top-level key from *toml_path*, or None."""
    if toml_path is None or not toml_path.is_file():
        return None
    try:
        return tomllib.loads(toml_path.read_text(encoding="utf-8")).get(key)
    except tomllib.TOMLDecodeError:
        # Reported with context by TomlSettingsSource.
        return None
