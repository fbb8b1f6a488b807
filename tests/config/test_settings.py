"""Tests for KgSettings — CLI flags, env vars, and TOML in one object."""

from __future__ import annotations

from pathlib import Path

import click
import pytest

from kgctl.config.settings import DATA_DIRNAME, KgSettings


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = KgSettings.from_cli(start_dir=tmp_path)
        assert settings.data_dir == tmp_path / DATA_DIRNAME
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.query.cache_ttl == 300.0
        assert settings.graphs_dir == tmp_path / DATA_DIRNAME / "graphs"
        assert settings.plugins_dir == tmp_path / DATA_DIRNAME / "plugins"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = KgSettings.from_cli(start_dir=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]

    def test_cli_flags(self, tmp_path: Path) -> None:
        settings = KgSettings.from_cli(start_dir=tmp_path, json_output=True, quiet=True)
        assert settings.json_output is True
        assert settings.quiet is True


class TestTomlSource:
    def test_sparse_override(self, tmp_path: Path) -> None:
        (tmp_path / "kgctl.toml").write_text(
            "[query]\ncache_ttl = 10\n[persistence]\nbackup = false\n", encoding="utf-8"
        )
        settings = KgSettings.from_cli(start_dir=tmp_path)
        assert settings.query.cache_ttl == 10
        assert settings.query.max_workers == 2
        assert settings.persistence.backup is False
        assert settings.config_path == (tmp_path / "kgctl.toml").resolve()

    def test_found_from_subdirectory(self, tmp_path: Path) -> None:
        (tmp_path / "kgctl.toml").write_text("", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        settings = KgSettings.from_cli(start_dir=nested)
        assert settings.data_dir == tmp_path.resolve() / DATA_DIRNAME

    def test_data_dir_relative_to_toml(self, tmp_path: Path) -> None:
        (tmp_path / "kgctl.toml").write_text('data_dir = "store"\n', encoding="utf-8")
        settings = KgSettings.from_cli(start_dir=tmp_path)
        assert settings.data_dir == tmp_path.resolve() / "store"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        cfg = tmp_path / "custom.toml"
        cfg.write_text("[store]\nautosave_interval = 0\n", encoding="utf-8")
        settings = KgSettings.from_cli(config_path=str(cfg), start_dir=tmp_path / "x")
        assert settings.store.autosave_interval == 0

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "kgctl.toml").write_text("[query\n", encoding="utf-8")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            KgSettings.from_cli(start_dir=tmp_path)


class TestPriority:
    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "kgctl.toml").write_text("[query]\ncache_ttl = 10\n", encoding="utf-8")
        monkeypatch.setenv("KGCTL_QUERY__CACHE_TTL", "20")
        settings = KgSettings.from_cli(start_dir=tmp_path)
        assert settings.query.cache_ttl == 20

    def test_data_dir_flag_beats_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("KGCTL_DATA_DIR", str(tmp_path / "env"))
        settings = KgSettings.from_cli(start_dir=tmp_path, data_dir=tmp_path / "flag")
        assert settings.data_dir == tmp_path / "flag"

    def test_data_dir_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KGCTL_DATA_DIR", str(tmp_path / "env"))
        settings = KgSettings.from_cli(start_dir=tmp_path)
        assert settings.data_dir == tmp_path / "env"
