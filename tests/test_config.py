"""Tests for configuration loading."""

from __future__ import annotations

import pytest

from supernova.config import SupernovaConfig, default_db_path, load_config
from supernova.errors import ConfigError


class TestFromEnv:
    def test_defaults(self, monkeypatch):
        for var in (
            "SUPERNOVA_DB",
            "SUPERNOVA_BUSY_TIMEOUT_MS",
            "SUPERNOVA_JOURNAL_MODE",
            "SUPERNOVA_LOG_SQL",
        ):
            monkeypatch.delenv(var, raising=False)
        config = SupernovaConfig.from_env()
        assert config.db_path.endswith("supernova.sqlite")
        assert config.busy_timeout_ms == 5000
        assert config.journal_mode == "WAL"
        assert config.run_migrations is True

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("SUPERNOVA_DB", "/tmp/x.sqlite")
        monkeypatch.setenv("SUPERNOVA_BUSY_TIMEOUT_MS", "250")
        monkeypatch.setenv("SUPERNOVA_JOURNAL_MODE", "DELETE")
        monkeypatch.setenv("SUPERNOVA_LOG_SQL", "no")
        config = SupernovaConfig.from_env()
        assert default_db_path() == "/tmp/x.sqlite"
        assert config.db_path == "/tmp/x.sqlite"
        assert config.busy_timeout_ms == 250
        assert config.journal_mode == "DELETE"
        assert config.log_sql is False

    def test_bad_timeout(self, monkeypatch):
        monkeypatch.setenv("SUPERNOVA_BUSY_TIMEOUT_MS", "soon")
        with pytest.raises(ConfigError):
            SupernovaConfig.from_env()

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("SUPERNOVA_JOURNAL_MODE", "DELETE")
        config = SupernovaConfig.from_env(journal_mode="WAL", db_path=None)
        assert config.journal_mode == "WAL"


class TestLoadConfig:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "nova.yaml"
        path.write_text("db_path: /data/nova.sqlite\nbusy_timeout_ms: 100\n")
        config = load_config(str(path))
        assert config.db_path == "/data/nova.sqlite"
        assert config.busy_timeout_ms == 100

    def test_overrides(self, tmp_path):
        path = tmp_path / "nova.yaml"
        path.write_text("db_path: /data/nova.sqlite\n")
        assert load_config(str(path), db_path="/other.sqlite").db_path == "/other.sqlite"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "nova.yaml"
        path.write_text("")
        assert isinstance(load_config(str(path)), SupernovaConfig)

    def test_unknown_keys(self, tmp_path):
        path = tmp_path / "nova.yaml"
        path.write_text("colour: blue\n")
        with pytest.raises(ConfigError, match="colour"):
            load_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "nova.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "nova.yaml"
        path.write_text("db_path: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "absent.yaml"))
