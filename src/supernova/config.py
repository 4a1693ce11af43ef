"""Configuration for the SuperNOVA store."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any

import yaml

from supernova.errors import ConfigError


def default_db_path() -> str:
    """Return the backing file path used when none is configured."""
    env = os.getenv("SUPERNOVA_DB")
    if env:
        return env
    return os.path.join(os.path.expanduser("~"), ".supernova", "supernova.sqlite")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class SupernovaConfig:
    """Configuration for the store runtime."""

    db_path: str = field(default_factory=default_db_path)
    busy_timeout_ms: int = 5000
    journal_mode: str = "WAL"
    foreign_keys: bool = True
    log_sql: bool = True
    log_buffer_size: int = 1000
    run_migrations: bool = True
    default_object_name: str = "Unnamed"

    @classmethod
    def from_env(cls, **overrides: Any) -> SupernovaConfig:
        """Build a config from SUPERNOVA_* environment variables."""
        values: dict[str, Any] = {}
        timeout = os.getenv("SUPERNOVA_BUSY_TIMEOUT_MS")
        if timeout:
            try:
                values["busy_timeout_ms"] = int(timeout)
            except ValueError:
                raise ConfigError(f"SUPERNOVA_BUSY_TIMEOUT_MS must be an integer, got '{timeout}'")
        journal = os.getenv("SUPERNOVA_JOURNAL_MODE")
        if journal:
            values["journal_mode"] = journal
        log_sql = os.getenv("SUPERNOVA_LOG_SQL")
        if log_sql:
            values["log_sql"] = _env_bool(log_sql)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def load_config(path: str, **overrides: Any) -> SupernovaConfig:
    """Load a YAML config file whose keys are SupernovaConfig field names."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file '{path}': {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file '{path}': {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping")

    known = {f.name for f in fields(SupernovaConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in '{path}': {', '.join(unknown)}")

    base = SupernovaConfig.from_env()
    for key, value in data.items():
        setattr(base, key, value)
    for key, value in overrides.items():
        if value is not None:
            setattr(base, key, value)
    return base
