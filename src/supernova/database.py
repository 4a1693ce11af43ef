"""Composition root: one executor plus the catalog, table engine, and object store built on it."""

from __future__ import annotations

import os
import shutil
from dataclasses import replace
from typing import Any

from supernova.catalog import SchemaCatalog
from supernova.config import SupernovaConfig
from supernova.errors import PersistenceError
from supernova.executor import Executor
from supernova.logs import EventLog, MemoryLogSink
from supernova.migration import MigrationResult, MigrationRunner
from supernova.objects import ObjectStore
from supernova.tables import DynamicTableManager


class Database:
    """An opened store with explicitly wired components.

    Use ``open_database`` to build one; the migration runner has already been applied
    when ``config.run_migrations`` is set.
    """

    def __init__(self, config: SupernovaConfig, events: EventLog | None = None) -> None:
        self.config = config
        self.log_sink = MemoryLogSink(config.log_buffer_size)
        self.events = events or EventLog()
        self.events.add_sink(self.log_sink)
        self.executor = Executor(
            config.db_path,
            busy_timeout_ms=config.busy_timeout_ms,
            journal_mode=config.journal_mode,
            foreign_keys=config.foreign_keys,
            log_sql=config.log_sql,
            events=self.events,
        )
        self.tables = DynamicTableManager(self.executor)
        self.catalog = SchemaCatalog(self.executor, self.tables)
        self.objects = ObjectStore(self.executor, self.tables)
        self.migrations = MigrationRunner(
            self.executor, default_object_name=config.default_object_name
        )
        self.last_migration: MigrationResult | None = None

    @property
    def db_path(self) -> str:
        """The single backing file of the store."""
        return self.executor.db_path

    def migrate(self) -> MigrationResult:
        self.last_migration = self.migrations.run()
        return self.last_migration

    def export_to(self, destination: str) -> str:
        """Copy the backing file verbatim to ``destination`` and return the path written."""
        if self.db_path == ":memory:":
            raise PersistenceError("export", "an in-memory store has no backing file")
        self.executor.checkpoint()
        if os.path.isdir(destination):
            destination = os.path.join(destination, os.path.basename(self.db_path))
        try:
            shutil.copyfile(self.db_path, destination)
        except OSError as e:
            raise PersistenceError("export", f"{destination}: {e}") from e
        self.events.info(f"Database exported to: {destination}", "database")
        return destination

    def stats(self) -> dict[str, Any]:
        """Counts per class, plus storage details."""
        classes = self.catalog.get_all_classes()
        per_class: dict[str, int] = {}
        total = 0
        for entity_class in classes:
            if self.tables.table_exists(entity_class.id):
                count = self.objects.count_objects(entity_class.id)
                per_class[entity_class.name] = count
                total += count
        info = self.executor.storage_info()
        info.update(
            {
                "classes": len(classes),
                "objects": total,
                "objects_per_class": per_class,
            }
        )
        if self.db_path != ":memory:" and os.path.exists(self.db_path):
            info["file_size"] = os.path.getsize(self.db_path)
        return info

    def close(self) -> None:
        self.executor.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
        self.close()


def open_database(
    config: SupernovaConfig | None = None,
    *,
    events: EventLog | None = None,
    **overrides: Any,
) -> Database:
    """Open (creating if needed) the store described by ``config``.

    Keyword overrides replace config fields, e.g. ``open_database(db_path=":memory:")``.
    """
    if config is None:
        config = SupernovaConfig.from_env(**overrides)
    elif overrides:
        config = replace(config, **overrides)
    db = Database(config, events=events)
    if config.run_migrations:
        try:
            db.migrate()
        except Exception:
            db.close()
            raise
    return db
