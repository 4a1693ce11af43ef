"""Dynamic table engine: physical DDL for per-class object tables."""

from __future__ import annotations

from supernova.codec import storage_type
from supernova.errors import ClassNotFoundError, UnsupportedOperationError
from supernova.executor import Executor
from supernova.identifiers import (
    FIXED_COLUMNS,
    quote_identifier,
    sanitize_column_name,
    table_name,
)
from supernova.types import Property

_COMPONENT = "tables"


class DynamicTableManager:
    """Creates, alters, and drops the physical table that holds a class's objects.

    Custom property columns are always added as nullable: SQLite rejects
    ``ADD COLUMN ... NOT NULL`` without a default, and existing rows have no value for a
    retrofit column. Required-ness is enforced by the caller layer.
    """

    def __init__(self, executor: Executor) -> None:
        self._db = executor
        self._events = executor.events

    def table_name(self, class_id: str) -> str:
        return table_name(class_id)

    def table_exists(self, class_id: str) -> bool:
        return self._db.table_exists(table_name(class_id))

    def columns(self, class_id: str) -> list[str]:
        return self._db.table_columns(table_name(class_id))

    def column_types(self, class_id: str) -> dict[str, str]:
        """Declared storage type of each column, upper-cased."""
        rows = self._db.query(f"PRAGMA table_info({quote_identifier(table_name(class_id))})")
        return {str(r["name"]): str(r["type"] or "").upper() for r in rows}

    def custom_columns(self, class_id: str) -> list[str]:
        return [c for c in self.columns(class_id) if c not in FIXED_COLUMNS]

    def create_table(self, class_id: str, class_name: str = "") -> None:
        name = table_name(class_id)
        self._db.execute(
            f"CREATE TABLE IF NOT EXISTS {quote_identifier(name)} ("
            "id TEXT PRIMARY KEY, "
            "name TEXT NOT NULL, "
            "icon TEXT, "
            "current_state_id TEXT NOT NULL, "
            "created_at INTEGER NOT NULL, "
            "updated_at INTEGER NOT NULL"
            ")"
        )
        label = f" for class: {class_name}" if class_name else ""
        self._events.info(f"Created dynamic table: {name}{label}", _COMPONENT)

    def add_column(self, class_id: str, prop: Property) -> str:
        """Add the column for ``prop`` and return its sanitized name."""
        name = table_name(class_id)
        if not self._db.table_exists(name):
            raise ClassNotFoundError(class_id)
        column = sanitize_column_name(prop.name)
        self._db.execute(
            f"ALTER TABLE {quote_identifier(name)} "
            f"ADD COLUMN {quote_identifier(column)} {storage_type(prop.type)}"
        )
        self._events.info(
            f"Added column {column} ({storage_type(prop.type)}) to {name}", _COMPONENT
        )
        return column

    def rename_column(self, class_id: str, old_column: str, new_column: str) -> None:
        name = table_name(class_id)
        self._db.execute(
            f"ALTER TABLE {quote_identifier(name)} "
            f"RENAME COLUMN {quote_identifier(old_column)} TO {quote_identifier(new_column)}"
        )
        self._events.info(f"Renamed column {old_column} -> {new_column} in {name}", _COMPONENT)

    def remove_column(self, class_id: str, column: str) -> None:
        """Column removal is not supported; soft-orphaned columns keep their data."""
        raise UnsupportedOperationError(
            "remove_column",
            f"column '{column}' of {table_name(class_id)} is kept; "
            "deleted properties leave soft-orphaned columns",
        )

    def drop_table(self, class_id: str) -> None:
        name = table_name(class_id)
        self._db.execute(f"DROP TABLE IF EXISTS {quote_identifier(name)}")
        self._events.info(f"Dropped dynamic table: {name}", _COMPONENT)
