"""Startup migrations: forward-only, idempotent corrections of older on-disk schemas."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from supernova.executor import Executor
from supernova.identifiers import quote_identifier, sanitize_column_name, table_name
from supernova.tables import DynamicTableManager
from supernova.types import Property, PropertyType

__all__ = [
    "METADATA_TABLES",
    "MigrationStep",
    "MigrationPreview",
    "MigrationResult",
    "MigrationRunner",
]

_COMPONENT = "migration"

METADATA_TABLES: dict[str, str] = {
    "entity_class": """
        CREATE TABLE IF NOT EXISTS entity_class (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            icon TEXT,
            description TEXT,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "property": """
        CREATE TABLE IF NOT EXISTS property (
            id TEXT PRIMARY KEY,
            entity_class_id TEXT NOT NULL,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            is_required INTEGER NOT NULL DEFAULT 0,
            is_long_text INTEGER NOT NULL DEFAULT 0,
            order_index INTEGER NOT NULL DEFAULT 0,
            reference_target_class_id TEXT,
            FOREIGN KEY (entity_class_id) REFERENCES entity_class(id) ON DELETE CASCADE
        )
    """,
    "state": """
        CREATE TABLE IF NOT EXISTS state (
            id TEXT PRIMARY KEY,
            entity_class_id TEXT NOT NULL,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            icon TEXT,
            color TEXT,
            order_index INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (entity_class_id) REFERENCES entity_class(id) ON DELETE CASCADE
        )
    """,
    "action": """
        CREATE TABLE IF NOT EXISTS action (
            id TEXT PRIMARY KEY,
            entity_class_id TEXT NOT NULL,
            name TEXT NOT NULL,
            icon TEXT,
            description TEXT,
            trigger_type TEXT NOT NULL,
            order_index INTEGER NOT NULL DEFAULT 0,
            trigger_state_id TEXT,
            FOREIGN KEY (entity_class_id) REFERENCES entity_class(id) ON DELETE CASCADE
        )
    """,
    "action_allowed_state": """
        CREATE TABLE IF NOT EXISTS action_allowed_state (
            action_id TEXT NOT NULL,
            state_id TEXT NOT NULL,
            PRIMARY KEY (action_id, state_id),
            FOREIGN KEY (action_id) REFERENCES action(id) ON DELETE CASCADE,
            FOREIGN KEY (state_id) REFERENCES state(id) ON DELETE CASCADE
        )
    """,
}


@dataclass
class MigrationStep:
    """A named check plus the correction that makes it pass.

    ``pending`` returns human-readable descriptions of what is missing; an empty list
    means the step is already applied.
    """

    name: str
    description: str
    pending: Callable[[], list[str]]
    apply: Callable[[], None]


@dataclass
class MigrationPreview:
    """Result of MigrationRunner.plan()."""

    pending: dict[str, list[str]] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.pending)


@dataclass
class MigrationResult:
    """Result of MigrationRunner.run()."""

    applied: list[str] = field(default_factory=list)
    details: dict[str, list[str]] = field(default_factory=dict)
    duration_s: float = 0.0

    @property
    def has_changes(self) -> bool:
        return bool(self.applied)


class MigrationRunner:
    """Runs every startup check in order, applying only the ones that are pending."""

    def __init__(self, executor: Executor, *, default_object_name: str = "Unnamed") -> None:
        self._db = executor
        self._events = executor.events
        self._tables = DynamicTableManager(executor)
        self._default_object_name = default_object_name
        self.steps: list[MigrationStep] = [
            MigrationStep(
                "metadata_tables",
                "Create the catalog relations",
                self._pending_metadata_tables,
                self._apply_metadata_tables,
            ),
            MigrationStep(
                "state_type_column",
                "Add state.type, defaulting existing rows to 'inactive'",
                self._pending_state_type,
                self._apply_state_type,
            ),
            MigrationStep(
                "property_is_long_text",
                "Add property.is_long_text",
                self._pending_is_long_text,
                self._apply_is_long_text,
            ),
            MigrationStep(
                "object_table_base_columns",
                "Add name and icon columns to object tables created before they existed",
                self._pending_base_columns,
                self._apply_base_columns,
            ),
            MigrationStep(
                "object_table_drift",
                "Recreate missing object tables and property columns",
                self._pending_drift,
                self._apply_drift,
            ),
        ]

    def plan(self) -> MigrationPreview:
        """Report pending steps without applying anything."""
        preview = MigrationPreview()
        for step in self.steps:
            missing = step.pending()
            if missing:
                preview.pending[step.name] = missing
        return preview

    def run(self) -> MigrationResult:
        start = time.monotonic()
        result = MigrationResult()
        for step in self.steps:
            missing = step.pending()
            if not missing:
                continue
            self._events.info(f"Running migration: {step.description}", _COMPONENT)
            with self._db.transaction():
                step.apply()
            result.applied.append(step.name)
            result.details[step.name] = missing
            self._events.info(f"Migration completed: {step.name}", _COMPONENT)
        result.duration_s = time.monotonic() - start
        return result

    # --- metadata_tables ---

    def _pending_metadata_tables(self) -> list[str]:
        return [f"table {t}" for t in METADATA_TABLES if not self._db.table_exists(t)]

    def _apply_metadata_tables(self) -> None:
        self._db.executescript(";\n".join(ddl.strip() for ddl in METADATA_TABLES.values()) + ";")

    # --- state_type_column ---

    # Steps after metadata_tables see an absent relation as "created fresh by step one".

    def _pending_state_type(self) -> list[str]:
        if not self._db.table_exists("state") or "type" in self._db.table_columns("state"):
            return []
        return ["column state.type"]

    def _apply_state_type(self) -> None:
        self._db.execute("ALTER TABLE state ADD COLUMN type TEXT NOT NULL DEFAULT 'inactive'")

    # --- property_is_long_text ---
    # Long text is stored as type "text" with is_long_text = 1; rows typed "longText"
    # are still read as long text.

    def _pending_is_long_text(self) -> list[str]:
        if not self._db.table_exists("property"):
            return []
        if "is_long_text" in self._db.table_columns("property"):
            return []
        return ["column property.is_long_text"]

    def _apply_is_long_text(self) -> None:
        self._db.execute(
            "ALTER TABLE property ADD COLUMN is_long_text INTEGER NOT NULL DEFAULT 0"
        )

    # --- object_table_base_columns ---

    def _missing_base_columns(self) -> list[tuple[str, str]]:
        missing: list[tuple[str, str]] = []
        if not self._db.table_exists("entity_class"):
            return missing
        for row in self._db.query("SELECT id FROM entity_class"):
            tname = table_name(str(row["id"]))
            if not self._db.table_exists(tname):
                continue
            columns = set(self._db.table_columns(tname))
            for column in ("name", "icon"):
                if column not in columns:
                    missing.append((tname, column))
        return missing

    def _pending_base_columns(self) -> list[str]:
        return [f"column {t}.{c}" for t, c in self._missing_base_columns()]

    def _apply_base_columns(self) -> None:
        for tname, column in self._missing_base_columns():
            if column == "name":
                default = _sql_literal(self._default_object_name)
                self._db.execute(
                    f"ALTER TABLE {quote_identifier(tname)} "
                    f"ADD COLUMN name TEXT NOT NULL DEFAULT {default}"
                )
            else:
                self._db.execute(f"ALTER TABLE {quote_identifier(tname)} ADD COLUMN icon TEXT")

    # --- object_table_drift ---

    def _drift(self) -> tuple[list[tuple[str, str]], list[tuple[str, Property]]]:
        missing_tables: list[tuple[str, str]] = []
        missing_columns: list[tuple[str, Property]] = []
        if not (self._db.table_exists("entity_class") and self._db.table_exists("property")):
            return missing_tables, missing_columns
        for row in self._db.query("SELECT id, name FROM entity_class"):
            class_id = str(row["id"])
            tname = table_name(class_id)
            exists = self._db.table_exists(tname)
            if not exists:
                missing_tables.append((class_id, str(row["name"])))
            columns = set(self._db.table_columns(tname)) if exists else set()
            seen: set[str] = set()
            for prop_row in self._db.query(
                "SELECT id, name, type FROM property WHERE entity_class_id = ? "
                "ORDER BY order_index",
                (class_id,),
            ):
                column = sanitize_column_name(str(prop_row["name"]))
                if not column or column in columns or column in seen:
                    continue
                seen.add(column)
                try:
                    ptype = PropertyType(str(prop_row["type"]))
                except ValueError:
                    ptype = PropertyType.TEXT
                missing_columns.append(
                    (
                        class_id,
                        Property(
                            id=str(prop_row["id"]),
                            entity_class_id=class_id,
                            name=str(prop_row["name"]),
                            type=ptype,
                        ),
                    )
                )
        return missing_tables, missing_columns

    def _pending_drift(self) -> list[str]:
        missing_tables, missing_columns = self._drift()
        return [f"table {table_name(cid)}" for cid, _ in missing_tables] + [
            f"column {table_name(cid)}.{sanitize_column_name(p.name)}"
            for cid, p in missing_columns
        ]

    def _apply_drift(self) -> None:
        missing_tables, missing_columns = self._drift()
        for class_id, class_name in missing_tables:
            self._tables.create_table(class_id, class_name)
        for class_id, prop in missing_columns:
            self._tables.add_column(class_id, prop)


def _sql_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"
