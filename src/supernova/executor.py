"""Execution primitive: one serialized SQLite connection with parameterized execute/query."""

from __future__ import annotations

import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from supernova.codec import to_store_value
from supernova.errors import PersistenceError
from supernova.identifiers import quote_identifier
from supernova.logs import EventLog

_COMPONENT = "executor"


def _operation(sql: str) -> str:
    words = sql.strip().split(None, 1)
    return words[0].upper() if words else "SQL"


def _bind(params: Sequence[Any] | None) -> list[Any]:
    if not params:
        return []
    bound = []
    for index, value in enumerate(params, start=1):
        try:
            bound.append(to_store_value(value).raw)
        except TypeError as e:
            raise PersistenceError("bind", f"parameter {index}: {e}")
    return bound


def _split_script(script: str) -> list[str]:
    # executescript() would COMMIT an open transaction first
    statements = []
    pending = ""
    for line in script.splitlines(keepends=True):
        pending += line
        if sqlite3.complete_statement(pending):
            statements.append(pending.strip())
            pending = ""
    if pending.strip():
        statements.append(pending.strip())
    return statements


class Executor:
    """SQLite connection shared process-wide; every statement runs under one lock.

    Statements outside ``transaction()`` commit independently. There is no
    statement-level retry: a failure is raised once as PersistenceError.
    """

    def __init__(
        self,
        db_path: str,
        *,
        busy_timeout_ms: int = 5000,
        journal_mode: str = "WAL",
        foreign_keys: bool = True,
        log_sql: bool = True,
        events: EventLog | None = None,
    ) -> None:
        self.db_path = db_path
        self._log_sql = log_sql
        self._events = events or EventLog()
        self._lock = threading.RLock()
        self._depth = 0

        if db_path != ":memory:":
            parent = os.path.dirname(os.path.abspath(db_path))
            os.makedirs(parent, exist_ok=True)
        try:
            self._conn = sqlite3.connect(
                db_path,
                timeout=busy_timeout_ms / 1000.0,
                isolation_level=None,
                check_same_thread=False,
            )
            if db_path != ":memory:":
                self._conn.execute(f"PRAGMA journal_mode={journal_mode}")
            self._conn.execute(f"PRAGMA foreign_keys={'ON' if foreign_keys else 'OFF'}")
        except sqlite3.Error as e:
            raise PersistenceError("open", f"{db_path}: {e}")
        self._events.info(f"Database opened at: {db_path}", _COMPONENT)

    @property
    def events(self) -> EventLog:
        return self._events

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _trace(self, kind: str, sql: str, params: Sequence[Any] | None) -> None:
        if not self._log_sql:
            return
        statement = " ".join(sql.split())
        self._events.debug(f"SQL {kind}: {statement}", _COMPONENT)
        if params:
            rendered = ", ".join("NULL" if p is None else repr(p) for p in params)
            self._events.debug(f"   Parameters: [{rendered}]", _COMPONENT)

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Run a statement and return the number of affected rows."""
        bound = _bind(params)
        self._trace("EXECUTE", sql, bound)
        with self._lock:
            try:
                cursor = self._conn.execute(sql, bound)
            except sqlite3.Error as e:
                self._events.error(f"SQL error executing statement: {e}", _COMPONENT)
                raise PersistenceError(_operation(sql), str(e)) from e
            return cursor.rowcount

    def executescript(self, script: str) -> None:
        """Run several semicolon-separated statements; used for bulk DDL."""
        self._trace("SCRIPT", script, None)
        with self._lock:
            try:
                if self._depth:
                    for statement in _split_script(script):
                        self._conn.execute(statement)
                else:
                    self._conn.executescript(script)
            except sqlite3.Error as e:
                self._events.error(f"SQL error executing script: {e}", _COMPONENT)
                raise PersistenceError("SCRIPT", str(e)) from e

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        """Run a SELECT and return rows as ordered name -> store primitive mappings."""
        bound = _bind(params)
        self._trace("QUERY", sql, bound)
        with self._lock:
            try:
                cursor = self._conn.execute(sql, bound)
                rows = cursor.fetchall()
            except sqlite3.Error as e:
                self._events.error(f"SQL error preparing query: {e}", _COMPONENT)
                raise PersistenceError(_operation(sql), str(e)) from e
            names = [d[0] for d in cursor.description or ()]
        if self._log_sql:
            self._events.debug(
                f"Query returned {len(rows)} row{'' if len(rows) == 1 else 's'}", _COMPONENT
            )
        return [dict(zip(names, row)) for row in rows]

    def query_one(self, sql: str, params: Sequence[Any] | None = None) -> dict[str, Any] | None:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def scalar(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        row = self.query_one(sql, params)
        if row is None:
            return None
        return next(iter(row.values()), None)

    @contextmanager
    def transaction(self) -> Iterator[Executor]:
        """Group statements atomically; nested calls become savepoints.

        The connection lock is held for the whole block so no other caller can
        interleave statements.
        """
        with self._lock:
            savepoint = f"sp_{self._depth}"
            try:
                if self._depth == 0:
                    self._conn.execute("BEGIN IMMEDIATE")
                else:
                    self._conn.execute(f"SAVEPOINT {savepoint}")
            except sqlite3.Error as e:
                raise PersistenceError("BEGIN", str(e)) from e
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                try:
                    if self._depth == 0:
                        self._conn.execute("ROLLBACK")
                    else:
                        self._conn.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
                        self._conn.execute(f"RELEASE SAVEPOINT {savepoint}")
                except sqlite3.Error as e:
                    self._events.error(f"Rollback failed: {e}", _COMPONENT)
                raise
            else:
                self._depth -= 1
                try:
                    if self._depth == 0:
                        self._conn.execute("COMMIT")
                    else:
                        self._conn.execute(f"RELEASE SAVEPOINT {savepoint}")
                except sqlite3.Error as e:
                    raise PersistenceError("COMMIT", str(e)) from e

    # --- Schema introspection ---

    def table_exists(self, name: str) -> bool:
        row = self.query_one(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        )
        return row is not None

    def table_columns(self, name: str) -> list[str]:
        """Column names of a table in declaration order (empty if the table is absent)."""
        rows = self.query(f"PRAGMA table_info({quote_identifier(name)})")
        return [str(r["name"]) for r in rows]

    def list_tables(self) -> list[str]:
        rows = self.query(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [str(r["name"]) for r in rows]

    def checkpoint(self) -> None:
        """Flush the WAL into the main database file so the file can be copied verbatim."""
        if self.db_path == ":memory:":
            return
        with self._lock:
            try:
                self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            except sqlite3.Error as e:
                raise PersistenceError("checkpoint", str(e)) from e

    def storage_info(self) -> dict[str, Any]:
        return {
            "backend": "sqlite",
            "db_path": self.db_path,
            "sqlite_version": sqlite3.sqlite_version,
        }
