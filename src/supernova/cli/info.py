"""nova info — show store status and high-level metadata."""

from __future__ import annotations

import os
from typing import Any

import typer

from supernova.cli import _exitcodes as ec
from supernova.cli._output import print_error, print_object
from supernova.cli._storage import open_db, resolve_config


def info_cmd(
    stats: bool = typer.Option(False, "--stats", help="Show object counts per class"),
) -> None:
    """Show store status and high-level metadata."""
    from supernova.cli import state

    json_mode = state.json_output
    db_path = resolve_config().db_path
    if db_path != ":memory:" and not os.path.exists(db_path):
        print_error(f"Database not found: {db_path}")
        raise typer.Exit(ec.DATABASE_ERROR)

    with open_db() as db:
        storage = db.stats()
        data: dict[str, Any] = {
            "db_path": storage["db_path"],
            "sqlite_version": storage["sqlite_version"],
            "file_size_bytes": storage.get("file_size"),
            "classes": storage["classes"],
            "objects": storage["objects"],
        }
        if stats:
            data["object_counts"] = storage["objects_per_class"]

    if json_mode:
        print_object(data, json_mode=True)
        return

    print(f"Database: {data['db_path']}")
    print(f"SQLite: {data['sqlite_version']}")
    if data["file_size_bytes"] is not None:
        print(f"File size: {data['file_size_bytes']} bytes")
    print(f"Classes: {data['classes']}")
    print(f"Objects: {data['objects']}")
    if stats:
        print("Objects per class:")
        for name, count in data["object_counts"].items():
            print(f"  {name}: {count}")
