"""nova init — create the store and its metadata relations."""

from __future__ import annotations

from supernova.cli._output import print_object
from supernova.cli._storage import open_db


def init_cmd() -> None:
    """Create the database file (if needed) and bring its schema up to date."""
    from supernova.cli import state

    with open_db() as db:
        result = db.last_migration
        data = {
            "db_path": db.db_path,
            "status": "initialized",
            "applied": result.applied if result else [],
        }
    if state.json_output:
        print_object(data, json_mode=True)
    else:
        print(f"Initialized: {data['db_path']}")
        for step in data["applied"]:
            print(f"  applied {step}")
