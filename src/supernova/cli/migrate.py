"""nova migrate — plan and apply startup schema corrections."""

from __future__ import annotations

from typing import Any

import typer

from supernova.cli._output import print_object
from supernova.cli._storage import open_db


def migrate_cmd(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show pending steps only"),
) -> None:
    """Apply pending schema corrections (metadata relations, retrofit columns, drift)."""
    from supernova.cli import state

    json_mode = state.json_output

    with open_db(run_migrations=False) as db:
        if dry_run:
            preview = db.migrations.plan()
            if json_mode:
                print_object(
                    {"has_changes": preview.has_changes, "pending": preview.pending},
                    json_mode=True,
                )
            elif not preview.has_changes:
                print("No pending migrations.")
            else:
                print("Pending migrations:")
                for step, items in preview.pending.items():
                    print(f"  {step}:")
                    for item in items:
                        print(f"    {item}")
            return

        result = db.migrate()

    data: dict[str, Any] = {
        "has_changes": result.has_changes,
        "applied": result.applied,
        "details": result.details,
        "duration_s": round(result.duration_s, 4),
    }
    if json_mode:
        print_object(data, json_mode=True)
    elif not result.has_changes:
        print("Schema is up to date.")
    else:
        print(f"Applied {len(result.applied)} migration(s):")
        for step in result.applied:
            print(f"  {step}")
