"""nova schema — schema export, drift checks, and soft-orphaned columns."""

from __future__ import annotations

import json
from typing import Any, Optional

import typer
import yaml

from supernova.cli import _exitcodes as ec
from supernova.cli._output import print_error, print_object
from supernova.cli._storage import open_db, resolve_class
from supernova.database import Database
from supernova.identifiers import sanitize_column_name

app = typer.Typer(no_args_is_help=True)


def _schema_data(db: Database) -> dict[str, Any]:
    """Catalog contents for every class, keyed by class name."""
    classes: dict[str, Any] = {}
    for c in db.catalog.get_all_classes():
        states = db.catalog.get_states(c.id)
        names = {s.id: s.name for s in states}
        classes[c.name] = {
            "id": c.id,
            "icon": c.icon,
            "description": c.description,
            "table": db.tables.table_name(c.id),
            "properties": [
                {
                    "name": p.name,
                    "column": sanitize_column_name(p.name),
                    "type": p.type.value,
                    "required": p.is_required,
                    "order": p.order,
                    "reference_target_class_id": p.reference_target_class_id,
                }
                for p in db.catalog.get_properties(c.id)
            ],
            "states": [
                {
                    "name": s.name,
                    "type": s.type.value,
                    "icon": s.icon,
                    "color": s.color,
                    "order": s.order,
                }
                for s in states
            ],
            "actions": [
                {
                    "name": a.name,
                    "trigger": a.trigger_type.value,
                    "trigger_state": names.get(a.trigger_state_id) if a.trigger_state_id else None,
                    "allowed_states": sorted(names.get(i, i) for i in a.allowed_state_ids),
                    "order": a.order,
                }
                for a in db.catalog.get_actions(c.id)
            ],
        }
    return {"classes": classes}


@app.command(name="export")
def schema_export_cmd(
    output: Optional[str] = typer.Option(None, "--output", help="Output file path"),
    fmt: str = typer.Option("json", "--format", help="Output format: json or yaml"),
) -> None:
    """Export every class with its properties, states, and actions."""
    if fmt not in ("json", "yaml"):
        print_error("--format must be 'json' or 'yaml'")
        raise typer.Exit(ec.USAGE_ERROR)

    with open_db() as db:
        data = _schema_data(db)

    _write_output(data, output, fmt)


@app.command(name="check")
def schema_check_cmd(
    class_ref: Optional[str] = typer.Argument(None, help="Only check this class"),
) -> None:
    """Compare catalog metadata with the physical tables; exits 1 on drift."""
    from supernova.cli import state

    with open_db(run_migrations=False) as db:
        if not db.executor.table_exists("entity_class"):
            problems = ["catalog relations are missing"]
        else:
            class_id = resolve_class(db, class_ref).id if class_ref else None
            problems = db.catalog.check_consistency(class_id)

    if state.json_output:
        print_object({"consistent": not problems, "problems": problems}, json_mode=True)
    elif not problems:
        print("Catalog and tables are consistent.")
    else:
        print(f"{len(problems)} problem(s):")
        for problem in problems:
            print(f"  {problem}")
        print("Run 'nova migrate' to repair.")
    if problems:
        raise typer.Exit(ec.GENERAL_ERROR)


@app.command(name="orphans")
def schema_orphans_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
) -> None:
    """List columns left behind by deleted properties."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        orphans = db.catalog.orphaned_columns(c.id)

    if state.json_output:
        print_object({"class": c.name, "orphaned_columns": orphans}, json_mode=True)
    elif not orphans:
        print(f"No soft-orphaned columns in '{c.name}'.")
    else:
        for column in orphans:
            print(column)


def _write_output(data: dict[str, Any], output: str | None, fmt: str) -> None:
    """Write schema data to file or stdout."""
    if fmt == "yaml":
        content = yaml.safe_dump(
            data, default_flow_style=False, sort_keys=False, allow_unicode=True
        )
    else:
        content = json.dumps(data, indent=2, default=str, ensure_ascii=False)

    if output:
        with open(output, "w") as f:
            f.write(content)
        print(f"Written to {output}")
    else:
        print(content)
