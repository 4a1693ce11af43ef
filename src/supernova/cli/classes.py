"""nova class — create, inspect, update, and delete entity classes."""

from __future__ import annotations

from typing import Any, Optional

import typer

from supernova.cli import _exitcodes as ec
from supernova.cli._output import print_error, print_object, print_table
from supernova.cli._storage import open_db, resolve_class
from supernova.types import PropertySpec, PropertyType, StateSpec, StateType

app = typer.Typer(no_args_is_help=True)


def _parse_property_spec(text: str) -> PropertySpec:
    """Parse ``NAME[:TYPE[:required]]``."""
    parts = text.split(":")
    name = parts[0]
    ptype = PropertyType.TEXT
    required = False
    if len(parts) > 1 and parts[1]:
        try:
            ptype = PropertyType(parts[1])
        except ValueError:
            choices = ", ".join(t.value for t in PropertyType)
            print_error(f"Unknown property type '{parts[1]}' (choose from {choices})")
            raise typer.Exit(ec.USAGE_ERROR)
    if len(parts) > 2:
        if parts[2] != "required":
            print_error(f"Invalid property flag '{parts[2]}' in '{text}'")
            raise typer.Exit(ec.USAGE_ERROR)
        required = True
    return PropertySpec(name=name, type=ptype, is_required=required)


def _parse_state_spec(text: str) -> StateSpec:
    """Parse ``NAME[:TYPE]``."""
    name, _, raw_type = text.partition(":")
    try:
        stype = StateType.parse(raw_type) if raw_type else StateType.INACTIVE
    except ValueError:
        print_error(f"Unknown state type '{raw_type}' (inactive, active, in_progress)")
        raise typer.Exit(ec.USAGE_ERROR)
    return StateSpec(name=name, type=stype)


@app.command(name="create")
def class_create_cmd(
    name: str = typer.Argument(..., help="Class name"),
    icon: Optional[str] = typer.Option(None, "--icon", help="Icon (emoji or short text)"),
    description: Optional[str] = typer.Option(None, "--description", help="Description"),
    state_opts: Optional[list[str]] = typer.Option(
        None, "--state", "-s", help="Initial state NAME[:TYPE] (repeatable, at least one)"
    ),
    property_opts: Optional[list[str]] = typer.Option(
        None, "--property", "-p", help="Initial property NAME[:TYPE[:required]] (repeatable)"
    ),
) -> None:
    """Create a class with its initial states and properties in one step."""
    from supernova.cli import state

    state_specs = [_parse_state_spec(s) for s in state_opts or []]
    property_specs = [_parse_property_spec(p) for p in property_opts or []]

    with open_db() as db:
        class_id = db.catalog.create_class_with_schema(
            name,
            icon=icon,
            description=description,
            states=state_specs,
            properties=property_specs,
        )

    if state.json_output:
        print_object({"id": class_id, "name": name.strip()}, json_mode=True)
    else:
        print(f"Created class '{name.strip()}' ({class_id})")


@app.command(name="list")
def class_list_cmd() -> None:
    """List classes ordered by name."""
    from supernova.cli import state

    with open_db() as db:
        rows: list[list[Any]] = []
        for c in db.catalog.get_all_classes():
            count = db.objects.count_objects(c.id) if db.tables.table_exists(c.id) else None
            rows.append(
                [c.id, c.name, c.icon, len(db.catalog.get_properties(c.id)), count]
            )

    if not rows and not state.json_output:
        print("No classes.")
        return
    print_table(["id", "name", "icon", "properties", "objects"], rows, json_mode=state.json_output)


@app.command(name="show")
def class_show_cmd(
    ref: str = typer.Argument(..., help="Class id or name"),
) -> None:
    """Show a class with its properties, states, and actions."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, ref)
        states = db.catalog.get_states(c.id)
        state_names = {s.id: s.name for s in states}
        data: dict[str, Any] = {
            "id": c.id,
            "name": c.name,
            "icon": c.icon,
            "description": c.description,
            "table": db.tables.table_name(c.id),
            "created_at": c.created_at.isoformat(),
            "updated_at": c.updated_at.isoformat(),
            "properties": [
                {
                    "id": p.id,
                    "name": p.name,
                    "type": p.type.value,
                    "required": p.is_required,
                    "order": p.order,
                    "reference_target_class_id": p.reference_target_class_id,
                }
                for p in db.catalog.get_properties(c.id)
            ],
            "states": [
                {"id": s.id, "name": s.name, "type": s.type.value, "order": s.order}
                for s in states
            ],
            "actions": [
                {
                    "id": a.id,
                    "name": a.name,
                    "trigger": a.trigger_type.value,
                    "allowed_states": sorted(state_names.get(i, i) for i in a.allowed_state_ids),
                }
                for a in db.catalog.get_actions(c.id)
            ],
        }

    if state.json_output:
        print_object(data, json_mode=True)
        return

    for key in ("id", "name", "icon", "description", "table", "created_at", "updated_at"):
        print(f"{key}: {data[key] if data[key] is not None else ''}")
    print("properties:")
    for p in data["properties"]:
        flag = " (required)" if p["required"] else ""
        print(f"  {p['name']}: {p['type']}{flag}")
    print("states:")
    for s in data["states"]:
        print(f"  {s['name']} [{s['type']}]")
    print("actions:")
    for a in data["actions"]:
        allowed = ", ".join(a["allowed_states"]) or "any state"
        print(f"  {a['name']} ({a['trigger']}; {allowed})")


@app.command(name="update")
def class_update_cmd(
    ref: str = typer.Argument(..., help="Class id or name"),
    name: Optional[str] = typer.Option(None, "--name", help="New name"),
    icon: Optional[str] = typer.Option(None, "--icon", help="New icon ('' clears it)"),
    description: Optional[str] = typer.Option(
        None, "--description", help="New description ('' clears it)"
    ),
) -> None:
    """Update class name, icon, or description."""
    from supernova.cli import state

    if name is None and icon is None and description is None:
        print_error("Nothing to update: pass --name, --icon or --description")
        raise typer.Exit(ec.USAGE_ERROR)

    with open_db() as db:
        c = resolve_class(db, ref)
        changed = db.catalog.update_class(c.id, name=name, icon=icon, description=description)

    if state.json_output:
        print_object({"id": c.id, "updated": changed}, json_mode=True)
    else:
        print(f"Updated class {c.id}")


@app.command(name="delete")
def class_delete_cmd(
    ref: str = typer.Argument(..., help="Class id or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a class, its metadata, and every object in it."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, ref)
        count = db.objects.count_objects(c.id) if db.tables.table_exists(c.id) else 0
        if not yes:
            typer.confirm(
                f"Delete class '{c.name}' and its {count} object(s)?", abort=True
            )
        db.catalog.delete_class(c.id)

    if state.json_output:
        print_object({"id": c.id, "deleted": True, "objects_removed": count}, json_mode=True)
    else:
        print(f"Deleted class '{c.name}' ({count} object(s) removed)")
