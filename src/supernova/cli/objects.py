"""nova object — create, query, and edit objects of a class."""

from __future__ import annotations

from typing import Any, Optional

import typer

from supernova.cli import _exitcodes as ec
from supernova.cli._output import print_error, print_object, print_table
from supernova.cli._storage import (
    open_db,
    parse_assignments,
    resolve_class,
    resolve_state,
)
from supernova.codec import format_for_display
from supernova.database import Database
from supernova.errors import ValidationError
from supernova.objects import decode_object
from supernova.types import EntityClass, EntityObject, Property, SearchMatchType
from supernova.validation import prepare_object_values

app = typer.Typer(no_args_is_help=True)


def _render(
    obj: EntityObject, state_names: dict[str, str], properties: list[Property]
) -> dict[str, Any]:
    """Flatten an object for output, with the state shown by name."""
    types = {p.name: p.type for p in properties}
    return {
        "id": obj.id,
        "name": obj.name,
        "icon": obj.icon,
        "state": state_names.get(obj.current_state_id, obj.current_state_id),
        "created_at": obj.created_at.isoformat() if obj.created_at else None,
        "updated_at": obj.updated_at.isoformat() if obj.updated_at else None,
        "values": {
            name: format_for_display(value, types.get(name)) if value is not None else None
            for name, value in obj.values.items()
        },
    }


def _schema(db: Database, entity_class: EntityClass) -> tuple[dict[str, str], list[Property]]:
    states = {s.id: s.name for s in db.catalog.get_states(entity_class.id)}
    return states, db.catalog.get_properties(entity_class.id)


def _fetch(db: Database, entity_class: EntityClass, object_id: str) -> EntityObject:
    row = db.objects.get_object(entity_class.id, object_id)
    if row is None:
        print_error(f"Object not found: {object_id}")
        raise typer.Exit(ec.NOT_FOUND)
    return decode_object(row, db.catalog.get_properties(entity_class.id))


def _print_objects(rows: list[dict[str, Any]], json_mode: bool) -> None:
    if json_mode:
        print_object(rows, json_mode=True)
        return
    if not rows:
        print("No objects.")
        return
    value_names: list[str] = []
    for r in rows:
        for name in r["values"]:
            if name not in value_names:
                value_names.append(name)
    headers = ["id", "name", "state"] + value_names
    table = [
        [r["id"], r["name"], r["state"]] + [r["values"].get(n) for n in value_names]
        for r in rows
    ]
    print_table(headers, table)


@app.command(name="create")
def object_create_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    name: str = typer.Argument(..., help="Object name"),
    state_ref: Optional[str] = typer.Option(
        None, "--state", "-s", help="State id or name (default: first state)"
    ),
    icon: Optional[str] = typer.Option(None, "--icon", help="Icon (default: the class icon)"),
    set_opts: Optional[list[str]] = typer.Option(
        None, "--set", help="Property value PROPERTY=VALUE (repeatable)"
    ),
) -> None:
    """Create an object after validating the form values."""
    from supernova.cli import state

    raw_values = parse_assignments(set_opts)
    with open_db() as db:
        c = resolve_class(db, class_ref)
        states = db.catalog.get_states(c.id)
        if state_ref is not None:
            state_id: str | None = resolve_state(db, c, state_ref).id
        else:
            state_id = states[0].id if states else None
        properties = db.catalog.get_properties(c.id)
        values = prepare_object_values(properties, states, name, state_id, raw_values)
        if state_id is None:
            raise ValidationError("A state must be selected")
        object_id = db.objects.create_object(
            c.id, name.strip(), state_id, values, icon=icon or c.icon
        )

    if state.json_output:
        print_object({"id": object_id, "name": name.strip()}, json_mode=True)
    else:
        print(f"Created object '{name.strip()}' ({object_id})")


@app.command(name="list")
def object_list_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    state_ref: Optional[str] = typer.Option(None, "--state", "-s", help="Only objects in state"),
    order_by: Optional[str] = typer.Option(None, "--order-by", help="Property or column name"),
    desc: bool = typer.Option(False, "--desc", help="Descending order"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum rows"),
    offset: Optional[int] = typer.Option(None, "--offset", help="Rows to skip"),
) -> None:
    """List objects of a class."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        where, params = None, None
        if state_ref is not None:
            where, params = "current_state_id = ?", [resolve_state(db, c, state_ref).id]
        state_names, properties = _schema(db, c)
        objects = db.objects.get_typed_objects(
            c.id,
            properties,
            where=where,
            params=params,
            order_by=order_by,
            descending=desc,
            limit=limit,
            offset=offset,
        )
        rows = [_render(o, state_names, properties) for o in objects]

    _print_objects(rows, state.json_output)


@app.command(name="get")
def object_get_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    object_id: str = typer.Argument(..., help="Object id"),
) -> None:
    """Show one object with its decoded property values."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        state_names, properties = _schema(db, c)
        data = _render(_fetch(db, c, object_id), state_names, properties)

    print_object(data, json_mode=state.json_output)


@app.command(name="update")
def object_update_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    object_id: str = typer.Argument(..., help="Object id"),
    name: Optional[str] = typer.Option(None, "--name", help="New name"),
    icon: Optional[str] = typer.Option(None, "--icon", help="New icon ('' clears it)"),
    set_opts: Optional[list[str]] = typer.Option(
        None, "--set", help="Property value PROPERTY=VALUE; empty VALUE clears it (repeatable)"
    ),
) -> None:
    """Update name, icon, or property values of an object."""
    from supernova.cli import state

    raw_values = parse_assignments(set_opts)
    if name is None and icon is None and not raw_values:
        print_error("Nothing to update: pass --name, --icon or --set")
        raise typer.Exit(ec.USAGE_ERROR)

    with open_db() as db:
        c = resolve_class(db, class_ref)
        current = _fetch(db, c, object_id)
        values = prepare_object_values(
            db.catalog.get_properties(c.id),
            db.catalog.get_states(c.id),
            name if name is not None else current.name,
            current.current_state_id,
            raw_values,
            for_update=True,
        )
        if name is not None:
            values["name"] = name.strip()
        if icon is not None:
            values["icon"] = icon or None
        db.objects.update_object(c.id, object_id, values)
        state_names, properties = _schema(db, c)
        data = _render(_fetch(db, c, object_id), state_names, properties)

    if state.json_output:
        print_object(data, json_mode=True)
    else:
        print(f"Updated object {object_id}")


@app.command(name="set-state")
def object_set_state_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    object_id: str = typer.Argument(..., help="Object id"),
    state_ref: str = typer.Argument(..., help="State id or name"),
) -> None:
    """Move an object to another state of its class."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        s = resolve_state(db, c, state_ref)
        if not db.objects.update_object_state(c.id, object_id, s.id):
            print_error(f"Object not found: {object_id}")
            raise typer.Exit(ec.NOT_FOUND)
        available = [a.name for a in db.catalog.get_available_actions(c.id, s.id)]

    if state.json_output:
        print_object(
            {"id": object_id, "state": s.name, "available_actions": available}, json_mode=True
        )
    else:
        print(f"Object {object_id} is now '{s.name}'")


@app.command(name="delete")
def object_delete_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    object_id: str = typer.Argument(..., help="Object id"),
) -> None:
    """Delete an object."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        if not db.objects.delete_object(c.id, object_id):
            print_error(f"Object not found: {object_id}")
            raise typer.Exit(ec.NOT_FOUND)

    if state.json_output:
        print_object({"id": object_id, "deleted": True}, json_mode=True)
    else:
        print(f"Deleted object {object_id}")


@app.command(name="search")
def object_search_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    property_name: str = typer.Argument(..., help="Property (or name/icon column) to search"),
    term: str = typer.Argument(..., help="Search term (% and _ act as wildcards)"),
    match: SearchMatchType = typer.Option(
        SearchMatchType.CONTAINS, "--match", "-m", help="Match type"
    ),
) -> None:
    """Search objects by one property."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        state_names, properties = _schema(db, c)
        found = db.objects.search_objects(c.id, property_name, term, match)
        rows = [_render(decode_object(r, properties), state_names, properties) for r in found]

    _print_objects(rows, state.json_output)


@app.command(name="count")
def object_count_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    state_ref: Optional[str] = typer.Option(None, "--state", "-s", help="Only objects in state"),
) -> None:
    """Count objects of a class."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        if state_ref is not None:
            s = resolve_state(db, c, state_ref)
            count = db.objects.count_objects(c.id, "current_state_id = ?", [s.id])
        else:
            count = db.objects.count_objects(c.id)

    if state.json_output:
        print_object({"class": c.name, "count": count}, json_mode=True)
    else:
        print(count)
