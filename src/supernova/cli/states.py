"""nova state — manage the lifecycle states of a class."""

from __future__ import annotations

from typing import Optional

import typer

from supernova.cli._output import print_object, print_table
from supernova.cli._storage import open_db, resolve_class, resolve_state
from supernova.types import StateType

app = typer.Typer(no_args_is_help=True)


@app.command(name="add")
def state_add_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    name: str = typer.Argument(..., help="State name"),
    stype: StateType = typer.Option(StateType.INACTIVE, "--type", "-t", help="State type"),
    icon: Optional[str] = typer.Option(None, "--icon", help="Icon"),
    color: Optional[str] = typer.Option(None, "--color", help="Color"),
    order: Optional[int] = typer.Option(None, "--order", help="Position (default: last)"),
) -> None:
    """Add a state to a class."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        if order is None:
            order = len(db.catalog.get_states(c.id))
        state_id = db.catalog.create_state(c.id, name, stype, icon=icon, color=color, order=order)

    if state.json_output:
        print_object({"id": state_id, "name": name}, json_mode=True)
    else:
        print(f"Added state '{name}' ({stype.value}) to '{c.name}'")


@app.command(name="list")
def state_list_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
) -> None:
    """List states in order."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        rows = [
            [s.id, s.name, s.type.value, s.icon, s.color, s.order]
            for s in db.catalog.get_states(c.id)
        ]

    print_table(["id", "name", "type", "icon", "color", "order"], rows, json_mode=state.json_output)


@app.command(name="delete")
def state_delete_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    state_ref: str = typer.Argument(..., help="State id or name"),
) -> None:
    """Delete a state (refused for the last state of a class that has objects)."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        s = resolve_state(db, c, state_ref)
        db.catalog.delete_state(s.id)

    if state.json_output:
        print_object({"id": s.id, "deleted": True}, json_mode=True)
    else:
        print(f"Deleted state '{s.name}'")
