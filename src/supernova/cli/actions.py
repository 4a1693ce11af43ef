"""nova action — manage the state-gated actions of a class."""

from __future__ import annotations

from typing import Optional

import typer

from supernova.cli._output import print_object, print_table
from supernova.cli._storage import open_db, resolve_action, resolve_class, resolve_state
from supernova.types import TriggerType

app = typer.Typer(no_args_is_help=True)


@app.command(name="add")
def action_add_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    name: str = typer.Argument(..., help="Action name"),
    icon: Optional[str] = typer.Option(None, "--icon", help="Icon"),
    description: Optional[str] = typer.Option(None, "--description", help="Description"),
    trigger: TriggerType = typer.Option(TriggerType.MANUAL, "--trigger", help="Trigger type"),
    trigger_state: Optional[str] = typer.Option(
        None, "--trigger-state", help="State that triggers the action"
    ),
    allowed: Optional[list[str]] = typer.Option(
        None, "--allowed-state", "-a", help="State the action is allowed in (repeatable)"
    ),
    order: Optional[int] = typer.Option(None, "--order", help="Position (default: last)"),
) -> None:
    """Add an action; without --allowed-state it is available in every state."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        allowed_ids = [resolve_state(db, c, ref).id for ref in allowed or []]
        trigger_id = resolve_state(db, c, trigger_state).id if trigger_state else None
        if order is None:
            order = len(db.catalog.get_actions(c.id))
        action_id = db.catalog.create_action(
            c.id,
            name,
            icon=icon,
            description=description,
            trigger_type=trigger,
            order=order,
            trigger_state_id=trigger_id,
            allowed_state_ids=allowed_ids,
        )

    if state.json_output:
        print_object({"id": action_id, "name": name}, json_mode=True)
    else:
        print(f"Added action '{name}' to '{c.name}'")


@app.command(name="list")
def action_list_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
) -> None:
    """List actions in order with the states they are allowed in."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        names = {s.id: s.name for s in db.catalog.get_states(c.id)}
        rows = [
            [
                a.id,
                a.name,
                a.trigger_type.value,
                names.get(a.trigger_state_id or "", ""),
                ", ".join(sorted(names.get(i, i) for i in a.allowed_state_ids)) or "*",
            ]
            for a in db.catalog.get_actions(c.id)
        ]

    print_table(
        ["id", "name", "trigger", "trigger_state", "allowed_states"],
        rows,
        json_mode=state.json_output,
    )


@app.command(name="delete")
def action_delete_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    action_ref: str = typer.Argument(..., help="Action id or name"),
) -> None:
    """Delete an action and its allowed-state rows."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        a = resolve_action(db, c, action_ref)
        db.catalog.delete_action(a.id)

    if state.json_output:
        print_object({"id": a.id, "deleted": True}, json_mode=True)
    else:
        print(f"Deleted action '{a.name}'")
