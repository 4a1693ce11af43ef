"""nova property — manage the typed properties of a class."""

from __future__ import annotations

from typing import Optional

import typer

from supernova.cli import _exitcodes as ec
from supernova.cli._output import print_error, print_object, print_table
from supernova.cli._storage import open_db, resolve_class, resolve_property
from supernova.identifiers import sanitize_column_name
from supernova.types import PropertyType

app = typer.Typer(no_args_is_help=True)


@app.command(name="add")
def property_add_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    name: str = typer.Argument(..., help="Property name"),
    ptype: PropertyType = typer.Option(PropertyType.TEXT, "--type", "-t", help="Property type"),
    required: bool = typer.Option(False, "--required", help="Require a value on object forms"),
    order: Optional[int] = typer.Option(None, "--order", help="Position (default: last)"),
    target: Optional[str] = typer.Option(
        None, "--target", help="Referenced class id or name (reference types)"
    ),
) -> None:
    """Add a property and its column."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        target_id = resolve_class(db, target).id if target else None
        if target_id and not ptype.is_reference:
            print_error("--target only applies to reference property types")
            raise typer.Exit(ec.USAGE_ERROR)
        if order is None:
            order = len(db.catalog.get_properties(c.id))
        property_id = db.catalog.create_property(
            c.id,
            name,
            ptype,
            is_required=required,
            order=order,
            reference_target_class_id=target_id,
        )

    if state.json_output:
        print_object(
            {"id": property_id, "name": name, "column": sanitize_column_name(name)},
            json_mode=True,
        )
    else:
        print(f"Added property '{name}' ({ptype.value}) as column {sanitize_column_name(name)}")


@app.command(name="list")
def property_list_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
) -> None:
    """List properties in order."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        rows = [
            [p.id, p.name, p.type.value, sanitize_column_name(p.name), p.is_required, p.order]
            for p in db.catalog.get_properties(c.id)
        ]

    if not rows and not state.json_output:
        print(f"Class '{c.name}' has no properties.")
        return
    print_table(
        ["id", "name", "type", "column", "required", "order"], rows, json_mode=state.json_output
    )


@app.command(name="update")
def property_update_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    prop_ref: str = typer.Argument(..., help="Property id or name"),
    name: Optional[str] = typer.Option(None, "--name", help="New name (renames the column)"),
    ptype: Optional[PropertyType] = typer.Option(None, "--type", "-t", help="New type"),
    required: Optional[bool] = typer.Option(
        None, "--required/--optional", help="Change whether a value is required"
    ),
) -> None:
    """Rename a property or change its type or requiredness."""
    from supernova.cli import state

    if name is None and ptype is None and required is None:
        print_error("Nothing to update: pass --name, --type or --required/--optional")
        raise typer.Exit(ec.USAGE_ERROR)

    with open_db() as db:
        c = resolve_class(db, class_ref)
        p = resolve_property(db, c, prop_ref)
        db.catalog.update_property(p.id, name=name, type=ptype, is_required=required)
        updated = db.catalog.get_property(p.id)

    assert updated is not None
    if state.json_output:
        print_object(
            {
                "id": updated.id,
                "name": updated.name,
                "type": updated.type.value,
                "required": updated.is_required,
                "column": sanitize_column_name(updated.name),
            },
            json_mode=True,
        )
    else:
        print(f"Updated property '{updated.name}' ({updated.type.value})")


@app.command(name="reorder")
def property_reorder_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    props: list[str] = typer.Argument(..., help="Property ids or names in the new order"),
) -> None:
    """Set property order; unlisted properties follow in their current order."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        listed = [resolve_property(db, c, ref).id for ref in props]
        rest = [p.id for p in db.catalog.get_properties(c.id) if p.id not in listed]
        db.catalog.reorder_properties(c.id, listed + rest)
        names = [p.name for p in db.catalog.get_properties(c.id)]

    if state.json_output:
        print_object({"order": names}, json_mode=True)
    else:
        print("New order: " + ", ".join(names))


@app.command(name="delete")
def property_delete_cmd(
    class_ref: str = typer.Argument(..., help="Class id or name"),
    prop_ref: str = typer.Argument(..., help="Property id or name"),
) -> None:
    """Delete a property; its column is kept as a soft-orphaned column."""
    from supernova.cli import state

    with open_db() as db:
        c = resolve_class(db, class_ref)
        p = resolve_property(db, c, prop_ref)
        db.catalog.delete_property(p.id)

    column = sanitize_column_name(p.name)
    if state.json_output:
        print_object({"id": p.id, "deleted": True, "orphaned_column": column}, json_mode=True)
    else:
        print(f"Deleted property '{p.name}'; column {column} kept with its data")
