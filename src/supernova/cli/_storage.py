"""CLI helpers for opening the store and resolving class/state/property references."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from supernova.cli import _exitcodes as ec
from supernova.cli._output import print_error
from supernova.config import SupernovaConfig, load_config
from supernova.database import Database, open_database
from supernova.errors import ConfigError, SupernovaError
from supernova.types import Action, EntityClass, Property, State


def resolve_config() -> SupernovaConfig:
    """Build the runtime config from CLI state (``--config`` file, then ``--db``)."""
    from supernova.cli import state

    if state.config:
        return load_config(state.config, db_path=state.db)
    return SupernovaConfig.from_env(db_path=state.db)


@contextmanager
def open_db(*, run_migrations: bool = True) -> Iterator[Database]:
    """Open the store for one command and map library errors to exit codes."""
    try:
        config = resolve_config()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)
    try:
        db = open_database(config, run_migrations=run_migrations)
    except SupernovaError as e:
        print_error(f"Cannot open database: {e}")
        raise typer.Exit(ec.DATABASE_ERROR)

    try:
        yield db
    except SupernovaError as e:
        print_error(str(e))
        raise typer.Exit(ec.for_error(e))
    finally:
        db.close()


def resolve_class(db: Database, ref: str) -> EntityClass:
    """Find a class by id, then by exact name."""
    entity_class = db.catalog.get_class(ref) or db.catalog.find_class_by_name(ref)
    if entity_class is None:
        print_error(f"Class not found: {ref}")
        raise typer.Exit(ec.NOT_FOUND)
    return entity_class


def resolve_state(db: Database, entity_class: EntityClass, ref: str) -> State:
    for s in db.catalog.get_states(entity_class.id):
        if ref in (s.id, s.name):
            return s
    print_error(f"State not found in class '{entity_class.name}': {ref}")
    raise typer.Exit(ec.NOT_FOUND)


def resolve_property(db: Database, entity_class: EntityClass, ref: str) -> Property:
    for p in db.catalog.get_properties(entity_class.id):
        if ref in (p.id, p.name):
            return p
    print_error(f"Property not found in class '{entity_class.name}': {ref}")
    raise typer.Exit(ec.NOT_FOUND)


def resolve_action(db: Database, entity_class: EntityClass, ref: str) -> Action:
    for a in db.catalog.get_actions(entity_class.id):
        if ref in (a.id, a.name):
            return a
    print_error(f"Action not found in class '{entity_class.name}': {ref}")
    raise typer.Exit(ec.NOT_FOUND)


def parse_assignments(pairs: list[str] | None) -> dict[str, str]:
    """Parse repeated KEY=VALUE options."""
    if not pairs:
        return {}
    result: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            print_error(f"Invalid assignment '{pair}', expected KEY=VALUE")
            raise typer.Exit(ec.USAGE_ERROR)
        key, value = pair.split("=", 1)
        result[key.strip()] = value
    return result
