"""Nova CLI: operator console for inspecting and editing a SuperNOVA store."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from supernova.cli import (
    actions,
    classes,
    export_cmd,
    info,
    init_cmd,
    migrate,
    objects,
    properties,
    schema,
    states,
)

app = typer.Typer(
    name="nova",
    help="Nova CLI: operator console for SuperNOVA entity classes and objects.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    db: str | None = None
    config: str | None = None
    json_output: bool = False
    verbose: bool = False


state = _State()

_log_handler: logging.Handler | None = None


def _configure_logging(verbose: bool) -> None:
    """Route library log records to stderr with --verbose, otherwise drop them."""
    global _log_handler
    logger = logging.getLogger("supernova")
    if _log_handler is not None:
        logger.removeHandler(_log_handler)
    if verbose:
        _log_handler = logging.StreamHandler()
        _log_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.setLevel(logging.DEBUG)
    else:
        _log_handler = logging.NullHandler()
        logger.setLevel(logging.WARNING)
    logger.addHandler(_log_handler)


def _version_callback(value: bool) -> None:
    if value:
        try:
            from importlib.metadata import version

            v = version("supernova")
        except Exception:
            v = "unknown"
        print(f"nova {v}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(
        None,
        "--db",
        envvar="SUPERNOVA_DB",
        help="SQLite database file path (default: ~/.supernova/supernova.sqlite)",
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="SUPERNOVA_CONFIG",
        help="YAML config file path",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log operations to stderr"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all nova commands."""
    state.db = db
    state.config = config
    state.json_output = json_output
    state.verbose = verbose
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


# Register subcommand groups
app.add_typer(classes.app, name="class", help="Manage entity classes")
app.add_typer(properties.app, name="property", help="Manage class properties")
app.add_typer(states.app, name="state", help="Manage class states")
app.add_typer(actions.app, name="action", help="Manage class actions")
app.add_typer(objects.app, name="object", help="Create, query, and edit objects")
app.add_typer(schema.app, name="schema", help="Schema export and consistency checks")

# Register top-level commands
app.command(name="init")(init_cmd.init_cmd)
app.command(name="info")(info.info_cmd)
app.command(name="migrate")(migrate.migrate_cmd)
app.command(name="export")(export_cmd.export_cmd)


def main() -> None:
    """Entry point for the nova CLI."""
    app()
