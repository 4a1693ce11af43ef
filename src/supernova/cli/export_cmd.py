"""nova export — copy the backing database file."""

from __future__ import annotations

import typer

from supernova.cli._output import print_object
from supernova.cli._storage import open_db


def export_cmd(
    output: str = typer.Option(..., "--output", "-o", help="Destination file or directory"),
) -> None:
    """Copy the store's backing file verbatim (after a WAL checkpoint)."""
    from supernova.cli import state

    with open_db() as db:
        written = db.export_to(output)

    if state.json_output:
        print_object({"output": written}, json_mode=True)
    else:
        print(f"Written to {written}")
