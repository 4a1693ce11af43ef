"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from supernova import open_database
from supernova.cli import app
from tests.conftest import create_task_class, state_ids

if TYPE_CHECKING:
    from click.testing import Result


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_db(tmp_path):
    """Temp DB path passed to the CLI with --db."""
    return str(tmp_path / "cli_test.db")


@pytest.fixture
def seeded_db(cli_db):
    """A DB with a Task class and two objects."""
    with open_database(db_path=cli_db) as db:
        class_id = create_task_class(db.catalog)
        states = state_ids(db.catalog, class_id)
        db.objects.create_object(
            class_id, "Write docs", states["Active"], {"Owner": "Daniel", "Estimate": 3}
        )
        db.objects.create_object(
            class_id, "Fix bug", states["Inactive"], {"Owner": "Dana", "Budget": 19.99}
        )
    return cli_db


def invoke(runner: CliRunner, args: list[str], db_path: str | None = None) -> "Result":
    """Invoke CLI with proper state setup."""
    if db_path:
        # Inject --db before subcommand
        args = ["--db", db_path] + args
    result = runner.invoke(app, args, catch_exceptions=False)
    return result
