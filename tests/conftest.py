"""Shared test fixtures for SuperNOVA tests."""

from __future__ import annotations

import pytest

from supernova import open_database
from supernova.types import PropertySpec, PropertyType, StateSpec, StateType

TASK_STATES = [
    StateSpec(name="Inactive", type=StateType.INACTIVE),
    StateSpec(name="Active", type=StateType.ACTIVE),
    StateSpec(name="In Progress", type=StateType.IN_PROGRESS),
]

TASK_PROPERTIES = [
    PropertySpec(name="Owner", type=PropertyType.TEXT),
    PropertySpec(name="Estimate", type=PropertyType.NUMBER),
    PropertySpec(name="Budget", type=PropertyType.CURRENCY),
    PropertySpec(name="Due", type=PropertyType.DATE),
    PropertySpec(name="Attachments", type=PropertyType.FILES),
]


def create_task_class(catalog, name: str = "Task") -> str:
    """Create a Task-like class with three states and a handful of typed properties."""
    return catalog.create_class_with_schema(
        name,
        icon="✅",
        description="Things to do",
        states=TASK_STATES,
        properties=TASK_PROPERTIES,
    )


def state_ids(catalog, class_id: str) -> dict[str, str]:
    """Map state name -> state id."""
    return {s.name: s.id for s in catalog.get_states(class_id)}


# --- Fixtures ---


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary SQLite database path."""
    return str(tmp_path / "test.db")


@pytest.fixture
def db(tmp_db):
    """Open a migrated store on a temporary database."""
    d = open_database(db_path=tmp_db)
    yield d
    d.close()


@pytest.fixture
def executor(db):
    return db.executor


@pytest.fixture
def catalog(db):
    return db.catalog


@pytest.fixture
def objects(db):
    return db.objects


@pytest.fixture
def task_class(catalog):
    """Id of a freshly created Task class."""
    return create_task_class(catalog)


@pytest.fixture
def task_states(catalog, task_class):
    return state_ids(catalog, task_class)
