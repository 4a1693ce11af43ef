"""Tests for nova class, property, state and action commands."""

import json

from supernova.cli import app
from tests.cli.conftest import invoke


def _class_json(runner, db, ref="Task"):
    result = invoke(runner, ["--json", "class", "show", ref], db)
    assert result.exit_code == 0
    return json.loads(result.output)


# --- class ---


def test_class_create(runner, cli_db):
    result = invoke(
        runner,
        [
            "class",
            "create",
            "Project",
            "--icon",
            "📁",
            "--state",
            "Planned",
            "--state",
            "Running:in_progress",
            "--property",
            "Lead:text:required",
            "--property",
            "Budget:currency",
        ],
        cli_db,
    )
    assert result.exit_code == 0
    assert "Created class 'Project'" in result.output

    data = _class_json(runner, cli_db, "Project")
    assert data["icon"] == "📁"
    assert [(s["name"], s["type"]) for s in data["states"]] == [
        ("Planned", "inactive"),
        ("Running", "in_progress"),
    ]
    assert [(p["name"], p["type"], p["required"]) for p in data["properties"]] == [
        ("Lead", "text", True),
        ("Budget", "currency", False),
    ]


def test_class_create_accepts_camel_case_state_type(runner, cli_db):
    result = invoke(runner, ["class", "create", "Bug", "-s", "Triage:inProgress"], cli_db)
    assert result.exit_code == 0
    assert _class_json(runner, cli_db, "Bug")["states"][0]["type"] == "in_progress"


def test_class_create_without_states(runner, cli_db):
    result = invoke(runner, ["class", "create", "Empty"], cli_db)
    assert result.exit_code == 5
    assert "at least one state" in result.output


def test_class_create_unknown_property_type(runner, cli_db):
    result = invoke(runner, ["class", "create", "X", "-s", "Open", "-p", "Size:huge"], cli_db)
    assert result.exit_code == 2


def test_class_create_colliding_properties(runner, cli_db):
    result = invoke(
        runner, ["class", "create", "X", "-s", "Open", "-p", "Owner", "-p", "owner!"], cli_db
    )
    assert result.exit_code == 5
    result = invoke(runner, ["--json", "class", "list"], cli_db)
    assert json.loads(result.output) == []


def test_class_list(runner, seeded_db):
    result = invoke(runner, ["class", "list"], seeded_db)
    assert result.exit_code == 0
    assert "Task" in result.output

    result = invoke(runner, ["--json", "class", "list"], seeded_db)
    rows = json.loads(result.output)
    assert len(rows) == 1
    assert rows[0]["name"] == "Task"
    assert rows[0]["properties"] == 5
    assert rows[0]["objects"] == 2


def test_class_list_empty(runner, cli_db):
    result = invoke(runner, ["class", "list"], cli_db)
    assert result.exit_code == 0
    assert "No classes." in result.output


def test_class_show(runner, seeded_db):
    result = invoke(runner, ["class", "show", "Task"], seeded_db)
    assert result.exit_code == 0
    assert "name: Task" in result.output
    assert "Owner: text" in result.output
    assert "In Progress [in_progress]" in result.output


def test_class_show_by_id(runner, seeded_db):
    class_id = _class_json(runner, seeded_db)["id"]
    assert _class_json(runner, seeded_db, class_id)["name"] == "Task"


def test_class_show_missing(runner, seeded_db):
    result = invoke(runner, ["class", "show", "Nope"], seeded_db)
    assert result.exit_code == 4
    assert "Class not found: Nope" in result.output


def test_class_update(runner, seeded_db):
    result = invoke(
        runner, ["class", "update", "Task", "--name", "Todo", "--description", ""], seeded_db
    )
    assert result.exit_code == 0
    data = _class_json(runner, seeded_db, "Todo")
    assert data["description"] is None


def test_class_update_nothing(runner, seeded_db):
    result = invoke(runner, ["class", "update", "Task"], seeded_db)
    assert result.exit_code == 2


def test_class_delete(runner, seeded_db):
    result = invoke(runner, ["class", "delete", "Task", "--yes"], seeded_db)
    assert result.exit_code == 0
    assert "2 object(s) removed" in result.output
    result = invoke(runner, ["object", "list", "Task"], seeded_db)
    assert result.exit_code == 4


def test_class_delete_aborted(runner, seeded_db):
    result = runner.invoke(
        app,
        ["--db", seeded_db, "class", "delete", "Task"],
        input="n\n",
    )
    assert result.exit_code == 1
    assert _class_json(runner, seeded_db)["name"] == "Task"


# --- property ---


def test_property_add_and_list(runner, seeded_db):
    result = invoke(
        runner, ["property", "add", "Task", "Full Name!", "--type", "longText"], seeded_db
    )
    assert result.exit_code == 0
    assert "as column full_name" in result.output

    result = invoke(runner, ["--json", "property", "list", "Task"], seeded_db)
    rows = json.loads(result.output)
    assert rows[-1]["name"] == "Full Name!"
    assert rows[-1]["type"] == "longText"
    assert rows[-1]["order"] == 5


def test_property_add_collision(runner, seeded_db):
    result = invoke(runner, ["property", "add", "Task", "OWNER"], seeded_db)
    assert result.exit_code == 5
    assert "owner" in result.output


def test_property_add_fixed_column(runner, seeded_db):
    result = invoke(runner, ["property", "add", "Task", "Created At"], seeded_db)
    assert result.exit_code == 5


def test_property_reference_target(runner, seeded_db):
    invoke(runner, ["class", "create", "Person", "-s", "Active"], seeded_db)
    result = invoke(
        runner,
        ["property", "add", "Task", "Assignee", "-t", "referenceUnique", "--target", "Person"],
        seeded_db,
    )
    assert result.exit_code == 0
    person_id = _class_json(runner, seeded_db, "Person")["id"]
    props = {p["name"]: p for p in _class_json(runner, seeded_db)["properties"]}
    assert props["Assignee"]["reference_target_class_id"] == person_id


def test_property_target_requires_reference_type(runner, seeded_db):
    result = invoke(runner, ["property", "add", "Task", "Other", "--target", "Task"], seeded_db)
    assert result.exit_code == 2


def test_property_rename_keeps_values(runner, seeded_db):
    result = invoke(
        runner, ["property", "update", "Task", "Owner", "--name", "Assignee"], seeded_db
    )
    assert result.exit_code == 0
    result = invoke(runner, ["--json", "object", "search", "Task", "Assignee", "Dan"], seeded_db)
    owners = sorted(o["values"]["Assignee"] for o in json.loads(result.output))
    assert owners == ["Dana", "Daniel"]


def test_property_update_required(runner, seeded_db):
    result = invoke(
        runner, ["--json", "property", "update", "Task", "Due", "--required"], seeded_db
    )
    assert result.exit_code == 0
    assert json.loads(result.output)["required"] is True


def test_property_reorder(runner, seeded_db):
    result = invoke(runner, ["property", "reorder", "Task", "Due", "Owner"], seeded_db)
    assert result.exit_code == 0
    assert "New order: Due, Owner, Estimate, Budget, Attachments" in result.output


def test_property_delete_keeps_column(runner, seeded_db):
    result = invoke(runner, ["property", "delete", "Task", "Owner"], seeded_db)
    assert result.exit_code == 0
    assert "column owner kept" in result.output

    result = invoke(runner, ["schema", "orphans", "Task"], seeded_db)
    assert result.output.split() == ["owner"]


def test_property_missing(runner, seeded_db):
    result = invoke(runner, ["property", "delete", "Task", "Nope"], seeded_db)
    assert result.exit_code == 4


# --- state ---


def test_state_add_and_list(runner, seeded_db):
    result = invoke(
        runner, ["state", "add", "Task", "Done", "--type", "active", "--color", "green"], seeded_db
    )
    assert result.exit_code == 0

    result = invoke(runner, ["--json", "state", "list", "Task"], seeded_db)
    rows = json.loads(result.output)
    assert [r["name"] for r in rows] == ["Inactive", "Active", "In Progress", "Done"]
    assert rows[-1]["color"] == "green"
    assert rows[-1]["order"] == 3


def test_state_delete(runner, seeded_db):
    result = invoke(runner, ["state", "delete", "Task", "In Progress"], seeded_db)
    assert result.exit_code == 0
    result = invoke(runner, ["--json", "state", "list", "Task"], seeded_db)
    assert len(json.loads(result.output)) == 2


def test_last_state_with_objects_is_kept(runner, seeded_db):
    invoke(runner, ["state", "delete", "Task", "Inactive"], seeded_db)
    invoke(runner, ["state", "delete", "Task", "In Progress"], seeded_db)
    result = invoke(runner, ["state", "delete", "Task", "Active"], seeded_db)
    assert result.exit_code == 5


# --- action ---


def test_action_add_and_list(runner, seeded_db):
    result = invoke(
        runner,
        ["action", "add", "Task", "Start", "-a", "Inactive", "-a", "Active"],
        seeded_db,
    )
    assert result.exit_code == 0
    invoke(runner, ["action", "add", "Task", "Comment"], seeded_db)

    result = invoke(runner, ["--json", "action", "list", "Task"], seeded_db)
    rows = json.loads(result.output)
    assert [r["name"] for r in rows] == ["Start", "Comment"]
    assert rows[0]["allowed_states"] == "Active, Inactive"
    assert rows[1]["allowed_states"] == "*"


def test_action_unknown_state(runner, seeded_db):
    result = invoke(runner, ["action", "add", "Task", "Start", "-a", "Nope"], seeded_db)
    assert result.exit_code == 4


def test_action_delete(runner, seeded_db):
    invoke(runner, ["action", "add", "Task", "Start"], seeded_db)
    result = invoke(runner, ["action", "delete", "Task", "Start"], seeded_db)
    assert result.exit_code == 0
    result = invoke(runner, ["--json", "action", "list", "Task"], seeded_db)
    assert json.loads(result.output) == []
