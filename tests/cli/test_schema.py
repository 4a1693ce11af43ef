"""Tests for nova schema commands."""

import json
import sqlite3

import yaml

from tests.cli.conftest import invoke


def test_export_json(runner, seeded_db):
    result = invoke(runner, ["schema", "export"], seeded_db)
    assert result.exit_code == 0
    data = json.loads(result.output)
    task = data["classes"]["Task"]
    assert task["table"].startswith("entity_")
    assert [p["column"] for p in task["properties"]] == [
        "owner",
        "estimate",
        "budget",
        "due",
        "attachments",
    ]
    assert [s["type"] for s in task["states"]] == ["inactive", "active", "in_progress"]


def test_export_yaml_to_file(runner, seeded_db, tmp_path):
    out = tmp_path / "schema.yaml"
    invoke(runner, ["action", "add", "Task", "Start", "-a", "Inactive"], seeded_db)
    result = invoke(
        runner, ["schema", "export", "--format", "yaml", "--output", str(out)], seeded_db
    )
    assert result.exit_code == 0
    assert f"Written to {out}" in result.output

    data = yaml.safe_load(out.read_text())
    actions = data["classes"]["Task"]["actions"]
    assert actions[0]["name"] == "Start"
    assert actions[0]["allowed_states"] == ["Inactive"]


def test_export_bad_format(runner, seeded_db):
    result = invoke(runner, ["schema", "export", "--format", "xml"], seeded_db)
    assert result.exit_code == 2


def test_check_consistent(runner, seeded_db):
    result = invoke(runner, ["schema", "check"], seeded_db)
    assert result.exit_code == 0
    assert "consistent" in result.output


def test_check_reports_drift(runner, seeded_db):
    conn = sqlite3.connect(seeded_db)
    try:
        (class_id,) = conn.execute("SELECT id FROM entity_class").fetchone()
        conn.execute(f'DROP TABLE "entity_{class_id.replace("-", "_")}"')
        conn.commit()
    finally:
        conn.close()

    result = invoke(runner, ["--json", "schema", "check", "Task"], seeded_db)
    assert result.exit_code == 1
    data = json.loads(result.output)
    assert data["consistent"] is False
    assert "missing table" in data["problems"][0]

    invoke(runner, ["migrate"], seeded_db)
    result = invoke(runner, ["schema", "check"], seeded_db)
    assert result.exit_code == 0


def test_check_fresh_database(runner, cli_db):
    result = invoke(runner, ["schema", "check"], cli_db)
    assert result.exit_code == 1
    assert "catalog relations are missing" in result.output


def test_orphans(runner, seeded_db):
    result = invoke(runner, ["schema", "orphans", "Task"], seeded_db)
    assert result.exit_code == 0
    assert "No soft-orphaned columns" in result.output

    invoke(runner, ["property", "delete", "Task", "Budget"], seeded_db)
    result = invoke(runner, ["--json", "schema", "orphans", "Task"], seeded_db)
    assert json.loads(result.output)["orphaned_columns"] == ["budget"]
