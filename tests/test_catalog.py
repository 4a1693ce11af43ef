"""Tests for the schema catalog: classes, properties, states, actions."""

from __future__ import annotations

import pytest

from supernova.errors import (
    ClassNotFoundError,
    ConsistencyError,
    PersistenceError,
    PropertyNameCollisionError,
    ValidationError,
)
from supernova.logs import LogSeverity
from supernova.types import PropertySpec, PropertyType, StateSpec, StateType, TriggerType
from tests.conftest import create_task_class


class TestClasses:
    def test_create_and_get(self, catalog):
        cid = catalog.create_class("Project", icon="📁", description="Work")
        c = catalog.get_class(cid)
        assert c is not None
        assert c.name == "Project"
        assert c.icon == "📁"
        assert c.description == "Work"
        assert c.created_at == c.updated_at
        assert catalog.tables.table_exists(cid)

    def test_name_is_stripped(self, catalog):
        cid = catalog.create_class("  Project  ")
        assert catalog.get_class(cid).name == "Project"

    def test_empty_name_rejected(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create_class("   ")
        assert catalog.get_all_classes() == []

    def test_empty_icon_stored_as_null(self, catalog):
        cid = catalog.create_class("Project", icon="", description="")
        c = catalog.get_class(cid)
        assert c.icon is None
        assert c.description is None

    def test_get_missing(self, catalog):
        assert catalog.get_class("nope") is None
        with pytest.raises(ClassNotFoundError):
            catalog.require_class("nope")

    def test_all_ordered_by_name(self, catalog):
        for name in ["Zeta", "Alpha", "Mu"]:
            catalog.create_class(name)
        assert [c.name for c in catalog.get_all_classes()] == ["Alpha", "Mu", "Zeta"]

    def test_find_by_name(self, catalog):
        cid = catalog.create_class("Project")
        assert catalog.find_class_by_name("Project").id == cid
        assert catalog.find_class_by_name("project") is None

    def test_update(self, catalog):
        cid = catalog.create_class("Project", icon="📁")
        assert catalog.update_class(cid, name="Projects", description="All")
        c = catalog.get_class(cid)
        assert c.name == "Projects"
        assert c.icon == "📁"
        assert c.description == "All"
        assert c.updated_at >= c.created_at

    def test_update_clears_icon(self, catalog):
        cid = catalog.create_class("Project", icon="📁")
        catalog.update_class(cid, icon="")
        assert catalog.get_class(cid).icon is None

    def test_update_nothing(self, catalog):
        cid = catalog.create_class("Project")
        assert catalog.update_class(cid) is False

    def test_update_missing(self, catalog):
        assert catalog.update_class("nope", name="X") is False

    def test_delete_cascades(self, catalog, executor, task_class):
        state = catalog.get_states(task_class)[0]
        catalog.create_action(task_class, "Start", allowed_state_ids=[state.id])
        assert catalog.delete_class(task_class)
        assert catalog.get_class(task_class) is None
        for table in ("property", "state", "action"):
            assert (
                executor.scalar(
                    f"SELECT COUNT(*) FROM {table} WHERE entity_class_id = ?", [task_class]
                )
                == 0
            )
        assert executor.scalar("SELECT COUNT(*) FROM action_allowed_state") == 0
        assert not catalog.tables.table_exists(task_class)

    def test_delete_missing(self, catalog):
        assert catalog.delete_class("nope") is False


class TestCreateClassWithSchema:
    def test_creates_states_and_properties_in_order(self, catalog, task_class):
        states = catalog.get_states(task_class)
        assert [s.name for s in states] == ["Inactive", "Active", "In Progress"]
        assert [s.type for s in states] == [
            StateType.INACTIVE,
            StateType.ACTIVE,
            StateType.IN_PROGRESS,
        ]
        props = catalog.get_properties(task_class)
        assert [p.name for p in props] == ["Owner", "Estimate", "Budget", "Due", "Attachments"]
        assert [p.order for p in props] == [0, 1, 2, 3, 4]
        assert catalog.tables.custom_columns(task_class) == [
            "owner",
            "estimate",
            "budget",
            "due",
            "attachments",
        ]

    def test_requires_a_state(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create_class_with_schema("Task", states=[])

    def test_requires_state_names(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create_class_with_schema("Task", states=[StateSpec(name=" ")])

    def test_failure_rolls_back_everything(self, catalog, executor):
        with pytest.raises(PropertyNameCollisionError):
            catalog.create_class_with_schema(
                "Task",
                states=[StateSpec(name="Open")],
                properties=[PropertySpec(name="Owner"), PropertySpec(name="owner!")],
            )
        assert catalog.get_all_classes() == []
        assert executor.scalar("SELECT COUNT(*) FROM state") == 0
        assert executor.scalar("SELECT COUNT(*) FROM property") == 0
        object_tables = [
            t for t in executor.list_tables() if t.startswith("entity_") and t != "entity_class"
        ]
        assert object_tables == []


class TestProperties:
    def test_create_adds_column(self, catalog):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Due Date", PropertyType.DATE, is_required=True)
        p = catalog.get_property(pid)
        assert p.name == "Due Date"
        assert p.type is PropertyType.DATE
        assert p.is_required
        assert "due_date" in catalog.tables.columns(cid)

    def test_unknown_class(self, catalog):
        with pytest.raises(ClassNotFoundError):
            catalog.create_property("nope", "Owner")

    def test_missing_table_rolls_back_metadata(self, catalog, executor):
        cid = catalog.create_class("Project")
        catalog.tables.drop_table(cid)
        with pytest.raises(ClassNotFoundError):
            catalog.create_property(cid, "Owner")
        assert catalog.get_properties(cid) == []

    def test_collision_rejected(self, catalog):
        cid = catalog.create_class("Project")
        catalog.create_property(cid, "Owner!")
        with pytest.raises(PropertyNameCollisionError) as exc_info:
            catalog.create_property(cid, "owner?")
        assert exc_info.value.column == "owner"
        assert len(catalog.get_properties(cid)) == 1

    def test_fixed_column_rejected(self, catalog):
        cid = catalog.create_class("Project")
        with pytest.raises(PropertyNameCollisionError):
            catalog.create_property(cid, "Name")
        with pytest.raises(PropertyNameCollisionError):
            catalog.create_property(cid, "Created At")

    def test_unusable_name_rejected(self, catalog):
        cid = catalog.create_class("Project")
        with pytest.raises(PropertyNameCollisionError):
            catalog.create_property(cid, "€€€")

    def test_empty_name_rejected(self, catalog):
        cid = catalog.create_class("Project")
        with pytest.raises(ValidationError):
            catalog.create_property(cid, "")

    def test_same_name_in_other_class_allowed(self, catalog):
        a = catalog.create_class("A")
        b = catalog.create_class("B")
        catalog.create_property(a, "Owner")
        catalog.create_property(b, "Owner")
        assert "owner" in catalog.tables.columns(b)

    def test_ordered_by_order(self, catalog):
        cid = catalog.create_class("Project")
        catalog.create_property(cid, "C", order=2)
        catalog.create_property(cid, "A", order=0)
        catalog.create_property(cid, "B", order=1)
        assert [p.name for p in catalog.get_properties(cid)] == ["A", "B", "C"]

    def test_update_order(self, catalog):
        cid = catalog.create_class("Project")
        a = catalog.create_property(cid, "A", order=0)
        catalog.create_property(cid, "B", order=1)
        assert catalog.update_property_order(a, 5)
        assert [p.name for p in catalog.get_properties(cid)] == ["B", "A"]

    def test_reorder(self, catalog):
        cid = catalog.create_class("Project")
        a = catalog.create_property(cid, "A")
        b = catalog.create_property(cid, "B")
        c = catalog.create_property(cid, "C")
        catalog.reorder_properties(cid, [c, a, b])
        assert [p.name for p in catalog.get_properties(cid)] == ["C", "A", "B"]
        with pytest.raises(ValidationError):
            catalog.reorder_properties(cid, ["nope"])

    def test_reference_target_must_exist(self, catalog):
        cid = catalog.create_class("Project")
        with pytest.raises(ValidationError):
            catalog.create_property(
                cid, "Parent", PropertyType.REFERENCE_UNIQUE, reference_target_class_id="nope"
            )
        other = catalog.create_class("Person")
        pid = catalog.create_property(
            cid, "Lead", PropertyType.REFERENCE_UNIQUE, reference_target_class_id=other
        )
        assert catalog.get_property(pid).reference_target_class_id == other

    def test_long_text_flag_in_sync(self, catalog, executor):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Notes", PropertyType.LONG_TEXT)
        row = executor.query_one("SELECT type, is_long_text FROM property WHERE id = ?", [pid])
        assert row == {"type": "text", "is_long_text": 1}
        assert catalog.get_property(pid).is_long_text

    def test_stored_long_text_type_still_reads(self, catalog, executor):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Notes", PropertyType.LONG_TEXT)
        executor.execute("UPDATE property SET type = 'longText' WHERE id = ?", [pid])
        assert catalog.get_property(pid).type is PropertyType.LONG_TEXT

    def test_legacy_long_text_flag_reads_as_long_text(self, catalog, executor):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Notes", PropertyType.TEXT)
        executor.execute("UPDATE property SET is_long_text = 1 WHERE id = ?", [pid])
        assert catalog.get_property(pid).type is PropertyType.LONG_TEXT

    def test_unknown_stored_type_reads_as_text(self, catalog, executor):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Mood")
        executor.execute("UPDATE property SET type = 'emoji' WHERE id = ?", [pid])
        assert catalog.get_property(pid).type is PropertyType.TEXT


class TestUpdateProperty:
    def test_keeps_unspecified_fields(self, catalog):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Estimate", PropertyType.NUMBER, is_required=True)
        assert catalog.update_property(pid, is_required=False)
        p = catalog.get_property(pid)
        assert p.name == "Estimate"
        assert p.type is PropertyType.NUMBER
        assert not p.is_required

    def test_rename_renames_column_and_keeps_data(self, catalog, objects):
        cid = catalog.create_class_with_schema(
            "Task", states=[StateSpec(name="Open")], properties=[PropertySpec(name="Owner")]
        )
        state = catalog.get_states(cid)[0]
        oid = objects.create_object(cid, "T1", state.id, {"Owner": "Dan"})
        pid = catalog.get_properties(cid)[0].id

        catalog.update_property(pid, name="Assignee")
        assert "assignee" in catalog.tables.columns(cid)
        assert "owner" not in catalog.tables.columns(cid)
        assert objects.get_object(cid, oid)["assignee"] == "Dan"
        assert catalog.check_consistency(cid) == []

    def test_rename_same_column_does_not_touch_table(self, catalog):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Owner")
        catalog.update_property(pid, name="OWNER")
        assert catalog.get_property(pid).name == "OWNER"
        assert catalog.tables.custom_columns(cid) == ["owner"]

    def test_rename_collision(self, catalog):
        cid = catalog.create_class("Project")
        catalog.create_property(cid, "Owner")
        pid = catalog.create_property(cid, "Lead")
        with pytest.raises(PropertyNameCollisionError):
            catalog.update_property(pid, name="owner")
        assert catalog.get_property(pid).name == "Lead"

    def test_rename_onto_orphaned_column_rejected(self, catalog):
        cid = catalog.create_class("Project")
        old = catalog.create_property(cid, "Owner")
        catalog.delete_property(old)
        pid = catalog.create_property(cid, "Lead")
        with pytest.raises(PropertyNameCollisionError):
            catalog.update_property(pid, name="Owner")
        assert catalog.get_property(pid).name == "Lead"
        assert "lead" in catalog.tables.columns(cid)

    def test_type_change_is_metadata_only(self, catalog, db):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Estimate", PropertyType.NUMBER)
        catalog.update_property(pid, type=PropertyType.TEXT)
        assert catalog.get_property(pid).type is PropertyType.TEXT
        warnings = [
            e.message
            for e in db.log_sink.events(component="catalog", severity=LogSeverity.WARNING)
        ]
        assert any("not converted" in m for m in warnings)

    def test_is_long_text_toggle(self, catalog):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Notes")
        catalog.update_property(pid, is_long_text=True)
        assert catalog.get_property(pid).type is PropertyType.LONG_TEXT
        catalog.update_property(pid, is_long_text=False)
        assert catalog.get_property(pid).type is PropertyType.TEXT

    def test_missing(self, catalog):
        assert catalog.update_property("nope", name="X") is False


class TestDeleteProperty:
    def test_soft_orphans_column(self, catalog):
        cid = catalog.create_class("Project")
        pid = catalog.create_property(cid, "Owner")
        assert catalog.delete_property(pid)
        assert catalog.get_property(pid) is None
        assert "owner" in catalog.tables.columns(cid)
        assert catalog.orphaned_columns(cid) == ["owner"]

    def test_recreate_adopts_orphaned_column(self, catalog, objects):
        cid = catalog.create_class_with_schema(
            "Task", states=[StateSpec(name="Open")], properties=[PropertySpec(name="Owner")]
        )
        state = catalog.get_states(cid)[0]
        oid = objects.create_object(cid, "T1", state.id, {"Owner": "Dan"})
        catalog.delete_property(catalog.get_properties(cid)[0].id)

        catalog.create_property(cid, "owner")
        assert catalog.orphaned_columns(cid) == []
        assert objects.get_object(cid, oid)["owner"] == "Dan"

    def test_recreate_with_other_storage_type_is_rejected(self, catalog):
        cid = catalog.create_class_with_schema(
            "Item",
            states=[StateSpec(name="Open")],
            properties=[PropertySpec(name="Code", type=PropertyType.NUMBER)],
        )
        catalog.delete_property(catalog.get_properties(cid)[0].id)

        with pytest.raises(PropertyNameCollisionError, match="different storage type"):
            catalog.create_property(cid, "Code", PropertyType.TEXT)
        assert catalog.get_properties(cid) == []
        assert catalog.orphaned_columns(cid) == ["code"]

    def test_recreate_with_same_storage_type_keeps_text(self, catalog, objects):
        cid = catalog.create_class_with_schema(
            "Item", states=[StateSpec(name="Open")], properties=[PropertySpec(name="Code")]
        )
        catalog.delete_property(catalog.get_properties(cid)[0].id)
        catalog.create_property(cid, "Code", PropertyType.LOCATION)

        state = catalog.get_states(cid)[0]
        oid = objects.create_object(cid, "I1", state.id, {"Code": "007"})
        assert objects.get_object(cid, oid)["code"] == "007"

    def test_missing(self, catalog):
        assert catalog.delete_property("nope") is False


class TestStates:
    def test_create_and_get(self, catalog):
        cid = catalog.create_class("Project")
        sid = catalog.create_state(cid, "Doing", StateType.IN_PROGRESS, icon="⏳", color="#ff0")
        s = catalog.get_state(sid)
        assert s.name == "Doing"
        assert s.type is StateType.IN_PROGRESS
        assert s.icon == "⏳"
        assert s.color == "#ff0"

    def test_in_progress_storage_value(self, catalog, executor):
        cid = catalog.create_class("Project")
        sid = catalog.create_state(cid, "Doing", StateType.IN_PROGRESS)
        assert executor.scalar("SELECT type FROM state WHERE id = ?", [sid]) == "in_progress"

    def test_camel_case_stored_type_accepted(self, catalog, executor):
        cid = catalog.create_class("Project")
        sid = catalog.create_state(cid, "Doing")
        executor.execute("UPDATE state SET type = 'inProgress' WHERE id = ?", [sid])
        assert catalog.get_state(sid).type is StateType.IN_PROGRESS

    def test_ordered(self, catalog):
        cid = catalog.create_class("Project")
        catalog.create_state(cid, "B", order=1)
        catalog.create_state(cid, "A", order=0)
        assert [s.name for s in catalog.get_states(cid)] == ["A", "B"]

    def test_unknown_class(self, catalog):
        with pytest.raises(ClassNotFoundError):
            catalog.create_state("nope", "Open")

    def test_update(self, catalog):
        cid = catalog.create_class("Project")
        sid = catalog.create_state(cid, "Open")
        assert catalog.update_state(sid, name="Opened", type=StateType.ACTIVE)
        s = catalog.get_state(sid)
        assert (s.name, s.type) == ("Opened", StateType.ACTIVE)
        assert catalog.update_state(sid) is False

    def test_delete_cleans_actions(self, catalog, task_class, task_states, executor):
        aid = catalog.create_action(
            task_class,
            "Start",
            trigger_state_id=task_states["Active"],
            allowed_state_ids=[task_states["Active"], task_states["Inactive"]],
        )
        assert catalog.delete_state(task_states["Active"])
        action = catalog.get_action(aid)
        assert action.trigger_state_id is None
        assert action.allowed_state_ids == frozenset({task_states["Inactive"]})

    def test_cannot_delete_last_state_with_objects(self, catalog, objects):
        cid = catalog.create_class_with_schema("Task", states=[StateSpec(name="Open")])
        sid = catalog.get_states(cid)[0].id
        objects.create_object(cid, "T1", sid)
        with pytest.raises(ValidationError):
            catalog.delete_state(sid)
        assert catalog.get_state(sid) is not None

    def test_can_delete_last_state_without_objects(self, catalog):
        cid = catalog.create_class_with_schema("Task", states=[StateSpec(name="Open")])
        sid = catalog.get_states(cid)[0].id
        assert catalog.delete_state(sid)
        assert catalog.get_states(cid) == []

    def test_delete_missing(self, catalog):
        assert catalog.delete_state("nope") is False


class TestActions:
    def test_create_and_get(self, catalog, task_class, task_states):
        aid = catalog.create_action(
            task_class,
            "Start",
            icon="▶️",
            description="Begin work",
            trigger_type=TriggerType.AUTOMATIC,
            trigger_state_id=task_states["In Progress"],
            allowed_state_ids=[task_states["Inactive"], task_states["Inactive"]],
        )
        a = catalog.get_action(aid)
        assert a.name == "Start"
        assert a.trigger_type is TriggerType.AUTOMATIC
        assert a.trigger_state_id == task_states["In Progress"]
        assert a.allowed_state_ids == frozenset({task_states["Inactive"]})

    def test_allow_list_gates_availability(self, catalog, task_class, task_states):
        catalog.create_action(task_class, "Start", allowed_state_ids=[task_states["Inactive"]])
        catalog.create_action(task_class, "Comment")
        names = [a.name for a in catalog.get_available_actions(task_class, task_states["Active"])]
        assert names == ["Comment"]
        names = [a.name for a in catalog.get_available_actions(task_class, task_states["Inactive"])]
        assert sorted(names) == ["Comment", "Start"]

    def test_foreign_state_rejected(self, catalog, task_class):
        other = create_task_class(catalog, "Bug")
        foreign = catalog.get_states(other)[0].id
        with pytest.raises(ValidationError):
            catalog.create_action(task_class, "Start", allowed_state_ids=[foreign])
        with pytest.raises(ValidationError):
            catalog.create_action(task_class, "Start", trigger_state_id=foreign)
        assert catalog.get_actions(task_class) == []

    def test_list_ordered_with_allow_lists(self, catalog, task_class, task_states):
        catalog.create_action(task_class, "Second", order=1)
        catalog.create_action(
            task_class, "First", order=0, allowed_state_ids=[task_states["Active"]]
        )
        actions = catalog.get_actions(task_class)
        assert [a.name for a in actions] == ["First", "Second"]
        assert actions[0].allowed_state_ids == frozenset({task_states["Active"]})
        assert actions[1].allowed_state_ids == frozenset()

    def test_delete(self, catalog, task_class, task_states, executor):
        aid = catalog.create_action(
            task_class, "Start", allowed_state_ids=[task_states["Active"]]
        )
        assert catalog.delete_action(aid)
        assert catalog.get_action(aid) is None
        assert executor.scalar("SELECT COUNT(*) FROM action_allowed_state") == 0
        assert catalog.delete_action(aid) is False


class TestConsistency:
    def test_consistent(self, catalog, task_class):
        assert catalog.check_consistency() == []
        catalog.assert_consistent(task_class)

    def test_missing_table(self, catalog, task_class):
        catalog.tables.drop_table(task_class)
        problems = catalog.check_consistency()
        assert len(problems) == 1
        assert "missing table" in problems[0]
        with pytest.raises(ConsistencyError) as exc_info:
            catalog.assert_consistent()
        assert exc_info.value.problems == problems

    def test_missing_column(self, catalog, executor):
        cid = catalog.create_class("Project")
        executor.execute(
            "INSERT INTO property (id, entity_class_id, name, type) "
            "VALUES ('p1', ?, 'Ghost', 'text')",
            [cid],
        )
        problems = catalog.check_consistency(cid)
        assert problems == ["class 'Project': property 'Ghost' has no column ghost"]


def test_persistence_error_surfaces(catalog, executor):
    executor.execute("DROP TABLE state")
    cid = catalog.create_class("Project")
    with pytest.raises(PersistenceError):
        catalog.create_state(cid, "Open")
