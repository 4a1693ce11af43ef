"""Example 01: Basic Usage - SuperNOVA Fundamentals.

This example demonstrates the fundamental operations:
- Opening a store with open_database()
- Defining a class with states and typed properties in one call
- Creating objects and reading them back as raw rows and typed EntityObjects
- Moving an object through its lifecycle states
"""

import os
from datetime import date

from supernova import PropertySpec, PropertyType, StateSpec, StateType, open_database

DB_PATH = "tmp/basic_usage.db"


def main():
    """Run the basic usage example."""
    print("=" * 80)
    print("SUPERNOVA BASIC USAGE EXAMPLE")
    print("=" * 80)

    os.makedirs("tmp", exist_ok=True)
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)

    # Step 1: Open the store
    # Migrations run on open, so the catalog relations exist afterwards.
    db = open_database(db_path=DB_PATH)
    print(f"\n✓ Store opened: {DB_PATH}")
    print(f"  Applied migrations: {', '.join(db.last_migration.applied)}")

    # Step 2: Define a class
    # A class needs at least one state; properties become columns of its table.
    print("\n" + "=" * 80)
    print("DEFINING A CLASS")
    print("=" * 80)

    task_id = db.catalog.create_class_with_schema(
        "Task",
        icon="✅",
        description="Things to do",
        states=[
            StateSpec(name="Inactive", type=StateType.INACTIVE),
            StateSpec(name="Active", type=StateType.ACTIVE),
            StateSpec(name="In Progress", type=StateType.IN_PROGRESS),
        ],
        properties=[
            PropertySpec(name="Owner", type=PropertyType.TEXT, is_required=True),
            PropertySpec(name="Estimate", type=PropertyType.NUMBER),
            PropertySpec(name="Due", type=PropertyType.DATE),
        ],
    )
    print(f"\n✓ Created class Task ({task_id})")
    print(f"  Table: {db.tables.table_name(task_id)}")
    print(f"  Columns: {', '.join(db.tables.columns(task_id))}")

    states = {s.name: s.id for s in db.catalog.get_states(task_id)}

    # Step 3: Create objects
    print("\n" + "=" * 80)
    print("CREATING OBJECTS")
    print("=" * 80)

    spec_id = db.objects.create_object(
        task_id,
        "Write spec",
        states["Active"],
        {"Owner": "Daniel", "Estimate": 3, "Due": date(2024, 3, 1)},
    )
    db.objects.create_object(task_id, "Fix bug", states["Inactive"], {"Owner": "Dana"})
    print(f"\n✓ Created 2 objects ({db.objects.count_objects(task_id)} in table)")

    # Step 4: Read rows
    # Raw rows hold store primitives keyed by column.
    print("\nRaw row:")
    for column, value in db.objects.get_object(task_id, spec_id).items():
        print(f"   {column}: {value!r}")

    # Typed objects decode each value according to its property type.
    print("\nTyped objects:")
    properties = db.catalog.get_properties(task_id)
    for obj in db.objects.get_typed_objects(task_id, properties, order_by="name"):
        print(f"   - {obj.name}: {obj.values}")

    # Step 5: Change state
    db.objects.update_object_state(task_id, spec_id, states["In Progress"])
    in_progress = db.objects.get_objects_by_state(task_id, states["In Progress"])
    print(f"\n✓ Moved 'Write spec' to In Progress ({len(in_progress)} object(s) there)")

    db.close()

    print("\n" + "=" * 80)
    print("EXAMPLE COMPLETE")
    print("=" * 80)
    print("\nKey concepts demonstrated:")
    print("  ✓ Opening a store with open_database()")
    print("  ✓ Creating a class with states and properties atomically")
    print("  ✓ Creating objects with typed values")
    print("  ✓ Reading raw rows and decoded EntityObjects")
    print("  ✓ Moving objects between states")
    print(f"\nDatabase file: {DB_PATH}")
    print("=" * 80)


if __name__ == "__main__":
    main()
