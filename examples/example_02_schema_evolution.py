"""Example 02: Schema Evolution.

This example demonstrates changing a class after objects exist:
- Adding a property retrofits a nullable column onto existing rows
- Renaming a property renames its column and keeps the data
- Deleting a property leaves a soft-orphaned column
- Re-creating the property adopts the orphaned column
- Checking the catalog against the physical tables
"""

import os

from supernova import PropertyType, StateSpec, open_database

DB_PATH = "tmp/schema_evolution.db"


def main():
    """Run the schema evolution example."""
    print("=" * 80)
    print("EXAMPLE 02: SCHEMA EVOLUTION")
    print("=" * 80)

    os.makedirs("tmp", exist_ok=True)
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)

    with open_database(db_path=DB_PATH) as db:
        project = db.catalog.create_class_with_schema(
            "Project", icon="📁", states=[StateSpec(name="Planned")]
        )
        planned = db.catalog.get_states(project)[0].id
        existing = db.objects.create_object(project, "Website", planned)
        print("\n✓ Class Project with one object")

        # Section 1: Add a property after objects exist
        print("\n" + "=" * 80)
        print("ADDING A PROPERTY")
        print("=" * 80)
        lead = db.catalog.create_property(project, "Lead", PropertyType.TEXT, is_required=True)
        row = db.objects.get_object(project, existing)
        print(f"\n✓ Existing object now has lead = {row['lead']!r}")
        db.objects.update_object(project, existing, {"Lead": "Morgan"})

        # Section 2: Rename
        print("\n" + "=" * 80)
        print("RENAMING A PROPERTY")
        print("=" * 80)
        db.catalog.update_property(lead, name="Project Lead")
        row = db.objects.get_object(project, existing)
        print(f"\n✓ Column renamed: project_lead = {row['project_lead']!r}")

        # Section 3: Delete and re-create
        print("\n" + "=" * 80)
        print("SOFT-ORPHANED COLUMNS")
        print("=" * 80)
        db.catalog.delete_property(lead)
        print(f"\n✓ Deleted property; orphaned columns: {db.catalog.orphaned_columns(project)}")
        db.catalog.create_property(project, "Project Lead", PropertyType.TEXT)
        row = db.objects.get_object(project, existing)
        print(f"✓ Re-created property adopted the column: {row['project_lead']!r}")

        # Section 4: Consistency
        problems = db.catalog.check_consistency()
        print(f"\n✓ Consistency problems: {problems or 'none'}")

    print("\n" + "=" * 80)
    print("EXAMPLE COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
