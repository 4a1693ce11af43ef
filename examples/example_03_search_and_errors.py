"""Example 03: Search, Validation and Error Handling.

This example demonstrates:
- search_objects() with each SearchMatchType
- prepare_object_values() for validating textual form input
- The exception hierarchy: ValidationError, PropertyNameCollisionError,
  ClassNotFoundError, UnsupportedOperationError
- Reading operation events from the in-memory log sink
"""

import os

from supernova import (
    ClassNotFoundError,
    PropertyNameCollisionError,
    PropertySpec,
    SearchMatchType,
    StateSpec,
    UnsupportedOperationError,
    ValidationError,
    open_database,
    prepare_object_values,
)

DB_PATH = "tmp/search_and_errors.db"


def main():
    """Run the search and error handling example."""
    print("=" * 80)
    print("EXAMPLE 03: SEARCH, VALIDATION AND ERROR HANDLING")
    print("=" * 80)

    os.makedirs("tmp", exist_ok=True)
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)

    with open_database(db_path=DB_PATH) as db:
        task = db.catalog.create_class_with_schema(
            "Task",
            states=[StateSpec(name="Open")],
            properties=[PropertySpec(name="Owner", is_required=True)],
        )
        states = db.catalog.get_states(task)
        properties = db.catalog.get_properties(task)
        for owner in ("Daniel", "Dana", "Jordan"):
            db.objects.create_object(task, f"Task for {owner}", states[0].id, {"Owner": owner})

        # Section 1: Search
        print("\n" + "=" * 80)
        print("SEARCH")
        print("=" * 80)
        for match in SearchMatchType:
            rows = db.objects.search_objects(task, "Owner", "Dan", match)
            print(f"   {match.value:<10} 'Dan' -> {sorted(r['owner'] for r in rows)}")

        # Section 2: Form validation
        print("\n" + "=" * 80)
        print("FORM VALIDATION")
        print("=" * 80)
        try:
            prepare_object_values(properties, states, "New task", states[0].id, {"Owner": " "})
        except ValidationError as e:
            print(f"\n✓ Rejected form: {e}")

        # Section 3: Errors from the catalog and the store
        print("\n" + "=" * 80)
        print("ERRORS")
        print("=" * 80)
        try:
            db.catalog.create_property(task, "owner!")
        except PropertyNameCollisionError as e:
            print(f"\n✓ {type(e).__name__}: {e}")

        try:
            db.tables.remove_column(task, "owner")
        except UnsupportedOperationError as e:
            print(f"✓ {type(e).__name__}: {e}")

        db.catalog.delete_class(task)
        try:
            db.objects.get_all_objects(task)
        except ClassNotFoundError as e:
            print(f"✓ {type(e).__name__}: {e}")

        # Section 4: Operation events
        print("\n" + "=" * 80)
        print("OPERATION EVENTS")
        print("=" * 80)
        for event in db.log_sink.events()[-5:]:
            print(f"   [{event.severity.value}] {event.component}: {event.message}")

    print("\n" + "=" * 80)
    print("EXAMPLE COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
