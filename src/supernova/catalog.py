"""Schema catalog: metadata CRUD for entity classes, properties, states, and actions.

Every operation that touches both the catalog and the physical schema (class creation and
deletion, property creation and renaming) runs in a single transaction, so either every
step is applied or none is.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from supernova.codec import decode_timestamp, encode_timestamp, storage_type
from supernova.errors import (
    ClassNotFoundError,
    ConsistencyError,
    PropertyNameCollisionError,
    ValidationError,
)
from supernova.executor import Executor
from supernova.identifiers import FIXED_COLUMNS, new_id, sanitize_column_name, table_name
from supernova.tables import DynamicTableManager
from supernova.types import (
    Action,
    EntityClass,
    Property,
    PropertySpec,
    PropertyType,
    State,
    StateSpec,
    StateType,
    TriggerType,
)
from supernova.validation import validate_class_input

_COMPONENT = "catalog"
_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _require_name(kind: str, name: str) -> str:
    stripped = (name or "").strip()
    if not stripped:
        raise ValidationError(f"{kind} name must not be empty")
    return stripped


def _stored_type(ptype: PropertyType) -> str:
    """Value written to property.type; long text is ``text`` plus the is_long_text flag."""
    if ptype is PropertyType.LONG_TEXT:
        return PropertyType.TEXT.value
    return ptype.value


class SchemaCatalog:
    """Owns the entity_class, property, state, action and action_allowed_state relations."""

    def __init__(self, executor: Executor, tables: DynamicTableManager | None = None) -> None:
        self._db = executor
        self._events = executor.events
        self.tables = tables or DynamicTableManager(executor)

    # --- Entity classes ---

    def create_class(
        self,
        name: str,
        icon: str | None = None,
        description: str | None = None,
    ) -> str:
        """Insert the class row and create its physical table in one transaction."""
        return self._create_class(_require_name("Class", name), icon, description, (), ())

    def create_class_with_schema(
        self,
        name: str,
        icon: str | None = None,
        description: str | None = None,
        states: Sequence[StateSpec] = (),
        properties: Sequence[PropertySpec] = (),
    ) -> str:
        """Create a class together with its initial states and properties, atomically.

        At least one named state is required.
        """
        validate_class_input(name, [s.name for s in states])
        return self._create_class(name.strip(), icon, description, states, properties)

    def _create_class(
        self,
        name: str,
        icon: str | None,
        description: str | None,
        states: Sequence[StateSpec],
        properties: Sequence[PropertySpec],
    ) -> str:
        class_id = new_id()
        now = encode_timestamp()
        try:
            with self._db.transaction():
                self._db.execute(
                    "INSERT INTO entity_class "
                    "(id, name, icon, description, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (class_id, name, icon or None, description or None, now, now),
                )
                self.tables.create_table(class_id, name)
                for index, state in enumerate(states):
                    self.create_state(
                        class_id,
                        state.name,
                        state.type,
                        icon=state.icon,
                        color=state.color,
                        order=index,
                    )
                for index, prop in enumerate(properties):
                    self.create_property(
                        class_id,
                        prop.name,
                        prop.type,
                        is_required=prop.is_required,
                        order=index,
                        reference_target_class_id=prop.reference_target_class_id,
                    )
        except Exception:
            self._events.error(f"Failed to create class: '{name}'", _COMPONENT)
            raise
        self._events.info(f"Class created: '{name}' {icon or ''}".rstrip(), _COMPONENT)
        return class_id

    def get_class(self, class_id: str) -> EntityClass | None:
        row = self._db.query_one("SELECT * FROM entity_class WHERE id = ?", (class_id,))
        return _class_from_row(row) if row else None

    def require_class(self, class_id: str) -> EntityClass:
        entity_class = self.get_class(class_id)
        if entity_class is None:
            raise ClassNotFoundError(class_id)
        return entity_class

    def find_class_by_name(self, name: str) -> EntityClass | None:
        row = self._db.query_one(
            "SELECT * FROM entity_class WHERE name = ? ORDER BY created_at, rowid LIMIT 1",
            (name,),
        )
        return _class_from_row(row) if row else None

    def get_all_classes(self) -> list[EntityClass]:
        rows = self._db.query("SELECT * FROM entity_class ORDER BY name, rowid")
        return [_class_from_row(r) for r in rows]

    def update_class(
        self,
        class_id: str,
        name: str | None = None,
        icon: str | None = None,
        description: str | None = None,
    ) -> bool:
        """Update the given fields; returns False when nothing changed or the class is absent.

        Pass an empty string for icon/description to clear them.
        """
        updates: list[str] = []
        params: list[Any] = []
        changes: list[str] = []

        if name is not None:
            updates.append("name = ?")
            params.append(_require_name("Class", name))
            changes.append(f"name to '{name}'")
        if icon is not None:
            updates.append("icon = ?")
            params.append(icon or None)
            changes.append(f"icon to '{icon or 'none'}'")
        if description is not None:
            updates.append("description = ?")
            params.append(description or None)
            changes.append("description")

        if not updates:
            return False

        updates.append("updated_at = ?")
        params.append(encode_timestamp())
        params.append(class_id)
        count = self._db.execute(
            f"UPDATE entity_class SET {', '.join(updates)} WHERE id = ?", params
        )
        if count:
            self._events.info(
                f"Class updated: {class_id} - Changed: {', '.join(changes)}", _COMPONENT
            )
        else:
            self._events.warning(f"No class to update with id: {class_id}", _COMPONENT)
        return count > 0

    def delete_class(self, class_id: str) -> bool:
        """Delete the class, its properties, states, actions, and its physical table."""
        entity_class = self.get_class(class_id)
        if entity_class is None:
            self._events.warning(f"No class to delete with id: {class_id}", _COMPONENT)
            return False

        with self._db.transaction():
            self._db.execute(
                "DELETE FROM action_allowed_state WHERE action_id IN "
                "(SELECT id FROM action WHERE entity_class_id = ?)",
                (class_id,),
            )
            self._db.execute("DELETE FROM action WHERE entity_class_id = ?", (class_id,))
            self._db.execute("DELETE FROM state WHERE entity_class_id = ?", (class_id,))
            self._db.execute("DELETE FROM property WHERE entity_class_id = ?", (class_id,))
            self._db.execute("DELETE FROM entity_class WHERE id = ?", (class_id,))
            self.tables.drop_table(class_id)

        self._events.info(
            f"Class deleted: '{entity_class.name}' {entity_class.icon or ''}".rstrip(),
            _COMPONENT,
        )
        return True

    # --- Properties ---

    def create_property(
        self,
        class_id: str,
        name: str,
        type: PropertyType = PropertyType.TEXT,
        is_required: bool = False,
        order: int = 0,
        reference_target_class_id: str | None = None,
    ) -> str:
        """Insert the property row and add its column in one transaction.

        A soft-orphaned column with the same sanitized name is adopted instead of added.
        Adoption requires the orphan to have the storage type of ``type``.
        """
        name = _require_name("Property", name)
        type = PropertyType(type)
        self.require_class(class_id)
        column = self._check_column_available(class_id, name)
        self._check_reference_target(reference_target_class_id)
        orphan_type = self.tables.column_types(class_id).get(column)
        if orphan_type is not None and orphan_type != storage_type(type):
            raise PropertyNameCollisionError(
                name, column, "a soft-orphaned column with a different storage type exists"
            )

        property_id = new_id()
        prop = Property(
            id=property_id,
            entity_class_id=class_id,
            name=name,
            type=type,
            is_required=is_required,
            order=order,
            reference_target_class_id=reference_target_class_id,
        )
        with self._db.transaction():
            self._db.execute(
                "INSERT INTO property (id, entity_class_id, name, type, is_required, "
                "is_long_text, order_index, reference_target_class_id) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    property_id,
                    class_id,
                    name,
                    _stored_type(type),
                    is_required,
                    prop.is_long_text,
                    order,
                    reference_target_class_id,
                ),
            )
            if not self.tables.table_exists(class_id):
                raise ClassNotFoundError(class_id)
            if column in self.tables.columns(class_id):
                self._events.warning(
                    f"Property '{name}' adopts existing column {column} "
                    f"of {table_name(class_id)}",
                    _COMPONENT,
                )
            else:
                self.tables.add_column(class_id, prop)

        self._events.info(
            f"Property created: '{name}' ({type.value}) for class {class_id}", _COMPONENT
        )
        return property_id

    def get_property(self, property_id: str) -> Property | None:
        row = self._db.query_one("SELECT * FROM property WHERE id = ?", (property_id,))
        return self._property_from_row(row) if row else None

    def get_properties(self, class_id: str) -> list[Property]:
        rows = self._db.query(
            "SELECT * FROM property WHERE entity_class_id = ? ORDER BY order_index, rowid",
            (class_id,),
        )
        return [self._property_from_row(r) for r in rows]

    def update_property(
        self,
        property_id: str,
        name: str | None = None,
        type: PropertyType | None = None,
        is_required: bool | None = None,
        is_long_text: bool | None = None,
        reference_target_class_id: str | None = None,
    ) -> bool:
        """Update a property, keeping unspecified fields.

        A rename that changes the sanitized column name renames the physical column too.
        Type changes are metadata-only.
        """
        current = self.get_property(property_id)
        if current is None:
            return False

        final_name = _require_name("Property", name) if name is not None else current.name
        final_type = PropertyType(type) if type is not None else current.type
        if is_long_text is not None and final_type in (PropertyType.TEXT, PropertyType.LONG_TEXT):
            final_type = PropertyType.LONG_TEXT if is_long_text else PropertyType.TEXT
        final_required = is_required if is_required is not None else current.is_required
        final_target = (
            reference_target_class_id
            if reference_target_class_id is not None
            else current.reference_target_class_id
        )
        if reference_target_class_id is not None:
            self._check_reference_target(reference_target_class_id)

        class_id = current.entity_class_id
        old_column = sanitize_column_name(current.name)
        new_column = sanitize_column_name(final_name)
        if new_column != old_column:
            self._check_column_available(class_id, final_name, exclude_property_id=property_id)

        with self._db.transaction():
            count = self._db.execute(
                "UPDATE property SET name = ?, type = ?, is_required = ?, is_long_text = ?, "
                "reference_target_class_id = ? WHERE id = ?",
                (
                    final_name,
                    _stored_type(final_type),
                    final_required,
                    final_type is PropertyType.LONG_TEXT,
                    final_target,
                    property_id,
                ),
            )
            if new_column != old_column:
                columns = self.tables.columns(class_id)
                if new_column in columns:
                    raise PropertyNameCollisionError(
                        final_name, new_column, "a soft-orphaned column with this name exists"
                    )
                if old_column in columns:
                    self.tables.rename_column(class_id, old_column, new_column)
                else:
                    self.tables.add_column(
                        class_id, current.model_copy(update={"name": final_name})
                    )

        if final_type is not current.type:
            self._events.warning(
                f"Property '{final_name}' changed type {current.type.value} -> "
                f"{final_type.value}; stored values are not converted",
                _COMPONENT,
            )
        self._events.info(f"Property updated: '{final_name}' ({property_id})", _COMPONENT)
        return count > 0

    def update_property_order(self, property_id: str, new_order: int) -> bool:
        count = self._db.execute(
            "UPDATE property SET order_index = ? WHERE id = ?", (new_order, property_id)
        )
        return count > 0

    def reorder_properties(self, class_id: str, property_ids: Sequence[str]) -> None:
        """Assign order_index 0..n-1 following ``property_ids``."""
        known = {p.id for p in self.get_properties(class_id)}
        unknown = [pid for pid in property_ids if pid not in known]
        if unknown:
            raise ValidationError(f"Properties not in class {class_id}: {', '.join(unknown)}")
        with self._db.transaction():
            for index, pid in enumerate(property_ids):
                self.update_property_order(pid, index)

    def delete_property(self, property_id: str) -> bool:
        """Delete the property metadata; its column stays behind as a soft-orphaned column."""
        current = self.get_property(property_id)
        if current is None:
            return False
        count = self._db.execute("DELETE FROM property WHERE id = ?", (property_id,))
        self._events.info(
            f"Property deleted: '{current.name}'; column "
            f"{sanitize_column_name(current.name)} kept as soft-orphaned",
            _COMPONENT,
        )
        return count > 0

    def orphaned_columns(self, class_id: str) -> list[str]:
        """Custom columns of the class's table that no live property maps to."""
        live = {sanitize_column_name(p.name) for p in self.get_properties(class_id)}
        return [c for c in self.tables.custom_columns(class_id) if c not in live]

    # --- States ---

    def create_state(
        self,
        class_id: str,
        name: str,
        type: StateType = StateType.INACTIVE,
        icon: str | None = None,
        color: str | None = None,
        order: int = 0,
    ) -> str:
        name = _require_name("State", name)
        type = StateType(type)
        self.require_class(class_id)
        state_id = new_id()
        self._db.execute(
            "INSERT INTO state (id, entity_class_id, name, type, icon, color, order_index) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (state_id, class_id, name, type.value, icon or None, color or None, order),
        )
        self._events.info(f"State created: '{name}' for class {class_id}", _COMPONENT)
        return state_id

    def get_state(self, state_id: str) -> State | None:
        row = self._db.query_one("SELECT * FROM state WHERE id = ?", (state_id,))
        return self._state_from_row(row) if row else None

    def get_states(self, class_id: str) -> list[State]:
        rows = self._db.query(
            "SELECT * FROM state WHERE entity_class_id = ? ORDER BY order_index, rowid",
            (class_id,),
        )
        return [self._state_from_row(r) for r in rows]

    def update_state(
        self,
        state_id: str,
        name: str | None = None,
        type: StateType | None = None,
        icon: str | None = None,
        color: str | None = None,
        order: int | None = None,
    ) -> bool:
        updates: list[str] = []
        params: list[Any] = []
        if name is not None:
            updates.append("name = ?")
            params.append(_require_name("State", name))
        if type is not None:
            updates.append("type = ?")
            params.append(StateType(type).value)
        if icon is not None:
            updates.append("icon = ?")
            params.append(icon or None)
        if color is not None:
            updates.append("color = ?")
            params.append(color or None)
        if order is not None:
            updates.append("order_index = ?")
            params.append(order)
        if not updates:
            return False
        params.append(state_id)
        count = self._db.execute(f"UPDATE state SET {', '.join(updates)} WHERE id = ?", params)
        return count > 0

    def delete_state(self, state_id: str) -> bool:
        """Delete a state, its allow-list rows, and any action trigger pointing at it.

        The last state of a class that still has objects cannot be deleted.
        """
        state = self.get_state(state_id)
        if state is None:
            return False
        class_id = state.entity_class_id
        remaining = self._db.scalar(
            "SELECT COUNT(*) FROM state WHERE entity_class_id = ? AND id != ?",
            (class_id, state_id),
        )
        if not remaining and self.tables.table_exists(class_id):
            objects = self._db.scalar(f'SELECT COUNT(*) FROM "{table_name(class_id)}"')
            if objects:
                raise ValidationError(
                    f"Cannot delete '{state.name}': it is the last state of a class "
                    f"with {objects} object(s)"
                )

        with self._db.transaction():
            self._db.execute("DELETE FROM action_allowed_state WHERE state_id = ?", (state_id,))
            self._db.execute(
                "UPDATE action SET trigger_state_id = NULL WHERE trigger_state_id = ?",
                (state_id,),
            )
            count = self._db.execute("DELETE FROM state WHERE id = ?", (state_id,))
        self._events.info(f"State deleted: '{state.name}'", _COMPONENT)
        return count > 0

    # --- Actions ---

    def create_action(
        self,
        class_id: str,
        name: str,
        icon: str | None = None,
        description: str | None = None,
        trigger_type: TriggerType = TriggerType.MANUAL,
        order: int = 0,
        trigger_state_id: str | None = None,
        allowed_state_ids: Iterable[str] = (),
    ) -> str:
        """Insert the action and its allowed-state rows in one transaction."""
        name = _require_name("Action", name)
        trigger_type = TriggerType(trigger_type)
        self.require_class(class_id)
        allowed = list(dict.fromkeys(allowed_state_ids))
        class_states = {s.id for s in self.get_states(class_id)}
        foreign = [sid for sid in allowed if sid not in class_states]
        if trigger_state_id is not None and trigger_state_id not in class_states:
            foreign.append(trigger_state_id)
        if foreign:
            raise ValidationError(
                f"States do not belong to class {class_id}: {', '.join(foreign)}"
            )

        action_id = new_id()
        with self._db.transaction():
            self._db.execute(
                "INSERT INTO action (id, entity_class_id, name, icon, description, "
                "trigger_type, order_index, trigger_state_id) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    action_id,
                    class_id,
                    name,
                    icon or None,
                    description or None,
                    trigger_type.value,
                    order,
                    trigger_state_id,
                ),
            )
            for state_id in allowed:
                self._db.execute(
                    "INSERT INTO action_allowed_state (action_id, state_id) VALUES (?, ?)",
                    (action_id, state_id),
                )
        self._events.info(f"Action created: '{name}' for class {class_id}", _COMPONENT)
        return action_id

    def get_action(self, action_id: str) -> Action | None:
        row = self._db.query_one("SELECT * FROM action WHERE id = ?", (action_id,))
        if row is None:
            return None
        allowed = self._db.query(
            "SELECT state_id FROM action_allowed_state WHERE action_id = ?", (action_id,)
        )
        return self._action_from_row(row, {str(r["state_id"]) for r in allowed})

    def get_actions(self, class_id: str) -> list[Action]:
        rows = self._db.query(
            "SELECT * FROM action WHERE entity_class_id = ? ORDER BY order_index, rowid",
            (class_id,),
        )
        allowed: dict[str, set[str]] = {}
        for r in self._db.query(
            "SELECT aas.action_id, aas.state_id FROM action_allowed_state aas "
            "JOIN action a ON a.id = aas.action_id WHERE a.entity_class_id = ?",
            (class_id,),
        ):
            allowed.setdefault(str(r["action_id"]), set()).add(str(r["state_id"]))
        return [self._action_from_row(r, allowed.get(str(r["id"]), set())) for r in rows]

    def get_available_actions(self, class_id: str, state_id: str) -> list[Action]:
        """Actions whose allow-list admits ``state_id``."""
        return [a for a in self.get_actions(class_id) if a.is_allowed_in(state_id)]

    def delete_action(self, action_id: str) -> bool:
        with self._db.transaction():
            self._db.execute(
                "DELETE FROM action_allowed_state WHERE action_id = ?", (action_id,)
            )
            count = self._db.execute("DELETE FROM action WHERE id = ?", (action_id,))
        if count:
            self._events.info(f"Action deleted: {action_id}", _COMPONENT)
        return count > 0

    # --- Consistency ---

    def check_consistency(self, class_id: str | None = None) -> list[str]:
        """Describe drift between the catalog and physical tables (empty when consistent)."""
        if class_id is not None:
            classes = [self.require_class(class_id)]
        else:
            classes = self.get_all_classes()
        problems: list[str] = []
        for entity_class in classes:
            tname = table_name(entity_class.id)
            if not self.tables.table_exists(entity_class.id):
                problems.append(f"class '{entity_class.name}': missing table {tname}")
                continue
            columns = set(self.tables.columns(entity_class.id))
            for column in FIXED_COLUMNS:
                if column not in columns:
                    problems.append(f"class '{entity_class.name}': missing column {column}")
            for prop in self.get_properties(entity_class.id):
                column = sanitize_column_name(prop.name)
                if column not in columns:
                    problems.append(
                        f"class '{entity_class.name}': property '{prop.name}' "
                        f"has no column {column}"
                    )
        return problems

    def assert_consistent(self, class_id: str | None = None) -> None:
        problems = self.check_consistency(class_id)
        if problems:
            raise ConsistencyError(
                f"Catalog and physical schema disagree ({len(problems)} problem(s))", problems
            )

    # --- Helpers ---

    def _check_column_available(
        self, class_id: str, name: str, *, exclude_property_id: str | None = None
    ) -> str:
        column = sanitize_column_name(name)
        if not column:
            raise PropertyNameCollisionError(name, column, "name has no usable characters")
        if column in FIXED_COLUMNS:
            raise PropertyNameCollisionError(name, column, "reserved for a fixed column")
        for prop in self.get_properties(class_id):
            if prop.id == exclude_property_id:
                continue
            if sanitize_column_name(prop.name) == column:
                raise PropertyNameCollisionError(
                    name, column, f"already used by property '{prop.name}'"
                )
        return column

    def _check_reference_target(self, target_class_id: str | None) -> None:
        if target_class_id is not None and self.get_class(target_class_id) is None:
            raise ValidationError(f"Reference target class not found: {target_class_id}")

    def _property_from_row(self, row: dict[str, Any]) -> Property:
        raw_type = str(row["type"])
        try:
            ptype = PropertyType(raw_type)
        except ValueError:
            self._events.warning(
                f"Unknown property type '{raw_type}' on property {row['id']}; reading as text",
                _COMPONENT,
            )
            ptype = PropertyType.TEXT
        if ptype is PropertyType.TEXT and row.get("is_long_text"):
            ptype = PropertyType.LONG_TEXT
        return Property(
            id=str(row["id"]),
            entity_class_id=str(row["entity_class_id"]),
            name=str(row["name"]),
            type=ptype,
            is_required=bool(row.get("is_required")),
            order=int(row.get("order_index") or 0),
            reference_target_class_id=row.get("reference_target_class_id"),
        )

    def _state_from_row(self, row: dict[str, Any]) -> State:
        try:
            stype = StateType.parse(str(row.get("type") or "inactive"))
        except ValueError:
            stype = StateType.INACTIVE
        return State(
            id=str(row["id"]),
            entity_class_id=str(row["entity_class_id"]),
            name=str(row["name"]),
            type=stype,
            icon=row.get("icon"),
            color=row.get("color"),
            order=int(row.get("order_index") or 0),
        )

    def _action_from_row(self, row: dict[str, Any], allowed: set[str]) -> Action:
        try:
            trigger = TriggerType(str(row["trigger_type"]))
        except ValueError:
            trigger = TriggerType.MANUAL
        return Action(
            id=str(row["id"]),
            entity_class_id=str(row["entity_class_id"]),
            name=str(row["name"]),
            icon=row.get("icon"),
            description=row.get("description"),
            trigger_type=trigger,
            order=int(row.get("order_index") or 0),
            trigger_state_id=row.get("trigger_state_id"),
            allowed_state_ids=frozenset(allowed),
        )


def _class_from_row(row: dict[str, Any]) -> EntityClass:
    created = decode_timestamp(row.get("created_at")) or _EPOCH
    updated = decode_timestamp(row.get("updated_at")) or created
    return EntityClass(
        id=str(row["id"]),
        name=str(row["name"]),
        icon=row.get("icon"),
        description=row.get("description"),
        created_at=created,
        updated_at=updated,
    )
