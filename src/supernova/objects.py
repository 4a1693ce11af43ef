"""Object store: typed CRUD and search against each class's physical table."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from supernova.codec import decode_timestamp, decode_value, encode_timestamp, encode_value
from supernova.errors import ClassNotFoundError, ValidationError
from supernova.executor import Executor
from supernova.identifiers import FIXED_COLUMNS, new_id, quote_identifier, sanitize_column_name
from supernova.tables import DynamicTableManager
from supernova.types import EntityObject, Property, SearchMatchType

_COMPONENT = "objects"

# Fixed columns that update_object may set alongside property values.
_EDITABLE_FIXED = ("name", "icon")

Row = dict[str, Any]


class ObjectStore:
    """Reads and writes object rows.

    Rows come back as ordered column -> store primitive mappings; ``decode_object`` is the
    separate typed step keyed by each property's declared type. Every operation raises
    ClassNotFoundError when the class's table does not exist.
    """

    def __init__(self, executor: Executor, tables: DynamicTableManager | None = None) -> None:
        self._db = executor
        self._events = executor.events
        self.tables = tables or DynamicTableManager(executor)

    def _table(self, class_id: str) -> str:
        if not self.tables.table_exists(class_id):
            raise ClassNotFoundError(class_id)
        return quote_identifier(self.tables.table_name(class_id))

    def _columns_for(
        self, class_id: str, values: Mapping[str, Any], allowed_fixed: Sequence[str] = ()
    ) -> list[tuple[str, Any]]:
        """Map property names to their sanitized columns and encode the values."""
        existing = set(self.tables.columns(class_id))
        pairs: list[tuple[str, Any]] = []
        seen: dict[str, str] = {}
        for key, value in values.items():
            column = sanitize_column_name(key)
            if column in FIXED_COLUMNS and column not in allowed_fixed:
                raise ValidationError(f"'{key}' maps to the fixed column {column}")
            if column not in existing:
                raise ValidationError(f"Class {class_id} has no column for property '{key}'")
            if column in seen:
                raise ValidationError(
                    f"Properties '{seen[column]}' and '{key}' both map to column {column}"
                )
            seen[column] = key
            pairs.append((column, encode_value(value)))
        return pairs

    # --- Writes ---

    def create_object(
        self,
        class_id: str,
        name: str,
        state_id: str,
        values: Mapping[str, Any] | None = None,
        icon: str | None = None,
    ) -> str:
        """Insert one row; property columns not in ``values`` stay NULL."""
        table = self._table(class_id)
        values = values or {}
        pairs = self._columns_for(class_id, values)
        object_id = new_id()
        now = encode_timestamp()

        columns = ["id", "name", "icon", "current_state_id", "created_at", "updated_at"]
        params: list[Any] = [object_id, name, icon or None, state_id, now, now]
        for column, encoded in pairs:
            columns.append(column)
            params.append(encoded)

        try:
            self._db.execute(
                f"INSERT INTO {table} ({', '.join(quote_identifier(c) for c in columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)})",
                params,
            )
        except Exception:
            self._events.error(f"Failed to create object '{name}' in class {class_id}", _COMPONENT)
            raise
        self._events.info(
            f"Object created: '{name}' (ID: {object_id}) with {len(pairs)} properties",
            _COMPONENT,
        )
        return object_id

    def update_object(self, class_id: str, object_id: str, values: Mapping[str, Any]) -> bool:
        """Set the given property values (plus ``name``/``icon``); always refreshes updated_at."""
        table = self._table(class_id)
        pairs = self._columns_for(class_id, values, allowed_fixed=_EDITABLE_FIXED)
        if any(c == "name" and v is None for c, v in pairs):
            raise ValidationError("Object name must not be empty")

        updates = [f"{quote_identifier(c)} = ?" for c, _ in pairs]
        params: list[Any] = [v for _, v in pairs]
        updates.append("updated_at = ?")
        params.append(encode_timestamp())
        params.append(object_id)

        count = self._db.execute(
            f"UPDATE {table} SET {', '.join(updates)} WHERE id = ?", params
        )
        if count:
            self._events.info(f"Object updated: {object_id}", _COMPONENT)
        else:
            self._events.warning(
                f"No object to update: {object_id} in class {class_id}", _COMPONENT
            )
        return count > 0

    def update_object_state(self, class_id: str, object_id: str, state_id: str) -> bool:
        table = self._table(class_id)
        count = self._db.execute(
            f"UPDATE {table} SET current_state_id = ?, updated_at = ? WHERE id = ?",
            (state_id, encode_timestamp(), object_id),
        )
        if count:
            self._events.info(f"Object {object_id} moved to state {state_id}", _COMPONENT)
        return count > 0

    def delete_object(self, class_id: str, object_id: str) -> bool:
        table = self._table(class_id)
        count = self._db.execute(f"DELETE FROM {table} WHERE id = ?", (object_id,))
        if count:
            self._events.info(f"Object deleted: {object_id}", _COMPONENT)
        else:
            self._events.warning(
                f"No object to delete: {object_id} in class {class_id}", _COMPONENT
            )
        return count > 0

    # --- Reads ---

    def get_object(self, class_id: str, object_id: str) -> Row | None:
        table = self._table(class_id)
        return self._db.query_one(f"SELECT * FROM {table} WHERE id = ?", (object_id,))

    def get_all_objects(
        self,
        class_id: str,
        where: str | None = None,
        params: Sequence[Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        """Rows of the class's table, optionally filtered by a raw WHERE fragment.

        ``order_by`` is a property or fixed column name; without it row order follows
        the table.
        """
        table = self._table(class_id)
        sql = f"SELECT * FROM {table}"
        if where:
            sql += f" WHERE {where}"
        if order_by:
            column = sanitize_column_name(order_by)
            if column not in self.tables.columns(class_id):
                raise ValidationError(f"Cannot order by unknown column '{order_by}'")
            sql += f" ORDER BY {quote_identifier(column)} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
            if offset:
                sql += f" OFFSET {int(offset)}"
        elif offset:
            sql += f" LIMIT -1 OFFSET {int(offset)}"
        rows = self._db.query(sql, params)
        self._events.debug(f"Retrieved {len(rows)} objects from class {class_id}", _COMPONENT)
        return rows

    def get_objects_by_state(self, class_id: str, state_id: str) -> list[Row]:
        return self.get_all_objects(class_id, "current_state_id = ?", (state_id,))

    def query_objects(
        self, class_id: str, sql: str, params: Sequence[Any] | None = None
    ) -> list[Row]:
        """Run a custom SELECT in which ``{table}`` stands for the class's table."""
        table = self._table(class_id)
        return self._db.query(sql.replace("{table}", table), params)

    def count_objects(
        self,
        class_id: str,
        where: str | None = None,
        params: Sequence[Any] | None = None,
    ) -> int:
        table = self._table(class_id)
        sql = f"SELECT COUNT(*) FROM {table}"
        if where:
            sql += f" WHERE {where}"
        return int(self._db.scalar(sql, params) or 0)

    def search_objects(
        self,
        class_id: str,
        property_name: str,
        term: str,
        match: SearchMatchType = SearchMatchType.CONTAINS,
    ) -> list[Row]:
        """Match ``term`` against one property's column.

        ``%`` and ``_`` inside ``term`` are not escaped and act as LIKE wildcards.
        """
        column = sanitize_column_name(property_name)
        table = self._table(class_id)
        if column not in self.tables.columns(class_id):
            raise ValidationError(f"Class {class_id} has no column for '{property_name}'")
        match = SearchMatchType(match)
        if match is SearchMatchType.EXACT:
            predicate, value = f"{quote_identifier(column)} = ?", term
        elif match is SearchMatchType.STARTS_WITH:
            predicate, value = f"{quote_identifier(column)} LIKE ?", f"{term}%"
        elif match is SearchMatchType.ENDS_WITH:
            predicate, value = f"{quote_identifier(column)} LIKE ?", f"%{term}"
        else:
            predicate, value = f"{quote_identifier(column)} LIKE ?", f"%{term}%"
        rows = self._db.query(f"SELECT * FROM {table} WHERE {predicate}", (value,))
        self._events.debug(
            f"Search '{term}' ({match.value}) on {property_name} matched {len(rows)}",
            _COMPONENT,
        )
        return rows

    # --- Typed decoding ---

    def decode_object(self, row: Mapping[str, Any], properties: Sequence[Property]) -> EntityObject:
        return decode_object(row, properties)

    def get_typed_objects(
        self, class_id: str, properties: Sequence[Property], **kwargs: Any
    ) -> list[EntityObject]:
        """``get_all_objects`` followed by ``decode_object`` on every row."""
        return [decode_object(r, properties) for r in self.get_all_objects(class_id, **kwargs)]


def decode_object(row: Mapping[str, Any], properties: Sequence[Property]) -> EntityObject:
    """Decode a raw row into an EntityObject, keying values by property name.

    Properties whose column is absent from the row decode to None.
    """
    values = {
        prop.name: decode_value(row.get(sanitize_column_name(prop.name)), prop.type)
        for prop in properties
    }
    return EntityObject(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        icon=row.get("icon"),
        current_state_id=str(row.get("current_state_id") or ""),
        created_at=decode_timestamp(row.get("created_at")),
        updated_at=decode_timestamp(row.get("updated_at")),
        values=values,
    )
