"""Caller-layer validation: form checks and text-to-value coercion before object writes."""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping, Sequence

from supernova.codec import parse_date, parse_datetime
from supernova.errors import ValidationError
from supernova.types import Property, PropertyType, State


def validate_class_input(name: str, state_names: Iterable[str]) -> None:
    """A class needs a name and at least one state, and every state needs a name."""
    if not (name or "").strip():
        raise ValidationError("Class name must not be empty")
    names = list(state_names)
    if not names:
        raise ValidationError("A class needs at least one state")
    if any(not (n or "").strip() for n in names):
        raise ValidationError("State names must not be empty")


def coerce_input(property_type: PropertyType, raw: str) -> Any:
    """Convert textual form input into the application value for ``property_type``.

    Empty input yields None.
    """
    text = raw.strip()
    if not text:
        return None

    if property_type is PropertyType.NUMBER:
        try:
            return int(text)
        except ValueError:
            raise ValidationError(f"'{raw}' is not a whole number")
    if property_type is PropertyType.CURRENCY:
        try:
            return float(text)
        except ValueError:
            raise ValidationError(f"'{raw}' is not an amount")
    if property_type is PropertyType.DATE:
        try:
            return parse_date(text)
        except ValueError:
            raise ValidationError(f"'{raw}' is not a date (YYYY-MM-DD)")
    if property_type is PropertyType.DATETIME:
        try:
            return parse_datetime(text)
        except ValueError:
            raise ValidationError(f"'{raw}' is not a date and time (YYYY-MM-DD HH:MM)")
    if property_type.is_list:
        return _coerce_list(text)
    if property_type is PropertyType.LONG_TEXT:
        return raw
    return text


def _coerce_list(text: str) -> list[Any]:
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            raise ValidationError(f"'{text}' is not a JSON list")
        if not isinstance(decoded, list):
            raise ValidationError(f"'{text}' is not a JSON list")
        return decoded
    return [item.strip() for item in text.split(",") if item.strip()]


def prepare_object_values(
    properties: Sequence[Property],
    states: Sequence[State],
    name: str,
    state_id: str | None,
    raw_values: Mapping[str, str],
    *,
    for_update: bool = False,
) -> dict[str, Any]:
    """Validate an object form and return property values keyed by property name.

    On create, properties left empty are omitted and stay NULL. On update, only the
    properties present in ``raw_values`` change, and empty input clears the field (None).
    A required property may not be left empty.
    """
    if not (name or "").strip():
        raise ValidationError("Object name must not be empty")
    if not states:
        raise ValidationError("The class has no states; add a state before creating objects")
    if not state_id:
        raise ValidationError("A state must be selected")
    if state_id not in {s.id for s in states}:
        raise ValidationError(f"State {state_id} does not belong to this class")

    known = {p.name for p in properties}
    unknown = sorted(k for k in raw_values if k not in known)
    if unknown:
        raise ValidationError(f"Unknown properties: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    missing: list[str] = []
    for prop in properties:
        raw = raw_values.get(prop.name)
        if raw is None:
            if prop.is_required and not for_update:
                missing.append(prop.name)
            continue
        value = coerce_input(prop.type, raw)
        if value is None:
            if prop.is_required:
                missing.append(prop.name)
            elif for_update:
                values[prop.name] = None
            continue
        values[prop.name] = value
    if missing:
        raise ValidationError(f"Required properties are empty: {', '.join(missing)}")
    return values
