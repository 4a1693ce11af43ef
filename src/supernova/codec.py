"""Value codec: application values <-> store primitives, and property type -> column type."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from supernova.types import PropertyType

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M"

_DATETIME_INPUT_FORMATS = (
    DATETIME_FORMAT,
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
)

_STORAGE_TYPES: dict[PropertyType, str] = {
    PropertyType.TEXT: "TEXT",
    PropertyType.LONG_TEXT: "TEXT",
    PropertyType.DATE: "TEXT",
    PropertyType.DATETIME: "TEXT",
    PropertyType.DURATION: "TEXT",
    PropertyType.LOCATION: "TEXT",
    PropertyType.REFERENCE_UNIQUE: "TEXT",
    PropertyType.NUMBER: "INTEGER",
    PropertyType.CURRENCY: "REAL",
    # JSON array encodings
    PropertyType.IMAGES: "TEXT",
    PropertyType.FILES: "TEXT",
    PropertyType.AUDIOS: "TEXT",
    PropertyType.REFERENCE_MULTIPLE: "TEXT",
}


def storage_type(property_type: PropertyType) -> str:
    """Column storage primitive for a property type."""
    return _STORAGE_TYPES[property_type]


# --- Store boundary tagged union ---


@dataclass(frozen=True)
class NullValue:
    @property
    def raw(self) -> None:
        return None


@dataclass(frozen=True)
class IntValue:
    value: int

    @property
    def raw(self) -> int:
        return self.value


@dataclass(frozen=True)
class RealValue:
    value: float

    @property
    def raw(self) -> float:
        return self.value


@dataclass(frozen=True)
class TextValue:
    value: str

    @property
    def raw(self) -> str:
        return self.value


@dataclass(frozen=True)
class BlobValue:
    value: bytes

    @property
    def raw(self) -> bytes:
        return self.value


StoreValue = Union[NullValue, IntValue, RealValue, TextValue, BlobValue]


def to_store_value(value: Any) -> StoreValue:
    """Classify an already-encoded Python scalar into a store primitive.

    Raises TypeError for values the store cannot bind.
    """
    if value is None:
        return NullValue()
    if isinstance(value, bool):
        return IntValue(int(value))
    if isinstance(value, int):
        return IntValue(value)
    if isinstance(value, float):
        return RealValue(value)
    if isinstance(value, str):
        return TextValue(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BlobValue(bytes(value))
    raise TypeError(f"Cannot bind value of type {type(value).__name__}")


# --- Timestamps for the fixed created_at / updated_at columns ---


def encode_timestamp(moment: datetime | None = None) -> float:
    """Seconds since the epoch; naive datetimes are taken as UTC."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def decode_timestamp(raw: Any) -> datetime | None:
    if raw is None:
        return None
    try:
        return datetime.fromtimestamp(float(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


# --- Encoding ---


def encode_value(value: Any) -> Any:
    """Encode an application value into a store primitive.

    None and empty strings become NULL, lists/tuples/sets/mappings become JSON text,
    datetimes become ``YYYY-MM-DD HH:MM`` and dates ``YYYY-MM-DD``. Other scalars pass
    through unchanged.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value if value != "" else None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value) if isinstance(value, (set, frozenset)) else list(value)
        return json.dumps(items, default=_json_default)
    if isinstance(value, dict):
        return json.dumps(value, default=_json_default)
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, Decimal):
        return float(value)
    return value


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.strftime(DATETIME_FORMAT)
    if isinstance(obj, date):
        return obj.strftime(DATE_FORMAT)
    if isinstance(obj, Decimal):
        return float(obj)
    return str(obj)


# --- Decoding ---


def parse_date(text: str) -> date:
    """Parse ``YYYY-MM-DD``; a trailing time component is ignored."""
    return datetime.strptime(text.strip()[:10], DATE_FORMAT).date()


def parse_datetime(text: str) -> datetime:
    """Parse ``YYYY-MM-DD HH:MM`` (seconds and a ``T`` separator are accepted)."""
    text = text.strip()
    for fmt in _DATETIME_INPUT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized datetime '{text}', expected YYYY-MM-DD HH:MM")


def decode_value(raw: Any, property_type: PropertyType) -> Any:
    """Decode a store primitive into the application value for ``property_type``.

    Values whose shape does not match the declared type degrade to a display string.
    Text-typed values holding a JSON object come back as the mapping they were encoded from.
    """
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray, memoryview)):
        raw = bytes(raw).decode("utf-8", errors="replace")

    try:
        if property_type is PropertyType.NUMBER:
            return _decode_number(raw)
        if property_type is PropertyType.CURRENCY:
            return float(raw)
        if property_type is PropertyType.DATE:
            if isinstance(raw, (int, float)):
                return datetime.fromtimestamp(raw, tz=timezone.utc).date()
            return parse_date(raw)
        if property_type is PropertyType.DATETIME:
            if isinstance(raw, (int, float)):
                return datetime.fromtimestamp(raw, tz=timezone.utc)
            return parse_datetime(raw)
        if property_type.is_list:
            decoded = json.loads(raw) if isinstance(raw, str) else raw
            if not isinstance(decoded, list):
                return _display(raw)
            return decoded
    except (TypeError, ValueError, OverflowError, OSError):
        return _display(raw)

    if isinstance(raw, str) and raw.startswith("{"):
        return _decode_mapping(raw)
    return _display(raw)


def _decode_mapping(raw: str) -> Any:
    try:
        decoded = json.loads(raw)
    except ValueError:
        return raw
    return decoded if isinstance(decoded, dict) else raw


def _decode_number(raw: Any) -> Any:
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if math.isfinite(raw) and raw.is_integer():
            return int(raw)
        return raw
    return int(str(raw).strip())


def _display(raw: Any) -> str:
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw)


def format_for_display(value: Any, property_type: PropertyType | None = None) -> str:
    """Render a decoded value as editable text."""
    if value is None:
        return ""
    if property_type is PropertyType.CURRENCY and isinstance(value, (int, float)):
        return f"{value:.2f}"
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, default=_json_default)
    return str(value)
