"""Derivation of storage identifiers from user-supplied names and generated ids."""

from __future__ import annotations

import re
import uuid

_INVALID_CHARS_RE = re.compile(r"[^a-z0-9_]")

TABLE_PREFIX = "entity_"

# Fixed columns present on every physical object table.
FIXED_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "icon",
    "current_state_id",
    "created_at",
    "updated_at",
)


def new_id() -> str:
    """Generate a new opaque unique identifier (upper-case UUID4 string)."""
    return str(uuid.uuid4()).upper()


def sanitize_column_name(raw: str) -> str:
    """Lower-case, turn spaces into underscores, and drop anything outside [a-z0-9_].

    ``sanitize_column_name("Full Name!") == "full_name"``. Distinct names may sanitize to
    the same column; callers that need uniqueness must check for collisions.
    """
    return _INVALID_CHARS_RE.sub("", raw.lower().replace(" ", "_"))


def table_name(class_id: str) -> str:
    """Physical table name for a class id: ``entity_`` + id with ``-`` replaced by ``_``."""
    return TABLE_PREFIX + class_id.replace("-", "_")


def quote_identifier(identifier: str) -> str:
    """Quote an identifier for interpolation into SQL."""
    return '"' + identifier.replace('"', '""') + '"'
