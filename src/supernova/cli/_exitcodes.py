"""Process exit codes for the nova CLI."""

from __future__ import annotations

from supernova.errors import (
    ConfigError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2
DATABASE_ERROR = 3
NOT_FOUND = 4
VALIDATION_ERROR = 5


def for_error(error: BaseException) -> int:
    """Exit code for a library error."""
    if isinstance(error, NotFoundError):
        return NOT_FOUND
    if isinstance(error, ValidationError):
        return VALIDATION_ERROR
    if isinstance(error, PersistenceError):
        return DATABASE_ERROR
    if isinstance(error, ConfigError):
        return USAGE_ERROR
    return GENERAL_ERROR
