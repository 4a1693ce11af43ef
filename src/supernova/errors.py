"""Structured error types for SuperNOVA."""

from __future__ import annotations


class SupernovaError(Exception):
    """Base error for all SuperNOVA errors."""


class PersistenceError(SupernovaError):
    """Raised when a statement fails to prepare, bind, or execute against the store."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence error during {operation}: {detail}")


class ValidationError(SupernovaError):
    """Raised when caller-supplied data violates a model invariant."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class PropertyNameCollisionError(ValidationError):
    """Raised when a property name sanitizes to a column that is already taken."""

    def __init__(self, name: str, column: str, reason: str) -> None:
        self.name = name
        self.column = column
        super().__init__(f"Property '{name}' cannot use column '{column}': {reason}")


class ConsistencyError(SupernovaError):
    """Raised when catalog metadata and the physical schema disagree."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        self.problems = problems or []
        super().__init__(message)


class UnsupportedOperationError(SupernovaError):
    """Raised for schema operations the engine deliberately does not perform."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        message = f"Unsupported operation: {operation}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class NotFoundError(SupernovaError, LookupError):
    """Raised when a referenced metadata row or physical table does not exist."""

    def __init__(self, kind: str, ident: str) -> None:
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} not found: {ident}")


class ClassNotFoundError(NotFoundError):
    """Raised when an entity class (or its physical table) no longer exists."""

    def __init__(self, class_id: str) -> None:
        super().__init__("Entity class", class_id)


class ConfigError(SupernovaError):
    """Raised when configuration cannot be loaded or is invalid."""
