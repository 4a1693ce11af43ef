"""SuperNOVA: user-defined entity classes backed by a dynamic SQLite schema."""

__version__ = "0.1.0"

from supernova.catalog import SchemaCatalog
from supernova.config import SupernovaConfig, load_config
from supernova.database import Database, open_database
from supernova.errors import (
    ClassNotFoundError,
    ConfigError,
    ConsistencyError,
    NotFoundError,
    PersistenceError,
    PropertyNameCollisionError,
    SupernovaError,
    UnsupportedOperationError,
    ValidationError,
)
from supernova.executor import Executor
from supernova.logs import EventLog, LogEvent, LogSeverity, MemoryLogSink
from supernova.migration import MigrationPreview, MigrationResult, MigrationRunner
from supernova.objects import ObjectStore, decode_object
from supernova.tables import DynamicTableManager
from supernova.types import (
    Action,
    EntityClass,
    EntityObject,
    Property,
    PropertySpec,
    PropertyType,
    SearchMatchType,
    State,
    StateSpec,
    StateType,
    TriggerType,
)
from supernova.validation import coerce_input, prepare_object_values, validate_class_input

__all__ = [
    "__version__",
    "Database",
    "open_database",
    "SupernovaConfig",
    "load_config",
    "Executor",
    "SchemaCatalog",
    "DynamicTableManager",
    "ObjectStore",
    "decode_object",
    "MigrationRunner",
    "MigrationPreview",
    "MigrationResult",
    "EventLog",
    "LogEvent",
    "LogSeverity",
    "MemoryLogSink",
    "EntityClass",
    "Property",
    "State",
    "Action",
    "EntityObject",
    "PropertySpec",
    "StateSpec",
    "PropertyType",
    "StateType",
    "TriggerType",
    "SearchMatchType",
    "SupernovaError",
    "PersistenceError",
    "ValidationError",
    "PropertyNameCollisionError",
    "ConsistencyError",
    "UnsupportedOperationError",
    "NotFoundError",
    "ClassNotFoundError",
    "ConfigError",
    "coerce_input",
    "prepare_object_values",
    "validate_class_input",
]
