"""Metadata records and closed enums for entity classes, properties, states, and actions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PropertyType(str, Enum):
    """Declared type of a custom property."""

    TEXT = "text"
    LONG_TEXT = "longText"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    DATETIME = "datetime"
    DURATION = "duration"
    LOCATION = "location"
    IMAGES = "images"
    FILES = "files"
    AUDIOS = "audios"
    REFERENCE_UNIQUE = "referenceUnique"
    REFERENCE_MULTIPLE = "referenceMultiple"

    @property
    def is_reference(self) -> bool:
        return self in (PropertyType.REFERENCE_UNIQUE, PropertyType.REFERENCE_MULTIPLE)

    @property
    def is_list(self) -> bool:
        return self in _LIST_TYPES


_LIST_TYPES = frozenset(
    {
        PropertyType.IMAGES,
        PropertyType.FILES,
        PropertyType.AUDIOS,
        PropertyType.REFERENCE_MULTIPLE,
    }
)


class StateType(str, Enum):
    """Lifecycle category of a state."""

    INACTIVE = "inactive"
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"

    @classmethod
    def parse(cls, value: str) -> StateType:
        """Accept stored values plus the camelCase and display spellings."""
        normalized = value.strip().lower().replace(" ", "_")
        if normalized == "inprogress":
            normalized = "in_progress"
        return cls(normalized)


class TriggerType(str, Enum):
    """How an action is triggered."""

    MANUAL = "manual"
    AUTOMATIC = "automatic"


class SearchMatchType(str, Enum):
    """Predicate shape used by ObjectStore.search_objects."""

    EXACT = "exact"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"


class EntityClass(BaseModel):
    """A user-defined type that owns properties, states, actions, and one physical table."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str | None = None
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class Property(BaseModel):
    """Typed field definition; maps 1:1 to a column of the class's physical table."""

    model_config = ConfigDict(frozen=True)

    id: str
    entity_class_id: str
    name: str
    type: PropertyType
    is_required: bool = False
    order: int = 0
    reference_target_class_id: str | None = None

    @property
    def is_long_text(self) -> bool:
        return self.type is PropertyType.LONG_TEXT


class State(BaseModel):
    """Named lifecycle value an object can occupy."""

    model_config = ConfigDict(frozen=True)

    id: str
    entity_class_id: str
    name: str
    type: StateType = StateType.INACTIVE
    icon: str | None = None
    color: str | None = None
    order: int = 0


class Action(BaseModel):
    """Named operation gated by the object's current state."""

    model_config = ConfigDict(frozen=True)

    id: str
    entity_class_id: str
    name: str
    icon: str | None = None
    description: str | None = None
    trigger_type: TriggerType = TriggerType.MANUAL
    order: int = 0
    trigger_state_id: str | None = None
    allowed_state_ids: frozenset[str] = Field(default_factory=frozenset)

    def is_allowed_in(self, state_id: str) -> bool:
        """An empty allow-list permits every state."""
        return not self.allowed_state_ids or state_id in self.allowed_state_ids


class PropertySpec(BaseModel):
    """Input for creating a property together with its class."""

    name: str
    type: PropertyType = PropertyType.TEXT
    is_required: bool = False
    reference_target_class_id: str | None = None


class StateSpec(BaseModel):
    """Input for creating a state together with its class."""

    name: str
    type: StateType = StateType.INACTIVE
    icon: str | None = None
    color: str | None = None


class EntityObject(BaseModel):
    """An object row after typed decoding against its class's properties."""

    id: str
    name: str
    icon: str | None = None
    current_state_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    values: dict[str, Any] = Field(default_factory=dict)
