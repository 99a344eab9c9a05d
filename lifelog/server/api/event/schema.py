"""
Lifelog Event API Schemas.

Three layers of models live here:
- storage records (``EventRecord``, ``EventTypeRecord``, ``EventTagRecord``)
  decoded field by field from rows by the gateway;
- the composed domain ``Event`` built by the assembler;
- wire models (``EventDraft`` for create, ``EventPayload`` for reads) and the
  response envelope. Row IDs and audit fields never reach the wire models.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator

from lifelog.core.common import AppBaseModel, format_rfc3339, to_utc
from lifelog.database.sqlcmd import STATUS_ACTIVE

EVENT_TYPE_START = "start"
EVENT_TYPE_END = "end"


# =============================================================================
# Storage records
# =============================================================================

class AuditRecord(AppBaseModel):
    row_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    status: str = STATUS_ACTIVE


class ReferenceRecord(AuditRecord):
    """Row of a small deduplicated lookup table (type or tag)."""
    value: str


class EventTypeRecord(ReferenceRecord):
    pass


class EventTagRecord(ReferenceRecord):
    pass


class EventRecord(AuditRecord):
    """Raw events row; the type is only known by its row ID."""
    external_id: str
    title: str
    note: str = ""
    user_created_at: datetime
    type_row_id: int


class Event(AppBaseModel):
    """Event with its type and tags hydrated from storage."""
    record: EventRecord
    type: EventTypeRecord
    tags: List[EventTagRecord] = Field(default_factory=list)

    @property
    def external_id(self) -> str:
        return self.record.external_id

    def to_payload(self) -> "EventPayload":
        return EventPayload(
            id=self.external_id,
            title=self.record.title,
            note=self.record.note,
            created_at=self.record.user_created_at,
            type=EventTypeValue(value=self.type.value),
            tags=[EventTagValue(value=tag.value) for tag in self.tags],
        )


# =============================================================================
# Wire models
# =============================================================================

class ReferenceValue(AppBaseModel):
    value: str = Field(..., description="Reference value, matched case-sensitively", examples=["start"])

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value cannot be empty")
        return v


class EventTypeValue(ReferenceValue):
    pass


class EventTagValue(ReferenceValue):
    pass


class EventDraft(AppBaseModel):
    """Create-event request body."""

    title: str = Field(..., description="Event title", examples=["Test Event"])
    note: str = Field(default="", description="Free-text note", examples=["Some Test note"])
    created_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("created_at", "timestamp"),
        description="User-supplied creation time (RFC3339); stored in UTC",
        examples=["2018-11-25T11:26:08Z"],
    )
    type: EventTypeValue
    tags: List[EventTagValue] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return to_utc(v)

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v: Any) -> Any:
        return [] if v is None else v

    def distinct_tag_values(self) -> List[str]:
        """Tag values in input order with repeats removed."""
        return list(dict.fromkeys(tag.value for tag in self.tags))


class EventPayload(AppBaseModel):
    """Event as exposed to API clients."""

    id: str
    title: str
    note: str
    created_at: datetime
    type: EventTypeValue
    tags: List[EventTagValue]

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return format_rfc3339(value)


class EventIDResponse(AppBaseModel):
    event_id: str = Field(..., serialization_alias="eventID")


class EventResponse(AppBaseModel):
    event: EventPayload


class EventsResponse(AppBaseModel):
    events: List[EventPayload]


# =============================================================================
# Envelope
# =============================================================================

class ResponseError(BaseModel):
    code: int
    message: str


class Envelope(BaseModel):
    """``{success, data, error}`` wrapper used by every endpoint."""

    success: bool
    data: Any = None
    error: Optional[ResponseError] = None

    @classmethod
    def ok(cls, data: Any) -> "Envelope":
        return cls(success=True, data=data, error=None)

    @classmethod
    def fail(cls, code: int, message: str) -> "Envelope":
        return cls(success=False, data=None, error=ResponseError(code=code, message=message))
