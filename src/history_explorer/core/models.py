"""Value types shared by the history explorer components.

Change is the only record the rehydration algorithm consumes: a timestamped
snapshot of one subject's own field values. Relationships are never part of
a Change; the explorer rebuilds them separately.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ChangeType = Literal["CREATED", "UPDATED", "DELETED"]


def as_utc(dt: datetime) -> datetime:
    """Return dt as a timezone-aware datetime, treating naive values as UTC.

    Args:
        dt: Any datetime.

    Returns:
        The same instant with tzinfo set.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class Change(BaseModel):
    """Immutable record of a subject's state at one instant.

    Attributes:
        value: Snapshot instance of the domain type, disconnected from the
            live object. None when the change records a deletion.
        timestamp: When the change was recorded (timezone-aware, UTC if the
            source was naive).
        author: Identifier of the actor that made the change, when known.
        change_type: CREATED, UPDATED or DELETED.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: Any = Field(..., description="Snapshot of the subject's fields at this change")
    timestamp: datetime = Field(..., description="Instant the change was recorded")
    author: str | None = Field(default=None, description="Actor that made the change")
    change_type: ChangeType = Field(default="UPDATED", description="Nature of the change")

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)
