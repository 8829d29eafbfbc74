"""State change event schema for the history event store.

Every mutation of a tracked domain object is captured as an immutable
StateChangeEvent and appended to the event store. The event carries a
snapshot of the object's own fields after the change (as compressed JSON
bytes) plus the references of the objects it pointed at, enabling
reconstruction of the object at any point in time.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class StateChangeEvent(BaseModel):
    """Immutable record of a domain object state change.

    Attributes:
        event_id: UUID v4 string, globally unique event identifier.
        entity_type: Registered type name of the changed object.
        entity_reference: Durable reference of the changed object.
        timestamp_ms: Unix epoch milliseconds (UTC) when the change occurred.
        entity_version: Monotonically increasing version of the object,
            starting at 1 for its first recorded event.
        change_type: The nature of the state change.
        new_state_snapshot: zlib-compressed JSON bytes of the object's fields
            and relationship references after the change. None for DELETED
            events.
        actor_id: Identifier of the user, job, or system that made the change.
        correlation_id: Request correlation ID for tracing.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(..., description="UUID v4 string, globally unique event identifier")
    entity_type: str = Field(..., description="Registered type name of the changed object")
    entity_reference: str = Field(..., description="Durable reference of the changed object")
    timestamp_ms: int = Field(..., description="Unix epoch milliseconds (UTC)")
    entity_version: int = Field(..., ge=1, description="Version of the object after this change")
    change_type: Literal["CREATED", "UPDATED", "DELETED"] = Field(
        ..., description="The nature of the state change"
    )
    new_state_snapshot: bytes | None = Field(
        default=None,
        description="zlib-compressed JSON bytes of state after change. None for DELETED events.",
    )
    actor_id: str | None = Field(
        default=None, description="Identifier of the actor that triggered the change"
    )
    correlation_id: str | None = Field(
        default=None, description="Request correlation ID for tracing"
    )
