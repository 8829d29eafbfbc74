"""State change publisher for the history event store.

Provides a dependency-injected helper that application code uses to record
domain object mutations to the append-only event store. Handles UUID
generation, timestamp calculation, field extraction, state compression,
and version numbering so callers only supply the object itself.
"""

from __future__ import annotations

import json
import uuid
import zlib
from datetime import datetime, timezone
from typing import Any

from pydantic_core import to_jsonable_python

from history_explorer.core.models import ChangeType, as_utc
from history_explorer.core.schema import SchemaRegistry
from history_explorer.observability import get_logger
from history_explorer.settings import Settings
from history_explorer.time_machine.event_store import StateChangeEventStore
from history_explorer.time_machine.events import StateChangeEvent

logger = get_logger(__name__)


def _ts_ms(dt: datetime) -> int:
    """Convert a datetime to Unix epoch milliseconds.

    Args:
        dt: A timezone-aware datetime. If naive, treated as UTC.

    Returns:
        Unix epoch milliseconds as an integer.
    """
    return int(as_utc(dt).timestamp() * 1000)


def _compress_state(state: dict[str, Any], level: int = 6) -> bytes:
    """Serialize and zlib-compress a state dict.

    Args:
        state: The Python dict representing object state. Values must be
            JSON-compatible (see to_jsonable_python).
        level: zlib compression level.

    Returns:
        zlib-compressed UTF-8 encoded JSON bytes.
    """
    raw = json.dumps(state, separators=(",", ":")).encode("utf-8")
    return zlib.compress(raw, level=level)


class StateChangePublisher:
    """Publishes domain object state changes to the event store.

    The object's registered fields are captured by value; its relationships
    are captured as the durable references of the related objects, so a
    snapshot can later be re-bound to live objects without a live root.

    Args:
        event_store: The append-only StateChangeEventStore to write to.
        registry: Schema registry describing the published types.
        settings: Optional settings; snapshot_compression_level is read
            from them.
    """

    def __init__(
        self,
        event_store: StateChangeEventStore,
        registry: SchemaRegistry,
        settings: Settings | None = None,
    ) -> None:
        """Initialize with an event store and registry.

        Args:
            event_store: The append-only store that receives published events.
            registry: Registry used to extract fields and references.
            settings: Optional settings instance.
        """
        self._store = event_store
        self._registry = registry
        self._compression_level = (settings or Settings()).snapshot_compression_level

    def capture_state(self, obj: Any) -> dict[str, Any]:
        """Return the JSON-compatible state recorded for an object.

        Args:
            obj: A registered domain object.

        Returns:
            Dict with "fields" (registered field values) and "relationships"
            (reference, or list of references, per relationship). Related
            objects without a reference are recorded as None and omitted
            from reference lists.
        """
        registration = self._registry.registration_for(type(obj))
        fields = {name: to_jsonable_python(getattr(obj, name, None)) for name in registration.fields}

        relationships: dict[str, Any] = {}
        for relationship in registration.relationships:
            value = getattr(obj, relationship.name, None)
            if relationship.plural:
                relationships[relationship.name] = [
                    self._registry.reference_of(member)
                    for member in (value or [])
                    if self._registry.has_reference(member)
                ]
            elif value is not None and self._registry.has_reference(value):
                relationships[relationship.name] = self._registry.reference_of(value)
            else:
                relationships[relationship.name] = None

        return {"fields": fields, "relationships": relationships}

    def publish(
        self,
        obj: Any,
        change_type: ChangeType = "UPDATED",
        actor_id: str | None = None,
        timestamp: datetime | None = None,
        correlation_id: str | None = None,
    ) -> str:
        """Publish a state change event for obj and return the generated event_id.

        Args:
            obj: The changed domain object. Must carry a durable reference.
            change_type: CREATED, UPDATED or DELETED. DELETED events carry no
                state snapshot.
            actor_id: Optional identifier of the actor who made the change.
            timestamp: When the change happened. Defaults to now (UTC).
            correlation_id: Optional request correlation ID. Auto-generated
                as a UUID v4 string if not provided.

        Returns:
            The event_id of the newly published StateChangeEvent.

        Raises:
            SchemaError: If obj's type is not registered or obj has no reference.
        """
        registration = self._registry.registration_for(type(obj))
        reference = self._registry.reference_of(obj)
        entity_type = registration.model_type.__name__
        timestamp_ms = _ts_ms(timestamp or datetime.now(timezone.utc))

        new_snapshot: bytes | None = None
        if change_type != "DELETED":
            new_snapshot = _compress_state(self.capture_state(obj), level=self._compression_level)

        event = StateChangeEvent(
            event_id=str(uuid.uuid4()),
            entity_type=entity_type,
            entity_reference=reference,
            timestamp_ms=timestamp_ms,
            entity_version=self._store.latest_version(entity_type, reference) + 1,
            change_type=change_type,
            new_state_snapshot=new_snapshot,
            actor_id=actor_id,
            correlation_id=correlation_id or str(uuid.uuid4()),
        )

        self._store.append(event)
        logger.debug(
            "Published state change",
            entity_type=entity_type,
            entity_reference=reference,
            change_type=change_type,
            version=event.entity_version,
        )
        return event.event_id
