"""Snapshot reconstruction for the history event store.

Implements IHistoryProvider on top of StateChangeEventStore: every stored
event of a subject becomes a Change whose value is a fresh instance of the
subject's type, populated from the event's compressed state snapshot.

Relationship slots of a snapshot are populated the way the ORM would have
left them on a copy of the live object: copied from the live instance when
one is given, otherwise bound from the recorded references through an
optional IReferenceLoader.
"""

from __future__ import annotations

import json
import zlib
from datetime import datetime, timezone
from typing import Any

from pydantic import TypeAdapter, ValidationError

from history_explorer.core.interfaces import IReferenceLoader
from history_explorer.core.models import Change
from history_explorer.core.schema import SchemaRegistry, TypeRegistration
from history_explorer.errors import SnapshotDecodeError
from history_explorer.observability import get_logger
from history_explorer.time_machine.event_store import StateChangeEventStore
from history_explorer.time_machine.events import StateChangeEvent

logger = get_logger(__name__)


def _from_ms(timestamp_ms: int) -> datetime:
    """Convert Unix epoch milliseconds to a UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def _decompress_snapshot(snapshot: bytes) -> dict[str, Any]:
    """Decompress a zlib-compressed JSON snapshot to a dict.

    Args:
        snapshot: zlib-compressed UTF-8 encoded JSON bytes.

    Returns:
        The decompressed Python dict.

    Raises:
        SnapshotDecodeError: If decompression or JSON parsing fails.
    """
    try:
        raw = zlib.decompress(snapshot)
        return json.loads(raw.decode("utf-8"))
    except (zlib.error, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SnapshotDecodeError(f"Failed to decompress state snapshot: {exc}") from exc


class EventStoreHistoryProvider:
    """History provider reading changes from a StateChangeEventStore.

    Args:
        event_store: The append-only store holding the change events.
        registry: Schema registry used to construct and populate snapshots.
        loader: Optional loader binding relationship references of snapshots
            materialized without a live instance.
    """

    def __init__(
        self,
        event_store: StateChangeEventStore,
        registry: SchemaRegistry,
        loader: IReferenceLoader | None = None,
    ) -> None:
        """Initialize with an event store and registry.

        Args:
            event_store: The store to query.
            registry: Registry of the domain types.
            loader: Optional reference loader.
        """
        self._store = event_store
        self._registry = registry
        self._loader = loader
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    def changes_for(
        self,
        model_type: type,
        reference: str,
        live: Any | None = None,
    ) -> list[Change]:
        """Return one Change per stored event of the subject, oldest first.

        Args:
            model_type: The subject's domain type.
            reference: The subject's durable reference.
            live: The live instance, when materialized.

        Returns:
            The subject's changes. DELETED events yield a Change whose value
            is None.

        Raises:
            SchemaError: If model_type is not registered.
            SnapshotDecodeError: If a stored snapshot is corrupt.
        """
        registration = self._registry.registration_for(model_type)
        events = self._store.events_for(registration.model_type.__name__, reference)
        logger.debug(
            "Loaded change events",
            entity_type=registration.model_type.__name__,
            entity_reference=reference,
            count=len(events),
        )
        return [self._to_change(registration, event, live) for event in events]

    def _to_change(
        self,
        registration: TypeRegistration,
        event: StateChangeEvent,
        live: Any | None,
    ) -> Change:
        value = None
        if event.new_state_snapshot is not None:
            state = _decompress_snapshot(event.new_state_snapshot)
            value = self._materialize(registration, state, live)
        return Change(
            value=value,
            timestamp=_from_ms(event.timestamp_ms),
            author=event.actor_id,
            change_type=event.change_type,
        )

    def _materialize(
        self,
        registration: TypeRegistration,
        state: dict[str, Any],
        live: Any | None,
    ) -> Any:
        instance = self._registry.new_instance(registration.model_type)

        for name, raw in state.get("fields", {}).items():
            if name not in registration.fields:
                # Field dropped from the registration since the event was recorded
                continue
            setattr(instance, name, self._coerce(registration, name, raw))

        if live is not None:
            self._registry.copy_relationships(live, instance)
        elif self._loader is not None:
            self._bind(self._loader, registration, instance, state.get("relationships", {}))
        return instance

    def _bind(
        self,
        loader: IReferenceLoader,
        registration: TypeRegistration,
        instance: Any,
        references: dict[str, Any],
    ) -> None:
        for relationship in registration.relationships:
            recorded = references.get(relationship.name)
            if recorded is None:
                continue
            if relationship.plural:
                members = [loader.load(relationship.target, reference) for reference in recorded]
                registration.setter(
                    instance,
                    relationship.name,
                    [member for member in members if member is not None],
                )
            else:
                related = loader.load(relationship.target, recorded)
                if related is not None:
                    registration.setter(instance, relationship.name, related)

    def _coerce(self, registration: TypeRegistration, name: str, raw: Any) -> Any:
        field_type = registration.field_types.get(name)
        if raw is None or field_type is None:
            return raw
        adapter = self._adapters.get(field_type)
        if adapter is None:
            adapter = TypeAdapter(field_type)
            self._adapters[field_type] = adapter
        try:
            return adapter.validate_python(raw)
        except ValidationError as exc:
            raise SnapshotDecodeError(
                f"Field {registration.model_type.__name__}.{name} does not match its declared type: {exc}"
            ) from exc
