"""Append-only in-memory event store for object change history.

Stores StateChangeEvent instances keyed by (entity_type, entity_reference)
with events sorted by timestamp_ms. All write operations are append-only;
no updates or deletes are permitted.

A production deployment would back this with a database table partitioned
by time, but the in-memory implementation keeps tests hermetic.
"""

from __future__ import annotations

import bisect

from history_explorer.time_machine.events import StateChangeEvent

_Key = tuple[str, str]


class StateChangeEventStore:
    """Append-only event store for StateChangeEvent instances.

    Maintains per-subject event lists sorted by timestamp_ms. Events sharing
    a timestamp keep their append order.

    All methods are synchronous because in-memory access does not block.
    """

    def __init__(self) -> None:
        """Initialize an empty event store."""
        # { (entity_type, entity_reference): list[StateChangeEvent] } sorted by timestamp_ms
        self._events: dict[_Key, list[StateChangeEvent]] = {}
        # Parallel list of timestamp_ms ints for bisect operations
        self._timestamps: dict[_Key, list[int]] = {}

    def append(self, event: StateChangeEvent) -> None:
        """Append a StateChangeEvent to the store.

        Uses bisect to maintain sort order by timestamp_ms.

        Args:
            event: The immutable StateChangeEvent to store. event_id
                uniqueness is the caller's responsibility.
        """
        key = (event.entity_type, event.entity_reference)
        if key not in self._events:
            self._events[key] = []
            self._timestamps[key] = []

        # Insert after any event with the same timestamp
        index = bisect.bisect_right(self._timestamps[key], event.timestamp_ms)
        self._events[key].insert(index, event)
        self._timestamps[key].insert(index, event.timestamp_ms)

    def events_for(
        self,
        entity_type: str,
        entity_reference: str,
        end_ts: int | None = None,
    ) -> list[StateChangeEvent]:
        """Return the events of one subject, optionally up to end_ts (inclusive).

        Args:
            entity_type: Registered type name of the subject.
            entity_reference: Durable reference of the subject.
            end_ts: Optional upper bound timestamp in milliseconds (inclusive).

        Returns:
            List of StateChangeEvent sorted by timestamp_ms ascending.
        """
        key = (entity_type, entity_reference)
        if key not in self._events:
            return []
        events = self._events[key]
        if end_ts is None:
            return list(events)
        high = bisect.bisect_right(self._timestamps[key], end_ts)
        return events[:high]

    def latest_version(self, entity_type: str, entity_reference: str) -> int:
        """Return the entity_version of the subject's newest event, or 0 if it has none."""
        events = self._events.get((entity_type, entity_reference))
        if not events:
            return 0
        return max(event.entity_version for event in events)

    def count(self, entity_type: str | None = None) -> int:
        """Return the number of stored events, optionally for one entity type.

        Args:
            entity_type: Restrict the count to this type name.

        Returns:
            Number of events (0 if none).
        """
        return sum(
            len(events)
            for (stored_type, _), events in self._events.items()
            if entity_type is None or stored_type == entity_type
        )

    def get_all_events(self) -> list[StateChangeEvent]:
        """Return every stored event in timestamp ascending order."""
        events = [event for subject_events in self._events.values() for event in subject_events]
        events.sort(key=lambda event: event.timestamp_ms)
        return events
