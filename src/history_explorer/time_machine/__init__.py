"""Time machine: append-only change history backing the history explorer.

Provides event sourcing for domain object state changes: publishing
snapshots of changed objects, storing them in an append-only log, and
materializing them back into point-in-time instances for the explorer.
"""

from __future__ import annotations

from history_explorer.time_machine.events import StateChangeEvent
from history_explorer.time_machine.event_store import StateChangeEventStore
from history_explorer.time_machine.reconstructor import EventStoreHistoryProvider
from history_explorer.time_machine.publisher import StateChangePublisher

__all__ = [
    "StateChangeEvent",
    "StateChangeEventStore",
    "EventStoreHistoryProvider",
    "StateChangePublisher",
]
