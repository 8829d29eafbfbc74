"""History explorer: point-in-time rehydration of persisted object graphs.

Reconstructs an object, and optionally every object reachable from it
through navigable relationships, as it existed at a given time, from an
append-only history of timestamped snapshots.
"""

from history_explorer.core.explorer import CollectionMode, HistoryExplorer
from history_explorer.core.identity import IdentityComparer, ReferenceIdentity, ValueIdentity
from history_explorer.core.models import Change
from history_explorer.core.schema import Relationship, SchemaRegistry, TypeRegistration
from history_explorer.core.selector import latest_version, latest_where, select_version
from history_explorer.errors import HistoryExplorerError, SchemaError, SnapshotDecodeError
from history_explorer.settings import Settings

__all__ = [
    "Change",
    "CollectionMode",
    "HistoryExplorer",
    "HistoryExplorerError",
    "IdentityComparer",
    "ReferenceIdentity",
    "Relationship",
    "SchemaError",
    "SchemaRegistry",
    "Settings",
    "SnapshotDecodeError",
    "TypeRegistration",
    "ValueIdentity",
    "latest_version",
    "latest_where",
    "select_version",
]
