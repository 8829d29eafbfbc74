"""Point-in-time rehydration of object graphs.

The history provider versions only the direct fields of one subject, never
its relationships: relationships are structural facts the ORM manages
independently of the change log. A snapshot therefore comes back with its
relationship slots pointing at live, present-day objects. Rebuilding a
consistent historical graph takes a second, recursive pass driven by the
relationship metadata of the navigation schema rather than by change
records.

WARNING: recursive rehydration rewrites relationship slots in place. When a
subject has no history before the target time the live instance itself is
returned and rewritten, so callers must treat the graph they passed in as
consumed. Rehydrate in a separate session/unit of work when the live graph
must stay intact.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from enum import Enum
from operator import attrgetter
from typing import Any

from history_explorer.core.identity import Identity, IdentityComparer
from history_explorer.core.interfaces import IHistoryProvider, INavigationSchema, IReferenceResolver
from history_explorer.core.models import Change
from history_explorer.core.resolver import ChangeResolver
from history_explorer.core.schema import Relationship
from history_explorer.core.selector import VersionSelector, select_version
from history_explorer.observability import get_logger
from history_explorer.settings import Settings

logger = get_logger(__name__)

Visited = dict[Identity, Any]
"""Identities rehydrated during one top-level call, mapped to their rehydrated object."""


class CollectionMode(str, Enum):
    """How plural relationships are rebuilt.

    REHYDRATED inserts each member's point-in-time snapshot, so collections
    reflect the target time like singular relationships do.

    LEGACY re-inserts the original live member and drops members already
    visited earlier in the traversal. Each member is marked visited before
    its snapshot is taken, so the snapshot of a member carrying a reference
    is never traversed and neither the member nor anything it points to is
    rewritten. The collection stays present-day. Kept for callers depending
    on that behaviour.
    """

    REHYDRATED = "rehydrated"
    LEGACY = "legacy"


class HistoryExplorer:
    """Answers "what did this object, and what it points to, look like at time T".

    Args:
        provider: History provider returning the recorded changes of subjects.
        schema: Navigation schema describing relationships of domain types.
        resolver: Reference resolver identifying live instances.
        settings: Optional settings; collection_mode is read from them.
        collection_mode: Overrides the settings' collection mode.
    """

    def __init__(
        self,
        provider: IHistoryProvider,
        schema: INavigationSchema,
        resolver: IReferenceResolver,
        settings: Settings | None = None,
        collection_mode: CollectionMode | str | None = None,
    ) -> None:
        settings = settings or Settings()
        self._changes = ChangeResolver(provider, resolver)
        self._schema = schema
        self._identity = IdentityComparer(resolver)
        self._collection_mode = CollectionMode(collection_mode or settings.collection_mode)

    @property
    def collection_mode(self) -> CollectionMode:
        return self._collection_mode

    # ------------------------------------------------------------------
    # Change queries
    # ------------------------------------------------------------------

    def changes_to(self, model: Any) -> list[Change]:
        """Return every recorded change of a live instance, unordered."""
        if model is None:
            return []
        return self._changes.changes_for(model)

    def changes_to_reference(self, model_type: type, reference: str | None) -> list[Change]:
        """Return every recorded change of the subject with the given reference, unordered."""
        if not reference:
            return []
        return self._changes.changes_for_reference(model_type, reference)

    def changes_to_property(
        self,
        model: Any,
        prop: str | Callable[[Any], Any],
    ) -> list[Change]:
        """Return the history of one property of a live instance.

        Changes are ordered oldest first; a change is reported only when the
        property value differs from the previously reported one. Deletions
        report None.

        Args:
            model: The live instance.
            prop: Attribute name (dotted paths allowed) or a getter applied
                to each snapshot.

        Returns:
            Changes whose value is the property value at that change.
        """
        getter = attrgetter(prop) if isinstance(prop, str) else prop
        ordered = sorted(self.changes_to(model), key=lambda change: change.timestamp)
        history: list[Change] = []
        for change in ordered:
            value = getter(change.value) if change.value is not None else None
            if history and history[-1].value == value:
                continue
            history.append(
                Change(
                    value=value,
                    timestamp=change.timestamp,
                    author=change.author,
                    change_type=change.change_type,
                )
            )
        return history

    def get_creation(self, model: Any) -> Change | None:
        """Return the earliest recorded change of a live instance, or None."""
        changes = self.changes_to(model)
        if not changes:
            return None
        return min(changes, key=lambda change: change.timestamp)

    # ------------------------------------------------------------------
    # Point-in-time snapshots
    # ------------------------------------------------------------------

    def get_object_at(
        self,
        model: Any,
        at: datetime,
        selector: VersionSelector | None = None,
        recursive: bool = False,
    ) -> Any | None:
        """Return a snapshot of a live instance as it was at a given time.

        Not every subject has a complete history: when nothing was recorded
        at or before at, the live instance is returned as-is.

        Args:
            model: The live instance. None yields None without querying history.
            at: The target time.
            selector: Optional version selection policy.
            recursive: Also rehydrate every reachable navigable relationship.
                Destructive on the live graph, see the module docstring.

        Returns:
            The snapshot, the live instance, or None.
        """
        if model is None:
            return None
        changes = self._changes.changes_for(model)
        return self._object_at(model, changes, at, selector, recursive)

    def get_object_at_reference(
        self,
        model_type: type,
        reference: str | None,
        at: datetime,
        selector: VersionSelector | None = None,
        recursive: bool = False,
    ) -> Any | None:
        """Return a snapshot of the subject with the given reference at a given time.

        There is no live instance to fall back to, so a subject with no
        change at or before at yields None.

        Args:
            model_type: The subject's domain type.
            reference: The subject's durable reference. Empty yields None
                without querying history.
            at: The target time.
            selector: Optional version selection policy.
            recursive: Also rehydrate every reachable navigable relationship.

        Returns:
            The snapshot or None.
        """
        if not reference:
            return None
        changes = self._changes.changes_for_reference(model_type, reference)
        return self._object_at(None, changes, at, selector, recursive)

    def _object_at(
        self,
        model: Any | None,
        changes: Sequence[Change],
        at: datetime,
        selector: VersionSelector | None,
        recursive: bool,
    ) -> Any | None:
        obj = model
        change = select_version(changes, at, selector)
        if change is not None:
            obj = change.value
        if recursive:
            visited: Visited = {}
            obj = self.rehydrate_children(obj, at, visited)
            logger.debug("Rehydrated object graph", at=at.isoformat(), subjects=len(visited))
        return obj

    # ------------------------------------------------------------------
    # Recursive rehydration
    # ------------------------------------------------------------------

    def rehydrate_children(self, root: Any, at: datetime, visited: Visited | None = None) -> Any | None:
        """Replace every reachable related object of root with its snapshot at time at.

        Args:
            root: The object whose relationships to rewrite. Mutated in place.
            at: The target time.
            visited: Identities already rehydrated in this traversal. A fresh
                map is allocated when omitted; never share one across calls.

        Returns:
            root, or None when root is None. A root already visited is
            returned untouched.

        Raises:
            SchemaError: If root's type is unknown to the navigation schema.
        """
        if root is None:
            return None
        if visited is None:
            visited = {}
        identity = self._identity.identity_of(root)
        if identity in visited:
            return root
        visited[identity] = root

        for relationship in self._schema.navigable_relationships(type(root)):
            if not self._schema.is_rehydratable(relationship.target):
                logger.debug(
                    "Skipping relationship with non-rehydratable target",
                    model_type=type(root).__name__,
                    relationship=relationship.name,
                    target=relationship.target.__name__,
                )
                continue
            value = self._schema.get_relationship_value(root, relationship.name)
            if value is None:
                continue
            if relationship.plural:
                self._rehydrate_collection(root, relationship, value, at, visited)
            else:
                self._rehydrate_related(root, relationship, value, at, visited)
        return root

    def _rehydrate_related(
        self,
        owner: Any,
        relationship: Relationship,
        value: Any,
        at: datetime,
        visited: Visited,
    ) -> None:
        identity = self._identity.identity_of(value)
        if identity in visited:
            rehydrated = visited[identity]
        else:
            snapshot = self.get_object_at(value, at)
            if snapshot is None:
                return
            rehydrated = self.rehydrate_children(snapshot, at, visited)
            if rehydrated is None:
                return
        self._schema.set_relationship_value(owner, relationship.name, rehydrated)

    def _rehydrate_collection(
        self,
        owner: Any,
        relationship: Relationship,
        collection: Any,
        at: datetime,
        visited: Visited,
    ) -> None:
        members = list(collection)
        rebuilt: list[Any] = []
        legacy = self._collection_mode is CollectionMode.LEGACY

        for member in members:
            identity = self._identity.identity_of(member)
            if identity in visited:
                if not legacy:
                    rebuilt.append(visited[identity])
                continue
            if legacy:
                # Marked before its snapshot is taken, so a snapshot sharing the
                # member's identity is not traversed.
                visited[identity] = member
                self.rehydrate_children(self.get_object_at(member, at), at, visited)
                rebuilt.append(member)
                continue
            snapshot = self.get_object_at(member, at)
            rehydrated = self.rehydrate_children(snapshot, at, visited)
            if rehydrated is not None:
                rebuilt.append(rehydrated)

        self._schema.replace_members(owner, relationship.name, rebuilt)
