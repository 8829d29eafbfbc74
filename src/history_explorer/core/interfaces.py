"""Abstract interfaces (Protocol classes) for the history explorer.

Defines the contracts between the rehydration core and its collaborators
using Python's typing.Protocol. The core depends on these protocols, never
on concrete adapters. This enables testing with mock collaborators.

Protocols defined:
- IHistoryProvider
- INavigationSchema
- IReferenceResolver
- IReferenceLoader
"""

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

from history_explorer.core.models import Change

if TYPE_CHECKING:
    from history_explorer.core.schema import Relationship


class IHistoryProvider(Protocol):
    """Source of the recorded changes of a subject."""

    def changes_for(
        self,
        model_type: type,
        reference: str,
        live: Any | None = None,
    ) -> Sequence[Change]:
        """Return every recorded change of one subject, in no particular order.

        Args:
            model_type: The domain type of the subject.
            reference: The subject's durable reference.
            live: The live instance, when one is materialized. Providers may
                use it to populate relationship slots of the snapshots.

        Returns:
            The complete, unordered set of changes. Empty when the subject
            has no recorded history.
        """
        ...


class INavigationSchema(Protocol):
    """Relationship metadata and relationship slot access for domain types."""

    def navigable_relationships(self, model_type: type) -> Sequence["Relationship"]:
        """Return the navigable relationships declared for a type.

        Raises:
            SchemaError: If the type is unknown to the schema.
        """
        ...

    def is_rehydratable(self, model_type: type) -> bool:
        """Return True if snapshots of the type can be constructed independently.

        Raises:
            SchemaError: If the type is unknown to the schema.
        """
        ...

    def get_relationship_value(self, obj: Any, name: str) -> Any | None:
        """Return the current value of a relationship slot, or None if absent."""
        ...

    def set_relationship_value(self, obj: Any, name: str, value: Any) -> None:
        """Assign a singular relationship slot."""
        ...

    def replace_members(self, obj: Any, name: str, members: Iterable[Any]) -> None:
        """Replace the membership of a plural relationship slot."""
        ...


class IReferenceResolver(Protocol):
    """Durable reference lookup for live instances."""

    def has_reference(self, obj: Any) -> bool:
        """Return True if the object carries a durable reference."""
        ...

    def reference_of(self, obj: Any) -> str:
        """Return the object's durable reference.

        Raises:
            SchemaError: If the object has no reference.
        """
        ...


class IReferenceLoader(Protocol):
    """Materializes live instances from durable references."""

    def load(self, model_type: type, reference: str) -> Any | None:
        """Return the live instance for a reference, or None if it no longer exists."""
        ...
