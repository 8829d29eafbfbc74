"""Object identity used for deduplication during rehydration.

An object's identity is one of two variants, decided by its type's
registration:

- ReferenceIdentity: the type derives durable references and the instance
  has one. Two instances of the same type with the same reference are the
  same subject, however many Python objects represent it.
- ValueIdentity: everything else. Falls back to the type's own equality.

Hashing derives from the same identity as equality, so a dict keyed by
identities never splits one subject across two entries.
"""

from dataclasses import dataclass
from typing import Any

from history_explorer.core.interfaces import IReferenceResolver


@dataclass(frozen=True, slots=True)
class ReferenceIdentity:
    """Identity of an instance carrying a durable reference."""

    model_type: type
    reference: str


class ValueIdentity:
    """Identity of an instance without a reference.

    Equal when the wrapped objects have the same type and compare equal.
    Unhashable objects hash by their type alone, so two instances that
    compare equal always land in the same bucket.
    """

    __slots__ = ("obj", "_hash")

    def __init__(self, obj: Any) -> None:
        self.obj = obj
        try:
            self._hash = hash((type(obj), obj))
        except TypeError:
            self._hash = hash(type(obj))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValueIdentity):
            return NotImplemented
        if self.obj is other.obj:
            return True
        if type(self.obj) is not type(other.obj):
            return False
        return bool(self.obj == other.obj)

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        return f"ValueIdentity({self.obj!r})"


Identity = ReferenceIdentity | ValueIdentity


class IdentityComparer:
    """Equality and hashing of domain objects, preferring durable references.

    Args:
        resolver: Reference resolver deciding which objects carry references.
    """

    def __init__(self, resolver: IReferenceResolver) -> None:
        self._resolver = resolver

    def identity_of(self, obj: Any) -> Identity:
        if self._resolver.has_reference(obj):
            return ReferenceIdentity(type(obj), self._resolver.reference_of(obj))
        return ValueIdentity(obj)

    def equals(self, a: Any, b: Any) -> bool:
        """Return True if a and b denote the same subject.

        Both None are equal, exactly one None is unequal, and objects of
        different runtime types are never equal. When both carry a durable
        reference the references decide; when neither does the type's own
        equality does. An instance with a reference never equals one
        without.
        """
        if a is None and b is None:
            return True
        if a is None or b is None:
            return False
        return self.identity_of(a) == self.identity_of(b)

    def hash(self, obj: Any) -> int:
        """Hash consistent with equals."""
        if obj is None:
            return hash(None)
        return hash(self.identity_of(obj))
