"""Schema registry: navigation metadata and references for domain types.

Every domain type the explorer walks is registered once with its snapshot
fields, its navigable relationships and, optionally, how to derive its
durable reference. All capability checks (default construction, copying)
are computed at registration time, so the traversal never inspects types on
the fly.

The registry implements both INavigationSchema and IReferenceResolver.
"""

import copy
import inspect
import typing
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from history_explorer.errors import SchemaError

ReferenceFn = Callable[[Any], str | None]
SlotSetter = Callable[[Any, str, Any], None]
MemberReplacer = Callable[[Any, str, Iterable[Any]], None]


@dataclass(frozen=True, slots=True)
class Relationship:
    """A navigable relationship declared on a domain type.

    Attributes:
        name: Attribute name of the relationship slot.
        target: Type of the related object (element type for plural).
        plural: True for one-to-many, False for one-to-zero-or-one.
    """

    name: str
    target: type
    plural: bool = False


def _replace_in_place(obj: Any, name: str, members: Iterable[Any]) -> None:
    """Clear a collection slot and refill it, keeping the container object."""
    collection = getattr(obj, name)
    members = list(members)
    collection.clear()
    if hasattr(collection, "append"):
        for member in members:
            collection.append(member)
    else:
        for member in members:
            collection.add(member)


def _copy_container(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, (set, frozenset)):
        return set(value)
    return copy.copy(value)


def _default_constructible(model_type: type) -> bool:
    try:
        inspect.signature(model_type).bind()
    except TypeError:
        return False
    except ValueError:
        # No introspectable signature; assume the no-argument form works.
        return True
    return True


def _declared_field_types(model_type: type, fields: Sequence[str]) -> dict[str, Any]:
    try:
        hints = typing.get_type_hints(model_type)
    except (NameError, TypeError):
        return {}
    return {name: hints[name] for name in fields if name in hints}


@dataclass(slots=True)
class TypeRegistration:
    """Everything the explorer knows about one domain type.

    Attributes:
        model_type: The registered class.
        fields: Names of the fields captured in snapshots.
        relationships: Navigable relationships, in traversal order.
        reference: Derives an instance's durable reference. None means the
            type compares by value identity.
        factory: Zero-argument constructor. Defaults to the class itself
            when it can be called without arguments.
        copyable: Declared opt-out from rehydration. Snapshots are built by
            constructing a new instance through factory and assigning
            fields, never by copying a live instance, so no copy support is
            probed; False excludes types whose instances must not be
            duplicated (for example ones holding open resources).
        field_types: Declared Python type per field, used to coerce decoded
            snapshot values.
        setter: Assigns a relationship slot.
        member_replacer: Replaces the membership of a plural slot.
    """

    model_type: type
    fields: tuple[str, ...] = ()
    relationships: tuple[Relationship, ...] = ()
    reference: ReferenceFn | None = None
    factory: Callable[[], Any] | None = None
    copyable: bool = True
    field_types: dict[str, Any] = field(default_factory=dict)
    setter: SlotSetter = setattr
    member_replacer: MemberReplacer = _replace_in_place

    @property
    def rehydratable(self) -> bool:
        return self.copyable and self.factory is not None

    def relationship(self, name: str) -> Relationship:
        for relationship in self.relationships:
            if relationship.name == name:
                return relationship
        raise SchemaError(self.model_type, f"no navigable relationship named {name!r}")


class SchemaRegistry:
    """Registry mapping domain types to their TypeRegistration.

    Lookups walk the MRO, so a subclass of a registered type resolves to the
    nearest registered ancestor unless registered itself.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._registrations: dict[type, TypeRegistration] = {}

    def register(
        self,
        model_type: type,
        *,
        fields: Sequence[str] = (),
        relationships: Sequence[Relationship] = (),
        reference: ReferenceFn | None = None,
        factory: Callable[[], Any] | None = None,
        copyable: bool = True,
        field_types: dict[str, Any] | None = None,
        setter: SlotSetter | None = None,
        member_replacer: MemberReplacer | None = None,
    ) -> TypeRegistration:
        """Register a domain type.

        Args:
            model_type: The class to register.
            fields: Field names captured in snapshots.
            relationships: Navigable relationships of the type.
            reference: Optional function deriving an instance's durable
                reference (None when the instance has none yet).
            factory: Optional zero-argument constructor. When omitted the
                class itself is used if its signature accepts no arguments;
                otherwise the type is not rehydratable.
            copyable: Set False to exclude the type from rehydration. This is
                a declaration, not a probed capability.
            field_types: Declared Python type per field. Derived from the
                class's type hints when omitted.
            setter: Custom relationship slot writer. Defaults to setattr.
            member_replacer: Custom plural slot writer. Defaults to clearing
                and refilling the existing container in place.

        Returns:
            The stored TypeRegistration.
        """
        if factory is None and _default_constructible(model_type):
            factory = model_type
        registration = TypeRegistration(
            model_type=model_type,
            fields=tuple(fields),
            relationships=tuple(relationships),
            reference=reference,
            factory=factory,
            copyable=copyable,
            field_types=(
                dict(field_types)
                if field_types is not None
                else _declared_field_types(model_type, fields)
            ),
            setter=setter or setattr,
            member_replacer=member_replacer or _replace_in_place,
        )
        self._registrations[model_type] = registration
        return registration

    def registration_for(self, model_type: type) -> TypeRegistration:
        """Return the registration for a type or its nearest registered ancestor.

        Raises:
            SchemaError: If neither the type nor any ancestor is registered.
        """
        for klass in model_type.__mro__:
            registration = self._registrations.get(klass)
            if registration is not None:
                return registration
        raise SchemaError(model_type, "type is not registered with the schema")

    def is_registered(self, model_type: type) -> bool:
        return any(klass in self._registrations for klass in model_type.__mro__)

    # ------------------------------------------------------------------
    # INavigationSchema
    # ------------------------------------------------------------------

    def navigable_relationships(self, model_type: type) -> Sequence[Relationship]:
        return self.registration_for(model_type).relationships

    def is_rehydratable(self, model_type: type) -> bool:
        """Return the registration-time rehydration capability of a type.

        Raises:
            SchemaError: If the type is not registered. A relationship
                declared against an unregistered type is a schema mismatch,
                not a type to skip.
        """
        return self.registration_for(model_type).rehydratable

    def get_relationship_value(self, obj: Any, name: str) -> Any | None:
        registration = self.registration_for(type(obj))
        registration.relationship(name)
        try:
            return getattr(obj, name)
        except AttributeError as exc:
            raise SchemaError(type(obj), f"relationship slot {name!r} is missing") from exc

    def set_relationship_value(self, obj: Any, name: str, value: Any) -> None:
        registration = self.registration_for(type(obj))
        registration.relationship(name)
        registration.setter(obj, name, value)

    def replace_members(self, obj: Any, name: str, members: Iterable[Any]) -> None:
        registration = self.registration_for(type(obj))
        registration.relationship(name)
        registration.member_replacer(obj, name, members)

    # ------------------------------------------------------------------
    # IReferenceResolver
    # ------------------------------------------------------------------

    def has_reference(self, obj: Any) -> bool:
        if obj is None or not self.is_registered(type(obj)):
            return False
        reference = self.registration_for(type(obj)).reference
        return reference is not None and reference(obj) is not None

    def reference_of(self, obj: Any) -> str:
        registration = self.registration_for(type(obj))
        value = registration.reference(obj) if registration.reference is not None else None
        if value is None:
            raise SchemaError(type(obj), "instance has no durable reference")
        return value

    # ------------------------------------------------------------------
    # Snapshot support
    # ------------------------------------------------------------------

    def new_instance(self, model_type: type) -> Any:
        """Construct an empty instance of a rehydratable type.

        Raises:
            SchemaError: If the type cannot be default-constructed or copied.
        """
        registration = self.registration_for(model_type)
        if not registration.rehydratable:
            raise SchemaError(model_type, "type is not rehydratable")
        return registration.factory()  # type: ignore[misc]

    def copy_relationships(self, source: Any, target: Any) -> None:
        """Copy relationship slots from source onto target.

        Singular slots point at the same related objects; plural slots get a
        new container with the same members, so later in-place rebuilding of
        target never touches source's container.
        """
        registration = self.registration_for(type(source))
        for relationship in registration.relationships:
            value = getattr(source, relationship.name, None)
            if value is None:
                continue
            if relationship.plural:
                value = _copy_container(value)
            registration.setter(target, relationship.name, value)
