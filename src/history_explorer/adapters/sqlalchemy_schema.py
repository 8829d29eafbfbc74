"""SQLAlchemy integration: schema registrations derived from ORM mappers.

Translates each mapped class into a TypeRegistration once, at registration
time: column attributes become snapshot fields, relationship properties
become navigable relationships (uselist → plural) and the primary key
becomes the durable reference ("<ClassName>:<pk>").

Relationship slots are written with set_committed_value so rehydration
never fires attribute events, backrefs or flushes against the session.

Key exports:
- register_mapped(...)      : register one mapped class
- register_declarative(...) : register every class of a declarative base
- mapped_reference(obj)     : reference of a mapped instance
- SessionReferenceLoader    : IReferenceLoader backed by Session.get
"""

from collections.abc import Iterable
from typing import Any

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import JSON, inspect
from sqlalchemy.orm import Mapper, Session
from sqlalchemy.orm.attributes import set_committed_value

from history_explorer.core.schema import Relationship, SchemaRegistry, TypeRegistration
from history_explorer.errors import SchemaError
from history_explorer.observability import get_logger

logger = get_logger(__name__)

_KEY_SEPARATOR = "/"


def _mapper_for(model_type: type) -> Mapper[Any]:
    mapper = inspect(model_type, raiseerr=False)
    if not isinstance(mapper, Mapper):
        raise SchemaError(model_type, "class is not mapped by SQLAlchemy")
    return mapper


def _column_python_types(mapper: Mapper[Any]) -> dict[str, Any]:
    types: dict[str, Any] = {}
    for attr in mapper.column_attrs:
        column_type = attr.columns[0].type
        if isinstance(column_type, JSON):
            # JSON documents round-trip through the snapshot unchanged
            continue
        try:
            types[attr.key] = column_type.python_type
        except NotImplementedError:
            # Custom column types without a Python type are stored as-is
            continue
    return types


def _replace_committed(obj: Any, name: str, members: Iterable[Any]) -> None:
    set_committed_value(obj, name, list(members))


def mapped_reference(obj: Any) -> str | None:
    """Return the durable reference of a mapped instance.

    Args:
        obj: Any instance of a mapped class, persistent or not.

    Returns:
        "<ClassName>:<pk>" (composite keys joined with "/"), or None when
        any primary key column is still unset.
    """
    mapper = _mapper_for(type(obj))
    key = mapper.primary_key_from_instance(obj)
    if any(value is None for value in key):
        return None
    return f"{type(obj).__name__}:{_KEY_SEPARATOR.join(str(value) for value in key)}"


def register_mapped(registry: SchemaRegistry, model_type: type, **overrides: Any) -> TypeRegistration:
    """Register a SQLAlchemy mapped class with the schema registry.

    Args:
        registry: The registry to add the class to.
        model_type: A mapped class.
        **overrides: Keyword arguments forwarded to SchemaRegistry.register,
            replacing the values derived from the mapper (e.g. copyable=False
            or a custom reference function).

    Returns:
        The stored TypeRegistration.

    Raises:
        SchemaError: If model_type is not mapped.
    """
    mapper = _mapper_for(model_type)
    options: dict[str, Any] = {
        "fields": [attr.key for attr in mapper.column_attrs],
        "relationships": [
            Relationship(name=prop.key, target=prop.mapper.class_, plural=bool(prop.uselist))
            for prop in mapper.relationships
        ],
        "reference": mapped_reference,
        "field_types": _column_python_types(mapper),
        "setter": set_committed_value,
        "member_replacer": _replace_committed,
    }
    options.update(overrides)
    registration = registry.register(model_type, **options)
    logger.debug(
        "Registered mapped class",
        model_type=model_type.__name__,
        fields=len(registration.fields),
        relationships=[relationship.name for relationship in registration.relationships],
    )
    return registration


def register_declarative(registry: SchemaRegistry, base: type) -> list[TypeRegistration]:
    """Register every class mapped by a declarative base.

    Args:
        registry: The registry to add the classes to.
        base: A DeclarativeBase subclass (or legacy declarative_base()).

    Returns:
        The registrations, ordered by class name.
    """
    mappers = sorted(base.registry.mappers, key=lambda mapper: mapper.class_.__name__)  # type: ignore[attr-defined]
    return [register_mapped(registry, mapper.class_) for mapper in mappers]


class SessionReferenceLoader:
    """Loads live instances for references produced by mapped_reference.

    Args:
        session: The SQLAlchemy session to load through.
    """

    def __init__(self, session: Session) -> None:
        """Initialize with a session.

        Args:
            session: An open synchronous Session.
        """
        self._session = session

    def load(self, model_type: type, reference: str) -> Any | None:
        """Return the persistent instance for a reference, or None if it no longer exists.

        Raises:
            SchemaError: If the reference does not belong to model_type or
                its key cannot be parsed into the primary key types.
        """
        mapper = _mapper_for(model_type)
        prefix, _, raw_key = reference.partition(":")
        if prefix != model_type.__name__ or not raw_key:
            raise SchemaError(model_type, f"reference {reference!r} does not identify this type")

        columns = mapper.primary_key
        parts = [raw_key] if len(columns) == 1 else raw_key.split(_KEY_SEPARATOR)
        if len(parts) != len(columns):
            raise SchemaError(model_type, f"reference {reference!r} has the wrong key arity")

        key = []
        for column, part in zip(columns, parts):
            try:
                key.append(TypeAdapter(column.type.python_type).validate_python(part))
            except (NotImplementedError, ValidationError) as exc:
                raise SchemaError(model_type, f"cannot parse key {part!r} of {reference!r}") from exc

        return self._session.get(model_type, key[0] if len(key) == 1 else tuple(key))
