"""Tests for the schema registry.

Covers: registration-time capability checks, relationship metadata lookup,
fail-fast schema errors, relationship slot access, references, and the
snapshot helpers used by history providers.

Run with: pytest tests/test_schema.py -v
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from history_explorer.core.schema import Relationship, SchemaRegistry
from history_explorer.errors import SchemaError
from tests.conftest import Author, Book, Sketch


@dataclass
class Shelf:
    """Dataclass with a set-valued relationship and typed fields."""

    id: int = 0
    label: str = ""
    books: set = field(default_factory=set)


class TestCapabilities:
    """is_rehydratable reflects registration-time capability checks."""

    def test_default_constructible_registered_type_is_rehydratable(self, registry: SchemaRegistry) -> None:
        assert registry.is_rehydratable(Author)

    def test_type_requiring_arguments_is_not_rehydratable(self, registry: SchemaRegistry) -> None:
        assert not registry.is_rehydratable(Sketch)

    def test_factory_makes_type_rehydratable(self) -> None:
        schema = SchemaRegistry()
        schema.register(Sketch, fields=("id", "caption"), factory=lambda: Sketch(0, ""))

        assert schema.is_rehydratable(Sketch)

    def test_copyable_false_excludes_type(self) -> None:
        schema = SchemaRegistry()
        schema.register(Book, fields=("id",), copyable=False)

        assert not schema.is_rehydratable(Book)

    def test_capability_of_unregistered_type_fails_fast(self) -> None:
        with pytest.raises(SchemaError, match="not registered"):
            SchemaRegistry().is_rehydratable(Author)


class TestMetadata:
    """Relationship metadata lookups."""

    def test_navigable_relationships_in_declaration_order(self, registry: SchemaRegistry) -> None:
        names = [relationship.name for relationship in registry.navigable_relationships(Author)]

        assert names == ["mentor", "books", "portrait"]
        assert registry.registration_for(Author).relationship("books").plural

    def test_unregistered_type_fails_fast(self) -> None:
        with pytest.raises(SchemaError, match="not registered"):
            SchemaRegistry().navigable_relationships(Author)

    def test_subclass_resolves_to_registered_ancestor(self, registry: SchemaRegistry) -> None:
        class GhostWriter(Author):
            pass

        assert registry.registration_for(GhostWriter).model_type is Author
        assert registry.is_rehydratable(GhostWriter)

    def test_unknown_relationship_name_fails_fast(self, registry: SchemaRegistry) -> None:
        with pytest.raises(SchemaError, match="no navigable relationship"):
            registry.get_relationship_value(Author(id=1), "publisher")

    def test_missing_relationship_slot_fails_fast(self, registry: SchemaRegistry) -> None:
        author = Author(id=1)
        del author.mentor

        with pytest.raises(SchemaError, match="missing"):
            registry.get_relationship_value(author, "mentor")

    def test_field_types_derived_from_type_hints(self) -> None:
        schema = SchemaRegistry()
        registration = schema.register(Shelf, fields=("id", "label"))

        assert registration.field_types == {"id": int, "label": str}


class TestSlots:
    """Relationship slot reads and writes."""

    def test_set_relationship_value(self, registry: SchemaRegistry) -> None:
        author = Author(id=1)
        mentor = Author(id=2)

        registry.set_relationship_value(author, "mentor", mentor)

        assert registry.get_relationship_value(author, "mentor") is mentor

    def test_replace_members_keeps_list_container(self, registry: SchemaRegistry) -> None:
        books = [Book(id=1), Book(id=2)]
        author = Author(id=1, books=books)
        replacement = Book(id=3)

        registry.replace_members(author, "books", [replacement])

        assert author.books is books
        assert books == [replacement]

    def test_replace_members_supports_sets(self) -> None:
        schema = SchemaRegistry()
        schema.register(Shelf, fields=("id",), relationships=(Relationship("books", Book, plural=True),))
        shelf = Shelf(id=1, books={"a", "b"})
        container = shelf.books

        schema.replace_members(shelf, "books", iter(["c"]))

        assert shelf.books is container
        assert container == {"c"}


class TestReferences:
    """IReferenceResolver behaviour."""

    def test_reference_of_registered_instance(self, registry: SchemaRegistry) -> None:
        assert registry.has_reference(Author(id=5))
        assert registry.reference_of(Author(id=5)) == "Author:5"

    def test_instance_without_reference(self, registry: SchemaRegistry) -> None:
        author = Author()

        assert not registry.has_reference(author)
        with pytest.raises(SchemaError, match="no durable reference"):
            registry.reference_of(author)

    def test_unregistered_and_none_have_no_reference(self, registry: SchemaRegistry) -> None:
        assert not registry.has_reference(None)
        assert not registry.has_reference(Shelf())


class TestSnapshotHelpers:
    """Helpers history providers use to build snapshots."""

    def test_new_instance_of_non_rehydratable_type_raises(self, registry: SchemaRegistry) -> None:
        with pytest.raises(SchemaError, match="not rehydratable"):
            registry.new_instance(Sketch)

    def test_copy_relationships_gives_new_collection_container(self, registry: SchemaRegistry) -> None:
        mentor = Author(id=2)
        books = [Book(id=1)]
        live = Author(id=1, mentor=mentor, books=books)
        copy = Author(id=1)

        registry.copy_relationships(live, copy)

        assert copy.mentor is mentor
        assert copy.books == books
        assert copy.books is not books
