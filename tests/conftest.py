"""Test fixtures for history-explorer.

Provides:
- Author / Book / Sketch: a small plain-Python domain with singular,
  plural and non-rehydratable relationships
- RecordingHistoryProvider: an IHistoryProvider fake that records calls
- registry: a SchemaRegistry with the domain registered
- provider / explorer: wired collaborators for explorer tests
- make_change / at: helpers building Changes and UTC datetimes
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from history_explorer.core.explorer import HistoryExplorer
from history_explorer.core.models import Change
from history_explorer.core.schema import Relationship, SchemaRegistry
from history_explorer.settings import Settings


def at(seconds: int) -> datetime:
    """Return a UTC datetime `seconds` after a fixed epoch, for readable timelines."""
    return datetime.fromtimestamp(1_700_000_000 + seconds, tz=timezone.utc)


def make_change(value: Any, seconds: int, author: str | None = None) -> Change:
    """Build a Change recorded `seconds` after the fixed epoch."""
    return Change(value=value, timestamp=at(seconds), author=author)


class Sketch:
    """A type that cannot be constructed without arguments."""

    def __init__(self, sketch_id: int, caption: str) -> None:
        self.id = sketch_id
        self.caption = caption


class Author:
    """Domain object with a singular (mentor) and a plural (books) relationship."""

    def __init__(
        self,
        id: int | None = None,
        name: str | None = None,
        mentor: Author | None = None,
        books: list[Book] | None = None,
        portrait: Sketch | None = None,
    ) -> None:
        self.id = id
        self.name = name
        self.mentor = mentor
        self.books = books
        self.portrait = portrait

    def __repr__(self) -> str:
        return f"Author(id={self.id!r}, name={self.name!r})"


class Book:
    """Domain object pointing back at its author."""

    def __init__(
        self,
        id: int | None = None,
        title: str | None = None,
        author: Author | None = None,
    ) -> None:
        self.id = id
        self.title = title
        self.author = author

    def __repr__(self) -> str:
        return f"Book(id={self.id!r}, title={self.title!r})"


def _reference(prefix: str):
    def reference(obj: Any) -> str | None:
        return f"{prefix}:{obj.id}" if obj.id is not None else None

    return reference


class RecordingHistoryProvider:
    """IHistoryProvider fake serving canned changes and recording every query."""

    def __init__(self) -> None:
        self._changes: dict[tuple[type, str], list[Change]] = {}
        self.calls: list[tuple[type, str]] = []

    def add(self, model_type: type, reference: str, *changes: Change) -> None:
        self._changes.setdefault((model_type, reference), []).extend(changes)

    def changes_for(self, model_type: type, reference: str, live: Any | None = None) -> list[Change]:
        self.calls.append((model_type, reference))
        return list(self._changes.get((model_type, reference), []))

    def calls_for(self, model_type: type, reference: str) -> int:
        return self.calls.count((model_type, reference))


@pytest.fixture()
def registry() -> SchemaRegistry:
    """Create a SchemaRegistry with Author and Book registered.

    Sketch is registered too, but is not rehydratable because its
    constructor requires arguments.

    Returns:
        The populated registry.
    """
    schema = SchemaRegistry()
    schema.register(
        Author,
        fields=("id", "name"),
        relationships=(
            Relationship("mentor", Author),
            Relationship("books", Book, plural=True),
            Relationship("portrait", Sketch),
        ),
        reference=_reference("Author"),
    )
    schema.register(
        Book,
        fields=("id", "title"),
        relationships=(Relationship("author", Author),),
        reference=_reference("Book"),
    )
    schema.register(Sketch, fields=("id", "caption"), reference=_reference("Sketch"))
    return schema


@pytest.fixture()
def provider() -> RecordingHistoryProvider:
    """Create an empty RecordingHistoryProvider.

    Returns:
        The provider; tests add changes with provider.add(...).
    """
    return RecordingHistoryProvider()


@pytest.fixture()
def settings() -> Settings:
    """Return default settings, independent of the environment."""
    return Settings(collection_mode="rehydrated")


@pytest.fixture()
def explorer(
    provider: RecordingHistoryProvider,
    registry: SchemaRegistry,
    settings: Settings,
) -> HistoryExplorer:
    """Create a HistoryExplorer over the recording provider and test registry.

    Returns:
        An explorer in the default (rehydrated) collection mode.
    """
    return HistoryExplorer(provider, registry, registry, settings=settings)
