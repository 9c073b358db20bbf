"""Shared test fixtures."""

import itertools
from collections.abc import Iterator
from typing import Any

import pytest
from loguru import logger

from tests.unit.fakes import NOW_MS, FakeStore
from todo_palette.core.database.store import TodoStore, seed_sample_todos
from todo_palette.core.reactive.scheduling import ManualScheduler
from todo_palette.core.selection.bus import SelectionBus


@pytest.fixture
def store() -> Iterator[TodoStore]:
    """In-memory SQLite store whose clock ticks one second per write."""
    ticks = itertools.count(NOW_MS, 1000)
    todo_store = TodoStore.open(":memory:", clock=lambda: next(ticks))
    yield todo_store
    todo_store.close()


@pytest.fixture
def seeded_store(store: TodoStore) -> TodoStore:
    """Store holding the three sample todos, created 8h, 4h and 2h before NOW_MS."""
    seed_sample_todos(store, now_ms=NOW_MS)
    return store


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def bus() -> SelectionBus:
    return SelectionBus()


@pytest.fixture
def log_records() -> Iterator[list[dict[str, Any]]]:
    """Loguru records emitted during the test."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
