"""Fake implementations for testing the engine and surfaces."""

import itertools
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from dataclasses import replace
from typing import Any

from todo_palette.core.database.store import StoreError
from todo_palette.core.reactive.observable import Subscription
from todo_palette.core.search.query import DEFAULT_SORT, apply_sort
from todo_palette.models.todo import Todo, TodoId, TodoStatus
from todo_palette.protocols import PredicateProtocol

NOW_MS = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000


class FakeStore:
    """In-memory fake for TodoStore.

    Evaluates predicates with ``matches``, records every fetch, and fails
    fetches on demand while ``fail_fetches`` is set.
    """

    def __init__(self) -> None:
        self.todos: dict[TodoId, Todo] = {}
        self.fetches: list[PredicateProtocol | None] = []
        self.fail_fetches = False
        self.fail_writes = False
        self._listeners: list[Callable[[], None]] = []
        self._ids = itertools.count(1)
        self._clock = itertools.count(1_000, 1_000)

    def on_change(self, callback: Callable[[], None]) -> Subscription:
        self._listeners.append(callback)
        return Subscription(lambda: self._listeners.remove(callback))

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    def fetch(
        self,
        predicate: PredicateProtocol | None = None,
        *,
        sort: Sequence[Any] = DEFAULT_SORT,
    ) -> list[Todo]:
        self.fetches.append(predicate)
        if self.fail_fetches:
            raise StoreError("disk on fire")
        todos = [t for t in self.todos.values() if predicate is None or predicate.matches(t)]
        return apply_sort(todos, sort)

    def get(self, todo_id: TodoId) -> Todo | None:
        return self.todos.get(todo_id)

    def count(self) -> int:
        return len(self.todos)

    def add(self, title: str, *, content: str | None = None,
            status: TodoStatus = TodoStatus.PENDING, created_at: int | None = None) -> Todo:
        """Insert without notifying listeners (test setup)."""
        created = next(self._clock) if created_at is None else created_at
        todo = Todo(
            id=f"t{next(self._ids)}",
            title=title,
            content=content,
            status=status,
            created_at=created,
            updated_at=created,
        )
        self.todos[todo.id] = todo
        return todo

    def create(
        self,
        title: str,
        *,
        content: str | None = None,
        status: TodoStatus = TodoStatus.PENDING,
        created_at: int | None = None,
        updated_at: int | None = None,
    ) -> Todo:
        if self.fail_writes:
            raise StoreError("read-only")
        if not title.strip():
            raise ValueError("title is required")
        todo = self.add(title.strip(), content=content or None, status=status,
                        created_at=created_at)
        self._notify()
        return todo

    def update(
        self,
        todo_id: TodoId,
        *,
        title: str | None = None,
        content: str | None = None,
        status: TodoStatus | None = None,
    ) -> Todo | None:
        if self.fail_writes:
            raise StoreError("read-only")
        current = self.todos.get(todo_id)
        if current is None:
            return None
        changes: dict[str, Any] = {"updated_at": next(self._clock)}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content or None
        if status is not None:
            changes["status"] = status
        updated = replace(current, **changes)
        self.todos[todo_id] = updated
        self._notify()
        return updated

    def delete(self, todo_id: TodoId) -> bool:
        if self.fail_writes:
            raise StoreError("read-only")
        if self.todos.pop(todo_id, None) is None:
            return False
        self._notify()
        return True


class DeferredRunner:
    """Fetch runner that holds jobs until the test completes them."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Callable[[], Any], Callable[[Future], None]]] = []

    @property
    def pending(self) -> int:
        return len(self.jobs)

    def run(self, job: Callable[[], Any], on_done: Callable[[Future], None]) -> None:
        self.jobs.append((job, on_done))

    def complete(self, index: int = 0) -> None:
        """Run the job at ``index`` and deliver its result."""
        job, on_done = self.jobs.pop(index)
        future: Future = Future()
        try:
            future.set_result(job())
        except Exception as exc:
            future.set_exception(exc)
        on_done(future)

    def complete_all(self) -> None:
        while self.jobs:
            self.complete()
