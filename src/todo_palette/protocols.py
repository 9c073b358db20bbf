"""Protocols for dependency injection into the search engine and surfaces."""

from collections.abc import Callable, Sequence
from concurrent.futures import Future
from typing import Any, Protocol, TypeVar, runtime_checkable

from todo_palette.core.reactive.observable import Subscription
from todo_palette.models.todo import Todo, TodoId, TodoStatus

T = TypeVar("T")


@runtime_checkable
class PredicateProtocol(Protocol):
    """A record filter usable both in memory and compiled to SQL."""

    def matches(self, todo: Todo) -> bool:
        """Return True if the todo satisfies the condition."""
        ...

    def to_sql(self) -> tuple[str, list[Any]]:
        """Return a WHERE fragment and its parameters."""
        ...


@runtime_checkable
class TodoStoreProtocol(Protocol):
    """Protocol for record stores consumed by the engine and surfaces."""

    def fetch(
        self,
        predicate: PredicateProtocol | None = None,
        *,
        sort: Sequence[Any] = (),
    ) -> list[Todo]:
        """Return todos matching ``predicate`` in ``sort`` order."""
        ...

    def on_change(self, callback: Callable[[], None]) -> Subscription:
        """Register a callback invoked after every committed change."""
        ...

    def get(self, todo_id: TodoId) -> Todo | None:
        """Return a single todo, or None when it does not exist."""
        ...

    def count(self) -> int:
        """Return the total number of stored todos."""
        ...

    def create(
        self,
        title: str,
        *,
        content: str | None = None,
        status: TodoStatus = TodoStatus.PENDING,
        created_at: int | None = None,
        updated_at: int | None = None,
    ) -> Todo:
        """Insert a new todo and return it."""
        ...

    def update(
        self,
        todo_id: TodoId,
        *,
        title: str | None = None,
        content: str | None = None,
        status: TodoStatus | None = None,
    ) -> Todo | None:
        """Update fields of a todo; None when the todo does not exist."""
        ...

    def delete(self, todo_id: TodoId) -> bool:
        """Delete a todo; False when it did not exist."""
        ...


class TimerHandle(Protocol):
    """A pending timer callback."""

    def cancel(self) -> None:
        """Prevent the callback from running."""
        ...


@runtime_checkable
class SchedulerProtocol(Protocol):
    """Source of cancellable delayed callbacks."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds on the controlling thread."""
        ...


@runtime_checkable
class FetchRunnerProtocol(Protocol):
    """Runs a fetch job and reports completion on the controlling thread."""

    def run(self, job: Callable[[], T], on_done: Callable[[Future[T]], None]) -> None:
        """Execute ``job`` and call ``on_done`` with its finished future."""
        ...
