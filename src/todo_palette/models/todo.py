"""Domain models for todo records and their search projections."""

from dataclasses import dataclass
from enum import StrEnum

TodoId = str


class TodoStatus(StrEnum):
    """Lifecycle status of a todo."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> "TodoStatus":
        """Decode a stored value, falling back to pending for unknown values."""
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING

    @property
    def display_name(self) -> str:
        return _STATUS_NAMES[self]

    @property
    def is_completed(self) -> bool:
        return self is TodoStatus.COMPLETED


_STATUS_NAMES = {
    TodoStatus.PENDING: "Pending",
    TodoStatus.IN_PROGRESS: "In Progress",
    TodoStatus.COMPLETED: "Completed",
    TodoStatus.ARCHIVED: "Archived",
}


class StatusFilter(StrEnum):
    """Coarse status filter offered by the command palette."""

    ALL = "all"
    OPEN = "open"
    DONE = "done"

    @property
    def title(self) -> str:
        return self.value.capitalize()

    @property
    def statuses(self) -> frozenset[TodoStatus] | None:
        """Statuses admitted by this filter, or None when unrestricted."""
        if self is StatusFilter.OPEN:
            return frozenset({TodoStatus.PENDING, TodoStatus.IN_PROGRESS})
        if self is StatusFilter.DONE:
            return frozenset({TodoStatus.COMPLETED, TodoStatus.ARCHIVED})
        return None


@dataclass(frozen=True)
class Todo:
    """A todo record as owned by the store.

    Timestamps are milliseconds since the epoch.
    """

    id: TodoId
    title: str
    content: str | None
    status: TodoStatus
    created_at: int
    updated_at: int

    @property
    def is_completed(self) -> bool:
        return self.status.is_completed


@dataclass(frozen=True)
class SearchResult:
    """Read-only projection of a todo, produced fresh by every query."""

    id: TodoId
    title: str
    content: str | None
    status: TodoStatus
    created_at: int
    updated_at: int

    @classmethod
    def from_todo(cls, todo: Todo) -> "SearchResult":
        return cls(
            id=todo.id,
            title=todo.title,
            content=todo.content,
            status=todo.status,
            created_at=todo.created_at,
            updated_at=todo.updated_at,
        )


@dataclass(frozen=True)
class Segment:
    """A run of text, flagged when it matched the search query."""

    text: str
    is_match: bool
