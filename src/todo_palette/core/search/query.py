"""Predicate and sort composition for todo queries.

Every predicate can be evaluated in memory (``matches``) and compiled to a
SQLite WHERE fragment (``to_sql``). The SQL form relies on the ``fold_contains``
function that the SQLite store registers on its connection.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from operator import attrgetter
from typing import Any

from todo_palette.core.search.text import contains_folded, fold_text
from todo_palette.models.todo import StatusFilter, Todo, TodoStatus
from todo_palette.protocols import PredicateProtocol

CONTAINS_FUNCTION = "fold_contains"

_SORTABLE_FIELDS = frozenset({"id", "title", "status", "created_at", "updated_at"})


@dataclass(frozen=True)
class StatusIn:
    """Status membership test."""

    statuses: frozenset[TodoStatus]

    def matches(self, todo: Todo) -> bool:
        return todo.status in self.statuses

    def to_sql(self) -> tuple[str, list[Any]]:
        values = sorted(s.value for s in self.statuses)
        placeholders = ",".join("?" * len(values))
        return f"status IN ({placeholders})", list(values)


@dataclass(frozen=True)
class TextContains:
    """Case- and diacritic-insensitive substring test over title OR content."""

    needle: str

    @property
    def folded(self) -> str:
        return fold_text(self.needle)

    def matches(self, todo: Todo) -> bool:
        folded = self.folded
        return contains_folded(todo.title, folded) or contains_folded(todo.content or "", folded)

    def to_sql(self) -> tuple[str, list[Any]]:
        folded = self.folded
        return (
            f"({CONTAINS_FUNCTION}(title, ?) OR {CONTAINS_FUNCTION}(COALESCE(content, ''), ?))",
            [folded, folded],
        )


@dataclass(frozen=True)
class AllOf:
    """Logical AND of several predicates."""

    parts: tuple[PredicateProtocol, ...]

    def matches(self, todo: Todo) -> bool:
        return all(p.matches(todo) for p in self.parts)

    def to_sql(self) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for part in self.parts:
            sql, part_params = part.to_sql()
            clauses.append(f"({sql})")
            params.extend(part_params)
        return " AND ".join(clauses), params


@dataclass(frozen=True)
class MatchNothing:
    """Always-false predicate, used only when blank queries are configured to match nothing."""

    def matches(self, todo: Todo) -> bool:
        return False

    def to_sql(self) -> tuple[str, list[Any]]:
        return "0", []


def build_predicate(
    search_text: str,
    status_filter: StatusFilter,
    *,
    blank_query_matches_all: bool = True,
) -> PredicateProtocol | None:
    """Compose the predicate for a palette query.

    Args:
        search_text: Raw search field contents.
        status_filter: Selected status filter.
        blank_query_matches_all: When False, text made only of whitespace
            matches nothing instead of being ignored.

    Returns:
        The combined predicate, or None for an unconditional fetch.
    """
    parts: list[PredicateProtocol] = []

    statuses = status_filter.statuses
    if statuses is not None:
        parts.append(StatusIn(statuses))

    trimmed = search_text.strip()
    if trimmed:
        parts.append(TextContains(trimmed))
    elif search_text and not blank_query_matches_all:
        return MatchNothing()

    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return AllOf(tuple(parts))


@dataclass(frozen=True)
class SortKey:
    """One ordering term."""

    field: str
    descending: bool = False

    def __post_init__(self) -> None:
        if self.field not in _SORTABLE_FIELDS:
            msg = f"Cannot sort todos by {self.field!r}"
            raise ValueError(msg)

    def to_sql(self) -> str:
        return f"{self.field} {'DESC' if self.descending else 'ASC'}"


# Newest first; the id tiebreak keeps equal timestamps deterministic.
DEFAULT_SORT: tuple[SortKey, ...] = (SortKey("created_at", descending=True), SortKey("id"))


def order_by_sql(sort: Sequence[SortKey]) -> str:
    return ", ".join(key.to_sql() for key in sort)


def apply_sort(todos: Iterable[Todo], sort: Sequence[SortKey]) -> list[Todo]:
    """Sort in memory with the same semantics as ``order_by_sql``."""
    ordered = list(todos)
    for key in reversed(sort):
        ordered.sort(key=attrgetter(key.field), reverse=key.descending)
    return ordered
