"""SQLite-backed todo store with change notification."""

import sqlite3
import threading
import time
import uuid
from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger

from todo_palette.core.database.schema import migrate_schema
from todo_palette.core.reactive.observable import Subscription
from todo_palette.core.search.query import CONTAINS_FUNCTION, DEFAULT_SORT, SortKey, order_by_sql
from todo_palette.core.search.text import contains_folded
from todo_palette.models.todo import Todo, TodoId, TodoStatus
from todo_palette.protocols import PredicateProtocol

_COLUMNS = "id, title, content, status, created_at, updated_at"


class StoreError(Exception):
    """A store operation failed at the storage layer."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _normalize_content(content: str | None) -> str | None:
    if content is None:
        return None
    stripped = content.strip()
    return stripped or None


def _row_to_todo(row: sqlite3.Row | tuple) -> Todo:
    return Todo(
        id=row[0],
        title=row[1],
        content=row[2],
        status=TodoStatus.from_db(row[3]),
        created_at=int(row[4]),
        updated_at=int(row[5]),
    )


class TodoStore:
    """Todo records in SQLite.

    Listeners registered with ``on_change`` run synchronously after every
    committed create, update or delete, outside the store lock so they may
    fetch again.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._conn = conn
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []
        try:
            conn.create_function(CONTAINS_FUNCTION, 2, _sql_contains, deterministic=True)
            migrate_schema(conn)
        except sqlite3.Error as exc:
            msg = f"Cannot initialize todo store: {exc}"
            raise StoreError(msg) from exc

    @classmethod
    def open(cls, db_path: str | Path, *, clock: Callable[[], int] = _now_ms) -> "TodoStore":
        """Open (or create) a store file. ``":memory:"`` gives a private in-memory store."""
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(str(db_path), check_same_thread=False)
        except sqlite3.Error as exc:
            msg = f"Cannot open todo database {db_path}: {exc}"
            raise StoreError(msg) from exc
        store = cls(conn, clock=clock)
        logger.debug("Todo store ready: {} ({} todos)", db_path, store.count())
        return store

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # --- change notification ---

    def on_change(self, callback: Callable[[], None]) -> Subscription:
        self._listeners.append(callback)

        def release() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return Subscription(release)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Todo store change listener {!r} failed", callback)

    # --- reads ---

    def fetch(
        self,
        predicate: PredicateProtocol | None = None,
        *,
        sort: Sequence[SortKey] = DEFAULT_SORT,
        limit: int | None = None,
    ) -> list[Todo]:
        """Return todos matching ``predicate`` in ``sort`` order.

        Args:
            predicate: Filter condition; None fetches everything.
            sort: Ordering terms.
            limit: Max rows to return.

        Raises:
            StoreError: The query failed.
        """
        sql = f"SELECT {_COLUMNS} FROM todos"
        params: list[object] = []
        if predicate is not None:
            where_sql, where_params = predicate.to_sql()
            sql += f" WHERE {where_sql}"
            params.extend(where_params)
        if sort:
            sql += f" ORDER BY {order_by_sql(sort)}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            with self._lock:
                rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            msg = f"Fetching todos failed: {exc}"
            raise StoreError(msg) from exc
        return [_row_to_todo(r) for r in rows]

    def get(self, todo_id: TodoId) -> Todo | None:
        try:
            with self._lock:
                row = self._conn.execute(
                    f"SELECT {_COLUMNS} FROM todos WHERE id = ?", (todo_id,)
                ).fetchone()
        except sqlite3.Error as exc:
            msg = f"Reading todo {todo_id} failed: {exc}"
            raise StoreError(msg) from exc
        return _row_to_todo(row) if row else None

    def count(self) -> int:
        try:
            with self._lock:
                return int(self._conn.execute("SELECT COUNT(*) FROM todos").fetchone()[0])
        except sqlite3.Error as exc:
            msg = f"Counting todos failed: {exc}"
            raise StoreError(msg) from exc

    # --- writes ---

    def create(
        self,
        title: str,
        *,
        content: str | None = None,
        status: TodoStatus = TodoStatus.PENDING,
        created_at: int | None = None,
        updated_at: int | None = None,
    ) -> Todo:
        """Insert a new todo.

        Raises:
            ValueError: The title is empty.
            StoreError: The insert failed.
        """
        title = title.strip()
        if not title:
            raise ValueError("title is required")

        created = self._clock() if created_at is None else created_at
        todo = Todo(
            id=uuid.uuid4().hex,
            title=title,
            content=_normalize_content(content),
            status=status,
            created_at=created,
            updated_at=max(created, updated_at if updated_at is not None else created),
        )
        self._write(
            f"INSERT INTO todos ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                todo.id, todo.title, todo.content, todo.status.value,
                todo.created_at, todo.updated_at,
            ),
        )
        logger.debug("Created todo {} ({})", todo.id, todo.status.value)
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
        """Update the given fields; an empty ``content`` clears it.

        Returns:
            The updated todo, or None when it no longer exists.

        Raises:
            ValueError: ``title`` is given but empty.
            StoreError: The update failed.
        """
        fields: list[str] = []
        params: list[object] = []

        if title is not None:
            title = title.strip()
            if not title:
                raise ValueError("title is required")
            fields.append("title = ?")
            params.append(title)

        if content is not None:
            fields.append("content = ?")
            params.append(_normalize_content(content))

        if status is not None:
            fields.append("status = ?")
            params.append(status.value)

        if not fields:
            return self.get(todo_id)

        current = self.get(todo_id)
        if current is None:
            return None

        fields.append("updated_at = ?")
        params.append(max(current.created_at, self._clock()))
        params.append(todo_id)

        rowcount = self._write(f"UPDATE todos SET {', '.join(fields)} WHERE id = ?", params)
        if rowcount == 0:
            return None
        self._notify()
        return self.get(todo_id)

    def delete(self, todo_id: TodoId) -> bool:
        rowcount = self._write("DELETE FROM todos WHERE id = ?", (todo_id,))
        if rowcount == 0:
            return False
        logger.debug("Deleted todo {}", todo_id)
        self._notify()
        return True

    def _write(self, sql: str, params: Sequence[object]) -> int:
        try:
            with self._lock:
                try:
                    cursor = self._conn.execute(sql, params)
                    self._conn.commit()
                except sqlite3.Error:
                    self._conn.rollback()
                    raise
        except sqlite3.Error as exc:
            msg = f"Writing todo failed: {exc}"
            raise StoreError(msg) from exc
        return cursor.rowcount


def _sql_contains(haystack: str | None, needle: str | None) -> int:
    if haystack is None or not needle:
        return 0
    return int(contains_folded(haystack, needle))


def seed_sample_todos(store: TodoStore, *, now_ms: int | None = None) -> list[Todo]:
    """Create the three sample todos used for previews and demos."""
    now = _now_ms() if now_ms is None else now_ms
    hour = 60 * 60 * 1000
    samples = [
        (
            "Draft architecture notes",
            "Outline the service boundaries for automation modules.",
            TodoStatus.IN_PROGRESS,
            now - 8 * hour,
        ),
        (
            "Collect shortcut feedback",
            "Ask the design team for their top five global hotkey requests.",
            TodoStatus.PENDING,
            now - 4 * hour,
        ),
        (
            "Polish release notes",
            "Draft a concise summary for the 0.2.0 milestone.",
            TodoStatus.COMPLETED,
            now - 2 * hour,
        ),
    ]
    return [
        store.create(title, content=content, status=status, created_at=created)
        for title, content, status, created in samples
    ]
