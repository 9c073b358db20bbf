"""Headless main list: shows every todo, edits them, follows palette selections."""

from typing import Any

from loguru import logger

from todo_palette.config import SEARCH_DEBOUNCE_SECONDS
from todo_palette.core.database.store import StoreError
from todo_palette.core.reactive.observable import Observable, Subscription
from todo_palette.core.search.engine import QueryEngine
from todo_palette.core.selection.bus import SelectionBus
from todo_palette.core.selection.controller import SelectionController
from todo_palette.models.todo import SearchResult, Todo, TodoId, TodoStatus
from todo_palette.protocols import FetchRunnerProtocol, SchedulerProtocol, TodoStoreProtocol


class TodoList:
    """The main window's list surface.

    It never filters, so its result list is every todo in sort order. A
    selection request from the bus is adopted only when the id is listed;
    adoption also publishes the id on ``focused_id`` so a renderer can scroll
    to it.
    """

    def __init__(
        self,
        store: TodoStoreProtocol,
        bus: SelectionBus,
        scheduler: SchedulerProtocol,
        *,
        runner: FetchRunnerProtocol | None = None,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
    ) -> None:
        self.store = store
        self.engine = QueryEngine(
            store, scheduler, runner=runner, debounce_seconds=debounce_seconds, name="list"
        )
        self.selection = SelectionController(self.engine.results)
        self.focused_id: Observable[TodoId | None] = Observable(None, distinct=False)

        self._pending_select: TodoId | None = None
        self._results_subscription = self.engine.results.subscribe(self._results_changed)
        self._bus_subscription: Subscription = bus.subscribe(self._selection_requested)
        self.engine.start()

    def close(self) -> None:
        self._bus_subscription.cancel()
        self._results_subscription.cancel()
        self.selection.close()
        self.engine.close()

    @property
    def todos(self) -> tuple[SearchResult, ...]:
        return self.engine.results.value

    @property
    def selected(self) -> SearchResult | None:
        selected_id = self.selection.selected
        for todo in self.todos:
            if todo.id == selected_id:
                return todo
        return None

    def select(self, todo_id: TodoId) -> bool:
        """Select a listed todo; a newer choice replaces any pending one."""
        if not self.selection.select(todo_id):
            return False
        self._pending_select = None
        return True

    def _selection_requested(self, todo_id: TodoId) -> None:
        if not self.select(todo_id):
            logger.debug("Ignoring selection request for unlisted todo {}", todo_id)
            return
        self.focused_id.set(todo_id)

    def _results_changed(self, _results: tuple[SearchResult, ...]) -> None:
        pending, self._pending_select = self._pending_select, None
        # Results applied after a create come from a fetch issued after it,
        # so a pending id missing here will not show up later.
        if pending is not None:
            self.selection.select(pending)

    # --- editing ---

    def create_todo(self, title: str, content: str | None = None) -> TodoId | None:
        """Quick capture. Returns the new id, or None when nothing was created."""
        title = title.strip()
        if not title:
            return None
        try:
            todo = self.store.create(title, content=(content or "").strip() or None)
        except StoreError:
            logger.opt(exception=True).warning("Creating todo {!r} failed", title)
            return None
        # Selected now when the refresh already ran, else when it arrives.
        if not self.select(todo.id):
            self._pending_select = todo.id
        return todo.id

    def update_title(self, todo_id: TodoId, title: str) -> bool:
        title = title.strip()
        current = self._get(todo_id)
        if current is None or not title or title == current.title:
            return False
        return self._update(todo_id, title=title)

    def update_content(self, todo_id: TodoId, content: str | None) -> bool:
        normalized = (content or "").strip() or None
        current = self._get(todo_id)
        if current is None or normalized == current.content:
            return False
        # An empty string asks the store to clear the field.
        return self._update(todo_id, content=normalized or "")

    def toggle_completion(self, todo_id: TodoId) -> bool:
        current = self._get(todo_id)
        if current is None:
            return False
        status = TodoStatus.PENDING if current.is_completed else TodoStatus.COMPLETED
        return self._update(todo_id, status=status)

    def set_status(self, todo_id: TodoId, status: TodoStatus) -> bool:
        current = self._get(todo_id)
        if current is None or current.status is status:
            return False
        return self._update(todo_id, status=status)

    def delete(self, todo_id: TodoId) -> bool:
        was_selected = self.selection.selected == todo_id
        if was_selected:
            self.selection.selected_id.set(None)
        try:
            return self.store.delete(todo_id)
        except StoreError:
            logger.opt(exception=True).warning("Deleting todo {} failed", todo_id)
            if was_selected:
                self.selection.select(todo_id)
            return False

    def toggle_selected(self) -> bool:
        selected = self.selection.selected
        return selected is not None and self.toggle_completion(selected)

    def set_selected_status(self, status: TodoStatus) -> bool:
        selected = self.selection.selected
        return selected is not None and self.set_status(selected, status)

    def delete_selected(self) -> bool:
        selected = self.selection.selected
        return selected is not None and self.delete(selected)

    def _get(self, todo_id: TodoId) -> Todo | None:
        try:
            return self.store.get(todo_id)
        except StoreError:
            logger.opt(exception=True).warning("Reading todo {} failed", todo_id)
            return None

    def _update(self, todo_id: TodoId, **fields: Any) -> bool:
        try:
            updated = self.store.update(todo_id, **fields)
        except StoreError:
            logger.opt(exception=True).warning("Updating todo {} failed", todo_id)
            return False
        return updated is not None
