"""Headless command palette: live search, highlight, confirm/cancel."""

from collections.abc import Iterator
from dataclasses import dataclass

from loguru import logger

from todo_palette.config import BLANK_QUERY_MATCHES_ALL, SEARCH_DEBOUNCE_SECONDS
from todo_palette.core.database.store import StoreError
from todo_palette.core.reactive.observable import Observable
from todo_palette.core.search.engine import QueryEngine
from todo_palette.core.search.highlight import segments
from todo_palette.core.selection.bus import SelectionBus
from todo_palette.core.selection.controller import SelectionController
from todo_palette.models.todo import SearchResult, Segment, StatusFilter, TodoId
from todo_palette.protocols import FetchRunnerProtocol, SchedulerProtocol, TodoStoreProtocol


@dataclass(frozen=True)
class PaletteRow:
    """Everything a renderer needs for one result row."""

    result: SearchResult
    title: tuple[Segment, ...]
    content: tuple[Segment, ...]
    is_highlighted: bool


@dataclass(frozen=True)
class EmptyState:
    icon: str
    title: str
    subtitle: str


NO_TODOS = EmptyState(
    icon="rectangle.and.text.magnifyingglass",
    title="No todos yet",
    subtitle="Create todos in the main window to make them searchable.",
)
NO_MATCHES = EmptyState(
    icon="nosign",
    title="No matches",
    subtitle="Try searching for a different keyword or status.",
)


class CommandPalette:
    """The palette surface.

    Confirming a result publishes its id on the selection bus and dismisses
    the palette; cancelling only dismisses it.
    """

    KEY_ACTIONS = {
        "down": "move_down",
        "up": "move_up",
        "enter": "confirm",
        "escape": "cancel",
    }

    def __init__(
        self,
        store: TodoStoreProtocol,
        bus: SelectionBus,
        scheduler: SchedulerProtocol,
        *,
        runner: FetchRunnerProtocol | None = None,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
        blank_query_matches_all: bool = BLANK_QUERY_MATCHES_ALL,
    ) -> None:
        self.store = store
        self.engine = QueryEngine(
            store,
            scheduler,
            runner=runner,
            debounce_seconds=debounce_seconds,
            blank_query_matches_all=blank_query_matches_all,
            name="palette",
        )
        self.selection = SelectionController(
            self.engine.results, bus=bus, on_close=self.dismiss
        )
        self.is_presented: Observable[bool] = Observable(False)
        self.engine.start()

    def close(self) -> None:
        self.selection.close()
        self.engine.close()

    # --- presentation ---

    def present(self) -> None:
        if self.is_presented.value:
            return
        self.selection.reset()
        self.is_presented.set(True)

    def dismiss(self) -> None:
        self.is_presented.set(False)

    def toggle(self) -> None:
        if self.is_presented.value:
            self.dismiss()
        else:
            self.present()

    # --- input ---

    @property
    def query(self) -> str:
        return self.engine.search_text

    @query.setter
    def query(self, value: str) -> None:
        self.engine.search_text = value

    @property
    def status_filter(self) -> StatusFilter:
        return self.engine.status_filter

    @status_filter.setter
    def status_filter(self, value: StatusFilter) -> None:
        self.engine.status_filter = value

    def clear_query(self) -> None:
        self.engine.reset_search()

    def handle_key(self, key: str) -> bool:
        """Route a navigation key. Returns False for keys the palette ignores."""
        action = self.KEY_ACTIONS.get(key.lower())
        if action is None:
            return False
        getattr(self.selection, action)()
        return True

    def hover(self, todo_id: TodoId) -> None:
        self.selection.select(todo_id)

    def click(self, todo_id: TodoId) -> TodoId | None:
        if not self.selection.select(todo_id):
            return None
        return self.selection.confirm()

    # --- rendering ---

    @property
    def results(self) -> tuple[SearchResult, ...]:
        return self.engine.results.value

    def rows(self) -> Iterator[PaletteRow]:
        query = self.engine.applied_search_text
        selected = self.selection.selected
        for result in self.results:
            yield PaletteRow(
                result=result,
                title=segments(result.title, query),
                content=segments(result.content or "", query),
                is_highlighted=result.id == selected,
            )

    def empty_state(self) -> EmptyState | None:
        if self.results:
            return None
        try:
            total = self.store.count()
        except StoreError:
            logger.opt(exception=True).warning("Counting todos for the empty state failed")
            return NO_MATCHES
        return NO_TODOS if total == 0 else NO_MATCHES

    def footer_message(self) -> str:
        if self.selection.selected is None:
            return "Use the arrow keys to highlight a todo"
        return "Press ↵ to open details"
