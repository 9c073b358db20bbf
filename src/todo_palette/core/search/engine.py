"""Debounced live query over the todo store."""

from collections.abc import Sequence
from concurrent.futures import Future
from functools import partial

from loguru import logger

from todo_palette.config import BLANK_QUERY_MATCHES_ALL, SEARCH_DEBOUNCE_SECONDS
from todo_palette.core.database.store import StoreError
from todo_palette.core.reactive.observable import Observable, Subscription
from todo_palette.core.reactive.scheduling import InlineRunner
from todo_palette.core.search.query import DEFAULT_SORT, SortKey, build_predicate
from todo_palette.models.todo import SearchResult, StatusFilter, Todo
from todo_palette.protocols import (
    FetchRunnerProtocol,
    SchedulerProtocol,
    TimerHandle,
    TodoStoreProtocol,
)

ResultList = tuple[SearchResult, ...]


class QueryEngine:
    """Turns search text and a status filter into a published result list.

    Input changes are debounced; store change notifications refresh at once.
    Every debounce restart and every refresh bumps ``generation``, and a fetch
    result is applied only if its generation is still the latest one.
    """

    def __init__(
        self,
        store: TodoStoreProtocol,
        scheduler: SchedulerProtocol,
        *,
        runner: FetchRunnerProtocol | None = None,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
        blank_query_matches_all: bool = BLANK_QUERY_MATCHES_ALL,
        sort: Sequence[SortKey] = DEFAULT_SORT,
        name: str = "query",
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.runner: FetchRunnerProtocol = runner or InlineRunner()
        self.debounce_seconds = debounce_seconds
        self.blank_query_matches_all = blank_query_matches_all
        self.sort = tuple(sort)
        self.name = name

        self.results: Observable[ResultList] = Observable((), distinct=False)
        self.last_error: StoreError | None = None
        # Search text of the query that produced the current results.
        self.applied_search_text = ""

        self._search_text = ""
        self._status_filter = StatusFilter.ALL
        self._debounce_key = self._current_key()
        self._timer: TimerHandle | None = None
        self._generation = 0
        self._store_subscription: Subscription | None = None

    # --- lifecycle ---

    def start(self) -> None:
        """Follow store changes and run the initial query."""
        if self._store_subscription is None:
            self._store_subscription = self.store.on_change(self.refresh)
        self.refresh()

    def close(self) -> None:
        self._cancel_timer()
        if self._store_subscription is not None:
            self._store_subscription.cancel()
            self._store_subscription = None
        # Anything still in flight is now stale.
        self._generation += 1

    # --- inputs ---

    @property
    def search_text(self) -> str:
        return self._search_text

    @search_text.setter
    def search_text(self, value: str) -> None:
        self._search_text = value
        self._inputs_changed()

    @property
    def status_filter(self) -> StatusFilter:
        return self._status_filter

    @status_filter.setter
    def status_filter(self, value: StatusFilter) -> None:
        self._status_filter = StatusFilter(value)
        self._inputs_changed()

    def reset_search(self, *, immediate: bool = False) -> None:
        self.search_text = ""
        if immediate:
            self.refresh()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_pending(self) -> bool:
        """True while a debounce timer is waiting to fire."""
        return self._timer is not None

    def _current_key(self) -> tuple[str, StatusFilter, bool]:
        trimmed = self._search_text.strip()
        # Blank-but-not-empty text is its own query when it matches nothing.
        blank = bool(self._search_text) and not trimmed and not self.blank_query_matches_all
        return trimmed, self._status_filter, blank

    def _inputs_changed(self) -> None:
        key = self._current_key()
        if key == self._debounce_key:
            return
        self._debounce_key = key
        self._generation += 1
        self._cancel_timer()
        self._timer = self.scheduler.call_later(
            self.debounce_seconds, partial(self._timer_fired, self._generation)
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _timer_fired(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._timer = None
        self._execute(generation)

    # --- execution ---

    def refresh(self) -> None:
        """Run the current query now, bypassing (and cancelling) the debounce."""
        self._cancel_timer()
        self._debounce_key = self._current_key()
        self._generation += 1
        self._execute(self._generation)

    def _execute(self, generation: int) -> None:
        predicate = build_predicate(
            self._search_text,
            self._status_filter,
            blank_query_matches_all=self.blank_query_matches_all,
        )
        logger.debug(
            "[{}] fetch #{} text={!r} filter={}",
            self.name, generation, self._search_text.strip(), self._status_filter.value,
        )
        job = partial(self.store.fetch, predicate, sort=self.sort)
        self.runner.run(job, partial(self._apply, generation, self._search_text))

    def _apply(self, generation: int, search_text: str, future: "Future[list[Todo]]") -> None:
        if generation != self._generation:
            logger.debug(
                "[{}] dropping stale fetch #{} (latest #{})",
                self.name, generation, self._generation,
            )
            return

        try:
            todos = future.result()
        except StoreError as exc:
            self.last_error = exc
            logger.opt(exception=exc).warning("[{}] todo fetch failed", self.name)
            self.applied_search_text = search_text
            self.results.set(())
            return

        self.last_error = None
        self.applied_search_text = search_text
        self.results.set(tuple(SearchResult.from_todo(t) for t in todos))
