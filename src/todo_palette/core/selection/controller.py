"""Keyboard-navigable selection over a live result list."""

from collections.abc import Callable, Sequence

from loguru import logger

from todo_palette.core.reactive.observable import Observable
from todo_palette.core.selection.bus import SelectionBus
from todo_palette.models.todo import SearchResult, TodoId


class SelectionController:
    """Keeps one selected id valid as the result list changes.

    After every list update the previous selection is kept if still listed,
    otherwise the first result is selected, or nothing when the list is
    empty. No operation leaves ``selected_id`` pointing outside the list.
    """

    def __init__(
        self,
        results: Observable[tuple[SearchResult, ...]],
        *,
        bus: SelectionBus | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self.bus = bus
        self.on_close = on_close
        self.selected_id: Observable[TodoId | None] = Observable(None)
        self._ids: tuple[TodoId, ...] = ()
        self._subscription = results.subscribe(self._results_changed)
        self._results_changed(results.value)

    def close(self) -> None:
        self._subscription.cancel()

    @property
    def ids(self) -> tuple[TodoId, ...]:
        return self._ids

    @property
    def selected(self) -> TodoId | None:
        return self.selected_id.value

    @property
    def selected_index(self) -> int | None:
        current = self.selected_id.value
        if current is None or current not in self._ids:
            return None
        return self._ids.index(current)

    def _results_changed(self, results: Sequence[SearchResult]) -> None:
        self._ids = tuple(r.id for r in results)
        self._repair()

    def _repair(self) -> None:
        current = self.selected_id.value
        if current is not None and current in self._ids:
            return
        self.selected_id.set(self._ids[0] if self._ids else None)

    def _check_invariant(self) -> None:
        current = self.selected_id.value
        if current is not None and current not in self._ids:
            logger.error("Selection {} is not in the current results; repairing", current)
            self._repair()

    # --- operations ---

    def select(self, todo_id: TodoId | None) -> bool:
        """Select ``todo_id`` if it is listed. Returns whether the selection was taken."""
        if todo_id is None or todo_id not in self._ids:
            return False
        self.selected_id.set(todo_id)
        return True

    def reset(self) -> None:
        """Select the first result (or nothing)."""
        self.selected_id.set(self._ids[0] if self._ids else None)

    def move_down(self) -> None:
        if not self._ids:
            return
        index = self.selected_index
        if index is None:
            self.selected_id.set(self._ids[0])
        else:
            self.selected_id.set(self._ids[min(index + 1, len(self._ids) - 1)])
        self._check_invariant()

    def move_up(self) -> None:
        if not self._ids:
            return
        index = self.selected_index
        if index is None:
            self.selected_id.set(self._ids[-1])
        else:
            self.selected_id.set(self._ids[max(index - 1, 0)])
        self._check_invariant()

    def confirm(self) -> TodoId | None:
        """Publish the selected (or first) id and close. No-op on an empty list."""
        if not self._ids:
            return None
        chosen = self.selected_id.value
        if chosen is None or chosen not in self._ids:
            chosen = self._ids[0]
        self.selected_id.set(chosen)
        if self.bus is not None:
            self.bus.publish(chosen)
        self._close()
        return chosen

    def cancel(self) -> None:
        self._close()

    def _close(self) -> None:
        if self.on_close is not None:
            self.on_close()
