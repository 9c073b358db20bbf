"""Tests for the selection controller."""

import pytest

from todo_palette.core.reactive.observable import Observable
from todo_palette.core.selection.bus import SelectionBus
from todo_palette.core.selection.controller import SelectionController
from todo_palette.models.todo import SearchResult, TodoStatus

Results = tuple[SearchResult, ...]


def _results(*ids: str) -> Results:
    return tuple(
        SearchResult(
            id=todo_id,
            title=f"Todo {todo_id}",
            content=None,
            status=TodoStatus.PENDING,
            created_at=0,
            updated_at=0,
        )
        for todo_id in ids
    )


@pytest.fixture
def results() -> Observable[Results]:
    return Observable(_results("a", "b", "c"), distinct=False)


@pytest.fixture
def closed() -> list[bool]:
    return []


@pytest.fixture
def controller(
    results: Observable[Results], bus: SelectionBus, closed: list[bool]
) -> SelectionController:
    return SelectionController(results, bus=bus, on_close=lambda: closed.append(True))


def test_first_result_is_selected_initially(controller: SelectionController) -> None:
    assert controller.selected == "a"
    assert controller.selected_index == 0


def test_empty_initial_list_selects_nothing(bus: SelectionBus) -> None:
    controller = SelectionController(Observable((), distinct=False), bus=bus)
    assert controller.selected is None


def test_selection_survives_reordering(
    controller: SelectionController, results: Observable[Results]
) -> None:
    controller.select("b")
    results.set(_results("c", "b", "a"))
    assert controller.selected == "b"
    assert controller.selected_index == 1


def test_vanished_selection_falls_back_to_first(
    controller: SelectionController, results: Observable[Results]
) -> None:
    controller.select("b")
    results.set(_results("c", "a"))
    assert controller.selected == "c"


def test_empty_list_clears_selection(
    controller: SelectionController, results: Observable[Results]
) -> None:
    results.set(())
    assert controller.selected is None
    results.set(_results("x"))
    assert controller.selected == "x"


def test_move_down_and_up_clamp(controller: SelectionController) -> None:
    controller.move_down()
    controller.move_down()
    controller.move_down()
    assert controller.selected == "c"
    controller.move_up()
    assert controller.selected == "b"
    controller.move_up()
    controller.move_up()
    assert controller.selected == "a"


def test_moves_from_no_selection(controller: SelectionController) -> None:
    controller.selected_id.set(None)
    controller.move_down()
    assert controller.selected == "a"
    controller.selected_id.set(None)
    controller.move_up()
    assert controller.selected == "c"


def test_moves_on_empty_list_are_no_ops(
    controller: SelectionController, results: Observable[Results]
) -> None:
    results.set(())
    controller.move_down()
    controller.move_up()
    assert controller.selected is None


def test_select_only_accepts_listed_ids(controller: SelectionController) -> None:
    assert controller.select("c") is True
    assert controller.select("zzz") is False
    assert controller.select(None) is False
    assert controller.selected == "c"


def test_reset_selects_first(controller: SelectionController) -> None:
    controller.select("c")
    controller.reset()
    assert controller.selected == "a"


def test_confirm_publishes_and_closes(
    controller: SelectionController, bus: SelectionBus, closed: list[bool]
) -> None:
    published: list[str] = []
    bus.subscribe(published.append)
    controller.move_down()
    assert controller.confirm() == "b"
    assert published == ["b"]
    assert closed == [True]


def test_confirm_without_selection_uses_first(
    controller: SelectionController, bus: SelectionBus
) -> None:
    published: list[str] = []
    bus.subscribe(published.append)
    controller.selected_id.set(None)
    assert controller.confirm() == "a"
    assert published == ["a"]


def test_confirm_on_empty_list_does_nothing(
    controller: SelectionController,
    results: Observable[Results],
    bus: SelectionBus,
    closed: list[bool],
) -> None:
    published: list[str] = []
    bus.subscribe(published.append)
    results.set(())
    assert controller.confirm() is None
    assert published == []
    assert closed == []


def test_cancel_closes_without_publishing(
    controller: SelectionController, bus: SelectionBus, closed: list[bool]
) -> None:
    published: list[str] = []
    bus.subscribe(published.append)
    controller.cancel()
    assert published == []
    assert closed == [True]


def test_stray_selection_is_repaired_on_navigation(controller: SelectionController) -> None:
    controller.selected_id.set("ghost")
    assert controller.selected_index is None
    controller.move_down()
    assert controller.selected == "a"


def test_close_stops_following_results(
    controller: SelectionController, results: Observable[Results]
) -> None:
    controller.close()
    results.set(_results("z"))
    assert controller.ids == ("a", "b", "c")
    assert results.subscriber_count == 0
