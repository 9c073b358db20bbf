"""Tests for the main list surface."""

from typing import Any

import pytest

from tests.unit.fakes import DeferredRunner, FakeStore
from todo_palette.core.reactive.scheduling import ManualScheduler
from todo_palette.core.selection.bus import SelectionBus
from todo_palette.models.todo import TodoStatus
from todo_palette.ui.todo_list import TodoList


@pytest.fixture
def todo_list(fake_store: FakeStore, bus: SelectionBus, scheduler: ManualScheduler) -> TodoList:
    fake_store.add("Draft architecture notes", status=TodoStatus.IN_PROGRESS)
    fake_store.add("Collect shortcut feedback")
    fake_store.add("Polish release notes", status=TodoStatus.COMPLETED)
    return TodoList(fake_store, bus, scheduler)


def _ids(todo_list: TodoList) -> list[str]:
    return [t.id for t in todo_list.todos]


def test_lists_everything_and_selects_first(todo_list: TodoList) -> None:
    assert [t.title for t in todo_list.todos] == [
        "Polish release notes",
        "Collect shortcut feedback",
        "Draft architecture notes",
    ]
    assert todo_list.selected is not None
    assert todo_list.selected.title == "Polish release notes"


def test_bus_selection_is_adopted_and_focused(todo_list: TodoList, bus: SelectionBus) -> None:
    focused: list[str | None] = []
    todo_list.focused_id.subscribe(focused.append)
    target = _ids(todo_list)[2]
    bus.publish(target)
    assert todo_list.selection.selected == target
    assert focused == [target]


def test_unknown_bus_selection_is_ignored(
    todo_list: TodoList, bus: SelectionBus, log_records: list[dict[str, Any]]
) -> None:
    before = todo_list.selection.selected
    bus.publish("missing")
    assert todo_list.selection.selected == before
    assert todo_list.focused_id.value is None
    assert any(r["level"].name == "DEBUG" and "missing" in r["message"] for r in log_records)


def test_create_todo_selects_the_new_todo(todo_list: TodoList, fake_store: FakeStore) -> None:
    todo_id = todo_list.create_todo("  Book flights  ", "  ")
    assert todo_id is not None
    created = fake_store.get(todo_id)
    assert created is not None
    assert created.title == "Book flights"
    assert created.content is None
    assert todo_list.selection.selected == todo_id


def test_create_todo_selects_once_listed_with_async_fetch(
    fake_store: FakeStore, bus: SelectionBus, scheduler: ManualScheduler
) -> None:
    runner = DeferredRunner()
    todo_list = TodoList(fake_store, bus, scheduler, runner=runner)
    runner.complete_all()
    todo_id = todo_list.create_todo("Book flights")
    assert todo_list.selection.selected is None
    runner.complete_all()
    assert todo_list.selection.selected == todo_id


def test_blank_title_creates_nothing(todo_list: TodoList, fake_store: FakeStore) -> None:
    assert todo_list.create_todo("   ") is None
    assert fake_store.count() == 3


def test_update_title(todo_list: TodoList, fake_store: FakeStore) -> None:
    todo_id = _ids(todo_list)[0]
    assert todo_list.update_title(todo_id, "  Polish the notes ") is True
    assert fake_store.todos[todo_id].title == "Polish the notes"
    assert todo_list.update_title(todo_id, "Polish the notes") is False
    assert todo_list.update_title(todo_id, "   ") is False
    assert todo_list.update_title("missing", "x") is False


def test_update_content(todo_list: TodoList, fake_store: FakeStore) -> None:
    todo_id = _ids(todo_list)[0]
    assert todo_list.update_content(todo_id, " details ") is True
    assert fake_store.todos[todo_id].content == "details"
    assert todo_list.update_content(todo_id, "details") is False
    assert todo_list.update_content(todo_id, "  ") is True
    assert fake_store.todos[todo_id].content is None


def test_toggle_completion(todo_list: TodoList, fake_store: FakeStore) -> None:
    completed, pending = _ids(todo_list)[0], _ids(todo_list)[1]
    assert todo_list.toggle_completion(completed)
    assert todo_list.toggle_completion(pending)
    assert fake_store.todos[completed].status is TodoStatus.PENDING
    assert fake_store.todos[pending].status is TodoStatus.COMPLETED
    assert todo_list.toggle_completion("missing") is False


def test_set_status(todo_list: TodoList, fake_store: FakeStore) -> None:
    todo_id = _ids(todo_list)[1]
    assert todo_list.set_status(todo_id, TodoStatus.ARCHIVED)
    assert fake_store.todos[todo_id].status is TodoStatus.ARCHIVED
    assert todo_list.set_status(todo_id, TodoStatus.ARCHIVED) is False


def test_delete_selected_moves_selection_to_first(todo_list: TodoList) -> None:
    first, second, _ = _ids(todo_list)
    assert todo_list.delete_selected()
    assert first not in _ids(todo_list)
    assert todo_list.selection.selected == second
    assert todo_list.delete("missing") is False


def test_delete_selected_clears_selection_until_refresh(
    fake_store: FakeStore, bus: SelectionBus, scheduler: ManualScheduler
) -> None:
    runner = DeferredRunner()
    fake_store.add("only")
    todo_list = TodoList(fake_store, bus, scheduler, runner=runner)
    runner.complete_all()
    assert todo_list.delete_selected()
    assert todo_list.selection.selected is None
    runner.complete_all()
    assert todo_list.todos == ()
    assert todo_list.selection.selected is None


def test_selected_variants_without_selection(
    fake_store: FakeStore, bus: SelectionBus, scheduler: ManualScheduler
) -> None:
    todo_list = TodoList(fake_store, bus, scheduler)
    assert todo_list.selected is None
    assert todo_list.toggle_selected() is False
    assert todo_list.set_selected_status(TodoStatus.COMPLETED) is False
    assert todo_list.delete_selected() is False


def test_selected_variants_act_on_selection(todo_list: TodoList, fake_store: FakeStore) -> None:
    todo_id = _ids(todo_list)[2]
    todo_list.selection.select(todo_id)
    assert todo_list.set_selected_status(TodoStatus.COMPLETED)
    assert fake_store.todos[todo_id].status is TodoStatus.COMPLETED
    assert todo_list.toggle_selected()
    assert fake_store.todos[todo_id].status is TodoStatus.PENDING


def test_store_errors_are_reported_not_raised(
    todo_list: TodoList, fake_store: FakeStore, log_records: list[dict[str, Any]]
) -> None:
    todo_id = _ids(todo_list)[0]
    fake_store.fail_writes = True
    assert todo_list.create_todo("New") is None
    assert todo_list.update_title(todo_id, "Renamed") is False
    assert todo_list.delete(todo_id) is False
    assert todo_list.selection.selected == todo_id
    assert sum(r["level"].name == "WARNING" for r in log_records) == 3


def test_close_releases_subscriptions(
    todo_list: TodoList, fake_store: FakeStore, bus: SelectionBus
) -> None:
    todo_list.close()
    assert bus.subscriber_count == 0
    assert fake_store.listener_count == 0


def test_later_selection_replaces_a_pending_new_todo(
    fake_store: FakeStore, bus: SelectionBus, scheduler: ManualScheduler
) -> None:
    runner = DeferredRunner()
    existing = fake_store.add("Collect shortcut feedback")
    todo_list = TodoList(fake_store, bus, scheduler, runner=runner)
    runner.complete_all()
    assert todo_list.selection.selected == existing.id

    new_id = todo_list.create_todo("Book flights")
    assert new_id is not None
    # The user picks another todo before the refresh lands.
    bus.publish(existing.id)
    runner.complete_all()

    assert _ids(todo_list) == [new_id, existing.id]
    assert todo_list.selection.selected == existing.id


def test_pending_new_todo_is_dropped_once_results_lack_it(
    fake_store: FakeStore, bus: SelectionBus, scheduler: ManualScheduler
) -> None:
    runner = DeferredRunner()
    first = fake_store.add("Collect shortcut feedback")
    todo_list = TodoList(fake_store, bus, scheduler, runner=runner)
    runner.complete_all()

    new_id = todo_list.create_todo("Short lived")
    assert new_id is not None
    fake_store.delete(new_id)
    runner.complete_all()
    assert _ids(todo_list) == [first.id]
    assert todo_list.selection.selected == first.id

    # A later unrelated refresh does not resurrect the old request.
    second = fake_store.create("Another one")
    runner.complete_all()
    assert _ids(todo_list) == [second.id, first.id]
    assert todo_list.selection.selected == first.id
