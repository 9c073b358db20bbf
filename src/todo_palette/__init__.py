"""Todo palette: live search, selection and cross-surface focus for todos."""

from todo_palette.core.database.store import StoreError, TodoStore
from todo_palette.core.search.engine import QueryEngine
from todo_palette.core.selection.bus import SelectionBus
from todo_palette.core.selection.controller import SelectionController
from todo_palette.protocols import SchedulerProtocol, TodoStoreProtocol

__all__ = [
    "QueryEngine",
    "SchedulerProtocol",
    "SelectionBus",
    "SelectionController",
    "StoreError",
    "TodoStore",
    "TodoStoreProtocol",
]
