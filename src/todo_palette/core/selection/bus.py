"""Broadcast channel for "open this todo" requests between surfaces."""

from collections.abc import Callable

from loguru import logger

from todo_palette.core.reactive.observable import Subscription
from todo_palette.models.todo import TodoId

SelectionHandler = Callable[[TodoId], None]


class SelectionBus:
    """Single-channel publish/subscribe for selection requests.

    One instance is shared by every surface of the process and injected into
    each of them. Delivery is synchronous, in registration order.
    """

    def __init__(self) -> None:
        self._handlers: list[SelectionHandler] = []

    def subscribe(self, handler: SelectionHandler) -> Subscription:
        self._handlers.append(handler)

        def release() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return Subscription(release)

    def publish(self, todo_id: TodoId) -> None:
        logger.debug("Selection requested for {} ({} subscribers)", todo_id, len(self._handlers))
        for handler in list(self._handlers):
            try:
                handler(todo_id)
            except Exception:
                logger.exception("Selection handler {!r} failed for {}", handler, todo_id)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)
