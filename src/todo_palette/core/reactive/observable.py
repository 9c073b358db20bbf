"""Observable value holder with an explicit subscribe/cancel contract."""

from collections.abc import Callable
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class Subscription:
    """Handle returned by every subscribe call.

    The owner must cancel it when the subscribing surface is torn down;
    nothing is released implicitly. Cancelling twice is harmless.
    """

    def __init__(self, release: Callable[[], None]) -> None:
        self._release: Callable[[], None] | None = release

    @property
    def active(self) -> bool:
        return self._release is not None

    def cancel(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.cancel()


class Observable(Generic[T]):
    """A value that notifies subscribers when it is set.

    With ``distinct=True`` (the default) setting an equal value is silent.
    Result lists are published with ``distinct=False`` so that every query
    execution reaches subscribers, even when nothing changed.
    """

    def __init__(self, initial: T, *, distinct: bool = True) -> None:
        self._value = initial
        self._distinct = distinct
        self._callbacks: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Store ``value`` and notify subscribers. Returns whether it notified."""
        if self._distinct and value == self._value:
            return False
        self._value = value
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception:
                logger.exception("Observable subscriber {!r} failed", callback)
        return True

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        self._callbacks.append(callback)

        def release() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return Subscription(release)

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)
