"""Single-slot "latest value" notifier used in place of reactive streams."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestValueNotifier(Generic[T]):
    """Holds the most recent value and pushes updates to subscribers.

    Once completed, further publishes are dropped and completion callbacks
    have fired exactly once.
    """

    def __init__(self, initial: T | None = None) -> None:
        self._value: T | None = initial
        self._subscribers: list[Callable[[T], None]] = []
        self._on_complete: list[Callable[[], None]] = []
        self._completed = False

    @property
    def value(self) -> T | None:
        return self._value

    @property
    def completed(self) -> bool:
        return self._completed

    def subscribe(
        self,
        on_value: Callable[[T], None] | None = None,
        *,
        on_complete: Callable[[], None] | None = None,
    ) -> Callable[[], None]:
        """Register callbacks and return a function that removes them."""

        if self._completed:
            if on_complete is not None:
                on_complete()
            return lambda: None
        if on_value is not None:
            self._subscribers.append(on_value)
        if on_complete is not None:
            self._on_complete.append(on_complete)

        def unsubscribe() -> None:
            if on_value in self._subscribers:
                self._subscribers.remove(on_value)
            if on_complete in self._on_complete:
                self._on_complete.remove(on_complete)

        return unsubscribe

    def publish(self, value: T) -> None:
        if self._completed:
            logger.debug("scribe.notifier_publish_after_complete")
            return
        self._value = value
        for callback in list(self._subscribers):
            callback(value)

    def complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        callbacks = list(self._on_complete)
        self._subscribers.clear()
        self._on_complete.clear()
        for callback in callbacks:
            callback()
