"""
Observable value streams.

The session publishes playback state, the latest emotion result and the
analysis flag through these so any renderer can subscribe.
"""

import logging
from typing import Callable, Generic, List, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)


class ObservableValue(Generic[T]):
    """
    Holds a value and notifies subscribers whenever it changes.

    Subscribers are called synchronously with the new value. A failing
    subscriber is logged and does not stop delivery to the others.
    """

    def __init__(self, initial: T, name: str = "value"):
        self._value = initial
        self._name = name
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Store a new value, notifying subscribers if it differs."""
        if value == self._value:
            return
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception(f"Subscriber of {self._name} failed")

    def subscribe(self, callback: Callable[[T], None], replay: bool = False) -> Callable[[], None]:
        """
        Register a callback for value changes.

        Args:
            callback: Called with each new value
            replay: Also call it immediately with the current value

        Returns:
            Callable that removes the subscription
        """
        self._subscribers.append(callback)
        if replay:
            callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def __repr__(self) -> str:
        return f"ObservableValue({self._name}={self._value!r})"
