"""
Explicit subscribe/unsubscribe listener registry.

Publishers hold listeners only until they are unsubscribed or the publisher
is released; observers own the `Subscription` and must unsubscribe on
teardown.
"""

import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by `Listeners.subscribe`."""

    def __init__(self, registry: "Listeners", listener: Callable):
        self._registry = registry
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Remove the listener. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._registry.remove(self._listener)


class Listeners(Generic[T]):
    """A list of callbacks notified with each published value."""

    def __init__(self, name: str = "listeners"):
        self._name = name
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[T], None]] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        with self._lock:
            self._callbacks.append(callback)
        return Subscription(self, callback)

    def remove(self, callback: Callable[[T], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def clear(self) -> None:
        with self._lock:
            self._callbacks.clear()

    def publish(self, value: T) -> None:
        with self._lock:
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(value)
            except Exception as e:
                logger.error(f"{self._name} callback error: {e}", exc_info=True)
