"""
Timer primitives for the playback core.

The playback core never sleeps or blocks; every delay is a callback armed on
a clock supplied by the environment. `AsyncioClock` arms callbacks on an
asyncio event loop and may be used from any thread, since media engines
commonly report events on a thread of their own.
"""

import asyncio
import logging
import threading
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Handle returned by `Clock.call_later`."""

    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None: ...


class Clock(Protocol):
    """Millisecond clock able to arm delayed callbacks."""

    def now_ms(self) -> int: ...

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class _LoopTimerHandle:
    """
    Cancellable handle for a callback armed on an event loop.

    Arming may be deferred to the loop thread, so cancellation is recorded
    first and honoured whether or not the loop has armed the timer yet.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._lock = threading.Lock()
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def arm(self, delay_ms: int, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._handle = self._loop.call_later(delay_ms / 1000.0, callback)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            handle = self._handle
            self._handle = None

        if handle is None:
            return
        if _running_loop() is self._loop:
            handle.cancel()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(handle.cancel)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class AsyncioClock:
    """
    Clock backed by an asyncio event loop.

    Usage:
        clock = AsyncioClock()          # inside a running loop
        handle = clock.call_later(1000, on_fire)
        handle.cancel()
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Initialize the clock.

        Args:
            loop: Event loop to arm timers on. Defaults to the running loop.
        """
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def now_ms(self) -> int:
        return int(self._loop.time() * 1000)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        """
        Arm `callback` after `delay_ms` milliseconds.

        A closed loop can never run the callback, so the returned handle is
        already cancelled in that case.
        """
        handle = _LoopTimerHandle(self._loop)

        if self._loop.is_closed():
            logger.warning(f"Event loop is closed; dropping timer of {delay_ms}ms")
            handle.cancel()
            return handle

        if _running_loop() is self._loop:
            handle.arm(delay_ms, callback)
            return handle

        try:
            self._loop.call_soon_threadsafe(handle.arm, delay_ms, callback)
        except RuntimeError as e:
            # Closed between the check above and the hand-off
            logger.warning(f"Could not arm timer of {delay_ms}ms: {e}")
            handle.cancel()

        return handle
