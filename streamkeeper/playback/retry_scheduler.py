"""
Single-flight retry scheduling with exponential backoff.

A scheduler owns exactly one pending slot. Arming a new task always cancels
the previous one first, so "schedule twice" means "replace", never "queue".
The same slot doubles as a fixed-delay one-shot timer for banner dismissal.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from streamkeeper.playback.timers import Clock, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff parameters (milliseconds)."""

    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000

    def delay_for(self, attempt: int) -> int:
        """Calculate backoff delay for a 0-based retry attempt."""
        attempt = max(attempt, 0)
        return min(self.initial_delay_ms * (2**attempt), self.max_delay_ms)


@dataclass
class RetryTask:
    """A pending delayed action."""

    delay_ms: int
    attempt: Optional[int] = None  # None for fixed-delay one-shots
    handle: Optional[TimerHandle] = field(default=None, repr=False, compare=False)


class RetryScheduler:
    """
    Cancellable, single-flight delayed-action timer.

    The fire callback checks the pending slot under the same lock that
    `cancel()` clears it under, and runs the action while holding it. Once
    `cancel()` returns, the cancelled action can no longer run. Owners that
    need the action to execute inside their own critical section pass their
    lock in.

    The scheduler has no attempt ceiling; callers enforce max retries.
    """

    def __init__(
        self,
        clock: Clock,
        policy: Optional[BackoffPolicy] = None,
        lock: Optional["threading.RLock"] = None,
        name: str = "retry",
    ):
        """
        Initialize retry scheduler.

        Args:
            clock: Timer primitive used to arm delayed actions.
            policy: Backoff configuration.
            lock: Lock shared with the owner (a private RLock if omitted).
            name: Label used in log messages.
        """
        self._clock = clock
        self.policy = policy or BackoffPolicy()
        self._lock = lock if lock is not None else threading.RLock()
        self._name = name
        self._pending: Optional[RetryTask] = None

    @property
    def pending(self) -> Optional[RetryTask]:
        """The currently armed task, if any."""
        with self._lock:
            return self._pending

    @property
    def has_pending(self) -> bool:
        return self.pending is not None

    def delay_for(self, attempt: int) -> int:
        return self.policy.delay_for(attempt)

    def schedule_retry(
        self, attempt: int, action: Callable[[], None]
    ) -> Optional[RetryTask]:
        """
        Replace any pending task with `action`, delayed by the backoff for `attempt`.

        Args:
            attempt: 0-based attempt number used for the backoff exponent.
            action: Callable invoked exactly once when the timer fires.

        Returns:
            The armed task, or None if the clock could not arm it.
        """
        return self._arm(self.delay_for(attempt), action, attempt)

    def schedule_once(
        self, delay_ms: int, action: Callable[[], None]
    ) -> Optional[RetryTask]:
        """Replace any pending task with `action`, delayed by a fixed `delay_ms`."""
        return self._arm(max(int(delay_ms), 0), action, None)

    def cancel(self) -> bool:
        """
        Cancel the pending task.

        Returns:
            True if a task was pending.
        """
        with self._lock:
            return self._cancel_locked()

    def reset(self) -> bool:
        """Start fresh. Same effect as `cancel()`."""
        return self.cancel()

    def _arm(
        self,
        delay_ms: int,
        action: Callable[[], None],
        attempt: Optional[int],
    ) -> Optional[RetryTask]:
        with self._lock:
            self._cancel_locked()

            task = RetryTask(delay_ms=delay_ms, attempt=attempt)
            try:
                handle = self._clock.call_later(
                    delay_ms, lambda: self._fire(task, action)
                )
            except Exception as e:
                logger.exception(f"[{self._name}] failed to arm timer: {e}")
                return None

            if handle.cancelled:
                logger.warning(f"[{self._name}] clock dropped the timer, nothing armed")
                return None

            task.handle = handle
            self._pending = task

            if attempt is None:
                logger.debug(f"[{self._name}] armed one-shot in {delay_ms}ms")
            else:
                logger.debug(
                    f"[{self._name}] armed attempt {attempt} in {delay_ms}ms"
                )
            return task

    def _cancel_locked(self) -> bool:
        task = self._pending
        if task is None:
            return False

        self._pending = None
        if task.handle is not None:
            task.handle.cancel()
        logger.debug(f"[{self._name}] cancelled pending task")
        return True

    def _fire(self, task: RetryTask, action: Callable[[], None]) -> None:
        with self._lock:
            if self._pending is not task:
                # Replaced or cancelled after the timer was already queued
                return

            # Clear first so the action may arm a follow-up task
            self._pending = None

            try:
                action()
            except Exception as e:
                logger.exception(f"[{self._name}] scheduled action failed: {e}")
