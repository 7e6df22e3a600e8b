"""
Playback session state machine.

A PlaybackSession is the single owner of the current target, the retry
attempt counter and the pending retry task. Engine callbacks, user commands
and retry timer fires all enter through one re-entrant lock, so a stale
auto-retry can never overwrite a manual target switch.

States:
    IDLE -> BUFFERING <-> PLAYING <-> PAUSED
    any  -> ENDED
    any  -> FAILED(attempt, will_retry)
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional, Protocol

from streamkeeper.playback.errors import (
    EngineErrorCode,
    PlaybackError,
    classify,
    should_retry,
)
from streamkeeper.playback.events import Listeners, Subscription
from streamkeeper.playback.retry_scheduler import BackoffPolicy, RetryScheduler, RetryTask
from streamkeeper.playback.targets import Target, TargetValidator
from streamkeeper.playback.timers import Clock

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Playback lifecycle states."""

    IDLE = "idle"
    BUFFERING = "buffering"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    FAILED = "failed"


class SessionEvent(str, Enum):
    """What caused a transition."""

    START = "start"
    RETRY = "retry"
    BUFFERING = "buffering"
    READY = "ready"
    PAUSE = "pause"
    RESUME = "resume"
    ENDED = "ended"
    FAILURE = "failure"
    RELEASE = "release"


class MediaEngine(Protocol):
    """Commands issued to the external media engine."""

    def load_and_play(self, uri: str) -> None: ...

    def set_autoplay_intent(self, autoplay: bool) -> None: ...

    def release_resources(self) -> None: ...


@dataclass(frozen=True)
class SessionTransition:
    """A published session transition."""

    event: Optional[SessionEvent]
    previous: SessionState
    state: SessionState
    target: Optional[Target]
    attempt: int
    max_retries: int
    will_retry: bool = False
    error: Optional[PlaybackError] = None
    autoplay: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and diagnostics."""
        return {
            "event": self.event.value if self.event else None,
            "previous": self.previous.value,
            "state": self.state.value,
            "target": self.target.to_dict() if self.target else None,
            "attempt": self.attempt,
            "max_retries": self.max_retries,
            "will_retry": self.will_retry,
            "error": self.error.to_dict() if self.error else None,
            "autoplay": self.autoplay,
        }


class PlaybackSession:
    """
    Owns playback lifecycle, target and retry policy for one player.

    Usage:
        session = PlaybackSession(engine, clock, max_retries=5)
        subscription = session.subscribe(on_transition)
        session.start(target)

        # Engine callbacks:
        session.notify_buffering()
        session.notify_ready(autoplay_intent=True)
        session.notify_failure(code, message)

        # Teardown:
        subscription.unsubscribe()
        session.release()
    """

    DEFAULT_MAX_RETRIES = 5

    def __init__(
        self,
        engine: MediaEngine,
        clock: Clock,
        max_retries: int = DEFAULT_MAX_RETRIES,
        policy: Optional[BackoffPolicy] = None,
        validator: Optional[TargetValidator] = None,
    ):
        """
        Initialize playback session.

        Args:
            engine: Media engine receiving load/play/release commands.
            clock: Timer primitive for retry scheduling.
            max_retries: Consecutive retryable failures tolerated per target.
            policy: Backoff configuration.
            validator: Target allow-list, applied at every load attempt.
        """
        self._lock = threading.RLock()
        self._engine = engine
        self._retry = RetryScheduler(clock, policy, lock=self._lock, name="session-retry")
        self._validator = validator or TargetValidator()
        self._max_retries = max_retries

        self._state = SessionState.IDLE
        self._target: Optional[Target] = None
        self._attempt = 0
        self._generation = 0
        self._autoplay = True
        self._will_retry = False
        self._last_error: Optional[PlaybackError] = None
        self._released = False

        self._listeners: Listeners[SessionTransition] = Listeners("Session transition")
        self._last_transition = self._snapshot(None, SessionState.IDLE)

    @classmethod
    def from_config(cls, engine: MediaEngine, clock: Clock, config: Any) -> "PlaybackSession":
        """Build a session from a StreamKeeperConfig."""
        playback = config.playback
        return cls(
            engine,
            clock,
            max_retries=playback.max_retries,
            policy=BackoffPolicy(
                initial_delay_ms=playback.initial_delay_ms,
                max_delay_ms=playback.max_delay_ms,
            ),
            validator=TargetValidator.from_config(config.security),
        )

    # ============ Read access ============

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def target(self) -> Optional[Target]:
        with self._lock:
            return self._target

    @property
    def attempt(self) -> int:
        with self._lock:
            return self._attempt

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def released(self) -> bool:
        with self._lock:
            return self._released

    @property
    def last_error(self) -> Optional[PlaybackError]:
        with self._lock:
            return self._last_error

    @property
    def pending_retry(self) -> Optional[RetryTask]:
        return self._retry.pending

    def snapshot(self) -> SessionTransition:
        """The most recently published transition."""
        with self._lock:
            return self._last_transition

    def subscribe(self, listener: Callable[[SessionTransition], None]) -> Subscription:
        """Register a transition listener. The caller must unsubscribe on teardown."""
        return self._listeners.subscribe(listener)

    # ============ Commands ============

    def start(self, target: Target) -> bool:
        """
        Begin loading a target.

        An explicit start is a fresh session: any pending retry (possibly for
        a previous target) is cancelled and the attempt counter is reset.

        Returns:
            True if the engine was asked to load the target.
        """
        with self._lock:
            if self._released:
                logger.warning(f"Ignoring start({target.id}): session released")
                return False

            self._retry.cancel()
            if self._attempt:
                logger.info(f"Resetting retry counter ({self._attempt}) for new start")
            self._attempt = 0
            self._generation += 1
            self._autoplay = True

            logger.info(f"Starting playback: {target.id}")
            return self._load(target, SessionEvent.START)

    def pause(self) -> bool:
        """Pause playback. Only honoured while PLAYING or PAUSED."""
        return self._set_autoplay(False)

    def resume(self) -> bool:
        """Resume playback. Only honoured while PLAYING or PAUSED."""
        return self._set_autoplay(True)

    def release(self) -> None:
        """
        Tear the session down.

        The pending retry is cancelled before the engine's resources are
        released; engine events arriving afterwards are ignored.
        """
        with self._lock:
            if self._released:
                return

            self._retry.cancel()
            self._released = True
            self._will_retry = False
            self._transition(SessionEvent.RELEASE, SessionState.IDLE)
            self._listeners.clear()

            try:
                self._engine.release_resources()
            except Exception as e:
                logger.error(f"Engine release failed: {e}", exc_info=True)

            logger.info("Playback session released")

    # ============ Engine events ============

    def notify_buffering(self) -> None:
        with self._lock:
            if self._ignore_event("buffering"):
                return
            self._transition(SessionEvent.BUFFERING, SessionState.BUFFERING)

    def notify_ready(self, autoplay_intent: bool = True) -> None:
        """
        The engine is ready to render.

        A successful ready resets the retry counter and cancels any pending
        retry. Safe to receive repeatedly.
        """
        with self._lock:
            if self._ignore_event("ready"):
                return

            self._retry.cancel()
            if self._attempt:
                logger.info(f"Playback recovered after {self._attempt} retry attempt(s)")
            self._attempt = 0
            self._will_retry = False
            self._last_error = None
            self._autoplay = bool(autoplay_intent)

            state = SessionState.PLAYING if self._autoplay else SessionState.PAUSED
            self._transition(SessionEvent.READY, state)

    def notify_ended(self) -> None:
        """Playback reached the end. Abnormal for a live stream."""
        with self._lock:
            if self._ignore_event("ended"):
                return
            logger.warning(f"Playback ended: {self._target.id if self._target else None}")
            self._transition(SessionEvent.ENDED, SessionState.ENDED)

    def notify_failure(self, raw_code: Any, raw_message: Any = None) -> PlaybackError:
        """
        Classify an engine failure and decide whether to retry.

        Retryable failures under the attempt ceiling arm one retry, delayed by
        the backoff for the pre-increment attempt, and then bump the counter.
        Anything else is terminal until the next explicit `start()`.

        Returns:
            The classified error.
        """
        error = classify(raw_code, raw_message)

        with self._lock:
            if self._ignore_event("failure"):
                return error

            self._last_error = error
            target = self._target

            task = None
            if target is not None and should_retry(error, self._attempt, self._max_retries):
                task = self._retry.schedule_retry(
                    self._attempt,
                    partial(self._on_retry, target, self._generation),
                )

            if task is not None:
                self._attempt += 1
                self._will_retry = True
                logger.warning(
                    f"Playback failed on {target.id}: {error.kind.value} "
                    f"(code={error.code}) - retry {self._attempt}/{self._max_retries} "
                    f"in {task.delay_ms}ms"
                )
            else:
                self._retry.cancel()
                self._will_retry = False
                if not error.retryable:
                    logger.error(
                        f"Playback failed: {error.kind.value} (code={error.code}) - "
                        f"non-retryable, not scheduling retry"
                    )
                elif self._attempt >= self._max_retries:
                    logger.error(
                        f"Playback failed: {error.kind.value} (code={error.code}) - "
                        f"max retries exceeded ({self._attempt}/{self._max_retries})"
                    )
                else:
                    logger.error(
                        f"Playback failed: {error.kind.value} (code={error.code}) - "
                        f"retry could not be scheduled"
                    )

            self._transition(SessionEvent.FAILURE, SessionState.FAILED)

        return error

    # ============ Internals ============

    def _ignore_event(self, name: str) -> bool:
        if self._released:
            logger.debug(f"Ignoring engine event '{name}': session released")
            return True
        return False

    def _on_retry(self, target: Target, generation: int) -> None:
        # Runs under self._lock (shared with the retry scheduler)
        if self._released or generation != self._generation:
            logger.debug(f"Dropping stale retry for {target.id}")
            return

        logger.info(f"Executing retry attempt {self._attempt}/{self._max_retries} for {target.id}")
        self._load(target, SessionEvent.RETRY)

    def _load(self, target: Target, event: SessionEvent) -> bool:
        self._target = target
        self._will_retry = False
        self._last_error = None

        if not self._validator.is_valid(target.uri):
            logger.error(f"SECURITY: Invalid or unsafe stream URL rejected for {target.id}")
            self.notify_failure(EngineErrorCode.IO_BAD_HTTP_STATUS, "Invalid stream URL")
            return False

        self._transition(event, SessionState.BUFFERING)

        try:
            self._engine.load_and_play(target.uri)
        except Exception as e:
            logger.error(f"Engine failed to load {target.id}: {type(e).__name__}", exc_info=True)
            self.notify_failure(
                EngineErrorCode.UNSPECIFIED, str(e) or "Unexpected playback error"
            )
            return False

        return True

    def _set_autoplay(self, autoplay: bool) -> bool:
        with self._lock:
            if self._released or self._state not in (SessionState.PLAYING, SessionState.PAUSED):
                logger.debug(
                    f"Rejecting {'resume' if autoplay else 'pause'} in state {self._state.value}"
                )
                return False

            try:
                self._engine.set_autoplay_intent(autoplay)
            except Exception as e:
                logger.error(f"Engine rejected autoplay={autoplay}: {e}", exc_info=True)
                return False

            self._autoplay = autoplay
            if autoplay:
                self._transition(SessionEvent.RESUME, SessionState.PLAYING)
            else:
                self._transition(SessionEvent.PAUSE, SessionState.PAUSED)
            return True

    def _snapshot(self, event: Optional[SessionEvent], previous: SessionState) -> SessionTransition:
        return SessionTransition(
            event=event,
            previous=previous,
            state=self._state,
            target=self._target,
            attempt=self._attempt,
            max_retries=self._max_retries,
            will_retry=self._will_retry,
            error=self._last_error,
            autoplay=self._autoplay,
        )

    def _transition(self, event: SessionEvent, state: SessionState) -> None:
        previous = self._state
        self._state = state
        transition = self._snapshot(event, previous)
        self._last_transition = transition

        logger.debug(
            f"Session: {previous.value} -> {state.value} ({event.value}, "
            f"attempt {self._attempt}/{self._max_retries})"
        )
        self._listeners.publish(transition)
