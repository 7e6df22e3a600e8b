"""
Overlay state derived from session transitions.

State transitions (base overlay):
- ANY -> Loading (on load, retry or buffering; no-op if already Loading)
- ANY -> Hidden (on playback start or resume)
- Hidden/Paused -> Paused (dropped while Loading or Error is showing)
- ANY -> Error (on failure, always wins)

The channel banner is an independent layer on top of the base overlay with
its own single-flight auto-dismiss timer. Dismissing it never restores a
remembered state: whatever base overlay is current at that moment stays.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from streamkeeper.playback.errors import PlaybackError, build_message
from streamkeeper.playback.events import Listeners, Subscription
from streamkeeper.playback.retry_scheduler import RetryScheduler
from streamkeeper.playback.session import SessionEvent, SessionTransition
from streamkeeper.playback.timers import Clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Hidden:
    """Playing normally with no overlays."""

    name = "hidden"


@dataclass(frozen=True)
class Loading:
    """Loading/buffering spinner."""

    name = "loading"


@dataclass(frozen=True)
class Paused:
    """Paused indicator."""

    name = "paused"


@dataclass(frozen=True)
class Error:
    """Error overlay with retry information."""

    error: PlaybackError
    attempt: int
    max_retries: int
    retrying: bool

    name = "error"

    @property
    def message(self) -> str:
        return build_message(self.error.kind, self.attempt, self.max_retries, self.retrying)


OverlayState = Union[Hidden, Loading, Paused, Error]

HIDDEN = Hidden()
LOADING = Loading()
PAUSED = Paused()


@dataclass(frozen=True)
class Banner:
    """Transient channel banner."""

    title: str
    info: str
    expires_at_ms: int


@dataclass(frozen=True)
class OverlayView:
    """What the UI should render: a base overlay plus an optional banner."""

    base: OverlayState
    banner: Optional[Banner] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and diagnostics."""
        data: dict[str, Any] = {"state": self.base.name, "banner": None}
        if isinstance(self.base, Error):
            data.update(
                {
                    "error": self.base.error.to_dict(),
                    "message": self.base.message,
                    "attempt": self.base.attempt,
                    "max_retries": self.base.max_retries,
                    "retrying": self.base.retrying,
                }
            )
        if self.banner is not None:
            data["banner"] = {
                "title": self.banner.title,
                "info": self.banner.info,
                "expires_at_ms": self.banner.expires_at_ms,
            }
        return data


class PresentationCoordinator:
    """
    Derives the overlay from session transitions and owns the banner track.

    Observers are notified after the coordinator lock is released. Banner
    operations serialize on a separate banner lock that is always taken
    before the coordinator lock, and the expiry callback runs under it.

    Usage:
        coordinator = PresentationCoordinator(clock)
        subscription = session.subscribe(coordinator.on_session_transition)
        coordinator.subscribe(render)

        coordinator.show_banner("NMTV UK", "Now Playing: Live Stream")
    """

    DEFAULT_BANNER_DURATION_MS = 3000
    DEFAULT_BANNER_INFO = "Now Playing: Live Stream"

    def __init__(
        self,
        clock: Clock,
        banner_duration_ms: int = DEFAULT_BANNER_DURATION_MS,
        banner_info: str = DEFAULT_BANNER_INFO,
    ):
        self._lock = threading.RLock()
        self._banner_lock = threading.RLock()
        self._clock = clock
        self._banner_timer = RetryScheduler(clock, lock=self._banner_lock, name="banner-dismiss")
        self._banner_duration_ms = banner_duration_ms
        self._banner_info = banner_info

        self._base: OverlayState = HIDDEN
        self._banner: Optional[Banner] = None
        self._released = False
        self._listeners: Listeners[OverlayView] = Listeners("Overlay")

    @classmethod
    def from_config(cls, clock: Clock, config: Any) -> "PresentationCoordinator":
        """Build a coordinator from a StreamKeeperConfig."""
        return cls(
            clock,
            banner_duration_ms=config.overlay.banner_duration_ms,
            banner_info=config.overlay.banner_info,
        )

    @property
    def base(self) -> OverlayState:
        with self._lock:
            return self._base

    @property
    def banner(self) -> Optional[Banner]:
        with self._lock:
            return self._banner

    @property
    def view(self) -> OverlayView:
        with self._lock:
            return OverlayView(self._base, self._banner)

    def subscribe(self, listener: Callable[[OverlayView], None]) -> Subscription:
        """Register an overlay observer. The caller must unsubscribe on teardown."""
        return self._listeners.subscribe(listener)

    # ============ Base overlay ============

    def show_loading(self) -> bool:
        with self._lock:
            if self._released or isinstance(self._base, Loading):
                return False
            self._set_base(LOADING)
        self._publish()
        return True

    def hide(self) -> bool:
        with self._lock:
            if self._released or isinstance(self._base, Hidden):
                return False
            self._set_base(HIDDEN)
        self._publish()
        return True

    def show_paused(self) -> bool:
        """
        Show the pause overlay.

        Dropped (not deferred) while Loading or Error is showing, so a pause
        signal can never mask a buffering or error condition.
        """
        with self._lock:
            if self._released:
                return False
            if isinstance(self._base, (Loading, Error)):
                logger.debug(f"Ignoring pause overlay due to current state: {self._base.name}")
                return False
            if isinstance(self._base, Paused):
                return False
            self._set_base(PAUSED)
        self._publish()
        return True

    def show_error(
        self,
        error: PlaybackError,
        attempt: int,
        max_retries: int,
        retrying: bool,
    ) -> bool:
        with self._lock:
            if self._released:
                return False
            logger.debug(
                f"Error overlay: type={error.kind.value}, retry={attempt}/{max_retries}"
            )
            self._set_base(Error(error, attempt, max_retries, retrying))
        self._publish()
        return True

    def on_session_transition(self, transition: SessionTransition) -> None:
        """Map a session transition onto the base overlay."""
        event = transition.event

        if event in (SessionEvent.START, SessionEvent.RETRY, SessionEvent.BUFFERING):
            self.show_loading()
        elif event is SessionEvent.READY:
            self.hide()
            if not transition.autoplay:
                self.show_paused()
        elif event is SessionEvent.PAUSE:
            self.show_paused()
        elif event is SessionEvent.RESUME:
            self.hide()
        elif event is SessionEvent.FAILURE and transition.error is not None:
            self.show_error(
                transition.error,
                transition.attempt,
                transition.max_retries,
                transition.will_retry,
            )
        elif event in (SessionEvent.ENDED, SessionEvent.RELEASE):
            self.hide()

    # ============ Banner ============

    def show_banner(
        self,
        title: str,
        info: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> Optional[Banner]:
        """
        Show the channel banner, replacing any banner already showing.

        Args:
            title: Banner title, usually the channel name.
            info: Secondary line.
            duration_ms: Time until auto-dismiss.

        Returns:
            The banner, or None once the coordinator is released.
        """
        duration = self._banner_duration_ms if duration_ms is None else duration_ms

        with self._banner_lock:
            with self._lock:
                if self._released:
                    return None

                banner = Banner(
                    title=title,
                    info=self._banner_info if info is None else info,
                    expires_at_ms=self._clock.now_ms() + duration,
                )
                self._banner = banner

            self._banner_timer.schedule_once(duration, self._dismiss_banner)
            logger.debug(f"Showing channel banner: {title}")

        self._publish()
        return banner

    def hide_banner(self) -> bool:
        with self._banner_lock:
            self._banner_timer.cancel()
            with self._lock:
                if self._banner is None:
                    return False
                self._banner = None

        self._publish()
        return True

    def release(self) -> None:
        """Cancel the banner timer and drop observers."""
        with self._banner_lock:
            self._banner_timer.cancel()
            with self._lock:
                self._banner = None
                self._released = True
                self._listeners.clear()

    # ============ Internals ============

    def _dismiss_banner(self) -> None:
        # Runs under self._banner_lock via the banner scheduler
        with self._lock:
            if self._banner is None:
                return
            logger.debug(f"Banner expired, base overlay is {self._base.name}")
            self._banner = None
        self._publish()

    def _set_base(self, overlay: OverlayState) -> None:
        logger.debug(f"Transition: {self._base.name} -> {overlay.name}")
        self._base = overlay

    def _publish(self) -> None:
        # Observers may call back into the player, so never under self._lock
        with self._lock:
            if self._released:
                return
            view = OverlayView(self._base, self._banner)
        self._listeners.publish(view)
