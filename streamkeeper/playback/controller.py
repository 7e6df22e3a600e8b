"""
Player controller.

Wires a PlaybackSession, its PresentationCoordinator and the channel
directory together: resolves channels, maps user intents onto session
commands, forwards media engine events, and tears everything down in order.
The controller keeps no retry state of its own; the session is the only
owner of the attempt counter.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from streamkeeper.config import StreamKeeperConfig, get_config
from streamkeeper.playback.errors import PlaybackError
from streamkeeper.playback.events import Subscription
from streamkeeper.playback.presentation import OverlayView, PresentationCoordinator
from streamkeeper.playback.session import MediaEngine, PlaybackSession, SessionState
from streamkeeper.playback.targets import Target
from streamkeeper.playback.timers import Clock

if TYPE_CHECKING:
    from streamkeeper.channels.directory import ChannelDirectory

logger = logging.getLogger(__name__)


class PlaybackIntent(str, Enum):
    """User intents the UI may emit."""

    PLAY_PAUSE = "play_pause"
    PLAY = "play"
    PAUSE = "pause"
    NEXT = "next"
    PREVIOUS = "previous"
    SWITCH = "switch"


class PlayerController:
    """
    Application-level entry point for one player.

    Usage:
        controller = PlayerController(engine, directory, AsyncioClock())
        controller.subscribe_overlay(render)
        controller.open()

        # Engine callbacks:
        controller.on_buffering_started()
        controller.on_ready_to_play(True)
        controller.on_playback_failed(2002, "timeout")

        # Remote control:
        controller.handle_intent(PlaybackIntent.NEXT)

        controller.release()
    """

    def __init__(
        self,
        engine: MediaEngine,
        directory: "ChannelDirectory",
        clock: Clock,
        config: Optional[StreamKeeperConfig] = None,
    ):
        self._config = config or get_config()
        self._directory = directory
        self._restart_on_end = self._config.playback.restart_on_end

        self.session = PlaybackSession.from_config(engine, clock, self._config)
        self.presentation = PresentationCoordinator.from_config(clock, self._config)
        self._session_subscription: Optional[Subscription] = self.session.subscribe(
            self.presentation.on_session_transition
        )
        self._released = False

    @property
    def current_target(self) -> Optional[Target]:
        return self.session.target

    @property
    def overlay(self) -> OverlayView:
        return self.presentation.view

    def subscribe_overlay(self, listener: Callable[[OverlayView], None]) -> Subscription:
        return self.presentation.subscribe(listener)

    # ============ Channel navigation ============

    def open(self, channel_id: Optional[str] = None) -> Optional[Target]:
        """
        Start playback of a channel, falling back to the default channel.

        Returns:
            The target being played, or None if the controller is released.
        """
        target = None
        if channel_id is not None:
            target = self._directory.get_target_by_id(channel_id)
            if target is None:
                logger.warning(f"Unknown channel '{channel_id}', using default")
        if target is None:
            target = self._directory.get_default_target()
        return self._switch(target)

    def switch_to(self, channel_id: str) -> Optional[Target]:
        target = self._directory.get_target_by_id(channel_id)
        if target is None:
            logger.warning(f"Cannot switch: unknown channel '{channel_id}'")
            return None
        return self._switch(target)

    def next_channel(self) -> Optional[Target]:
        current = self.session.target
        if current is None:
            return None
        target = self._directory.get_next_target(current.id)
        if target is None:
            return None
        logger.info(f"Switching to next channel: {target.display_name}")
        return self._switch(target)

    def previous_channel(self) -> Optional[Target]:
        current = self.session.target
        if current is None:
            return None
        target = self._directory.get_previous_target(current.id)
        if target is None:
            return None
        logger.info(f"Switching to previous channel: {target.display_name}")
        return self._switch(target)

    # ============ Playback intents ============

    def pause(self) -> bool:
        return self.session.pause()

    def resume(self) -> bool:
        return self.session.resume()

    def toggle_play_pause(self) -> bool:
        if self.session.state is SessionState.PLAYING:
            return self.session.pause()
        return self.session.resume()

    def handle_intent(self, intent: PlaybackIntent, channel_id: Optional[str] = None) -> Any:
        """
        Dispatch a user intent.

        Returns:
            The new target for navigation intents, otherwise whether the
            command was accepted.
        """
        intent = PlaybackIntent(intent)

        if intent is PlaybackIntent.PLAY_PAUSE:
            return self.toggle_play_pause()
        if intent is PlaybackIntent.PLAY:
            return self.resume()
        if intent is PlaybackIntent.PAUSE:
            return self.pause()
        if intent is PlaybackIntent.NEXT:
            return self.next_channel()
        if intent is PlaybackIntent.PREVIOUS:
            return self.previous_channel()
        if channel_id is None:
            logger.warning("Switch intent without a channel id")
            return None
        return self.switch_to(channel_id)

    # ============ Engine events ============

    def on_buffering_started(self) -> None:
        self.session.notify_buffering()

    def on_ready_to_play(self, autoplay_intent: bool = True) -> None:
        self.session.notify_ready(autoplay_intent)

    def on_playback_ended(self) -> None:
        self.session.notify_ended()

        target = self.session.target
        if self._restart_on_end and target is not None and not self._released:
            logger.info(f"Restarting live stream after end: {target.id}")
            self.session.start(target)

    def on_playback_failed(self, raw_code: Any, raw_message: Any = None) -> PlaybackError:
        return self.session.notify_failure(raw_code, raw_message)

    # ============ Teardown ============

    def release(self) -> None:
        """Cancel banner and retry timers, then release the engine."""
        if self._released:
            return
        self._released = True

        self.presentation.release()
        if self._session_subscription is not None:
            self._session_subscription.unsubscribe()
            self._session_subscription = None
        self.session.release()

        logger.info("Player controller released")

    def _switch(self, target: Target) -> Optional[Target]:
        if self._released:
            logger.warning(f"Ignoring switch to {target.id}: controller released")
            return None

        self.session.start(target)
        self.presentation.show_banner(target.display_name)
        return target
