"""
Unit tests for the player controller.
"""

import threading

import pytest

from streamkeeper.playback.controller import PlaybackIntent, PlayerController
from streamkeeper.playback.presentation import Error, Hidden, Loading, Paused
from streamkeeper.playback.session import SessionState
from tests.fixtures import ConfigFactory


@pytest.mark.unit
class TestOpenAndNavigate:
    """Tests for channel resolution and navigation."""

    def test_open_plays_default_channel(self, controller, engine):
        target = controller.open()

        assert target.id == "ch1"
        assert engine.loads == [target.uri]
        assert isinstance(controller.overlay.base, Loading)
        assert controller.overlay.banner.title == "Channel One"

    def test_open_specific_channel(self, controller):
        assert controller.open("ch2").id == "ch2"

    def test_open_unknown_channel_falls_back_to_default(self, controller):
        assert controller.open("missing").id == "ch1"

    def test_next_and_previous_wrap(self, controller):
        controller.open("ch2")

        assert controller.next_channel().id == "ch0"
        assert controller.previous_channel().id == "ch2"

    def test_navigation_before_open_is_noop(self, controller, engine):
        assert controller.next_channel() is None
        assert controller.previous_channel() is None
        assert engine.loads == []

    def test_switch_to_unknown_is_rejected(self, controller, engine):
        controller.open()

        assert controller.switch_to("missing") is None
        assert len(engine.loads) == 1

    def test_switch_replaces_banner(self, controller, clock):
        controller.open("ch0")
        clock.advance(2000)

        controller.switch_to("ch2")
        clock.advance(2000)

        assert controller.overlay.banner.title == "Channel Two"
        clock.advance(1000)
        assert controller.overlay.banner is None


@pytest.mark.unit
class TestIntents:
    """Tests for handle_intent."""

    def test_play_pause_toggles(self, controller):
        controller.open()
        controller.on_ready_to_play(True)

        assert controller.handle_intent(PlaybackIntent.PLAY_PAUSE) is True
        assert controller.session.state is SessionState.PAUSED
        assert isinstance(controller.overlay.base, Paused)

        assert controller.handle_intent("play_pause") is True
        assert controller.session.state is SessionState.PLAYING
        assert isinstance(controller.overlay.base, Hidden)

    def test_play_and_pause(self, controller):
        controller.open()
        controller.on_ready_to_play()

        assert controller.handle_intent(PlaybackIntent.PAUSE) is True
        assert controller.handle_intent(PlaybackIntent.PLAY) is True

    def test_pause_while_loading_is_rejected(self, controller):
        controller.open()

        assert controller.handle_intent(PlaybackIntent.PAUSE) is False
        assert isinstance(controller.overlay.base, Loading)

    def test_navigation_intents(self, controller):
        controller.open("ch0")

        assert controller.handle_intent(PlaybackIntent.NEXT).id == "ch1"
        assert controller.handle_intent(PlaybackIntent.PREVIOUS).id == "ch0"
        assert controller.handle_intent(PlaybackIntent.SWITCH, channel_id="ch2").id == "ch2"

    def test_switch_intent_requires_channel(self, controller):
        controller.open()

        assert controller.handle_intent(PlaybackIntent.SWITCH) is None

    def test_unknown_intent_raises(self, controller):
        with pytest.raises(ValueError):
            controller.handle_intent("rewind")


@pytest.mark.unit
class TestEngineEvents:
    """Tests for engine event forwarding."""

    def test_failure_shows_retrying_error(self, controller, clock):
        controller.open()
        controller.on_buffering_started()

        error = controller.on_playback_failed(2002, "timeout")

        overlay = controller.overlay.base
        assert isinstance(overlay, Error)
        assert overlay.error == error
        assert "Retrying... (1/5)" in overlay.message

    def test_retry_shows_loading_again(self, controller, clock):
        controller.open()
        controller.on_playback_failed(2001)

        clock.advance(1000)

        assert isinstance(controller.overlay.base, Loading)

    def test_ready_hides_overlay(self, controller):
        controller.open()
        controller.on_ready_to_play(True)

        assert isinstance(controller.overlay.base, Hidden)

    def test_ended_restarts_live_stream(self, controller, engine):
        target = controller.open()
        controller.on_ready_to_play()

        controller.on_playback_ended()

        assert engine.loads == [target.uri, target.uri]
        assert controller.session.state is SessionState.BUFFERING
        assert isinstance(controller.overlay.base, Loading)

    def test_ended_without_restart(self, engine, directory, clock):
        config = ConfigFactory.create(playback={"restart_on_end": False})
        controller = PlayerController(engine, directory, clock, config=config)
        controller.open()
        controller.on_ready_to_play()

        controller.on_playback_ended()

        assert controller.session.state is SessionState.ENDED
        assert len(engine.loads) == 1
        controller.release()

    def test_overlay_subscription(self, controller):
        views = []
        subscription = controller.subscribe_overlay(views.append)

        controller.open()
        subscription.unsubscribe()
        controller.on_ready_to_play()

        assert [v.base.name for v in views] == ["loading", "loading"]
        assert views[-1].banner.title == "Channel One"


@pytest.mark.unit
class TestRelease:
    """Tests for controller teardown."""

    def test_release_cancels_timers_and_engine(self, engine, directory, clock, app_config):
        controller = PlayerController(engine, directory, clock, config=app_config)
        controller.open()
        controller.on_playback_failed(2001)

        controller.release()
        clock.advance(60000)

        assert engine.release_count == 1
        assert len(engine.loads) == 1
        assert clock.pending == []

    def test_release_is_idempotent(self, engine, directory, clock, app_config):
        controller = PlayerController(engine, directory, clock, config=app_config)

        controller.release()
        controller.release()

        assert engine.release_count == 1

    def test_commands_after_release(self, engine, directory, clock, app_config):
        controller = PlayerController(engine, directory, clock, config=app_config)
        controller.release()

        assert controller.open() is None
        assert engine.loads == []

    def test_uses_global_config_by_default(self, engine, directory, clock, monkeypatch):
        monkeypatch.setenv("STREAMKEEPER_MAX_RETRIES", "2")
        monkeypatch.chdir("/")

        controller = PlayerController(engine, directory, clock)

        assert controller.session.max_retries == 2
        controller.release()


@pytest.mark.unit
class TestOverlayObservers:
    """Tests for overlay observers that call back into the player."""

    def test_banner_expiry_observer_can_pause(self, controller, clock):
        """Expiry observers run without holding any lock another thread needs."""
        controller.open()
        controller.on_ready_to_play(True)
        seen = []

        def on_view(view):
            if view.banner is not None or seen:
                return
            reader = threading.Thread(
                target=lambda: seen.append((controller.session.state, controller.overlay.banner)),
                daemon=True,
            )
            reader.start()
            reader.join(timeout=1)
            controller.pause()

        controller.subscribe_overlay(on_view)
        clock.advance(3000)

        assert seen == [(SessionState.PLAYING, None)]
        assert controller.session.state is SessionState.PAUSED
        assert isinstance(controller.overlay.base, Paused)
