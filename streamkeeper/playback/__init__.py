"""
StreamKeeper Playback Module

Resilience core for live-stream playback.

Components:
- RetryScheduler: Single-flight exponential backoff timer
- ErrorClassifier: Engine failure taxonomy and overlay messages
- PlaybackSession: Lifecycle state machine and retry owner
- PresentationCoordinator: Overlay state machine and channel banner
- PlayerController: Channel navigation, intents and teardown
"""

from streamkeeper.playback.controller import PlaybackIntent, PlayerController
from streamkeeper.playback.errors import (
    AuthError,
    ClassifiedError,
    CodecError,
    EngineErrorCode,
    ErrorClassifier,
    ErrorKind,
    NetworkError,
    PlaybackError,
    StreamError,
    UnknownError,
    build_message,
    classify,
    should_retry,
)
from streamkeeper.playback.events import Listeners, Subscription
from streamkeeper.playback.presentation import (
    Banner,
    Error,
    Hidden,
    Loading,
    OverlayState,
    OverlayView,
    Paused,
    PresentationCoordinator,
)
from streamkeeper.playback.retry_scheduler import BackoffPolicy, RetryScheduler, RetryTask
from streamkeeper.playback.session import (
    MediaEngine,
    PlaybackSession,
    SessionEvent,
    SessionState,
    SessionTransition,
)
from streamkeeper.playback.targets import Target, TargetValidator
from streamkeeper.playback.timers import AsyncioClock, Clock, TimerHandle

__all__ = [
    # Controller
    "PlaybackIntent",
    "PlayerController",
    # Errors
    "AuthError",
    "ClassifiedError",
    "CodecError",
    "EngineErrorCode",
    "ErrorClassifier",
    "ErrorKind",
    "NetworkError",
    "PlaybackError",
    "StreamError",
    "UnknownError",
    "build_message",
    "classify",
    "should_retry",
    # Listeners
    "Listeners",
    "Subscription",
    # Presentation
    "Banner",
    "Error",
    "Hidden",
    "Loading",
    "OverlayState",
    "OverlayView",
    "Paused",
    "PresentationCoordinator",
    # Retry
    "BackoffPolicy",
    "RetryScheduler",
    "RetryTask",
    # Session
    "MediaEngine",
    "PlaybackSession",
    "SessionEvent",
    "SessionState",
    "SessionTransition",
    # Targets
    "Target",
    "TargetValidator",
    # Timers
    "AsyncioClock",
    "Clock",
    "TimerHandle",
]
