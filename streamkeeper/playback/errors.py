"""
Error classification for media engine failures.

Maps the engine's opaque failure codes onto a small, retry-policy-annotated
taxonomy and builds the user-facing text shown in the error overlay.
Classification is total: any raw input, however malformed, yields an error
object and never raises.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Classification of playback failures."""

    NETWORK = "network"  # Connection failures
    TIMEOUT = "timeout"  # Connection or read timeouts
    STREAM_UNAVAILABLE = "stream_unavailable"  # Bad HTTP status, missing or malformed stream
    CODEC_UNSUPPORTED = "codec_unsupported"  # Decoder/format not supported
    AUTH_REQUIRED = "auth_required"  # DRM, permission or sign-in failures
    UNKNOWN = "unknown"  # Unclassified errors


class EngineErrorCode(IntEnum):
    """Media engine error codes (ExoPlayer PlaybackException numbering)."""

    UNSPECIFIED = 1000
    REMOTE_ERROR = 1001
    BEHIND_LIVE_WINDOW = 1002
    TIMEOUT = 1003
    FAILED_RUNTIME_CHECK = 1004

    IO_UNSPECIFIED = 2000
    IO_NETWORK_CONNECTION_FAILED = 2001
    IO_NETWORK_CONNECTION_TIMEOUT = 2002
    IO_INVALID_HTTP_CONTENT_TYPE = 2003
    IO_BAD_HTTP_STATUS = 2004
    IO_FILE_NOT_FOUND = 2005
    IO_NO_PERMISSION = 2006
    IO_CLEARTEXT_NOT_PERMITTED = 2007
    IO_READ_POSITION_OUT_OF_RANGE = 2008

    PARSING_CONTAINER_MALFORMED = 3001
    PARSING_MANIFEST_MALFORMED = 3002
    PARSING_CONTAINER_UNSUPPORTED = 3003
    PARSING_MANIFEST_UNSUPPORTED = 3004

    DECODER_INIT_FAILED = 4001
    DECODER_QUERY_FAILED = 4002
    DECODING_FAILED = 4003
    DECODING_FORMAT_EXCEEDS_CAPABILITIES = 4004
    DECODING_FORMAT_UNSUPPORTED = 4005

    AUDIO_TRACK_INIT_FAILED = 5001
    AUDIO_TRACK_WRITE_FAILED = 5002

    DRM_UNSPECIFIED = 6000
    DRM_SCHEME_UNSUPPORTED = 6001
    DRM_PROVISIONING_FAILED = 6002
    DRM_CONTENT_ERROR = 6003
    DRM_LICENSE_ACQUISITION_FAILED = 6004
    DRM_DISALLOWED_OPERATION = 6005
    DRM_SYSTEM_ERROR = 6006
    DRM_DEVICE_REVOKED = 6007
    DRM_LICENSE_EXPIRED = 6008


# ============ Taxonomy ============


@dataclass(frozen=True)
class PlaybackError:
    """
    A classified playback failure.

    Subclasses fix the kind, retryability and user-facing text; instances
    carry only the raw message and the resolved engine code.
    """

    message: str
    code: Optional[int] = None

    kind = ErrorKind.UNKNOWN
    retryable = True
    user_message = "Something went wrong"
    action_hint = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and diagnostics."""
        return {
            "kind": self.kind.value,
            "retryable": self.retryable,
            "user_message": self.user_message,
            "action_hint": self.action_hint,
            "message": self.message,
            "code": self.code,
        }


# Alias for callers that name the classified record
ClassifiedError = PlaybackError


@dataclass(frozen=True)
class NetworkError(PlaybackError):
    """Network connectivity issues."""

    is_timeout: bool = False

    retryable = True
    action_hint = "Check your internet connection"

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.TIMEOUT if self.is_timeout else ErrorKind.NETWORK

    @property
    def user_message(self) -> str:
        return "Connection timed out" if self.is_timeout else "Network connection failed"


@dataclass(frozen=True)
class StreamError(PlaybackError):
    """Stream not available or invalid."""

    kind = ErrorKind.STREAM_UNAVAILABLE
    retryable = True
    user_message = "Stream is currently unavailable"
    action_hint = "Try again later"


@dataclass(frozen=True)
class CodecError(PlaybackError):
    """Codec or format not supported."""

    kind = ErrorKind.CODEC_UNSUPPORTED
    retryable = False
    user_message = "Video format not supported"
    action_hint = "This content cannot be played on this device"


@dataclass(frozen=True)
class AuthError(PlaybackError):
    """Authentication or DRM issues."""

    kind = ErrorKind.AUTH_REQUIRED
    retryable = False
    user_message = "Authentication required"
    action_hint = "Please sign in to view this content"


@dataclass(frozen=True)
class UnknownError(PlaybackError):
    """Unknown or unhandled errors."""

    kind = ErrorKind.UNKNOWN
    retryable = True
    user_message = "Something went wrong"
    action_hint = "Please try again"


# ============ Code tables ============


_C = EngineErrorCode

_CODE_KINDS: dict[int, ErrorKind] = {
    _C.IO_NETWORK_CONNECTION_FAILED: ErrorKind.NETWORK,
    _C.IO_NETWORK_CONNECTION_TIMEOUT: ErrorKind.TIMEOUT,
    _C.TIMEOUT: ErrorKind.TIMEOUT,
    _C.IO_BAD_HTTP_STATUS: ErrorKind.STREAM_UNAVAILABLE,
    _C.IO_FILE_NOT_FOUND: ErrorKind.STREAM_UNAVAILABLE,
    _C.IO_INVALID_HTTP_CONTENT_TYPE: ErrorKind.STREAM_UNAVAILABLE,
    _C.DECODER_INIT_FAILED: ErrorKind.CODEC_UNSUPPORTED,
    _C.DECODER_QUERY_FAILED: ErrorKind.CODEC_UNSUPPORTED,
    _C.DECODING_FAILED: ErrorKind.CODEC_UNSUPPORTED,
    _C.DECODING_FORMAT_UNSUPPORTED: ErrorKind.CODEC_UNSUPPORTED,
    _C.AUDIO_TRACK_INIT_FAILED: ErrorKind.CODEC_UNSUPPORTED,
    _C.DRM_DISALLOWED_OPERATION: ErrorKind.AUTH_REQUIRED,
    _C.DRM_LICENSE_ACQUISITION_FAILED: ErrorKind.AUTH_REQUIRED,
    _C.DRM_PROVISIONING_FAILED: ErrorKind.AUTH_REQUIRED,
    _C.DRM_SCHEME_UNSUPPORTED: ErrorKind.AUTH_REQUIRED,
}

# Keyword fallback for free-form code tokens, checked in order.
# Keywords match whole words; multi-word entries match consecutive words.
_KEYWORD_KINDS: list[tuple[ErrorKind, tuple[str, ...]]] = [
    (ErrorKind.TIMEOUT, ("timeout", "timed out")),
    (
        ErrorKind.AUTH_REQUIRED,
        (
            "drm",
            "auth",
            "authentication",
            "unauthorized",
            "forbidden",
            "license",
            "permission",
            "401",
            "403",
        ),
    ),
    (ErrorKind.CODEC_UNSUPPORTED, ("codec", "decoder", "decoding", "audio track")),
    (
        ErrorKind.STREAM_UNAVAILABLE,
        ("stream", "playlist", "manifest", "m3u8", "segment", "not found", "404", "http"),
    ),
    (
        ErrorKind.NETWORK,
        ("network", "connection", "connect", "dns", "unreachable", "offline", "socket"),
    ),
]

_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Network connection failed",
    ErrorKind.TIMEOUT: "Connection timeout",
    ErrorKind.STREAM_UNAVAILABLE: "Stream not available",
    ErrorKind.CODEC_UNSUPPORTED: "Codec error",
    ErrorKind.AUTH_REQUIRED: "DRM/Authentication error",
    ErrorKind.UNKNOWN: "Unknown playback error",
}

# Overlay wording, shorter than the taxonomy's user messages
_DESCRIPTIONS: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Network connection issue",
    ErrorKind.TIMEOUT: "Connection timed out",
    ErrorKind.STREAM_UNAVAILABLE: "Stream unavailable",
    ErrorKind.CODEC_UNSUPPORTED: "Video format not supported",
    ErrorKind.AUTH_REQUIRED: "Authentication required",
    ErrorKind.UNKNOWN: "Playback error",
}

_ACTION_HINTS: dict[ErrorKind, Optional[str]] = {
    ErrorKind.NETWORK: NetworkError.action_hint,
    ErrorKind.TIMEOUT: NetworkError.action_hint,
    ErrorKind.STREAM_UNAVAILABLE: StreamError.action_hint,
    ErrorKind.CODEC_UNSUPPORTED: CodecError.action_hint,
    ErrorKind.AUTH_REQUIRED: AuthError.action_hint,
    ErrorKind.UNKNOWN: UnknownError.action_hint,
}

TERMINAL_MESSAGE = "Unable to connect. Please check your internet connection."

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD = re.compile(r"[^A-Za-z0-9]+")


def _build(kind: ErrorKind, message: str, code: Optional[int]) -> PlaybackError:
    if kind is ErrorKind.NETWORK:
        return NetworkError(message, code)
    if kind is ErrorKind.TIMEOUT:
        return NetworkError(message, code, is_timeout=True)
    if kind is ErrorKind.STREAM_UNAVAILABLE:
        return StreamError(message, code)
    if kind is ErrorKind.CODEC_UNSUPPORTED:
        return CodecError(message, code)
    if kind is ErrorKind.AUTH_REQUIRED:
        return AuthError(message, code)
    return UnknownError(message, code)


def _resolve_code(raw_code: Any) -> tuple[Optional[int], ErrorKind]:
    """Resolve a raw code into (numeric code, kind). Never raises."""
    if isinstance(raw_code, bool) or raw_code is None:
        return None, ErrorKind.UNKNOWN

    if isinstance(raw_code, int):
        return int(raw_code), _CODE_KINDS.get(int(raw_code), ErrorKind.UNKNOWN)

    if not isinstance(raw_code, str):
        return None, ErrorKind.UNKNOWN

    token = raw_code.strip()
    if not token:
        return None, ErrorKind.UNKNOWN

    if token.lstrip("-").isdigit():
        return _resolve_code(int(token))

    # Symbolic names: "IO_NETWORK_CONNECTION_TIMEOUT", "ERROR_CODE_TIMEOUT", "behindLiveWindow"
    name = _NON_WORD.sub("_", _CAMEL_BOUNDARY.sub("_", token)).strip("_").upper()
    if name.startswith("ERROR_CODE_"):
        name = name[len("ERROR_CODE_"):]
    member = EngineErrorCode.__members__.get(name)
    if member is not None:
        return int(member), _CODE_KINDS.get(member, ErrorKind.UNKNOWN)

    words = f" {name.lower().replace('_', ' ')} "
    for kind, keywords in _KEYWORD_KINDS:
        if any(f" {term} " in words for term in keywords):
            return None, kind

    return None, ErrorKind.UNKNOWN


def _coerce_message(raw_message: Any, kind: ErrorKind) -> str:
    if raw_message is None:
        return _DEFAULT_MESSAGES[kind]
    try:
        text = raw_message if isinstance(raw_message, str) else str(raw_message)
    except Exception:
        return _DEFAULT_MESSAGES[kind]
    return text or _DEFAULT_MESSAGES[kind]


class ErrorClassifier:
    """Classifies raw engine failures into the playback error taxonomy."""

    @staticmethod
    def classify(raw_code: Any, raw_message: Any = None) -> PlaybackError:
        """
        Classify a raw engine failure.

        The kind depends on `raw_code` alone, so repeated calls with the same
        code always agree on kind and retryability.

        Args:
            raw_code: Engine error code (int, IntEnum, numeric string,
                symbolic name or free-form token).
            raw_message: Engine-provided description, kept for diagnostics.

        Returns:
            A fresh, immutable PlaybackError.
        """
        try:
            code, kind = _resolve_code(raw_code)
        except Exception:
            code, kind = None, ErrorKind.UNKNOWN

        return _build(kind, _coerce_message(raw_message, kind), code)

    @staticmethod
    def build_message(
        kind: ErrorKind,
        attempt: int,
        max_retries: int,
        retrying: bool,
    ) -> str:
        """
        Build the overlay text for an error.

        Args:
            kind: Error kind.
            attempt: Retry attempts consumed so far.
            max_retries: Attempt ceiling.
            retrying: Whether a retry is scheduled.

        Returns:
            The base description, with a retry counter while retrying, a
            terminal message once retries are exhausted, or the action hint.
        """
        description = _DESCRIPTIONS.get(kind, _DESCRIPTIONS[ErrorKind.UNKNOWN])

        if retrying and attempt < max_retries:
            return f"{description}\nRetrying... ({attempt}/{max_retries})"
        if attempt >= max_retries:
            return f"{description}\n{TERMINAL_MESSAGE}"

        hint = _ACTION_HINTS.get(kind)
        if hint:
            return f"{description}\n{hint}"
        return description

    @staticmethod
    def should_retry(error: PlaybackError, attempt: int, max_retries: int) -> bool:
        """Determine if an error should be retried."""
        return error.retryable and attempt < max_retries


classify = ErrorClassifier.classify
build_message = ErrorClassifier.build_message
should_retry = ErrorClassifier.should_retry
