"""Error taxonomy for voice capture.

Classification is a pure function of the code or reason reported by the
platform. Unknown recognition codes become ``ErrorKind.UNKNOWN`` carrying the
original code; unknown permission reasons are treated as an unavailable device.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class ErrorKind(Enum):
    """Stable classification of everything that can go wrong while capturing."""
    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    DEVICE_NOT_FOUND = "device_not_found"
    DEVICE_UNSUPPORTED = "device_unsupported"
    DEVICE_UNAVAILABLE = "device_unavailable"
    NO_SPEECH_DETECTED = "no_speech_detected"
    NETWORK_ERROR = "network_error"
    SERVICE_DENIED = "service_denied"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN = "unknown"
    BACKEND_ERROR = "backend_error"


class Guidance(Enum):
    """What the UI should offer the user for an error."""
    REMEDIATION = "remediation"
    RETRY = "retry"
    UNSUPPORTED_NOTICE = "unsupported_notice"


# Kinds the microphone permission request may fail with
PERMISSION_ERROR_KINDS = frozenset({
    ErrorKind.PERMISSION_DENIED,
    ErrorKind.DEVICE_NOT_FOUND,
    ErrorKind.DEVICE_UNSUPPORTED,
    ErrorKind.DEVICE_UNAVAILABLE,
})


@dataclass(frozen=True)
class ClassifiedError:
    """A classified error with the message shown to the user."""
    kind: ErrorKind
    message: str
    code: Optional[str] = None  # Platform code or reason that produced this error

    @property
    def is_permission_error(self) -> bool:
        return self.kind is ErrorKind.PERMISSION_DENIED

    @property
    def guidance(self) -> Guidance:
        if self.kind is ErrorKind.PERMISSION_DENIED:
            return Guidance.REMEDIATION
        if self.kind is ErrorKind.UNSUPPORTED:
            return Guidance.UNSUPPORTED_NOTICE
        return Guidance.RETRY


class MicrophonePermissionError(Exception):
    """Raised when microphone access cannot be obtained."""

    def __init__(self, kind: ErrorKind, reason: str, message: Optional[str] = None):
        if kind not in PERMISSION_ERROR_KINDS:
            raise ValueError(f"Not a permission error kind: {kind}")
        self.kind = kind
        self.reason = reason
        super().__init__(message or f"Microphone permission failed: {reason}")


class RecognitionEngineError(Exception):
    """Raised by an engine that cannot begin a recognition session."""

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message or f"Recognition engine error: {code}")


UNSUPPORTED_MESSAGE = (
    "Speech recognition is not supported in this environment. "
    "Please configure a speech recognition service and try again."
)

RECOGNITION_ERRORS: Dict[str, Tuple[ErrorKind, str]] = {
    "not-allowed": (
        ErrorKind.PERMISSION_DENIED,
        "Microphone access denied. Please allow microphone access in your settings and try again.",
    ),
    "permission-denied": (
        ErrorKind.PERMISSION_DENIED,
        "Microphone access denied. Please allow microphone access in your settings and try again.",
    ),
    "no-speech": (
        ErrorKind.NO_SPEECH_DETECTED,
        "No speech detected. Please speak clearly and try again.",
    ),
    "audio-capture": (
        ErrorKind.DEVICE_UNAVAILABLE,
        "No microphone found. Please connect a microphone and try again.",
    ),
    "device-not-found": (
        ErrorKind.DEVICE_UNAVAILABLE,
        "No microphone found. Please connect a microphone and try again.",
    ),
    "network": (
        ErrorKind.NETWORK_ERROR,
        "Network error occurred. Please check your internet connection.",
    ),
    "service-not-allowed": (
        ErrorKind.SERVICE_DENIED,
        "Speech recognition service not allowed. Please try again.",
    ),
    "bad-grammar": (
        ErrorKind.CONFIGURATION_ERROR,
        "Speech recognition grammar error. Please try again.",
    ),
    "language-not-supported": (
        ErrorKind.CONFIGURATION_ERROR,
        "Language not supported. Please try again.",
    ),
}

# Platform permission failure reasons, named after the media-device errors
PERMISSION_REASONS: Dict[str, ErrorKind] = {
    "NotAllowedError": ErrorKind.PERMISSION_DENIED,
    "SecurityError": ErrorKind.PERMISSION_DENIED,
    "NotFoundError": ErrorKind.DEVICE_NOT_FOUND,
    "OverconstrainedError": ErrorKind.DEVICE_NOT_FOUND,
    "NotSupportedError": ErrorKind.DEVICE_UNSUPPORTED,
    "NotReadableError": ErrorKind.DEVICE_UNAVAILABLE,
    "AbortError": ErrorKind.DEVICE_UNAVAILABLE,
}

PERMISSION_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.PERMISSION_DENIED: "Microphone access denied. Please allow microphone access and try again.",
    ErrorKind.DEVICE_NOT_FOUND: "No microphone found. Please connect a microphone and try again.",
    ErrorKind.DEVICE_UNSUPPORTED: "Microphone access is not supported on this device.",
    ErrorKind.DEVICE_UNAVAILABLE: "Failed to access microphone. Please check your audio settings.",
}


def classify_recognition_error(code: str) -> ClassifiedError:
    """Map an engine error code to a classified error."""
    kind, message = RECOGNITION_ERRORS.get(code, (ErrorKind.UNKNOWN, None))
    if message is None:
        message = f"Speech recognition error: {code}. Please try again."
    return ClassifiedError(kind=kind, message=message, code=code)


def permission_kind_for_reason(reason: str) -> ErrorKind:
    """Map a platform permission failure reason to an error kind."""
    return PERMISSION_REASONS.get(reason, ErrorKind.DEVICE_UNAVAILABLE)


def permission_error_for_reason(reason: str) -> MicrophonePermissionError:
    """Build the exception an engine raises for a permission failure reason."""
    kind = permission_kind_for_reason(reason)
    return MicrophonePermissionError(kind, reason, PERMISSION_MESSAGES[kind])


def classify_permission_error(error: MicrophonePermissionError) -> ClassifiedError:
    """Turn a raised permission failure into a classified error."""
    return ClassifiedError(
        kind=error.kind,
        message=PERMISSION_MESSAGES[error.kind],
        code=error.reason,
    )


def unsupported_error() -> ClassifiedError:
    return ClassifiedError(kind=ErrorKind.UNSUPPORTED, message=UNSUPPORTED_MESSAGE)
