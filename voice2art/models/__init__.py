"""Data models for the voice2art application."""

from .errors import (
    ErrorKind,
    Guidance,
    ClassifiedError,
    MicrophonePermissionError,
    RecognitionEngineError,
    PERMISSION_ERROR_KINDS,
    classify_recognition_error,
    classify_permission_error,
    permission_error_for_reason,
    unsupported_error,
)
from .events import (
    RecognitionEvent,
    RecognitionStarted,
    ResultsReceived,
    RecognitionFailed,
    RecognitionEnded,
)
from .session import SessionStatus, VoiceSession, SessionSnapshot
from .transcription import RecognitionResult, RecognitionOptions
from .ui import AgentFamily, RemediationGuide

__all__ = [
    "ErrorKind",
    "Guidance",
    "ClassifiedError",
    "MicrophonePermissionError",
    "RecognitionEngineError",
    "PERMISSION_ERROR_KINDS",
    "classify_recognition_error",
    "classify_permission_error",
    "permission_error_for_reason",
    "unsupported_error",
    # Events
    "RecognitionEvent",
    "RecognitionStarted",
    "ResultsReceived",
    "RecognitionFailed",
    "RecognitionEnded",
    # Session
    "SessionStatus",
    "VoiceSession",
    "SessionSnapshot",
    "RecognitionResult",
    "RecognitionOptions",
    "AgentFamily",
    "RemediationGuide",
]
