"""Voice session data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ClassifiedError


class SessionStatus(Enum):
    """Status of a voice capture session."""
    IDLE = "idle"
    LISTENING = "listening"
    ERRORED = "errored"


@dataclass
class VoiceSession:
    """Mutable state of one recording attempt, owned by the controller."""
    status: SessionStatus = SessionStatus.IDLE
    finalized_prefix: str = ""  # Confirmed results, append-only
    pending_suffix: str = ""    # Latest interim result
    confidence: float = 0.0
    last_error: Optional[ClassifiedError] = None

    @property
    def transcript(self) -> str:
        return self.finalized_prefix + self.pending_suffix

    def clear(self) -> None:
        """Drop transcript, confidence and error, keeping the status."""
        self.finalized_prefix = ""
        self.pending_suffix = ""
        self.confidence = 0.0
        self.last_error = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a voice session handed to the UI."""
    status: SessionStatus
    transcript: str
    confidence: float
    error: Optional[ClassifiedError] = None

    @property
    def is_listening(self) -> bool:
        return self.status is SessionStatus.LISTENING

    @property
    def phase(self) -> SessionStatus:
        """Status for display: an idle session holding an error is errored."""
        if self.status is SessionStatus.IDLE and self.error is not None:
            return SessionStatus.ERRORED
        return self.status

    @classmethod
    def of(cls, session: VoiceSession) -> "SessionSnapshot":
        return cls(
            status=session.status,
            transcript=session.transcript,
            confidence=session.confidence,
            error=session.last_error,
        )
