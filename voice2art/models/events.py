"""Recognition events consumed by the voice session controller.

Every event carries the generation token of the recognition session that
raised it, so that events from a superseded session can be discarded.
"""

from dataclasses import dataclass
from typing import Tuple

from .transcription import RecognitionResult


@dataclass(frozen=True)
class RecognitionEvent:
    """Base class for all recognition events."""
    token: int


@dataclass(frozen=True)
class RecognitionStarted(RecognitionEvent):
    """The engine began capturing audio."""


@dataclass(frozen=True)
class ResultsReceived(RecognitionEvent):
    """A batch of recognition results, in recognition order."""
    results: Tuple[RecognitionResult, ...] = ()


@dataclass(frozen=True)
class RecognitionFailed(RecognitionEvent):
    """The engine reported an error code."""
    code: str = ""


@dataclass(frozen=True)
class RecognitionEnded(RecognitionEvent):
    """The engine stopped capturing, for whatever reason."""
