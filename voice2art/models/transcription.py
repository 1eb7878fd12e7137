"""Recognition result data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RecognitionResult:
    """One recognized segment, either final or interim."""
    text: str
    is_final: bool
    confidence: Optional[float] = None  # Only reported for final results


@dataclass(frozen=True)
class RecognitionOptions:
    """Configuration passed to the engine when a session starts."""
    continuous: bool = True  # Keep listening after the first utterance
    interim_results: bool = True
    language: str = "en-US"
    max_alternatives: int = 1
