"""Abstract base class for speech recognition engines."""

from abc import ABC, abstractmethod
from typing import Callable, Hashable, List, NamedTuple
import logging

from ..models.transcription import RecognitionOptions, RecognitionResult

logger = logging.getLogger(__name__)


# Opaque identifier an engine hands out for one recognition session
RecognitionHandle = Hashable


class RecognitionCallbacks(NamedTuple):
    """Hooks an engine invokes during a recognition session."""
    on_start: Callable[[], None]
    on_result: Callable[[List[RecognitionResult]], None]
    on_error: Callable[[str], None]
    on_end: Callable[[], None]


class AbstractRecognitionEngine(ABC):
    """Uniform start/stop/event interface over a continuous recognizer.

    Engines must invoke callbacks on the event loop that called
    ``start_session``, in the order the underlying recognizer produced them.
    """

    @abstractmethod
    def is_supported(self) -> bool:
        """Return True if continuous speech recognition is available here.

        Must not have side effects.
        """
        pass

    @abstractmethod
    async def request_microphone_permission(self) -> None:
        """Momentarily open the microphone to confirm access, then release it.

        Raises:
            MicrophonePermissionError: if access was denied or no usable device exists
        """
        pass

    @abstractmethod
    def start_session(self, options: RecognitionOptions, callbacks: RecognitionCallbacks) -> RecognitionHandle:
        """Begin capturing and recognizing speech.

        Args:
            options: Recognition configuration
            callbacks: Hooks for start, result batches, error codes and end

        Returns:
            Handle to pass to ``stop``

        Raises:
            RecognitionEngineError: if the session cannot be started at all
        """
        pass

    @abstractmethod
    def stop(self, handle: RecognitionHandle) -> None:
        """Request graceful termination. Unknown or stopped handles are ignored."""
        pass

    def cleanup(self) -> None:
        """Clean up engine resources."""
        pass
