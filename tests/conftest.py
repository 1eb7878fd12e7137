"""Pytest configuration and fixtures for voice2art tests."""

import itertools
import logging
from typing import List, NamedTuple, Optional
from unittest.mock import Mock, patch

import pytest

from voice2art.models.transcription import RecognitionOptions
from voice2art.recognition.base import AbstractRecognitionEngine, RecognitionCallbacks
from voice2art.services.publisher import SessionPublisher
from voice2art.services.voice_session import VoiceSessionController


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_topic_counter = itertools.count()


class FakeSession(NamedTuple):
    handle: str
    options: RecognitionOptions
    callbacks: RecognitionCallbacks


class FakeRecognitionEngine(AbstractRecognitionEngine):
    """Engine that records calls; tests fire its callbacks by hand."""

    def __init__(self, supported: bool = True):
        self.supported = supported
        self.permission_error: Optional[Exception] = None
        self.start_error: Optional[Exception] = None
        self.permission_gate = None  # asyncio.Event awaited before permission resolves
        self.permission_requests = 0
        self.sessions: List[FakeSession] = []
        self.stopped: List[str] = []

    def is_supported(self) -> bool:
        return self.supported

    async def request_microphone_permission(self) -> None:
        self.permission_requests += 1
        if self.permission_gate is not None:
            await self.permission_gate.wait()
        if self.permission_error is not None:
            raise self.permission_error

    def start_session(self, options, callbacks) -> str:
        if self.start_error is not None:
            raise self.start_error
        handle = f"fake_{len(self.sessions) + 1}"
        self.sessions.append(FakeSession(handle, options, callbacks))
        return handle

    def stop(self, handle) -> None:
        self.stopped.append(handle)

    @property
    def latest(self) -> FakeSession:
        return self.sessions[-1]


@pytest.fixture
def topics():
    """Unique pub/sub topic names so tests never share listeners."""
    n = next(_topic_counter)
    return {
        "transcript_topic": f"test{n}.transcript",
        "session_topic": f"test{n}.session",
    }


@pytest.fixture
def publisher(topics):
    return SessionPublisher(**topics)


@pytest.fixture
def fake_engine():
    return FakeRecognitionEngine()


@pytest.fixture
def controller(fake_engine, publisher):
    return VoiceSessionController(fake_engine, publisher=publisher)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = {"index": 0, "name": "Mock Mic"}

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
