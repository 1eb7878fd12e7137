"""Google Speech-to-Text streaming recognition engine."""

import time
import asyncio
import logging
import threading
from pathlib import Path
from threading import Thread
from typing import Any, Callable, Dict, Iterator, List, Optional

import pyaudio
from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

from .base import AbstractRecognitionEngine, RecognitionCallbacks, RecognitionHandle
from ..audio.permission import MicrophonePermissionProbe
from ..models.errors import RecognitionEngineError
from ..models.transcription import RecognitionOptions, RecognitionResult

logger = logging.getLogger(__name__)


def error_code_for_api_exception(error: gax_exceptions.GoogleAPIError) -> str:
    """Map a Google API exception to a recognition error code."""
    if isinstance(error, (gax_exceptions.PermissionDenied, gax_exceptions.Unauthenticated)):
        return "service-not-allowed"
    if isinstance(error, (gax_exceptions.DeadlineExceeded,
                          gax_exceptions.ServiceUnavailable,
                          gax_exceptions.RetryError)):
        return "network"
    if isinstance(error, gax_exceptions.InvalidArgument):
        if "language" in str(error).lower():
            return "language-not-supported"
        return "bad-grammar"
    return error.__class__.__name__


class StreamingSession:
    """One streaming recognition session running on its own thread."""

    def __init__(self, session_id: str, callbacks: RecognitionCallbacks, loop: asyncio.AbstractEventLoop):
        self.session_id = session_id
        self.callbacks = callbacks
        self.loop = loop
        self.stop_event = threading.Event()
        self.thread: Optional[Thread] = None
        self.started_at = time.monotonic()
        self.heard_speech = False
        self.no_speech = False
        self.capture_error: Optional[OSError] = None


class GoogleStreamingEngine(AbstractRecognitionEngine):
    """Continuous recognition with Google Speech-to-Text and a PyAudio microphone."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 chunk_size: int = 1024,
                 channels: int = 1,
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 model: str = "latest_long",
                 no_speech_timeout_seconds: Optional[float] = 8.0,
                 permission_probe: Optional[MicrophonePermissionProbe] = None):
        """Initialize Google streaming engine.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Microphone sample rate in Hz
            chunk_size: Samples per audio request
            channels: Number of microphone channels
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            model: Google recognition model name
            no_speech_timeout_seconds: Report "no-speech" if nothing is recognized
                                       this long after start. None disables it.
            permission_probe: Probe used to request microphone access
        """
        self.credentials_path = credentials_path
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.model = model
        self.no_speech_timeout_seconds = no_speech_timeout_seconds
        self.permission_probe = permission_probe or MicrophonePermissionProbe(
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=channels,
        )
        self.client = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"

        self.lock = threading.Lock()
        self.active_sessions: Dict[str, StreamingSession] = {}
        self.session_counter = 0

    def is_supported(self) -> bool:
        """Google recognition is available when a credentials file is configured."""
        return bool(self.credentials_path) and Path(self.credentials_path).exists()

    def initialize(self) -> bool:
        """Initialize Google Speech client from service account credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        try:
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        except (OSError, ValueError, auth_exceptions.GoogleAuthError) as e:
            logger.error(f"Invalid Google credentials: {e}")
            raise RecognitionEngineError("service-not-allowed", f"Invalid Google credentials: {e}") from e

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")
        logger.info("Google Speech-to-Text engine initialized successfully")
        return True

    async def request_microphone_permission(self) -> None:
        """Probe the microphone on a worker thread."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.permission_probe.probe)

    def start_session(self, options: RecognitionOptions, callbacks: RecognitionCallbacks) -> RecognitionHandle:
        """Start a streaming session; must be called from the event loop."""
        if self.client is None:
            self.initialize()
        loop = asyncio.get_running_loop()

        with self.lock:
            self.session_counter += 1
            session_id = f"google_{self.session_counter}"
            session = StreamingSession(session_id, callbacks, loop)
            self.active_sessions[session_id] = session

        session.thread = Thread(target=self._run_session, args=(session, options), daemon=True)
        session.thread.name = f"RecognitionThread-{session_id}"
        session.thread.start()
        logger.info(f"Started recognition session {session_id} "
                    f"(language={options.language}, continuous={options.continuous})")
        return session_id

    def stop(self, handle: RecognitionHandle) -> None:
        """Signal the session thread to finish; it reports on_end when done."""
        with self.lock:
            session = self.active_sessions.pop(handle, None)
        if session is None:
            logger.debug(f"Ignoring stop for inactive session {handle}")
            return
        logger.info(f"Stopping recognition session {handle}")
        session.stop_event.set()

    def build_streaming_config(self, options: RecognitionOptions) -> speech.StreamingRecognitionConfig:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            audio_channel_count=self.channels,
            language_code=options.language,
            max_alternatives=options.max_alternatives,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            model=self.model,
        )
        return speech.StreamingRecognitionConfig(
            config=config,
            interim_results=options.interim_results,
            single_utterance=not options.continuous,
        )

    @staticmethod
    def results_from_response(response: Any) -> List[RecognitionResult]:
        """Convert a StreamingRecognizeResponse into a result batch."""
        batch = []
        for result in response.results:
            if not result.alternatives:
                continue
            alternative = result.alternatives[0]
            batch.append(RecognitionResult(
                text=alternative.transcript,
                is_final=result.is_final,
                confidence=alternative.confidence if result.is_final else None,
            ))
        return batch

    def _run_session(self, session: StreamingSession, options: RecognitionOptions) -> None:
        """Internal method: capture and stream audio until stopped or failed."""
        pyaudio_instance = None
        stream = None
        try:
            pyaudio_instance = pyaudio.PyAudio()
            stream = pyaudio_instance.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
            )
            self._emit(session, session.callbacks.on_start)

            responses = self.client.streaming_recognize(
                config=self.build_streaming_config(options),
                requests=self._generate_requests(session, stream),
            )
            for response in responses:
                batch = self.results_from_response(response)
                if batch:
                    session.heard_speech = True
                    logger.debug(f"{session.session_id}: {len(batch)} results "
                                 f"({sum(r.is_final for r in batch)} final)")
                    self._emit(session, session.callbacks.on_result, batch)

            if session.capture_error is not None:
                logger.error(f"Audio capture failed in {session.session_id}: {session.capture_error}")
                self._emit(session, session.callbacks.on_error, "audio-capture")
            elif session.no_speech:
                logger.info(f"No speech detected in {session.session_id}")
                self._emit(session, session.callbacks.on_error, "no-speech")
        except gax_exceptions.OutOfRange as e:
            logger.info(f"Streaming limit reached for {session.session_id}: {e}")
        except gax_exceptions.GoogleAPIError as e:
            code = error_code_for_api_exception(e)
            logger.error(f"Google STT error in {session.session_id}: {e} -> {code}")
            self._emit(session, session.callbacks.on_error, code)
        except OSError as e:
            logger.error(f"Microphone error in {session.session_id}: {e}")
            self._emit(session, session.callbacks.on_error, "audio-capture")
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
            if pyaudio_instance is not None:
                pyaudio_instance.terminate()
            with self.lock:
                self.active_sessions.pop(session.session_id, None)
            self._emit(session, session.callbacks.on_end)
            logger.info(f"Recognition session {session.session_id} ended")

    def _generate_requests(self, session: StreamingSession, stream: Any) -> Iterator[speech.StreamingRecognizeRequest]:
        """Yield audio requests until the session is stopped."""
        while not session.stop_event.is_set():
            if self._no_speech_timed_out(session):
                session.no_speech = True
                break
            try:
                chunk = stream.read(self.chunk_size, exception_on_overflow=False)
            except OSError as e:
                session.capture_error = e
                break
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    def _no_speech_timed_out(self, session: StreamingSession) -> bool:
        if self.no_speech_timeout_seconds is None or session.heard_speech:
            return False
        return time.monotonic() - session.started_at >= self.no_speech_timeout_seconds

    def _emit(self, session: StreamingSession, callback: Callable[..., None], *args: Any) -> None:
        """Deliver a callback on the session's event loop."""
        try:
            session.loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping {callback} for {session.session_id}")

    def cleanup(self) -> None:
        """Stop every active session and wait briefly for their threads."""
        with self.lock:
            sessions = list(self.active_sessions.values())
            self.active_sessions.clear()
        for session in sessions:
            session.stop_event.set()
        for session in sessions:
            if session.thread and session.thread.is_alive():
                session.thread.join(timeout=2.0)
                if session.thread.is_alive():
                    logger.warning(f"Recognition thread {session.thread.name} did not stop cleanly")
