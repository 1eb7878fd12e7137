"""Voice session controller.

Turns an event-emitting recognition engine into a single voice session with a
listening flag, an accumulating transcript, a confidence score and a
classified error. Engine events are wrapped into tagged event objects that
carry the generation token of the session that raised them; ``dispatch``
applies them one at a time and drops anything from a superseded token.

The controller is not thread-safe. Commands and engine callbacks must run on
the same event loop.
"""

import logging
from typing import Optional

from ..models.errors import (
    ClassifiedError,
    MicrophonePermissionError,
    RecognitionEngineError,
    classify_permission_error,
    classify_recognition_error,
    unsupported_error,
)
from ..models.events import (
    RecognitionEnded,
    RecognitionEvent,
    RecognitionFailed,
    RecognitionStarted,
    ResultsReceived,
)
from ..models.session import SessionSnapshot, SessionStatus, VoiceSession
from ..models.transcription import RecognitionOptions
from ..recognition.base import AbstractRecognitionEngine, RecognitionCallbacks, RecognitionHandle
from .publisher import SessionPublisher

logger = logging.getLogger(__name__)


class VoiceSessionController:
    """Owns one voice session and drives a recognition engine."""

    def __init__(self,
                 engine: AbstractRecognitionEngine,
                 options: Optional[RecognitionOptions] = None,
                 publisher: Optional[SessionPublisher] = None):
        """Initialize voice session controller.

        Args:
            engine: Recognition engine to drive
            options: Recognition options used for every session
            publisher: Publisher for transcript and session notifications
        """
        self.engine = engine
        self.options = options or RecognitionOptions()
        self.publisher = publisher or SessionPublisher()
        self.session = VoiceSession()

        # Generation counter; each start() gets a fresh token
        self._generation = 0
        # Token whose engine events are currently accepted
        self._current_token: Optional[int] = None
        # Token of a start() still waiting on the permission request
        self._pending_token: Optional[int] = None
        self._handle: Optional[RecognitionHandle] = None
        self._handle_released = False

        self._handlers = {
            RecognitionStarted: self._on_started,
            ResultsReceived: self._on_results,
            RecognitionFailed: self._on_failed,
            RecognitionEnded: self._on_ended,
        }
        logger.info(f"VoiceSessionController initialized with {engine.__class__.__name__}")

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def is_supported(self) -> bool:
        return self.engine.is_supported()

    @property
    def is_starting(self) -> bool:
        """True while a start is waiting for permission or for the engine to begin."""
        if self._pending_token is not None:
            return True
        return self._handle is not None and self.session.status is not SessionStatus.LISTENING

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot.of(self.session)

    async def start(self) -> None:
        """Request microphone access and begin a recognition session.

        Never raises: every failure is reported through ``last_error``.
        """
        if not self.engine.is_supported():
            logger.warning("Speech recognition is not supported")
            self.session.last_error = unsupported_error()
            self._publish_state()
            return
        if self.session.status is SessionStatus.LISTENING:
            logger.warning("Already listening, ignoring start")
            return
        if self.is_starting:
            logger.warning("Start already in progress, ignoring start")
            return

        self.session.last_error = None
        self._generation += 1
        token = self._generation
        self._pending_token = token
        self._publish_state()

        logger.info(f"Requesting microphone permission for session {token}")
        try:
            error = await self._request_permission(token)
        finally:
            cancelled = self._pending_token != token
            if not cancelled:
                self._pending_token = None

        if cancelled:
            logger.info(f"Session {token} was cancelled while requesting permission")
            return
        if error is not None:
            self.session.last_error = error
            self._publish_state()
            return

        # Events of the previous handle are stale from here on
        self._current_token = token
        self._handle_released = False
        try:
            handle = self.engine.start_session(self.options, self._callbacks_for(token))
        except RecognitionEngineError as e:
            logger.error(f"Failed to start recognition session {token}: {e}")
            self._fail_start(classify_recognition_error(e.code))
            return
        except Exception as e:
            logger.error(f"Unexpected error starting recognition session {token}: {e}", exc_info=True)
            self._fail_start(classify_recognition_error(e.__class__.__name__))
            return

        if self._handle_released:
            # The engine ended the session before start_session returned
            self.engine.stop(handle)
        else:
            self._handle = handle
        logger.info(f"Recognition session {token} started with handle {handle}")

    def stop(self) -> None:
        """Stop listening. Visible state changes immediately."""
        if self._pending_token is not None:
            logger.info(f"Cancelling pending start of session {self._pending_token}")
            self._pending_token = None
        if self.session.status is not SessionStatus.LISTENING:
            if self._handle is not None:
                logger.info("Stopping a session that has not started yet")
                self._release_handle()
                # Its on_start may still be on the way
                self._current_token = None
            else:
                logger.debug("Not listening, ignoring stop")
            return

        logger.info(f"Stopping session {self._current_token}")
        self._release_handle()
        self.session.status = SessionStatus.IDLE
        self._publish_state()

    def reset(self) -> None:
        """Clear transcript, confidence and error without touching the status."""
        logger.info("Resetting voice session")
        self.session.clear()
        self.publisher.publish_transcript(self.session.transcript)
        self._publish_state()

    def close(self) -> None:
        """Tear down: release any handle and ignore all further engine events."""
        logger.info("Closing voice session controller")
        self._pending_token = None
        self._release_handle()
        self._current_token = None
        if self.session.status is not SessionStatus.IDLE:
            self.session.status = SessionStatus.IDLE
            self._publish_state()

    def dispatch(self, event: RecognitionEvent) -> None:
        """Apply one engine event to the session."""
        if event.token != self._current_token:
            logger.debug(f"Dropping stale {type(event).__name__} from session {event.token}")
            return
        self._handlers[type(event)](event)

    def _on_started(self, event: RecognitionStarted) -> None:
        logger.info(f"Speech recognition started (session {event.token})")
        self.session.status = SessionStatus.LISTENING
        self.session.last_error = None
        self._publish_state()

    def _on_results(self, event: ResultsReceived) -> None:
        for result in event.results:
            if result.is_final:
                self.session.finalized_prefix += result.text
                if result.confidence is not None:
                    self.session.confidence = result.confidence
                self.session.pending_suffix = ""
            else:
                self.session.pending_suffix = result.text
        logger.debug(f"Transcript now: '{self.session.transcript}' "
                     f"(confidence: {self.session.confidence:.2f})")
        self.publisher.publish_transcript(self.session.transcript)
        self._publish_state()

    def _on_failed(self, event: RecognitionFailed) -> None:
        logger.error(f"Speech recognition error in session {event.token}: {event.code}")
        self._release_handle()
        self.session.status = SessionStatus.IDLE
        self.session.last_error = classify_recognition_error(event.code)
        self._publish_state()

    def _on_ended(self, event: RecognitionEnded) -> None:
        logger.info(f"Speech recognition ended (session {event.token})")
        self._release_handle()
        if self.session.status is SessionStatus.LISTENING:
            self.session.status = SessionStatus.IDLE
            self._publish_state()

    async def _request_permission(self, token: int) -> Optional[ClassifiedError]:
        """Await the engine's permission request and classify any failure."""
        try:
            await self.engine.request_microphone_permission()
        except MicrophonePermissionError as e:
            logger.error(f"Microphone permission failed for session {token}: {e.reason}")
            return classify_permission_error(e)
        except Exception as e:
            logger.error(f"Unexpected error requesting microphone for session {token}: {e}", exc_info=True)
            return classify_recognition_error(e.__class__.__name__)
        return None

    def _fail_start(self, error: ClassifiedError) -> None:
        self._current_token = None
        self.session.status = SessionStatus.IDLE
        self.session.last_error = error
        self._publish_state()

    def _release_handle(self) -> None:
        if self._handle is not None:
            self.engine.stop(self._handle)
            self._handle = None
        self._handle_released = True

    def _callbacks_for(self, token: int) -> RecognitionCallbacks:
        return RecognitionCallbacks(
            on_start=lambda: self.dispatch(RecognitionStarted(token)),
            on_result=lambda results: self.dispatch(ResultsReceived(token, tuple(results))),
            on_error=lambda code: self.dispatch(RecognitionFailed(token, code)),
            on_end=lambda: self.dispatch(RecognitionEnded(token)),
        )

    def _publish_state(self) -> None:
        self.publisher.publish_snapshot(self.snapshot())
