"""Unit tests for VoiceSessionController."""

import asyncio

import pytest
from pubsub import pub

from voice2art.models.errors import ErrorKind, RecognitionEngineError, permission_error_for_reason
from voice2art.models.session import SessionStatus
from voice2art.models.transcription import RecognitionResult


def final(text, confidence):
    return RecognitionResult(text=text, is_final=True, confidence=confidence)


def interim(text):
    return RecognitionResult(text=text, is_final=False)


def start_listening(controller, engine):
    """Run start() and let the engine report that capture began."""
    asyncio.run(controller.start())
    engine.latest.callbacks.on_start()
    return engine.latest


@pytest.mark.unit
class TestStart:
    """start() and the permission gate."""

    def test_initial_state(self, controller):
        snapshot = controller.snapshot()

        assert snapshot.status is SessionStatus.IDLE
        assert snapshot.transcript == ""
        assert snapshot.confidence == 0.0
        assert snapshot.error is None

    def test_unsupported_environment(self, controller, fake_engine):
        fake_engine.supported = False

        asyncio.run(controller.start())

        assert controller.status is SessionStatus.IDLE
        assert controller.session.last_error.kind is ErrorKind.UNSUPPORTED
        assert fake_engine.permission_requests == 0
        assert fake_engine.sessions == []

    def test_permission_denied(self, controller, fake_engine):
        fake_engine.permission_error = permission_error_for_reason("NotAllowedError")

        asyncio.run(controller.start())

        assert controller.status is SessionStatus.IDLE
        assert controller.session.last_error.kind is ErrorKind.PERMISSION_DENIED
        assert controller.session.last_error.code == "NotAllowedError"
        assert fake_engine.sessions == []

    @pytest.mark.parametrize("reason, kind", [
        ("NotFoundError", ErrorKind.DEVICE_NOT_FOUND),
        ("NotSupportedError", ErrorKind.DEVICE_UNSUPPORTED),
        ("NotReadableError", ErrorKind.DEVICE_UNAVAILABLE),
        ("SomethingElse", ErrorKind.DEVICE_UNAVAILABLE),
    ])
    def test_permission_failure_kinds(self, controller, fake_engine, reason, kind):
        fake_engine.permission_error = permission_error_for_reason(reason)

        asyncio.run(controller.start())

        assert controller.session.last_error.kind is kind
        assert controller.status is SessionStatus.IDLE

    def test_listening_only_after_engine_start(self, controller, fake_engine):
        asyncio.run(controller.start())

        assert len(fake_engine.sessions) == 1
        assert controller.status is SessionStatus.IDLE
        assert controller.is_starting

        fake_engine.latest.callbacks.on_start()

        assert controller.status is SessionStatus.LISTENING
        assert not controller.is_starting

    def test_start_uses_configured_options(self, fake_engine, publisher):
        from voice2art.models.transcription import RecognitionOptions
        from voice2art.services.voice_session import VoiceSessionController

        options = RecognitionOptions(language="fr-FR")
        controller = VoiceSessionController(fake_engine, options, publisher)
        asyncio.run(controller.start())

        assert fake_engine.latest.options.language == "fr-FR"
        assert fake_engine.latest.options.continuous is True
        assert fake_engine.latest.options.interim_results is True
        assert fake_engine.latest.options.max_alternatives == 1

    def test_start_while_listening_is_noop(self, controller, fake_engine):
        start_listening(controller, fake_engine)
        before = controller.snapshot()

        asyncio.run(controller.start())

        assert controller.snapshot() == before
        assert len(fake_engine.sessions) == 1
        assert fake_engine.permission_requests == 1

    def test_start_clears_previous_error(self, controller, fake_engine):
        fake_engine.permission_error = permission_error_for_reason("NotAllowedError")
        asyncio.run(controller.start())
        assert controller.session.last_error is not None

        fake_engine.permission_error = None
        asyncio.run(controller.start())

        assert controller.session.last_error is None

    def test_engine_start_failure_is_reported(self, controller, fake_engine):
        fake_engine.start_error = RecognitionEngineError("service-not-allowed")

        asyncio.run(controller.start())

        assert controller.status is SessionStatus.IDLE
        assert controller.session.last_error.kind is ErrorKind.SERVICE_DENIED
        assert not controller.is_starting

    def test_unexpected_permission_failure_is_reported(self, controller, fake_engine):
        fake_engine.permission_error = RuntimeError("PortAudio not initialized")

        asyncio.run(controller.start())

        assert controller.status is SessionStatus.IDLE
        assert controller.session.last_error.kind is ErrorKind.UNKNOWN
        assert controller.session.last_error.code == "RuntimeError"
        assert not controller.is_starting

        fake_engine.permission_error = None
        asyncio.run(controller.start())

        assert len(fake_engine.sessions) == 1

    def test_unexpected_engine_start_failure_is_reported(self, controller, fake_engine):
        fake_engine.start_error = RuntimeError("could not create client")

        asyncio.run(controller.start())

        assert controller.status is SessionStatus.IDLE
        assert controller.session.last_error.kind is ErrorKind.UNKNOWN
        assert controller.session.last_error.code == "RuntimeError"
        assert not controller.is_starting

    def test_stop_during_permission_request_cancels_start(self, controller, fake_engine):
        async def scenario():
            fake_engine.permission_gate = asyncio.Event()
            task = asyncio.ensure_future(controller.start())
            await asyncio.sleep(0)
            assert controller.is_starting

            controller.stop()
            fake_engine.permission_gate.set()
            await task

        asyncio.run(scenario())

        assert fake_engine.sessions == []
        assert controller.status is SessionStatus.IDLE
        assert not controller.is_starting

    def test_second_start_while_permission_pending_is_rejected(self, controller, fake_engine):
        async def scenario():
            fake_engine.permission_gate = asyncio.Event()
            first = asyncio.ensure_future(controller.start())
            await asyncio.sleep(0)
            await controller.start()
            fake_engine.permission_gate.set()
            await first

        asyncio.run(scenario())

        assert fake_engine.permission_requests == 1
        assert len(fake_engine.sessions) == 1


@pytest.mark.unit
class TestTranscript:
    """Accumulation of final and interim results."""

    def test_final_result(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)

        session.callbacks.on_result([final("a red sun", 0.92)])

        snapshot = controller.snapshot()
        assert snapshot.transcript == "a red sun"
        assert snapshot.confidence == 0.92
        assert snapshot.status is SessionStatus.LISTENING

    def test_interim_after_final(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)
        session.callbacks.on_result([final("a red sun", 0.92)])

        session.callbacks.on_result([interim("over the sea")])

        assert controller.snapshot().transcript == "a red sun" + "over the sea"
        assert controller.snapshot().confidence == 0.92

    def test_network_error_keeps_transcript(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)
        session.callbacks.on_result([final("a red sun", 0.92)])
        session.callbacks.on_result([interim("over the sea")])

        session.callbacks.on_error("network")

        snapshot = controller.snapshot()
        assert snapshot.status is SessionStatus.IDLE
        assert snapshot.error.kind is ErrorKind.NETWORK_ERROR
        assert snapshot.transcript == "a red sun" + "over the sea"
        assert session.handle in fake_engine.stopped

    def test_transcript_is_finals_then_latest_interim(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)

        session.callbacks.on_result([interim("a"), interim("a bl")])
        assert controller.snapshot().transcript == "a bl"

        session.callbacks.on_result([final("a blue", 0.8), interim(" moon")])
        assert controller.snapshot().transcript == "a blue moon"

        session.callbacks.on_result([interim(" moon rising")])
        assert controller.snapshot().transcript == "a blue moon rising"

        session.callbacks.on_result([final(" moon rising", 0.7)])
        assert controller.snapshot().transcript == "a blue moon rising"
        assert controller.snapshot().confidence == 0.7

        session.callbacks.on_result([])
        assert controller.snapshot().transcript == "a blue moon rising"

    def test_final_without_confidence_keeps_previous_score(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)
        session.callbacks.on_result([final("one", 0.5)])

        session.callbacks.on_result([final(" two", None)])

        assert controller.snapshot().transcript == "one two"
        assert controller.snapshot().confidence == 0.5

    def test_transcript_notifications(self, controller, fake_engine, topics):
        received = []

        def on_transcript(transcript):
            received.append(transcript)

        pub.subscribe(on_transcript, topics["transcript_topic"])
        try:
            session = start_listening(controller, fake_engine)
            session.callbacks.on_result([final("a red sun", 0.92)])
            session.callbacks.on_result([interim(" at dusk")])
            controller.reset()
        finally:
            pub.unsubscribe(on_transcript, topics["transcript_topic"])

        assert received == ["a red sun", "a red sun at dusk", ""]

    def test_session_notifications(self, controller, fake_engine, topics):
        phases = []

        def on_snapshot(snapshot):
            phases.append(snapshot.phase)

        pub.subscribe(on_snapshot, topics["session_topic"])
        try:
            session = start_listening(controller, fake_engine)
            session.callbacks.on_error("no-speech")
        finally:
            pub.unsubscribe(on_snapshot, topics["session_topic"])

        assert phases[-2:] == [SessionStatus.LISTENING, SessionStatus.ERRORED]


@pytest.mark.unit
class TestStopAndStaleEvents:
    """stop(), engine end and discarding events from superseded sessions."""

    def test_stop_is_immediate(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)

        controller.stop()

        assert controller.status is SessionStatus.IDLE
        assert fake_engine.stopped == [session.handle]

    def test_stop_when_idle_is_noop(self, controller, fake_engine):
        controller.stop()

        assert controller.status is SessionStatus.IDLE
        assert fake_engine.stopped == []

    def test_late_events_after_stop(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)
        session.callbacks.on_result([final("a red sun", 0.92)])
        controller.stop()

        session.callbacks.on_end()
        assert controller.status is SessionStatus.IDLE

        session.callbacks.on_result([final(" setting", 0.9)])
        assert controller.snapshot().transcript == "a red sun setting"
        assert controller.status is SessionStatus.IDLE

    def test_events_from_previous_handle_are_dropped(self, controller, fake_engine):
        old = start_listening(controller, fake_engine)
        old.callbacks.on_result([final("a red sun", 0.92)])
        controller.stop()
        asyncio.run(controller.start())
        new = fake_engine.latest
        assert new.handle != old.handle
        before = controller.snapshot()

        old.callbacks.on_result([final(" stale", 0.1)])
        old.callbacks.on_start()
        old.callbacks.on_error("network")
        old.callbacks.on_end()

        assert controller.snapshot() == before

        new.callbacks.on_start()
        old.callbacks.on_end()
        assert controller.status is SessionStatus.LISTENING

    def test_engine_end_returns_to_idle(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)

        session.callbacks.on_end()

        assert controller.status is SessionStatus.IDLE
        assert controller.session.last_error is None
        assert not controller.is_starting

    def test_stop_before_engine_start_releases_handle(self, controller, fake_engine):
        asyncio.run(controller.start())
        session = fake_engine.latest

        controller.stop()

        assert session.handle in fake_engine.stopped
        assert not controller.is_starting

    def test_engine_start_after_early_stop_is_ignored(self, controller, fake_engine):
        asyncio.run(controller.start())
        session = fake_engine.latest
        controller.stop()

        session.callbacks.on_start()
        session.callbacks.on_result([final("too late", 0.5)])

        assert controller.status is SessionStatus.IDLE
        assert controller.snapshot().transcript == ""
        assert not controller.is_starting

    def test_engine_failing_inside_start_session(self, controller, fake_engine):
        original_start = fake_engine.start_session

        def failing_start(options, callbacks):
            handle = original_start(options, callbacks)
            callbacks.on_error("audio-capture")
            callbacks.on_end()
            return handle

        fake_engine.start_session = failing_start

        asyncio.run(controller.start())

        assert controller.status is SessionStatus.IDLE
        assert controller.session.last_error.kind is ErrorKind.DEVICE_UNAVAILABLE
        assert not controller.is_starting
        assert fake_engine.latest.handle in fake_engine.stopped

    def test_close_ignores_further_events(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)

        controller.close()
        session.callbacks.on_result([final("ignored", 0.5)])

        assert controller.status is SessionStatus.IDLE
        assert controller.snapshot().transcript == ""
        assert session.handle in fake_engine.stopped


@pytest.mark.unit
class TestReset:

    def test_reset_keeps_listening(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)
        session.callbacks.on_result([final("a red sun", 0.92), interim(" over")])

        controller.reset()

        snapshot = controller.snapshot()
        assert snapshot.status is SessionStatus.LISTENING
        assert snapshot.transcript == ""
        assert snapshot.confidence == 0.0
        assert snapshot.error is None

    def test_reset_clears_error_but_not_status(self, controller, fake_engine):
        fake_engine.permission_error = permission_error_for_reason("NotAllowedError")
        asyncio.run(controller.start())

        controller.reset()

        assert controller.session.last_error is None
        assert controller.status is SessionStatus.IDLE

    def test_results_after_reset_start_fresh(self, controller, fake_engine):
        session = start_listening(controller, fake_engine)
        session.callbacks.on_result([final("old", 0.4)])
        controller.reset()

        session.callbacks.on_result([final("new", 0.6)])

        assert controller.snapshot().transcript == "new"
