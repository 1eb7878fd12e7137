"""Unit tests for the microphone permission probe."""

import errno

import pytest

from voice2art.audio.permission import MicrophonePermissionProbe, reason_for_audio_error
from voice2art.models.errors import ErrorKind, MicrophonePermissionError


@pytest.mark.unit
class TestReasonForAudioError:

    @pytest.mark.parametrize("code, reason", [
        (-9996, "NotFoundError"),
        (-9985, "NotReadableError"),
        (-9997, "NotSupportedError"),
        (-9999, "NotAllowedError"),
    ])
    def test_portaudio_codes(self, code, reason):
        # PyAudio raises OSError(message, code)
        assert reason_for_audio_error(OSError("PortAudio error", code)) == reason

    def test_os_errno(self):
        assert reason_for_audio_error(OSError(errno.EACCES, "Permission denied")) == "NotAllowedError"
        assert reason_for_audio_error(OSError(errno.EBUSY, "Device busy")) == "NotReadableError"

    def test_no_default_device(self):
        assert reason_for_audio_error(OSError("No Default Input Device Available")) == "NotFoundError"

    def test_unknown_error(self):
        assert reason_for_audio_error(OSError("something odd")) == "NotReadableError"


@pytest.mark.unit
class TestMicrophonePermissionProbe:

    def test_probe_success_releases_device(self, mock_pyaudio):
        probe = MicrophonePermissionProbe(sample_rate=16000, chunk_size=512)

        probe.probe()

        mock_pyaudio['instance'].get_default_input_device_info.assert_called_once()
        mock_pyaudio['stream'].read.assert_called_once_with(512, exception_on_overflow=False)
        mock_pyaudio['stream'].stop_stream.assert_called_once()
        mock_pyaudio['stream'].close.assert_called_once()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_explicit_device_skips_default_lookup(self, mock_pyaudio):
        probe = MicrophonePermissionProbe(input_device_index=3)

        probe.probe()

        mock_pyaudio['instance'].get_default_input_device_info.assert_not_called()
        assert mock_pyaudio['instance'].open.call_args.kwargs['input_device_index'] == 3

    def test_missing_device(self, mock_pyaudio):
        mock_pyaudio['instance'].open.side_effect = OSError("Invalid input device", -9996)

        with pytest.raises(MicrophonePermissionError) as exc_info:
            MicrophonePermissionProbe().probe()

        assert exc_info.value.kind is ErrorKind.DEVICE_NOT_FOUND
        assert exc_info.value.reason == "NotFoundError"
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_no_default_input_device(self, mock_pyaudio):
        mock_pyaudio['instance'].get_default_input_device_info.side_effect = OSError(
            "No Default Input Device Available"
        )

        with pytest.raises(MicrophonePermissionError) as exc_info:
            MicrophonePermissionProbe().probe()

        assert exc_info.value.kind is ErrorKind.DEVICE_NOT_FOUND
        mock_pyaudio['instance'].open.assert_not_called()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_device_busy_on_read_releases_stream(self, mock_pyaudio):
        mock_pyaudio['stream'].read.side_effect = OSError("Device unavailable", -9985)

        with pytest.raises(MicrophonePermissionError) as exc_info:
            MicrophonePermissionProbe().probe()

        assert exc_info.value.kind is ErrorKind.DEVICE_UNAVAILABLE
        mock_pyaudio['stream'].stop_stream.assert_called_once()
        mock_pyaudio['stream'].close.assert_called_once()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_access_denied(self, mock_pyaudio):
        mock_pyaudio['instance'].open.side_effect = OSError(errno.EACCES, "Permission denied")

        with pytest.raises(MicrophonePermissionError) as exc_info:
            MicrophonePermissionProbe().probe()

        assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED
