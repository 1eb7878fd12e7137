"""Microphone permission probe backed by PyAudio."""

import errno
import logging
from typing import Optional

import pyaudio

from ..models.errors import permission_error_for_reason

logger = logging.getLogger(__name__)


# PortAudio error codes mapped to platform permission failure reasons
PORTAUDIO_REASONS = {
    -9999: "NotAllowedError",    # paUnanticipatedHostError, host refused capture
    -9998: "NotSupportedError",  # paInvalidChannelCount
    -9997: "NotSupportedError",  # paInvalidSampleRate
    -9996: "NotFoundError",      # paInvalidDevice
    -9994: "NotSupportedError",  # paSampleFormatNotSupported
    -9985: "NotReadableError",   # paDeviceUnavailable
}

OS_ERRNO_REASONS = {
    errno.EACCES: "NotAllowedError",
    errno.EPERM: "NotAllowedError",
    errno.ENODEV: "NotFoundError",
    errno.EBUSY: "NotReadableError",
}


def reason_for_audio_error(error: OSError) -> str:
    """Translate a PyAudio/OS error into a platform permission failure reason."""
    code = error.errno
    if not isinstance(code, int) and len(error.args) >= 2 and isinstance(error.args[1], int):
        code = error.args[1]
    if code in PORTAUDIO_REASONS:
        return PORTAUDIO_REASONS[code]
    if code in OS_ERRNO_REASONS:
        return OS_ERRNO_REASONS[code]
    if "no default input device" in str(error).lower():
        return "NotFoundError"
    return "NotReadableError"


class MicrophonePermissionProbe:
    """Opens the input device just long enough to confirm it can be used."""

    def __init__(self,
                 sample_rate: int = 16000,
                 chunk_size: int = 1024,
                 channels: int = 1,
                 format: int = pyaudio.paInt16,
                 input_device_index: Optional[int] = None):
        """Initialize the probe.

        Args:
            sample_rate: Sample rate to request from the device
            chunk_size: Samples to read while probing
            channels: Number of input channels
            format: Sample format
            input_device_index: Device to probe, or None for the default input
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        self.input_device_index = input_device_index

    def probe(self) -> None:
        """Acquire the input device, read one buffer and release it.

        The device is always released before this returns, whatever the
        outcome. No audio is retained.

        Raises:
            MicrophonePermissionError: if the device cannot be opened or read
        """
        pyaudio_instance = pyaudio.PyAudio()
        stream = None
        try:
            if self.input_device_index is None:
                pyaudio_instance.get_default_input_device_info()
            stream = pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.chunk_size,
            )
            stream.read(self.chunk_size, exception_on_overflow=False)
            logger.info("Microphone permission granted")
        except OSError as e:
            reason = reason_for_audio_error(e)
            logger.error(f"Microphone permission error: {e} ({reason})")
            raise permission_error_for_reason(reason) from e
        finally:
            if stream is not None:
                try:
                    stream.stop_stream()
                    stream.close()
                except OSError as e:
                    logger.warning(f"Error closing probe stream: {e}")
            pyaudio_instance.terminate()
