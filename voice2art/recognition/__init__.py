"""Speech recognition engines for voice2art."""

from .base import AbstractRecognitionEngine, RecognitionCallbacks, RecognitionHandle
from .google_backend import GoogleStreamingEngine, error_code_for_api_exception

__all__ = [
    "AbstractRecognitionEngine",
    "RecognitionCallbacks",
    "RecognitionHandle",
    "GoogleStreamingEngine",
    "error_code_for_api_exception",
]
