"""Services layer for voice2art application logic."""

from .voice_session import VoiceSessionController
from .publisher import SessionPublisher
from .profile_service import AbstractProfileService, SupabaseProfileService, BackendError

__all__ = [
    "VoiceSessionController",
    "SessionPublisher",
    "AbstractProfileService",
    "SupabaseProfileService",
    "BackendError",
]
