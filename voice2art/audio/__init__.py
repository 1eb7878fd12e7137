"""Audio device access for voice2art."""

from .permission import MicrophonePermissionProbe

__all__ = [
    'MicrophonePermissionProbe',
]
