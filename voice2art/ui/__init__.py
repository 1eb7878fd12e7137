"""Terminal UI for voice2art."""

from .voice_recorder_screen import VoiceRecorderScreen
from .remediation import detect_agent_family, remediation_for

__all__ = [
    "VoiceRecorderScreen",
    "detect_agent_family",
    "remediation_for",
]
