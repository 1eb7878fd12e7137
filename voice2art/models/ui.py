"""UI-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class AgentFamily(Enum):
    """Coarse family of the host agent, used to pick permission help text."""
    CHROME = "chrome"
    EDGE = "edge"
    FIREFOX = "firefox"
    SAFARI = "safari"
    MACOS = "macos"
    WINDOWS = "windows"
    LINUX = "linux"
    GENERIC = "generic"


@dataclass(frozen=True)
class RemediationGuide:
    """Ordered steps that re-enable microphone access for one agent family."""
    agent_name: str
    steps: Tuple[str, ...]
