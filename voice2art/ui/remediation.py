"""Microphone permission help, picked by the host's declared agent identity.

This is guidance text only; it never feeds back into the voice session.
"""

import logging
import platform
from typing import Dict, Optional, Tuple

from ..models.ui import AgentFamily, RemediationGuide

logger = logging.getLogger(__name__)


REMEDIATION_GUIDES: Dict[AgentFamily, RemediationGuide] = {
    AgentFamily.CHROME: RemediationGuide("Chrome", (
        "Click the microphone icon in the address bar",
        'Select "Always allow" for microphone access',
        "Refresh the page and try again",
    )),
    AgentFamily.EDGE: RemediationGuide("Edge", (
        "Click the microphone icon in the address bar",
        'Select "Always allow" for microphone access',
        "Refresh the page and try again",
    )),
    AgentFamily.FIREFOX: RemediationGuide("Firefox", (
        "Click the microphone icon in the address bar",
        'Select "Allow" for microphone access',
        "Refresh the page and try again",
    )),
    AgentFamily.SAFARI: RemediationGuide("Safari", (
        "Go to Safari > Settings > Websites > Microphone",
        'Set this website to "Allow"',
        "Refresh the page and try again",
    )),
    AgentFamily.MACOS: RemediationGuide("macOS", (
        "Open System Settings > Privacy & Security > Microphone",
        "Turn on microphone access for your terminal application",
        "Restart the terminal and try again",
    )),
    AgentFamily.WINDOWS: RemediationGuide("Windows", (
        "Open Settings > Privacy & security > Microphone",
        'Turn on "Let desktop apps access your microphone"',
        "Restart the terminal and try again",
    )),
    AgentFamily.LINUX: RemediationGuide("Linux", (
        "Check that your user can open the capture device (e.g. is in the audio group)",
        "Unmute and select the input device in your sound settings",
        "Try again",
    )),
    AgentFamily.GENERIC: RemediationGuide("your system", (
        "Look for a microphone permission setting for this application",
        "Allow microphone access",
        "Restart the application and try again",
    )),
}

# Checked in order: Edge agents also mention Chrome, and Chrome agents mention Safari
BROWSER_MARKERS: Tuple[Tuple[str, AgentFamily], ...] = (
    ("Edg", AgentFamily.EDGE),
    ("Firefox", AgentFamily.FIREFOX),
    ("Chrome", AgentFamily.CHROME),
    ("Safari", AgentFamily.SAFARI),
)

OS_MARKERS: Tuple[Tuple[str, AgentFamily], ...] = (
    ("macos", AgentFamily.MACOS),
    ("darwin", AgentFamily.MACOS),
    ("macintosh", AgentFamily.MACOS),
    ("windows", AgentFamily.WINDOWS),
    ("linux", AgentFamily.LINUX),
)


def host_agent() -> str:
    """The identity this host declares when none is configured."""
    return platform.platform()


def detect_agent_family(user_agent: Optional[str]) -> AgentFamily:
    """Classify an agent string into a coarse family."""
    if not user_agent:
        return AgentFamily.GENERIC
    for marker, family in BROWSER_MARKERS:
        if marker in user_agent:
            return family
    lowered = user_agent.lower()
    for marker, family in OS_MARKERS:
        if marker in lowered:
            return family
    return AgentFamily.GENERIC


def remediation_for(user_agent: Optional[str]) -> RemediationGuide:
    family = detect_agent_family(user_agent)
    logger.debug(f"Permission help for agent '{user_agent}': {family.value}")
    return REMEDIATION_GUIDES[family]
