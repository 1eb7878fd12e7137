"""Session publisher module for pub/sub notifications to the UI."""

import logging
from pubsub import pub

from ..models.session import SessionSnapshot

logger = logging.getLogger(__name__)

TRANSCRIPT_TOPIC = "voice.transcript"
SESSION_TOPIC = "voice.session"


class SessionPublisher:
    """Publishes transcript changes and session snapshots using pubsub.pub."""

    def __init__(self, transcript_topic: str = TRANSCRIPT_TOPIC, session_topic: str = SESSION_TOPIC):
        """Initialize session publisher.

        Args:
            transcript_topic: Topic fired with ``transcript=`` on every accumulation update
            session_topic: Topic fired with ``snapshot=`` on every state change
        """
        self.transcript_topic = transcript_topic
        self.session_topic = session_topic
        logger.info(f"SessionPublisher initialized with topics: {transcript_topic}, {session_topic}")

    def publish_transcript(self, transcript: str) -> None:
        pub.sendMessage(self.transcript_topic, transcript=transcript)
        logger.debug(f"Published transcript ({len(transcript)} chars)")

    def publish_snapshot(self, snapshot: SessionSnapshot) -> None:
        pub.sendMessage(self.session_topic, snapshot=snapshot)
        logger.debug(f"Published session snapshot: {snapshot.phase.value}")
