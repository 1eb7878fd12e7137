"""Terminal voice recorder screen with live transcript and error help."""

import asyncio
import logging
from typing import Callable, Optional, Set

from pubsub import pub
from rich.align import Align
from rich.console import Console, Group, RenderableType
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ..models.errors import Guidance
from ..models.session import SessionSnapshot, SessionStatus
from ..services.publisher import SESSION_TOPIC, TRANSCRIPT_TOPIC
from ..services.voice_session import VoiceSessionController
from .keyboard_input import create_input_handler
from .remediation import host_agent, remediation_for

logger = logging.getLogger(__name__)


class VoiceRecorderScreen:
    """Renders a voice session and turns keypresses into session commands."""

    def __init__(self,
                 controller: VoiceSessionController,
                 user_agent: Optional[str] = None,
                 on_transcript_change: Optional[Callable[[str], None]] = None,
                 console: Optional[Console] = None,
                 refresh_per_second: int = 10,
                 transcript_topic: str = TRANSCRIPT_TOPIC,
                 session_topic: str = SESSION_TOPIC):
        """Initialize voice recorder screen.

        Args:
            controller: Voice session controller to drive
            user_agent: Declared agent identity used to pick permission help
            on_transcript_change: Called with the transcript on every update
            console: Rich console to render to
            refresh_per_second: Live display refresh rate
            transcript_topic: Pub/sub topic carrying transcript updates
            session_topic: Pub/sub topic carrying session snapshots
        """
        self.controller = controller
        self.user_agent = user_agent or host_agent()
        self.on_transcript_change = on_transcript_change
        self.console = console or Console()
        self.refresh_per_second = refresh_per_second
        self.transcript_topic = transcript_topic
        self.session_topic = session_topic

        self.snapshot: SessionSnapshot = controller.snapshot()
        self.show_permission_help = False
        self.running = False
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.input_handler = None
        self._tasks: Set[asyncio.Task] = set()

        pub.subscribe(self._on_snapshot, session_topic)
        pub.subscribe(self._on_transcript, transcript_topic)
        logger.info(f"VoiceRecorderScreen initialized for agent: {self.user_agent}")

    def _on_snapshot(self, snapshot: SessionSnapshot) -> None:
        self.snapshot = snapshot
        if snapshot.error is None or not snapshot.error.is_permission_error:
            self.show_permission_help = False

    def _on_transcript(self, transcript: str) -> None:
        if self.on_transcript_change:
            self.on_transcript_change(transcript)

    # Commands

    async def toggle(self) -> None:
        """Start listening, or stop if already listening."""
        if self.controller.status is SessionStatus.LISTENING:
            self.controller.stop()
        else:
            await self.controller.start()

    def retry(self) -> None:
        """Clear the transcript and error so the user can try again."""
        self.controller.reset()
        self.show_permission_help = False

    def toggle_permission_help(self) -> None:
        error = self.snapshot.error
        if error is not None and error.is_permission_error:
            self.show_permission_help = not self.show_permission_help

    def handle_key(self, key: str) -> bool:
        """Handle a keypress on the event loop. Returns True to continue, False to quit."""
        logger.debug(f"Handling key input: '{key}'")
        if key == 'q':
            logger.info("Quit key pressed")
            self.running = False
            return False
        if key in (' ', '\n', '\r'):
            task = asyncio.get_running_loop().create_task(self.toggle())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif key == 'r':
            self.retry()
        elif key == 'h':
            self.toggle_permission_help()
        else:
            logger.debug(f"Unhandled key: '{key}'")
        return True

    def _key_from_input_thread(self, key: str) -> bool:
        self.loop.call_soon_threadsafe(self.handle_key, key)
        return key != 'q'

    # Rendering

    def render(self) -> Layout:
        """Build the full screen layout for the current snapshot."""
        layout = Layout()
        layout.split_column(
            Layout(self.render_header(), name="header", size=3),
            Layout(self.render_body(), name="main", ratio=1),
            Layout(self.render_footer(), name="footer", size=3),
        )
        return layout

    def render_header(self) -> Panel:
        phase = self.snapshot.phase
        if phase is SessionStatus.LISTENING:
            status_text, status_style = "🔴 LISTENING", "bold red"
        elif phase is SessionStatus.ERRORED:
            status_text, status_style = "⚠️  ERROR", "bold yellow"
        else:
            status_text, status_style = "⏹️  IDLE", "bold white"
        header_text = Text.assemble(
            Text("🎙️  voice2art - Describe your artwork", style="bold blue"),
            "  |  ",
            (status_text, status_style),
        )
        return Panel(Align.center(header_text), style="bright_blue")

    def render_body(self) -> RenderableType:
        if not self.controller.is_supported:
            return Panel(
                Text.assemble(
                    ("Speech Recognition Not Supported\n", "bold"),
                    "Please configure Google Cloud credentials for voice recording.",
                ),
                border_style="yellow",
            )

        parts = []
        if self.snapshot.error is not None:
            parts.append(self.render_error())
        parts.append(Align.center(self.render_status()))
        if self.snapshot.transcript:
            parts.append(self.render_transcript())
        return Group(*parts)

    def render_status(self) -> Text:
        if self.snapshot.is_listening:
            return Text("● ● ● Listening...", style="bold red")
        if self.controller.is_starting:
            return Text("Waiting for microphone...", style="yellow")
        return Text("Press SPACE to start recording", style="dim")

    def render_transcript(self) -> Panel:
        body = Text(self.snapshot.transcript, style="white")
        if self.snapshot.confidence > 0:
            body.append(f"\n\nConfidence: {round(self.snapshot.confidence * 100)}%", style="dim")
        return Panel(body, title="🔊 Recorded Speech", border_style="blue")

    def render_error(self) -> Panel:
        error = self.snapshot.error
        body = Text(error.message, style="red")
        if error.guidance is Guidance.REMEDIATION:
            if self.show_permission_help:
                guide = remediation_for(self.user_agent)
                body.append(f"\n\nHow to enable microphone access in {guide.agent_name}:\n", style="bold")
                for number, step in enumerate(guide.steps, 1):
                    body.append(f"{number}. {step}\n")
                body.append("\nPress R to try again", style="bold")
            else:
                body.append("\n\nPress H to show permission instructions", style="bold")
        else:
            body.append("\n\nPress R to try again", style="bold")
        return Panel(body, title="Recording Error", border_style="red")

    def render_footer(self) -> Panel:
        controls = Text.assemble(
            ("Controls: ", "bold"),
            ("SPACE", "bold green"), " Start/Stop  ",
            ("R", "bold blue"), " Try again  ",
            ("H", "bold yellow"), " Permission help  ",
            ("Q", "bold red"), " Quit",
        )
        return Panel(Align.center(controls), style="bright_black")

    # Lifecycle

    async def run(self) -> None:
        """Run the screen until the user quits."""
        self.loop = asyncio.get_running_loop()
        self.running = True
        self.input_handler = create_input_handler(self._key_from_input_thread)
        self.input_handler.start()
        try:
            with Live(self.render(), console=self.console,
                      refresh_per_second=self.refresh_per_second, screen=True) as live:
                while self.running:
                    live.update(self.render())
                    await asyncio.sleep(1 / self.refresh_per_second)
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Cancel in-flight commands, wait for them to finish, then clean up."""
        self.running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.cleanup()

    def cleanup(self) -> None:
        """Stop input, release the session and unsubscribe."""
        self.running = False
        if self.input_handler:
            self.input_handler.stop()
        for task in list(self._tasks):
            task.cancel()
        self.controller.close()
        try:
            pub.unsubscribe(self._on_snapshot, self.session_topic)
            pub.unsubscribe(self._on_transcript, self.transcript_topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        logger.info("VoiceRecorderScreen cleanup completed")
