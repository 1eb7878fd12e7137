"""Main application entry point for voice2art."""

import sys
import time
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from . import __version__
from .config import Voice2ArtConfig
from .models.session import SessionSnapshot, SessionStatus
from .recognition.google_backend import GoogleStreamingEngine
from .services.voice_session import VoiceSessionController
from .ui.voice_recorder_screen import VoiceRecorderScreen

logger = logging.getLogger(__name__)


def create_engine(config: Voice2ArtConfig) -> GoogleStreamingEngine:
    """Build the recognition engine from configuration.

    Missing credentials leave the engine unsupported rather than failing here,
    so the screen can show the unsupported notice.
    """
    try:
        credentials_path = config.get_google_credentials_path()
    except (ValueError, FileNotFoundError) as e:
        logger.warning(f"Google credentials unavailable: {e}")
        credentials_path = None
    sample_rate = config.get('audio.sample_rate', 16000)
    chunk_size = config.get('audio.chunk_size', 1024)
    channels = config.get('audio.channels', 1)

    logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk, {channels} channels")
    return GoogleStreamingEngine(
        credentials_path=credentials_path,
        sample_rate=sample_rate,
        chunk_size=chunk_size,
        channels=channels,
        use_enhanced=config.get('google_cloud.use_enhanced_model', True),
        enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
        model=config.get('google_cloud.model', 'latest_long'),
        no_speech_timeout_seconds=config.get('recognition.no_speech_timeout_seconds', 8.0),
    )


class App:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        self.config = Voice2ArtConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.engine: Optional[GoogleStreamingEngine] = None
        self.controller: Optional[VoiceSessionController] = None

    def init(self) -> None:
        logger.info("Initializing services...")
        self.engine = create_engine(self.config)
        self.controller = VoiceSessionController(self.engine, self.config.get_recognition_options())
        if not self.engine.is_supported():
            logger.warning("Speech recognition is not available: Google credentials are missing")

    async def run_auto(self, duration: float) -> SessionSnapshot:
        """Listen for a fixed duration and return the final session snapshot."""
        await self.controller.start()
        deadline = time.monotonic() + duration
        while time.monotonic() < deadline:
            await asyncio.sleep(0.1)
            if self.controller.status is SessionStatus.IDLE and not self.controller.is_starting:
                break
        self.controller.stop()
        # Let results already in flight arrive
        await asyncio.sleep(0.5)
        return self.controller.snapshot()

    async def run_interactive(self) -> SessionSnapshot:
        screen = VoiceRecorderScreen(
            self.controller,
            user_agent=self.config.get('ui.user_agent'),
            refresh_per_second=self.config.get('ui.refresh_per_second', 10),
        )
        await screen.run()
        return self.controller.snapshot()

    def cleanup(self) -> None:
        if self.controller:
            self.controller.close()
        if self.engine:
            self.engine.cleanup()


def report(snapshot: SessionSnapshot) -> None:
    """Print the dictated art prompt, or the error that prevented it."""
    if snapshot.error is not None:
        print(f"❌ {snapshot.error.message}")
    if snapshot.transcript:
        print("🎨 Art prompt:")
        print(snapshot.transcript.strip())
        if snapshot.confidence > 0:
            print(f"   (confidence: {snapshot.confidence:.0%})")
    elif snapshot.error is None:
        print("No speech recorded.")


def setup_logging(config: Voice2ArtConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voice2art.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("voice2art starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for voice2art."""
    parser = argparse.ArgumentParser(
        description="voice2art - dictate an artistic description by voice",
        epilog="Keys: SPACE=start/stop, R=try again, H=permission help, Q=quit"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for voice2art.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--auto",
        action="store_true",
        help="Listen for --duration seconds, print the transcript and exit"
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=10,
        help="Duration in seconds for auto mode (default: 10)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"voice2art v{__version__}"
    )

    args = parser.parse_args()

    try:
        app = App(args.config, args.log_level)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    try:
        app.init()
        if args.auto:
            snapshot = asyncio.run(app.run_auto(args.duration))
        else:
            snapshot = asyncio.run(app.run_interactive())
        report(snapshot)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logger.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        app.cleanup()


if __name__ == "__main__":
    main()
