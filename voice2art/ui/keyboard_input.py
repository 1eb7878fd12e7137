"""Keyboard input for the recorder screen.

Raw keypresses (or typed words, when stdin is not a terminal) are normalized
to the recorder's command keys before reaching the callback:
SPACE toggles recording, ``r`` retries, ``h`` toggles permission help and
``q`` quits.
"""

import sys
import threading
import time
import logging
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

TOGGLE_KEY = ' '
QUIT_KEY = 'q'

# Raw-mode control characters
RAW_KEY_ALIASES: Dict[str, str] = {
    '\r': TOGGLE_KEY,
    '\n': TOGGLE_KEY,
    '\x03': QUIT_KEY,  # Ctrl+C is not delivered as SIGINT in raw mode
    '\x1b': QUIT_KEY,  # Esc
}

WORD_ALIASES: Dict[str, str] = {
    '': TOGGLE_KEY,
    'start': TOGGLE_KEY,
    'stop': TOGGLE_KEY,
    'toggle': TOGGLE_KEY,
    'retry': 'r',
    'help': 'h',
    'quit': QUIT_KEY,
    'exit': QUIT_KEY,
}


def normalize_key(raw: str) -> str:
    """Map a raw character to a command key."""
    return RAW_KEY_ALIASES.get(raw, raw.lower())


def normalize_word(line: str) -> str:
    """Map a typed line to a command key; unknown words use their first letter."""
    word = line.strip().lower()
    if word in WORD_ALIASES:
        return WORD_ALIASES[word]
    return word[0]


class KeyboardInputHandler:
    """Reads single keypresses on a background thread."""

    def __init__(self, callback: Callable[[str], bool]):
        """Initialize keyboard handler.

        Args:
            callback: Receives a command key; returns False to stop reading
        """
        self.callback = callback
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInputThread"
        self.thread.start()
        logger.info(f"{self.__class__.__name__} started")

    def stop(self) -> None:
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info(f"{self.__class__.__name__} stopped")

    def feed(self, key: str) -> bool:
        """Deliver one command key. Returns False once reading should stop."""
        logger.debug(f"Command key: {key!r}")
        if not self.callback(key):
            self.running = False
        return self.running

    def _input_loop(self) -> None:
        while self.running:
            raw = self._read_raw()
            if raw and not self.feed(normalize_key(raw)):
                break
            time.sleep(0.05)
        self.running = False

    def _read_raw(self) -> Optional[str]:
        if sys.platform == "win32":
            import msvcrt
            if msvcrt.kbhit():
                return msvcrt.getwch()
            return None

        import select
        import termios
        import tty

        if not select.select([sys.stdin], [], [], 0.1)[0]:
            return None
        saved = termios.tcgetattr(sys.stdin)
        try:
            tty.setraw(sys.stdin.fileno())
            return sys.stdin.read(1)
        finally:
            termios.tcsetattr(sys.stdin, termios.TCSADRAIN, saved)


class LineInputHandler(KeyboardInputHandler):
    """Reads typed words, one per line, for terminals without raw mode."""

    def _input_loop(self) -> None:
        while self.running:
            try:
                line = input("> ")
            except (EOFError, KeyboardInterrupt):
                self.feed(QUIT_KEY)
                break
            if not self.feed(normalize_word(line)):
                break
        self.running = False


def create_input_handler(callback: Callable[[str], bool]) -> KeyboardInputHandler:
    """Raw keys on a terminal, typed words otherwise."""
    if sys.stdin.isatty():
        return KeyboardInputHandler(callback)
    logger.warning("stdin is not a terminal, reading typed commands instead")
    return LineInputHandler(callback)
