"""
Session transcripts: recorded host signals as plain text.

A transcript holds one directive per line:

    LOGIN mc.hypixel.net        login attempt (no address: unknown server)
    LOGOUT                      disconnect
    SCREEN loading|other        screen transition
    CHAT <text>                 chat line, formatting codes included
    TICK [n]                    n client ticks, default 1
    BOARD <line>|<line>...      replaces the sidebar seen by later ticks

Blank lines and lines starting with '#' are ignored. Transcripts are used
to replay captured sessions through the Orchestrator, either from a
finished file or by following a file that is still being written.
"""
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from .events import ChatLine, LoginAttempt, Logout, ScreenTransition, Signal, Tick

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "#"
BOARD_SEPARATOR = "|"


class TranscriptError(ValueError):
    """A transcript line could not be parsed."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


@dataclass(frozen=True)
class ScoreboardUpdate:
    """Sidebar contents from a BOARD directive; consumed by the replay, not the Orchestrator."""
    lines: Tuple[str, ...]


TranscriptEntry = Union[Signal, ScoreboardUpdate]


def parse_signal(line: str, line_number: Optional[int] = None) -> List[TranscriptEntry]:
    """
    Parse one transcript line.

    Args:
        line: Line text without its newline
        line_number: Used in error messages only

    Returns:
        Entries in order; empty for blank lines and comments. TICK n
        expands to n Tick signals.

    Raises:
        TranscriptError: for unknown directives or malformed arguments
    """
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_PREFIX):
        return []

    directive, _, argument = line.lstrip().partition(" ")
    directive = directive.upper()

    if directive == "CHAT":
        # Chat text is kept verbatim, trailing spaces included
        return [ChatLine(argument)]

    argument = argument.strip()

    if directive == "LOGIN":
        return [LoginAttempt(argument or None)]

    if directive == "LOGOUT":
        return [Logout()]

    if directive == "SCREEN":
        screen = argument.lower()
        if screen not in ("loading", "other"):
            raise TranscriptError(f"SCREEN expects 'loading' or 'other', got {argument!r}", line_number)
        return [ScreenTransition(screen == "loading")]

    if directive == "TICK":
        count = 1
        if argument:
            try:
                count = int(argument)
            except ValueError:
                raise TranscriptError(f"TICK count is not a number: {argument!r}", line_number)
            if count < 1:
                raise TranscriptError(f"TICK count must be positive, got {count}", line_number)
        return [Tick() for _ in range(count)]

    if directive == "BOARD":
        lines = tuple(part.strip() for part in argument.split(BOARD_SEPARATOR)) if argument else ()
        return [ScoreboardUpdate(lines)]

    raise TranscriptError(f"Unknown directive {directive!r}", line_number)


class ReplayScoreboard:
    """Sidebar collaborator backed by the latest BOARD directive."""

    def __init__(self):
        self.lines: Tuple[str, ...] = ()

    def update(self, lines: Iterable[str]):
        self.lines = tuple(lines)

    def __call__(self) -> Tuple[str, ...]:
        return self.lines


class TranscriptReplay:
    """Feeds transcript lines to an Orchestrator."""

    def __init__(self, orchestrator, scoreboard: Optional[ReplayScoreboard] = None):
        """
        Args:
            orchestrator: Orchestrator to drive
            scoreboard: Sidebar collaborator; should be the one the
                        orchestrator was created with so BOARD lines reach it
        """
        self.orchestrator = orchestrator
        self.scoreboard = scoreboard or ReplayScoreboard()
        self.line_number = 0
        self.signal_count = 0

    def feed(self, line: str):
        """
        Parse and apply one line.

        Raises:
            TranscriptError: if the line is malformed
        """
        self.line_number += 1
        for entry in parse_signal(line.rstrip("\r\n"), self.line_number):
            if isinstance(entry, ScoreboardUpdate):
                self.scoreboard.update(entry.lines)
                continue
            self.orchestrator.handle(entry)
            self.signal_count += 1

    def feed_lines(self, lines: Iterable[str]) -> int:
        """Apply every line; returns the number of signals handled so far."""
        for line in lines:
            self.feed(line)
        return self.signal_count

    def replay_file(self, path) -> int:
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            count = self.feed_lines(f)
        logger.info(f"Replayed {count} signals from {path}")
        return count


class TranscriptFollower:
    """Follows a transcript file that is still being written and yields new lines."""

    def __init__(self, path, poll_interval: float = 0.1):
        self.path = Path(path)
        self.poll_interval = poll_interval
        self.file = None
        self.inode = None
        self.offset = 0
        self._pending = ""

    def read_new_lines(self) -> List[str]:
        """
        Read the complete lines added since the last call.

        A replaced file (new inode) or a truncated one is read again from
        the beginning. A trailing partial line is held back until its
        newline arrives.

        Raises:
            FileNotFoundError: if the file does not exist
        """
        current_inode = os.stat(self.path).st_ino

        if self.inode is None or self.inode != current_inode:
            if self.file:
                self.file.close()
                logger.info(f"Transcript {self.path} replaced - starting from beginning of new file.")
            self.file = open(self.path, 'r', encoding='utf-8', errors='replace', newline='')
            self.inode = current_inode
            self.offset = 0
            self._pending = ""

        self.file.seek(0, 2)
        file_size = self.file.tell()
        if self.offset > file_size:
            logger.warning(f"Transcript truncated: offset {self.offset} > file size {file_size}. Resetting to beginning.")
            self.offset = 0
            self._pending = ""

        self.file.seek(self.offset)
        data = self.file.read()
        self.offset = self.file.tell()

        data = self._pending + data
        lines = data.split("\n")
        self._pending = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def follow(self, callback: Callable[[str], None], should_stop: Callable[[], bool] = lambda: False):
        """Follow the file until should_stop() is true, calling callback for each new line."""
        logger.info(f"Following transcript: {self.path}")
        while not should_stop():
            try:
                for line in self.read_new_lines():
                    callback(line)
            except FileNotFoundError:
                logger.warning(f"Transcript not found at {self.path}. Waiting...")
                time.sleep(self.poll_interval * 10)
                continue
            time.sleep(self.poll_interval)

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
