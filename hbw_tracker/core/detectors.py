"""
Detectors for where the client currently is.

- ConnectionMonitor: whether the client is connected to the Hypixel network
- MatchPhaseDetector: whether the client is inside a Bed Wars match
- InProgressGameDetector: transfers into matches that are already running
- VariantDetector: which variant the current match is, found from the
  start banner or, failing that, by periodically scanning the sidebar

Detectors never touch the tracker. They return the PhaseEvents they
produce and the Orchestrator acts on them.
"""
import logging
from enum import Enum, auto
from typing import Iterable, List, Optional

from .classifier import ChatToken, TokenKind, strip_formatting
from .domain import ALL_VARIANTS, NORMAL, MatchVariant
from .events import EventType, PhaseEvent

logger = logging.getLogger(__name__)

HYPIXEL_DOMAIN = "hypixel.net"


class ConnectionMonitor:
    """Tracks whether the client is connected to the Hypixel network."""

    def __init__(self, service_domain: str = HYPIXEL_DOMAIN):
        self.service_domain = service_domain.lower()
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def on_login(self, server_address: Optional[str]):
        """Record a login. An unknown address leaves the state unchanged."""
        if server_address is None:
            logger.debug("Login without a server address; connection state unchanged")
            return
        self._connected = self.service_domain in server_address.lower()
        logger.info(f"Logged in to {server_address} (tracked service: {self._connected})")

    def on_logout(self):
        if self._connected:
            logger.info("Logged out of tracked service")
        self._connected = False


class MatchPhase(Enum):
    NOT_IN_MATCH = auto()
    IN_MATCH = auto()


class MatchPhaseDetector:
    """
    State machine for whether the client is inside a match.

    Besides the phase it remembers one flag, ``awaiting_rejoin_clear``: the
    client was sent to an in-progress match while already counted as in a
    match, so the current tracker belongs to the old match and must be
    dropped once the rejoin is confirmed. A cancelled transfer clears the
    flag again.
    """

    SOURCE = "MatchPhaseDetector"

    def __init__(self, connection: ConnectionMonitor):
        self.connection = connection
        self._phase = MatchPhase.NOT_IN_MATCH
        self._awaiting_rejoin_clear = False

    @property
    def phase(self) -> MatchPhase:
        return self._phase

    @property
    def in_match(self) -> bool:
        return self._phase is MatchPhase.IN_MATCH

    @property
    def awaiting_rejoin_clear(self) -> bool:
        return self._awaiting_rejoin_clear

    def on_chat_token(self, token: Optional[ChatToken]) -> List[PhaseEvent]:
        """Enter a match on a start or rejoin banner seen while connected."""
        if token is None or self.in_match or not self.connection.connected:
            return []

        if token.kind is TokenKind.MATCH_START:
            self._phase = MatchPhase.IN_MATCH
            logger.info(f"Match started (banner suggests {token.payload.name})")
            return [PhaseEvent(EventType.GAME_STARTED, token.payload, self.SOURCE)]

        if token.kind is TokenKind.REJOIN:
            self._phase = MatchPhase.IN_MATCH
            logger.info("Rejoined a match")
            return [PhaseEvent(EventType.CLIENT_REJOINED, None, self.SOURCE)]

        return []

    def on_screen_transition(self, is_loading_screen: bool) -> List[PhaseEvent]:
        """A loading screen while in a match means the client is being moved out of it."""
        if self.in_match and is_loading_screen:
            return self._leave("server transfer")
        return []

    def on_logout(self) -> List[PhaseEvent]:
        # No loading screen is shown on disconnect, so logout has to end the match itself
        if self.in_match:
            return self._leave("logout")
        return []

    def on_join_in_progress(self) -> List[PhaseEvent]:
        if self.in_match:
            self._awaiting_rejoin_clear = True
            logger.info("Joining an in-progress match; tracker will be replaced on rejoin")
            return []
        return [PhaseEvent(EventType.TRACKER_INVALIDATED, None, self.SOURCE)]

    def on_transfer_cancelled(self) -> List[PhaseEvent]:
        if self._awaiting_rejoin_clear:
            logger.info("Transfer cancelled; keeping current tracker")
        self._awaiting_rejoin_clear = False
        return []

    def consume_rejoin_clear(self) -> bool:
        """Return whether the tracker must be cleared on this rejoin, resetting the flag."""
        should_clear = self._awaiting_rejoin_clear
        self._awaiting_rejoin_clear = False
        return should_clear

    def _leave(self, reason: str) -> List[PhaseEvent]:
        self._phase = MatchPhase.NOT_IN_MATCH
        logger.info(f"Left match ({reason})")
        return [PhaseEvent(EventType.CLIENT_LEFT, reason, self.SOURCE)]


class InProgressGameDetector:
    """Recognizes the chat lines around transfers into running matches."""

    SOURCE = "InProgressGameDetector"

    JOIN_IN_PROGRESS_TEXT = "§aSending you to an in-progress game§r"
    TRANSFER_CANCELLED_TEXT = "§cTeleportation cancelled§r"

    def detect(self, line: str) -> Optional[EventType]:
        """
        Args:
            line: Chat text with formatting codes

        Returns:
            JOINED_IN_PROGRESS, TRANSFER_CANCELLED or None
        """
        if not line:
            return None
        if self.JOIN_IN_PROGRESS_TEXT in line:
            return EventType.JOINED_IN_PROGRESS
        if self.TRANSFER_CANCELLED_TEXT in line:
            return EventType.TRANSFER_CANCELLED
        return None


class VariantDetector:
    """
    Works out the variant of the current match.

    A start banner names the variant directly. After a rejoin there is no
    banner, so the sidebar is scanned every ``scan_interval`` ticks until a
    variant's mode name shows up. The rotating Dream mode only shows
    "Dream" on the sidebar and is resolved through the user's preferences.
    After ``max_scans`` scans without an answer the match is assumed to be
    a normal one.
    """

    SOURCE = "VariantDetector"

    SCOREBOARD_TITLE = "BED WARS"
    DREAM_MARKER = "Dream"

    def __init__(self, prefs=None, scan_interval: int = 20, max_scans: int = 10):
        if scan_interval < 1 or max_scans < 1:
            raise ValueError("scan_interval and max_scans must be positive")
        self.prefs = prefs
        self.scan_interval = scan_interval
        self.max_scans = max_scans

        self._active = False
        self._ticks = 0
        self._scans = 0

    @property
    def active(self) -> bool:
        return self._active

    def start(self, hint: Optional[MatchVariant] = None) -> List[PhaseEvent]:
        """Begin detection for a new match; a hint resolves it immediately."""
        self._ticks = 0
        self._scans = 0
        if hint is not None:
            self._active = False
            return [self._detected(hint, "start banner")]
        self._active = True
        logger.info("Scanning sidebar for match variant")
        return []

    def stop(self):
        if self._active:
            logger.info("Variant detection stopped")
        self._active = False

    def on_tick(self, scoreboard_lines: Optional[Iterable[str]]) -> List[PhaseEvent]:
        if not self._active:
            return []

        self._ticks += 1
        if self._ticks % self.scan_interval:
            return []

        self._scans += 1
        variant = self._scan(scoreboard_lines or ())
        if variant is not None:
            self._active = False
            return [self._detected(variant, "sidebar")]

        if self._scans >= self.max_scans:
            self._active = False
            logger.warning(f"No variant found after {self._scans} scans; assuming {NORMAL.name}")
            return [self._detected(NORMAL, "fallback")]
        return []

    def _scan(self, scoreboard_lines: Iterable[str]) -> Optional[MatchVariant]:
        lines = [strip_formatting(line) for line in scoreboard_lines]
        if not lines:
            return None

        if any(self.DREAM_MARKER in line for line in lines):
            dream_variant = self._dream_variant()
            if dream_variant is not None:
                return dream_variant
            logger.warning("Dream mode match but no dream mode selected in preferences")

        for variant in ALL_VARIANTS:
            marker = variant.scoreboard_marker
            if marker and any(marker in line for line in lines):
                return variant

        if any(self.SCOREBOARD_TITLE in line.upper() for line in lines):
            return NORMAL
        return None

    def _dream_variant(self) -> Optional[MatchVariant]:
        if self.prefs is None:
            return None
        return self.prefs.dream_mode.variant

    def _detected(self, variant: MatchVariant, how: str) -> PhaseEvent:
        logger.info(f"Match variant detected from {how}: {variant.name}")
        return PhaseEvent(EventType.VARIANT_DETECTED, variant, self.SOURCE)
