"""
Wires host signals to the detectors and owns the live match tracker.

There is at most one MatchStateTracker at a time and only the Orchestrator
holds it. Everyone else reads match state through the Orchestrator for the
duration of one query and never keeps the tracker around, since it is
replaced whenever the client moves on to a different match.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional

from .classifier import TextClassifier
from .detectors import (
    ConnectionMonitor,
    InProgressGameDetector,
    MatchPhase,
    MatchPhaseDetector,
    VariantDetector,
)
from .events import (
    ChatLine,
    EventType,
    LoginAttempt,
    Logout,
    PhaseEvent,
    ScreenTransition,
    Signal,
    Tick,
)
from .monitoring import PerformanceMonitor
from .tracker import GeneratorLookup, MatchStateTracker, NoActiveMatchError

logger = logging.getLogger(__name__)

ScoreboardReader = Callable[[], Optional[Iterable[str]]]


class Orchestrator:
    """
    Entry point for the host's signal loop.

    Call handle() once per signal, in arrival order, from a single thread.
    """

    SOURCE = "Orchestrator"

    def __init__(self,
                 prefs=None,
                 generator_lookup: Optional[GeneratorLookup] = None,
                 scoreboard_reader: Optional[ScoreboardReader] = None,
                 monitor: Optional[PerformanceMonitor] = None):
        """
        Args:
            prefs: UserPreferences (or anything with the same attributes), optional
            generator_lookup: World query collaborator for generator countdowns
            scoreboard_reader: Returns the current sidebar lines, used to detect
                               the variant of a rejoined match
            monitor: Performance monitor; a private one is created if omitted
        """
        self.prefs = prefs
        self.generator_lookup = generator_lookup
        self.scoreboard_reader = scoreboard_reader
        self.monitor = monitor or PerformanceMonitor()

        self.classifier = TextClassifier()
        self.connection = ConnectionMonitor()
        self.phase_detector = MatchPhaseDetector(self.connection)
        self.in_progress_detector = InProgressGameDetector()
        self.variant_detector = VariantDetector(prefs=prefs)

        self._tracker: Optional[MatchStateTracker] = None
        self._callbacks: Dict[EventType, List[Callable[[PhaseEvent], None]]] = {}

        self._signal_handlers = {
            LoginAttempt: self._on_login,
            Logout: self._on_logout,
            ScreenTransition: self._on_screen_transition,
            ChatLine: self._on_chat_line,
            Tick: self._on_tick,
        }
        self._event_handlers = {
            EventType.GAME_STARTED: self._on_game_started,
            EventType.CLIENT_REJOINED: self._on_client_rejoined,
            EventType.CLIENT_LEFT: self._on_client_left,
            EventType.JOINED_IN_PROGRESS: self._on_joined_in_progress,
            EventType.TRANSFER_CANCELLED: self._on_transfer_cancelled,
            EventType.TRACKER_INVALIDATED: self._on_tracker_invalidated,
            EventType.VARIANT_DETECTED: self._on_variant_detected,
        }

    # Query operations

    @property
    def phase(self) -> MatchPhase:
        return self.phase_detector.phase

    @property
    def in_match(self) -> bool:
        return self.phase_detector.in_match

    @property
    def connected(self) -> bool:
        return self.connection.connected

    @property
    def has_tracker(self) -> bool:
        return self._tracker is not None

    @property
    def tracker(self) -> Optional[MatchStateTracker]:
        """
        The live tracker, or None when the client is not in a tracked match.

        Do not keep the returned reference beyond the current query.
        """
        return self._tracker

    def require_tracker(self) -> MatchStateTracker:
        """
        The live tracker for callers that have already checked has_tracker.

        Raises:
            NoActiveMatchError: if no tracker is live
        """
        if self._tracker is None:
            raise NoActiveMatchError("No match is being tracked")
        return self._tracker

    # Outbound notifications

    def register_callback(self, event_type: EventType, callback: Callable[[PhaseEvent], None]):
        """Register a listener for an event (e.g. REJOIN_AFTER_RESTART)."""
        self._callbacks.setdefault(event_type, []).append(callback)
        logger.debug(f"Registered callback for {event_type.name}")

    def _notify(self, event: PhaseEvent):
        for callback in self._callbacks.get(event.event_type, []):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in callback for {event.event_type.name}: {e}", exc_info=True)

    # Signal dispatch

    def handle(self, signal: Signal):
        """Process one host signal."""
        handler = self._signal_handlers.get(type(signal))
        if handler is None:
            raise TypeError(f"Unsupported signal type: {type(signal).__name__}")
        with self.monitor.measure(f"orchestrator.{type(signal).__name__}"):
            handler(signal)

    def handle_all(self, signals: Iterable[Signal]):
        for signal in signals:
            self.handle(signal)

    def _on_login(self, signal: LoginAttempt):
        self.connection.on_login(signal.server_address)

    def _on_logout(self, signal: Logout):
        self.connection.on_logout()
        self._dispatch(self.phase_detector.on_logout())

    def _on_screen_transition(self, signal: ScreenTransition):
        self._dispatch(self.phase_detector.on_screen_transition(signal.is_loading_screen))

    def _on_chat_line(self, signal: ChatLine):
        line = signal.text
        if self.prefs is not None and self.prefs.debug_chat_messages:
            logger.info(f"Received chat message:\n{line}")
        else:
            logger.debug(f"Received chat message: {line}")

        token = self.classifier.classify(line)
        self._dispatch(self.phase_detector.on_chat_token(token))

        transfer = self.in_progress_detector.detect(line)
        if transfer is not None:
            self._dispatch([PhaseEvent(transfer, None, InProgressGameDetector.SOURCE)])

        if token is not None and self.in_match and self._tracker is not None:
            self._tracker.update(token)

    def _on_tick(self, signal: Tick):
        if not self.variant_detector.active:
            return
        lines = self.scoreboard_reader() if self.scoreboard_reader else None
        self._dispatch(self.variant_detector.on_tick(lines))

    # Phase event handling

    def _dispatch(self, events: List[PhaseEvent]):
        for event in events:
            handler = self._event_handlers.get(event.event_type)
            if handler is not None:
                handler(event)
            self._notify(event)

    def _on_game_started(self, event: PhaseEvent):
        self._clear_tracker("new match started")
        self._dispatch(self.variant_detector.start(event.data))

    def _on_client_rejoined(self, event: PhaseEvent):
        if self.phase_detector.consume_rejoin_clear():
            self._clear_tracker("rejoined a different match")

        if self._tracker is None:
            # Nothing carried over, most likely the client was restarted mid-match
            self._notify(PhaseEvent(EventType.REJOIN_AFTER_RESTART, None, self.SOURCE))
            self._dispatch(self.variant_detector.start())
        else:
            self._notify(PhaseEvent(EventType.REJOIN_WITHOUT_RESTART, None, self.SOURCE))

    def _on_client_left(self, event: PhaseEvent):
        # The tracker stays: the client may come back to the same match
        self.variant_detector.stop()

    def _on_joined_in_progress(self, event: PhaseEvent):
        self._dispatch(self.phase_detector.on_join_in_progress())

    def _on_transfer_cancelled(self, event: PhaseEvent):
        self._dispatch(self.phase_detector.on_transfer_cancelled())

    def _on_tracker_invalidated(self, event: PhaseEvent):
        self._clear_tracker("joined an in-progress match")

    def _on_variant_detected(self, event: PhaseEvent):
        self._tracker = MatchStateTracker(event.data, self.generator_lookup, self.monitor)
        logger.info(f"Tracking new {event.data.name} match")
        self._notify(PhaseEvent(EventType.TRACKER_CREATED, event.data, self.SOURCE))

    def _clear_tracker(self, reason: str):
        if self._tracker is None:
            return
        self._tracker = None
        logger.info(f"Tracker cleared ({reason})")
        self._notify(PhaseEvent(EventType.TRACKER_CLEARED, reason, self.SOURCE))
