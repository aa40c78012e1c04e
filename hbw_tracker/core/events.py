"""
Signal and event types for the match tracker.

Two families live here:

- Raw signals delivered by the host, one at a time, in arrival order
  (login, logout, screen transition, chat line, tick). They form a closed
  tagged union; the Orchestrator dispatches on the concrete type.
- Phase events produced by the detectors and consumed by the Orchestrator,
  which decides how the live tracker slot changes.

Processing is strictly serial, so there is no bus: detectors return the
events they produce and the caller handles them in order.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional, Union


@dataclass(frozen=True)
class LoginAttempt:
    """Client connected to a server; address is whatever the host reports."""
    server_address: Optional[str]


@dataclass(frozen=True)
class Logout:
    """Client disconnected from the current server."""


@dataclass(frozen=True)
class ScreenTransition:
    """A new screen opened. Loading screens mark a server transfer."""
    is_loading_screen: bool


@dataclass(frozen=True)
class ChatLine:
    """One chat line with formatting codes kept as literal text."""
    text: str


@dataclass(frozen=True)
class Tick:
    """Periodic client tick."""


Signal = Union[LoginAttempt, Logout, ScreenTransition, ChatLine, Tick]


class EventType(Enum):
    """Everything the detectors can report to the Orchestrator."""
    GAME_STARTED = auto()         # data: variant hint (MatchVariant or None)
    CLIENT_REJOINED = auto()
    CLIENT_LEFT = auto()
    JOINED_IN_PROGRESS = auto()
    TRANSFER_CANCELLED = auto()
    TRACKER_INVALIDATED = auto()
    VARIANT_DETECTED = auto()     # data: MatchVariant

    # Notices for outbound listeners, emitted by the Orchestrator itself
    REJOIN_AFTER_RESTART = auto()
    REJOIN_WITHOUT_RESTART = auto()
    TRACKER_CREATED = auto()      # data: MatchVariant
    TRACKER_CLEARED = auto()


@dataclass(frozen=True)
class PhaseEvent:
    """
    An event with its optional payload.

    Attributes:
        event_type: What happened
        data: Optional payload (see EventType comments)
        source: Name of the component that produced the event
    """
    event_type: EventType
    data: Any = None
    source: str = ""
