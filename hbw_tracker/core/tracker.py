"""
Match progress tracking.

A MatchStateTracker holds what the player's team has unlocked during one
match: forge tier, one-time upgrades, DeadShot level and the trap queue.
It is fed classified chat tokens and polled by whatever renders the state.

The chat stream is lossy. The client may be detached from a match for a
while and miss trap purchases or triggers, so the trap queue is a
best-effort reconstruction: when an observation contradicts the queue,
the queue is advanced until it agrees instead of rejecting the input.
"""
import logging
import re
from collections import deque
from typing import Any, Deque, Iterator, Optional, Protocol, Tuple

from .classifier import ChatToken, TokenKind
from .domain import CountedTrap, ForgeLevel, MatchVariant, TrapType, Upgrade
from .monitoring import PerformanceMonitor

logger = logging.getLogger(__name__)

MAX_TRAPS = 3

# Text that only appears in the label above a generator that shows its countdown
GENERATOR_COUNTDOWN_MARKER = "§eSpawns in §r§c"
DIAMOND_GENERATOR_MARKER = "§b§lDiamond§r"
EMERALD_GENERATOR_MARKER = "§2§lEmerald§r"

_DIGITS = re.compile(r"\d+")


def parse_countdown(label: str) -> Optional[int]:
    """
    Extract the seconds from a generator countdown label.

    Args:
        label: Formatted label text, e.g. "§eSpawns in §r§c27§r§e seconds!§r"

    Returns:
        Seconds until the next spawn, or None if the label is not a countdown
    """
    if GENERATOR_COUNTDOWN_MARKER not in label:
        return None
    digits = "".join(_DIGITS.findall(label))
    if not digits:
        return None
    return int(digits)


class NoActiveMatchError(RuntimeError):
    """Match state was queried while no tracker is live."""


class GeneratorLookup(Protocol):
    """
    World query collaborator for generator countdowns.

    Handles are opaque to the tracker. Both methods may return None at any
    time, for example when the generator is out of render distance.
    """

    def find_generator(self, marker: str) -> Optional[Any]:
        ...

    def read_countdown(self, handle: Any) -> Optional[int]:
        ...


class TrapQueue:
    """
    Bounded FIFO of queued traps with reconciliation on every observation.

    The queue never holds more than ``capacity`` traps.
    """

    def __init__(self, capacity: int = MAX_TRAPS, initial=()):
        self.capacity = capacity
        self._traps: Deque[CountedTrap] = deque()
        for trap in initial:
            self.purchase(trap.trap_type, trap.remaining_uses)

    def purchase(self, trap_type: TrapType, uses: int) -> int:
        """
        Append a newly purchased trap.

        A purchase while the queue is full proves that traps were set off
        while the client was not watching, so the oldest traps are dropped
        until there is room.

        Returns:
            Number of traps evicted to make room
        """
        evicted = 0
        while len(self._traps) >= self.capacity:
            self._traps.popleft()
            evicted += 1
        self._traps.append(CountedTrap(trap_type, uses))
        return evicted

    def set_off(self, trap_type: TrapType) -> bool:
        """
        Consume one use of the first trap of the observed type.

        Traps are set off front to back. A front trap of a different type
        must already have been set off unobserved, so it is discarded and
        the next one examined, until a trap of the right type is consumed
        or the queue runs out.

        Returns:
            True if a matching trap was consumed
        """
        while self._traps:
            front = self._traps[0]
            if front.trap_type is trap_type:
                front.set_off()
                if front.used_up:
                    self._traps.popleft()
                return True
            self._traps.popleft()
        return False

    def snapshot(self) -> Tuple[Tuple[TrapType, int], ...]:
        """Immutable copy of the queue as (trap type, remaining uses) pairs."""
        return tuple((trap.trap_type, trap.remaining_uses) for trap in self._traps)

    def __len__(self) -> int:
        return len(self._traps)

    def __iter__(self) -> Iterator[CountedTrap]:
        # Copies, so callers cannot mutate the queue through iteration
        return iter([trap.copy() for trap in self._traps])


class MatchStateTracker:
    """
    Progress of the player's team in a single match.

    Create one per match with the match's variant. The instance survives the
    client disconnecting and rejoining the same match; it must be replaced
    when the client moves on to a different match.
    """

    def __init__(self, variant: MatchVariant,
                 generator_lookup: Optional[GeneratorLookup] = None,
                 monitor: Optional[PerformanceMonitor] = None):
        self.variant = variant
        self.generator_lookup = generator_lookup
        self.monitor = monitor or PerformanceMonitor()

        self._forge_level: ForgeLevel = variant.initial_forge
        self._heal_pool = False
        self._dragon_buff = False
        self._deadshot_level = 0
        self._trap_queue = TrapQueue(MAX_TRAPS, variant.initial_trap_queue())

        # Last known generator handles; None means look one up on next query
        self._diamond_generator: Optional[Any] = None
        self._emerald_generator: Optional[Any] = None

    # Query operations

    @property
    def forge_level(self) -> ForgeLevel:
        return self._forge_level

    @property
    def has_heal_pool(self) -> bool:
        return self._heal_pool

    @property
    def has_dragon_buff(self) -> bool:
        return self._dragon_buff

    @property
    def deadshot_level(self) -> int:
        """DeadShot level unlocked by the team, 0 when not unlocked."""
        return self._deadshot_level

    @property
    def traps(self) -> Tuple[Tuple[TrapType, int], ...]:
        return self._trap_queue.snapshot()

    def next_diamond(self) -> Optional[int]:
        """Seconds until the next diamond spawns, None while no generator can be read."""
        seconds, self._diamond_generator = self._read_generator(
            self._diamond_generator, DIAMOND_GENERATOR_MARKER)
        return seconds

    def next_emerald(self) -> Optional[int]:
        """Seconds until the next emerald spawns, None while no generator can be read."""
        seconds, self._emerald_generator = self._read_generator(
            self._emerald_generator, EMERALD_GENERATOR_MARKER)
        return seconds

    def _read_generator(self, handle: Optional[Any], marker: str) -> Tuple[Optional[int], Optional[Any]]:
        if self.generator_lookup is None:
            return None, None

        seconds = None
        if handle is not None:
            seconds = self.generator_lookup.read_countdown(handle)

        # Cached generator missing or unreadable: find another one for the next query
        if seconds is None:
            handle = self.generator_lookup.find_generator(marker)
            logger.debug(f"Re-resolved generator for {marker!r}: {handle!r}")
        return seconds, handle

    # Modification operations

    def update(self, token: Optional[ChatToken]) -> bool:
        """
        Apply one classified chat token.

        At most one piece of state changes per call. Tokens that concern the
        match phase rather than team progress are ignored.

        Returns:
            True if the token was applied to tracked state
        """
        if token is None:
            return False

        with self.monitor.measure("tracker.update"):
            kind = token.kind

            if kind is TokenKind.UPGRADE_UNLOCKED:
                if token.payload is Upgrade.HEAL_POOL:
                    self._heal_pool = True
                    logger.info("Heal Pool enabled")
                else:
                    self._dragon_buff = True
                    logger.info("Dragon Buff enabled")
                return True

            if kind is TokenKind.DEADSHOT_UNLOCKED:
                if token.payload.level is None:
                    return False
                self._deadshot_level = token.payload.level
                logger.info(f"DeadShot level {token.payload.numeral}")
                return True

            if kind is TokenKind.FORGE_LEVEL_REACHED:
                # Trusts the stream's ordering; a lower tier simply overwrites
                self._forge_level = token.payload
                logger.info(f"Forge upgraded to {token.payload.name}")
                return True

            if kind is TokenKind.TRAP_PURCHASED:
                evicted = self._trap_queue.purchase(token.payload, self.variant.trap_uses)
                if evicted:
                    logger.info(f"Dropped {evicted} trap(s) set off while away")
                logger.info(f"Trap {token.payload.display_name} purchased")
                return True

            if kind is TokenKind.TRAP_SET_OFF:
                before = len(self._trap_queue)
                consumed = self._trap_queue.set_off(token.payload)
                if not consumed:
                    logger.warning(f"Trap {token.payload.display_name} set off but none was queued")
                logger.info(f"Trap {token.payload.display_name} set off")
                return consumed or before > 0

        return False

    def __repr__(self) -> str:
        return (
            f"MatchStateTracker("
            f"variant={self.variant.name}, "
            f"forge={self._forge_level.name}, "
            f"traps={[t.name for t, _ in self.traps]}"
            f")"
        )
