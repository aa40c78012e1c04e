"""
Pure domain models for Bed Wars match state.

These models describe what a team owns during one match (forge tier,
queued traps) and how a match is initialized. They carry the chat markers
used to recognize them, but contain no parsing or tracking logic.

Formatting codes (the section sign followed by one character) are kept as
literal text in every marker, because the chat lines handed to the tracker
are flattened with their styling preserved.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class ForgeLevel(Enum):
    """Resource generation tier of a team's base island, weakest first."""

    ORDINARY_FORGE = (0, None)
    IRON_FORGE = (1, "§r§6Iron Forge§r")
    GOLDEN_FORGE = (2, "§r§6Golden Forge§r")
    EMERALD_FORGE = (3, "§r§6Emerald Forge§r")
    MOLTEN_FORGE = (4, "§r§6Molten Forge§r")

    def __init__(self, rank: int, prompt: Optional[str]):
        self.rank = rank
        # The starting tier is never announced in chat
        self.prompt = prompt

    def __lt__(self, other: "ForgeLevel") -> bool:
        if not isinstance(other, ForgeLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "ForgeLevel") -> bool:
        if not isinstance(other, ForgeLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: "ForgeLevel") -> bool:
        if not isinstance(other, ForgeLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: "ForgeLevel") -> bool:
        if not isinstance(other, ForgeLevel):
            return NotImplemented
        return self.rank >= other.rank


class TrapType(Enum):
    """Kinds of traps a team can queue at its base."""

    ORDINARY = ("It's a Trap!", "§r§6It's a Trap!§r", "§c§lIt's a trap! §r§cwas set off!")
    COUNTER = ("Counter-Offensive Trap", "§r§6Counter-Offensive Trap§r",
               "§c§lCounter-Offensive trap! §r§cwas set off!")
    ALARM = ("Alarm Trap", "§r§6Alarm Trap§r", "§c§lAlarm trap! §r§cwas set off!")
    MINER_FATIGUE = ("Miner Fatigue Trap", "§r§6Miner Fatigue Trap§r",
                     "§c§lMiner Fatigue trap! §r§cwas set off!")

    def __init__(self, display_name: str, purchase_prompt: str, set_off_prompt: str):
        self.display_name = display_name
        self.purchase_prompt = purchase_prompt
        self.set_off_prompt = set_off_prompt


class Upgrade(Enum):
    """One-time team upgrades that are either unlocked or not."""

    HEAL_POOL = "§r§6Heal Pool§r"
    DRAGON_BUFF = "§r§6Dragon Buff§r"

    @property
    def prompt(self) -> str:
        return self.value


class CountedTrap:
    """
    A queued trap together with how many more times it can be set off.

    Mutable on purpose: the trap at the front of the queue is decremented
    in place each time it is triggered.
    """

    def __init__(self, trap_type: TrapType, remaining_uses: int):
        if remaining_uses < 1:
            raise ValueError(f"A trap needs at least one use, got {remaining_uses}")
        self.trap_type = trap_type
        self.remaining_uses = remaining_uses

    def set_off(self):
        """Consume one use of this trap."""
        if self.remaining_uses > 0:
            self.remaining_uses -= 1

    @property
    def used_up(self) -> bool:
        return self.remaining_uses <= 0

    def copy(self) -> "CountedTrap":
        return CountedTrap(self.trap_type, self.remaining_uses)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CountedTrap):
            return NotImplemented
        return (self.trap_type, self.remaining_uses) == (other.trap_type, other.remaining_uses)

    def __repr__(self) -> str:
        return f"CountedTrap({self.trap_type.name}, uses={self.remaining_uses})"


@dataclass(frozen=True)
class MatchVariant:
    """
    Starting conditions of a match.

    Variants never change how a match is tracked, only what it starts with.
    """

    name: str
    initial_forge: ForgeLevel = ForgeLevel.ORDINARY_FORGE
    initial_traps: Tuple[TrapType, ...] = ()
    trap_uses: int = 1
    scoreboard_marker: Optional[str] = None  # Mode name shown on the sidebar, if any

    def __post_init__(self):
        if self.trap_uses < 1:
            raise ValueError(f"Invalid trap_uses for {self.name}: {self.trap_uses}")

    def initial_trap_queue(self) -> List[CountedTrap]:
        """Fresh trap objects for a new tracker; never shared between matches."""
        return [CountedTrap(trap_type, self.trap_uses) for trap_type in self.initial_traps]


NORMAL = MatchVariant(name="Normal")
RUSH = MatchVariant(
    name="Rush",
    initial_forge=ForgeLevel.IRON_FORGE,
    initial_traps=(TrapType.ORDINARY,),
    trap_uses=2,
    scoreboard_marker="Rush",
)
ULTIMATE = MatchVariant(name="Ultimate", scoreboard_marker="Ultimate")
LUCKY_BLOCKS = MatchVariant(name="Lucky Blocks", scoreboard_marker="Lucky")

ALL_VARIANTS = (NORMAL, RUSH, ULTIMATE, LUCKY_BLOCKS)


class DreamMode(Enum):
    """The rotating "Dream" mode currently offered, as chosen in preferences."""

    UNSELECTED = None
    RUSH = RUSH
    ULTIMATE = ULTIMATE
    LUCKY_BLOCKS = LUCKY_BLOCKS

    @property
    def variant(self) -> Optional[MatchVariant]:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "DreamMode":
        """
        Look up a Dream mode by its enum name, case-insensitively.

        Raises:
            ValueError: if no mode has that name
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(mode.name for mode in cls)
            raise ValueError(f"Unknown dream mode {name!r} (expected one of: {valid})") from None


_ROMAN_NUMERALS = {"I": 1, "II": 2, "III": 3, "IV": 4}


def parse_roman_numeral(text: str) -> Optional[int]:
    """Convert an upgrade level numeral (I-IV) to an int, None if unrecognized."""
    return _ROMAN_NUMERALS.get(text.strip())
