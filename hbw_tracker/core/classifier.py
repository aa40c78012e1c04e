"""
Chat line classification.

Turns one flattened chat line into at most one ChatToken. The classifier
knows nothing about match phase; deciding whether a token matters is up to
the detectors and the tracker.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional

from .domain import (
    ForgeLevel,
    TrapType,
    Upgrade,
    NORMAL,
    RUSH,
    ULTIMATE,
    LUCKY_BLOCKS,
    parse_roman_numeral,
)

logger = logging.getLogger(__name__)

FORMATTING_PATTERN = re.compile("§[0-9a-fk-or]")

RESET = "§r"


def strip_formatting(text: str) -> str:
    """Remove every formatting code from a piece of text."""
    return FORMATTING_PATTERN.sub("", text)


class TokenKind(Enum):
    MATCH_START = auto()
    REJOIN = auto()
    UPGRADE_UNLOCKED = auto()
    DEADSHOT_UNLOCKED = auto()
    FORGE_LEVEL_REACHED = auto()
    TRAP_PURCHASED = auto()
    TRAP_SET_OFF = auto()


@dataclass(frozen=True)
class DeadShotLevel:
    """Payload of a DeadShot unlock. level is None when the numeral is unknown."""
    numeral: str
    level: Optional[int]


@dataclass(frozen=True)
class ChatToken:
    """
    Semantic meaning of a chat line.

    Attributes:
        kind: Which category the line fell into
        payload: Parsed detail (MatchVariant, Upgrade, DeadShotLevel,
                 ForgeLevel or TrapType depending on kind; None for REJOIN)
        raw_line: The line the token came from
    """
    kind: TokenKind
    payload: Any = None
    raw_line: str = ""


class TextClassifier:
    """
    Substring classifier for Bed Wars chat lines.

    Checks run in a fixed priority order and the first hit wins:

    1. match start banners, then the rejoin banner
    2. Heal Pool, Dragon Buff, DeadShot
    3. forge tiers in enum order
    4. traps in enum order, purchase marker before set-off marker

    Markers of different categories never overlap. Within the forge and trap
    tables a well-formed line matches at most one entry; if one ever matched
    two, the earlier entry in enumeration order is the one reported.
    """

    # Banner shown to every player when a match begins, keyed to the variant it implies
    START_BANNERS = (
        ("§f§lBed Wars§r", NORMAL),
        ("§f§lBed Wars Rush§r", RUSH),
        ("§f§lBed Wars Ultimate§r", ULTIMATE),
        ("§f§lBed Wars Lucky Blocks§r", LUCKY_BLOCKS),
    )

    REJOIN_BANNER = "§e§lTo leave Bed Wars, type /lobby§r"

    DEADSHOT_PROMPT = "§r§6DeadShot "

    def classify(self, line: str) -> Optional[ChatToken]:
        """
        Classify a chat line.

        Args:
            line: Chat text with formatting codes kept as literal characters

        Returns:
            ChatToken for a recognized line, None for anything else
        """
        if not line:
            return None
        try:
            return self._classify(line)
        except Exception as e:
            # Unrecognized input is never an error
            logger.debug(f"Classifier failed on line {line[:80]!r}: {e}")
            return None

    def _classify(self, line: str) -> Optional[ChatToken]:
        for banner, variant in self.START_BANNERS:
            if banner in line:
                return ChatToken(TokenKind.MATCH_START, variant, line)

        if self.REJOIN_BANNER in line:
            return ChatToken(TokenKind.REJOIN, None, line)

        for upgrade in Upgrade:
            if upgrade.prompt in line:
                return ChatToken(TokenKind.UPGRADE_UNLOCKED, upgrade, line)

        if self.DEADSHOT_PROMPT in line:
            return ChatToken(TokenKind.DEADSHOT_UNLOCKED, self._parse_deadshot(line), line)

        for level in ForgeLevel:
            if level.prompt and level.prompt in line:
                return ChatToken(TokenKind.FORGE_LEVEL_REACHED, level, line)

        for trap_type in TrapType:
            if trap_type.purchase_prompt in line:
                return ChatToken(TokenKind.TRAP_PURCHASED, trap_type, line)
            if trap_type.set_off_prompt in line:
                return ChatToken(TokenKind.TRAP_SET_OFF, trap_type, line)

        return None

    def _parse_deadshot(self, line: str) -> DeadShotLevel:
        """Read the numeral between the DeadShot prompt and the next reset code."""
        start = line.index(self.DEADSHOT_PROMPT) + len(self.DEADSHOT_PROMPT)
        end = line.find(RESET, start)
        numeral = line[start:] if end == -1 else line[start:end]
        level = parse_roman_numeral(numeral)
        if level is None:
            logger.warning(f"Unrecognized DeadShot level: {numeral!r}")
        return DeadShotLevel(numeral=numeral, level=level)
