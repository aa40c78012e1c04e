"""
Domain models for the Bed Wars match tracker.

Pure data with match semantics: forge tiers, trap kinds, queued traps and
the variants a match can start as. Parsing lives in the classifier and
state reconciliation lives in the tracker.
"""

from .game_state import (
    ForgeLevel,
    TrapType,
    Upgrade,
    CountedTrap,
    MatchVariant,
    DreamMode,
    NORMAL,
    RUSH,
    ULTIMATE,
    LUCKY_BLOCKS,
    ALL_VARIANTS,
    parse_roman_numeral,
)

__all__ = [
    "ForgeLevel",
    "TrapType",
    "Upgrade",
    "CountedTrap",
    "MatchVariant",
    "DreamMode",
    "NORMAL",
    "RUSH",
    "ULTIMATE",
    "LUCKY_BLOCKS",
    "ALL_VARIANTS",
    "parse_roman_numeral",
]
