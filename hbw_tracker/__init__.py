"""Bed Wars match tracker: follows a player's team progress from the game's chat."""

from .core.version import FALLBACK_VERSION as __version__

__all__ = ['__version__']
