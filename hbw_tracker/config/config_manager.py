"""
User Preferences for the Bed Wars match tracker

Persists settings that decide what the overlay shows and where:
- Which groups of information are rendered (generators, upgrades, armor, effects)
- Overlay position
- The Dream mode currently on rotation
- Whether every chat line is logged for debugging

The tracker itself never reads these settings to decide how to track;
they only shape what is rendered and logged.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional, Union

from ..core.domain import DreamMode

logger = logging.getLogger(__name__)

DEFAULT_HUD_X = 2
DEFAULT_HUD_Y = 2


def config_dir() -> Path:
    """Directory holding the preferences file; HBW_TRACKER_HOME overrides it."""
    override = os.getenv("HBW_TRACKER_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".hbw_tracker"


def default_prefs_file() -> Path:
    return config_dir() / "preferences.json"


@dataclass
class UserPreferences:
    """User preferences for the tracker overlay."""

    # What to render
    show_generation_times: bool = True
    show_team_upgrades: bool = True
    show_armor_info: bool = True
    show_effects_info: bool = True
    always_show_effects: bool = False

    # Where to render it
    hud_x: int = DEFAULT_HUD_X
    hud_y: int = DEFAULT_HUD_Y

    # Stored by name so the file stays plain JSON
    current_dream_mode: str = DreamMode.UNSELECTED.name

    debug_chat_messages: bool = False

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "UserPreferences":
        """Load preferences from file or create defaults."""
        path = Path(path) if path else default_prefs_file()
        if not path.exists():
            logger.info("No preferences file found. Using defaults.")
            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load preferences: {e}. Using defaults.")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Preferences file {path} does not hold an object. Using defaults.")
            return cls()

        known = {f.name for f in fields(cls)}
        for key in set(data) - known:
            logger.warning(f"Ignoring unknown preference: {key}")
        prefs = cls(**{k: v for k, v in data.items() if k in known})

        try:
            DreamMode.from_name(prefs.current_dream_mode)
        except (ValueError, AttributeError) as e:
            logger.warning(f"{e}. Resetting dream mode.")
            prefs.current_dream_mode = DreamMode.UNSELECTED.name

        logger.debug(f"Loaded preferences from {path}")
        return prefs

    def save(self, path: Optional[Path] = None):
        """Save preferences to file."""
        path = Path(path) if path else default_prefs_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(asdict(self), f, indent=2)
        logger.debug(f"Saved preferences to {path}")

    @property
    def dream_mode(self) -> DreamMode:
        return DreamMode.from_name(self.current_dream_mode)

    def set_dream_mode(self, mode: Union[DreamMode, str]):
        """
        Change the Dream mode on rotation.

        Raises:
            ValueError: if a name is given that matches no Dream mode
        """
        if not isinstance(mode, DreamMode):
            mode = DreamMode.from_name(mode)
        self.current_dream_mode = mode.name

    def set_hud_position(self, x: int, y: int, max_x: int, max_y: int):
        """
        Move the overlay.

        The limits depend on the current window size, so they are passed in
        rather than stored.

        Raises:
            ValueError: if either coordinate is outside 0..max; nothing is changed then
        """
        if not 0 <= x <= max_x:
            raise ValueError(f"New value out of range (0-{max_x}): {x}")
        if not 0 <= y <= max_y:
            raise ValueError(f"New value out of range (0-{max_y}): {y}")
        self.hud_x = x
        self.hud_y = y

    def set_display_options(self, generation_times: bool = None, team_upgrades: bool = None,
                            armor_info: bool = None, effects_info: bool = None,
                            always_effects: bool = None):
        """Update which information groups are rendered."""
        if generation_times is not None:
            self.show_generation_times = generation_times
        if team_upgrades is not None:
            self.show_team_upgrades = team_upgrades
        if armor_info is not None:
            self.show_armor_info = armor_info
        if effects_info is not None:
            self.show_effects_info = effects_info
        if always_effects is not None:
            self.always_show_effects = always_effects

    def __repr__(self) -> str:
        return (
            f"UserPreferences("
            f"hud=({self.hud_x}, {self.hud_y}), "
            f"dream_mode={self.current_dream_mode}, "
            f"debug_chat={self.debug_chat_messages}"
            f")"
        )
