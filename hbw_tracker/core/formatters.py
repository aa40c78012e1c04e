"""
Formatters for displaying match state.

Keeps presentation out of the tracker: the tracker only knows what the team
has unlocked, these functions decide how it reads on a terminal.
"""

import logging
from typing import List, Optional

from tabulate import tabulate
from termcolor import colored

from .detectors import MatchPhase
from .domain import ForgeLevel

logger = logging.getLogger(__name__)

PHASE_COLORS = {
    MatchPhase.IN_MATCH: "green",
    MatchPhase.NOT_IN_MATCH: "yellow",
}


def format_phase(phase: MatchPhase) -> str:
    return colored(phase.name, PHASE_COLORS.get(phase, "white"))


def format_flag(value: bool) -> str:
    return colored("yes", "green") if value else colored("no", "red")


def format_forge(level: ForgeLevel) -> str:
    return level.name.replace("_", " ").title()


def format_seconds(seconds: Optional[int]) -> str:
    return f"{seconds}s" if seconds is not None else "-"


def format_traps(traps) -> str:
    """Trap queue as 'Name (uses)' in queue order, or '-' when empty."""
    if not traps:
        return "-"
    return ", ".join(f"{trap_type.display_name} ({uses})" for trap_type, uses in traps)


class MatchStateFormatter:
    """
    Formats the Orchestrator's current state for display.

    Which rows appear follows the user's display preferences; without
    preferences everything is shown.
    """

    def __init__(self, prefs=None):
        self.prefs = prefs

    def _show(self, option: str) -> bool:
        return self.prefs is None or getattr(self.prefs, option, True)

    def rows(self, orchestrator) -> List[List[str]]:
        rows = [
            ["Connected", format_flag(orchestrator.connected)],
            ["Phase", format_phase(orchestrator.phase)],
        ]

        tracker = orchestrator.tracker
        if tracker is None:
            rows.append(["Match", "not tracked"])
            return rows

        rows.append(["Variant", tracker.variant.name])

        if self._show("show_generation_times"):
            rows.append(["Next diamond", format_seconds(tracker.next_diamond())])
            rows.append(["Next emerald", format_seconds(tracker.next_emerald())])

        if self._show("show_team_upgrades"):
            rows.append(["Forge", format_forge(tracker.forge_level)])
            rows.append(["Heal Pool", format_flag(tracker.has_heal_pool)])
            rows.append(["Dragon Buff", format_flag(tracker.has_dragon_buff)])
            rows.append(["DeadShot", str(tracker.deadshot_level) if tracker.deadshot_level else "-"])
            rows.append(["Traps", format_traps(tracker.traps)])

        return rows

    def format_table(self, orchestrator) -> str:
        return tabulate(self.rows(orchestrator), tablefmt="simple")

    def format_report(self, monitor, limit: int = 10) -> str:
        """Timing statistics from a PerformanceMonitor as a table."""
        table = []
        for name, stats in monitor.report_sorted(limit=limit):
            table.append([
                name,
                stats['count'],
                f"{stats['total_ms']:.2f}",
                f"{stats['avg_ms']:.3f}",
                f"{stats['max_ms']:.3f}",
            ])
        if not table:
            return "No performance metrics recorded"
        return tabulate(
            table,
            headers=["Operation", "Count", "Total ms", "Avg ms", "Max ms"],
            tablefmt="simple",
            colalign=("left", "right", "right", "right", "right")
        )
