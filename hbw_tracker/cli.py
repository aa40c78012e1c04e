#!/usr/bin/env python3
"""
Bed Wars match tracker - command line entry point

Usage:
    hbw-tracker replay session.txt            # replay a recorded session
    hbw-tracker replay session.txt --follow   # keep following a live transcript
    hbw-tracker prefs --dream-mode rush       # change stored preferences
"""

import argparse
import logging
import sys
from dataclasses import asdict

from dotenv import load_dotenv
from tabulate import tabulate
from termcolor import colored

from .config import UserPreferences, config_dir
from .core import MatchStateFormatter, Orchestrator, PerformanceMonitor
from .core.events import EventType
from .core.transcript import ReplayScoreboard, TranscriptError, TranscriptFollower, TranscriptReplay
from .core.version import get_version

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "tracker.log"


def setup_logging(debug: bool = False):
    """Log to a file under the config directory and to the console."""
    log_dir = config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = log_dir / LOG_FILE_NAME

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file_path, encoding='utf-8'),
            logging.StreamHandler()
        ]
    )


def _print_notice(event):
    if event.event_type is EventType.REJOIN_AFTER_RESTART:
        print(colored("Rejoined a match the tracker has no record of; detecting mode from the sidebar.", "yellow"))
    elif event.event_type is EventType.REJOIN_WITHOUT_RESTART:
        print(colored("Rejoined the tracked match.", "cyan"))


def run_replay(args) -> int:
    prefs = UserPreferences.load(args.prefs)
    if args.debug:
        prefs.debug_chat_messages = True

    monitor = PerformanceMonitor(enabled=args.report)
    scoreboard = ReplayScoreboard()
    orchestrator = Orchestrator(prefs=prefs, scoreboard_reader=scoreboard, monitor=monitor)
    orchestrator.register_callback(EventType.REJOIN_AFTER_RESTART, _print_notice)
    orchestrator.register_callback(EventType.REJOIN_WITHOUT_RESTART, _print_notice)
    replay = TranscriptReplay(orchestrator, scoreboard)

    try:
        if args.follow:
            follower = TranscriptFollower(args.file)
            try:
                follower.follow(replay.feed)
            except KeyboardInterrupt:
                logger.info("Stopped following transcript")
            finally:
                follower.close()
        else:
            replay.replay_file(args.file)
    except TranscriptError as e:
        print(colored(f"Invalid transcript {args.file}: {e}", "red"), file=sys.stderr)
        return 1
    except FileNotFoundError:
        print(colored(f"Transcript not found: {args.file}", "red"), file=sys.stderr)
        return 1

    formatter = MatchStateFormatter(prefs)
    print(formatter.format_table(orchestrator))
    if args.report:
        print()
        print(formatter.format_report(monitor))
    return 0


def run_prefs(args) -> int:
    prefs = UserPreferences.load(args.prefs)
    changed = False

    try:
        if args.dream_mode is not None:
            prefs.set_dream_mode(args.dream_mode)
            changed = True
        if args.hud is not None:
            x, y, max_x, max_y = args.hud
            prefs.set_hud_position(x, y, max_x, max_y)
            changed = True
    except ValueError as e:
        print(colored(str(e), "red"), file=sys.stderr)
        return 2

    if args.debug_chat is not None:
        prefs.debug_chat_messages = args.debug_chat == "on"
        changed = True

    if changed:
        prefs.save(args.prefs)

    print(tabulate(sorted(asdict(prefs).items()), headers=["Preference", "Value"], tablefmt="simple"))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hbw-tracker", description="Bed Wars match tracker")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    replay = subparsers.add_parser("replay", help="Replay a session transcript")
    replay.add_argument("file", help="Transcript file")
    replay.add_argument("--follow", action="store_true", help="Keep following the file as it grows")
    replay.add_argument("--debug", action="store_true", help="Log every chat line and debug output")
    replay.add_argument("--prefs", help="Preferences file (default: under HBW_TRACKER_HOME)")
    replay.add_argument("--report", action="store_true", help="Print timing statistics")
    replay.set_defaults(handler=run_replay)

    prefs = subparsers.add_parser("prefs", help="Show or change preferences")
    prefs.add_argument("--prefs", help="Preferences file (default: under HBW_TRACKER_HOME)")
    prefs.add_argument("--dream-mode", help="Dream mode on rotation (unselected, rush, ultimate, lucky_blocks)")
    prefs.add_argument("--hud", type=int, nargs=4, metavar=("X", "Y", "MAX_X", "MAX_Y"),
                       help="Overlay position and the current window limits")
    prefs.add_argument("--debug-chat", choices=["on", "off"], help="Log every chat line")
    prefs.set_defaults(handler=run_prefs, debug=False)

    return parser


def main(argv=None) -> int:
    # Load environment variables from .env file
    load_dotenv()

    args = build_parser().parse_args(argv)
    setup_logging(args.debug)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
