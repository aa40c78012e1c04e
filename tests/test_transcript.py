"""
Unit tests for session transcript parsing, replay and following.

Run with: pytest tests/test_transcript.py
"""

import os

import pytest

from hbw_tracker.core import Orchestrator
from hbw_tracker.core.domain import ForgeLevel, TrapType, RUSH
from hbw_tracker.core.events import ChatLine, LoginAttempt, Logout, ScreenTransition, Tick
from hbw_tracker.core.transcript import (
    ReplayScoreboard,
    ScoreboardUpdate,
    TranscriptError,
    TranscriptFollower,
    TranscriptReplay,
    parse_signal,
)

SESSION = """\
# normal match, forge and two traps
LOGIN mc.hypixel.net
CHAT §f§lBed Wars§r
CHAT §r§aSteve purchased §r§6Iron Forge§r
CHAT §r§aSteve purchased §r§6It's a Trap!§r

CHAT §r§aSteve purchased §r§6Alarm Trap§r
CHAT §c§lIt's a trap! §r§cwas set off!
"""


class TestParseSignal:
    @pytest.mark.parametrize("line", ["", "   ", "# comment", "   # indented comment"])
    def test_ignored_lines(self, line):
        assert parse_signal(line) == []

    def test_login(self):
        assert parse_signal("LOGIN mc.hypixel.net") == [LoginAttempt("mc.hypixel.net")]

    def test_login_without_address(self):
        assert parse_signal("LOGIN") == [LoginAttempt(None)]

    def test_logout(self):
        assert parse_signal("LOGOUT") == [Logout()]

    def test_screen(self):
        assert parse_signal("SCREEN loading") == [ScreenTransition(True)]
        assert parse_signal("SCREEN other") == [ScreenTransition(False)]

    def test_chat_text_kept_verbatim(self):
        assert parse_signal("CHAT §7Steve§f: gg  ") == [ChatLine("§7Steve§f: gg  ")]

    def test_directives_are_case_insensitive(self):
        assert parse_signal("logout") == [Logout()]

    def test_tick_count(self):
        assert parse_signal("TICK") == [Tick()]
        assert parse_signal("TICK 3") == [Tick(), Tick(), Tick()]

    def test_board(self):
        assert parse_signal("BOARD §e§lBED WARS | Mode: Rush") == [
            ScoreboardUpdate(("§e§lBED WARS", "Mode: Rush"))]
        assert parse_signal("BOARD") == [ScoreboardUpdate(())]

    @pytest.mark.parametrize("line", ["JUMP", "SCREEN sideways", "TICK x", "TICK 0"])
    def test_invalid_lines(self, line):
        with pytest.raises(TranscriptError):
            parse_signal(line, 7)

    def test_error_names_line(self):
        with pytest.raises(TranscriptError, match="line 12"):
            parse_signal("JUMP", 12)

    def test_error_is_value_error(self):
        assert issubclass(TranscriptError, ValueError)


class TestTranscriptReplay:
    def test_replay_file(self, tmp_path):
        path = tmp_path / "session.txt"
        path.write_text(SESSION, encoding="utf-8")
        orchestrator = Orchestrator()

        count = TranscriptReplay(orchestrator).replay_file(path)

        assert count == 6
        tracker = orchestrator.require_tracker()
        assert tracker.forge_level is ForgeLevel.IRON_FORGE
        assert tracker.traps == ((TrapType.ALARM, 1),)

    def test_board_lines_reach_variant_detection(self):
        scoreboard = ReplayScoreboard()
        orchestrator = Orchestrator(scoreboard_reader=scoreboard)
        replay = TranscriptReplay(orchestrator, scoreboard)

        replay.feed_lines([
            "LOGIN mc.hypixel.net",
            "CHAT §e§lTo leave Bed Wars, type /lobby§r",
            "BOARD §e§lBED WARS|§fMode: §aRush",
            "TICK 20",
        ])

        assert scoreboard() == ("§e§lBED WARS", "§fMode: §aRush")
        assert orchestrator.tracker.variant is RUSH

    def test_error_reports_line_number(self):
        replay = TranscriptReplay(Orchestrator())
        with pytest.raises(TranscriptError, match="line 2"):
            replay.feed_lines(["LOGOUT", "FLY away"])


class TestTranscriptFollower:
    def test_reads_appended_lines(self, tmp_path):
        path = tmp_path / "live.txt"
        path.write_text("LOGIN mc.hypixel.net\n", encoding="utf-8")
        follower = TranscriptFollower(path)
        try:
            assert follower.read_new_lines() == ["LOGIN mc.hypixel.net"]
            assert follower.read_new_lines() == []

            with open(path, "a", encoding="utf-8") as f:
                f.write("CHAT hello\nTICK")
            assert follower.read_new_lines() == ["CHAT hello"]

            with open(path, "a", encoding="utf-8") as f:
                f.write(" 2\n")
            assert follower.read_new_lines() == ["TICK 2"]
        finally:
            follower.close()

    def test_replaced_file_is_read_from_start(self, tmp_path):
        path = tmp_path / "live.txt"
        path.write_text("LOGOUT\n", encoding="utf-8")
        follower = TranscriptFollower(path)
        try:
            follower.read_new_lines()

            replacement = tmp_path / "next.txt"
            replacement.write_text("LOGIN mc.hypixel.net\n", encoding="utf-8")
            # Keep the old file alive so its inode cannot be reused
            kept = tmp_path / "old.txt"
            os.replace(path, kept)
            os.replace(replacement, path)

            assert follower.read_new_lines() == ["LOGIN mc.hypixel.net"]
        finally:
            follower.close()

    def test_truncated_file_is_read_from_start(self, tmp_path):
        path = tmp_path / "live.txt"
        path.write_text("CHAT a long line of chat text\n", encoding="utf-8")
        follower = TranscriptFollower(path)
        try:
            follower.read_new_lines()
            with open(path, "w", encoding="utf-8") as f:
                f.write("LOGOUT\n")
            assert follower.read_new_lines() == ["LOGOUT"]
        finally:
            follower.close()

    def test_missing_file(self, tmp_path):
        follower = TranscriptFollower(tmp_path / "missing.txt")
        with pytest.raises(FileNotFoundError):
            follower.read_new_lines()

    def test_follow_until_stopped(self, tmp_path):
        path = tmp_path / "live.txt"
        path.write_text("LOGOUT\nTICK\n", encoding="utf-8")
        follower = TranscriptFollower(path, poll_interval=0)
        seen = []
        try:
            follower.follow(seen.append, should_stop=lambda: len(seen) >= 2)
        finally:
            follower.close()
        assert seen == ["LOGOUT", "TICK"]
