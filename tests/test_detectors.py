"""
Unit tests for connection, phase, transfer and variant detection.

Run with: pytest tests/test_detectors.py
"""

import pytest

from hbw_tracker.config import UserPreferences
from hbw_tracker.core.classifier import ChatToken, TokenKind
from hbw_tracker.core.detectors import (
    ConnectionMonitor,
    InProgressGameDetector,
    MatchPhase,
    MatchPhaseDetector,
    VariantDetector,
)
from hbw_tracker.core.domain import NORMAL, RUSH, ULTIMATE, LUCKY_BLOCKS
from hbw_tracker.core.events import EventType

MATCH_START = ChatToken(TokenKind.MATCH_START, RUSH)
REJOIN = ChatToken(TokenKind.REJOIN)


def connected_detector():
    connection = ConnectionMonitor()
    connection.on_login("mc.hypixel.net")
    return MatchPhaseDetector(connection)


class TestConnectionMonitor:
    def test_starts_disconnected(self):
        assert not ConnectionMonitor().connected

    @pytest.mark.parametrize("address,expected", [
        ("mc.hypixel.net", True),
        ("MC.HYPIXEL.NET:25565", True),
        ("play.example.org", False),
    ])
    def test_login(self, address, expected):
        monitor = ConnectionMonitor()
        monitor.on_login(address)
        assert monitor.connected is expected

    def test_unknown_address_keeps_state(self):
        monitor = ConnectionMonitor()
        monitor.on_login("mc.hypixel.net")
        monitor.on_login(None)
        assert monitor.connected

    def test_logout(self):
        monitor = ConnectionMonitor()
        monitor.on_login("mc.hypixel.net")
        monitor.on_logout()
        assert not monitor.connected


class TestMatchPhaseDetector:
    def test_initial_state(self):
        detector = MatchPhaseDetector(ConnectionMonitor())
        assert detector.phase is MatchPhase.NOT_IN_MATCH
        assert not detector.awaiting_rejoin_clear

    def test_match_start_requires_connection(self):
        detector = MatchPhaseDetector(ConnectionMonitor())
        assert detector.on_chat_token(MATCH_START) == []
        assert detector.phase is MatchPhase.NOT_IN_MATCH

    def test_match_start(self):
        detector = connected_detector()
        events = detector.on_chat_token(MATCH_START)
        assert [e.event_type for e in events] == [EventType.GAME_STARTED]
        assert events[0].data is RUSH
        assert detector.in_match

    def test_rejoin(self):
        detector = connected_detector()
        events = detector.on_chat_token(REJOIN)
        assert [e.event_type for e in events] == [EventType.CLIENT_REJOINED]
        assert detector.in_match

    def test_tokens_ignored_while_in_match(self):
        detector = connected_detector()
        detector.on_chat_token(MATCH_START)
        assert detector.on_chat_token(MATCH_START) == []
        assert detector.on_chat_token(REJOIN) == []

    def test_other_tokens_do_not_enter_match(self):
        detector = connected_detector()
        assert detector.on_chat_token(ChatToken(TokenKind.TRAP_PURCHASED)) == []
        assert detector.on_chat_token(None) == []
        assert not detector.in_match

    def test_loading_screen_leaves_match(self):
        detector = connected_detector()
        detector.on_chat_token(MATCH_START)
        assert detector.on_screen_transition(False) == []
        events = detector.on_screen_transition(True)
        assert [e.event_type for e in events] == [EventType.CLIENT_LEFT]
        assert not detector.in_match

    def test_loading_screen_outside_match(self):
        assert connected_detector().on_screen_transition(True) == []

    def test_logout_leaves_match(self):
        detector = connected_detector()
        detector.on_chat_token(MATCH_START)
        events = detector.on_logout()
        assert [e.event_type for e in events] == [EventType.CLIENT_LEFT]
        assert not detector.in_match

    def test_join_in_progress_while_in_match_sets_flag(self):
        detector = connected_detector()
        detector.on_chat_token(MATCH_START)
        assert detector.on_join_in_progress() == []
        assert detector.awaiting_rejoin_clear
        assert detector.in_match

    def test_join_in_progress_outside_match_invalidates(self):
        detector = connected_detector()
        events = detector.on_join_in_progress()
        assert [e.event_type for e in events] == [EventType.TRACKER_INVALIDATED]
        assert not detector.awaiting_rejoin_clear

    def test_transfer_cancelled_clears_flag(self):
        detector = connected_detector()
        detector.on_chat_token(MATCH_START)
        detector.on_join_in_progress()
        detector.on_transfer_cancelled()
        assert not detector.awaiting_rejoin_clear

    def test_consume_rejoin_clear(self):
        detector = connected_detector()
        detector.on_chat_token(MATCH_START)
        detector.on_join_in_progress()
        assert detector.consume_rejoin_clear() is True
        assert detector.consume_rejoin_clear() is False


class TestInProgressGameDetector:
    def test_join(self):
        detector = InProgressGameDetector()
        assert detector.detect("§aSending you to an in-progress game§r") is EventType.JOINED_IN_PROGRESS

    def test_cancel(self):
        detector = InProgressGameDetector()
        assert detector.detect("§cTeleportation cancelled§r") is EventType.TRANSFER_CANCELLED

    @pytest.mark.parametrize("line", ["", None, "§aSending you to mini12B!§r"])
    def test_other_lines(self, line):
        assert InProgressGameDetector().detect(line) is None


class TestVariantDetector:
    def tick(self, detector, lines, times):
        events = []
        for _ in range(times):
            events.extend(detector.on_tick(lines))
        return events

    def test_hint_resolves_immediately(self):
        detector = VariantDetector()
        events = detector.start(ULTIMATE)
        assert [e.event_type for e in events] == [EventType.VARIANT_DETECTED]
        assert events[0].data is ULTIMATE
        assert not detector.active

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            VariantDetector(scan_interval=0)
        with pytest.raises(ValueError):
            VariantDetector(max_scans=0)

    def test_inactive_detector_ignores_ticks(self):
        detector = VariantDetector(scan_interval=1)
        assert detector.on_tick(["§eBed Wars Rush"]) == []

    def test_scans_on_interval(self):
        detector = VariantDetector(scan_interval=5)
        detector.start()
        assert self.tick(detector, ["§e§lBED WARS", "Mode: §aRush"], 4) == []

        events = detector.on_tick(["§e§lBED WARS", "Mode: §aRush"])
        assert [e.data for e in events] == [RUSH]
        assert not detector.active

    @pytest.mark.parametrize("lines,variant", [
        (["§e§lBED WARS", "§fMode: §aUltimate"], ULTIMATE),
        (["§e§lBED WARS", "§fMode: §aLucky Blocks"], LUCKY_BLOCKS),
        (["§e§lBED WARS", "§fRed: §a✔"], NORMAL),
    ])
    def test_sidebar_markers(self, lines, variant):
        detector = VariantDetector(scan_interval=1)
        detector.start()
        assert detector.on_tick(lines)[0].data is variant

    def test_dream_mode_uses_preferences(self):
        prefs = UserPreferences()
        prefs.set_dream_mode("ultimate")
        detector = VariantDetector(prefs=prefs, scan_interval=1)
        detector.start()
        assert detector.on_tick(["§e§lBED WARS", "§fMode: §dDream"])[0].data is ULTIMATE

    def test_unselected_dream_mode_falls_back_to_title(self):
        detector = VariantDetector(prefs=UserPreferences(), scan_interval=1)
        detector.start()
        assert detector.on_tick(["§e§lBED WARS", "§fMode: §dDream"])[0].data is NORMAL

    def test_falls_back_to_normal(self):
        detector = VariantDetector(scan_interval=2, max_scans=3)
        detector.start()
        assert self.tick(detector, [], 5) == []
        events = detector.on_tick(None)
        assert [e.data for e in events] == [NORMAL]
        assert not detector.active

    def test_stop(self):
        detector = VariantDetector(scan_interval=1)
        detector.start()
        detector.stop()
        assert not detector.active
        assert detector.on_tick(["§e§lBED WARS"]) == []
