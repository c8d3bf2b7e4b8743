"""Tests for the level navigator (src.engine.navigator)."""

from __future__ import annotations

from unittest.mock import MagicMock

from src.engine import js_snippets as js
from src.engine.activation import Activator
from src.engine.classifier import StateClassifier
from src.engine.factory import build_engine
from src.engine.models import TimeoutPolicy, WaitAction
from src.engine.navigator import LevelNavigator
from tests.fakes import FakeSession, Screen, playing_signals


def _level_screens(count: int) -> dict[str, Screen]:
    """``count`` consecutive level-complete screens, then the final level."""
    screens = {}
    for n in range(1, count + 1):
        screens[f"level{n}"] = Screen(
            signals=playing_signals(),
            responses={js.LEVEL_COMPLETE_JS: {"levelComplete": True, "buttons": ["Next Level"]}},
            on_text={"next level": f"level{n + 1}" if n < count else "final"},
        )
    screens["final"] = Screen(signals=playing_signals())
    return screens


def _navigator(session, **kwargs) -> LevelNavigator:
    return LevelNavigator(session, StateClassifier(session), Activator(session), **kwargs)


class TestLevelNavigator:
    def test_no_level_complete_screen(self, playing_session):
        assert _navigator(playing_session).try_advance() is False
        assert playing_session.clicks == []

    def test_advance_clicks_next_level(self):
        session = FakeSession(_level_screens(2), "level1")
        evidence = MagicMock()
        navigator = _navigator(session, evidence=evidence)

        assert navigator.try_advance() is True
        assert navigator.advances == 1
        assert session.current == "level2"
        evidence.capture_screenshot.assert_called_once_with(session, "level-2")

    def test_detected_button_used_as_fallback(self):
        screens = {
            "done": Screen(
                responses={js.LEVEL_COMPLETE_JS: {"levelComplete": True, "buttons": ["Onward"]}},
                on_text={"onward": "next"},
            ),
            "next": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "done")
        assert _navigator(session).try_advance() is True
        assert session.clicks == [("text", "onward")]

    def test_nothing_clickable(self):
        session = FakeSession(
            {"done": Screen(responses={js.LEVEL_COMPLETE_JS: {"levelComplete": True}})}, "done"
        )
        navigator = _navigator(session)
        assert navigator.try_advance() is False
        assert navigator.advances == 0

    def test_cap_stops_without_touching_page(self):
        session = FakeSession(_level_screens(5), "level1")
        navigator = _navigator(session, max_advances=2)
        assert navigator.try_advance() is True
        assert navigator.try_advance() is True
        assert navigator.exhausted

        checks = session.count(js.LEVEL_COMPLETE_JS)
        assert navigator.try_advance() is False
        assert session.count(js.LEVEL_COMPLETE_JS) == checks


class TestFiveLevelsDuringScript:
    """Five consecutive level-complete screens during a long script."""

    def test_exactly_two_advances(self):
        session = FakeSession(_level_screens(5), "level1")
        engine = build_engine(session, max_level_advances=2)
        policy = TimeoutPolicy(load_s=5.0, per_action_s=5.0, total_s=60.0)

        outcome = engine.executor.run([WaitAction(0)] * 12, policy)

        assert outcome.completed
        assert outcome.actions_run == 12
        assert outcome.levels_advanced == 2
        assert engine.navigator.advances == 2
        assert session.current == "level3"
        # Checks at actions 0 and 4 advanced; action 8 was skipped.
        assert session.count(js.LEVEL_COMPLETE_JS) == 2
