"""Tests for the overlay resolver (src.engine.resolver).

Covers:
- Candidate tiering and ranking
- Two-step "New Game" -> "Start New Game" confirmation
- Depth bound on endlessly chained overlays
- Keyboard fallback and the empty-page case
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from src.engine.activation import Activator
from src.engine.classifier import StateClassifier
from src.engine.resolver import OverlayResolver, candidate_tier, rank_candidates
from tests.fakes import (
    FakeSession,
    Screen,
    blocked_signals,
    control,
    idle_signals,
    playing_signals,
)


def _resolver(session, **kwargs) -> OverlayResolver:
    classifier = StateClassifier(session)
    return OverlayResolver(session, classifier, Activator(session), **kwargs)


# -- Ranking ------------------------------------------------------------


class TestCandidateTier:
    """Keyword tiers for control labels."""

    @pytest.mark.parametrize(
        "text, tier",
        [
            ("Start New Game", 1),
            ("Skip", 2),
            ("No thanks", 2),
            ("×", 2),
            ("Play Now", 3),
            ("Let's go!", 3),
            ("OK", 4),
            ("Continue", 4),
        ],
    )
    def test_tiers(self, text, tier):
        assert candidate_tier(text) == tier

    def test_tutorial_without_skip_is_never_clicked(self):
        """Controls that would start a tutorial are dropped."""
        assert candidate_tier("Play Tutorial") is None
        assert candidate_tier("Skip Tutorial") == 2

    def test_whole_word_matching(self):
        """'ok' must not match inside 'book'; 'x' not inside 'next'."""
        assert candidate_tier("Book a table") is None
        assert candidate_tier("Next") == 4

    def test_confirm_promoted_after_new_game(self):
        """'Yes' is a confirmation only right after a 'New Game' click."""
        assert candidate_tier("Yes") == 4
        assert candidate_tier("Yes", previous_text="new game") == 1

    def test_unrelated_text_dropped(self):
        assert candidate_tier("Settings") is None
        assert candidate_tier("") is None


class TestRankCandidates:
    def test_sorted_by_tier(self):
        raw = [control("OK"), control("Play"), control("Skip")]
        assert [c.text for c in rank_candidates(raw)] == ["skip", "play", "ok"]

    def test_modal_controls_first_within_tier(self):
        raw = [control("OK", in_modal=False), control("Continue", in_modal=True)]
        ranked = rank_candidates(raw)
        assert [c.text for c in ranked] == ["continue", "ok"]
        assert all(c.rank == 4 for c in ranked)

    def test_document_order_breaks_ties(self):
        raw = [control("Close", selector="#a"), control("Dismiss", selector="#b")]
        assert [c.selector for c in rank_candidates(raw)] == ["#a", "#b"]

    def test_junk_is_skipped(self):
        assert rank_candidates([None, "ok", {"text": "Menu"}]) == []
        assert rank_candidates(None) == []

    def test_shared_labels_flagged(self):
        raw = [control("OK", in_modal=False), control("OK"), control("Skip")]
        ranked = rank_candidates(raw)
        assert [(c.text, c.shared_text) for c in ranked] == [
            ("skip", False),
            ("ok", True),
            ("ok", True),
        ]


# -- Resolution ---------------------------------------------------------


class TestOverlayResolver:
    """Bounded recursive dismissal against a scripted page."""

    def test_already_playing_does_nothing(self, playing_session):
        assert _resolver(playing_session).resolve() is True
        assert playing_session.clicks == []

    def test_new_game_confirmation(self):
        """'New Game' opens a confirmation; 'Start New Game' wins over 'Cancel'."""
        screens = {
            "menu": Screen(
                signals=blocked_signals("generic"),
                candidates=[control("New Game")],
                on_text={"new game": "confirm"},
            ),
            "confirm": Screen(
                signals=blocked_signals("generic"),
                candidates=[control("Cancel"), control("Start New Game")],
                on_text={"cancel": "menu", "start new game": "game"},
            ),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "menu")
        resolver = _resolver(session)

        assert resolver.resolve() is True
        assert session.history == ["menu", "confirm", "game"]
        assert session.clicks == [("text", "new game"), ("text", "start new game")]
        assert [a.target for a in resolver.attempts] == ["new game", "start new game"]
        assert resolver.attempts[-1].resulting_state.is_playing

    def test_depth_bound_on_endless_overlays(self):
        """Overlays that always lead to another overlay stop at max_depth."""
        screens = {
            "a": Screen(
                signals=blocked_signals(),
                candidates=[control("Next")],
                on_text={"next": "b"},
            ),
            "b": Screen(
                signals=blocked_signals(),
                candidates=[control("Next")],
                on_text={"next": "a"},
            ),
        }
        session = FakeSession(screens, "a")
        resolver = _resolver(session)

        assert resolver.resolve() is False
        assert len(session.clicks) == 3
        assert [a.depth for a in resolver.attempts] == [3, 2, 1]

    def test_attempts_cover_latest_resolution_only(self):
        """Each resolve() starts a fresh attempt log."""
        screens = {
            name: Screen(
                signals=blocked_signals(),
                candidates=[control("Next")],
                on_text={"next": other},
            )
            for name, other in (("a", "b"), ("b", "a"))
        }
        session = FakeSession(screens, "a")
        resolver = _resolver(session)

        resolver.resolve()
        resolver.resolve(max_depth=2)

        assert len(session.clicks) == 5
        assert [a.depth for a in resolver.attempts] == [2, 1]

    def test_depth_argument_overrides_default(self):
        screens = {
            "a": Screen(signals=blocked_signals(), candidates=[control("OK")], on_text={"ok": "a"}),
        }
        session = FakeSession(screens, "a")
        assert _resolver(session).resolve(max_depth=1) is False
        assert len(session.clicks) == 1

    def test_zero_depth_never_acts(self, tutorial_session):
        assert _resolver(tutorial_session).resolve(max_depth=0) is False
        assert tutorial_session.clicks == []

    def test_empty_page_returns_false_without_activation(self):
        """Nothing recognisable and nothing to click: no side effects."""
        session = FakeSession({"blank": Screen(signals=idle_signals())}, "blank")
        assert _resolver(session).resolve() is False
        assert session.clicks == []
        assert session.keys == []

    def test_keyboard_fallback_on_blocked_page(self):
        """A blocked page with no controls is tried with Escape first."""
        screens = {
            "modal": Screen(signals=blocked_signals(), on_key={"Escape": "game"}),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "modal")
        resolver = _resolver(session)
        assert resolver.resolve() is True
        assert session.keys == ["Escape"]
        assert resolver.attempts[-1].strategy == "key:Escape"

    def test_keyboard_fallback_tries_all_keys(self):
        session = FakeSession({"modal": Screen(signals=blocked_signals())}, "modal")
        assert _resolver(session).resolve() is False
        assert session.keys == ["Escape", "Enter", "Space"]

    def test_selector_used_when_text_click_fails(self):
        """Activation falls back from text to selector."""
        screens = {
            "modal": Screen(
                signals=blocked_signals(),
                candidates=[control("Close", selector="#close-btn")],
                on_selector={"#close-btn": "game"},
            ),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "modal")
        resolver = _resolver(session)
        assert resolver.resolve() is True
        assert resolver.attempts[0].strategy == "selector"
        assert session.clicks == [("selector", "#close-btn")]

    def test_coordinates_as_last_resort(self):
        screens = {
            "modal": Screen(
                signals=blocked_signals(),
                candidates=[control("×", x=640, y=40)],
                on_point="game",
            ),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "modal", capabilities=("click_at",))
        resolver = _resolver(session)
        assert resolver.resolve() is True
        assert resolver.attempts[0].strategy == "coordinates"
        assert session.clicks == [("point", 640, 40)]

    def test_detection_failure_fails_open(self):
        """A page the classifier cannot read is left alone."""
        session = FakeSession({"p": Screen(signals=RuntimeError("boom"))}, "p")
        assert _resolver(session).resolve() is True
        assert session.clicks == []

    def test_diagnostic_screenshot_after_activation(self, tutorial_session):
        evidence = MagicMock()
        assert _resolver(tutorial_session, evidence=evidence).resolve() is True
        evidence.capture_screenshot.assert_called_once_with(
            tutorial_session, "after-dismiss-skip"
        )

    def test_screenshot_failure_is_ignored(self, tutorial_session):
        evidence = MagicMock()
        evidence.capture_screenshot.side_effect = OSError("disk full")
        assert _resolver(tutorial_session, evidence=evidence).resolve() is True


class TestExactActivation:
    """A ranked control is activated itself, not a control containing its label."""

    def test_play_not_confused_with_play_tutorial(self):
        screens = {
            "menu": Screen(
                signals=blocked_signals(),
                candidates=[
                    control("Play Tutorial", x=100, y=200),
                    control("Play", x=100, y=300),
                ],
                on_text={"play tutorial": "tutorial", "play": "game"},
            ),
            "tutorial": Screen(signals=blocked_signals()),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "menu")
        resolver = _resolver(session)

        assert resolver.resolve() is True
        assert session.clicks == [("text", "play")]
        assert session.history == ["menu", "game"]
        assert resolver.attempts[0].strategy == "text"

    def test_ok_not_confused_with_book(self):
        screens = {
            "notice": Screen(
                signals=blocked_signals(),
                candidates=[control("Book now", in_modal=False), control("OK")],
                on_text={"book now": "shop", "ok": "game"},
            ),
            "shop": Screen(signals=blocked_signals()),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "notice")
        assert _resolver(session).resolve() is True
        assert session.clicks == [("text", "ok")]

    def test_shared_label_clicked_by_position(self):
        """Two "OK" buttons: the modal one is hit by its coordinates."""
        screens = {
            "dialog": Screen(
                signals=blocked_signals(),
                candidates=[
                    control("OK", in_modal=False, x=50, y=700),
                    control("OK", in_modal=True, x=640, y=360),
                ],
                on_text={"ok": "dialog"},
                on_point="game",
            ),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "dialog", capabilities=("click_at",))
        resolver = _resolver(session)

        assert resolver.resolve() is True
        assert session.clicks == [("point", 640, 360)]
        assert resolver.attempts[0].strategy == "coordinates"
