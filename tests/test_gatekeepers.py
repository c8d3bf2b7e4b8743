"""Tests for the gatekeeper pipeline (src.engine.gatekeepers).

Covers:
- Strategy order and the consent -> listing follow-up
- Consent banners (framework accept, generic ranked controls)
- Ads, listing pages, age gates and iframes
- Selection screens, including the consent guard
"""

from __future__ import annotations

import pytest

from src.engine import js_snippets as js
from src.engine.activation import Activator
from src.engine.gatekeepers import (
    SELECTION_SETTLE_S,
    GatekeeperPipeline,
    pick_middle_option,
    rank_consent_controls,
)
from src.session.base import SessionClosedError
from tests.fakes import FakeSession, Screen, control, playing_signals

_HIDDEN = {"visible": False, "framework": None}


def _pipeline(session, url: str = "https://example.com/game") -> GatekeeperPipeline:
    return GatekeeperPipeline(session, Activator(session), url=url)


# -- Pure helpers -------------------------------------------------------


class TestRankConsentControls:
    def test_settings_controls_dropped(self):
        raw = [control("Manage preferences"), control("Cookie settings"), control("Reject all")]
        assert rank_consent_controls(raw) == []

    def test_phrase_then_tag_order(self):
        """'accept all' beats 'accept'; buttons beat links for the same phrase."""
        raw = [
            control("Accept", tag="a", selector="#link"),
            control("Accept", tag="button", selector="#btn"),
            control("Accept all", selector="#all"),
        ]
        assert [c.selector for c in rank_consent_controls(raw)] == ["#all", "#btn", "#link"]
        assert [c.shared_text for c in rank_consent_controls(raw)] == [False, True, True]

    def test_unrelated_controls_dropped(self):
        assert rank_consent_controls([control("Learn more")]) == []


class TestPickMiddleOption:
    def test_middle(self):
        assert pick_middle_option([{"text": "easy"}, {"text": "normal"}, {"text": "hard"}]) == {
            "text": "normal"
        }

    def test_even_count_rounds_up(self):
        assert pick_middle_option([{"i": 0}, {"i": 1}, {"i": 2}, {"i": 3}]) == {"i": 2}

    def test_empty(self):
        assert pick_middle_option([]) is None


# -- Pipeline -----------------------------------------------------------


class TestPipelineOrder:
    """The fixed strategy table."""

    def test_all_handlers_run_in_order(self):
        session = FakeSession({"p": Screen()}, "p")
        results = _pipeline(session).run()
        assert list(results) == ["iframe", "consent", "ads", "listing", "age", "fullscreen"]
        assert not any(results.values())

    def test_consent_success_runs_listing_immediately(self):
        """After consent, listing runs next and is not repeated later."""
        screens = {
            "banner": Screen(
                responses={
                    js.CONSENT_DETECT_JS: {"visible": True, "framework": None},
                    js.CONSENT_CANDIDATES_JS: [control("Accept all")],
                },
                on_text={"accept all": "clear"},
            ),
            "clear": Screen(responses={js.CONSENT_DETECT_JS: _HIDDEN}),
        }
        session = FakeSession(screens, "banner")
        results = _pipeline(session).run()

        assert results["consent"] is True
        assert list(results) == ["iframe", "consent", "listing", "ads", "age", "fullscreen"]
        assert session.count(js.LISTING_DETECT_JS) == 1

    def test_handler_failure_does_not_stop_pipeline(self):
        def broken():
            raise RuntimeError("detector crashed")

        session = FakeSession({"p": Screen(responses={js.AGE_GATE_DETECT_JS: broken})}, "p")
        results = _pipeline(session).run()
        assert results["age"] is False
        assert "fullscreen" in results

    def test_session_closed_propagates(self):
        def closed():
            raise SessionClosedError("gone")

        session = FakeSession({"p": Screen(responses={js.FIND_GAME_IFRAME_JS: closed})}, "p")
        with pytest.raises(SessionClosedError):
            _pipeline(session).run()

    def test_fullscreen_never_acts(self):
        session = FakeSession({"p": Screen(responses={js.FULLSCREEN_CHECK_JS: True})}, "p")
        assert _pipeline(session).handle_fullscreen() is False
        assert session.clicks == []


class TestConsent:
    def test_i_agree_link_without_accept_all(self):
        """A banner offering only settings and an 'I agree' link is dismissed."""
        screens = {
            "banner": Screen(
                signals=playing_signals(),
                responses={
                    js.CONSENT_DETECT_JS: {"visible": True, "framework": None},
                    js.CONSENT_CANDIDATES_JS: [
                        control("Cookie settings"),
                        control("I agree", tag="a", selector=".agree"),
                    ],
                },
                on_text={"cookie settings": "settings", "i agree": "clear"},
            ),
            "settings": Screen(),
            "clear": Screen(signals=playing_signals(), responses={js.CONSENT_DETECT_JS: _HIDDEN}),
        }
        session = FakeSession(screens, "banner")
        results = _pipeline(session).run()

        assert results["consent"] is True
        assert session.clicks == [("text", "i agree")]
        # Handled by the gatekeeper; generic overlay scanning never ran.
        assert session.count(js.FIND_OVERLAY_CANDIDATES_JS) == 0

    def test_not_visible(self):
        session = FakeSession({"p": Screen(responses={js.CONSENT_DETECT_JS: _HIDDEN})}, "p")
        assert _pipeline(session).handle_consent() is False

    def test_framework_accept(self):
        session = FakeSession(
            {
                "banner": Screen(
                    responses={js.CONSENT_DETECT_JS: {"visible": True, "framework": "onetrust"}}
                ),
                "clear": Screen(responses={js.CONSENT_DETECT_JS: _HIDDEN}),
            },
            "banner",
        )

        def accept(framework):
            assert framework == "onetrust"
            session.go("clear")
            return True

        session.screens["banner"].responses[js.CONSENT_FRAMEWORK_ACCEPT_JS] = accept
        assert _pipeline(session).handle_consent() is True
        assert session.count(js.CONSENT_HIDE_OVERLAYS_JS) == 0

    def test_framework_retry_after_hiding_overlays(self):
        """A blocked framework button is retried once overlays are hidden."""
        calls = []
        session = FakeSession(
            {
                "banner": Screen(
                    responses={
                        js.CONSENT_DETECT_JS: {"visible": True, "framework": "cookiebot"},
                        js.CONSENT_HIDE_OVERLAYS_JS: 2,
                    }
                ),
                "clear": Screen(responses={js.CONSENT_DETECT_JS: _HIDDEN}),
            },
            "banner",
        )

        def accept(framework):
            calls.append(framework)
            if len(calls) == 1:
                return False
            session.go("clear")
            return True

        session.screens["banner"].responses[js.CONSENT_FRAMEWORK_ACCEPT_JS] = accept
        assert _pipeline(session).handle_consent() is True
        assert calls == ["cookiebot", "cookiebot"]
        assert session.count(js.CONSENT_HIDE_OVERLAYS_JS) == 1

    def test_click_that_leaves_banner_visible_is_not_success(self):
        session = FakeSession(
            {
                "banner": Screen(
                    responses={
                        js.CONSENT_DETECT_JS: {"visible": True, "framework": None},
                        js.CONSENT_CANDIDATES_JS: [control("OK")],
                    },
                    on_text={"ok": "banner"},
                )
            },
            "banner",
        )
        assert _pipeline(session).handle_consent() is False


class TestOtherGatekeepers:
    def test_ads_prefer_skip_ad_by_position(self):
        screens = {
            "ad": Screen(
                responses={
                    js.AD_CLOSE_CANDIDATES_JS: [
                        control("Close", x=10, y=10),
                        control("Skip Ad", x=20, y=20),
                    ]
                },
                on_point="game",
            ),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "ad")
        assert _pipeline(session).handle_ads() is True
        assert session.clicks == [("point", 20, 20)]

    def test_listing_page_play_button(self):
        screens = {
            "listing": Screen(
                responses={
                    js.LISTING_DETECT_JS: {"playText": True, "hasGameplay": False},
                    js.LISTING_STAGE_CLICK_JS: False,
                },
                on_text={"play game": "game"},
            ),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "listing")
        assert _pipeline(session, url="https://someone.itch.io/snake").handle_listing() is True
        assert session.clicks == [("text", "play game")]

    def test_listing_skipped_when_gameplay_visible(self):
        session = FakeSession(
            {"p": Screen(responses={js.LISTING_DETECT_JS: {"playText": True, "hasGameplay": True}})},
            "p",
        )
        assert _pipeline(session).handle_listing() is False
        assert session.count(js.LISTING_STAGE_CLICK_JS) == 0

    def test_age_gate(self):
        screens = {
            "gate": Screen(
                responses={js.AGE_GATE_DETECT_JS: True},
                on_text={"i am 18 or older": "game"},
            ),
            "game": Screen(),
        }
        session = FakeSession(screens, "gate")
        assert _pipeline(session).handle_age_gate() is True
        assert session.current == "game"

    def test_iframe_switch_when_supported(self):
        frame = {"index": 1, "x": 300, "y": 200, "width": 800, "height": 600}
        session = FakeSession(
            {"p": Screen(responses={js.FIND_GAME_IFRAME_JS: frame})},
            "p",
            capabilities=("switch_to_iframe",),
        )
        assert _pipeline(session).handle_iframe() is True
        assert session.clicks == [("iframe", 1)]

    def test_iframe_focus_fallback(self):
        """Without iframe switching the frame is focused and clicked."""
        frame = {"index": 0, "x": 300, "y": 200, "width": 800, "height": 600}
        session = FakeSession(
            {"p": Screen(responses={js.FIND_GAME_IFRAME_JS: frame}, on_point="p")}, "p"
        )
        assert _pipeline(session).handle_iframe() is True
        assert session.count(js.FOCUS_IFRAME_JS) == 1
        assert session.clicks == [("point", 300, 200)]


class TestSelectionScreen:
    _OPTIONS = [
        {"text": "easy", "x": 100, "y": 300, "selector": None},
        {"text": "normal", "x": 200, "y": 300, "selector": None},
        {"text": "hard", "x": 300, "y": 300, "selector": None},
    ]

    def test_middle_option_clicked(self):
        info = {
            "consentVisible": False,
            "isSelection": True,
            "hasGameplay": False,
            "options": self._OPTIONS,
        }
        screens = {
            "menu": Screen(responses={js.SELECTION_SCREEN_JS: info}, on_point="game"),
            "game": Screen(signals=playing_signals()),
        }
        session = FakeSession(screens, "menu", capabilities=("click_at",))
        assert _pipeline(session).handle_selection_screen() is True
        assert session.clicks == [("point", 200, 300)]
        assert session.waits[-1] == SELECTION_SETTLE_S == 5.5
        assert session.waits.count(5.5) == 1

    def test_refuses_while_consent_visible(self):
        """A cookie banner's option list is not a game menu."""
        info = {
            "consentVisible": True,
            "isSelection": True,
            "hasGameplay": False,
            "options": self._OPTIONS,
        }
        session = FakeSession(
            {"menu": Screen(responses={js.SELECTION_SCREEN_JS: info}, on_point="menu")},
            "menu",
            capabilities=("click_at",),
        )
        assert _pipeline(session).handle_selection_screen() is False
        assert session.clicks == []

    def test_text_fallback(self):
        """Options without coordinates are clicked by exact text."""
        info = {
            "consentVisible": False,
            "isSelection": True,
            "hasGameplay": False,
            "options": [{"text": "level 1"}, {"text": "level 2"}],
        }
        screens = {
            "menu": Screen(responses={js.SELECTION_SCREEN_JS: info}, on_text={"level 2": "game"}),
            "game": Screen(),
        }
        session = FakeSession(screens, "menu")
        assert _pipeline(session).handle_selection_screen() is True
        assert session.clicks == [("text", "level 2")]
