"""Specialized handlers for well-known gatekeeping UI.

Each handler is a narrow pattern matcher with the signature
``attempt() -> bool``.  They run in a fixed order from a strategy table
(:attr:`GatekeeperPipeline.strategies`) before generic overlay
resolution:

==============  =========================================================
iframe          move into the largest plausible game iframe
consent         cookie/GDPR banners (framework accept, then generic text)
ads             close buttons inside ad containers
listing         portal "play" buttons; skipped if consent already ran it
age             age-verification confirmations
fullscreen      acknowledgement only, never acts
==============  =========================================================

Consent must run before selection-menu detection, otherwise a cookie
banner listing "preferences" can look like a game menu;
:meth:`GatekeeperPipeline.handle_selection_screen` therefore refuses to
act while a consent banner is visible.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Optional

from src.engine import js_snippets as js
from src.engine.activation import Activator
from src.engine.models import OverlayCandidate
from src.session.base import BrowserSession, SessionClosedError

logger = logging.getLogger(__name__)

# -- Vocabulary ---------------------------------------------------------

#: Consent accept phrases, best first.
CONSENT_ACCEPT_PHRASES = (
    "accept all",
    "accept",
    "i agree",
    "agree",
    "allow cookies",
    "allow all",
    "ok",
    "continue",
    "got it",
)

#: Consent controls that open settings rather than dismissing.
CONSENT_SKIP_PHRASES = (
    "privacy policy",
    "cookie policy",
    "cookie settings",
    "settings",
    "preferences",
    "manage",
    "customize",
    "customise",
    "more options",
    "reject",
)

#: Ad close controls, best first.
AD_CLOSE_ORDER = ("skip ad", "skip", "close", "×", "x")

#: Texts of portal play buttons, best first.
LISTING_PLAY_TEXTS = ("play game", "play now", "run game", "start game", "play")

#: URL fragments of known game portals.
LISTING_HOSTS = ("itch.io", "famobi")

AGE_CONFIRM_TEXTS = ("yes", "i am 18", "confirm", "continue", "18+")

#: Pause after picking a selection-screen option while the game loads.
SELECTION_SETTLE_S = 5.5


@dataclass(frozen=True)
class Gatekeeper:
    """One row of the gatekeeper strategy table.

    Attributes
    ----------
    name : str
        Identifier used in logs and results.
    attempt : callable
        ``() -> bool``; ``True`` if the handler acted successfully.
    skip_if : callable, optional
        ``(results) -> bool`` evaluated on the results so far.
    then : str, optional
        Name of a handler to run immediately after a success.
    """

    name: str
    attempt: Callable[[], bool]
    skip_if: Optional[Callable[[dict[str, bool]], bool]] = None
    then: Optional[str] = None


def rank_consent_controls(raw: Any) -> list[OverlayCandidate]:
    """Rank consent-banner controls for dismissal.

    Settings/policy controls are dropped.  Controls are ordered by
    accept phrase (``"accept all"`` first) and, for the same phrase,
    buttons before links.

    Parameters
    ----------
    raw : list of dict
        Items with ``text``, ``tag``, ``selector``, ``x``, ``y``.
    """
    items = [item for item in raw or () if isinstance(item, dict)]
    labels = [" ".join(str(item.get("text") or "").lower().split()) for item in items]
    label_counts = Counter(labels)
    ranked: list[tuple[int, int, int, OverlayCandidate]] = []
    for order, (item, text) in enumerate(zip(items, labels)):
        if not text or any(skip in text for skip in CONSENT_SKIP_PHRASES):
            continue
        phrase_rank = next(
            (i for i, phrase in enumerate(CONSENT_ACCEPT_PHRASES) if phrase in text),
            None,
        )
        if phrase_rank is None:
            continue
        tag_rank = 1 if item.get("tag") == "a" else 0
        candidate = OverlayCandidate(
            text=text,
            selector=item.get("selector") or None,
            x=item.get("x"),
            y=item.get("y"),
            in_modal=True,
            rank=2,
            shared_text=label_counts[text] > 1,
        )
        ranked.append((phrase_rank, tag_rank, order, candidate))
    ranked.sort(key=lambda entry: entry[:3])
    return [entry[3] for entry in ranked]


def pick_middle_option(options: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Return the middle entry of a selection list (moderate difficulty)."""
    if not options:
        return None
    return options[len(options) // 2]


class GatekeeperPipeline:
    """Run the gatekeeper handlers in their fixed order.

    Parameters
    ----------
    session : BrowserSession
        Page to act on.
    activator : Activator
        Click/keyboard primitives.
    url : str
        URL of the game page, used by the listing-page heuristics.
    settle_s : float
        Pause after a successful handler.
    """

    def __init__(
        self,
        session: BrowserSession,
        activator: Activator,
        url: str = "",
        settle_s: float = 1.5,
    ) -> None:
        self._session = session
        self._activator = activator
        self.url = url
        self.settle_s = settle_s
        self.strategies: list[Gatekeeper] = [
            Gatekeeper("iframe", self.handle_iframe),
            Gatekeeper("consent", self.handle_consent, then="listing"),
            Gatekeeper("ads", self.handle_ads),
            Gatekeeper(
                "listing",
                self.handle_listing,
                skip_if=lambda results: "listing" in results,
            ),
            Gatekeeper("age", self.handle_age_gate),
            Gatekeeper("fullscreen", self.handle_fullscreen),
        ]

    # -- Pipeline ------------------------------------------------------

    def run(self) -> dict[str, bool]:
        """Run every handler once, in order.

        Returns
        -------
        dict[str, bool]
            Handler name to success flag, in execution order.
        """
        by_name = {g.name: g for g in self.strategies}
        results: dict[str, bool] = {}
        for gatekeeper in self.strategies:
            if gatekeeper.skip_if is not None and gatekeeper.skip_if(results):
                continue
            results[gatekeeper.name] = self._run_one(gatekeeper)
            if results[gatekeeper.name] and gatekeeper.then:
                self._session.wait(self.settle_s)
                follow = by_name[gatekeeper.then]
                results[follow.name] = self._run_one(follow)
        handled = [name for name, ok in results.items() if ok]
        if handled:
            logger.info("Gatekeepers handled: %s", ", ".join(handled))
        return results

    def _run_one(self, gatekeeper: Gatekeeper) -> bool:
        try:
            return bool(gatekeeper.attempt())
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s handling failed: %s", gatekeeper.name, exc)
            return False

    # -- Handlers ------------------------------------------------------

    def handle_iframe(self) -> bool:
        """Move the interaction context into the game's iframe."""
        frame = self._session.evaluate(js.FIND_GAME_IFRAME_JS)
        if not isinstance(frame, dict):
            return False
        index = int(frame.get("index", 0))
        logger.info(
            "Game iframe #%d detected (%.0fx%.0f)",
            index,
            frame.get("width", 0),
            frame.get("height", 0),
        )
        if self._session.supports("switch_to_iframe"):
            self._session.switch_to_iframe(index)
            return True
        self._session.evaluate(js.FOCUS_IFRAME_JS, index)
        return self._activator.click_point(frame.get("x", 0), frame.get("y", 0))

    def handle_consent(self) -> bool:
        """Dismiss a cookie/GDPR banner.

        Known frameworks are accepted through their own control; if that
        fails the dimming overlay is hidden and the control looked up
        again.  Otherwise visible buttons and links in the banner are
        ranked by :func:`rank_consent_controls`.
        """
        info = self._session.evaluate(js.CONSENT_DETECT_JS)
        if not isinstance(info, dict) or not info.get("visible"):
            return False

        framework = info.get("framework")
        if framework:
            if self._framework_accept(framework):
                return True
            hidden = self._session.evaluate(js.CONSENT_HIDE_OVERLAYS_JS)
            logger.debug("Hid %s consent overlay element(s)", hidden)
            if self._framework_accept(framework):
                return True

        controls = rank_consent_controls(self._session.evaluate(js.CONSENT_CANDIDATES_JS))
        for control in controls:
            method = self._activator.activate(control)
            if method is None:
                continue
            self._session.wait(self.settle_s)
            if not self._consent_visible():
                logger.info("Consent dismissed with %r via %s", control.text, method)
                return True
        return False

    def handle_ads(self) -> bool:
        raw = self._session.evaluate(js.AD_CLOSE_CANDIDATES_JS)
        if not raw:
            return False

        def order(item: dict[str, Any]) -> int:
            text = str(item.get("text") or "").lower()
            return next(
                (i for i, word in enumerate(AD_CLOSE_ORDER) if word == text),
                len(AD_CLOSE_ORDER),
            )

        for item in sorted(raw, key=order):
            candidate = OverlayCandidate(
                text=str(item.get("text") or ""),
                selector=item.get("selector") or None,
                x=item.get("x"),
                y=item.get("y"),
                in_modal=True,
                rank=2,
            )
            # Glyph buttons rarely match by text; go straight to position.
            if candidate.has_point and self._activator.click_point(candidate.x, candidate.y):
                method = "coordinates"
            else:
                method = self._activator.activate(candidate)
            if method:
                logger.info("Closed ad overlay (%r via %s)", candidate.text, method)
                self._session.wait(self.settle_s)
                return True
        return False

    def handle_listing(self) -> bool:
        """Press "play" on a game portal's listing page."""
        info = self._session.evaluate(js.LISTING_DETECT_JS)
        if not isinstance(info, dict):
            return False
        on_portal = any(host in (self.url or "").lower() for host in LISTING_HOSTS)
        if not (on_portal or info.get("playText")) or info.get("hasGameplay"):
            return False

        if self._session.evaluate(js.LISTING_STAGE_CLICK_JS):
            logger.info("Clicked click-to-play stage")
            return self._after_listing_click()

        button = self._session.evaluate(js.LISTING_PLAY_BUTTON_JS)
        if isinstance(button, dict) and self._activator.click_point(
            button.get("x", 0), button.get("y", 0)
        ):
            logger.info("Clicked prominent play button")
            return self._after_listing_click()

        for text in LISTING_PLAY_TEXTS:
            if self._activator.click_text(text):
                logger.info("Clicked listing button %r", text)
                return self._after_listing_click()

        size = self._session.evaluate(js.VIEWPORT_SIZE_JS) or {}
        x, y = size.get("width", 0) / 2, size.get("height", 0) / 2
        if x and y and self._activator.click_point(x, y):
            logger.info("Clicked page center of listing page")
            return self._after_listing_click()
        return False

    def handle_age_gate(self) -> bool:
        if not self._session.evaluate(js.AGE_GATE_DETECT_JS):
            return False
        for text in AGE_CONFIRM_TEXTS:
            if self._activator.click_text(text):
                logger.info("Age gate confirmed with %r", text)
                self._session.wait(self.settle_s)
                return True
        return False

    def handle_fullscreen(self) -> bool:
        """Note fullscreen state; the browser owns fullscreen prompts."""
        active = bool(self._session.evaluate(js.FULLSCREEN_CHECK_JS))
        logger.debug("Fullscreen active: %s", active)
        return False

    def handle_selection_screen(self) -> bool:
        """Pick the middle option of a level/difficulty/character menu.

        Returns ``False`` without acting while a consent banner is
        still visible or when gameplay is already on screen.
        """
        info = self._session.evaluate(js.SELECTION_SCREEN_JS)
        if not isinstance(info, dict) or info.get("consentVisible"):
            return False
        if not info.get("isSelection") or info.get("hasGameplay"):
            return False
        option = pick_middle_option(info.get("options") or [])
        if option is None:
            return False

        text = str(option.get("text") or "")
        x, y = option.get("x"), option.get("y")
        selector = option.get("selector")
        clicked = False
        if x is not None and y is not None and self._session.supports("click_at"):
            clicked = self._activator.click_point(x, y)
        if not clicked and x is not None and y is not None:
            clicked = bool(self._session.evaluate(js.ELEMENT_FROM_POINT_CLICK_JS, x, y))
        if not clicked and selector:
            clicked = self._activator.click_selector(selector)
        if not clicked and text:
            clicked = self._activator.click_text(text, exact=True)
        if not clicked and text:
            clicked = bool(self._session.evaluate(js.CLICK_BY_TEXT_JS, text, True))
        if not clicked:
            return False

        logger.info("Selected %r on selection screen", text)
        self._session.wait(SELECTION_SETTLE_S)
        return True

    # -- Helpers -------------------------------------------------------

    def _framework_accept(self, framework: str) -> bool:
        if not self._session.evaluate(js.CONSENT_FRAMEWORK_ACCEPT_JS, framework):
            return False
        self._session.wait(self.settle_s)
        if self._consent_visible():
            return False
        logger.info("Consent accepted through %s", framework)
        return True

    def _consent_visible(self) -> bool:
        info = self._session.evaluate(js.CONSENT_DETECT_JS)
        return isinstance(info, dict) and bool(info.get("visible"))

    def _after_listing_click(self) -> bool:
        self._session.wait(2.0)
        return True
