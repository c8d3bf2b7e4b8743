"""Overlay resolver -- dismiss whatever is blocking the game.

Visible controls are collected from the live page and ranked by
:func:`rank_candidates` into four tiers:

1. confirmation: "start new game", or "confirm"/"yes" right after a
   "new game" click (two-step restart dialogs);
2. skip / dismiss: skip, dismiss, got it, no thanks, maybe later, close;
3. start: play, start, begin, new game, let's go, ready;
4. generic: ok, continue, next, confirm, yes.

Within a tier, controls inside a modal-like container come first.
Each candidate is activated by its exact label, then selector, then
coordinates; a label shared by several controls goes by coordinates
first.  After an activation the page is re-classified; if it is still
not playing the resolver recurses with one less unit of depth.  Depth 0
stops.

When nothing can be activated on a blocked page, Escape, Enter and
Space are tried in turn.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Iterable, Optional

from src.engine import js_snippets as js
from src.engine.activation import Activator
from src.engine.classifier import StateClassifier
from src.engine.models import GameState, OverlayCandidate, ResolutionAttempt
from src.session.base import BrowserSession, SessionClosedError

logger = logging.getLogger(__name__)

#: Default recursion bound for :meth:`OverlayResolver.resolve`.
DEFAULT_MAX_DEPTH = 3

#: Keys tried, in order, when no control can be activated.
KEYBOARD_FALLBACK = ("Escape", "Enter", "Space")

_CONFIRM_AFTER_NEW_GAME = ("confirm", "yes")
_TIER_KEYWORDS: tuple[tuple[int, tuple[str, ...]], ...] = (
    (1, ("start new game",)),
    (2, ("skip", "dismiss", "got it", "no thanks", "maybe later", "close", "x", "×")),
    (3, ("play", "play now", "start", "start game", "begin", "new game",
         "let's go", "let's play", "ready")),
    (4, ("ok", "okay", "continue", "next", "confirm", "yes")),
)


def _normalize(text: Any) -> str:
    return " ".join(str(text or "").lower().split())


def _mentions(text: str, phrase: str) -> bool:
    """Whole-word containment, so ``"ok"`` does not match ``"book"``."""
    if len(phrase) == 1 and not phrase.isalnum():
        return text == phrase
    return re.search(r"(?<![\w'])" + re.escape(phrase) + r"(?![\w'])", text) is not None


def candidate_tier(text: str, previous_text: Optional[str] = None) -> Optional[int]:
    """Return the priority tier (1-4) for a control labelled *text*.

    ``None`` means the control is never activated, e.g. "play tutorial".
    """
    text = _normalize(text)
    if not text:
        return None
    if "tutorial" in text and "skip" not in text:
        return None
    if previous_text and "new game" in _normalize(previous_text):
        if any(_mentions(text, word) for word in _CONFIRM_AFTER_NEW_GAME):
            return 1
    for tier, phrases in _TIER_KEYWORDS:
        if any(_mentions(text, phrase) for phrase in phrases):
            return tier
    return None


def rank_candidates(
    raw: Iterable[dict[str, Any]] | None,
    previous_text: Optional[str] = None,
) -> list[OverlayCandidate]:
    """Turn raw control descriptions into ranked :class:`OverlayCandidate`.

    Parameters
    ----------
    raw : iterable of dict
        Items with ``text``, ``selector``, ``x``, ``y`` and ``inModal``.
    previous_text : str, optional
        Text of the control activated just before, which unlocks
        confirmation buttons after a "new game" click.

    Returns
    -------
    list[OverlayCandidate]
        Ranked best-first.  Unranked controls are dropped.
    """
    items = [item for item in raw or () if isinstance(item, dict)]
    label_counts = Counter(_normalize(item.get("text")) for item in items)
    ranked: list[tuple[int, int, int, OverlayCandidate]] = []
    for order, item in enumerate(items):
        text = _normalize(item.get("text"))
        tier = candidate_tier(text, previous_text)
        if tier is None:
            continue
        in_modal = bool(item.get("inModal"))
        candidate = OverlayCandidate(
            text=text,
            selector=item.get("selector") or None,
            x=item.get("x"),
            y=item.get("y"),
            in_modal=in_modal,
            rank=tier,
            shared_text=label_counts[text] > 1,
        )
        ranked.append((tier, 0 if in_modal else 1, order, candidate))
    ranked.sort(key=lambda entry: entry[:3])
    return [entry[3] for entry in ranked]


class OverlayResolver:
    """Bounded, recursive dismissal of blocking overlays.

    Parameters
    ----------
    session : BrowserSession
        Page to act on.
    classifier : StateClassifier
        Used before and after every activation.
    activator : Activator
        Click/keyboard primitives.
    evidence : object, optional
        Anything with ``capture_screenshot(session, label)``.  Used for
        best-effort diagnostic screenshots.
    max_depth : int
        Default recursion bound.
    settle_s : float
        Pause after each activation before re-classifying.
    classify_timeout_s : float
        Budget for each classification.

    Attributes
    ----------
    attempts : list[ResolutionAttempt]
        Activations made by the most recent :meth:`resolve` call.
    """

    def __init__(
        self,
        session: BrowserSession,
        classifier: StateClassifier,
        activator: Activator,
        evidence: Any = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        settle_s: float = 1.0,
        classify_timeout_s: float = 2.0,
    ) -> None:
        self._session = session
        self._classifier = classifier
        self._activator = activator
        self._evidence = evidence
        self.max_depth = max_depth
        self.settle_s = settle_s
        self.classify_timeout_s = classify_timeout_s
        self.attempts: list[ResolutionAttempt] = []

    # -- Public API ----------------------------------------------------

    def resolve(self, max_depth: Optional[int] = None) -> bool:
        """Try to get the page to a playing state.

        Returns
        -------
        bool
            ``True`` if the page is (or became) playing, or if
            classification failed outright (fail-open).  ``False`` when
            nothing could be dismissed or the depth budget ran out.
        """
        depth = self.max_depth if max_depth is None else max_depth
        self.attempts = []
        return self._resolve(depth, previous_text=None, state=None)

    def find_candidates(self, previous_text: Optional[str] = None) -> list[OverlayCandidate]:
        """Query the live page for ranked dismissal candidates."""
        try:
            raw = self._session.evaluate(js.FIND_OVERLAY_CANDIDATES_JS)
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Candidate scan failed: %s", exc)
            return []
        return rank_candidates(raw if isinstance(raw, list) else [], previous_text)

    # -- Internals -----------------------------------------------------

    def _classify(self) -> GameState:
        return self._classifier.classify(self.classify_timeout_s)

    def _resolve(
        self,
        depth: int,
        previous_text: Optional[str],
        state: Optional[GameState],
    ) -> bool:
        if depth <= 0:
            logger.debug("Overlay resolution depth exhausted")
            return False

        if state is None:
            state = self._classify()
        if state.assumed_playing:
            return True

        candidates = self.find_candidates(previous_text)
        for candidate in candidates:
            method = self._activator.activate(candidate)
            if method is None:
                self._record(f"click:{candidate.rank}", False, None, depth, candidate.text)
                continue

            logger.info(
                "Activated %r via %s (tier %d, depth %d)",
                candidate.text,
                method,
                candidate.rank,
                depth,
            )
            self._session.wait(self.settle_s)
            self._screenshot(f"after-dismiss-{candidate.text}")
            new_state = self._classify()
            self._record(method, True, new_state, depth, candidate.text)
            if new_state.is_playing:
                return True
            return self._resolve(depth - 1, candidate.text, new_state)

        if state.is_blocked:
            return self._keyboard_fallback(depth)
        return False

    def _keyboard_fallback(self, depth: int) -> bool:
        for key in KEYBOARD_FALLBACK:
            if not self._activator.press(key):
                continue
            self._session.wait(self.settle_s)
            state = self._classify()
            self._record(f"key:{key}", state.is_playing, state, depth, key)
            if state.is_playing:
                logger.info("Overlay cleared with %s", key)
                return True
        return False

    def _record(
        self,
        strategy: str,
        succeeded: bool,
        state: Optional[GameState],
        depth: int,
        target: str,
    ) -> None:
        self.attempts.append(
            ResolutionAttempt(
                strategy=strategy,
                succeeded=succeeded,
                resulting_state=state,
                depth=depth,
                target=target,
            )
        )

    def _screenshot(self, label: str) -> None:
        if self._evidence is None:
            return
        try:
            self._evidence.capture_screenshot(self._session, label)
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Diagnostic screenshot failed: %s", exc)
