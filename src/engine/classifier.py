"""State classifier -- is the game visibly running and unobstructed?

One ``evaluate`` round-trip collects raw DOM signals
(:data:`~src.engine.js_snippets.CLASSIFY_SIGNALS_JS`); the pure function
:func:`state_from_signals` turns them into a :class:`GameState`.

Signal order matters:

1. score/counter elements with a non-default value;
2. a canvas with rendered (non-transparent) pixels, or a WebGL canvas
   that cannot be sampled;
3. board/grid/tile/cell elements with visible content;
4. a visible modal offering tutorial/welcome/learn buttons, which
   vetoes 1-3 because a tutorial can sit on top of a rendered board.

Detection failures never raise: an evaluation error or timeout yields
``UNKNOWN`` with the matching reason.
"""

from __future__ import annotations

import logging
from typing import Any

from src.engine import js_snippets as js
from src.engine.models import GameState, OverlayKind, UnknownReason
from src.engine.timing import FuturesTimeoutError, call_with_timeout
from src.session.base import BrowserSession, SessionClosedError

logger = logging.getLogger(__name__)

#: Canvas signal values that count as rendered gameplay.
_ACTIVE_CANVAS = ("content", "webgl")


def state_from_signals(signals: Any) -> GameState:
    """Map raw classifier signals to a :class:`GameState`.

    Parameters
    ----------
    signals : dict
        Output of ``CLASSIFY_SIGNALS_JS``: ``activeScore``, ``canvas``,
        ``boardContent``, ``tutorialModal`` and ``overlay``.

    Returns
    -------
    GameState
        ``BLOCKED(tutorial)`` when the tutorial veto fires, ``PLAYING``
        when any gameplay signal is present, ``BLOCKED(kind)`` when an
        overlay was recognised, otherwise ``UNKNOWN(inconclusive)``.
        Malformed input yields ``UNKNOWN(error)``.
    """
    if not isinstance(signals, dict):
        return GameState.unknown(UnknownReason.ERROR)

    if signals.get("tutorialModal"):
        return GameState.blocked(OverlayKind.TUTORIAL)

    if (
        signals.get("activeScore")
        or signals.get("boardContent")
        or signals.get("canvas") in _ACTIVE_CANVAS
    ):
        return GameState.playing()

    overlay = signals.get("overlay")
    if overlay:
        return GameState.blocked(OverlayKind.parse(overlay))

    return GameState.unknown(UnknownReason.INCONCLUSIVE)


class StateClassifier:
    """Classify the live page on demand.

    Results are never cached; every call re-reads the page.

    Parameters
    ----------
    session : BrowserSession
        Page to inspect.
    default_timeout_s : float
        Budget used when :meth:`classify` is called without one.
    """

    def __init__(self, session: BrowserSession, default_timeout_s: float = 5.0) -> None:
        self._session = session
        self.default_timeout_s = default_timeout_s

    def classify(self, timeout_s: float | None = None) -> GameState:
        """Return the current :class:`GameState`.

        Raises
        ------
        SessionClosedError
            If the browser is gone.  All other failures map to
            ``UNKNOWN``.
        """
        budget = self.default_timeout_s if timeout_s is None else timeout_s
        try:
            signals = call_with_timeout(
                self._session.evaluate, budget, js.CLASSIFY_SIGNALS_JS
            )
        except FuturesTimeoutError:
            logger.debug("State check timed out after %.1fs", budget)
            return GameState.unknown(UnknownReason.TIMEOUT)
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("State check failed: %s", exc)
            return GameState.unknown(UnknownReason.ERROR)

        state = state_from_signals(signals)
        logger.debug("Classified page as %s (%s)", state, signals)
        return state

    def is_playing(self, timeout_s: float | None = None) -> bool:
        """Shorthand for ``classify(timeout_s).is_playing``."""
        return self.classify(timeout_s).is_playing
