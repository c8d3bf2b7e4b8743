"""Click and keyboard primitives with capability fallbacks.

The :class:`Activator` hides which optional session capabilities are
available.  Text clicks use ``click_by_text`` when the session has it
and an ``evaluate``-based DOM lookup otherwise; coordinate clicks use
``click_at`` or ``document.elementFromPoint``.

Only :class:`SessionClosedError` escapes these helpers.  Any other
failure is logged and reported as ``False``.
"""

from __future__ import annotations

import logging
from typing import Optional

from src.engine import js_snippets as js
from src.engine.models import OverlayCandidate
from src.session.base import BrowserSession, SessionClosedError

logger = logging.getLogger(__name__)


class Activator:
    """Activate page controls by text, selector or coordinates.

    Parameters
    ----------
    session : BrowserSession
        Page to act on.
    """

    def __init__(self, session: BrowserSession) -> None:
        self._session = session

    # -- Single methods ------------------------------------------------

    def click_text(self, text: str, exact: bool = False) -> bool:
        """Click the first visible control whose text matches *text*."""
        try:
            if self._session.supports("click_by_text"):
                return bool(self._session.click_by_text(text, exact=exact))
            return bool(self._session.evaluate(js.CLICK_BY_TEXT_JS, text, exact))
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Text click on %r failed: %s", text, exc)
            return False

    def click_selector(self, selector: str) -> bool:
        try:
            self._session.click(selector)
            return True
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Selector click on %s failed: %s", selector, exc)
            return False

    def click_point(self, x: float, y: float) -> bool:
        """Click at viewport ``(x, y)``, via ``click_at`` or ``elementFromPoint``."""
        try:
            if self._session.supports("click_at"):
                self._session.click_at(x, y)
                return True
            return bool(self._session.evaluate(js.ELEMENT_FROM_POINT_CLICK_JS, x, y))
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Point click at (%.0f, %.0f) failed: %s", x, y, exc)
            return False

    def press(self, key: str) -> bool:
        try:
            self._session.keypress(key)
            return True
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Keypress %s failed: %s", key, exc)
            return False

    # -- Fallback chain ------------------------------------------------

    def activate(self, candidate: OverlayCandidate) -> Optional[str]:
        """Try text, then selector, then coordinates for *candidate*.

        The text click matches the whole label, so "play" never lands on
        a "play tutorial" button.  When the label is shared with other
        controls, coordinates and selector go first.

        Returns
        -------
        str or None
            ``"text"``, ``"selector"`` or ``"coordinates"`` for the method
            that worked, ``None`` if all failed.
        """
        if candidate.shared_text:
            order = ("coordinates", "selector", "text")
        else:
            order = ("text", "selector", "coordinates")
        for method in order:
            if self._activate_by(method, candidate):
                return method
        return None

    def _activate_by(self, method: str, candidate: OverlayCandidate) -> bool:
        if method == "text":
            return bool(candidate.text) and self.click_text(candidate.text, exact=True)
        if method == "selector":
            return bool(candidate.selector) and self.click_selector(candidate.selector)
        return candidate.has_point and self.click_point(candidate.x, candidate.y)
