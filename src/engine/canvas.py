"""Canvas-only games: detection and coordinate clicks.

Games drawn entirely on a ``<canvas>`` expose no DOM controls to click,
so starting them means clicking a point on the canvas.  When the
session cannot click at coordinates the pointer events are dispatched
from JavaScript instead.
"""

from __future__ import annotations

import logging

from src.engine import js_snippets as js
from src.session.base import BrowserSession, SessionClosedError

logger = logging.getLogger(__name__)


def is_canvas_only_game(session: BrowserSession) -> bool:
    """Return ``True`` if a canvas is visible and no DOM controls are."""
    try:
        info = session.evaluate(js.CANVAS_ONLY_JS)
    except SessionClosedError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.debug("Canvas-only check failed: %s", exc)
        return False
    if not isinstance(info, dict):
        return False
    return bool(info.get("hasCanvas")) and int(info.get("interactiveCount") or 0) == 0


def click_viewport_point(session: BrowserSession, x: float, y: float) -> bool:
    """Click viewport ``(x, y)``, dispatching pointer events if needed."""
    if session.supports("click_at"):
        try:
            session.click_at(x, y)
            return True
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("click_at(%.0f, %.0f) failed, dispatching events: %s", x, y, exc)
    return bool(session.evaluate(js.DISPATCH_POINTER_CLICK_JS, x, y))


def click_canvas_at(session: BrowserSession, nx: float, ny: float) -> bool:
    """Click the largest canvas at normalized coordinates ``(nx, ny)``.

    Parameters
    ----------
    session : BrowserSession
        Page to act on.
    nx, ny : float
        Position inside the canvas, ``0``-``1`` on each axis.

    Returns
    -------
    bool
        ``False`` if there is no canvas or the click could not be sent.
    """
    try:
        bounds = session.evaluate(js.CANVAS_BOUNDS_JS)
        if not isinstance(bounds, dict):
            return False
        x = bounds["x"] + bounds["width"] * nx
        y = bounds["y"] + bounds["height"] * ny
        logger.debug("Canvas click at (%.0f, %.0f)", x, y)
        return click_viewport_point(session, x, y)
    except SessionClosedError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.debug("Canvas click failed: %s", exc)
        return False
