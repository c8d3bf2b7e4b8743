"""Abstract browser session used by the exploration engine.

A :class:`BrowserSession` is the single live handle to one browser page
for one exploration run.  The engine only talks to the page through
this interface, so it can be driven by Selenium in production and by a
scripted fake in tests.

Three methods are optional capabilities (``click_at``,
``click_by_text`` and ``switch_to_iframe``).  Adapters advertise them
in :attr:`BrowserSession.capabilities` and callers check with
:meth:`BrowserSession.supports` before using them, substituting an
``evaluate``-based equivalent when a capability is absent.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

#: Names of the optional session capabilities.
OPTIONAL_CAPABILITIES = ("click_at", "click_by_text", "switch_to_iframe")

#: Script used for the liveness probe.
LIVENESS_PROBE_JS = "return document.body !== null;"


class SessionClosedError(Exception):
    """Raised when the remote browser is no longer reachable."""


@dataclass(frozen=True)
class ConsoleLogEntry:
    """One browser console message.

    Attributes
    ----------
    level : str
        ``"log"``, ``"info"``, ``"warn"`` or ``"error"``.
    message : str
        Message text.
    timestamp : float
        Milliseconds since the epoch, as reported by the browser.
    """

    level: str
    message: str
    timestamp: float = 0.0

    def format(self) -> str:
        """Return the ``[level] message`` line used in log files."""
        return f"[{self.level}] {self.message}"


class BrowserSession(abc.ABC):
    """Base class for browser session adapters.

    Durations are in seconds.  Implementations raise
    :class:`SessionClosedError` when the page can no longer be reached;
    every other failure surfaces as the adapter's native exception.
    """

    #: Optional capabilities implemented by this adapter.
    capabilities: frozenset[str] = frozenset()

    def supports(self, capability: str) -> bool:
        """Return whether the optional *capability* is available."""
        return capability in self.capabilities

    # -- Required ------------------------------------------------------

    @abc.abstractmethod
    def navigate(self, url: str) -> None:
        """Load *url* in the page."""

    @abc.abstractmethod
    def evaluate(self, script: str, *args: Any) -> Any:
        """Run *script* in the page and return its result.

        Scripts follow the WebDriver ``execute_script`` convention: the
        value is produced with ``return`` and positional arguments are
        available as ``arguments[i]``.
        """

    @abc.abstractmethod
    def click(self, selector: str) -> None:
        """Click the first element matching the CSS *selector*."""

    @abc.abstractmethod
    def keypress(self, key: str) -> None:
        """Press and release *key* (DOM key name, e.g. ``"ArrowUp"``)."""

    @abc.abstractmethod
    def screenshot(self) -> bytes:
        """Return a PNG screenshot of the viewport."""

    @abc.abstractmethod
    def wait(self, seconds: float) -> None:
        """Block for *seconds*."""

    @abc.abstractmethod
    def get_console_logs(self) -> list[ConsoleLogEntry]:
        """Return console messages collected since the last call."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the browser.  Safe to call more than once."""

    # -- Optional ------------------------------------------------------

    def click_at(self, x: float, y: float) -> None:
        """Click at viewport coordinates ``(x, y)`` in CSS pixels."""
        raise NotImplementedError(f"{type(self).__name__} cannot click at coordinates")

    def click_by_text(self, text: str, exact: bool = False) -> bool:
        """Click the first visible control whose text matches *text*.

        Returns
        -------
        bool
            ``True`` if a control was found and clicked.
        """
        raise NotImplementedError(f"{type(self).__name__} cannot click by text")

    def switch_to_iframe(self, index: int) -> None:
        """Move the interaction context into the *index*-th iframe."""
        raise NotImplementedError(f"{type(self).__name__} cannot switch iframes")


def is_session_alive(session: BrowserSession) -> bool:
    """Return ``False`` if the page no longer answers a trivial script."""
    try:
        session.evaluate(LIVENESS_PROBE_JS)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Liveness probe failed: %s", exc)
        return False
    return True
