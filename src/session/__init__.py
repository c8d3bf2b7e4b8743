"""Browser session layer -- the only seam between the engine and a page.

Typical usage::

    from src.session import SeleniumSession, launch_driver

    session = SeleniumSession(launch_driver("chrome", headless=True))
    try:
        session.navigate("https://example.com/game")
    finally:
        session.close()
"""

from src.session.base import (
    OPTIONAL_CAPABILITIES,
    BrowserSession,
    ConsoleLogEntry,
    SessionClosedError,
    is_session_alive,
)
from src.session.selenium_session import SeleniumSession, launch_driver

__all__ = [
    "OPTIONAL_CAPABILITIES",
    "BrowserSession",
    "ConsoleLogEntry",
    "SessionClosedError",
    "SeleniumSession",
    "is_session_alive",
    "launch_driver",
]
