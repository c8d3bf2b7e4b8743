"""Selenium WebDriver implementation of :class:`BrowserSession`.

Wraps a live ``webdriver.Remote`` and exposes every optional
capability: coordinate clicks go through the W3C pointer actions,
text clicks through an XPath lookup over clickable elements, and
iframe switching through ``driver.switch_to.frame``.

Use :func:`launch_driver` to build a driver with the same option set
the smoke tests use, or hand an existing driver to
:class:`SeleniumSession`.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

from selenium.common.exceptions import (
    InvalidSessionIdException,
    NoSuchWindowException,
    WebDriverException,
)
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.actions.action_builder import ActionBuilder
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys

from src.session.base import BrowserSession, ConsoleLogEntry, SessionClosedError

logger = logging.getLogger(__name__)

#: Browsers :func:`launch_driver` knows how to start.
SUPPORTED_BROWSERS = ("chrome", "edge", "firefox")

# DOM key names to Selenium key codes.  Single characters pass through.
_KEY_CODES: dict[str, str] = {
    "ArrowUp": Keys.ARROW_UP,
    "ArrowDown": Keys.ARROW_DOWN,
    "ArrowLeft": Keys.ARROW_LEFT,
    "ArrowRight": Keys.ARROW_RIGHT,
    "Space": Keys.SPACE,
    " ": Keys.SPACE,
    "Enter": Keys.ENTER,
    "Escape": Keys.ESCAPE,
    "Tab": Keys.TAB,
    "Backspace": Keys.BACKSPACE,
    "Shift": Keys.SHIFT,
    "Control": Keys.CONTROL,
}

# Chrome/Edge console levels to the short names used in reports.
_LOG_LEVELS = {
    "SEVERE": "error",
    "WARNING": "warn",
    "INFO": "info",
    "DEBUG": "log",
}

# Messages Selenium uses once the window or session is gone.
_CLOSED_MARKERS = (
    "no such window",
    "invalid session id",
    "target window already closed",
    "session deleted",
    "browser has closed",
    "disconnected",
)

_CLICKABLE_XPATH = (
    "//*[self::button or self::a or @role='button' "
    "or (self::input and (@type='button' or @type='submit'))]"
)
_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"


def _xpath_literal(value: str) -> str:
    """Quote *value* as an XPath string literal."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


def text_match_xpath(text: str, exact: bool = False) -> str:
    """Return an XPath selecting clickable elements labelled *text*.

    Matching is case-insensitive on the whitespace-normalized string
    value of the element (``value`` for ``<input>`` buttons).
    """
    lowered = _xpath_literal(" ".join(text.lower().split()))
    label = (
        f"translate(normalize-space(concat(., @value)), '{_UPPER}', '{_LOWER}')"
    )
    predicate = f"{label} = {lowered}" if exact else f"contains({label}, {lowered})"
    return f"{_CLICKABLE_XPATH}[{predicate}]"


class SeleniumSession(BrowserSession):
    """Drive one page through a Selenium WebDriver.

    Parameters
    ----------
    driver : selenium.webdriver.Remote
        A started driver.  The session owns it: :meth:`close` quits it.
    """

    capabilities = frozenset({"click_at", "click_by_text", "switch_to_iframe"})

    def __init__(self, driver: Any) -> None:
        self._driver = driver

    @property
    def driver(self) -> Any:
        """Return the underlying WebDriver (``None`` once closed)."""
        return self._driver

    # -- Helpers -------------------------------------------------------

    @contextmanager
    def _guard(self) -> Iterator[Any]:
        """Yield the driver, mapping lost-browser errors to SessionClosedError."""
        if self._driver is None:
            raise SessionClosedError("Session already closed")
        try:
            yield self._driver
        except (NoSuchWindowException, InvalidSessionIdException) as exc:
            raise SessionClosedError(str(exc)) from exc
        except WebDriverException as exc:
            message = (exc.msg or str(exc)).lower()
            if any(marker in message for marker in _CLOSED_MARKERS):
                raise SessionClosedError(message) from exc
            raise

    # -- Required ------------------------------------------------------

    def navigate(self, url: str) -> None:
        with self._guard() as driver:
            driver.get(url)

    def evaluate(self, script: str, *args: Any) -> Any:
        with self._guard() as driver:
            return driver.execute_script(script, *args)

    def click(self, selector: str) -> None:
        with self._guard() as driver:
            driver.find_element(By.CSS_SELECTOR, selector).click()

    def keypress(self, key: str) -> None:
        code = _KEY_CODES.get(key, key)
        with self._guard() as driver:
            ActionChains(driver).send_keys(code).perform()

    def screenshot(self) -> bytes:
        with self._guard() as driver:
            return driver.get_screenshot_as_png()

    def wait(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def get_console_logs(self) -> list[ConsoleLogEntry]:
        """Return browser console entries.

        Only Chromium drivers expose the ``browser`` log; other drivers
        yield an empty list.
        """
        with self._guard() as driver:
            try:
                raw = driver.get_log("browser")
            except (AttributeError, WebDriverException) as exc:
                logger.debug("Console logs unavailable: %s", exc)
                return []
        return [
            ConsoleLogEntry(
                level=_LOG_LEVELS.get(str(entry.get("level", "")).upper(), "log"),
                message=str(entry.get("message", "")),
                timestamp=float(entry.get("timestamp", 0.0)),
            )
            for entry in raw
        ]

    def close(self) -> None:
        if self._driver is None:
            return
        logger.info("Closing browser session ...")
        try:
            self._driver.quit()
        except WebDriverException as exc:
            logger.warning("driver.quit() failed: %s", exc)
        self._driver = None

    # -- Optional ------------------------------------------------------

    def click_at(self, x: float, y: float) -> None:
        with self._guard() as driver:
            builder = ActionBuilder(driver)
            builder.pointer_action.move_to_location(int(x), int(y))
            builder.pointer_action.click()
            builder.perform()

    def click_by_text(self, text: str, exact: bool = False) -> bool:
        with self._guard() as driver:
            elements = driver.find_elements(By.XPATH, text_match_xpath(text, exact))
            for element in elements:
                if not element.is_displayed():
                    continue
                try:
                    element.click()
                except WebDriverException:
                    # Covered or animating; fall back to a DOM click.
                    driver.execute_script("arguments[0].click();", element)
                return True
        return False

    def switch_to_iframe(self, index: int) -> None:
        with self._guard() as driver:
            driver.switch_to.frame(index)


def launch_driver(
    browser: str = "chrome",
    headless: bool = False,
    window_size: tuple[int, int] = (1280, 720),
) -> Any:
    """Start a Selenium WebDriver with a clean profile.

    Parameters
    ----------
    browser : str
        ``"chrome"``, ``"edge"`` or ``"firefox"``.
    headless : bool
        Run without a visible window.
    window_size : tuple[int, int]
        ``(width, height)`` in pixels.

    Returns
    -------
    selenium.webdriver.Remote

    Raises
    ------
    ValueError
        If *browser* is not supported.
    """
    from selenium import webdriver
    from selenium.webdriver.chrome.options import Options as ChromeOptions
    from selenium.webdriver.edge.options import Options as EdgeOptions
    from selenium.webdriver.firefox.options import Options as FirefoxOptions

    if browser not in SUPPORTED_BROWSERS:
        raise ValueError(
            f"Unknown browser {browser!r}. Supported: {list(SUPPORTED_BROWSERS)}"
        )

    w, h = window_size
    logger.info("Launching %s via Selenium (headless=%s) ...", browser, headless)

    if browser in ("chrome", "edge"):
        opts = ChromeOptions() if browser == "chrome" else EdgeOptions()
        opts.add_argument("--no-first-run")
        opts.add_argument("--no-default-browser-check")
        opts.add_argument("--disable-extensions")
        opts.add_argument("--disable-translate")
        opts.add_argument("--autoplay-policy=no-user-gesture-required")
        opts.add_argument(f"--window-size={w},{h}")
        if headless:
            opts.add_argument("--headless=new")
        opts.set_capability("goog:loggingPrefs", {"browser": "ALL"})
        driver = (
            webdriver.Chrome(options=opts)
            if browser == "chrome"
            else webdriver.Edge(options=opts)
        )
    else:
        opts = FirefoxOptions()
        opts.set_preference("browser.shell.checkDefaultBrowser", False)
        opts.set_preference("datareporting.policy.dataSubmissionEnabled", False)
        opts.set_preference("browser.aboutwelcome.enabled", False)
        opts.set_preference("media.autoplay.default", 0)
        opts.add_argument(f"--width={w}")
        opts.add_argument(f"--height={h}")
        if headless:
            opts.add_argument("-headless")
        driver = webdriver.Firefox(options=opts)

    driver.set_window_size(w, h)
    return driver
