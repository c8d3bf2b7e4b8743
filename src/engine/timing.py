"""Time-budget helpers.

Remote browser calls cannot be cancelled once issued.  A bounded call
therefore runs on a throwaway worker thread and the caller stops
waiting when the budget runs out; the worker is abandoned and its
result, if it ever arrives, is dropped.

An abandoned worker may be in the middle of a multi-step routine (an
executor action, the starter).  Every bounded call carries a
:class:`CancelToken` that is cancelled when the caller gives up, and
the engine talks to the page through a :class:`GuardedSession`, which
refuses new commands from cancelled work by raising
:class:`CallAbandonedError`.  Only the command already in flight when
the budget ran out can still reach the browser.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Optional, TypeVar

from src.session.base import BrowserSession, ConsoleLogEntry, SessionClosedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "Budget",
    "CallAbandonedError",
    "CancelToken",
    "FuturesTimeoutError",
    "GuardedSession",
    "call_with_timeout",
    "current_token",
    "raise_if_abandoned",
]


# -- Cancellation ----------------------------------------------------------


class CallAbandonedError(SessionClosedError):
    """Raised inside bounded work whose caller has stopped waiting.

    Subclasses :class:`SessionClosedError` so that every engine helper,
    which lets a closed session propagate, also stops abandoned work at
    its next page command.
    """


class CancelToken:
    """Cancellation flag of one bounded call.

    A token created inside other bounded work is also cancelled when
    its parent is.
    """

    def __init__(self, parent: Optional["CancelToken"] = None) -> None:
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled


_local = threading.local()


def current_token() -> Optional[CancelToken]:
    """Token of the bounded call running on this thread, if any."""
    return getattr(_local, "token", None)


def raise_if_abandoned() -> None:
    """Raise :class:`CallAbandonedError` if the current work was given up."""
    token = current_token()
    if token is not None and token.cancelled:
        raise CallAbandonedError("Caller stopped waiting; command not sent")


def _run_with_token(token: CancelToken, fn: Callable[..., T], args: tuple, kwargs: dict) -> T:
    _local.token = token
    try:
        return fn(*args, **kwargs)
    finally:
        _local.token = None


def call_with_timeout(
    fn: Callable[..., T],
    timeout_s: float,
    *args: Any,
    **kwargs: Any,
) -> T:
    """Call ``fn(*args, **kwargs)`` and wait at most *timeout_s* seconds.

    Exceptions raised by *fn* propagate unchanged.

    Raises
    ------
    concurrent.futures.TimeoutError
        If *fn* has not returned in time.  The call's token is cancelled,
        so further commands it sends through a :class:`GuardedSession`
        fail with :class:`CallAbandonedError`.
    """
    token = CancelToken(parent=current_token())
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="engine-call")
    try:
        future = pool.submit(_run_with_token, token, fn, args, kwargs)
        try:
            return future.result(timeout=max(timeout_s, 0.0))
        except FuturesTimeoutError:
            token.cancel()
            logger.debug("Abandoned %s after %.1fs", getattr(fn, "__name__", fn), timeout_s)
            raise
    finally:
        pool.shutdown(wait=False)


# -- Guarded session -------------------------------------------------------


class GuardedSession(BrowserSession):
    """Session wrapper that drops commands from abandoned work.

    Every command checks :func:`raise_if_abandoned` before it is
    forwarded.  Calls made outside any bounded call (the orchestrator's
    own thread) are never refused.  ``close`` is always forwarded.

    Parameters
    ----------
    inner : BrowserSession
        Adapter that actually drives the browser.
    """

    def __init__(self, inner: BrowserSession) -> None:
        self.inner = inner
        self.capabilities = inner.capabilities

    def supports(self, capability: str) -> bool:
        return self.inner.supports(capability)

    def navigate(self, url: str) -> None:
        raise_if_abandoned()
        self.inner.navigate(url)

    def evaluate(self, script: str, *args: Any) -> Any:
        raise_if_abandoned()
        return self.inner.evaluate(script, *args)

    def click(self, selector: str) -> None:
        raise_if_abandoned()
        self.inner.click(selector)

    def keypress(self, key: str) -> None:
        raise_if_abandoned()
        self.inner.keypress(key)

    def screenshot(self) -> bytes:
        raise_if_abandoned()
        return self.inner.screenshot()

    def wait(self, seconds: float) -> None:
        raise_if_abandoned()
        self.inner.wait(seconds)

    def get_console_logs(self) -> list[ConsoleLogEntry]:
        raise_if_abandoned()
        return self.inner.get_console_logs()

    def close(self) -> None:
        self.inner.close()

    def click_at(self, x: float, y: float) -> None:
        raise_if_abandoned()
        self.inner.click_at(x, y)

    def click_by_text(self, text: str, exact: bool = False) -> bool:
        raise_if_abandoned()
        return self.inner.click_by_text(text, exact=exact)

    def switch_to_iframe(self, index: int) -> None:
        raise_if_abandoned()
        self.inner.switch_to_iframe(index)


# -- Budgets ---------------------------------------------------------------


class Budget:
    """Wall-clock allowance measured from construction.

    Parameters
    ----------
    total_s : float
        Allowance in seconds.
    clock : callable, optional
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self, total_s: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.total_s = total_s
        self._clock = clock
        self._start = clock()

    def elapsed(self) -> float:
        return self._clock() - self._start

    def remaining(self) -> float:
        return max(self.total_s - self.elapsed(), 0.0)

    def exceeded(self) -> bool:
        return self.elapsed() > self.total_s
