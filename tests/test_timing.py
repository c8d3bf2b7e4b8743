"""Tests for the time-budget helpers (src.engine.timing).

Covers:
- call_with_timeout results, errors and timeouts
- Cancellation tokens, including nested bounded calls
- GuardedSession refusing commands from abandoned work
- Budget arithmetic
"""

from __future__ import annotations

import threading

import pytest

from src.engine.timing import (
    Budget,
    CallAbandonedError,
    CancelToken,
    FuturesTimeoutError,
    GuardedSession,
    call_with_timeout,
    current_token,
)
from src.session.base import SessionClosedError
from tests.fakes import FakeSession, Screen, playing_signals


def _guarded(**kwargs) -> tuple[FakeSession, GuardedSession]:
    session = FakeSession({"game": Screen(signals=playing_signals())}, "game", **kwargs)
    return session, GuardedSession(session)


class TestCallWithTimeout:
    def test_returns_result(self):
        assert call_with_timeout(lambda a, b=0: a + b, 1.0, 2, b=3) == 5

    def test_errors_propagate(self):
        def boom():
            raise KeyError("x")

        with pytest.raises(KeyError):
            call_with_timeout(boom, 1.0)

    def test_timeout(self):
        release = threading.Event()
        with pytest.raises(FuturesTimeoutError):
            call_with_timeout(release.wait, 0.05, 5)
        release.set()

    def test_token_only_inside_bounded_calls(self):
        assert current_token() is None
        token = call_with_timeout(current_token, 1.0)
        assert isinstance(token, CancelToken)
        assert not token.cancelled


class TestCancelToken:
    def test_cancel(self):
        token = CancelToken()
        token.cancel()
        assert token.cancelled

    def test_child_follows_parent(self):
        parent = CancelToken()
        child = CancelToken(parent)
        parent.cancel()
        assert child.cancelled

    def test_parent_ignores_child(self):
        parent = CancelToken()
        CancelToken(parent).cancel()
        assert not parent.cancelled


class TestGuardedSession:
    def test_forwards_commands(self):
        session, guarded = _guarded(capabilities=("click_at",))
        guarded.keypress("Space")
        guarded.wait(0.5)
        assert guarded.screenshot().startswith(b"\x89PNG")
        assert guarded.supports("click_at")
        assert not guarded.supports("switch_to_iframe")
        assert session.keys == ["Space"]
        assert session.waits == [0.5]

    def test_completed_bounded_call_is_not_refused(self):
        session, guarded = _guarded()
        call_with_timeout(guarded.keypress, 1.0, "Enter")
        guarded.keypress("Space")
        assert session.keys == ["Enter", "Space"]

    def test_abandoned_work_sends_nothing_more(self):
        """After the caller gives up, the routine's next command is refused."""
        session, guarded = _guarded()
        release = threading.Event()
        finished = threading.Event()
        errors: list[Exception] = []

        def routine():
            try:
                release.wait(5)
                guarded.keypress("Space")
            except CallAbandonedError as exc:
                errors.append(exc)
            finally:
                finished.set()

        with pytest.raises(FuturesTimeoutError):
            call_with_timeout(routine, 0.05)
        release.set()

        assert finished.wait(5)
        assert session.keys == []
        assert len(errors) == 1
        assert isinstance(errors[0], SessionClosedError)

    def test_nested_calls_inherit_cancellation(self):
        """A bounded call started by abandoned work is refused as well."""
        session, guarded = _guarded()
        release = threading.Event()
        finished = threading.Event()
        errors: list[Exception] = []

        def routine():
            try:
                release.wait(5)
                call_with_timeout(guarded.evaluate, 1.0, "return 1;")
            except CallAbandonedError as exc:
                errors.append(exc)
            finally:
                finished.set()

        with pytest.raises(FuturesTimeoutError):
            call_with_timeout(routine, 0.05)
        release.set()

        assert finished.wait(5)
        assert session.scripts == []
        assert len(errors) == 1

    def test_close_always_forwarded(self):
        session, guarded = _guarded()
        guarded.close()
        assert session.closed


class TestBudget:
    def test_remaining_and_exceeded(self):
        now = [100.0]
        budget = Budget(5.0, clock=lambda: now[0])
        now[0] = 103.0
        assert budget.elapsed() == 3.0
        assert budget.remaining() == 2.0
        assert not budget.exceeded()
        now[0] = 106.0
        assert budget.remaining() == 0.0
        assert budget.exceeded()
