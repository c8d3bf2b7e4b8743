"""Shared pytest fixtures for the game-explorer test suite.

Pages are modelled with :class:`tests.fakes.FakeSession`, so no test
needs a browser.
"""

from __future__ import annotations

from typing import Callable

import pytest

from tests.fakes import FakeSession, Screen, blocked_signals, control, playing_signals


@pytest.fixture
def playing_session() -> FakeSession:
    """Session whose page is already playing."""
    return FakeSession({"game": Screen(signals=playing_signals())}, "game")


@pytest.fixture
def tutorial_session() -> FakeSession:
    """Tutorial overlay with "Skip" that leads straight to gameplay."""
    screens = {
        "tutorial": Screen(
            signals=blocked_signals("tutorial", tutorialModal=True),
            candidates=[control("Skip", selector="#skip")],
            on_text={"skip": "game"},
        ),
        "game": Screen(signals=playing_signals()),
    }
    return FakeSession(screens, "tutorial")


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    """Factory fixture: ``make_session(screens, start, **kwargs)``."""
    return FakeSession
