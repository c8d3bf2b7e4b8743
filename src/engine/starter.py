"""Get a loaded game from "on screen" to "accepting input".

:class:`GameStarter` runs after the gatekeepers and generic overlay
resolution.  It works through progressively blunter nudges (canvas
click, selection menu, skip buttons, Escape, start buttons, Space,
Enter) and stops as soon as the classifier reports gameplay.
"""

from __future__ import annotations

import logging

from src.engine.activation import Activator
from src.engine.canvas import click_canvas_at, is_canvas_only_game
from src.engine.classifier import StateClassifier
from src.engine.gatekeepers import GatekeeperPipeline
from src.engine.models import GameState
from src.engine.timing import Budget
from src.session.base import BrowserSession, SessionClosedError

logger = logging.getLogger(__name__)

SKIP_TEXTS = ("skip tutorial", "skip", "got it", "close", "no thanks")
START_TEXTS = ("play", "new game", "start game", "start", "begin", "go")


class GameStarter:
    """Nudge the game until it is playing or the time cap runs out.

    Parameters
    ----------
    session : BrowserSession
        Page to act on.
    classifier : StateClassifier
        Decides when to stop.
    activator : Activator
        Click/keyboard primitives.
    gatekeepers : GatekeeperPipeline
        Supplies the selection-menu handler.
    cap_s : float
        Wall-clock cap for one :meth:`ensure_playing` call.
    settle_s : float
        Pause after each nudge.
    """

    def __init__(
        self,
        session: BrowserSession,
        classifier: StateClassifier,
        activator: Activator,
        gatekeepers: GatekeeperPipeline,
        cap_s: float = 15.0,
        settle_s: float = 1.0,
    ) -> None:
        self._session = session
        self._classifier = classifier
        self._activator = activator
        self._gatekeepers = gatekeepers
        self.cap_s = cap_s
        self.settle_s = settle_s

    def ensure_playing(self, max_attempts: int = 3) -> bool:
        """Return ``True`` once the page is (assumed) playing."""
        budget = Budget(self.cap_s)
        for attempt in range(1, max_attempts + 1):
            if budget.exceeded():
                logger.debug("Start attempts stopped by %.0fs cap", self.cap_s)
                break
            state = self._check()
            if state.assumed_playing:
                return True
            logger.debug("Start attempt %d/%d (state %s)", attempt, max_attempts, state)
            for nudge in self._nudges():
                if budget.exceeded():
                    break
                if not self._try(nudge):
                    continue
                self._session.wait(self.settle_s)
                if self._check().is_playing:
                    logger.info("Game started on attempt %d", attempt)
                    return True
        return self._check().assumed_playing

    # -- Internals -----------------------------------------------------

    def _check(self) -> GameState:
        return self._classifier.classify(3.0)

    def _nudges(self):
        return (
            self._click_canvas,
            self._gatekeepers.handle_selection_screen,
            lambda: self._click_first(SKIP_TEXTS),
            lambda: self._activator.press("Escape"),
            lambda: self._click_first(START_TEXTS),
            lambda: self._activator.press("Space"),
            lambda: self._activator.press("Enter"),
        )

    @staticmethod
    def _try(nudge) -> bool:
        try:
            return bool(nudge())
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Start nudge failed: %s", exc)
            return False

    def _click_canvas(self) -> bool:
        if not is_canvas_only_game(self._session):
            return False
        logger.debug("Canvas-only game, clicking canvas center")
        return click_canvas_at(self._session, 0.5, 0.5)

    def _click_first(self, texts: tuple[str, ...]) -> bool:
        for text in texts:
            if self._activator.click_text(text):
                logger.debug("Clicked %r while starting game", text)
                return True
        return False
