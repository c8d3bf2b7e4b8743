"""Level/stage navigator.

Detects "level complete" screens while a script runs and presses the
control that moves on to the next stage.  The number of advances is
capped per run so that stage hopping cannot eat the total time budget.
"""

from __future__ import annotations

import logging
from typing import Any

from src.engine import js_snippets as js
from src.engine.activation import Activator
from src.engine.classifier import StateClassifier
from src.session.base import BrowserSession, SessionClosedError

logger = logging.getLogger(__name__)

#: Advances allowed per run.
DEFAULT_MAX_ADVANCES = 2

#: Controls tried on a level-complete screen, best first.
NEXT_LEVEL_TEXTS = ("next level", "continue", "proceed", "next", "play again")


class LevelNavigator:
    """Advance through level-complete screens, at most ``max_advances`` times.

    Parameters
    ----------
    session : BrowserSession
        Page to act on.
    classifier : StateClassifier
        Used to re-check the page after an advance.
    activator : Activator
        Click primitives.
    evidence : object, optional
        Anything with ``capture_screenshot(session, label)``.
    max_advances : int
        Cap for the whole run.
    settle_s : float
        Pause after pressing the next-level control.
    """

    def __init__(
        self,
        session: BrowserSession,
        classifier: StateClassifier,
        activator: Activator,
        evidence: Any = None,
        max_advances: int = DEFAULT_MAX_ADVANCES,
        settle_s: float = 3.0,
    ) -> None:
        self._session = session
        self._classifier = classifier
        self._activator = activator
        self._evidence = evidence
        self.max_advances = max_advances
        self.settle_s = settle_s
        self.advances = 0

    @property
    def exhausted(self) -> bool:
        return self.advances >= self.max_advances

    def try_advance(self) -> bool:
        """Advance one level if a level-complete screen is showing.

        Returns
        -------
        bool
            ``True`` if a next-level control was activated.  Always
            ``False`` once the cap is reached, without touching the page.
        """
        if self.exhausted:
            return False

        try:
            info = self._session.evaluate(js.LEVEL_COMPLETE_JS)
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Level navigation check failed: %s", exc)
            return False
        if not isinstance(info, dict) or not info.get("levelComplete"):
            return False

        buttons = [str(b) for b in info.get("buttons") or []]
        texts = list(NEXT_LEVEL_TEXTS) + buttons[:1]
        for text in texts:
            if not self._activator.click_text(text):
                continue
            self._session.wait(self.settle_s)
            state = self._classifier.classify(5.0)
            self.advances += 1
            logger.info(
                "Level navigation %d/%d via %r (now %s)",
                self.advances,
                self.max_advances,
                text,
                state,
            )
            self._session.wait(2.0)
            self._screenshot(f"level-{self.advances + 1}")
            return True
        return False

    def _screenshot(self, label: str) -> None:
        if self._evidence is None:
            return
        try:
            self._evidence.capture_screenshot(self._session, label)
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Level screenshot failed: %s", exc)
