"""Action executor -- run a scripted input sequence under time budgets.

Every action goes through the same small state machine::

    start -> pre-check -> perform -> post-check -> done

where the checks classify the page and call the overlay resolver when
something is in the way.  Each action, checks included, races against
``min(per_action_s, remaining total)``.  Losing the race raises
:class:`~src.engine.errors.ExplorationTimeoutError` and aborts the
script; that is the only failure that propagates.  The abandoned action
sends no further page commands (see :mod:`src.engine.timing`).  Other
action failures are logged and the script moves on.  If the browser goes away
the run stops quietly with ``RunOutcome.gave_up`` set.

Every fourth action (indices 0, 4, 8, ...) the level navigator gets a
chance to advance past a level-complete screen.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional, Sequence

from src.engine import js_snippets as js
from src.engine.activation import Activator
from src.engine.canvas import click_viewport_point
from src.engine.classifier import StateClassifier
from src.engine.errors import ExplorationTimeoutError
from src.engine.gatekeepers import GatekeeperPipeline
from src.engine.models import (
    Action,
    ClickAction,
    GameState,
    KeyPressAction,
    RunOutcome,
    ScreenshotAction,
    TimeoutPolicy,
    WaitAction,
)
from src.engine.navigator import LevelNavigator
from src.engine.resolver import OverlayResolver
from src.engine.starter import GameStarter
from src.engine.timing import Budget, FuturesTimeoutError, call_with_timeout
from src.session.base import BrowserSession, SessionClosedError, is_session_alive

logger = logging.getLogger(__name__)

#: Default remap applied when the caller supplies no key bindings.
WASD_TO_ARROWS = {
    "w": "ArrowUp",
    "a": "ArrowLeft",
    "s": "ArrowDown",
    "d": "ArrowRight",
}

FIRST_PRESS_DELAY_S = 0.4
REPEAT_PRESS_DELAY_S = 0.3


def remap_key(key: str, key_bindings: Optional[dict[str, str]] = None) -> str:
    """Return the key to actually press for a scripted *key*.

    When the caller supplies bindings only they apply.  Otherwise
    single WASD letters (either case) map to the matching arrow key.
    """
    if key_bindings:
        return key_bindings.get(key, key)
    if len(key) == 1:
        return WASD_TO_ARROWS.get(key.lower(), key)
    return key


def describe_action(action: Action) -> str:
    """Short human-readable form of *action* for logs and errors."""
    if isinstance(action, WaitAction):
        return f"wait {action.duration_s:g}s"
    if isinstance(action, ClickAction):
        if action.has_point:
            where = f"({action.x:g}, {action.y:g})"
            return f"click {action.selector} {where}" if action.selector else f"click {where}"
        return f"click {action.selector}"
    if isinstance(action, KeyPressAction):
        return f"keypress {action.key} x{action.repeat}"
    if isinstance(action, ScreenshotAction):
        return f"screenshot {action.label}"
    return type(action).__name__


def _click_label(action: ClickAction) -> str:
    if action.selector:
        return "after-click-" + re.sub(r"[^a-zA-Z0-9]", "-", action.selector)
    return f"after-click-{action.x:g}-{action.y:g}"


def _key_label(action: KeyPressAction) -> str:
    key = action.key.lower().replace("arrow", "").replace(" ", "-")
    return f"after-{key}-x{action.repeat}" if action.repeat > 1 else f"after-{key}"


class ActionExecutor:
    """Run action scripts against one session.

    Parameters
    ----------
    session : BrowserSession
        Page to drive.
    classifier : StateClassifier
    resolver : OverlayResolver
    navigator : LevelNavigator
    gatekeepers : GatekeeperPipeline
        Supplies the selection-menu handler for keypress pre-checks.
    starter : GameStarter
        Used when a keypress leaves the game not playing.
    activator : Activator
    evidence : object, optional
        Anything with ``capture_screenshot(session, label)``.
    key_bindings : dict[str, str], optional
        Scripted key to pressed key.
    level_check_every : int
        Navigator cadence in actions.
    quick_check_s : float
        Budget of the pre/post classifications.
    """

    def __init__(
        self,
        session: BrowserSession,
        classifier: StateClassifier,
        resolver: OverlayResolver,
        navigator: LevelNavigator,
        gatekeepers: GatekeeperPipeline,
        starter: GameStarter,
        activator: Activator,
        evidence: Any = None,
        key_bindings: Optional[dict[str, str]] = None,
        level_check_every: int = 4,
        quick_check_s: float = 1.5,
    ) -> None:
        self._session = session
        self._classifier = classifier
        self._resolver = resolver
        self._navigator = navigator
        self._gatekeepers = gatekeepers
        self._starter = starter
        self._activator = activator
        self._evidence = evidence
        self.key_bindings = dict(key_bindings or {})
        self.level_check_every = max(1, level_check_every)
        self.quick_check_s = quick_check_s

    # -- Public API ----------------------------------------------------

    def run(self, actions: Sequence[Action], policy: TimeoutPolicy) -> RunOutcome:
        """Execute *actions* in order.

        Raises
        ------
        ExplorationTimeoutError
            When an action outlives its budget or the script outlives
            ``policy.total_s``.  Remaining actions are not run.
        ValueError
            If *policy* is inconsistent.
        """
        policy.validate()
        budget = Budget(policy.total_s)
        advances_before = self._navigator.advances
        outcome = RunOutcome()

        for index, action in enumerate(actions):
            if budget.exceeded():
                raise ExplorationTimeoutError("total", policy.total_s, describe_action(action))

            remaining = budget.remaining()
            if policy.per_action_s <= remaining:
                limit, scope, scope_budget = policy.per_action_s, "action", policy.per_action_s
            else:
                limit, scope, scope_budget = remaining, "total", policy.total_s

            outcome.actions_run += 1
            logger.debug("Action %d: %s", index, describe_action(action))
            try:
                alive = call_with_timeout(self._step, limit, index, action)
            except FuturesTimeoutError:
                logger.error(
                    "Action %d (%s) exceeded its %.1fs budget",
                    index,
                    describe_action(action),
                    limit,
                )
                raise ExplorationTimeoutError(
                    scope, scope_budget, describe_action(action)
                ) from None
            except SessionClosedError:
                alive = False
            except Exception as exc:  # noqa: BLE001
                logger.warning("Action %s failed: %s", describe_action(action), exc)
                outcome.failures.append(f"{describe_action(action)}: {exc}")
                continue

            if not alive:
                logger.warning("Browser closed, skipping remaining actions")
                outcome.gave_up = True
                break
        else:
            outcome.completed = True

        outcome.elapsed_s = budget.elapsed()
        outcome.levels_advanced = self._navigator.advances - advances_before
        return outcome

    # -- Per-action state machine --------------------------------------

    def _step(self, index: int, action: Action) -> bool:
        """Run one action.  Returns ``False`` if the browser went away."""
        if isinstance(action, WaitAction):
            self._session.wait(action.duration_s)
            alive = True
        elif isinstance(action, ClickAction):
            alive = self._run_click(action)
        elif isinstance(action, KeyPressAction):
            alive = self._run_keypress(action)
        elif isinstance(action, ScreenshotAction):
            alive = self._run_screenshot(action)
        else:
            raise ValueError(f"Unknown action type: {type(action).__name__}")

        if alive and index % self.level_check_every == 0 and not self._navigator.exhausted:
            self._navigator.try_advance()
        return alive

    def _run_click(self, action: ClickAction) -> bool:
        self._pre_check()
        self._perform_click(action)
        self._session.wait(1.0)
        if not self._classify().assumed_playing:
            self._resolver.resolve()
        self._capture(_click_label(action))
        self._session.wait(0.2)
        return True

    def _run_keypress(self, action: KeyPressAction) -> bool:
        if self._pre_check().is_blocked:
            self._try_selection_screen()
        self._focus_game()

        key = remap_key(action.key, self.key_bindings)
        if key != action.key:
            logger.debug("Mapped %s to %s", action.key, key)
        for i in range(action.repeat):
            self._session.keypress(key)
            if i < action.repeat - 1:
                self._session.wait(FIRST_PRESS_DELAY_S if i == 0 else REPEAT_PRESS_DELAY_S)
        self._session.wait(1.0)

        if not is_session_alive(self._session):
            return False
        if not self._classify().assumed_playing:
            if not self._resolver.resolve():
                logger.warning("Game appears to have stopped playing, attempting to restart")
                self._starter.ensure_playing(max_attempts=2)
        self._dismiss_confirmation()

        if not is_session_alive(self._session):
            return False
        self._capture(_key_label(action))
        self._session.wait(0.2)
        return True

    def _run_screenshot(self, action: ScreenshotAction) -> bool:
        if not is_session_alive(self._session):
            return False
        self._capture(action.label)
        self._session.wait(0.2)
        return True

    # -- Helpers -------------------------------------------------------

    def _classify(self) -> GameState:
        return self._classifier.classify(self.quick_check_s)

    def _pre_check(self) -> GameState:
        state = self._classify()
        if state.is_blocked:
            logger.debug("Blocked before action (%s), resolving", state)
            self._resolver.resolve()
        return state

    def _perform_click(self, action: ClickAction) -> None:
        if action.has_point:
            point = self._absolute_point(action)
            if point is not None and click_viewport_point(self._session, *point):
                return
            if not action.selector:
                raise RuntimeError(f"Could not click at ({action.x}, {action.y})")
        self._session.click(action.selector)

    def _absolute_point(self, action: ClickAction) -> Optional[tuple[float, float]]:
        """Map normalized click coordinates to viewport pixels."""
        if action.selector:
            bounds = self._session.evaluate(js.ELEMENT_BOUNDS_JS, action.selector)
            if isinstance(bounds, dict):
                return (
                    bounds["x"] + bounds["width"] * action.x,
                    bounds["y"] + bounds["height"] * action.y,
                )
        size = self._session.evaluate(js.VIEWPORT_SIZE_JS)
        if not isinstance(size, dict):
            return None
        return size["width"] * action.x, size["height"] * action.y

    def _try_selection_screen(self) -> None:
        try:
            self._gatekeepers.handle_selection_screen()
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Selection screen check failed: %s", exc)

    def _focus_game(self) -> None:
        try:
            self._session.evaluate(js.FOCUS_GAME_JS)
            self._session.wait(0.2)
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Focus attempt failed, continuing anyway: %s", exc)

    def _dismiss_confirmation(self) -> None:
        try:
            if not self._session.evaluate(js.CONFIRMATION_DIALOG_JS):
                return
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Confirmation check failed: %s", exc)
            return
        for text in ("yes", "ok"):
            if self._activator.click_text(text):
                logger.info("Confirmed dialog with %r", text)
                break
        self._session.wait(1.0)

    def _capture(self, label: str) -> None:
        if self._evidence is None:
            return
        try:
            self._evidence.capture_screenshot(self._session, label)
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Screenshot %s failed: %s", label, exc)
