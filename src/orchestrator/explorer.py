"""Game explorer -- one full exploration run against one URL.

Drives the engine through the whole run:

1. load the page (retried, bounded by the load budget);
2. gatekeeper pipeline, then generic overlay resolution;
3. make sure the game is playing (time-capped);
4. auto-interaction: nudge with arrow keys if still idle;
5. the configured action script;
6. a few post-script level advances, each followed by a short burst
   of input;
7. final screenshot and console logs, then a report.

The explorer never closes the session; its owner does, on every exit
path.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from src.config.exploration import ExplorationConfig
from src.engine import js_snippets as js
from src.engine.errors import ExplorationTimeoutError
from src.engine.factory import Engine, build_engine
from src.engine.models import KeyPressAction, TimeoutPolicy, WaitAction
from src.engine.timing import FuturesTimeoutError, call_with_timeout
from src.reporting.report import ExplorationReport, build_report, error_report
from src.session.base import BrowserSession, SessionClosedError

logger = logging.getLogger(__name__)

#: Cap for the post-gatekeeper "ensure playing" phase.
START_CAP_S = 20.0

#: Input burst run after each post-script level advance.
LEVEL_BURST = (
    KeyPressAction("ArrowRight", repeat=2),
    WaitAction(0.5),
    KeyPressAction("ArrowUp", repeat=2),
    WaitAction(0.5),
)


class GameLoadError(Exception):
    """Raised when the game page cannot be loaded."""


class GameExplorer:
    """Run one exploration and produce an :class:`ExplorationReport`.

    Parameters
    ----------
    session : BrowserSession
        Page to drive.  Owned by the caller.
    config : ExplorationConfig, optional
        Script, budgets and limits.  Defaults apply when omitted.
    evidence : EvidenceCapture, optional
        Screenshot and console-log sink.  Without one, no evidence is
        kept.
    load_retries : int
        Navigation attempts before giving up.
    """

    def __init__(
        self,
        session: BrowserSession,
        config: Optional[ExplorationConfig] = None,
        evidence: Any = None,
        load_retries: int = 3,
    ) -> None:
        self.session = session
        self.config = config or ExplorationConfig()
        self.evidence = evidence
        self.load_retries = load_retries

    # -- Public API ----------------------------------------------------

    def run(self, url: str) -> ExplorationReport:
        """Explore the game at *url*.

        Timeouts, load failures and a lost browser yield a report with
        status ``"error"`` rather than an exception.
        """
        start = time.monotonic()
        load_time_ms: Optional[float] = None
        policy = self.config.timeout_policy()
        actions = self.config.build_actions()
        engine = build_engine(
            self.session,
            evidence=self.evidence,
            url=url,
            key_bindings=self.config.key_bindings,
            max_resolve_depth=self.config.max_resolve_depth,
            max_level_advances=max(self.config.max_levels - 1, 0),
        )
        if self.evidence is not None:
            self.evidence.initialize()

        try:
            load_start = time.monotonic()
            self._load(url, policy.load_s)
            load_time_ms = round((time.monotonic() - load_start) * 1000.0, 1)
            logger.info("Loaded %s in %.0f ms", url, load_time_ms)

            self.session.wait(3.0)
            self._focus_page()

            reached = self._prepare(engine)
            self._capture("initial-load")
            self.session.wait(1.5)

            reached = self._auto_interact(engine) or reached
            self._check_before_actions(engine)

            outcome = engine.executor.run(actions, policy)
            logger.info(
                "Script finished: %d action(s), completed=%s, gave_up=%s",
                outcome.actions_run,
                outcome.completed,
                outcome.gave_up,
            )
            if not outcome.gave_up:
                self._advance_levels(engine, policy, time.monotonic() - start)

            self.session.wait(1.0)
            self._capture("final-state")
            reached = reached or engine.classifier.classify(3.0).is_playing
            self._collect_logs(url)

            return build_report(
                game_url=url,
                screenshots=self._screenshots(),
                console_errors=self._console_errors(),
                console_warnings=self._console_warnings(),
                execution_time_seconds=round(time.monotonic() - start, 2),
                reached_gameplay=reached,
                script_completed=outcome.completed,
                levels_advanced=engine.navigator.advances,
                load_time_ms=load_time_ms,
            )
        except (ExplorationTimeoutError, GameLoadError, SessionClosedError) as exc:
            logger.error("Exploration of %s aborted: %s", url, exc)
            if not isinstance(exc, SessionClosedError):
                self._capture("error-state")
                self._collect_logs(url)
            message = str(exc) or type(exc).__name__
            if isinstance(exc, SessionClosedError):
                message = f"Browser session closed: {message}"
            return error_report(
                game_url=url,
                message=message,
                screenshots=self._screenshots(),
                console_errors=self._console_errors(),
                console_warnings=self._console_warnings(),
                execution_time_seconds=round(time.monotonic() - start, 2),
                load_time_ms=load_time_ms,
            )

    # -- Phases --------------------------------------------------------

    def _load(self, url: str, load_s: float) -> None:
        """Navigate to *url*, retrying with a growing back-off."""
        for attempt in range(1, self.load_retries + 1):
            try:
                call_with_timeout(self.session.navigate, load_s, url)
                self.session.wait(2.0)
                return
            except SessionClosedError:
                raise
            except FuturesTimeoutError:
                error = f"navigation exceeded {load_s:g}s"
            except Exception as exc:  # noqa: BLE001
                error = str(exc)
            if attempt == self.load_retries:
                raise GameLoadError(
                    f"Failed to load game after {self.load_retries} attempts: {error}"
                )
            logger.warning("Load attempt %d failed (%s), retrying ...", attempt, error)
            self.session.wait(1.0 * attempt)

    def _focus_page(self) -> None:
        try:
            self.session.evaluate(js.FOCUS_GAME_JS)
            self.session.wait(0.5)
        except SessionClosedError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Focus setup failed: %s", exc)

    def _prepare(self, engine: Engine) -> bool:
        """Gatekeepers, generic resolution, then the capped start phase."""
        engine.gatekeepers.run()

        if engine.resolver.resolve():
            logger.info("Initial overlays handled")
            self.session.wait(1.0)

        # A start phase cut off here stops at its next page command.
        try:
            started = call_with_timeout(engine.starter.ensure_playing, START_CAP_S)
        except FuturesTimeoutError:
            started = False
        if started:
            logger.info("Game is confirmed to be playing")
        else:
            logger.warning("Could not confirm game is playing - continuing anyway")
        self.session.wait(2.0)
        return bool(started) and engine.classifier.classify(3.0).is_playing

    def _auto_interact(self, engine: Engine) -> bool:
        """Try a couple of generic inputs if the game is still idle."""
        engine.resolver.resolve()
        self.session.wait(2.0)
        if engine.classifier.classify(5.0).is_playing:
            return True

        logger.info("Game not playing after auto-detection, trying initial input")
        for key in ("ArrowRight", "ArrowDown"):
            if not engine.activator.press(key):
                continue
            self.session.wait(2.0)
            if engine.classifier.classify(5.0).is_playing:
                logger.info("Game started after %s", key)
                self._capture("after-auto-interact")
                return True
        self._capture("after-auto-interact")
        return False

    def _check_before_actions(self, engine: Engine) -> None:
        if engine.classifier.classify(3.0).assumed_playing:
            return
        logger.warning("Game not playing before actions - attempting to restart")
        engine.starter.ensure_playing(max_attempts=2)
        self.session.wait(1.0)

    def _advance_levels(self, engine: Engine, policy: TimeoutPolicy, spent_s: float) -> None:
        """Advance through remaining levels, each followed by a burst of input."""
        while not engine.navigator.exhausted:
            remaining = policy.total_s - spent_s
            if remaining < policy.per_action_s:
                logger.debug("No budget left for level navigation")
                return
            if not engine.navigator.try_advance():
                return
            burst_policy = TimeoutPolicy(
                load_s=policy.load_s,
                per_action_s=policy.per_action_s,
                total_s=remaining,
            )
            began = time.monotonic()
            engine.executor.run(LEVEL_BURST, burst_policy)
            spent_s += time.monotonic() - began

    # -- Evidence ------------------------------------------------------

    def _capture(self, label: str) -> None:
        if self.evidence is None:
            return
        try:
            self.evidence.capture_screenshot(self.session, label)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Screenshot %s failed: %s", label, exc)

    def _collect_logs(self, url: str) -> None:
        if self.evidence is None:
            return
        self.evidence.capture_console_logs(self.session)
        try:
            self.evidence.save_console_logs(url)
        except OSError as exc:
            logger.warning("Could not save console logs: %s", exc)

    def _screenshots(self) -> list:
        return self.evidence.screenshots if self.evidence is not None else []

    def _console_errors(self) -> list[str]:
        return self.evidence.console_errors() if self.evidence is not None else []

    def _console_warnings(self) -> list[str]:
        return self.evidence.console_warnings() if self.evidence is not None else []
