"""Wire the engine components around one session.

:func:`build_engine` creates every component with shared collaborators
(one classifier, one activator, one navigator) so that per-run state,
such as the navigator's advance count, is shared by the executor and
the orchestrator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from src.engine.activation import Activator
from src.engine.classifier import StateClassifier
from src.engine.executor import ActionExecutor
from src.engine.gatekeepers import GatekeeperPipeline
from src.engine.navigator import DEFAULT_MAX_ADVANCES, LevelNavigator
from src.engine.resolver import DEFAULT_MAX_DEPTH, OverlayResolver
from src.engine.starter import GameStarter
from src.engine.timing import GuardedSession
from src.session.base import BrowserSession

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """All engine components bound to one session."""

    session: BrowserSession
    classifier: StateClassifier
    activator: Activator
    resolver: OverlayResolver
    gatekeepers: GatekeeperPipeline
    starter: GameStarter
    navigator: LevelNavigator
    executor: ActionExecutor


def build_engine(
    session: BrowserSession,
    evidence: Any = None,
    url: str = "",
    key_bindings: Optional[dict[str, str]] = None,
    max_resolve_depth: int = DEFAULT_MAX_DEPTH,
    max_level_advances: int = DEFAULT_MAX_ADVANCES,
) -> Engine:
    """Build an :class:`Engine` for *session*.

    Parameters
    ----------
    session : BrowserSession
        The page every component drives.
    evidence : object, optional
        Screenshot sink (``capture_screenshot(session, label)``).
    url : str
        Game URL, for the listing-page heuristics.
    key_bindings : dict[str, str], optional
        Scripted key to pressed key.
    max_resolve_depth : int
        Recursion bound for overlay resolution.
    max_level_advances : int
        Level advances allowed per run.

    Returns
    -------
    Engine
        Its components share one :class:`GuardedSession` around
        *session*, so work abandoned after a timeout stops driving the
        page.
    """
    if not isinstance(session, GuardedSession):
        session = GuardedSession(session)
    classifier = StateClassifier(session)
    activator = Activator(session)
    resolver = OverlayResolver(
        session, classifier, activator, evidence=evidence, max_depth=max_resolve_depth
    )
    gatekeepers = GatekeeperPipeline(session, activator, url=url)
    starter = GameStarter(session, classifier, activator, gatekeepers)
    navigator = LevelNavigator(
        session, classifier, activator, evidence=evidence, max_advances=max_level_advances
    )
    executor = ActionExecutor(
        session,
        classifier,
        resolver,
        navigator,
        gatekeepers,
        starter,
        activator,
        evidence=evidence,
        key_bindings=key_bindings,
    )
    logger.debug("Engine built (depth=%d, levels=%d)", max_resolve_depth, max_level_advances)
    return Engine(
        session=session,
        classifier=classifier,
        activator=activator,
        resolver=resolver,
        gatekeepers=gatekeepers,
        starter=starter,
        navigator=navigator,
        executor=executor,
    )
