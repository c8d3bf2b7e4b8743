"""Interaction and state-resolution engine.

Classifies whether a page is playing a game, clears whatever blocks
it, and runs scripted inputs under time budgets, all without any
game-specific knowledge.

Typical usage::

    from src.engine import build_engine, TimeoutPolicy, WaitAction

    engine = build_engine(session, evidence=capture)
    engine.gatekeepers.run()
    engine.resolver.resolve()
    outcome = engine.executor.run([WaitAction(1.0)], TimeoutPolicy())
"""

from src.engine.activation import Activator
from src.engine.canvas import click_canvas_at, is_canvas_only_game
from src.engine.classifier import StateClassifier, state_from_signals
from src.engine.errors import ExplorationTimeoutError
from src.engine.executor import ActionExecutor, remap_key
from src.engine.factory import Engine, build_engine
from src.engine.gatekeepers import GatekeeperPipeline, rank_consent_controls
from src.engine.models import (
    Action,
    ClickAction,
    GameState,
    KeyPressAction,
    OverlayCandidate,
    OverlayKind,
    ResolutionAttempt,
    RunOutcome,
    ScreenshotAction,
    StateKind,
    TimeoutPolicy,
    UnknownReason,
    WaitAction,
    action_from_dict,
)
from src.engine.navigator import LevelNavigator
from src.engine.resolver import OverlayResolver, rank_candidates
from src.engine.starter import GameStarter
from src.engine.timing import CallAbandonedError, GuardedSession

__all__ = [
    "Action",
    "ActionExecutor",
    "Activator",
    "CallAbandonedError",
    "ClickAction",
    "Engine",
    "ExplorationTimeoutError",
    "GameStarter",
    "GameState",
    "GatekeeperPipeline",
    "GuardedSession",
    "KeyPressAction",
    "LevelNavigator",
    "OverlayCandidate",
    "OverlayKind",
    "OverlayResolver",
    "ResolutionAttempt",
    "RunOutcome",
    "ScreenshotAction",
    "StateClassifier",
    "StateKind",
    "TimeoutPolicy",
    "UnknownReason",
    "WaitAction",
    "action_from_dict",
    "build_engine",
    "click_canvas_at",
    "is_canvas_only_game",
    "rank_candidates",
    "rank_consent_controls",
    "remap_key",
    "state_from_signals",
]
