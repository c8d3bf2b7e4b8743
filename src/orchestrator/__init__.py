"""Orchestrator module -- end-to-end exploration runs.

Provides ``GameExplorer``, which loads a game, gets it past gatekeeping
UI, runs the configured action script and turns the evidence into an
``ExplorationReport``.
"""

from .explorer import GameExplorer, GameLoadError

__all__ = [
    "GameExplorer",
    "GameLoadError",
]
