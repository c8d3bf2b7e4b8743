"""Exploration configuration -- action scripts, budgets and browser options.

Typical usage::

    from src.config import load_exploration_config

    config = load_exploration_config("configs/exploration/default.yaml")
    actions = config.build_actions()
    policy = config.timeout_policy()
"""

from src.config.exploration import (
    DEFAULT_ACTIONS,
    DEFAULT_TIMEOUTS,
    ConfigError,
    ExplorationConfig,
    default_config_path,
    load_exploration_config,
)

__all__ = [
    "DEFAULT_ACTIONS",
    "DEFAULT_TIMEOUTS",
    "ConfigError",
    "ExplorationConfig",
    "default_config_path",
    "load_exploration_config",
]
