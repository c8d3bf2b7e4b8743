"""Exploration configuration data structures.

An :class:`ExplorationConfig` describes one exploration run: the
action script, the time budgets, optional key bindings and the browser
to launch.

Configs can be loaded from YAML files via
:func:`load_exploration_config`.  String values support environment
variable expansion using ``$VAR``, ``${VAR}`` or ``${VAR:-default}``
syntax, as well as ``~`` for the user home directory.  Missing
``actions`` or timeout keys fall back to the defaults one field at a
time.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from src.engine.models import Action, TimeoutPolicy, action_from_dict

logger = logging.getLogger(__name__)

# Shipped defaults, mirrored by configs/exploration/default.yaml.
_CONFIGS_DIR = Path(__file__).resolve().parent.parent.parent / "configs" / "exploration"

# Pattern matching $VAR or ${VAR} for environment variable expansion.
_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

#: Time budgets in seconds.
DEFAULT_TIMEOUTS: dict[str, float] = {"load": 30.0, "action": 20.0, "total": 300.0}

#: Generic warm-up script: arrows, space, a canvas-center click.
DEFAULT_ACTIONS: list[dict[str, Any]] = [
    {"type": "wait", "duration": 3},
    {"type": "wait", "duration": 1},
    {"type": "keypress", "key": "ArrowRight", "repeat": 1},
    {"type": "wait", "duration": 0.5},
    {"type": "keypress", "key": "ArrowDown", "repeat": 1},
    {"type": "wait", "duration": 0.5},
    {"type": "keypress", "key": "ArrowLeft", "repeat": 1},
    {"type": "wait", "duration": 0.5},
    {"type": "keypress", "key": "ArrowUp", "repeat": 1},
    {"type": "wait", "duration": 0.5},
    {"type": "keypress", "key": "Space", "repeat": 1},
    {"type": "wait", "duration": 0.5},
    {"type": "click", "selector": "canvas", "x": 0.5, "y": 0.5},
    {"type": "wait", "duration": 0.5},
    {"type": "keypress", "key": "ArrowRight", "repeat": 2},
    {"type": "wait", "duration": 0.5},
    {"type": "keypress", "key": "ArrowUp", "repeat": 2},
    {"type": "wait", "duration": 1},
]


class ConfigError(ValueError):
    """Raised for malformed exploration config files."""


@dataclass
class ExplorationConfig:
    """Declarative description of one exploration run.

    Parameters
    ----------
    actions : list[dict]
        Action script as plain mappings (``type`` plus fields).
    timeouts : dict[str, float]
        ``load``, ``action`` and ``total`` budgets in seconds.  Missing
        keys take their default.
    key_bindings : dict[str, str]
        Scripted key to pressed key, e.g. ``{"ArrowUp": "w"}``.  When
        empty, WASD letters are pressed as arrow keys.
    output_dir : str or Path
        Root for screenshots, logs and reports.
    browser : str
        ``"chrome"``, ``"edge"`` or ``"firefox"``.
    headless : bool
        Run the browser without a window.
    window_width, window_height : int
        Browser window size in pixels.
    max_levels : int
        Levels to reach in total (the first counts), so at most
        ``max_levels - 1`` advances after the script.
    max_resolve_depth : int
        Recursion bound for overlay resolution.
    """

    actions: list[dict[str, Any]] = field(default_factory=lambda: copy.deepcopy(DEFAULT_ACTIONS))
    timeouts: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TIMEOUTS))
    key_bindings: dict[str, str] = field(default_factory=dict)
    output_dir: str | Path = "output"
    browser: str = "chrome"
    headless: bool = False
    window_width: int = 1280
    window_height: int = 720
    max_levels: int = 3
    max_resolve_depth: int = 3

    def __post_init__(self) -> None:
        if self.actions is None:
            self.actions = copy.deepcopy(DEFAULT_ACTIONS)
        timeouts = dict(self.timeouts or {})
        unknown = set(timeouts) - set(DEFAULT_TIMEOUTS)
        if unknown:
            raise ConfigError(
                f"Unknown timeout keys: {sorted(unknown)}. Valid keys: {sorted(DEFAULT_TIMEOUTS)}"
            )
        self.timeouts = {k: float(timeouts.get(k, v)) for k, v in DEFAULT_TIMEOUTS.items()}
        self.output_dir = Path(os.path.expanduser(_expand_vars(str(self.output_dir))))

    def build_actions(self) -> list[Action]:
        """Return the action script as engine action descriptors.

        Raises
        ------
        ConfigError
            If an action entry is invalid.
        """
        actions: list[Action] = []
        for index, entry in enumerate(self.actions):
            try:
                actions.append(action_from_dict(entry))
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"Invalid action #{index} {entry!r}: {exc}") from exc
        return actions

    def timeout_policy(self) -> TimeoutPolicy:
        """Return the budgets as a validated :class:`TimeoutPolicy`."""
        policy = TimeoutPolicy(
            load_s=self.timeouts["load"],
            per_action_s=self.timeouts["action"],
            total_s=self.timeouts["total"],
        )
        try:
            policy.validate()
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        return policy


def _expand_vars(value: str) -> str:
    """Expand ``$VAR``, ``${VAR}`` and ``${VAR:-default}`` in a string.

    Undefined variables without a default are left as-is.
    """

    def _replace(match: re.Match) -> str:
        braced = match.group(1)
        bare = match.group(2)
        original: str = match.group(0) or ""

        if braced is not None:
            if ":-" in braced:
                var_name, default = braced.split(":-", 1)
                return os.environ.get(var_name, default)
            return os.environ.get(braced, original)

        return os.environ.get(bare or "", original)

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_vars_recursive(data: Any) -> Any:
    """Expand environment variables in every string nested in *data*."""
    if isinstance(data, str):
        return _expand_vars(data)
    if isinstance(data, dict):
        return {key: _expand_vars_recursive(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_vars_recursive(item) for item in data]
    return data


def load_exploration_config(path: str | Path | None = None) -> ExplorationConfig:
    """Load an :class:`ExplorationConfig` from a YAML file.

    Parameters
    ----------
    path : str or Path, optional
        YAML file, or the name of a file in ``configs/exploration/``
        (without extension).  ``None`` returns the built-in defaults.

    Returns
    -------
    ExplorationConfig

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ConfigError
        If the YAML is not a mapping or contains unknown fields.
    """
    if path is None:
        return ExplorationConfig()

    config_path = Path(path)
    if not config_path.suffix and not config_path.exists():
        config_path = _CONFIGS_DIR / f"{path}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(
            f"No exploration config found at {config_path}. "
            f"Available configs: {[p.stem for p in _CONFIGS_DIR.glob('*.yaml')]}"
        )

    logger.info("Loading exploration config from %s", config_path)
    with open(config_path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected a YAML mapping in {config_path}, got {type(raw).__name__}"
        )

    raw = _expand_vars_recursive(raw)

    valid_fields = {f.name for f in dataclasses.fields(ExplorationConfig)}
    unknown = set(raw) - valid_fields
    if unknown:
        raise ConfigError(
            f"Unknown fields in {config_path}: {sorted(unknown)}. "
            f"Valid fields: {sorted(valid_fields)}"
        )
    if "actions" in raw and not isinstance(raw["actions"], (list, type(None))):
        raise ConfigError(f"'actions' in {config_path} must be a list")

    try:
        config = ExplorationConfig(**raw)
    except TypeError as exc:
        raise ConfigError(
            f"Invalid config in {config_path}: {exc}. "
            f"Valid fields: {sorted(valid_fields)}"
        ) from exc

    # Fail early on bad scripts rather than mid-run.
    config.build_actions()
    config.timeout_policy()
    return config


def default_config_path() -> Optional[Path]:
    """Return the shipped default config file, if present."""
    path = _CONFIGS_DIR / "default.yaml"
    return path if path.exists() else None
