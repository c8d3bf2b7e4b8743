"""Value types shared by the exploration engine.

Action descriptors, the timeout policy, the tri-state game state and
the short-lived records produced while resolving overlays.  Everything
here is created and discarded within a single engine call; nothing is
cached across calls because the page mutates underneath.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union

# ---------------------------------------------------------------------------
# Action descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WaitAction:
    """Idle for ``duration_s`` seconds."""

    duration_s: float = 1.0

    def __post_init__(self) -> None:
        if self.duration_s < 0:
            raise ValueError(f"Wait duration must be >= 0, got {self.duration_s}")


@dataclass(frozen=True)
class ClickAction:
    """Click by CSS selector, by normalized coordinates, or both.

    With both, ``(x, y)`` is relative to the selector's bounding box;
    with coordinates only it is relative to the viewport.

    Parameters
    ----------
    selector : str, optional
        CSS selector of the target element.
    x, y : float, optional
        Normalized coordinates in ``[0, 1]``.  Must be given together.
    """

    selector: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None

    def __post_init__(self) -> None:
        has_point = self.x is not None and self.y is not None
        if (self.x is None) != (self.y is None):
            raise ValueError("Click coordinates need both x and y")
        if not self.selector and not has_point:
            raise ValueError("Click action requires either a selector or x/y coordinates")
        if has_point:
            for name, value in (("x", self.x), ("y", self.y)):
                if not 0.0 <= value <= 1.0:
                    raise ValueError(f"Click {name} must be in [0, 1], got {value}")

    @property
    def has_point(self) -> bool:
        return self.x is not None and self.y is not None


@dataclass(frozen=True)
class KeyPressAction:
    """Press ``key`` ``repeat`` times."""

    key: str
    repeat: int = 1

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("Keypress action requires a key")
        if self.repeat < 1:
            raise ValueError(f"Keypress repeat must be >= 1, got {self.repeat}")


@dataclass(frozen=True)
class ScreenshotAction:
    """Capture a screenshot tagged with ``label``."""

    label: str = "screenshot"


Action = Union[WaitAction, ClickAction, KeyPressAction, ScreenshotAction]


def action_from_dict(data: dict[str, Any]) -> Action:
    """Build an action descriptor from a config mapping.

    Parameters
    ----------
    data : dict
        Mapping with a ``type`` key (``wait``, ``click``, ``keypress``
        or ``screenshot``) and the fields of that action
        (``duration``, ``selector``/``x``/``y``, ``key``/``repeat``,
        ``label``).

    Raises
    ------
    ValueError
        On an unknown type or invalid fields.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Action must be a mapping, got {type(data).__name__}")
    kind = data.get("type")
    if kind == "wait":
        return WaitAction(duration_s=float(data.get("duration", 1.0)))
    if kind == "click":
        x, y = data.get("x"), data.get("y")
        return ClickAction(
            selector=data.get("selector"),
            x=None if x is None else float(x),
            y=None if y is None else float(y),
        )
    if kind == "keypress":
        return KeyPressAction(key=str(data.get("key") or ""), repeat=int(data.get("repeat", 1)))
    if kind == "screenshot":
        return ScreenshotAction(label=str(data.get("label") or "screenshot"))
    raise ValueError(f"Unknown action type: {kind!r}")


# ---------------------------------------------------------------------------
# Timeout policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeoutPolicy:
    """Time budgets for one exploration run, in seconds.

    Attributes
    ----------
    load_s : float
        Budget for navigating to the game.
    per_action_s : float
        Budget for one action including its state checks.
    total_s : float
        Budget for the whole action script.
    """

    load_s: float = 30.0
    per_action_s: float = 20.0
    total_s: float = 300.0

    def validate(self) -> None:
        """Raise ``ValueError`` unless budgets are positive and coherent."""
        for name in ("load_s", "per_action_s", "total_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"Timeout {name} must be > 0, got {getattr(self, name)}")
        if self.total_s < self.per_action_s:
            raise ValueError(
                f"Total budget ({self.total_s}s) is shorter than the "
                f"per-action budget ({self.per_action_s}s)"
            )


# ---------------------------------------------------------------------------
# Game state
# ---------------------------------------------------------------------------


class StateKind(enum.Enum):
    PLAYING = "playing"
    BLOCKED = "blocked"
    UNKNOWN = "unknown"


class OverlayKind(str, enum.Enum):
    """What is blocking the game.  Unrecognised names parse as GENERIC."""

    TUTORIAL = "tutorial"
    CONSENT_GATE = "consent_gate"
    AGE_GATE = "age_gate"
    AD = "ad"
    LEVEL_COMPLETE = "level_complete"
    SELECTION_MENU = "selection_menu"
    GENERIC = "generic"

    @classmethod
    def parse(cls, value: Any) -> "OverlayKind":
        try:
            return cls(value)
        except ValueError:
            return cls.GENERIC


class UnknownReason(str, enum.Enum):
    """Why a classification came back UNKNOWN."""

    ERROR = "error"
    TIMEOUT = "timeout"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class GameState:
    """Result of one classification.

    Use the :meth:`playing`, :meth:`blocked` and :meth:`unknown`
    constructors rather than building instances by hand.
    """

    kind: StateKind
    overlay: Optional[OverlayKind] = None
    reason: Optional[UnknownReason] = None

    @classmethod
    def playing(cls) -> "GameState":
        return cls(StateKind.PLAYING)

    @classmethod
    def blocked(cls, overlay: OverlayKind = OverlayKind.GENERIC) -> "GameState":
        return cls(StateKind.BLOCKED, overlay=overlay)

    @classmethod
    def unknown(cls, reason: UnknownReason = UnknownReason.INCONCLUSIVE) -> "GameState":
        return cls(StateKind.UNKNOWN, reason=reason)

    @property
    def is_playing(self) -> bool:
        return self.kind is StateKind.PLAYING

    @property
    def is_blocked(self) -> bool:
        return self.kind is StateKind.BLOCKED

    @property
    def assumed_playing(self) -> bool:
        """Playing, or unknown because detection itself failed (fail-open)."""
        if self.is_playing:
            return True
        return self.kind is StateKind.UNKNOWN and self.reason in (
            UnknownReason.ERROR,
            UnknownReason.TIMEOUT,
        )

    def __str__(self) -> str:
        if self.is_blocked:
            return f"blocked({self.overlay.value if self.overlay else 'generic'})"
        if self.kind is StateKind.UNKNOWN:
            return f"unknown({self.reason.value if self.reason else 'inconclusive'})"
        return "playing"


# ---------------------------------------------------------------------------
# Resolution records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OverlayCandidate:
    """A visible control that might dismiss the current overlay.

    Attributes
    ----------
    text : str
        Lower-cased, whitespace-normalized visible text.
    selector : str, optional
        ``#id`` or ``.class`` selector, already sanitized.
    x, y : float, optional
        Viewport coordinates of the bounding-box center.
    in_modal : bool
        Whether an ancestor looks like a modal container.
    rank : int
        Priority tier, 1 (highest) to 4.
    shared_text : bool
        Another visible control carries the same text, so a text click
        may land on the wrong one.
    """

    text: str
    selector: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    in_modal: bool = False
    rank: int = 4
    shared_text: bool = False

    @property
    def has_point(self) -> bool:
        return self.x is not None and self.y is not None


@dataclass(frozen=True)
class ResolutionAttempt:
    """Diagnostic record of one activation during overlay resolution."""

    strategy: str
    succeeded: bool
    resulting_state: Optional[GameState] = None
    depth: int = 0
    target: str = ""


@dataclass
class RunOutcome:
    """Outcome of one :meth:`ActionExecutor.run` call.

    Attributes
    ----------
    completed : bool
        Every action ran (failures inside an action still count).
    actions_run : int
        Number of actions attempted.
    gave_up : bool
        The browser went away and the rest of the script was skipped.
    levels_advanced : int
        Level transitions performed by the navigator during the run.
    elapsed_s : float
        Wall-clock duration of the run.
    failures : list[str]
        Swallowed action failures, for diagnostics.
    """

    completed: bool = False
    actions_run: int = 0
    gave_up: bool = False
    levels_advanced: int = 0
    elapsed_s: float = 0.0
    failures: list[str] = field(default_factory=list)
