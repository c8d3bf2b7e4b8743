"""Exceptions raised by the exploration engine."""

from __future__ import annotations


class ExplorationTimeoutError(Exception):
    """A per-action or total-script time budget was exceeded.

    This is the only engine error that propagates to the orchestrator;
    it aborts the remaining script.

    Parameters
    ----------
    scope : str
        ``"action"`` or ``"total"``.
    budget_s : float
        The budget that was exceeded, in seconds.
    detail : str, optional
        What was running when the budget ran out.
    """

    def __init__(self, scope: str, budget_s: float, detail: str = "") -> None:
        self.scope = scope
        self.budget_s = budget_s
        self.detail = detail
        label = "Action" if scope == "action" else "Total execution"
        message = f"{label} timeout exceeded ({budget_s:g}s)"
        if detail:
            message = f"{message} during {detail}"
        super().__init__(message)
