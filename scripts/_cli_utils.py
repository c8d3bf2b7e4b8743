"""Shared utilities for command-line scripts.

Provides consistent colored logging, timestamp helpers and the common
argument set (``--config``, ``--output-dir``, ``--verbose``).
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

_COLORS = {
    "DEBUG": "\033[90m",  # grey
    "INFO": "\033[36m",  # cyan
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[1;31m",  # bold red
}
_RESET = "\033[0m"

#: Third-party loggers that drown out exploration progress at DEBUG.
NOISY_LOGGERS = ("selenium", "urllib3", "asyncio", "PIL")


class _ColorFormatter(logging.Formatter):
    """Formatter with a colored level tag, timestamp and logger name."""

    def __init__(self, use_color: bool = True) -> None:
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now(tz=timezone.utc).strftime("%H:%M:%S")
        if self.use_color:
            color = _COLORS.get(record.levelname, "")
            tag = f"{color}[{ts}] {record.levelname:<8}{_RESET}"
        else:
            tag = f"[{ts}] {record.levelname:<8}"
        message = f"{tag} {record.name}: {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure the root logger with colored stdout output.

    Parameters
    ----------
    verbose : bool
        If ``True``, set level to ``DEBUG``; otherwise ``INFO``.

    Returns
    -------
    logging.Logger
        The root logger.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_ColorFormatter(use_color=sys.stdout.isatty()))

    root = logging.getLogger()
    root.setLevel(level)
    # Avoid duplicate handlers on re-init
    root.handlers.clear()
    root.addHandler(handler)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return root


# ---------------------------------------------------------------------------
# Common CLI arguments
# ---------------------------------------------------------------------------


def base_argparser(description: str) -> argparse.ArgumentParser:
    """Return an ``ArgumentParser`` pre-loaded with common options.

    Includes ``--config``, ``--output-dir`` and ``--verbose``.
    """
    p = argparse.ArgumentParser(description=description)
    p.add_argument(
        "--config",
        default=None,
        help=(
            "Exploration config YAML, or a name under configs/exploration/. "
            "Default: built-in defaults"
        ),
    )
    p.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Override output directory (default: from config, usually output/)",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug-level logging",
    )
    return p


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def timestamp_str() -> str:
    """Return a filesystem-safe UTC timestamp string."""
    return datetime.now(tz=timezone.utc).strftime("%Y%m%d_%H%M%S")
