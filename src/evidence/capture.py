"""Screenshot and console-log capture for exploration runs.

:class:`EvidenceCapture` is the sink the engine hands screenshots to.
Captures never raise: a failed screenshot yields a
:class:`~src.reporting.report.ScreenshotInfo` with an empty filename so
the run keeps going.

Screenshots are decoded with OpenCV to flag blank frames (a uniform
viewport usually means the game never rendered).

Layout under ``output_dir``::

    screenshots/screenshot-<timestamp>-<label>.png
    logs/console-<timestamp>.log
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import numpy as np

from src.reporting.report import ScreenshotInfo
from src.session.base import BrowserSession

logger = logging.getLogger(__name__)

#: Grayscale standard deviation below which a frame counts as blank.
BLANK_STD_THRESHOLD = 2.0


def _file_timestamp() -> str:
    """UTC ISO timestamp with ``:`` and ``.`` replaced for filenames."""
    return re.sub(r"[:.]", "-", datetime.now(timezone.utc).isoformat())


def is_blank_frame(png_bytes: bytes, threshold: float = BLANK_STD_THRESHOLD) -> bool:
    """Return ``True`` if the image is (nearly) one flat colour.

    Undecodable data is not considered blank.
    """
    # Lazy import to avoid CI failures in Docker without libGL
    import cv2

    nparr = np.frombuffer(png_bytes, np.uint8)
    if nparr.size == 0:
        return False
    frame = cv2.imdecode(nparr, cv2.IMREAD_GRAYSCALE)
    if frame is None:
        return False
    return float(np.std(frame)) < threshold


class EvidenceCapture:
    """Collect screenshots and console logs for one run.

    Parameters
    ----------
    output_dir : str or Path
        Root directory; ``screenshots/`` and ``logs/`` are created
        beneath it.
    detect_blank : bool
        Decode each screenshot and flag blank frames.
    """

    def __init__(self, output_dir: str | Path = "output", detect_blank: bool = True) -> None:
        self.output_dir = Path(output_dir)
        self.screenshot_dir = self.output_dir / "screenshots"
        self.log_dir = self.output_dir / "logs"
        self.detect_blank = detect_blank
        self._screenshots: list[ScreenshotInfo] = []
        self._console_lines: list[str] = []
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Create the output directories."""
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    # -- Screenshots ---------------------------------------------------

    def capture_screenshot(
        self, session: BrowserSession, label: Optional[str] = None
    ) -> ScreenshotInfo:
        """Save a screenshot of *session* and record it.

        Returns
        -------
        ScreenshotInfo
            With an empty ``filename`` if the capture failed.
        """
        slug = f"-{re.sub(r'[^A-Za-z0-9_.-]+', '-', label.strip())}" if label else ""
        filename = f"screenshot-{_file_timestamp()}{slug}.png"
        try:
            png = session.screenshot()
            self.screenshot_dir.mkdir(parents=True, exist_ok=True)
            (self.screenshot_dir / filename).write_bytes(png)
            blank = False
            if self.detect_blank:
                blank = is_blank_frame(png)
                if blank:
                    logger.warning("Screenshot %s looks blank", filename)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to capture screenshot %r: %s", label, exc)
            return ScreenshotInfo(filename="", label=label)

        info = ScreenshotInfo(filename=filename, label=label, blank=blank)
        with self._lock:
            self._screenshots.append(info)
        logger.debug("Saved %s", filename)
        return info

    @property
    def screenshots(self) -> list[ScreenshotInfo]:
        with self._lock:
            return list(self._screenshots)

    # -- Console logs --------------------------------------------------

    def capture_console_logs(self, session: BrowserSession) -> None:
        """Pull console messages from *session*; failures are logged."""
        try:
            entries = session.get_console_logs()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to capture console logs: %s", exc)
            return
        with self._lock:
            self._console_lines.extend(entry.format() for entry in entries)

    @property
    def console_lines(self) -> list[str]:
        with self._lock:
            return list(self._console_lines)

    def console_errors(self) -> list[str]:
        return [line for line in self.console_lines if line.startswith("[error]")]

    def console_warnings(self) -> list[str]:
        return [line for line in self.console_lines if line.startswith("[warn]")]

    def save_console_logs(self, game_url: str) -> Path:
        """Write collected console lines to ``logs/console-<ts>.log``."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        path = self.log_dir / f"console-{_file_timestamp()}.log"
        content = [
            f"Game URL: {game_url}",
            f"Timestamp: {datetime.now(timezone.utc).isoformat()}",
            "",
            "Console Logs:",
            *self.console_lines,
        ]
        path.write_text("\n".join(content) + "\n", encoding="utf-8")
        logger.info("Console logs saved to %s", path)
        return path
