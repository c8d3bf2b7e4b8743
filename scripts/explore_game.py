#!/usr/bin/env python
"""CLI entry point -- explore one browser game and write a JSON report.

Usage::

    # Defaults (Chrome, built-in action script):
    python scripts/explore_game.py https://example.com/games/snake

    # Custom script and headless Firefox:
    python scripts/explore_game.py https://example.com/games/snake \\
        --config configs/exploration/default.yaml \\
        --browser firefox --headless

Exit code is 0 when the report status is ``pass`` or ``partial`` and 1
otherwise.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Allow running as ``python scripts/explore_game.py`` from the repo root.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from scripts._cli_utils import base_argparser, setup_logging, timestamp_str  # noqa: E402

logger = logging.getLogger(__name__)

#: Report statuses that count as a successful run.
OK_STATUSES = ("pass", "partial")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Parameters
    ----------
    argv : list[str] or None
        Command-line arguments.  If None, uses ``sys.argv[1:]``.

    Returns
    -------
    argparse.Namespace
        Parsed arguments.
    """
    parser = base_argparser("Explore a browser game and write a QA report.")
    parser.add_argument("url", help="URL of the game page")
    parser.add_argument(
        "--browser",
        choices=("chrome", "edge", "firefox"),
        default=None,
        help="Browser to launch (default: from config, usually chrome)",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run the browser without a visible window",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run one exploration.

    Parameters
    ----------
    argv : list[str] or None
        Command-line arguments.

    Returns
    -------
    int
        Exit code (0 on pass/partial).
    """
    args = parse_args(argv)
    setup_logging(args.verbose)

    from src.config import ConfigError, load_exploration_config
    from src.evidence import EvidenceCapture
    from src.orchestrator import GameExplorer
    from src.reporting import save_report
    from src.session import SeleniumSession, launch_driver

    try:
        config = load_exploration_config(args.config)
    except (ConfigError, FileNotFoundError) as exc:
        logger.error("Invalid config: %s", exc)
        return 2

    if args.output_dir is not None:
        config.output_dir = args.output_dir
    if args.browser is not None:
        config.browser = args.browser
    if args.headless:
        config.headless = True

    run_dir = Path(config.output_dir) / f"run-{timestamp_str()}"
    evidence = EvidenceCapture(run_dir)

    driver = launch_driver(
        browser=config.browser,
        headless=config.headless,
        window_size=(config.window_width, config.window_height),
    )
    session = SeleniumSession(driver)
    try:
        report = GameExplorer(session, config, evidence).run(args.url)
    finally:
        session.close()

    report_path = save_report(report, run_dir / "reports")

    print("\n--- Exploration Summary ---")
    print(f"Status:          {report.status}")
    print(f"Issues:          {len(report.issues)}")
    print(f"Screenshots:     {len(report.screenshots)}")
    print(f"Levels advanced: {report.metadata.get('levels_advanced', 0)}")
    print(f"Duration:        {report.execution_time_seconds:.1f}s")
    print(f"Report:          {report_path}")

    return 0 if report.status in OK_STATUSES else 1


if __name__ == "__main__":
    sys.exit(main())
