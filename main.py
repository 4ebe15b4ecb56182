"""
main.py

Purpose:
  Command-line entry point for the cost-of-living data updater.

    python main.py                  # update all cities
    python main.py --city berlin    # update one city
    python main.py --inflation      # refresh inflation only
    python main.py --dry-run        # preview without writing
    python main.py --resume         # skip cities already updated today

  Exit code is 0 on normal completion (including dry runs and runs with no
  changes) and 1 when the requested city does not exist, a store cannot be
  read, or anything else escapes the run.

This file is not imported by any other. It is the main entry point.

Imports:
  Local modules: config, store, update_data
  Standard library: argparse, dataclasses, logging, pathlib, sys, typing
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from config import get_settings
from store import UpdaterError
from update_data import RunOptions, run

logger = logging.getLogger("updater")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Refresh city cost-of-living data from Numbeo and inflation data from the IMF."
    )
    parser.add_argument("--city", metavar="ID", default=None, help="Only update the city with this id.")
    parser.add_argument("--inflation", action="store_true", help="Only refresh the inflation store.")
    parser.add_argument("--dry-run", action="store_true", help="Fetch and report, but write nothing.")
    parser.add_argument("--resume", action="store_true", help="Skip cities already updated today.")
    parser.add_argument("--cities-path", type=Path, default=None, help="Override the city store path.")
    parser.add_argument("--inflation-path", type=Path, default=None, help="Override the inflation store path.")
    parser.add_argument("--report", type=Path, default=None, help="Write per-city outcomes to this CSV file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser.parse_args(argv)


def configure_logging(verbose: bool = False) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    settings = get_settings()
    if args.cities_path:
        settings = replace(settings, cities_path=args.cities_path)
    if args.inflation_path:
        settings = replace(settings, inflation_path=args.inflation_path)

    options = RunOptions(
        city_id=args.city,
        resume=args.resume,
        dry_run=args.dry_run,
        inflation_only=args.inflation,
    )

    try:
        state = run(options, settings=settings)
        if args.report:
            state.outcomes_frame().to_csv(args.report, index=False)
            logger.info("Outcome report written to %s", args.report)
    except UpdaterError as exc:
        logger.error("%s", exc)
        return 1
    except Exception:
        logger.exception("Fatal error")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
