# main.py

"""Entry point for the battery price tracker CLI."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("price_tracker.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.SUPPLIERS)

    parser = argparse.ArgumentParser(
        prog="price_tracker",
        description=(
            "Fetch supplier prices for tracked batteries and "
            "update the catalog and price history."
        ),
        epilog=f"Available suppliers: {valid_ids}",
    )
    parser.add_argument(
        "-s",
        "--suppliers",
        default=None,
        help="Comma-separated supplier IDs to update (default: all).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Batch summary format (default: json).",
    )
    parser.add_argument(
        "--db",
        default=None,
        type=Path,
        dest="db_path",
        help="SQLite catalog path (default: data/prices.db).",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--list",
        action="store_true",
        default=False,
        dest="list_catalog",
        help="List the catalog with class ratings and exit.",
    )
    mode.add_argument(
        "--history",
        type=int,
        default=None,
        metavar="BATTERY_ID",
        help="Show recent price history for one battery and exit.",
    )
    mode.add_argument(
        "--seed",
        nargs="?",
        const=Settings.SEED_PATH,
        default=None,
        type=Path,
        metavar="PATH",
        help="Load catalog seed JSON (default: data/seed_catalog.json).",
    )
    return parser


def _run_batch(args: argparse.Namespace) -> None:
    """Run the supplier batch and exit with its status."""
    from src.cli.runner import run_price_update

    try:
        exit_code = asyncio.run(
            run_price_update(
                supplier_csv=args.suppliers,
                output_format=args.output_format,
                db_path=args.db_path,
            )
        )
    except Exception:
        logger.critical("Fatal error during batch run", exc_info=True)
        raise
    finally:
        logger.info("price_tracker batch finished")
    sys.exit(exit_code)


def main() -> None:
    """Route to batch update (default), listing, history, or seeding."""
    log_file = setup_logging()
    logger.info("price_tracker starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    from src.cli import runner

    if args.list_catalog:
        sys.exit(runner.run_list_catalog(args.db_path))
    elif args.history is not None:
        sys.exit(runner.run_show_history(args.history, args.db_path))
    elif args.seed is not None:
        sys.exit(runner.run_seed(args.seed, args.db_path))
    else:
        _run_batch(args)


if __name__ == "__main__":
    main()
