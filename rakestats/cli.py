"""
CLI runner for the user statistics report
"""
import argparse
import logging
import sys
from typing import List, Optional

from rakestats.config import load_config
from rakestats.errors import RakeStatsError
from rakestats.partition.months import parse_report_date, report_window
from rakestats.pipeline.runner import run_user_stats
from rakestats.report.console import render_table
from rakestats.report.csv_export import export_csv, report_filename
from rakestats.services.hand_store import build_store

logger = logging.getLogger(__name__)

EPILOG = """examples:
  rakestats 2025-06-01 2025-06-30
  rakestats 2025-06-01 2025-06-30 4883380 4895351 4801304
"""


def setup_logging(verbose: bool = False):
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def _user_id(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid user id: {text!r}")


def _report_date(text: str):
    try:
        return parse_report_date(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rakestats",
        description="Per-player bet/win/rake totals over monthly hand partitions",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("start_date", type=_report_date, help="First day (YYYY-MM-DD)")
    parser.add_argument("end_date", type=_report_date, help="Last day, inclusive (YYYY-MM-DD)")
    parser.add_argument("user_ids", nargs="*", type=_user_id, help="Player ids (default: configured roster)")
    parser.add_argument("-c", "--config", help="YAML config file")
    parser.add_argument("-o", "--output", help="CSV output path (default: user_stats_<today>.csv)")
    parser.add_argument("--no-csv", action="store_true", help="Skip the CSV export")
    parser.add_argument("--strict", action="store_true", help="Fail when grouped rows disagree on names/metadata")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        if args.strict:
            config = config.model_copy(update={"strict_invariants": True})

        start, end = report_window(args.start_date, args.end_date)
        title = f"User Statistics ({args.start_date} to {args.end_date})"

        print("Fetching user statistics...")
        with build_store(config) as store:
            report = run_user_stats(config, store, start, end, args.user_ids or None, title=title)

        print(render_table(report))

        if not args.no_csv:
            path = export_csv(report, args.output or report_filename(config))
            print(f"\nResults exported to: {path}")

    except RakeStatsError as e:
        logger.error(f"Error fetching user stats: {e}")
        if args.verbose:
            logger.debug("Traceback", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
