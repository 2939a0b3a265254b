"""
CSV export of the final report.
"""
import csv
import logging
import os
from datetime import date
from typing import Optional

from rakestats.config import ReportConfig
from rakestats.errors import ReportWriteError
from rakestats.pipeline.runner import UserStatsReport
from rakestats.report.console import NA, fmt_date

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "User_ID", "User_Name", "Network_ID", "Total_Bet_Amount", "Total_Win_Amount",
    "Total_Rake", "Total_Hands", "Start_Date", "End_Date",
]


def report_filename(config: ReportConfig, today: Optional[date] = None) -> str:
    """Default export path, e.g. ``./user_stats_2025-07-01.csv``."""
    today = today or date.today()
    name = config.csv_filename_template.format(date=today.isoformat())
    return os.path.join(config.output_dir, name)


def export_csv(report: UserStatsReport, path: str) -> str:
    """
    Write one line per player to *path*.

    Amounts are written as plain decimals, dates as ``YYYY-MM-DD`` and missing
    names, networks or dates as ``N/A``.

    Raises:
        ReportWriteError: the file could not be written
    """
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f, lineterminator="\n")
            w.writerow(CSV_HEADER)
            for r in report.records:
                w.writerow([
                    r.user_id,
                    r.user_name or NA,
                    r.network_id or NA,
                    format(r.total_bet, "f"),
                    format(r.total_win, "f"),
                    format(r.total_rake, "f"),
                    r.hand_count,
                    fmt_date(r.earliest_start),
                    fmt_date(r.latest_end),
                ])
    except OSError as e:
        raise ReportWriteError(f"Cannot write {path}: {e}") from e

    logger.info(f"Results exported to: {path}")
    return path
