"""
Plain-text rendering of a ``UserStatsReport`` for the terminal.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from rakestats.pipeline.runner import UserStatsReport

NA = "N/A"

HEADER = "User ID | User Name | Network | Total Bet | Total Win | Total Rake | Hands | Start Date | End Date"
RULE = "--------|-----------|---------|-----------|-----------|------------|-------|------------|----------"


def fmt_money(value: Decimal) -> str:
    return f"{value:.2f}"


def fmt_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else NA


def render_table(report: UserStatsReport) -> str:
    """Return the report table, totals row and summary block."""
    lines: List[str] = [f"\n=== {report.title} ===", HEADER, RULE]

    for r in report.records:
        lines.append(
            f"{r.user_id} | {(r.user_name or NA):<9} | {(r.network_id or NA):<7} | "
            f"{fmt_money(r.total_bet):>9} | {fmt_money(r.total_win):>9} | "
            f"{fmt_money(r.total_rake):>10} | {r.hand_count:>5} | "
            f"{fmt_date(r.earliest_start)} | {fmt_date(r.latest_end)}"
        )

    s = report.summary
    lines.append(RULE)
    lines.append(
        f"TOTALS  |           |         | {fmt_money(s.total_bet):>9} | {fmt_money(s.total_win):>9} | "
        f"{fmt_money(s.total_rake):>10} | {s.total_hands:>5} |            |          "
    )

    lines += [
        "",
        "Summary:",
        f"- Total Users: {s.total_users}",
        f"- Total Bet Amount: ${fmt_money(s.total_bet)}",
        f"- Total Win Amount: ${fmt_money(s.total_win)}",
        f"- Total Rake: ${fmt_money(s.total_rake)}",
        f"- Total Hands: {s.total_hands}",
        f"- Net Result: ${fmt_money(s.net_result)}",
    ]
    return "\n".join(lines)
