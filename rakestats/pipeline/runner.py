"""Report pipeline: fan out over monthly partitions, merge, rank.

Each partition is read and aggregated independently on a worker thread.  The
merge only starts once every partition has finished; the first partition
failure cancels the remaining work and propagates to the caller.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from rakestats.config import ReportConfig
from rakestats.parse.schemas import ZERO
from rakestats.partition.months import partitions_for_range
from rakestats.services.hand_store import HandQuery, HandStore
from rakestats.stats.aggregate import aggregate_partition
from rakestats.stats.merge import merge_partitions, rank_totals
from rakestats.stats.schemas import PlayerFinalTotal, PlayerPartitionTotal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportSummary:
    """Column totals shown under the report table."""

    total_users: int = 0
    total_bet: Decimal = ZERO
    total_win: Decimal = ZERO
    total_rake: Decimal = ZERO
    total_hands: int = 0

    @property
    def net_result(self) -> Decimal:
        return self.total_win - self.total_bet

    @classmethod
    def from_records(cls, records: Sequence[PlayerFinalTotal]) -> "ReportSummary":
        return cls(
            total_users=len(records),
            total_bet=sum((r.total_bet for r in records), ZERO),
            total_win=sum((r.total_win for r in records), ZERO),
            total_rake=sum((r.total_rake for r in records), ZERO),
            total_hands=sum(r.hand_count for r in records),
        )


@dataclass(frozen=True)
class UserStatsReport:
    """Result of one report run."""

    title: str
    start: datetime
    end: datetime
    user_ids: List[int]
    partitions: List[str]
    records: List[PlayerFinalTotal]
    summary: ReportSummary
    partition_totals: Dict[str, List[PlayerPartitionTotal]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "user_ids": list(self.user_ids),
            "partitions": list(self.partitions),
            "records": [r.model_dump(mode="json") for r in self.records],
            "summary": {
                "total_users": self.summary.total_users,
                "total_bet": str(self.summary.total_bet),
                "total_win": str(self.summary.total_win),
                "total_rake": str(self.summary.total_rake),
                "total_hands": self.summary.total_hands,
                "net_result": str(self.summary.net_result),
            },
        }


def _run_partition(
    store: HandStore,
    partition: str,
    query: HandQuery,
    strict: bool,
) -> List[PlayerPartitionTotal]:
    t0 = time.monotonic()
    totals = aggregate_partition(partition, store.fetch_hands(partition, query), query, strict=strict)
    logger.debug(f"[{partition}] aggregated in {time.monotonic() - t0:.2f}s")
    return totals


def collect_partition_totals(
    store: HandStore,
    partitions: Sequence[str],
    query: HandQuery,
    max_workers: int = 4,
    strict: bool = False,
) -> Dict[str, List[PlayerPartitionTotal]]:
    """
    Aggregate every partition, one worker per partition.

    Returns:
        Partition name -> player totals, in the order of *partitions*

    Raises:
        Whatever the first failing partition raised; pending partitions are
        cancelled and no partial result is returned.
    """
    if not partitions:
        return {}

    workers = max(1, min(max_workers, len(partitions)))
    results: Dict[str, List[PlayerPartitionTotal]] = {}

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="partition") as executor:
        futures = {
            name: executor.submit(_run_partition, store, name, query, strict)
            for name in partitions
        }
        try:
            for name in partitions:
                results[name] = futures[name].result()
        except Exception:
            for future in futures.values():
                future.cancel()
            raise

    return results


def resolve_user_ids(config: ReportConfig, user_ids: Optional[Sequence[int]]) -> List[int]:
    """Explicit ids override the configured roster; order kept, repeats dropped."""
    ids = list(user_ids) if user_ids else list(config.default_user_ids)
    return list(dict.fromkeys(int(uid) for uid in ids))


def run_user_stats(
    config: ReportConfig,
    store: HandStore,
    start: datetime,
    end: datetime,
    user_ids: Optional[Sequence[int]] = None,
    title: Optional[str] = None,
) -> UserStatsReport:
    """
    Build the ranked per-player report for ``[start, end)``.

    Args:
        config: Run configuration
        store: Hand store to read partitions from
        start: Inclusive start instant (UTC)
        end: Exclusive end instant (UTC)
        user_ids: Players to report on (defaults to the configured roster)
        title: Report title

    Returns:
        ``UserStatsReport`` with records ranked by rake
    """
    ids = resolve_user_ids(config, user_ids)
    partitions = partitions_for_range(start, end, config.store.partition_prefix)
    title = title or f"User Statistics ({start.date()} to {end.date()})"

    logger.info(f"Date range: {start.isoformat()} to {end.isoformat()}")
    logger.info(f"Number of users: {len(ids)}")
    logger.info(f"Processing partitions: {', '.join(partitions) or '(none)'}")

    query = HandQuery(game_type=config.game_type, user_ids=frozenset(ids), start=start, end=end)
    per_partition = collect_partition_totals(
        store,
        partitions,
        query,
        max_workers=config.max_workers,
        strict=config.strict_invariants,
    )

    records = rank_totals(merge_partitions(per_partition.values()))
    summary = ReportSummary.from_records(records)
    logger.info(f"Report ready: {summary.total_users} users, {summary.total_hands} hands")

    return UserStatsReport(
        title=title,
        start=start,
        end=end,
        user_ids=ids,
        partitions=partitions,
        records=records,
        summary=summary,
        partition_totals=per_partition,
    )
