"""
Cross-partition merge and final ranking of player totals.

``merge_totals`` is commutative and associative, so partitions can be
computed in any order (or in parallel) and folded together with identical
results.
"""
import logging
from datetime import datetime
from functools import reduce
from typing import Dict, Iterable, List, Optional

from rakestats.stats.schemas import PlayerFinalTotal, PlayerTotal

logger = logging.getLogger(__name__)


def _min_opt(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _max_opt(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _descriptive_rank(total: PlayerTotal):
    # total order used to pick name/network independently of merge order
    return (
        total.earliest_start is None,
        total.earliest_start or datetime.min,
        total.user_name or "",
        total.network_id or "",
    )


def to_final(total: PlayerTotal) -> PlayerFinalTotal:
    """Lift a partition (or final) total into a ``PlayerFinalTotal``."""
    if isinstance(total, PlayerFinalTotal):
        return total
    partitions = (total.partition,) if getattr(total, "partition", None) else ()
    return PlayerFinalTotal(
        **total.model_dump(include=set(PlayerTotal.model_fields)),
        partitions=partitions,
    )


def merge_totals(a: PlayerTotal, b: PlayerTotal) -> PlayerFinalTotal:
    """
    Combine two totals of the same player.

    Sums bet/win/rake/hands, keeps the earliest start and latest end, and
    takes ``user_name``/``network_id`` from the operand that ranks first by
    ``(earliest_start, user_name, network_id)``.
    """
    a, b = to_final(a), to_final(b)
    if a.user_id != b.user_id:
        raise ValueError(f"Cannot merge totals of different players: {a.user_id} != {b.user_id}")

    named = min(a, b, key=_descriptive_rank)
    return PlayerFinalTotal(
        user_id=a.user_id,
        user_name=named.user_name,
        network_id=named.network_id,
        total_bet=a.total_bet + b.total_bet,
        total_win=a.total_win + b.total_win,
        total_rake=a.total_rake + b.total_rake,
        hand_count=a.hand_count + b.hand_count,
        earliest_start=_min_opt(a.earliest_start, b.earliest_start),
        latest_end=_max_opt(a.latest_end, b.latest_end),
        partitions=tuple(sorted(set(a.partitions) | set(b.partitions))),
    )


def merge_partitions(partition_results: Iterable[Iterable[PlayerTotal]]) -> List[PlayerFinalTotal]:
    """
    Merge per-partition totals into one record per player.

    Players missing from every partition never appear; no zero rows are
    synthesised.

    Args:
        partition_results: One iterable of totals per partition

    Returns:
        Final totals ordered by player id
    """
    by_player: Dict[int, List[PlayerTotal]] = {}
    for totals in partition_results:
        for total in totals:
            by_player.setdefault(total.user_id, []).append(total)

    merged = [
        to_final(reduce(merge_totals, by_player[user_id]))
        for user_id in sorted(by_player)
    ]
    logger.debug(f"Merged {sum(len(v) for v in by_player.values())} partition totals into {len(merged)} players")
    return merged


def rank_totals(records: Iterable[PlayerFinalTotal]) -> List[PlayerFinalTotal]:
    """Order by ``total_rake`` descending, ties by ``user_id`` ascending."""
    return sorted(records, key=lambda r: (-r.total_rake, r.user_id))
