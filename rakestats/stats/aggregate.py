"""
Two-stage grouping of a partition's hands.

Stage 1 collapses participant rows into one metric per hand x player.
Stage 2 sums those metrics into one total per player for the partition.
"""
import logging
from collections import OrderedDict
from itertools import groupby
from typing import Iterable, List, Optional, Sequence, Tuple

from rakestats.errors import DescriptiveFieldMismatch
from rakestats.parse.schemas import ZERO, HandRecord
from rakestats.stats.extract import derive_totals, expand_hand, hand_fields
from rakestats.stats.schemas import (
    AMOUNT_FIELDS,
    DESCRIPTIVE_FIELDS,
    HandPlayerFields,
    HandPlayerMetric,
    HandPlayerRow,
    PlayerPartitionTotal,
)

logger = logging.getLogger(__name__)


def hand_sort_key(hand_id: str) -> Tuple[int, int, str]:
    """Numeric hand ids sort numerically, anything else after them as text."""
    if hand_id.isascii() and hand_id.isdigit():
        return (0, int(hand_id), hand_id)
    return (1, 0, hand_id)


def _row_order(row: HandPlayerFields):
    return (hand_sort_key(row.hand_id), row.player_id)


def _check_descriptive(key, first, others: Sequence, fields: Sequence[str], strict: bool) -> None:
    """Compare descriptive fields of grouped records against the first one."""
    for other in others:
        for name in fields:
            a, b = getattr(first, name), getattr(other, name)
            if a == b:
                continue
            if strict:
                raise DescriptiveFieldMismatch(key, name, a, b)
            logger.debug(f"{key}: {name} differs ({a!r} vs {b!r}), keeping first")


def group_hand_rows(rows: Iterable[HandPlayerRow], strict: bool = False) -> List[HandPlayerMetric]:
    """
    Collapse participant rows into one metric per ``(hand_id, player_id)``.

    Rows are ordered by hand then player (stable, so a player's seats keep
    participant order).  Amounts are summed, descriptive fields come from the
    first row, and the per-hand totals are derived from the summed amounts.

    Args:
        rows: Rows produced by ``expand_hand``
        strict: Raise ``DescriptiveFieldMismatch`` instead of keeping the first row

    Returns:
        Metrics ordered by ``(hand_id, player_id)``
    """
    ordered = sorted(rows, key=_row_order)
    metrics: List[HandPlayerMetric] = []

    for key, group_iter in groupby(ordered, key=lambda r: r.key):
        group = list(group_iter)
        first = group[0]
        _check_descriptive(key, first, group[1:], DESCRIPTIVE_FIELDS, strict)

        fields = first.model_dump(exclude={"occurrence", *AMOUNT_FIELDS})
        for name in AMOUNT_FIELDS:
            fields[name] = sum((getattr(r, name) for r in group), ZERO)

        grouped = HandPlayerFields(**fields)
        total_bet, total_win, total_rake = derive_totals(grouped)
        metrics.append(HandPlayerMetric(
            **fields,
            total_bet=total_bet,
            total_win=total_win,
            total_rake=total_rake,
            rows=len(group),
        ))

    return metrics


def extract_hand_metrics(hand: HandRecord, player_id: int, strict: bool = False) -> HandPlayerMetric:
    """
    Metrics of one player in one hand.

    A player absent from the hand yields an all-zero metric (``rows == 0``).
    """
    rows = expand_hand(hand, {player_id})
    if not rows:
        return HandPlayerMetric(**hand_fields(hand), player_id=player_id, rows=0)

    return group_hand_rows(rows, strict=strict)[0]


def aggregate_player_totals(
    partition: str,
    metrics: Iterable[HandPlayerMetric],
    strict: bool = False,
) -> List[PlayerPartitionTotal]:
    """
    Sum hand metrics into one ``PlayerPartitionTotal`` per player.

    ``user_name``/``network_id`` come from the player's first hand in
    ``(hand_id, player_id)`` order.

    Returns:
        Totals ordered by player id
    """
    by_player: "OrderedDict[int, List[HandPlayerMetric]]" = OrderedDict()
    for metric in sorted(metrics, key=_row_order):
        by_player.setdefault(metric.player_id, []).append(metric)

    totals = []
    for player_id in sorted(by_player):
        hands = by_player[player_id]
        first = hands[0]
        _check_descriptive(player_id, first, hands[1:], ("user_name", "network_id"), strict)

        starts = [m.start_time for m in hands if m.start_time is not None]
        ends = [m.end_time for m in hands if m.end_time is not None]
        totals.append(PlayerPartitionTotal(
            partition=partition,
            user_id=player_id,
            user_name=first.user_name,
            network_id=first.network_id,
            total_bet=sum((m.total_bet for m in hands), ZERO),
            total_win=sum((m.total_win for m in hands), ZERO),
            total_rake=sum((m.total_rake for m in hands), ZERO),
            hand_count=len(hands),
            earliest_start=min(starts) if starts else None,
            latest_end=max(ends) if ends else None,
        ))

    return totals


def aggregate_partition(
    partition: str,
    hands: Iterable[HandRecord],
    query=None,
    strict: bool = False,
) -> List[PlayerPartitionTotal]:
    """
    Run both grouping stages over the hands of one partition.

    Args:
        partition: Partition name (recorded on each total)
        hands: Hand documents read from the partition
        query: Optional ``HandQuery``; hands it rejects are skipped and only
            its players are expanded
        strict: Fail on descriptive-field disagreements

    Returns:
        One total per player present in the partition
    """
    user_ids: Optional[set] = None
    if query is not None:
        user_ids = set(query.user_ids)

    rows: List[HandPlayerRow] = []
    hands_seen = hands_used = 0
    for hand in hands:
        hands_seen += 1
        if query is not None and not query.matches(hand):
            continue
        hands_used += 1
        rows.extend(expand_hand(hand, user_ids))

    metrics = group_hand_rows(rows, strict=strict)
    totals = aggregate_player_totals(partition, metrics, strict=strict)

    logger.info(
        "[%s] %s hands read, %s matched, %s hand-player records, %s players",
        partition, hands_seen, hands_used, len(metrics), len(totals),
    )
    return totals
