"""
Tests for the cross-partition merge and ranking.
"""
from datetime import datetime, timezone

import pytest

from conftest import D
from rakestats.stats.merge import merge_partitions, merge_totals, rank_totals, to_final
from rakestats.stats.schemas import PlayerFinalTotal, PlayerPartitionTotal


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def total(user_id, partition, bet=0, win=0, rake=0, hands=1, start=None, end=None, name=None, nid="NET1"):
    return PlayerPartitionTotal(
        user_id=user_id,
        partition=partition,
        user_name=name if name is not None else f"player{user_id}",
        network_id=nid,
        total_bet=D(bet),
        total_win=D(win),
        total_rake=D(rake),
        hand_count=hands,
        earliest_start=start,
        latest_end=end,
    )


MAY = [
    total(1, "game_202505", bet=100, win=80, rake=5, hands=10,
          start=utc(2025, 5, 30), end=utc(2025, 5, 31), name="alice_old"),
    total(2, "game_202505", bet=40, win=60, rake=2, hands=4,
          start=utc(2025, 5, 29), end=utc(2025, 5, 29)),
]
JUNE = [
    total(1, "game_202506", bet=50, win=20, rake=3, hands=6,
          start=utc(2025, 6, 1), end=utc(2025, 6, 2), name="alice"),
    total(3, "game_202506", bet=10, win=0, rake=9, hands=1,
          start=utc(2025, 6, 3), end=utc(2025, 6, 3)),
]


def test_merge_sums_and_bounds_dates():
    merged = {r.user_id: r for r in merge_partitions([MAY, JUNE])}
    assert sorted(merged) == [1, 2, 3]

    p1 = merged[1]
    assert p1.total_bet == D(150)
    assert p1.total_win == D(100)
    assert p1.total_rake == D(8)
    assert p1.hand_count == 16
    assert p1.earliest_start == utc(2025, 5, 30)
    assert p1.latest_end == utc(2025, 6, 2)
    assert p1.partitions == ("game_202505", "game_202506")
    # name comes from the record with the earliest start
    assert p1.user_name == "alice_old"

    assert merged[2].partitions == ("game_202505",)
    assert merged[3].partitions == ("game_202506",)


def test_merge_is_order_independent():
    assert merge_partitions([MAY, JUNE]) == merge_partitions([JUNE, MAY])
    assert merge_partitions([MAY, JUNE]) == merge_partitions([list(reversed(JUNE)), list(reversed(MAY))])


def test_merge_totals_commutative_and_associative():
    a = total(7, "game_202504", bet=1, rake=1, start=None, end=None, name="zed")
    b = total(7, "game_202505", bet=2, rake=2, start=utc(2025, 5, 2), end=utc(2025, 5, 3), name="bob")
    c = total(7, "game_202506", bet=3, rake=3, start=utc(2025, 5, 2), end=utc(2025, 6, 9), name="amy")

    assert merge_totals(a, b) == merge_totals(b, a)
    left = merge_totals(merge_totals(a, b), c)
    right = merge_totals(a, merge_totals(b, c))
    assert left == right
    # same earliest start: the name breaks the tie
    assert left.user_name == "amy"
    assert left.total_bet == D(6)
    assert left.latest_end == utc(2025, 6, 9)


def test_merge_prefers_known_start_over_missing():
    dated = total(4, "game_202505", start=utc(2025, 5, 1), name="dated")
    undated = total(4, "game_202506", start=None, name="aaa")
    assert merge_totals(undated, dated).user_name == "dated"


def test_merge_rejects_different_players():
    with pytest.raises(ValueError):
        merge_totals(total(1, "game_202505"), total(2, "game_202505"))


def test_player_without_hands_gets_no_row():
    assert merge_partitions([[], []]) == []
    assert [r.user_id for r in merge_partitions([MAY, []])] == [1, 2]


def test_single_partition_total_lifted_to_final():
    final = to_final(MAY[1])
    assert isinstance(final, PlayerFinalTotal)
    assert final.partitions == ("game_202505",)
    assert final.total_rake == D(2)
    assert to_final(final) is final


def test_rank_by_rake_desc_then_user_id():
    records = [
        PlayerFinalTotal(user_id=9, total_rake=D(5)),
        PlayerFinalTotal(user_id=2, total_rake=D(5)),
        PlayerFinalTotal(user_id=5, total_rake=D(12)),
        PlayerFinalTotal(user_id=1, total_rake=D(0)),
    ]
    assert [r.user_id for r in rank_totals(records)] == [5, 2, 9, 1]


def test_rank_empty():
    assert rank_totals([]) == []
