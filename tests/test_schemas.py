"""
Tests for raw hand document parsing.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from conftest import D, make_hand, make_user
from rakestats.parse.schemas import HandRecord, WagerEvent, WinnerEntry, player_key, to_money, to_player_id


def test_short_keys_map_to_descriptive_fields():
    doc = make_hand(
        gid=555,
        tid="T9",
        cid="C1",
        gv="NLH",
        cn="Hold'em",
        users=[make_user(7, name="gus", nid="NETX", sbamt=5, pl=-12)],
    )
    h = HandRecord.from_document(doc)
    assert h.hand_id == "555"
    assert h.table_id == "T9"
    assert h.game_format == "NLH"
    assert h.game_variant == "Hold'em"
    assert h.end_time == datetime(2025, 6, 15, 12, 5, tzinfo=timezone.utc)

    seat = h.participants[0]
    assert seat.player_id == 7
    assert seat.name == "gus"
    assert seat.network_id == "NETX"
    assert seat.posted_small_blind == D(5)
    assert seat.profit_loss == D(-12)


def test_missing_fields_default_to_zero_or_none():
    h = HandRecord.from_document({"gid": "x"})
    assert h.participants == []
    assert h.wager_events == []
    assert h.ante == 0
    assert h.rake_adjustment_total == 0
    assert h.start_time is None
    assert h.bonus_pool is None


def test_unknown_keys_and_object_id_ignored():
    h = HandRecord.from_document(make_hand(_id={"$oid": "abc"}, extra_field=1))
    assert h.hand_id == "1001"


@pytest.mark.parametrize(
    "raw, expected",
    [(True, True), (False, False), (None, None), ("true", None), ("false", None), (1, None), (0, None)],
)
def test_bonus_pool_flag(raw, expected):
    assert HandRecord.from_document(make_hand(bp=raw)).bonus_pool is expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        (10, Decimal("10")),
        (0.1, Decimal("0.1")),
        ("2.50", Decimal("2.50")),
        ({"$numberDecimal": "3.75"}, Decimal("3.75")),
        (None, Decimal("0")),
        ("n/a", Decimal("0")),
        (float("nan"), Decimal("0")),
    ],
)
def test_to_money(raw, expected):
    assert to_money(raw) == expected


def test_player_id_normalisation():
    assert to_player_id("4883380") == 4883380
    assert to_player_id(12.0) == 12
    assert to_player_id({"$numberLong": "99"}) == 99
    assert to_player_id("abc") is None
    assert player_key(12) == player_key("12") == player_key(12.0) == "12"


def test_wager_event_signed_amount():
    assert WagerEvent.model_validate({"pid": 1, "an": "bet", "amt": 5}).signed_amount == D(5)
    assert WagerEvent.model_validate({"pid": 1, "an": "uncalledAmt", "amt": 5}).signed_amount == D(-5)


def test_winner_entry_keeps_string_identity():
    entry = WinnerEntry.model_validate({"uid": "00042", "amt": 1})
    assert entry.player_id == 42
    assert entry.player_key == "42"


def test_non_document_list_items_are_skipped():
    h = HandRecord.from_document(make_hand(gd=[None, "junk", {"pid": 1, "an": "bet", "amt": 3}]))
    assert len(h.wager_events) == 1


def test_distinct_player_ids_in_seat_order():
    h = HandRecord.from_document(make_hand(users=[make_user(3), make_user(1), make_user(3)]))
    assert h.player_ids() == [3, 1]


def test_is_showdown():
    assert HandRecord.from_document(make_hand(gs="Show")).is_showdown
    assert not HandRecord.from_document(make_hand(gs="Fold")).is_showdown
