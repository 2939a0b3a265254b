"""
Per-player monetary metrics derived from a single hand document.

A hand is first expanded into one row per matching participant entry (a
player re-seated in the same hand produces several rows).  Amounts read from
hand-wide lists (action log, winners) belong to the player, not to a seat, so
they are attached to the player's first row only; per-seat amounts (posted
blinds, rake contribution) stay on their own row.  Summing a player's rows
therefore counts every amount exactly once.
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Set, Tuple

from rakestats.parse.schemas import SHOWDOWN_STATE, ZERO, HandRecord, WinnerEntry, player_key
from rakestats.stats.schemas import HandPlayerFields, HandPlayerRow

logger = logging.getLogger(__name__)


def _sum_for_player(entries: Iterable[WinnerEntry], player_id: int) -> Decimal:
    return sum((e.amount for e in entries if e.player_id == player_id), ZERO)


def bet_amount(hand: HandRecord, player_id: int) -> Decimal:
    """Net chips wagered: action log amounts, uncalled returns negated."""
    return sum(
        (e.signed_amount for e in hand.wager_events if e.player_id == player_id),
        ZERO,
    )


def win_amount(hand: HandRecord, player_id: int) -> Decimal:
    return _sum_for_player(hand.pot_winners, player_id)


def multi_run_win_amount(hand: HandRecord, player_id: int) -> Decimal:
    """Winnings from the second board of a run-it-twice pot."""
    return _sum_for_player(hand.multi_run_winners, player_id)


def bonus_pool_win_secondary(hand: HandRecord, player_id: int) -> Decimal:
    """
    Share of the first pot of ``potwinamtplayerlist`` net of the rake adjustment.

    Only pot index 0 is considered.  The hand's rake adjustment is split
    evenly across twice the number of winners of that pot and deducted from
    each matching entry.

    Args:
        hand: Hand document
        player_id: Player to evaluate

    Returns:
        Adjusted amount (0 when the hand has no pot distribution)
    """
    if not hand.pot_distributions:
        return ZERO

    first_pot = hand.pot_distributions[0]
    winners = first_pot.winners
    if winners:
        adjustment = hand.rake_adjustment_total / (2 * len(winners))
    else:
        adjustment = ZERO

    target = player_key(player_id)
    return sum(
        (e.amount - adjustment for e in winners if e.player_key == target),
        ZERO,
    )


def derive_totals(fields: HandPlayerFields) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Per-hand ``(total_bet, total_win, total_rake)`` for a grouped hand x player.

    Only hands flagged ``bp: false`` are standard: posted blinds plus wagers
    and both boards' winnings.  Every other hand (flag true, missing or not a
    boolean) uses the bonus-pool formulas: ante plus wagers, the primary and
    adjusted secondary winnings.  Rake is doubled only for hands flagged
    ``bp: true`` that reached showdown.
    """
    if fields.bonus_pool is False:
        total_bet = (
            fields.posted_small_blind
            + fields.posted_big_blind
            + fields.posted_post_big_blind
            + fields.bet_amount
        )
        total_win = fields.multi_run_win_amount + fields.win_amount
        total_rake = fields.rake_amount
    else:
        total_bet = fields.ante + fields.bet_amount
        total_win = fields.bonus_pool_win_primary + fields.bonus_pool_win_secondary
        if fields.bonus_pool is True and fields.game_state == SHOWDOWN_STATE:
            total_rake = fields.rake_amount * 2
        else:
            total_rake = fields.rake_amount

    return total_bet, total_win, total_rake


def hand_fields(hand: HandRecord) -> dict:
    """Hand-level descriptive values copied onto every row of the hand."""
    return {
        "hand_id": hand.hand_id or "",
        "game_type": hand.game_type,
        "start_time": hand.start_time,
        "end_time": hand.end_time,
        "config_id": hand.config_id,
        "game_format": hand.game_format,
        "game_variant": hand.game_variant,
        "table_id": hand.table_id,
        "small_blind": hand.small_blind,
        "big_blind": hand.big_blind,
        "ante": hand.ante,
        "bonus_pool": hand.bonus_pool,
        "game_state": hand.game_state,
    }


def expand_hand(hand: HandRecord, user_ids: Optional[Set[int]] = None) -> List[HandPlayerRow]:
    """
    Expand a hand into one row per participant entry.

    Args:
        hand: Hand document
        user_ids: Restrict to these players (``None`` keeps everyone)

    Returns:
        Rows in participant order
    """
    base = hand_fields(hand)
    rows: List[HandPlayerRow] = []
    occurrences = {}

    for participant in hand.participants:
        pid = participant.player_id
        if pid is None:
            logger.debug(f"Hand {hand.hand_id}: participant without uid skipped")
            continue
        if user_ids is not None and pid not in user_ids:
            continue

        occurrence = occurrences.get(pid, 0)
        occurrences[pid] = occurrence + 1

        if occurrence == 0:
            wagered = bet_amount(hand, pid)
            won = win_amount(hand, pid)
            amounts = {
                "bet_amount": wagered,
                "win_amount": won,
                "multi_run_win_amount": multi_run_win_amount(hand, pid),
                "bonus_pool_win_primary": won,
                "bonus_pool_win_secondary": bonus_pool_win_secondary(hand, pid),
            }
        else:
            amounts = {}

        rows.append(HandPlayerRow(
            **base,
            **amounts,
            player_id=pid,
            occurrence=occurrence,
            user_name=participant.name,
            network_id=participant.network_id,
            session_id=participant.session_id,
            posted_small_blind=participant.posted_small_blind,
            posted_big_blind=participant.posted_big_blind,
            posted_post_big_blind=participant.posted_post_big_blind,
            profit_loss=participant.profit_loss,
            rake_amount=participant.rake_contribution,
        ))

    return rows
