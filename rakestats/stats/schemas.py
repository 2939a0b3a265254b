"""
Schemas for derived per-hand and per-player records.

Every record is frozen: each pipeline stage builds new records from the
previous stage's output.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from rakestats.parse.schemas import ZERO

# Amounts summed when several rows describe the same hand x player
AMOUNT_FIELDS = (
    "bet_amount",
    "win_amount",
    "multi_run_win_amount",
    "bonus_pool_win_primary",
    "bonus_pool_win_secondary",
    "rake_amount",
    "posted_small_blind",
    "posted_big_blind",
    "posted_post_big_blind",
    "profit_loss",
)

# Values expected to be identical on every row sharing a hand x player key
DESCRIPTIVE_FIELDS = (
    "user_name",
    "network_id",
    "session_id",
    "game_type",
    "start_time",
    "end_time",
    "config_id",
    "game_format",
    "game_variant",
    "table_id",
    "small_blind",
    "big_blind",
    "ante",
    "bonus_pool",
    "game_state",
)


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class HandPlayerFields(_Record):
    """Fields shared by raw rows and grouped hand metrics"""
    hand_id: str
    player_id: int

    # descriptive
    user_name: Optional[str] = None
    network_id: Optional[str] = None
    session_id: Optional[str] = None
    game_type: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    config_id: Optional[str] = None
    game_format: Optional[str] = None
    game_variant: Optional[str] = None
    table_id: Optional[str] = None
    small_blind: Decimal = ZERO
    big_blind: Decimal = ZERO
    ante: Decimal = ZERO
    bonus_pool: Optional[bool] = None  # None: flag missing or not a boolean
    game_state: Optional[str] = None

    # amounts
    bet_amount: Decimal = ZERO
    win_amount: Decimal = ZERO
    multi_run_win_amount: Decimal = ZERO
    bonus_pool_win_primary: Decimal = ZERO
    bonus_pool_win_secondary: Decimal = ZERO
    rake_amount: Decimal = ZERO
    posted_small_blind: Decimal = ZERO
    posted_big_blind: Decimal = ZERO
    posted_post_big_blind: Decimal = ZERO
    profit_loss: Decimal = ZERO

    @property
    def key(self) -> Tuple[str, int]:
        return (self.hand_id, self.player_id)


class HandPlayerRow(HandPlayerFields):
    """One participant occurrence of a player in a hand (before grouping)."""
    occurrence: int = 0


class HandPlayerMetric(HandPlayerFields):
    """One record per hand x player with the derived per-hand totals."""
    total_bet: Decimal = ZERO
    total_win: Decimal = ZERO
    total_rake: Decimal = ZERO
    rows: int = 1


class PlayerTotal(_Record):
    """Per-player totals over some set of hands"""
    user_id: int
    user_name: Optional[str] = None
    network_id: Optional[str] = None
    total_bet: Decimal = ZERO
    total_win: Decimal = ZERO
    total_rake: Decimal = ZERO
    hand_count: int = 0
    earliest_start: Optional[datetime] = None
    latest_end: Optional[datetime] = None

    @property
    def net_result(self) -> Decimal:
        return self.total_win - self.total_bet


class PlayerPartitionTotal(PlayerTotal):
    """Totals for one player inside one monthly partition."""
    partition: str


class PlayerFinalTotal(PlayerTotal):
    """Totals for one player merged across every partition of the report."""
    partitions: Tuple[str, ...] = ()
