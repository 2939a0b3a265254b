"""
Pydantic schemas for raw hand documents.

Documents are read from the store with their short keys (``gid``, ``users``,
``gd`` ...).  Each model exposes descriptive field names and accepts the raw
keys through aliases.  Missing or malformed values never fail validation:
amounts fall back to ``0``, text and timestamps to ``None``.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from rakestats.partition.months import parse_timestamp

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

UNCALLED_ACTION = "uncalledAmt"
SHOWDOWN_STATE = "Show"


def to_money(value: Any) -> Decimal:
    """Coerce a stored amount (number, numeric string, Decimal128 JSON) to ``Decimal``."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, dict):
        value = value.get("$numberDecimal", value.get("$numberDouble", value.get("$numberInt")))
        if value is None:
            return ZERO
    if isinstance(value, float):
        # go through repr so 0.1 stays 0.1
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.debug(f"Unparseable amount {value!r}, using 0")
        return ZERO
    return amount if amount.is_finite() else ZERO


def to_player_id(value: Any) -> Optional[int]:
    """Normalise a stored player id to ``int`` (``None`` when absent/invalid)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dict):
        value = value.get("$numberLong", value.get("$numberInt"))
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return None
        return int(number) if number.is_integer() else None


def player_key(value: Any) -> Optional[str]:
    """String identity of a player id, equal for ``123``, ``"123"`` and ``123.0``."""
    pid = to_player_id(value)
    if pid is not None:
        return str(pid)
    text = to_text(value)
    return text.strip() if text else None


def to_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text if text.strip() else None


def _documents(value: Any) -> list:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


Money = Annotated[Decimal, BeforeValidator(to_money)]
PlayerId = Annotated[Optional[int], BeforeValidator(to_player_id)]
Text = Annotated[Optional[str], BeforeValidator(to_text)]
Timestamp = Annotated[Optional[datetime], BeforeValidator(parse_timestamp)]


class _RawModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class WagerEvent(_RawModel):
    """One entry of the hand's action log (``gd``)."""
    player_id: PlayerId = Field(default=None, alias="pid")
    action: Text = Field(default=None, alias="an")
    amount: Money = Field(default=ZERO, alias="amt")

    @property
    def signed_amount(self) -> Decimal:
        """Amount with returned (uncalled) chips counted negative."""
        return -self.amount if self.action == UNCALLED_ACTION else self.amount


class WinnerEntry(_RawModel):
    """A player's share of a pot (``winners``, ``mrwinners``, ``winnerlist``)."""
    player_id: PlayerId = Field(default=None, alias="uid")
    player_key: Optional[str] = None
    amount: Money = Field(default=ZERO, alias="amt")

    @model_validator(mode="before")
    @classmethod
    def _keep_identity(cls, data: Any) -> Any:
        if isinstance(data, dict) and "player_key" not in data:
            data = dict(data)
            data["player_key"] = player_key(data.get("uid", data.get("player_id")))
        return data


class PotDistribution(_RawModel):
    """One pot of ``potwinamtplayerlist``."""
    winners: Annotated[List[WinnerEntry], BeforeValidator(_documents)] = Field(
        default_factory=list, alias="winnerlist"
    )


class Participant(_RawModel):
    """A seat occupancy in the hand (``users``); a player may appear more than once."""
    player_id: PlayerId = Field(default=None, alias="uid")
    name: Text = Field(default=None, alias="un")
    network_id: Text = Field(default=None, alias="nid")
    session_id: Text = Field(default=None, alias="id")
    posted_small_blind: Money = Field(default=ZERO, alias="sbamt")
    posted_big_blind: Money = Field(default=ZERO, alias="bbamt")
    posted_post_big_blind: Money = Field(default=ZERO, alias="pbbamt")
    profit_loss: Money = Field(default=ZERO, alias="pl")
    rake_contribution: Money = Field(default=ZERO, alias="ramt")


class HandRecord(_RawModel):
    """Complete hand document as stored in a monthly partition."""
    # Metadata
    hand_id: Text = Field(default=None, alias="gid")
    game_type: Text = Field(default=None, alias="gt")
    bonus_pool: Optional[bool] = Field(default=None, alias="bp")
    game_state: Text = Field(default=None, alias="gs")
    start_time: Timestamp = Field(default=None, alias="st")
    end_time: Timestamp = Field(default=None, alias="et")

    # Table info
    table_id: Text = Field(default=None, alias="tid")
    config_id: Text = Field(default=None, alias="cid")
    game_format: Text = Field(default=None, alias="gv")
    game_variant: Text = Field(default=None, alias="cn")
    small_blind: Money = Field(default=ZERO, alias="sb")
    big_blind: Money = Field(default=ZERO, alias="bb")
    ante: Money = Field(default=ZERO, alias="ante")
    min_bb: Optional[Money] = Field(default=None, alias="minBB")
    max_bb: Optional[Money] = Field(default=None, alias="maxBB")

    # Players and settlement
    participants: Annotated[List[Participant], BeforeValidator(_documents)] = Field(
        default_factory=list, alias="users"
    )
    wager_events: Annotated[List[WagerEvent], BeforeValidator(_documents)] = Field(
        default_factory=list, alias="gd"
    )
    pot_winners: Annotated[List[WinnerEntry], BeforeValidator(_documents)] = Field(
        default_factory=list, alias="winners"
    )
    multi_run_winners: Annotated[List[WinnerEntry], BeforeValidator(_documents)] = Field(
        default_factory=list, alias="mrwinners"
    )
    pot_distributions: Annotated[List[PotDistribution], BeforeValidator(_documents)] = Field(
        default_factory=list, alias="potwinamtplayerlist"
    )
    rake_adjustment_total: Money = Field(default=ZERO, alias="gramt")

    @field_validator("bonus_pool", mode="before")
    @classmethod
    def _flag(cls, value):
        # only a real boolean counts; anything else is unknown (None)
        if value is True or value is False:
            return value
        return None

    @property
    def is_showdown(self) -> bool:
        return self.game_state == SHOWDOWN_STATE

    def player_ids(self) -> List[int]:
        """Distinct participant ids in seating order."""
        seen: List[int] = []
        for p in self.participants:
            if p.player_id is not None and p.player_id not in seen:
                seen.append(p.player_id)
        return seen

    @classmethod
    def from_document(cls, doc: dict) -> "HandRecord":
        """Build a record from a raw store document (Mongo ``_id`` and unknown keys ignored)."""
        return cls.model_validate(doc)
