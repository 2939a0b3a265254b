"""
Run configuration for the user statistics report.

A ``ReportConfig`` is built once per run (from an optional YAML file plus
environment overrides) and passed explicitly into the store and pipeline.
"""
import os
import logging
from typing import Dict, List, Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rakestats.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_GAME_TYPE = "RING"
DEFAULT_PARTITION_PREFIX = "game_"
DEFAULT_CSV_TEMPLATE = "user_stats_{date}.csv"

# PBCI roster used when no user ids are passed on the command line
DEFAULT_USER_IDS = [
    4815318, 5904209, 4826404, 4795548, 4794933, 4821545, 4818286,
    5997854, 4795769, 4797275, 4795447, 4800231, 4916635, 4827307,
    4798815, 4795847, 4807177, 4807833, 5078287, 4820784, 4794539,
    5998805, 4883380, 4866909, 4838441, 4815523, 4815339, 4818693,
    4817189, 4816997, 4817340, 4798145, 4805362, 4818022, 4794844,
    4807636, 4799794, 4796970, 4815857, 4806619, 4804826, 4823223,
    4816169, 4799478, 5911717, 4800477, 4904763, 4799274, 4818109,
    5998279, 5896453, 4932934, 4941180, 4820307, 4801304, 4807955,
    4801747, 4895351, 4877851, 4808125, 5732419, 4815526, 4807266,
    4797088, 5999024, 4797327, 4796305, 4800017, 4818076, 4795014,
    4796940,
]

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "DATABASE_URL": ("store", "dsn"),
    "RAKESTATS_STORE_BACKEND": ("store", "backend"),
    "RAKESTATS_DATA_DIR": ("store", "data_dir"),
    "RAKESTATS_MAX_WORKERS": (None, "max_workers"),
    "RAKESTATS_OUTPUT_DIR": (None, "output_dir"),
}


class StoreConfig(BaseModel):
    """Where the monthly hand partitions live"""
    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["postgres", "jsonl"] = "postgres"
    dsn: Optional[str] = None
    data_dir: str = "data"
    partition_prefix: str = DEFAULT_PARTITION_PREFIX
    min_connections: int = Field(default=1, ge=1)
    max_connections: int = Field(default=8, ge=1)
    connect_timeout: int = Field(default=30, ge=1)   # seconds
    statement_timeout_ms: int = Field(default=300_000, ge=0)


class ReportConfig(BaseModel):
    """Immutable settings for one report run"""
    model_config = ConfigDict(frozen=True, extra="forbid")

    store: StoreConfig = StoreConfig()
    game_type: str = DEFAULT_GAME_TYPE
    default_user_ids: List[int] = Field(default_factory=lambda: list(DEFAULT_USER_IDS))
    max_workers: int = Field(default=4, ge=1)
    strict_invariants: bool = False
    output_dir: str = "."
    csv_filename_template: str = DEFAULT_CSV_TEMPLATE

    @field_validator("default_user_ids")
    @classmethod
    def _unique_ids(cls, value: List[int]) -> List[int]:
        # keep roster order, drop repeats
        return list(dict.fromkeys(value))


def _apply_env(raw: Dict, env: Mapping[str, str]) -> Dict:
    """Overlay environment variables on the raw YAML mapping."""
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        target = raw.setdefault(section, {}) if section else raw
        target[key] = value
        logger.debug(f"[config] {var} overrides {section + '.' if section else ''}{key}")
    return raw


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> ReportConfig:
    """
    Load and validate the report configuration.

    Args:
        path: Optional YAML file; missing keys fall back to defaults
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated ``ReportConfig``

    Raises:
        ConfigError: unreadable file, invalid YAML or invalid values
    """
    env = os.environ if env is None else env
    raw: Dict = {}

    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        logger.info(f"Loaded config from {path}")

    raw = _apply_env(raw, env)

    try:
        return ReportConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
