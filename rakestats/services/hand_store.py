"""Read access to the monthly hand partitions.

Two backends share the ``HandStore`` interface:

- ``PostgresHandStore``: one table per partition (``game_202506``) with the
  raw hand document in a ``doc JSONB`` column.
- ``JsonlHandStore``: one ``<partition>.jsonl`` file per partition, one hand
  document per line.

A partition that does not exist holds no hands.  Connectivity and query
failures raise ``StoreQueryError`` and fail the whole run.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import FrozenSet, Iterator, Optional

import psycopg2
from psycopg2 import sql
from pydantic import BaseModel, ConfigDict, ValidationError

from rakestats.config import ReportConfig
from rakestats.errors import ConfigError, StoreQueryError
from rakestats.parse.schemas import HandRecord
from rakestats.services.db_pool import DatabasePool

logger = logging.getLogger(__name__)

SAFE_PARTITION = re.compile(r"^[A-Za-z0-9_]+$")


class HandQuery(BaseModel):
    """Filter applied to every partition: game type, players, end-time window."""

    model_config = ConfigDict(frozen=True)

    game_type: str
    user_ids: FrozenSet[int]
    start: datetime
    end: datetime  # exclusive

    def matches(self, hand: HandRecord) -> bool:
        if hand.game_type != self.game_type:
            return False
        if hand.end_time is None or not (self.start <= hand.end_time < self.end):
            return False
        return any(p.player_id in self.user_ids for p in hand.participants)


def _check_partition(partition: str) -> None:
    if not SAFE_PARTITION.match(partition or ""):
        raise StoreQueryError(partition, "invalid partition name")


class HandStore(ABC):
    """Source of hand documents, one partition at a time."""

    @abstractmethod
    def fetch_hands(self, partition: str, query: HandQuery) -> Iterator[HandRecord]:
        """Yield the partition's hands matching *query*."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class JsonlHandStore(HandStore):
    """Partitions stored as ``<data_dir>/<partition>.jsonl`` files."""

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)

    def partition_path(self, partition: str) -> Path:
        _check_partition(partition)
        return self.data_dir / f"{partition}.jsonl"

    def fetch_hands(self, partition: str, query: HandQuery) -> Iterator[HandRecord]:
        path = self.partition_path(partition)
        if not path.exists():
            logger.info(f"[{partition}] no partition file at {path}, skipping")
            return

        skipped = 0
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    if not line.strip():
                        continue
                    try:
                        doc = json.loads(line)
                        hand = HandRecord.from_document(doc)
                    except (json.JSONDecodeError, ValidationError, TypeError) as e:
                        skipped += 1
                        logger.warning(f"[{partition}] line {line_num} skipped: {e}")
                        continue
                    if query.matches(hand):
                        yield hand
        except OSError as e:
            raise StoreQueryError(partition, f"cannot read {path}: {e}") from e

        if skipped:
            logger.warning(f"[{partition}] {skipped} malformed lines skipped")


class PostgresHandStore(HandStore):
    """Partitions stored as PostgreSQL tables of JSONB hand documents."""

    FETCH_SIZE = 2000

    # Only the game type and players are filtered server-side.  ``et`` is
    # stored in several shapes (ISO text, Unix seconds, {"$date": ...}) that
    # cannot all be cast in SQL, so the window is checked by HandQuery.matches.
    _HANDS_SQL = """
        SELECT {column}
        FROM {table}
        WHERE {column}->>'gt' = %(game_type)s
          AND EXISTS (
              SELECT 1
              FROM jsonb_array_elements(
                  CASE WHEN jsonb_typeof({column}->'users') = 'array'
                       THEN {column}->'users' ELSE '[]'::jsonb END
              ) AS u,
              LATERAL (
                  SELECT btrim(COALESCE(
                      u->'uid'->>'$numberLong', u->'uid'->>'$numberInt', u->>'uid'
                  )) AS uid
              ) AS p
              WHERE CASE WHEN p.uid ~ '^-?[0-9]+([.]0*)?$'
                         THEN p.uid::numeric = ANY(%(user_ids)s::numeric[])
                         ELSE FALSE END
          )
    """

    def __init__(self, db_pool: DatabasePool, column: str = "doc", schema: Optional[str] = None):
        self.db_pool = db_pool
        self.column = column
        self.schema = schema

    def _table(self, partition: str) -> sql.Composable:
        if self.schema:
            return sql.Identifier(self.schema, partition)
        return sql.Identifier(partition)

    def _qualified_name(self, partition: str) -> str:
        return f"{self.schema}.{partition}" if self.schema else partition

    def fetch_hands(self, partition: str, query: HandQuery) -> Iterator[HandRecord]:
        _check_partition(partition)
        statement = sql.SQL(self._HANDS_SQL).format(
            table=self._table(partition),
            column=sql.Identifier(self.column),
        )
        params = {
            "game_type": query.game_type,
            "user_ids": sorted(query.user_ids),
        }

        try:
            with self.db_pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT to_regclass(%s)", (self._qualified_name(partition),))
                    if cur.fetchone()[0] is None:
                        logger.info(f"[{partition}] table does not exist, skipping")
                        return

                with conn.cursor(name=f"hands_{partition}") as cur:
                    cur.itersize = self.FETCH_SIZE
                    cur.execute(statement, params)
                    for (doc,) in cur:
                        if isinstance(doc, str):
                            doc = json.loads(doc)
                        try:
                            hand = HandRecord.from_document(doc)
                        except ValidationError as e:
                            logger.warning(f"[{partition}] document skipped: {e}")
                            continue
                        if query.matches(hand):
                            yield hand
        except psycopg2.Error as e:
            raise StoreQueryError(partition, f"query failed: {e}") from e
        except RuntimeError as e:
            # pool not initialized / exhausted
            raise StoreQueryError(partition, str(e)) from e

    def close(self) -> None:
        self.db_pool.close_all()


def build_store(config: ReportConfig) -> HandStore:
    """Create the store configured for this run."""
    store_cfg = config.store
    if store_cfg.backend == "jsonl":
        logger.info(f"Using JSONL partitions from {store_cfg.data_dir}")
        return JsonlHandStore(store_cfg.data_dir)

    if not store_cfg.dsn:
        raise ConfigError("Postgres store selected but no DATABASE_URL / store.dsn given")

    db_pool = DatabasePool(store_cfg)
    try:
        db_pool.initialize()
    except psycopg2.Error as e:
        raise StoreQueryError("*", f"cannot connect: {e}") from e
    return PostgresHandStore(db_pool)
