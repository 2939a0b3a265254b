import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2 import pool

from rakestats.config import StoreConfig

logger = logging.getLogger(__name__)


class DatabasePool:
    """
    PostgreSQL connection pool owned by one report run.

    Partition workers each borrow a connection, so ``max_connections`` should
    be at least the worker count.

    Configuration (from ``StoreConfig``):
    - dsn: connection string (``DATABASE_URL``)
    - min_connections / max_connections
    - connect_timeout: seconds
    - statement_timeout_ms: server-side query timeout, 0 disables it
    """

    def __init__(self, store_config: StoreConfig):
        self.config = store_config
        self._pool: Optional[pool.ThreadedConnectionPool] = None

    @property
    def initialized(self) -> bool:
        return self._pool is not None

    def initialize(self):
        """Open the pool (idempotent)"""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return

        if not self.config.dsn:
            raise ValueError("DATABASE_URL / store.dsn not set")

        extra = {}
        if self.config.statement_timeout_ms:
            extra["options"] = f"-c statement_timeout={self.config.statement_timeout_ms}"

        try:
            self._pool = pool.ThreadedConnectionPool(
                minconn=self.config.min_connections,
                maxconn=self.config.max_connections,
                dsn=self.config.dsn,
                connect_timeout=self.config.connect_timeout,
                **extra,
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise

        logger.info(
            "✓ Database connection pool initialized: min=%s, max=%s, timeout=%ss",
            self.config.min_connections,
            self.config.max_connections,
            self.config.connect_timeout,
        )

    def get_connection(self):
        """
        Get a connection from the pool.

        Raises:
            psycopg2.pool.PoolError: If no connections available (pool exhausted)
            RuntimeError: If pool not initialized
        """
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        try:
            return self._pool.getconn()
        except pool.PoolError as e:
            logger.error(f"Connection pool exhausted: {e}")
            raise

    def return_connection(self, conn):
        """Return a connection to the pool."""
        if conn is None:
            return
        if self._pool is None:
            logger.warning("Attempting to return connection but pool not initialized")
            conn.close()
            return
        self._pool.putconn(conn)

    @contextmanager
    def connection(self) -> Iterator:
        """Borrow a connection for the duration of a ``with`` block."""
        conn = self.get_connection()
        try:
            yield conn
        finally:
            # read-only work: drop any open transaction before reuse
            try:
                conn.rollback()
            except psycopg2.Error:
                logger.debug("Rollback on returned connection failed", exc_info=True)
            self.return_connection(conn)

    def close_all(self):
        """Close all connections in the pool (called at shutdown)"""
        if self._pool is None:
            return
        try:
            self._pool.closeall()
            logger.info("✓ Database connection pool closed")
        finally:
            self._pool = None
