"""
Immersion Facilitée — PostgreSQL / PostGIS access

One process-wide ThreadedConnectionPool, configured from IF_DB_* variables
(defaults target the local docker-compose PostGIS service).  init_pool()
probes the agencies table and PostGIS before reporting the store usable.

Usage:
    from . import db

    if db.init_pool():
        with db.get_conn() as conn:
            with conn.cursor(cursor_factory=db.extras.RealDictCursor) as cur:
                cur.execute("SELECT id, name FROM agencies")
                rows = cur.fetchall()
"""

from __future__ import annotations

import logging
import os

from psycopg2 import extras, pool  # noqa: F401  (extras used by repositories)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

DB_CONFIG = {
    "host": os.environ.get("IF_DB_HOST", "localhost"),
    "port": int(os.environ.get("IF_DB_PORT", "5432")),
    "dbname": os.environ.get("IF_DB_NAME", "immersion-db"),
    "user": os.environ.get("IF_DB_USER", "postgres"),
    "password": os.environ.get("IF_DB_PASSWORD", "pg-password"),
}

_PROBE_SQL = "SELECT postgis_version(), (SELECT count(*) FROM agencies)"

_pool: pool.ThreadedConnectionPool | None = None


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def init_pool(minconn: int = 1, maxconn: int = 5) -> bool:
    """
    Open the pool and probe the store.

    False when the server is unreachable, PostGIS is missing or the
    agencies table does not exist; the pool is then left closed.
    """
    global _pool
    try:
        _pool = pool.ThreadedConnectionPool(minconn, maxconn, **DB_CONFIG)
        probe = _pool.getconn()
        try:
            with probe.cursor() as cur:
                cur.execute(_PROBE_SQL)
                postgis, agency_count = cur.fetchone()
            probe.rollback()
        finally:
            _pool.putconn(probe)
    except Exception as e:
        logger.warning("Database unavailable (%s:%s/%s): %s",
                       DB_CONFIG["host"], DB_CONFIG["port"], DB_CONFIG["dbname"], e)
        close_pool(quiet=True)
        return False

    logger.info(
        "Connected to %s:%s/%s as %s (PostGIS %s, %d agencies)",
        DB_CONFIG["host"],
        DB_CONFIG["port"],
        DB_CONFIG["dbname"],
        DB_CONFIG["user"],
        postgis,
        agency_count,
    )
    return True


def close_pool(quiet: bool = False) -> None:
    global _pool
    if _pool is None:
        return
    try:
        _pool.closeall()
    except Exception:
        if not quiet:
            raise
        logger.debug("Error while closing a half-open pool", exc_info=True)
    finally:
        _pool = None
    if not quiet:
        logger.info("Database pool closed")


def is_available() -> bool:
    return _pool is not None


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class get_conn:
    """
    Borrow a pooled connection for one transaction.

    The transaction is committed if the block completes and rolled back if
    it raises; the exception is not swallowed.
    """

    def __enter__(self):
        if _pool is None:
            raise RuntimeError("Database pool not initialized; call db.init_pool() first")
        self._pool = _pool
        self.conn = self._pool.getconn()
        return self.conn

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.conn.commit()
            else:
                self.conn.rollback()
        finally:
            self._pool.putconn(self.conn)
        return False
