"""
Database connection factory utilities for Seedflow.

Centralizes the PostgreSQL DSN, a process-wide connection pool with lifecycle
management, and a retrying single-connection helper used to wait for the server before the
pool opens. The PoolManager singleton closes its pool on interpreter exit.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Optional

import psycopg
from psycopg import Connection, sql
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from seedflow.config import get_settings
from seedflow.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn() -> str:
    """Compose a DSN string from settings."""
    settings = get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def apply_statement_timeout(cur: psycopg.Cursor, timeout_ms: int) -> None:
    """Bound statements on this session; 0 or less leaves the server default."""
    if timeout_ms and timeout_ms > 0:
        cur.execute(sql.SQL("SET statement_timeout = {}").format(sql.Literal(int(timeout_ms))))


class PoolManager:
    """
    Thread-safe singleton for the shared connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pool = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(
        self, min_size: int = 1, max_size: int = 4, conninfo: Optional[str] = None
    ) -> ConnectionPool:
        """
        Get or create the synchronous connection pool.

        Parameters
        ----------
        min_size : int
            Minimum number of idle connections to keep.
        max_size : int
            Maximum total connections in the pool.
        conninfo : str, optional
            DSN override; defaults to the DSN built from settings.
        """
        with self._lock:
            if self._pool is None:
                dsn = conninfo or build_dsn()
                wait_for_database(dsn)
                self._pool = ConnectionPool(
                    conninfo=dsn,
                    min_size=min_size,
                    max_size=max_size,
                    open=True,
                )
                log.debug("Connection pool opened", extra={"min_size": min_size, "max_size": max_size})
            return self._pool

    def close_all(self) -> None:
        """
        Close the managed pool and release resources.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            if self._pool is not None:
                pool, self._pool = self._pool, None
                try:
                    pool.close()
                except psycopg.Error:
                    log.warning("Failed to close connection pool cleanly", exc_info=True)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(conninfo: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(conninfo or build_dsn())


def wait_for_database(conninfo: Optional[str] = None) -> None:
    """Block until the server answers a trivial query, retrying transient failures."""
    with get_sync_connection(conninfo) as conn:
        conn.execute("SELECT 1")
    log.debug("Database reachable")


def get_sync_pool(
    min_size: int = 1, max_size: int = 4, conninfo: Optional[str] = None
) -> ConnectionPool:
    """Get or create the shared connection pool via PoolManager."""
    return PoolManager().get_pool(min_size=min_size, max_size=max_size, conninfo=conninfo)


__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "build_dsn",
    "get_sync_connection",
    "get_sync_pool",
    "wait_for_database",
]
