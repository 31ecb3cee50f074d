"""
Database connection factory utilities for rowdesk.

Builds the DSN from settings and hands out the two kinds of connections the
console needs: a psycopg async pool for queries and writes, and a dedicated
asyncpg connection for LISTEN-based change notification.

Connection establishment retries transient failures using tenacity; queries
themselves are never retried.
"""

from __future__ import annotations

from typing import Optional

import asyncpg
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from rowdesk.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


async def open_async_pool(
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Create and open an asynchronous connection pool.

    Parameters
    ----------
    settings : Settings | None
        Source of DSN and pool sizing. Defaults to the cached settings.
    dsn_override : str | None
        Connect somewhere other than the configured database (tests).

    Returns
    -------
    AsyncConnectionPool
        An opened pool whose connections return rows as dicts.
    """
    settings = settings or get_settings()
    pool = AsyncConnectionPool(
        conninfo=dsn_override or build_dsn(settings),
        min_size=settings.db_pool_min,
        max_size=settings.db_pool_max,
        kwargs={"row_factory": dict_row, "autocommit": True},
        open=False,
    )
    await pool.open(wait=False)
    return pool


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
async def get_async_connection(dsn_override: Optional[str] = None) -> psycopg.AsyncConnection:
    """
    Acquire a dedicated psycopg async connection with automatic retry.

    Used for one-off administrative work such as installing change triggers.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return await psycopg.AsyncConnection.connect(
        dsn_override or build_dsn(), autocommit=True, row_factory=dict_row
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((OSError, ConnectionError)),
    reraise=True,
)
async def get_listener_connection(dsn_override: Optional[str] = None) -> asyncpg.Connection:
    """
    Acquire an asyncpg connection for LISTEN/NOTIFY with automatic retry.

    asyncpg is used here because it delivers notifications through
    `add_listener` callbacks on its own event-loop reader.

    Raises
    ------
    ConnectionError
        If connection fails after all retry attempts.
    """
    return await asyncpg.connect(dsn_override or build_dsn())


__all__ = [
    "build_dsn",
    "get_async_connection",
    "get_listener_connection",
    "open_async_pool",
]
