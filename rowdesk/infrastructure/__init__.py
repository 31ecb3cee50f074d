"""
Infrastructure package for rowdesk.

Centralizes database connectivity (pool, listener connection), the
PostgreSQL backend, and the LISTEN/NOTIFY change feed. Keep this layer
focused on I/O and resource management, decoupled from view logic.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

from rowdesk.config import Settings, get_settings
from rowdesk.infrastructure.abstract import (
    Backend,
    ChangeCallback,
    ChangeFeed,
    ChangeFilter,
    SaveCallback,
    Subscription,
)
from rowdesk.infrastructure.change_feed import PostgresChangeFeed, install_change_triggers
from rowdesk.infrastructure.db_factory import (
    build_dsn,
    get_async_connection,
    get_listener_connection,
    open_async_pool,
)
from rowdesk.infrastructure.postgres import PostgresBackend


@asynccontextmanager
async def open_backend(
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
) -> AsyncIterator[Tuple[PostgresBackend, PostgresChangeFeed]]:
    """
    Yield a connected backend and change feed, closing both on exit.
    """
    settings = settings or get_settings()
    pool = await open_async_pool(settings, dsn_override=dsn_override)
    feed = PostgresChangeFeed(
        settings.change_channel, dsn_override=dsn_override, schema=settings.db_schema
    )
    try:
        yield PostgresBackend(pool, schema=settings.db_schema), feed
    finally:
        await feed.close()
        await pool.close()


__all__ = [
    "Backend",
    "ChangeCallback",
    "ChangeFeed",
    "ChangeFilter",
    "PostgresBackend",
    "PostgresChangeFeed",
    "SaveCallback",
    "Subscription",
    "build_dsn",
    "get_async_connection",
    "get_listener_connection",
    "install_change_triggers",
    "open_async_pool",
    "open_backend",
]
