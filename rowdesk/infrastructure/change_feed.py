"""
LISTEN/NOTIFY change feed.

A trigger on each watched table publishes a JSON notification on one
channel (see `install_change_triggers`). `PostgresChangeFeed` keeps a single
asyncpg connection listening on that channel and fans notifications out to
per-table subscribers. Notifications carry whole rows; when a row would push
the payload past PostgreSQL's 8000-byte NOTIFY limit the trigger sends a
`truncated` notification holding only the row id instead, so the write itself
never fails.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Dict, Optional

import asyncpg
import psycopg
from psycopg import sql
from pydantic import ValidationError

from rowdesk.domain.events import parse_notification
from rowdesk.errors import SubscriptionError
from rowdesk.infrastructure.abstract import ChangeCallback, ChangeFilter, LostCallback
from rowdesk.infrastructure.db_factory import get_listener_connection
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)

TRIGGER_FUNCTION = "rowdesk_notify_change"
TRIGGER_NAME = "rowdesk_change_feed"
NOTIFY_PAYLOAD_LIMIT = 8000

_FUNCTION_SQL = """
CREATE OR REPLACE FUNCTION {function}() RETURNS trigger AS $$
DECLARE
    payload text;
BEGIN
    payload := json_build_object(
        'type', TG_OP,
        'schema', TG_TABLE_SCHEMA,
        'table', TG_TABLE_NAME,
        'record', CASE WHEN TG_OP = 'DELETE' THEN NULL ELSE row_to_json(NEW) END,
        'old_record', CASE WHEN TG_OP = 'INSERT' THEN NULL ELSE row_to_json(OLD) END
    )::text;
    IF octet_length(payload) >= {limit} THEN
        payload := json_build_object(
            'type', TG_OP,
            'schema', TG_TABLE_SCHEMA,
            'table', TG_TABLE_NAME,
            'record', CASE WHEN TG_OP = 'DELETE' THEN NULL
                ELSE json_build_object('id', to_jsonb(NEW) -> 'id') END,
            'old_record', CASE WHEN TG_OP = 'INSERT' THEN NULL
                ELSE json_build_object('id', to_jsonb(OLD) -> 'id') END,
            'truncated', true
        )::text;
    END IF;
    PERFORM pg_notify(TG_ARGV[0], payload);
    RETURN NULL;
END;
$$ LANGUAGE plpgsql
"""


async def install_change_triggers(
    conn: psycopg.AsyncConnection,
    table: str,
    channel: str,
    schema: str = "public",
) -> None:
    """
    Install (or replace) the notify trigger on `schema.table`.

    The trigger function is shared by every table; the channel name is passed
    as a trigger argument.
    """
    function = sql.Identifier(schema, TRIGGER_FUNCTION)
    target = sql.Identifier(schema, table)
    trigger = sql.Identifier(TRIGGER_NAME)

    await conn.execute(
        sql.SQL(_FUNCTION_SQL).format(
            function=function, limit=sql.Literal(NOTIFY_PAYLOAD_LIMIT)
        )
    )
    await conn.execute(
        sql.SQL("DROP TRIGGER IF EXISTS {trigger} ON {target}").format(
            trigger=trigger, target=target
        )
    )
    await conn.execute(
        sql.SQL(
            "CREATE TRIGGER {trigger} AFTER INSERT OR UPDATE OR DELETE ON {target} "
            "FOR EACH ROW EXECUTE FUNCTION {function}({channel})"
        ).format(
            trigger=trigger,
            target=target,
            function=function,
            channel=sql.Literal(channel),
        )
    )
    log.info("Change triggers installed", extra={"table": table, "channel": channel})


class FeedSubscription:
    """Handle returned by `PostgresChangeFeed.subscribe`."""

    def __init__(self, feed: "PostgresChangeFeed", key: int, table: str) -> None:
        self._feed = feed
        self._key = key
        self.table = table

    async def unsubscribe(self) -> None:
        self._feed._remove(self._key)


class PostgresChangeFeed:
    """
    `ChangeFeed` backed by a single asyncpg LISTEN connection.

    The connection is opened lazily on the first subscription and closed by
    `close()`. If it drops, every subscriber's `on_lost` callback is told and
    the next `subscribe` reconnects.
    """

    def __init__(
        self,
        channel: str,
        dsn_override: Optional[str] = None,
        schema: str = "public",
    ) -> None:
        self.channel = channel
        self._dsn_override = dsn_override
        self._schema = schema
        self._conn: Optional[asyncpg.Connection] = None
        self._lock = asyncio.Lock()
        self._keys = itertools.count(1)
        self._subscribers: Dict[
            int, tuple[str, ChangeCallback, Optional[ChangeFilter], Optional[LostCallback]]
        ] = {}

    async def _ensure_listening(self) -> None:
        async with self._lock:
            if self._conn is not None and not self._conn.is_closed():
                return
            self._conn = await get_listener_connection(self._dsn_override)
            await self._conn.add_listener(self.channel, self._on_notify)
            self._conn.add_termination_listener(self._on_terminate)
            log.info("[FEED LISTEN] %s", self.channel, extra={"channel": self.channel})

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        change_filter: Optional[ChangeFilter] = None,
        on_lost: Optional[LostCallback] = None,
    ) -> FeedSubscription:
        try:
            await self._ensure_listening()
        except (OSError, asyncpg.PostgresError) as exc:
            raise SubscriptionError(f"Failed to subscribe to '{table}': {exc}") from exc
        key = next(self._keys)
        self._subscribers[key] = (table, callback, change_filter, on_lost)
        log.debug("[FEED SUBSCRIBE] %s", table, extra={"table": table, "subscription": key})
        return FeedSubscription(self, key, table)

    def _remove(self, key: int) -> None:
        entry = self._subscribers.pop(key, None)
        if entry is not None:
            log.debug("[FEED UNSUBSCRIBE] %s", entry[0], extra={"table": entry[0], "subscription": key})

    def _on_notify(self, connection: Any, pid: int, channel: str, payload: str) -> None:
        del connection, pid, channel
        try:
            notification = parse_notification(payload)
            event = notification.to_event()
        except (ValidationError, ValueError):
            log.warning("Dropping malformed change notification", exc_info=True)
            return
        if notification.schema_name != self._schema:
            return

        for key, (table, callback, change_filter, _) in list(self._subscribers.items()):
            if table != notification.table:
                continue
            if change_filter is not None and not change_filter.matches(notification):
                continue
            try:
                callback(event)
            except Exception:  # noqa: BLE001 - a broken subscriber must not stop delivery
                log.exception(
                    "Change subscriber failed", extra={"table": table, "subscription": key}
                )

    def _on_terminate(self, connection: Any) -> None:
        if connection is not self._conn:
            return
        self._conn = None
        lost = dict(self._subscribers)
        self._subscribers.clear()
        log.warning(
            "[FEED LOST] %s", self.channel, extra={"channel": self.channel, "subscribers": len(lost)}
        )
        error = SubscriptionError(f"Change feed connection on '{self.channel}' was lost")
        for key, (table, _, _, on_lost) in lost.items():
            if on_lost is None:
                continue
            try:
                on_lost(error)
            except Exception:  # noqa: BLE001 - every subscriber must hear about the loss
                log.exception(
                    "Change subscriber failed", extra={"table": table, "subscription": key}
                )

    async def close(self) -> None:
        self._subscribers.clear()
        if self._conn is not None:
            conn, self._conn = self._conn, None
            conn.remove_termination_listener(self._on_terminate)
            if not conn.is_closed():
                await conn.remove_listener(self.channel, self._on_notify)
                await conn.close()


__all__ = [
    "FeedSubscription",
    "NOTIFY_PAYLOAD_LIMIT",
    "PostgresChangeFeed",
    "TRIGGER_FUNCTION",
    "TRIGGER_NAME",
    "install_change_triggers",
]
