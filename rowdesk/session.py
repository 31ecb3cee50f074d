"""
Scoped table session.

A `TableSession` owns everything tied to the table currently on screen: its
columns, its RecordSet, and its change-feed subscription. Switching tables
goes through `open()`, which awaits the old unsubscribe before subscribing
to the new table, so no event is ever delivered twice. A subscribe that
completes after a newer `open()` or `close()` is released at once.

Fetches are ticketed at initiation. A result is applied only if its ticket is
the newest one issued and the table still matches, so a slow stale fetch can
never overwrite a fresher one. Change events that arrive while a fetch is in
flight are applied at once and also buffered; the buffer is replayed over the
fetched rows when they land.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from rowdesk.domain.events import ChangeEvent
from rowdesk.domain.models import ColumnDescriptor
from rowdesk.errors import FetchError, IntrospectionError, RowdeskError, SubscriptionError
from rowdesk.infrastructure.abstract import (
    Backend,
    ChangeFeed,
    ChangeFilter,
    LostCallback,
    Subscription,
)
from rowdesk.reconciler import Reconciler, RecordSet
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load table data"


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class TableSession:
    def __init__(
        self,
        backend: Backend,
        feed: ChangeFeed,
        limit: int,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        change_filter: Optional[ChangeFilter] = None,
    ) -> None:
        self._backend = backend
        self._feed = feed
        self._limit = limit
        self._filters = filters
        self._order_by = order_by
        self._change_filter = change_filter

        self.table: Optional[str] = None
        self.columns: List[ColumnDescriptor] = []
        self.records = RecordSet()
        self.reconciler = Reconciler(self.records)
        self.state = LoadState.IDLE
        self.error: Optional[RowdeskError] = None
        self.subscription_error: Optional[SubscriptionError] = None

        self._subscription: Optional[Subscription] = None
        self._generation = 0
        self._issued = 0
        self._landed = 0
        self._pending: List[ChangeEvent] = []
        self._listeners: List[Callable[[], None]] = []

    @property
    def loading(self) -> bool:
        return self.state is LoadState.LOADING

    @property
    def error_message(self) -> Optional[str]:
        return LOAD_ERROR_MESSAGE if self.error is not None else None

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Call `callback` whenever the visible rows or columns change."""
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    async def open(self, table: str) -> bool:
        """
        Make `table` the session's table: resubscribe, then load.

        Returns whether the load landed. Failures are stored on the session,
        never raised.
        """
        self._generation += 1
        generation = self._generation
        await self._teardown()
        log.info("[SESSION OPEN] %s", table, extra={"table": table})
        self.table = table
        self.columns = []
        self.records.replace([])
        self.error = None
        self.subscription_error = None
        self._pending.clear()
        await self._subscribe(table, generation)
        if generation != self._generation:
            return False
        return await self._load(table)

    async def refresh(self) -> bool:
        if self.table is None:
            return False
        return await self._load(self.table)

    async def close(self) -> None:
        self._generation += 1
        await self._teardown()
        # Anything still in flight belongs to a session that no longer exists.
        self._issued += 1
        self._landed = self._issued
        self._pending.clear()
        self.table = None
        self.state = LoadState.IDLE

    async def _teardown(self) -> None:
        if self._subscription is None:
            return
        subscription, self._subscription = self._subscription, None
        await self._release(subscription)

    async def _release(self, subscription: Subscription) -> None:
        try:
            await subscription.unsubscribe()
        except Exception as exc:  # noqa: BLE001 - teardown must always finish
            log.warning(
                "Unsubscribe failed",
                extra={"table": subscription.table, "error": str(exc)},
            )

    async def _subscribe(self, table: str, generation: int) -> None:
        try:
            subscription = await self._feed.subscribe(
                table,
                self._callback_for(table, generation),
                self._change_filter,
                on_lost=self._lost_callback_for(table, generation),
            )
        except Exception as exc:  # noqa: BLE001 - surfaced as a non-fatal warning
            if generation != self._generation:
                return
            self.subscription_error = (
                exc if isinstance(exc, SubscriptionError) else SubscriptionError(str(exc))
            )
            log.warning(
                "[SUBSCRIBE FAILED] %s", table, extra={"table": table, "error": str(exc)}
            )
            return
        if generation != self._generation:
            # A later open() or close() ran while this subscribe was pending.
            log.info("[SUBSCRIBE STALE] %s", table, extra={"table": table})
            await self._release(subscription)
            return
        self._subscription = subscription

    def _callback_for(self, table: str, generation: int) -> Callable[[ChangeEvent], None]:
        def on_change(event: ChangeEvent) -> None:
            if generation != self._generation or table != self.table:
                return
            self.handle_event(event)

        return on_change

    def _lost_callback_for(self, table: str, generation: int) -> LostCallback:
        def on_lost(error: SubscriptionError) -> None:
            if generation != self._generation:
                return
            self._subscription = None
            self.subscription_error = error
            log.warning("[SUBSCRIPTION LOST] %s", table, extra={"table": table, "error": str(error)})
            self._notify()

        return on_lost

    def handle_event(self, event: ChangeEvent) -> None:
        if self._landed < self._issued:
            self._pending.append(event)
        if self.reconciler.apply(event):
            self._notify()

    def _is_current(self, ticket: int, table: str) -> bool:
        return ticket == self._issued and table == self.table

    async def _load(self, table: str) -> bool:
        self._issued += 1
        ticket = self._issued
        self.state = LoadState.LOADING
        try:
            try:
                columns = await self._backend.describe_columns(table)
            except IntrospectionError:
                raise
            except Exception as exc:  # noqa: BLE001 - normalize collaborator failures
                raise IntrospectionError(str(exc)) from exc
            try:
                rows = await self._backend.fetch_rows(
                    table, self._limit, filters=self._filters, order_by=self._order_by
                )
            except FetchError:
                raise
            except Exception as exc:  # noqa: BLE001 - normalize collaborator failures
                raise FetchError(str(exc)) from exc
        except RowdeskError as exc:
            if not self._is_current(ticket, table):
                log.info("[FETCH STALE] failure ignored", extra={"table": table, "ticket": ticket})
                return False
            log.error(
                "[FETCH FAILED] %s", table, extra={"table": table, "error": str(exc)}
            )
            self._landed = ticket
            self._pending.clear()
            self.error = exc
            self.state = LoadState.ERROR
            self._notify()
            return False

        if not self._is_current(ticket, table):
            log.info(
                "[FETCH STALE] result discarded",
                extra={"table": table, "ticket": ticket, "latest": self._issued},
            )
            return False

        self.columns = list(columns)
        self.records.replace(rows)
        replayed = self.reconciler.apply_all(self._pending)
        self._pending.clear()
        self._landed = ticket
        self.error = None
        self.state = LoadState.READY
        log.info(
            "[FETCH APPLIED] %s",
            table,
            extra={"table": table, "rows": len(self.records), "replayed": replayed},
        )
        self._notify()
        return True


__all__ = ["LOAD_ERROR_MESSAGE", "LoadState", "TableSession"]
