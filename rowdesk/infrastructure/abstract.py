"""
Collaborator interfaces rowdesk depends on.

`Backend` covers schema introspection and row CRUD; `ChangeFeed` covers
push notifications of row changes. `PostgresBackend` and `PostgresChangeFeed`
are the production implementations; tests supply in-memory ones.
"""

from __future__ import annotations

from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from pydantic import BaseModel, ConfigDict

from rowdesk.domain.events import ChangeEvent, ChangeNotification
from rowdesk.domain.models import ColumnDescriptor, Record
from rowdesk.errors import SubscriptionError

ChangeCallback = Callable[[ChangeEvent], None]
LostCallback = Callable[[SubscriptionError], None]


class ChangeFilter(BaseModel):
    """
    Equality filter narrowing a subscription, e.g. `company_id = <tenant>`.

    Values are compared by their string form so an integer tenant key matches
    the JSON text a notification carries.
    """

    column: str
    value: Any

    model_config = ConfigDict(frozen=True)

    def matches(self, notification: ChangeNotification) -> bool:
        row = notification.row()
        if self.column not in row:
            return False
        return str(row[self.column]) == str(self.value)


@runtime_checkable
class Backend(Protocol):
    """
    Remote procedures for schema introspection and row storage.

    Implementations raise `IntrospectionError`, `FetchError`, or `WriteError`
    rather than driver-specific exceptions.
    """

    async def list_tables(self) -> List[str]:
        """Every table name in the user schema, unfiltered."""
        ...

    async def describe_columns(self, table: str) -> List[ColumnDescriptor]:
        """Column metadata in ordinal order; `[]` for an unknown table."""
        ...

    async def fetch_rows(
        self,
        table: str,
        limit: int,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[Record]:
        """Plain select with optional equality filters and ordering."""
        ...

    async def fetch_row(self, table: str, row_id: Any) -> Optional[Record]:
        """A single row by id, or None."""
        ...

    async def insert_row(self, table: str, record: Record) -> Record:
        ...

    async def update_row(self, table: str, row_id: Any, changes: Record) -> None:
        ...

    async def delete_row(self, table: str, row_id: Any) -> None:
        ...


@runtime_checkable
class Subscription(Protocol):
    table: str

    async def unsubscribe(self) -> None:
        ...


@runtime_checkable
class ChangeFeed(Protocol):
    """Per-table stream of row changes."""

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        change_filter: Optional[ChangeFilter] = None,
        on_lost: Optional[LostCallback] = None,
    ) -> Subscription:
        """
        Start delivering `ChangeEvent`s for `table` to `callback`.

        Raises `SubscriptionError` when the feed cannot be set up. If delivery
        stops later, `on_lost` is called once with the reason.
        """
        ...


SaveCallback = Callable[[Record], Awaitable[None]]


__all__ = [
    "Backend",
    "ChangeCallback",
    "ChangeFeed",
    "ChangeFilter",
    "LostCallback",
    "SaveCallback",
    "Subscription",
]
