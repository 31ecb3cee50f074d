"""
Pytest configuration for rowdesk.

Provides fixtures for:
- Settings with test-specific overrides
- In-memory Backend and ChangeFeed implementations for unit tests
- Database connection management for integration tests
"""

from __future__ import annotations

import asyncio
import itertools
import os
from typing import Any, Dict, Generator, List, Optional, Tuple

import psycopg
import pytest

from rowdesk.config import Settings
from rowdesk.domain.events import ChangeNotification
from rowdesk.domain.models import ColumnDescriptor, Record
from rowdesk.errors import SubscriptionError
from rowdesk.infrastructure.abstract import ChangeCallback, ChangeFilter, LostCallback

WIDGET_COLUMNS = [
    ColumnDescriptor(
        name="id",
        data_type="integer",
        is_nullable=False,
        column_default="nextval('widgets_id_seq'::regclass)",
    ),
    ColumnDescriptor(name="name", data_type="text", is_nullable=False),
    ColumnDescriptor(name="type", data_type="text", is_nullable=False),
    ColumnDescriptor(name="raw_value", data_type="double precision", is_nullable=True),
    ColumnDescriptor(
        name="created_at",
        data_type="timestamp with time zone",
        is_nullable=False,
        column_default="now()",
    ),
    ColumnDescriptor(
        name="updated_at",
        data_type="timestamp with time zone",
        is_nullable=False,
        column_default="now()",
    ),
]

WIDGET_ROWS = [
    {"id": 1, "name": "Sensor A", "type": "co2", "raw_value": 10.0},
    {"id": 2, "name": "Sensor B", "type": "humidity", "raw_value": 45.0},
    {"id": 3, "name": "sensor c", "type": "co2", "raw_value": None},
]

DEVICE_COLUMNS = [
    ColumnDescriptor(name="id", data_type="uuid", is_nullable=False, column_default="gen_random_uuid()"),
    ColumnDescriptor(name="name", data_type="text", is_nullable=False),
    ColumnDescriptor(name="type", data_type="text", is_nullable=False),
    ColumnDescriptor(name="raw_value", data_type="double precision"),
    ColumnDescriptor(name="status", data_type="boolean"),
    ColumnDescriptor(
        name="company_id",
        data_type="integer",
        is_nullable=False,
        foreign_table="companies",
        foreign_column="id",
    ),
]


COMPANY_COLUMNS = [
    ColumnDescriptor(name="id", data_type="integer", is_nullable=False, column_default="nextval('companies_id_seq'::regclass)"),
    ColumnDescriptor(name="name", data_type="text", is_nullable=False),
    ColumnDescriptor(name="description", data_type="text"),
]

class FakeBackend:
    """
    In-memory `Backend`.

    `failures` maps an operation name to the exception it should raise.
    `fetch_gates` holds one optional Event per upcoming `fetch_rows` call;
    a gated call snapshots its rows first and returns them once released.
    """

    def __init__(
        self,
        columns: Optional[Dict[str, List[ColumnDescriptor]]] = None,
        rows: Optional[Dict[str, List[Record]]] = None,
    ) -> None:
        self.columns: Dict[str, List[ColumnDescriptor]] = dict(columns or {})
        self.rows: Dict[str, List[Record]] = {
            table: [dict(row) for row in table_rows] for table, table_rows in (rows or {}).items()
        }
        self.failures: Dict[str, Exception] = {}
        self.fetch_gates: List[Optional[asyncio.Event]] = []
        self.calls: List[Tuple[Any, ...]] = []
        self._ids = itertools.count(1000)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    async def list_tables(self) -> List[str]:
        self.calls.append(("list_tables",))
        self._maybe_fail("list_tables")
        return sorted(self.columns)

    async def describe_columns(self, table: str) -> List[ColumnDescriptor]:
        self.calls.append(("describe_columns", table))
        self._maybe_fail("describe_columns")
        return list(self.columns.get(table, []))

    async def fetch_rows(
        self,
        table: str,
        limit: int,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[Record]:
        self.calls.append(("fetch_rows", table, limit, filters, order_by))
        self._maybe_fail("fetch_rows")
        rows = [dict(row) for row in self.rows.get(table, [])]
        if filters:
            rows = [
                row
                for row in rows
                if all(str(row.get(column)) == str(value) for column, value in filters.items())
            ]
        if order_by:
            rows.sort(key=lambda row: str(row.get(order_by)))
        gate = self.fetch_gates.pop(0) if self.fetch_gates else None
        if gate is not None:
            await gate.wait()
        return rows[:limit]

    async def fetch_row(self, table: str, row_id: Any) -> Optional[Record]:
        self.calls.append(("fetch_row", table, row_id))
        self._maybe_fail("fetch_row")
        for row in self.rows.get(table, []):
            if str(row.get("id")) == str(row_id):
                return dict(row)
        return None

    async def insert_row(self, table: str, record: Record) -> Record:
        self.calls.append(("insert_row", table, dict(record)))
        self._maybe_fail("insert_row")
        row = {"id": next(self._ids), **record}
        self.rows.setdefault(table, []).append(row)
        return dict(row)

    async def update_row(self, table: str, row_id: Any, changes: Record) -> None:
        self.calls.append(("update_row", table, row_id, dict(changes)))
        self._maybe_fail("update_row")
        for row in self.rows.get(table, []):
            if str(row.get("id")) == str(row_id):
                row.update(changes)

    async def delete_row(self, table: str, row_id: Any) -> None:
        self.calls.append(("delete_row", table, row_id))
        self._maybe_fail("delete_row")
        self.rows[table] = [
            row for row in self.rows.get(table, []) if str(row.get("id")) != str(row_id)
        ]


class FakeSubscription:
    def __init__(self, feed: "FakeChangeFeed", key: int, table: str) -> None:
        self._feed = feed
        self._key = key
        self.table = table

    async def unsubscribe(self) -> None:
        self._feed.log.append(("unsubscribe", self.table))
        self._feed.subscribers.pop(self._key, None)
        self._feed.lost_callbacks.pop(self._key, None)


class FakeChangeFeed:
    """
    In-memory `ChangeFeed`; `publish` plays the role of the database trigger.

    `subscribe_gates` maps a table to an Event that its next `subscribe` call
    waits on before registering.
    """

    def __init__(self) -> None:
        self.subscribers: Dict[int, Tuple[str, ChangeCallback, Optional[ChangeFilter]]] = {}
        self.log: List[Tuple[str, str]] = []
        self.failure: Optional[Exception] = None
        self.subscribe_gates: Dict[str, asyncio.Event] = {}
        self.lost_callbacks: Dict[int, LostCallback] = {}
        self._keys = itertools.count(1)

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        change_filter: Optional[ChangeFilter] = None,
        on_lost: Optional[LostCallback] = None,
    ) -> FakeSubscription:
        gate = self.subscribe_gates.pop(table, None)
        if gate is not None:
            await gate.wait()
        if self.failure is not None:
            raise self.failure
        key = next(self._keys)
        self.subscribers[key] = (table, callback, change_filter)
        if on_lost is not None:
            self.lost_callbacks[key] = on_lost
        self.log.append(("subscribe", table))
        return FakeSubscription(self, key, table)

    def active_tables(self) -> List[str]:
        return [table for table, _, _ in self.subscribers.values()]

    def lose_connection(self) -> None:
        """Drop every subscription the way a lost LISTEN connection would."""
        lost = list(self.lost_callbacks.values())
        self.subscribers.clear()
        self.lost_callbacks.clear()
        for on_lost in lost:
            on_lost(SubscriptionError("Change feed connection was lost"))

    def publish(
        self,
        table: str,
        type: str,
        record: Optional[Record] = None,
        old_record: Optional[Record] = None,
    ) -> None:
        notification = ChangeNotification(
            type=type, schema_name="public", table=table, record=record, old_record=old_record
        )
        event = notification.to_event()
        for subscribed_table, callback, change_filter in list(self.subscribers.values()):
            if subscribed_table != table:
                continue
            if change_filter is not None and not change_filter.matches(notification):
                continue
            callback(event)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        db_name="rowdesk_test",
        fetch_limit=100,
        page_size=20,
        company_id=None,
        log_level="DEBUG",
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend(columns={"widgets": WIDGET_COLUMNS}, rows={"widgets": WIDGET_ROWS})


@pytest.fixture
def backend_factory() -> type:
    """The FakeBackend class, for tests that need their own schema."""
    return FakeBackend


@pytest.fixture
def device_backend() -> FakeBackend:
    return FakeBackend(
        columns={"iot_devices": DEVICE_COLUMNS, "companies": COMPANY_COLUMNS},
        rows={
            "companies": [
                {"id": 8, "name": "Globex", "description": None},
                {"id": 7, "name": "Acme", "description": "Sensors everywhere"},
            ],
            "iot_devices": [
                {"id": "d1", "name": "Office CO2", "type": "co2", "raw_value": 1500, "status": True, "company_id": 7},
                {"id": "d2", "name": "Lab Humidity", "type": "humidity", "raw_value": 45, "status": True, "company_id": 7},
                {"id": "d3", "name": "Front Door", "type": "door", "raw_value": 1, "status": False, "company_id": 7},
                {"id": "d4", "name": "Mystery", "type": "unknown_sensor", "raw_value": 3, "status": None, "company_id": 7},
                {"id": "d5", "name": "Other Tenant", "type": "co2", "raw_value": 500, "status": True, "company_id": 8},
            ]
        },
    )


@pytest.fixture
def feed() -> FakeChangeFeed:
    return FakeChangeFeed()


@pytest.fixture
def failing_feed() -> FakeChangeFeed:
    fake = FakeChangeFeed()
    fake.failure = SubscriptionError("listener connection refused")
    return fake


# Integration fixtures


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "rowdesk"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;")
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def widgets_table(db_connection: psycopg.Connection) -> Generator[str, None, None]:
    """
    Create a fresh `rowdesk_it_widgets` table referencing `rowdesk_it_companies`.
    """
    db_connection.execute("DROP TABLE IF EXISTS public.rowdesk_it_widgets")
    db_connection.execute("DROP TABLE IF EXISTS public.rowdesk_it_companies")
    db_connection.execute(
        """
        CREATE TABLE public.rowdesk_it_companies (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL
        )
        """
    )
    db_connection.execute(
        """
        CREATE TABLE public.rowdesk_it_widgets (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            raw_value DOUBLE PRECISION,
            status BOOLEAN,
            company_id INTEGER REFERENCES public.rowdesk_it_companies (id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )
    db_connection.execute("INSERT INTO public.rowdesk_it_companies (name) VALUES ('Acme')")
    yield "rowdesk_it_widgets"
    db_connection.execute("DROP TABLE IF EXISTS public.rowdesk_it_widgets")
    db_connection.execute("DROP TABLE IF EXISTS public.rowdesk_it_companies")
