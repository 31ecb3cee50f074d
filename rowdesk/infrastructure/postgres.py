"""
PostgreSQL implementation of the `Backend` collaborator.

Schema introspection reads `information_schema`; row access composes
identifiers with `psycopg.sql` so table and column names are always quoted.
Values are normalized to JSON-friendly types (timestamps as ISO strings,
UUIDs as text) so rows fetched here compare equal to rows delivered by the
change feed.
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

import psycopg
from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from rowdesk.domain.models import ColumnDescriptor, Record
from rowdesk.errors import FetchError, IntrospectionError, WriteError
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)

_LIST_TABLES_SQL = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""

_DESCRIBE_COLUMNS_SQL = """
    SELECT
        c.column_name AS name,
        c.data_type,
        c.is_nullable = 'YES' AS is_nullable,
        c.column_default,
        fk.foreign_table,
        fk.foreign_column
    FROM information_schema.columns c
    LEFT JOIN (
        SELECT DISTINCT ON (kcu.table_schema, kcu.table_name, kcu.column_name)
            kcu.table_schema,
            kcu.table_name,
            kcu.column_name,
            ccu.table_name AS foreign_table,
            ccu.column_name AS foreign_column
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
            ON kcu.constraint_name = tc.constraint_name
            AND kcu.table_schema = tc.table_schema
        JOIN information_schema.constraint_column_usage ccu
            ON ccu.constraint_name = tc.constraint_name
            AND ccu.table_schema = tc.table_schema
        WHERE tc.constraint_type = 'FOREIGN KEY'
    ) fk
        ON fk.table_schema = c.table_schema
        AND fk.table_name = c.table_name
        AND fk.column_name = c.column_name
    WHERE c.table_schema = %s AND c.table_name = %s
    ORDER BY c.ordinal_position
"""


def _normalize(value: Any) -> Any:
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def normalize_row(row: Dict[str, Any]) -> Record:
    """Convert driver values into the plain types a Record holds."""
    return {key: _normalize(value) for key, value in row.items()}


class PostgresBackend:
    """
    `Backend` over a psycopg async connection pool.

    The pool is owned by the caller (see `rowdesk.infrastructure.open_backend`).
    """

    def __init__(self, pool: AsyncConnectionPool, schema: str = "public") -> None:
        self._pool = pool
        self._schema = schema

    def _table(self, table: str) -> sql.Identifier:
        return sql.Identifier(self._schema, table)

    async def list_tables(self) -> List[str]:
        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute(_LIST_TABLES_SQL, (self._schema,))
                rows = await cur.fetchall()
        except psycopg.Error as exc:
            raise IntrospectionError(f"Failed to list tables: {exc}") from exc
        return [row["table_name"] for row in rows]

    async def describe_columns(self, table: str) -> List[ColumnDescriptor]:
        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute(_DESCRIBE_COLUMNS_SQL, (self._schema, table))
                rows = await cur.fetchall()
        except psycopg.Error as exc:
            raise IntrospectionError(f"Failed to describe '{table}': {exc}") from exc
        return [ColumnDescriptor.model_validate(row) for row in rows]

    async def fetch_rows(
        self,
        table: str,
        limit: int,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[Record]:
        query = sql.SQL("SELECT * FROM {table}").format(table=self._table(table))
        params: List[Any] = []
        if filters:
            clauses = [
                sql.SQL("{column} = %s").format(column=sql.Identifier(column))
                for column in filters
            ]
            query += sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses)
            params.extend(filters.values())
        if order_by:
            query += sql.SQL(" ORDER BY {column}").format(column=sql.Identifier(order_by))
        query += sql.SQL(" LIMIT %s")
        params.append(limit)

        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute(query, params)
                rows = await cur.fetchall()
        except psycopg.Error as exc:
            raise FetchError(f"Failed to fetch rows from '{table}': {exc}") from exc
        return [normalize_row(row) for row in rows]

    async def fetch_row(self, table: str, row_id: Any) -> Optional[Record]:
        query = sql.SQL("SELECT * FROM {table} WHERE id = %s").format(table=self._table(table))
        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute(query, (row_id,))
                row = await cur.fetchone()
        except psycopg.Error as exc:
            raise FetchError(f"Failed to fetch '{table}' row {row_id}: {exc}") from exc
        return normalize_row(row) if row is not None else None

    async def insert_row(self, table: str, record: Record) -> Record:
        if record:
            query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING *").format(
                table=self._table(table),
                columns=sql.SQL(", ").join(map(sql.Identifier, record)),
                values=sql.SQL(", ").join(sql.Placeholder() * len(record)),
            )
        else:
            query = sql.SQL("INSERT INTO {table} DEFAULT VALUES RETURNING *").format(
                table=self._table(table)
            )
        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute(query, list(record.values()))
                row = await cur.fetchone()
        except psycopg.Error as exc:
            raise WriteError(f"Failed to insert into '{table}': {exc}") from exc
        log.info("Row inserted", extra={"table": table})
        return normalize_row(row) if row is not None else {}

    async def update_row(self, table: str, row_id: Any, changes: Record) -> None:
        if not changes:
            return
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s").format(
            table=self._table(table),
            assignments=sql.SQL(", ").join(
                sql.SQL("{column} = %s").format(column=sql.Identifier(column))
                for column in changes
            ),
        )
        try:
            async with self._pool.connection() as conn:
                await conn.execute(query, [*changes.values(), row_id])
        except psycopg.Error as exc:
            raise WriteError(f"Failed to update '{table}' row {row_id}: {exc}") from exc
        log.info("Row updated", extra={"table": table, "row_id": row_id})

    async def delete_row(self, table: str, row_id: Any) -> None:
        query = sql.SQL("DELETE FROM {table} WHERE id = %s").format(table=self._table(table))
        try:
            async with self._pool.connection() as conn:
                await conn.execute(query, (row_id,))
        except psycopg.Error as exc:
            raise WriteError(f"Failed to delete '{table}' row {row_id}: {exc}") from exc
        log.info("Row deleted", extra={"table": table, "row_id": row_id})


__all__ = ["PostgresBackend", "normalize_row"]
