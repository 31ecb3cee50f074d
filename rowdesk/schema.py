"""
Schema introspection for the table browser and forms.

Wraps the backend's `list_tables`/`describe_columns` procedures, hides
internal and migration-bookkeeping tables, and builds the tables overview.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional

from rowdesk.config import Settings, get_settings
from rowdesk.domain.models import ColumnDescriptor, TableSummary
from rowdesk.errors import IntrospectionError
from rowdesk.infrastructure.abstract import Backend
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)


def is_user_table(name: str, reserved_prefix: str, system_tables: Iterable[str]) -> bool:
    if reserved_prefix and name.startswith(reserved_prefix):
        return False
    return name not in set(system_tables)


class SchemaIntrospector:
    """
    Lists user tables and describes their columns. Nothing is cached.
    """

    def __init__(self, backend: Backend, settings: Optional[Settings] = None) -> None:
        self._backend = backend
        self._settings = settings or get_settings()

    async def list_tables(self) -> List[str]:
        try:
            names = await self._backend.list_tables()
        except IntrospectionError:
            raise
        except Exception as exc:  # noqa: BLE001 - normalize collaborator failures
            raise IntrospectionError(f"Failed to list tables: {exc}") from exc
        return [
            name
            for name in names
            if is_user_table(name, self._settings.reserved_prefix, self._settings.system_tables)
        ]

    async def describe_columns(self, table: str) -> List[ColumnDescriptor]:
        try:
            columns = await self._backend.describe_columns(table)
        except IntrospectionError:
            raise
        except Exception as exc:  # noqa: BLE001 - normalize collaborator failures
            raise IntrospectionError(f"Failed to describe '{table}': {exc}") from exc
        return list(columns or [])

    async def overview(self) -> List[TableSummary]:
        """Every user table with its columns, described concurrently."""
        names = await self.list_tables()
        described = await asyncio.gather(*(self.describe_columns(name) for name in names))
        log.debug("Tables described", extra={"tables": len(names)})
        return [
            TableSummary(name=name, columns=columns) for name, columns in zip(names, described)
        ]


__all__ = ["SchemaIntrospector", "is_user_table"]
