"""
Single-row detail view.

Loads one row with its column metadata and, for every populated foreign-key
column, the referenced row, so the detail page can show what an id points at.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from rowdesk.browser import table_route
from rowdesk.domain.models import SYSTEM_COLUMNS, ColumnDescriptor, ColumnKind, Record, humanize
from rowdesk.errors import WriteError
from rowdesk.forms.fields import FormMode
from rowdesk.forms.record_form import RecordForm
from rowdesk.infrastructure.abstract import Backend
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)

LOAD_FAILED = "Failed to load item"
NOT_FOUND = "Item not found"
UPDATE_FAILED = "Failed to update item"
DELETE_FAILED = "Failed to delete item"
DELETE_PROMPT = "Are you sure you want to delete this item?"
NOT_SET = "Not set"


class DetailField(BaseModel):
    name: str
    label: str
    display: str
    reference: List[Tuple[str, str]] = []


def format_plain(value: Any) -> str:
    if value is None:
        return NOT_SET
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def format_timestamp(value: Any) -> str:
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return str(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def format_value(column: ColumnDescriptor, value: Any) -> str:
    if value is None:
        return NOT_SET
    if column.kind is ColumnKind.BOOLEAN:
        return "Yes" if value else "No"
    if column.kind is ColumnKind.TIMESTAMP:
        return format_timestamp(value)
    return str(value)


class ItemDetail:
    def __init__(self, backend: Backend, table: str, row_id: Any) -> None:
        self._backend = backend
        self.table = table
        self.row_id = row_id
        self.columns: List[ColumnDescriptor] = []
        self.item: Optional[Record] = None
        self.references: Dict[str, Optional[Record]] = {}
        self.error: Optional[str] = None

    async def load(self) -> bool:
        self.error = None
        try:
            self.columns = await self._backend.describe_columns(self.table)
            self.item = await self._backend.fetch_row(self.table, self.row_id)
        except Exception:  # noqa: BLE001 - rendered as an inline error
            log.exception("Error fetching item", extra={"table": self.table, "row_id": self.row_id})
            self.error = LOAD_FAILED
            return False
        if self.item is None:
            self.error = NOT_FOUND
            return False
        self.references = await self._load_references(self.item)
        return True

    async def _load_references(self, item: Record) -> Dict[str, Optional[Record]]:
        targets = [
            column
            for column in self.columns
            if column.is_foreign_key and item.get(column.name) is not None
        ]
        fetched = await asyncio.gather(
            *(self._reference(column, item[column.name]) for column in targets)
        )
        return {column.name: row for column, row in zip(targets, fetched)}

    async def _reference(self, column: ColumnDescriptor, value: Any) -> Optional[Record]:
        try:
            return await self._backend.fetch_row(column.foreign_table or "", value)
        except Exception:  # noqa: BLE001 - a missing reference only hides the summary
            log.exception(
                "Error fetching referenced data",
                extra={"column": column.name, "foreign_table": column.foreign_table},
            )
            return None

    @property
    def title(self) -> str:
        item = self.item or {}
        return item.get("name") or item.get("title") or f"{self.table} Details"

    def fields(self) -> List[DetailField]:
        item = self.item or {}
        result = []
        for column in self.columns:
            value = item.get(column.name)
            reference: List[Tuple[str, str]] = []
            referenced = self.references.get(column.name)
            if value is not None and column.is_foreign_key and referenced:
                reference = [
                    (humanize(key), format_plain(ref_value))
                    for key, ref_value in referenced.items()
                    if key not in SYSTEM_COLUMNS
                ]
            result.append(
                DetailField(
                    name=column.name,
                    label=humanize(column.name),
                    display=format_value(column, value),
                    reference=reference,
                )
            )
        return result

    def open_edit_form(self) -> RecordForm:
        async def save(draft: Record) -> None:
            try:
                await self._backend.update_row(self.table, self.row_id, draft)
                self.item = await self._backend.fetch_row(self.table, self.row_id)
            except Exception as exc:  # noqa: BLE001 - reported inside the form
                log.exception("Error updating item", extra={"table": self.table})
                raise WriteError(UPDATE_FAILED) from exc

        return RecordForm(self.columns, save, initial=self.item, mode=FormMode.EDIT)

    async def delete(
        self,
        confirm: Callable[[str], bool],
        alert: Callable[[str], None],
    ) -> Optional[str]:
        """Delete the item; returns the table route to go back to, or None."""
        if not confirm(DELETE_PROMPT):
            return None
        try:
            await self._backend.delete_row(self.table, self.row_id)
        except Exception:  # noqa: BLE001 - reported through the alert callback
            log.exception("Error deleting item", extra={"table": self.table})
            alert(DELETE_FAILED)
            return None
        return table_route(self.table)


__all__ = ["DetailField", "ItemDetail", "format_value"]
