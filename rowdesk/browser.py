"""
Tabular data browser.

Binds a `TableSession` to a paginated, sortable, filterable grid and wires
the per-row actions: view (detail route), edit (record form), and delete
(confirmed, then left to the live feed to remove from view).
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from rowdesk.config import Settings, get_settings
from rowdesk.domain.models import Record, humanize
from rowdesk.errors import WriteError
from rowdesk.forms.fields import FormMode
from rowdesk.forms.record_form import RecordForm
from rowdesk.infrastructure.abstract import Backend, ChangeFeed
from rowdesk.session import TableSession
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)

ROW_ACTIONS: Tuple[str, ...] = ("view", "edit", "delete")
DELETE_PROMPT = "Are you sure you want to delete this record?"
DELETE_FAILED = "Failed to delete record"
SAVE_FAILED = "Failed to save record"

ConfirmCallback = Callable[[str], bool]
AlertCallback = Callable[[str], None]


class GridColumn(BaseModel):
    field: str
    header: str
    sortable: bool = True
    filterable: bool = True
    actions: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class GridPage(BaseModel):
    rows: List[Record]
    number: int
    page_count: int
    total: int


def _sort_key(field: str) -> Callable[[Record], Tuple[Any, ...]]:
    def key(row: Record) -> Tuple[Any, ...]:
        value = row.get(field)
        if value is None:
            return (1, 0, 0)
        if isinstance(value, (int, float)):
            return (0, 0, value)
        return (0, 1, str(value).lower())

    return key


def detail_route(table: str, row_id: Any) -> str:
    return f"/settings/tables/{table}/{row_id}"


def table_route(table: str) -> str:
    return f"/settings/tables/{table}"


class TableBrowser:
    def __init__(
        self,
        backend: Backend,
        feed: ChangeFeed,
        settings: Optional[Settings] = None,
        confirm: Optional[ConfirmCallback] = None,
        alert: Optional[AlertCallback] = None,
    ) -> None:
        self._backend = backend
        self._settings = settings or get_settings()
        self._confirm = confirm or (lambda message: False)
        self._alert = alert or (lambda message: log.error(message))
        self.page_size = self._settings.page_size
        self.session = TableSession(backend, feed, limit=self._settings.fetch_limit)
        self.sort_field: Optional[str] = None
        self.sort_descending = False
        self.filters: Dict[str, str] = {}

    @property
    def table(self) -> Optional[str]:
        return self.session.table

    async def select_table(self, table: str) -> bool:
        self.sort_field = None
        self.sort_descending = False
        self.filters.clear()
        return await self.session.open(table)

    async def refresh(self) -> bool:
        return await self.session.refresh()

    async def close(self) -> None:
        await self.session.close()

    def grid_columns(self) -> List[GridColumn]:
        columns = [
            GridColumn(field=column.name, header=humanize(column.name))
            for column in self.session.columns
        ]
        columns.append(
            GridColumn(
                field="actions",
                header="Actions",
                sortable=False,
                filterable=False,
                actions=ROW_ACTIONS,
            )
        )
        return columns

    def set_sort(self, field: Optional[str], descending: bool = False) -> None:
        self.sort_field = field
        self.sort_descending = descending

    def set_filter(self, field: str, text: str) -> None:
        if text:
            self.filters[field] = text
        else:
            self.filters.pop(field, None)

    def clear_filters(self) -> None:
        self.filters.clear()

    def visible_rows(self) -> List[Record]:
        rows = list(self.session.records)
        for field, text in self.filters.items():
            needle = text.lower()
            rows = [
                row
                for row in rows
                if row.get(field) is not None and needle in str(row.get(field)).lower()
            ]
        if self.sort_field:
            rows.sort(key=_sort_key(self.sort_field), reverse=self.sort_descending)
        return rows

    def page(self, number: int = 1) -> GridPage:
        """One grid page (1-based); out-of-range numbers are clamped."""
        rows = self.visible_rows()
        page_count = max(1, math.ceil(len(rows) / self.page_size))
        number = min(max(1, number), page_count)
        start = (number - 1) * self.page_size
        return GridPage(
            rows=rows[start : start + self.page_size],
            number=number,
            page_count=page_count,
            total=len(rows),
        )

    def view_route(self, row: Record) -> str:
        return detail_route(self._require_table(), row["id"])

    def _require_table(self) -> str:
        if self.session.table is None:
            raise RuntimeError("No table selected")
        return self.session.table

    def open_create_form(self) -> RecordForm:
        table = self._require_table()

        async def save(draft: Record) -> None:
            try:
                await self._backend.insert_row(table, draft)
            except Exception as exc:  # noqa: BLE001 - reported inside the form
                log.exception("Error saving record", extra={"table": table})
                raise WriteError(SAVE_FAILED) from exc

        return RecordForm(self.session.columns, save, mode=FormMode.CREATE)

    def open_edit_form(self, row: Record) -> RecordForm:
        table = self._require_table()
        row_id = row["id"]

        async def save(draft: Record) -> None:
            try:
                await self._backend.update_row(table, row_id, draft)
            except Exception as exc:  # noqa: BLE001 - reported inside the form
                log.exception("Error saving record", extra={"table": table, "row_id": row_id})
                raise WriteError(SAVE_FAILED) from exc

        return RecordForm(self.session.columns, save, initial=row, mode=FormMode.EDIT)

    async def delete(self, row: Record) -> bool:
        """
        Delete `row` after confirmation.

        The row stays on screen until the change feed reports the delete.
        """
        table = self._require_table()
        if not self._confirm(DELETE_PROMPT):
            return False
        try:
            await self._backend.delete_row(table, row["id"])
        except Exception:  # noqa: BLE001 - reported through the alert callback
            log.exception("Error deleting record", extra={"table": table, "row_id": row["id"]})
            self._alert(DELETE_FAILED)
            return False
        return True


__all__ = [
    "DELETE_FAILED",
    "DELETE_PROMPT",
    "GridColumn",
    "GridPage",
    "ROW_ACTIONS",
    "SAVE_FAILED",
    "TableBrowser",
    "detail_route",
    "table_route",
]
