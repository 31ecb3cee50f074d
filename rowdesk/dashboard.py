"""
Device dashboard.

Shows the selected tenant's devices grouped by type, each drawn by the
widget registered for its type tag. Rows come from a `TableSession` filtered
to the tenant, so live updates for other tenants never reach this view.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from rowdesk.config import Settings, get_settings
from rowdesk.domain.models import DeviceReading, SessionContext
from rowdesk.infrastructure.abstract import Backend, ChangeFeed, ChangeFilter
from rowdesk.session import TableSession
from rowdesk.utils.logging import get_logger
from rowdesk.widgets.abstract import Presentation
from rowdesk.widgets.registry import render_reading

log = get_logger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load devices"


def group_label(device_type: str) -> str:
    """'air_quality' -> 'AIR QUALITY'."""
    return device_type.replace("_", " ").upper()


class DeviceDashboard:
    def __init__(
        self,
        backend: Backend,
        feed: ChangeFeed,
        context: SessionContext,
        settings: Optional[Settings] = None,
    ) -> None:
        self.context = context
        self._settings = settings or get_settings()
        self.table = self._settings.device_table
        company_id = context.company_id
        self.session = TableSession(
            backend,
            feed,
            limit=self._settings.fetch_limit,
            filters={self._settings.tenant_column: company_id} if company_id else None,
            order_by="name",
            change_filter=(
                ChangeFilter(column=self._settings.tenant_column, value=company_id)
                if company_id
                else None
            ),
        )
        self.expanded: Set[str] = set()
        self._sections_initialized = False

    @property
    def needs_company(self) -> bool:
        return self.context.company_id is None

    @property
    def error_message(self) -> Optional[str]:
        return LOAD_ERROR_MESSAGE if self.session.error is not None else None

    async def open(self) -> bool:
        if self.needs_company:
            await self.session.close()
            self.session.records.replace([])
            return False
        return await self.session.open(self.table)

    async def refresh(self) -> bool:
        return await self.session.refresh()

    async def close(self) -> None:
        await self.session.close()

    def devices(self) -> List[DeviceReading]:
        readings = []
        for row in self.session.records:
            try:
                readings.append(DeviceReading.model_validate(row))
            except ValidationError:
                log.warning("Skipping malformed device row", extra={"row_id": row.get("id")})
        return readings

    def groups(self) -> List[Tuple[str, List[DeviceReading]]]:
        grouped: Dict[str, List[DeviceReading]] = {}
        for device in self.devices():
            grouped.setdefault(group_label(device.type), []).append(device)
        ordered = sorted(grouped.items())
        if not self._sections_initialized and ordered:
            self.expanded = {label for label, _ in ordered}
            self._sections_initialized = True
        return ordered

    def toggle_section(self, label: str) -> bool:
        """Flip a section open/closed; returns whether it is now expanded."""
        if label in self.expanded:
            self.expanded.discard(label)
            return False
        self.expanded.add(label)
        return True

    def render(self, now: Optional[datetime] = None) -> List[Tuple[str, List[Presentation]]]:
        return [
            (label, [render_reading(device, now) for device in devices])
            for label, devices in self.groups()
        ]


__all__ = ["DeviceDashboard", "LOAD_ERROR_MESSAGE", "group_label"]
