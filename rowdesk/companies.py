"""
Tenant directory.

Lists, creates and deletes rows of the tenant table (`companies` by default),
the ids the device dashboard is scoped by.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from rowdesk.config import Settings
from rowdesk.domain.models import Record
from rowdesk.errors import FetchError, WriteError
from rowdesk.infrastructure.abstract import Backend
from rowdesk.utils.logging import get_logger

log = get_logger(__name__)

LOAD_FAILED = "Failed to load companies"
CREATE_FAILED = "Failed to create company"
DELETE_FAILED = "Failed to delete company"
DELETE_PROMPT = "Are you sure you want to delete this company? This action cannot be undone."


class CompanyDirectory:
    def __init__(self, backend: Backend, settings: Settings) -> None:
        self._backend = backend
        self.table = settings.tenant_table
        self._limit = settings.fetch_limit

    async def list(self) -> List[Record]:
        """Tenants ordered by name."""
        try:
            return await self._backend.fetch_rows(self.table, self._limit, order_by="name")
        except Exception as exc:  # noqa: BLE001 - normalize collaborator failures
            log.exception("Error loading companies", extra={"table": self.table})
            raise FetchError(LOAD_FAILED) from exc

    async def create(self, name: str, description: Optional[str] = None) -> Record:
        """
        Insert a tenant and return the stored row.

        Blank names are rejected with ValueError; a blank description is
        left out so the column keeps its default.
        """
        name = name.strip()
        if not name:
            raise ValueError("Company name is required")
        record: Record = {"name": name}
        if description and description.strip():
            record["description"] = description.strip()
        try:
            created = await self._backend.insert_row(self.table, record)
        except Exception as exc:  # noqa: BLE001 - normalize collaborator failures
            log.exception("Error creating company", extra={"table": self.table})
            raise WriteError(CREATE_FAILED) from exc
        log.info("[COMPANY CREATED] %s", name, extra={"company_id": created.get("id")})
        return created

    async def delete(
        self,
        company_id: Any,
        confirm: Callable[[str], bool],
        alert: Callable[[str], None],
    ) -> bool:
        if not confirm(DELETE_PROMPT):
            return False
        try:
            await self._backend.delete_row(self.table, company_id)
        except Exception:  # noqa: BLE001 - reported through the alert callback
            log.exception("Error deleting company", extra={"company_id": company_id})
            alert(DELETE_FAILED)
            return False
        return True


__all__ = [
    "CREATE_FAILED",
    "CompanyDirectory",
    "DELETE_FAILED",
    "DELETE_PROMPT",
    "LOAD_FAILED",
]
