"""
Domain models for rowdesk.

Column metadata returned by schema introspection, the row representation
shared by every layer, device readings for the dashboard, and the explicit
per-session context object.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Record = Dict[str, Any]

SYSTEM_COLUMNS = frozenset({"id", "created_at", "updated_at"})

_NUMERIC_TYPES = frozenset(
    {"smallint", "integer", "bigint", "numeric", "decimal", "real", "double precision"}
)


class ColumnKind(str, Enum):
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    NUMERIC = "numeric"
    TEXT = "text"


def humanize(name: str) -> str:
    """Turn a snake_case column name into a header label ("raw_value" -> "Raw Value")."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("_"))


class ColumnDescriptor(BaseModel):
    """
    Metadata about one table column, as reported by the database.
    """

    name: str = Field(..., description="Column name.")
    data_type: str = Field(..., description="Declared SQL type, e.g. 'integer'.")
    is_nullable: bool = Field(True, description="Whether NULL is accepted.")
    column_default: Optional[str] = Field(None, description="Server-side default expression.")
    foreign_table: Optional[str] = Field(None, description="Referenced table, if a foreign key.")
    foreign_column: Optional[str] = Field(None, description="Referenced column, if a foreign key.")

    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> ColumnKind:
        declared = self.data_type.lower()
        if declared == "boolean":
            return ColumnKind.BOOLEAN
        if "timestamp" in declared:
            return ColumnKind.TIMESTAMP
        if declared in _NUMERIC_TYPES:
            return ColumnKind.NUMERIC
        return ColumnKind.TEXT

    @property
    def is_system(self) -> bool:
        return self.name in SYSTEM_COLUMNS

    @property
    def is_foreign_key(self) -> bool:
        return self.foreign_table is not None


class TableSummary(BaseModel):
    """A user table together with its columns."""

    name: str
    columns: List[ColumnDescriptor] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def preview(self, count: int = 3) -> List[ColumnDescriptor]:
        return self.columns[:count]

    def hidden_count(self, count: int = 3) -> int:
        return max(0, len(self.columns) - count)


class DeviceReading(BaseModel):
    """
    One row of the device table as seen by the dashboard. Read-only.
    """

    id: str
    name: str
    type: str
    raw_value: Optional[float] = None
    status: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return value if value is None else str(value)


class SessionContext(BaseModel):
    """
    Who is using the console and which tenant is selected.

    Created at session start and passed explicitly to the views that need it.
    """

    user_id: Optional[str] = None
    is_admin: bool = False
    company_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


__all__ = [
    "ColumnDescriptor",
    "ColumnKind",
    "DeviceReading",
    "Record",
    "SessionContext",
    "SYSTEM_COLUMNS",
    "TableSummary",
    "humanize",
]
