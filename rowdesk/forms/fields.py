"""
Column-to-input mapping for generated record forms.

Each editable column becomes a `FieldSpec`: which input control to show, the
control's parse/format behavior, and whether the control is required.
System-owned columns never become fields, and in create mode neither do
columns the server fills from a default.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from rowdesk.domain.models import ColumnDescriptor, ColumnKind


class FormMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


class InputKind(str, Enum):
    BOOLEAN_SELECT = "boolean_select"
    DATETIME_LOCAL = "datetime-local"
    NUMBER = "number"
    TEXT = "text"


_INPUT_FOR_KIND = {
    ColumnKind.BOOLEAN: InputKind.BOOLEAN_SELECT,
    ColumnKind.TIMESTAMP: InputKind.DATETIME_LOCAL,
    ColumnKind.NUMERIC: InputKind.NUMBER,
    ColumnKind.TEXT: InputKind.TEXT,
}

# (value, label) pairs of the tri-state boolean select.
BOOLEAN_OPTIONS: Tuple[Tuple[str, str], ...] = (
    ("", "Select..."),
    ("true", "True"),
    ("false", "False"),
)


def normalize_value(value: Any) -> Any:
    """Empty input means NULL; everything else passes through untouched."""
    return None if value == "" else value


class FieldSpec(BaseModel):
    name: str
    input_kind: InputKind
    required: bool
    data_type: str
    default: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def label(self) -> str:
        return self.name

    @property
    def help_text(self) -> str:
        text = f"Type: {self.data_type}"
        if self.default:
            text += f" (Default: {self.default})"
        return text

    @property
    def options(self) -> Tuple[Tuple[str, str], ...]:
        return BOOLEAN_OPTIONS if self.input_kind is InputKind.BOOLEAN_SELECT else ()

    def parse(self, raw: str) -> Any:
        """
        Turn control text into a draft value.

        Only the boolean select interprets its input; numbers and timestamps
        stay strings for the database to cast.
        """
        value = normalize_value(raw)
        if value is None or self.input_kind is not InputKind.BOOLEAN_SELECT:
            return value
        lowered = str(value).strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ValueError(f"{self.name}: choose true or false")

    def format(self, value: Any) -> str:
        """Render a draft value back into control text."""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


def is_editable(column: ColumnDescriptor, mode: FormMode) -> bool:
    if column.is_system:
        return False
    if mode is FormMode.CREATE and column.column_default is not None:
        return False
    return True


def map_column(column: ColumnDescriptor) -> FieldSpec:
    return FieldSpec(
        name=column.name,
        input_kind=_INPUT_FOR_KIND[column.kind],
        required=not column.is_nullable,
        data_type=column.data_type,
        default=column.column_default,
    )


def build_fields(columns: Sequence[ColumnDescriptor], mode: FormMode) -> List[FieldSpec]:
    """Editable fields in column order."""
    return [map_column(column) for column in columns if is_editable(column, mode)]


def excluded_names(columns: Sequence[ColumnDescriptor], mode: FormMode) -> List[str]:
    return [column.name for column in columns if not is_editable(column, mode)]


__all__ = [
    "BOOLEAN_OPTIONS",
    "FieldSpec",
    "FormMode",
    "InputKind",
    "build_fields",
    "excluded_names",
    "is_editable",
    "map_column",
    "normalize_value",
]
