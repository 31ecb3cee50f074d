"""
Forms package for rowdesk: column-to-field mapping and the record form.
"""

from rowdesk.forms.fields import (
    FieldSpec,
    FormMode,
    InputKind,
    build_fields,
    excluded_names,
    map_column,
    normalize_value,
)
from rowdesk.forms.record_form import RecordForm, open_form

__all__ = [
    "FieldSpec",
    "FormMode",
    "InputKind",
    "RecordForm",
    "build_fields",
    "excluded_names",
    "map_column",
    "normalize_value",
    "open_form",
]
