"""
Domain package for rowdesk.

Exports column metadata, row, device, session-context, and change-event
models used across the console. Keep this package focused on data
definitions and validation concerns.
"""

from rowdesk.domain.events import (
    ChangeEvent,
    ChangeNotification,
    DeleteEvent,
    InsertEvent,
    UpdateEvent,
    parse_notification,
)
from rowdesk.domain.models import (
    SYSTEM_COLUMNS,
    ColumnDescriptor,
    ColumnKind,
    DeviceReading,
    Record,
    SessionContext,
    TableSummary,
    humanize,
)

__all__ = [
    "ChangeEvent",
    "ChangeNotification",
    "ColumnDescriptor",
    "ColumnKind",
    "DeleteEvent",
    "DeviceReading",
    "InsertEvent",
    "Record",
    "SessionContext",
    "SYSTEM_COLUMNS",
    "TableSummary",
    "UpdateEvent",
    "humanize",
    "parse_notification",
]
