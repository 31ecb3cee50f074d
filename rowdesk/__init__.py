"""
rowdesk - schema-driven admin console and IoT device dashboard for PostgreSQL.

The package introspects a database schema and turns it into:

- A browsable, sortable, filterable grid for every user table
- Generated create/edit forms built from column metadata
- Live updates of the open table through a LISTEN/NOTIFY change feed
- A per-tenant dashboard that draws each IoT device with a type-specific widget
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from rowdesk.browser import TableBrowser
from rowdesk.config import Settings, get_settings
from rowdesk.companies import CompanyDirectory
from rowdesk.dashboard import DeviceDashboard
from rowdesk.detail import ItemDetail
from rowdesk.errors import (
    FetchError,
    IntrospectionError,
    RowdeskError,
    SubscriptionError,
    WriteError,
)
from rowdesk.forms import FieldSpec, FormMode, InputKind, RecordForm
from rowdesk.reconciler import Reconciler, RecordSet
from rowdesk.schema import SchemaIntrospector
from rowdesk.session import TableSession
from rowdesk.utils.logging import configure_logging, get_logger
from rowdesk.widgets import available_widgets, render_reading

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Views
    "CompanyDirectory",
    "DeviceDashboard",
    "ItemDetail",
    "SchemaIntrospector",
    "TableBrowser",
    "TableSession",
    # Forms
    "FieldSpec",
    "FormMode",
    "InputKind",
    "RecordForm",
    # Live updates
    "Reconciler",
    "RecordSet",
    # Widgets
    "available_widgets",
    "render_reading",
    # Errors
    "FetchError",
    "IntrospectionError",
    "RowdeskError",
    "SubscriptionError",
    "WriteError",
    # Logging
    "configure_logging",
    "get_logger",
]
