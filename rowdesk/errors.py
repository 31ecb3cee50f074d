"""
Error taxonomy for rowdesk.

Infrastructure code converts driver failures into one of these kinds; the
session, browser, form, and CLI layers catch them at their boundary and turn
them into a visible message instead of letting them escape.
"""

from __future__ import annotations


class RowdeskError(Exception):
    """Base class for every failure rowdesk reports to the user."""


class IntrospectionError(RowdeskError):
    """Listing tables or describing columns failed."""


class FetchError(RowdeskError):
    """Reading rows failed."""


class WriteError(RowdeskError):
    """An insert, update, or delete failed."""


class SubscriptionError(RowdeskError):
    """Setting up or tearing down a change-feed subscription failed."""


__all__ = [
    "RowdeskError",
    "IntrospectionError",
    "FetchError",
    "WriteError",
    "SubscriptionError",
]
