from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from rowdesk.domain.events import (
    DeleteEvent,
    InsertEvent,
    UpdateEvent,
    parse_notification,
)
from rowdesk.infrastructure.abstract import ChangeFilter


def test_insert_event_requires_id():
    with pytest.raises(ValidationError):
        InsertEvent(record={"name": "no id"})


def test_unknown_operation_is_rejected():
    with pytest.raises(ValidationError):
        parse_notification({"type": "TRUNCATE", "table": "widgets"})


def test_truncated_notification_carries_only_the_id():
    insert = parse_notification(
        {"type": "INSERT", "table": "widgets", "record": {"id": 9}, "truncated": True}
    )
    update = parse_notification(
        {"type": "UPDATE", "table": "widgets", "record": {"id": 9}, "old_record": {"id": 9}, "truncated": True}
    )

    assert insert.truncated is True
    assert insert.to_event() == InsertEvent(record={"id": 9})
    assert update.to_event() == UpdateEvent(id=9, changes={})


def test_notification_maps_to_events():
    insert = parse_notification(
        json.dumps({"type": "INSERT", "schema": "public", "table": "widgets", "record": {"id": 5, "name": "x"}})
    )
    update = parse_notification(
        {"type": "UPDATE", "table": "widgets", "record": {"id": 5, "name": "y"}, "old_record": {"id": 5, "name": "x"}}
    )
    delete = parse_notification(
        {"type": "DELETE", "table": "widgets", "record": None, "old_record": {"id": 5, "name": "y"}}
    )

    assert insert.schema_name == "public"
    assert insert.to_event() == InsertEvent(record={"id": 5, "name": "x"})
    assert update.to_event() == UpdateEvent(id=5, changes={"id": 5, "name": "y"})
    assert delete.to_event() == DeleteEvent(id=5)


def test_delete_notification_without_id_is_malformed():
    notification = parse_notification({"type": "DELETE", "table": "widgets", "old_record": {}})
    with pytest.raises(ValueError):
        notification.to_event()


def test_change_filter_matches_by_string_form():
    notification = parse_notification(
        {"type": "INSERT", "table": "iot_devices", "record": {"id": "d1", "company_id": 7}}
    )
    deleted = parse_notification(
        {"type": "DELETE", "table": "iot_devices", "old_record": {"id": "d1", "company_id": 8}}
    )

    assert ChangeFilter(column="company_id", value="7").matches(notification)
    assert not ChangeFilter(column="company_id", value=8).matches(notification)
    assert ChangeFilter(column="company_id", value=8).matches(deleted)
    assert not ChangeFilter(column="tenant", value=7).matches(notification)
