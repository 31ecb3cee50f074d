from __future__ import annotations

from datetime import datetime, timezone

import pytest

from rowdesk.dashboard import LOAD_ERROR_MESSAGE, DeviceDashboard, group_label
from rowdesk.domain.models import SessionContext

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
TENANT = SessionContext(user_id="u1", is_admin=True, company_id="7")


def test_group_label():
    assert group_label("air_quality") == "AIR QUALITY"
    assert group_label("co2") == "CO2"


@pytest.mark.asyncio
async def test_dashboard_shows_only_selected_tenant(device_backend, feed, settings):
    dashboard = DeviceDashboard(device_backend, feed, TENANT, settings)

    assert await dashboard.open() is True

    assert sorted(device.id for device in dashboard.devices()) == ["d1", "d2", "d3", "d4"]
    assert ("fetch_rows", "iot_devices", settings.fetch_limit, {"company_id": "7"}, "name") in device_backend.calls


@pytest.mark.asyncio
async def test_groups_are_sorted_and_start_expanded(device_backend, feed, settings):
    dashboard = DeviceDashboard(device_backend, feed, TENANT, settings)
    await dashboard.open()

    groups = dashboard.render(NOW)

    assert [label for label, _ in groups] == ["CO2", "DOOR", "HUMIDITY", "UNKNOWN SENSOR"]
    assert dashboard.expanded == {"CO2", "DOOR", "HUMIDITY", "UNKNOWN SENSOR"}
    co2 = dict(groups)["CO2"][0]
    assert co2.label == "Moderate"
    unknown = dict(groups)["UNKNOWN SENSOR"][0]
    assert unknown.caption == "Unknown device type: unknown_sensor"


@pytest.mark.asyncio
async def test_toggle_section_is_remembered(device_backend, feed, settings):
    dashboard = DeviceDashboard(device_backend, feed, TENANT, settings)
    await dashboard.open()
    dashboard.groups()

    assert dashboard.toggle_section("DOOR") is False
    dashboard.groups()
    assert "DOOR" not in dashboard.expanded
    assert dashboard.toggle_section("DOOR") is True


@pytest.mark.asyncio
async def test_live_updates_for_other_tenants_are_filtered(device_backend, feed, settings):
    dashboard = DeviceDashboard(device_backend, feed, TENANT, settings)
    await dashboard.open()

    feed.publish("iot_devices", "INSERT", record={"id": "x1", "name": "Foreign", "type": "co2", "company_id": 8})
    feed.publish("iot_devices", "INSERT", record={"id": "n1", "name": "Noise", "type": "noise", "raw_value": 40, "company_id": 7})
    feed.publish("iot_devices", "UPDATE", record={"id": "d1", "raw_value": 300, "company_id": 7})

    ids = [device.id for device in dashboard.devices()]
    assert "x1" not in ids
    assert "n1" in ids
    co2 = dict(dashboard.render(NOW))["CO2"][0]
    assert co2.label == "Excellent"


@pytest.mark.asyncio
async def test_no_company_selected(device_backend, feed, settings):
    dashboard = DeviceDashboard(device_backend, feed, SessionContext(), settings)

    assert dashboard.needs_company is True
    assert await dashboard.open() is False
    assert dashboard.devices() == []
    assert feed.active_tables() == []


@pytest.mark.asyncio
async def test_malformed_rows_are_skipped(device_backend, feed, settings):
    device_backend.rows["iot_devices"].append({"id": "bad", "company_id": 7})
    dashboard = DeviceDashboard(device_backend, feed, TENANT, settings)
    await dashboard.open()

    assert "bad" not in [device.id for device in dashboard.devices()]


@pytest.mark.asyncio
async def test_load_failure_message(device_backend, feed, settings):
    device_backend.failures["fetch_rows"] = RuntimeError("down")
    dashboard = DeviceDashboard(device_backend, feed, TENANT, settings)

    await dashboard.open()

    assert dashboard.error_message == LOAD_ERROR_MESSAGE
