from __future__ import annotations

import pytest

from rowdesk.companies import (
    CREATE_FAILED,
    DELETE_FAILED,
    DELETE_PROMPT,
    LOAD_FAILED,
    CompanyDirectory,
)
from rowdesk.errors import FetchError, WriteError


@pytest.mark.asyncio
async def test_list_orders_by_name(device_backend, settings):
    companies = await CompanyDirectory(device_backend, settings).list()

    assert [company["name"] for company in companies] == ["Acme", "Globex"]
    assert ("fetch_rows", "companies", settings.fetch_limit, None, "name") in device_backend.calls


@pytest.mark.asyncio
async def test_list_failure_is_a_fetch_error(device_backend, settings):
    device_backend.failures["fetch_rows"] = RuntimeError("down")

    with pytest.raises(FetchError, match=LOAD_FAILED):
        await CompanyDirectory(device_backend, settings).list()


@pytest.mark.asyncio
async def test_create_trims_and_omits_blank_description(device_backend, settings):
    directory = CompanyDirectory(device_backend, settings)

    created = await directory.create("  Initech ", description="   ")
    described = await directory.create("Umbrella", description=" labs ")

    assert created["name"] == "Initech"
    assert ("insert_row", "companies", {"name": "Initech"}) in device_backend.calls
    assert ("insert_row", "companies", {"name": "Umbrella", "description": "labs"}) in device_backend.calls
    assert described["id"] != created["id"]


@pytest.mark.asyncio
async def test_create_rejects_blank_name(device_backend, settings):
    with pytest.raises(ValueError):
        await CompanyDirectory(device_backend, settings).create("   ")

    assert not any(call[0] == "insert_row" for call in device_backend.calls)


@pytest.mark.asyncio
async def test_create_failure_is_a_write_error(device_backend, settings):
    device_backend.failures["insert_row"] = RuntimeError("duplicate key")

    with pytest.raises(WriteError, match=CREATE_FAILED):
        await CompanyDirectory(device_backend, settings).create("Acme")


@pytest.mark.asyncio
async def test_delete_asks_first(device_backend, settings):
    prompts = []

    def decline(message: str) -> bool:
        prompts.append(message)
        return False

    deleted = await CompanyDirectory(device_backend, settings).delete(8, decline, lambda message: None)

    assert deleted is False
    assert prompts == [DELETE_PROMPT]
    assert len(device_backend.rows["companies"]) == 2


@pytest.mark.asyncio
async def test_delete_failure_alerts(device_backend, settings):
    device_backend.failures["delete_row"] = RuntimeError("still referenced")
    alerts = []

    deleted = await CompanyDirectory(device_backend, settings).delete(7, lambda message: True, alerts.append)

    assert deleted is False
    assert alerts == [DELETE_FAILED]


@pytest.mark.asyncio
async def test_delete_removes_company(device_backend, settings):
    deleted = await CompanyDirectory(device_backend, settings).delete(8, lambda message: True, print)

    assert deleted is True
    assert [company["id"] for company in device_backend.rows["companies"]] == [7]
