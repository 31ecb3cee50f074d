from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

import pytest
from rich.console import Console
from typer.testing import CliRunner

from rowdesk import main

runner = CliRunner()


@pytest.fixture
def cli(monkeypatch, backend, device_backend, feed, settings):
    """Point the CLI at the in-memory backend holding both widgets and devices."""
    backend.columns.update(device_backend.columns)
    backend.rows.update(device_backend.rows)
    cli_settings = settings.model_copy(update={"log_level": "WARNING"})

    @asynccontextmanager
    async def fake_open_backend(settings: Any = None, dsn_override: Optional[str] = None):
        yield backend, feed

    monkeypatch.setattr(main, "open_backend", fake_open_backend)
    monkeypatch.setattr(main, "get_settings", lambda: cli_settings)
    monkeypatch.setattr(main, "console", Console(width=200))
    monkeypatch.setattr(main, "configure_logging", lambda **kwargs: None)
    return backend


def test_info_prints_configuration(cli):
    result = runner.invoke(main.app, ["info"])

    assert result.exit_code == 0
    assert "fetch_limit=100" in result.output
    assert "devices=iot_devices" in result.output


def test_tables_lists_user_tables(cli):
    result = runner.invoke(main.app, ["tables"])

    assert result.exit_code == 0
    assert "Database Tables" in result.output
    assert "widgets" in result.output
    assert "iot_devices" in result.output


def test_tables_failure_exits_nonzero(cli):
    cli.failures["list_tables"] = RuntimeError("down")

    result = runner.invoke(main.app, ["tables"])

    assert result.exit_code == 1
    assert "Failed to load tables information" in result.output


def test_browse_renders_filtered_sorted_page(cli):
    result = runner.invoke(
        main.app, ["browse", "widgets", "--sort", "name", "--desc", "--filter", "name=sensor b"]
    )

    assert result.exit_code == 0
    assert "Sensor B" in result.output
    assert "Sensor A" not in result.output
    assert "Page 1 of 1" in result.output


def test_browse_rejects_malformed_filter(cli):
    result = runner.invoke(main.app, ["browse", "widgets", "--filter", "name"])

    assert result.exit_code != 0


def test_show_renders_detail(cli):
    result = runner.invoke(main.app, ["show", "widgets", "2"])

    assert result.exit_code == 0
    assert "Sensor B" in result.output
    assert "Raw Value" in result.output


def test_show_missing_row_fails(cli):
    result = runner.invoke(main.app, ["show", "widgets", "404"])

    assert result.exit_code == 1
    assert "Item not found" in result.output


def test_create_with_assignments(cli):
    result = runner.invoke(
        main.app,
        ["create", "widgets", "--set", "name=Sensor Q", "--set", "type=co2", "--no-input"],
    )

    assert result.exit_code == 0
    assert "Record created." in result.output
    assert ("insert_row", "widgets", {"name": "Sensor Q", "type": "co2", "raw_value": None}) in cli.calls


def test_create_prompts_until_required_fields_are_given(cli):
    result = runner.invoke(main.app, ["create", "widgets"], input="Sensor Q\n\nco2\n\n")

    assert result.exit_code == 0
    assert "This field is required." in result.output
    assert ("insert_row", "widgets", {"name": "Sensor Q", "type": "co2", "raw_value": None}) in cli.calls


def test_create_without_required_fields_fails(cli):
    result = runner.invoke(main.app, ["create", "widgets", "--set", "name=Only name", "--no-input"])

    assert result.exit_code == 1
    assert "Missing required fields: type" in result.output
    assert not any(call[0] == "insert_row" for call in cli.calls)


def test_edit_updates_row(cli):
    result = runner.invoke(main.app, ["edit", "widgets", "1", "--set", "raw_value=5", "--no-input"])

    assert result.exit_code == 0
    assert ("update_row", "widgets", "1", {"name": "Sensor A", "type": "co2", "raw_value": "5"}) in cli.calls


def test_delete_needs_confirmation(cli):
    result = runner.invoke(main.app, ["delete", "widgets", "1"], input="n\n")

    assert result.exit_code == 1
    assert not any(call[0] == "delete_row" for call in cli.calls)


def test_delete_with_yes(cli):
    result = runner.invoke(main.app, ["delete", "widgets", "1", "--yes"])

    assert result.exit_code == 0
    assert "/settings/tables/widgets" in result.output
    assert ("delete_row", "widgets", "1") in cli.calls


def test_dashboard_renders_company_devices(cli):
    result = runner.invoke(main.app, ["dashboard", "--company", "7"])

    assert result.exit_code == 0
    assert "4 devices connected" in result.output
    assert "Moderate" in result.output
    assert "Other Tenant" not in result.output


def test_dashboard_without_company(cli):
    result = runner.invoke(main.app, ["dashboard"])

    assert result.exit_code == 0
    assert "No Company Selected" in result.output


def test_companies_lists_tenants_and_marks_selected(cli, monkeypatch):
    selected = main.get_settings().model_copy(update={"company_id": "7"})
    monkeypatch.setattr(main, "get_settings", lambda: selected)

    result = runner.invoke(main.app, ["companies"])

    assert result.exit_code == 0
    assert "Acme" in result.output
    assert "Globex" in result.output
    assert "*" in result.output


def test_company_add_reports_new_id(cli):
    result = runner.invoke(main.app, ["company-add", "Initech", "--description", "TPS"])

    assert result.exit_code == 0
    assert "Select it with --company 1000" in result.output
    assert ("insert_row", "companies", {"name": "Initech", "description": "TPS"}) in cli.calls


def test_company_add_rejects_blank_name(cli):
    result = runner.invoke(main.app, ["company-add", "  "])

    assert result.exit_code != 0
    assert not any(call[0] == "insert_row" for call in cli.calls)


def test_company_delete_with_yes(cli):
    result = runner.invoke(main.app, ["company-delete", "8", "--yes"])

    assert result.exit_code == 0
    assert "Company deleted." in result.output
    assert ("delete_row", "companies", "8") in cli.calls
