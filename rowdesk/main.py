from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from typing import Dict, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.live import Live

from rowdesk.browser import TableBrowser
from rowdesk.companies import CompanyDirectory
from rowdesk.config import Settings, get_settings
from rowdesk.dashboard import DeviceDashboard
from rowdesk.detail import ItemDetail
from rowdesk.domain.models import SessionContext
from rowdesk.errors import RowdeskError
from rowdesk.forms.fields import InputKind
from rowdesk.forms.record_form import RecordForm
from rowdesk.infrastructure import get_async_connection, install_change_triggers, open_backend
from rowdesk.reporter import (
    render_columns,
    render_companies,
    render_dashboard,
    render_detail,
    render_error,
    render_form,
    render_grid,
    render_tables_overview,
)
from rowdesk.schema import SchemaIntrospector
from rowdesk.utils.logging import configure_logging

app = typer.Typer(help="rowdesk: schema-driven admin console for PostgreSQL.")
console = Console()


def _bootstrap() -> Settings:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return settings


def _fail(message: str) -> NoReturn:
    console.print(render_error(message))
    raise typer.Exit(code=1)


def _parse_assignments(values: Optional[List[str]]) -> Dict[str, str]:
    assignments: Dict[str, str] = {}
    for item in values or []:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected FIELD=VALUE, got '{item}'")
        assignments[name.strip()] = raw
    return assignments


def _prompt_field(form: RecordForm, name: str) -> None:
    field = form.field(name)
    label = f"{field.label} *" if field.required else field.label
    if field.input_kind is InputKind.BOOLEAN_SELECT:
        label += " [true/false]"
    current = field.format(form.value(name))
    while True:
        raw = typer.prompt(label, default=current, show_default=bool(current))
        try:
            value = field.parse(raw)
        except ValueError as exc:
            console.print(f"[red]{exc}[/red]")
            continue
        if field.required and value is None:
            console.print("[red]This field is required.[/red]")
            continue
        form.set_value(name, value)
        return


def _fill_form(form: RecordForm, assignments: Dict[str, str], interactive: bool) -> None:
    for name, raw in assignments.items():
        try:
            form.set_input(name, raw)
        except (KeyError, ValueError) as exc:
            raise typer.BadParameter(str(exc)) from exc
    if interactive:
        for field in form.fields:
            if field.name not in assignments:
                _prompt_field(form, field.name)


async def _submit(form: RecordForm) -> None:
    missing = form.missing_required()
    if missing:
        _fail(f"Missing required fields: {', '.join(missing)}")
    if not await form.submit():
        console.print(render_form(form))
        _fail(form.error or "Form was not submitted")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} "
        f"schema={settings.db_schema} | fetch_limit={settings.fetch_limit} "
        f"page_size={settings.page_size} | devices={settings.device_table} "
        f"tenant={settings.tenant_column} channel={settings.change_channel}"
    )


@app.command()
def tables() -> None:
    """
    List user tables with a preview of their columns.
    """
    settings = _bootstrap()

    async def run() -> None:
        async with open_backend(settings) as (backend, _feed):
            try:
                summaries = await SchemaIntrospector(backend, settings).overview()
            except RowdeskError:
                _fail("Failed to load tables information")
            console.print(render_tables_overview(summaries))

    asyncio.run(run())


@app.command()
def columns(table: str = typer.Argument(..., help="Table to describe.")) -> None:
    """
    Show column metadata for one table.
    """
    settings = _bootstrap()

    async def run() -> None:
        async with open_backend(settings) as (backend, _feed):
            try:
                described = await SchemaIntrospector(backend, settings).describe_columns(table)
            except RowdeskError:
                _fail(f"Failed to describe table '{table}'")
            console.print(render_columns(table, described))

    asyncio.run(run())


@app.command()
def browse(
    table: str = typer.Argument(..., help="Table to browse."),
    page: int = typer.Option(1, "--page", "-p", help="Grid page (1-based)."),
    sort: Optional[str] = typer.Option(None, "--sort", "-s", help="Column to sort by."),
    desc: bool = typer.Option(False, "--desc", help="Sort descending."),
    filters: Optional[List[str]] = typer.Option(
        None, "--filter", "-f", help="FIELD=TEXT contains-filter; repeatable."
    ),
) -> None:
    """
    Show one page of a table's rows.
    """
    settings = _bootstrap()
    parsed_filters = _parse_assignments(filters)

    async def run() -> None:
        async with open_backend(settings) as (backend, feed):
            browser = TableBrowser(backend, feed, settings)
            try:
                await browser.select_table(table)
                browser.set_sort(sort, descending=desc)
                for field, text in parsed_filters.items():
                    browser.set_filter(field, text)
                console.print(render_grid(browser, page))
            finally:
                await browser.close()

    asyncio.run(run())


@app.command()
def watch(
    table: str = typer.Argument(..., help="Table to watch."),
    page: int = typer.Option(1, "--page", "-p", help="Grid page (1-based)."),
) -> None:
    """
    Browse a table and keep the grid updated from the change feed (Ctrl-C to stop).
    """
    settings = _bootstrap()

    async def run() -> None:
        async with open_backend(settings) as (backend, feed):
            browser = TableBrowser(backend, feed, settings)
            changed = asyncio.Event()
            browser.session.add_listener(changed.set)
            try:
                await browser.select_table(table)
                with Live(render_grid(browser, page), console=console, auto_refresh=False) as live:
                    while True:
                        await changed.wait()
                        changed.clear()
                        live.update(render_grid(browser, page), refresh=True)
            finally:
                await browser.close()

    asyncio.run(run())


@app.command()
def show(
    table: str = typer.Argument(..., help="Table name."),
    row_id: str = typer.Argument(..., metavar="ID", help="Row id."),
) -> None:
    """
    Show one row, including the rows its foreign keys point at.
    """
    settings = _bootstrap()

    async def run() -> None:
        async with open_backend(settings) as (backend, _feed):
            detail = ItemDetail(backend, table, row_id)
            await detail.load()
            console.print(render_detail(detail))
            if detail.error:
                raise typer.Exit(code=1)

    asyncio.run(run())


@app.command()
def create(
    table: str = typer.Argument(..., help="Table to insert into."),
    values: Optional[List[str]] = typer.Option(
        None, "--set", help="FIELD=VALUE; repeatable. Empty VALUE means NULL."
    ),
    no_input: bool = typer.Option(False, "--no-input", help="Do not prompt for missing fields."),
) -> None:
    """
    Insert a row through the generated create form.
    """
    settings = _bootstrap()
    assignments = _parse_assignments(values)

    async def run() -> None:
        async with open_backend(settings) as (backend, feed):
            browser = TableBrowser(backend, feed, settings)
            try:
                if not await browser.select_table(table):
                    _fail(browser.session.error_message or "Failed to load table data")
                form = browser.open_create_form()
                _fill_form(form, assignments, interactive=not no_input)
                await _submit(form)
            finally:
                await browser.close()
            console.print("[green]Record created.[/green]")

    asyncio.run(run())


@app.command()
def edit(
    table: str = typer.Argument(..., help="Table name."),
    row_id: str = typer.Argument(..., metavar="ID", help="Row id."),
    values: Optional[List[str]] = typer.Option(
        None, "--set", help="FIELD=VALUE; repeatable. Empty VALUE means NULL."
    ),
    no_input: bool = typer.Option(False, "--no-input", help="Do not prompt for other fields."),
) -> None:
    """
    Update a row through the generated edit form.
    """
    settings = _bootstrap()
    assignments = _parse_assignments(values)

    async def run() -> None:
        async with open_backend(settings) as (backend, _feed):
            detail = ItemDetail(backend, table, row_id)
            if not await detail.load():
                _fail(detail.error or "Failed to load item")
            form = detail.open_edit_form()
            _fill_form(form, assignments, interactive=not no_input)
            await _submit(form)
            console.print(render_detail(detail))

    asyncio.run(run())


@app.command()
def delete(
    table: str = typer.Argument(..., help="Table name."),
    row_id: str = typer.Argument(..., metavar="ID", help="Row id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """
    Delete one row after confirmation.
    """
    settings = _bootstrap()

    def confirm(message: str) -> bool:
        return yes or typer.confirm(message, default=False)

    def alert(message: str) -> None:
        console.print(render_error(message))

    async def run() -> None:
        async with open_backend(settings) as (backend, _feed):
            detail = ItemDetail(backend, table, row_id)
            route = await detail.delete(confirm, alert)
            if route is None:
                raise typer.Exit(code=1)
            console.print(f"[green]Deleted.[/green] Back to {route}")

    asyncio.run(run())


@app.command()
def dashboard(
    company: Optional[str] = typer.Option(
        None, "--company", "-c", help="Tenant id (defaults to ROWDESK_COMPANY_ID)."
    ),
    live: bool = typer.Option(False, "--watch", "-w", help="Keep updating until Ctrl-C."),
) -> None:
    """
    Show the selected company's IoT devices grouped by type.
    """
    settings = _bootstrap()
    context = SessionContext(company_id=company or settings.company_id)

    async def run() -> None:
        async with open_backend(settings) as (backend, feed):
            board = DeviceDashboard(backend, feed, context, settings)
            changed = asyncio.Event()
            board.session.add_listener(changed.set)
            try:
                await board.open()
                if not live:
                    console.print(render_dashboard(board))
                    return
                now = datetime.now(timezone.utc)
                with Live(render_dashboard(board, now), console=console, auto_refresh=False) as view:
                    while True:
                        try:
                            await asyncio.wait_for(changed.wait(), timeout=settings.tick_seconds)
                        except asyncio.TimeoutError:
                            pass
                        changed.clear()
                        now = datetime.now(timezone.utc)
                        view.update(render_dashboard(board, now), refresh=True)
            finally:
                await board.close()

    asyncio.run(run())


@app.command()
def companies() -> None:
    """
    List tenants; the selected one (ROWDESK_COMPANY_ID) is starred.
    """
    settings = _bootstrap()

    async def run() -> None:
        async with open_backend(settings) as (backend, _feed):
            try:
                rows = await CompanyDirectory(backend, settings).list()
            except RowdeskError as exc:
                _fail(str(exc))
            console.print(render_companies(rows, current=settings.company_id))

    asyncio.run(run())


@app.command("company-add")
def company_add(
    name: str = typer.Argument(..., help="Company name."),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="Optional description."
    ),
) -> None:
    """
    Create a tenant.
    """
    settings = _bootstrap()

    async def run() -> None:
        async with open_backend(settings) as (backend, _feed):
            try:
                created = await CompanyDirectory(backend, settings).create(name, description)
            except ValueError as exc:
                raise typer.BadParameter(str(exc)) from exc
            except RowdeskError as exc:
                _fail(str(exc))
            console.print(
                f"[green]Company created.[/green] Select it with --company {created.get('id')}"
            )

    asyncio.run(run())


@app.command("company-delete")
def company_delete(
    company_id: str = typer.Argument(..., metavar="ID", help="Company id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """
    Delete a tenant after confirmation.
    """
    settings = _bootstrap()

    def confirm(message: str) -> bool:
        return yes or typer.confirm(message, default=False)

    def alert(message: str) -> None:
        console.print(render_error(message))

    async def run() -> None:
        async with open_backend(settings) as (backend, _feed):
            if not await CompanyDirectory(backend, settings).delete(company_id, confirm, alert):
                raise typer.Exit(code=1)
            console.print("[green]Company deleted.[/green]")

    asyncio.run(run())


@app.command("install-feed")
def install_feed(table: str = typer.Argument(..., help="Table to publish changes for.")) -> None:
    """
    Install the change-notification trigger on a table.
    """
    settings = _bootstrap()

    async def run() -> None:
        conn = await get_async_connection()
        try:
            await install_change_triggers(
                conn, table, settings.change_channel, schema=settings.db_schema
            )
        finally:
            await conn.close()
        typer.echo(f"Change feed installed on {settings.db_schema}.{table} -> {settings.change_channel}")

    asyncio.run(run())


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
