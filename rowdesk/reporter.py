from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Sequence

from rich import box
from rich.columns import Columns
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from rowdesk.browser import TableBrowser
from rowdesk.dashboard import DeviceDashboard
from rowdesk.detail import ItemDetail
from rowdesk.domain.models import ColumnDescriptor, ColumnKind, Record, TableSummary
from rowdesk.forms.record_form import RecordForm
from rowdesk.widgets.abstract import Presentation, Tone

TONE_STYLES = {
    Tone.GREEN: "green",
    Tone.YELLOW: "yellow",
    Tone.ORANGE: "dark_orange",
    Tone.RED: "red",
    Tone.BLUE: "blue",
    Tone.CYAN: "cyan",
    Tone.PURPLE: "purple",
    Tone.GRAY: "grey50",
}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _column_marker(column: ColumnDescriptor) -> str:
    if "id" in column.name:
        return "key"
    if column.kind is ColumnKind.TIMESTAMP:
        return "time"
    return "null" if column.is_nullable else "not null"


def render_error(message: str) -> Panel:
    return Panel(Text(message, style="red"), box=box.ROUNDED, border_style="red")


def render_tables_overview(summaries: Sequence[TableSummary]) -> RenderableType:
    """
    One card per user table with its first three columns.
    """
    if not summaries:
        return Text("No tables found.", style="yellow")

    cards = []
    for summary in summaries:
        table = Table(box=None, show_header=False, expand=True)
        table.add_column("Column", style="cyan")
        table.add_column("Type", style="dim", justify="right")
        table.add_column("", style="dim", justify="right")
        for column in summary.preview():
            table.add_row(column.name, column.data_type, _column_marker(column))
        hidden = summary.hidden_count()
        body: List[RenderableType] = [table]
        if hidden:
            body.append(Text(f"+{hidden} more columns", style="dim"))
        cards.append(
            Panel(
                Group(*body),
                title=f"[bold]{summary.name}[/bold]",
                subtitle=f"{len(summary.columns)} columns",
                box=box.ROUNDED,
            )
        )
    return Group(Text("Database Tables", style="bold"), Columns(cards, equal=True))


def render_columns(table_name: str, columns: Sequence[ColumnDescriptor]) -> Table:
    table = Table(title=f"Columns: {table_name}", box=box.ROUNDED)
    table.add_column("Column", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Nullable", justify="center")
    table.add_column("Default", style="dim")
    table.add_column("References", style="green")
    for column in columns:
        reference = (
            f"{column.foreign_table}.{column.foreign_column}" if column.is_foreign_key else ""
        )
        table.add_row(
            column.name,
            column.data_type,
            "yes" if column.is_nullable else "no",
            column.column_default or "",
            reference,
        )
    return table


def render_companies(companies: Sequence[Record], current: Optional[str] = None) -> RenderableType:
    if not companies:
        return Text("No companies yet. Create one with company-add.", style="yellow")
    table = Table(title="Companies", box=box.ROUNDED)
    table.add_column("", width=1, style="green")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Description", style="dim")
    for company in companies:
        selected = current is not None and str(company.get("id")) == str(current)
        table.add_row(
            "*" if selected else "",
            _cell(company.get("id")),
            _cell(company.get("name")),
            _cell(company.get("description")),
        )
    return table


def render_grid(browser: TableBrowser, number: int = 1) -> RenderableType:
    """
    Render one page of the browser's grid, or its loading/error state.
    """
    session = browser.session
    if session.loading and not len(session.records):
        return Text("Loading...", style="dim")
    if session.error_message:
        return render_error(session.error_message)

    page = browser.page(number)
    caption = f"Page {page.number} of {page.page_count} │ {page.total} rows"
    if browser.sort_field:
        direction = "desc" if browser.sort_descending else "asc"
        caption += f" │ sorted by {browser.sort_field} ({direction})"
    if browser.filters:
        caption += " │ filters: " + ", ".join(f"{k}~{v}" for k, v in browser.filters.items())

    table = Table(title=f"Table: {browser.table}", box=box.ROUNDED, caption=caption)
    grid_columns = browser.grid_columns()
    for column in grid_columns:
        if column.actions:
            table.add_column(column.header, style="dim", no_wrap=True)
        else:
            table.add_column(column.header, overflow="fold")

    for row in page.rows:
        cells = [
            " ".join(column.actions) if column.actions else _cell(row.get(column.field))
            for column in grid_columns
        ]
        table.add_row(*cells)

    renderables: List[RenderableType] = [table]
    if not page.total:
        renderables.append(Text("No records found in this table", style="yellow"))
    if session.subscription_error is not None:
        renderables.append(Text("Live updates unavailable", style="yellow"))
    return Group(*renderables)


def render_detail(detail: ItemDetail) -> RenderableType:
    if detail.error:
        return render_error(detail.error)
    table = Table(box=None, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for field in detail.fields():
        value: RenderableType = Text(field.display, style="dim" if field.display == "Not set" else "")
        if field.reference:
            lines = "\n".join(f"{label}: {text}" for label, text in field.reference)
            value = Group(Text(field.display), Panel(lines, box=box.SIMPLE))
        table.add_row(field.label, value)
    return Panel(table, title=f"[bold]{detail.title}[/bold]", box=box.ROUNDED)


def render_form(form: RecordForm) -> RenderableType:
    table = Table(title=form.title, box=box.ROUNDED)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_column("", style="dim")
    for field in form.fields:
        label = f"{field.label} *" if field.required else field.label
        table.add_row(label, field.format(form.value(field.name)), field.help_text)
    if form.error:
        return Group(render_error(form.error), table)
    return table


def render_presentation(presentation: Presentation) -> Panel:
    style = TONE_STYLES[presentation.tone]
    body = Group(
        Text(presentation.value_text or "-", style=f"bold {style}"),
        Text(presentation.caption, style="dim"),
    )
    title = Text.assemble(
        ("● ", TONE_STYLES[presentation.status_tone]),
        (presentation.name, "bold"),
    )
    return Panel(
        body,
        title=title,
        subtitle=f"{presentation.percent:.0f}%" if presentation.percent is not None else None,
        border_style="red" if presentation.alert else "default",
        box=box.ROUNDED,
    )


def render_dashboard(dashboard: DeviceDashboard, now: Optional[datetime] = None) -> RenderableType:
    """
    Device cards grouped by type; collapsed sections show only their header.
    """
    if dashboard.needs_company:
        return Panel(
            "Please select a company to view its devices (--company or ROWDESK_COMPANY_ID).",
            title="No Company Selected",
            box=box.ROUNDED,
        )
    if dashboard.session.loading and not len(dashboard.session.records):
        return Text("Loading...", style="dim")
    if dashboard.error_message:
        return render_error(dashboard.error_message)

    groups = dashboard.render(now)
    if not groups:
        return Text("No IoT Devices Found. Add some devices to start monitoring them.", style="yellow")

    total = sum(len(cards) for _, cards in groups)
    sections: List[RenderableType] = [
        Text(f"IoT Device Dashboard │ {total} device{'' if total == 1 else 's'} connected", style="bold")
    ]
    for label, cards in groups:
        expanded = label in dashboard.expanded
        marker = "▼" if expanded else "▶"
        sections.append(
            Text(f"{marker} {label} ({len(cards)} device{'' if len(cards) == 1 else 's'})", style="bold")
        )
        if expanded:
            sections.append(Columns([render_presentation(card) for card in cards], equal=True))
    return Group(*sections)


__all__ = [
    "TONE_STYLES",
    "render_columns",
    "render_companies",
    "render_dashboard",
    "render_detail",
    "render_error",
    "render_form",
    "render_grid",
    "render_presentation",
    "render_tables_overview",
]
