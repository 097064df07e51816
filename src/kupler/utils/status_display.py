"""Rich rendering of link status reports."""

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..linking.status_reporter import StatusReport, StatusScope

YES = "✔"
NO = "✖"


def _flag(value: bool) -> Text:
    return Text(YES, style="green") if value else Text(NO, style="red")


def build_status_table(report: StatusReport) -> Table:
    """Build the status table; the link path column only appears for -g."""
    show_paths = report.scope is StatusScope.ALL_GLOBAL

    table = Table(title="🔗 Kupler Link Status")
    table.add_column("Package", style="cyan")
    if show_paths:
        table.add_column("Link Path", style="dim", overflow="fold")
    table.add_column("Symbolic", justify="center")
    table.add_column("Linked", justify="center")

    for row in report.rows:
        name = Text(row.name)
        if row.is_missing:
            name.append(" (missing)", style="yellow")

        cells = [name]
        if show_paths:
            cells.append(Text(str(row.real_path) if row.real_path else "n/a"))
        cells.extend([_flag(row.is_symbolic_link), _flag(row.is_linked)])
        table.add_row(*cells)

    return table


def display_status_report(report: StatusReport, console: Optional[Console] = None):
    """Print the status table followed by the installed/linked counters."""
    console = console or Console()

    console.print()
    console.print(build_status_table(report))

    summary = Text()
    summary.append("installed: ")
    summary.append(str(report.installed), style="yellow")
    summary.append("   linked: ")
    summary.append(str(report.linked), style="green")
    if report.missing:
        summary.append("   missing: ")
        summary.append(str(report.missing), style="red")
    console.print(summary)
    console.print()
