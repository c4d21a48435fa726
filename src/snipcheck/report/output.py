"""Report output formatters.

Rich table and JSON output for validation reports.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from snipcheck.models import Severity, UnitStatus
from snipcheck.report.models import Report


def _status_icon(status: UnitStatus) -> str:
    """Get icon for unit status."""
    icons = {
        UnitStatus.OK: "✓",
        UnitStatus.DIAGNOSTICS: "✗",
        UnitStatus.MALFORMED: "!",
        UnitStatus.UNCHECKED: "·",
        UnitStatus.TIMEOUT: "⌛",
        UnitStatus.ERROR: "✗",
    }
    return icons.get(status, "?")


def _status_color(status: UnitStatus) -> str:
    """Get color for unit status."""
    colors = {
        UnitStatus.OK: "green",
        UnitStatus.DIAGNOSTICS: "red",
        UnitStatus.MALFORMED: "yellow",
        UnitStatus.UNCHECKED: "dim",
        UnitStatus.TIMEOUT: "magenta",
        UnitStatus.ERROR: "red bold",
    }
    return colors.get(status, "white")


def format_report_table(
    report: Report,
    console: Console | None = None,
    *,
    show_passing: bool = False,
) -> None:
    """Format a report as a Rich panel plus one table per document.

    Args:
        report: Report to display
        console: Optional Rich console (creates one if not provided)
        show_passing: Also list units that passed or were not checked

    Example:
        >>> report = run_validation(profile, "docs/")
        >>> format_report_table(report)
    """
    if console is None:
        console = Console()

    color = "green" if report.passed else "red"
    header = Text()
    header.append("Status: ", style="bold")
    header.append("PASSED" if report.passed else "FAILED", style=f"bold {color}")
    header.append(f"\nProfile: {report.profile}")
    header.append(
        f"\nUnits: {len(report.units)} in {len(report.documents)} documents ("
        + ", ".join(f"{count} {status}" for status, count in report.counts.items() if count)
        + ")"
    )
    console.print(Panel(header, title="[bold]Snippet Validation[/bold]"))

    for summary in report.documents:
        units = [
            unit
            for unit in report.units
            if unit.document == summary.document and (show_passing or unit.failed)
        ]
        if not units:
            continue

        title = summary.document
        if summary.title:
            title = f"{summary.document} [dim]({summary.title})[/dim]"
        table = Table(title=title, title_justify="left", show_header=True, header_style="bold")
        table.add_column("", width=2, justify="center")
        table.add_column("Lines", justify="right", min_width=9)
        table.add_column("Status", min_width=11)
        table.add_column("Details", min_width=40)

        for unit in units:
            status_color = _status_color(unit.status)
            details = Text()
            for diagnostic in unit.diagnostics:
                if details:
                    details.append("\n")
                style = "red" if diagnostic.severity == Severity.ERROR else "yellow"
                details.append(f"{diagnostic.line}:{diagnostic.column} ", style="dim")
                details.append(diagnostic.severity.value, style=style)
                if diagnostic.code:
                    details.append(f" {diagnostic.code}", style="dim")
                details.append(f" {diagnostic.message}")
            if unit.detail:
                if details:
                    details.append("\n")
                details.append(unit.detail, style="dim" if not unit.failed else "")

            table.add_row(
                Text(_status_icon(unit.status), style=status_color),
                f"{unit.start_line}-{unit.end_line}",
                Text(unit.status.value, style=status_color),
                details if details else Text("-", style="dim"),
            )

        console.print(table)

    if report.warnings:
        console.print()
        console.print("[bold yellow]Corpus warnings:[/bold yellow]")
        for warning in report.warnings:
            console.print(f"  [yellow]•[/yellow] {warning}", highlight=False)


def format_report_json(report: Report, pretty: bool = True) -> str:
    """Format a report as JSON.

    Args:
        report: Report to format
        pretty: Whether to use indentation

    Returns:
        JSON string representation
    """
    return report.to_json(indent=2 if pretty else None)


def print_report(
    report: Report,
    output_format: str = "table",
    console: Console | None = None,
    *,
    show_passing: bool = False,
) -> None:
    """Print a report in the specified format.

    Args:
        report: Report to display
        output_format: Output format ("table" or "json")
        console: Optional Rich console
        show_passing: Table format only; also list passing units

    Example:
        >>> print_report(report, output_format="json")
    """
    if console is None:
        console = Console()

    if output_format == "json":
        # Raw JSON keeps the output parseable.
        json_str = format_report_json(report, pretty=True)
        if console.file is not None:
            console.file.write(json_str + "\n")
        else:
            print(json_str)
    else:
        format_report_table(report, console, show_passing=show_passing)
