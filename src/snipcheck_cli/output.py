"""Terminal output for the snipcheck CLI.

Results (report tables, unit listings, JSON) are written to stdout. Notices
(warnings and errors) are written to stderr, so `--format json` output can be
piped straight into another tool. Both consoles honour `--no-color` and the
NO_COLOR environment variable.
"""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.text import Text

if TYPE_CHECKING:
    from snipcheck.engine import RunStats
    from snipcheck.report import Report

_env_no_color = os.environ.get("NO_COLOR") is not None

# Unit statuses and assembler unit kinds share one palette.
STATUS_STYLES: dict[str, str] = {
    "ok": "green",
    "checkable": "green",
    "diagnostics": "red",
    "malformed": "yellow",
    "unchecked": "dim",
    "timeout": "magenta",
    "error": "bold red",
}


def create_console(no_color: bool = False, *, stderr: bool = False) -> Console:
    """Create a console for stdout (results) or stderr (notices).

    Args:
        no_color: Disable colors. NO_COLOR in the environment does the same.
        stderr: Write to stderr instead of stdout.
    """
    disabled = no_color or _env_no_color
    return Console(stderr=stderr, force_terminal=False if disabled else None, no_color=disabled)


console = create_console()
err_console = create_console(stderr=True)


def get_console() -> Console:
    """Return the stdout console (rebuilt by `set_no_color`)."""
    return console


def set_no_color(no_color: bool) -> None:
    """Rebuild both consoles with colors enabled or disabled."""
    global console, err_console
    console = create_console(no_color=no_color)
    err_console = create_console(no_color=no_color, stderr=True)


def success(message: str, **kwargs: Any) -> None:
    """Print a success line to stdout."""
    console.print(f"[green]✓[/green] {message}", **kwargs)


def info(message: str, **kwargs: Any) -> None:
    console.print(message, **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error notice to stderr."""
    err_console.print(f"[red]✗[/red] {message}", **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a warning notice to stderr.

    Example:
        >>> warning("lesson.md:12: continues unknown snippet 'setup'")
        ⚠ lesson.md:12: continues unknown snippet 'setup'
    """
    err_console.print(f"[yellow]⚠[/yellow] {message}", **kwargs)


def print_json(data: Any) -> None:
    """Print JSON data to stdout with syntax highlighting."""
    console.print_json(json.dumps(data, default=str))


def status_text(status: str) -> Text:
    """Render a unit status or unit kind in its palette color."""
    return Text(status, style=STATUS_STYLES.get(status, ""))


def print_unit_source(unit_id: str, source: str) -> None:
    """Print a unit's assembled source under its id, without markup."""
    console.print(Text(unit_id, style="bold"))
    console.print(source, markup=False, highlight=False)


def print_run_summary(report: Report, stats: RunStats) -> None:
    """Print the closing lines of a `check` run.

    Shows how much work the run did (checked versus answered from cache),
    then the verdict.

    Example:
        >>> print_run_summary(report, runner.stats)
        5 units in 2 documents, 3 checked, 2 from cache, 840ms
        ✗ 1 of 5 units failed (2 errors)
    """
    console.print(
        f"{stats.units} units in {stats.documents} documents, "
        f"{stats.checked} checked, {stats.cache_hits} from cache, {stats.duration_ms}ms",
        style="dim",
        highlight=False,
    )
    if report.passed:
        success("All snippets passed")
        return
    failed = len(report.failed_units)
    errors = report.error_count
    suffix = f" ({errors} error{'s' if errors != 1 else ''})" if errors else ""
    error(f"{failed} of {len(report.units)} units failed{suffix}", highlight=False)
