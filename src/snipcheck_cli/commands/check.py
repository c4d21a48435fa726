"""snipcheck check command - Type-check every snippet in a corpus."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click

from snipcheck_cli.config import profile_options, resolve_profile
from snipcheck_cli.errors import EXIT_FAILURE, EXIT_SUCCESS, CLIError, handle_snipcheck_error
from snipcheck_cli.output import get_console, print_run_summary


@dataclass
class CheckOptions:
    """Grouped check CLI options."""

    root: Path
    profile_path: str | None
    profile_name: str | None
    output_format: str
    output_file: str | None
    use_cache: bool
    show_all: bool
    concurrency: int | None
    timeout: float | None
    language: str | None
    fail_on_warnings: bool | None


def _run_check(opts: CheckOptions) -> None:
    """Run validation and display the report.

    Raises:
        SystemExit: With code 0 when the report passes, 1 otherwise
    """
    from snipcheck.engine import ValidationRunner
    from snipcheck.errors import SnipcheckError
    from snipcheck.report import print_report

    profile = resolve_profile(
        opts.profile_path,
        opts.profile_name,
        opts.root,
        concurrency=opts.concurrency,
        timeout_seconds=opts.timeout,
        language=opts.language,
        fail_on_warnings=opts.fail_on_warnings,
    )

    try:
        runner = ValidationRunner(profile, opts.root, use_cache=opts.use_cache)
        report = runner.run()
    except SnipcheckError as e:
        handle_snipcheck_error(e)

    if opts.output_file:
        try:
            Path(opts.output_file).write_text(report.to_json() + "\n", encoding="utf-8")
        except OSError as e:
            raise CLIError(f"Cannot write report to {opts.output_file}: {e}") from e

    console = get_console()
    print_report(
        report,
        output_format=opts.output_format,
        console=console,
        show_passing=opts.show_all,
    )

    if opts.output_format == "table":
        print_run_summary(report, runner.stats)

    raise SystemExit(EXIT_SUCCESS if report.passed else EXIT_FAILURE)


@click.command()
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@profile_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format [default: table]",
)
@click.option(
    "-o",
    "--output",
    "output_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write the JSON report to this file.",
)
@click.option(
    "--no-cache",
    is_flag=True,
    default=False,
    help="Neither read nor write the outcome cache.",
)
@click.option(
    "--all",
    "show_all",
    is_flag=True,
    default=False,
    help="List passing and unchecked units too (table format).",
)
@click.option(
    "-j",
    "--concurrency",
    type=click.IntRange(1, 64),
    default=None,
    help="Maximum units checked in parallel.",
)
@click.option("--timeout", type=float, default=None, help="Per-unit timeout in seconds.")
@click.option(
    "--language",
    type=click.Choice(["typescript", "python"]),
    default=None,
    help="Override the checked language.",
)
@click.option(
    "--fail-on-warnings/--no-fail-on-warnings",
    default=None,
    help="Treat units with only warnings as failing.",
)
def check(
    root: Path,
    profile_path: str | None,
    profile_name: str | None,
    output_format: str,
    output_file: str | None,
    no_cache: bool,
    show_all: bool,
    concurrency: int | None,
    timeout: float | None,
    language: str | None,
    fail_on_warnings: bool | None,
) -> None:
    """Type-check the code snippets of a documentation corpus.

    Exits 0 when every unit passes, 1 when any unit has diagnostics, is
    malformed, timed out or hit an internal error, and 2 on configuration
    errors.

    Examples:

        snipcheck check docs/

        snipcheck check docs/ --profile snipcheck.yaml --name strict

        snipcheck check docs/ --format json --output report.json
    """
    opts = CheckOptions(
        root=root,
        profile_path=profile_path,
        profile_name=profile_name,
        output_format=output_format,
        output_file=output_file,
        use_cache=not no_cache,
        show_all=show_all,
        concurrency=concurrency,
        timeout=timeout,
        language=language,
        fail_on_warnings=fail_on_warnings,
    )
    _run_check(opts)
