"""Tests for snipcheck_cli.output console helpers."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from snipcheck.engine import RunStats
from snipcheck.mapping import Diagnostic
from snipcheck.models import Severity, UnitStatus
from snipcheck.report import Report, UnitResult
from snipcheck_cli import output


@pytest.fixture
def streams(monkeypatch: pytest.MonkeyPatch) -> tuple[io.StringIO, io.StringIO]:
    """Point the stdout and stderr consoles at separate buffers."""
    out, err = io.StringIO(), io.StringIO()
    monkeypatch.setattr(output, "console", Console(file=out, no_color=True, width=120))
    monkeypatch.setattr(output, "err_console", Console(file=err, no_color=True, width=120))
    return out, err


def unit_result(index: int, status: UnitStatus) -> UnitResult:
    return UnitResult(
        unit_id=f"a.md#{index}",
        document="a.md",
        start_line=1,
        end_line=3,
        status=status,
    )


def error_at(line: int) -> Diagnostic:
    return Diagnostic(
        document="a.md",
        line=line,
        column=1,
        severity=Severity.ERROR,
        message="boom",
        snippet_index=0,
        unit_id="a.md#0",
    )


STATS = RunStats(documents=1, snippets=3, units=3, checked=2, cache_hits=1, duration_ms=42)


class TestStatusText:
    """Tests for status coloring."""

    @pytest.mark.parametrize(
        ("status", "style"),
        [
            ("ok", "green"),
            ("checkable", "green"),
            ("diagnostics", "red"),
            ("malformed", "yellow"),
            ("timeout", "magenta"),
            ("error", "bold red"),
        ],
    )
    def test_known_statuses(self, status: str, style: str) -> None:
        """Statuses and unit kinds are rendered in their palette color."""
        text = output.status_text(status)

        assert text.plain == status
        assert str(text.style) == style

    def test_unknown_status_is_plain(self) -> None:
        """Anything outside the palette gets no style."""
        assert str(output.status_text("pending").style) == ""


class TestStreams:
    """Tests for the stdout/stderr split."""

    def test_notices_go_to_stderr(self, streams: tuple[io.StringIO, io.StringIO]) -> None:
        """Warnings and errors never mix into stdout."""
        out, err = streams

        output.warning("lesson.md:3: continues unknown snippet 'setup'")
        output.error("nothing to check")

        assert out.getvalue() == ""
        assert "⚠ lesson.md:3: continues unknown snippet 'setup'" in err.getvalue()
        assert "✗ nothing to check" in err.getvalue()

    def test_json_goes_to_stdout(self, streams: tuple[io.StringIO, io.StringIO]) -> None:
        """JSON results are written to stdout only."""
        out, err = streams

        output.print_json({"units": 2})

        assert '"units": 2' in out.getvalue()
        assert err.getvalue() == ""

    def test_unit_source_is_not_markup(self, streams: tuple[io.StringIO, io.StringIO]) -> None:
        """Brackets in source code are printed verbatim."""
        out, _ = streams

        output.print_unit_source("a.md#0", "const xs: number[] = [1];\n[bold]x[/bold]\n")

        assert out.getvalue().splitlines()[:3] == [
            "a.md#0",
            "const xs: number[] = [1];",
            "[bold]x[/bold]",
        ]


class TestRunSummary:
    """Tests for the closing lines of a check run."""

    def test_passing_run(self, streams: tuple[io.StringIO, io.StringIO]) -> None:
        """A passing run reports its work and success on stdout."""
        out, err = streams
        report = Report(units=(unit_result(0, UnitStatus.OK),), passed=True)

        output.print_run_summary(report, STATS)

        lines = out.getvalue().splitlines()
        assert lines[0] == "3 units in 1 documents, 2 checked, 1 from cache, 42ms"
        assert lines[1] == "✓ All snippets passed"
        assert err.getvalue() == ""

    def test_failing_run_counts_errors(self, streams: tuple[io.StringIO, io.StringIO]) -> None:
        """A failing run reports failed units and error diagnostics on stderr."""
        out, err = streams
        report = Report(
            units=(
                unit_result(0, UnitStatus.DIAGNOSTICS),
                unit_result(1, UnitStatus.OK),
                unit_result(2, UnitStatus.TIMEOUT),
            ),
            diagnostics=(error_at(2), error_at(3)),
            passed=False,
        )

        output.print_run_summary(report, STATS)

        assert "from cache" in out.getvalue()
        assert err.getvalue().strip() == "✗ 2 of 3 units failed (2 errors)"

    def test_failure_without_diagnostics(self, streams: tuple[io.StringIO, io.StringIO]) -> None:
        """Failures with no error diagnostics omit the error count."""
        _, err = streams
        report = Report(units=(unit_result(0, UnitStatus.MALFORMED),), passed=False)

        output.print_run_summary(report, STATS)

        assert err.getvalue().strip() == "✗ 1 of 1 units failed"
