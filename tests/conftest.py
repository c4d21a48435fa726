"""Shared pytest fixtures for snipcheck tests.

Provides structlog test configuration, corpus builders, profiles and a
deterministic fake backend so that most tests run without a real checker.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from snipcheck.compiler.backends import Backend
from snipcheck.models import CompilationUnit, Document, RawDiagnostic, Severity, split_lines
from snipcheck.profile import CompilerProfile

ERROR_MARKER = "!!"
WARNING_MARKER = "??"


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to write plain lines to stderr.

    Keeps stdout free for CLI output parsed by tests and avoids depending on
    the configuration left behind by earlier tests.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


class MarkerBackend(Backend):
    """Fake checker: reports an error on every source line containing `!!`
    and a warning on every line containing `??`.

    Records the id of every unit it checks, from any worker thread.
    """

    name = "marker"

    def __init__(self, profile: CompilerProfile) -> None:
        super().__init__(profile)
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def check(self, unit: CompilationUnit) -> list[RawDiagnostic]:
        with self._lock:
            self.calls.append(unit.id)
        diagnostics: list[RawDiagnostic] = []
        for number, line in enumerate(split_lines(unit.source), start=1):
            for marker, severity in (
                (ERROR_MARKER, Severity.ERROR),
                (WARNING_MARKER, Severity.WARNING),
            ):
                column = line.find(marker)
                if column >= 0:
                    diagnostics.append(
                        RawDiagnostic(
                            line=number,
                            column=column + 1,
                            severity=severity,
                            message=f"marker {marker} found",
                            code="M001" if severity == Severity.ERROR else "M002",
                        )
                    )
        return diagnostics


@pytest.fixture
def python_profile() -> CompilerProfile:
    """Python profile without a cache file."""
    return CompilerProfile(name="test", language="python", cache_path=None)


@pytest.fixture
def ts_profile() -> CompilerProfile:
    """TypeScript profile without a cache file."""
    return CompilerProfile(name="test", language="typescript", cache_path=None)


@pytest.fixture
def marker_backend(python_profile: CompilerProfile) -> MarkerBackend:
    """Fake backend bound to the Python profile."""
    return MarkerBackend(python_profile)


@pytest.fixture
def make_backend() -> Callable[[CompilerProfile], MarkerBackend]:
    """Factory building a fake backend for any profile."""
    return MarkerBackend


@pytest.fixture
def make_document() -> Callable[..., Document]:
    """Factory building an in-memory Document."""

    def _make(text: str, path: str = "lesson.md", ordinal: int = 0) -> Document:
        return Document(path=path, text=text, ordinal=ordinal, title=path)

    return _make


@pytest.fixture
def make_corpus(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Factory writing {relative path: text} files under a corpus root."""

    def _make(files: dict[str, str]) -> Path:
        root = tmp_path / "docs"
        root.mkdir(exist_ok=True)
        for relative, text in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def isolated_runner(cli_runner: CliRunner) -> Generator[CliRunner, None, None]:
    """Create a Click test runner with an isolated filesystem."""
    with cli_runner.isolated_filesystem():
        yield cli_runner
