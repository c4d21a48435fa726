"""Unit tests for the compiler driver."""

from __future__ import annotations

import threading
from collections.abc import Callable

import pytest

from snipcheck.assembly import UnitAssembler
from snipcheck.compiler import CompilerDriver
from snipcheck.compiler.backends import Backend
from snipcheck.errors import BackendError, CheckTimeoutError
from snipcheck.extraction import extract_snippets
from snipcheck.models import (
    CompilationUnit,
    Document,
    RawDiagnostic,
    Severity,
    UnitStatus,
)
from snipcheck.profile import CompilerProfile

BackendFactory = Callable[[CompilerProfile], Backend]


class RaisingBackend(Backend):
    """Backend that raises a fixed exception."""

    name = "raising"

    def __init__(self, profile: CompilerProfile, error: Exception) -> None:
        super().__init__(profile)
        self.error = error

    def check(self, unit: CompilationUnit) -> list[RawDiagnostic]:
        raise self.error


class BlockingBackend(Backend):
    """Backend that blocks until released."""

    name = "blocking"

    def __init__(self, profile: CompilerProfile) -> None:
        super().__init__(profile)
        self.release = threading.Event()

    def check(self, unit: CompilationUnit) -> list[RawDiagnostic]:
        self.release.wait(5.0)
        return []


def build_unit(
    profile: CompilerProfile, make_document: Callable[..., Document], text: str
) -> CompilationUnit:
    document = make_document(text)
    result = UnitAssembler(profile).assemble(
        document, extract_snippets(document.path, document.text)
    )
    return result.units[0]


class TestCheck:
    """Tests for CompilerDriver.check."""

    def test_clean_unit_is_ok(
        self,
        python_profile: CompilerProfile,
        make_document: Callable[..., Document],
        make_backend: BackendFactory,
    ) -> None:
        """No diagnostics means OK."""
        unit = build_unit(python_profile, make_document, "```python\nx = 1\n```\n")
        driver = CompilerDriver(make_backend(python_profile), python_profile)

        outcome = driver.check(unit)

        assert outcome.status == UnitStatus.OK
        assert outcome.unit_id == unit.id
        assert outcome.diagnostics == ()

    def test_errors_are_diagnostics(
        self,
        python_profile: CompilerProfile,
        make_document: Callable[..., Document],
        make_backend: BackendFactory,
    ) -> None:
        """Error diagnostics in snippet code fail the unit."""
        unit = build_unit(python_profile, make_document, "```python\nx = 1  # !!\n```\n")
        driver = CompilerDriver(make_backend(python_profile), python_profile)

        outcome = driver.check(unit)

        assert outcome.status == UnitStatus.DIAGNOSTICS
        assert outcome.diagnostics[0].line == unit.preamble_lines + 1
        assert outcome.diagnostics[0].code == "M001"

    def test_timeout_outcome(
        self, python_profile: CompilerProfile, make_document: Callable[..., Document]
    ) -> None:
        """A timeout becomes a TIMEOUT outcome."""
        unit = build_unit(python_profile, make_document, "```python\nx = 1\n```\n")
        backend = RaisingBackend(python_profile, CheckTimeoutError("raising", 1.0))

        outcome = CompilerDriver(backend, python_profile).check(unit)

        assert outcome.status == UnitStatus.TIMEOUT
        assert "timed out" in outcome.detail

    def test_slow_backend_is_abandoned_at_timeout(
        self, python_profile: CompilerProfile, make_document: Callable[..., Document]
    ) -> None:
        """The driver stops waiting once the profile timeout has passed."""
        profile = python_profile.model_copy(update={"timeout_seconds": 0.2})
        unit = build_unit(profile, make_document, "```python\nx = 1\n```\n")
        backend = BlockingBackend(profile)

        try:
            outcome = CompilerDriver(backend, profile).check(unit)
        finally:
            backend.release.set()

        assert outcome.status == UnitStatus.TIMEOUT
        assert outcome.detail == "blocking: check timed out after 0.2s"
        assert outcome.duration_ms < 4000

    def test_backend_error_outcome(
        self, python_profile: CompilerProfile, make_document: Callable[..., Document]
    ) -> None:
        """A backend error becomes an ERROR outcome."""
        unit = build_unit(python_profile, make_document, "```python\nx = 1\n```\n")
        backend = RaisingBackend(python_profile, BackendError("raising", "crashed"))

        outcome = CompilerDriver(backend, python_profile).check(unit)

        assert outcome.status == UnitStatus.ERROR
        assert outcome.detail == "raising: crashed"

    def test_unexpected_exception_is_contained(
        self, python_profile: CompilerProfile, make_document: Callable[..., Document]
    ) -> None:
        """Any other failure also becomes an ERROR outcome."""
        unit = build_unit(python_profile, make_document, "```python\nx = 1\n```\n")
        backend = RaisingBackend(python_profile, RuntimeError("boom"))

        outcome = CompilerDriver(backend, python_profile).check(unit)

        assert outcome.status == UnitStatus.ERROR
        assert outcome.detail == "Check failed with error: RuntimeError: boom"

    def test_refuses_uncheckable_units(
        self,
        python_profile: CompilerProfile,
        make_document: Callable[..., Document],
        make_backend: BackendFactory,
    ) -> None:
        """Only checkable units reach the backend."""
        unit = build_unit(python_profile, make_document, "```bash\nls\n```\n")
        driver = CompilerDriver(make_backend(python_profile), python_profile)

        with pytest.raises(ValueError, match="cannot be compiled"):
            driver.check(unit)


class TestClassify:
    """Tests for CompilerDriver.classify."""

    @pytest.fixture
    def unit(
        self, make_document: Callable[..., Document]
    ) -> CompilationUnit:
        profile = CompilerProfile(language="python", ambient=["app"], cache_path=None)
        return build_unit(profile, make_document, "```python\napp.run()\nx = 1\n```\n")

    def test_warnings_alone_pass(
        self,
        python_profile: CompilerProfile,
        unit: CompilationUnit,
        make_backend: BackendFactory,
    ) -> None:
        """Warnings are reported but do not fail the unit by default."""
        driver = CompilerDriver(make_backend(python_profile), python_profile)
        raw = [RawDiagnostic(line=unit.preamble_lines + 1, severity=Severity.WARNING, message="w")]

        outcome = driver.classify(unit, raw)

        assert outcome.status == UnitStatus.OK
        assert len(outcome.diagnostics) == 1

    def test_fail_on_warnings(self, unit: CompilationUnit, make_backend: BackendFactory) -> None:
        """With fail_on_warnings, warnings fail the unit."""
        profile = CompilerProfile(language="python", fail_on_warnings=True, cache_path=None)
        driver = CompilerDriver(make_backend(profile), profile)
        raw = [RawDiagnostic(line=unit.preamble_lines + 1, severity=Severity.WARNING, message="w")]

        assert driver.classify(unit, raw).status == UnitStatus.DIAGNOSTICS

    def test_preamble_error_is_internal(
        self,
        python_profile: CompilerProfile,
        unit: CompilationUnit,
        make_backend: BackendFactory,
    ) -> None:
        """An error inside the preamble is never blamed on the snippet."""
        driver = CompilerDriver(make_backend(python_profile), python_profile)
        raw = [
            RawDiagnostic(line=2, message="bad preamble"),
            RawDiagnostic(line=unit.preamble_lines + 2, message="real"),
        ]

        outcome = driver.classify(unit, raw)

        assert outcome.status == UnitStatus.ERROR
        assert outcome.detail.startswith("Internal error")
        assert [d.message for d in outcome.diagnostics] == ["real"]

    def test_preamble_warnings_dropped(
        self,
        python_profile: CompilerProfile,
        unit: CompilationUnit,
        make_backend: BackendFactory,
    ) -> None:
        """Warnings inside the preamble are ignored."""
        driver = CompilerDriver(make_backend(python_profile), python_profile)
        raw = [RawDiagnostic(line=1, severity=Severity.WARNING, message="noise")]

        outcome = driver.classify(unit, raw)

        assert outcome.status == UnitStatus.OK
        assert outcome.diagnostics == ()

    def test_diagnostics_sorted(
        self,
        python_profile: CompilerProfile,
        unit: CompilationUnit,
        make_backend: BackendFactory,
    ) -> None:
        """Local diagnostics are ordered by position."""
        driver = CompilerDriver(make_backend(python_profile), python_profile)
        base = unit.preamble_lines
        raw = [
            RawDiagnostic(line=base + 2, column=3, message="b"),
            RawDiagnostic(line=base + 1, column=9, message="a"),
        ]

        outcome = driver.classify(unit, raw)

        assert [d.message for d in outcome.diagnostics] == ["a", "b"]
