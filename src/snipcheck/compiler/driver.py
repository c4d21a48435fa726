"""Compiler driver: type-check one unit and classify the result.

The driver is the only place a backend is called. It owns timing, logging and
the translation of backend failures into unit outcomes, so a crashing or
hanging checker never takes the run down with it.
"""

from __future__ import annotations

import threading
import time
from typing import Any

import structlog

from snipcheck.compiler.backends import Backend
from snipcheck.errors import BackendError, CheckTimeoutError
from snipcheck.models import (
    CompilationUnit,
    RawDiagnostic,
    Severity,
    UnitKind,
    UnitOutcome,
    UnitStatus,
)
from snipcheck.profile import CompilerProfile

logger = structlog.get_logger(__name__)


class CompilerDriver:
    """Check units with a backend and turn the result into an outcome.

    Attributes:
        backend: Backend doing the type checking.
        profile: Active compiler profile.

    Example:
        >>> driver = CompilerDriver(create_backend(profile), profile)
        >>> outcome = driver.check(unit)
        >>> outcome.status
        <UnitStatus.OK: 'ok'>
    """

    def __init__(self, backend: Backend, profile: CompilerProfile) -> None:
        """Initialize the driver.

        Args:
            backend: Backend used for every unit.
            profile: Compiler profile (timeout, warning policy).
        """
        self.backend = backend
        self.profile = profile
        self._log = logger.bind(component="compiler_driver", backend=backend.name)

    def check(self, unit: CompilationUnit) -> UnitOutcome:
        """Type-check one unit.

        Never raises for per-unit problems: timeouts become TIMEOUT outcomes
        and any backend failure becomes an ERROR outcome.

        Args:
            unit: A checkable unit.

        Returns:
            UnitOutcome with unit-local diagnostics outside the preamble.
        """
        if unit.kind != UnitKind.CHECKABLE:
            msg = f"unit {unit.id} is {unit.kind.value} and cannot be compiled"
            raise ValueError(msg)

        start_time = time.monotonic()
        self._log.debug("unit_check_started", unit=unit.id)

        try:
            raw = self._check_with_deadline(unit)
        except CheckTimeoutError as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self._log.warning("unit_check_timeout", unit=unit.id, duration_ms=duration_ms)
            return UnitOutcome(
                unit_id=unit.id,
                status=UnitStatus.TIMEOUT,
                detail=str(e),
                duration_ms=duration_ms,
            )
        except BackendError as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self._log.error("unit_check_error", unit=unit.id, error=str(e))
            return UnitOutcome(
                unit_id=unit.id,
                status=UnitStatus.ERROR,
                detail=str(e),
                duration_ms=duration_ms,
            )
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self._log.exception("unit_check_crashed", unit=unit.id, error_type=type(e).__name__)
            return UnitOutcome(
                unit_id=unit.id,
                status=UnitStatus.ERROR,
                detail=f"Check failed with error: {type(e).__name__}: {e}",
                duration_ms=duration_ms,
            )

        duration_ms = int((time.monotonic() - start_time) * 1000)
        outcome = self.classify(unit, raw, duration_ms=duration_ms)
        self._log.info(
            "unit_check_completed",
            unit=unit.id,
            status=outcome.status.value,
            diagnostics=len(outcome.diagnostics),
            duration_ms=duration_ms,
        )
        return outcome

    def _check_with_deadline(self, unit: CompilationUnit) -> list[RawDiagnostic]:
        """Run the backend on a daemon thread and stop waiting at the timeout.

        A backend that overruns is abandoned, not interrupted. Subprocess
        backends also pass the timeout to the checker process, so their
        process is killed shortly after.

        Raises:
            CheckTimeoutError: If the backend has not answered in time.
        """
        timeout = self.profile.timeout_seconds
        result: dict[str, Any] = {}

        def target() -> None:
            try:
                result["diagnostics"] = self.backend.check(unit)
            except Exception as e:
                result["error"] = e

        thread = threading.Thread(target=target, name=f"snipcheck-{unit.id}", daemon=True)
        thread.start()
        thread.join(timeout=timeout)
        if thread.is_alive():
            raise CheckTimeoutError(self.backend.name, timeout)
        if "error" in result:
            raise result["error"]
        return result["diagnostics"]

    def classify(
        self,
        unit: CompilationUnit,
        raw: list[RawDiagnostic],
        *,
        duration_ms: int = 0,
    ) -> UnitOutcome:
        """Decide a unit's status from its raw diagnostics.

        Errors positioned inside the synthesized preamble mean the tool got
        its own declarations wrong; that is an internal error, never blamed on
        the snippet.
        """
        preamble_lines = unit.preamble_lines
        in_preamble = [d for d in raw if d.line <= preamble_lines]
        local = tuple(
            sorted(
                (d for d in raw if d.line > preamble_lines),
                key=lambda d: (d.line, d.column, d.message),
            )
        )

        preamble_errors = [d for d in in_preamble if d.severity == Severity.ERROR]
        if preamble_errors:
            self._log.error(
                "preamble_rejected",
                unit=unit.id,
                errors=[d.message for d in preamble_errors],
            )
            return UnitOutcome(
                unit_id=unit.id,
                status=UnitStatus.ERROR,
                diagnostics=local,
                detail="Internal error: the checker rejected the synthesized preamble",
                duration_ms=duration_ms,
            )

        failing = any(
            d.severity == Severity.ERROR or self.profile.fail_on_warnings for d in local
        )
        return UnitOutcome(
            unit_id=unit.id,
            status=UnitStatus.DIAGNOSTICS if failing else UnitStatus.OK,
            diagnostics=local,
            duration_ms=duration_ms,
        )
