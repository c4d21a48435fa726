"""Base classes for type-checking backends.

A backend turns one compilation unit into unit-local diagnostics. The
subprocess backends write the unit source into a private temporary
directory, run the checker there and parse its line-oriented output. No state
is shared between calls, so one backend instance can serve every worker.
"""

from __future__ import annotations

import re
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

import structlog

from snipcheck.dialects import get_dialect
from snipcheck.errors import BackendError, CheckTimeoutError
from snipcheck.models import CompilationUnit, RawDiagnostic, Severity
from snipcheck.profile import CompilerProfile

logger = structlog.get_logger(__name__)

UNIT_STEM = "snippet"

# file:line[:col]: severity: message  [code]
GENERIC_DIAGNOSTIC_RE = re.compile(
    r"^(?P<file>[^:\n]+?):(?P<line>\d+):(?:(?P<col>\d+):)?\s*"
    r"(?P<severity>error|warning|note)\s*:\s*(?P<message>.*?)"
    r"(?:\s+\[(?P<code>[\w.-]+)\])?\s*$"
)


class Backend(ABC):
    """A type checker able to produce a verdict for a single unit.

    Attributes:
        name: Backend name used in logs and error messages.
        profile: Active compiler profile.

    Example:
        >>> class AlwaysClean(Backend):
        ...     name = "clean"
        ...     def check(self, unit):
        ...         return []
    """

    name: ClassVar[str] = "backend"

    def __init__(self, profile: CompilerProfile) -> None:
        """Initialize the backend.

        Args:
            profile: Compiler profile (target, strictness, flags, timeout).
        """
        self.profile = profile

    @abstractmethod
    def check(self, unit: CompilationUnit) -> list[RawDiagnostic]:
        """Type-check a unit's source.

        Args:
            unit: A checkable unit.

        Returns:
            Diagnostics in unit-local source coordinates.

        Raises:
            BackendError: If the checker could not produce a verdict.
            CheckTimeoutError: If the check exceeded the profile timeout.
        """

    def is_available(self) -> bool:
        """Whether the backend can run on this machine."""
        return True


class SubprocessBackend(Backend):
    """Backend running an external checker once per unit.

    Subclasses provide the command line and, where the checker's format
    differs from `file:line:col: severity: message`, the output parser.
    """

    default_command: ClassVar[tuple[str, ...]] = ()

    @property
    def command(self) -> tuple[str, ...]:
        """Executable prefix: the profile override, else the default."""
        return self.profile.command or self.default_command

    def is_available(self) -> bool:
        executable = self.command[0] if self.command else None
        if executable is None:
            return False
        return Path(executable).exists() or shutil.which(executable) is not None

    @abstractmethod
    def build_args(self, file_name: str, workdir: Path) -> list[str]:
        """Full argv for checking `file_name` inside `workdir`."""

    def parse_output(self, output: str, file_name: str) -> list[RawDiagnostic]:
        """Parse checker output, keeping diagnostics about `file_name` only."""
        diagnostics: list[RawDiagnostic] = []
        for line in output.splitlines():
            match = GENERIC_DIAGNOSTIC_RE.match(line.strip())
            if match is None or match["severity"] == "note":
                continue
            if Path(match["file"]).name != file_name:
                continue
            diagnostics.append(
                RawDiagnostic(
                    line=max(int(match["line"]), 1),
                    column=max(int(match["col"] or 1), 1),
                    severity=Severity(match["severity"]),
                    message=match["message"],
                    code=match["code"],
                )
            )
        return diagnostics

    def check(self, unit: CompilationUnit) -> list[RawDiagnostic]:
        file_name = UNIT_STEM + (unit.suffix or get_dialect(self.profile.language.value).suffix)
        timeout = self.profile.timeout_seconds
        log = logger.bind(backend=self.name, unit=unit.id)

        with tempfile.TemporaryDirectory(prefix="snipcheck-") as tmp:
            workdir = Path(tmp)
            (workdir / file_name).write_text(unit.source, encoding="utf-8")
            args = self.build_args(file_name, workdir)
            log.debug("backend_invoked", args=args)
            try:
                completed = subprocess.run(
                    args,
                    cwd=workdir,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                raise CheckTimeoutError(self.name, timeout) from None
            except FileNotFoundError:
                raise BackendError(
                    self.name,
                    f"executable not found: {args[0]}",
                    internal_details=" ".join(args),
                ) from None
            except OSError as e:
                raise BackendError(self.name, f"could not start checker: {e}") from e

        output = completed.stdout + "\n" + completed.stderr
        diagnostics = self.parse_output(output, file_name)
        if completed.returncode != 0 and not diagnostics:
            raise BackendError(
                self.name,
                f"checker exited with status {completed.returncode} without diagnostics",
                internal_details=output.strip()[:2000] or None,
            )
        log.debug(
            "backend_completed",
            returncode=completed.returncode,
            diagnostics=len(diagnostics),
        )
        return diagnostics
