"""Python backend driving mypy in a subprocess."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

from snipcheck.compiler.backends.base import SubprocessBackend


class MypyBackend(SubprocessBackend):
    """Runs `python -m mypy` on a single unit file.

    Each call gets its own cache directory inside the unit's temporary
    directory, so concurrent checks never contend for a shared mypy cache.
    """

    name = "mypy"
    default_command = (sys.executable, "-m", "mypy")

    def is_available(self) -> bool:
        if self.profile.command:
            return super().is_available()
        return importlib.util.find_spec("mypy") is not None

    def build_args(self, file_name: str, workdir: Path) -> list[str]:
        profile = self.profile
        args = [
            *self.command,
            "--no-error-summary",
            "--show-column-numbers",
            "--show-error-codes",
            "--no-color-output",
            "--hide-error-context",
            "--no-incremental",
            "--python-version",
            profile.resolved_target,
            "--cache-dir",
            str(workdir / ".mypy_cache"),
        ]
        if profile.strict:
            args.append("--strict")
        args.extend(profile.flags)
        args.append(file_name)
        return args
