"""Type-checking backends.

Exports:
    Backend: Abstract base class for backends
    SubprocessBackend: Base class for external checker processes
    TypeScriptBackend: `tsc --noEmit`
    MypyBackend: `python -m mypy`
    CommandBackend: User-supplied command
    create_backend: Factory selecting the backend a profile asks for
"""

from __future__ import annotations

from snipcheck.compiler.backends.base import Backend, SubprocessBackend
from snipcheck.compiler.backends.command import CommandBackend
from snipcheck.compiler.backends.mypy import MypyBackend
from snipcheck.compiler.backends.typescript import TypeScriptBackend
from snipcheck.profile import BackendKind, CompilerProfile

BACKENDS: dict[BackendKind, type[SubprocessBackend]] = {
    BackendKind.TSC: TypeScriptBackend,
    BackendKind.MYPY: MypyBackend,
    BackendKind.COMMAND: CommandBackend,
}


def create_backend(profile: CompilerProfile) -> Backend:
    """Instantiate the backend selected by `profile`."""
    return BACKENDS[profile.resolved_backend](profile)


__all__ = [
    "BACKENDS",
    "Backend",
    "CommandBackend",
    "MypyBackend",
    "SubprocessBackend",
    "TypeScriptBackend",
    "create_backend",
]
