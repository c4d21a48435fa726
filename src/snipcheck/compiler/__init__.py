"""Compiler driver and type-checking backends."""

from __future__ import annotations

from snipcheck.compiler.backends import (
    Backend,
    CommandBackend,
    MypyBackend,
    SubprocessBackend,
    TypeScriptBackend,
    create_backend,
)
from snipcheck.compiler.driver import CompilerDriver

__all__ = [
    "Backend",
    "CommandBackend",
    "CompilerDriver",
    "MypyBackend",
    "SubprocessBackend",
    "TypeScriptBackend",
    "create_backend",
]
