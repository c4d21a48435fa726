"""Unit tests for type-checking backends."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

from snipcheck.compiler.backends import (
    CommandBackend,
    MypyBackend,
    TypeScriptBackend,
    create_backend,
)
from snipcheck.errors import BackendError, CheckTimeoutError
from snipcheck.models import CompilationUnit, Segment, Severity, Snippet
from snipcheck.profile import CompilerProfile

CHECKER_SCRIPT = textwrap.dedent(
    """\
    import sys

    path = sys.argv[1]
    found = False
    with open(path, encoding="utf-8") as handle:
        for number, line in enumerate(handle, start=1):
            if "bad" in line:
                print(f"{path}:{number}:{line.index('bad') + 1}: error: bad word [X001]")
                found = True
    sys.exit(1 if found else 0)
    """
)


def python_unit(body: str) -> CompilationUnit:
    snippet = Snippet(document="a.md", index=0, language="python", text=body, start_line=1, end_line=3)
    return CompilationUnit(
        id="a.md#0",
        document="a.md",
        dialect="python",
        segments=(Segment(snippet=snippet, body_start=1, line_count=len(body.splitlines())),),
        preamble="# snipcheck preamble v1\n",
        body=body,
    )


def command_profile(*command: str, **options: object) -> CompilerProfile:
    return CompilerProfile(
        language="python",
        backend="command",
        command=command,
        cache_path=None,
        **options,
    )


class TestCreateBackend:
    """Tests for backend selection."""

    def test_auto_selection(self) -> None:
        """Each language gets its default backend."""
        assert isinstance(create_backend(CompilerProfile()), TypeScriptBackend)
        assert isinstance(create_backend(CompilerProfile(language="python")), MypyBackend)

    def test_command_backend(self) -> None:
        """An explicit command backend is honoured."""
        backend = create_backend(command_profile("checker", "{file}"))

        assert isinstance(backend, CommandBackend)


class TestGenericParser:
    """Tests for the `file:line:col: severity: message` parser."""

    def test_parses_errors_and_warnings(self) -> None:
        """Errors and warnings are kept, notes dropped."""
        output = (
            "snippet.py:3:5: error: Incompatible types  [assignment]\n"
            "snippet.py:4: warning: Unused 'type: ignore' comment\n"
            "snippet.py:4: note: See https://example.invalid\n"
            "other.py:1:1: error: Not ours\n"
            "Found 1 error in 1 file\n"
        )
        backend = MypyBackend(CompilerProfile(language="python"))

        diagnostics = backend.parse_output(output, "snippet.py")

        assert [(d.line, d.column, d.severity) for d in diagnostics] == [
            (3, 5, Severity.ERROR),
            (4, 1, Severity.WARNING),
        ]
        assert diagnostics[0].message == "Incompatible types"
        assert diagnostics[0].code == "assignment"
        assert diagnostics[1].code is None

    def test_absolute_paths_match_by_name(self) -> None:
        """Checkers that print absolute paths are still matched."""
        backend = MypyBackend(CompilerProfile(language="python"))

        diagnostics = backend.parse_output("/tmp/x/snippet.py:1:1: error: boom\n", "snippet.py")

        assert len(diagnostics) == 1


class TestTypeScriptBackend:
    """Tests for the tsc backend."""

    def test_build_args(self, tmp_path: Path) -> None:
        """Profile options become tsc flags; the file comes last."""
        profile = CompilerProfile(
            target="es2020",
            libs=["es2020", "dom"],
            flags=["--noUnusedLocals"],
        )

        args = TypeScriptBackend(profile).build_args("snippet.ts", tmp_path)

        assert args == [
            "tsc",
            "--noEmit",
            "--pretty",
            "false",
            "--target",
            "es2020",
            "--strict",
            "--lib",
            "es2020,dom",
            "--noUnusedLocals",
            "snippet.ts",
        ]

    def test_command_override(self, tmp_path: Path) -> None:
        """A command override replaces the executable prefix."""
        profile = CompilerProfile(command=["npx", "tsc"], strict=False)

        args = TypeScriptBackend(profile).build_args("snippet.ts", tmp_path)

        assert args[:3] == ["npx", "tsc", "--noEmit"]
        assert "--strict" not in args

    def test_tsx_file_gets_jsx_flag(self, tmp_path: Path) -> None:
        """A .tsx unit is checked with JSX preserved; plain .ts units are not."""
        backend = TypeScriptBackend(CompilerProfile())

        tsx_args = backend.build_args("snippet.tsx", tmp_path)
        ts_args = backend.build_args("snippet.ts", tmp_path)

        assert tsx_args[-3:] == ["--jsx", "preserve", "snippet.tsx"]
        assert "--jsx" not in ts_args

    def test_profile_jsx_flag_wins(self, tmp_path: Path) -> None:
        """An explicit --jsx flag in the profile is not doubled."""
        profile = CompilerProfile(flags=["--jsx", "react-jsx"])

        args = TypeScriptBackend(profile).build_args("snippet.tsx", tmp_path)

        assert args.count("--jsx") == 1
        assert args[-3:] == ["--jsx", "react-jsx", "snippet.tsx"]

    def test_parse_output(self) -> None:
        """tsc diagnostics and their indented continuations are parsed."""
        output = (
            "snippet.ts(3,7): error TS2322: Type 'string' is not assignable to type 'number'.\n"
            "snippet.ts(5,1): error TS2345: Argument of type 'A' is not assignable.\n"
            "  Property 'x' is missing in type 'A'.\n"
            "lib.d.ts(1,1): error TS1000: Elsewhere.\n"
            "  Not ours either.\n"
        )

        diagnostics = TypeScriptBackend(CompilerProfile()).parse_output(output, "snippet.ts")

        assert [(d.line, d.column, d.code) for d in diagnostics] == [
            (3, 7, "TS2322"),
            (5, 1, "TS2345"),
        ]
        assert diagnostics[1].message == (
            "Argument of type 'A' is not assignable. Property 'x' is missing in type 'A'."
        )


class TestMypyBackend:
    """Tests for the mypy backend."""

    def test_build_args(self, tmp_path: Path) -> None:
        """Each call gets a private cache directory."""
        profile = CompilerProfile(language="python", target="3.11", flags=["--warn-unreachable"])

        args = MypyBackend(profile).build_args("snippet.py", tmp_path)

        assert args[:3] == [sys.executable, "-m", "mypy"]
        assert args[args.index("--python-version") + 1] == "3.11"
        assert args[args.index("--cache-dir") + 1] == str(tmp_path / ".mypy_cache")
        assert args[-3:] == ["--strict", "--warn-unreachable", "snippet.py"]


class TestCommandBackend:
    """Tests for the custom command backend, run as real subprocesses."""

    def test_placeholder_replaced(self, tmp_path: Path) -> None:
        """`{file}` is substituted and nothing is appended."""
        backend = CommandBackend(command_profile("lint", "--input={file}"))

        assert backend.build_args("snippet.py", tmp_path) == ["lint", "--input=snippet.py"]

    def test_file_appended_without_placeholder(self, tmp_path: Path) -> None:
        """Without `{file}`, flags and then the file are appended."""
        backend = CommandBackend(command_profile("lint", flags=["--fast"]))

        assert backend.build_args("snippet.py", tmp_path) == ["lint", "--fast", "snippet.py"]

    def test_check_reports_diagnostics(self, tmp_path: Path) -> None:
        """The checker's output is parsed into unit-local diagnostics."""
        script = tmp_path / "checker.py"
        script.write_text(CHECKER_SCRIPT)
        backend = CommandBackend(command_profile(sys.executable, str(script), "{file}"))

        diagnostics = backend.check(python_unit("x = 1\ny = 'bad'\n"))

        assert [(d.line, d.column, d.code) for d in diagnostics] == [(3, 6, "X001")]

    def test_clean_check(self, tmp_path: Path) -> None:
        """A clean unit yields no diagnostics."""
        script = tmp_path / "checker.py"
        script.write_text(CHECKER_SCRIPT)
        backend = CommandBackend(command_profile(sys.executable, str(script), "{file}"))

        assert backend.check(python_unit("x = 1\n")) == []

    def test_timeout(self) -> None:
        """A hanging checker raises CheckTimeoutError."""
        backend = CommandBackend(
            command_profile(
                sys.executable, "-c", "import time; time.sleep(10)", timeout_seconds=0.5
            )
        )

        with pytest.raises(CheckTimeoutError):
            backend.check(python_unit("x = 1\n"))

    def test_missing_executable(self) -> None:
        """An executable that does not exist is a backend error."""
        backend = CommandBackend(command_profile("snipcheck-no-such-checker"))

        assert backend.is_available() is False
        with pytest.raises(BackendError, match="executable not found"):
            backend.check(python_unit("x = 1\n"))

    def test_failure_without_diagnostics(self) -> None:
        """A non-zero exit with nothing to show is a backend error."""
        backend = CommandBackend(
            command_profile(sys.executable, "-c", "import sys; sys.exit(3)")
        )

        with pytest.raises(BackendError, match="status 3"):
            backend.check(python_unit("x = 1\n"))

    def test_unit_suffix_names_the_checked_file(self, tmp_path: Path) -> None:
        """The unit's own suffix decides the file name the checker sees."""
        script = tmp_path / "name_checker.py"
        script.write_text(
            "import os, sys\n"
            "name = os.path.basename(sys.argv[1])\n"
            "print(f'{name}:2:1: error: checked as {name}')\n"
            "sys.exit(1)\n"
        )
        backend = CommandBackend(command_profile(sys.executable, str(script), "{file}"))
        unit = python_unit("x = 1\n").model_copy(update={"suffix": ".pyi"})

        diagnostics = backend.check(unit)

        assert [d.message for d in diagnostics] == ["checked as snippet.pyi"]
