"""Profile resolution shared by CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import click

from snipcheck_cli.errors import handle_snipcheck_error

if TYPE_CHECKING:
    from snipcheck.profile import CompilerProfile

DEFAULT_PROFILE_FILES = ("snipcheck.yaml", "snipcheck.yml")

F = TypeVar("F", bound=Callable[..., Any])


def profile_options(func: F) -> F:
    """Add the `--profile` and `--name` options to a command."""
    func = click.option(
        "--name",
        "profile_name",
        default=None,
        help="Profile to use from a multi-profile file.",
    )(func)
    func = click.option(
        "-p",
        "--profile",
        "profile_path",
        type=click.Path(dir_okay=False),
        default=None,
        help="Profile file [default: snipcheck.yaml in ROOT or the working directory]",
    )(func)
    return func


def find_profile_file(root: Path) -> Path | None:
    """Return the first default profile file in `root` or the working directory."""
    for directory in (root, Path.cwd()):
        for name in DEFAULT_PROFILE_FILES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def resolve_profile(
    profile_path: str | None,
    profile_name: str | None,
    root: Path,
    **overrides: Any,
) -> CompilerProfile:
    """Load the profile a command should run with.

    Uses `--profile` if given, else `snipcheck.yaml` next to the corpus or in
    the working directory, else the built-in defaults. Non-None overrides
    from command-line options are applied last.

    Raises:
        CLIError: On any configuration error (exit code 2).
    """
    from snipcheck.errors import ConfigurationError
    from snipcheck.profile import CompilerProfile, apply_overrides, load_profile

    try:
        path = Path(profile_path) if profile_path else find_profile_file(root)
        if path is not None:
            profile = load_profile(path, profile_name)
        elif profile_name:
            raise click.UsageError("--name requires a profile file (use --profile)")
        else:
            profile = CompilerProfile()
        return apply_overrides(profile, **overrides)
    except ConfigurationError as e:
        handle_snipcheck_error(e)
