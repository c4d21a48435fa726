"""snipcheck profile commands - Inspect and validate compiler profiles."""

from __future__ import annotations

from pathlib import Path

import click

from snipcheck_cli.config import find_profile_file, profile_options, resolve_profile
from snipcheck_cli.errors import EXIT_FAILURE, EXIT_SYSTEM_ERROR, format_pydantic_error
from snipcheck_cli.output import error, print_json, success, warning


@click.group()
def profile() -> None:
    """Inspect and validate compiler profiles."""


@profile.command("show")
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@profile_options
def show(root: Path, profile_path: str | None, profile_name: str | None) -> None:
    """Print the effective compiler profile as JSON.

    Includes the resolved backend and target and the fingerprint that scopes
    the outcome cache.

    Examples:

        snipcheck profile show

        snipcheck profile show --profile snipcheck.yaml --name lenient
    """
    resolved = resolve_profile(profile_path, profile_name, root)
    data = resolved.model_dump(mode="json")
    data["resolved"] = {
        "backend": resolved.resolved_backend.value,
        "target": resolved.resolved_target,
        "fingerprint": resolved.fingerprint,
    }
    print_json(data)


@profile.command("validate")
@click.argument("file_path", type=click.Path(dir_okay=False), required=False)
@click.option("--name", "profile_name", default=None, help="Profile to validate.")
def validate(file_path: str | None, profile_name: str | None) -> None:
    """Validate a profile file, listing every problem found.

    Also warns when the selected backend is not installed.

    Examples:

        snipcheck profile validate

        snipcheck profile validate profiles.yaml --name strict
    """
    import yaml
    from pydantic import ValidationError as PydanticValidationError

    from snipcheck.compiler import create_backend
    from snipcheck.errors import ConfigurationError
    from snipcheck.profile import CompilerProfile

    path = Path(file_path) if file_path else find_profile_file(Path.cwd())
    if path is None or not path.is_file():
        error(f"Profile file not found: {file_path or 'snipcheck.yaml'}")
        raise SystemExit(EXIT_SYSTEM_ERROR)

    try:
        loaded = CompilerProfile.from_yaml(path, profile_name)
    except PydanticValidationError as e:
        error(f"Invalid profile in {path}:\n{format_pydantic_error(e)}", highlight=False)
        raise SystemExit(EXIT_FAILURE) from None
    except yaml.YAMLError as e:
        error(f"Invalid YAML in {path}: {e}", highlight=False)
        raise SystemExit(EXIT_FAILURE) from None
    except ConfigurationError as e:
        error(str(e), highlight=False)
        raise SystemExit(EXIT_FAILURE) from None

    backend = create_backend(loaded)
    if not backend.is_available():
        warning(f"Backend '{backend.name}' is not available on this machine")
    success(f"Profile '{loaded.name}' is valid ({loaded.language.value}, {backend.name})")
