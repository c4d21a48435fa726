"""snipcheck cache commands - Manage the outcome cache."""

from __future__ import annotations

from pathlib import Path

import click

from snipcheck_cli.config import profile_options, resolve_profile
from snipcheck_cli.output import info, success


@click.group()
def cache() -> None:
    """Manage the outcome cache."""


@cache.command("clear")
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@profile_options
def clear(root: Path, profile_path: str | None, profile_name: str | None) -> None:
    """Delete the outcome cache of a corpus.

    The next `snipcheck check` re-checks every unit.

    Examples:

        snipcheck cache clear docs/
    """
    from snipcheck.report import OutcomeCache

    resolved = resolve_profile(profile_path, profile_name, root)
    if resolved.cache_path is None:
        info("Caching is disabled for this profile")
        return

    outcome_cache = OutcomeCache(root / resolved.cache_path, resolved.fingerprint)
    if outcome_cache.clear():
        success(f"Removed {outcome_cache.path}")
    else:
        info(f"No cache at {outcome_cache.path}")
