"""CLI entry point for snipcheck.

This module defines the main CLI group using the LazyGroup pattern so that
`snipcheck --help` never imports the validation engine.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from snipcheck_cli import __version__
from snipcheck_cli.output import set_no_color

# Configure rich-click for better help formatting
rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True

LOG_LEVEL_CHOICES = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LazyGroup(rclick.RichGroup):
    """Click group that loads commands lazily.

    Commands are only imported when actually invoked, not at import time.

    Attributes:
        lazy_subcommands: Mapping of command names to module paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize LazyGroup.

        Args:
            *args: Positional arguments for parent class.
            lazy_subcommands: Mapping of command name to module path.
                Format: {"check": "snipcheck_cli.commands.check.check"}
            **kwargs: Keyword arguments for parent class.
        """
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return sorted command names, lazy and directly registered."""
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, loading lazily if needed."""
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_path = self.lazy_subcommands[cmd_name]
        module_name, attr_name = module_path.rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "check": "snipcheck_cli.commands.check.check",
    "extract": "snipcheck_cli.commands.extract.extract",
    "profile": "snipcheck_cli.commands.profile.profile",
    "cache": "snipcheck_cli.commands.cache.cache",
}


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="snipcheck")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVEL_CHOICES, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Minimum level of log messages written to stderr.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Write log messages as JSON lines.",
)
def cli(log_level: str, log_json: bool) -> None:
    """snipcheck - Type-check the code snippets in your documentation.

    Extracts fenced code blocks from a Markdown corpus, groups snippets that
    build on each other into compilation units, type-checks every unit and
    reports each diagnostic at the document line that caused it.

    **Getting Started:**

    - `snipcheck check docs/` - Validate every snippet under docs/
    - `snipcheck extract docs/intro.md` - Show how snippets are grouped
    - `snipcheck profile show` - Print the effective compiler profile
    """
    from snipcheck.observability import configure_logging

    configure_logging(log_level=log_level, json_format=log_json)


if __name__ == "__main__":
    cli()
