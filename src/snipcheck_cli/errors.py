"""CLI error handling for snipcheck.

Wraps snipcheck exceptions into user-friendly messages with
appropriate exit codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import click
from pydantic import ValidationError as PydanticValidationError

from snipcheck_cli.output import error

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

    from snipcheck.errors import SnipcheckError


EXIT_SUCCESS = 0
EXIT_FAILURE = 1  # Validation failed (diagnostics, malformed, timeout, error)
EXIT_SYSTEM_ERROR = 2  # Configuration or system error


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 2).
    """

    def __init__(self, message: str, exit_code: int = EXIT_SYSTEM_ERROR) -> None:
        """Initialize CLIError.

        Args:
            message: User-facing error message.
            exit_code: Exit code for the CLI.
        """
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting.

        Args:
            file: Output file (unused, for Click compatibility).
        """
        error(self.format_message(), highlight=False)


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format Pydantic validation error into user-friendly message.

    Args:
        err: Pydantic ValidationError instance.

    Returns:
        Formatted error message with field paths and issues.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - concurrency: Input should be greater than or equal to 1"
    """
    errors: list[ErrorDetails] = err.errors()
    lines = ["Validation failed:"]

    for e in errors:
        loc = ".".join(str(x) for x in e["loc"]) or "(profile)"
        lines.append(f"  - {loc}: {e['msg']}")

    return "\n".join(lines)


def handle_snipcheck_error(err: SnipcheckError) -> NoReturn:
    """Convert a fatal snipcheck error into a CLIError.

    Raises:
        CLIError: Always, with the system-error exit code.
    """
    raise CLIError(str(err), exit_code=EXIT_SYSTEM_ERROR) from err
