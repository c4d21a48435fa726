"""Custom exception hierarchy for snipcheck.

This module defines the exception classes used throughout snipcheck:
- SnipcheckError: Base exception for all snipcheck errors
- ConfigurationError: Raised when a compiler profile is invalid (fatal)
- ProfileNotFoundError: Raised when a named profile does not exist (fatal)
- BackendError: Raised when a type-checking backend misbehaves (per-unit)
- CheckTimeoutError: Raised when a unit check exceeds its timeout (per-unit)
- CacheError: Raised when the outcome cache cannot be read or written

Only configuration errors abort a run. Everything else is caught by the
compiler driver or the report aggregator and degrades to a per-unit outcome.

User-facing messages are safe to display; technical details are logged
internally via structlog.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class SnipcheckError(Exception):
    """Base exception for snipcheck.

    All snipcheck exceptions inherit from this class. User-facing messages
    are safe to display; technical details are logged internally.

    Args:
        user_message: Message to display to the user.
        internal_details: Optional technical details for logging. Logged
            at error level but never part of the exception message.

    Example:
        >>> raise SnipcheckError(
        ...     "Profile invalid",
        ...     internal_details="concurrency: input should be >= 1",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize SnipcheckError with user message and optional internal details.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details

        if internal_details:
            logger.error(
                "snipcheck_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(SnipcheckError):
    """Raised when a compiler profile cannot be loaded or is contradictory.

    Use this exception when:
    - The profile file is missing or is not valid YAML
    - A field is missing, has the wrong type or violates a constraint
    - Two options contradict each other (e.g. a flag and its negation)
    - The corpus root does not exist

    Configuration errors are fatal: the run aborts before any unit is
    processed.

    Attributes:
        file_path: Path to the profile file (if known).
        field_path: Dot-separated path to the invalid field (e.g., "flags").
        line_number: Line number in the file where the error occurred.

    Example:
        >>> raise ConfigurationError(
        ...     "Invalid target",
        ...     file_path="snipcheck.yaml",
        ...     field_path="target",
        ...     line_number=4,
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        field_path: str | None = None,
        line_number: int | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize ConfigurationError with context.

        Args:
            user_message: Safe message to display to the user.
            file_path: Path to the profile file (optional).
            field_path: Dot-separated path to the field (optional).
            line_number: Line number in the file (optional).
            internal_details: Technical details for internal logging only.
        """
        context_parts: list[str] = []
        if file_path:
            context_parts.append(f"in {file_path}")
        if line_number:
            context_parts.append(f"line {line_number}")
        if field_path:
            context_parts.append(f"field '{field_path}'")

        if context_parts:
            full_message = f"{user_message} ({', '.join(context_parts)})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.file_path = file_path
        self.field_path = field_path
        self.line_number = line_number


class ProfileNotFoundError(ConfigurationError):
    """Raised when a named profile is missing from a multi-profile file.

    Always includes the list of available profiles for actionable feedback.

    Example:
        >>> raise ProfileNotFoundError("strict", ["default", "lenient"])
        # User sees: "Profile 'strict' not found. Available: default, lenient"
    """

    def __init__(
        self,
        profile_name: str,
        available_profiles: list[str],
        *,
        file_path: str | None = None,
    ) -> None:
        """Initialize ProfileNotFoundError with available profiles.

        Args:
            profile_name: Name of the requested profile.
            available_profiles: Profile names defined in the file.
            file_path: Path to the profile file (optional).
        """
        available_str = ", ".join(available_profiles) if available_profiles else "none"
        super().__init__(
            f"Profile '{profile_name}' not found. Available: {available_str}",
            file_path=file_path,
        )

        self.profile_name = profile_name
        self.available_profiles = available_profiles


class BackendError(SnipcheckError):
    """Raised when a type-checking backend fails to produce a verdict.

    Use this exception when:
    - The checker executable cannot be found
    - The checker crashes or rejects its own command line
    - The checker output cannot be interpreted

    The driver turns this into an "error" outcome for the unit.
    """

    def __init__(
        self,
        backend: str,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize BackendError.

        Args:
            backend: Name of the failing backend (e.g., "tsc").
            user_message: Safe message to display to the user.
            internal_details: Captured stderr or argv, logged only.
        """
        super().__init__(f"{backend}: {user_message}", internal_details=internal_details)
        self.backend = backend


class CheckTimeoutError(SnipcheckError):
    """Raised when a single unit check exceeds the per-unit timeout."""

    def __init__(self, backend: str, timeout_seconds: float) -> None:
        """Initialize CheckTimeoutError.

        Args:
            backend: Name of the backend that was cancelled.
            timeout_seconds: The timeout that was exceeded.
        """
        super().__init__(f"{backend}: check timed out after {timeout_seconds:g}s")
        self.backend = backend
        self.timeout_seconds = timeout_seconds


class CacheError(SnipcheckError):
    """Raised when the outcome cache file is unreadable or unwritable.

    The aggregator logs it and carries on with an empty cache.
    """

    pass
