"""Compiler profile configuration.

A compiler profile enumerates every recognized checking option: the checked
language and its backend, target language level, strictness flags, ambient
library set, corpus include/exclude globs, concurrency limit and per-unit
timeout. Invalid or contradictory profiles are configuration errors and abort
the run before any unit is processed.

Profiles are loaded from YAML. A file holds either a single profile mapping,
or several under `profiles:` with an optional `default:` name:

    default: strict
    profiles:
      strict:
        language: typescript
        strict: true
        libs: [es2022, dom]
      lenient:
        language: typescript
        strict: false
"""

from __future__ import annotations

import hashlib
import json
import re
import sys
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from snipcheck.errors import ConfigurationError, ProfileNotFoundError

DEFAULT_PROFILE_NAME = "default"
DEFAULT_CACHE_PATH = Path(".snipcheck-cache.json")

# Module constants for Pydantic field descriptions
GLOB_DESCRIPTION = "Corpus-relative glob patterns"

_TYPESCRIPT_TARGET_RE = re.compile(r"^es(3|5|6|20(1[5-9]|2\d)|next)$", re.IGNORECASE)
_PYTHON_TARGET_RE = re.compile(r"^3\.\d{1,2}$")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


class Language(str, Enum):
    """Checked language."""

    TYPESCRIPT = "typescript"
    PYTHON = "python"


class BackendKind(str, Enum):
    """Type-checking backend.

    Attributes:
        AUTO: Pick the default backend for the language
        TSC: TypeScript compiler (`tsc --noEmit`)
        MYPY: mypy, run as `python -m mypy`
        COMMAND: Custom command printing `file:line:col: severity: message`
    """

    AUTO = "auto"
    TSC = "tsc"
    MYPY = "mypy"
    COMMAND = "command"


_DEFAULT_BACKENDS = {Language.TYPESCRIPT: BackendKind.TSC, Language.PYTHON: BackendKind.MYPY}
_DEFAULT_TARGETS = {
    Language.TYPESCRIPT: "es2022",
    Language.PYTHON: f"{sys.version_info.major}.{sys.version_info.minor}",
}


class CompilerProfile(BaseModel):
    """Named set of checking options.

    Attributes:
        name: Profile name (reported in the run report).
        language: Checked language; other fence tags are left unchecked.
        backend: Backend selection (auto picks tsc or mypy).
        command: Executable prefix override, or the full command for the
            `command` backend (`{file}` is replaced with the unit path).
        target: Target language level (e.g., "es2022", "3.12").
        strict: Enable the checker's strict mode.
        flags: Extra command-line flags passed to the checker.
        libs: TypeScript `--lib` entries (the ambient library set).
        ambient: Host globals that may be referenced without a declaration,
            mapped to their stand-in type ("" for the dialect default).
        include: Globs selecting documents.
        exclude: Globs removing documents.
        concurrency: Maximum units checked in parallel.
        timeout_seconds: Per-unit check timeout.
        topic_heading_level: Headings at this level or above start a fresh topic.
        fail_on_warnings: Treat warning-only units as failing.
        cache_path: Outcome cache file; None disables caching.

    Example:
        >>> profile = CompilerProfile(language="python", ambient=["app"])
        >>> profile.resolved_backend
        <BackendKind.MYPY: 'mypy'>
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        default=DEFAULT_PROFILE_NAME,
        pattern=r"^[a-zA-Z][a-zA-Z0-9_-]*$",
        description="Profile name",
    )
    language: Language = Field(default=Language.TYPESCRIPT, description="Checked language")
    backend: BackendKind = Field(default=BackendKind.AUTO, description="Type-checking backend")
    command: tuple[str, ...] = Field(default=(), description="Checker command override")
    target: str | None = Field(default=None, description="Target language level")
    strict: bool = Field(default=True, description="Enable strict checking")
    flags: tuple[str, ...] = Field(default=(), description="Extra checker flags")
    libs: tuple[str, ...] = Field(default=(), description="TypeScript lib entries")
    ambient: dict[str, str] = Field(default_factory=dict, description="Ambient globals")
    include: tuple[str, ...] = Field(default=("**/*.md",), description=GLOB_DESCRIPTION)
    exclude: tuple[str, ...] = Field(default=(), description=GLOB_DESCRIPTION)
    concurrency: int = Field(default=4, ge=1, le=64, description="Parallel unit checks")
    timeout_seconds: float = Field(default=60.0, gt=0, le=3600, description="Per-unit timeout")
    topic_heading_level: int = Field(default=6, ge=1, le=6, description="Fresh-topic level")
    fail_on_warnings: bool = Field(default=False, description="Fail on warnings")
    cache_path: Path | None = Field(default=DEFAULT_CACHE_PATH, description="Cache file")

    @field_validator("ambient", mode="before")
    @classmethod
    def ambient_from_list(cls, value: Any) -> Any:
        """Accept a plain list of names as ambient globals with default types."""
        if isinstance(value, (list, tuple)):
            return {str(name): "" for name in value}
        return value

    @field_validator("ambient")
    @classmethod
    def ambient_names_are_identifiers(cls, value: dict[str, str]) -> dict[str, str]:
        """Validate that every ambient name is a plain identifier."""
        for name in value:
            if not _IDENTIFIER_RE.match(name):
                msg = f"ambient name {name!r} is not an identifier"
                raise ValueError(msg)
        return value

    @field_validator("flags")
    @classmethod
    def flags_are_options(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Validate that flags look like command-line options."""
        for flag in value:
            if not flag.startswith("-"):
                msg = f"flag {flag!r} must start with '-'"
                raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def check_consistency(self) -> CompilerProfile:
        """Reject contradictory option combinations."""
        backend = self.resolved_backend
        if backend == BackendKind.TSC and self.language != Language.TYPESCRIPT:
            msg = "backend 'tsc' can only check typescript"
            raise ValueError(msg)
        if backend == BackendKind.MYPY and self.language != Language.PYTHON:
            msg = "backend 'mypy' can only check python"
            raise ValueError(msg)
        if backend == BackendKind.COMMAND and not self.command:
            msg = "backend 'command' requires a command"
            raise ValueError(msg)
        if self.libs and self.language != Language.TYPESCRIPT:
            msg = "libs only apply to typescript"
            raise ValueError(msg)

        target = self.resolved_target
        pattern = (
            _TYPESCRIPT_TARGET_RE if self.language == Language.TYPESCRIPT else _PYTHON_TARGET_RE
        )
        if not pattern.match(target):
            msg = f"target {target!r} is not a valid {self.language.value} language level"
            raise ValueError(msg)

        for flag in self.flags:
            if flag.startswith("--no-") and f"--{flag[5:]}" in self.flags:
                msg = f"flags {flag!r} and '--{flag[5:]}' contradict each other"
                raise ValueError(msg)

        if not self.include:
            msg = "include must list at least one glob"
            raise ValueError(msg)
        overlap = sorted(set(self.include) & set(self.exclude))
        if overlap:
            msg = f"globs both included and excluded: {', '.join(overlap)}"
            raise ValueError(msg)
        return self

    @property
    def resolved_backend(self) -> BackendKind:
        """Backend after resolving `auto` for the language."""
        if self.backend == BackendKind.AUTO:
            return _DEFAULT_BACKENDS[self.language]
        return self.backend

    @property
    def resolved_target(self) -> str:
        """Target level, defaulting per language."""
        return self.target or _DEFAULT_TARGETS[self.language]

    @property
    def fingerprint(self) -> str:
        """Hash of the options that influence a unit's verdict.

        Concurrency, timeouts, globs and the cache location are excluded:
        they change what runs, not what a check concludes.
        """
        payload = {
            "language": self.language.value,
            "backend": self.resolved_backend.value,
            "command": list(self.command),
            "target": self.resolved_target,
            "strict": self.strict,
            "flags": list(self.flags),
            "libs": list(self.libs),
            "fail_on_warnings": self.fail_on_warnings,
        }
        encoded = json.dumps(payload, sort_keys=True).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()

    @classmethod
    def from_yaml(cls, path: str | Path, name: str | None = None) -> CompilerProfile:
        """Load a profile from a YAML file.

        Args:
            path: Profile file.
            name: Profile to select from a multi-profile file. Defaults to
                the file's `default:` entry, or the only profile defined.

        Returns:
            Validated CompilerProfile.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            yaml.YAMLError: If the YAML is invalid.
            ProfileNotFoundError: If the named profile is missing.
            pydantic.ValidationError: If the profile is invalid.
        """
        path = Path(path)
        raw = yaml.safe_load(path.read_text()) or {}
        if not isinstance(raw, dict):
            raise ConfigurationError("Profile file must contain a mapping", file_path=str(path))

        if "profiles" not in raw:
            return cls.model_validate(raw)

        profiles = raw["profiles"] or {}
        if not isinstance(profiles, dict):
            raise ConfigurationError(
                "'profiles' must be a mapping", file_path=str(path), field_path="profiles"
            )
        selected = name or raw.get("default")
        if selected is None:
            if len(profiles) != 1:
                raise ConfigurationError(
                    "Several profiles defined; choose one by name or set 'default'",
                    file_path=str(path),
                )
            selected = next(iter(profiles))
        if selected not in profiles:
            raise ProfileNotFoundError(selected, sorted(profiles), file_path=str(path))

        data = dict(profiles[selected] or {})
        data.setdefault("name", selected)
        return cls.model_validate(data)


def load_profile(path: str | Path, name: str | None = None) -> CompilerProfile:
    """Load a profile, converting every failure into ConfigurationError.

    Args:
        path: Profile file.
        name: Optional profile name for multi-profile files.

    Returns:
        Validated CompilerProfile.

    Raises:
        ConfigurationError: If the file is missing, unparseable or invalid.
    """
    file_path = str(path)
    try:
        return CompilerProfile.from_yaml(path, name)
    except FileNotFoundError:
        raise ConfigurationError("Profile file not found", file_path=file_path) from None
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        raise ConfigurationError(
            f"Invalid YAML: {getattr(exc, 'problem', None) or exc}",
            file_path=file_path,
            line_number=mark.line + 1 if mark is not None else None,
        ) from None
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field_path = ".".join(str(part) for part in first["loc"]) or None
        raise ConfigurationError(
            f"Invalid profile: {first['msg']}",
            file_path=file_path,
            field_path=field_path,
            internal_details=str(exc),
        ) from None


def apply_overrides(profile: CompilerProfile, **overrides: Any) -> CompilerProfile:
    """Return a re-validated copy of `profile` with non-None overrides applied.

    Raises:
        ConfigurationError: If the overridden profile is invalid.
    """
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return profile
    data = profile.model_dump()
    data.update(updates)
    try:
        return CompilerProfile.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field_path = ".".join(str(part) for part in first["loc"]) or None
        raise ConfigurationError(
            f"Invalid profile: {first['msg']}", field_path=field_path
        ) from None
