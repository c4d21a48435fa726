"""Outcome cache keyed by unit content hash.

The cache lets an unchanged unit skip recompilation. It is a single JSON
file holding, per content hash, the unit's status and its unit-local raw
diagnostics. Storing unit-local positions means a cached unit whose snippets
moved inside the document is re-mapped to its current lines on a hit.

Only deterministic outcomes are stored (`ok` and `diagnostics`). Timeouts
and internal errors are always re-checked on the next run.

File layout:

    {
      "version": 1,
      "fingerprint": "<profile fingerprint>",
      "entries": {"<content hash>": {"status": "ok", "diagnostics": [], "detail": ""}}
    }
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from snipcheck.errors import CacheError
from snipcheck.models import CompilationUnit, RawDiagnostic, UnitOutcome, UnitStatus

logger = structlog.get_logger(__name__)

CACHE_VERSION = 1
CACHEABLE_STATUSES = frozenset({UnitStatus.OK, UnitStatus.DIAGNOSTICS})


class CachedOutcome(BaseModel):
    """A stored unit outcome."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: UnitStatus
    diagnostics: tuple[RawDiagnostic, ...] = ()
    detail: str = ""


class CacheFile(BaseModel):
    """On-disk cache document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: int = Field(default=CACHE_VERSION)
    fingerprint: str = ""
    entries: dict[str, CachedOutcome] = Field(default_factory=dict)


class OutcomeCache:
    """Persistent map from unit content hash to outcome.

    Not thread-safe: only the aggregator (the run's single writer) touches it.

    Attributes:
        path: Cache file, or None for an in-memory-only cache.
        fingerprint: Profile fingerprint the entries belong to.
        hits: Lookups answered from the cache.
        misses: Lookups that required a check.

    Example:
        >>> cache = OutcomeCache(Path(".snipcheck-cache.json"), profile.fingerprint)
        >>> cache.load()
        >>> cache.get(unit) or cache.put(unit, driver.check(unit))
        >>> cache.save()
    """

    def __init__(self, path: Path | None, fingerprint: str) -> None:
        """Initialize the cache.

        Args:
            path: Cache file location; None keeps entries in memory only.
            fingerprint: Profile fingerprint; entries of other profiles are discarded.
        """
        self.path = Path(path) if path is not None else None
        self.fingerprint = fingerprint
        self.hits = 0
        self.misses = 0
        self._entries: dict[str, CachedOutcome] = {}
        self._touched: set[str] = set()
        self._log = logger.bind(component="outcome_cache")

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> None:
        """Read the cache file, starting empty if it is missing or unusable."""
        self._entries = {}
        if self.path is None or not self.path.exists():
            return
        try:
            data = CacheFile.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError, PydanticValidationError) as e:
            self._log.warning("cache_corrupt", path=str(self.path), error=str(e))
            return

        if data.version != CACHE_VERSION or data.fingerprint != self.fingerprint:
            self._log.info(
                "cache_invalidated",
                path=str(self.path),
                reason="version" if data.version != CACHE_VERSION else "profile",
            )
            return

        self._entries = dict(data.entries)
        self._log.debug("cache_loaded", path=str(self.path), entries=len(self._entries))

    def get(self, unit: CompilationUnit) -> UnitOutcome | None:
        """Return the stored outcome for a unit, or None on a miss."""
        key = unit.content_hash
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        self._touched.add(key)
        return UnitOutcome(
            unit_id=unit.id,
            status=entry.status,
            diagnostics=entry.diagnostics,
            detail=entry.detail,
        )

    def put(self, unit: CompilationUnit, outcome: UnitOutcome) -> bool:
        """Store an outcome if it is deterministic.

        Returns:
            True if the outcome was stored.
        """
        if outcome.status not in CACHEABLE_STATUSES:
            return False
        key = unit.content_hash
        self._entries[key] = CachedOutcome(
            status=outcome.status,
            diagnostics=outcome.diagnostics,
            detail=outcome.detail,
        )
        self._touched.add(key)
        return True

    def save(self, *, prune: bool = True) -> None:
        """Write the cache atomically.

        Args:
            prune: Drop entries not read or written during this run.

        Raises:
            CacheError: If the file cannot be written.
        """
        if self.path is None:
            return
        entries = self._entries
        if prune:
            entries = {key: value for key, value in entries.items() if key in self._touched}
        payload = CacheFile(fingerprint=self.fingerprint, entries=dict(sorted(entries.items())))

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                suffix=".tmp",
                prefix=f".{self.path.name}.",
                dir=self.path.parent,
                delete=False,
            ) as f:
                f.write(payload.model_dump_json(indent=2))
                temp_path = Path(f.name)
            temp_path.replace(self.path)
        except OSError as e:
            raise CacheError(
                f"Could not write cache file {self.path}", internal_details=str(e)
            ) from e

        self._log.debug("cache_saved", path=str(self.path), entries=len(entries))

    def clear(self) -> bool:
        """Forget every entry and delete the cache file.

        Returns:
            True if a cache file was deleted.
        """
        self._entries = {}
        self._touched = set()
        if self.path is None or not self.path.exists():
            return False
        self.path.unlink()
        self._log.info("cache_cleared", path=str(self.path))
        return True
