"""Report models.

Models for representing the outcome of a validation run: one UnitResult per
compilation unit, a DocumentSummary per document and the Report tying them
together. Reports hold no timings so identical corpora produce identical
reports.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field

from snipcheck.mapping import Diagnostic
from snipcheck.models import UnitStatus


class UnitResult(BaseModel):
    """Outcome of a single compilation unit.

    Attributes:
        unit_id: Unit id (`<document>#<first snippet index>`)
        document: Corpus-relative document path
        document_ordinal: Curriculum position of the document
        start_line: First document line covered by the unit
        end_line: Last document line covered by the unit
        language: Dialect or fence tag of the unit
        status: Unit outcome
        snippets: Indexes of the constituent snippets, in unit order
        diagnostics: Diagnostics in document coordinates
        detail: Parse error, timeout or internal error explanation

    Example:
        >>> result = UnitResult(
        ...     unit_id="01-intro.md#0",
        ...     document="01-intro.md",
        ...     start_line=5,
        ...     end_line=9,
        ...     status=UnitStatus.OK,
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str = Field(..., min_length=1, description="Unit id")
    document: str = Field(..., min_length=1, description="Document path")
    document_ordinal: int = Field(default=0, ge=0, description="Curriculum position")
    start_line: int = Field(..., ge=1, description="First covered line")
    end_line: int = Field(..., ge=1, description="Last covered line")
    language: str = Field(default="", description="Unit language")
    status: UnitStatus = Field(..., description="Unit outcome")
    snippets: tuple[int, ...] = Field(default=(), description="Snippet indexes")
    diagnostics: tuple[Diagnostic, ...] = Field(default=(), description="Mapped diagnostics")
    detail: str = Field(default="", description="Outcome detail")

    @property
    def failed(self) -> bool:
        """Check if the unit fails the run."""
        return self.status.failed


class DocumentSummary(BaseModel):
    """Per-document roll-up of unit outcomes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document: str = Field(..., min_length=1, description="Document path")
    title: str = Field(default="", description="Document title")
    ordinal: int = Field(default=0, ge=0, description="Curriculum position")
    units: int = Field(default=0, ge=0, description="Number of units")
    counts: dict[str, int] = Field(default_factory=dict, description="Units per status")
    errors: int = Field(default=0, ge=0, description="Error diagnostics")
    warnings: int = Field(default=0, ge=0, description="Warning diagnostics")
    passed: bool = Field(default=True, description="No failing unit")


class Report(BaseModel):
    """Result of validating a corpus.

    Attributes:
        profile: Name of the compiler profile used
        units: Unit results in (document ordinal, start line) order
        documents: Per-document summaries in curriculum order
        diagnostics: Every diagnostic, sorted by document, line, column, message
        warnings: Corpus-level warnings (broken links, continuity cycles)
        counts: Units per status, every status present
        passed: True when no unit failed

    Example:
        >>> report = aggregator.build()
        >>> report.passed
        True
        >>> report.to_json()
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    profile: str = Field(default="default", description="Profile name")
    units: tuple[UnitResult, ...] = Field(default=(), description="Unit results")
    documents: tuple[DocumentSummary, ...] = Field(default=(), description="Summaries")
    diagnostics: tuple[Diagnostic, ...] = Field(default=(), description="All diagnostics")
    warnings: tuple[str, ...] = Field(default=(), description="Corpus warnings")
    counts: dict[str, int] = Field(default_factory=dict, description="Units per status")
    passed: bool = Field(default=True, description="Run passed")

    @property
    def failed_units(self) -> list[UnitResult]:
        """Units whose outcome fails the run."""
        return [unit for unit in self.units if unit.failed]

    @property
    def error_count(self) -> int:
        """Number of error-severity diagnostics."""
        return sum(1 for d in self.diagnostics if d.severity.value == "error")

    def unit(self, unit_id: str) -> UnitResult:
        """Look up a unit result by id.

        Raises:
            KeyError: If no unit has that id.
        """
        for result in self.units:
            if result.unit_id == unit_id:
                return result
        raise KeyError(unit_id)

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize deterministically (sorted keys, stable ordering)."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True, ensure_ascii=False)
