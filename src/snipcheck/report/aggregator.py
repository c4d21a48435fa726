"""Report aggregation.

The aggregator is the single writer of run results. Workers never touch it:
the runner thread hands it one outcome at a time, so it needs no locking. It
maps unit-local diagnostics to document positions, feeds deterministic
outcomes to the cache and finally builds the ordered Report.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

import structlog

from snipcheck.mapping import map_diagnostics
from snipcheck.models import CompilationUnit, Document, Severity, UnitOutcome, UnitStatus
from snipcheck.profile import CompilerProfile
from snipcheck.report.cache import OutcomeCache
from snipcheck.report.models import DocumentSummary, Report, UnitResult

logger = structlog.get_logger(__name__)


class ReportAggregator:
    """Collect unit outcomes into a Report.

    Attributes:
        profile: Active compiler profile.
        cache: Outcome cache consulted before checking, or None.

    Example:
        >>> aggregator = ReportAggregator(profile, documents, cache)
        >>> outcome = aggregator.lookup(unit)
        >>> if outcome is None:
        ...     aggregator.record(unit, driver.check(unit))
        >>> report = aggregator.build()
    """

    def __init__(
        self,
        profile: CompilerProfile,
        documents: Iterable[Document],
        cache: OutcomeCache | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            profile: Compiler profile (its name is reported).
            documents: Corpus documents, for per-document summaries.
            cache: Outcome cache; None disables caching.
        """
        self.profile = profile
        self.cache = cache
        self._documents = {doc.path: doc for doc in documents}
        self._results: dict[str, UnitResult] = {}
        self._warnings: list[str] = []
        self._log = logger.bind(component="report_aggregator")

    def __len__(self) -> int:
        return len(self._results)

    def lookup(self, unit: CompilationUnit) -> UnitOutcome | None:
        """Return a cached outcome for a checkable unit, if any."""
        if self.cache is None:
            return None
        return self.cache.get(unit)

    def record(
        self,
        unit: CompilationUnit,
        outcome: UnitOutcome,
        *,
        from_cache: bool = False,
    ) -> UnitResult:
        """Record the outcome of one unit.

        Args:
            unit: The unit the outcome belongs to.
            outcome: Outcome from the driver, the cache or the assembler.
            from_cache: Outcome came from the cache (it is not stored again).

        Returns:
            The recorded UnitResult.

        Raises:
            ValueError: If the unit was already recorded.
        """
        if unit.id in self._results:
            msg = f"unit {unit.id} recorded twice"
            raise ValueError(msg)

        diagnostics = sorted(
            map_diagnostics(unit, outcome.diagnostics),
            key=lambda d: (d.line, d.column, d.message),
        )
        result = UnitResult(
            unit_id=unit.id,
            document=unit.document,
            document_ordinal=unit.document_ordinal,
            start_line=unit.start_line,
            end_line=unit.end_line,
            language=unit.dialect,
            status=outcome.status,
            snippets=tuple(snippet.index for snippet in unit.snippets),
            diagnostics=tuple(diagnostics),
            detail=outcome.detail,
        )
        self._results[unit.id] = result

        if self.cache is not None and not from_cache:
            self.cache.put(unit, outcome)

        self._log.debug(
            "unit_recorded",
            unit=unit.id,
            status=outcome.status.value,
            diagnostics=len(diagnostics),
            from_cache=from_cache,
        )
        return result

    def add_warning(self, warning: str) -> None:
        """Record a corpus-level warning once."""
        if warning not in self._warnings:
            self._warnings.append(warning)

    def build(self) -> Report:
        """Build the ordered, deterministic Report."""
        units = sorted(
            self._results.values(),
            key=lambda r: (r.document_ordinal, r.start_line, r.unit_id),
        )
        diagnostics = sorted(
            (d for result in units for d in result.diagnostics),
            key=lambda d: (
                self._ordinal(d.document),
                d.line,
                d.column,
                d.message,
            ),
        )

        counts = {status.value: 0 for status in UnitStatus}
        counts.update(Counter(result.status.value for result in units))

        by_document: dict[str, list[UnitResult]] = {path: [] for path in self._documents}
        for result in units:
            by_document.setdefault(result.document, []).append(result)

        summaries = []
        for path, results in sorted(
            by_document.items(), key=lambda item: (self._ordinal(item[0]), item[0])
        ):
            document = self._documents.get(path)
            doc_diagnostics = [d for r in results for d in r.diagnostics]
            summaries.append(
                DocumentSummary(
                    document=path,
                    title=document.title if document else "",
                    ordinal=self._ordinal(path),
                    units=len(results),
                    counts=dict(sorted(Counter(r.status.value for r in results).items())),
                    errors=sum(1 for d in doc_diagnostics if d.severity == Severity.ERROR),
                    warnings=sum(1 for d in doc_diagnostics if d.severity == Severity.WARNING),
                    passed=not any(r.failed for r in results),
                )
            )

        passed = not any(result.failed for result in units)
        self._log.info(
            "report_built",
            units=len(units),
            diagnostics=len(diagnostics),
            passed=passed,
        )
        return Report(
            profile=self.profile.name,
            units=tuple(units),
            documents=tuple(summaries),
            diagnostics=tuple(diagnostics),
            warnings=tuple(self._warnings),
            counts=counts,
            passed=passed,
        )

    def _ordinal(self, path: str) -> int:
        document = self._documents.get(path)
        return document.ordinal if document is not None else len(self._documents)
