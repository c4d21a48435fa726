"""Validation runner.

Orchestrates a full run: load the corpus, extract and assemble every
document, walk units in curriculum order, answer what the cache already
knows and check the rest on a bounded worker pool. Workers only run the
compiler driver; each finished future is handed to the aggregator on the
runner thread, so results are collected without shared mutable state.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field

from snipcheck.assembly import UnitAssembler
from snipcheck.compiler import Backend, CompilerDriver, create_backend
from snipcheck.corpus import load_corpus
from snipcheck.errors import CacheError
from snipcheck.extraction import extract_snippets
from snipcheck.graph import CurriculumGraph
from snipcheck.models import CompilationUnit, UnitKind, UnitOutcome, UnitStatus
from snipcheck.profile import CompilerProfile
from snipcheck.report import OutcomeCache, Report, ReportAggregator

logger = structlog.get_logger(__name__)


class RunStats(BaseModel):
    """Counters describing how a run went (kept out of the Report).

    Attributes:
        documents: Documents loaded
        snippets: Snippets extracted
        units: Compilation units assembled
        checked: Units sent to the backend
        cache_hits: Units answered from the cache
        duration_ms: Wall-clock duration of the run
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    documents: int = Field(default=0, ge=0)
    snippets: int = Field(default=0, ge=0)
    units: int = Field(default=0, ge=0)
    checked: int = Field(default=0, ge=0)
    cache_hits: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)


class ValidationRunner:
    """Run snippet validation over a corpus.

    Attributes:
        profile: Compiler profile for the run
        root: Corpus root directory
        backend: Type-checking backend
        cache: Outcome cache, or None when caching is disabled
        stats: Counters of the last run

    Example:
        >>> runner = ValidationRunner(profile, "docs/")
        >>> report = runner.run()
        >>> print(report.passed, runner.stats.cache_hits)
    """

    def __init__(
        self,
        profile: CompilerProfile,
        root: str | Path,
        *,
        backend: Backend | None = None,
        cache: OutcomeCache | None = None,
        use_cache: bool = True,
    ) -> None:
        """Initialize the runner.

        Args:
            profile: Compiler profile
            root: Corpus root directory
            backend: Backend override (defaults to the profile's backend)
            cache: Cache override (defaults to `profile.cache_path`, resolved
                against the corpus root when relative)
            use_cache: Set False to neither read nor write a cache
        """
        self.profile = profile
        self.root = Path(root)
        self.backend = backend if backend is not None else create_backend(profile)
        if cache is None and use_cache and profile.cache_path is not None:
            cache = OutcomeCache(self.root / profile.cache_path, profile.fingerprint)
        self.cache = cache if use_cache else None
        self.stats = RunStats()
        self._log = logger.bind(component="validation_runner", profile=profile.name)

    def run(self) -> Report:
        """Validate every unit in the corpus.

        Returns:
            Report listing the outcome of every unit.

        Raises:
            ConfigurationError: If the corpus root is unusable.
            KeyboardInterrupt: Re-raised after cancelling pending checks and
                saving the cache for completed units.
        """
        start_time = time.monotonic()
        warnings: list[str] = []
        documents = load_corpus(self.root, self.profile, warnings=warnings)
        self._log.info("run_started", root=str(self.root), documents=len(documents))

        graph = CurriculumGraph(documents)
        assembler = UnitAssembler(self.profile)
        snippet_count = 0
        for document in documents:
            snippets = list(extract_snippets(document.path, document.text))
            snippet_count += len(snippets)
            assembled = assembler.assemble(document, snippets)
            graph.add_units(document.path, assembled.units, assembled.links)
            warnings.extend(assembled.warnings)

        if self.cache is not None:
            self.cache.load()
        aggregator = ReportAggregator(self.profile, documents, self.cache)

        pending: list[CompilationUnit] = []
        unit_count = 0
        cache_hits = 0
        for unit in graph.iter_units():
            unit_count += 1
            if unit.kind == UnitKind.UNCHECKED:
                aggregator.record(unit, UnitOutcome(unit_id=unit.id, status=UnitStatus.UNCHECKED))
            elif unit.kind == UnitKind.MALFORMED:
                aggregator.record(
                    unit,
                    UnitOutcome(
                        unit_id=unit.id,
                        status=UnitStatus.MALFORMED,
                        detail=unit.parse_error or "",
                    ),
                )
            else:
                cached = aggregator.lookup(unit)
                if cached is not None:
                    cache_hits += 1
                    aggregator.record(unit, cached, from_cache=True)
                else:
                    pending.append(unit)

        for warning in [*warnings, *graph.warnings]:
            aggregator.add_warning(warning)

        if pending and not self.backend.is_available():
            self._log.warning("backend_unavailable", backend=self.backend.name)
            aggregator.add_warning(
                f"backend '{self.backend.name}' is not available; "
                "checkable units will report errors"
            )

        self._log.info(
            "units_scheduled",
            units=unit_count,
            pending=len(pending),
            cache_hits=cache_hits,
            concurrency=self.profile.concurrency,
        )
        if pending:
            self._dispatch(pending, aggregator)
        self._save_cache(prune=True)

        report = aggregator.build()
        duration_ms = int((time.monotonic() - start_time) * 1000)
        self.stats = RunStats(
            documents=len(documents),
            snippets=snippet_count,
            units=unit_count,
            checked=len(pending),
            cache_hits=cache_hits,
            duration_ms=duration_ms,
        )
        self._log.info(
            "run_completed",
            passed=report.passed,
            units=unit_count,
            checked=len(pending),
            cache_hits=cache_hits,
            duration_ms=duration_ms,
        )
        return report

    def _dispatch(self, pending: list[CompilationUnit], aggregator: ReportAggregator) -> None:
        """Check pending units in parallel, recording each as it completes."""
        driver = CompilerDriver(self.backend, self.profile)
        executor = ThreadPoolExecutor(
            max_workers=min(self.profile.concurrency, len(pending)),
            thread_name_prefix="snipcheck",
        )
        try:
            futures = {executor.submit(driver.check, unit): unit for unit in pending}
            for future in as_completed(futures):
                aggregator.record(futures[future], future.result())
        except KeyboardInterrupt:
            self._log.warning("run_interrupted", completed=len(aggregator))
            executor.shutdown(wait=False, cancel_futures=True)
            self._save_cache(prune=False)
            raise
        executor.shutdown(wait=True)

    def _save_cache(self, *, prune: bool) -> None:
        if self.cache is None:
            return
        try:
            self.cache.save(prune=prune)
        except CacheError as e:
            self._log.error("cache_save_failed", error=str(e))


def run_validation(
    profile: CompilerProfile,
    root: str | Path,
    *,
    backend: Backend | None = None,
    use_cache: bool = True,
) -> Report:
    """Validate a corpus with a profile.

    Convenience wrapper around ValidationRunner.

    Example:
        >>> report = run_validation(load_profile("snipcheck.yaml"), "docs/")
        >>> report.passed
    """
    return ValidationRunner(profile, root, backend=backend, use_cache=use_cache).run()
