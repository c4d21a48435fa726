"""snipcheck: type-check the code snippets embedded in documentation.

This package extracts fenced code blocks from a Markdown corpus, groups them
into compilation units that respect lesson continuity, type-checks each unit
with a real compiler and maps every diagnostic back to the document line that
caused it.

Key exports:
    ValidationRunner / run_validation: Run a full validation
    CompilerProfile / load_profile: Checking options
    extract_snippets: Fenced block extraction
    UnitAssembler: Snippet grouping
    CompilerDriver / create_backend: Type checking
    Report: Run result
"""

from __future__ import annotations

__version__ = "0.1.0"

from snipcheck.assembly import AssemblyResult, UnitAssembler
from snipcheck.compiler import Backend, CompilerDriver, create_backend
from snipcheck.corpus import load_corpus
from snipcheck.engine import RunStats, ValidationRunner, run_validation
from snipcheck.errors import (
    BackendError,
    CacheError,
    CheckTimeoutError,
    ConfigurationError,
    ProfileNotFoundError,
    SnipcheckError,
)
from snipcheck.extraction import SnippetSequence, extract_snippets
from snipcheck.graph import CurriculumGraph
from snipcheck.mapping import Diagnostic, map_diagnostics, map_position
from snipcheck.models import (
    CompilationUnit,
    ContinuityLink,
    Document,
    RawDiagnostic,
    Severity,
    Snippet,
    UnitOutcome,
    UnitStatus,
)
from snipcheck.profile import CompilerProfile, load_profile
from snipcheck.report import OutcomeCache, Report, ReportAggregator

__all__ = [
    "__version__",
    # Engine
    "RunStats",
    "ValidationRunner",
    "run_validation",
    # Pipeline
    "AssemblyResult",
    "Backend",
    "CompilerDriver",
    "CurriculumGraph",
    "OutcomeCache",
    "ReportAggregator",
    "SnippetSequence",
    "UnitAssembler",
    "create_backend",
    "extract_snippets",
    "load_corpus",
    "map_diagnostics",
    "map_position",
    # Models
    "CompilationUnit",
    "CompilerProfile",
    "ContinuityLink",
    "Diagnostic",
    "Document",
    "RawDiagnostic",
    "Report",
    "Severity",
    "Snippet",
    "UnitOutcome",
    "UnitStatus",
    "load_profile",
    # Errors
    "BackendError",
    "CacheError",
    "CheckTimeoutError",
    "ConfigurationError",
    "ProfileNotFoundError",
    "SnipcheckError",
]
