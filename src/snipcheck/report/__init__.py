"""Report aggregation, caching and output.

Exports:
    ReportAggregator: Single writer collecting unit outcomes
    OutcomeCache: Content-hash keyed outcome cache
    Report, UnitResult, DocumentSummary: Report models
    format_report_table, format_report_json, print_report: Output helpers
"""

from __future__ import annotations

from snipcheck.report.aggregator import ReportAggregator
from snipcheck.report.cache import CACHE_VERSION, OutcomeCache
from snipcheck.report.models import DocumentSummary, Report, UnitResult
from snipcheck.report.output import format_report_json, format_report_table, print_report

__all__ = [
    "CACHE_VERSION",
    "DocumentSummary",
    "OutcomeCache",
    "Report",
    "ReportAggregator",
    "UnitResult",
    "format_report_json",
    "format_report_table",
    "print_report",
]
