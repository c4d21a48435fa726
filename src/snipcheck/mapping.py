"""Translate unit-local checker positions back to document coordinates.

A unit's source is `preamble + body`; the body is its snippets' texts
concatenated in unit order, each de-indented by its fence indentation. Every
segment records where its snippet starts in the body, so a source line maps
back to exactly one snippet line. Positions inside the preamble have no
document origin and are dropped.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from snipcheck.models import CompilationUnit, RawDiagnostic, Severity


class DocumentPosition(BaseModel):
    """A position in an original document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document: str
    line: int
    column: int
    snippet_index: int


class Diagnostic(BaseModel):
    """A diagnostic expressed in document coordinates.

    Attributes:
        document: Corpus-relative document path.
        line: 1-based document line.
        column: 1-based document column.
        severity: "error" or "warning".
        message: Checker message.
        code: Checker error code, when the backend reports one.
        snippet_index: Originating snippet in the document.
        unit_id: Unit that produced the diagnostic.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document: str
    line: int
    column: int
    severity: Severity
    message: str
    code: str | None = None
    snippet_index: int
    unit_id: str


def map_position(unit: CompilationUnit, line: int, column: int = 1) -> DocumentPosition | None:
    """Map a unit-local source position to a document position.

    Args:
        unit: The unit the position refers to.
        line: 1-based line in `unit.source`.
        column: 1-based column in `unit.source`.

    Returns:
        The document position, or None when the line lies in the preamble
        (or the unit has no snippet text at all).
    """
    body_line = line - unit.preamble_lines
    if body_line < 1:
        return None

    segments = [segment for segment in unit.segments if segment.line_count > 0]
    if not segments:
        return None

    chosen = segments[-1]
    offset = chosen.line_count - 1
    for segment in segments:
        if segment.body_start <= body_line < segment.body_start + segment.line_count:
            chosen = segment
            offset = body_line - segment.body_start
            break

    snippet = chosen.snippet
    return DocumentPosition(
        document=unit.document,
        line=snippet.content_start_line + offset,
        column=max(column, 1) + snippet.indent_removed(offset),
        snippet_index=snippet.index,
    )


def map_diagnostics(unit: CompilationUnit, raw: Iterable[RawDiagnostic]) -> list[Diagnostic]:
    """Map raw diagnostics of one unit, dropping those inside the preamble."""
    mapped: list[Diagnostic] = []
    for diagnostic in raw:
        position = map_position(unit, diagnostic.line, diagnostic.column)
        if position is None:
            continue
        mapped.append(
            Diagnostic(
                document=position.document,
                line=position.line,
                column=position.column,
                severity=diagnostic.severity,
                message=diagnostic.message,
                code=diagnostic.code,
                snippet_index=position.snippet_index,
                unit_id=unit.id,
            )
        )
    return mapped
