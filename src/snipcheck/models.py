"""Core data model for snipcheck.

Documents are split into Snippets by the extractor, Snippets are grouped into
CompilationUnits by the assembler, and the compiler driver turns each unit
into a UnitOutcome carrying unit-local RawDiagnostics. All models are frozen:
once produced, they are passed around read-only.
"""

from __future__ import annotations

import hashlib
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def split_lines(text: str, *, keepends: bool = False) -> list[str]:
    """Split text into lines on `\\n` (and `\\r\\n`) only.

    Unlike `str.splitlines`, Unicode separators such as U+2028 or form feeds
    stay inside their line, so line numbers agree with what editors show and
    string literals survive a split/join round trip.

    Example:
        >>> split_lines("a\\u2028b\\r\\nc\\n")
        ['a\\u2028b', 'c']
    """
    lines = text.split("\n")
    tail = lines.pop()
    if keepends:
        lines = [line + "\n" for line in lines]
    else:
        lines = [line.removesuffix("\r") for line in lines]
    if tail:
        lines.append(tail)
    return lines


class Heading(BaseModel):
    """An ATX heading enclosing a snippet.

    Attributes:
        text: Heading text without the leading hashes.
        level: Heading level (1-6).
        ordinal: 1-based position of the heading in its document.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    text: str
    level: int = Field(..., ge=1, le=6)
    ordinal: int = Field(..., ge=1)


class Document(BaseModel):
    """A lesson document loaded from the corpus.

    Attributes:
        path: Corpus-relative POSIX path; the document's identity.
        text: Raw document text.
        ordinal: Position in curriculum order (0-based).
        title: Front matter title, first heading, or file stem.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(..., min_length=1)
    text: str
    ordinal: int = Field(default=0, ge=0)
    title: str = ""


class Snippet(BaseModel):
    """A fenced code block extracted from a document.

    Attributes:
        document: Path of the owning document.
        index: Stable 0-based sequence index within the document.
        language: Lower-cased first token of the info string (may be empty).
        info: The raw info string after the opening fence.
        attributes: Info-string attributes; bare flags map to "".
        text: Exact text between the opening and closing fence.
        start_line: Line of the opening fence (1-indexed).
        end_line: Line of the closing fence, or the last line if unterminated.
        indent: Indentation of the opening fence.
        headings: Enclosing heading path, outermost first.
        malformed: True when the fence was never closed.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document: str
    index: int = Field(..., ge=0)
    language: str = ""
    info: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    text: str
    start_line: int = Field(..., ge=1)
    end_line: int = Field(..., ge=1)
    indent: int = Field(default=0, ge=0, le=3)
    headings: tuple[Heading, ...] = ()
    malformed: bool = False

    @property
    def content_start_line(self) -> int:
        """Document line holding the first line of snippet text."""
        return self.start_line + 1

    @property
    def line_count(self) -> int:
        """Number of text lines inside the fences."""
        return len(split_lines(self.text))

    @property
    def heading(self) -> str:
        """Text of the innermost enclosing heading, or ""."""
        return self.headings[-1].text if self.headings else ""

    @property
    def name(self) -> str | None:
        """Author-assigned identifier from the `id=` attribute."""
        return self.attributes.get("id") or None

    def indent_removed(self, offset: int) -> int:
        """Leading spaces de-indentation strips from text line `offset` (0-based)."""
        lines = split_lines(self.text)
        if not 0 <= offset < len(lines):
            return self.indent
        line = lines[offset]
        return min(len(line) - len(line.lstrip(" ")), self.indent)

    def has_flag(self, flag: str) -> bool:
        """Return True if the info string carries the given attribute."""
        return flag in self.attributes


class LinkKind(str, Enum):
    """How a continuity link was established."""

    IMPLICIT = "implicit"
    EXPLICIT = "explicit"


class ContinuityLink(BaseModel):
    """Directed edge: `target` must be compiled together with, and after, `source`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document: str
    source: int = Field(..., ge=0, description="Snippet index compiled first")
    target: int = Field(..., ge=0, description="Snippet index that continues it")
    kind: LinkKind = LinkKind.IMPLICIT


class UnitKind(str, Enum):
    """What the assembler decided to do with a unit."""

    CHECKABLE = "checkable"
    MALFORMED = "malformed"
    UNCHECKED = "unchecked"


class Segment(BaseModel):
    """Placement of one snippet inside a unit body.

    Attributes:
        snippet: The snippet placed here.
        body_start: 1-based body line of the snippet's first text line.
        line_count: Number of body lines contributed.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    snippet: Snippet
    body_start: int = Field(..., ge=1)
    line_count: int = Field(..., ge=0)


class CompilationUnit(BaseModel):
    """One or more snippets merged into a single checkable program.

    The checked source is `preamble + body`. The preamble holds synthesized
    ambient declarations; diagnostics that land inside it are never reported
    against the document.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    document: str
    document_ordinal: int = 0
    dialect: str = ""
    suffix: str = Field(default="", description="File suffix the source is checked under")
    kind: UnitKind = UnitKind.CHECKABLE
    segments: tuple[Segment, ...] = ()
    preamble: str = ""
    body: str = ""
    parse_error: str | None = None

    @property
    def snippets(self) -> tuple[Snippet, ...]:
        """Constituent snippets in compilation order."""
        return tuple(segment.snippet for segment in self.segments)

    @property
    def source(self) -> str:
        """Full text handed to the type checker."""
        return self.preamble + self.body

    @property
    def preamble_lines(self) -> int:
        """Number of source lines occupied by the preamble."""
        return len(split_lines(self.preamble))

    @property
    def start_line(self) -> int:
        """Earliest document line covered by the unit."""
        return min(s.start_line for s in self.snippets)

    @property
    def end_line(self) -> int:
        """Latest document line covered by the unit."""
        return max(s.end_line for s in self.snippets)

    @property
    def first_index(self) -> int:
        """Lowest snippet sequence index in the unit."""
        return min(s.index for s in self.snippets)

    @property
    def content_hash(self) -> str:
        """SHA-256 over the preamble and every snippet text in unit order."""
        digest = hashlib.sha256()
        digest.update(self.dialect.encode("utf-8"))
        digest.update(b"\0")
        digest.update(self.suffix.encode("utf-8"))
        digest.update(b"\0")
        digest.update(self.preamble.encode("utf-8"))
        for snippet in self.snippets:
            digest.update(b"\0")
            digest.update(snippet.text.encode("utf-8"))
        return digest.hexdigest()


class SyntaxProblem(BaseModel):
    """A parse failure found before the type checker runs.

    Attributes:
        message: Parser message.
        line: 1-based line within the checked text.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str
    line: int = Field(default=1, ge=1)


class Severity(str, Enum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"


class RawDiagnostic(BaseModel):
    """A checker diagnostic positioned in unit-local source coordinates."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    line: int = Field(..., ge=1)
    column: int = Field(default=1, ge=1)
    severity: Severity = Severity.ERROR
    message: str
    code: str | None = None


class UnitStatus(str, Enum):
    """Outcome of validating one compilation unit.

    Attributes:
        OK: Type-checked without reportable errors
        DIAGNOSTICS: The checker reported problems in snippet code
        MALFORMED: Fencing or concatenation did not parse; never compiled
        UNCHECKED: Language not checked by the active profile
        TIMEOUT: The check exceeded the per-unit timeout
        ERROR: Internal failure (backend crash, preamble failure)
    """

    OK = "ok"
    DIAGNOSTICS = "diagnostics"
    MALFORMED = "malformed"
    UNCHECKED = "unchecked"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def failed(self) -> bool:
        """Whether this outcome fails the run."""
        return self in _FAILING_STATUSES


_FAILING_STATUSES = frozenset(
    {UnitStatus.DIAGNOSTICS, UnitStatus.MALFORMED, UnitStatus.TIMEOUT, UnitStatus.ERROR}
)


class UnitOutcome(BaseModel):
    """Result posted by a worker for one unit.

    Attributes:
        unit_id: Id of the checked unit.
        status: Outcome status.
        diagnostics: Unit-local diagnostics outside the preamble.
        detail: Explanation for malformed/timeout/error outcomes.
        duration_ms: Wall-clock time spent checking.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    status: UnitStatus
    diagnostics: tuple[RawDiagnostic, ...] = ()
    detail: str = ""
    duration_ms: int = Field(default=0, ge=0)
