"""Unit assembly: group snippets into compilation units.

Continuity rules, applied while walking a document's snippets in order:

- A checked snippet extends the open unit when it sits under the same topic
  heading and no snippet of another language came in between. Otherwise it
  opens a new unit. Headings deeper than `profile.topic_heading_level` do not
  split topics.
- A snippet in any other language is recorded as an unchecked unit of its
  own and closes the open unit.
- Explicit markers override the heuristic: `fresh` always opens a new unit,
  `nocheck` leaves a checked-language snippet unchecked, `continues=<id>`
  links to the snippet carrying `id=<id>` (forward references allowed) and
  bare `continues` links to the previous checked snippet even across
  headings.
- An unterminated fence becomes a malformed unit of its own.

Each checked unit gets a preamble declaring allow-listed ambient globals the
body references but never declares. A unit whose body does not parse is
marked malformed with the parse error retained and is never compiled.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from snipcheck.dialects import Dialect, get_dialect
from snipcheck.graph import topological_order
from snipcheck.mapping import map_position
from snipcheck.models import (
    CompilationUnit,
    ContinuityLink,
    Document,
    LinkKind,
    Segment,
    Snippet,
    UnitKind,
    split_lines,
)
from snipcheck.profile import CompilerProfile

logger = structlog.get_logger(__name__)

FRESH_FLAG = "fresh"
CONTINUES_ATTR = "continues"
NOCHECK_FLAGS = frozenset({"nocheck", "ignore", "skip"})


class AssemblyResult(BaseModel):
    """Units, links and warnings assembled from one document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document: str
    units: tuple[CompilationUnit, ...] = ()
    links: tuple[ContinuityLink, ...] = ()
    warnings: tuple[str, ...] = Field(default=(), description="Corpus-level warnings")


class _Groups:
    """Union-find over snippet indexes."""

    def __init__(self) -> None:
        self._parent: dict[int, int] = {}

    def add(self, index: int) -> None:
        self._parent.setdefault(index, index)

    def find(self, index: int) -> int:
        root = index
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[index] != root:
            self._parent[index], index = root, self._parent[index]
        return root

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            self._parent[max(root_a, root_b)] = min(root_a, root_b)

    def members(self) -> dict[int, list[int]]:
        grouped: dict[int, list[int]] = {}
        for index in sorted(self._parent):
            grouped.setdefault(self.find(index), []).append(index)
        return grouped


class UnitAssembler:
    """Build compilation units from a document's snippets.

    Attributes:
        profile: Active compiler profile.
        dialect: Dialect of the profile's checked language.

    Example:
        >>> assembler = UnitAssembler(CompilerProfile())
        >>> result = assembler.assemble(document, extract_snippets(document.path, document.text))
        >>> [unit.kind for unit in result.units]
    """

    def __init__(self, profile: CompilerProfile) -> None:
        """Initialize the assembler.

        Args:
            profile: Compiler profile (language, ambient set, topic level).
        """
        self.profile = profile
        self.dialect: Dialect = get_dialect(profile.language.value)

    def is_checked(self, snippet: Snippet) -> bool:
        """Whether a snippet is in the checked language and not opted out."""
        if not self.dialect.accepts(snippet.language):
            return False
        return not any(snippet.has_flag(flag) for flag in NOCHECK_FLAGS)

    def topic_key(self, snippet: Snippet) -> tuple[int, ...]:
        """Ordinals of the enclosing headings that delimit topics."""
        level = self.profile.topic_heading_level
        return tuple(h.ordinal for h in snippet.headings if h.level <= level)

    def assemble(self, document: Document, snippets: Iterable[Snippet]) -> AssemblyResult:
        """Group one document's snippets into units.

        Args:
            document: The owning document.
            snippets: The document's snippets in order.

        Returns:
            AssemblyResult with units in document order.
        """
        snippets = list(snippets)
        by_index = {snippet.index: snippet for snippet in snippets}
        by_name: dict[str, Snippet] = {}
        groups = _Groups()
        links: list[ContinuityLink] = []
        warnings: list[str] = []
        standalone: list[tuple[Snippet, UnitKind]] = []
        pending: list[tuple[Snippet, str]] = []

        previous: Snippet | None = None
        open_unit = False

        for snippet in snippets:
            if snippet.name:
                if snippet.name in by_name:
                    warnings.append(
                        f"{document.path}:{snippet.start_line}: duplicate snippet id "
                        f"'{snippet.name}'"
                    )
                else:
                    by_name[snippet.name] = snippet

            if snippet.malformed:
                standalone.append((snippet, UnitKind.MALFORMED))
                open_unit = False
                continue
            if not self.is_checked(snippet):
                standalone.append((snippet, UnitKind.UNCHECKED))
                open_unit = False
                continue

            groups.add(snippet.index)
            target = snippet.attributes.get(CONTINUES_ATTR)
            if target:
                pending.append((snippet, target))
            elif snippet.has_flag(CONTINUES_ATTR):
                if previous is not None:
                    links.append(self._link(document, previous, snippet, LinkKind.EXPLICIT))
                    groups.union(previous.index, snippet.index)
                else:
                    warnings.append(
                        f"{document.path}:{snippet.start_line}: 'continues' has no "
                        "earlier snippet to continue"
                    )
            elif (
                open_unit
                and previous is not None
                and not snippet.has_flag(FRESH_FLAG)
                and self.topic_key(previous) == self.topic_key(snippet)
            ):
                links.append(self._link(document, previous, snippet, LinkKind.IMPLICIT))
                groups.union(previous.index, snippet.index)

            previous = snippet
            open_unit = True

        for snippet, target_name in pending:
            target = by_name.get(target_name)
            if target is None:
                warnings.append(
                    f"{document.path}:{snippet.start_line}: continues unknown snippet "
                    f"'{target_name}'"
                )
                continue
            if not self._is_grouped(groups, target):
                warnings.append(
                    f"{document.path}:{snippet.start_line}: continues snippet "
                    f"'{target_name}' which is not checked"
                )
                continue
            links.append(self._link(document, target, snippet, LinkKind.EXPLICIT))
            groups.union(target.index, snippet.index)

        all_edges = [(link.source, link.target) for link in links]
        explicit_edges = [
            (link.source, link.target) for link in links if link.kind == LinkKind.EXPLICIT
        ]
        units: list[CompilationUnit] = []
        for members in groups.members().values():
            ordered, stuck = topological_order(members, all_edges, key=lambda index: index)
            if stuck:
                # Explicit markers win over heading adjacency.
                ordered, stuck = topological_order(
                    members, explicit_edges, key=lambda index: index
                )
            if stuck:
                warnings.append(
                    f"{document.path}: continuity cycle between snippets "
                    f"{', '.join(str(i) for i in stuck)}; using document order"
                )
                ordered = sorted(members)
            units.append(self._build_checked(document, [by_index[i] for i in ordered]))

        for snippet, kind in standalone:
            units.append(self._build_standalone(document, snippet, kind))

        units.sort(key=lambda unit: unit.first_index)
        for warning in warnings:
            logger.warning("assembly_warning", document=document.path, warning=warning)

        return AssemblyResult(
            document=document.path,
            units=tuple(units),
            links=tuple(links),
            warnings=tuple(warnings),
        )

    @staticmethod
    def _is_grouped(groups: _Groups, snippet: Snippet) -> bool:
        try:
            groups.find(snippet.index)
        except KeyError:
            return False
        return True

    @staticmethod
    def _link(
        document: Document, source: Snippet, target: Snippet, kind: LinkKind
    ) -> ContinuityLink:
        return ContinuityLink(
            document=document.path, source=source.index, target=target.index, kind=kind
        )

    @staticmethod
    def _unit_id(document: Document, first_index: int) -> str:
        return f"{document.path}#{first_index}"

    @staticmethod
    def _segments(snippets: list[Snippet]) -> tuple[tuple[Segment, ...], str]:
        segments: list[Segment] = []
        parts: list[str] = []
        next_line = 1
        for snippet in snippets:
            lines = [_dedent(line, snippet.indent) for line in split_lines(snippet.text)]
            segments.append(
                Segment(snippet=snippet, body_start=next_line, line_count=len(lines))
            )
            if lines:
                parts.append("\n".join(lines) + "\n")
            next_line += len(lines)
        return tuple(segments), "".join(parts)

    def _build_checked(self, document: Document, snippets: list[Snippet]) -> CompilationUnit:
        segments, body = self._segments(snippets)
        suffix = self.dialect.unit_suffix(s.language for s in snippets)
        unit = CompilationUnit(
            id=self._unit_id(document, min(s.index for s in snippets)),
            document=document.path,
            document_ordinal=document.ordinal,
            dialect=self.dialect.name,
            suffix=suffix,
            kind=UnitKind.CHECKABLE,
            segments=segments,
            body=body,
        )

        problem = self.dialect.syntax_error(body, suffix)
        if problem is not None:
            position = map_position(unit, problem.line)
            where = f" (line {position.line})" if position else ""
            logger.info(
                "unit_malformed",
                unit=unit.id,
                error=problem.message,
                line=position.line if position else None,
            )
            return unit.model_copy(
                update={"kind": UnitKind.MALFORMED, "parse_error": f"{problem.message}{where}"}
            )

        ambient = self.dialect.needed_ambient(body, self.profile.ambient)
        return unit.model_copy(update={"preamble": self.dialect.render_preamble(ambient)})

    def _build_standalone(
        self, document: Document, snippet: Snippet, kind: UnitKind
    ) -> CompilationUnit:
        segments, body = self._segments([snippet])
        parse_error = None
        if kind == UnitKind.MALFORMED:
            parse_error = f"Unterminated code fence opened at line {snippet.start_line}"
        return CompilationUnit(
            id=self._unit_id(document, snippet.index),
            document=document.path,
            document_ordinal=document.ordinal,
            dialect=snippet.language,
            kind=kind,
            segments=segments,
            body=body,
            parse_error=parse_error,
        )


def _dedent(line: str, indent: int) -> str:
    """Strip up to `indent` leading spaces, as the fence indentation implies."""
    stripped = len(line) - len(line.lstrip(" "))
    return line[min(stripped, indent) :]
