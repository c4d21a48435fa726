"""Unit tests for the curriculum dependency graph."""

from __future__ import annotations

from snipcheck.graph import CurriculumGraph, topological_order
from snipcheck.models import (
    CompilationUnit,
    ContinuityLink,
    Document,
    LinkKind,
    Segment,
    Snippet,
)


def make_unit(document: str, indexes: list[int]) -> CompilationUnit:
    """Build a unit whose snippets each occupy four document lines."""
    segments = []
    for position, index in enumerate(indexes):
        snippet = Snippet(
            document=document,
            index=index,
            language="python",
            text=f"v{index} = {index}\n",
            start_line=index * 4 + 1,
            end_line=index * 4 + 3,
        )
        segments.append(Segment(snippet=snippet, body_start=position + 1, line_count=1))
    return CompilationUnit(
        id=f"{document}#{min(indexes)}",
        document=document,
        dialect="python",
        segments=tuple(segments),
        body="".join(s.snippet.text for s in segments),
    )


def link(document: str, source: int, target: int) -> ContinuityLink:
    return ContinuityLink(document=document, source=source, target=target, kind=LinkKind.EXPLICIT)


class TestTopologicalOrder:
    """Tests for topological_order."""

    def test_edges_point_forward(self) -> None:
        """Every edge's source precedes its target."""
        order, stuck = topological_order([1, 2, 3], [(3, 1)], key=lambda n: n)

        assert order == [2, 3, 1]
        assert stuck == []

    def test_ties_broken_by_key(self) -> None:
        """Unconstrained nodes follow the key."""
        order, _ = topological_order(["c", "a", "b"], [], key=lambda n: n)

        assert order == ["a", "b", "c"]

    def test_unknown_and_self_edges_ignored(self) -> None:
        """Edges touching unknown nodes or looping on one node are skipped."""
        order, stuck = topological_order([1, 2], [(1, 1), (2, 9), (9, 1)], key=lambda n: n)

        assert order == [1, 2]
        assert stuck == []

    def test_cycle_reports_stuck_nodes(self) -> None:
        """Nodes on a cycle are appended in key order and reported."""
        order, stuck = topological_order([1, 2, 3], [(2, 3), (3, 2)], key=lambda n: n)

        assert order == [1, 2, 3]
        assert stuck == [2, 3]


class TestCurriculumGraph:
    """Tests for CurriculumGraph."""

    def test_documents_follow_ordinals(self) -> None:
        """Documents are chained in ordinal order regardless of input order."""
        graph = CurriculumGraph(
            [
                Document(path="b.md", text="", ordinal=1),
                Document(path="a.md", text="", ordinal=0),
            ]
        )

        assert [doc.path for doc in graph.documents()] == ["a.md", "b.md"]

    def test_units_in_document_order_without_links(self) -> None:
        """Units of one document default to their first snippet order."""
        graph = CurriculumGraph([Document(path="a.md", text="")])
        graph.add_units("a.md", [make_unit("a.md", [2]), make_unit("a.md", [0, 1])], [])

        assert [unit.id for unit in graph.iter_units()] == ["a.md#0", "a.md#2"]

    def test_cross_unit_link_orders_units(self) -> None:
        """A unit continuing another unit's snippet comes after it."""
        graph = CurriculumGraph([Document(path="a.md", text="")])
        graph.add_units(
            "a.md",
            [make_unit("a.md", [0]), make_unit("a.md", [1])],
            [link("a.md", 1, 0)],
        )

        assert [unit.id for unit in graph.iter_units()] == ["a.md#1", "a.md#0"]
        assert graph.warnings == []

    def test_cycle_warns_and_uses_document_order(self) -> None:
        """A unit-level cycle is a warning, never a skipped unit."""
        graph = CurriculumGraph([Document(path="a.md", text="")])
        graph.add_units(
            "a.md",
            [make_unit("a.md", [0, 1]), make_unit("a.md", [2, 3])],
            [link("a.md", 1, 2), link("a.md", 3, 0)],
        )

        assert [unit.id for unit in graph.iter_units()] == ["a.md#0", "a.md#2"]
        assert len(graph.warnings) == 1
        assert "cycle" in graph.warnings[0]

        list(graph.iter_units())
        assert len(graph.warnings) == 1

    def test_documents_processed_in_curriculum_order(self) -> None:
        """Every unit of an earlier document precedes later documents."""
        graph = CurriculumGraph(
            [
                Document(path="02.md", text="", ordinal=1),
                Document(path="01.md", text="", ordinal=0),
            ]
        )
        graph.add_units("02.md", [make_unit("02.md", [0])], [])
        graph.add_units("01.md", [make_unit("01.md", [0]), make_unit("01.md", [1])], [])

        assert graph.numbering() == {"01.md#0": 0, "01.md#1": 1, "02.md#0": 2}

    def test_document_without_units(self) -> None:
        """Documents with no units yield nothing."""
        graph = CurriculumGraph([Document(path="empty.md", text="")])

        assert list(graph.iter_units()) == []
