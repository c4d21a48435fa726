"""Curriculum dependency graph.

Documents form a chain in curriculum order (their ordinal); compilation units
are ordered inside a document by the continuity links between their
snippets. The graph exists to make processing order explicit and
reproducible: it never causes a unit to be skipped.

Continuity cycles can only come from authoring mistakes (two snippets that
`continues=` each other). They are reported as corpus warnings and the nodes
involved fall back to document order.
"""

from __future__ import annotations

import heapq
from collections.abc import Callable, Hashable, Iterable, Iterator, Sequence
from typing import Any, TypeVar

import structlog

from snipcheck.models import CompilationUnit, ContinuityLink, Document

logger = structlog.get_logger(__name__)

N = TypeVar("N", bound=Hashable)


def topological_order(
    nodes: Sequence[N],
    edges: Iterable[tuple[N, N]],
    key: Callable[[N], Any],
) -> tuple[list[N], list[N]]:
    """Order nodes so every edge points forward, breaking ties by `key`.

    Args:
        nodes: Nodes to order.
        edges: (before, after) pairs; edges touching unknown nodes and
            self-edges are ignored.
        key: Sort key for deterministic tie-breaking.

    Returns:
        Tuple of (order, stuck) where `stuck` lists the nodes on or behind a
        cycle, in `key` order. Stuck nodes are appended to `order`.

    Example:
        >>> topological_order([1, 2, 3], [(3, 1)], key=lambda n: n)
        ([2, 3, 1], [])
    """
    known = set(nodes)
    successors: dict[N, set[N]] = {node: set() for node in nodes}
    indegree: dict[N, int] = {node: 0 for node in nodes}
    for before, after in edges:
        if before == after or before not in known or after not in known:
            continue
        if after not in successors[before]:
            successors[before].add(after)
            indegree[after] += 1

    heap = [(key(node), idx, node) for idx, node in enumerate(nodes) if indegree[node] == 0]
    heapq.heapify(heap)
    position = {node: idx for idx, node in enumerate(nodes)}

    order: list[N] = []
    while heap:
        _, _, node = heapq.heappop(heap)
        order.append(node)
        for succ in successors[node]:
            indegree[succ] -= 1
            if indegree[succ] == 0:
                heapq.heappush(heap, (key(succ), position[succ], succ))

    emitted = set(order)
    stuck = sorted((node for node in nodes if node not in emitted), key=key)
    return order + stuck, stuck


class CurriculumGraph:
    """Processing order over documents and their compilation units.

    Example:
        >>> graph = CurriculumGraph(documents)
        >>> graph.add_units("01-intro.md", units, links)
        >>> for unit in graph.iter_units():
        ...     submit(unit)
    """

    def __init__(self, documents: Iterable[Document]) -> None:
        """Initialize the graph.

        Args:
            documents: Corpus documents; ordinals define curriculum order.
        """
        self._documents = {doc.path: doc for doc in documents}
        self._units: dict[str, list[CompilationUnit]] = {path: [] for path in self._documents}
        self._links: dict[str, list[ContinuityLink]] = {path: [] for path in self._documents}
        self.warnings: list[str] = []
        self._log = logger.bind(component="curriculum_graph")

    def add_units(
        self,
        document: str,
        units: Iterable[CompilationUnit],
        links: Iterable[ContinuityLink],
    ) -> None:
        """Register the units and continuity links assembled for one document."""
        self._units[document].extend(units)
        self._links[document].extend(links)

    def documents(self) -> list[Document]:
        """Documents in curriculum order."""
        docs = sorted(self._documents.values(), key=lambda doc: (doc.ordinal, doc.path))
        chain = zip(docs, docs[1:])
        order, _ = topological_order(
            [doc.path for doc in docs],
            [(a.path, b.path) for a, b in chain],
            key=lambda path: (self._documents[path].ordinal, path),
        )
        return [self._documents[path] for path in order]

    def iter_units(self) -> Iterator[CompilationUnit]:
        """Yield every unit in reproducible processing order.

        Units of earlier documents come first. Inside a document, a unit whose
        snippet continues a snippet of another unit comes after that unit;
        remaining ties follow document order.
        """
        for document in self.documents():
            units = {unit.id: unit for unit in self._units[document.path]}
            owner = {
                snippet.index: unit.id
                for unit in units.values()
                for snippet in unit.snippets
            }
            edges = [
                (owner[link.source], owner[link.target])
                for link in self._links[document.path]
                if link.source in owner and link.target in owner
            ]
            order, stuck = topological_order(
                list(units), edges, key=lambda unit_id: units[unit_id].first_index
            )
            if stuck:
                message = (
                    f"{document.path}: continuity cycle between units "
                    f"{', '.join(stuck)}; processing them in document order"
                )
                if message not in self.warnings:
                    self.warnings.append(message)
                    self._log.warning("continuity_cycle", document=document.path, units=stuck)
            for unit_id in order:
                yield units[unit_id]

    def numbering(self) -> dict[str, int]:
        """Explicit topological number of every unit (0-based)."""
        return {unit.id: number for number, unit in enumerate(self.iter_units())}
