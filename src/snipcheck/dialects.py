"""Checked-language dialects.

A dialect knows which fence tags belong to it, how to spot a syntactically
incomplete program without running the real checker, which top-level names a
program declares or references, and how to render ambient stand-ins for the
preamble.

PREAMBLE_VERSION is written into every preamble header, so bumping it changes
every unit's content hash and invalidates cached outcomes.
"""

from __future__ import annotations

import ast
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from snipcheck.models import SyntaxProblem

PREAMBLE_VERSION = 1


class Dialect(ABC):
    """Base class for checked languages.

    Attributes:
        name: Canonical language name used in profiles.
        tags: Fence language tags that select this dialect.
        suffix: File suffix given to unit sources on disk.
        default_ambient_type: Type used for ambient names declared without one.
    """

    name: str = ""
    tags: frozenset[str] = frozenset()
    suffix: str = ""
    default_ambient_type: str = ""

    def accepts(self, language_tag: str) -> bool:
        """Return True if a fence tag belongs to this dialect."""
        return language_tag in self.tags

    def unit_suffix(self, language_tags: Iterable[str]) -> str:
        """File suffix for a unit built from snippets with these fence tags."""
        return self.suffix

    @abstractmethod
    def syntax_error(self, source: str, suffix: str | None = None) -> SyntaxProblem | None:
        """Return the first syntax problem in `source`, or None.

        Args:
            source: Program text.
            suffix: Unit file suffix selecting a grammar variant (default: `self.suffix`).
        """

    @abstractmethod
    def declared_names(self, source: str) -> set[str]:
        """Return top-level names the program declares or imports."""

    @abstractmethod
    def referenced_names(self, source: str) -> set[str]:
        """Return identifiers the program references."""

    @abstractmethod
    def render_preamble(self, ambient: Mapping[str, str]) -> str:
        """Render the preamble text for the given ambient name -> type map."""

    def needed_ambient(self, source: str, ambient: Mapping[str, str]) -> dict[str, str]:
        """Select allow-listed ambient names referenced but not declared.

        Args:
            source: Unit body.
            ambient: Allow-list of name -> type ("" means the default type).

        Returns:
            Sorted mapping of names to inject with their resolved types.
        """
        if not ambient:
            return {}
        referenced = self.referenced_names(source)
        declared = self.declared_names(source)
        return {
            name: ambient[name] or self.default_ambient_type
            for name in sorted(ambient)
            if name in referenced and name not in declared
        }


class TypeScriptDialect(Dialect):
    """TypeScript snippets, checked by `tsc`.

    Syntax is validated with the tree-sitter TypeScript grammar, or the TSX
    grammar for units containing `tsx` fences. A parse tree holding an ERROR
    or MISSING node means the program would not parse.
    """

    name = "typescript"
    tags = frozenset({"ts", "typescript", "tsx", "mts", "cts"})
    suffix = ".ts"
    default_ambient_type = "any"

    JSX_TAGS = frozenset({"tsx"})

    _DECLARATION_RE = re.compile(
        r"\b(?:let|const|var|function\*?|class|interface|type|enum|namespace|module)"
        r"\s+([A-Za-z_$][\w$]*)"
    )
    _DEFAULT_IMPORT_RE = re.compile(r"\bimport\s+(?:type\s+)?([A-Za-z_$][\w$]*)\s*(?:,|\bfrom\b)")
    _NAMESPACE_IMPORT_RE = re.compile(r"\bimport\s+\*\s+as\s+([A-Za-z_$][\w$]*)")
    _NAMED_IMPORT_RE = re.compile(r"\bimport\s+(?:type\s+)?(?:[\w$]+\s*,\s*)?\{([^}]*)\}")
    _IDENTIFIER_RE = re.compile(r"(?<![\w$.])([A-Za-z_$][\w$]*)")

    _LANGUAGES = {
        ".ts": Language(tree_sitter_typescript.language_typescript()),
        ".tsx": Language(tree_sitter_typescript.language_tsx()),
    }

    def unit_suffix(self, language_tags: Iterable[str]) -> str:
        return ".tsx" if self.JSX_TAGS.intersection(language_tags) else self.suffix

    def syntax_error(self, source: str, suffix: str | None = None) -> SyntaxProblem | None:
        parser = Parser(self._LANGUAGES[suffix or self.suffix])
        root = parser.parse(source.encode("utf-8")).root_node
        if not root.has_error:
            return None
        node = _first_error_node(root)
        if node is None:
            return SyntaxProblem(message="Invalid syntax", line=1)
        line = node.start_point[0] + 1
        if node.is_missing:
            return SyntaxProblem(message=f"'{node.type}' expected", line=line)
        return SyntaxProblem(message=f"Unexpected {_token_text(node)}", line=line)

    def declared_names(self, source: str) -> set[str]:
        names = set(self._DECLARATION_RE.findall(source))
        names.update(self._DEFAULT_IMPORT_RE.findall(source))
        names.update(self._NAMESPACE_IMPORT_RE.findall(source))
        for group in self._NAMED_IMPORT_RE.findall(source):
            for binding in group.split(","):
                parts = binding.replace("type ", "").split(" as ")
                local = parts[-1].strip()
                if local:
                    names.add(local)
        return names

    def referenced_names(self, source: str) -> set[str]:
        return set(self._IDENTIFIER_RE.findall(source))

    def render_preamble(self, ambient: Mapping[str, str]) -> str:
        lines = [f"// snipcheck preamble v{PREAMBLE_VERSION}", "export {};"]
        for name, type_ in ambient.items():
            lines.append(f"declare const {name}: {type_ or self.default_ambient_type};")
        return "\n".join(lines) + "\n"


def _first_error_node(node: Node) -> Node | None:
    """Return the first ERROR or MISSING node in document order."""
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error_node(child)
            if found is not None:
                return found
    return None


def _token_text(node: Node) -> str:
    while node.children:
        node = node.children[0]
    text = (node.text or b"").decode("utf-8", errors="replace").split("\n", 1)[0]
    if not text:
        return "end of input"
    return f"'{text[:20]}'"


class _ModuleBindings(ast.NodeVisitor):
    """Collect names bound at module scope, without entering nested scopes."""

    def __init__(self) -> None:
        self.names: set[str] = set()

    def visit_FunctionDef(self, node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef) -> None:
        self.names.add(node.name)

    visit_AsyncFunctionDef = visit_FunctionDef
    visit_ClassDef = visit_FunctionDef

    def visit_Lambda(self, node: ast.expr) -> None:
        pass

    visit_ListComp = visit_SetComp = visit_DictComp = visit_GeneratorExp = visit_Lambda

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Store):
            self.names.add(node.id)

    def visit_Import(self, node: ast.Import | ast.ImportFrom) -> None:
        for alias in node.names:
            self.names.add((alias.asname or alias.name).split(".")[0])

    visit_ImportFrom = visit_Import

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.name:
            self.names.add(node.name)
        self.generic_visit(node)

    def visit_MatchAs(self, node: ast.MatchAs) -> None:
        if node.name:
            self.names.add(node.name)
        self.generic_visit(node)

    def visit_MatchStar(self, node: ast.MatchStar) -> None:
        if node.name:
            self.names.add(node.name)


class PythonDialect(Dialect):
    """Python snippets, checked by mypy. Syntax is validated with `ast`."""

    name = "python"
    tags = frozenset({"py", "python", "python3"})
    suffix = ".py"
    default_ambient_type = "Any"

    def syntax_error(self, source: str, suffix: str | None = None) -> SyntaxProblem | None:
        try:
            ast.parse(source)
        except SyntaxError as exc:
            return SyntaxProblem(message=exc.msg or "invalid syntax", line=max(exc.lineno or 1, 1))
        return None

    def declared_names(self, source: str) -> set[str]:
        bindings = _ModuleBindings()
        bindings.visit(ast.parse(source))
        return bindings.names

    def referenced_names(self, source: str) -> set[str]:
        return {
            node.id
            for node in ast.walk(ast.parse(source))
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load)
        }

    def render_preamble(self, ambient: Mapping[str, str]) -> str:
        lines = [f"# snipcheck preamble v{PREAMBLE_VERSION}"]
        if ambient:
            lines.append("from typing import Any")
        for name, type_ in ambient.items():
            lines.append(f"{name}: {type_ or self.default_ambient_type}")
        return "\n".join(lines) + "\n"


DIALECTS: dict[str, Dialect] = {
    dialect.name: dialect for dialect in (TypeScriptDialect(), PythonDialect())
}


def get_dialect(language: str) -> Dialect:
    """Look up a dialect by canonical language name.

    Raises:
        KeyError: If the language is not supported.
    """
    return DIALECTS[language]
