"""snipcheck extract command - Show snippets and how they are grouped."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from rich.table import Table

from snipcheck_cli.config import profile_options, resolve_profile
from snipcheck_cli.errors import CLIError, handle_snipcheck_error
from snipcheck_cli.output import (
    get_console,
    print_json,
    print_unit_source,
    status_text,
    warning,
)

if TYPE_CHECKING:
    from snipcheck.assembly import AssemblyResult
    from snipcheck.models import Document


def _load_documents(path: Path, profile: Any, warnings: list[str]) -> list[Document]:
    """Load a single document, or every document of a corpus directory."""
    from snipcheck.corpus import document_title, load_corpus
    from snipcheck.models import Document

    if path.is_dir():
        return load_corpus(path, profile, warnings=warnings)
    try:
        text = path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as e:
        raise CLIError(f"Cannot read {path}: {e}") from e
    return [Document(path=path.name, text=text, title=document_title(path.name, text))]


def _unit_to_dict(result: AssemblyResult, show_source: bool) -> list[dict[str, Any]]:
    units = []
    for unit in result.units:
        data: dict[str, Any] = {
            "id": unit.id,
            "kind": unit.kind.value,
            "language": unit.dialect,
            "start_line": unit.start_line,
            "end_line": unit.end_line,
            "snippets": [
                {
                    "index": snippet.index,
                    "language": snippet.language,
                    "start_line": snippet.start_line,
                    "end_line": snippet.end_line,
                    "attributes": snippet.attributes,
                    "heading": snippet.heading,
                }
                for snippet in unit.snippets
            ],
            "parse_error": unit.parse_error,
        }
        if show_source:
            data["source"] = unit.source
        units.append(data)
    return units


@click.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@profile_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format [default: table]",
)
@click.option(
    "--show-source",
    is_flag=True,
    default=False,
    help="Include each unit's assembled source (preamble and body).",
)
def extract(
    path: Path,
    profile_path: str | None,
    profile_name: str | None,
    output_format: str,
    show_source: bool,
) -> None:
    """Extract snippets and show the compilation units they form.

    PATH is a Markdown file or a corpus directory. Nothing is type-checked.

    Examples:

        snipcheck extract docs/02-functions.md

        snipcheck extract docs/ --format json --show-source
    """
    from snipcheck.assembly import UnitAssembler
    from snipcheck.errors import SnipcheckError
    from snipcheck.extraction import extract_snippets

    root = path if path.is_dir() else path.parent
    profile = resolve_profile(profile_path, profile_name, root)

    corpus_warnings: list[str] = []
    try:
        documents = _load_documents(path, profile, corpus_warnings)
    except SnipcheckError as e:
        handle_snipcheck_error(e)

    assembler = UnitAssembler(profile)
    results = [
        assembler.assemble(document, extract_snippets(document.path, document.text))
        for document in documents
    ]

    if output_format == "json":
        print_json(
            [
                {
                    "document": result.document,
                    "units": _unit_to_dict(result, show_source),
                    "warnings": list(result.warnings),
                }
                for result in results
            ]
        )
        for message in corpus_warnings:
            warning(message, highlight=False)
        return

    console = get_console()
    for result in results:
        table = Table(title=result.document, title_justify="left", header_style="bold")
        table.add_column("Unit", min_width=12)
        table.add_column("Kind", min_width=10)
        table.add_column("Snippets")
        table.add_column("Lines", justify="right")
        for unit in result.units:
            table.add_row(
                unit.id,
                status_text(unit.kind.value),
                ", ".join(
                    f"#{s.index} {s.language or '-'}" + (f" ({s.heading})" if s.heading else "")
                    for s in unit.snippets
                ),
                f"{unit.start_line}-{unit.end_line}",
            )
        console.print(table)
        for unit in result.units:
            if show_source and unit.source:
                print_unit_source(unit.id, unit.source)
        for message in result.warnings:
            warning(message, highlight=False)
    for message in corpus_warnings:
        warning(message, highlight=False)
