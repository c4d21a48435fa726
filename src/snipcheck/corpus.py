"""Corpus loading.

Enumerates documents under a corpus root, filters them with the profile's
include/exclude globs and assigns curriculum ordinals. Curriculum order is
the natural sort of path components: numeric runs compare as numbers, so
`2-basics/` comes before `10-generics/`.
"""

from __future__ import annotations

import re
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any

import structlog
import yaml

from snipcheck.errors import ConfigurationError
from snipcheck.extraction import first_heading, front_matter_span
from snipcheck.models import Document, split_lines
from snipcheck.profile import CompilerProfile

logger = structlog.get_logger(__name__)

_DIGITS_RE = re.compile(r"(\d+)")


def natural_key(path: str) -> tuple[tuple[Any, ...], ...]:
    """Sort key comparing numeric runs in each path component as numbers.

    Example:
        >>> sorted(["10-x.md", "2-y.md"], key=natural_key)
        ['2-y.md', '10-x.md']
    """
    return tuple(
        tuple(int(part) if part.isdigit() else part.lower() for part in _DIGITS_RE.split(component))
        for component in path.split("/")
    )


def matches_any(path: str, patterns: tuple[str, ...]) -> bool:
    """Return True if a corpus-relative POSIX path matches any glob.

    `*` also crosses directory separators; a leading `**/` additionally
    matches top-level files.
    """
    for pattern in patterns:
        if fnmatchcase(path, pattern):
            return True
        if pattern.startswith("**/") and fnmatchcase(path, pattern[3:]):
            return True
    return False


def read_front_matter(text: str) -> dict[str, Any]:
    """Parse the YAML front matter block of a document, if any."""
    lines = split_lines(text, keepends=True)
    span = front_matter_span(lines)
    if span < 2:
        return {}
    try:
        data = yaml.safe_load("".join(lines[1 : span - 1]))
    except yaml.YAMLError as exc:
        logger.warning("front_matter_invalid", error=str(exc))
        return {}
    return data if isinstance(data, dict) else {}


def document_title(path: str, text: str) -> str:
    """Front matter title, else first heading, else the file stem."""
    title = read_front_matter(text).get("title")
    if title:
        return str(title)
    return first_heading(text) or Path(path).stem


def load_corpus(
    root: str | Path,
    profile: CompilerProfile,
    *,
    warnings: list[str] | None = None,
) -> list[Document]:
    """Load every selected document under `root` in curriculum order.

    A document that cannot be read or is not valid UTF-8 is skipped and
    logged; the rest of the corpus still loads.

    Args:
        root: Corpus root directory.
        profile: Profile providing include/exclude globs.
        warnings: Optional list collecting a corpus warning per skipped document.

    Returns:
        Documents with ordinals 0..n-1 in curriculum order.

    Raises:
        ConfigurationError: If `root` is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise ConfigurationError("Corpus root is not a directory", file_path=str(root))

    selected: list[tuple[str, Path]] = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        relative = path.relative_to(root).as_posix()
        if not matches_any(relative, profile.include) or matches_any(relative, profile.exclude):
            continue
        selected.append((relative, path))

    selected.sort(key=lambda item: (natural_key(item[0]), item[0]))

    documents: list[Document] = []
    for relative, path in selected:
        try:
            text = path.read_text(encoding="utf-8")
        except (UnicodeDecodeError, OSError) as e:
            logger.warning("document_unreadable", document=relative, error=str(e))
            if warnings is not None:
                warnings.append(f"{relative}: document skipped, could not be read ({e})")
            continue
        documents.append(
            Document(
                path=relative,
                text=text,
                ordinal=len(documents),
                title=document_title(relative, text),
            )
        )

    logger.info("corpus_loaded", root=str(root), documents=len(documents))
    return documents
