"""Snippet extraction from Markdown lesson documents.

Recognizes fenced code blocks with a minimal grammar:

- an opening fence is three or more backticks or tildes, indented at most
  three spaces, followed by an optional info string;
- the closing fence uses the same character, is at least as long as the
  opener and carries nothing but whitespace;
- a block still open at end of document is returned as a malformed snippet
  ending on the last line.

The first info-string token is the language tag (lower-cased). Remaining
tokens are attributes, either `key=value` or bare flags, used as explicit
continuity markers:

    ```ts id=setup
    ```ts continues=setup
    ```ts fresh
    ```ts nocheck

Extraction is a pure function of the document text. `SnippetSequence` is lazy
and restartable: each iteration re-scans the text.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Iterator

from snipcheck.models import Heading, Snippet, split_lines

_FENCE_RE = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_HEADING_RE = re.compile(r"^ {0,3}(?P<hashes>#{1,6})(?:[ \t]+(?P<text>.*?))?[ \t]*$")
_CLOSING_HASHES_RE = re.compile(r"(?:^|[ \t]+)#+$")
_FRONT_MATTER_DELIMITER = "---"


def front_matter_span(lines: list[str]) -> int:
    """Return the number of leading lines taken by YAML front matter.

    Front matter is a `---` line at the very top of the document closed by
    another `---` (or `...`) line. Returns 0 when there is none.
    """
    if not lines or lines[0].rstrip("\r\n").strip() != _FRONT_MATTER_DELIMITER:
        return 0
    for idx in range(1, len(lines)):
        if lines[idx].rstrip("\r\n").strip() in (_FRONT_MATTER_DELIMITER, "..."):
            return idx + 1
    return 0


def parse_info_string(info: str) -> tuple[str, dict[str, str]]:
    """Split a fence info string into language tag and attributes.

    Args:
        info: Text after the opening fence.

    Returns:
        Tuple of (lower-cased language tag, attribute mapping).

    Example:
        >>> parse_info_string("TS id=setup fresh")
        ('ts', {'id': 'setup', 'fresh': ''})
    """
    try:
        tokens = shlex.split(info)
    except ValueError:
        tokens = info.split()
    if not tokens:
        return "", {}

    attributes: dict[str, str] = {}
    for token in tokens[1:]:
        key, _, value = token.partition("=")
        if key:
            attributes[key.lower()] = value
    return tokens[0].lower(), attributes


def _heading_text(raw: str | None) -> str:
    text = (raw or "").strip()
    return _CLOSING_HASHES_RE.sub("", text).strip()


def first_heading(text: str) -> str | None:
    """Return the text of the first ATX heading outside code fences."""
    for snippet_or_heading in _scan(document="", text=text, emit_headings=True):
        if isinstance(snippet_or_heading, Heading):
            return snippet_or_heading.text
    return None


def _scan(
    document: str,
    text: str,
    *,
    emit_headings: bool = False,
) -> Iterator[Snippet | Heading]:
    lines = split_lines(text, keepends=True)
    start = front_matter_span(lines)

    heading_stack: list[Heading] = []
    heading_count = 0
    sequence = 0

    # State of the currently open fence
    open_line = 0
    open_indent = 0
    open_char = ""
    open_length = 0
    open_info = ""
    body: list[str] = []

    for idx in range(start, len(lines)):
        line_no = idx + 1
        line = lines[idx].rstrip("\r\n")

        if open_char:
            stripped = line.strip()
            if (
                len(line) - len(line.lstrip(" ")) <= 3
                and stripped
                and set(stripped) == {open_char}
                and len(stripped) >= open_length
            ):
                language, attributes = parse_info_string(open_info)
                yield Snippet(
                    document=document,
                    index=sequence,
                    language=language,
                    info=open_info,
                    attributes=attributes,
                    text="".join(body),
                    start_line=open_line,
                    end_line=line_no,
                    indent=open_indent,
                    headings=tuple(heading_stack),
                )
                sequence += 1
                open_char = ""
                body = []
            else:
                body.append(lines[idx])
            continue

        fence = _FENCE_RE.match(line)
        if fence:
            marker = fence.group("fence")
            info = fence.group("info").strip()
            # Backtick fences may not carry backticks in their info string
            if not (marker[0] == "`" and "`" in info):
                open_line = line_no
                open_indent = len(fence.group("indent"))
                open_char = marker[0]
                open_length = len(marker)
                open_info = info
                body = []
                continue

        heading = _HEADING_RE.match(line)
        if heading:
            level = len(heading.group("hashes"))
            heading_count += 1
            while heading_stack and heading_stack[-1].level >= level:
                heading_stack.pop()
            entry = Heading(
                text=_heading_text(heading.group("text")),
                level=level,
                ordinal=heading_count,
            )
            heading_stack.append(entry)
            if emit_headings:
                yield entry

    if open_char:
        language, attributes = parse_info_string(open_info)
        yield Snippet(
            document=document,
            index=sequence,
            language=language,
            info=open_info,
            attributes=attributes,
            text="".join(body),
            start_line=open_line,
            end_line=max(len(lines), open_line),
            indent=open_indent,
            headings=tuple(heading_stack),
            malformed=True,
        )


class SnippetSequence:
    """Lazy, finite, restartable sequence of snippets from one document.

    Example:
        >>> seq = SnippetSequence("intro.md", "```ts\\nlet a = 1;\\n```\\n")
        >>> [s.language for s in seq]
        ['ts']
        >>> len(list(seq))  # iterating again re-scans
        1
    """

    def __init__(self, document: str, text: str) -> None:
        """Initialize the sequence.

        Args:
            document: Corpus-relative path of the document.
            text: Raw document text.
        """
        self.document = document
        self.text = text

    def __iter__(self) -> Iterator[Snippet]:
        for item in _scan(self.document, self.text):
            if isinstance(item, Snippet):
                yield item

    def __repr__(self) -> str:
        return f"SnippetSequence(document={self.document!r})"


def extract_snippets(document: str, text: str) -> SnippetSequence:
    """Extract fenced code snippets from a document.

    Args:
        document: Corpus-relative path of the document.
        text: Raw document text.

    Returns:
        Lazy sequence of snippets in document order.
    """
    return SnippetSequence(document, text)
