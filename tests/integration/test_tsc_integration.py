"""Integration tests running the TypeScript compiler.

Skipped when `tsc` is not on PATH.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

from snipcheck.engine import run_validation
from snipcheck.profile import CompilerProfile

pytestmark = [
    pytest.mark.integration,
    pytest.mark.slow,
    pytest.mark.skipif(shutil.which("tsc") is None, reason="tsc is not installed"),
]

CorpusFactory = Callable[[dict[str, str]], Path]

LESSON = """\
# Types

```ts
interface User {
  name: string;
}
```

```ts
const user: User = { name: "Ada" };
```

## Mistakes

```ts
const age: number = "forty";
```
"""


class TestTscBackend:
    """End-to-end checks with tsc."""

    def test_lesson(self, make_corpus: CorpusFactory) -> None:
        """Continuity works and the mistake is mapped to its line."""
        root = make_corpus({"types.md": LESSON})
        profile = CompilerProfile(name="integration", cache_path=None)

        report = run_validation(profile, root)

        assert report.unit("types.md#0").status.value == "ok"
        assert report.unit("types.md#2").status.value == "diagnostics"
        diagnostic = report.diagnostics[0]
        assert (diagnostic.line, diagnostic.column) == (16, 7)
        assert diagnostic.code == "TS2322"

    def test_ambient_declarations(self, make_corpus: CorpusFactory) -> None:
        """Ambient names are declared for the unit."""
        root = make_corpus({"host.md": "```ts\nconsole.log(config.port);\n```\n"})
        profile = CompilerProfile(
            name="integration", ambient={"config": "{ port: number }"}, cache_path=None
        )

        report = run_validation(profile, root)

        assert report.passed is True, report.to_json()
