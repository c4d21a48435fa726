"""TypeScript backend driving `tsc --noEmit`."""

from __future__ import annotations

import re
from pathlib import Path

from snipcheck.compiler.backends.base import SubprocessBackend
from snipcheck.models import RawDiagnostic, Severity

# snippet.ts(3,7): error TS2322: Type 'string' is not assignable to type 'number'.
TSC_DIAGNOSTIC_RE = re.compile(
    r"^(?P<file>.+?)\((?P<line>\d+),(?P<col>\d+)\):\s*"
    r"(?P<severity>error|warning)\s+(?P<code>TS\d+)\s*:\s*(?P<message>.*)$"
)


class TypeScriptBackend(SubprocessBackend):
    """Runs the TypeScript compiler in type-check-only mode.

    Passing the file explicitly makes `tsc` ignore any tsconfig.json, so the
    profile alone decides the options.
    """

    name = "tsc"
    default_command = ("tsc",)

    def build_args(self, file_name: str, workdir: Path) -> list[str]:
        profile = self.profile
        args = [
            *self.command,
            "--noEmit",
            "--pretty",
            "false",
            "--target",
            profile.resolved_target,
        ]
        if profile.strict:
            args.append("--strict")
        if profile.libs:
            args.extend(["--lib", ",".join(profile.libs)])
        if file_name.endswith(".tsx") and "--jsx" not in profile.flags:
            args.extend(["--jsx", "preserve"])
        args.extend(profile.flags)
        args.append(file_name)
        return args

    def parse_output(self, output: str, file_name: str) -> list[RawDiagnostic]:
        diagnostics: list[RawDiagnostic] = []
        keep_continuation = False
        for line in output.splitlines():
            match = TSC_DIAGNOSTIC_RE.match(line)
            if match is None:
                # Chained message details are indented under their diagnostic.
                if keep_continuation and line.startswith(" ") and line.strip():
                    last = diagnostics[-1]
                    diagnostics[-1] = last.model_copy(
                        update={"message": f"{last.message} {line.strip()}"}
                    )
                else:
                    keep_continuation = False
                continue
            keep_continuation = Path(match["file"]).name == file_name
            if not keep_continuation:
                continue
            diagnostics.append(
                RawDiagnostic(
                    line=max(int(match["line"]), 1),
                    column=max(int(match["col"]), 1),
                    severity=Severity(match["severity"]),
                    message=match["message"].strip(),
                    code=match["code"],
                )
            )
        return diagnostics
