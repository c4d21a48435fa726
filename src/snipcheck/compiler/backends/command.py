"""Backend running a user-supplied checker command."""

from __future__ import annotations

from pathlib import Path

from snipcheck.compiler.backends.base import SubprocessBackend

FILE_PLACEHOLDER = "{file}"


class CommandBackend(SubprocessBackend):
    """Runs `profile.command` against the unit file.

    Every `{file}` in the command is replaced with the unit's file name; when
    no argument mentions it, the file name is appended. The command must
    print diagnostics as `file:line[:col]: error|warning: message [code]`
    and exit non-zero only when it reports errors.

    Example:
        >>> CompilerProfile(language="python", backend="command",
        ...                 command=["pyright", "{file}"])
    """

    name = "command"

    def build_args(self, file_name: str, workdir: Path) -> list[str]:
        args = [part.replace(FILE_PLACEHOLDER, file_name) for part in self.command]
        args.extend(self.profile.flags)
        if not any(FILE_PLACEHOLDER in part for part in self.command):
            args.append(file_name)
        return args
