"""Source scanner: locate a shell function declaration and capture its body.

A declaration is a line that, after leading whitespace, reads
``name ( ) {`` (whitespace optional around the parentheses and brace).
The body runs from that line through the line where the brace depth first
returns to zero, inclusive.

Brace depth counts every literal ``{`` and ``}`` on each line. Quoting,
heredocs and comments are not understood, so a brace inside a string
literal shifts the count. Signatures spanning several lines are not
recognised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from funcsplice.core.errors import FunctionNotFound, MalformedBody
from funcsplice.core.fileops import read_text

# Any declared function name, for listing
_ANY_DECL_RE: re.Pattern[str] = re.compile(r"^\s*([A-Za-z0-9_]+)\s*\(\s*\)\s*\{")


def declaration_re(name: str) -> re.Pattern[str]:
    """Return the declaration pattern for function *name*."""
    return re.compile(rf"^\s*{re.escape(name)}\s*\(\s*\)\s*\{{")


@dataclass
class FunctionBody:
    name: str
    lines: list[str] = field(default_factory=list)  # no line terminators
    start_line: int = 0  # 1-based, declaration line
    end_line: int = 0    # 1-based, closing-brace line

    @property
    def text(self) -> str:
        """Body text as written to staged artifacts (newline-terminated)."""
        return "\n".join(self.lines) + "\n"

    def renamed(self, new_name: str) -> FunctionBody:
        """Return a copy whose declaration line names *new_name*.

        Only the first occurrence on the declaration line is replaced; the
        rest of the body is left untouched.
        """
        if not self.lines:
            return FunctionBody(new_name)
        first = self.lines[0].replace(self.name, new_name, 1)
        return FunctionBody(
            name=new_name,
            lines=[first, *self.lines[1:]],
            start_line=self.start_line,
            end_line=self.end_line,
        )


def brace_delta(line: str) -> int:
    return line.count("{") - line.count("}")


def scan_lines(name: str, lines: list[str], source: Path | str = "<text>") -> FunctionBody:
    """Capture function *name* from already-split *lines*.

    Raises:
        FunctionNotFound: no declaration line for *name*.
        MalformedBody: declaration found but depth never returns to zero.
    """
    decl = declaration_re(name)
    for idx, line in enumerate(lines):
        if not decl.match(line):
            continue
        depth = 0
        for end in range(idx, len(lines)):
            depth += brace_delta(lines[end])
            if depth == 0:
                return FunctionBody(
                    name=name,
                    lines=list(lines[idx:end + 1]),
                    start_line=idx + 1,
                    end_line=end + 1,
                )
        raise MalformedBody(name, source, idx + 1)
    raise FunctionNotFound(name, source)


def extract(name: str, source: Path) -> FunctionBody:
    """Extract function *name* from the shell file *source*."""
    return scan_lines(name, read_text(source).splitlines(), source)


def find_function_line(name: str, source: Path) -> int | None:
    """Return the 1-based line of the first declaration of *name*, or None."""
    decl = declaration_re(name)
    for lineno, line in enumerate(read_text(source).splitlines(), start=1):
        if decl.match(line):
            return lineno
    return None


def list_functions(source: Path) -> list[str]:
    """Return every declared function name in file order."""
    names: list[str] = []
    for line in read_text(source).splitlines():
        m = _ANY_DECL_RE.match(line)
        if m:
            names.append(m.group(1))
    return names
