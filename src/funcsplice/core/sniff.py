"""Shell-source sniffing: is this file plausibly a shell script?

Accepted by extension: .sh, .bash*, .func, .fx
Rejected by extension: .log, .txt, .md
Anything else must start with a ``#!…bash`` shebang.
"""

from __future__ import annotations

import re
from pathlib import Path

_ACCEPT_SUFFIXES: frozenset[str] = frozenset([".sh", ".func", ".fx"])
_REJECT_SUFFIXES: frozenset[str] = frozenset([".log", ".txt", ".md"])
_SHEBANG_RE: re.Pattern[str] = re.compile(r"^#!.*bash")


def is_valid_shell_source(path: Path, assume_shell: bool = False) -> bool:
    """Return True if *path* is an existing file that looks like a shell script.

    *assume_shell* (``--bash``) skips every check.
    """
    if assume_shell:
        return True
    if not path.is_file():
        return False

    suffix = path.suffix.lower()
    if suffix in _ACCEPT_SUFFIXES or suffix.startswith(".bash"):
        return True
    if suffix in _REJECT_SUFFIXES:
        return False

    try:
        with path.open("r", encoding="utf-8", errors="replace") as fh:
            first = fh.readline()
    except OSError:
        return False
    return bool(_SHEBANG_RE.match(first))
