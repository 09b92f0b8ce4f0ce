"""Exception taxonomy for the extract → edit → reinsert round-trip.

Four families, all rooted at :class:`FuncError`:

  NotFoundError    function, artifact or marker absent
  SafetyAbort      integrity/consistency check failed (never auto-resolved)
  ConflictError    target artifact or backup already exists
  FilesystemError  I/O failure (wraps OSError, never retried)

Core code raises these; the CLI renders them (see ``funcsplice.cli.errors``).
"""

from __future__ import annotations

from pathlib import Path


class FuncError(Exception):
    """Base class for every failure reported by funcsplice."""


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(FuncError):
    """Something the operation needs does not exist."""


class FunctionNotFound(NotFoundError):
    def __init__(self, name: str, source: Path | str) -> None:
        self.name = name
        self.source = Path(source)
        super().__init__(f"Function '{name}' not found in '{source}'.")


class MalformedBody(FunctionNotFound):
    """Declaration found, but its braces never balance before end-of-file."""

    def __init__(self, name: str, source: Path | str, line: int) -> None:
        super().__init__(name, source)
        self.line = line
        self.args = (
            f"Function '{name}' in '{source}' starts at line {line} "
            "but its braces never balance.",
        )


class ArtifactNotFound(NotFoundError):
    def __init__(self, path: Path | str, kind: str = "artifact") -> None:
        self.path = Path(path)
        self.kind = kind
        super().__init__(f"{kind[:1].upper()}{kind[1:]} not found: '{path}'.")


class WorkingCopyNotFound(ArtifactNotFound):
    def __init__(self, path: Path | str) -> None:
        super().__init__(path, kind="working copy")


class ReferenceNotFound(ArtifactNotFound):
    def __init__(self, path: Path | str) -> None:
        super().__init__(path, kind="reference copy")


class SourceNotFound(ArtifactNotFound):
    def __init__(self, path: Path | str) -> None:
        super().__init__(path, kind="source file")


class MarkerNotFound(NotFoundError):
    def __init__(self, source: Path | str, marker: str) -> None:
        self.source = Path(source)
        self.marker = marker
        super().__init__(f"FUNC_INSERT marker not found in '{source}'.")


# ---------------------------------------------------------------------------
# Safety
# ---------------------------------------------------------------------------


class SafetyAbort(FuncError):
    """The source no longer matches what the working copy was staged against."""

    def __init__(self, message: str, *, recorded_src: str = "", actual_src: str = "") -> None:
        self.recorded_src = recorded_src
        self.actual_src = actual_src
        super().__init__(message)


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class ConflictError(FuncError):
    """A target already exists and no override was granted."""


class AlreadyStaged(ConflictError):
    def __init__(self, existing: list[Path]) -> None:
        self.existing = existing
        super().__init__("Target files already exist. Use --force to overwrite.")


class BackupConflict(ConflictError):
    def __init__(self, backup: Path) -> None:
        self.backup = backup
        super().__init__(f"Backup file '{backup}' already exists.")


class DuplicateMarker(ConflictError):
    def __init__(self, source: Path | str, lines: list[int]) -> None:
        self.source = Path(source)
        self.lines = lines
        super().__init__(
            f"FUNC_INSERT marker appears {len(lines)} times in '{source}' "
            f"(lines {', '.join(str(n) for n in lines)})."
        )


class NotShellSource(ConflictError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Source file '{path}' does not appear to be a valid shell script.")


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


class FilesystemError(FuncError):
    def __init__(self, operation: str, path: Path | str, cause: OSError) -> None:
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Filesystem operation failed: {operation} '{path}': {cause}")
