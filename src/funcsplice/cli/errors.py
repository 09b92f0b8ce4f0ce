"""funcsplice rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from funcsplice.cli.errors import render_error
    err_console.print(render_error(exc))
    raise typer.Exit(1)
"""

from __future__ import annotations

from pathlib import Path

from rich.markup import escape

from funcsplice.config import ConfigError
from funcsplice.core.errors import (
    AlreadyStaged,
    ArtifactNotFound,
    BackupConflict,
    DuplicateMarker,
    FilesystemError,
    FuncError,
    FunctionNotFound,
    MalformedBody,
    MarkerNotFound,
    NotShellSource,
    SafetyAbort,
    SourceNotFound,
    WorkingCopyNotFound,
)


def err_function_not_found(name: str, source: str) -> str:
    """Function declaration missing from *source*."""
    return (
        f"[red]Error:[/] Function '{escape(name)}' not found in '{escape(source)}'.\n"
        f"  Run:  func ls {escape(source)}   to see declared functions."
    )


def err_malformed_body(name: str, source: str, line: int) -> str:
    """Declaration found, braces never balance."""
    return (
        f"[red]Error:[/] Function '{escape(name)}' at {escape(source)}:{line} never closes "
        "(unbalanced braces).\n"
        "  Braces inside strings or comments are counted too.\n"
        "  Balance them, or remove the stray brace, and retry."
    )


def err_already_staged(existing: list[Path]) -> str:
    listing = "\n".join(f"    - Exists: {escape(str(p))}" for p in existing)
    return (
        "[red]Error:[/] Target files already exist.\n"
        f"{listing}\n"
        "  Use --force to overwrite, or --alias <name> to stage under another name."
    )


def err_not_shell_source(path: str) -> str:
    return (
        f"[red]Error:[/] Source file '{escape(path)}' does not appear to be a valid shell script.\n"
        "  Use --bash to override."
    )


def err_working_copy_not_found(path: str) -> str:
    return (
        f"[red]Error:[/] Function file not found: '{escape(path)}'.\n"
        "  Run:  func copy <func> <src>   to stage a working copy first."
    )


def err_source_not_found(path: str) -> str:
    return (
        f"[red]Error:[/] Source file not found: '{escape(path)}'.\n"
        "  Check the path and retry."
    )


def err_artifact_not_found(path: str, kind: str, listing: str = "./func/") -> str:
    return (
        f"[red]Error:[/] {escape(kind[:1].upper() + kind[1:])} not found: '{escape(path)}'.\n"
        f"  Run:  ls {escape(listing)}   to see staged files."
    )


def _listing_dir(path: Path) -> str:
    """Directory holding *path*, relative to the CWD when it lies below it."""
    parent = path.parent
    try:
        rel = parent.resolve().relative_to(Path.cwd().resolve()).as_posix()
    except ValueError:
        return f"{parent}/"
    return "./" if rel == "." else f"./{rel}/"


def err_marker_not_found(source: str, marker: str) -> str:
    return (
        f"[red]Error:[/] FUNC_INSERT marker not found in '{escape(source)}'.\n"
        f"  Add this line where the function should go:\n"
        f"    {escape(marker)}\n"
        "  Or run:  func flag <func> <new> <src>"
    )


def err_duplicate_marker(source: str, lines: list[int]) -> str:
    where = ", ".join(str(n) for n in lines)
    return (
        f"[red]Error:[/] FUNC_INSERT marker appears more than once in '{escape(source)}' "
        f"(lines {where}).\n"
        "  Remove all but one marker and retry."
    )


def err_safety_abort(message: str, recorded_src: str = "", actual_src: str = "") -> str:
    detail = ""
    if recorded_src or actual_src:
        detail = (
            f"  Staged against:  {escape(recorded_src or '(unknown)')}\n"
            f"  Inserting into:  {escape(actual_src or '(unknown)')}\n"
        )
    return (
        f"[red]Error:[/] {escape(message)}\n"
        f"{detail}"
        "  The source changed after the function was staged; inserting could discard those changes.\n"
        "  Re-stage with:  func copy <func> <src> --force\n"
        "  Or set SAFE_MODE=0 (or pass --unsafe) to skip the check."
    )


def err_backup_conflict(backup: str) -> str:
    return (
        f"[red]Error:[/] Backup file '{escape(backup)}' already exists.\n"
        "  Use --yes to proceed without creating a new backup,\n"
        "  or --force to version the existing one."
    )


def err_filesystem(message: str) -> str:
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Check that the path exists and is writable, then retry."
    )


def err_config(message: str) -> str:
    return (
        f"[red]Error:[/] Invalid configuration.\n  {escape(message)}\n"
        "  Fix funcsplice.yaml (or ~/.funcsplice/config.yaml) and retry."
    )


def render_error(exc: Exception) -> str:
    """Map a funcsplice exception to its user-facing message."""
    if isinstance(exc, MalformedBody):
        return err_malformed_body(exc.name, str(exc.source), exc.line)
    if isinstance(exc, FunctionNotFound):
        return err_function_not_found(exc.name, str(exc.source))
    if isinstance(exc, WorkingCopyNotFound):
        return err_working_copy_not_found(str(exc.path))
    if isinstance(exc, SourceNotFound):
        return err_source_not_found(str(exc.path))
    if isinstance(exc, ArtifactNotFound):
        return err_artifact_not_found(str(exc.path), exc.kind, _listing_dir(exc.path))
    if isinstance(exc, MarkerNotFound):
        return err_marker_not_found(str(exc.source), exc.marker)
    if isinstance(exc, DuplicateMarker):
        return err_duplicate_marker(str(exc.source), exc.lines)
    if isinstance(exc, AlreadyStaged):
        return err_already_staged(exc.existing)
    if isinstance(exc, BackupConflict):
        return err_backup_conflict(str(exc.backup))
    if isinstance(exc, NotShellSource):
        return err_not_shell_source(str(exc.path))
    if isinstance(exc, SafetyAbort):
        return err_safety_abort(str(exc), exc.recorded_src, exc.actual_src)
    if isinstance(exc, FilesystemError):
        return err_filesystem(str(exc))
    if isinstance(exc, ConfigError):
        return err_config(str(exc))
    if isinstance(exc, FuncError):
        return f"[red]Error:[/] {escape(str(exc))}"
    raise TypeError(f"Not a funcsplice error: {exc!r}")
