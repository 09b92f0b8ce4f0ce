"""Safety guard and insertion engine.

``insert`` splices a working copy back into its source file at the single
``# FUNC_INSERT <working-copy>`` marker line:

  1. the working copy and exactly one marker must exist;
  2. in safe mode, the source must still be the file the copy was staged
     against (same resolved path, or same content after a confirmed move);
  3. the source is backed up into its BackupChain
     (``<src>.orig`` newest, ``<src>.orig.0``, ``<src>.orig.1``, … older);
  4. the marker line is replaced by the working copy's body, header stripped;
  5. other working copies staged from the same, still-matching source get
     the spliced file recorded as their new ``src_sum``.

Nothing here prompts directly: confirmations go through the ``confirm``
callback so the CLI decides how to ask.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from funcsplice.config import FuncConfig
from funcsplice.core import checksum, meta, scanner
from funcsplice.core.errors import (
    BackupConflict,
    DuplicateMarker,
    MarkerNotFound,
    SafetyAbort,
    WorkingCopyNotFound,
)
from funcsplice.core.fileops import copy_file, move_file, read_text, write_atomic
from funcsplice.core.workspace import MARKER_TAG, WORKING_SUFFIX, Workspace

ConfirmFn = Callable[[str], bool]

_MARKER_RE: re.Pattern[str] = re.compile(rf"^\s*{re.escape(MARKER_TAG)}\s+(\S.*?)\s*$")
_ANY_MARKER_RE: re.Pattern[str] = re.compile(rf"^\s*{re.escape(MARKER_TAG)}(\s|$)")
_BACKUP_SUFFIX = ".orig"


class BackupPolicy(Enum):
    CREATE = "create"    # no backup yet → copy source to <src>.orig
    VERSION = "version"  # rotate existing chain, then fresh <src>.orig
    SKIP = "skip"        # keep existing <src>.orig, take no new snapshot
    REFUSE = "refuse"    # existing backup and no override → BackupConflict


@dataclass
class InsertResult:
    source: Path
    working: Path
    marker_line: int                 # 1-based line the marker occupied
    inserted_lines: int
    backup: Path | None = None       # snapshot taken by this insert, if any
    rotated: list[Path] = field(default_factory=list)  # new paths of rotated backups
    relocated: bool = False          # header src amended after a confirmed move
    backups: list[Path] = field(default_factory=list)  # snapshots of source after this insert, newest first
    refreshed: list[Path] = field(default_factory=list)  # other working copies whose src_sum was updated


# ------------------------------------------------------------------
# Markers
# ------------------------------------------------------------------


def _marker_names(ref: str, working: Path, root: Path) -> bool:
    ref_path = Path(ref)
    if not ref_path.is_absolute():
        ref_path = root / ref_path
    return ref_path.resolve() == working.resolve()


def find_marker_lines(lines: list[str], working: Path, root: Path) -> list[int]:
    """Return 0-based indexes of marker lines naming *working*."""
    hits: list[int] = []
    for idx, line in enumerate(lines):
        m = _MARKER_RE.match(line)
        if m and _marker_names(m.group(1), working, root):
            hits.append(idx)
    return hits


def flag(func_name: str, edit_name: str, source: Path, ws: Workspace) -> int:
    """Place the marker for *edit_name* directly above *func_name*'s declaration.

    Returns the 1-based line number of the new marker.

    Raises:
        FunctionNotFound: *func_name* is not declared in *source*.
    """
    text = read_text(source)
    lines = text.splitlines(keepends=True)
    body = scanner.scan_lines(func_name, [ln.rstrip("\r\n") for ln in lines], source)
    idx = body.start_line - 1
    lines.insert(idx, ws.marker_for(edit_name) + "\n")
    write_atomic(source, "".join(lines))
    return idx + 1


# ------------------------------------------------------------------
# Safety guard
# ------------------------------------------------------------------


def strip_markers(text: str) -> str:
    """Return *text* without any ``# FUNC_INSERT`` lines."""
    return "".join(ln for ln in text.splitlines(keepends=True) if not _ANY_MARKER_RE.match(ln))


def _source_unchanged(recorded_sum: str, text: str) -> bool:
    """True if the source, as is or with every marker line removed, hashes to *recorded_sum*."""
    if not recorded_sum:
        return False
    try:
        return checksum.matches_text(recorded_sum, text) or checksum.matches_text(
            recorded_sum, strip_markers(text)
        )
    except checksum.UnknownAlgorithm:
        return False
    lines = text.splitlines(keepends=True)
    without_marker = "".join(lines[:marker_idx] + lines[marker_idx + 1:])
    try:
        return checksum.matches(recorded_sum, text.encode("utf-8")) or checksum.matches(
            recorded_sum, without_marker.encode("utf-8")
        )
    except checksum.UnknownAlgorithm:
        return False


def check_consistency(
    working: Path,
    source: Path,
    cfg: FuncConfig,
    confirm: ConfirmFn | None = None,
) -> bool:
    """Verify *working* was staged against the current *source*.

    Returns True if the header's ``src`` was rewritten after a confirmed
    relocation, False if the source matched as recorded.

    Raises:
        SafetyAbort: the source diverged, or the relocation was not confirmed.
    """
    header = meta.read_header(working)
    if header is None:
        raise SafetyAbort(f"Working copy '{working}' has no FUNC_META header.")

    recorded_src = meta.decode(header, "src") or ""
    recorded_sum = meta.decode(header, "src_sum") or ""
    actual_src = str(source.resolve())
    unchanged = _source_unchanged(recorded_sum, read_text(source))

    if recorded_src == actual_src:
        if unchanged:
            return False
        raise SafetyAbort(
            f"SAFE_MODE abort. '{source}' changed since the working copy was staged.",
            recorded_src=recorded_src,
            actual_src=actual_src,
        )

    if not unchanged:
        raise SafetyAbort(
            "SAFE_MODE abort. Source file path and checksum both mismatch.",
            recorded_src=recorded_src,
            actual_src=actual_src,
        )

    question = (
        "Warning: Source path mismatch, but checksums match. "
        f"Update metadata in '{working.name}'?"
    )
    ask = confirm if confirm is not None else (lambda _msg: False)
    if not (cfg.flags.yes or ask(question)):
        raise SafetyAbort(
            "Abort. Source relocation was not confirmed.",
            recorded_src=recorded_src,
            actual_src=actual_src,
        )
    meta.amend_field(working, "src", actual_src)
    return True


# ------------------------------------------------------------------
# Backup chain
# ------------------------------------------------------------------


def backup_path(source: Path) -> Path:
    return source.with_name(source.name + _BACKUP_SUFFIX)


def _numbered_backups(source: Path) -> dict[int, Path]:
    pattern = re.compile(rf"^{re.escape(source.name + _BACKUP_SUFFIX)}\.(\d+)$")
    found: dict[int, Path] = {}
    for p in source.parent.iterdir():
        m = pattern.match(p.name)
        if m and p.is_file():
            found[int(m.group(1))] = p
    return found


def backup_chain(source: Path) -> list[Path]:
    """Existing snapshots of *source*, newest first."""
    chain = [backup_path(source)] if backup_path(source).is_file() else []
    numbered = _numbered_backups(source)
    return chain + [numbered[n] for n in sorted(numbered)]


def rotate_backups(source: Path) -> list[Path]:
    """Shift ``.orig.N`` → ``.orig.N+1`` (highest first), then ``.orig`` → ``.orig.0``.

    Returns the new paths of every moved backup.
    """
    moved: list[Path] = []
    for n, path in sorted(_numbered_backups(source).items(), reverse=True):
        dest = path.with_name(f"{source.name}{_BACKUP_SUFFIX}.{n + 1}")
        move_file(path, dest)
        moved.append(dest)
    base = backup_path(source)
    if base.is_file():
        dest = base.with_name(f"{base.name}.0")
        move_file(base, dest)
        moved.append(dest)
    return moved


def backup_policy(source: Path, cfg: FuncConfig) -> BackupPolicy:
    if not backup_path(source).exists():
        return BackupPolicy.CREATE
    if cfg.flags.force:
        return BackupPolicy.VERSION
    if cfg.flags.yes:
        return BackupPolicy.SKIP
    return BackupPolicy.REFUSE


def take_backup(source: Path, cfg: FuncConfig) -> tuple[Path | None, list[Path]]:
    """Snapshot *source* according to its backup policy.

    Returns ``(new_backup_or_None, rotated_paths)``.

    Raises:
        BackupConflict: a backup exists and neither force nor yes is set.
    """
    policy = backup_policy(source, cfg)
    if policy is BackupPolicy.REFUSE:
        raise BackupConflict(backup_path(source))
    if policy is BackupPolicy.SKIP:
        return None, []

    rotated = rotate_backups(source) if policy is BackupPolicy.VERSION else []
    target = backup_path(source)
    copy_file(source, target)
    return target, rotated


# ------------------------------------------------------------------
# Splice
# ------------------------------------------------------------------


def splice(source_text: str, marker_idx: int, body: str) -> str:
    """Replace line *marker_idx* of *source_text* with *body*.

    Every other line keeps its content, terminator and order.
    """
    lines = source_text.splitlines(keepends=True)
    marker = lines[marker_idx]
    terminator = marker[len(marker.rstrip("\r\n")):]
    if body and terminator and not body.endswith("\n"):
        body += terminator
    if body and not terminator and body.endswith("\n"):
        body = body[:-1]
    return "".join(lines[:marker_idx]) + body + "".join(lines[marker_idx + 1:])


def _consistent_siblings(working: Path, source: Path, text: str) -> list[Path]:
    """Other working copies staged from *source* that still match its *text*."""
    actual_src = str(source.resolve())
    found: list[Path] = []
    for other in sorted(working.parent.glob(f"*{WORKING_SUFFIX}")):
        if other.resolve() == working.resolve():
            continue
        header = meta.read_header(other)
        if header is None:
            continue
        parsed = meta.MetadataHeader.parse(header)
        if parsed.src == actual_src and _source_unchanged(parsed.src_sum, text):
            found.append(other)
    return found


def _refresh_siblings(siblings: list[Path], source: Path, cfg: FuncConfig) -> list[Path]:
    """Record the spliced *source* as the new ``src_sum`` of each sibling."""
    if not siblings:
        return []
    new_sum = checksum.checksum_text(strip_markers(read_text(source)), cfg.checksum.algorithm)
    for other in siblings:
        meta.amend_field(other, "src_sum", new_sum)
    return siblings


def insert(
    working: Path,
    source: Path,
    cfg: FuncConfig,
    confirm: ConfirmFn | None = None,
    root: Path | None = None,
) -> InsertResult:
    """Splice *working* into *source* at its marker.

    Args:
        working: Path to the ``.edit.sh`` working copy.
        source: Shell file holding the ``# FUNC_INSERT`` marker.
        cfg: Loaded config; ``safety.safe_mode`` and ``flags`` drive the guard.
        confirm: Asked before amending a relocated source path. Without it,
            only ``flags.yes`` confirms.
        root: Directory relative marker paths resolve against (default CWD).

    Raises:
        WorkingCopyNotFound, MarkerNotFound, DuplicateMarker, SafetyAbort,
        BackupConflict, FilesystemError
    """
    root = root if root is not None else Path.cwd()
    if not working.is_file():
        raise WorkingCopyNotFound(working)

    text = read_text(source)
    hits = find_marker_lines(text.splitlines(), working, root)
    if not hits:
        raise MarkerNotFound(source, f"{MARKER_TAG} {working}")
    if len(hits) > 1:
        raise DuplicateMarker(source, [i + 1 for i in hits])
    marker_idx = hits[0]

    relocated = False
    if cfg.safety.safe_mode:
        relocated = check_consistency(working, source, cfg, confirm)

    siblings = _consistent_siblings(working, source, text)
    backup, rotated = take_backup(source, cfg)

    _, body = meta.split_artifact(read_text(working))
    write_atomic(source, splice(text, marker_idx, body))
    refreshed = _refresh_siblings(siblings, source, cfg)

    return InsertResult(
        source=source,
        working=working,
        marker_line=marker_idx + 1,
        inserted_lines=len(body.splitlines()),
        backup=backup,
        rotated=rotated,
        relocated=relocated,
        backups=backup_chain(source),
        refreshed=refreshed,
    )
