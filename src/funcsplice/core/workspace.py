"""Workspace manager: names, writes and removes staged artifacts.

On-disk layout, relative to the invocation directory::

    ./<workspace>/<name>.orig.sh         reference copy (immutable snapshot)
    ./<workspace>/<working>.edit.sh      working copy (edited by the operator)
    ./<workspace>/<name>.extracted.sh    one-shot export, no header, no pairing

The reference and working copy of one extraction carry the same
``# FUNC_META`` header as their first line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from funcsplice.config import FuncConfig
from funcsplice.core import checksum, meta, scanner
from funcsplice.core.errors import (
    AlreadyStaged,
    ArtifactNotFound,
    FilesystemError,
    ReferenceNotFound,
    WorkingCopyNotFound,
)
from funcsplice.core.fileops import move_file, read_bytes, read_text, remove_file, remove_tree, write_atomic
from funcsplice.core.meta import MetadataHeader

MARKER_TAG = "# FUNC_INSERT"

_REFERENCE_SUFFIX = ".orig.sh"
WORKING_SUFFIX = ".edit.sh"
_EXTRACTED_SUFFIX = ".extracted.sh"
_FIRST_VERSION = 2


@dataclass
class StagedPair:
    """Result of a successful ``stage``."""

    reference: Path
    working: Path
    header: MetadataHeader

    @property
    def orig_name(self) -> str:
        return self.header.orig

    @property
    def edit_name(self) -> str:
        return self.header.edit


@dataclass
class CleanResult:
    archived: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    archive_dir: Path | None = None


class Workspace:
    """Staging area for one invocation directory."""

    def __init__(self, cfg: FuncConfig, root: Path | None = None) -> None:
        self.cfg = cfg
        self.root = root if root is not None else Path.cwd()
        self.dir = self.root / cfg.workspace.dir

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def reference_path(self, name: str) -> Path:
        return self.dir / f"{name}{_REFERENCE_SUFFIX}"

    def working_path(self, name: str) -> Path:
        return self.dir / f"{name}{WORKING_SUFFIX}"

    def extracted_path(self, name: str) -> Path:
        return self.dir / f"{name}{_EXTRACTED_SUFFIX}"

    def display(self, path: Path) -> str:
        """Return *path* as ``./relative`` when it lives under the root."""
        try:
            return f"./{path.relative_to(self.root).as_posix()}"
        except ValueError:
            return str(path)

    def marker_for(self, edit_name: str) -> str:
        """The FUNC_INSERT line an operator places to receive *edit_name*."""
        return f"{MARKER_TAG} {self.display(self.working_path(edit_name))}"

    def resolve_working(self, name_or_path: str) -> Path:
        """Accept either a working name (``greet_v2``) or a path to a working copy."""
        if name_or_path.endswith(WORKING_SUFFIX) or "/" in name_or_path:
            p = Path(name_or_path)
            return p if p.is_absolute() else self.root / p
        return self.working_path(name_or_path)

    def next_working_name(self, name: str) -> str:
        """Try ``<name>_v2``, ``<name>_v3``, … for a free working-copy path."""
        version = _FIRST_VERSION
        while self.working_path(f"{name}_v{version}").exists():
            version += 1
        return f"{name}_v{version}"

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def stage(self, name: str, source: Path, alias: str | None = None) -> StagedPair:
        """Stage function *name* from *source* as a reference/working pair.

        Raises:
            FunctionNotFound: *name* is not declared in *source* (or its
                body never closes).
            AlreadyStaged: a target exists and ``flags.force`` is off.
        """
        body = scanner.extract(name, source)

        edit_name = alias or self.next_working_name(name)
        reference = self.reference_path(name)
        working = self.working_path(edit_name)

        existing = [p for p in (reference, working) if p.exists()]
        if existing and not self.cfg.flags.force:
            raise AlreadyStaged(existing)

        write_atomic(reference, body.text)
        write_atomic(working, body.renamed(edit_name).text)

        algo = self.cfg.checksum.algorithm
        header = MetadataHeader(
            src=str(source.resolve()),
            src_sum=checksum.checksum(read_bytes(source), algo),
            orig=name,
            edit=edit_name,
            orig_sum=checksum.checksum_text(body.text, algo),
        )
        line = header.encode()
        meta.prepend(line, reference)
        meta.prepend(line, working)

        return StagedPair(reference=reference, working=working, header=header)

    def extract(self, name: str, source: Path) -> Path:
        """Write a standalone, header-less copy of *name* for inspection."""
        body = scanner.extract(name, source)
        target = self.extracted_path(name)
        write_atomic(target, body.text)
        return target

    def verify(self, name: str) -> bool:
        """Return True if the working copy of *name* differs from its reference.

        The working copy's declaration is renamed back to the original name
        before comparing, so an untouched copy reports no change.

        Raises:
            ReferenceNotFound: no ``<name>.orig.sh``.
            WorkingCopyNotFound: the working copy named in its header is missing.
        """
        reference = self.reference_path(name)
        if not reference.is_file():
            raise ReferenceNotFound(reference)

        ref_header, ref_body = meta.split_artifact(read_text(reference))
        edit_name = MetadataHeader.parse(ref_header).edit if ref_header else None
        if not edit_name:
            raise ArtifactNotFound(reference, kind="metadata header")

        working = self.working_path(edit_name)
        if not working.is_file():
            raise WorkingCopyNotFound(working)

        _, work_body = meta.split_artifact(read_text(working))
        first, nl, rest = work_body.partition("\n")
        restored = first.replace(edit_name, name, 1) + nl + rest

        recorded = checksum.checksum_text(ref_body, self.cfg.checksum.algorithm)
        return not checksum.matches_text(recorded, restored)

    def done(self, name: str) -> list[Path]:
        """Delete the staged artifacts of *name*; return the removed paths.

        Raises:
            ArtifactNotFound: neither a staged pair nor an extracted copy exists.
        """
        reference = self.reference_path(name)
        extracted = self.extracted_path(name)

        if reference.is_file():
            targets = [reference]
            edit_name = meta.decode_field(reference, "edit")
            if edit_name:
                targets.append(self.working_path(edit_name))
            return [p for p in targets if remove_file(p)]

        if extracted.is_file():
            remove_file(extracted)
            return [extracted]

        raise ArtifactNotFound(reference, kind=f"staged files for '{name}'")

    def backups(self) -> list[Path]:
        """Source backups (``*.orig*``) sitting directly in the root."""
        return sorted(p for p in self.root.glob("*.orig*") if p.is_file())

    def clean(self, purge: bool = False) -> CleanResult:
        """Archive backups into the archive dir, or delete everything.

        With *purge*, the workspace directory and every backup are removed.
        Without it, backups are moved to ``<root>/<archive_dir>/`` and staged
        artifacts are left alone.
        """
        result = CleanResult()
        backups = self.backups()

        if purge:
            if remove_tree(self.dir):
                result.removed.append(self.dir)
            for backup in backups:
                if remove_file(backup):
                    result.removed.append(backup)
            return result

        if not backups:
            return result

        archive = self.root / self.cfg.workspace.archive_dir
        try:
            archive.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError("mkdir", archive, exc) from exc
        result.archive_dir = archive
        for backup in backups:
            move_file(backup, archive / backup.name)
            result.archived.append(backup)
        return result
