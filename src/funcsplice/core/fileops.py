"""File helpers: atomic writes and checked copy/move/remove.

Every OSError is re-raised as :class:`FilesystemError` naming the operation,
so callers see one failure kind for all I/O.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from funcsplice.core.errors import FilesystemError


def current_umask() -> int:
    """Return the process umask.

    There is no read-only query, so it is set and immediately restored.
    """
    mask = os.umask(0)
    os.umask(mask)
    return mask


def read_text(path: Path) -> str:
    """Read *path* as UTF-8 without newline translation.

    Bytes that are not valid UTF-8 are carried as surrogate escapes and written
    back unchanged by :func:`write_atomic`.
    """
    try:
        with path.open("r", encoding="utf-8", errors="surrogateescape", newline="") as fh:
            return fh.read()
    except OSError as exc:
        raise FilesystemError("read", path, exc) from exc


def read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise FilesystemError("read", path, exc) from exc


def write_atomic(path: Path, content: str) -> None:
    """Write *content* to *path* atomically (temp → rename).

    Creates parent directories if needed. An existing file's permission bits
    are carried over to the replacement; a new file gets ``0o666`` less the
    process umask, as :func:`open` would give it.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        mode = path.stat().st_mode if path.exists() else 0o666 & ~current_umask()
    except OSError as exc:
        raise FilesystemError("write", path, exc) from exc

    # Write to a temp file in the same directory, then rename
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(content)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as exc:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise FilesystemError("write", path, exc) from exc


def copy_file(src: Path, dest: Path) -> None:
    try:
        shutil.copy2(src, dest)
    except OSError as exc:
        raise FilesystemError(f"cp '{src}' to", dest, exc) from exc


def move_file(src: Path, dest: Path) -> None:
    try:
        os.replace(src, dest)
    except OSError as exc:
        raise FilesystemError(f"mv '{src}' to", dest, exc) from exc


def remove_file(path: Path) -> bool:
    """Remove *path*; return False if it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise FilesystemError("rm", path, exc) from exc
    return True


def remove_tree(path: Path) -> bool:
    if not path.exists():
        return False
    try:
        shutil.rmtree(path)
    except OSError as exc:
        raise FilesystemError("rm -rf", path, exc) from exc
    return True
