"""Tests for atomic writes and checked file operations."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from funcsplice.core.errors import FilesystemError
from funcsplice.core.fileops import (
    copy_file,
    move_file,
    read_text,
    remove_file,
    remove_tree,
    write_atomic,
)


def test_write_atomic_creates_parents(tmp_path: Path):
    target = tmp_path / "a" / "b" / "out.sh"
    write_atomic(target, "echo hi\n")
    assert target.read_text(encoding="utf-8") == "echo hi\n"


def test_write_atomic_leaves_no_temp_files(tmp_path: Path):
    target = tmp_path / "out.sh"
    write_atomic(target, "one\n")
    write_atomic(target, "two\n")
    assert [p.name for p in tmp_path.iterdir()] == ["out.sh"]
    assert target.read_text(encoding="utf-8") == "two\n"


def test_write_atomic_keeps_mode(tmp_path: Path):
    target = tmp_path / "run.sh"
    target.write_text("old\n", encoding="utf-8")
    os.chmod(target, 0o755)
    write_atomic(target, "new\n")
    assert stat.S_IMODE(target.stat().st_mode) == 0o755


@pytest.mark.parametrize(("mask", "expected"), [(0o022, 0o644), (0o077, 0o600), (0o002, 0o664)])
def test_write_atomic_new_file_follows_umask(tmp_path: Path, mask: int, expected: int):
    old = os.umask(mask)
    try:
        target = tmp_path / "new.sh"
        write_atomic(target, "x\n")
    finally:
        os.umask(old)
    assert stat.S_IMODE(target.stat().st_mode) == expected


def test_read_then_write_keeps_non_utf8_bytes(tmp_path: Path):
    raw = b"# caf\xe9\ngreet() {\n  echo \xff\xfe\n}\n"
    source = tmp_path / "latin1.sh"
    source.write_bytes(raw)
    copy = tmp_path / "copy.sh"
    write_atomic(copy, read_text(source))
    assert copy.read_bytes() == raw


def test_read_text_preserves_crlf(tmp_path: Path):
    target = tmp_path / "win.sh"
    target.write_bytes(b"a\r\nb\r\n")
    assert read_text(target) == "a\r\nb\r\n"


def test_read_text_missing_wraps_oserror(tmp_path: Path):
    with pytest.raises(FilesystemError) as exc_info:
        read_text(tmp_path / "missing.sh")
    assert exc_info.value.operation == "read"
    assert isinstance(exc_info.value.cause, OSError)


def test_copy_and_move(tmp_path: Path):
    src = tmp_path / "app.sh"
    src.write_text("x\n", encoding="utf-8")
    copy_file(src, tmp_path / "app.sh.orig")
    move_file(tmp_path / "app.sh.orig", tmp_path / "app.sh.orig.0")
    assert (tmp_path / "app.sh.orig.0").read_text(encoding="utf-8") == "x\n"
    assert not (tmp_path / "app.sh.orig").exists()


def test_move_missing_raises(tmp_path: Path):
    with pytest.raises(FilesystemError):
        move_file(tmp_path / "nope", tmp_path / "dest")


def test_remove_file_reports_absence(tmp_path: Path):
    target = tmp_path / "f"
    target.write_text("", encoding="utf-8")
    assert remove_file(target) is True
    assert remove_file(target) is False


def test_remove_tree(tmp_path: Path):
    d = tmp_path / "func"
    (d / "nested").mkdir(parents=True)
    (d / "nested" / "x.sh").write_text("", encoding="utf-8")
    assert remove_tree(d) is True
    assert not d.exists()
    assert remove_tree(d) is False
