"""Tests for func copy / insert / done / clean."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from funcsplice.cli.main import app

runner = CliRunner()

_MARKER = "# FUNC_INSERT ./func/greet_v2.edit.sh"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _copy(*extra: str):
    return runner.invoke(app, ["copy", "greet", "app.sh", *extra])


def _stage_edit_flag(workdir: Path) -> Path:
    """copy greet, change its body, place the marker; return the working copy."""
    assert _copy().exit_code == 0
    working = workdir / "func" / "greet_v2.edit.sh"
    working.write_text(working.read_text(encoding="utf-8").replace("hello", "hi"), encoding="utf-8")
    assert runner.invoke(app, ["flag", "greet", "greet_v2", "app.sh"]).exit_code == 0
    return working


# ---------------------------------------------------------------------------
# copy
# ---------------------------------------------------------------------------


def test_copy_creates_pair(workdir: Path, app_sh: Path) -> None:
    result = _copy()

    assert result.exit_code == 0, result.output
    assert "Created reference file: './func/greet.orig.sh'" in result.output
    assert "Created working file:   './func/greet_v2.edit.sh'" in result.output
    assert _MARKER in result.output
    assert (workdir / "func" / "greet.orig.sh").is_file()
    assert (workdir / "func" / "greet_v2.edit.sh").is_file()


def test_copy_alias(workdir: Path, app_sh: Path) -> None:
    result = _copy("--alias", "hello")
    assert result.exit_code == 0
    assert (workdir / "func" / "hello.edit.sh").is_file()


def test_copy_missing_function(workdir: Path, app_sh: Path) -> None:
    result = runner.invoke(app, ["copy", "nope", "app.sh"])
    assert result.exit_code == 1
    assert "Function 'nope' not found" in result.output
    assert "func ls" in result.output
    assert not (workdir / "func").exists()


def test_copy_conflict_then_force(workdir: Path, app_sh: Path) -> None:
    assert _copy("--alias", "g").exit_code == 0

    again = _copy("--alias", "g")
    assert again.exit_code == 1
    assert "already exist" in again.output
    assert "--force" in again.output

    forced = _copy("--alias", "g", "--force")
    assert forced.exit_code == 0


def test_copy_rejects_non_shell_source(workdir: Path) -> None:
    (workdir / "notes.txt").write_text("greet() {\n}\n", encoding="utf-8")
    result = runner.invoke(app, ["copy", "greet", "notes.txt"])
    assert result.exit_code == 1
    assert "valid shell script" in result.output


def test_copy_missing_source_file(workdir: Path) -> None:
    result = runner.invoke(app, ["copy", "greet", "missing.sh"])
    assert result.exit_code == 1
    assert "Source file not found" in result.output
    assert "valid shell script" not in result.output


def test_missing_source_file_with_bash_flag(workdir: Path) -> None:
    result = runner.invoke(app, ["spy", "greet", "missing.sh", "--bash"])
    assert result.exit_code == 1
    assert "Source file not found" in result.output


def test_copy_bash_flag_overrides_sniffing(workdir: Path) -> None:
    (workdir / "notes.txt").write_text("greet() {\n  :\n}\n", encoding="utf-8")
    result = runner.invoke(app, ["copy", "greet", "notes.txt", "--bash"])
    assert result.exit_code == 0, result.output


def test_copy_quiet(workdir: Path, app_sh: Path) -> None:
    result = runner.invoke(app, ["--quiet", "copy", "greet", "app.sh"])
    assert result.exit_code == 0
    assert "Created" not in result.output


def test_copy_quiet_mode_env(workdir: Path, app_sh: Path) -> None:
    result = runner.invoke(app, ["copy", "greet", "app.sh"], env={"QUIET_MODE": "1"})
    assert result.exit_code == 0
    assert "Created" not in result.output


def test_quiet_does_not_hide_errors(workdir: Path, app_sh: Path) -> None:
    result = runner.invoke(app, ["-q", "copy", "nope", "app.sh"])
    assert result.exit_code == 1
    assert "not found" in result.output


# ---------------------------------------------------------------------------
# insert
# ---------------------------------------------------------------------------


def test_insert_happy_path(workdir: Path, app_sh: Path) -> None:
    _stage_edit_flag(workdir)

    result = runner.invoke(app, ["insert", "greet_v2", "app.sh"])

    assert result.exit_code == 0, result.output
    assert "Successfully inserted 'greet_v2' into 'app.sh' at line 4." in result.output
    assert "Created backup" in result.output
    text = app_sh.read_text(encoding="utf-8")
    assert 'greet_v2() {\n    echo "hi $1"\n}\n' in text
    assert _MARKER not in text
    assert (workdir / "app.sh.orig").is_file()


def test_insert_one_line_function_with_hand_placed_marker(workdir: Path) -> None:
    src = workdir / "app.sh"
    original = "#!/bin/bash\ngreet() { echo hi; }\n"
    src.write_text(original, encoding="utf-8")
    assert runner.invoke(app, ["copy", "greet", "app.sh"]).exit_code == 0

    working = workdir / "func" / "greet_v2.edit.sh"
    header, _, _ = working.read_text(encoding="utf-8").partition("\n")
    working.write_text(f"{header}\ngreet_v2() {{ echo hello; }}\n", encoding="utf-8")
    with_marker = original + _MARKER + "\n"
    src.write_text(with_marker, encoding="utf-8")

    result = runner.invoke(app, ["insert", "greet_v2", "app.sh"])

    assert result.exit_code == 0, result.output
    assert "at line 3." in result.output
    assert src.read_text(encoding="utf-8") == original + "greet_v2() { echo hello; }\n"
    assert (workdir / "app.sh.orig").read_text(encoding="utf-8") == with_marker


def test_non_utf8_source_round_trips(workdir: Path) -> None:
    src = workdir / "app.sh"
    src.write_bytes(b"#!/bin/bash\n# caf\xe9\ngreet() {\n  echo caf\xe9\n}\n")

    copied = runner.invoke(app, ["copy", "greet", "app.sh"])
    assert copied.exit_code == 0, copied.output
    reference = (workdir / "func" / "greet.orig.sh").read_bytes()
    assert reference.endswith(b"greet() {\n  echo caf\xe9\n}\n")
    assert runner.invoke(app, ["check", "greet"]).exit_code == 1

    spied = runner.invoke(app, ["spy", "greet", "app.sh"])
    assert b"echo caf\xe9" in spied.stdout_bytes

    assert runner.invoke(app, ["flag", "greet", "greet_v2", "app.sh"]).exit_code == 0
    inserted = runner.invoke(app, ["insert", "greet_v2", "app.sh"])
    assert inserted.exit_code == 0, inserted.output
    assert src.read_bytes() == (
        b"#!/bin/bash\n# caf\xe9\ngreet_v2() {\n  echo caf\xe9\n}\ngreet() {\n  echo caf\xe9\n}\n"
    )


def test_insert_accepts_working_copy_path(workdir: Path, app_sh: Path) -> None:
    _stage_edit_flag(workdir)
    result = runner.invoke(app, ["insert", "./func/greet_v2.edit.sh", "app.sh"])
    assert result.exit_code == 0, result.output


def test_insert_missing_marker(workdir: Path, app_sh: Path) -> None:
    assert _copy().exit_code == 0
    result = runner.invoke(app, ["insert", "greet_v2", "app.sh"])
    assert result.exit_code == 1
    assert "marker not found" in result.output
    assert "func flag" in result.output


def test_insert_missing_working_copy(workdir: Path, app_sh: Path) -> None:
    result = runner.invoke(app, ["insert", "ghost_v2", "app.sh"])
    assert result.exit_code == 1
    assert "func copy" in result.output


def test_insert_safety_abort(workdir: Path, app_sh: Path) -> None:
    _stage_edit_flag(workdir)
    app_sh.write_text(app_sh.read_text(encoding="utf-8") + "echo extra\n", encoding="utf-8")
    before = app_sh.read_text(encoding="utf-8")

    result = runner.invoke(app, ["insert", "greet_v2", "app.sh"])

    assert result.exit_code == 1
    assert "SAFE_MODE" in result.output
    assert app_sh.read_text(encoding="utf-8") == before
    assert not (workdir / "app.sh.orig").exists()


@pytest.mark.parametrize(
    ("args", "env"),
    [
        (["--unsafe"], None),
        ([], {"SAFE_MODE": "0"}),
    ],
)
def test_insert_safety_disabled(workdir: Path, app_sh: Path, args: list[str], env: dict | None) -> None:
    _stage_edit_flag(workdir)
    app_sh.write_text(app_sh.read_text(encoding="utf-8") + "echo extra\n", encoding="utf-8")

    result = runner.invoke(app, ["insert", "greet_v2", "app.sh", *args], env=env)

    assert result.exit_code == 0, result.output
    assert "greet_v2() {" in app_sh.read_text(encoding="utf-8")


def test_insert_existing_backup_conflict(workdir: Path, app_sh: Path) -> None:
    _stage_edit_flag(workdir)
    (workdir / "app.sh.orig").write_text("old\n", encoding="utf-8")

    result = runner.invoke(app, ["insert", "greet_v2", "app.sh"])

    assert result.exit_code == 1
    assert "--yes" in result.output
    assert "--force" in result.output


def test_insert_yes_keeps_existing_backup(workdir: Path, app_sh: Path) -> None:
    _stage_edit_flag(workdir)
    (workdir / "app.sh.orig").write_text("old\n", encoding="utf-8")

    result = runner.invoke(app, ["insert", "greet_v2", "app.sh", "--yes"])

    assert result.exit_code == 0, result.output
    assert "no new backup" in result.output
    assert (workdir / "app.sh.orig").read_text(encoding="utf-8") == "old\n"


def test_insert_force_rotates_backup(workdir: Path, app_sh: Path) -> None:
    _stage_edit_flag(workdir)
    (workdir / "app.sh.orig").write_text("old\n", encoding="utf-8")

    result = runner.invoke(app, ["insert", "greet_v2", "app.sh", "--force"])

    assert result.exit_code == 0, result.output
    assert "Rotated backup" in result.output
    assert (workdir / "app.sh.orig.0").read_text(encoding="utf-8") == "old\n"


def test_insert_relocated_source_prompt(workdir: Path, app_sh: Path) -> None:
    assert _copy().exit_code == 0
    app_sh.rename(workdir / "moved.sh")
    assert runner.invoke(app, ["flag", "greet", "greet_v2", "moved.sh"]).exit_code == 0

    declined = runner.invoke(app, ["insert", "greet_v2", "moved.sh"], input="n\n")
    assert declined.exit_code == 1
    assert "Source path mismatch" in declined.output

    accepted = runner.invoke(app, ["insert", "greet_v2", "moved.sh"], input="y\n")
    assert accepted.exit_code == 0, accepted.output
    assert "Updated src" in accepted.output


# ---------------------------------------------------------------------------
# done
# ---------------------------------------------------------------------------


def test_done_removes_pair(workdir: Path, app_sh: Path) -> None:
    assert _copy().exit_code == 0

    result = runner.invoke(app, ["done", "greet"])

    assert result.exit_code == 0
    assert "Removed: ./func/greet.orig.sh" in result.output
    assert "Removed: ./func/greet_v2.edit.sh" in result.output
    assert list((workdir / "func").iterdir()) == []


def test_done_nothing_staged(workdir: Path) -> None:
    result = runner.invoke(app, ["done", "greet"])
    assert result.exit_code == 1
    assert "not found" in result.output


# ---------------------------------------------------------------------------
# clean
# ---------------------------------------------------------------------------


def test_clean_archives_backups(workdir: Path, app_sh: Path) -> None:
    (workdir / "app.sh.orig").write_text("b\n", encoding="utf-8")
    (workdir / "app.sh.orig.0").write_text("a\n", encoding="utf-8")

    result = runner.invoke(app, ["clean"])

    assert result.exit_code == 0
    assert "Archived 2 backups to ./orig/" in result.output
    assert (workdir / "orig" / "app.sh.orig").is_file()
    assert (workdir / "orig" / "app.sh.orig.0").is_file()


def test_clean_nothing_to_archive(workdir: Path) -> None:
    result = runner.invoke(app, ["clean"])
    assert result.exit_code == 0
    assert "No backup files found" in result.output


def test_clean_force_cancelled(workdir: Path, app_sh: Path) -> None:
    assert _copy().exit_code == 0

    result = runner.invoke(app, ["clean", "--force"], input="n\n")

    assert result.exit_code == 0
    assert "cancelled" in result.output
    assert (workdir / "func").is_dir()


def test_clean_force_yes(workdir: Path, app_sh: Path) -> None:
    assert _copy().exit_code == 0
    (workdir / "app.sh.orig").write_text("b\n", encoding="utf-8")

    result = runner.invoke(app, ["clean", "--force", "--yes"])

    assert result.exit_code == 0
    assert "All artifacts removed" in result.output
    assert not (workdir / "func").exists()
    assert not (workdir / "app.sh.orig").exists()
    assert app_sh.is_file()
