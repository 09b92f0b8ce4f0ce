"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

import funcsplice.config as config_mod
from funcsplice.cli.common import console
from funcsplice.config import FuncConfig

APP_SH = """#!/usr/bin/env bash
set -e

greet() {
    echo "hello $1"
}

farewell() {
    echo "bye"
}

greet world
"""


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep the user's env vars and global config out of every test."""
    for var in ("SAFE_MODE", "QUIET_MODE", "FUNCSPLICE_WORKSPACE", "FUNCSPLICE_CHECKSUM"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config_mod, "_GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml")
    console.quiet = False
    yield
    console.quiet = False


@pytest.fixture
def workdir(tmp_path, monkeypatch) -> Path:
    """tmp_path as the invocation directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def app_sh(tmp_path) -> Path:
    """Sample shell source: greet() at line 4, farewell() at line 8."""
    path = tmp_path / "app.sh"
    path.write_text(APP_SH, encoding="utf-8")
    return path


@pytest.fixture
def cfg() -> FuncConfig:
    return FuncConfig()
