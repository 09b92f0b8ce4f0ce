"""Shared CLI plumbing: consoles, config loading, error reporting."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console

from funcsplice.cli.errors import render_error
from funcsplice.config import ConfigError, FuncConfig, load_config
from funcsplice.core.errors import FuncError, NotShellSource, SourceNotFound
from funcsplice.core.sniff import is_valid_shell_source

# Informational messages (silenced by --quiet / QUIET_MODE)
console = Console(stderr=True, soft_wrap=True)
# Errors are always shown
err_console = Console(stderr=True, soft_wrap=True)


def load_cfg(**flags: bool) -> FuncConfig:
    """Load config from disk/env and apply this invocation's flags."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        err_console.print(render_error(exc))
        raise typer.Exit(1)
    if cfg.output.quiet:
        console.quiet = True
    return cfg.with_flags(**flags)


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Print any FuncError raised inside the block and exit 1."""
    try:
        yield
    except FuncError as exc:
        err_console.print(render_error(exc))
        raise typer.Exit(1)


def require_shell_source(path: Path, cfg: FuncConfig) -> None:
    if not path.is_file():
        raise SourceNotFound(path)
    if not is_valid_shell_source(path, assume_shell=cfg.flags.bash):
        raise NotShellSource(path)


def confirm(message: str, hint: str = "(Use --yes to skip this prompt)") -> bool:
    return typer.confirm(f"{message} {hint}", default=False)
