"""funcsplice CLI entry point (installed as ``func``)."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from funcsplice.cli.common import console
from funcsplice.cli.inspect import (
    check_cmd,
    extract_cmd,
    find_cmd,
    flag_cmd,
    ls_cmd,
    meta_cmd,
    point_cmd,
    spy_cmd,
    where_cmd,
)
from funcsplice.cli.workflow import clean_cmd, copy_cmd, done_cmd, insert_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("funcsplice")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"func {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="func",
    help=(
        "Extract, edit and re-splice shell functions.\n\n"
        "  func copy    Stage a function as a reference + working copy.\n"
        "  func insert  Splice the edited working copy back at its FUNC_INSERT marker."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress informational messages (same as QUIET_MODE=1)."),
    ] = False,
) -> None:
    """Extract, edit and re-splice shell functions."""
    console.quiet = quiet


app.command("copy")(copy_cmd)
app.command("insert")(insert_cmd)
app.command("done")(done_cmd)
app.command("clean")(clean_cmd)
app.command("spy")(spy_cmd)
app.command("extract")(extract_cmd)
app.command("check")(check_cmd)
app.command("meta")(meta_cmd)
app.command("flag")(flag_cmd)
app.command("point")(point_cmd)
app.command("where")(where_cmd)
app.command("ls")(ls_cmd)
app.command("find")(find_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed funcsplice version."""
    typer.echo(f"func {_installed_version()}")


if __name__ == "__main__":
    app()
