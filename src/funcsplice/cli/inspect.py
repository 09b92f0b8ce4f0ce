"""Read-mostly helper commands.

  func spy <func> <src>             print a function body
  func extract <func> <src>         write ./func/<func>.extracted.sh
  func check <func>                 exit 0 if the working copy changed, 1 if not
  func meta <file> [--field F]      print a staged file's FUNC_META header
  func flag <func> <new> <src>      place the insert marker above <func>
  func point <new> <src>            line number of the marker for <new>
  func where <func> <src>           line number of <func>'s declaration
  func ls <src>                     list declared functions
  func find <pattern> <src>         list declared functions matching a regex

Data goes to stdout (pipe-friendly); status messages go to stderr.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from funcsplice.cli.common import console, load_cfg, reporting_errors, require_shell_source
from funcsplice.core import meta, scanner
from funcsplice.core.errors import ArtifactNotFound
from funcsplice.core.fileops import read_text
from funcsplice.core.insert import find_marker_lines, flag
from funcsplice.core.workspace import Workspace

_BashOpt = Annotated[
    bool,
    typer.Option("--bash", help="Treat the source as a shell script without sniffing it."),
]


def spy_cmd(
    func: Annotated[str, typer.Argument(help="Function to print.")],
    src: Annotated[Path, typer.Argument(help="Shell source file.")],
    bash: _BashOpt = False,
) -> None:
    """Print a function body to stdout."""
    cfg = load_cfg(bash=bash)
    with reporting_errors():
        require_shell_source(src, cfg)
        body = scanner.extract(func, src)
    # bytes output keeps a non-UTF-8 body byte-for-byte
    typer.echo(body.text.encode("utf-8", "surrogateescape"), nl=False)


def extract_cmd(
    func: Annotated[str, typer.Argument(help="Function to export.")],
    src: Annotated[Path, typer.Argument(help="Shell source file.")],
    bash: _BashOpt = False,
) -> None:
    """Write a standalone copy of a function (no metadata, no pairing)."""
    cfg = load_cfg(bash=bash)
    ws = Workspace(cfg)
    with reporting_errors():
        require_shell_source(src, cfg)
        target = ws.extract(func, src)
    console.print(f"Extracted function to '{escape(ws.display(target))}'")


def check_cmd(
    func: Annotated[str, typer.Argument(help="Original function name that was staged.")],
) -> None:
    """Report whether the working copy differs from its reference (exit 0 = changed)."""
    cfg = load_cfg()
    ws = Workspace(cfg)
    with reporting_errors():
        changed = ws.verify(func)
    if changed:
        console.print("Changes detected.")
        return
    console.print("No changes detected.")
    raise typer.Exit(1)


def meta_cmd(
    file: Annotated[str, typer.Argument(help="File name inside the workspace, e.g. greet.orig.sh.")],
    field: Annotated[
        str | None,
        typer.Option("--field", help="Print only this header field (src, src_sum, orig, edit, orig_sum)."),
    ] = None,
) -> None:
    """Print the FUNC_META header of a staged file."""
    cfg = load_cfg()
    ws = Workspace(cfg)
    path = ws.dir / file

    with reporting_errors():
        header = meta.read_header(path)
        if header is None:
            raise ArtifactNotFound(path, kind="metadata header")

    if field is None:
        typer.echo(header)
        return
    value = meta.decode(header, field)
    if value is None:
        console.print(f"[yellow]Field '{escape(field)}' not present in {escape(file)}.[/]")
        raise typer.Exit(1)
    typer.echo(value)


def flag_cmd(
    func: Annotated[str, typer.Argument(help="Function to place the marker above.")],
    new: Annotated[str, typer.Argument(help="Working name the marker will receive (e.g. greet_v2).")],
    src: Annotated[Path, typer.Argument(help="Shell source file.")],
    bash: _BashOpt = False,
) -> None:
    """Insert a FUNC_INSERT marker for <new> directly above <func>."""
    cfg = load_cfg(bash=bash)
    ws = Workspace(cfg)
    with reporting_errors():
        require_shell_source(src, cfg)
        line = flag(func, new, src, ws)
    console.print(f"Flag for '{escape(new)}' inserted at line {line}.")


def point_cmd(
    new: Annotated[str, typer.Argument(help="Working name (e.g. greet_v2).")],
    src: Annotated[Path, typer.Argument(help="Shell source file.")],
    bash: _BashOpt = False,
) -> None:
    """Print the line number(s) of the marker for <new>, or -1."""
    cfg = load_cfg(bash=bash)
    ws = Workspace(cfg)
    with reporting_errors():
        require_shell_source(src, cfg)
        lines = read_text(src).splitlines()
    hits = find_marker_lines(lines, ws.working_path(new), ws.root)
    if not hits:
        typer.echo("-1")
        return
    for idx in hits:
        typer.echo(str(idx + 1))


def where_cmd(
    func: Annotated[str, typer.Argument(help="Function to locate.")],
    src: Annotated[Path, typer.Argument(help="Shell source file.")],
    bash: _BashOpt = False,
) -> None:
    """Print the declaration line of <func>, or -1."""
    cfg = load_cfg(bash=bash)
    with reporting_errors():
        require_shell_source(src, cfg)
        line = scanner.find_function_line(func, src)
    typer.echo("-1" if line is None else str(line))


def ls_cmd(
    src: Annotated[Path, typer.Argument(help="Shell source file.")],
    bash: _BashOpt = False,
) -> None:
    """List every function declared in <src>."""
    cfg = load_cfg(bash=bash)
    with reporting_errors():
        require_shell_source(src, cfg)
        names = scanner.list_functions(src)
    for name in names:
        typer.echo(name)


def find_cmd(
    pattern: Annotated[str, typer.Argument(help="Regular expression matched against function names.")],
    src: Annotated[Path, typer.Argument(help="Shell source file.")],
    bash: _BashOpt = False,
) -> None:
    """List functions in <src> whose name matches <pattern>."""
    cfg = load_cfg(bash=bash)
    with reporting_errors():
        require_shell_source(src, cfg)
        names = scanner.list_functions(src)
    try:
        rx = re.compile(pattern)
    except re.error:
        rx = re.compile(re.escape(pattern))
    for name in names:
        if rx.search(name):
            typer.echo(name)
