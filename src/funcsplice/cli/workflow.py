"""func copy / insert / done / clean: the staging round-trip.

  func copy greet app.sh          stage greet as ./func/greet.orig.sh + ./func/greet_v2.edit.sh
  (edit ./func/greet_v2.edit.sh, put "# FUNC_INSERT ./func/greet_v2.edit.sh" in app.sh)
  func insert greet_v2 app.sh     splice the edited body in at the marker
  func done greet                 delete the staged pair
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from funcsplice.cli.common import confirm, console, load_cfg, reporting_errors, require_shell_source
from funcsplice.core.insert import insert
from funcsplice.core.workspace import Workspace


def copy_cmd(
    func: Annotated[str, typer.Argument(help="Function to stage.")],
    src: Annotated[Path, typer.Argument(help="Shell source file declaring the function.")],
    alias: Annotated[
        str | None,
        typer.Option("--alias", help="Working name to use instead of <func>_vN."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing staged files."),
    ] = False,
    bash: Annotated[
        bool,
        typer.Option("--bash", help="Treat the source as a shell script without sniffing it."),
    ] = False,
) -> None:
    """Stage a function as a reference copy plus an editable working copy."""
    cfg = load_cfg(force=force, bash=bash)
    ws = Workspace(cfg)

    with reporting_errors():
        require_shell_source(src, cfg)
        pair = ws.stage(func, src, alias=alias)

    console.print(f"Created reference file: '{escape(ws.display(pair.reference))}'")
    console.print(f"Created working file:   '{escape(ws.display(pair.working))}'")
    console.print(f"[dim]  Insert marker:  {escape(ws.marker_for(pair.edit_name))}[/]")


def insert_cmd(
    name: Annotated[
        str,
        typer.Argument(help="Working name (e.g. greet_v2) or path to a .edit.sh file."),
    ],
    src: Annotated[Path, typer.Argument(help="Shell source file holding the FUNC_INSERT marker.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Confirm prompts; proceed without a new backup if one exists."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Version the existing backup (.orig → .orig.0)."),
    ] = False,
    unsafe: Annotated[
        bool,
        typer.Option("--unsafe", help="Skip the source consistency check (same as SAFE_MODE=0)."),
    ] = False,
    bash: Annotated[
        bool,
        typer.Option("--bash", help="Treat the source as a shell script without sniffing it."),
    ] = False,
) -> None:
    """Splice an edited working copy into the source at its FUNC_INSERT marker."""
    cfg = load_cfg(yes=yes, force=force, bash=bash)
    if unsafe:
        cfg = replace(cfg, safety=replace(cfg.safety, safe_mode=False))
    ws = Workspace(cfg)

    with reporting_errors():
        require_shell_source(src, cfg)
        working = ws.resolve_working(name)
        result = insert(working, src, cfg, confirm=confirm, root=ws.root)

    if result.relocated:
        console.print(f"[yellow]⚠[/] Updated src in '{escape(ws.display(working))}' to the current path.")
    for rotated in result.rotated:
        console.print(f"Rotated backup:  '{escape(str(rotated))}'")
    if result.backup is not None:
        console.print(f"Created backup:  '{escape(str(result.backup))}'")
    else:
        console.print("[yellow]⚠[/] Existing backup kept; no new backup created.")
    if len(result.backups) > 1:
        console.print(
            f"[dim]  Backup chain:   {len(result.backups)} snapshots "
            f"(newest: {escape(result.backups[0].name)})[/]"
        )
    for other in result.refreshed:
        console.print(f"[dim]  Updated src_sum in '{escape(ws.display(other))}'[/]")
    console.print(
        f"[green]✓[/] Successfully inserted '{escape(working.stem.removesuffix('.edit'))}' "
        f"into '{escape(str(src))}' at line {result.marker_line}."
    )


def done_cmd(
    func: Annotated[str, typer.Argument(help="Original function name that was staged or extracted.")],
) -> None:
    """Delete the staged files of a function once the round-trip is finished."""
    cfg = load_cfg()
    ws = Workspace(cfg)

    with reporting_errors():
        removed = ws.done(func)

    for path in removed:
        console.print(f"Removed: {escape(ws.display(path))}")


def clean_cmd(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Delete the workspace and all .orig backups instead of archiving."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt."),
    ] = False,
) -> None:
    """Archive .orig backups into ./orig/, or delete everything with --force."""
    cfg = load_cfg(yes=yes, force=force)
    ws = Workspace(cfg)

    if force:
        question = f"Permanently delete {ws.display(ws.dir)}/ and all .orig backups?"
        if not yes and not confirm(question, hint="(Use --yes to skip this prompt)"):
            console.print("[dim]Clean operation cancelled.[/]")
            raise typer.Exit(0)
        with reporting_errors():
            result = ws.clean(purge=True)
        console.print(f"[green]✓[/] All artifacts removed ({len(result.removed)} paths).")
        return

    with reporting_errors():
        result = ws.clean(purge=False)

    if not result.archived:
        console.print("No backup files found to archive.")
        return
    console.print(
        f"[green]✓[/] Archived {len(result.archived)} backups to "
        f"{escape(ws.display(result.archive_dir))}/"
    )
