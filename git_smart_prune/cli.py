"""CLI interface using Typer."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from . import render
from .config import configure_logging, load_config
from .engine import CleanupEngine
from .exceptions import PruneError
from .git import GitClient, require_git

app = typer.Typer(
    help="Remove local git branches that are already merged into main",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.command()
def main(
    path: Annotated[
        Path,
        typer.Option("--path", "-p", help="Path to a repository or a directory containing repositories"),
    ],
    protected_branch: Annotated[
        Optional[list[str]],
        typer.Option(
            "--protected-branch",
            "-b",
            help="Branch that must never be deleted (repeatable, e.g. -b develop -b release)",
        ),
    ] = None,
    concurrency: Annotated[
        Optional[int],
        typer.Option("--concurrency", "-c", help="How many repositories to process at once [default: 1]"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Report the branches that would be deleted without deleting them"),
    ] = False,
    squashed: Annotated[
        bool,
        typer.Option("--squashed", help="Also delete branches that were squash-merged into main (best effort)"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging, including every git command"),
    ] = False,
) -> None:
    """Prune merged branches in one repository or every repository under a directory.

    Examples:

        git-smart-prune -p ~/src

        git-smart-prune -p ~/src -c 4 -b develop --dry-run
    """
    configure_logging(verbose, render.console)
    try:
        require_git()
        config = load_config(
            path,
            protected=protected_branch or [],
            concurrency=concurrency,
            dry_run=dry_run,
            include_squashed=squashed,
        )
    except PruneError as err:
        _fail(str(err))

    view = render.LiveView(dry_run=config.dry_run)
    engine = CleanupEngine(config, GitClient(), on_update=view.update)
    try:
        with view:
            snapshot = engine.run()
    except KeyboardInterrupt:
        engine.cancel()
        typer.secho("Cancelled.", err=True, fg=typer.colors.YELLOW)
        raise typer.Exit(130)

    if snapshot.error is not None:
        _fail(str(snapshot.error))
    render.print_summary(snapshot, dry_run=config.dry_run)


def _fail(message: str, code: int = 1) -> None:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code)


if __name__ == "__main__":
    app()
