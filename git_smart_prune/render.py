"""Rich UI helpers for terminal output."""

from __future__ import annotations

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text
from rich.tree import Tree

from .models import ProcessingState, ProgressRecord, Repository, Snapshot


console = Console()

SYMBOL_CHECK = "✓"
SYMBOL_CROSS = "✗"
SPINNER_NAME = "dots"


def render_header(snapshot: Snapshot, spinner: Spinner, *, dry_run: bool = False) -> RenderableType:
    if not snapshot.loaded:
        if snapshot.error is not None:
            return Text("Unable to load repositories.", style="red")
        return spinner
    if snapshot.total == 0:
        return Text("There are no repositories in this directory.")
    label = "Branches To Delete" if dry_run else "Branches Deleted"
    return Group(
        Text(f"Repositories ({snapshot.processed}/{snapshot.total})", style="bold"),
        Text(f"{label} - {snapshot.deleted_total}", style="dim"),
    )


def render_repository(
    repository: Repository,
    record: ProgressRecord,
    spinner: Spinner | None = None,
) -> Tree:
    """One repository with its removed branches and errors as children."""

    label: RenderableType
    if record.state is ProcessingState.IN_PROGRESS:
        label = spinner or Spinner(SPINNER_NAME, text=repository.name, style="magenta")
    elif record.state is ProcessingState.COMPLETED:
        label = Text.assemble((SYMBOL_CHECK, "green"), "  ", repository.name)
    elif record.state is ProcessingState.FAILED:
        label = Text.assemble((SYMBOL_CROSS, "red"), "  ", repository.name)
    else:
        label = Text.assemble("   ", repository.name)
    tree = Tree(label, guide_style="dim")
    for branch in record.deleted_branches:
        tree.add(Text(branch, style="dim"))
    for error in record.errors:
        tree.add(Text(str(error), style="red"))
    return tree


def render_footer() -> Text:
    return Text("(press Ctrl+C to quit)", style="dim")


class LiveView:
    """Live terminal view fed with snapshots from the aggregator."""

    def __init__(self, *, dry_run: bool = False, target: Console | None = None):
        self.dry_run = dry_run
        self.console = target or console
        self._loading = Spinner(SPINNER_NAME, text="Loading...", style="magenta")
        self._spinners: dict[int, Spinner] = {}
        self._snapshot = Snapshot()
        self._live = Live(
            self.render(self._snapshot),
            console=self.console,
            refresh_per_second=10,
            transient=False,
            vertical_overflow="visible",
        )

    def __enter__(self) -> LiveView:
        self._live.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._live.update(self.render(self._snapshot, show_footer=False))
        self._live.stop()

    def render(self, snapshot: Snapshot, *, show_footer: bool = True) -> RenderableType:
        parts: list[RenderableType] = [render_header(snapshot, self._loading, dry_run=self.dry_run), Text("")]
        for index, (repository, record) in enumerate(snapshot.entries()):
            spinner = None
            if record.state is ProcessingState.IN_PROGRESS:
                spinner = self._spinners.setdefault(
                    index, Spinner(SPINNER_NAME, text=repository.name, style="magenta")
                )
            parts.append(render_repository(repository, record, spinner))
        if show_footer:
            parts.extend([Text(""), render_footer()])
        return Group(*parts)

    def update(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        self._live.update(self.render(snapshot))


def print_summary(snapshot: Snapshot, *, dry_run: bool = False, target: Console | None = None) -> None:
    out = target or console
    if not snapshot.loaded or snapshot.total == 0:
        return
    action = "would be deleted" if dry_run else "deleted"
    if snapshot.failed_count == snapshot.total:
        marker = f"[red]{SYMBOL_CROSS}[/red]"
    else:
        marker = f"[green]{SYMBOL_CHECK}[/green]"
    out.print(
        f"{marker} {snapshot.processed}/{snapshot.total} repositories processed, "
        f"{snapshot.deleted_total} branches {action}"
    )
    if snapshot.failed_count:
        out.print(f"[red]{SYMBOL_CROSS}[/red] {snapshot.failed_count} repositories reported errors")
