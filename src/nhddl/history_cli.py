"""nhddl history: Inspect and update the console launch history file.

Usage::

    nhddl history show
    nhddl history show --card mc1: --json
    nhddl history record SLUS_200.02
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from nhddl.cli import JsonOption, RootOption, error_exit, get_config, json_print
from nhddl.config import LauncherConfig
from nhddl.errors import NotFoundError
from nhddl.history import HistoryStore, HistoryTable, LaunchCounter, checked_title_id
from nhddl.launcher import make_history_store, record_launch

app = typer.Typer(
    help="Inspect and update the launch history on the memory cards.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

nhddl history show                 Table of every memory card

nhddl history show --card mc0:     A single card

nhddl history record SLUS_200.02   Count a launch without launching

[dim]Evicted records are appended to history.old next to the history file.[/dim]""",
)


def _store(cfg: LauncherConfig, json_output: bool) -> HistoryStore:
    try:
        return make_history_store(cfg)
    except NotFoundError as exc:
        error_exit(f"{exc} (set the history region in launcher.toml)", json_mode=json_output)


def _render_table(console: Console, card: str, table: HistoryTable, wear_slots: int) -> None:
    view = Table(title=f"History on {card}")
    view.add_column("Slot", justify="right")
    view.add_column("Title ID")
    view.add_column("Launches", justify="right")
    view.add_column("Wear bits")
    view.add_column("Shift", justify="right")
    view.add_column("Counter")
    view.add_column("Date")
    for slot, rec in table.live_records():
        info = rec.to_dict()
        state = LaunchCounter(rec, wear_slots).state.value
        view.add_row(
            str(slot),
            rec.title,
            str(rec.launch_count),
            f"{rec.bitmask:06b}",
            str(rec.shift_amount),
            state,
            str(info["date"]),
        )
    console.print(view)


@app.command()
def show(
    card: str | None = typer.Option(None, "--card", "-c", help="Only this card (mc0: or mc1:)"),
    root: Path | None = RootOption,
    json_output: bool = JsonOption,
) -> None:
    """Show the history table on each memory card."""
    store = _store(get_config(root, json_output), json_output)
    cards = [card] if card is not None else list(store.cards)

    data: dict[str, object] = {}
    console = Console(stderr=True)
    for name in cards:
        if not store.is_present(name):
            data[name] = None
            if not json_output:
                typer.secho(f"{name}: no history directory", fg=typer.colors.YELLOW, err=True)
            continue
        table = store.load(name)
        if json_output:
            data[name] = [dict(rec.to_dict(), slot=slot) for slot, rec in table.live_records()]
        else:
            _render_table(console, name, table, store.wear_slots)

    if json_output:
        json_print({"region": store.region, "cards": data})


@app.command()
def record(
    title_id: str = typer.Argument(..., help="Title ID to count a launch for"),
    root: Path | None = RootOption,
    json_output: bool = JsonOption,
) -> None:
    """Record a launch of TITLE_ID in the history files."""
    try:
        checked_title_id(title_id)
    except ValueError as exc:
        error_exit(str(exc), json_mode=json_output)
    cfg = get_config(root, json_output)
    results = record_launch(cfg, title_id, _store(cfg, json_output))
    if json_output:
        json_print({"title": title_id, "cards": [r.to_dict() for r in results]})
        return
    for res in results:
        line = f"{res.card} {res.status}"
        if res.slot is not None:
            line += f" ({res.action} slot {res.slot})"
        if res.error:
            line += f": {res.error}"
        typer.echo(line)
    if results and all(r.status == "failed" for r in results):
        raise typer.Exit(code=1)
