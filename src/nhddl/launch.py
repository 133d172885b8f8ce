"""launch.py – Prepare a title launch from the command line.

Resolves the argv, updates ``lastTitle.txt`` and the history file on both
memory cards, then prints the argv.  Loading Neutrino itself happens outside
nhddl; ``--exec`` runs a host command with the argv appended instead.
"""

import shlex
import subprocess
from pathlib import Path

import typer

from nhddl.cli import JsonOption, RootOption, TitleIdOption, error_exit, get_config, json_print, make_title
from nhddl.errors import PathTooLongError
from nhddl.launcher import launch_title, neutrino_path
from nhddl.title_config import Title

app = typer.Typer(
    help="Resolve arguments, record the launch and hand off to Neutrino.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

nhddl launch mass0:/DVD/Game.iso --id SLUS_200.02

nhddl launch mass0:/DVD/Game.iso --id SLUS_200.02 --exec "ps2client execee host:neutrino.elf"

[dim]History is written to mc0:/mc1: under the region's system data directory.[/dim]""",
)


def _exec_handoff(command: str):
    def _run(title: Title, argv: list[str]) -> None:
        subprocess.run([*shlex.split(command), *argv], check=True)

    return _run


@app.callback(invoke_without_command=True)
def main(
    title_path: str = typer.Argument(..., help="Device path of the ISO"),
    title_id: str = TitleIdOption,
    exec_command: str | None = typer.Option(
        None, "--exec", help="Host command that receives the argv as extra arguments"
    ),
    root: Path | None = RootOption,
    json_output: bool = JsonOption,
) -> None:
    """Launch a title."""
    cfg = get_config(root, json_output)
    title = make_title(title_path, title_id)
    handoff = _exec_handoff(exec_command) if exec_command else None
    try:
        result = launch_title(cfg, title, handoff=handoff)
    except PathTooLongError as exc:
        error_exit(str(exc), json_mode=json_output)
    except (OSError, subprocess.CalledProcessError) as exc:
        error_exit(f"Failed to load {neutrino_path(cfg)}: {exc}", json_mode=json_output)

    if json_output:
        json_print(result.to_dict())
        return

    typer.echo(result.neutrino_path)
    for token in result.argv:
        typer.echo(token)
    for card in result.history:
        color = typer.colors.GREEN if card.status == "updated" else typer.colors.YELLOW
        if card.status == "failed":
            color = typer.colors.RED
        typer.secho(f"history {card.card} {card.status}", fg=color, err=True)


def main_entry() -> None:
    """Run the launch CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
