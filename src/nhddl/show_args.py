"""show_args.py – Show the resolved launch arguments of a title.

Loads ``global.yaml`` and the title's config, merges them the same way a
launch does, and prints the compat modes, the argument list and the argv
Neutrino would receive.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nhddl.arguments import ArgumentList
from nhddl.cli import JsonOption, RootOption, TitleIdOption, error_exit, get_config, json_print, make_title
from nhddl.compat import COMPAT_MODE_MAP
from nhddl.errors import PathTooLongError
from nhddl.launcher import build_launch_arguments
from nhddl.title_config import load_launch_arguments

app = typer.Typer(
    help="Show merged launch arguments and the resulting argv.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

nhddl args mass0:/DVD/Game.iso --id SLUS_200.02

nhddl args mass0:/DVD/Game.iso --id SLUS_200.02 --json

[dim]Arguments marked (g) come from global.yaml on the storage device.[/dim]""",
)


def render_arguments(console: Console, arguments: ArgumentList) -> None:
    """Print compat modes and the remaining arguments as Rich tables."""
    modes = arguments.compat_modes()
    compat = Table(title="Compatibility modes", show_header=False)
    compat.add_column("on", width=3)
    compat.add_column("code")
    compat.add_column("mode")
    for entry in COMPAT_MODE_MAP:
        compat.add_row("x" if modes & entry.mode else "o", entry.code, entry.name)
    console.print(compat)

    table = Table(title="Launch arguments")
    table.add_column("", width=3)
    table.add_column("Argument")
    table.add_column("Value")
    for arg in arguments:
        if arg.is_compat:
            continue
        flag = "[ ]" if arg.disabled else "[x]"
        name = f"(g) {arg.name}" if arg.is_global_origin else arg.name
        table.add_row(escape(flag), escape(name), escape(arg.value))
    console.print(table)


@app.callback(invoke_without_command=True)
def main(
    title_path: str = typer.Argument(..., help="Device path of the ISO, e.g. mass0:/DVD/Game.iso"),
    title_id: str = TitleIdOption,
    root: Path | None = RootOption,
    json_output: bool = JsonOption,
) -> None:
    """Show the merged arguments for a title."""
    cfg = get_config(root, json_output)
    title = make_title(title_path, title_id)
    try:
        arguments = load_launch_arguments(cfg, title)
        argv = build_launch_arguments(cfg, title, arguments).flatten()
    except PathTooLongError as exc:
        error_exit(str(exc), json_mode=json_output)
    arguments.ensure_compat_mode()

    if json_output:
        json_print(
            {
                "title": title.id,
                "compat_modes": arguments.compat_modes(),
                "arguments": arguments.to_dict(),
                "argv": argv,
            }
        )
        return

    console = Console(stderr=True)
    render_arguments(console, arguments)
    for token in argv:
        typer.echo(token)


def main_entry() -> None:
    """Run the args CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
