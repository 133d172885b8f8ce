"""edit.py – Non-interactive title options editor.

Mirrors the title options screen: compat modes and arguments can be toggled,
then the result is either shown or saved to ``<title name>.yaml``.  Toggling
a global argument off and saving writes a ``$name:`` marker, which is the
only way to switch off a global default for one title.
"""

from pathlib import Path

import typer
from rich.console import Console

from nhddl.cli import JsonOption, RootOption, TitleIdOption, error_exit, get_config, json_print, make_title
from nhddl.compat import mode_for_code
from nhddl.errors import PathTooLongError, StorageIOError
from nhddl.show_args import render_arguments
from nhddl.title_config import load_launch_arguments, save_title_arguments

app = typer.Typer(
    help="Toggle compat modes and arguments of a title, optionally saving them.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

nhddl edit mass0:/DVD/Game.iso --id SLUS_200.02 --mode 1 --mode 3 --save

nhddl edit mass0:/DVD/Game.iso --id SLUS_200.02 --toggle mt --save

[dim]Without --save the edited list is only displayed.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    title_path: str = typer.Argument(..., help="Device path of the ISO"),
    title_id: str = TitleIdOption,
    toggle: list[str] = typer.Option([], "--toggle", help="Argument name to enable/disable"),
    modes: list[str] = typer.Option([], "--mode", "-m", help="Compat mode code to toggle"),
    save: bool = typer.Option(False, "--save", help="Write the title config file"),
    root: Path | None = RootOption,
    json_output: bool = JsonOption,
) -> None:
    """Edit the launch options of a title."""
    cfg = get_config(root, json_output)
    title = make_title(title_path, title_id)
    try:
        arguments = load_launch_arguments(cfg, title)
    except PathTooLongError as exc:
        error_exit(str(exc), json_mode=json_output)
    arguments.ensure_compat_mode()

    if modes:
        mask = arguments.compat_modes()
        for code in modes:
            entry = mode_for_code(code)
            if entry is None:
                error_exit(f"Unknown compat mode {code!r}", json_mode=json_output)
            mask ^= entry.mode
        arguments.set_compat_modes(mask)

    for name in toggle:
        arg = arguments.get(name)
        if arg is None or arg.is_compat:
            error_exit(f"No argument named {name!r}", json_mode=json_output)
        arguments.toggle(name)

    saved_path = None
    if save:
        try:
            saved_path = save_title_arguments(cfg, title, arguments)
        except (StorageIOError, PathTooLongError) as exc:
            error_exit(str(exc), json_mode=json_output)

    if json_output:
        json_print(
            {
                "title": title.id,
                "compat_modes": arguments.compat_modes(),
                "arguments": arguments.to_dict(),
                "saved": str(saved_path) if saved_path is not None else None,
            }
        )
        return

    render_arguments(Console(stderr=True), arguments)
    if saved_path is not None:
        typer.secho(f"Saved {saved_path}", fg=typer.colors.GREEN)


def main_entry() -> None:
    """Run the edit CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
