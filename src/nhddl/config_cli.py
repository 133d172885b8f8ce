"""config_cli.py – Show the resolved launcher configuration."""

from pathlib import Path

import typer

from nhddl.cli import JsonOption, RootOption, get_config, json_print
from nhddl.errors import NotFoundError, StorageIOError
from nhddl.title_config import get_last_launched_title

app = typer.Typer(
    help="Show the launcher settings from launcher.toml and nhddl.yaml.",
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def main(
    root: Path | None = RootOption,
    json_output: bool = JsonOption,
) -> None:
    """Print the effective launcher configuration."""
    cfg = get_config(root, json_output)
    try:
        last_title = get_last_launched_title(cfg)
    except (NotFoundError, StorageIOError):
        last_title = None

    data = cfg.to_dict()
    data["last_title"] = last_title
    if json_output:
        json_print(data)
        return

    for key, value in data.items():
        if isinstance(value, dict):
            typer.echo(f"{key}:")
            for sub_key, sub_value in value.items():
                typer.echo(f"  {sub_key:<8} {sub_value}")
        else:
            typer.echo(f"{key:<17} {value}")
