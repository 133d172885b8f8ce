"""Shared CLI utilities for nhddl commands.

Provides common Typer options, config-loading helpers, and standardised
output / error helpers so that every command gets consistent ``--root``
support, error reporting and JSON output without boilerplate.

Usage in a command module::

    import typer
    from nhddl.cli import RootOption, get_config, error_exit, json_print

    app = typer.Typer()

    @app.callback(invoke_without_command=True)
    def main(root: Path | None = RootOption) -> None:
        cfg = get_config(root)
        ...
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console

from nhddl.config import CONFIG_FILE_NAME, LauncherConfig, load_config
from nhddl.title_config import Title

# Re-usable Typer option for --root
RootOption: Path | None = typer.Option(
    None,
    "--root",
    "-r",
    help="Directory containing launcher.toml (default: search upward from cwd).",
)

TitleIdOption: str = typer.Option(..., "--id", "-i", help="Title ID, e.g. SLUS_200.02.")

JsonOption: bool = typer.Option(False, "--json", help="Output results as JSON")


def get_config(root: Path | None = None, json_mode: bool = False) -> LauncherConfig:
    """Load the launcher config rooted at *root*, exiting on a bad launcher.toml."""
    try:
        return load_config(root)
    except ValueError as exc:
        error_exit(f"Invalid {CONFIG_FILE_NAME}: {exc}", json_mode=json_mode)


def make_title(title_path: str, title_id: str) -> Title:
    """Build a title descriptor from CLI arguments."""
    return Title.from_path(title_path, title_id)


# ---------------------------------------------------------------------------
# Standardised output helpers
# ---------------------------------------------------------------------------

_err_console = Console(stderr=True)


def error_exit(msg: str, *, json_mode: bool = False, code: int = 1) -> NoReturn:
    """Print *msg* as an error and ``raise typer.Exit(code)``."""
    if json_mode:
        print(json.dumps({"error": msg}, indent=2))
    else:
        _err_console.print(f"[red bold]error:[/red bold] {msg}")
    raise typer.Exit(code=code)


def json_print(data: dict[str, Any] | list[Any]) -> None:
    """Print *data* as pretty-printed JSON to stdout."""
    print(json.dumps(data, indent=2))
