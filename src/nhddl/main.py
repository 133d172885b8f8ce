"""main.py – Umbrella CLI entry point for nhddl.

Imports every subcommand module from a name table and registers its typer
app, so adding a command only touches the tables below.

Single-command modules are registered as flat ``app.command()`` entries;
only ``history`` has several subcommands and uses ``add_typer()``.
"""

from __future__ import annotations

import importlib
from types import ModuleType

import typer

app = typer.Typer(
    help="Launch configuration and history bookkeeping for Neutrino titles.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Typical workflow:[/bold]
  nhddl config                          Check device mapping and options
  nhddl args  mass0:/DVD/G.iso -i ID    Show merged arguments and argv
  nhddl edit  mass0:/DVD/G.iso -i ID    Toggle options, --save to persist
  nhddl launch mass0:/DVD/G.iso -i ID   Record the launch and print argv
  nhddl history show                    Inspect the memory card history

[dim]Device paths are mapped to host directories in launcher.toml.[/dim]""",
)

# ---------------------------------------------------------------------------
# Subcommand registry
# ---------------------------------------------------------------------------

_SINGLE_COMMANDS: list[tuple[str, str, str]] = [
    ("args", "nhddl.show_args", "Show merged launch arguments and the resulting argv."),
    ("edit", "nhddl.edit", "Toggle compat modes and arguments of a title."),
    ("launch", "nhddl.launch", "Record a launch and hand the argv to Neutrino."),
    ("config", "nhddl.config_cli", "Show the resolved launcher configuration."),
]

_MULTI_COMMANDS: list[tuple[str, str, str]] = [
    ("history", "nhddl.history_cli", "Inspect and update the memory card launch history."),
]


def _epilog_of(module: ModuleType) -> str | None:
    epilog = getattr(module.app.info, "epilog", None)
    return epilog if isinstance(epilog, str) else None


for _name, _module, _help in _SINGLE_COMMANDS:
    _mod = importlib.import_module(_module)
    app.command(name=_name, help=_help, epilog=_epilog_of(_mod))(_mod.main)

for _name, _module, _help in _MULTI_COMMANDS:
    app.add_typer(importlib.import_module(_module).app, name=_name, help=_help)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
