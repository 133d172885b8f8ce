"""launcher.py – Turn a title into a Neutrino argv and record the launch.

Order of operations for a launch:

1. resolve the merged argument list (unless the editor already has one);
2. append ``bsd`` (block device backend) and ``dvd`` (ISO path);
3. flatten into argv tokens;
4. remember the title in ``lastTitle.txt`` and the console history file;
5. hand the argv to the external loader.

Failures in step 4 are reported and never block the launch.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from rich.console import Console

from nhddl.arguments import Argument, ArgumentList
from nhddl.config import LauncherConfig
from nhddl.errors import NotFoundError, StorageIOError
from nhddl.history import CardResult, HistoryStore, detect_region
from nhddl.title_config import Title, load_launch_arguments, update_last_launched_title

console = Console(stderr=True, highlight=False)

NEUTRINO_ELF = "neutrino.elf"
BSD_ARG = "bsd"
ISO_ARG = "dvd"

# Receives the title and the final argv; stands in for the ELF loader
Handoff = Callable[[Title, list[str]], None]


@dataclass
class LaunchResult:
    """Everything that happened while preparing a launch."""

    title: Title
    argv: list[str]
    neutrino_path: str
    last_title_saved: bool = False
    history: list[CardResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "title": {"id": self.title.id, "name": self.title.name, "path": self.title.full_path},
            "neutrino": self.neutrino_path,
            "argv": self.argv,
            "last_title_saved": self.last_title_saved,
            "history": [r.to_dict() for r in self.history],
        }


def neutrino_path(cfg: LauncherConfig) -> str:
    return cfg.elf_dir.rstrip("/") + "/" + NEUTRINO_ELF


def build_launch_arguments(cfg: LauncherConfig, title: Title, arguments: ArgumentList) -> ArgumentList:
    """Return a copy of *arguments* with the ``bsd`` and ``dvd`` arguments added."""
    result = arguments.copy()
    result.append(Argument(BSD_ARG, cfg.mode.value))
    result.append(Argument(ISO_ARG, title.full_path))
    return result


def make_history_store(
    cfg: LauncherConfig,
    rng: random.Random | None = None,
    today: Callable[[], date] | None = None,
) -> HistoryStore:
    """Build the history store for *cfg*.

    Raises ``NotFoundError`` when no region is configured and ROMVER cannot
    be read.
    """
    region = cfg.region or detect_region(cfg.devices)
    store = HistoryStore(
        devices=cfg.devices,
        region=region,
        cards=cfg.memory_cards,
        capacity=cfg.history_capacity,
        wear_slots=cfg.wear_slots,
    )
    if rng is not None:
        store.rng = rng
    if today is not None:
        store.today = today
    return store


def record_launch(cfg: LauncherConfig, title_id: str, store: HistoryStore | None = None) -> list[CardResult]:
    """Add *title_id* to the history file on both memory cards.

    Returns an empty list when the history location cannot be determined or
    the title ID is empty.
    """
    try:
        store = store or make_history_store(cfg)
    except NotFoundError as exc:
        console.print(f"WARN: Skipping history update: {exc}")
        return []
    try:
        return store.record_launch(title_id)
    except ValueError as exc:
        console.print(f"WARN: Skipping history update: {exc}")
        return []


def launch_title(
    cfg: LauncherConfig,
    title: Title,
    arguments: ArgumentList | None = None,
    *,
    handoff: Handoff | None = None,
    store: HistoryStore | None = None,
) -> LaunchResult:
    """Prepare and (optionally) hand off the launch of *title*."""
    if arguments is None:
        arguments = load_launch_arguments(cfg, title)

    argv = build_launch_arguments(cfg, title, arguments).flatten()
    result = LaunchResult(title=title, argv=argv, neutrino_path=neutrino_path(cfg))

    console.print(f"Launching {title.name} ({title.id}) with arguments:")
    for i, token in enumerate(argv, 1):
        console.print(f"{i}: {token}")

    try:
        update_last_launched_title(cfg, title.full_path)
        result.last_title_saved = True
    except StorageIOError as exc:
        console.print(f"ERROR: Failed to update last launched title: {exc}")

    result.history = record_launch(cfg, title.id, store)

    if handoff is not None:
        handoff(title, argv)
    return result
