"""title_config.py – Global and per-title launch argument files.

Every storage device carries a ``/config`` directory:

- ``global.yaml`` holds arguments applied to every title on the device;
- ``<title name>.yaml`` or ``<title id>.yaml`` holds per-title arguments;
- ``lastTitle.txt`` holds the full path of the last launched title.

Title arguments are merged over global ones (see
:meth:`nhddl.arguments.ArgumentList.merge`).  Missing or unreadable files are
never fatal: the launcher falls back to whatever it could load.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from rich.console import Console

from nhddl.arguments import ArgumentList
from nhddl.config import LauncherConfig
from nhddl.errors import NotFoundError, StorageIOError
from nhddl.options_file import dump_title_arguments, load_argument_list
from nhddl.paths import build_config_path, split_device
from nhddl.utils import atomic_write_bytes, atomic_write_text

console = Console(stderr=True, highlight=False)

GLOBAL_OPTIONS_FILE = "global.yaml"
LAST_TITLE_FILE = "lastTitle.txt"
TITLE_CONFIG_SUFFIX = ".yaml"


@dataclass
class Title:
    """A launchable ISO as seen by the console."""

    id: str  # e.g. "SLUS_200.02"
    name: str  # ISO file name without extension
    full_path: str  # device path, e.g. "mass0:/DVD/Game.iso"

    @classmethod
    def from_path(cls, full_path: str, title_id: str) -> Title:
        _, rel = split_device(full_path)
        return cls(id=title_id, name=PurePosixPath(rel).stem, full_path=full_path)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def get_global_arguments(cfg: LauncherConfig) -> ArgumentList:
    """Load ``global.yaml`` from the storage device, flagged as global."""
    path = cfg.devices.resolve(build_config_path(cfg.storage, GLOBAL_OPTIONS_FILE))
    result = load_argument_list(path)
    result.mark_global()
    return result


def find_title_config(cfg: LauncherConfig, title: Title) -> Path | None:
    """Locate the title's config file in its device's config directory.

    A file named after the ISO wins over one named after the title ID.
    Raises ``NotFoundError`` when the config directory does not exist.
    """
    config_dir = cfg.devices.resolve(build_config_path(title.full_path))
    if not config_dir.is_dir():
        raise NotFoundError(f"Can't open {config_dir}")

    by_id: Path | None = None
    for entry in sorted(config_dir.iterdir()):
        if entry.is_dir():
            continue
        if entry.name.startswith(title.name):
            return entry
        if entry.name.startswith(title.id):
            by_id = entry
    return by_id


def get_title_arguments(cfg: LauncherConfig, title: Title) -> ArgumentList:
    """Load the title-specific arguments (empty when there are none)."""
    console.print(f"Looking for title-specific config for {title.name} ({title.id})")
    path = find_title_config(cfg, title)
    if path is None:
        console.print("Title-specific config not found")
        return ArgumentList()

    console.print(f"Loading title-specific config from {path}")
    try:
        return load_argument_list(path)
    except (NotFoundError, StorageIOError) as exc:
        console.print(f"ERROR: Failed to load argument list: {exc}")
        return ArgumentList()


def load_launch_arguments(cfg: LauncherConfig, title: Title) -> ArgumentList:
    """Return title arguments merged over global ones."""
    try:
        global_args = get_global_arguments(cfg)
    except (NotFoundError, StorageIOError) as exc:
        console.print(f"WARN: Failed to load global launch arguments: {exc}")
        global_args = ArgumentList()

    try:
        title_args = get_title_arguments(cfg, title)
    except (NotFoundError, StorageIOError) as exc:
        console.print(f"WARN: Failed to load title arguments: {exc}")
        title_args = ArgumentList()

    if len(title_args) == 0:
        return global_args
    title_args.merge(global_args)
    return title_args


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------


def title_config_path(title: Title) -> str:
    return build_config_path(title.full_path, title.name + TITLE_CONFIG_SUFFIX)


def save_title_arguments(cfg: LauncherConfig, title: Title, arguments: ArgumentList) -> Path:
    """Write *arguments* to ``<config dir>/<title name>.yaml``.

    Enabled global arguments are left out; disabled global ones are written
    as ``$name:`` markers.
    """
    try:
        path = cfg.devices.resolve(title_config_path(title))
        console.print(f"Saving title-specific config to {path}")
        path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_text(path, dump_title_arguments(arguments))
    except OSError as exc:
        raise StorageIOError(f"Failed to save config for {title.name}: {exc}") from exc
    return path


# ---------------------------------------------------------------------------
# Last launched title
# ---------------------------------------------------------------------------


def get_last_launched_title(cfg: LauncherConfig) -> str:
    """Return the path stored in ``lastTitle.txt`` on the storage device."""
    path = cfg.devices.resolve(build_config_path(cfg.storage, LAST_TITLE_FILE))
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise NotFoundError(f"Failed to open last launched title file: {path}") from exc
    except OSError as exc:
        raise StorageIOError(f"Failed to read last launched title: {exc}") from exc
    return data.split(b"\x00", 1)[0].decode("utf-8", errors="replace").strip()


def update_last_launched_title(cfg: LauncherConfig, title_path: str) -> Path:
    """Store *title_path* in ``lastTitle.txt`` on the title's own device."""
    try:
        config_dir = cfg.devices.resolve(build_config_path(title_path))
        if not config_dir.is_dir():
            console.print(f"Creating config directory: {config_dir}")
            config_dir.mkdir(parents=True)
        path = config_dir / LAST_TITLE_FILE
        atomic_write_bytes(path, title_path.encode("utf-8") + b"\x00")
    except OSError as exc:
        raise StorageIOError(f"Failed to write last launched title: {exc}") from exc
    return path
