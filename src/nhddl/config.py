"""Centralised launcher configuration for nhddl.

Two sources feed a single :class:`LauncherConfig` value that is built once
and passed to every component:

``launcher.toml``
    Host-side deployment settings: where each console device is mounted,
    which device holds the ISO storage, and the history table constants.
    Located by walking up from the current directory; defaults are used
    when there is none.

``nhddl.yaml``
    The launcher options file in the ``key: value`` options format, read
    from ``elf_dir``.  Supplies ``mode``, ``udpbd_ip`` and ``480p``.

Example ``launcher.toml``::

    [devices]
    "mass:" = "/media/usb"
    "mc0:" = "/media/mc0"
    "mc1:" = "/media/mc1"
    "rom0:" = "/media/rom0"

    [launcher]
    elf_dir = "mc0:/APPS/NHDDL"
    storage = "mass:"

    [history]
    region = "A"
    capacity = 21
    wear_slots = 6
"""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich.console import Console

from nhddl.errors import NotFoundError, StorageIOError
from nhddl.history import HISTORY_CAPACITY, MEMORY_CARDS, WEAR_SLOTS, check_table_shape
from nhddl.options_file import load_argument_list
from nhddl.paths import DeviceMap

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

console = Console(stderr=True, highlight=False)

CONFIG_FILE_NAME = "launcher.toml"
OPTIONS_FILE_NAME = "nhddl.yaml"
IPCONFIG_PATH = "/SYS-CONF/IPCONFIG.DAT"

# Supported nhddl.yaml options
OPTION_480P = "480p"
OPTION_MODE = "mode"
OPTION_UDPBD_IP = "udpbd_ip"

# IPv4 dotted quad is at most 15 characters
_IP_MAX_LENGTH = 15


class LaunchMode(enum.Enum):
    """Block device backend passed to Neutrino as ``-bsd``."""

    ATA = "ata"
    MX4SIO = "mx4sio"
    UDPBD = "udpbd"
    USB = "usb"


def parse_mode(value: str) -> LaunchMode:
    """Parse a mode string; anything unknown falls back to ATA."""
    try:
        return LaunchMode(value)
    except ValueError:
        return LaunchMode.ATA


@dataclass
class LauncherConfig:
    """Resolved launcher settings."""

    # Directory holding launcher.toml (None when running on defaults)
    root: Optional[Path] = None

    devices: DeviceMap = field(default_factory=DeviceMap)

    # --- [launcher] ---
    storage: str = "mass:"
    elf_dir: str = "."

    # --- [history] ---
    region: Optional[str] = None
    history_capacity: int = HISTORY_CAPACITY
    wear_slots: int = WEAR_SLOTS
    memory_cards: tuple[str, ...] = MEMORY_CARDS

    # --- nhddl.yaml ---
    mode: LaunchMode = LaunchMode.ATA
    udpbd_ip: str = ""
    video_480p: bool = False

    @property
    def options_path(self) -> Path:
        return self.devices.resolve(self.elf_dir.rstrip("/") + "/" + OPTIONS_FILE_NAME)

    def to_dict(self) -> dict[str, object]:
        return {
            "root": str(self.root) if self.root is not None else None,
            "devices": {k: str(v) for k, v in self.devices.devices.items()},
            "storage": self.storage,
            "elf_dir": self.elf_dir,
            "region": self.region,
            "history_capacity": self.history_capacity,
            "wear_slots": self.wear_slots,
            "memory_cards": list(self.memory_cards),
            "mode": self.mode.value,
            "udpbd_ip": self.udpbd_ip,
            "480p": self.video_480p,
        }


def _resolve(root: Path, rel: str) -> Path:
    """Resolve a path relative to the config root."""
    p = Path(rel)
    if p.is_absolute():
        return p
    return root / p


def _find_root(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from *start* (or cwd) looking for launcher.toml."""
    if start is not None:
        return start
    candidate = Path.cwd().resolve()
    while True:
        if (candidate / CONFIG_FILE_NAME).exists():
            return candidate
        if candidate == candidate.parent:
            return None
        candidate = candidate.parent


def load_config(root: Optional[Path] = None, *, read_options: bool = True) -> LauncherConfig:
    """Build the launcher configuration.

    Args:
        root: Directory containing launcher.toml.  Auto-detected if ``None``.
        read_options: Also apply the launcher options file (nhddl.yaml).

    Raises:
        ValueError: launcher.toml is malformed or its ``[history]`` values are unusable.
    """
    root = _find_root(root)
    cfg = LauncherConfig(root=root)
    if root is not None:
        toml_path = root / CONFIG_FILE_NAME
        if toml_path.exists():
            with open(toml_path, "rb") as f:
                raw = tomllib.load(f)
            _apply_toml(cfg, root, raw)
        if cfg.elf_dir == ".":
            cfg.elf_dir = str(root)

    if read_options:
        load_launcher_options(cfg)
    return cfg


def _apply_toml(cfg: LauncherConfig, root: Path, raw: dict) -> None:
    devices = raw.get("devices", {})
    cfg.devices = DeviceMap({name: _resolve(root, path) for name, path in devices.items()})

    launcher = raw.get("launcher", {})
    cfg.storage = launcher.get("storage", cfg.storage)
    cfg.elf_dir = launcher.get("elf_dir", cfg.elf_dir)

    history = raw.get("history", {})
    cfg.region = history.get("region", cfg.region)
    cfg.history_capacity = int(history.get("capacity", cfg.history_capacity))
    cfg.wear_slots = int(history.get("wear_slots", cfg.wear_slots))
    cfg.memory_cards = tuple(history.get("cards", cfg.memory_cards))
    check_table_shape(cfg.history_capacity, cfg.wear_slots)


def load_launcher_options(cfg: LauncherConfig) -> None:
    """Apply nhddl.yaml to *cfg*, keeping defaults when it cannot be read."""
    try:
        options = load_argument_list(cfg.options_path)
    except (NotFoundError, StorageIOError) as exc:
        console.print(f"Can't load options file, will use defaults ({exc})")
        return

    for arg in options:
        if arg.disabled:
            continue
        if arg.name == OPTION_480P:
            cfg.video_480p = True
        elif arg.name == OPTION_MODE:
            cfg.mode = parse_mode(arg.value)
        elif arg.name == OPTION_UDPBD_IP:
            cfg.udpbd_ip = arg.value[:_IP_MAX_LENGTH]

    if cfg.mode is LaunchMode.UDPBD and not cfg.udpbd_ip:
        cfg.udpbd_ip = read_ipconfig(cfg) or ""


def read_ipconfig(cfg: LauncherConfig) -> Optional[str]:
    """Return the console IP address from the first card with IPCONFIG.DAT."""
    for card in cfg.memory_cards:
        if not cfg.devices.has(card):
            continue
        try:
            data = cfg.devices.resolve(card + IPCONFIG_PATH).read_bytes()
        except OSError:
            continue
        fields = data[:_IP_MAX_LENGTH].decode("ascii", errors="replace").split()
        if fields:
            return fields[0]
    console.print("Failed to get IP address from IPCONFIG.DAT")
    return None
