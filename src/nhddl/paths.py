"""paths.py – Device-style paths (``mass0:/DVD/x.iso``) and their host mapping.

Titles, config files and memory card files are addressed the way the console
sees them: a device prefix (``mass:``, ``mass0:``, ``mc1:``, ``rom0:``)
followed by an absolute path.  :class:`DeviceMap` maps each prefix to a host
directory so the same paths work against mounted storage or a test tree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from nhddl.errors import NotFoundError, PathTooLongError

# Loader-side path length limit, including the device prefix
MAX_PATH_LENGTH = 256

BASE_CONFIG_PATH = "/config"

_DEVICE_RE = re.compile(r"^(?P<device>[A-Za-z]+\d*:)(?P<path>.*)$")


def split_device(path: str) -> tuple[str, str]:
    """Split ``"mass0:/DVD/a.iso"`` into ``("mass0:", "/DVD/a.iso")``.

    Returns ``("", path)`` when *path* has no device prefix.
    """
    m = _DEVICE_RE.match(path)
    if m is None:
        return "", path
    return m.group("device"), m.group("path")


def check_length(path: str) -> str:
    """Return *path* unchanged, or raise if it is over the length limit."""
    if len(path) > MAX_PATH_LENGTH:
        raise PathTooLongError(f"Path is {len(path)} characters long (max {MAX_PATH_LENGTH}): {path}")
    return path


def build_config_path(base_path: str, file_name: str | None = None) -> str:
    """Return the config directory for *base_path*'s device, or a file in it.

    Only the device prefix of *base_path* is used::

        build_config_path("mass0:/DVD/a.iso")            -> "mass0:/config"
        build_config_path("mass:/x", "global.yaml")      -> "mass:/config/global.yaml"

    Raises ``NotFoundError`` when *base_path* has no device prefix.
    """
    device, _ = split_device(base_path)
    if not device:
        raise NotFoundError(f"No device prefix in {base_path!r}")
    result = device + BASE_CONFIG_PATH
    if file_name is not None:
        if not file_name.startswith("/"):
            result += "/"
        result += file_name
    return check_length(result)


@dataclass
class DeviceMap:
    """Device prefix → host directory."""

    devices: dict[str, Path] = field(default_factory=dict)

    def has(self, device: str) -> bool:
        return device in self.devices

    def root(self, device: str) -> Path:
        try:
            return self.devices[device]
        except KeyError:
            raise NotFoundError(f"Device {device!r} is not mapped") from None

    def resolve(self, path: str) -> Path:
        """Translate a device path into a host path.

        Paths without a device prefix are taken as host paths already.
        """
        device, rest = split_device(check_length(path))
        if not device:
            return Path(rest)
        return self.root(device) / rest.lstrip("/")
