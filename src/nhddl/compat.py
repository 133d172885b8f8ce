"""compat.py – Neutrino compatibility mode table and its string codec.

The ``gc`` argument carries a set of compatibility modes as a short string of
mode codes (``"13"`` = accurate reads + unhook syscalls).  Internally the set
is a bitmask; these helpers convert between the two.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CompatMode:
    """One known compatibility mode."""

    mode: int  # bit value
    code: str  # single character used in the argument value
    name: str  # display label


CM_DISABLE_BUILTIN_MODES = 1 << 0
CM_IOP_ACCURATE_READS = 1 << 1
CM_IOP_SYNC_READS = 1 << 2
CM_EE_UNHOOK_SYSCALLS = 1 << 3
CM_IOP_EMULATE_DVD_DL = 1 << 4

COMPAT_MODE_MAP: tuple[CompatMode, ...] = (
    CompatMode(CM_DISABLE_BUILTIN_MODES, "0", "Disable built-in compat flags"),
    CompatMode(CM_IOP_ACCURATE_READS, "1", "IOP: Accurate reads"),
    CompatMode(CM_IOP_SYNC_READS, "2", "IOP: Sync reads"),
    CompatMode(CM_EE_UNHOOK_SYSCALLS, "3", "EE : Unhook syscalls"),
    CompatMode(CM_IOP_EMULATE_DVD_DL, "5", "IOP: Emulate DVD-DL"),
)

CM_NUM_MODES = len(COMPAT_MODE_MAP)

ALL_COMPAT_MODES = 0
for _entry in COMPAT_MODE_MAP:
    ALL_COMPAT_MODES |= _entry.mode
del _entry


def decode_compat_modes(value: str) -> int:
    """Parse a compat mode string into a bitmask, ignoring unknown codes."""
    result = 0
    for ch in value:
        for entry in COMPAT_MODE_MAP:
            if ch == entry.code:
                result |= entry.mode
                break
    return result


def encode_compat_modes(modes: int) -> str:
    """Render *modes* as the code string, in table order.

    An all-zero mask yields ``""``, which marks the compat argument disabled.
    """
    return "".join(entry.code for entry in COMPAT_MODE_MAP if modes & entry.mode)


def mode_for_code(code: str) -> CompatMode | None:
    """Return the table entry for a single mode code, or ``None``."""
    for entry in COMPAT_MODE_MAP:
        if entry.code == code:
            return entry
    return None
