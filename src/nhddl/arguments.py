"""arguments.py – Ordered launch argument list with merge/override semantics.

An :class:`ArgumentList` is what the options files parse into, what the
editor toggles, and what gets flattened into the Neutrino argv.  Ordering
matters, with one exception: the compat mode argument (``gc``) is always kept
at index 0 so callers can rely on ``args[0]`` being the compat flags once
:meth:`ArgumentList.insert_default_compat_mode` has run.

Merge rules (``primary.merge(secondary)``), by argument name:

- name absent from *primary*: a copy of the secondary argument is appended;
- name present, not ``gc``, and the primary entry is disabled with an empty
  value: that entry is a ``$name:`` marker written by a title config to turn
  a global argument off, so it takes the secondary's value and stays disabled;
- anything else: the primary entry wins.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, replace

from nhddl.compat import decode_compat_modes, encode_compat_modes

# Neutrino's game compatibility switch
COMPAT_MODES_ARG = "gc"


@dataclass
class Argument:
    """A single named launch parameter."""

    name: str
    value: str = ""
    disabled: bool = False
    is_global_origin: bool = False

    @property
    def is_compat(self) -> bool:
        return self.name == COMPAT_MODES_ARG

    def copy(self) -> Argument:
        return replace(self)

    def to_token(self) -> str:
        """Render as ``-name`` or ``-name=value``."""
        if not self.value:
            return f"-{self.name}"
        return f"-{self.name}={self.value}"


class ArgumentList:
    """Ordered collection of :class:`Argument` with a pinned compat head."""

    def __init__(self, arguments: list[Argument] | None = None) -> None:
        self._items: list[Argument] = []
        for arg in arguments or []:
            self.append(arg)

    # -- container protocol -------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Argument]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Argument:
        return self._items[index]

    def __contains__(self, name: object) -> bool:
        return self.get(name) is not None if isinstance(name, str) else False

    def __repr__(self) -> str:
        return f"ArgumentList({self._items!r})"

    @property
    def names(self) -> list[str]:
        return [arg.name for arg in self._items]

    def get(self, name: str) -> Argument | None:
        """Return the argument called *name*, or ``None``."""
        for arg in self._items:
            if arg.name == name:
                return arg
        return None

    def copy(self) -> ArgumentList:
        """Deep copy; argument objects are not shared."""
        result = ArgumentList()
        result._items = [arg.copy() for arg in self._items]
        return result

    # -- building -----------------------------------------------------------

    def append(self, arg: Argument) -> None:
        """Add *arg* at the tail, or at the head if it is the compat argument.

        No uniqueness check is made; callers must not insert ``gc`` twice.
        """
        if arg.is_compat:
            self._items.insert(0, arg)
        else:
            self._items.append(arg)

    def insert_default_compat_mode(self, modes: int = 0) -> Argument:
        """Put a synthesized compat argument at the head and return it."""
        arg = Argument(COMPAT_MODES_ARG)
        _store_compat_modes(arg, modes)
        self._items.insert(0, arg)
        return arg

    def ensure_compat_mode(self) -> Argument:
        """Return the head compat argument, inserting a disabled one if missing."""
        if self._items and self._items[0].is_compat:
            return self._items[0]
        return self.insert_default_compat_mode(0)

    def mark_global(self) -> None:
        """Flag every argument as contributed by the global config."""
        for arg in self._items:
            arg.is_global_origin = True

    def merge(self, secondary: ArgumentList) -> None:
        """Merge *secondary* into this list in place (this list wins)."""
        for other in secondary:
            existing = self.get(other.name)
            if existing is None:
                self.append(other.copy())
            elif not other.is_compat and existing.disabled and not existing.value:
                existing.name = other.name
                existing.value = other.value
                existing.is_global_origin = other.is_global_origin
                existing.disabled = True

    # -- editor surface -----------------------------------------------------

    def toggle(self, name: str) -> Argument:
        """Flip the disabled flag of *name*; raises ``KeyError`` if absent."""
        arg = self.get(name)
        if arg is None:
            raise KeyError(name)
        arg.disabled = not arg.disabled
        return arg

    def compat_modes(self) -> int:
        """Bitmask of the head compat argument (0 when there is none)."""
        if self._items and self._items[0].is_compat:
            return decode_compat_modes(self._items[0].value)
        return 0

    def set_compat_modes(self, modes: int) -> Argument:
        """Store *modes* in the compat argument, creating it if needed.

        An edited compat argument always belongs to the title config.
        """
        arg = self.ensure_compat_mode()
        _store_compat_modes(arg, modes)
        arg.is_global_origin = False
        return arg

    # -- output -------------------------------------------------------------

    def flatten(self) -> list[str]:
        """Build the argv tokens for every enabled argument, in order.

        An empty compat argument produces no token.
        """
        argv: list[str] = []
        for arg in self._items:
            if arg.disabled:
                continue
            if arg.is_compat and not arg.value:
                continue
            argv.append(arg.to_token())
        return argv

    def to_dict(self) -> list[dict[str, object]]:
        return [
            {
                "name": arg.name,
                "value": arg.value,
                "disabled": arg.disabled,
                "global": arg.is_global_origin,
            }
            for arg in self._items
        ]


def _store_compat_modes(arg: Argument, modes: int) -> None:
    arg.value = encode_compat_modes(modes)
    arg.disabled = not arg.value
