"""options_file.py – Reader and writer for the ``key: value`` options format.

The same line-oriented format is used for ``nhddl.yaml`` (launcher options),
``global.yaml`` and per-title config files.  Despite the extension it is not
YAML::

    # full-line comment
    key: value       # trailing comment
    flag:            # present, no value
    $key: value      # disabled

A line without ``:`` is dropped silently and a repeated key keeps its first
value; parsing never stops at a bad line.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from nhddl.arguments import Argument, ArgumentList
from nhddl.errors import FormatError, NotFoundError, StorageIOError

DISABLED_MARKER = "$"
COMMENT_MARKER = "#"


def parse_line(line: str) -> Argument:
    """Parse a single line into an :class:`Argument`.

    Raises :class:`FormatError` for comments, blank lines and anything that is
    not a ``key: value`` directive.
    """
    text = line.lstrip()
    if not text:
        raise FormatError("blank line")
    if text.startswith(COMMENT_MARKER):
        raise FormatError("comment")

    disabled = False
    if text.startswith(DISABLED_MARKER):
        disabled = True
        text = text[1:]

    key, sep, rest = text.partition(":")
    if not sep:
        raise FormatError(f"no ':' in {line.rstrip()!r}")
    key = key.strip()
    if not key:
        raise FormatError(f"empty key in {line.rstrip()!r}")

    # Whitespace running into end of file without a newline is not a value
    if rest and not rest.strip() and not line.endswith(("\n", "\r")):
        raise FormatError(f"dangling value for {key!r}")

    value = rest.lstrip()
    for stop in (COMMENT_MARKER, "\r", "\n"):
        idx = value.find(stop)
        if idx != -1:
            value = value[:idx]
    value = value.rstrip()

    return Argument(key, value, disabled=disabled)


def parse_options(lines: Iterable[str]) -> ArgumentList:
    """Parse an iterable of lines (e.g. an open text file) into a list.

    Only the first line for each key is kept, so names stay unique.  I/O
    errors raised while iterating propagate to the caller.
    """
    result = ArgumentList()
    for line in lines:
        try:
            arg = parse_line(line)
        except FormatError:
            continue
        if arg.name in result:
            continue
        result.append(arg)
    return result


def load_argument_list(path: Path) -> ArgumentList:
    """Parse the options file at *path*.

    Raises:
        NotFoundError: the file cannot be opened.
        StorageIOError: reading failed part way; nothing parsed is returned.
    """
    try:
        f = open(path, encoding="utf-8", newline="")
    except OSError as exc:
        raise NotFoundError(f"Failed to open {path}: {exc}") from exc

    with f:
        try:
            return parse_options(f)
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageIOError(f"Failed to read {path}: {exc}") from exc


def format_argument(arg: Argument) -> str | None:
    """Serialize *arg* for a title config file, or ``None`` to omit it.

    Enabled global arguments are not written; a disabled global argument is
    written as ``$name:`` so it overrides the global default on next load.
    """
    if not arg.is_global_origin:
        prefix = DISABLED_MARKER if arg.disabled else ""
        return f"{prefix}{arg.name}: {arg.value}\n"
    if arg.disabled:
        return f"{DISABLED_MARKER}{arg.name}:\n"
    return None


def dump_title_arguments(arguments: ArgumentList) -> str:
    """Render *arguments* as title config file text."""
    lines = (format_argument(arg) for arg in arguments)
    return "".join(line for line in lines if line is not None)
