"""Exception types shared across nhddl.

``NotFoundError`` and ``StorageIOError`` subclass the builtin OS errors so
callers that only care about "some I/O went wrong" can keep catching
``OSError``.
"""


class NotFoundError(FileNotFoundError):
    """A config file, history file or storage device is absent."""


class StorageIOError(OSError):
    """Short read/write or another unexpected I/O failure."""


class FormatError(ValueError):
    """A single config line could not be parsed."""


class PathTooLongError(ValueError):
    """A device path exceeds the loader's path length limit."""
