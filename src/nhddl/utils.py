"""Shared utilities for nhddl."""

import contextlib
import os
from pathlib import Path


def atomic_write_bytes(filepath: Path, data: bytes) -> None:
    """Write bytes to a file atomically so a crash leaves the old contents."""
    tmp_path = filepath.with_suffix(filepath.suffix + ".tmp")
    try:
        with open(tmp_path, "wb") as f:
            written = f.write(data)
        if written != len(data):
            raise OSError(f"Short write: {written}/{len(data)} bytes")
        os.replace(tmp_path, filepath)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise


def atomic_write_text(filepath: Path, text: str, encoding: str = "utf-8") -> None:
    """Write text to a file atomically to prevent corruption on crash."""
    atomic_write_bytes(filepath, text.encode(encoding))
