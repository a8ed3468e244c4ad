"""Local key-value storage for canvas state.

The canvas keeps its durable client-side state in a tiny key-value store with
string values, one slot per fixed key.  Two implementations are provided:

- :class:`LocalStore` keeps one file per key in a directory
  (``<state_dir>/<key>.json``).  Writes go to a temporary file first and are
  moved into place with :func:`os.replace`, so a crash mid-write leaves the
  previous value intact rather than a truncated document.
- :class:`MemoryStore` keeps values in a dict; it is what tests and
  throw-away sessions use.

Neither store interprets the values.  Parsing, defaults and recovery from
corrupt data belong to :mod:`promptcanvas.canvas.persistence`.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class KeyValueStore(Protocol):
    """String key-value slots with get/set/remove."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class LocalStore:
    """File-backed key-value store.

    Args:
        directory: Directory holding one ``<key>.json`` file per slot. It is
            created if missing.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` when the slot is empty.

        Raises:
            OSError: If the slot exists but cannot be read.
        """
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        """Replace the value of ``key`` atomically.

        Raises:
            OSError: If the value cannot be written (disk full, permissions).
        """
        path = self._path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)


class MemoryStore:
    """In-process key-value store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
