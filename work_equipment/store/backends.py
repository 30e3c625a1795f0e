from __future__ import annotations

import os
from pathlib import Path
import re
import tempfile
import threading
from typing import Protocol

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class DurableStore(Protocol):
    """Key/value text storage that survives the process."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryStore:
    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)


class JsonFileStore:
    """One ``<key>.json`` file per key under ``root``.

    Writes go to a temp file in the same directory, are fsynced, then
    atomically replace the target so a crash never leaves a torn draft.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key.strip())
        if not safe_key:
            raise ValueError("Store key must be a non-empty string")
        return self.root / f"{safe_key}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=self.root)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)
