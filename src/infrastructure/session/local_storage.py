from __future__ import annotations

import os
import re
from pathlib import Path

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalStorage:
    """String key/value storage scoped to one client, one file per key.

    Values survive process restarts. The directory defaults to
    SESSION_STORAGE_DIR (or ``.local_storage``).
    """

    def __init__(self, base_dir: str | os.PathLike[str] | None = None) -> None:
        self.base_dir = Path(base_dir or os.getenv("SESSION_STORAGE_DIR", ".local_storage"))

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.base_dir / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
