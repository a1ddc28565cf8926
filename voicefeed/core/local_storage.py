"""
File-backed key/value store standing in for browser local storage.

Values are strings, like ``window.localStorage``. The whole map lives in one
JSON file that is rewritten on every change. Write failures are logged and
swallowed: everything kept here is a cache the caller can rebuild.
"""

import json
import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalStorage:
    """String key/value persistence in a single JSON file.

    Args:
        path: Location of the backing JSON file. Parent folders are created
            on first write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @classmethod
    def for_client(cls, directory: str | Path, client_id: str) -> "LocalStorage":
        """Storage private to one client (one browser session) under *directory*."""
        if not client_id or not client_id.replace("-", "").isalnum():
            raise ValueError(f"Invalid client id: {client_id!r}")
        return cls(Path(directory) / f"{client_id}.json")

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable local storage %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as exc:
            logger.warning("Local storage write failed (%s): %s", self._path, exc)
            return False
        return True

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> bool:
        """Store *value* under *key*. Returns False if the write failed."""
        with self._lock:
            data = self._read()
            data[key] = value
            return self._write(data)

    def remove_item(self, key: str) -> bool:
        with self._lock:
            data = self._read()
            if key not in data:
                return True
            del data[key]
            return self._write(data)
