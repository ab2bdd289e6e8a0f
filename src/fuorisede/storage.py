"""
Chef Fuori-Sede - Durable key-value storage.

The browser-localStorage analogue: string keys to string values, read at
startup and written synchronously on every change.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Fixed namespace
PANTRY_KEY = "mealshare-pantry"
EXCLUSIONS_KEY = "mealshare-exclusions"
FAVORITES_KEY = "mealshare-favorites"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """
    All keys in a single JSON object file.

    A missing, unreadable or corrupt file reads as empty; the next write
    replaces it.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring corrupt storage file {self.path}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring storage file {self.path}: not a JSON object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves half a file
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(data, tmp, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
