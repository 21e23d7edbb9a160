from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from domain import settings as settings_repo

LOGGER = logging.getLogger("domain.storage")


class StorageBackend:
    """Abstract key/value persistence port (get/set/remove of string values)."""

    def get(self, key: str) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    def set(self, key: str, value: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def remove(self, key: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError


class MemoryStorageBackend(StorageBackend):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    def remove(self, key: str) -> bool:
        self._data.pop(key, None)
        return True


class DatabaseStorageBackend(StorageBackend):
    def __init__(self, bind=None) -> None:
        self._bind = bind

    def get(self, key: str) -> Optional[str]:
        return settings_repo.get_value(key, bind=self._bind)

    def set(self, key: str, value: str) -> bool:
        return settings_repo.set_value(key, value, bind=self._bind)

    def remove(self, key: str) -> bool:
        return settings_repo.remove_value(key, bind=self._bind)


class JsonFileStorageBackend(StorageBackend):
    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.warning("Unable to prepare storage directory %s: %s", self._path.parent, exc)

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            LOGGER.warning("Unable to read storage file %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, str]) -> bool:
        # Write beside the target and swap it in so a failed write never truncates the file.
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
            return True
        except OSError as exc:
            LOGGER.warning("Unable to write storage file %s: %s", self._path, exc)
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    LOGGER.debug("Temporary storage file %s already gone", tmp_name)
            return False

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> bool:
        with self._lock:
            data = self._load()
            data[key] = value
            return self._dump(data)

    def remove(self, key: str) -> bool:
        with self._lock:
            data = self._load()
            if key not in data:
                return True
            del data[key]
            return self._dump(data)


class UnavailableStorageBackend(StorageBackend):
    """Stand-in for sandboxed environments where nothing can be persisted."""

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str) -> bool:
        return False

    def remove(self, key: str) -> bool:
        return False


class CompositeStorageBackend(StorageBackend):
    """Uses a primary backend with a secondary fallback for resilience."""

    def __init__(self, primary: StorageBackend, fallback: StorageBackend) -> None:
        self._primary = primary
        self._fallback = fallback

    def get(self, key: str) -> Optional[str]:
        value = self._primary.get(key)
        if value is not None:
            return value
        return self._fallback.get(key)

    def set(self, key: str, value: str) -> bool:
        primary_ok = self._primary.set(key, value)
        fallback_ok = self._fallback.set(key, value)
        return primary_ok or fallback_ok

    def remove(self, key: str) -> bool:
        primary_ok = self._primary.remove(key)
        fallback_ok = self._fallback.remove(key)
        return primary_ok or fallback_ok


def read_json(backend: StorageBackend, key: str) -> tuple[bool, object]:
    """Return ``(present, payload)``; a present but undecodable value yields ``(True, None)``."""

    raw = backend.get(key)
    if raw is None:
        return False, None
    try:
        return True, json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.warning("Stored value for '%s' is not valid JSON", key)
        return True, None


def write_json(backend: StorageBackend, key: str, payload: object) -> bool:
    ok = backend.set(key, json.dumps(payload))
    if not ok:
        LOGGER.warning("Unable to persist '%s'", key)
    return ok


__all__ = [
    "CompositeStorageBackend",
    "DatabaseStorageBackend",
    "JsonFileStorageBackend",
    "MemoryStorageBackend",
    "StorageBackend",
    "UnavailableStorageBackend",
    "read_json",
    "write_json",
]
