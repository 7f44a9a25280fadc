"""Preference persistence and workspace permission checks."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict

from .records import read_record, write_record

logger = logging.getLogger(__name__)

LAST_ROOT_KEY = "lastRoot"


class PreferenceStore(ABC):
    """Interface describing an opaque key-value preference store."""

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value stored under ``key`` or ``None``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if it exists."""


class InMemoryPreferenceStore(PreferenceStore):
    """Keep preferences in local process memory."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def put(self, key: str, value: Any) -> None:
        self._values[_validate_key(key)] = value

    def get(self, key: str) -> Any | None:
        return self._values.get(_validate_key(key))

    def delete(self, key: str) -> None:
        self._values.pop(_validate_key(key), None)


class FilePreferenceStore(PreferenceStore):
    """Persist preferences as a single JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def put(self, key: str, value: Any) -> None:
        values = self._load()
        values[_validate_key(key)] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_record(self.path, values)

    def get(self, key: str) -> Any | None:
        return self._load().get(_validate_key(key))

    def delete(self, key: str) -> None:
        values = self._load()
        if values.pop(_validate_key(key), None) is not None:
            write_record(self.path, values)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        payload = read_record(self.path)
        if not isinstance(payload, dict):
            raise ValueError(f"Preference file '{self.path}' must contain an object")
        return payload


class PermissionGate(ABC):
    """Decides whether the store may write below a workspace root."""

    @abstractmethod
    def ensure_writable(self, root: Path) -> bool:
        """Return ``True`` when writes below ``root`` are allowed."""


class FilesystemPermissionGate(PermissionGate):
    """Grant access when ``root`` is an existing, writable directory."""

    def ensure_writable(self, root: Path) -> bool:
        path = Path(root)
        return path.is_dir() and os.access(path, os.W_OK | os.X_OK)


class AllowAllPermissionGate(PermissionGate):
    def ensure_writable(self, root: Path) -> bool:
        return True


def remember_root(preferences: PreferenceStore | None, root: Path) -> None:
    """Store ``root`` as the last opened workspace, tolerating failures."""

    if preferences is None:
        return
    try:
        preferences.put(LAST_ROOT_KEY, str(root))
    except Exception as exc:
        logger.warning("Failed to remember workspace root %s: %s", root, exc)


def recall_root(preferences: PreferenceStore | None) -> Path | None:
    if preferences is None:
        return None
    try:
        value = preferences.get(LAST_ROOT_KEY)
    except Exception as exc:
        logger.warning("Failed to load the last workspace root: %s", exc)
        return None
    if not isinstance(value, str) or not value.strip():
        return None
    return Path(value)


def forget_root(preferences: PreferenceStore | None) -> None:
    if preferences is None:
        return
    try:
        preferences.delete(LAST_ROOT_KEY)
    except Exception as exc:
        logger.warning("Failed to clear the last workspace root: %s", exc)


def _validate_key(key: str) -> str:
    if not isinstance(key, str):
        raise TypeError("preference key must be a string")
    stripped = key.strip()
    if not stripped:
        raise ValueError("preference key must be a non-empty string")
    return stripped


__all__ = [
    "AllowAllPermissionGate",
    "FilePreferenceStore",
    "FilesystemPermissionGate",
    "InMemoryPreferenceStore",
    "LAST_ROOT_KEY",
    "PermissionGate",
    "PreferenceStore",
    "forget_root",
    "recall_root",
    "remember_root",
]
