from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from storyline.preferences import (
    LAST_ROOT_KEY,
    FilePreferenceStore,
    InMemoryPreferenceStore,
    PreferenceStore,
    forget_root,
    recall_root,
    remember_root,
)


class BrokenPreferenceStore(PreferenceStore):
    def put(self, key: str, value: Any) -> None:
        raise OSError("storage unavailable")

    def get(self, key: str) -> Any | None:
        raise OSError("storage unavailable")

    def delete(self, key: str) -> None:
        raise OSError("storage unavailable")


def test_in_memory_store_validates_keys() -> None:
    store = InMemoryPreferenceStore()
    store.put("theme", "dark")
    assert store.get(" theme ") == "dark"

    with pytest.raises(ValueError):
        store.put("   ", "x")
    with pytest.raises(TypeError):
        store.get(123)  # type: ignore[arg-type]


def test_file_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "config" / "preferences.json"
    store = FilePreferenceStore(path)

    assert store.get(LAST_ROOT_KEY) is None
    store.put(LAST_ROOT_KEY, "/data/stories")
    assert json.loads(path.read_text(encoding="utf-8")) == {"lastRoot": "/data/stories"}

    reopened = FilePreferenceStore(path)
    assert reopened.get(LAST_ROOT_KEY) == "/data/stories"
    reopened.delete(LAST_ROOT_KEY)
    assert reopened.get(LAST_ROOT_KEY) is None


def test_root_helpers_tolerate_failing_store(caplog: pytest.LogCaptureFixture) -> None:
    store = BrokenPreferenceStore()

    with caplog.at_level(logging.WARNING, logger="storyline"):
        remember_root(store, Path("/tmp/root"))
        assert recall_root(store) is None
        forget_root(store)

    assert len(caplog.records) == 3


def test_root_helpers_round_trip() -> None:
    store = InMemoryPreferenceStore()
    remember_root(store, Path("/tmp/root"))
    assert recall_root(store) == Path("/tmp/root")
    forget_root(store)
    assert recall_root(store) is None
    assert recall_root(None) is None
