"""Test configuration for the storyline store."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from typing import Any, Callable

import pytest

from storyline import (
    AllowAllPermissionGate,
    ChangeNotice,
    ChangeNotifier,
    IncomingFile,
    ProjectSession,
    ProjectStore,
    Workspace,
)


class RecordingListener:
    """Collects every notice emitted by a :class:`ChangeNotifier`."""

    def __init__(self) -> None:
        self.notices: list[ChangeNotice] = []

    def __call__(self, notice: ChangeNotice) -> None:
        self.notices.append(notice)

    def events(self) -> list[str]:
        return [notice.event.value for notice in self.notices]

    def clear(self) -> None:
        self.notices.clear()


@pytest.fixture()
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture()
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture()
def workspace(workspace_root: Path, listener: RecordingListener) -> Workspace:
    notifier = ChangeNotifier()
    notifier.subscribe(listener)
    return Workspace.open(
        workspace_root,
        permission_gate=AllowAllPermissionGate(),
        notifier=notifier,
    )


@pytest.fixture()
def store(workspace: Workspace) -> ProjectStore:
    return ProjectStore(workspace)


@pytest.fixture()
def session(store: ProjectStore) -> ProjectSession:
    """An open, empty project named ``Demo``."""

    summary = store.create("Demo")
    return store.open(summary.id)


@pytest.fixture()
def make_file() -> Callable[..., IncomingFile]:
    """Factory fixture for in-memory files offered to the asset manager."""

    def _factory(
        name: str = "frame.png",
        content: bytes = b"\x89PNG fake",
        content_type: Any = None,
    ) -> IncomingFile:
        return IncomingFile(name=name, content=content, content_type=content_type)

    return _factory


__all__ = ["RecordingListener"]
