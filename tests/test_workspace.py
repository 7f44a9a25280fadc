from __future__ import annotations

import json
from pathlib import Path

import pytest

from storyline import (
    AllowAllPermissionGate,
    InMemoryPreferenceStore,
    PermissionDenied,
    PermissionGate,
    ProjectStore,
    Workspace,
)
from storyline.preferences import LAST_ROOT_KEY


class DenyingGate(PermissionGate):
    def __init__(self) -> None:
        self.calls: list[Path] = []

    def ensure_writable(self, root: Path) -> bool:
        self.calls.append(root)
        return False


def test_open_creates_structure_and_remembers_root(tmp_path: Path) -> None:
    preferences = InMemoryPreferenceStore()
    root = tmp_path / "root"

    workspace = Workspace.open(
        root, permission_gate=AllowAllPermissionGate(), preferences=preferences
    )

    assert (root / "projects").is_dir()
    assert json.loads((root / "index.json").read_text(encoding="utf-8")) == {
        "version": 1,
        "projects": [],
    }
    assert workspace.index.projects == []
    assert preferences.get(LAST_ROOT_KEY) == str(root)


def test_open_refused_by_permission_gate_creates_nothing(tmp_path: Path) -> None:
    gate = DenyingGate()
    preferences = InMemoryPreferenceStore()

    with pytest.raises(PermissionDenied):
        Workspace.open(tmp_path, permission_gate=gate, preferences=preferences)

    assert gate.calls == [tmp_path]
    assert list(tmp_path.iterdir()) == []
    assert preferences.get(LAST_ROOT_KEY) is None


def test_default_gate_rejects_missing_root(tmp_path: Path) -> None:
    with pytest.raises(PermissionDenied):
        Workspace.open(tmp_path / "does-not-exist")


def test_corrupt_index_is_replaced(workspace_root: Path) -> None:
    (workspace_root / "index.json").write_text("[1, 2", encoding="utf-8")

    workspace = Workspace.open(workspace_root, permission_gate=AllowAllPermissionGate())

    assert workspace.index.projects == []
    assert json.loads((workspace_root / "index.json").read_text(encoding="utf-8"))["projects"] == []


def test_restore_last_reopens_remembered_root(workspace_root: Path) -> None:
    preferences = InMemoryPreferenceStore()
    Workspace.open(workspace_root, permission_gate=AllowAllPermissionGate(), preferences=preferences)

    restored = Workspace.restore_last(preferences, permission_gate=AllowAllPermissionGate())

    assert restored is not None
    assert restored.root == workspace_root


def test_restore_last_forgets_refused_root(workspace_root: Path) -> None:
    preferences = InMemoryPreferenceStore()
    preferences.put(LAST_ROOT_KEY, str(workspace_root))

    assert Workspace.restore_last(preferences, permission_gate=DenyingGate()) is None
    assert preferences.get(LAST_ROOT_KEY) is None
    assert Workspace.restore_last(InMemoryPreferenceStore()) is None


def test_list_projects_sort_orders(workspace: Workspace, store: ProjectStore) -> None:
    store.create("beta")
    store.create("Alpha")
    store.create("gamma")

    assert [entry.project_name for entry in workspace.list_projects("name-asc")] == [
        "Alpha",
        "beta",
        "gamma",
    ]
    assert [entry.project_name for entry in workspace.list_projects("name-desc")] == [
        "gamma",
        "beta",
        "Alpha",
    ]
    assert len(workspace.list_projects("created")) == 3
    with pytest.raises(ValueError):
        workspace.list_projects("size")  # type: ignore[arg-type]


def test_refresh_reports_whether_current_project_survived(
    workspace: Workspace, store: ProjectStore
) -> None:
    summary = store.create("Demo")
    assert workspace.refresh(summary.id) is True

    store.delete(summary.id)
    assert workspace.refresh(summary.id) is False
