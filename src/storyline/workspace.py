"""Workspace root handling: directory structure, cached index and preferences."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import ValidationError as PydanticValidationError

from .errors import IOFailure, NotFoundError, PermissionDenied
from .events import ChangeEvent, ChangeNotifier
from .models import ProjectIndex, ProjectSummary
from .naming import index_path, projects_dir
from .preferences import (
    FilesystemPermissionGate,
    PermissionGate,
    PreferenceStore,
    forget_root,
    recall_root,
    remember_root,
)
from .reconciler import reconcile
from .records import read_record, write_record
from .settings import StorylineSettings

logger = logging.getLogger(__name__)

SortOrder = Literal["updated", "created", "name-asc", "name-desc"]
SORT_ORDERS: tuple[str, ...] = ("updated", "created", "name-asc", "name-desc")


class Workspace:
    """A user-chosen root directory holding ``index.json`` and ``projects/``.

    The index is a cached projection of the per-project records; it can be
    thrown away and rebuilt at any time with :meth:`reconcile`.
    """

    def __init__(
        self,
        root: Path,
        *,
        settings: StorylineSettings | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        self.root = Path(root)
        self.settings = settings or StorylineSettings()
        self.notifier = notifier or ChangeNotifier()
        self.index = ProjectIndex()

    @classmethod
    def open(
        cls,
        root: Path,
        *,
        permission_gate: PermissionGate | None = None,
        preferences: PreferenceStore | None = None,
        settings: StorylineSettings | None = None,
        notifier: ChangeNotifier | None = None,
        run_reconcile: bool = True,
    ) -> "Workspace":
        """Prepare ``root`` for use and return the bound workspace.

        Raises:
            PermissionDenied: If ``permission_gate`` refuses write access. No
                directory or file is created in that case.
            IOFailure: If the directory structure cannot be created.
        """

        gate = permission_gate or FilesystemPermissionGate()
        root_path = Path(root)
        if not gate.ensure_writable(root_path):
            raise PermissionDenied(root_path)

        workspace = cls(root_path, settings=settings, notifier=notifier)
        workspace.ensure_structure()
        if run_reconcile:
            workspace.reconcile()
        remember_root(preferences, root_path)
        return workspace

    @classmethod
    def restore_last(
        cls,
        preferences: PreferenceStore | None,
        *,
        permission_gate: PermissionGate | None = None,
        settings: StorylineSettings | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> "Workspace | None":
        """Reopen the remembered workspace, or return ``None``.

        A remembered root that is missing, refused or broken is forgotten so
        the caller falls back to asking for a new one.
        """

        root = recall_root(preferences)
        if root is None:
            return None
        try:
            return cls.open(
                root,
                permission_gate=permission_gate,
                preferences=preferences,
                settings=settings,
                notifier=notifier,
            )
        except (PermissionDenied, IOFailure) as exc:
            logger.warning("Could not restore workspace %s: %s", root, exc)
            forget_root(preferences)
            return None

    @staticmethod
    def forget(preferences: PreferenceStore | None) -> None:
        forget_root(preferences)

    @property
    def projects_dir(self) -> Path:
        return projects_dir(self.root)

    @property
    def index_path(self) -> Path:
        return index_path(self.root)

    def project_dir(self, slug: str) -> Path:
        return self.projects_dir / slug

    def ensure_structure(self) -> None:
        """Create ``projects/`` and ``index.json`` when missing and load the index."""

        try:
            self.projects_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IOFailure(
                f"Failed to create projects directory '{self.projects_dir}': {exc}",
                path=self.projects_dir,
            ) from exc

        if not self.index_path.exists():
            self.index = ProjectIndex()
            self.save_index()
            return

        self.index = self._load_index()

    def _load_index(self) -> ProjectIndex:
        try:
            payload = read_record(self.index_path)
            if not isinstance(payload, dict):
                raise ValueError("index must be a JSON object")
            return ProjectIndex.from_payload(payload)
        except (IOFailure, ValueError, PydanticValidationError) as exc:
            logger.warning("Index %s unreadable, starting a new one: %s", self.index_path, exc)
            index = ProjectIndex()
            self.index = index
            self.save_index()
            return index

    def save_index(self) -> None:
        """Persist the index.

        Raises:
            IOFailure: If the index file cannot be written.
        """

        write_record(self.index_path, self.index.to_payload())

    def try_save_index(self) -> bool:
        """Persist the index, logging instead of raising on failure."""

        try:
            self.save_index()
        except IOFailure as exc:
            logger.warning("Index write failed; the next reconcile will repair it: %s", exc)
            return False
        return True

    def reconcile(self) -> ProjectIndex:
        """Rebuild the index from the project directories on disk."""

        return reconcile(self)

    def refresh(self, current_project_id: str | None = None) -> bool:
        """Reconcile and report whether ``current_project_id`` is still listed."""

        self.reconcile()
        if current_project_id is None:
            return False
        return self.index.find_by_id(current_project_id) is not None

    def find_project(self, project_id: str) -> ProjectSummary:
        entry = self.index.find_by_id(project_id)
        if entry is None:
            raise NotFoundError(f"Project '{project_id}' is not in the index.")
        return entry

    def list_projects(self, order: SortOrder = "updated") -> list[ProjectSummary]:
        """Return the index entries sorted for display."""

        entries = list(self.index.projects)
        if order == "updated":
            entries.sort(key=lambda entry: entry.updated_at, reverse=True)
        elif order == "created":
            entries.sort(key=lambda entry: entry.created_at, reverse=True)
        elif order == "name-asc":
            entries.sort(key=lambda entry: entry.project_name.casefold())
        elif order == "name-desc":
            entries.sort(key=lambda entry: entry.project_name.casefold(), reverse=True)
        else:
            raise ValueError(f"Unknown sort order '{order}'.")
        return entries

    def notify(self, event: ChangeEvent, **details: object) -> None:
        self.notifier.emit(event, **details)


__all__ = ["SORT_ORDERS", "SortOrder", "Workspace"]
