"""The open-project context passed to every mutating store operation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .assets import AssetManager
from .events import ChangeEvent
from .models import ProjectRecord
from .naming import ATTACHMENTS_DIRNAME, IMAGES_DIRNAME, project_record_path, utc_now
from .scenes import SceneCollection
from .transitions import TransitionLedger

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)


class ProjectSession:
    """Holds one open project: its record, directory and asset manager.

    ``dirty`` is ``True`` whenever the in-memory record differs from the last
    successful save.
    """

    def __init__(self, workspace: "Workspace", slug: str, record: ProjectRecord) -> None:
        self.workspace = workspace
        self.slug = slug
        self.record = record
        self.dirty = False
        self.closed = False
        self.assets = AssetManager(
            record,
            self.images_dir,
            self.attachments_dir,
            max_attachments=workspace.settings.max_attachments,
            on_change=self.touch,
        )
        self.scenes = SceneCollection(self)
        self.transitions = TransitionLedger(record.transitions, on_change=self.touch)

    @property
    def project_id(self) -> str:
        return self.record.id

    @property
    def directory(self) -> Path:
        return self.workspace.project_dir(self.slug)

    @property
    def record_path(self) -> Path:
        return project_record_path(self.directory)

    @property
    def images_dir(self) -> Path:
        return self.directory / IMAGES_DIRNAME

    @property
    def attachments_dir(self) -> Path:
        return self.directory / ATTACHMENTS_DIRNAME

    def touch(self, scene_id: str | None = None) -> None:
        """Mark the project dirty and stamp ``updatedAt``.

        The in-memory index entry follows the record so listings stay current;
        it is only persisted by the next save or reconcile.
        """

        self.dirty = True
        self.record.updated_at = utc_now()
        entry = self.workspace.index.find_by_id(self.record.id)
        if entry is not None:
            entry.refresh_from(self.record)
        self.workspace.notify(
            ChangeEvent.SCENE_CHANGED, project_id=self.record.id, scene_id=scene_id
        )

    def mark_saved(self) -> None:
        self.dirty = False

    def close(self) -> None:
        """Revoke every preview handle issued for this project."""

        if self.closed:
            return
        self.assets.previews.clear()
        self.closed = True
        if self.dirty:
            logger.info("Closing project %s with unsaved changes", self.record.id)


__all__ = ["ProjectSession"]
