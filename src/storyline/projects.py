"""Project lifecycle: create, open, save, duplicate and delete."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .assets import AssetManager
from .errors import IOFailure, NotFoundError, ValidationError
from .events import ChangeEvent
from .models import ProjectRecord, ProjectSummary, Scene
from .naming import (
    ATTACHMENTS_DIRNAME,
    IMAGES_DIRNAME,
    new_identifier,
    project_record_path,
    slugify,
    unique_slug,
    utc_now,
)
from .reconciler import backfill_record_payload
from .records import read_record, write_record
from .session import ProjectSession
from .workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of :meth:`ProjectStore.delete`.

    ``directory_removed`` is ``False`` when the index entry was removed but the
    project directory could not be deleted and is left orphaned on disk.
    """

    project_id: str
    slug: str
    directory_removed: bool


class ProjectStore:
    """Operations on the projects of one :class:`Workspace`."""

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    # ------------------------------------------------------------------
    # Create / open / save
    # ------------------------------------------------------------------
    def create(self, name: str, *, video_generator: str = "", notes: str = "") -> ProjectSummary:
        """Create a new, empty project and add it to the index.

        Raises:
            ValidationError: If ``name`` is blank.
            IOFailure: If the directory or record cannot be written.
        """

        project_name = _require_name(name)
        slug, directory = self._create_directory(project_name)

        now = utc_now()
        record = ProjectRecord(
            id=new_identifier(),
            project_name=project_name,
            video_generator=video_generator or "",
            notes=notes or "",
            created_at=now,
            updated_at=now,
        )
        self._write_new_record(directory, record)

        summary = ProjectSummary.from_record(record, slug)
        self.workspace.index.upsert(summary)
        self.workspace.try_save_index()
        self.workspace.notify(ChangeEvent.PROJECT_LIST_CHANGED, project_id=record.id)
        logger.info("Created project %s at %s", record.id, directory)
        return summary

    def open(self, project_id: str) -> ProjectSession:
        """Load a project listed in the index and bind a session to it.

        Raises:
            NotFoundError: If the project is not indexed or its record cannot
                be read.
        """

        entry = self.workspace.find_project(project_id)
        record = self._load_record(entry)
        session = ProjectSession(self.workspace, entry.slug, record)
        self.workspace.notify(ChangeEvent.CURRENT_PROJECT_CHANGED, project_id=record.id)
        return session

    def save(self, session: ProjectSession) -> ProjectSummary:
        """Write the session's record, then refresh its index entry.

        A failed record write leaves the session untouched and propagates.
        A failed index write is logged; reconciling repairs the index later.
        """

        record = session.record
        previous = record.updated_at
        record.updated_at = utc_now()
        try:
            write_record(session.record_path, record.to_payload())
        except IOFailure:
            record.updated_at = previous
            raise
        session.mark_saved()

        entry = self.workspace.index.find_by_id(record.id)
        if entry is None or entry.slug != session.slug:
            entry = ProjectSummary.from_record(record, session.slug)
            self.workspace.index.upsert(entry)
        else:
            entry.refresh_from(record)
        self.workspace.try_save_index()

        self.workspace.notify(ChangeEvent.PROJECT_SAVED, project_id=record.id)
        self.workspace.notify(ChangeEvent.PROJECT_LIST_CHANGED, project_id=record.id)
        return entry

    def update_metadata(
        self,
        session: ProjectSession,
        *,
        project_name: str | None = None,
        video_generator: str | None = None,
        notes: str | None = None,
    ) -> bool:
        """Edit project-level fields; the slug never changes."""

        record = session.record
        changes: dict[str, Any] = {}
        if project_name is not None:
            name = _require_name(project_name)
            if name != record.project_name:
                changes["project_name"] = name
        if video_generator is not None and video_generator != record.video_generator:
            changes["video_generator"] = video_generator
        if notes is not None and notes != record.notes:
            changes["notes"] = notes

        if not changes:
            return False
        for field, value in changes.items():
            setattr(record, field, value)
        session.touch()
        self.workspace.notify(ChangeEvent.CURRENT_PROJECT_CHANGED, project_id=record.id)
        return True

    def close(self, session: ProjectSession) -> None:
        session.close()
        self.workspace.notify(ChangeEvent.CURRENT_PROJECT_CHANGED, project_id=None)

    # ------------------------------------------------------------------
    # Duplicate / delete
    # ------------------------------------------------------------------
    def duplicate(self, session: ProjectSession, new_name: str) -> ProjectSummary:
        """Copy the open project, assets included, under a new name.

        Every scene gets a fresh id and its files are copied under names
        derived from it. A file that cannot be copied is dropped from the copy
        with a warning.
        """

        project_name = _require_name(new_name)
        slug, directory = self._create_directory(project_name)

        source = session.record
        now = utc_now()
        record = source.model_copy(
            deep=True,
            update={
                "id": new_identifier(),
                "project_name": project_name,
                "created_at": now,
                "updated_at": now,
                "prompts": [],
                "transitions": [
                    transition.model_copy(update={"updated_at": now})
                    for transition in source.transitions
                ],
            },
        )

        assets = self._asset_manager(record, directory)
        skipped: list[str] = []
        for scene in source.prompts:
            copy = scene.model_copy(deep=True, update={"id": new_identifier()})
            skipped.extend(assets.copy_scene_assets(scene, session.assets, copy))
            record.prompts.append(copy)
        if skipped:
            logger.warning(
                "Duplicated project %s without %d files: %s",
                source.id,
                len(skipped),
                ", ".join(skipped),
            )

        self._write_new_record(directory, record)

        summary = ProjectSummary.from_record(record, slug)
        self.workspace.index.upsert(summary)
        self.workspace.try_save_index()
        self.workspace.notify(ChangeEvent.PROJECT_LIST_CHANGED, project_id=record.id)
        return summary

    def delete(self, project_id: str) -> DeleteResult:
        """Remove a project from the index, then remove its directory.

        The index is persisted before the directory is touched. When the
        directory cannot be removed the project is still reported as deleted
        and ``directory_removed`` is ``False``; the orphaned directory
        reappears on the next reconcile.

        Raises:
            NotFoundError: If the project is not indexed.
            IOFailure: If the index cannot be written. Nothing is deleted.
        """

        entry = self.workspace.find_project(project_id)
        previous = list(self.workspace.index.projects)
        self.workspace.index.remove(project_id)
        try:
            self.workspace.save_index()
        except IOFailure:
            self.workspace.index.projects = previous
            raise

        directory = self.workspace.project_dir(entry.slug)
        removed = True
        if directory.exists():
            try:
                shutil.rmtree(directory)
            except OSError as exc:
                removed = False
                logger.warning(
                    "Project %s removed from the index but directory %s remains: %s",
                    project_id,
                    directory,
                    exc,
                )

        self.workspace.notify(ChangeEvent.PROJECT_LIST_CHANGED, project_id=project_id)
        return DeleteResult(project_id=project_id, slug=entry.slug, directory_removed=removed)

    def copy_scene_to_project(
        self, session: ProjectSession, scene_id: str, target_project_id: str
    ) -> Scene:
        """Append a copy of a scene to another project's stored record.

        Raises:
            ValidationError: If the target is the open project itself.
            NotFoundError: If the scene or the target project does not exist.
            IOFailure: If the target record cannot be written.
        """

        if target_project_id == session.project_id:
            raise ValidationError("Use scene duplication to copy within the open project.")

        source_scene = session.scenes.get(scene_id)
        entry = self.workspace.find_project(target_project_id)
        record = self._load_record(entry)
        directory = self.workspace.project_dir(entry.slug)
        assets = self._asset_manager(record, directory)

        copy = source_scene.model_copy(deep=True, update={"id": new_identifier()})
        skipped = assets.copy_scene_assets(source_scene, session.assets, copy)
        if skipped:
            logger.warning("Copied scene %s without %d files", scene_id, len(skipped))
        record.prompts.append(copy)
        record.updated_at = utc_now()

        try:
            write_record(project_record_path(directory), record.to_payload())
        except IOFailure:
            try:
                assets.release_scene(copy.id)
            except IOFailure as exc:
                logger.warning("Could not remove files copied for scene %s: %s", copy.id, exc)
            raise

        entry.refresh_from(record)
        self.workspace.try_save_index()
        self.workspace.notify(ChangeEvent.PROJECT_LIST_CHANGED, project_id=record.id)
        return copy

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _taken_slugs(self) -> set[str]:
        taken = self.workspace.index.slugs()
        projects_dir = self.workspace.projects_dir
        try:
            taken.update(path.name for path in projects_dir.iterdir())
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise IOFailure(f"Failed to list projects in '{projects_dir}': {exc}", path=projects_dir) from exc
        return taken

    def _create_directory(self, project_name: str) -> tuple[str, Path]:
        base = slugify(project_name, max_length=self.workspace.settings.slug_max_length)
        slug = unique_slug(base, self._taken_slugs())
        directory = self.workspace.project_dir(slug)
        try:
            directory.mkdir(parents=True)
            (directory / IMAGES_DIRNAME).mkdir()
            (directory / ATTACHMENTS_DIRNAME).mkdir()
        except OSError as exc:
            raise IOFailure(f"Failed to create project directory '{directory}': {exc}", path=directory) from exc
        return slug, directory

    def _write_new_record(self, directory: Path, record: ProjectRecord) -> None:
        try:
            write_record(project_record_path(directory), record.to_payload())
        except IOFailure:
            try:
                shutil.rmtree(directory)
            except OSError as exc:
                logger.warning("Could not remove incomplete project directory %s: %s", directory, exc)
            raise

    def _asset_manager(self, record: ProjectRecord, directory: Path) -> AssetManager:
        return AssetManager(
            record,
            directory / IMAGES_DIRNAME,
            directory / ATTACHMENTS_DIRNAME,
            max_attachments=self.workspace.settings.max_attachments,
        )

    def _load_record(self, entry: ProjectSummary) -> ProjectRecord:
        directory = self.workspace.project_dir(entry.slug)
        record_path = project_record_path(directory)
        try:
            payload = read_record(record_path)
        except IOFailure as exc:
            raise NotFoundError(f"Project record '{record_path}' cannot be read: {exc}") from exc

        if not isinstance(payload, dict):
            raise NotFoundError(f"Project record '{record_path}' is not a JSON object.")

        if payload.get("id") not in (None, "", entry.id):
            logger.warning(
                "Record %s has id %s but is indexed as %s; using the indexed id",
                record_path,
                payload.get("id"),
                entry.id,
            )
            payload["id"] = entry.id

        backfill_record_payload(payload, slug=entry.slug, reference=entry)

        try:
            return ProjectRecord.from_payload(payload)
        except PydanticValidationError as exc:
            raise NotFoundError(f"Project record '{record_path}' is invalid: {exc}") from exc


def _require_name(name: str | None) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Project name must not be empty.")
    return name.strip()


__all__ = ["DeleteResult", "ProjectStore"]
