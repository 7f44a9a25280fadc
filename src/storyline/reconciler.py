"""Rebuild the cached project index from the project directories on disk.

The per-project ``project.json`` is authoritative; the index is a derived view.
:func:`reconcile` is the only code path that drops index entries whose
directories have disappeared, and it repairs records with missing required
fields in place.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Collection

from pydantic import ValidationError as PydanticValidationError

from .errors import IOFailure, NotFoundError
from .events import ChangeEvent
from .models import MAX_RATING, MIN_RATING, ProjectIndex, ProjectRecord, ProjectSummary
from .naming import format_timestamp, new_identifier, project_record_path, utc_now
from .records import read_record, write_record

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)


def reconcile(workspace: "Workspace") -> ProjectIndex:
    """Replace ``workspace.index`` with entries for every readable project.

    Directories whose record is missing or corrupt are skipped with a warning;
    they stay on disk untouched and reappear once their record is fixed.

    Raises:
        IOFailure: If the projects directory itself cannot be listed.
    """

    previous = {entry.slug: entry for entry in workspace.index.projects}
    summaries: list[ProjectSummary] = []
    seen_ids: set[str] = set()

    for directory in _project_directories(workspace.projects_dir):
        summary = _summarise_directory(directory, previous.get(directory.name), seen_ids)
        if summary is None:
            continue
        seen_ids.add(summary.id)
        summaries.append(summary)

    summaries.sort(key=lambda entry: entry.slug)
    summaries.sort(key=lambda entry: entry.updated_at, reverse=True)

    workspace.index = ProjectIndex(version=workspace.index.version, projects=summaries)
    workspace.try_save_index()
    workspace.notify(ChangeEvent.PROJECT_LIST_CHANGED, count=len(summaries))
    logger.debug("Reconciled index with %d projects", len(summaries))
    return workspace.index


def _project_directories(root: Path) -> list[Path]:
    try:
        entries = sorted(root.iterdir(), key=lambda path: path.name)
    except OSError as exc:
        raise IOFailure(f"Failed to list projects in '{root}': {exc}", path=root) from exc
    return [
        entry for entry in entries if entry.is_dir() and not entry.name.startswith(".")
    ]


def _summarise_directory(
    directory: Path,
    reference: ProjectSummary | None,
    seen_ids: Collection[str],
) -> ProjectSummary | None:
    slug = directory.name
    record_path = project_record_path(directory)

    try:
        payload = read_record(record_path)
    except (NotFoundError, IOFailure) as exc:
        logger.warning("Skipping project directory '%s' during reconcile: %s", slug, exc)
        return None

    if not isinstance(payload, dict):
        logger.warning(
            "Skipping project directory '%s' during reconcile: record is not an object",
            slug,
        )
        return None

    repaired = backfill_record_payload(payload, slug=slug, reference=reference, taken_ids=seen_ids)

    try:
        record = ProjectRecord.from_payload(payload)
    except PydanticValidationError as exc:
        logger.warning("Skipping project directory '%s' during reconcile: %s", slug, exc)
        return None

    if repaired:
        logger.info("Repaired %s in project '%s'", ", ".join(repaired), slug)
        try:
            write_record(record_path, payload)
        except IOFailure as exc:
            logger.warning("Could not persist repaired record for '%s': %s", slug, exc)

    return ProjectSummary.from_record(record, slug)


def backfill_record_payload(
    payload: dict[str, Any],
    *,
    slug: str,
    reference: ProjectSummary | None = None,
    taken_ids: Collection[str] = (),
) -> list[str]:
    """Fill missing required fields of a raw record payload in place.

    Header values come from ``reference`` (the previous index entry) when
    available, else from the directory name or the current time. Scenes get
    defaults for missing or malformed fields; non-object scenes, unusable
    attachments and unusable transitions are dropped.

    Returns:
        The camelCase names of the fields that were filled in.
    """

    repaired: list[str] = []

    identifier = payload.get("id")
    if not isinstance(identifier, str) or _is_blank(identifier) or identifier in taken_ids:
        if isinstance(identifier, str) and not _is_blank(identifier):
            logger.warning("Project '%s' reuses id %s; assigning a new id", slug, identifier)
        if reference is not None and reference.id not in taken_ids:
            payload["id"] = reference.id
        else:
            payload["id"] = new_identifier()
        repaired.append("id")

    if _is_blank(payload.get("projectName")):
        payload["projectName"] = reference.project_name if reference else slug
        repaired.append("projectName")

    if _is_blank(payload.get("createdAt")):
        payload["createdAt"] = format_timestamp(
            reference.created_at if reference else utc_now()
        )
        repaired.append("createdAt")

    if _is_blank(payload.get("updatedAt")):
        payload["updatedAt"] = (
            format_timestamp(reference.updated_at) if reference else payload["createdAt"]
        )
        repaired.append("updatedAt")

    for key, fallback in (
        ("videoGenerator", reference.video_generator if reference else ""),
        ("notes", reference.notes if reference else ""),
    ):
        if not isinstance(payload.get(key), str):
            payload[key] = fallback
            repaired.append(key)

    if not isinstance(payload.get("prompts"), list):
        payload["prompts"] = []
        repaired.append("prompts")

    before = copy.deepcopy(payload["prompts"])
    payload["prompts"] = [
        _backfill_scene(scene) for scene in payload["prompts"] if isinstance(scene, dict)
    ]
    if payload["prompts"] != before and "prompts" not in repaired:
        repaired.append("prompts")

    transitions = _valid_transitions(payload.get("transitions"))
    if transitions != payload.get("transitions"):
        payload["transitions"] = transitions
        repaired.append("transitions")

    return repaired


def _backfill_scene(scene: dict[str, Any]) -> dict[str, Any]:
    if _is_blank(scene.get("id")) or not isinstance(scene.get("id"), str):
        scene["id"] = new_identifier()
    for key in ("text", "translation"):
        if not isinstance(scene.get(key), str):
            scene[key] = ""
    rating = scene.get("rating")
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        scene["rating"] = None
    for key in ("imagePath", "imageOriginalName", "imageType"):
        if not isinstance(scene.get(key), str) or not scene[key]:
            scene[key] = None
    attachments = scene.get("attachments")
    if not isinstance(attachments, list):
        scene["attachments"] = []
    else:
        scene["attachments"] = [item for item in attachments if _is_usable_attachment(item)]
    return scene


def _is_usable_attachment(item: object) -> bool:
    if not isinstance(item, dict):
        return False
    filename = item.get("filename")
    if not isinstance(filename, str) or _is_blank(filename):
        return False
    size = item.get("size", 0)
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        item["size"] = 0
    for key in ("originalName", "type"):
        if key in item and not isinstance(item[key], str):
            item[key] = ""
    return True


def _valid_transitions(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    kept = []
    for item in value:
        if not isinstance(item, dict):
            continue
        index = item.get("sceneIndex")
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            continue
        if not isinstance(item.get("description"), str) or _is_blank(item["description"]):
            continue
        kept.append(item)
    return kept


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


__all__ = ["backfill_record_payload", "reconcile"]
