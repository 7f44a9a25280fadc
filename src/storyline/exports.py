"""Export of scene images in storyboard order."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import IOFailure, NotFoundError
from .naming import file_extension
from .records import copy_file, remove_file
from .session import ProjectSession

logger = logging.getLogger(__name__)

EXPORT_DIR_PREFIX = "scene_images_"


@dataclass(frozen=True)
class ExportResult:
    directory: Path
    exported_count: int
    skipped: list[str] = field(default_factory=list)


def export_directory(session: ProjectSession) -> Path:
    return session.directory / f"{EXPORT_DIR_PREFIX}{session.slug}"


def export_scene_images(session: ProjectSession, *, target_dir: Path | None = None) -> ExportResult:
    """Copy every scene image to ``target_dir`` as ``1.png``, ``2.jpg``, ...

    Each file is named after the 1-based position of its scene, so scenes
    without an image leave a gap in the numbering. Numbered files left over
    from an earlier export are removed; other files in ``target_dir`` are
    kept. Images that cannot be copied are logged and left out.

    Raises:
        IOFailure: If the export directory cannot be created or listed.
    """

    directory = Path(target_dir) if target_dir is not None else export_directory(session)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IOFailure(f"Failed to prepare export directory '{directory}': {exc}", path=directory) from exc

    exported: list[str] = []
    skipped: list[str] = []
    for position, scene in enumerate(session.record.prompts, start=1):
        source = session.assets.image_path(scene)
        if source is None:
            continue
        target = directory / f"{position}{file_extension(source.name)}"
        try:
            copy_file(source, target)
        except (IOFailure, NotFoundError) as exc:
            logger.warning("Skipping image of scene %s during export: %s", scene.id, exc)
            skipped.append(source.name)
            continue
        exported.append(target.name)

    _remove_stale_exports(directory, keep=set(exported))
    logger.info("Exported %d scene images to %s", len(exported), directory)
    return ExportResult(directory=directory, exported_count=len(exported), skipped=skipped)


def _remove_stale_exports(directory: Path, *, keep: set[str]) -> None:
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise IOFailure(f"Failed to list export directory '{directory}': {exc}", path=directory) from exc
    for entry in entries:
        if entry.is_file() and entry.stem.isdigit() and entry.name not in keep:
            remove_file(entry)


__all__ = ["EXPORT_DIR_PREFIX", "ExportResult", "export_directory", "export_scene_images"]
