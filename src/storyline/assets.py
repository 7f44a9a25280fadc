"""Binary assets attached to scenes: primary images and attachments.

The :class:`AssetManager` owns every file below a project's ``images/`` and
``attachments/`` directories together with the preview handles issued for
them. Other components ask it to create, replace, copy or delete files instead
of touching those directories themselves.
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

from .errors import (
    AttachmentLimitError,
    IOFailure,
    NotFoundError,
    StorylineError,
    ValidationError,
)
from .models import Attachment, ProjectRecord, Scene
from .naming import file_extension, sanitize_filename, timestamp_millis, utc_now
from .records import copy_file, read_bytes, remove_file, write_record
from .settings import DEFAULT_MAX_ATTACHMENTS

logger = logging.getLogger(__name__)

ATTACHMENT_TYPE_PREFIXES = ("image/", "video/", "audio/")
ATTACHMENT_TEXT_TYPE = "text/plain"
ATTACHMENT_EXTENSIONS = (".wav", ".mp3", ".txt")

PreviewKey = tuple[str, "str | None"]


@dataclass(frozen=True)
class IncomingFile:
    """A file offered by the user for storage as an image or attachment."""

    name: str
    content: bytes
    content_type: str | None = None

    @classmethod
    def from_path(cls, path: Path, *, content_type: str | None = None) -> "IncomingFile":
        source = Path(path)
        return cls(name=source.name, content=read_bytes(source), content_type=content_type)

    @property
    def effective_type(self) -> str:
        """Declared content type, else a best-effort guess from the name."""

        if self.content_type:
            return self.content_type
        guessed, _ = mimetypes.guess_type(self.name)
        return guessed or ""

    @property
    def size(self) -> int:
        return len(self.content)


def is_image_file(file: IncomingFile) -> bool:
    return file.effective_type.startswith("image/")


def is_supported_attachment(file: IncomingFile) -> bool:
    """Return ``True`` for images, videos, audio and plain text files."""

    content_type = file.effective_type
    if content_type.startswith(ATTACHMENT_TYPE_PREFIXES) or content_type == ATTACHMENT_TEXT_TYPE:
        return True
    return file.name.lower().endswith(ATTACHMENT_EXTENSIONS)


class PreviewHandle:
    """Transient, revocable access to an asset for display purposes."""

    def __init__(self, key: PreviewKey, path: Path, content_type: str | None) -> None:
        self.key = key
        self.path = path
        self.content_type = content_type
        self._revoked = False

    @property
    def revoked(self) -> bool:
        return self._revoked

    def revoke(self) -> None:
        self._revoked = True

    def read(self) -> bytes:
        if self._revoked:
            raise StorylineError(f"Preview handle for '{self.path.name}' has been revoked.")
        return read_bytes(self.path)


class PreviewCache:
    """One live :class:`PreviewHandle` per key.

    Acquiring a handle for a key always revokes the handle previously issued
    for that key, so no handle is ever dropped without being revoked.
    """

    def __init__(self) -> None:
        self._handles: dict[PreviewKey, PreviewHandle] = {}

    def acquire(
        self, key: PreviewKey, path: Path, content_type: str | None = None
    ) -> PreviewHandle:
        self.release(key)
        handle = PreviewHandle(key, path, content_type)
        self._handles[key] = handle
        return handle

    def get(self, key: PreviewKey) -> PreviewHandle | None:
        return self._handles.get(key)

    def release(self, key: PreviewKey) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.revoke()
        return True

    def release_scene(self, scene_id: str) -> int:
        keys = [key for key in self._handles if key[0] == scene_id]
        for key in keys:
            self.release(key)
        return len(keys)

    def clear(self) -> None:
        for key in list(self._handles):
            self.release(key)

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[PreviewHandle]:
        return iter(list(self._handles.values()))


class AssetManager:
    """Physical file lifecycle for one open project's scene assets."""

    def __init__(
        self,
        record: ProjectRecord,
        images_dir: Path,
        attachments_dir: Path,
        *,
        max_attachments: int = DEFAULT_MAX_ATTACHMENTS,
        on_change: Callable[[str], None] | None = None,
    ) -> None:
        self.record = record
        self.images_dir = Path(images_dir)
        self.attachments_dir = Path(attachments_dir)
        self.max_attachments = max_attachments
        self.previews = PreviewCache()
        self._on_change = on_change

    # ------------------------------------------------------------------
    # Primary image
    # ------------------------------------------------------------------
    def image_path(self, scene: Scene) -> Path | None:
        if scene.image_path is None:
            return None
        return self.images_dir / scene.image_path

    def assign_image(self, scene_id: str, file: IncomingFile) -> Scene:
        """Store ``file`` as the primary image of the scene.

        An existing image is deleted first; if that fails nothing changes and
        the error propagates.

        Raises:
            NotFoundError: If the scene does not exist.
            ValidationError: If ``file`` is not an image.
            IOFailure: If the old image cannot be deleted or the new one written.
        """

        scene = self._scene(scene_id)
        if not is_image_file(file):
            raise ValidationError(f"'{file.name}' is not an image file.")

        _ensure_directory(self.images_dir)
        replaced = scene.image_path is not None
        if replaced:
            self._unlink_image(scene)

        filename = f"{scene.id}{file_extension(file.name)}"
        try:
            write_record(self.images_dir / filename, file.content)
        except IOFailure:
            if replaced:
                self._changed(scene.id)
            raise

        scene.image_path = filename
        scene.image_original_name = file.name
        scene.image_type = file.effective_type
        self.previews.release((scene.id, None))
        self._changed(scene.id)
        return scene

    def remove_image(self, scene_id: str) -> bool:
        """Delete the scene's image file and clear its image fields.

        Returns:
            ``False`` when the scene had no image.
        """

        scene = self._scene(scene_id)
        if scene.image_path is None:
            return False
        self._unlink_image(scene)
        self._changed(scene.id)
        return True

    def image_preview(self, scene_id: str) -> PreviewHandle:
        scene = self._scene(scene_id)
        path = self.image_path(scene)
        if path is None:
            raise NotFoundError(f"Scene '{scene_id}' has no image.")
        if not path.is_file():
            raise NotFoundError(f"Image '{scene.image_path}' is missing from '{self.images_dir}'.")
        return self.previews.acquire((scene.id, None), path, scene.image_type)

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------
    def attachment_path(self, filename: str) -> Path:
        return self.attachments_dir / filename

    def add_attachments(self, scene_id: str, files: Iterable[IncomingFile]) -> list[Attachment]:
        """Store ``files`` as attachments of the scene.

        Unsupported files are left out. When the remaining files do not fit,
        only the leading ones up to the limit are stored.

        Raises:
            AttachmentLimitError: If the scene is already at the limit.
            ValidationError: If no file is an image, video, audio or text file.
            IOFailure: If a file cannot be written; files written by this call
                are removed again.
        """

        scene = self._scene(scene_id)
        batch = list(files)
        if not batch:
            return []

        if len(scene.attachments) >= self.max_attachments:
            raise AttachmentLimitError(scene.id, self.max_attachments)

        supported = [file for file in batch if is_supported_attachment(file)]
        rejected = [file.name for file in batch if not is_supported_attachment(file)]
        if not supported:
            raise ValidationError(
                "No valid attachments in: " + ", ".join(file.name for file in batch)
                + ". Only images, videos, audio and .txt files are allowed."
            )
        if rejected:
            logger.info("Scene %s: ignoring unsupported attachments %s", scene.id, ", ".join(rejected))

        admitted = supported[: self.max_attachments - len(scene.attachments)]
        if len(admitted) < len(supported):
            logger.info(
                "Scene %s: storing %d of %d attachments, limit is %d",
                scene.id,
                len(admitted),
                len(supported),
                self.max_attachments,
            )

        _ensure_directory(self.attachments_dir)
        taken = {attachment.filename for attachment in scene.attachments}
        stamp = timestamp_millis()
        written: list[Path] = []
        created: list[Attachment] = []

        for file in admitted:
            safe_name = sanitize_filename(file.name)
            filename = f"{scene.id}_{stamp}_{safe_name}"
            while filename in taken or self.attachment_path(filename).exists():
                stamp += 1
                filename = f"{scene.id}_{stamp}_{safe_name}"
            taken.add(filename)

            target = self.attachment_path(filename)
            try:
                write_record(target, file.content)
            except IOFailure:
                self._discard(written)
                raise
            written.append(target)
            created.append(
                Attachment(
                    filename=filename,
                    original_name=file.name,
                    type=file.effective_type,
                    size=file.size,
                    added_at=utc_now(),
                )
            )

        scene.attachments.extend(created)
        self._changed(scene.id)
        return created

    def delete_attachment(self, scene_id: str, filename: str) -> Attachment:
        scene = self._scene(scene_id)
        attachment = scene.find_attachment(filename)
        if attachment is None:
            raise NotFoundError(f"Scene '{scene_id}' has no attachment '{filename}'.")
        self._unlink_attachment(scene, attachment)
        self._changed(scene.id)
        return attachment

    def attachment_preview(self, scene_id: str, filename: str) -> PreviewHandle:
        scene = self._scene(scene_id)
        attachment = scene.find_attachment(filename)
        if attachment is None:
            raise NotFoundError(f"Scene '{scene_id}' has no attachment '{filename}'.")
        path = self.attachment_path(attachment.filename)
        if not path.is_file():
            raise NotFoundError(f"Attachment '{filename}' is missing from '{self.attachments_dir}'.")
        return self.previews.acquire((scene.id, attachment.filename), path, attachment.type)

    # ------------------------------------------------------------------
    # Whole-scene operations
    # ------------------------------------------------------------------
    def release_scene(self, scene_id: str) -> None:
        """Delete every file owned by the scene and revoke its preview handles.

        Raises:
            IOFailure: If a file cannot be deleted. Files already deleted stay
                deleted and their references are cleared from the scene.
        """

        scene = self._scene(scene_id)
        if scene.image_path is not None:
            self._unlink_image(scene)
        for attachment in list(scene.attachments):
            self._unlink_attachment(scene, attachment)
        self.previews.release_scene(scene.id)

    def copy_scene_assets(
        self, source_scene: Scene, source: "AssetManager", target_scene: Scene
    ) -> list[str]:
        """Copy the image and attachments of ``source_scene`` onto ``target_scene``.

        New filenames are derived from ``target_scene.id``. A file that cannot
        be copied is dropped from the target scene and logged.

        Returns:
            The names of the source files that were skipped.
        """

        skipped: list[str] = []
        target_scene.image_path = None
        target_scene.attachments = []

        if source_scene.image_path is not None:
            filename = f"{target_scene.id}{file_extension(source_scene.image_path)}"
            try:
                _ensure_directory(self.images_dir)
                copy_file(source.images_dir / source_scene.image_path, self.images_dir / filename)
            except (IOFailure, NotFoundError) as exc:
                logger.warning("Skipping image %s while copying scene: %s", source_scene.image_path, exc)
                skipped.append(source_scene.image_path)
                target_scene.image_original_name = None
                target_scene.image_type = None
            else:
                target_scene.image_path = filename
                target_scene.image_original_name = source_scene.image_original_name
                target_scene.image_type = source_scene.image_type

        taken: set[str] = set()
        for attachment in source_scene.attachments:
            filename = self._unique_attachment_name(
                _rename_for_scene(attachment.filename, source_scene.id, target_scene.id), taken
            )
            try:
                _ensure_directory(self.attachments_dir)
                copy_file(
                    source.attachment_path(attachment.filename), self.attachment_path(filename)
                )
            except (IOFailure, NotFoundError) as exc:
                logger.warning("Skipping attachment %s while copying scene: %s", attachment.filename, exc)
                skipped.append(attachment.filename)
                continue
            taken.add(filename)
            target_scene.attachments.append(attachment.model_copy(update={"filename": filename}))

        return skipped

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _scene(self, scene_id: str) -> Scene:
        scene = self.record.find_scene(scene_id)
        if scene is None:
            raise NotFoundError(f"Scene '{scene_id}' does not exist.")
        return scene

    def _unlink_image(self, scene: Scene) -> None:
        path = self.image_path(scene)
        if path is not None and not remove_file(path):
            logger.warning("Image %s was already missing for scene %s", path.name, scene.id)
        scene.image_path = None
        scene.image_original_name = None
        scene.image_type = None
        self.previews.release((scene.id, None))

    def _unlink_attachment(self, scene: Scene, attachment: Attachment) -> None:
        path = self.attachment_path(attachment.filename)
        if not remove_file(path):
            logger.warning("Attachment %s was already missing for scene %s", path.name, scene.id)
        scene.attachments = [
            entry for entry in scene.attachments if entry.filename != attachment.filename
        ]
        self.previews.release((scene.id, attachment.filename))

    def _unique_attachment_name(self, filename: str, taken: set[str]) -> str:
        candidate = filename
        counter = 2
        while candidate in taken or self.attachment_path(candidate).exists():
            candidate = f"{counter}_{filename}"
            counter += 1
        return candidate

    def _discard(self, paths: Iterable[Path]) -> None:
        for path in paths:
            try:
                remove_file(path)
            except IOFailure as exc:
                logger.warning("Could not remove partially written attachment %s: %s", path, exc)

    def _changed(self, scene_id: str) -> None:
        if self._on_change is not None:
            self._on_change(scene_id)


def _ensure_directory(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IOFailure(f"Failed to create directory '{path}': {exc}", path=path) from exc


def _rename_for_scene(filename: str, old_scene_id: str, new_scene_id: str) -> str:
    prefix = f"{old_scene_id}_"
    if filename.startswith(prefix):
        return f"{new_scene_id}_{filename[len(prefix):]}"
    return f"{new_scene_id}_{filename}"


__all__ = [
    "ATTACHMENT_EXTENSIONS",
    "AssetManager",
    "IncomingFile",
    "PreviewCache",
    "PreviewHandle",
    "is_image_file",
    "is_supported_attachment",
]
