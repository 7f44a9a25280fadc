"""Ordered scene operations on an open project."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

from .errors import NotFoundError, ValidationError
from .models import MAX_RATING, MIN_RATING, Scene
from .naming import new_identifier

if TYPE_CHECKING:
    from .session import ProjectSession

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("text", "translation", "rating")


@dataclass(frozen=True)
class SceneStats:
    total: int
    with_image: int
    with_attachments: int
    with_text: int
    with_translation: int
    rated: int
    attachment_count: int


class SceneCollection:
    """Mutations of ``session.record.prompts``.

    Every effective change calls ``session.touch()``. Transition positions are
    not adjusted here; callers pass the returned positions to the session's
    :class:`~storyline.transitions.TransitionLedger`.
    """

    def __init__(self, session: "ProjectSession") -> None:
        self._session = session

    @property
    def _scenes(self) -> list[Scene]:
        return self._session.record.prompts

    def __len__(self) -> int:
        return len(self._scenes)

    def __iter__(self) -> Iterator[Scene]:
        return iter(list(self._scenes))

    def ids(self) -> list[str]:
        return [scene.id for scene in self._scenes]

    def get(self, scene_id: str) -> Scene:
        return self._scenes[self.index_of(scene_id)]

    def index_of(self, scene_id: str) -> int:
        for position, scene in enumerate(self._scenes):
            if scene.id == scene_id:
                return position
        raise NotFoundError(f"Scene '{scene_id}' does not exist.")

    def append(self) -> Scene:
        scene = Scene(id=new_identifier())
        self._scenes.append(scene)
        self._session.touch(scene.id)
        return scene

    def delete(self, scene_id: str) -> int:
        """Remove the scene and its files, returning its former position.

        Raises:
            NotFoundError: If the scene does not exist.
            IOFailure: If one of its files cannot be deleted. The scene stays
                in the collection.
        """

        position = self.index_of(scene_id)
        self._session.assets.release_scene(scene_id)
        del self._scenes[position]
        self._session.touch(scene_id)
        return position

    def move_by_offset(self, scene_id: str, offset: int) -> tuple[int, int] | None:
        """Move the scene ``offset`` positions; ``None`` at the bounds."""

        current = self.index_of(scene_id)
        target = current + offset
        if offset == 0 or target < 0 or target >= len(self._scenes):
            return None
        scene = self._scenes.pop(current)
        self._scenes.insert(target, scene)
        self._session.touch(scene_id)
        return current, target

    def move_to_index(self, scene_id: str, target: int) -> tuple[int, int] | None:
        """Reinsert the scene at ``target``, clamped to ``[0, len]``.

        ``target`` addresses the list with the scene already taken out, so a
        large value means "after the last scene".

        Returns:
            ``(from_index, final_index)``, or ``None`` when nothing moved.
        """

        current = self.index_of(scene_id)
        final = max(0, min(target, len(self._scenes) - 1))
        if final == current:
            return None
        scene = self._scenes.pop(current)
        self._scenes.insert(final, scene)
        self._session.touch(scene_id)
        return current, final

    def update_field(self, scene_id: str, field: str, value: Any) -> bool:
        """Set ``text``, ``translation`` or ``rating`` on a scene.

        Returns:
            ``False`` when the stored value already equals ``value``.
        """

        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Scene field '{field}' cannot be edited.")
        scene = self.get(scene_id)
        value = _coerce_field(field, value)
        if getattr(scene, field) == value:
            return False
        setattr(scene, field, value)
        self._session.touch(scene_id)
        return True

    def duplicate(self, scene_id: str) -> Scene:
        """Insert a copy of the scene directly after it.

        The copy gets a fresh id and its own copies of the image and
        attachments; files that cannot be copied are left out.
        """

        position = self.index_of(scene_id)
        source = self._scenes[position]
        copy = source.model_copy(deep=True, update={"id": new_identifier()})
        skipped = self._session.assets.copy_scene_assets(source, self._session.assets, copy)
        if skipped:
            logger.warning("Duplicated scene %s without %d files", scene_id, len(skipped))
        self._scenes.insert(position + 1, copy)
        self._session.touch(copy.id)
        return copy

    def stats(self) -> SceneStats:
        scenes = self._scenes
        return SceneStats(
            total=len(scenes),
            with_image=sum(1 for scene in scenes if scene.image_path),
            with_attachments=sum(1 for scene in scenes if scene.attachments),
            with_text=sum(1 for scene in scenes if scene.text.strip()),
            with_translation=sum(1 for scene in scenes if scene.translation.strip()),
            rated=sum(1 for scene in scenes if scene.rating is not None),
            attachment_count=sum(len(scene.attachments) for scene in scenes),
        )


def _coerce_field(field: str, value: Any) -> Any:
    if field == "rating":
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError("Rating must be an integer or empty.")
        if not MIN_RATING <= value <= MAX_RATING:
            raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}.")
        return value
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"Scene field '{field}' must be text.")
    return value


__all__ = ["EDITABLE_FIELDS", "SceneCollection", "SceneStats"]
