"""Sparse, position-addressed annotations between consecutive scenes."""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from .errors import ValidationError
from .models import Transition
from .naming import utc_now

logger = logging.getLogger(__name__)


class TransitionLedger:
    """Transitions keyed by the index of the scene they follow.

    The ledger edits ``entries`` in place so it can operate directly on a
    record's ``transitions`` list. Positions are plain integers; callers must
    invoke :meth:`reindex`, :meth:`insert_scene` or :meth:`remove_scene` after
    every structural change to the scene order.
    """

    def __init__(
        self,
        entries: list[Transition] | None = None,
        *,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._entries = entries if entries is not None else []
        self._on_change = on_change
        self._sort()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Transition]:
        return iter(list(self._entries))

    def indices(self) -> list[int]:
        return [entry.scene_index for entry in self._entries]

    def get(self, index: int) -> Transition | None:
        for entry in self._entries:
            if entry.scene_index == index:
                return entry
        return None

    def set(self, index: int, description: str | None) -> Transition | None:
        """Upsert the transition after scene ``index``.

        A blank ``description`` deletes the entry instead.

        Returns:
            The stored transition, or ``None`` when the entry was cleared.
        """

        if index < 0:
            raise ValidationError(f"Transition index must be non-negative, got {index}.")

        text = (description or "").strip()
        existing = self.get(index)
        if not text:
            if existing is None:
                return None
            self._entries.remove(existing)
            self._changed()
            return None

        if existing is not None and existing.description == text:
            return existing

        transition = Transition(scene_index=index, description=text, updated_at=utc_now())
        if existing is not None:
            self._entries[self._entries.index(existing)] = transition
        else:
            self._entries.append(transition)
            self._sort()
        self._changed()
        return transition

    def reindex(self, from_index: int, to_index: int) -> bool:
        """Follow a scene moved from ``from_index`` to ``to_index``.

        The transition at ``from_index`` moves to ``to_index``. Moving down,
        entries in ``(from_index, to_index]`` shift up by one position; moving
        up, entries in ``[to_index, from_index)`` shift down by one.
        """

        if from_index == to_index:
            return False

        changed = False
        for position, entry in enumerate(self._entries):
            current = entry.scene_index
            if current == from_index:
                target = to_index
            elif from_index < to_index and from_index < current <= to_index:
                target = current - 1
            elif from_index > to_index and to_index <= current < from_index:
                target = current + 1
            else:
                continue
            self._entries[position] = entry.model_copy(update={"scene_index": target})
            changed = True

        if changed:
            self._sort()
            self._changed()
        return changed

    def cleanup(self, total_scenes: int) -> int:
        """Drop entries outside ``[0, total_scenes - 2]`` and return how many."""

        kept = [entry for entry in self._entries if 0 <= entry.scene_index < total_scenes - 1]
        dropped = len(self._entries) - len(kept)
        if dropped:
            logger.debug("Dropping %d transitions beyond %d scenes", dropped, total_scenes)
            self._entries[:] = kept
            self._changed()
        return dropped

    def insert_scene(self, position: int) -> bool:
        """Shift entries at or after ``position`` to make room for a new scene."""

        changed = False
        for offset, entry in enumerate(self._entries):
            if entry.scene_index >= position:
                self._entries[offset] = entry.model_copy(
                    update={"scene_index": entry.scene_index + 1}
                )
                changed = True
        if changed:
            self._changed()
        return changed

    def remove_scene(self, position: int, total_before: int) -> None:
        """Account for the scene at ``position`` being deleted.

        The transition that followed the removed scene is dropped and every
        later transition shifts down by one.
        """

        last = total_before - 1
        self.reindex(position, last)
        self.cleanup(last)

    def _sort(self) -> None:
        self._entries.sort(key=lambda entry: entry.scene_index)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()


__all__ = ["TransitionLedger"]
