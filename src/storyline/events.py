"""Change notifications delivered to the presentation layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)


class ChangeEvent(str, Enum):
    """Kinds of state change a consumer may want to re-render on."""

    PROJECT_LIST_CHANGED = "project-list-changed"
    CURRENT_PROJECT_CHANGED = "current-project-changed"
    SCENE_CHANGED = "scene-changed"
    PROJECT_SAVED = "project-saved"


@dataclass(frozen=True)
class ChangeNotice:
    event: ChangeEvent
    details: Mapping[str, Any] = field(default_factory=dict)


Listener = Callable[[ChangeNotice], None]


class ChangeNotifier:
    """Synchronous fan-out of :class:`ChangeNotice` objects to listeners."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, event: ChangeEvent, **details: Any) -> None:
        notice = ChangeNotice(event=event, details=details)
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception:
                logger.exception("Change listener failed while handling %s", event.value)


__all__ = ["ChangeEvent", "ChangeNotice", "ChangeNotifier", "Listener"]
