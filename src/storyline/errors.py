"""Exception hierarchy shared by the storyline store."""

from __future__ import annotations

from pathlib import Path


class StorylineError(RuntimeError):
    """Base class for every failure raised by the store."""


class ValidationError(StorylineError):
    """Raised when user supplied input is rejected before any state changes."""


class AttachmentLimitError(ValidationError):
    """Raised when a scene already holds the maximum number of attachments."""

    def __init__(self, scene_id: str, limit: int) -> None:
        super().__init__(
            f"Attachment limit reached: scene '{scene_id}' already has {limit} attachments."
        )
        self.scene_id = scene_id
        self.limit = limit


class NotFoundError(StorylineError):
    """Raised when a referenced project, scene, attachment or record is absent."""


class IOFailure(StorylineError):
    """Raised when reading, writing or deleting a file fails."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class PermissionDenied(StorylineError):
    """Raised when the workspace root is not writable."""

    def __init__(self, root: Path) -> None:
        super().__init__(f"Write access to workspace '{root}' was not granted.")
        self.root = root


__all__ = [
    "AttachmentLimitError",
    "IOFailure",
    "NotFoundError",
    "PermissionDenied",
    "StorylineError",
    "ValidationError",
]
