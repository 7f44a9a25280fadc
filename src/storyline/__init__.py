"""Directory-backed storage for storyline projects, scenes and their assets."""

from .assets import AssetManager, IncomingFile, PreviewCache, PreviewHandle
from .errors import (
    AttachmentLimitError,
    IOFailure,
    NotFoundError,
    PermissionDenied,
    StorylineError,
    ValidationError,
)
from .events import ChangeEvent, ChangeNotice, ChangeNotifier
from .exports import ExportResult, export_scene_images
from .models import (
    Attachment,
    ProjectIndex,
    ProjectRecord,
    ProjectSummary,
    Scene,
    Transition,
)
from .preferences import (
    AllowAllPermissionGate,
    FilePreferenceStore,
    FilesystemPermissionGate,
    InMemoryPreferenceStore,
    PermissionGate,
    PreferenceStore,
)
from .projects import DeleteResult, ProjectStore
from .records import read_record, write_record
from .scenes import SceneCollection, SceneStats
from .session import ProjectSession
from .settings import StorylineSettings, configure_logging
from .transitions import TransitionLedger
from .workspace import Workspace

__all__ = [
    "Workspace",
    "ProjectStore",
    "ProjectSession",
    "DeleteResult",
    "SceneCollection",
    "SceneStats",
    "TransitionLedger",
    "AssetManager",
    "IncomingFile",
    "PreviewCache",
    "PreviewHandle",
    "ExportResult",
    "export_scene_images",
    "Attachment",
    "Scene",
    "Transition",
    "ProjectRecord",
    "ProjectSummary",
    "ProjectIndex",
    "read_record",
    "write_record",
    "ChangeEvent",
    "ChangeNotice",
    "ChangeNotifier",
    "PreferenceStore",
    "InMemoryPreferenceStore",
    "FilePreferenceStore",
    "PermissionGate",
    "FilesystemPermissionGate",
    "AllowAllPermissionGate",
    "StorylineSettings",
    "configure_logging",
    "StorylineError",
    "ValidationError",
    "AttachmentLimitError",
    "NotFoundError",
    "IOFailure",
    "PermissionDenied",
]
