"""Pydantic models describing the records persisted by the store.

The on-disk JSON uses camelCase keys (``projectName``, ``imagePath``, ...) while
the Python attributes are snake_case. Unknown keys found on scenes and project
records are kept so older or newer files survive a load/save cycle unchanged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .naming import format_timestamp, new_identifier, normalise_timestamp, utc_now

INDEX_VERSION = 1
MIN_RATING = 1
MAX_RATING = 5


class _RecordModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-serialisable, camelCase representation."""

        return self.model_dump(mode="json", by_alias=True)


class Attachment(_RecordModel):
    """Metadata for one file stored in a project's attachments directory."""

    filename: str = Field(..., min_length=1)
    original_name: str = ""
    type: str = ""
    size: int = Field(default=0, ge=0)
    added_at: datetime = Field(default_factory=utc_now)

    @field_validator("added_at")
    @classmethod
    def _normalise_added_at(cls, value: datetime) -> datetime:
        return normalise_timestamp(value)

    @field_serializer("added_at")
    def _serialise_added_at(self, value: datetime) -> str:
        return format_timestamp(value)


class Scene(_RecordModel):
    """One ordered unit of a project."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=new_identifier, min_length=1)
    text: str = ""
    translation: str = ""
    image_path: str | None = None
    image_original_name: str | None = None
    image_type: str | None = None
    rating: int | None = Field(default=None, ge=MIN_RATING, le=MAX_RATING)
    attachments: list[Attachment] = Field(default_factory=list)

    @property
    def has_image(self) -> bool:
        return self.image_path is not None

    def find_attachment(self, filename: str) -> Attachment | None:
        for attachment in self.attachments:
            if attachment.filename == filename:
                return attachment
        return None


class Transition(_RecordModel):
    """Annotation on the gap following the scene at ``scene_index``."""

    scene_index: int = Field(..., ge=0)
    description: str = Field(..., min_length=1)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("description")
    @classmethod
    def _validate_description(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Transition description must be a non-empty string.")
        return trimmed

    @field_validator("updated_at")
    @classmethod
    def _normalise_updated_at(cls, value: datetime) -> datetime:
        return normalise_timestamp(value)

    @field_serializer("updated_at")
    def _serialise_updated_at(self, value: datetime) -> str:
        return format_timestamp(value)


class ProjectRecord(_RecordModel):
    """Authoritative per-project document stored as ``project.json``."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=new_identifier, min_length=1)
    project_name: str = Field(..., min_length=1)
    video_generator: str = ""
    notes: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    prompts: list[Scene] = Field(default_factory=list)
    transitions: list[Transition] = Field(default_factory=list)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalise_timestamps(cls, value: datetime) -> datetime:
        return normalise_timestamp(value)

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return format_timestamp(value)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ProjectRecord":
        """Build a record from its stored payload representation."""

        return cls.model_validate(dict(payload))

    def find_scene(self, scene_id: str) -> Scene | None:
        for scene in self.prompts:
            if scene.id == scene_id:
                return scene
        return None


class ProjectSummary(_RecordModel):
    """Index entry derived entirely from a :class:`ProjectRecord`."""

    id: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    project_name: str
    created_at: datetime
    updated_at: datetime
    prompt_count: int = Field(default=0, ge=0)
    video_generator: str = ""
    notes: str = ""

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalise_timestamps(cls, value: datetime) -> datetime:
        return normalise_timestamp(value)

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return format_timestamp(value)

    @classmethod
    def from_record(cls, record: ProjectRecord, slug: str) -> "ProjectSummary":
        return cls(
            id=record.id,
            slug=slug,
            project_name=record.project_name,
            created_at=record.created_at,
            updated_at=record.updated_at,
            prompt_count=len(record.prompts),
            video_generator=record.video_generator,
            notes=record.notes,
        )

    def refresh_from(self, record: ProjectRecord) -> None:
        """Copy the derived fields of ``record`` onto this entry."""

        self.project_name = record.project_name
        self.created_at = record.created_at
        self.updated_at = record.updated_at
        self.prompt_count = len(record.prompts)
        self.video_generator = record.video_generator
        self.notes = record.notes


class ProjectIndex(_RecordModel):
    """Cached, rebuildable projection of every project's metadata."""

    version: int = INDEX_VERSION
    projects: list[ProjectSummary] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ProjectIndex":
        projects = payload.get("projects", [])
        if not isinstance(projects, list):
            raise ValueError("Invalid index payload: projects must be a list")
        return cls.model_validate({"version": INDEX_VERSION, "projects": projects})

    def find_by_id(self, project_id: str) -> ProjectSummary | None:
        for entry in self.projects:
            if entry.id == project_id:
                return entry
        return None

    def find_by_slug(self, slug: str) -> ProjectSummary | None:
        for entry in self.projects:
            if entry.slug == slug:
                return entry
        return None

    def upsert(self, summary: ProjectSummary) -> None:
        for position, entry in enumerate(self.projects):
            if entry.id == summary.id:
                self.projects[position] = summary
                return
        self.projects.append(summary)

    def remove(self, project_id: str) -> ProjectSummary | None:
        for position, entry in enumerate(self.projects):
            if entry.id == project_id:
                return self.projects.pop(position)
        return None

    def slugs(self) -> set[str]:
        return {entry.slug for entry in self.projects}


__all__ = [
    "Attachment",
    "INDEX_VERSION",
    "MAX_RATING",
    "MIN_RATING",
    "ProjectIndex",
    "ProjectRecord",
    "ProjectSummary",
    "Scene",
    "Transition",
]
