"""Naming helpers: workspace layout, slugs, identifiers and timestamps."""

from __future__ import annotations

import re
import unicodedata
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Collection

PROJECTS_DIRNAME = "projects"
INDEX_FILENAME = "index.json"
PROJECT_FILENAME = "project.json"
IMAGES_DIRNAME = "images"
ATTACHMENTS_DIRNAME = "attachments"

DEFAULT_SLUG = "project"
DEFAULT_SLUG_MAX_LENGTH = 60

_NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]+")
_UNSAFE_FILENAME_PATTERN = re.compile(r"[^A-Za-z0-9.-]")


def projects_dir(root: Path) -> Path:
    return Path(root) / PROJECTS_DIRNAME


def index_path(root: Path) -> Path:
    return Path(root) / INDEX_FILENAME


def project_record_path(project_dir: Path) -> Path:
    return Path(project_dir) / PROJECT_FILENAME


def slugify(name: str, *, max_length: int = DEFAULT_SLUG_MAX_LENGTH) -> str:
    """Return a filesystem-safe slug derived from ``name``.

    Examples:
        "Mijn Café Film" -> "mijn-cafe-film"
        "  ***  " -> "project"
    """

    decomposed = unicodedata.normalize("NFKD", str(name))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    slug = _NON_ALNUM_PATTERN.sub("-", stripped.casefold()).strip("-")
    slug = slug[:max_length].strip("-")
    return slug or DEFAULT_SLUG


def unique_slug(base: str, taken: Collection[str]) -> str:
    """Append ``-2``, ``-3``, ... to ``base`` until it is not in ``taken``."""

    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def sanitize_filename(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9.-]`` with an underscore."""

    cleaned = _UNSAFE_FILENAME_PATTERN.sub("_", Path(str(name)).name)
    return cleaned or "file"


def file_extension(name: str | None) -> str:
    """Return the lowercase extension of ``name`` including the dot, or ``""``."""

    if not name:
        return ""
    return Path(name).suffix.lower()


def new_identifier() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalise_timestamp(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return normalise_timestamp(value).isoformat().replace("+00:00", "Z")


def timestamp_millis(value: datetime | None = None) -> int:
    moment = normalise_timestamp(value) if value is not None else utc_now()
    return int(moment.timestamp() * 1000)


__all__ = [
    "ATTACHMENTS_DIRNAME",
    "DEFAULT_SLUG",
    "DEFAULT_SLUG_MAX_LENGTH",
    "IMAGES_DIRNAME",
    "INDEX_FILENAME",
    "PROJECTS_DIRNAME",
    "PROJECT_FILENAME",
    "file_extension",
    "format_timestamp",
    "index_path",
    "new_identifier",
    "normalise_timestamp",
    "project_record_path",
    "projects_dir",
    "sanitize_filename",
    "slugify",
    "timestamp_millis",
    "unique_slug",
    "utc_now",
]
