"""Configuration helpers for the storyline store."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .naming import DEFAULT_SLUG_MAX_LENGTH

DEFAULT_MAX_ATTACHMENTS = 8
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _read_env(source: Mapping[str, str], name: str) -> str | None:
    """Return the stripped value of ``name``, or ``None`` when unset or blank."""

    value = source.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _read_positive_int(source: Mapping[str, str], name: str, default: int) -> int:
    value = _read_env(source, name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a positive integer.") from exc
    if parsed < 1:
        raise ValueError(f"{name} must be greater than zero.")
    return parsed


@dataclass(frozen=True)
class StorylineSettings:
    """Runtime settings for the store.

    Values are read from environment variables so the CLI and embedding
    applications can be configured without code changes. Empty strings are
    treated as if the variable was unset.
    """

    root: Path | None = None
    preferences_path: Path | None = None
    max_attachments: int = DEFAULT_MAX_ATTACHMENTS
    slug_max_length: int = DEFAULT_SLUG_MAX_LENGTH
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StorylineSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ
        root = _read_env(source, "STORYLINE_ROOT")
        preferences_path = _read_env(source, "STORYLINE_PREFERENCES_PATH")

        return cls(
            root=Path(root).expanduser() if root else None,
            preferences_path=Path(preferences_path).expanduser() if preferences_path else None,
            max_attachments=_read_positive_int(
                source, "STORYLINE_MAX_ATTACHMENTS", DEFAULT_MAX_ATTACHMENTS
            ),
            slug_max_length=_read_positive_int(
                source, "STORYLINE_SLUG_MAX_LENGTH", DEFAULT_SLUG_MAX_LENGTH
            ),
            log_level=(_read_env(source, "STORYLINE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        )


def configure_logging(level: str | int = DEFAULT_LOG_LEVEL) -> logging.Logger:
    """Attach a single stream handler to the ``storyline`` logger."""

    logger = logging.getLogger("storyline")
    logger.setLevel(level if isinstance(level, int) else level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_ATTACHMENTS",
    "LOG_FORMAT",
    "StorylineSettings",
    "configure_logging",
]
