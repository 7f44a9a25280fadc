"""Whole-file record persistence primitives.

Every file the store writes goes through :func:`write_record`, which writes to
a temporary sibling and atomically replaces the target. Readers therefore see
either the previous content or the new content, never a partial write. No
cross-file transaction is offered: writing the index and a project record are
two independent replacements.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Sequence

from .errors import IOFailure, NotFoundError

logger = logging.getLogger(__name__)

RecordContent = Mapping[str, Any] | Sequence[Any] | bytes | bytearray


def write_record(target: Path, content: RecordContent) -> None:
    """Replace the contents of ``target`` with ``content``.

    Mappings and sequences are serialised as JSON; ``bytes`` are written
    verbatim.

    Raises:
        IOFailure: If the temporary file cannot be written or moved into place.
    """

    target_path = Path(target)
    if isinstance(content, (bytes, bytearray)):
        data = bytes(content)
    else:
        try:
            text = json.dumps(content, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as exc:
            raise IOFailure(
                f"Record for '{target_path.name}' is not JSON serialisable: {exc}",
                path=target_path,
            ) from exc
        data = (text + "\n").encode("utf-8")

    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target_path.name}.", suffix=".tmp", dir=target_path.parent
        )
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target_path)
        tmp_name = None
    except OSError as exc:
        raise IOFailure(
            f"Failed to write '{target_path}': {exc}", path=target_path
        ) from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug("Temporary file %s already gone", tmp_name)


def read_record(target: Path) -> Any:
    """Return the parsed JSON stored in ``target``.

    A zero-length (or whitespace-only) file yields an empty mapping.

    Raises:
        NotFoundError: If ``target`` does not exist.
        IOFailure: If the file cannot be read or does not contain valid JSON.
    """

    target_path = Path(target)
    try:
        text = target_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NotFoundError(f"Record '{target_path}' does not exist.") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise IOFailure(
            f"Failed to read '{target_path}': {exc}", path=target_path
        ) from exc

    if not text.strip():
        return {}

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise IOFailure(
            f"Record '{target_path}' is not valid JSON: {exc}", path=target_path
        ) from exc


def read_bytes(target: Path) -> bytes:
    """Return the raw contents of ``target``."""

    target_path = Path(target)
    try:
        return target_path.read_bytes()
    except FileNotFoundError as exc:
        raise NotFoundError(f"File '{target_path}' does not exist.") from exc
    except OSError as exc:
        raise IOFailure(
            f"Failed to read '{target_path}': {exc}", path=target_path
        ) from exc


def copy_file(source: Path, target: Path) -> int:
    """Copy ``source`` byte-for-byte onto ``target`` and return the size."""

    content = read_bytes(source)
    write_record(target, content)
    return len(content)


def remove_file(target: Path, *, missing_ok: bool = True) -> bool:
    """Delete ``target``.

    Returns:
        ``True`` when a file was removed, ``False`` when it was already absent
        and ``missing_ok`` is set.
    """

    target_path = Path(target)
    try:
        target_path.unlink()
    except FileNotFoundError as exc:
        if missing_ok:
            return False
        raise NotFoundError(f"File '{target_path}' does not exist.") from exc
    except OSError as exc:
        raise IOFailure(
            f"Failed to delete '{target_path}': {exc}", path=target_path
        ) from exc
    return True


__all__ = [
    "RecordContent",
    "copy_file",
    "read_bytes",
    "read_record",
    "remove_file",
    "write_record",
]
