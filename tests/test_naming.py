from __future__ import annotations

from datetime import datetime, timezone

import pytest

from storyline.naming import (
    file_extension,
    format_timestamp,
    sanitize_filename,
    slugify,
    timestamp_millis,
    unique_slug,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Demo", "demo"),
        ("Mijn Café Film", "mijn-cafe-film"),
        ("  Hello,   World!  ", "hello-world"),
        ("***", "project"),
        ("", "project"),
    ],
)
def test_slugify(name: str, expected: str) -> None:
    assert slugify(name) == expected


def test_slugify_truncates_without_trailing_hyphen() -> None:
    slug = slugify("abc def ghi", max_length=4)
    assert slug == "abc"


def test_unique_slug_appends_incrementing_suffix() -> None:
    assert unique_slug("demo", set()) == "demo"
    assert unique_slug("demo", {"demo"}) == "demo-2"
    assert unique_slug("demo", {"demo", "demo-2"}) == "demo-3"


def test_sanitize_filename() -> None:
    assert sanitize_filename("my photo (1).PNG") == "my_photo__1_.PNG"
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("") == "file"


def test_file_extension() -> None:
    assert file_extension("Shot.JPG") == ".jpg"
    assert file_extension("noext") == ""
    assert file_extension(None) == ""


def test_timestamp_helpers() -> None:
    moment = datetime(2024, 5, 5, 12, 30, tzinfo=timezone.utc)
    assert format_timestamp(moment) == "2024-05-05T12:30:00Z"
    assert format_timestamp(moment.replace(tzinfo=None)) == "2024-05-05T12:30:00Z"
    assert timestamp_millis(moment) == 1714912200000
