from __future__ import annotations

import logging
from pathlib import Path

import pytest

from storyline.settings import LOG_FORMAT, StorylineSettings, configure_logging


def test_from_env_defaults() -> None:
    settings = StorylineSettings.from_env({})

    assert settings.root is None
    assert settings.preferences_path is None
    assert settings.max_attachments == 8
    assert settings.slug_max_length == 60
    assert settings.log_level == "WARNING"


def test_from_env_reads_values() -> None:
    settings = StorylineSettings.from_env(
        {
            "STORYLINE_ROOT": "/srv/stories",
            "STORYLINE_PREFERENCES_PATH": " ",
            "STORYLINE_MAX_ATTACHMENTS": "3",
            "STORYLINE_SLUG_MAX_LENGTH": "20",
            "STORYLINE_LOG_LEVEL": "debug",
        }
    )

    assert settings.root == Path("/srv/stories")
    assert settings.preferences_path is None
    assert settings.max_attachments == 3
    assert settings.slug_max_length == 20
    assert settings.log_level == "DEBUG"


def test_from_env_treats_blank_values_as_unset() -> None:
    settings = StorylineSettings.from_env(
        {
            "STORYLINE_ROOT": "  ~/stories  ",
            "STORYLINE_MAX_ATTACHMENTS": "   ",
            "STORYLINE_LOG_LEVEL": "",
        }
    )

    assert settings.root == Path("~/stories").expanduser()
    assert settings.max_attachments == 8
    assert settings.log_level == "WARNING"


@pytest.mark.parametrize("value", ["zero", "0", "-4"])
def test_from_env_rejects_invalid_limits(value: str) -> None:
    with pytest.raises(ValueError) as excinfo:
        StorylineSettings.from_env({"STORYLINE_MAX_ATTACHMENTS": value})
    assert "STORYLINE_MAX_ATTACHMENTS" in str(excinfo.value)


def test_configure_logging_attaches_a_single_handler() -> None:
    logger = logging.getLogger("storyline")
    previous_handlers = list(logger.handlers)
    previous_level = logger.level
    for handler in previous_handlers:
        logger.removeHandler(handler)

    try:
        configure_logging("info")
        configure_logging("debug")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.handlers[0].formatter._fmt == LOG_FORMAT
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        for handler in previous_handlers:
            logger.addHandler(handler)
        logger.setLevel(previous_level)
