from __future__ import annotations

import logging

import pytest

from storyline.events import ChangeEvent, ChangeNotice, ChangeNotifier


def test_subscribe_emit_and_unsubscribe() -> None:
    notifier = ChangeNotifier()
    received: list[ChangeNotice] = []
    unsubscribe = notifier.subscribe(received.append)

    notifier.emit(ChangeEvent.SCENE_CHANGED, scene_id="s-1")
    unsubscribe()
    notifier.emit(ChangeEvent.SCENE_CHANGED, scene_id="s-2")

    assert [notice.details["scene_id"] for notice in received] == ["s-1"]
    assert received[0].event is ChangeEvent.SCENE_CHANGED


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    notifier = ChangeNotifier()
    received: list[ChangeNotice] = []

    def _explode(notice: ChangeNotice) -> None:
        raise RuntimeError("render failed")

    notifier.subscribe(_explode)
    notifier.subscribe(received.append)

    with caplog.at_level(logging.ERROR, logger="storyline"):
        notifier.emit(ChangeEvent.PROJECT_LIST_CHANGED)

    assert len(received) == 1
    assert "project-list-changed" in caplog.text
