from __future__ import annotations

import pytest

from storyline import ProjectSession, ValidationError
from storyline.models import Transition
from storyline.transitions import TransitionLedger


def _ledger(*indices: int) -> TransitionLedger:
    return TransitionLedger(
        [Transition(scene_index=index, description=f"t{index}") for index in indices]
    )


def _described(ledger: TransitionLedger) -> dict[int, str]:
    return {entry.scene_index: entry.description for entry in ledger}


def test_set_get_and_clear() -> None:
    changes: list[None] = []
    ledger = TransitionLedger(on_change=lambda: changes.append(None))

    stored = ledger.set(2, "  dissolve ")
    assert stored is not None and stored.description == "dissolve"
    assert ledger.get(2) is stored
    assert ledger.get(1) is None

    assert ledger.set(2, "dissolve") is stored
    assert ledger.set(0, "cut").scene_index == 0
    assert ledger.indices() == [0, 2]

    assert ledger.set(2, "   ") is None
    assert ledger.set(5, "") is None
    assert ledger.indices() == [0]
    assert len(changes) == 3

    with pytest.raises(ValidationError):
        ledger.set(-1, "cut")


def test_set_refreshes_timestamp_on_update() -> None:
    ledger = TransitionLedger()
    first = ledger.set(0, "cut")
    second = ledger.set(0, "fade")
    assert second.description == "fade"
    assert second.updated_at >= first.updated_at
    assert len(ledger) == 1


def test_reindex_moving_down() -> None:
    ledger = _ledger(0, 1, 2, 3)

    assert ledger.reindex(1, 3) is True

    assert _described(ledger) == {0: "t0", 1: "t2", 2: "t3", 3: "t1"}


def test_reindex_moving_up() -> None:
    ledger = _ledger(0, 1, 2, 3)

    ledger.reindex(3, 1)

    assert _described(ledger) == {0: "t0", 1: "t3", 2: "t1", 3: "t2"}


def test_reindex_same_position_is_noop() -> None:
    ledger = _ledger(0)
    assert ledger.reindex(0, 0) is False


def test_reindex_leaves_entries_outside_the_range() -> None:
    ledger = _ledger(0, 4)
    ledger.reindex(1, 2)
    assert ledger.indices() == [0, 4]


def test_cleanup_drops_out_of_range_entries() -> None:
    ledger = _ledger(0, 1, 2, 5)

    assert ledger.cleanup(3) == 2
    assert ledger.indices() == [0, 1]
    assert ledger.cleanup(3) == 0
    assert _ledger(0).cleanup(1) == 1


def test_insert_scene_shifts_later_entries() -> None:
    ledger = _ledger(0, 1, 3)
    ledger.insert_scene(1)
    assert ledger.indices() == [0, 2, 4]


@pytest.mark.parametrize(
    ("position", "expected"),
    [
        (0, {0: "t1", 1: "t2", 2: "t3"}),
        (2, {0: "t0", 1: "t1", 2: "t3"}),
        (4, {0: "t0", 1: "t1", 2: "t2"}),
    ],
)
def test_remove_scene_shifts_later_entries_down(position: int, expected: dict[int, str]) -> None:
    ledger = _ledger(0, 1, 2, 3)

    ledger.remove_scene(position, total_before=5)

    assert _described(ledger) == expected
    assert all(index < 3 for index in ledger.indices())


def test_scene_delete_then_transition_cleanup_in_session(session: ProjectSession) -> None:
    ids = [session.scenes.append().id for _ in range(4)]
    session.transitions.set(0, "a-b")
    session.transitions.set(1, "b-c")
    session.transitions.set(2, "c-d")
    total = len(session.scenes)

    position = session.scenes.delete(ids[1])
    session.transitions.remove_scene(position, total)

    assert _described(session.transitions) == {0: "a-b", 1: "c-d"}
    assert [entry.scene_index for entry in session.record.transitions] == [0, 1]
    assert max(session.transitions.indices()) < len(session.scenes) - 1
