from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from storyline.models import ProjectIndex, ProjectRecord, ProjectSummary, Scene, Transition


def test_project_record_uses_camel_case_payload() -> None:
    record = ProjectRecord(
        id="p-1",
        project_name="Demo",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
        prompts=[Scene(id="s-1", text="Hello")],
    )

    payload = record.to_payload()
    assert payload["projectName"] == "Demo"
    assert payload["createdAt"] == "2024-01-01T00:00:00Z"
    assert payload["updatedAt"] == "2024-01-02T00:00:00Z"
    assert payload["prompts"][0] == {
        "id": "s-1",
        "text": "Hello",
        "translation": "",
        "imagePath": None,
        "imageOriginalName": None,
        "imageType": None,
        "rating": None,
        "attachments": [],
    }
    assert payload["transitions"] == []


def test_unknown_keys_survive_a_round_trip() -> None:
    payload = {
        "id": "p-1",
        "projectName": "Legacy",
        "createdAt": "2023-03-01T10:00:00.000Z",
        "updatedAt": "2023-03-01T10:00:00.000Z",
        "audioTimeline": {"markers": [1.5]},
        "prompts": [{"id": "s-1", "text": "x", "videoPath": "clip.mp4"}],
    }

    record = ProjectRecord.from_payload(payload)
    restored = record.to_payload()

    assert restored["audioTimeline"] == {"markers": [1.5]}
    assert restored["prompts"][0]["videoPath"] == "clip.mp4"


def test_scene_rating_bounds() -> None:
    assert Scene(rating=5).rating == 5
    with pytest.raises(PydanticValidationError):
        Scene(rating=6)
    with pytest.raises(PydanticValidationError):
        Scene(rating=0)


def test_transition_description_is_stripped_and_required() -> None:
    assert Transition(scene_index=0, description="  cut  ").description == "cut"
    with pytest.raises(PydanticValidationError):
        Transition(scene_index=0, description="   ")
    with pytest.raises(PydanticValidationError):
        Transition(scene_index=-1, description="cut")


def test_project_record_requires_a_name() -> None:
    with pytest.raises(PydanticValidationError):
        ProjectRecord.from_payload({"projectName": ""})


def test_index_upsert_and_remove() -> None:
    record = ProjectRecord(id="p-1", project_name="Demo")
    index = ProjectIndex()

    index.upsert(ProjectSummary.from_record(record, "demo"))
    record.project_name = "Renamed"
    index.upsert(ProjectSummary.from_record(record, "demo"))

    assert len(index.projects) == 1
    assert index.find_by_slug("demo").project_name == "Renamed"
    assert index.slugs() == {"demo"}
    assert index.remove("p-1") is not None
    assert index.remove("p-1") is None


def test_index_payload_must_hold_a_project_list() -> None:
    with pytest.raises(ValueError):
        ProjectIndex.from_payload({"projects": {"not": "a list"}})
    assert ProjectIndex.from_payload({}).projects == []
