from __future__ import annotations

import json
from datetime import time
from pathlib import Path

from meeting_ml.export import (
    canonical_json_bytes,
    dataset_json,
    dataset_rows,
    meetings_json,
    tagged_string_summary,
    write_json,
)
from meeting_ml.record import MeetingFormat, MeetingRecord, MeetingType, Organization


def _meeting(mid: int, meeting_type: MeetingType, **overrides) -> MeetingRecord:
    fields = dict(
        id=mid,
        name=f"Meeting {mid}",
        weekday=2,
        start_time=time(19, 30),
        duration=5400,
        time_zone="America/New_York",
        meeting_type=meeting_type,
        organization=Organization.NA,
    )
    fields.update(overrides)
    return MeetingRecord(**fields)


def _collection() -> list:
    return [
        _meeting(3, MeetingType.HYBRID, coords=(38.7789, -77.1872)),
        _meeting(1, MeetingType.IN_PERSON, name="Café Group"),
        _meeting(2, MeetingType.VIRTUAL, virtual_url="https://zoom.us/j/1"),
    ]


def test_dataset_round_trip_matches_input() -> None:
    meetings = _collection()
    decoded = json.loads(dataset_json(meetings).decode("utf-8"))

    assert len(decoded) == len(meetings)
    assert [row["type"] for row in decoded] == ["hybrid", "inPerson", "virtual"]
    assert [row["id"] for row in decoded] == ["3", "1", "2"]
    assert all(set(row) == {"id", "type", "meeting"} for row in decoded)
    assert decoded[1]["meeting"].startswith('"Café Group" is an NA meeting')


def test_dataset_bytes_are_stable() -> None:
    first = dataset_json(_collection())
    second = dataset_json(_collection())

    assert first == second
    assert first.startswith(b'[{"id":"3","meeting":"')
    assert "Café".encode("utf-8") in first


def test_empty_descriptions_can_be_dropped() -> None:
    meetings = [_meeting(1, MeetingType.IN_PERSON), _meeting(2, MeetingType.VIRTUAL, time_zone="Nowhere/Land")]

    kept = dataset_rows(meetings)
    assert [r["meeting"] == "" for r in kept] == [False, True]

    dropped = dataset_rows(meetings, include_empty=False)
    assert [r["id"] for r in dropped] == ["1"]


def test_missing_collection_exports_empty_array() -> None:
    assert dataset_json(None) == b"[]"
    assert meetings_json(None) == b"[]"


def test_canonical_json_sorts_keys() -> None:
    assert canonical_json_bytes({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'


def test_flat_meeting_json_and_summary() -> None:
    meetings = [
        _meeting(
            1,
            MeetingType.IN_PERSON,
            coords=(38.123456789, -77.987654321),
            in_person_venue_name="Library",
            formats=(MeetingFormat(key="O", name="Open", description="Open to all"),),
        ),
        _meeting(2, MeetingType.VIRTUAL, virtual_phone_number="+1 555 0100"),
    ]

    flat = json.loads(meetings_json(meetings))
    assert flat[0]["meetingType"] == "inPerson"
    assert flat[0]["startTime"] == "19:30:00"
    assert flat[0]["coords_lat"] == 38.123457
    assert flat[0]["format-0"] == "O\tOpen\tOpen to all"
    assert flat[0]["inPersonVenueName"] == "Library"
    assert "virtualPhoneNumber" not in flat[0]
    assert flat[1]["virtualPhoneNumber"] == "+1 555 0100"

    summary = tagged_string_summary(meetings)
    assert summary["id"] == ["1", "2"]
    assert summary["meetingType"] == ["inPerson", "virtual"]
    assert summary["inPersonVenueName"] == ["Library"]


def test_write_json_creates_parent_dirs(tmp_path: Path) -> None:
    out = write_json(tmp_path / "nested" / "dataset.json", b"[]")
    assert out.read_bytes() == b"[]"
    assert not (tmp_path / "nested" / "dataset.json.tmp").exists()
