from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .describe import LocaleLike, describe_meeting
from .record import MeetingRecord, tag_of


def canonical_json_bytes(obj: Any) -> bytes:
    """Stable UTF-8 JSON: sorted keys, compact separators, no ASCII escaping."""

    payload = json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return payload.encode("utf-8")


def dataset_rows(
    meetings: Optional[Iterable[MeetingRecord]],
    *,
    locale: Optional[LocaleLike] = None,
    include_empty: bool = True,
) -> List[Dict[str, str]]:
    """One `{id, type, meeting}` row per meeting, in input order.

    `type` is the raw meeting type tag (the classification label) and
    `meeting` the natural-language description.
    """

    rows: List[Dict[str, str]] = []
    for meeting in meetings or []:
        text = describe_meeting(meeting, locale=locale)
        if not text and not include_empty:
            continue
        rows.append(
            {
                "id": str(meeting.id),
                "type": tag_of(meeting.meeting_type),
                "meeting": text,
            }
        )
    return rows


def dataset_json(
    meetings: Optional[Iterable[MeetingRecord]],
    *,
    locale: Optional[LocaleLike] = None,
    include_empty: bool = True,
) -> bytes:
    return canonical_json_bytes(dataset_rows(meetings, locale=locale, include_empty=include_empty))


def meetings_json(meetings: Optional[Iterable[MeetingRecord]]) -> bytes:
    """The whole collection as a flat array of single-level objects."""

    return canonical_json_bytes([m.to_flat_dict() for m in meetings or []])


def tagged_string_summary(meetings: Optional[Iterable[MeetingRecord]]) -> Dict[str, List[str]]:
    """Column view of the flat encoding: key -> every value seen, as strings."""

    out: Dict[str, List[str]] = {}
    for meeting in meetings or []:
        for key, value in meeting.to_flat_dict().items():
            out.setdefault(key, []).append(str(value))
    return out


def write_json(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_bytes(data)
    os.replace(tmp, path)
    return path
