from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from .record import (
    InPersonAddress,
    MeetingFormat,
    MeetingRecord,
    MeetingType,
    Organization,
    is_valid_coordinate,
    meeting_id_from_parts,
)


logger = logging.getLogger(__name__)


DEFAULT_DURATION_S = 3600
MAX_DURATION_S = 86_400


class PayloadError(ValueError):
    pass


@dataclass(frozen=True)
class PageMeta:
    actual_size: int
    page_size: int
    starting_index: int
    total: int
    total_pages: int
    page: int
    search_time: float


@dataclass(frozen=True)
class MeetingPage:
    meta: Optional[PageMeta]
    meetings: List[MeetingRecord]


_URI_SCHEME_RE = re.compile(r"^(http://|https://|tel://|tel:)", re.IGNORECASE)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _clean_str(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def clean_uri(raw: Optional[str]) -> Optional[str]:
    """Normalize a virtual meeting URI to either `https://...` or `tel:...`."""

    if not isinstance(raw, str):
        return None
    encoded = quote(raw.strip(), safe="!$&'()*+,;=:@/?~%#")
    was_tel = encoded.lower().startswith("tel:")
    stripped = _URI_SCHEME_RE.sub("", encoded, count=1)
    if not stripped:
        return None
    return ("tel:" if was_tel else "https://") + stripped


def _parse_start_time(raw: Any) -> Optional[time]:
    if not isinstance(raw, str):
        return None
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(raw.strip(), fmt).time()
        except ValueError:
            continue
    return None


def _parse_format(raw: Dict[str, Any]) -> MeetingFormat:
    fid = raw.get("id")
    return MeetingFormat(
        key=_clean_str(raw.get("key")),
        name=_clean_str(raw.get("name")),
        description=_clean_str(raw.get("description")),
        language=_clean_str(raw.get("language")),
        id=str(fid if _is_int(fid) else 0),
    )


def _parse_address(raw: Dict[str, Any]) -> Optional[InPersonAddress]:
    addr = InPersonAddress(
        street=_clean_str(raw.get("street")),
        sub_locality=_clean_str(raw.get("neighborhood")),
        city=_clean_str(raw.get("city")),
        state=_clean_str(raw.get("province")),
        sub_administrative_area=_clean_str(raw.get("county")),
        postal_code=_clean_str(raw.get("postal_code")),
        country=_clean_str(raw.get("nation")),
    )
    return None if addr.is_empty() else addr


def _derive_meeting_type(
    *,
    address: Optional[InPersonAddress],
    venue_name: Optional[str],
    virtual_url: Optional[str],
    virtual_phone_number: Optional[str],
    virtual_info: Optional[str],
) -> MeetingType:
    in_person = address is not None or bool(venue_name)
    virtual = bool(virtual_url) or bool(virtual_phone_number) or bool(virtual_info)
    if in_person and virtual:
        return MeetingType.HYBRID
    if in_person:
        return MeetingType.IN_PERSON
    return MeetingType.VIRTUAL


def parse_meeting(raw: Dict[str, Any]) -> Optional[MeetingRecord]:
    """Build one MeetingRecord from a server meeting object.

    Returns None when a required field (server_id, meeting_id, weekday,
    start_time, organization_key) is missing or out of range.
    """

    if not isinstance(raw, dict):
        return None

    server_id = raw.get("server_id")
    local_id = raw.get("meeting_id")
    weekday = raw.get("weekday")
    start_time = _parse_start_time(raw.get("start_time"))
    org_key = raw.get("organization_key")

    if not (_is_int(server_id) and _is_int(local_id) and _is_int(weekday)):
        return None
    if not 1 <= weekday <= 7 or start_time is None or not isinstance(org_key, str):
        return None

    duration = raw.get("duration")
    if not _is_int(duration) or not 0 < duration < MAX_DURATION_S:
        duration = DEFAULT_DURATION_S

    formats_raw = raw.get("formats")
    formats = [_parse_format(f) for f in formats_raw if isinstance(f, dict)] if isinstance(formats_raw, list) else []
    formats.sort(key=lambda f: f.key)

    lat = raw.get("latitude")
    lng = raw.get("longitude")
    coords = (float(lat), float(lng)) if is_valid_coordinate(lat, lng) else None

    tz = raw.get("time_zone")
    time_zone = tz.strip() if isinstance(tz, str) and tz.strip() else "UTC"

    address: Optional[InPersonAddress] = None
    venue_name: Optional[str] = None
    location_info: Optional[str] = None
    physical = raw.get("physical_address")
    if isinstance(physical, dict):
        address = _parse_address(physical)
        venue_name = _clean_str(physical.get("name")) or None
        location_info = _clean_str(physical.get("info")) or None

    virtual_url: Optional[str] = None
    virtual_phone: Optional[str] = None
    virtual_info: Optional[str] = None
    virtual = raw.get("virtual_information")
    if isinstance(virtual, dict):
        virtual_url = clean_uri(virtual.get("url"))
        virtual_phone = _clean_str(virtual.get("phone_number")) or None
        virtual_info = _clean_str(virtual.get("info")) or None

    meeting_type = _derive_meeting_type(
        address=address,
        venue_name=venue_name,
        virtual_url=virtual_url,
        virtual_phone_number=virtual_phone,
        virtual_info=virtual_info,
    )
    # Location details belong to the in-person component only.
    if meeting_type == MeetingType.VIRTUAL:
        location_info = None

    return MeetingRecord(
        id=meeting_id_from_parts(server_id, local_id),
        server_id=server_id,
        local_meeting_id=local_id,
        name=_clean_str(raw.get("name")),
        organization=Organization.from_tag(org_key),
        weekday=weekday,
        start_time=start_time,
        duration=duration,
        time_zone=time_zone,
        meeting_type=meeting_type,
        coords=coords,
        in_person_address=address,
        in_person_venue_name=venue_name,
        location_info=location_info,
        virtual_url=virtual_url,
        virtual_phone_number=virtual_phone,
        virtual_info=virtual_info,
        comments=_clean_str(raw.get("comments")) or None,
        formats=tuple(formats),
    )


def _parse_meta(raw: Any) -> Optional[PageMeta]:
    if not isinstance(raw, dict):
        return None
    ints = ("actual_size", "page_size", "starting_index", "total", "total_pages", "page")
    if not all(_is_int(raw.get(k)) for k in ints):
        return None
    search_time = raw.get("search_time")
    if not isinstance(search_time, (int, float)) or isinstance(search_time, bool):
        return None
    return PageMeta(
        actual_size=raw["actual_size"],
        page_size=raw["page_size"],
        starting_index=raw["starting_index"],
        total=raw["total"],
        total_pages=raw["total_pages"],
        page=raw["page"],
        search_time=float(search_time),
    )


def parse_payload(data: Union[Dict[str, Any], List[Any], None]) -> MeetingPage:
    """Parse a decoded server response (`{"meta": ..., "meetings": [...]}`).

    A bare list of meeting objects is also accepted. `None` (no response)
    yields an empty page. Individual malformed meetings are skipped.
    """

    if data is None:
        return MeetingPage(meta=None, meetings=[])

    if isinstance(data, list):
        meta_raw: Any = None
        meetings_raw: Any = data
    elif isinstance(data, dict):
        meta_raw = data.get("meta")
        meetings_raw = data.get("meetings")
    else:
        raise PayloadError("Meeting payload must be a JSON object or array.")

    if meetings_raw is None:
        meetings_raw = []
    if not isinstance(meetings_raw, list):
        raise PayloadError("Meeting payload field 'meetings' must be a list.")

    meetings: List[MeetingRecord] = []
    for idx, raw in enumerate(meetings_raw):
        meeting = parse_meeting(raw)
        if meeting is None:
            logger.debug("Skipping malformed meeting #%d", idx + 1)
            continue
        meetings.append(meeting)

    logger.debug("Parsed %d of %d meetings", len(meetings), len(meetings_raw))
    return MeetingPage(meta=_parse_meta(meta_raw), meetings=meetings)


def load_meetings_file(path: Path) -> MeetingPage:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise PayloadError(f"Meetings file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise PayloadError(f"Failed to parse meetings JSON: {path}") from e
    return parse_payload(data)
