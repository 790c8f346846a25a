from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


EARTH_RADIUS_M = 6_371_008.8


class MeetingType(str, Enum):
    IN_PERSON = "inPerson"
    VIRTUAL = "virtual"
    HYBRID = "hybrid"


class Organization(str, Enum):
    NONE = "none"
    NA = "na"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "Organization":
        try:
            return cls(tag)
        except ValueError:
            return cls.NONE


@dataclass(frozen=True)
class MeetingFormat:
    key: str
    name: str
    description: str
    language: str = ""
    id: str = "0"

    def as_string(self) -> str:
        # Language and id are left out; they add noise to ML text columns.
        return f"{self.key}\t{self.name}\t{self.description}"


@dataclass(frozen=True)
class InPersonAddress:
    street: str = ""
    sub_locality: str = ""
    city: str = ""
    state: str = ""
    sub_administrative_area: str = ""
    postal_code: str = ""
    country: str = ""

    def is_empty(self) -> bool:
        return not any(
            (
                self.street,
                self.sub_locality,
                self.city,
                self.state,
                self.sub_administrative_area,
                self.postal_code,
                self.country,
            )
        )

    def formatted(self) -> str:
        """Single-line mailing address (street, city, state + postal code, country)."""

        region = " ".join(p for p in (self.state, self.postal_code) if p)
        parts = [p for p in (self.street, self.city, region, self.country) if p]
        return ", ".join(parts)


def is_valid_coordinate(latitude: Any, longitude: Any) -> bool:
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return False
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points, in meters."""

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def resolve_time_zone(name: str) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def tag_of(value: Any) -> str:
    """Raw string tag of an enum member (plain strings pass through)."""

    return str(getattr(value, "value", value))


def meeting_id_from_parts(server_id: int, local_meeting_id: int) -> int:
    return (int(server_id) << 44) + int(local_meeting_id)


@dataclass(frozen=True)
class MeetingRecord:
    id: int
    name: str
    weekday: int
    start_time: time
    duration: float
    time_zone: str
    meeting_type: MeetingType
    organization: Union[Organization, str] = Organization.NONE
    coords: Optional[Tuple[float, float]] = None
    in_person_address: Optional[InPersonAddress] = None
    in_person_venue_name: Optional[str] = None
    location_info: Optional[str] = None
    virtual_url: Optional[str] = None
    virtual_phone_number: Optional[str] = None
    virtual_info: Optional[str] = None
    comments: Optional[str] = None
    formats: Tuple[MeetingFormat, ...] = field(default_factory=tuple)
    server_id: int = 0
    local_meeting_id: int = 0

    @property
    def has_in_person(self) -> bool:
        return self.meeting_type in (MeetingType.IN_PERSON, MeetingType.HYBRID)

    @property
    def has_virtual(self) -> bool:
        return self.meeting_type in (MeetingType.VIRTUAL, MeetingType.HYBRID)

    def distance_in_meters(self, latitude: float, longitude: float) -> Optional[float]:
        """Distance from the meeting's location, or None if either point is unusable."""

        if self.coords is None or not is_valid_coordinate(*self.coords):
            return None
        if not is_valid_coordinate(latitude, longitude):
            return None
        return haversine_meters(self.coords[0], self.coords[1], latitude, longitude)

    def next_start(self, after: datetime) -> Optional[datetime]:
        """Next start strictly after `after`, expressed in the meeting's time zone.

        `after` must be timezone-aware. Returns None when the meeting's time
        zone or weekday is unusable.
        """

        tz = resolve_time_zone(self.time_zone)
        if tz is None or not 1 <= self.weekday <= 7:
            return None

        local_now = after.astimezone(tz)
        # Server weekday 1 is Sunday; Python's Monday is 0.
        target = (self.weekday + 5) % 7
        days_ahead = (target - local_now.weekday()) % 7
        day = local_now.date() + timedelta(days=days_ahead)
        candidate = datetime.combine(day, self.start_time.replace(tzinfo=None), tzinfo=tz)
        if candidate <= local_now:
            candidate = datetime.combine(day + timedelta(days=7), self.start_time.replace(tzinfo=None), tzinfo=tz)
        return candidate

    def previous_start(self, at: datetime) -> Optional[datetime]:
        """Most recent start at or before `at`, one week before `next_start(at)`."""

        nxt = self.next_start(at)
        if nxt is None:
            return None
        # Wall-clock arithmetic so the start time survives DST changes.
        return datetime.combine(nxt.date() - timedelta(days=7), self.start_time.replace(tzinfo=None), tzinfo=nxt.tzinfo)

    def is_in_progress(self, at: datetime) -> bool:
        prev = self.previous_start(at)
        if prev is None or not math.isfinite(self.duration) or self.duration <= 0:
            return False
        return prev <= at < prev + timedelta(seconds=self.duration)

    def to_flat_dict(self) -> Dict[str, Any]:
        """Flat (non-nested) encoding, convenient for tabular ML tooling.

        Formats become `format-N` tab-separated strings; empty values are left out.
        """

        out: Dict[str, Any] = {
            "serverID": self.server_id,
            "localMeetingID": self.local_meeting_id,
            "id": self.id,
            "meetingType": tag_of(self.meeting_type),
        }
        if self.weekday > 0:
            out["weekday"] = self.weekday
        out["startTime"] = self.start_time.strftime("%H:%M:%S")
        if self.duration > 0:
            out["duration"] = self.duration
        if self.time_zone:
            out["timezone"] = self.time_zone
        out["organization"] = tag_of(self.organization)
        if self.name:
            out["name"] = self.name

        index = 0
        for fmt in self.formats:
            text = fmt.as_string()
            if text.strip():
                out[f"format-{index}"] = text
                index += 1

        optional = {
            "comments": self.comments,
            "locationInfo": self.location_info,
            "virtualURL": self.virtual_url,
            "virtualPhoneNumber": self.virtual_phone_number,
            "virtualInfo": self.virtual_info,
            "inPersonVenueName": self.in_person_venue_name,
        }
        for key, value in optional.items():
            if value:
                out[key] = value

        if self.coords is not None:
            out["coords_lat"] = round(self.coords[0], 6)
            out["coords_lng"] = round(self.coords[1], 6)

        addr = self.in_person_address
        if addr is not None:
            for key, value in (
                ("street", addr.street),
                ("subLocality", addr.sub_locality),
                ("city", addr.city),
                ("state", addr.state),
                ("subAdministrativeArea", addr.sub_administrative_area),
                ("postalCode", addr.postal_code),
                ("country", addr.country),
            ):
                if value:
                    out[f"inPersonAddress_{key}"] = value

        return out
