from __future__ import annotations

import math
from functools import lru_cache
from typing import List, Optional, Union

from babel import Locale, UnknownLocaleError
from babel.dates import get_day_names, get_timezone_location, get_timezone_name

from .record import MeetingRecord, resolve_time_zone, tag_of


DEFAULT_LOCALE = "en_US"

LocaleLike = Union[str, Locale]


@lru_cache(maxsize=32)
def _parse_locale(identifier: str) -> Optional[Locale]:
    try:
        return Locale.parse(identifier)
    except (UnknownLocaleError, ValueError, TypeError):
        return None


def resolve_locale(locale: Optional[LocaleLike]) -> Optional[Locale]:
    if locale is None:
        return _parse_locale(DEFAULT_LOCALE)
    if isinstance(locale, Locale):
        return locale
    return _parse_locale(str(locale))


def first_weekday(locale: Locale) -> int:
    """The locale's first day of the week, 1-based with 1 = Sunday."""

    # Babel counts from Monday = 0.
    return (locale.first_week_day + 1) % 7 + 1


def weekday_name(weekday: int, locale: Optional[LocaleLike] = None) -> Optional[str]:
    """Localized wide weekday name for a 1-based index, shifted by the locale's week start.

    Returns None for an index outside 1-7 or an unknown locale.
    """

    if not isinstance(weekday, int) or not 1 <= weekday <= 7:
        return None
    loc = resolve_locale(locale)
    if loc is None:
        return None

    index = first_weekday(loc) + (weekday - 1)
    if index > 7:
        index -= 7

    names = get_day_names("wide", locale=loc)
    # Sunday-first ordering; babel's dict is keyed Monday = 0.
    sunday_first = [names[(i + 6) % 7] for i in range(7)]
    return sunday_first[index - 1]


def time_zone_display_name(time_zone: str, locale: Optional[LocaleLike] = None) -> Optional[str]:
    tz = resolve_time_zone(time_zone)
    loc = resolve_locale(locale)
    if tz is None or loc is None:
        return None
    try:
        name = get_timezone_name(tz, width="long", zone_variant="standard", locale=loc)
        # Zones without CLDR names fall back to the location format,
        # e.g. "Unknown Region (GMT+5) Time".
        fallback = get_timezone_location(tz, locale=loc)
    except (LookupError, ValueError):
        return None
    if not name or name == fallback:
        return None
    return name


def duration_minutes(duration_s: float) -> int:
    # Half-up rounding.
    return int(math.floor(duration_s / 60 + 0.5))


def _sentence(text: str) -> str:
    text = text.strip()
    if text and text[-1] not in ".!?":
        text += "."
    return text


def _optional_clauses(meeting: MeetingRecord) -> List[str]:
    clauses: List[str] = []

    venue = (meeting.in_person_venue_name or "").strip()
    address = meeting.in_person_address.formatted() if meeting.in_person_address is not None else ""
    if venue and address:
        clauses.append(f"It meets in person at {venue}, {address}.")
    elif venue:
        clauses.append(f"It meets in person at {venue}.")
    elif address:
        clauses.append(f"It meets in person at {address}.")

    if meeting.location_info:
        clauses.append(_sentence(f"Location details: {meeting.location_info}"))

    if meeting.coords is not None:
        lat, lng = meeting.coords
        clauses.append(f"Its coordinates are ({lat:.5f}, {lng:.5f}).")

    if meeting.virtual_url:
        clauses.append(f"It can be attended virtually at {meeting.virtual_url}.")

    if meeting.virtual_info:
        clauses.append(_sentence(f"Virtual attendance instructions: {meeting.virtual_info}"))

    if meeting.virtual_phone_number:
        clauses.append(f"It can be joined by phone at {meeting.virtual_phone_number}.")

    return clauses


def describe_meeting(meeting: MeetingRecord, *, locale: Optional[LocaleLike] = None) -> str:
    """Render one meeting as a natural-language paragraph.

    The base sentence covers name, organization, start time, time zone, weekday
    and duration. Optional location/virtual clauses follow in a fixed order, then
    one line per format description. An unusable weekday, time zone or
    duration yields "".
    """

    if not isinstance(meeting.duration, (int, float)) or not math.isfinite(meeting.duration):
        return ""

    weekday = weekday_name(meeting.weekday, locale)
    tz_name = time_zone_display_name(meeting.time_zone, locale)
    if weekday is None or tz_name is None:
        return ""

    start = meeting.start_time.strftime("%H:%M")
    minutes = duration_minutes(meeting.duration)
    org = tag_of(meeting.organization).upper()

    text = (
        f'"{meeting.name}" is an {org} meeting, which starts at {start}, {tz_name}, '
        f"every {weekday}, and lasts for {minutes} minutes."
    )

    clauses = _optional_clauses(meeting)
    if clauses:
        text += " " + " ".join(clauses)

    for fmt in meeting.formats:
        if fmt.description:
            text += "\n" + fmt.description

    return text
