from __future__ import annotations

from datetime import time

from meeting_ml.describe import describe_meeting, duration_minutes, time_zone_display_name, weekday_name
from meeting_ml.record import InPersonAddress, MeetingFormat, MeetingRecord, MeetingType, Organization


def _meeting(**overrides) -> MeetingRecord:
    fields = dict(
        id=1,
        name="Test",
        weekday=1,
        start_time=time(9, 0),
        duration=3600,
        time_zone="America/New_York",
        meeting_type=MeetingType.IN_PERSON,
        organization="XX",
    )
    fields.update(overrides)
    return MeetingRecord(**fields)


def test_base_sentence_shape() -> None:
    text = describe_meeting(_meeting())

    assert text.startswith('"Test" is an XX meeting, which starts at 09:00,')
    assert "lasts for 60 minutes." in text
    assert "Eastern Standard Time" in text
    assert "every Sunday" in text


def test_organization_enum_is_uppercased() -> None:
    text = describe_meeting(_meeting(organization=Organization.NA))
    assert '"Test" is an NA meeting' in text


def test_description_is_deterministic() -> None:
    m = _meeting(
        coords=(38.778891234, -77.187223456),
        in_person_venue_name="First Church",
        formats=(MeetingFormat(key="O", name="Open", description="Open to all"),),
    )
    assert describe_meeting(m) == describe_meeting(m)


def test_malformed_weekday_or_time_zone_yields_empty() -> None:
    assert describe_meeting(_meeting(weekday=0)) == ""
    assert describe_meeting(_meeting(weekday=8)) == ""
    assert describe_meeting(_meeting(time_zone="Not/AZone")) == ""
    assert describe_meeting(_meeting(time_zone="")) == ""


def test_start_time_is_24_hour() -> None:
    text = describe_meeting(_meeting(start_time=time(19, 5)))
    assert "starts at 19:05," in text


def test_duration_rounds_to_nearest_minute() -> None:
    assert duration_minutes(3600) == 60
    assert duration_minutes(89) == 1
    assert duration_minutes(90) == 2
    assert duration_minutes(5400) == 90


def test_weekday_follows_locale_week_start() -> None:
    assert weekday_name(1, "en_US") == "Sunday"
    assert weekday_name(7, "en_US") == "Saturday"
    # Week starts on Monday in these locales.
    assert weekday_name(1, "en_GB") == "Monday"
    assert weekday_name(7, "en_GB") == "Sunday"
    assert weekday_name(1, "de_DE") == "Montag"
    assert weekday_name(0, "en_US") is None
    assert weekday_name(3, "xx_NOPE") is None


def test_optional_clauses_in_fixed_order() -> None:
    m = _meeting(
        meeting_type=MeetingType.HYBRID,
        in_person_venue_name="First Church",
        in_person_address=InPersonAddress(street="12 Main St", city="Springfield", state="VA", postal_code="22150"),
        location_info="Basement",
        coords=(38.778891234, -77.187223456),
        virtual_url="https://zoom.us/j/123",
        virtual_info="Meeting ID 123",
        virtual_phone_number="+1 555 0100",
    )
    text = describe_meeting(m)

    pieces = [
        "First Church, 12 Main St, Springfield, VA 22150",
        "Basement",
        "(38.77889, -77.18722)",
        "https://zoom.us/j/123",
        "Meeting ID 123",
        "+1 555 0100",
    ]
    positions = [text.index(p) for p in pieces]
    assert positions == sorted(positions)


def test_venue_alone_and_absent_fields_are_omitted() -> None:
    text = describe_meeting(_meeting(in_person_venue_name="Library"))
    assert "It meets in person at Library." in text
    assert "virtually" not in text
    assert "phone" not in text
    assert "coordinates" not in text


def test_one_line_per_format() -> None:
    m = _meeting(
        formats=(
            MeetingFormat(key="D", name="Discussion", description="Discussion meeting"),
            MeetingFormat(key="O", name="Open", description="Open to all"),
        )
    )
    lines = describe_meeting(m).split("\n")
    assert lines[1:] == ["Discussion meeting", "Open to all"]


def test_zones_without_display_name_yield_empty() -> None:
    assert time_zone_display_name("America/New_York") == "Eastern Standard Time"
    assert time_zone_display_name("Etc/GMT+5") is None
    assert describe_meeting(_meeting(time_zone="Etc/GMT+5")) == ""


def test_non_finite_duration_yields_empty() -> None:
    assert describe_meeting(_meeting(duration=float("nan"))) == ""
    assert describe_meeting(_meeting(duration=float("inf"))) == ""
