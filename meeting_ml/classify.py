from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .record import MeetingRecord, MeetingType


_IN_PERSON = (MeetingType.IN_PERSON, MeetingType.HYBRID)
_VIRTUAL = (MeetingType.VIRTUAL, MeetingType.HYBRID)


def _select(meetings: Optional[Iterable[MeetingRecord]], types: tuple) -> List[MeetingRecord]:
    if meetings is None:
        return []
    return [m for m in meetings if m.meeting_type in types]


def in_person_meetings(meetings: Optional[Iterable[MeetingRecord]]) -> List[MeetingRecord]:
    """Meetings with an in-person component (in-person or hybrid)."""
    return _select(meetings, _IN_PERSON)


def in_person_only_meetings(meetings: Optional[Iterable[MeetingRecord]]) -> List[MeetingRecord]:
    return _select(meetings, (MeetingType.IN_PERSON,))


def virtual_meetings(meetings: Optional[Iterable[MeetingRecord]]) -> List[MeetingRecord]:
    """Meetings with a virtual component (virtual or hybrid)."""
    return _select(meetings, _VIRTUAL)


def virtual_only_meetings(meetings: Optional[Iterable[MeetingRecord]]) -> List[MeetingRecord]:
    return _select(meetings, (MeetingType.VIRTUAL,))


def hybrid_meetings(meetings: Optional[Iterable[MeetingRecord]]) -> List[MeetingRecord]:
    return _select(meetings, (MeetingType.HYBRID,))


@dataclass(frozen=True)
class ClassifiedMeetings:
    in_person: List[MeetingRecord]
    in_person_only: List[MeetingRecord]
    virtual: List[MeetingRecord]
    virtual_only: List[MeetingRecord]
    hybrid: List[MeetingRecord]

    @property
    def total(self) -> int:
        return len(self.in_person) + len(self.virtual_only)

    def counts(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "in_person": len(self.in_person),
            "in_person_only": len(self.in_person_only),
            "virtual": len(self.virtual),
            "virtual_only": len(self.virtual_only),
            "hybrid": len(self.hybrid),
        }


def classify_meetings(meetings: Optional[Iterable[MeetingRecord]]) -> ClassifiedMeetings:
    """Build all five modality views in one call.

    Each view keeps the input's relative order; the input is not modified.
    """

    items = list(meetings) if meetings is not None else []
    return ClassifiedMeetings(
        in_person=in_person_meetings(items),
        in_person_only=in_person_only_meetings(items),
        virtual=virtual_meetings(items),
        virtual_only=virtual_only_meetings(items),
        hybrid=hybrid_meetings(items),
    )
