from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .record import MeetingRecord, haversine_meters, is_valid_coordinate


Coordinate = Tuple[float, float]


DEFAULT_MARKER_SIZE_PX = 40.0


@dataclass
class MeetingCluster:
    # The first point added; it is never recomputed as meetings join.
    representative_coordinate: Coordinate
    meetings: List[MeetingRecord] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.meetings)

    def to_dict(self) -> dict:
        lat, lng = self.representative_coordinate
        return {
            "representative_coordinate": {"latitude": lat, "longitude": lng},
            "meeting_ids": [str(m.id) for m in self.meetings],
        }


def threshold_from_viewport(
    *,
    viewport_width_m: float,
    viewport_width_px: float,
    marker_size_px: float = DEFAULT_MARKER_SIZE_PX,
) -> float:
    """Meters covered by half a marker at the current map scale.

    Returns 0.0 for a degenerate viewport, which disables clustering.
    """

    if viewport_width_px <= 0 or viewport_width_m <= 0 or marker_size_px <= 0:
        return 0.0
    return (marker_size_px / 2) * (viewport_width_m / viewport_width_px)


def cluster_points(
    points: Iterable[Tuple[Coordinate, MeetingRecord]],
    threshold_m: float,
) -> List[MeetingCluster]:
    """Greedy, order-dependent clustering of (coordinate, meeting) pairs.

    Each point joins the first existing cluster whose representative lies
    within `threshold_m` meters, otherwise it starts a new cluster. A negative
    or NaN threshold returns [].

    A zero threshold does not return [] the way a map view with no scale
    would: it merges nothing and yields one cluster per point, so the
    cluster count never drops below the number of distinct inputs.
    """

    if threshold_m is None or math.isnan(threshold_m) or threshold_m < 0:
        return []

    clusters: List[MeetingCluster] = []
    for coord, meeting in points:
        lat, lng = coord
        if threshold_m > 0:
            match: Optional[MeetingCluster] = None
            for cluster in clusters:
                c_lat, c_lng = cluster.representative_coordinate
                if haversine_meters(c_lat, c_lng, lat, lng) <= threshold_m:
                    match = cluster
                    break
            if match is not None:
                match.meetings.append(meeting)
                continue
        clusters.append(MeetingCluster(representative_coordinate=(lat, lng), meetings=[meeting]))

    return clusters


def cluster_meetings(meetings: Optional[Sequence[MeetingRecord]], threshold_m: float) -> List[MeetingCluster]:
    """Cluster meetings by their own coordinates; meetings without valid coords are skipped."""

    points = [
        (m.coords, m)
        for m in meetings or []
        if m.coords is not None and is_valid_coordinate(*m.coords)
    ]
    return cluster_points(points, threshold_m)
