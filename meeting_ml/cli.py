from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .classify import classify_meetings
from .cluster import cluster_meetings, threshold_from_viewport
from .config import ConfigError, init_config, load_config, resolve_config_path
from .describe import describe_meeting, resolve_locale
from .export import canonical_json_bytes, dataset_json, meetings_json, write_json
from .parse import PayloadError, load_meetings_file
from .record import MeetingRecord


_VIEWS = ("all", "in-person", "in-person-only", "virtual", "virtual-only", "hybrid")


def _select_view(meetings: List[MeetingRecord], view: str) -> List[MeetingRecord]:
    if view == "all":
        return list(meetings)
    classified = classify_meetings(meetings)
    return {
        "in-person": classified.in_person,
        "in-person-only": classified.in_person_only,
        "virtual": classified.virtual,
        "virtual-only": classified.virtual_only,
        "hybrid": classified.hybrid,
    }[view]


def _resolve_threshold(args: argparse.Namespace, config: Dict[str, Any]) -> Optional[float]:
    if args.threshold_m is not None:
        return float(args.threshold_m)
    if args.viewport_width_m is not None and args.viewport_width_px is not None:
        return threshold_from_viewport(
            viewport_width_m=float(args.viewport_width_m),
            viewport_width_px=float(args.viewport_width_px),
            marker_size_px=float(config["clustering"]["marker_size_px"]),
        )
    return None


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Meeting classification, description and dataset export")
    parser.add_argument("--meetings", type=str, default=None, help="Path to a meeting server JSON response")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to settings YAML (optional; defaults to XDG config or ./meeting_ml.yaml)",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create a starter settings file at the resolved path and exit",
    )
    parser.add_argument(
        "--overwrite-config",
        action="store_true",
        help="With --init-config, overwrite an existing settings file",
    )
    parser.add_argument(
        "--print-config-path",
        action="store_true",
        help="Print the resolved settings path and exit",
    )
    parser.add_argument("--locale", type=str, default=None, help="Locale override, e.g. en_US or de_DE")
    parser.add_argument(
        "--view",
        choices=_VIEWS,
        default="all",
        help="Restrict dataset/meetings output to one modality view (default: all)",
    )
    parser.add_argument("--summary", action="store_true", help="Print modality counts as JSON")
    parser.add_argument("--describe", type=str, default=None, help="Print the description of the meeting with this id")
    parser.add_argument("--dataset-out", type=str, default=None, help="Write the labeled text dataset JSON here")
    parser.add_argument("--meetings-out", type=str, default=None, help="Write the flat meeting JSON here")
    parser.add_argument(
        "--clusters-out",
        type=str,
        default=None,
        help="Write map-marker clusters of in-person meetings here (needs --threshold-m or viewport size)",
    )
    parser.add_argument("--threshold-m", type=float, default=None, help="Cluster merge distance in meters")
    parser.add_argument("--viewport-width-m", type=float, default=None, help="Visible map width in meters")
    parser.add_argument("--viewport-width-px", type=float, default=None, help="Visible map width in display pixels")
    parser.add_argument("--verbose", action="store_true", help="Log debug details to stderr")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="[%(asctime)s] [%(name)s] %(message)s", datefmt="%H:%M:%S")

    config_path = resolve_config_path(args.config, prefer_xdg=bool(args.init_config))

    if args.print_config_path:
        print(config_path)
        return 0

    if args.init_config:
        init_config(config_path, overwrite=bool(args.overwrite_config))
        print(f"Initialized settings at {config_path}")
        return 0

    if not args.meetings:
        parser.error("--meetings is required")

    try:
        # An explicitly named settings file must exist; otherwise defaults apply.
        config = load_config(config_path, missing_ok=not bool(args.config))
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 2

    locale = args.locale or config["locale"]
    if resolve_locale(locale) is None:
        print(f"Unknown locale: {locale}", file=sys.stderr)
        return 2

    try:
        page = load_meetings_file(Path(args.meetings))
    except PayloadError as e:
        print(str(e), file=sys.stderr)
        return 2

    meetings = page.meetings
    selected = _select_view(meetings, args.view)

    if args.summary:
        print(json.dumps(classify_meetings(meetings).counts(), indent=2, sort_keys=True))

    if args.describe is not None:
        match = next((m for m in meetings if str(m.id) == args.describe), None)
        if match is None:
            print(f"No meeting with id {args.describe}", file=sys.stderr)
            return 2
        print(describe_meeting(match, locale=locale))

    if args.dataset_out:
        include_empty = bool(config["export"]["include_empty_descriptions"])
        out = write_json(Path(args.dataset_out), dataset_json(selected, locale=locale, include_empty=include_empty))
        print(f"Wrote {out}")

    if args.meetings_out:
        out = write_json(Path(args.meetings_out), meetings_json(selected))
        print(f"Wrote {out}")

    if args.clusters_out:
        threshold = _resolve_threshold(args, config)
        if threshold is None:
            print("Clustering needs --threshold-m or --viewport-width-m with --viewport-width-px.", file=sys.stderr)
            return 2
        clusters = cluster_meetings(classify_meetings(meetings).in_person, threshold)
        payload = [c.to_dict() for c in clusters]
        out = write_json(Path(args.clusters_out), canonical_json_bytes(payload))
        print(f"Wrote {out} ({len(clusters)} clusters)")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
