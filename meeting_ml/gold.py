from __future__ import annotations

import json
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from . import cli


class GoldError(ValueError):
    pass


@dataclass(frozen=True)
class GoldFailure:
    case_id: str
    message: str


def _as_path(base: Path, raw: Any) -> Optional[Path]:
    if not isinstance(raw, str) or not raw.strip():
        return None
    p = Path(raw)
    return (base / p).resolve() if not p.is_absolute() else p


def load_gold_file(gold_path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(gold_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise GoldError(f"Gold file must be a mapping: {gold_path}")
    return data


def _text_contains_all(text: str, needles: List[str]) -> bool:
    s = (text or "").casefold()
    return all(n.casefold() in s for n in needles if isinstance(n, str) and n)


def evaluate_gold_case(*, case: Dict[str, Any], base_dir: Path) -> Tuple[int, Dict[str, Any]]:
    """Run the CLI for one case and collect its dataset (and clusters, if asked)."""

    case_id = str(case.get("id") or "gold")
    meetings_path = _as_path(base_dir, case.get("meetings"))
    if meetings_path is None:
        raise GoldError(f"Gold case {case_id!r} must specify meetings")

    clusters_cfg = case.get("clusters")
    threshold: Optional[float] = None
    if isinstance(clusters_cfg, dict) and clusters_cfg.get("threshold_m") is not None:
        threshold = float(clusters_cfg["threshold_m"])

    with tempfile.TemporaryDirectory(prefix="meeting-ml-gold-") as td:
        dataset_path = Path(td) / "dataset.json"
        clusters_path = Path(td) / "clusters.json"
        config_path = Path(td) / "meeting_ml.yaml"
        config_path.write_text("{}\n", encoding="utf-8")

        argv: List[str] = [
            "--meetings",
            str(meetings_path),
            "--config",
            str(config_path),
            "--dataset-out",
            str(dataset_path),
        ]
        locale = case.get("locale")
        if isinstance(locale, str) and locale:
            argv.extend(["--locale", locale])
        if threshold is not None:
            argv.extend(["--clusters-out", str(clusters_path), "--threshold-m", str(threshold)])

        rc = cli.main(argv)
        payload: Dict[str, Any] = {"dataset": [], "clusters": None}
        if dataset_path.exists():
            payload["dataset"] = json.loads(dataset_path.read_text(encoding="utf-8"))
        if threshold is not None and clusters_path.exists():
            payload["clusters"] = json.loads(clusters_path.read_text(encoding="utf-8"))

    return rc, payload


def check_gold_payload(*, case_id: str, payload: Dict[str, Any], expected: Dict[str, Any]) -> List[GoldFailure]:
    failures: List[GoldFailure] = []

    rows = payload.get("dataset")
    if not isinstance(rows, list):
        rows = []
    by_id = {str(r.get("id")): r for r in rows if isinstance(r, dict)}

    count = expected.get("count")
    if isinstance(count, int) and len(rows) != count:
        failures.append(GoldFailure(case_id=case_id, message=f"Expected {count} dataset rows, got {len(rows)}"))

    for exp in expected.get("meetings") or []:
        if not isinstance(exp, dict):
            continue
        mid = str(exp.get("id") or "")
        row = by_id.get(mid)
        if row is None:
            failures.append(GoldFailure(case_id=case_id, message=f"Missing dataset row for meeting {mid}"))
            continue

        exp_type = exp.get("type")
        if isinstance(exp_type, str) and row.get("type") != exp_type:
            failures.append(
                GoldFailure(case_id=case_id, message=f"Meeting {mid} has type {row.get('type')!r}, expected {exp_type!r}")
            )

        needles = exp.get("must_include")
        if isinstance(needles, list) and needles and not _text_contains_all(str(row.get("meeting") or ""), needles):
            failures.append(
                GoldFailure(case_id=case_id, message=f"Meeting {mid} description missing required substrings: {needles}")
            )

        if exp.get("empty") is True and row.get("meeting"):
            failures.append(GoldFailure(case_id=case_id, message=f"Meeting {mid} description should be empty"))

    clusters_exp = expected.get("clusters")
    if isinstance(clusters_exp, int):
        clusters = payload.get("clusters")
        got = len(clusters) if isinstance(clusters, list) else None
        if got != clusters_exp:
            failures.append(GoldFailure(case_id=case_id, message=f"Expected {clusters_exp} clusters, got {got}"))

    return failures


def evaluate_gold_suite(gold_path: Path) -> List[GoldFailure]:
    gold = load_gold_file(gold_path)
    base_dir = gold_path.parent

    cases = gold.get("cases")
    if not isinstance(cases, list) or not cases:
        raise GoldError("Gold file must include non-empty cases[]")

    failures: List[GoldFailure] = []

    for c in cases:
        if not isinstance(c, dict):
            continue
        case_id = str(c.get("id") or "") or "(unknown)"
        expected = c.get("expected")
        if not isinstance(expected, dict):
            expected = {}

        rc, payload = evaluate_gold_case(case=c, base_dir=base_dir)
        if rc != 0:
            failures.append(GoldFailure(case_id=case_id, message=f"CLI returned non-zero exit code: {rc}"))

        failures.extend(check_gold_payload(case_id=case_id, payload=payload, expected=expected))

    return failures
