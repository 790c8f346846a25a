from __future__ import annotations

from pathlib import Path

from meeting_ml.gold import check_gold_payload, evaluate_gold_suite


def test_gold_suite_runs_clean() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    gold_path = repo_root / "gold" / "gold.yaml"
    failures = evaluate_gold_suite(gold_path)
    assert failures == []


def test_check_gold_payload_reports_mismatches() -> None:
    payload = {
        "dataset": [{"id": "1", "type": "virtual", "meeting": "Hello"}],
        "clusters": [],
    }
    expected = {
        "count": 2,
        "clusters": 1,
        "meetings": [
            {"id": "1", "type": "hybrid", "must_include": ["goodbye"], "empty": True},
            {"id": "2"},
        ],
    }

    messages = [f.message for f in check_gold_payload(case_id="c", payload=payload, expected=expected)]
    assert messages == [
        "Expected 2 dataset rows, got 1",
        "Meeting 1 has type 'virtual', expected 'hybrid'",
        "Meeting 1 description missing required substrings: ['goodbye']",
        "Meeting 1 description should be empty",
        "Missing dataset row for meeting 2",
        "Expected 1 clusters, got 0",
    ]
