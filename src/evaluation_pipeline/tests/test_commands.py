"""
End-to-end tests for the evaluate_papers command.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path

from evaluation_pipeline.commands import main


def _write_dataset(path: Path) -> Path:
    """Write a small upstream-shaped dataset and return its path."""

    papers = [
        {
            "token": "tok-a",
            "groundTruth": {
                "title": "Scholarly Knowledge Graphs",
                "doi": "10.1000/skg",
                "researchField": "Computer Science",
                "researchProblem": "Knowledge graph construction",
            },
            "systemData": {
                "metadata": {"title": "Scholarly knowledge graphs", "doi": "10.1000/skg"},
                "researchFields": ["Computer Science", "Physics"],
                "researchProblem": {"title": "Knowledge graph construction", "confidence": 0.9},
            },
            "userEvaluations": [
                {"evaluatorId": "ann", "ratings": {"metadata": 5, "research_field": 4}},
                {"evaluatorId": "bob", "ratings": {"metadata": 5, "research_field": 4}},
            ],
        },
        {
            "token": "tok-b",
            "groundTruth": {"title": "Table Extraction", "researchField": "Physics"},
            "systemData": {
                "metadata": {"title": "Table extraction"},
                "researchFields": ["Chemistry", "Physics"],
            },
            "userEvaluations": [
                {"evaluatorId": "ann", "ratings": {"metadata": 5, "research_field": 4}},
                {"evaluatorId": "bob", "ratings": {"metadata": 5, "research_field": 4}},
            ],
        },
        {"title": "no identifier"},
    ]
    path.write_text(json.dumps(papers), encoding="utf-8")
    return path


def test_main_writes_exports(tmp_path: Path) -> None:
    """The command should write one JSON and CSV per component plus a summary."""

    dataset_path = _write_dataset(tmp_path / "papers.json")
    out_dir = tmp_path / "exports"

    exit_code = main(
        [
            "--input",
            str(dataset_path),
            "--output-dir",
            str(out_dir),
            "-c",
            "metadata",
            "-c",
            "research_field",
            "--log-file",
            "run.log",
        ]
    )

    assert exit_code == 0
    metadata = json.loads((out_dir / "confusion_matrix_metadata.json").read_text("utf-8"))
    assert metadata["matrix"] == {"tp": 2, "fn": 0, "fp": 0, "tn": 0}
    assert metadata["counts"]["totalUniquePapers"] == 2

    field = json.loads((out_dir / "confusion_matrix_research_field.json").read_text("utf-8"))
    assert field["matrix"] == {"tp": 1, "fn": 0, "fp": 1, "tn": 0}
    assert field["positionStats"]["top3"] == 4

    with (out_dir / "paper_breakdown_research_field.csv").open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["doi"] for row in rows] == ["10.1000/skg", "tok-b"]
    assert [row["position"] for row in rows] == ["1", "2"]
    assert "source" not in rows[0]

    summary = json.loads((out_dir / "agreement_summary.json").read_text("utf-8"))
    assert summary["component"] == "overall"
    assert summary["sharedPapers"] == 2
    assert set(summary["byComponent"]) == {"metadata", "research_field"}
    assert not (out_dir / "confusion_matrix_content.json").exists()
    assert "Skipping paper record 2" in (out_dir / "run.log").read_text("utf-8")


def test_main_reports_missing_input(tmp_path: Path) -> None:
    """A missing dataset file should fail with exit code 1 and no exports."""

    out_dir = tmp_path / "exports"

    exit_code = main(["--input", str(tmp_path / "missing.json"), "--output-dir", str(out_dir)])

    assert exit_code == 1
    assert not (out_dir / "agreement_summary.json").exists()


def test_main_strict_mode_fails_on_invalid_record(tmp_path: Path) -> None:
    """--strict should turn a skipped record into a failure."""

    dataset_path = _write_dataset(tmp_path / "papers.json")

    exit_code = main(
        ["--input", str(dataset_path), "--output-dir", str(tmp_path / "out"), "--strict"]
    )

    assert exit_code == 1


def test_main_accepts_single_root_hierarchy_and_scopes_summary(tmp_path: Path) -> None:
    """A one-root hierarchy file loads, and the summary covers only chosen components."""

    dataset_path = _write_dataset(tmp_path / "papers.json")
    tree_path = tmp_path / "fields.json"
    tree_path.write_text(
        json.dumps(
            {
                "id": "root",
                "label": "Science",
                "children": [
                    {"id": "cs", "label": "Computer Science"},
                    {"id": "phys", "label": "Physics"},
                ],
            }
        ),
        encoding="utf-8",
    )
    out_dir = tmp_path / "exports"

    exit_code = main(
        [
            "--input",
            str(dataset_path),
            "--output-dir",
            str(out_dir),
            "-c",
            "research_field",
            "--field-hierarchy",
            str(tree_path),
        ]
    )

    assert exit_code == 0
    summary = json.loads((out_dir / "agreement_summary.json").read_text("utf-8"))
    assert summary["components"] == ["research_field"]
    assert set(summary["byComponent"]) == {"research_field"}
    assert summary["correlations"]["sampleSize"] == 4
    assert "expertiseVsMetadata" not in summary["correlations"]
