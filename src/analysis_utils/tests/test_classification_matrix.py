"""
Tests for confusion-matrix classification.
"""

from __future__ import annotations

import pytest

from analysis_utils.classification import (
    ConfusionMatrix,
    classify_paper,
    classify_papers,
    label_for,
    matrix_metrics,
)
from dataset.models import (
    ComponentPrediction,
    ContentExtraction,
    ExtractedProperty,
    GroundTruth,
    Paper,
    SystemOutput,
)
from utils.schema import (
    COMPONENT_CONTENT,
    COMPONENT_METADATA,
    COMPONENT_RESEARCH_PROBLEM,
    LABEL_FN,
    LABEL_FP,
    LABEL_NA,
    LABEL_TN,
    LABEL_TP,
)


def _problem_paper(
    paper_id: str,
    reference: str | None,
    predicted: str | None,
    confidence: float = 0.9,
) -> Paper:
    """Return a paper with a research problem reference and prediction."""

    ground_truth = GroundTruth(research_problem=reference) if reference else None
    return Paper(
        paper_id=paper_id,
        ground_truth=ground_truth,
        system_output=SystemOutput(
            research_problem=ComponentPrediction(predicted, confidence)
        ),
    )


@pytest.mark.parametrize(
    "gt_present,sys_present,agree,label",
    [
        (True, True, True, LABEL_TP),
        (True, True, False, LABEL_FP),
        (True, False, False, LABEL_FN),
        (False, True, False, LABEL_FP),
        (False, False, False, LABEL_TN),
    ],
)
def test_label_decision_table(gt_present: bool, sys_present: bool, agree: bool, label: str) -> None:
    """The 2x2 decision table should map each case to one label."""

    assert label_for(gt_present, sys_present, agree) == label


def test_exact_match_is_true_positive() -> None:
    """Matching values above the threshold are TP."""

    result = classify_paper(
        _problem_paper("p1", "Entity Linking", "entity linking"), COMPONENT_RESEARCH_PROBLEM
    )

    assert result.label == LABEL_TP
    assert result.has_ground_truth is True


def test_low_confidence_prediction_is_false_negative() -> None:
    """A prediction below the threshold counts as absent."""

    result = classify_paper(
        _problem_paper("p1", "Entity Linking", "Entity Linking", confidence=0.3),
        COMPONENT_RESEARCH_PROBLEM,
        confidence_threshold=0.5,
    )

    assert result.label == LABEL_FN


def test_missing_reference_and_prediction_is_true_negative() -> None:
    """Nothing expected and nothing produced is TN."""

    result = classify_paper(_problem_paper("p1", None, None), COMPONENT_RESEARCH_PROBLEM)

    assert result.label == LABEL_TN


def test_missing_prediction_is_false_negative() -> None:
    """A reference without any prediction is FN."""

    result = classify_paper(_problem_paper("p1", "Entity Linking", None), COMPONENT_RESEARCH_PROBLEM)

    assert result.label == LABEL_FN


def test_prediction_without_reference_is_false_positive() -> None:
    """A confident prediction with no reference is FP."""

    result = classify_paper(_problem_paper("p1", None, "Entity Linking"), COMPONENT_RESEARCH_PROBLEM)

    assert result.label == LABEL_FP


def test_metadata_uses_metadata_confidence() -> None:
    """Metadata titles are gated by the metadata confidence."""

    paper = Paper(
        paper_id="p1",
        ground_truth=GroundTruth(title="A Study"),
        system_output=SystemOutput(metadata={"title": "A Study"}, metadata_confidence=0.2),
    )

    assert classify_paper(paper, COMPONENT_METADATA).label == LABEL_FN
    assert classify_paper(paper, COMPONENT_METADATA, confidence_threshold=0.1).label == LABEL_TP


def test_content_is_not_applicable() -> None:
    """Components without a ground-truth concept are N/A and not counted."""

    paper = Paper(
        paper_id="p1",
        system_output=SystemOutput(
            content=ContentExtraction(properties={"method": ExtractedProperty("CNN")})
        ),
    )

    results, matrix = classify_papers([paper], COMPONENT_CONTENT)

    assert results[0].label == LABEL_NA
    assert matrix.total == 0


def test_matrix_counts_unique_papers() -> None:
    """Duplicates collapse so the matrix sums to the number of unique papers."""

    papers = [
        _problem_paper("p1", "Entity Linking", "Entity Linking"),
        _problem_paper("p1", "Entity Linking", "Something else"),
        _problem_paper("p2", "Relation Extraction", "NER"),
        _problem_paper("p3", None, None),
        _problem_paper("p4", "Parsing", None),
    ]

    results, matrix = classify_papers(papers, COMPONENT_RESEARCH_PROBLEM)

    assert [result.paper_id for result in results] == ["p1", "p2", "p3", "p4"]
    assert results[0].label == LABEL_TP
    assert matrix == ConfusionMatrix(tp=1, fn=1, fp=1, tn=1)
    assert matrix.total == 4
    assert matrix.to_dict() == {"tp": 1, "fn": 1, "fp": 1, "tn": 1}


def test_matrix_metrics() -> None:
    """Derived metrics should follow the usual definitions."""

    metrics = matrix_metrics(ConfusionMatrix(tp=3, fn=1, fp=1, tn=5))

    assert metrics["accuracy"] == pytest.approx(0.8)
    assert metrics["precision"] == pytest.approx(0.75)
    assert metrics["recall"] == pytest.approx(0.75)
    assert metrics["f1Score"] == pytest.approx(0.75)
    assert metrics["specificity"] == pytest.approx(5 / 6)


def test_matrix_metrics_empty_matrix() -> None:
    """Zero denominators should yield zeros rather than errors."""

    metrics = matrix_metrics(ConfusionMatrix())

    assert all(value == 0.0 for value in metrics.values())
