"""
Tests for paper scoring and aggregate statistics.
"""

from __future__ import annotations

import pytest

from analysis_utils.classification import classify_papers
from analysis_utils.paper_scores import score_paper_component, score_papers
from analysis_utils.statistics import (
    compute_score_correlations,
    describe,
    ground_truth_coverage,
    is_insufficient_ground_truth,
    pearson_correlation,
    position_stats,
    provenance_stats,
    rank_distribution,
    scoring_stats,
)
from dataset.models import (
    ComponentPrediction,
    ComponentRating,
    Evaluation,
    Evaluator,
    GroundTruth,
    Paper,
    RankedPrediction,
    SystemOutput,
)
from utils.schema import (
    COMPONENT_METADATA,
    COMPONENT_RESEARCH_FIELD,
    COMPONENT_RESEARCH_PROBLEM,
    SCORE_METHOD_AUTOMATED,
    SCORE_METHOD_HYBRID,
    SCORE_METHOD_NONE,
    SCORE_METHOD_USER,
    SOURCE_GENERATED,
)


def _evaluation(
    evaluator_id: str,
    component: str,
    rating: int,
    *,
    multiplier: float = 1.0,
    position: int | None = None,
) -> Evaluation:
    """Return an evaluation rating one component."""

    positions = {component: position} if position is not None else {}
    return Evaluation(
        evaluator=Evaluator(evaluator_id, expertise_multiplier=multiplier),
        ratings={component: ComponentRating(rating)},
        positions=positions,
    )


def _field_paper(paper_id: str, reference: str, ranked: tuple, evaluations=()) -> Paper:
    """Return a paper with a research-field reference and ranked predictions."""

    return Paper(
        paper_id=paper_id,
        ground_truth=GroundTruth(research_field=reference),
        system_output=SystemOutput(
            research_fields=tuple(RankedPrediction(name) for name in ranked)
        ),
        evaluations=tuple(evaluations),
    )


def test_rank_distribution_is_cumulative() -> None:
    """Rank 1 counts in every bucket; rank 4 only in top 5."""

    counts = rank_distribution([1, 4, None, 7])

    assert counts == {"top1": 1, "top3": 1, "top5": 2, "outside": 2}


def test_describe_handles_empty_and_missing_values() -> None:
    """None values are dropped and an empty vector yields zeros."""

    summary = describe([0.2, None, 0.4])

    assert summary.mean == pytest.approx(0.3)
    assert summary.std == pytest.approx(0.1)
    assert summary.count == 2
    empty = describe([]).to_dict()
    assert empty["count"] == 0
    assert all(empty[key] == 0.0 for key in ("mean", "median", "std", "min", "max"))


def test_paper_score_falls_back_to_automated_only() -> None:
    """Papers without evaluations are scored by the automated metric alone."""

    paper = _field_paper("p1", "Robotics", ("Robotics",))

    score = score_paper_component(paper, COMPONENT_RESEARCH_FIELD)

    assert score.score == pytest.approx(1.0)
    assert score.score_method == SCORE_METHOD_AUTOMATED
    assert score.positions == [1]


def test_paper_score_without_any_signal() -> None:
    """No reference match and no ratings leaves the paper unscored."""

    paper = _field_paper("p1", "Chemistry", ("Physics",))

    score = score_paper_component(paper, COMPONENT_RESEARCH_FIELD)

    assert score.score is None
    assert score.score_method == SCORE_METHOD_NONE


def test_reference_outside_top_five_uses_user_rating() -> None:
    """A missing rank makes the automated score uncomputable for fusion."""

    paper = _field_paper(
        "p1",
        "Chemistry",
        ("Physics",),
        [_evaluation("e1", COMPONENT_RESEARCH_FIELD, 4)],
    )

    score = score_paper_component(paper, COMPONENT_RESEARCH_FIELD)

    assert score.score_method == SCORE_METHOD_USER
    assert score.score == pytest.approx(0.8)


def test_duplicate_records_contribute_every_evaluation() -> None:
    """Evaluations on duplicate records are scored against the first record."""

    first = _field_paper(
        "p1", "Robotics", ("Robotics",), [_evaluation("e1", COMPONENT_RESEARCH_FIELD, 5)]
    )
    duplicate = _field_paper(
        "p1", "Robotics", ("Vision",), [_evaluation("e2", COMPONENT_RESEARCH_FIELD, 3)]
    )

    scores = score_papers([first, duplicate], COMPONENT_RESEARCH_FIELD)

    assert len(scores) == 1
    assert [item.evaluator.evaluator_id for item in scores[0].evaluation_scores] == ["e1", "e2"]
    assert scores[0].metric.position == 1
    assert scores[0].score_method == SCORE_METHOD_HYBRID


def test_position_stats_per_evaluation() -> None:
    """Evaluator positions override the derived rank; unrated papers count once."""

    papers = [
        _field_paper(
            "p1",
            "Robotics",
            ("Vision", "Databases", "Systems", "Robotics"),
            [
                _evaluation("e1", COMPONENT_RESEARCH_FIELD, 4),
                _evaluation("e2", COMPONENT_RESEARCH_FIELD, 4, position=1),
            ],
        ),
        _field_paper("p2", "Chemistry", ("Physics",)),
    ]

    stats = position_stats(score_papers(papers, COMPONENT_RESEARCH_FIELD))

    assert stats == {"top1": 1, "top3": 1, "top5": 2, "outside": 1}


def test_provenance_and_coverage_statistics() -> None:
    """External answers are judged by accuracy, generated ones by ratings."""

    external = Paper(
        paper_id="p1",
        ground_truth=GroundTruth(research_problem="Entity linking"),
        system_output=SystemOutput(research_problem=ComponentPrediction("Entity linking", 0.9)),
    )
    generated = Paper(
        paper_id="p2",
        system_output=SystemOutput(
            research_problem=ComponentPrediction("Claim detection", 0.9, SOURCE_GENERATED)
        ),
        evaluations=(
            _evaluation("e1", COMPONENT_RESEARCH_PROBLEM, 4),
            _evaluation("e2", COMPONENT_RESEARCH_PROBLEM, 2),
        ),
    )
    papers = [external, generated]

    results, _ = classify_papers(papers, COMPONENT_RESEARCH_PROBLEM)
    scores = score_papers(papers, COMPONENT_RESEARCH_PROBLEM)
    by_id = {result.paper_id: result for result in results}

    stats = provenance_stats(scores, by_id)
    coverage = ground_truth_coverage(results)

    assert stats["orkg"] == 1
    assert stats["llm"] == 1
    assert stats["orkgAccuracy"] == pytest.approx(1.0)
    assert stats["llmUserRating"] == pytest.approx(0.6)
    assert coverage == {"totalPapers": 2, "withGroundTruth": 1, "withoutGroundTruth": 1}
    assert is_insufficient_ground_truth(coverage) is True


def test_scoring_stats_split_by_signal() -> None:
    """Overall, ground-truth-based and user-rating scores are reported separately."""

    papers = [
        _field_paper("p1", "Robotics", ("Robotics",)),
        _field_paper(
            "p2", "Chemistry", ("Physics",), [_evaluation("e1", COMPONENT_RESEARCH_FIELD, 3)]
        ),
    ]

    stats = scoring_stats(score_papers(papers, COMPONENT_RESEARCH_FIELD))

    assert stats["overallScore"] == pytest.approx((1.0 + 0.6) / 2)
    assert stats["gtBasedScore"] == pytest.approx(1.0)
    assert stats["userRatingScore"] == pytest.approx(0.6)
    assert stats["scoredPapers"] == 2
    assert stats["gtScoredPapers"] == 1
    assert stats["userRatedPapers"] == 1


@pytest.mark.parametrize(
    "x,y,expected",
    [
        ([1.0, 2.0, 3.0], [2.0, 4.0, 6.0], 1.0),
        ([1.0, 2.0, 3.0], [3.0, 2.0, 1.0], -1.0),
        ([1.0, 2.0, 3.0], [0.5, 0.5, 0.5], 0.0),
        ([1.0], [1.0], 0.0),
        ([1.0, 2.0], [1.0, 2.0, 3.0], 0.0),
    ],
)
def test_pearson_correlation(x: list, y: list, expected: float) -> None:
    """Undefined correlations fall back to 0 instead of NaN."""

    assert pearson_correlation(x, y) == pytest.approx(expected)


def test_expertise_correlates_with_user_only_scores() -> None:
    """More expert raters giving higher ratings yields a strong positive r."""

    evaluations = tuple(
        Evaluation(
            Evaluator(f"e{weight}", expertise_weight=weight, expertise_multiplier=multiplier),
            {COMPONENT_METADATA: ComponentRating(rating)},
        )
        for weight, multiplier, rating in [(1.0, 0.8, 2), (3.0, 1.2, 3), (5.0, 1.6, 4)]
    )
    paper = Paper(paper_id="p1", evaluations=evaluations)

    correlations = compute_score_correlations([paper], [COMPONENT_METADATA])

    assert correlations["sampleSize"] == 3
    assert correlations["expertiseVsScore"] > 0.99
    assert correlations["expertiseVsMetadata"] == pytest.approx(correlations["expertiseVsScore"])
    assert correlations["completenessVsScore"] == 0.0


def test_completeness_correlates_with_scores() -> None:
    """Complete extractions rated highly correlate positively with scores."""

    def paper(paper_id: str, reference: str, predicted: str, rating: int) -> Paper:
        return Paper(
            paper_id=paper_id,
            ground_truth=GroundTruth(research_problem=reference),
            system_output=SystemOutput(research_problem=ComponentPrediction(predicted, 0.9)),
            evaluations=(_evaluation("ann", COMPONENT_RESEARCH_PROBLEM, rating),),
        )

    papers = [
        paper("p1", "Entity linking", "Entity linking", 5),
        paper("p2", "Relation extraction among entities", "Relation", 1),
    ]

    correlations = compute_score_correlations(papers, [COMPONENT_RESEARCH_PROBLEM])

    assert correlations["completenessVsScore"] == pytest.approx(1.0)
    assert correlations["expertiseVsResearchProblem"] == 0.0


def test_score_correlations_empty() -> None:
    """No scored evaluations gives zero correlations and sample size."""

    correlations = compute_score_correlations([], [COMPONENT_METADATA])

    assert correlations == {
        "expertiseVsScore": 0.0,
        "completenessVsScore": 0.0,
        "expertiseVsMetadata": 0.0,
        "sampleSize": 0,
    }
