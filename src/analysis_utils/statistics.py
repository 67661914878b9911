"""Aggregate statistics over fused scores, ranks, provenance, and coverage.

All scalar statistics are guarded so an empty cohort yields zeros instead of
NaN or an exception. Correlations of evaluator expertise and automated
completeness with fused scores use :func:`scipy.stats.pearsonr`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from analysis_utils.classification import ClassificationResult
from analysis_utils.paper_scores import PaperComponentScore, score_papers
from dataset.hierarchy import FieldHierarchyCache
from dataset.models import Paper
from scoring.configs import MIN_GROUND_TRUTH_COVERAGE, RATING_SCALE
from utils.schema import (
    COMPONENT_KEYS,
    COVERAGE_TOTAL,
    COVERAGE_WITH_GT,
    COVERAGE_WITHOUT_GT,
    LABEL_TP,
    POSITION_OUTSIDE,
    POSITION_TOP1,
    POSITION_TOP3,
    POSITION_TOP5,
    SCORING_GT_BASED,
    SCORING_GT_SCORED_PAPERS,
    SCORING_OVERALL,
    SCORING_SCORED_PAPERS,
    SCORING_USER_RATED_PAPERS,
    SCORING_USER_RATING,
    SOURCE_EXTERNAL,
    SOURCE_GENERATED,
    SOURCE_STATS_EXTERNAL,
    SOURCE_STATS_EXTERNAL_ACCURACY,
    SOURCE_STATS_GENERATED,
    SOURCE_STATS_GENERATED_RATING,
)


@dataclass(frozen=True)
class ScoreSummary:
    """Descriptive statistics of a score vector."""

    mean: float = 0.0
    median: float = 0.0
    std: float = 0.0
    min: float = 0.0
    max: float = 0.0
    count: int = 0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def describe(values: Iterable[Optional[float]]) -> ScoreSummary:
    """Return mean, median, population std, min and max of ``values``.

    ``None`` entries are treated as not computable and dropped. An empty
    vector yields a summary of zeros.
    """

    present = np.asarray([value for value in values if value is not None], dtype=float)
    if present.size == 0:
        return ScoreSummary()
    return ScoreSummary(
        mean=float(np.mean(present)),
        median=float(np.median(present)),
        std=float(np.std(present)),
        min=float(np.min(present)),
        max=float(np.max(present)),
        count=int(present.size),
    )


def safe_mean(values: Iterable[Optional[float]]) -> float:
    return describe(values).mean


def rank_distribution(positions: Iterable[Optional[int]]) -> Dict[str, int]:
    """Bucket found positions into cumulative top-1/3/5 counts.

    A missing position or one beyond 5 counts as ``outside``.
    """

    counts = {POSITION_TOP1: 0, POSITION_TOP3: 0, POSITION_TOP5: 0, POSITION_OUTSIDE: 0}
    for position in positions:
        if position is None or position < 1 or position > 5:
            counts[POSITION_OUTSIDE] += 1
            continue
        if position == 1:
            counts[POSITION_TOP1] += 1
        if position <= 3:
            counts[POSITION_TOP3] += 1
        counts[POSITION_TOP5] += 1
    return counts


def position_stats(scores: Sequence[PaperComponentScore]) -> Dict[str, int]:
    """Return the rank distribution over every evaluation of every paper."""

    return rank_distribution(
        position for score in scores for position in score.positions
    )


def provenance_stats(
    scores: Sequence[PaperComponentScore],
    classifications: Mapping[str, ClassificationResult],
) -> Dict[str, float]:
    """Split papers by provenance and summarise each partition.

    Externally sourced answers are judged by ground-truth accuracy (share of
    TP among those with ground truth). Generated answers have no ground
    truth, so they are judged by the mean normalized user rating over all
    their evaluations.

    Parameters
    ----------
    scores:
        Per-paper scores for one component.
    classifications:
        Classification results keyed by paper identifier.

    Returns
    -------
    Dict[str, float]
        Export-ready ``sourceStats`` mapping.
    """

    external = 0
    generated = 0
    external_with_gt = 0
    external_correct = 0
    generated_ratings: List[float] = []
    for score in scores:
        result = classifications.get(score.paper_id)
        source = result.source if result is not None else None
        if source == SOURCE_GENERATED:
            generated += 1
            generated_ratings.extend(rating / RATING_SCALE for rating in score.ratings)
        elif source == SOURCE_EXTERNAL:
            external += 1
            if result is not None and result.has_ground_truth:
                external_with_gt += 1
                if result.label == LABEL_TP:
                    external_correct += 1

    return {
        SOURCE_STATS_EXTERNAL: external,
        SOURCE_STATS_GENERATED: generated,
        SOURCE_STATS_EXTERNAL_ACCURACY: (
            external_correct / external_with_gt if external_with_gt else 0.0
        ),
        SOURCE_STATS_GENERATED_RATING: safe_mean(generated_ratings),
    }


def ground_truth_coverage(results: Sequence[ClassificationResult]) -> Dict[str, int]:
    """Count unique papers with and without ground truth."""

    with_gt = sum(1 for result in results if result.has_ground_truth)
    return {
        COVERAGE_TOTAL: len(results),
        COVERAGE_WITH_GT: with_gt,
        COVERAGE_WITHOUT_GT: len(results) - with_gt,
    }


def is_insufficient_ground_truth(coverage: Mapping[str, int]) -> bool:
    """Return whether too few papers have ground truth to read the matrix."""

    return coverage[COVERAGE_WITH_GT] < MIN_GROUND_TRUTH_COVERAGE


def scoring_stats(scores: Sequence[PaperComponentScore]) -> Dict[str, float]:
    """Summarise hybrid, ground-truth-based, and user-rating scores.

    ``overallScore`` is the mean over every evaluation's fused score, using
    the automated score alone for papers without evaluations.
    ``gtBasedScore`` averages computable automated scores and
    ``userRatingScore`` averages normalized ratings over rated papers.
    """

    final_scores = [value for score in scores for value in score.final_scores]
    gt_scores = [score.metric.overall for score in scores if score.metric.overall is not None]
    rated = [score for score in scores if score.ratings]
    user_scores = [rating / RATING_SCALE for score in rated for rating in score.ratings]
    return {
        SCORING_OVERALL: safe_mean(final_scores),
        SCORING_GT_BASED: safe_mean(gt_scores),
        SCORING_USER_RATING: safe_mean(user_scores),
        SCORING_SCORED_PAPERS: sum(1 for score in scores if score.final_scores),
        SCORING_GT_SCORED_PAPERS: len(gt_scores),
        SCORING_USER_RATED_PAPERS: len(rated),
    }


def dimension_means(scores: Sequence[PaperComponentScore]) -> Dict[str, float]:
    """Mean of each automated dimension over papers where it is computable."""

    names: List[str] = []
    for score in scores:
        for name in score.metric.dimensions:
            if name not in names:
                names.append(name)
    return {
        name: safe_mean(score.metric.dimensions.get(name) for score in scores)
        for name in names
    }


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Return Pearson's r between ``x`` and ``y``.

    Returns 0 when the vectors differ in length, hold fewer than two pairs,
    or either side is constant, since r is undefined there.
    """

    x_values = np.asarray(x, dtype=float)
    y_values = np.asarray(y, dtype=float)
    if x_values.size != y_values.size or x_values.size < 2:
        return 0.0
    if np.ptp(x_values) == 0 or np.ptp(y_values) == 0:
        return 0.0
    return float(scipy_stats.pearsonr(x_values, y_values)[0])


def _evaluation_frame(
    papers: Sequence[Paper],
    components: Sequence[str],
    hierarchy: Optional[FieldHierarchyCache],
) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for component in components:
        for paper_score in score_papers(papers, component, hierarchy):
            completeness = paper_score.metric.dimensions.get("completeness")
            for index, evaluation_score in enumerate(paper_score.evaluation_scores):
                if evaluation_score.final_score is None:
                    continue
                rows.append(
                    {
                        "paper_id": paper_score.paper_id,
                        "evaluation": index,
                        "component": component,
                        "expertise": evaluation_score.evaluator.expertise_weight,
                        "score": evaluation_score.final_score,
                        "completeness": np.nan if completeness is None else completeness,
                    }
                )
    return pd.DataFrame(
        rows,
        columns=["paper_id", "evaluation", "component", "expertise", "score", "completeness"],
    )


def _correlation_key(component: str) -> str:
    return "expertiseVs" + "".join(part.capitalize() for part in component.split("_"))


def compute_score_correlations(
    papers: Iterable[Paper],
    components: Sequence[str] = tuple(COMPONENT_KEYS),
    hierarchy: Optional[FieldHierarchyCache] = None,
) -> Dict[str, object]:
    """Correlate evaluator expertise and extraction completeness with scores.

    Every evaluation contributes one row per component it scored. An
    evaluation's overall score is the mean of its fused scores over
    ``components`` and its completeness is the mean computable automated
    completeness over the same components.

    Parameters
    ----------
    papers:
        Normalized papers; duplicates are collapsed onto the first record.
    components:
        Components to score.
    hierarchy:
        Optional research-field hierarchy cache.

    Returns
    -------
    Dict[str, object]
        ``expertiseVsScore`` and ``completenessVsScore`` over evaluations,
        ``expertiseVs<Component>`` per component, and ``sampleSize`` (the
        number of scored evaluations). Undefined correlations are 0.
    """

    frame = _evaluation_frame(list(papers), components, hierarchy)
    if frame.empty:
        empty: Dict[str, object] = {"expertiseVsScore": 0.0, "completenessVsScore": 0.0}
        empty.update((_correlation_key(component), 0.0) for component in components)
        empty["sampleSize"] = 0
        return empty

    per_evaluation = (
        frame.groupby(["paper_id", "evaluation"], sort=False)
        .agg(
            expertise=("expertise", "first"),
            score=("score", "mean"),
            completeness=("completeness", "mean"),
        )
        .reset_index()
    )
    with_completeness = per_evaluation.dropna(subset=["completeness"])

    correlations: Dict[str, object] = {
        "expertiseVsScore": pearson_correlation(
            per_evaluation["expertise"], per_evaluation["score"]
        ),
        "completenessVsScore": pearson_correlation(
            with_completeness["completeness"], with_completeness["score"]
        ),
    }
    for component in components:
        subset = frame[frame["component"] == component]
        correlations[_correlation_key(component)] = pearson_correlation(
            subset["expertise"], subset["score"]
        )
    correlations["sampleSize"] = int(len(per_evaluation))
    return correlations
