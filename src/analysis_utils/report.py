"""Per-component export report.

:func:`build_component_report` runs the whole engine for one component
(automated metrics, fusion, classification, statistics) and assembles the
stable, versioned export artifact consumed by download and report tools.
Field names come from :mod:`utils.schema`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from analysis_utils.classification import (
    ClassificationResult,
    classify_papers,
    matrix_metrics,
)
from analysis_utils.formatting import round3_optional, round_mapping
from analysis_utils.paper_scores import PaperComponentScore, score_papers
from analysis_utils.statistics import (
    dimension_means,
    ground_truth_coverage,
    is_insufficient_ground_truth,
    position_stats,
    provenance_stats,
    safe_mean,
    scoring_stats,
)
from dataset.hierarchy import FieldHierarchyCache
from dataset.models import Paper
from scoring.components import get_profile
from scoring.configs import DEFAULT_CONFIDENCE_THRESHOLD
from utils.schema import (
    BREAKDOWN_CLASSIFICATION,
    BREAKDOWN_DOI,
    BREAKDOWN_GROUND_TRUTH,
    BREAKDOWN_POSITION,
    BREAKDOWN_SCORE,
    BREAKDOWN_SCORE_METHOD,
    BREAKDOWN_SOURCE,
    BREAKDOWN_SYSTEM_PREDICTION,
    BREAKDOWN_TITLE,
    BREAKDOWN_USER_RATING,
    COUNTS_TOTAL_EVALUATIONS,
    COUNTS_TOTAL_UNIQUE_PAPERS,
    COVERAGE_WITH_GT,
    EXPORT_COMPONENT,
    EXPORT_CONFIDENCE_THRESHOLD,
    EXPORT_COUNTS,
    EXPORT_COVERAGE,
    EXPORT_INSUFFICIENT_GT,
    EXPORT_MATRIX,
    EXPORT_METRICS,
    EXPORT_PAPER_BREAKDOWN,
    EXPORT_POSITION_STATS,
    EXPORT_SCHEMA_VERSION,
    EXPORT_SCORING_STATS,
    EXPORT_SOURCE_STATS,
    EXPORT_TIMESTAMP,
    METRIC_ACCURACY,
    METRIC_F1,
    METRIC_PRECISION,
    METRIC_RECALL,
    SCHEMA_VERSION,
)

LOGGER = logging.getLogger(__name__)


def _breakdown_entry(
    score: PaperComponentScore,
    result: ClassificationResult,
    *,
    include_source: bool,
    include_position: bool,
) -> Dict[str, object]:
    paper = score.paper
    entry: Dict[str, object] = {
        BREAKDOWN_DOI: paper.doi or paper.paper_id,
        BREAKDOWN_TITLE: paper.title,
        BREAKDOWN_GROUND_TRUTH: result.ground_truth,
        BREAKDOWN_SYSTEM_PREDICTION: result.system_value,
        BREAKDOWN_CLASSIFICATION: result.label,
        BREAKDOWN_SCORE: round3_optional(score.score),
        BREAKDOWN_SCORE_METHOD: score.score_method,
        BREAKDOWN_USER_RATING: round3_optional(score.mean_rating),
    }
    if include_source:
        entry[BREAKDOWN_SOURCE] = result.source
    if include_position:
        entry[BREAKDOWN_POSITION] = score.position
    return entry


def _content_metrics(scores: List[PaperComponentScore]) -> Dict[str, float]:
    means = dimension_means(scores)
    return {
        METRIC_ACCURACY: safe_mean(score.metric.overall for score in scores),
        METRIC_PRECISION: means.get("precision", 0.0),
        METRIC_RECALL: means.get("recall", 0.0),
        METRIC_F1: means.get("f1_score", 0.0),
    }


def build_component_report(
    papers: Iterable[Paper],
    component: str,
    *,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    hierarchy: Optional[FieldHierarchyCache] = None,
    generated_at: Optional[datetime] = None,
) -> Dict[str, object]:
    """Return the export artifact for ``component``.

    Parameters
    ----------
    papers:
        Normalized papers. Duplicates (same identifier) are collapsed onto
        their first record; every evaluation still counts.
    component:
        Component identifier.
    confidence_threshold:
        Minimum system confidence for a prediction to count as present.
    hierarchy:
        Optional research-field hierarchy cache.
    generated_at:
        Timestamp to stamp the artifact with; defaults to now (UTC).

    Returns
    -------
    Dict[str, object]
        JSON-ready mapping with ``component``, ``confidenceThreshold``,
        ``matrix``, ``metrics``, ``paperBreakdown``, ``coverage``,
        ``scoringStats``, ``counts``, ``timestamp``, plus ``sourceStats``
        for components with provenance and ``positionStats`` for ranked
        components.
    """

    profile = get_profile(component)
    papers = list(papers)

    results, matrix = classify_papers(papers, component, confidence_threshold)
    by_id = {result.paper_id: result for result in results}
    scores = score_papers(papers, component, hierarchy)

    coverage = ground_truth_coverage(results)
    insufficient = profile.classified and is_insufficient_ground_truth(coverage)
    if insufficient:
        LOGGER.warning(
            "Component %s: only %d papers with ground truth; confusion matrix is not interpretable",
            component,
            coverage[COVERAGE_WITH_GT],
        )

    if profile.classified:
        computed = matrix_metrics(matrix)
        metrics = {
            key: computed[key]
            for key in (METRIC_ACCURACY, METRIC_PRECISION, METRIC_RECALL, METRIC_F1)
        }
    else:
        metrics = _content_metrics(scores)

    report: Dict[str, object] = {
        EXPORT_SCHEMA_VERSION: SCHEMA_VERSION,
        EXPORT_COMPONENT: component,
        EXPORT_CONFIDENCE_THRESHOLD: confidence_threshold,
        EXPORT_MATRIX: matrix.to_dict(),
        EXPORT_METRICS: round_mapping(metrics),
        EXPORT_PAPER_BREAKDOWN: [
            _breakdown_entry(
                score,
                by_id[score.paper_id],
                include_source=profile.has_provenance,
                include_position=profile.ranked,
            )
            for score in scores
        ],
        EXPORT_COVERAGE: coverage,
        EXPORT_INSUFFICIENT_GT: insufficient,
    }
    if profile.has_provenance:
        report[EXPORT_SOURCE_STATS] = round_mapping(provenance_stats(scores, by_id))
    if profile.ranked:
        report[EXPORT_POSITION_STATS] = position_stats(scores)
    report[EXPORT_SCORING_STATS] = round_mapping(scoring_stats(scores))
    report[EXPORT_COUNTS] = {
        COUNTS_TOTAL_EVALUATIONS: sum(len(paper.evaluations) for paper in papers),
        COUNTS_TOTAL_UNIQUE_PAPERS: len(results),
    }
    report[EXPORT_TIMESTAMP] = (generated_at or datetime.now(timezone.utc)).isoformat()
    return report
