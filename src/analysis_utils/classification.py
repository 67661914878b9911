"""Confusion-matrix classification of papers per component.

Each unique paper (deduplicated by identifier, first occurrence wins) is
labelled from two facts: whether ground truth is present, and whether the
system produced a value with at least the configured confidence.

=========  ====================  =====
gtPresent  sysPresent            Label
=========  ====================  =====
yes        yes, values match     TP
yes        yes, values differ    FP
yes        no                    FN
no         yes                   FP
no         no                    TN
=========  ====================  =====

Components without a ground-truth concept are labelled ``N/A`` and never
enter the matrix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from dataset.models import Paper
from scoring.components import get_profile
from scoring.configs import DEFAULT_CONFIDENCE_THRESHOLD
from scoring.text import values_match
from utils.schema import (
    LABEL_FN,
    LABEL_FP,
    LABEL_NA,
    LABEL_TN,
    LABEL_TP,
    MATRIX_FN,
    MATRIX_FP,
    MATRIX_TN,
    MATRIX_TP,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    """Label and the compared values for one paper and component."""

    paper_id: str
    label: str
    ground_truth: Optional[str]
    system_value: Optional[str]
    confidence: float
    source: Optional[str] = None

    @property
    def has_ground_truth(self) -> bool:
        return bool(self.ground_truth)


@dataclass(frozen=True)
class ConfusionMatrix:
    """Counts of TP/FN/FP/TN labels over a set of unique papers."""

    tp: int = 0
    fn: int = 0
    fp: int = 0
    tn: int = 0

    @property
    def total(self) -> int:
        return self.tp + self.fn + self.fp + self.tn

    def to_dict(self) -> Dict[str, int]:
        return {MATRIX_TP: self.tp, MATRIX_FN: self.fn, MATRIX_FP: self.fp, MATRIX_TN: self.tn}


def unique_papers(papers: Iterable[Paper]) -> List[Paper]:
    """Return papers deduplicated by identifier, keeping the first record."""

    seen: Dict[str, Paper] = {}
    for paper in papers:
        if paper.paper_id in seen:
            LOGGER.info("Collapsing duplicate record for paper %s", paper.paper_id)
            continue
        seen[paper.paper_id] = paper
    return list(seen.values())


def label_for(
    gt_present: bool,
    sys_present: bool,
    values_agree: bool,
) -> str:
    """Apply the 2x2 decision table."""

    if gt_present and sys_present:
        return LABEL_TP if values_agree else LABEL_FP
    if gt_present:
        return LABEL_FN
    if sys_present:
        return LABEL_FP
    return LABEL_TN


def classify_paper(
    paper: Paper,
    component: str,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> ClassificationResult:
    """Return the classification of ``paper`` for ``component``.

    Parameters
    ----------
    paper:
        Normalized paper.
    component:
        Component identifier.
    confidence_threshold:
        Minimum system confidence for a predicted value to count as present.

    Returns
    -------
    ClassificationResult
        ``N/A`` for components without a ground-truth concept.
    """

    profile = get_profile(component)
    prediction = profile.prediction(paper)
    if not profile.classified:
        return ClassificationResult(
            paper_id=paper.paper_id,
            label=LABEL_NA,
            ground_truth=None,
            system_value=prediction.value,
            confidence=prediction.confidence,
            source=prediction.source,
        )

    reference = profile.reference(paper)
    gt_present = bool(reference and reference.strip())
    sys_present = bool(prediction.value) and prediction.confidence >= confidence_threshold
    label = label_for(gt_present, sys_present, values_match(reference, prediction.value))
    return ClassificationResult(
        paper_id=paper.paper_id,
        label=label,
        ground_truth=reference,
        system_value=prediction.value,
        confidence=prediction.confidence,
        source=prediction.source,
    )


def build_confusion_matrix(results: Iterable[ClassificationResult]) -> ConfusionMatrix:
    """Sum TP/FN/FP/TN labels; ``N/A`` results are ignored."""

    counts = {LABEL_TP: 0, LABEL_FN: 0, LABEL_FP: 0, LABEL_TN: 0}
    for result in results:
        if result.label in counts:
            counts[result.label] += 1
    return ConfusionMatrix(
        tp=counts[LABEL_TP], fn=counts[LABEL_FN], fp=counts[LABEL_FP], tn=counts[LABEL_TN]
    )


def classify_papers(
    papers: Iterable[Paper],
    component: str,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> Tuple[List[ClassificationResult], ConfusionMatrix]:
    """Classify the unique papers and return the results with their matrix."""

    results = [
        classify_paper(paper, component, confidence_threshold)
        for paper in unique_papers(papers)
    ]
    return results, build_confusion_matrix(results)


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def matrix_metrics(matrix: ConfusionMatrix) -> Mapping[str, float]:
    """Return accuracy, precision, recall, F1 and specificity for ``matrix``.

    Every ratio is ``0.0`` when its denominator is zero.
    """

    precision = _ratio(matrix.tp, matrix.tp + matrix.fp)
    recall = _ratio(matrix.tp, matrix.tp + matrix.fn)
    return {
        "accuracy": _ratio(matrix.tp + matrix.tn, matrix.total),
        "precision": precision,
        "recall": recall,
        "f1Score": _ratio(2 * precision * recall, precision + recall),
        "specificity": _ratio(matrix.tn, matrix.tn + matrix.fp),
    }
