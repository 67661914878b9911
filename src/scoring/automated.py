"""Automated metric calculation per paper and component.

Three calculators cover the extraction components:

- field comparison (metadata fields, research problem, template) producing
  completeness/consistency/validity plus accuracy dimensions;
- ranking (research field) producing exact-match, top-3 and position
  dimensions from a fixed position ladder;
- content extraction producing precision/recall/F1 against template
  properties, or a confidence-based fallback when there is no template
  signal.

Any dimension that cannot be computed is ``None`` rather than ``0`` so that
it can be excluded from later means.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from dataset.hierarchy import FieldHierarchyCache, hierarchy_score
from dataset.models import ContentExtraction, GroundTruth, Paper, RankedPrediction, SystemOutput
from scoring.components import (
    CONTENT_WEIGHTS,
    METRIC_KIND_CONTENT,
    METRIC_KIND_FIELD,
    METRIC_KIND_FIELDS,
    METRIC_KIND_RANKING,
    QUALITY_WEIGHTS,
    RANKING_WEIGHTS,
    get_profile,
)
from scoring.configs import DEFAULT_CONTENT_CONFIDENCE, EVIDENCE_BONUS
from scoring.text import (
    NO_SPECIAL_CHARACTERS,
    length_ratio,
    normalize_label,
    special_characters,
    values_match,
)
from utils.schema import METADATA_FIELDS

DOI_PATTERN = re.compile(r"^10\.\d{4,}/[-._;()/:a-zA-Z0-9]+$")
YEAR_PATTERN = re.compile(r"^\d{4}$")

SIMILARITY_THRESHOLD = 0.7
TOP_N = 3
MAX_RANK = 5

FIELD_DIMENSIONS = [
    "completeness",
    "consistency",
    "validity",
    "precision",
    "recall",
    "character_accuracy",
    "special_characters",
]


@dataclass(frozen=True)
class ComponentMetric:
    """Automated metric for one (paper, component) pair.

    Parameters
    ----------
    component:
        Component identifier.
    dimensions:
        Named dimension scores in ``[0, 1]``; ``None`` marks a dimension as
        not computable.
    overall:
        Weighted combination of the weighted dimensions, or ``None`` when it
        cannot be computed.
    weights:
        Dimension weights used for ``overall``.
    source:
        Provenance tag for components that carry one.
    position:
        1-based rank of the reference among ranked predictions (ranking
        components only).
    details:
        Calculator-specific extras (per-field breakdown, fallback flag).
    """

    component: str
    dimensions: Mapping[str, Optional[float]]
    overall: Optional[float]
    weights: Mapping[str, float]
    source: Optional[str] = None
    position: Optional[int] = None
    details: Mapping[str, object] = field(default_factory=dict)

    @property
    def computable(self) -> bool:
        return self.overall is not None


def weighted_overall(
    dimensions: Mapping[str, Optional[float]],
    weights: Mapping[str, float],
) -> Optional[float]:
    """Return the weighted sum of ``dimensions`` or ``None`` if any is missing."""

    total = 0.0
    for name, weight in weights.items():
        value = dimensions.get(name)
        if value is None:
            return None
        total += value * weight
    return total


def _empty_field_dimensions() -> Dict[str, Optional[float]]:
    return {name: None for name in FIELD_DIMENSIONS}


def compare_field_values(
    reference: Optional[str],
    extracted: Optional[str],
    field_type: Optional[str] = None,
) -> Dict[str, Optional[float]]:
    """Return field-comparison dimensions for a reference/extracted pair.

    Parameters
    ----------
    reference:
        Ground-truth value.
    extracted:
        System value.
    field_type:
        Hint for validity and consistency checks (``doi``, ``publication_year``,
        ``authors``...).

    Returns
    -------
    Dict[str, Optional[float]]
        All :data:`FIELD_DIMENSIONS`. Every dimension is ``None`` when either
        value is missing and ``1.0`` on a case and punctuation-insensitive
        exact match.
    """

    if not reference or not extracted:
        return _empty_field_dimensions()
    if values_match(reference, extracted):
        return {name: 1.0 for name in FIELD_DIMENSIONS}

    kind = (field_type or "").lower()
    ratio = length_ratio(reference, extracted)
    similar = ratio > SIMILARITY_THRESHOLD
    longer_or_equal = len(extracted) >= len(reference)

    validity = 1.0
    if "doi" in kind:
        validity = 1.0 if DOI_PATTERN.match(extracted.strip()) else 0.5
    elif "year" in kind or "date" in kind:
        validity = 1.0 if YEAR_PATTERN.match(extracted.strip()) else 0.5

    if "authors" in kind and ";" in extracted:
        consistency = 0.9
    elif similar:
        consistency = 0.8
    else:
        consistency = 0.6

    ref_specials = special_characters(reference)
    ext_specials = special_characters(extracted)
    if ref_specials == ext_specials:
        specials_score = 1.0
    elif NO_SPECIAL_CHARACTERS in (ref_specials, ext_specials):
        specials_score = 0.3
    else:
        specials_score = 0.7

    return {
        "completeness": 1.0 if longer_or_equal else ratio,
        "consistency": consistency,
        "validity": validity,
        "precision": 0.8 if similar else 0.4,
        "recall": 0.9 if longer_or_equal else 0.6,
        "character_accuracy": ratio,
        "special_characters": specials_score,
    }


def field_metric(
    component: str,
    reference: Optional[str],
    extracted: Optional[str],
    *,
    field_type: Optional[str] = None,
    source: Optional[str] = None,
) -> ComponentMetric:
    """Return a :class:`ComponentMetric` for a single compared field."""

    dimensions = compare_field_values(reference, extracted, field_type)
    return ComponentMetric(
        component=component,
        dimensions=dimensions,
        overall=weighted_overall(dimensions, QUALITY_WEIGHTS),
        weights=QUALITY_WEIGHTS,
        source=source,
    )


def _mean_or_none(values: Sequence[Optional[float]]) -> Optional[float]:
    present = [value for value in values if value is not None]
    if not present:
        return None
    return float(np.mean(present))


def metadata_metric(
    component: str,
    ground_truth: Optional[GroundTruth],
    system_output: SystemOutput,
) -> ComponentMetric:
    """Compare every metadata field and average the computable ones.

    The returned dimensions are per-dimension means over fields where the
    dimension is computable; ``overall`` is the mean of per-field overall
    scores. Per-field results are kept under ``details["fields"]``.
    """

    per_field: Dict[str, Dict[str, Optional[float]]] = {}
    per_field_overall: List[Optional[float]] = []
    for name in METADATA_FIELDS:
        reference = ground_truth.metadata_value(name) if ground_truth else None
        dimensions = compare_field_values(reference, system_output.metadata.get(name), name)
        per_field[name] = dimensions
        per_field_overall.append(weighted_overall(dimensions, QUALITY_WEIGHTS))

    dimensions = {
        dim: _mean_or_none([per_field[name][dim] for name in METADATA_FIELDS])
        for dim in FIELD_DIMENSIONS
    }
    return ComponentMetric(
        component=component,
        dimensions=dimensions,
        overall=_mean_or_none(per_field_overall),
        weights=QUALITY_WEIGHTS,
        details={"fields": per_field},
    )


def find_rank(
    reference: Optional[str],
    predictions: Sequence[RankedPrediction],
    limit: int = MAX_RANK,
) -> Optional[int]:
    """Return the 1-based rank of ``reference`` among the first ``limit`` predictions."""

    if not reference:
        return None
    for rank, prediction in enumerate(predictions[:limit], start=1):
        if values_match(reference, prediction.name):
            return rank
    return None


def position_score(rank: Optional[int]) -> Optional[float]:
    """Map a rank onto the position ladder.

    Rank 1 scores ``1.0``, ranks 2-3 score ``0.8`` and ranks 4-5 score
    ``0.6``. Anything else returns ``None`` so the paper falls back to user
    ratings only.
    """

    if rank is None or rank < 1:
        return None
    if rank == 1:
        return 1.0
    if rank <= TOP_N:
        return 0.8
    if rank <= MAX_RANK:
        return 0.6
    return None


def ranking_metric(
    component: str,
    reference: Optional[str],
    predictions: Sequence[RankedPrediction],
    hierarchy: Optional[FieldHierarchyCache] = None,
) -> ComponentMetric:
    """Return ranking dimensions for a ranked prediction list.

    When a hierarchy cache is supplied an extra ``hierarchy_relevance``
    dimension reports how close the top prediction sits to the reference in
    the field tree. It is informational and does not enter ``overall``.
    """

    if not reference or not predictions:
        return ComponentMetric(
            component=component,
            dimensions={name: None for name in RANKING_WEIGHTS},
            overall=None,
            weights=RANKING_WEIGHTS,
        )

    rank = find_rank(reference, predictions)
    dimensions: Dict[str, Optional[float]] = {
        "exact_match": 1.0 if rank == 1 else 0.0,
        "top_n": 1.0 if rank is not None and rank <= TOP_N else 0.0,
        "position_score": position_score(rank),
    }
    if hierarchy is not None:
        dimensions["hierarchy_relevance"] = hierarchy_score(
            reference, predictions[0].name, hierarchy.get()
        )

    return ComponentMetric(
        component=component,
        dimensions=dimensions,
        overall=weighted_overall(dimensions, RANKING_WEIGHTS),
        weights=RANKING_WEIGHTS,
        position=rank,
    )


def content_metric(component: str, content: ContentExtraction) -> ComponentMetric:
    """Return content-extraction dimensions.

    With template properties available, precision is the share of annotated
    properties that belong to the template, recall is the share of template
    properties that were annotated, and F1 is their harmonic mean. Without
    a template signal, ``overall`` is the mean declared confidence of the
    annotated properties (default ``0.7``) plus ``0.1`` for each property
    backed by evidence text, capped at ``1.0``.
    """

    annotated = {
        normalize_label(name): prop for name, prop in content.properties.items() if prop.value
    }
    empty = {name: None for name in CONTENT_WEIGHTS}
    if not annotated:
        return ComponentMetric(
            component=component, dimensions=empty, overall=None, weights=CONTENT_WEIGHTS
        )

    template = {normalize_label(name) for name in content.template_properties}
    template.discard("")
    if not template:
        scores = []
        for prop in annotated.values():
            base = DEFAULT_CONTENT_CONFIDENCE if prop.confidence is None else prop.confidence
            bonus = EVIDENCE_BONUS if prop.evidence else 0.0
            scores.append(min(1.0, base + bonus))
        return ComponentMetric(
            component=component,
            dimensions=empty,
            overall=float(np.mean(scores)),
            weights=CONTENT_WEIGHTS,
            details={"fallback": True, "annotated": len(annotated)},
        )

    matched = len(template.intersection(annotated))
    precision = matched / len(annotated)
    recall = matched / len(template)
    f1 = 2 * precision * recall / (precision + recall) if precision + recall > 0 else 0.0
    dimensions = {"precision": precision, "recall": recall, "f1_score": f1}
    return ComponentMetric(
        component=component,
        dimensions=dimensions,
        overall=weighted_overall(dimensions, CONTENT_WEIGHTS),
        weights=CONTENT_WEIGHTS,
        details={
            "fallback": False,
            "matched": matched,
            "annotated": len(annotated),
            "template_properties": len(template),
        },
    )


def compute_component_metric(
    component: str,
    paper: Paper,
    hierarchy: Optional[FieldHierarchyCache] = None,
) -> ComponentMetric:
    """Return the automated metric for ``component`` on ``paper``.

    Parameters
    ----------
    component:
        Component identifier; see :data:`scoring.components.COMPONENT_PROFILES`.
    paper:
        Normalized paper.
    hierarchy:
        Optional research-field hierarchy cache for relevance scoring.

    Raises
    ------
    UnknownComponentError
        If ``component`` has no profile.
    """

    profile = get_profile(component)
    if profile.metric_kind == METRIC_KIND_FIELDS:
        return metadata_metric(component, paper.ground_truth, paper.system_output)
    if profile.metric_kind == METRIC_KIND_RANKING:
        return ranking_metric(
            component,
            profile.reference(paper),
            paper.system_output.research_fields,
            hierarchy,
        )
    if profile.metric_kind == METRIC_KIND_CONTENT:
        return content_metric(component, paper.system_output.content)
    if profile.metric_kind == METRIC_KIND_FIELD:
        prediction = profile.prediction(paper)
        return field_metric(
            component,
            profile.reference(paper),
            prediction.value,
            field_type=profile.field_type,
            source=prediction.source,
        )
    raise ValueError(f"Unsupported metric kind: {profile.metric_kind}")
