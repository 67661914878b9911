"""Per-component strategy table.

Each extraction component is described by a :class:`ComponentProfile` that
supplies its automated dimensions and their weights, its fusion weighting,
whether it takes part in confusion-matrix classification, and accessors for
the reference and predicted values used by classification and reporting.
Callers look profiles up with :func:`get_profile` instead of branching on
component names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

from dataset.models import Paper
from scoring.configs import DEFAULT_WEIGHTING, METADATA_WEIGHTING, WeightingConfig
from utils.schema import (
    COMPONENT_CONTENT,
    COMPONENT_METADATA,
    COMPONENT_RESEARCH_FIELD,
    COMPONENT_RESEARCH_PROBLEM,
    COMPONENT_TEMPLATE,
)

METRIC_KIND_FIELDS = "fields"
METRIC_KIND_FIELD = "field"
METRIC_KIND_RANKING = "ranking"
METRIC_KIND_CONTENT = "content"

QUALITY_WEIGHTS: Mapping[str, float] = {
    "completeness": 0.4,
    "consistency": 0.3,
    "validity": 0.3,
}

RANKING_WEIGHTS: Mapping[str, float] = {
    "exact_match": 0.4,
    "top_n": 0.3,
    "position_score": 0.3,
}

CONTENT_WEIGHTS: Mapping[str, float] = {
    "precision": 0.3,
    "recall": 0.3,
    "f1_score": 0.4,
}


class UnknownComponentError(KeyError):
    """Raised when a component identifier has no profile."""


@dataclass(frozen=True)
class SystemPrediction:
    """Predicted value of one component with confidence and provenance."""

    value: Optional[str]
    confidence: float
    source: Optional[str] = None


@dataclass(frozen=True)
class ComponentProfile:
    """Strategy entry for one extraction component.

    Parameters
    ----------
    key:
        Component identifier.
    label:
        Human-readable name.
    metric_kind:
        Which automated calculator applies (``fields``, ``field``,
        ``ranking`` or ``content``).
    weights:
        Dimension weights of the automated overall score. Sum to 1.
    weighting:
        Fusion weighting for this component.
    classified:
        Whether the component has a ground-truth concept and therefore a
        confusion-matrix label. ``False`` yields ``N/A``.
    has_provenance:
        Whether predictions carry an external/generated source tag.
    ranked:
        Whether predictions are ranked and position statistics apply.
    reference:
        Returns the ground-truth value compared during classification.
    prediction:
        Returns the system prediction compared during classification.
    field_type:
        Field type hint used by validity checks.
    """

    key: str
    label: str
    metric_kind: str
    weights: Mapping[str, float]
    weighting: WeightingConfig
    classified: bool
    has_provenance: bool
    ranked: bool
    reference: Callable[[Paper], Optional[str]]
    prediction: Callable[[Paper], SystemPrediction]
    field_type: Optional[str] = None


def _metadata_reference(paper: Paper) -> Optional[str]:
    return paper.ground_truth.title if paper.ground_truth else None


def _metadata_prediction(paper: Paper) -> SystemPrediction:
    output = paper.system_output
    return SystemPrediction(output.metadata.get("title"), output.metadata_confidence)


def _field_reference(paper: Paper) -> Optional[str]:
    return paper.ground_truth.research_field if paper.ground_truth else None


def _field_prediction(paper: Paper) -> SystemPrediction:
    ranked = paper.system_output.research_fields
    if not ranked:
        return SystemPrediction(None, 0.0)
    return SystemPrediction(ranked[0].name, ranked[0].score)


def _problem_reference(paper: Paper) -> Optional[str]:
    return paper.ground_truth.research_problem if paper.ground_truth else None


def _problem_prediction(paper: Paper) -> SystemPrediction:
    predicted = paper.system_output.research_problem
    return SystemPrediction(predicted.value, predicted.confidence, predicted.source)


def _template_reference(paper: Paper) -> Optional[str]:
    return paper.ground_truth.template if paper.ground_truth else None


def _template_prediction(paper: Paper) -> SystemPrediction:
    predicted = paper.system_output.template
    return SystemPrediction(predicted.value, predicted.confidence, predicted.source)


def _content_reference(paper: Paper) -> Optional[str]:
    return None


def _content_prediction(paper: Paper) -> SystemPrediction:
    properties = paper.system_output.content.properties
    filled = sorted(name for name, prop in properties.items() if prop.value)
    return SystemPrediction(", ".join(filled) or None, 1.0)


COMPONENT_PROFILES: Dict[str, ComponentProfile] = {
    COMPONENT_METADATA: ComponentProfile(
        key=COMPONENT_METADATA,
        label="Metadata",
        metric_kind=METRIC_KIND_FIELDS,
        weights=QUALITY_WEIGHTS,
        weighting=METADATA_WEIGHTING,
        classified=True,
        has_provenance=False,
        ranked=False,
        reference=_metadata_reference,
        prediction=_metadata_prediction,
    ),
    COMPONENT_RESEARCH_FIELD: ComponentProfile(
        key=COMPONENT_RESEARCH_FIELD,
        label="Research Field",
        metric_kind=METRIC_KIND_RANKING,
        weights=RANKING_WEIGHTS,
        weighting=DEFAULT_WEIGHTING,
        classified=True,
        has_provenance=False,
        ranked=True,
        reference=_field_reference,
        prediction=_field_prediction,
    ),
    COMPONENT_RESEARCH_PROBLEM: ComponentProfile(
        key=COMPONENT_RESEARCH_PROBLEM,
        label="Research Problem",
        metric_kind=METRIC_KIND_FIELD,
        weights=QUALITY_WEIGHTS,
        weighting=DEFAULT_WEIGHTING,
        classified=True,
        has_provenance=True,
        ranked=False,
        reference=_problem_reference,
        prediction=_problem_prediction,
        field_type="problem",
    ),
    COMPONENT_TEMPLATE: ComponentProfile(
        key=COMPONENT_TEMPLATE,
        label="Template",
        metric_kind=METRIC_KIND_FIELD,
        weights=QUALITY_WEIGHTS,
        weighting=DEFAULT_WEIGHTING,
        classified=True,
        has_provenance=True,
        ranked=False,
        reference=_template_reference,
        prediction=_template_prediction,
        field_type="template",
    ),
    COMPONENT_CONTENT: ComponentProfile(
        key=COMPONENT_CONTENT,
        label="Content",
        metric_kind=METRIC_KIND_CONTENT,
        weights=CONTENT_WEIGHTS,
        weighting=DEFAULT_WEIGHTING,
        classified=False,
        has_provenance=False,
        ranked=False,
        reference=_content_reference,
        prediction=_content_prediction,
    ),
}


def get_profile(component: str) -> ComponentProfile:
    """Return the profile for ``component``.

    Raises
    ------
    UnknownComponentError
        If ``component`` is not a known component identifier.
    """

    try:
        return COMPONENT_PROFILES[component]
    except KeyError as err:
        raise UnknownComponentError(component) from err
