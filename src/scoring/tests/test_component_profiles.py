"""
Tests for the per-component strategy table.
"""

from __future__ import annotations

import pytest

from dataset.models import (
    ContentExtraction,
    ExtractedProperty,
    Paper,
    RankedPrediction,
    SystemOutput,
)
from scoring.components import COMPONENT_PROFILES, UnknownComponentError, get_profile
from scoring.configs import METADATA_WEIGHTING
from scoring.text import normalize_label, values_match
from utils.schema import (
    COMPONENT_CONTENT,
    COMPONENT_KEYS,
    COMPONENT_METADATA,
    COMPONENT_RESEARCH_FIELD,
    COMPONENT_RESEARCH_PROBLEM,
    COMPONENT_TEMPLATE,
)


def test_every_component_has_a_profile() -> None:
    """The strategy table should cover exactly the known components."""

    assert set(COMPONENT_PROFILES) == set(COMPONENT_KEYS)


@pytest.mark.parametrize("component", COMPONENT_KEYS)
def test_dimension_weights_sum_to_one(component: str) -> None:
    """Each profile's automated weights should sum to 1."""

    assert sum(get_profile(component).weights.values()) == pytest.approx(1.0)


def test_profile_flags() -> None:
    """Only content lacks classification; only ranked fields carry positions."""

    assert get_profile(COMPONENT_CONTENT).classified is False
    assert get_profile(COMPONENT_RESEARCH_FIELD).ranked is True
    assert get_profile(COMPONENT_RESEARCH_PROBLEM).has_provenance is True
    assert get_profile(COMPONENT_TEMPLATE).has_provenance is True
    assert get_profile(COMPONENT_METADATA).weighting == METADATA_WEIGHTING


def test_unknown_component_raises() -> None:
    """Looking up an unknown component should raise a KeyError subclass."""

    with pytest.raises(UnknownComponentError):
        get_profile("abstract")
    with pytest.raises(KeyError):
        get_profile("abstract")


def test_research_field_prediction_uses_top_entry() -> None:
    """The classified research-field prediction is the top-ranked entry."""

    paper = Paper(
        paper_id="p1",
        system_output=SystemOutput(
            research_fields=(RankedPrediction("Robotics", 0.7), RankedPrediction("Vision", 0.2))
        ),
    )

    prediction = get_profile(COMPONENT_RESEARCH_FIELD).prediction(paper)

    assert prediction.value == "Robotics"
    assert prediction.confidence == pytest.approx(0.7)


def test_content_prediction_lists_filled_properties() -> None:
    """Content predictions summarise the filled property names."""

    paper = Paper(
        paper_id="p1",
        system_output=SystemOutput(
            content=ContentExtraction(
                properties={
                    "b": ExtractedProperty("x"),
                    "a": ExtractedProperty("y"),
                    "c": ExtractedProperty(None),
                }
            )
        ),
    )

    prediction = get_profile(COMPONENT_CONTENT).prediction(paper)

    assert prediction.value == "a, b"
    assert get_profile(COMPONENT_CONTENT).reference(paper) is None


def test_normalize_label_ignores_case_punctuation_and_underscores() -> None:
    """Labels should compare equal regardless of separators and case."""

    assert normalize_label("  Machine_Learning. ") == "machine learning"
    assert values_match("Natural-Language Processing", "natural language processing")
    assert not values_match("", "")
