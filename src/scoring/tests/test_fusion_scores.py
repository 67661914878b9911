"""
Tests for fusing automated scores with expertise-weighted user ratings.
"""

from __future__ import annotations

import itertools

import pytest

from scoring.automated import weighted_overall
from scoring.components import QUALITY_WEIGHTS
from scoring.configs import DEFAULT_WEIGHTING, METADATA_WEIGHTING
from scoring.fusion import apply_agreement_bonus, fuse_scores
from utils.schema import SCORE_METHOD_AUTOMATED, SCORE_METHOD_HYBRID, SCORE_METHOD_USER


def test_regression_scenario_automated_overall() -> None:
    """The regression dimensions should combine to an overall score of 0.28."""

    dimensions = {"completeness": 0.10, "consistency": 0.50, "validity": 0.30}
    assert weighted_overall(dimensions, QUALITY_WEIGHTS) == pytest.approx(0.28)


def test_regression_scenario_with_metadata_weighting() -> None:
    """Rating 3 with multiplier 1.5 should reproduce every intermediate value."""

    fused = fuse_scores(0.28, 3, 1.5, METADATA_WEIGHTING)

    assert fused is not None
    assert fused.method == SCORE_METHOD_HYBRID
    assert fused.normalized_rating == pytest.approx(0.6)
    assert fused.system_confidence == pytest.approx(0.8064)
    assert fused.raw_automated_weight == pytest.approx(0.4032)
    assert fused.raw_user_weight == pytest.approx(0.75)
    assert fused.automated_weight == pytest.approx(0.349636, abs=1e-6)
    assert fused.user_weight == pytest.approx(0.650364, abs=1e-6)
    assert fused.adjusted_rating == pytest.approx(0.9)
    assert fused.combined_score == pytest.approx(0.683226, abs=1e-6)
    assert fused.agreement == pytest.approx(0.68)
    assert fused.agreement_bonus == pytest.approx(0.068)
    assert fused.final_score == pytest.approx(0.729685, abs=1e-6)
    assert fused.is_capped is False


def test_regression_scenario_with_default_weighting() -> None:
    """The default profile weights the user rating more heavily."""

    fused = fuse_scores(0.28, 3, 1.5, DEFAULT_WEIGHTING)

    assert fused is not None
    assert fused.automated_weight == pytest.approx(0.263840, abs=1e-6)
    assert fused.combined_score == pytest.approx(0.736419, abs=1e-6)
    assert fused.final_score == pytest.approx(0.786496, abs=1e-6)


def test_apply_agreement_bonus_regression_values() -> None:
    """Combined 0.456 with agreement 0.68 should land near 0.487."""

    final, bonus, capped = apply_agreement_bonus(0.456, 0.68)

    assert bonus == pytest.approx(0.068)
    assert final == pytest.approx(0.487008)
    assert capped is False


def test_apply_agreement_bonus_caps_at_one() -> None:
    """A boosted score above 1 should be clipped and flagged."""

    final, _, capped = apply_agreement_bonus(0.98, 1.0)

    assert final == 1.0
    assert capped is True


def test_weights_sum_to_one() -> None:
    """Normalized automated and user weights should always sum to 1."""

    fused = fuse_scores(0.9, 2, 0.8)

    assert fused is not None
    assert fused.automated_weight + fused.user_weight == pytest.approx(1.0)


def test_minimum_automated_weight_applies_at_extremes() -> None:
    """A perfect automated score has zero confidence but keeps the floor weight."""

    fused = fuse_scores(1.0, 5, 1.0)

    assert fused is not None
    assert fused.system_confidence == pytest.approx(0.0)
    assert fused.raw_automated_weight == pytest.approx(DEFAULT_WEIGHTING.min_automated_weight)


@pytest.mark.parametrize(
    "automated,rating,multiplier",
    list(itertools.product([0.0, 0.3, 0.5, 1.0], [1, 3, 5], [0.6, 1.0, 2.0])),
)
def test_final_score_stays_in_unit_interval(
    automated: float, rating: int, multiplier: float
) -> None:
    """Every fused score should stay within [0, 1]."""

    fused = fuse_scores(automated, rating, multiplier)

    assert fused is not None
    assert 0.0 <= fused.final_score <= 1.0
    assert 0.0 <= fused.adjusted_rating <= 1.0


def test_high_expertise_rating_is_capped() -> None:
    """A top rating from an expert should cap the adjusted rating at 1."""

    fused = fuse_scores(None, 5, 2.0)

    assert fused is not None
    assert fused.method == SCORE_METHOD_USER
    assert fused.adjusted_rating == 1.0
    assert fused.final_score == 1.0
    assert fused.is_capped is True


def test_user_only_score_uses_adjusted_rating() -> None:
    """Without an automated score the final score is the adjusted rating."""

    fused = fuse_scores(None, 3, 1.0)

    assert fused is not None
    assert fused.automated_weight == 0.0
    assert fused.user_weight == 1.0
    assert fused.final_score == pytest.approx(0.6)
    assert fused.agreement is None


@pytest.mark.parametrize("multiplier", [-1.0, -0.2, 0.0])
def test_user_only_score_never_negative(multiplier: float) -> None:
    """A non-positive multiplier clamps the adjusted rating and final score at 0."""

    fused = fuse_scores(None, 5, multiplier)

    assert fused is not None
    assert fused.method == SCORE_METHOD_USER
    assert fused.adjusted_rating == 0.0
    assert fused.final_score == 0.0


def test_automated_only_score_passes_through() -> None:
    """Without a rating the final score is the automated score."""

    fused = fuse_scores(0.42, None)

    assert fused is not None
    assert fused.method == SCORE_METHOD_AUTOMATED
    assert fused.final_score == pytest.approx(0.42)
    assert fused.rating is None


def test_no_inputs_yields_none() -> None:
    """Nothing to fuse should return None rather than a zero score."""

    assert fuse_scores(None, None) is None


def test_to_dict_exposes_breakdown() -> None:
    """The serialized breakdown should carry every intermediate value."""

    fused = fuse_scores(0.5, 4, 1.2)

    assert fused is not None
    payload = fused.to_dict()
    assert payload["method"] == SCORE_METHOD_HYBRID
    assert {"system_confidence", "agreement_bonus", "final_score", "is_capped"} <= set(payload)
