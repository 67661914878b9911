"""
Tests for the U-shaped system confidence curve.
"""

from __future__ import annotations

import pytest

from scoring.confidence import system_confidence


@pytest.mark.parametrize("score", [0.0, 0.1, 0.25, 0.33, 0.4, 0.5])
def test_system_confidence_is_symmetric(score: float) -> None:
    """Confidence should be the same for a score and its mirror image."""

    assert system_confidence(score) == pytest.approx(system_confidence(1.0 - score))


def test_system_confidence_peaks_at_half_and_vanishes_at_extremes() -> None:
    """An ambiguous score is trusted fully and extreme scores not at all."""

    assert system_confidence(0.5) == pytest.approx(1.0)
    assert system_confidence(0.0) == pytest.approx(0.0)
    assert system_confidence(1.0) == pytest.approx(0.0)


def test_system_confidence_clamps_out_of_range_scores() -> None:
    """Scores outside [0, 1] should be clamped before the curve is applied."""

    assert system_confidence(-0.5) == pytest.approx(0.0)
    assert system_confidence(1.7) == pytest.approx(0.0)


def test_system_confidence_matches_parabola() -> None:
    """Intermediate values should follow 1 - ((s - 0.5) * 2) ** 2."""

    assert system_confidence(0.28) == pytest.approx(0.8064)
    assert system_confidence(0.75) == pytest.approx(0.75)
