"""Weighting constants for automated metrics and score fusion."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CONFIDENCE_THRESHOLD = 0.5
MIN_GROUND_TRUTH_COVERAGE = 3
RATING_SCALE = 5

DEFAULT_CONTENT_CONFIDENCE = 0.7
EVIDENCE_BONUS = 0.1


@dataclass(frozen=True)
class WeightingConfig:
    """Base weights used when fusing automated scores with user ratings.

    Parameters
    ----------
    automated_weight_base:
        Weight given to the automated score before confidence scaling.
    user_weight_base:
        Weight given to the user rating before expertise scaling.
    min_automated_weight:
        Floor for the raw automated weight so the system always has some
        influence.
    agreement_bonus_factor:
        Maximum fractional bonus for agreement between the two signals.
    """

    automated_weight_base: float = 0.4
    user_weight_base: float = 0.6
    min_automated_weight: float = 0.1
    agreement_bonus_factor: float = 0.1


DEFAULT_WEIGHTING = WeightingConfig()

# Metadata trusts the automated comparison more.
METADATA_WEIGHTING = WeightingConfig(
    automated_weight_base=0.5,
    user_weight_base=0.5,
    min_automated_weight=0.3,
)
