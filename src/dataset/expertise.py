"""Evaluator expertise weighting.

Expertise is expressed on two scales that upstream records may carry
independently:

- an expertise *weight* in ``[1, 5]`` derived from role, domain expertise,
  evaluation experience, and prior knowledge-graph experience, used for
  tiering evaluators;
- an expertise *multiplier* used by score fusion to scale a rating's
  influence.

The two are linked by ``multiplier = 0.8 + (weight - 1) * 0.2``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

ROLE_WEIGHTS: Dict[str, float] = {
    "Professor": 5.0,
    "PostDoc": 4.0,
    "Senior Researcher": 4.0,
    "Researcher": 3.5,
    "PhD Student": 3.0,
    "Research Assistant": 2.5,
    "Master Student": 2.0,
    "Bachelor Student": 1.5,
    "Other": 1.0,
}

DOMAIN_EXPERTISE_MULTIPLIERS: Dict[str, float] = {
    "Expert": 2.0,
    "Advanced": 1.5,
    "Intermediate": 1.0,
    "Basic": 0.8,
    "Novice": 0.6,
}

EVALUATION_EXPERIENCE_MULTIPLIERS: Dict[str, float] = {
    "Extensive": 1.3,
    "Moderate": 1.1,
    "Limited": 1.0,
    "None": 0.9,
}

PRIOR_EXPERIENCE_BONUS = 0.05

MIN_EXPERTISE_WEIGHT = 1.0
MAX_EXPERTISE_WEIGHT = 5.0

# (name, lower bound inclusive, upper bound exclusive)
EXPERTISE_TIERS = [
    ("expert", 4.0, 5.1),
    ("senior", 3.0, 4.0),
    ("intermediate", 2.0, 3.0),
    ("junior", 0.0, 2.0),
]


@dataclass(frozen=True)
class ExpertiseBreakdown:
    """Components of an evaluator's expertise weight.

    Parameters
    ----------
    role_weight:
        Base weight for the evaluator's role.
    domain_multiplier:
        Multiplier for claimed domain expertise.
    experience_multiplier:
        Multiplier for prior evaluation experience.
    prior_experience_bonus:
        Fractional bonus applied when the evaluator has used the reference
        knowledge graph before.
    final_weight:
        Product of the above, clamped to ``[1, 5]``.
    """

    role_weight: float
    domain_multiplier: float
    experience_multiplier: float
    prior_experience_bonus: float
    final_weight: float

    @property
    def multiplier(self) -> float:
        return expertise_to_multiplier(self.final_weight)


def calculate_expertise_weight(
    role: Optional[str],
    domain_expertise: Optional[str] = None,
    evaluation_experience: Optional[str] = None,
    prior_experience: bool = False,
) -> ExpertiseBreakdown:
    """Return the expertise weight breakdown for an evaluator profile.

    Unknown or missing categories fall back to the neutral entry of each table
    (``Other``, ``Intermediate``, ``Limited``).

    Parameters
    ----------
    role:
        Evaluator role, for example ``"PhD Student"``.
    domain_expertise:
        Self-reported domain expertise level.
    evaluation_experience:
        Self-reported experience with evaluation tasks.
    prior_experience:
        Whether the evaluator has used the reference knowledge graph.

    Returns
    -------
    ExpertiseBreakdown
        All factors plus the clamped final weight.
    """

    role_weight = ROLE_WEIGHTS.get(role or "", ROLE_WEIGHTS["Other"])
    domain_multiplier = DOMAIN_EXPERTISE_MULTIPLIERS.get(
        domain_expertise or "", DOMAIN_EXPERTISE_MULTIPLIERS["Intermediate"]
    )
    experience_multiplier = EVALUATION_EXPERIENCE_MULTIPLIERS.get(
        evaluation_experience or "", EVALUATION_EXPERIENCE_MULTIPLIERS["Limited"]
    )
    bonus = PRIOR_EXPERIENCE_BONUS if prior_experience else 0.0

    raw = role_weight * domain_multiplier * experience_multiplier * (1.0 + bonus)
    final = min(MAX_EXPERTISE_WEIGHT, max(MIN_EXPERTISE_WEIGHT, raw))
    return ExpertiseBreakdown(
        role_weight=role_weight,
        domain_multiplier=domain_multiplier,
        experience_multiplier=experience_multiplier,
        prior_experience_bonus=bonus,
        final_weight=final,
    )


def expertise_to_multiplier(weight: Optional[float]) -> float:
    """Map a ``[1, 5]`` expertise weight onto the fusion multiplier scale.

    A missing or zero weight maps to the neutral multiplier ``1.0``.
    """

    if not weight:
        return 1.0
    return 0.8 + (weight - 1.0) * 0.2


def multiplier_to_expertise(multiplier: Optional[float]) -> float:
    """Inverse of :func:`expertise_to_multiplier`, clamped to ``[1, 5]``."""

    if not multiplier:
        return MIN_EXPERTISE_WEIGHT
    weight = (multiplier - 0.8) / 0.2 + 1.0
    return min(MAX_EXPERTISE_WEIGHT, max(MIN_EXPERTISE_WEIGHT, weight))


def expertise_tier(weight: Optional[float]) -> str:
    """Return the tier name for an expertise weight (missing counts as 1)."""

    value = weight if weight else 1.0
    for name, lower, upper in EXPERTISE_TIERS:
        if lower <= value < upper:
            return name
    return "expert" if value >= EXPERTISE_TIERS[0][1] else "junior"


def confidence_level(weight: float) -> str:
    if weight >= 4.0:
        return "High"
    if weight >= 2.5:
        return "Medium"
    return "Low"
