"""Fusion of automated scores with expertise-weighted user ratings.

Every intermediate value of the computation is kept on :class:`FusedScore`
so that a final score can always be explained as a breakdown.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple

from scoring.confidence import system_confidence
from scoring.configs import DEFAULT_WEIGHTING, RATING_SCALE, WeightingConfig
from utils.schema import SCORE_METHOD_AUTOMATED, SCORE_METHOD_HYBRID, SCORE_METHOD_USER

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FusedScore:
    """Breakdown of one fused score.

    Parameters
    ----------
    automated_score:
        Automated overall score, ``None`` when not computable.
    rating:
        Raw 1-5 user rating, ``None`` when the evaluation did not rate the
        component.
    normalized_rating:
        ``rating / 5``.
    expertise_multiplier:
        Evaluator expertise multiplier applied to the rating.
    system_confidence:
        U-shaped confidence in the automated score.
    raw_automated_weight, raw_user_weight:
        Weights before normalization.
    automated_weight, user_weight:
        Normalized weights; they sum to 1.
    adjusted_rating:
        ``normalized_rating * expertise_multiplier`` clamped to ``[0, 1]``.
    combined_score:
        Weighted combination before the agreement bonus.
    agreement:
        ``1 - |automated_score - normalized_rating|``.
    agreement_bonus:
        ``agreement * agreement_bonus_factor``.
    final_score:
        ``min(1, combined_score * (1 + agreement_bonus))``.
    is_capped:
        Whether ``final_score`` was clipped at 1.
    method:
        ``hybrid``, ``automated`` or ``user_rating``.
    """

    automated_score: Optional[float]
    rating: Optional[int]
    normalized_rating: Optional[float]
    expertise_multiplier: float
    system_confidence: Optional[float]
    raw_automated_weight: float
    raw_user_weight: float
    automated_weight: float
    user_weight: float
    adjusted_rating: Optional[float]
    combined_score: float
    agreement: Optional[float]
    agreement_bonus: float
    final_score: float
    is_capped: bool
    method: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def apply_agreement_bonus(
    combined: float,
    agreement: float,
    bonus_factor: float = DEFAULT_WEIGHTING.agreement_bonus_factor,
) -> Tuple[float, float, bool]:
    """Return ``(final_score, bonus, is_capped)`` for a combined score.

    The final score is ``combined * (1 + agreement * bonus_factor)`` clamped
    to ``[0, 1]``.
    """

    bonus = agreement * bonus_factor
    boosted = combined * (1.0 + bonus)
    capped = boosted > 1.0
    return min(1.0, max(0.0, boosted)), bonus, capped


def fuse_scores(
    automated_score: Optional[float],
    rating: Optional[int],
    expertise_multiplier: float = 1.0,
    config: WeightingConfig = DEFAULT_WEIGHTING,
) -> Optional[FusedScore]:
    """Fuse an automated score and a user rating into one final score.

    Parameters
    ----------
    automated_score:
        Automated overall score in ``[0, 1]`` or ``None`` when not
        computable. Without it the result is the adjusted rating alone.
    rating:
        User rating in ``1..5`` or ``None``. Without it the result is the
        automated score alone.
    expertise_multiplier:
        Evaluator expertise multiplier, roughly ``[0.8, 2.0]``.
    config:
        Component weighting.

    Returns
    -------
    Optional[FusedScore]
        Full breakdown, or ``None`` when neither input is available.
    """

    if automated_score is None and rating is None:
        return None

    multiplier = 1.0 if expertise_multiplier is None else float(expertise_multiplier)

    if rating is None:
        score = min(1.0, max(0.0, float(automated_score)))
        return FusedScore(
            automated_score=score,
            rating=None,
            normalized_rating=None,
            expertise_multiplier=multiplier,
            system_confidence=system_confidence(score),
            raw_automated_weight=1.0,
            raw_user_weight=0.0,
            automated_weight=1.0,
            user_weight=0.0,
            adjusted_rating=None,
            combined_score=score,
            agreement=None,
            agreement_bonus=0.0,
            final_score=score,
            is_capped=False,
            method=SCORE_METHOD_AUTOMATED,
        )

    normalized_rating = rating / RATING_SCALE
    raw_adjusted = normalized_rating * multiplier
    adjusted_rating = max(0.0, min(1.0, raw_adjusted))

    if automated_score is None:
        return FusedScore(
            automated_score=None,
            rating=rating,
            normalized_rating=normalized_rating,
            expertise_multiplier=multiplier,
            system_confidence=None,
            raw_automated_weight=0.0,
            raw_user_weight=config.user_weight_base * multiplier,
            automated_weight=0.0,
            user_weight=1.0,
            adjusted_rating=adjusted_rating,
            combined_score=adjusted_rating,
            agreement=None,
            agreement_bonus=0.0,
            final_score=adjusted_rating,
            is_capped=raw_adjusted > 1.0,
            method=SCORE_METHOD_USER,
        )

    confidence = system_confidence(automated_score)
    raw_auto = max(config.min_automated_weight, config.automated_weight_base * confidence)
    raw_user = config.user_weight_base * multiplier
    total = raw_auto + raw_user
    auto_weight = raw_auto / total if total > 0 else 1.0
    user_weight = 1.0 - auto_weight

    combined = automated_score * auto_weight + adjusted_rating * user_weight
    agreement = 1.0 - abs(automated_score - normalized_rating)
    final, bonus, capped = apply_agreement_bonus(
        combined, agreement, config.agreement_bonus_factor
    )
    if capped:
        LOGGER.debug(
            "Fused score capped at 1.0 (combined=%.4f, bonus=%.4f)", combined, bonus
        )

    return FusedScore(
        automated_score=automated_score,
        rating=rating,
        normalized_rating=normalized_rating,
        expertise_multiplier=multiplier,
        system_confidence=confidence,
        raw_automated_weight=raw_auto,
        raw_user_weight=raw_user,
        automated_weight=auto_weight,
        user_weight=user_weight,
        adjusted_rating=adjusted_rating,
        combined_score=combined,
        agreement=agreement,
        agreement_bonus=bonus,
        final_score=final,
        is_capped=capped,
        method=SCORE_METHOD_HYBRID,
    )
