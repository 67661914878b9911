"""U-shaped system confidence for automated scores."""

from __future__ import annotations


def system_confidence(score: float) -> float:
    """Return how much the fusion step should trust an automated score.

    The curve is the parabola ``1 - ((score - 0.5) * 2) ** 2``: confidence is
    ``1.0`` for an ambiguous score of ``0.5`` and ``0.0`` for scores at either
    extreme, where automated comparisons are most likely to have blind spots.

    Parameters
    ----------
    score:
        Automated score. Values outside ``[0, 1]`` are clamped first.

    Returns
    -------
    float
        Confidence in ``[0, 1]``.
    """

    clamped = min(1.0, max(0.0, float(score)))
    confidence = 1.0 - ((clamped - 0.5) * 2.0) ** 2
    return min(1.0, max(0.0, confidence))
