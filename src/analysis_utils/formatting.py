"""Shared numeric formatting helpers for export artifacts.

Scores in JSON and CSV exports are rounded to three decimal places so that
artifacts diff cleanly between runs.
"""

from __future__ import annotations

from typing import Mapping, Optional


def round3(value: float) -> float:
    """Return ``value`` rounded to three decimal places.

    Parameters
    ----------
    value:
        Floating-point value to round.

    Returns
    -------
    float
        ``value`` rounded to three decimal places.
    """

    return round(value, 3)


def round3_optional(value: Optional[float]) -> Optional[float]:
    """Return ``value`` rounded to three places, keeping ``None`` as is."""

    if value is None:
        return None
    return round3(float(value))


def round_mapping(values: Mapping[str, object]) -> dict:
    """Round every float in a flat mapping; other values pass through."""

    return {
        key: round3(value) if isinstance(value, float) else value
        for key, value in values.items()
    }


__all__ = ["round3", "round3_optional", "round_mapping"]
