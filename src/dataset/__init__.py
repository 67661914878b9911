"""Dataset model, normalization, expertise weighting, and field hierarchy.

Submodules
----------
models
    Frozen dataclasses for papers, system output, and evaluations.
normalize
    The single step that maps upstream payloads into :mod:`dataset.models`.
expertise
    Evaluator expertise weights, multipliers, and tiers.
hierarchy
    Read-only research-field hierarchy and its lazy cache.
"""

from __future__ import annotations

__all__ = [
    "expertise",
    "hierarchy",
    "models",
    "normalize",
]
