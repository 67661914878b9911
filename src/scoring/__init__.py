"""Automated metrics, confidence weighting, and score fusion.

Submodules
----------
components
    Strategy table describing each extraction component.
automated
    Automated dimension scores per paper and component.
confidence
    U-shaped system confidence curve.
fusion
    Fusion of automated scores with expertise-weighted ratings.
"""
