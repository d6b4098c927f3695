"""Shared numeric helpers for the belief pipeline."""

from __future__ import annotations

import math


def clamp01(value: float, default: float = 0.5) -> float:
    """Clamp potentially noisy scores into [0, 1]."""
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(numeric):
        return default
    return max(0.0, min(1.0, numeric))


def clamp_signed(value: float) -> float:
    """Clamp into [-1, 1]."""
    return max(-1.0, min(1.0, float(value)))


def squash_unit(value: float) -> float:
    """Map any non-negative magnitude monotonically into [0, 1).

    Negative magnitudes map to 0.0; +inf maps to 1.0.
    """
    return math.tanh(max(0.0, float(value)))


def squash_signed(value: float) -> float:
    """Odd, monotonic map of any real into [-1, 1]."""
    return math.tanh(float(value))
