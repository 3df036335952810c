"""Weighted-median pivot aggregation."""

from __future__ import annotations

from typing import Sequence

from .models import PivotCandidate
from ..errors import InvariantViolation

HALF_MASS = 0.5
# Absorbs float drift when many small weights are summed.
_EPSILON = 1e-12


def weighted_median(candidates: Sequence[PivotCandidate]) -> float:
    """Return the first median, in ascending order, whose cumulative weight reaches one half.

    Ties in median value keep their incoming order, which makes the result
    deterministic for a given round.
    """

    if not candidates:
        raise InvariantViolation("Weighted median requires at least one pivot candidate.")
    ordered = sorted(candidates, key=lambda candidate: candidate.median)
    cumulative = 0.0
    for candidate in ordered:
        cumulative += candidate.weight
        if cumulative + _EPSILON >= HALF_MASS:
            return candidate.median
    # Weights summing below one half means the weighing step was inconsistent.
    raise InvariantViolation(
        f"Pivot candidate weights sum to {cumulative:.6f}, never reaching {HALF_MASS}."
    )


__all__ = ["HALF_MASS", "weighted_median"]
