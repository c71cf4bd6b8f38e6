import math
from typing import Sequence

import numpy as np

EPLEY_FACTOR = 30
MAX_REPS_FOR_1RM = 12  # Epley degrades past ~12 reps
RPE_MIN = 6.0
RPE_MAX = 10.0


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 away from zero on the positive side (not banker's rounding)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def one_rep_max(weight: float, reps: float) -> float:
    """Epley estimate with reps capped at 12; 0 for non-positive inputs."""
    if weight is None or reps is None or weight <= 0 or reps <= 0:
        return 0.0
    effective_reps = min(reps, MAX_REPS_FOR_1RM)
    return round(float(weight) * (1.0 + effective_reps / EPLEY_FACTOR), 2)


def _valid_rpe(rpe: float | None) -> bool:
    if rpe is None:
        return False
    try:
        rpe = float(rpe)
    except (TypeError, ValueError):
        return False
    return math.isfinite(rpe) and RPE_MIN <= rpe <= RPE_MAX


def adjust_for_rpe(one_rm: float, rpe: float | None) -> float:
    """
    Scale a 1RM estimate by reported effort.

    Only RPE in [6, 10] is trusted: a set left at RPE 7 undersells capacity,
    so the estimate grows by 2% per point below 9, up to 10%.
    """
    if not one_rm or not math.isfinite(one_rm):
        return 0.0
    if not _valid_rpe(rpe):
        return one_rm
    boost = clamp((9 - float(rpe)) * 0.02, 0.0, 0.1)
    return one_rm * (1 + boost)


def predict_reps(one_rm: float, weight: float) -> float:
    """Reps achievable at ``weight`` for a given 1RM (inverse Epley, 1 decimal)."""
    if weight <= 0 or one_rm <= 0:
        return 0.0
    if weight >= one_rm:
        return 1.0
    predicted = EPLEY_FACTOR * (one_rm / weight - 1)
    return max(1.0, round_half_up(predicted, 1))


def percent_change(old: float, new: float) -> float:
    """Percent change from ``old`` to ``new``, 1 decimal."""
    if old <= 0:
        return 100.0 if new > 0 else 0.0
    return round_half_up((new - old) / old * 100, 1)


def percentile(values: Sequence[float], q: float) -> float:
    """Linear-interpolated percentile, ``q`` in [0, 1]; 0 for no values."""
    if len(values) == 0:
        return 0.0
    return float(np.percentile(np.asarray(values, dtype=float), clamp(q, 0.0, 1.0) * 100))


def median(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=float)))
