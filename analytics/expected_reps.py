import math
from dataclasses import dataclass
from typing import Sequence

from .strength import (
    adjust_for_rpe,
    clamp,
    median,
    one_rep_max,
    percentile,
    predict_reps,
    round_half_up,
)

RECENT_SAMPLE_SIZE = 4
MAX_EXPECTED_REPS = 25  # display ceiling for light back-off sets
FATIGUE_PER_SET = 0.4
MAX_FATIGUE_PENALTY = 3.0


@dataclass(frozen=True)
class SetMetrics:
    weight: float
    reps: int
    volume: float
    one_rm: float
    rpe: float | None = None

    @classmethod
    def from_set(cls, weight: float, reps: int, rpe: float | None = None) -> "SetMetrics":
        weight = float(weight or 0.0)
        reps = int(reps or 0)
        return cls(
            weight=weight,
            reps=reps,
            volume=weight * reps,
            one_rm=one_rep_max(weight, reps),
            rpe=rpe,
        )


@dataclass(frozen=True)
class ExpectedRepsRange:
    min: int
    max: int
    center: float
    label: str


DEGENERATE_RANGE = ExpectedRepsRange(min=1, max=1, center=1.0, label="~1")


def _range_label(lo: int, hi: int) -> str:
    return f"~{lo}" if lo == hi else f"{lo}-{hi}"


def build_expected_reps_range(
    prior_sets: Sequence[SetMetrics],
    target_weight: float,
    set_number: int,
) -> ExpectedRepsRange:
    """
    Project a rep range at ``target_weight`` from earlier working sets only.

    Args:
        prior_sets: chronological metrics of the sets before the one being judged
        target_weight: load of the set being judged
        set_number: 1-indexed position of that set within the session

    The 1RM estimate is the 75th percentile of the last four RPE-adjusted
    estimates, so one outlier set cannot swing it. Later sets get a fatigue
    penalty of 0.4 reps per preceding set (max 3), and a noisy sample widens
    the range.
    """
    candidates = [adjust_for_rpe(s.one_rm, s.rpe) for s in prior_sets]
    candidates = [v for v in candidates if v > 0]

    if not candidates or target_weight <= 0:
        return DEGENERATE_RANGE

    recent = candidates[-RECENT_SAMPLE_SIZE:]
    estimate = percentile(recent, 0.75) or median(recent) or median(candidates)
    base_predicted = predict_reps(estimate, target_weight)

    fatigue_penalty = clamp(FATIGUE_PER_SET * max(0, set_number - 1), 0.0, MAX_FATIGUE_PENALTY)
    center = min(max(1.0, base_predicted - fatigue_penalty), MAX_EXPECTED_REPS)

    q25 = percentile(recent, 0.25)
    q75 = percentile(recent, 0.75)
    med = median(recent)
    spread_pct = (q75 - q25) / med if med > 0 else 0.0
    half_width = clamp(1 + round_half_up(spread_pct * 3), 1, 3)

    lo = max(1, math.floor(center - half_width))
    hi = max(lo, math.ceil(center + half_width))
    lo = min(lo, MAX_EXPECTED_REPS)
    hi = max(lo, min(hi, MAX_EXPECTED_REPS))

    return ExpectedRepsRange(min=int(lo), max=int(hi), center=center, label=_range_label(lo, hi))
