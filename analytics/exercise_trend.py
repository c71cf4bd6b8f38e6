"""
Default trend core: labels an exercise's recent history so the plateau
detector knows which exercises are progressing and which are stuck.

Any callable with the same signature as ``analyze_exercise_trend`` can be
passed to ``detect_plateaus`` instead.
"""
import math
from dataclasses import dataclass
from typing import Callable

import pandas as pd

from .weightlifting import summarize_exercise_sessions

MIN_SESSIONS_FOR_TREND = 4
RECENT_SESSIONS = 4
WEIGHT_STATIC_EPSILON_KG = 0.5
REP_STATIC_EPSILON = 1
MIN_SIGNAL_REPS = 2
TREND_PCT_THRESHOLD = 1.0
TREND_MIN_ABS_1RM_KG = 0.25
TREND_MIN_ABS_REPS = 1
BODYWEIGHT_SHARE = 0.75


@dataclass(frozen=True)
class PlateauBand:
    weight: float
    min_reps: float
    max_reps: float


@dataclass(frozen=True)
class ExerciseTrend:
    status: str  # new / stagnant / overload / regression / neutral
    is_bodyweight_like: bool
    confidence: str = "low"
    diff_pct: float | None = None
    plateau: PlateauBand | None = None


TrendFn = Callable[[pd.DataFrame], ExerciseTrend]


def _confidence(history_len: int, window_size: int) -> str:
    if history_len < MIN_SESSIONS_FOR_TREND:
        return "low"
    if history_len >= 10 and window_size >= 6:
        return "high"
    if history_len >= 6:
        return "medium"
    return "low"


def session_rep_metric(session: pd.Series, is_bodyweight_like: bool) -> float:
    """Reps used for plateau matching: max reps for bodyweight, top-set reps otherwise."""
    if is_bodyweight_like:
        return float(session["max_reps"])
    if session["reps"]:
        return float(session["reps"])
    return session["volume"] / session["weight"] if session["weight"] > 0 else 0.0


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def analyze_exercise_trend(exercise_df: pd.DataFrame) -> ExerciseTrend:
    """
    Classify one exercise from its full set history.

    Stagnant: the last four sessions sit within 0.5 kg and one rep of each
    other. Otherwise the newer half of a 4 or 6 session window is compared
    with the older half (1RM, or max reps for bodyweight work).
    """
    history = summarize_exercise_sessions(exercise_df)
    if history.empty:
        return ExerciseTrend(status="new", is_bodyweight_like=False)

    recent = history.head(RECENT_SESSIONS)
    weights = recent["weight"].tolist()
    zero_weight_sessions = sum(1 for w in weights if w <= 0.0001)
    is_bodyweight_like = zero_weight_sessions >= math.ceil(len(recent) * BODYWEIGHT_SHARE)

    has_signal = (
        recent["max_reps"].max() >= MIN_SIGNAL_REPS
        if is_bodyweight_like
        else max(weights) > 0.0001
    )
    if not has_signal or len(history) < MIN_SESSIONS_FOR_TREND:
        return ExerciseTrend(status="new", is_bodyweight_like=is_bodyweight_like)

    reps_metric = [session_rep_metric(s, is_bodyweight_like) for _, s in recent.iterrows()]
    weight_static = all(abs(w - weights[0]) < WEIGHT_STATIC_EPSILON_KG for w in weights)
    rep_static = max(reps_metric) - min(reps_metric) <= REP_STATIC_EPSILON
    if weight_static and rep_static:
        return ExerciseTrend(
            status="stagnant",
            is_bodyweight_like=is_bodyweight_like,
            confidence=_confidence(len(history), RECENT_SESSIONS),
            plateau=PlateauBand(weight=weights[0], min_reps=min(reps_metric), max_reps=max(reps_metric)),
        )

    window_size = 6 if len(history) >= 6 else 4
    window = history.head(window_size)
    metric = (window["max_reps"] if is_bodyweight_like else window["one_rm"]).astype(float).tolist()
    half = window_size // 2
    current, previous = _mean(metric[:half]), _mean(metric[half:])
    if current <= 0 or previous <= 0:
        return ExerciseTrend(status="new", is_bodyweight_like=is_bodyweight_like)

    diff_abs = current - previous
    diff_pct = diff_abs / previous * 100
    min_abs = TREND_MIN_ABS_REPS if is_bodyweight_like else TREND_MIN_ABS_1RM_KG
    confidence = _confidence(len(history), window_size)

    if diff_abs >= min_abs and diff_pct >= TREND_PCT_THRESHOLD:
        status = "overload"
    elif diff_abs <= -min_abs and diff_pct <= -TREND_PCT_THRESHOLD:
        status = "regression"
    else:
        status = "neutral"
    return ExerciseTrend(
        status=status,
        is_bodyweight_like=is_bodyweight_like,
        confidence=confidence,
        diff_pct=round(diff_pct, 2),
    )
