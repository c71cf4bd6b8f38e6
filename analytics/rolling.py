from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from utils.dates import resolve_now, start_of_day
from utils.set_processing import dated_sets
from utils.set_schema import InsightsConfig
from .personal_records import ensure_pr_flags
from .strength import round_half_up


@dataclass(frozen=True)
class PeriodStats:
    total_volume: float
    total_sets: int
    total_workouts: int
    total_prs: int
    avg_sets_per_workout: int
    avg_volume_per_workout: int


@dataclass(frozen=True)
class DeltaResult:
    current: float
    previous: float
    delta: float
    delta_percent: int
    direction: str  # up / down / same


@dataclass(frozen=True)
class RollingWindowComparison:
    window_days: int
    eligible: bool
    min_workouts_required: int
    current_start: datetime
    current_end: datetime
    previous_start: datetime
    previous_end: datetime  # exclusive; equals current_start
    current: PeriodStats
    previous: PeriodStats
    volume: DeltaResult | None = None
    sets: DeltaResult | None = None
    workouts: DeltaResult | None = None
    prs: DeltaResult | None = None


def calculate_period_stats(sets_df: pd.DataFrame, start, end) -> PeriodStats:
    """
    Totals over working sets with ``start <= date_dt < end``.

    Volume only counts sets with positive weight and reps. Averages are per
    unique session and 0 when there were none.
    """
    if sets_df is None or sets_df.empty:
        return PeriodStats(0.0, 0, 0, 0, 0, 0)

    df = dated_sets(ensure_pr_flags(sets_df))
    mask = (
        (df["date_dt"] >= pd.Timestamp(start))
        & (df["date_dt"] < pd.Timestamp(end))
        & ~df["is_warmup"].astype(bool)
    )
    df = df[mask]

    positive = (df["weight_kg"] > 0) & (df["reps"] > 0)
    total_volume = float((df["weight_kg"] * df["reps"])[positive].sum())
    total_sets = int(len(df))
    total_workouts = int(df["session_key"].nunique())
    total_prs = int(df["is_pr"].astype(bool).sum())

    return PeriodStats(
        total_volume=total_volume,
        total_sets=total_sets,
        total_workouts=total_workouts,
        total_prs=total_prs,
        avg_sets_per_workout=int(round_half_up(total_sets / total_workouts)) if total_workouts else 0,
        avg_volume_per_workout=int(round_half_up(total_volume / total_workouts)) if total_workouts else 0,
    )


def calculate_delta(current: float, previous: float) -> DeltaResult:
    delta = round(current - previous, 2)
    if previous > 0:
        delta_percent = int(round_half_up(delta / previous * 100))
    else:
        delta_percent = 100 if current > 0 else 0
    direction = "up" if delta > 0 else "down" if delta < 0 else "same"
    return DeltaResult(
        current=round(float(current), 2),
        previous=round(float(previous), 2),
        delta=delta,
        delta_percent=delta_percent,
        direction=direction,
    )


def rolling_window_bounds(now, window_days: int) -> tuple[pd.Timestamp, pd.Timestamp, pd.Timestamp, pd.Timestamp]:
    """
    (current_start, current_end, previous_start, previous_end) for a trailing
    window of ``window_days`` calendar days ending at ``now``. The previous
    window is the block of the same length right before it.
    """
    if window_days < 1:
        raise ValueError("window_days must be positive")
    now_ts = resolve_now(now)
    current_start = start_of_day(now_ts - pd.Timedelta(days=window_days - 1))
    previous_start = current_start - pd.Timedelta(days=window_days)
    return current_start, now_ts, previous_start, current_start


def rolling_window_comparison(
    sets_df: pd.DataFrame,
    window_days: int,
    now: datetime | date | None = None,
    min_workouts_required: int = 2,
) -> RollingWindowComparison:
    """
    Compare the trailing window with the one before it.

    Deltas are None (not zero) unless both windows hold at least
    ``min_workouts_required`` sessions.
    """
    current_start, current_end, previous_start, previous_end = rolling_window_bounds(now, window_days)
    flagged = ensure_pr_flags(sets_df)
    # current window includes ``now`` itself
    current = calculate_period_stats(flagged, current_start, current_end + pd.Timedelta(microseconds=1))
    previous = calculate_period_stats(flagged, previous_start, previous_end)

    eligible = (
        current.total_workouts >= min_workouts_required
        and previous.total_workouts >= min_workouts_required
    )
    deltas = {}
    if eligible:
        deltas = {
            "volume": calculate_delta(current.total_volume, previous.total_volume),
            "sets": calculate_delta(current.total_sets, previous.total_sets),
            "workouts": calculate_delta(current.total_workouts, previous.total_workouts),
            "prs": calculate_delta(current.total_prs, previous.total_prs),
        }

    return RollingWindowComparison(
        window_days=window_days,
        eligible=eligible,
        min_workouts_required=min_workouts_required,
        current_start=current_start.to_pydatetime(),
        current_end=current_end.to_pydatetime(),
        previous_start=previous_start.to_pydatetime(),
        previous_end=previous_end.to_pydatetime(),
        current=current,
        previous=previous,
        **deltas,
    )


def rolling_comparisons(
    sets_df: pd.DataFrame,
    now: datetime | date | None = None,
    cfg: InsightsConfig | None = None,
) -> dict[int, RollingWindowComparison]:
    cfg = cfg or InsightsConfig()
    flagged = ensure_pr_flags(sets_df)
    return {
        days: rolling_window_comparison(flagged, days, now, cfg.min_workouts_required)
        for days in cfg.rolling_windows
    }
