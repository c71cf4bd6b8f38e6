from dataclasses import dataclass, field
from datetime import date, datetime

import pandas as pd

from utils.dates import calendar_weeks_between, resolve_now
from utils.set_processing import dated_sets
from utils.set_schema import InsightsConfig
from .exercise_trend import (
    WEIGHT_STATIC_EPSILON_KG,
    TrendFn,
    analyze_exercise_trend,
    session_rep_metric,
)
from .set_classification import working_sets
from .weightlifting import summarize_exercise_sessions


@dataclass(frozen=True)
class PlateauRecord:
    exercise_name: str
    weeks_at_same_weight: int
    weight_kg: float
    last_progress_date: datetime | None
    is_bodyweight_like: bool
    suggestion: str


@dataclass(frozen=True)
class PlateauAnalysis:
    plateaus: list[PlateauRecord] = field(default_factory=list)
    improving_exercises: list[str] = field(default_factory=list)
    overall_trend: str = "maintaining"  # improving / maintaining / declining


def _earliest_plateau_date(sessions: pd.DataFrame, band, is_bodyweight_like: bool):
    """Walk back from the latest session while sessions stay inside the plateau band."""
    earliest = sessions["date_dt"].iloc[0] if not sessions.empty else None
    for _, s in sessions.iterrows():
        reps = session_rep_metric(s, is_bodyweight_like)
        weight_match = abs(s["weight"] - band.weight) < WEIGHT_STATIC_EPSILON_KG
        reps_match = band.min_reps - 1 <= reps <= band.max_reps + 1
        if not (weight_match and reps_match):
            break
        earliest = s["date_dt"]
    return earliest


def _suggestion(weight_kg: float, is_bodyweight_like: bool, cfg: InsightsConfig) -> str:
    if is_bodyweight_like:
        return "Try adding 1-2 reps or an extra set next session."
    target = cfg.display_weight(weight_kg + cfg.standard_increment_kg())
    return f"Try increasing weight to {target:g}{cfg.weight_unit} next session."


def detect_plateaus(
    sets_df: pd.DataFrame,
    now: datetime | date | None = None,
    cfg: InsightsConfig | None = None,
    trend_fn: TrendFn = analyze_exercise_trend,
) -> PlateauAnalysis:
    """
    Find exercises stuck at the same weight and rep band.

    ``trend_fn`` classifies each exercise's full history; only "stagnant"
    exercises become plateau records and "overload" ones count as improving.
    """
    cfg = cfg or InsightsConfig()
    now_ts = resolve_now(now)
    if sets_df is None or sets_df.empty:
        return PlateauAnalysis()

    df = dated_sets(sets_df)
    df = working_sets(df)

    plateaus: list[PlateauRecord] = []
    improving: list[str] = []
    for ex_name, g in df.groupby("exercise_name", sort=True):
        trend = trend_fn(g)
        if trend.status == "overload":
            improving.append(ex_name)
            continue
        if trend.status != "stagnant" or trend.plateau is None:
            continue

        sessions = summarize_exercise_sessions(g)
        earliest = _earliest_plateau_date(sessions, trend.plateau, trend.is_bodyweight_like)
        weeks = calendar_weeks_between(now_ts, earliest) if earliest is not None else 1

        plateaus.append(
            PlateauRecord(
                exercise_name=ex_name,
                weeks_at_same_weight=max(1, weeks),
                weight_kg=float(trend.plateau.weight),
                last_progress_date=earliest.to_pydatetime() if earliest is not None else None,
                is_bodyweight_like=trend.is_bodyweight_like,
                suggestion=_suggestion(trend.plateau.weight, trend.is_bodyweight_like, cfg),
            )
        )

    if len(improving) > len(plateaus):
        overall = "improving"
    elif len(plateaus) > len(improving) + 2:
        overall = "declining"
    else:
        overall = "maintaining"

    plateaus.sort(key=lambda p: (-p.weeks_at_same_weight, p.exercise_name))
    return PlateauAnalysis(plateaus=plateaus, improving_exercises=improving, overall_trend=overall)
