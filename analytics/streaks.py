from dataclasses import dataclass
from datetime import date, datetime, timedelta

import pandas as pd

from utils.dates import calendar_weeks_between, resolve_now, week_start, week_starts
from utils.set_processing import dated_sets
from .personal_records import ensure_pr_flags
from .set_classification import working_sets
from .strength import round_half_up

ACTIVITY_COLUMNS = ["week_start", "sessions", "sets", "prs", "volume"]


@dataclass(frozen=True)
class StreakState:
    current_streak: int          # consecutive weeks with workouts, ending this or last week
    longest_streak: int
    is_on_streak: bool
    streak_type: str             # hot / warm / cold
    workouts_this_week: int
    avg_workouts_per_week: float
    total_weeks_tracked: int
    weeks_with_workouts: int
    consistency_score: int       # 0-100


EMPTY_STREAK = StreakState(
    current_streak=0,
    longest_streak=0,
    is_on_streak=False,
    streak_type="cold",
    workouts_this_week=0,
    avg_workouts_per_week=0.0,
    total_weeks_tracked=0,
    weeks_with_workouts=0,
    consistency_score=0,
)


def _longest_run(sorted_weeks: list[date]) -> int:
    longest = run = 0
    prev = None
    for wk in sorted_weeks:
        run = run + 1 if prev is not None and (wk - prev).days == 7 else 1
        longest = max(longest, run)
        prev = wk
    return longest


def _streak_type(current_streak: int) -> str:
    if current_streak >= 4:
        return "hot"
    if current_streak >= 2:
        return "warm"
    return "cold"


def calculate_streak_info(sets_df: pd.DataFrame, now: datetime | date | None = None) -> StreakState:
    """
    Week-based consistency from dated working sets, weeks starting Monday.

    The current streak counts back from this week, or from last week when
    this week has no session yet, until the first empty week.
    """
    now_ts = resolve_now(now)
    if sets_df is None or sets_df.empty:
        return EMPTY_STREAK

    df = dated_sets(sets_df)
    df = working_sets(df)
    if df.empty:
        return EMPTY_STREAK

    weeks = {ts.date() for ts in week_starts(df["date_dt"])}
    sorted_weeks = sorted(weeks)

    this_week = week_start(now_ts)
    last_week = this_week - timedelta(days=7)
    has_this_week = this_week in weeks
    has_last_week = last_week in weeks

    current_streak = 0
    if has_this_week or has_last_week:
        check = this_week if has_this_week else last_week
        while check in weeks:
            current_streak += 1
            check -= timedelta(days=7)

    this_week_mask = (df["date_dt"] >= pd.Timestamp(this_week)) & (df["date_dt"] <= now_ts)
    workouts_this_week = int(df.loc[this_week_mask, "session_key"].nunique())

    first_workout = df["date_dt"].min()
    total_weeks_tracked = max(1, calendar_weeks_between(now_ts, first_workout) + 1)
    weeks_with_workouts = len(weeks)
    consistency = int(round_half_up(weeks_with_workouts / total_weeks_tracked * 100))

    return StreakState(
        current_streak=current_streak,
        longest_streak=max(_longest_run(sorted_weeks), current_streak),
        is_on_streak=has_this_week or has_last_week,
        streak_type=_streak_type(current_streak),
        workouts_this_week=workouts_this_week,
        avg_workouts_per_week=round_half_up(df["session_key"].nunique() / total_weeks_tracked, 1),
        total_weeks_tracked=total_weeks_tracked,
        weeks_with_workouts=weeks_with_workouts,
        consistency_score=max(0, min(100, consistency)),
    )


def _zero_filled(out: pd.DataFrame) -> pd.DataFrame:
    for col in ACTIVITY_COLUMNS[1:]:
        out[col] = 0.0 if col == "volume" else 0
    return out[ACTIVITY_COLUMNS]


def weekly_activity(sets_df: pd.DataFrame, now: datetime | date | None = None, weeks: int = 8) -> pd.DataFrame:
    """
    Sessions, working sets, PRs and volume for each of the last ``weeks``
    Monday weeks, oldest first, ending with the week containing ``now``.
    Empty weeks are zero-filled.
    """
    now_ts = resolve_now(now)
    this_week = week_start(now_ts)
    index = [this_week - timedelta(days=7 * i) for i in range(weeks - 1, -1, -1)]
    out = pd.DataFrame({"week_start": index})

    df = dated_sets(ensure_pr_flags(sets_df)) if sets_df is not None else None
    if df is None or df.empty or not index:
        return _zero_filled(out)
    df = working_sets(df).copy()
    if df.empty:
        return _zero_filled(out)
    df["week_start"] = [ts.date() for ts in week_starts(df["date_dt"])]
    positive = (df["weight_kg"] > 0) & (df["reps"] > 0)
    df["volume"] = (df["weight_kg"] * df["reps"]).where(positive, 0.0)

    grouped = df.groupby("week_start").agg(
        sessions=("session_key", "nunique"),
        sets=("reps", "count"),
        prs=("is_pr", "sum"),
        volume=("volume", "sum"),
    ).reset_index()

    out = out.merge(grouped, on="week_start", how="left")
    for col in ("sessions", "sets", "prs"):
        out[col] = out[col].fillna(0).astype(int)
    out["volume"] = out["volume"].fillna(0.0).astype(float)
    return out[ACTIVITY_COLUMNS]
