from dataclasses import dataclass, field
from datetime import date, datetime

import pandas as pd

from utils.dates import days_between, resolve_now
from utils.set_processing import sort_chronologically
from utils.set_schema import InsightsConfig
from .strength import round_half_up

PR_FREQUENCY_WEEKS = 4  # the 30-day window is read as four weeks


def identify_personal_records(sets_df: pd.DataFrame) -> pd.DataFrame:
    """
    Flag heaviest-ever working sets per exercise, in chronological order.

    Adds:
      - is_pr: weight strictly beat the running best at that point
      - previous_best_kg: running best before this set
      - running_best_kg: running best after this set

    Warmups, non-positive weights and undated sets never qualify and never
    move the running best. Returns a chronologically sorted copy.
    """
    if sets_df is None or sets_df.empty:
        out = pd.DataFrame(columns=list(getattr(sets_df, "columns", [])))
        for col in ("is_pr", "previous_best_kg", "running_best_kg"):
            out[col] = pd.Series(dtype=float if col != "is_pr" else bool)
        return out

    df = sort_chronologically(sets_df)
    eligible = (
        ~df["is_warmup"].astype(bool)
        & df["date_dt"].notna()
        & (df["weight_kg"] > 0)
    )

    best_by_exercise: dict[str, float] = {}
    is_pr, previous_best, running_best = [], [], []
    for ex_name, weight, ok in zip(df["exercise_name"], df["weight_kg"], eligible):
        before = best_by_exercise.get(ex_name, 0.0)
        hit = bool(ok) and weight > before
        if hit:
            best_by_exercise[ex_name] = float(weight)
        is_pr.append(hit)
        previous_best.append(before)
        running_best.append(best_by_exercise.get(ex_name, 0.0))

    df["is_pr"] = is_pr
    df["previous_best_kg"] = previous_best
    df["running_best_kg"] = running_best
    return df


def ensure_pr_flags(sets_df: pd.DataFrame) -> pd.DataFrame:
    if sets_df is not None and "is_pr" in sets_df.columns:
        return sets_df
    return identify_personal_records(sets_df)


@dataclass(frozen=True)
class RecentPR:
    date: datetime
    exercise: str
    weight: float
    reps: int
    previous_best: float
    improvement: float


@dataclass(frozen=True)
class PRInsights:
    days_since_last_pr: int
    last_pr_date: datetime | None
    last_pr_exercise: str | None
    pr_drought: bool
    recent_prs: list[RecentPR] = field(default_factory=list)
    pr_frequency: float = 0.0  # per week
    total_prs: int = 0


def calculate_pr_insights(
    sets_df: pd.DataFrame,
    now: datetime | date | None = None,
    cfg: InsightsConfig | None = None,
) -> PRInsights:
    """
    PR timeline: time since the last PR, drought flag and recent PR rate.
    """
    cfg = cfg or InsightsConfig()
    now_ts = resolve_now(now)

    flagged = ensure_pr_flags(sets_df)
    events = flagged[flagged["is_pr"].astype(bool)] if not flagged.empty else flagged
    if events is None or events.empty:
        return PRInsights(
            days_since_last_pr=-1,
            last_pr_date=None,
            last_pr_exercise=None,
            pr_drought=True,
        )

    events = sort_chronologically(events)
    last = events.iloc[-1]
    days_since = days_between(now_ts, last["date_dt"])

    recent = events.tail(cfg.recent_pr_limit).iloc[::-1]
    recent_prs = [
        RecentPR(
            date=row["date_dt"].to_pydatetime(),
            exercise=row["exercise_name"],
            weight=round(float(row["weight_kg"]), 2),
            reps=int(row["reps"]),
            previous_best=round(float(row["previous_best_kg"]), 2),
            improvement=round(float(row["weight_kg"] - row["previous_best_kg"]), 2),
        )
        for _, row in recent.iterrows()
    ]

    window_start = now_ts - pd.Timedelta(days=cfg.pr_frequency_days)
    recent_count = int((events["date_dt"] >= window_start).sum())
    pr_frequency = round_half_up(recent_count / PR_FREQUENCY_WEEKS, 1)

    return PRInsights(
        days_since_last_pr=days_since,
        last_pr_date=last["date_dt"].to_pydatetime(),
        last_pr_exercise=last["exercise_name"],
        pr_drought=days_since > cfg.pr_drought_days,
        recent_prs=recent_prs,
        pr_frequency=pr_frequency,
        total_prs=len(events),
    )
