import numpy as np
import pandas as pd

DAILY_COLUMNS = [
    "date",
    "total_volume",
    "sets",
    "avg_reps",
    "sessions",
    "workout_title",
    "weekday",
    "iso_year",
    "iso_week",
]


def add_metadata(daily_df: pd.DataFrame) -> pd.DataFrame:
    """Add weekday (0 Monday) and ISO year/week columns."""
    df = daily_df.copy()
    df["weekday"] = df["date"].apply(lambda d: d.weekday())
    df["iso_year"] = df["date"].apply(lambda d: d.isocalendar()[0])
    df["iso_week"] = df["date"].apply(lambda d: d.isocalendar()[1])
    return df


def build_daily_summaries(sets_df: pd.DataFrame) -> pd.DataFrame:
    """
    Aggregate canonical sets per calendar day.

    Expects at least: date_dt, session_key, title, is_warmup, weight_kg, reps.
    Sessions count every dated set; volume, sets and avg_reps only working sets.
    Days without a working set are left out.
    """
    if sets_df is None or sets_df.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)

    df = sets_df[sets_df["date_dt"].notna()].copy()
    if df.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)

    df = df.sort_values(["date_dt", "set_index"], kind="mergesort")
    df["date"] = df["date_dt"].dt.date
    df["is_working_set"] = ~df["is_warmup"].astype(bool)

    positive = df["is_working_set"] & (df["weight_kg"] > 0) & (df["reps"] > 0)
    df["set_volume_kg"] = np.where(positive, df["weight_kg"] * df["reps"], 0.0)
    df["working_reps"] = np.where(df["is_working_set"], df["reps"], 0)

    sessions_per_day = df.groupby("date")["session_key"].nunique().rename("sessions")
    titles = (
        df.assign(title=df["title"].replace("", "Workout"))
          .groupby("date")["title"].first()
          .rename("workout_title")
    )

    grouped = df.groupby("date").agg(
        total_volume=("set_volume_kg", "sum"),
        sets=("is_working_set", "sum"),
        total_reps=("working_reps", "sum"),
    )
    grouped = grouped.join(sessions_per_day).join(titles).reset_index()
    grouped = grouped[grouped["sets"] > 0]
    if grouped.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)

    grouped["sets"] = grouped["sets"].astype(int)
    grouped["avg_reps"] = np.floor(grouped["total_reps"] / grouped["sets"] + 0.5).astype(int)
    grouped = add_metadata(grouped)
    return grouped.sort_values("date").reset_index(drop=True)[DAILY_COLUMNS]
