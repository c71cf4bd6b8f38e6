import numpy as np
import pandas as pd

from utils.set_processing import dated_sets
from .personal_records import ensure_pr_flags
from .set_classification import working_sets
from .strength import one_rep_max

LIBRARY_COLUMNS = [
    "exercise_name",
    "total_sets",
    "total_volume",
    "max_weight",
    "pr_count",
    "sessions",
    "best_1rm",
    "last_seen",
]

SESSION_SUMMARY_COLUMNS = [
    "session_key",
    "date_dt",
    "weight",
    "reps",
    "one_rm",
    "sets",
    "volume",
    "total_reps",
    "max_reps",
]


def _with_set_metrics(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    positive = (df["weight_kg"] > 0) & (df["reps"] > 0)
    df["volume"] = np.where(positive, df["weight_kg"] * df["reps"], 0.0)
    df["one_rm"] = [one_rep_max(w, r) for w, r in zip(df["weight_kg"], df["reps"])]
    return df


def build_exercise_library(sets_df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-exercise training summary from the canonical sets frame.

    Only dated working sets count. Returns one row per exercise with
    total_sets, total_volume, max_weight, pr_count, sessions, best_1rm and
    last_seen, busiest exercises first.
    """
    if sets_df is None or sets_df.empty:
        return pd.DataFrame(columns=LIBRARY_COLUMNS)

    df = dated_sets(ensure_pr_flags(sets_df))
    df = working_sets(df)
    if df.empty:
        return pd.DataFrame(columns=LIBRARY_COLUMNS)

    df = _with_set_metrics(df)
    out = (
        df.groupby("exercise_name", as_index=False)
          .agg(
              total_sets=("reps", "count"),
              total_volume=("volume", "sum"),
              max_weight=("weight_kg", "max"),
              pr_count=("is_pr", "sum"),
              sessions=("session_key", "nunique"),
              best_1rm=("one_rm", "max"),
              last_seen=("date_dt", "max"),
          )
    )
    out["pr_count"] = out["pr_count"].astype(int)
    out = out.sort_values(["total_sets", "exercise_name"], ascending=[False, True], kind="mergesort")
    return out[LIBRARY_COLUMNS].reset_index(drop=True)


def summarize_exercise_sessions(exercise_df: pd.DataFrame) -> pd.DataFrame:
    """
    Collapse one exercise's dated working sets into one row per session,
    most recent first. The top set is the one with the best estimated 1RM
    (later sets win ties).
    """
    if exercise_df is None or exercise_df.empty:
        return pd.DataFrame(columns=SESSION_SUMMARY_COLUMNS)

    df = dated_sets(exercise_df)
    df = working_sets(df)
    if df.empty:
        return pd.DataFrame(columns=SESSION_SUMMARY_COLUMNS)

    df = _with_set_metrics(df).sort_values(["date_dt", "set_index"], kind="mergesort")

    rows = []
    for session_key, g in df.groupby("session_key", sort=False):
        # last occurrence of the max 1RM, matching ">=" while scanning in order
        top = g.iloc[len(g) - 1 - int(np.argmax(g["one_rm"].to_numpy()[::-1]))]
        rows.append(
            {
                "session_key": session_key,
                "date_dt": g["date_dt"].min(),
                "weight": float(top["weight_kg"]),
                "reps": int(top["reps"]),
                "one_rm": float(top["one_rm"]),
                "sets": len(g),
                "volume": float(g["volume"].sum()),
                "total_reps": int(g["reps"].sum()),
                "max_reps": int(g["reps"].max()),
            }
        )

    out = pd.DataFrame(rows, columns=SESSION_SUMMARY_COLUMNS)
    return out.sort_values(["date_dt", "session_key"], ascending=False, kind="mergesort").reset_index(drop=True)
