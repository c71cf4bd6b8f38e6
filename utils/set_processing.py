# utils/set_processing.py
import logging
from typing import Callable, Iterable

import pandas as pd

from analytics.set_classification import is_warmup_set
from .set_schema import REQUIRED_SET_COLS

logger = logging.getLogger(__name__)

HEVY_DATETIME_FORMAT = "%d %b %Y, %H:%M"

START_TIME_CANDIDATES = [
    "start_time", "startTime", "performed_at", "performedAt",
    "workout.start_time", "workoutStart", "timestamp", "date", "workout_date",
]
TITLE_CANDIDATES = ["title", "workout_title", "workoutTitle", "workout_name"]
EXERCISE_CANDIDATES = [
    "exercise_title", "exercise_name", "exercise", "exerciseName", "movement", "name",
]
WEIGHT_CANDIDATES = ["weight_kg", "weight", "kg", "load", "weightKg"]
REPS_CANDIDATES = ["reps", "rep_count", "repetitions", "repsCount"]
SET_TYPE_CANDIDATES = ["set_type", "setType", "type"]
SET_INDEX_CANDIDATES = ["set_index", "setIndex", "set_number", "index"]
RPE_CANDIDATES = ["rpe", "RPE", "effort"]
WARMUP_CANDIDATES = ["is_warmup", "isWarmup", "warmup"]

SORT_KEYS = ["date_dt", "session_key", "exercise_name", "set_index", "weight_kg", "reps"]


def _pick_first(df: pd.DataFrame, candidates: Iterable[str]) -> str | None:
    for c in candidates:
        if c in df.columns:
            return c
    return None


def _wall_clock(value) -> pd.Timestamp:
    ts = pd.to_datetime(value, errors="coerce")
    if ts is pd.NaT or ts.tzinfo is None:
        return ts
    return ts.tz_localize(None)


def _to_naive_datetime(series: pd.Series) -> pd.Series:
    """
    Parse timestamps as the lifter's local wall-clock time.

    Hevy exports ("19 Oct 2026, 18:30") carry no offset; values with an
    offset keep their own wall time and drop the offset, so mixed sources
    land in the same day and week buckets.
    """
    if isinstance(series.dtype, pd.DatetimeTZDtype):
        return series.dt.tz_localize(None).astype("datetime64[ns]")
    dt = pd.to_datetime(series, format=HEVY_DATETIME_FORMAT, errors="coerce")
    missing = dt.isna() & series.notna()
    if missing.any():
        fallback = pd.to_datetime(series[missing].map(_wall_clock), errors="coerce")
        dt = dt.astype("datetime64[ns]")
        dt.loc[missing] = fallback.astype("datetime64[ns]")
    return dt.astype("datetime64[ns]")


def _to_bool(series: pd.Series) -> pd.Series:
    def coerce(val) -> bool:
        if isinstance(val, bool):
            return val
        if pd.isna(val):
            return False
        s = str(val).strip().lower()
        return s in {"true", "1", "yes", "y", "warmup", "warm"}
    return series.apply(coerce)


def _text(df: pd.DataFrame, col: str | None) -> pd.Series:
    if col is None:
        return pd.Series("", index=df.index, dtype=object)
    values = df[col].astype(object)
    return values.where(values.notna(), "").astype(str).str.strip()


def normalize_sets(
    sets_df: pd.DataFrame,
    warn: Callable[[str], None] | None = None,
) -> pd.DataFrame:
    """
    Return a canonical sets DF with REQUIRED_SET_COLS present.
    This is the only place allowed to do column mapping.

    Rows without an exercise name are dropped. Rows with unparsable
    timestamps are kept with ``date_dt = NaT`` so session-local analysis
    can still use them; temporal aggregations skip them.
    """
    warn = warn or logger.warning
    if sets_df is None or sets_df.empty:
        return pd.DataFrame(columns=REQUIRED_SET_COLS)

    df = sets_df.copy()
    debug = {"input_rows": len(df), "input_cols": list(df.columns)}

    time_col = _pick_first(df, START_TIME_CANDIDATES)
    title_col = _pick_first(df, TITLE_CANDIDATES)
    ex_col = _pick_first(df, EXERCISE_CANDIDATES)
    w_col = _pick_first(df, WEIGHT_CANDIDATES)
    r_col = _pick_first(df, REPS_CANDIDATES)
    type_col = _pick_first(df, SET_TYPE_CANDIDATES)
    idx_col = _pick_first(df, SET_INDEX_CANDIDATES)
    rpe_col = _pick_first(df, RPE_CANDIDATES)
    wu_col = _pick_first(df, WARMUP_CANDIDATES)
    debug["date_source"] = time_col

    out = pd.DataFrame(index=df.index)
    out["exercise_name"] = _text(df, ex_col)
    out["weight_kg"] = pd.to_numeric(df[w_col], errors="coerce").fillna(0.0).astype(float) if w_col else 0.0
    out["reps"] = pd.to_numeric(df[r_col], errors="coerce").fillna(0).astype(int) if r_col else 0
    out["set_type"] = _text(df, type_col)
    out["set_index"] = pd.to_numeric(df[idx_col], errors="coerce").fillna(0).astype(int) if idx_col else 0
    out["rpe"] = pd.to_numeric(df[rpe_col], errors="coerce").astype(float) if rpe_col else float("nan")
    out["title"] = _text(df, title_col)

    if time_col:
        out["start_time"] = df[time_col]
        out["date_dt"] = _to_naive_datetime(df[time_col])
    else:
        out["start_time"] = None
        out["date_dt"] = pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns]")
    out["date"] = out["date_dt"].dt.date.where(out["date_dt"].notna(), None)
    out["session_key"] = _text(df, time_col) + "|" + out["title"]

    # warmup: set_type tag first, boolean column only when there is no tag column
    if type_col is None and wu_col:
        out["is_warmup"] = _to_bool(df[wu_col])
    else:
        out["is_warmup"] = out["set_type"].map(is_warmup_set)
    out["is_warmup"] = out["is_warmup"].fillna(False).astype(bool)

    missing_ex_mask = out["exercise_name"].str.len() == 0
    missing_date_mask = out["date_dt"].isna()
    debug["parsed_dates"] = int((~missing_date_mask).sum())
    debug["missing_date_rows"] = int(missing_date_mask.sum())
    debug["missing_exercise_rows"] = int(missing_ex_mask.sum())

    if missing_ex_mask.any():
        warn(
            f"Dropped {int(missing_ex_mask.sum())} sets with no exercise name. "
            f"Checked {EXERCISE_CANDIDATES}. Available columns: {list(sets_df.columns)}"
        )
    if missing_date_mask.any():
        warn(
            f"{int(missing_date_mask.sum())} sets have no usable timestamp; "
            "they are excluded from time-based insights."
        )

    out = out[~missing_ex_mask].reset_index(drop=True)
    debug["output_rows"] = len(out)
    out = out[REQUIRED_SET_COLS]
    out.attrs["normalize_debug"] = debug
    return out


def sort_chronologically(df: pd.DataFrame, ascending: bool = True) -> pd.DataFrame:
    """
    Deterministic chronological order: timestamp, then session, exercise and
    set ordinal. Undated rows go last. Stable, so exact duplicates keep input order.
    """
    if df is None or df.empty:
        return df
    keys = [k for k in SORT_KEYS if k in df.columns]
    return df.sort_values(
        keys,
        ascending=ascending,
        kind="mergesort",
        na_position="last",
    ).reset_index(drop=True)


def dated_sets(df: pd.DataFrame) -> pd.DataFrame:
    """Rows usable for temporal computations."""
    if df is None or df.empty:
        return df
    return df[df["date_dt"].notna()]
