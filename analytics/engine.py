import logging
import math
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import date, datetime
from typing import Any, Callable

import numpy as np
import pandas as pd

from utils.daily_aggregation import build_daily_summaries
from utils.dates import resolve_now
from utils.set_schema import REQUIRED_SET_COLS, InsightsConfig
from .personal_records import PRInsights, calculate_pr_insights, identify_personal_records
from .plateaus import PlateauAnalysis, detect_plateaus
from .rolling import RollingWindowComparison, rolling_comparisons
from .streaks import StreakState, calculate_streak_info, weekly_activity
from .transitions import build_transition_table
from .weightlifting import build_exercise_library
from .wisdom import build_session_goal_table, build_wisdom_table

logger = logging.getLogger(__name__)


@dataclass
class InsightsReport:
    generated_at: datetime
    transitions: pd.DataFrame
    wisdom: pd.DataFrame
    session_goals: pd.DataFrame
    exercise_library: pd.DataFrame
    plateaus: PlateauAnalysis
    rolling: dict[int, RollingWindowComparison]
    streak: StreakState
    pr_insights: PRInsights
    weekly_activity: pd.DataFrame
    daily_summaries: pd.DataFrame
    debug: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Plain JSON-compatible view: ISO strings for dates, lists of dicts for tables."""
        return {
            "generated_at": _jsonable(self.generated_at),
            "transitions": _records(self.transitions),
            "wisdom": _records(self.wisdom),
            "session_goals": _records(self.session_goals),
            "exercise_library": _records(self.exercise_library),
            "plateaus": _jsonable(self.plateaus),
            "rolling": {str(days): _jsonable(cmp) for days, cmp in sorted(self.rolling.items())},
            "streak": _jsonable(self.streak),
            "pr_insights": _jsonable(self.pr_insights),
            "weekly_activity": _records(self.weekly_activity),
            "daily_summaries": _records(self.daily_summaries),
        }


def _jsonable(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if is_dataclass(value):
        return _jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return None if math.isnan(value) else float(value)
    return value


def _records(df: pd.DataFrame) -> list[dict]:
    if df is None or df.empty:
        return []
    return [_jsonable(row) for row in df.to_dict("records")]


def build_insights(
    sets_df: pd.DataFrame,
    now: datetime | date | None = None,
    cfg: InsightsConfig | None = None,
    warn: Callable[[str], None] | None = None,
) -> InsightsReport:
    """
    Run every analysis over one canonical sets frame (see ``data_model.sets_to_frame``).

    The PR pass runs once; its flagged frame feeds every consumer. With the
    same input and ``now`` the report is identical, whatever the row order.
    """
    cfg = cfg or InsightsConfig()
    warn = warn or logger.warning
    now_ts = resolve_now(now)

    if sets_df is None or (sets_df.empty and len(sets_df.columns) == 0):
        sets_df = pd.DataFrame(columns=REQUIRED_SET_COLS)
    missing = [c for c in REQUIRED_SET_COLS if c not in sets_df.columns]
    if missing:
        warn(f"Sets frame is missing columns {missing}; run normalize_sets first. Returning an empty report.")
        sets_df = pd.DataFrame(columns=REQUIRED_SET_COLS)

    flagged = identify_personal_records(sets_df)
    debug = {
        "rows": len(flagged),
        "undated_rows": int(flagged["date_dt"].isna().sum()) if not flagged.empty else 0,
        "exercises": int(flagged["exercise_name"].nunique()) if not flagged.empty else 0,
    }
    logger.debug("building insights: %s", debug)

    return InsightsReport(
        generated_at=now_ts.to_pydatetime(),
        transitions=build_transition_table(flagged),
        wisdom=build_wisdom_table(flagged, cfg.target_reps),
        session_goals=build_session_goal_table(flagged),
        exercise_library=build_exercise_library(flagged),
        plateaus=detect_plateaus(flagged, now_ts, cfg),
        rolling=rolling_comparisons(flagged, now_ts, cfg),
        streak=calculate_streak_info(flagged, now_ts),
        pr_insights=calculate_pr_insights(flagged, now_ts, cfg),
        weekly_activity=weekly_activity(flagged, now_ts, cfg.activity_weeks),
        daily_summaries=build_daily_summaries(flagged),
        debug=debug,
    )
