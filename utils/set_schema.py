# utils/set_schema.py
from dataclasses import dataclass

REQUIRED_SET_COLS = [
    "exercise_name",
    "weight_kg",
    "reps",
    "set_type",
    "set_index",     # ordinal within the exercise in its session
    "rpe",           # float or NaN
    "title",
    "start_time",    # raw session start, as given
    "session_key",   # start_time + title
    "date_dt",       # pandas datetime64, NaT when unparsable
    "date",          # python date
    "is_warmup",
]

KG_TO_LBS = 2.20462


@dataclass
class InsightsConfig:
    target_reps: int = 10
    min_workouts_required: int = 2
    rolling_windows: tuple[int, ...] = (7, 28)
    pr_drought_days: int = 14
    pr_frequency_days: int = 30
    recent_pr_limit: int = 5
    activity_weeks: int = 8
    weight_unit: str = "kg"  # or "lbs"

    def standard_increment_kg(self) -> float:
        """One plate jump: 2.5 kg, or 5 lb expressed in kg."""
        if self.weight_unit == "lbs":
            return 5 / KG_TO_LBS
        return 2.5

    def display_weight(self, weight_kg: float) -> float:
        if self.weight_unit == "lbs":
            return round(weight_kg * KG_TO_LBS, 1)
        return round(weight_kg, 2)
