from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Sequence

import pandas as pd

from .set_classification import is_warmup_set, working_sets
from .strength import round_half_up

DEFAULT_TARGET_REPS = 10
PROMOTE_THRESHOLD = 12    # every top set at 12+ reps: take a bigger jump
MIN_PRODUCTIVE_REPS = 5
TOP_WEIGHT_FRACTION = 0.95

WISDOM_COLUMNS = ["exercise_name", "session_key", "date_dt", "type", "message", "suggestion"]


@dataclass(frozen=True)
class ExerciseWisdom:
    type: str  # promote / demote
    message: str
    suggestion: str


@dataclass(frozen=True)
class TopSetEvidence:
    reps: list[int]
    target_reps: int

    @property
    def min_reps(self) -> int:
        return min(self.reps)

    @property
    def max_reps(self) -> int:
        return max(self.reps)


class WisdomRule(NamedTuple):
    predicate: Callable[[TopSetEvidence], bool]
    type: str
    message: str
    suggestion: Callable[[TopSetEvidence], str]


def _promote_suggestion(e: TopSetEvidence) -> str:
    increase = "5-10%" if e.min_reps >= PROMOTE_THRESHOLD else "2.5-5%"
    return f"All sets hit {e.min_reps}+ reps. Increase by {increase} next session."


WISDOM_RULES: list[WisdomRule] = [
    WisdomRule(
        lambda e: e.min_reps >= e.target_reps,
        "promote", "Increase Weight", _promote_suggestion,
    ),
    WisdomRule(
        lambda e: e.max_reps < MIN_PRODUCTIVE_REPS,
        "demote", "Decrease Weight",
        lambda e: f"Max {e.max_reps} reps. Reduce by 5-10% to hit the 6-12 rep range.",
    ),
    WisdomRule(
        lambda e: len(e.reps) >= 2 and e.min_reps < e.target_reps - 3 and e.max_reps >= e.target_reps,
        "demote", "Inconsistent",
        lambda e: f"Reps varied {e.min_reps}-{e.max_reps}. Lower the weight or rest longer for consistency.",
    ),
]


def _field(record: Any, name: str, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def analyze_progression(
    sets: Sequence[Any],
    target_reps: int = DEFAULT_TARGET_REPS,
) -> ExerciseWisdom | None:
    """
    Session-level load verdict for one exercise, judged on its top-weight sets
    (those within 95% of the heaviest working set). Returns None when no rule fires.
    """
    working = [s for s in sets if not is_warmup_set(s)]
    if not working:
        return None

    weights = [float(_field(s, "weight_kg", 0.0) or 0.0) for s in working]
    max_weight = max(weights)
    top_reps = [
        int(_field(s, "reps", 0) or 0)
        for s, w in zip(working, weights)
        if w >= max_weight * TOP_WEIGHT_FRACTION
    ]
    evidence = TopSetEvidence(reps=top_reps, target_reps=target_reps)

    for rule in WISDOM_RULES:
        if rule.predicate(evidence):
            return ExerciseWisdom(type=rule.type, message=rule.message, suggestion=rule.suggestion(evidence))
    return None


def build_wisdom_table(sets_df: pd.DataFrame, target_reps: int = DEFAULT_TARGET_REPS) -> pd.DataFrame:
    """
    One verdict row per (exercise, session) that produced one; the rest are absent.
    """
    if sets_df is None or sets_df.empty:
        return pd.DataFrame(columns=WISDOM_COLUMNS)

    df = working_sets(sets_df)
    rows = []
    for (session_key, ex_name), g in df.groupby(["session_key", "exercise_name"], sort=True):
        wisdom = analyze_progression(g.to_dict("records"), target_reps)
        if wisdom is None:
            continue
        rows.append(
            {
                "exercise_name": ex_name,
                "session_key": session_key,
                "date_dt": g["date_dt"].iloc[0],
                "type": wisdom.type,
                "message": wisdom.message,
                "suggestion": wisdom.suggestion,
            }
        )

    if not rows:
        return pd.DataFrame(columns=WISDOM_COLUMNS)

    out = pd.DataFrame(rows)[WISDOM_COLUMNS]
    return out.sort_values(
        ["date_dt", "session_key", "exercise_name"], kind="mergesort", na_position="last"
    ).reset_index(drop=True)


# ---- session goal -------------------------------------------------------

GOAL_TOOLTIPS = {
    "Strength": "Average reps are low (5 or fewer). This zone prioritizes neural adaptation and max strength.",
    "Hypertrophy": "Average reps are moderate (6-15). This is the main zone for muscle growth.",
    "Endurance": "Average reps are high (over 15). This zone prioritizes muscular endurance.",
}


@dataclass(frozen=True)
class SessionAnalysis:
    goal_label: str
    avg_reps: int
    set_count: int
    tooltip: str = ""


def _goal_for(avg_reps: int) -> str:
    if avg_reps <= 5:
        return "Strength"
    if avg_reps <= 15:
        return "Hypertrophy"
    return "Endurance"


def analyze_session(sets: Sequence[Any]) -> SessionAnalysis:
    """
    Rep-range goal of a session. Counts every working set, whatever its weight.
    """
    working = [s for s in sets if not is_warmup_set(s)]
    if not working:
        return SessionAnalysis(goal_label="N/A", avg_reps=0, set_count=0)

    total_reps = sum(int(_field(s, "reps", 0) or 0) for s in working)
    avg_reps = int(round_half_up(total_reps / len(working)))
    label = _goal_for(avg_reps)
    return SessionAnalysis(goal_label=label, avg_reps=avg_reps, set_count=len(working), tooltip=GOAL_TOOLTIPS[label])


SESSION_GOAL_COLUMNS = ["session_key", "date_dt", "title", "goal_label", "avg_reps", "set_count"]


def build_session_goal_table(sets_df: pd.DataFrame) -> pd.DataFrame:
    """One goal row per session with at least one working set, oldest first."""
    if sets_df is None or sets_df.empty:
        return pd.DataFrame(columns=SESSION_GOAL_COLUMNS)

    df = working_sets(sets_df)
    rows = []
    for session_key, g in df.groupby("session_key", sort=True):
        analysis = analyze_session(g.to_dict("records"))
        rows.append(
            {
                "session_key": session_key,
                "date_dt": g["date_dt"].iloc[0],
                "title": g["title"].iloc[0],
                "goal_label": analysis.goal_label,
                "avg_reps": analysis.avg_reps,
                "set_count": analysis.set_count,
            }
        )

    if not rows:
        return pd.DataFrame(columns=SESSION_GOAL_COLUMNS)

    out = pd.DataFrame(rows)[SESSION_GOAL_COLUMNS]
    return out.sort_values(["date_dt", "session_key"], kind="mergesort", na_position="last").reset_index(drop=True)
