from datetime import datetime

import pytest

from data_model import WorkoutSet, sets_to_frame

# Wednesday; its Monday week starts 2026-10-19
NOW = datetime(2026, 10, 21, 12, 0)


def _quiet(msg: str) -> None:
    pass


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def session_sets():
    """Build the WorkoutSets of one exercise in one session from (weight, reps) pairs."""
    def _build(exercise, start, pairs, title="Workout", warmups=0, rpe=None):
        return [
            WorkoutSet(
                exercise_title=exercise,
                weight_kg=weight,
                reps=reps,
                start_time=start,
                title=title,
                set_type="warmup" if i < warmups else "normal",
                set_index=i,
                rpe=rpe,
            )
            for i, (weight, reps) in enumerate(pairs)
        ]
    return _build


@pytest.fixture
def make_frame():
    """Canonical sets frame from WorkoutSets or dicts; warnings are silenced unless ``warn`` is given."""
    def _make(records, warn=None):
        return sets_to_frame(records, warn=warn or _quiet)
    return _make


@pytest.fixture
def weekly_history(session_sets, make_frame):
    """One single-exercise session per given date, all at the same load."""
    def _history(exercise, dates, pairs, title="Workout"):
        records = []
        for d in dates:
            records.extend(session_sets(exercise, d, pairs, title=title))
        return make_frame(records)
    return _history
