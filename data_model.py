from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping

import pandas as pd

from utils.set_processing import normalize_sets


@dataclass(frozen=True)
class WorkoutSet:
    """One logged set, as produced by an importer."""

    exercise_title: str
    weight_kg: float
    reps: int
    start_time: datetime | str | None
    title: str = ""
    set_type: str = ""
    set_index: int = 0
    rpe: float | None = None


def sets_to_frame(
    records: Iterable[WorkoutSet | Mapping[str, Any]],
    warn: Callable[[str], None] | None = None,
) -> pd.DataFrame:
    """
    Build the canonical sets DataFrame from WorkoutSet records or plain mappings.
    """
    rows = [asdict(r) if is_dataclass(r) else dict(r) for r in records]
    return normalize_sets(pd.DataFrame(rows), warn=warn)
