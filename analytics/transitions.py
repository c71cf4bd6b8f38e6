from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, NamedTuple, Sequence

import pandas as pd

from .expected_reps import ExpectedRepsRange, SetMetrics, build_expected_reps_range
from .set_classification import is_warmup_set, working_sets
from .strength import percent_change, round_half_up

SAME_WEIGHT_TOLERANCE_PCT = 1.0
DROP_THRESHOLD_MILD = 15.0      # up to 15% fewer reps is normal fatigue
DROP_THRESHOLD_MODERATE = 25.0  # 15-25% is high fatigue, beyond is a significant drop
FATIGUE_BUFFER = 1.5            # reps allowed below the expected center

TRANSITION_COLUMNS = [
    "exercise_name",
    "session_key",
    "date_dt",
    "transition_index",
    "transition",
    "status",
    "title",
    "weight_change_pct",
    "volume_change_pct",
    "rep_change_pct",
    "actual_reps",
    "expected_reps",
    "short_message",
    "why",
    "improve",
    "direction",
]


@dataclass(frozen=True)
class TransitionResult:
    transition: str
    transition_index: int
    status: str  # success / info / warning / danger
    title: str
    weight_change_pct: float
    volume_change_pct: float
    rep_change_pct: float
    actual_reps: int
    expected_reps: str
    short_message: str
    why: list[str] = field(default_factory=list)
    improve: list[str] = field(default_factory=list)
    direction: str = "same"


@dataclass(frozen=True)
class TransitionContext:
    transition_index: int
    prev: SetMetrics
    curr: SetMetrics
    weight_change_pct: float
    rep_change_pct: float
    volume_change_pct: float
    expected: ExpectedRepsRange | None = None

    @property
    def rep_diff(self) -> int:
        return self.curr.reps - self.prev.reps

    @property
    def rep_drop_pct(self) -> float:
        return abs(self.rep_change_pct)

    @property
    def is_first_transition(self) -> bool:
        return self.transition_index == 1

    @property
    def expected_target(self) -> int:
        return int(round_half_up(self.expected.center))


class Rule(NamedTuple):
    predicate: Callable[[TransitionContext], bool]
    status: str
    title: str
    explain: Callable[[TransitionContext], tuple[list[str], list[str]]]


def _always(ctx: TransitionContext) -> bool:
    return True


def _high_fatigue_why(ctx: TransitionContext) -> tuple[list[str], list[str]]:
    if ctx.is_first_transition:
        why = ["First set pushed close to failure"]
    else:
        why = ["Previous set was near failure", "Or rest was shorter than usual"]
    return why, ["Normal if training to failure", "For more volume: rest 2-3 min"]


def _significant_drop_why(ctx: TransitionContext) -> tuple[list[str], list[str]]:
    if ctx.is_first_transition:
        why = ["First set was taken to failure", "Limits performance on remaining sets"]
    else:
        why = ["Accumulated fatigue from earlier sets", "Or rest time too short"]
    return why, ["If intentional: good intensity", "For more volume: leave 1-2 reps in reserve"]


SAME_WEIGHT_RULES: list[Rule] = [
    Rule(
        lambda c: c.rep_diff > 0, "success", "Second Wind",
        lambda c: (["Had reserves in the previous set", "Or took longer rest this time"], []),
    ),
    Rule(
        lambda c: c.rep_diff == 0, "success", "Consistent",
        lambda c: (["Good pacing and recovery", "Rest time is working well"], []),
    ),
    Rule(
        lambda c: c.rep_drop_pct <= DROP_THRESHOLD_MILD, "info", "Normal Fatigue",
        lambda c: (["Normal fatigue between sets", "Muscles recovering as expected"], []),
    ),
    Rule(
        lambda c: c.rep_drop_pct <= DROP_THRESHOLD_MODERATE, "warning", "High Fatigue",
        _high_fatigue_why,
    ),
    Rule(_always, "danger", "Significant Drop", _significant_drop_why),
]

WEIGHT_INCREASE_RULES: list[Rule] = [
    Rule(
        lambda c: c.curr.reps > c.expected.max, "success", "Strong Progress",
        lambda c: ([f"Got {c.curr.reps} reps (expected {c.expected.label})", "Strength gains showing"], []),
    ),
    Rule(
        lambda c: (
            c.expected.min <= c.curr.reps <= c.expected.max
            or c.curr.reps >= c.expected.center - FATIGUE_BUFFER
        ),
        "success", "Good Progress",
        lambda c: ([f"Hit {c.curr.reps} reps as expected", "Progress achieved"], []),
    ),
    Rule(
        lambda c: c.curr.reps >= c.expected_target - 3, "warning", "Slightly Ambitious",
        lambda c: (
            [f"Got {c.curr.reps} reps (expected {c.expected.label})", "Weight jump may be slightly aggressive"],
            ["Keep working at this weight", "Strength adapts over time"],
        ),
    ),
    Rule(
        _always, "danger", "Premature Jump",
        lambda c: (
            [f"Only {c.curr.reps} reps (expected {c.expected.label})", "Weight increase too aggressive"],
            ["Build more reps at the previous weight first", "Try smaller 2.5-5% jumps"],
        ),
    ),
]

WEIGHT_DECREASE_RULES: list[Rule] = [
    Rule(
        lambda c: c.curr.reps >= c.expected.min, "success", "Effective Backoff",
        lambda c: (["Smart backoff for volume", "Reduced neural fatigue while maintaining work"], []),
    ),
    Rule(
        lambda c: c.curr.reps >= c.expected_target - 3, "info", "Fatigued Backoff",
        lambda c: ([f"Got {c.curr.reps} reps (expected {c.expected.label})", "Accumulated fatigue from earlier sets"], []),
    ),
    Rule(
        _always, "warning", "Heavy Fatigue",
        lambda c: (
            [f"Only {c.curr.reps} reps (expected {c.expected.label})", "High accumulated fatigue"],
            ["Good if training to failure intentionally", "Otherwise: end the exercise or rest longer"],
        ),
    ),
]


def first_matching_rule(rules: Sequence[Rule], ctx: TransitionContext) -> Rule:
    for rule in rules:
        if rule.predicate(ctx):
            return rule
    raise LookupError("rule table has no catch-all entry")


def _short_message(ctx: TransitionContext, same_weight: bool) -> tuple[str, str]:
    if same_weight:
        if ctx.rep_diff > 0:
            return f"+{ctx.rep_diff} reps vs previous", "up"
        if ctx.rep_diff == 0:
            return f"Maintained {ctx.curr.reps} reps", "same"
        pct = int(round_half_up(ctx.rep_drop_pct))
        return f"-{abs(ctx.rep_diff)} reps ({pct}%)", "down"
    pct = int(round_half_up(ctx.weight_change_pct))
    sign = "+" if pct > 0 else ""
    direction = "up" if ctx.weight_change_pct > 0 else "down"
    return f"{sign}{pct}% weight, {ctx.curr.reps} reps", direction


def classify_transition(
    prior: Sequence[SetMetrics],
    curr: SetMetrics,
    transition_index: int,
) -> TransitionResult:
    """
    Classify the step from the last prior working set to ``curr``.

    ``prior`` holds every earlier working set of the exercise in this session,
    never ``curr`` itself.
    """
    prev = prior[-1]
    weight_change_pct = percent_change(prev.weight, curr.weight)
    ctx = TransitionContext(
        transition_index=transition_index,
        prev=prev,
        curr=curr,
        weight_change_pct=weight_change_pct,
        rep_change_pct=percent_change(prev.reps, curr.reps),
        volume_change_pct=percent_change(prev.volume, curr.volume),
    )

    same_weight = abs(weight_change_pct) < SAME_WEIGHT_TOLERANCE_PCT
    if same_weight:
        rules = SAME_WEIGHT_RULES
        expected_label = str(prev.reps)
    else:
        # set_number is the 1-indexed position of curr in the session
        expected = build_expected_reps_range(prior, curr.weight, transition_index + 1)
        ctx = replace(ctx, expected=expected)
        rules = WEIGHT_INCREASE_RULES if weight_change_pct > 0 else WEIGHT_DECREASE_RULES
        expected_label = expected.label

    rule = first_matching_rule(rules, ctx)
    why, improve = rule.explain(ctx)
    short_message, direction = _short_message(ctx, same_weight)

    return TransitionResult(
        transition=f"Set {transition_index} -> {transition_index + 1}",
        transition_index=transition_index,
        status=rule.status,
        title=rule.title,
        weight_change_pct=weight_change_pct,
        volume_change_pct=ctx.volume_change_pct,
        rep_change_pct=ctx.rep_change_pct,
        actual_reps=curr.reps,
        expected_reps=expected_label,
        short_message=short_message,
        why=why,
        improve=improve,
        direction=direction,
    )


def _metrics_of(record: Any) -> SetMetrics:
    get = record.get if isinstance(record, dict) else lambda k, d=None: getattr(record, k, d)
    return SetMetrics.from_set(get("weight_kg", 0.0), get("reps", 0), get("rpe"))


def analyze_set_progression(sets: Sequence[Any]) -> list[TransitionResult]:
    """
    Classify every working-set to working-set step of one exercise in one session.

    ``sets`` must already be in session order; warmups are skipped.
    """
    working = [s for s in sets if not is_warmup_set(s)]
    if len(working) < 2:
        return []

    prior = [_metrics_of(working[0])]
    results = []
    for i, record in enumerate(working[1:], start=1):
        curr = _metrics_of(record)
        results.append(classify_transition(prior, curr, i))
        prior = prior + [curr]
    return results


def build_transition_table(sets_df: pd.DataFrame) -> pd.DataFrame:
    """
    Run the transition analysis for every (session, exercise) pair.

    Expects the canonical sets frame (see utils.set_schema). Sets without a
    timestamp still take part: sessions are grouped by ``session_key``.
    """
    if sets_df is None or sets_df.empty:
        return pd.DataFrame(columns=TRANSITION_COLUMNS)

    df = working_sets(sets_df)
    df = df.sort_values(["session_key", "exercise_name", "set_index"], kind="mergesort")

    rows = []
    for (session_key, ex_name), g in df.groupby(["session_key", "exercise_name"], sort=True):
        if len(g) < 2:
            continue
        records = g.to_dict("records")
        for result in analyze_set_progression(records):
            rows.append(
                {
                    "exercise_name": ex_name,
                    "session_key": session_key,
                    "date_dt": g["date_dt"].iloc[0],
                    **asdict(result),
                }
            )

    if not rows:
        return pd.DataFrame(columns=TRANSITION_COLUMNS)

    out = pd.DataFrame(rows)[TRANSITION_COLUMNS]
    return out.sort_values(
        ["date_dt", "session_key", "exercise_name", "transition_index"],
        kind="mergesort",
        na_position="last",
    ).reset_index(drop=True)
