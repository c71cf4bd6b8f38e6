from datetime import datetime

import pytest

from analytics.transitions import (
    TRANSITION_COLUMNS,
    SAME_WEIGHT_RULES,
    analyze_set_progression,
    build_transition_table,
    first_matching_rule,
)


def _sets(*pairs, warmups=0):
    return [
        {"weight_kg": w, "reps": r, "set_type": "warmup" if i < warmups else "normal", "rpe": None}
        for i, (w, r) in enumerate(pairs)
    ]


def _single(*pairs):
    results = analyze_set_progression(_sets(*pairs))
    assert len(results) == 1
    return results[0]


class TestHeavierSet:
    def test_good_progress(self):
        """100x8 then 110x6: within the projected 3-6 range."""
        r = _single((100, 8), (110, 6))
        assert (r.status, r.title) == ("success", "Good Progress")
        assert r.weight_change_pct == 10.0
        assert r.expected_reps == "3-6"
        assert r.transition == "Set 1 -> 2"
        assert r.short_message == "+10% weight, 6 reps"
        assert r.direction == "up"

    def test_strong_progress(self):
        r = _single((100, 8), (105, 8))
        assert (r.status, r.title) == ("success", "Strong Progress")

    def test_slightly_ambitious(self):
        r = _single((100, 12), (105, 7))
        assert (r.status, r.title) == ("warning", "Slightly Ambitious")
        assert r.improve

    def test_premature_jump(self):
        r = _single((100, 12), (105, 5))
        assert (r.status, r.title) == ("danger", "Premature Jump")
        assert r.why[0] == "Only 5 reps (expected 8-11)"


class TestLighterSet:
    @pytest.mark.parametrize(
        "reps,status,title",
        [
            (16, "success", "Effective Backoff"),
            (14, "info", "Fatigued Backoff"),
            (10, "warning", "Heavy Fatigue"),
        ],
    )
    def test_backoff_tiers(self, reps, status, title):
        r = _single((100, 8), (80, reps))
        assert (r.status, r.title) == (status, title)
        assert r.expected_reps == "16-19"
        assert r.direction == "down"
        assert r.short_message == f"-20% weight, {reps} reps"


class TestSameWeight:
    def test_consistent(self):
        r = _single((60, 10), (60, 10))
        assert (r.status, r.title) == ("success", "Consistent")
        assert r.short_message == "Maintained 10 reps"
        assert r.expected_reps == "10"
        assert r.direction == "same"

    def test_second_wind(self):
        r = _single((60, 8), (60, 10))
        assert (r.status, r.title) == ("success", "Second Wind")
        assert r.short_message == "+2 reps vs previous"

    def test_normal_fatigue(self):
        r = _single((60, 10), (60, 9))
        assert (r.status, r.title) == ("info", "Normal Fatigue")
        assert r.short_message == "-1 reps (10%)"

    def test_high_fatigue(self):
        r = _single((60, 10), (60, 8))
        assert (r.status, r.title) == ("warning", "High Fatigue")

    def test_significant_drop(self):
        r = _single((80, 10), (80, 5))
        assert (r.status, r.title) == ("danger", "Significant Drop")
        assert r.rep_change_pct == -50.0
        assert r.why[0] == "First set was taken to failure"

    def test_later_drop_blames_accumulated_fatigue(self):
        results = analyze_set_progression(_sets((80, 10), (80, 10), (80, 5)))
        assert [r.title for r in results] == ["Consistent", "Significant Drop"]
        assert results[1].transition == "Set 2 -> 3"
        assert results[1].why[0] == "Accumulated fatigue from earlier sets"

    @pytest.mark.parametrize(
        "prev_reps,reps,rep_change,status,title",
        [
            (20, 17, -15.0, "info", "Normal Fatigue"),
            (20, 15, -25.0, "warning", "High Fatigue"),
            (100, 74, -26.0, "danger", "Significant Drop"),
        ],
    )
    def test_drop_thresholds_are_inclusive(self, prev_reps, reps, rep_change, status, title):
        r = _single((60, prev_reps), (60, reps))
        assert r.rep_change_pct == rep_change
        assert (r.status, r.title) == (status, title)

    def test_later_high_fatigue_blames_previous_set(self):
        results = analyze_set_progression(_sets((60, 10), (60, 10), (60, 8)))
        assert [r.title for r in results] == ["Consistent", "High Fatigue"]
        assert results[1].why == ["Previous set was near failure", "Or rest was shorter than usual"]
        assert results[0].why != results[1].why

    def test_first_high_fatigue_blames_first_set(self):
        r = _single((60, 10), (60, 8))
        assert r.why == ["First set pushed close to failure"]

    def test_sub_one_percent_change_counts_as_same(self):
        r = _single((100, 8), (100.5, 8))
        assert r.title == "Consistent"


class TestAnalyzeSetProgression:
    def test_warmups_skipped(self):
        results = analyze_set_progression(_sets((40, 10), (100, 8), (110, 6), warmups=1))
        assert len(results) == 1
        assert results[0].title == "Good Progress"

    def test_fewer_than_two_working_sets(self):
        assert analyze_set_progression(_sets((100, 8))) == []
        assert analyze_set_progression(_sets((40, 10), (100, 8), warmups=1)) == []

    def test_rule_table_needs_a_match(self):
        with pytest.raises(LookupError):
            first_matching_rule([], None)

    def test_rule_tables_end_with_catch_all(self):
        assert SAME_WEIGHT_RULES[-1].predicate(None) is True


class TestBuildTransitionTable:
    def test_one_row_per_transition(self, session_sets, make_frame):
        records = (
            session_sets("Bench Press", datetime(2026, 10, 12, 18), [(100, 8), (110, 6)])
            + session_sets("Bench Press", datetime(2026, 10, 19, 18), [(60, 10), (60, 10), (60, 5)])
            + session_sets("Squat", datetime(2026, 10, 19, 18), [(140, 5)])
        )
        table = build_transition_table(make_frame(records))
        assert list(table.columns) == TRANSITION_COLUMNS
        assert table["title"].tolist() == ["Good Progress", "Consistent", "Significant Drop"]
        assert table["transition_index"].tolist() == [1, 1, 2]

    def test_undated_sessions_still_analyzed(self, session_sets, make_frame):
        records = session_sets("Row", None, [(60, 10), (60, 10)], title="Pull")
        table = build_transition_table(make_frame(records))
        assert table["title"].tolist() == ["Consistent"]

    def test_empty(self, make_frame):
        assert build_transition_table(make_frame([])).empty

