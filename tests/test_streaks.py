from datetime import date, datetime, timedelta

import pytest

from analytics.streaks import ACTIVITY_COLUMNS, EMPTY_STREAK, calculate_streak_info, weekly_activity


def _monday(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, 18)


def _weeks_frame(session_sets, make_frame, mondays):
    records = []
    for d in mondays:
        records += session_sets("Squat", _monday(d), [(100, 5)])
    return make_frame(records)


THIS_WEEK = date(2026, 10, 19)


def _weeks_ago(*offsets):
    return [THIS_WEEK - timedelta(weeks=n) for n in offsets]


class TestCalculateStreakInfo:
    def test_empty(self, make_frame, now):
        assert calculate_streak_info(make_frame([]), now) == EMPTY_STREAK

    def test_streak_can_end_last_week(self, session_sets, make_frame, now):
        df = _weeks_frame(session_sets, make_frame, _weeks_ago(3, 2, 1))
        s = calculate_streak_info(df, now)
        assert s.current_streak == 3
        assert s.is_on_streak is True
        assert s.streak_type == "warm"
        assert s.workouts_this_week == 0

    def test_gap_breaks_streak(self, session_sets, make_frame, now):
        df = _weeks_frame(session_sets, make_frame, _weeks_ago(6, 5, 4, 3, 1, 0))
        s = calculate_streak_info(df, now)
        assert s.current_streak == 2
        assert s.longest_streak == 4
        assert s.workouts_this_week == 1
        assert s.total_weeks_tracked == 7
        assert s.weeks_with_workouts == 6
        assert s.consistency_score == 86
        assert s.avg_workouts_per_week == 0.9

    def test_hot_streak(self, session_sets, make_frame, now):
        df = _weeks_frame(session_sets, make_frame, _weeks_ago(4, 3, 2, 1, 0))
        s = calculate_streak_info(df, now)
        assert s.current_streak == 5
        assert s.streak_type == "hot"
        assert s.consistency_score == 100

    def test_lapsed(self, session_sets, make_frame, now):
        df = _weeks_frame(session_sets, make_frame, _weeks_ago(5, 4, 3))
        s = calculate_streak_info(df, now)
        assert s.current_streak == 0
        assert s.is_on_streak is False
        assert s.streak_type == "cold"
        assert s.longest_streak == 3

    def test_warmup_only_week_not_counted(self, session_sets, make_frame, now):
        records = session_sets("Squat", _monday(THIS_WEEK), [(60, 5)], warmups=1)
        assert calculate_streak_info(make_frame(records), now) == EMPTY_STREAK

    @pytest.mark.parametrize(
        "offsets",
        [(0,), (1,), (9, 8, 7, 6, 0), (2, 1, 0), (12, 11, 1)],
    )
    def test_current_never_exceeds_longest(self, session_sets, make_frame, now, offsets):
        df = _weeks_frame(session_sets, make_frame, _weeks_ago(*offsets))
        s = calculate_streak_info(df, now)
        assert s.current_streak <= s.longest_streak
        assert 0 <= s.consistency_score <= 100


class TestWeeklyActivity:
    def test_zero_filled_weeks(self, session_sets, make_frame, now):
        df = _weeks_frame(session_sets, make_frame, _weeks_ago(3, 0))
        out = weekly_activity(df, now)
        assert list(out.columns) == ACTIVITY_COLUMNS
        assert len(out) == 8
        assert out["week_start"].iloc[-1] == THIS_WEEK
        assert out["sessions"].tolist() == [0, 0, 0, 0, 1, 0, 0, 1]
        assert out["prs"].tolist() == [0, 0, 0, 0, 1, 0, 0, 0]
        assert out["volume"].iloc[-1] == 500.0

    def test_no_data(self, make_frame, now):
        out = weekly_activity(make_frame([]), now, weeks=4)
        assert len(out) == 4
        assert out["sessions"].sum() == 0


class TestPlainDateNow:
    def test_sessions_later_that_day_count(self, session_sets, make_frame):
        df = make_frame(session_sets("Squat", datetime(2026, 10, 21, 18), [(140, 5)]))
        s = calculate_streak_info(df, date(2026, 10, 21))
        assert s.workouts_this_week == 1
        assert s.current_streak == 1
        assert s.is_on_streak is True
