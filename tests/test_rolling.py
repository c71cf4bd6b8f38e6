from datetime import date, datetime

import pytest

from analytics.rolling import (
    calculate_delta,
    calculate_period_stats,
    rolling_comparisons,
    rolling_window_bounds,
    rolling_window_comparison,
)


@pytest.fixture
def two_weeks(session_sets, make_frame):
    """Two sessions in the previous 7-day window, two in the current one."""
    records = (
        session_sets("Bench Press", datetime(2026, 10, 9, 18), [(40, 10), (100, 5)], warmups=1)
        + session_sets("Bench Press", datetime(2026, 10, 12, 18), [(100, 5)])
        + session_sets("Bench Press", datetime(2026, 10, 16, 18), [(100, 6)])
        + session_sets("Bench Press", datetime(2026, 10, 20, 18), [(100, 6)])
    )
    return make_frame(records)


class TestWindowBounds:
    def test_contiguous_windows(self, now):
        current_start, current_end, previous_start, previous_end = rolling_window_bounds(now, 7)
        assert current_start == datetime(2026, 10, 15)
        assert current_end == now
        assert previous_start == datetime(2026, 10, 8)
        assert previous_end == current_start

    @pytest.mark.parametrize("window_days", [0, -7])
    def test_non_positive_window_rejected(self, now, window_days):
        with pytest.raises(ValueError):
            rolling_window_bounds(now, window_days)
        with pytest.raises(ValueError):
            rolling_window_comparison(None, window_days, now)


class TestPeriodStats:
    def test_totals(self, two_weeks):
        stats = calculate_period_stats(two_weeks, datetime(2026, 10, 8), datetime(2026, 10, 15))
        assert stats.total_workouts == 2
        assert stats.total_sets == 2
        assert stats.total_volume == 1000.0
        assert stats.total_prs == 1
        assert stats.avg_sets_per_workout == 1
        assert stats.avg_volume_per_workout == 500

    def test_end_is_exclusive(self, two_weeks):
        stats = calculate_period_stats(two_weeks, datetime(2026, 10, 8), datetime(2026, 10, 12, 18))
        assert stats.total_workouts == 1

    def test_empty_period(self, two_weeks):
        stats = calculate_period_stats(two_weeks, datetime(2026, 1, 1), datetime(2026, 2, 1))
        assert (stats.total_workouts, stats.avg_sets_per_workout, stats.avg_volume_per_workout) == (0, 0, 0)


class TestCalculateDelta:
    def test_up(self):
        d = calculate_delta(1200, 1000)
        assert (d.delta, d.delta_percent, d.direction) == (200, 20, "up")

    def test_from_zero(self):
        d = calculate_delta(5, 0)
        assert (d.delta_percent, d.direction) == (100, "up")

    def test_both_zero(self):
        d = calculate_delta(0, 0)
        assert (d.delta, d.delta_percent, d.direction) == (0, 0, "same")


class TestRollingWindowComparison:
    def test_eligible_weekly_comparison(self, two_weeks, now):
        cmp = rolling_window_comparison(two_weeks, 7, now)
        assert cmp.eligible is True
        assert cmp.current.total_workouts == 2
        assert cmp.previous.total_workouts == 2
        assert (cmp.volume.current, cmp.volume.previous) == (1200.0, 1000.0)
        assert (cmp.volume.delta_percent, cmp.volume.direction) == (20, "up")
        assert cmp.workouts.direction == "same"
        assert (cmp.prs.delta, cmp.prs.delta_percent, cmp.prs.direction) == (-1, -100, "down")
        assert cmp.previous_end == cmp.current_start

    def test_no_workouts_in_either_window(self, session_sets, make_frame, now):
        df = make_frame(session_sets("Squat", datetime(2026, 6, 1, 18), [(140, 5)]))
        cmp = rolling_window_comparison(df, 7, now)
        assert cmp.eligible is False
        assert (cmp.volume, cmp.sets, cmp.workouts, cmp.prs) == (None, None, None, None)

    def test_below_minimum_workouts(self, two_weeks, now):
        cmp = rolling_window_comparison(two_weeks, 7, now, min_workouts_required=3)
        assert cmp.eligible is False
        assert cmp.volume is None

    def test_default_windows(self, two_weeks, now):
        comparisons = rolling_comparisons(two_weeks, now)
        assert sorted(comparisons) == [7, 28]
        assert comparisons[7].eligible is True
        assert comparisons[28].eligible is False

    def test_plain_date_covers_the_whole_day(self, session_sets, make_frame):
        df = make_frame(session_sets("Squat", datetime(2026, 10, 21, 18), [(140, 5)]))
        cmp = rolling_window_comparison(df, 7, date(2026, 10, 21))
        assert cmp.current.total_sets == 1
        assert cmp.current_end == datetime(2026, 10, 21, 23, 59, 59, 999999)
        assert cmp.current_start == datetime(2026, 10, 15)
