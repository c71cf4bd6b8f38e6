import pandas as pd
from datetime import date, datetime, timedelta


def to_timestamp(value) -> pd.Timestamp:
    """Coerce a date/datetime/string into a naive pandas Timestamp (wall-clock time)."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts


def start_of_day(value) -> pd.Timestamp:
    return to_timestamp(value).normalize()


def week_start(value) -> date:
    """Monday of the ISO week containing ``value``."""
    d = to_timestamp(value).date()
    return d - timedelta(days=d.weekday())


def week_starts(dates: pd.Series) -> pd.Series:
    """Vectorised ``week_start`` over a datetime64 series (NaT stays NaT)."""
    # W-SUN periods run Monday..Sunday
    return dates.dt.to_period("W-SUN").dt.start_time


def calendar_weeks_between(later, earlier) -> int:
    """Number of Monday-week boundaries crossed going from ``earlier`` to ``later``."""
    return (week_start(later) - week_start(earlier)).days // 7


def days_between(later, earlier) -> int:
    """Whole days elapsed, truncated toward zero."""
    delta = to_timestamp(later) - to_timestamp(earlier)
    days = delta / timedelta(days=1)
    return int(days) if days >= 0 else -int(-days)


def resolve_now(now: datetime | date | None) -> pd.Timestamp:
    """
    Reference instant for time-based insights. A plain ``date`` means the
    end of that day, so sessions logged later that day are included.
    """
    if now is None:
        return pd.Timestamp(datetime.now())
    if isinstance(now, date) and not isinstance(now, datetime):
        return pd.Timestamp(now) + pd.Timedelta(days=1) - pd.Timedelta(microseconds=1)
    return to_timestamp(now)
