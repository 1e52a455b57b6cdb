"""Lookback-window filtering and previous-period selection."""

from typing import Optional

import pandas as pd

from listening_stats.config import TIME_RANGES


def range_days(range_key: str) -> Optional[int]:
    """Number of days covered by a range token, or None for 'all'."""
    if range_key not in TIME_RANGES:
        valid = ", ".join(TIME_RANGES)
        raise ValueError(f"Unknown time range '{range_key}' (expected one of: {valid})")
    return TIME_RANGES[range_key]["days"]


def range_label(range_key: str) -> str:
    range_days(range_key)
    return TIME_RANGES[range_key]["label"]


def resolve_now(now=None) -> pd.Timestamp:
    """Normalise 'now' to a timezone-aware Timestamp (naive values are UTC)."""
    if now is None:
        return pd.Timestamp.now(tz="UTC")
    now = pd.Timestamp(now)
    if now.tzinfo is None:
        now = now.tz_localize("UTC")
    return now


def frame_timezone(df: pd.DataFrame):
    """Timezone the frame's calendar columns were derived in."""
    return df["played_at"].dt.tz or "UTC"


def local_today(df: pd.DataFrame, now=None):
    """Calendar date of 'now' in the frame's timezone."""
    return resolve_now(now).tz_convert(frame_timezone(df)).date()


def range_bounds(range_key: str, now=None) -> tuple[Optional[pd.Timestamp], pd.Timestamp]:
    """
    Bounds of the current window for a range token.

    Returns:
        (start, end) where start is None for 'all'. Both bounds are inclusive.
    """
    days = range_days(range_key)
    now = resolve_now(now)
    if days is None:
        return None, now
    return now - pd.Timedelta(days=days), now


def previous_bounds(range_key: str, now=None) -> Optional[tuple[pd.Timestamp, pd.Timestamp]]:
    """
    Bounds of the equal-length window just before the current one.

    Returns:
        (start, end) with start inclusive and end exclusive, or None for 'all'.
    """
    days = range_days(range_key)
    if days is None:
        return None
    now = resolve_now(now)
    end = now - pd.Timedelta(days=days)
    return end - pd.Timedelta(days=days), end


def filter_between(
    df: pd.DataFrame,
    start: Optional[pd.Timestamp],
    end: Optional[pd.Timestamp],
    include_end: bool = True,
) -> pd.DataFrame:
    """Plays with start <= played_at and played_at <= end (or < end)."""
    mask = pd.Series(True, index=df.index)
    if start is not None:
        mask &= df["played_at"] >= start
    if end is not None:
        mask &= (df["played_at"] <= end) if include_end else (df["played_at"] < end)
    return df[mask]


def filter_by_range(df: pd.DataFrame, range_key: str, now=None) -> pd.DataFrame:
    """
    Filter plays to the selected lookback window.

    Args:
        df: Listening history DataFrame.
        range_key: One of 7d, 1m, 3m, 6m, 1y, all.
        now: Reference time. Defaults to the current time.

    Returns:
        Plays in [now - days, now]; every play for 'all'.
    """
    if range_days(range_key) is None:
        return df
    start, end = range_bounds(range_key, now)
    return filter_between(df, start, end)


def previous_period(df: pd.DataFrame, range_key: str, now=None) -> Optional[pd.DataFrame]:
    """Plays in [now - 2*days, now - days), or None for 'all'."""
    bounds = previous_bounds(range_key, now)
    if bounds is None:
        return None
    start, end = bounds
    return filter_between(df, start, end, include_end=False)


def split_periods(
    df: pd.DataFrame, range_key: str, now=None
) -> tuple[pd.DataFrame, Optional[pd.DataFrame]]:
    """Current window and the previous window of equal length."""
    now = resolve_now(now)
    return filter_by_range(df, range_key, now), previous_period(df, range_key, now)
