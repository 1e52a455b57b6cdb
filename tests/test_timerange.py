"""Tests for lookback windows and previous periods."""

import pandas as pd
import pytest

from listening_stats.timerange import (
    filter_by_range,
    previous_period,
    range_days,
    range_label,
    resolve_now,
    split_periods,
)


def test_range_days():
    """Range tokens map to their day counts."""
    assert [range_days(k) for k in ("7d", "1m", "3m", "6m", "1y")] == [7, 30, 90, 180, 365]
    assert range_days("all") is None
    assert range_label("1m") == "Last Month"


def test_unknown_range():
    """Unknown tokens are rejected."""
    with pytest.raises(ValueError):
        range_days("2w")
    with pytest.raises(ValueError):
        filter_by_range(pd.DataFrame(), "2w")


def test_resolve_now_naive_is_utc():
    """Naive reference times are taken as UTC."""
    assert resolve_now("2024-06-15 12:00") == pd.Timestamp("2024-06-15T12:00:00Z")


def test_window_bounds_inclusive(make_history, now):
    """The current window includes both now - days and now."""
    df = make_history([
        (now - pd.Timedelta(days=7, seconds=1), "A", "Too Old"),
        (now - pd.Timedelta(days=7), "A", "Start"),
        (now, "A", "End"),
        (now + pd.Timedelta(seconds=1), "A", "Future"),
    ])

    current = filter_by_range(df, "7d", now)

    assert current["track_name"].tolist() == ["Start", "End"]


def test_all_returns_everything(make_history, now):
    df = make_history([
        (now - pd.Timedelta(days=900), "A", "Old"),
        (now - pd.Timedelta(days=1), "A", "New"),
    ])

    assert len(filter_by_range(df, "all", now)) == 2
    assert previous_period(df, "all", now) is None


def test_previous_period_half_open(make_history, now):
    """The previous window is [now - 2*days, now - days)."""
    df = make_history([
        (now - pd.Timedelta(days=14, seconds=1), "A", "Before"),
        (now - pd.Timedelta(days=14), "A", "Previous Start"),
        (now - pd.Timedelta(days=10), "A", "Previous"),
        (now - pd.Timedelta(days=7), "A", "Current Start"),
    ])

    current, previous = split_periods(df, "7d", now)

    assert previous["track_name"].tolist() == ["Previous Start", "Previous"]
    assert current["track_name"].tolist() == ["Current Start"]


def test_filtered_plays_within_bounds(make_history, now):
    df = make_history([(now - pd.Timedelta(days=d, hours=3), "A", f"Song {d}") for d in range(0, 400, 7)])

    for range_key in ("7d", "1m", "3m", "6m", "1y", "all"):
        current = filter_by_range(df, range_key, now)
        days = range_days(range_key)

        assert len(current) <= len(df)
        assert (current["played_at"] <= now).all()
        if days is not None:
            assert (current["played_at"] >= now - pd.Timedelta(days=days)).all()
