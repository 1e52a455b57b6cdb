"""Tests for hour, weekday and calendar breakdowns."""

import pandas as pd
import pytest

from listening_stats.temporal import (
    artist_trends,
    format_ago,
    format_hour,
    format_slot,
    listening_heatmap,
    plays_by_hour,
    plays_by_weekday,
    recent_plays,
    rhythm_heatmap,
    time_of_day_distribution,
    time_of_day_period,
    weekday_weekend_comparison,
    year_in_music,
)

SAMPLE = [
    ("2024-06-03T09:40:00Z", "A", "One"),    # Monday
    ("2024-06-03T09:45:00Z", "A", "Two"),
    ("2024-06-10T09:35:00Z", "B", "One"),    # Monday
    ("2024-06-05T14:00:00Z", "A", "Three"),  # Wednesday
    ("2024-06-08T23:30:00Z", "C", "Four"),   # Saturday
    ("2024-06-09T07:00:00Z", "C", "Five"),   # Sunday
]


def test_format_hour():
    assert [format_hour(h) for h in (0, 9, 12, 15)] == ["12AM", "9AM", "12PM", "3PM"]
    assert format_hour(None) == "N/A"


def test_format_slot():
    assert format_slot(0) == "12:00 AM"
    assert format_slot(19) == "9:30 AM"
    assert format_slot(25) == "12:30 PM"
    assert format_slot(47) == "11:30 PM"


def test_time_of_day_period():
    """Night wraps across midnight."""
    assert time_of_day_period(5) == "Night"
    assert time_of_day_period(6) == "Morning"
    assert time_of_day_period(12) == "Afternoon"
    assert time_of_day_period(18) == "Evening"
    assert time_of_day_period(22) == "Night"


def test_weekday_and_hour_totals(make_history):
    """Every play lands in exactly one weekday and one hour."""
    df = make_history(SAMPLE)

    by_day = plays_by_weekday(df)
    by_hour = plays_by_hour(df)

    assert by_day["day_of_week"].tolist()[0] == "Monday"
    assert len(by_day) == 7
    assert by_day["plays"].sum() == len(df)
    assert by_day["plays"].tolist() == [3, 0, 1, 0, 0, 1, 1]
    assert len(by_hour) == 24
    assert by_hour["plays"].sum() == len(df)
    assert by_hour.loc[9, "plays"] == 3


def test_listening_heatmap(make_history):
    grid = listening_heatmap(make_history(SAMPLE))

    assert grid.shape == (7, 24)
    assert grid.loc["Monday", 9] == 3
    assert grid.to_numpy().sum() == len(SAMPLE)


def test_rhythm_heatmap(make_history):
    """Cell averages divide plays by the number of dates behind them."""
    rhythm = rhythm_heatmap(make_history(SAMPLE))

    assert rhythm["counts"].loc["Monday", 19] == 3
    assert rhythm["occurrences"].loc["Monday", 19] == 2
    assert rhythm["average"].loc["Monday", 19] == pytest.approx(1.5)
    assert rhythm["peak"]["label"] == "Mon 9:30 AM"
    assert rhythm["total_days"] == 5


def test_rhythm_heatmap_empty(make_history):
    rhythm = rhythm_heatmap(make_history([]))

    assert rhythm["peak"] is None
    assert rhythm["max_value"] == 1
    assert rhythm["counts"].to_numpy().sum() == 0


def test_time_of_day_distribution(make_history):
    current = make_history(SAMPLE)
    previous = make_history([("2024-05-03T09:00:00Z", "A", "One")])

    periods = time_of_day_distribution(current, previous).set_index("period")

    assert periods.loc["Morning", "plays"] == 4
    assert periods.loc["Night", "plays"] == 1
    assert periods.loc["Morning", "share"] == pytest.approx(66.7)
    assert periods.loc["Morning", "percent_change"] == 300
    assert periods.loc["Night", "percent_change"] == 100
    assert periods.loc["Evening", "percent_change"] == 0


def test_weekday_weekend_comparison(make_history):
    split = weekday_weekend_comparison(make_history(SAMPLE))

    assert split["weekday"]["plays"] == 4
    assert split["weekend"]["plays"] == 2
    assert split["weekday"]["avg_per_day"] == 0.8
    assert split["weekend"]["avg_per_day"] == 1.0
    assert split["difference"] == 25
    assert split["weekday"]["peak_time"] == "9AM"
    assert split["weekend"]["top_artists"][0]["artist_name"] == "C"
    assert len(split["radar"]) == 8


def test_year_in_music(make_history):
    df = make_history(SAMPLE + [("2023-12-31T10:00:00Z", "Z", "Old")])

    result = year_in_music(df)

    assert result["available_years"] == [2024, 2023]
    assert result["year"] == 2024
    assert [m["month_name"] for m in result["months"]] == ["June"]
    assert result["months"][0]["top_artists"][0]["artist_name"] == "A"
    assert year_in_music(df, 2023)["months"][0]["total_plays"] == 1


def test_artist_trends(make_history, now):
    """Weekly counts run oldest to newest, with a moving average."""
    df = make_history([
        (now - pd.Timedelta(days=1), "A", "One"),
        (now - pd.Timedelta(days=2), "A", "Two"),
        (now - pd.Timedelta(days=25), "A", "One"),
        (now - pd.Timedelta(days=3), "B", "Three"),
    ])

    trends = artist_trends(df, "1m", top_n=2, now=now)
    plays = trends["plays"]
    sma = trends["sma"][4]

    assert trends["top_artists"] == ["A", "B"]
    assert trends["weeks"] == ["W1", "W2", "W3", "W4"]
    assert plays.index.tolist() == trends["weeks"]
    assert plays["A"].tolist() == [1, 0, 0, 2]
    assert plays["B"].tolist() == [0, 0, 0, 1]
    assert sma["A"].iloc[-1] == pytest.approx(0.75)
    assert sma["A"].iloc[:3].isna().all()


def test_artist_trends_with_colliding_names(make_history, now):
    """Artists named like week labels or averages keep their own counts."""
    df = make_history([
        (now - pd.Timedelta(days=1), "week", "x"),
        (now - pd.Timedelta(days=1), "A_SMA4", "y"),
        (now - pd.Timedelta(days=1, hours=1), "A_SMA4", "y"),
        (now - pd.Timedelta(days=2), "A", "z"),
    ])

    trends = artist_trends(df, "1m", now=now)
    plays = trends["plays"]

    assert trends["top_artists"] == ["A_SMA4", "A", "week"]
    assert plays.columns.tolist() == ["A_SMA4", "A", "week"]
    assert plays["week"].tolist() == [0, 0, 0, 1]
    assert plays["A_SMA4"].tolist() == [0, 0, 0, 2]
    assert trends["sma"][4]["A_SMA4"].iloc[-1] == pytest.approx(0.5)


def test_format_ago(now):
    assert format_ago(now - pd.Timedelta(seconds=30), now) == "Just now"
    assert format_ago(now - pd.Timedelta(minutes=5), now) == "5m ago"
    assert format_ago(now - pd.Timedelta(hours=3), now) == "3h ago"
    assert format_ago(now - pd.Timedelta(days=2), now) == "2d ago"


def test_recent_plays(make_history, now):
    df = make_history([
        (now - pd.Timedelta(days=1), "B", "Yesterday"),
        (now - pd.Timedelta(hours=3), "A", "Again"),
        (now - pd.Timedelta(minutes=5), "A", "Again"),
    ])

    recent = recent_plays(df, now=now)

    assert recent["track_name"].tolist() == ["Again", "Again", "Yesterday"]
    assert recent["ago"].tolist() == ["5m ago", "3h ago", "1d ago"]
    assert recent["plays_today"].tolist() == [2, 2, 0]
    assert recent["artist_share_today"].tolist() == [100, 100, 0]
