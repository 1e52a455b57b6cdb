"""Tests for consistency, variance, streaks and velocity."""

import datetime
import math

import pandas as pd
import pytest

from listening_stats.summaries import (
    consistency_variance,
    current_streak,
    daily_details,
    describe_counts,
    generate_summary_stats,
    listening_personality,
    listening_velocity,
    longest_streak,
)


def _plays_on(days, per_day=1, month="2024-06"):
    return [(f"{month}-{day:02d}T{10 + i:02d}:00:00Z", "A", f"Song {i}") for day in days for i in range(per_day)]


def test_describe_counts():
    stats = describe_counts([1, 2, 3, 4])

    assert stats["mean"] == 2.5
    assert stats["median"] == 3
    assert stats["variance"] == 1.25
    assert stats["std_dev"] == pytest.approx(math.sqrt(1.25))
    assert stats["coefficient_of_variation"] == pytest.approx(math.sqrt(1.25) / 2.5 * 100)
    assert (stats["min"], stats["max"]) == (1, 4)


def test_describe_counts_empty():
    stats = describe_counts([])

    assert stats["count"] == 0
    assert stats["mean"] is None
    assert stats["coefficient_of_variation"] is None


def test_consistency_half_of_days(make_history, now):
    """Five active days over a ten-day span is 50% consistency."""
    df = make_history(_plays_on([1, 3, 5, 7, 10]))

    stats = consistency_variance(df, now)

    assert stats["consistency"] == 50.0
    assert stats["active_days"] == 5
    assert stats["total_days"] == 10


def test_consistency_every_day(make_history, now):
    df = make_history(_plays_on(range(1, 8), per_day=2))

    stats = consistency_variance(df, now)

    assert stats["consistency"] == 100.0
    assert stats["variance"] == 0.0
    assert stats["avg_plays_per_day"] == 2.0


def test_consistency_empty(make_history, now):
    stats = consistency_variance(make_history([]), now)

    assert stats["consistency"] is None
    assert stats["variance"] is None
    assert stats["current_streak"] == 0
    assert len(stats["weeks"]) == 7
    assert all(len(week) == 7 for week in stats["weeks"])


def test_week_grid_ends_today(make_history, now):
    df = make_history(_plays_on([15], per_day=3))

    weeks = consistency_variance(df, now)["weeks"]

    assert weeks[-1][-1] == {"date": datetime.date(2024, 6, 15), "count": 3}
    assert weeks[0][0]["date"] == datetime.date(2024, 4, 28)


def test_current_streak():
    today = datetime.date(2024, 6, 15)
    dates = [today, today - datetime.timedelta(days=1), today - datetime.timedelta(days=3)]

    assert current_streak(dates, today) == 2
    assert current_streak(dates[1:], today) == 0


def test_longest_streak():
    dates = [datetime.date(2024, 6, d) for d in (1, 2, 3, 5, 6)]

    assert longest_streak(dates) == 3
    assert longest_streak([]) == 0


def test_daily_details_fallback_duration(make_history):
    """Plays without a duration count as three minutes."""
    df = make_history([
        ("2024-06-01T10:00:00Z", "A", "Unknown Length", 0),
        ("2024-06-01T10:05:00Z", "B", "Known", 125000),
    ])

    details = daily_details(df)

    assert details.loc[0, "minutes"] == 5
    assert details.loc[0, "unique_artists"] == 2


def test_listening_velocity(make_history):
    df = make_history(_plays_on(range(1, 8), per_day=2) + _plays_on(range(8, 15), per_day=3))

    velocity = listening_velocity(df)

    assert velocity["avg"] == 2.5
    assert (velocity["min"], velocity["max"]) == (2, 3)
    assert velocity["trend"] == 50.0
    assert velocity["trend_direction"] == "up"
    assert set(velocity["daily"]["zone"]) == {"normal"}


def test_velocity_zones(make_history):
    df = make_history(_plays_on([1], per_day=1) + _plays_on([2], per_day=4) + _plays_on([3], per_day=10))

    zones = listening_velocity(df)["daily"]["zone"].tolist()

    assert zones == ["low", "normal", "high"]


def test_velocity_empty(make_history):
    velocity = listening_velocity(make_history([]))

    assert velocity["avg"] is None
    assert velocity["trend"] == 0
    assert velocity["trend_direction"] == "stable"


def test_listening_personality(make_history):
    """Two short late plays on a Saturday night."""
    df = make_history([
        ("2024-06-08T23:00:00Z", "A", "One"),
        ("2024-06-08T23:05:00Z", "A", "Two"),
    ])

    traits = listening_personality(df)

    assert traits["session"]["type"] == "Quick Sessions"
    assert traits["session"]["score"] == pytest.approx(10.0)
    assert traits["consistency"]["type"] == "Routine Creature"
    assert traits["weekend"]["type"] == "Weekend Warrior"
    assert traits["time"]["type"] == "Night Owl"
    assert listening_personality(make_history([])) is None


def test_generate_summary_stats(make_history, now):
    df = make_history(_plays_on([12, 13, 14, 15]) + _plays_on([1]))

    stats = generate_summary_stats(df, now)

    assert stats["total_plays"] == 5
    assert stats["total_listening_days"] == 5
    assert stats["longest_streak"] == 4
    assert stats["current_streak"] == 4
    assert stats["first_play"] == pd.Timestamp("2024-06-01T10:00:00Z")
