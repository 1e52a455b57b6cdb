"""Statistical summaries: consistency, variance, streaks and velocity."""

import math
from datetime import timedelta
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from listening_stats.aggregation import upper_median
from listening_stats.comparison import percent_change, round_half_up
from listening_stats.config import FALLBACK_DURATION_MS, WEEKEND_DAYS
from listening_stats.sessions import segment_sessions
from listening_stats.temporal import plays_by_date
from listening_stats.timerange import local_today


def describe_counts(values: Iterable[float]) -> dict:
    """
    Mean, median, population variance, standard deviation, coefficient of
    variation (percent), min and max. Every statistic is None for no values.
    """
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return {
            "count": 0,
            "mean": None,
            "median": None,
            "variance": None,
            "std_dev": None,
            "coefficient_of_variation": None,
            "min": None,
            "max": None,
        }

    mean = float(arr.mean())
    variance = float(arr.var())
    std_dev = math.sqrt(variance)

    return {
        "count": int(arr.size),
        "mean": mean,
        "median": float(upper_median(arr.tolist())),
        "variance": variance,
        "std_dev": std_dev,
        "coefficient_of_variation": std_dev / mean * 100 if mean else None,
        "min": float(arr.min()),
        "max": float(arr.max()),
    }


def daily_counts(df: pd.DataFrame) -> pd.Series:
    """Plays per active calendar date, oldest first."""
    return df.groupby("date").size().sort_index()


def current_streak(dates: Iterable, today) -> int:
    """Consecutive days with plays, counting back from today."""
    active = set(dates)
    streak = 0
    day = today
    while day in active:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(dates: Iterable) -> int:
    """Longest run of consecutive calendar days with plays."""
    dates = pd.Series(sorted(set(dates)))
    if len(dates) == 0:
        return 0

    # Gaps between consecutive listening dates
    date_diffs = pd.to_datetime(dates).diff().dt.days

    streaks = []
    current = 1
    for diff in date_diffs[1:]:
        if diff == 1:
            current += 1
        else:
            streaks.append(current)
            current = 1
    streaks.append(current)

    return max(streaks)


def _week_grid(counts: pd.Series, today, weeks: int = 7) -> list[list[dict]]:
    grid = []
    for week in range(weeks - 1, -1, -1):
        row = []
        for day in range(7):
            date = today - timedelta(days=week * 7 + (6 - day))
            row.append({"date": date, "count": int(counts.get(date, 0))})
        grid.append(row)
    return grid


def daily_details(df: pd.DataFrame) -> pd.DataFrame:
    """Per-date plays, distinct tracks and artists, and listening minutes."""
    minutes = df["duration_ms"].where(df["duration_ms"] > 0, FALLBACK_DURATION_MS) // 60000
    return (
        df.assign(minutes=minutes)
        .groupby("date")
        .agg(
            plays=("played_at", "count"),
            unique_tracks=("track_name", "nunique"),
            unique_artists=("artist_name", "nunique"),
            minutes=("minutes", "sum"),
        )
        .sort_index()
        .reset_index()
    )


def consistency_variance(df: pd.DataFrame, now=None) -> dict:
    """
    How regularly and how evenly listening is spread over days.

    Consistency is the percentage of days between the first and last active
    date that have plays. The variance figure is the coefficient of
    variation of plays per active day.

    Returns:
        Dictionary with consistency, variance, active_days, total_days,
        current_streak, avg_plays_per_day, a seven-week grid of daily counts
        ending today and per-day details.
    """
    counts = daily_counts(df)
    today = local_today(df, now)
    weeks = _week_grid(counts, today)

    if counts.empty:
        return {
            "consistency": None,
            "variance": None,
            "active_days": 0,
            "total_days": 0,
            "current_streak": 0,
            "avg_plays_per_day": None,
            "stats": describe_counts([]),
            "weeks": weeks,
            "daily_details": daily_details(df),
        }

    total_days = (counts.index[-1] - counts.index[0]).days + 1
    active_days = len(counts)
    stats = describe_counts(counts)

    return {
        "consistency": round_half_up(active_days / total_days * 100, 1),
        "variance": round_half_up(stats["coefficient_of_variation"], 1),
        "active_days": active_days,
        "total_days": total_days,
        "current_streak": current_streak(counts.index, today),
        "avg_plays_per_day": round_half_up(stats["mean"], 1),
        "stats": stats,
        "weeks": weeks,
        "daily_details": daily_details(df),
    }


def listening_velocity(df: pd.DataFrame) -> dict:
    """
    Plays per active day and the recent trend.

    The trend compares the average of the last seven active days with the
    seven before them. Days are zoned low/normal/high below 0.7x and above
    1.3x the average.
    """
    daily = plays_by_date(df)

    if daily.empty:
        daily["zone"] = pd.Series(dtype=object)
        return {
            "daily": daily,
            "avg": None,
            "max": None,
            "min": None,
            "trend": 0,
            "trend_direction": "stable",
            "low_threshold": None,
            "high_threshold": None,
        }

    plays = daily["plays"].tolist()
    avg = sum(plays) / len(plays)

    last7 = plays[-7:]
    prev7 = plays[-14:-7]
    last_avg = sum(last7) / len(last7)
    prev_avg = sum(prev7) / len(prev7) if prev7 else 0
    trend = percent_change(last_avg, prev_avg, digits=1)

    low, high = avg * 0.7, avg * 1.3
    daily["zone"] = ["low" if p < low else "high" if p > high else "normal" for p in plays]

    return {
        "daily": daily,
        "avg": round_half_up(avg, 1),
        "max": max(plays),
        "min": min(plays),
        "trend": trend,
        "trend_direction": "up" if trend > 0 else "down" if trend < 0 else "stable",
        "low_threshold": low,
        "high_threshold": high,
    }


def listening_personality(df: pd.DataFrame) -> Optional[dict]:
    """
    Four listening traits scored 0-100: session length, routine, weekend
    share and late-night share. None without plays.
    """
    if df.empty:
        return None

    sessions = segment_sessions(df)
    avg_session_minutes = sum(s.duration_minutes for s in sessions) / len(sessions)

    first, last = df["played_at"].min(), df["played_at"].max()
    day_span = math.ceil((last - first) / pd.Timedelta(days=1))
    routine_score = min(100.0, df["date"].nunique() / max(day_span, 1) * 100)

    weekend_score = df["weekday"].isin(WEEKEND_DAYS).sum() / len(df) * 100

    late_night = int(((df["hour"] >= 22) | (df["hour"] < 6)).sum())
    morning = int(((df["hour"] >= 6) & (df["hour"] < 12)).sum())

    return {
        "session": {
            "type": "Marathon Listener" if avg_session_minutes > 45 else "Quick Sessions",
            "score": min(100.0, avg_session_minutes / 60 * 100),
            "description": "You prefer long, immersive listening sessions"
            if avg_session_minutes > 45 else "You listen in short, focused bursts",
        },
        "consistency": {
            "type": "Routine Creature" if routine_score > 70 else "Spontaneous Explorer",
            "score": routine_score,
            "description": "You listen regularly and consistently"
            if routine_score > 70 else "Your listening habits are spontaneous",
        },
        "weekend": {
            "type": "Weekend Warrior" if weekend_score > 40 else "Weekday Grinder",
            "score": float(weekend_score),
            "description": "Weekends are your prime listening time"
            if weekend_score > 40 else "You listen more during the week",
        },
        "time": {
            "type": "Night Owl" if late_night > morning else "Morning Person",
            "score": late_night / len(df) * 100,
            "description": "Your peak listening is late night"
            if late_night > morning else "You prefer listening in the morning",
        },
    }


def generate_summary_stats(df: pd.DataFrame, now=None) -> dict:
    """Generate overall summary statistics."""
    stats = {
        "total_plays": len(df),
        "total_hours": float(df["hours_played"].sum()) if len(df) else 0.0,
        "unique_tracks": df[["track_name", "artist_name"]].drop_duplicates().shape[0],
        "unique_artists": df["artist_name"].nunique(),
        "unique_albums": df["album_name"].nunique(),
        "total_listening_days": df["date"].nunique(),
        "longest_streak": longest_streak(df["date"]),
        "current_streak": current_streak(df["date"], local_today(df, now)),
    }

    if len(df) > 0:
        stats["first_play"] = df["played_at"].min()
        stats["last_play"] = df["played_at"].max()
        stats["years_span"] = (stats["last_play"] - stats["first_play"]).days / 365.25
        stats["avg_hours_per_day"] = stats["total_hours"] / stats["total_listening_days"]

    return stats
