"""When listening happens: hour, weekday, slot and calendar breakdowns."""

import calendar
import math
from collections import Counter
from typing import Optional

import numpy as np
import pandas as pd

from listening_stats.aggregation import group_by_key
from listening_stats.comparison import percent_change, round_half_up
from listening_stats.config import (
    DAY_ORDER,
    RADAR_WINDOWS,
    TIME_OF_DAY_PERIODS,
    TIME_RANGES,
    WEEKEND_DAYS,
)
from listening_stats.timerange import filter_by_range, local_today, resolve_now

SLOTS_PER_DAY = 48


def format_hour(hour: Optional[int]) -> str:
    """12-hour clock label such as 12AM, 9AM or 3PM."""
    if hour is None:
        return "N/A"
    if hour == 0:
        return "12AM"
    if hour < 12:
        return f"{hour}AM"
    if hour == 12:
        return "12PM"
    return f"{hour - 12}PM"


def format_slot(slot: int) -> str:
    """Label for a 30-minute slot, e.g. slot 19 -> '9:30 AM'."""
    hour, half = divmod(slot, 2)
    period = "PM" if hour >= 12 else "AM"
    display_hour = 12 if hour == 0 else hour - 12 if hour > 12 else hour
    return f"{display_hour}:{half * 30:02d} {period}"


def time_of_day_period(hour: int) -> str:
    """Morning, Afternoon, Evening or Night for an hour of the day."""
    for name, start, end in TIME_OF_DAY_PERIODS:
        if start < end:
            if start <= hour < end:
                return name
        elif hour >= start or hour < end:
            return name
    raise ValueError(f"Hour out of range: {hour}")


def plays_by_date(df: pd.DataFrame) -> pd.DataFrame:
    """Plays per calendar date, oldest first. Only dates with plays appear."""
    counts = df.groupby("date").size().rename("plays").sort_index()
    return counts.reset_index()


def plays_by_hour(df: pd.DataFrame) -> pd.DataFrame:
    """Plays and hours per hour of day (all 24 hours)."""
    grouped = df.groupby("hour").agg(
        plays=("played_at", "count"),
        total_hours=("hours_played", "sum"),
    )
    grouped = grouped.reindex(range(24), fill_value=0).rename_axis("hour").reset_index()
    return grouped.astype({"plays": int, "total_hours": float})


def plays_by_weekday(df: pd.DataFrame) -> pd.DataFrame:
    """Plays and hours per day of week, Monday first."""
    grouped = df.groupby("weekday").agg(
        plays=("played_at", "count"),
        total_hours=("hours_played", "sum"),
    )
    grouped = grouped.reindex(range(7), fill_value=0).rename_axis("weekday").reset_index()
    grouped.insert(1, "day_of_week", DAY_ORDER)
    return grouped.astype({"plays": int, "total_hours": float})


def _grid(df: pd.DataFrame, column: str, width: int) -> np.ndarray:
    grid = np.zeros((7, width), dtype=int)
    np.add.at(grid, (df["weekday"].to_numpy(dtype=int), df[column].to_numpy(dtype=int)), 1)
    return grid


def listening_heatmap(df: pd.DataFrame) -> pd.DataFrame:
    """Play counts for each day of week (rows) and hour (columns)."""
    return pd.DataFrame(_grid(df, "hour", 24), index=DAY_ORDER, columns=range(24))


def rhythm_heatmap(df: pd.DataFrame) -> dict:
    """
    Play counts per day of week and 30-minute slot.

    Returns:
        Dictionary with:
            counts: plays per (day, slot) cell.
            occurrences: distinct dates contributing to each cell.
            average: plays per occurrence (0 where a cell never occurred).
            total_plays, total_days, max_value, peak (None without plays).
    """
    counts = _grid(df, "slot", SLOTS_PER_DAY)

    occurrences = np.zeros((7, SLOTS_PER_DAY), dtype=int)
    for (weekday, slot), days in df.groupby(["weekday", "slot"])["date"].nunique().items():
        occurrences[int(weekday), int(slot)] = days

    with np.errstate(divide="ignore", invalid="ignore"):
        average = np.where(occurrences > 0, counts / np.maximum(occurrences, 1), 0.0)

    peak = None
    if counts.max() > 0:
        weekday, slot = np.unravel_index(int(counts.argmax()), counts.shape)
        peak = {
            "day_of_week": DAY_ORDER[weekday],
            "slot": int(slot),
            "label": f"{DAY_ORDER[weekday][:3]} {format_slot(int(slot))}",
            "plays": int(counts[weekday, slot]),
        }

    columns = range(SLOTS_PER_DAY)
    return {
        "counts": pd.DataFrame(counts, index=DAY_ORDER, columns=columns),
        "occurrences": pd.DataFrame(occurrences, index=DAY_ORDER, columns=columns),
        "average": pd.DataFrame(average, index=DAY_ORDER, columns=columns),
        "total_plays": len(df),
        "total_days": max(df["date"].nunique(), 1),
        "max_value": max(int(counts.max()), 1),
        "peak": peak,
    }


def _period_counts(df: pd.DataFrame) -> pd.DataFrame:
    periods = df["hour"].map(time_of_day_period)
    rows = []
    for name, start, end in TIME_OF_DAY_PERIODS:
        in_period = df[periods == name]
        rows.append({
            "period": name,
            "start_hour": start,
            "end_hour": end,
            "plays": len(in_period),
            "unique_tracks": in_period["track_name"].nunique(),
        })
    return pd.DataFrame(rows)


def time_of_day_distribution(df: pd.DataFrame, previous: Optional[pd.DataFrame] = None) -> pd.DataFrame:
    """
    Plays per Morning/Afternoon/Evening/Night period.

    Args:
        df: Plays in the current period.
        previous: Plays in the previous period, adding previous_plays,
                  change and percent_change columns.

    Returns:
        DataFrame with one row per period and its share of all plays.
    """
    current = _period_counts(df)
    total = current["plays"].sum()
    current["share"] = [round_half_up(p / total * 100, 1) if total else None for p in current["plays"]]

    if previous is None:
        return current

    current["previous_plays"] = _period_counts(previous)["plays"]
    current["change"] = current["plays"] - current["previous_plays"]
    current["percent_change"] = [
        percent_change(p, prev) for p, prev in zip(current["plays"], current["previous_plays"])
    ]
    return current


def _segment_stats(df: pd.DataFrame, hour_counts: np.ndarray, days: int, top_n: int, other_limit: int) -> dict:
    minutes = df["duration_ms"].sum() / 60000
    artists = group_by_key(df, "artist_name", unique={"unique_tracks": "track_name"}).to_dict("records")
    peak_hour = int(hour_counts.argmax()) if len(df) else None

    return {
        "plays": len(df),
        "avg_per_day": round_half_up(len(df) / days, 1),
        "hours": round_half_up(minutes / 60, 1),
        "avg_minutes_per_play": round_half_up(minutes / len(df), 1) if len(df) else 0,
        "peak_hour": peak_hour,
        "peak_time": format_hour(peak_hour),
        "unique_artists": len(artists),
        "unique_tracks": df["track_name"].nunique(),
        "top_artists": artists[:top_n],
        "other_artists": artists[top_n:top_n + other_limit],
    }


def weekday_weekend_comparison(df: pd.DataFrame, top_n: int = 3, other_limit: int = 30) -> dict:
    """
    Compare listening on weekdays (Mon-Fri) with weekends (Sat-Sun).

    Per-day averages divide by the five and two days of a week. The
    difference is the percent change from the weekday to the weekend average.
    """
    is_weekend = df["weekday"].isin(WEEKEND_DAYS)
    weekday_df = df[~is_weekend]
    weekend_df = df[is_weekend]

    weekday_hours = np.bincount(weekday_df["hour"].to_numpy(dtype=int), minlength=24)
    weekend_hours = np.bincount(weekend_df["hour"].to_numpy(dtype=int), minlength=24)

    radar = pd.DataFrame([
        {
            "period": label,
            "Weekday": int(weekday_hours[hours].sum()),
            "Weekend": int(weekend_hours[hours].sum()),
        }
        for label, hours in RADAR_WINDOWS
    ])

    weekday = _segment_stats(weekday_df, weekday_hours, 5, top_n, other_limit)
    weekend = _segment_stats(weekend_df, weekend_hours, 2, top_n, other_limit)

    return {
        "radar": radar,
        "weekday": weekday,
        "weekend": weekend,
        "difference": percent_change(len(weekend_df) / 2, len(weekday_df) / 5),
    }


def year_in_music(df: pd.DataFrame, year: Optional[int] = None, top_n: int = 3) -> dict:
    """
    Month-by-month top artists for a year (defaults to the latest year).

    Returns:
        Dictionary with available_years (newest first), year and months.
    """
    years = sorted((int(y) for y in df["year"].unique()), reverse=True)
    if not years:
        return {"available_years": [], "year": None, "months": []}

    year = years[0] if year is None else year
    months = []
    for month_key, frame in df[df["year"] == year].groupby("year_month", sort=True):
        artists = group_by_key(frame, "artist_name", unique={"unique_tracks": "track_name"}).to_dict("records")
        months.append({
            "month_key": month_key,
            "month_name": calendar.month_name[int(month_key[5:7])],
            "year": year,
            "top_artists": artists[:top_n],
            "other_artists": artists[top_n:],
            "total_plays": len(frame),
            "unique_artists": len(artists),
        })

    return {"available_years": years, "year": year, "months": months}


def artist_trends(
    df: pd.DataFrame,
    range_key: str = "3m",
    top_n: int = 5,
    sma_windows: tuple = (4,),
    now=None,
) -> dict:
    """
    Weekly play counts of the top artists in a window.

    Weeks are counted back from now; W1 is the oldest week. Each window
    size gets its own moving average frame, empty until enough weeks are
    available.

    Returns:
        Dictionary with top_artists, weeks (W1..Wn labels), plays (weeks by
        artists) and sma (window size to a frame shaped like plays).
    """
    now = resolve_now(now)
    current = filter_by_range(df, range_key, now)
    week_diff = (now - current["played_at"]) // pd.Timedelta(days=7)

    weeks = TIME_RANGES[range_key]["weeks"]
    if weeks is None:
        weeks = max(int(week_diff.max()) + 1, 1) if len(current) else 1

    top = group_by_key(current, "artist_name").head(top_n)["artist_name"].tolist()

    labels = [f"W{n}" for n in range(1, weeks + 1)]
    # artist names only ever appear as column labels
    table = pd.DataFrame(
        0,
        index=pd.Index(labels, name="week"),
        columns=pd.Index(top, name="artist", dtype=object),
    )
    in_window = (week_diff >= 0) & (week_diff < weeks) & current["artist_name"].isin(top)
    for (diff, artist), plays in Counter(zip(week_diff[in_window], current.loc[in_window, "artist_name"])).items():
        table.loc[labels[weeks - 1 - int(diff)], artist] = plays

    sma = {window: table.rolling(window).mean() for window in sma_windows}
    return {"top_artists": top, "weeks": labels, "plays": table, "sma": sma}


def format_ago(played_at: pd.Timestamp, now=None) -> str:
    """Relative label such as 'Just now', '5m ago', '3h ago' or '2d ago'."""
    minutes = math.floor((resolve_now(now) - played_at).total_seconds() / 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if minutes < 60 * 24:
        return f"{minutes // 60}h ago"
    return f"{minutes // (60 * 24)}d ago"


def recent_plays(df: pd.DataFrame, limit: int = 15, now=None) -> pd.DataFrame:
    """
    Latest plays annotated with today's activity.

    Adds plays_today (plays of the same track today), artist_share_today
    (percent of today's plays by the artist) and an 'ago' label.
    """
    now = resolve_now(now)
    today_df = df[df["date"] == local_today(df, now)]
    track_counts = Counter(zip(today_df["track_name"], today_df["artist_name"]))
    artist_counts = Counter(today_df["artist_name"])
    total_today = len(today_df)

    recent = df.sort_values("played_at", ascending=False, kind="stable").head(limit).copy()
    recent["plays_today"] = [track_counts[key] for key in zip(recent["track_name"], recent["artist_name"])]
    recent["artist_share_today"] = [
        round_half_up(artist_counts[a] / total_today * 100) if total_today else 0 for a in recent["artist_name"]
    ]
    recent["ago"] = [format_ago(ts, now) for ts in recent["played_at"]]
    return recent.reset_index(drop=True)
