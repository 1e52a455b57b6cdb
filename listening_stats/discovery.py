"""First-play discovery tracking and top-entity reign streaks."""

import calendar

import pandas as pd

from listening_stats.aggregation import group_by_key, top_entity
from listening_stats.comparison import diversity_score, percent_change, round_half_up
from listening_stats.config import DISCOVERY_TIMELINE_MONTHS, DISCOVERY_WINDOW_DAYS, STREAK_PERIODS
from listening_stats.timerange import filter_between, frame_timezone, resolve_now

ENTITY_COLUMNS = {
    "artists": ["artist_name"],
    "tracks": ["track_name", "artist_name"],
}


def entity_columns(entity: str) -> list[str]:
    if entity not in ENTITY_COLUMNS:
        raise ValueError(f"Unknown entity '{entity}' (expected 'artists' or 'tracks')")
    return ENTITY_COLUMNS[entity]


def _entity_keys(df: pd.DataFrame, columns: list[str]) -> list:
    if len(columns) == 1:
        return df[columns[0]].tolist()
    return list(zip(*(df[c] for c in columns)))


def first_seen(df: pd.DataFrame, entity: str = "artists") -> pd.DataFrame:
    """
    Earliest play of every distinct artist or track.

    Pass the full history, not a filtered window, to get "first ever
    played" dates.

    Args:
        df: Listening history DataFrame.
        entity: 'artists' or 'tracks' (track name and artist).

    Returns:
        DataFrame with the entity columns and first_played_at, oldest first.
    """
    columns = entity_columns(entity)

    if df.empty:
        empty = {c: pd.Series(dtype=object) for c in columns}
        empty["first_played_at"] = pd.Series(dtype=df["played_at"].dtype)
        return pd.DataFrame(empty)

    records = df.groupby(columns, sort=False)["played_at"].min().rename("first_played_at").reset_index()
    return records.sort_values("first_played_at", kind="stable").reset_index(drop=True)


def discovered_by(df: pd.DataFrame, when, entity: str = "artists") -> set:
    """Entities whose first play happened at or before 'when'."""
    records = first_seen(df, entity)
    found = records[records["first_played_at"] <= resolve_now(when)]
    return set(_entity_keys(found, entity_columns(entity)))


def discovery_timeline(records: pd.DataFrame, months: int = DISCOVERY_TIMELINE_MONTHS) -> pd.DataFrame:
    """Discoveries per calendar month for the latest months that have any."""
    if records.empty:
        return pd.DataFrame(columns=["month_key", "month", "count"])

    counts = records["first_played_at"].dt.strftime("%Y-%m").value_counts().sort_index().tail(months)
    return pd.DataFrame({
        "month_key": counts.index,
        "month": [calendar.month_abbr[int(key[5:7])] for key in counts.index],
        "count": counts.to_numpy(),
    })


def discovery_rate(
    df: pd.DataFrame,
    entity: str = "artists",
    now=None,
    months: int = DISCOVERY_TIMELINE_MONTHS,
) -> dict:
    """
    How quickly new artists or tracks enter the history.

    Compares discoveries in the last 30 days with the 30 days before. When
    the earlier window has none, the trend is 100 if anything was
    discovered recently and 0 otherwise.

    Returns:
        Dictionary with total_items, daily_rate, last_30, previous_30, trend,
        trend_direction, timeline and has_enough_data.
    """
    now = resolve_now(now)
    records = first_seen(df, entity)
    timeline = discovery_timeline(records, months)

    if records.empty:
        return {
            "total_items": 0,
            "daily_rate": None,
            "last_30": 0,
            "previous_30": 0,
            "trend": 0,
            "trend_direction": "stable",
            "timeline": timeline,
            "has_enough_data": False,
        }

    first = records["first_played_at"]
    total_days = max((now - first.min()) / pd.Timedelta(days=1), 1)
    window = pd.Timedelta(days=DISCOVERY_WINDOW_DAYS)

    last_30 = int(((first >= now - window) & (first <= now)).sum())
    previous_30 = int(((first >= now - 2 * window) & (first < now - window)).sum())
    trend = percent_change(last_30, previous_30, digits=1)

    return {
        "total_items": len(records),
        "daily_rate": round_half_up(len(records) / total_days, 2),
        "last_30": last_30,
        "previous_30": previous_30,
        "trend": trend,
        "trend_direction": "up" if trend > 0 else "down" if trend < 0 else "stable",
        "timeline": timeline,
        "has_enough_data": total_days >= DISCOVERY_WINDOW_DAYS,
    }


def period_windows(period: str, count: int, now, tz="UTC") -> list[tuple[pd.Timestamp, pd.Timestamp]]:
    """
    Half-open [start, end) windows, most recent first.

    'week' windows are rolling 7-day spans ending at now. 'month' windows
    are whole calendar months before the current one.
    """
    now = resolve_now(now)
    if period == "week":
        step = pd.Timedelta(days=7)
        return [(now - (k + 1) * step, now - k * step) for k in range(count)]
    if period == "month":
        anchor = now.tz_convert(tz).normalize().replace(day=1)
        return [
            (anchor - pd.DateOffset(months=k + 1), anchor - pd.DateOffset(months=k))
            for k in range(count)
        ]
    raise ValueError(f"Unknown period '{period}' (expected 'week' or 'month')")


def top_entity_per_period(
    df: pd.DataFrame,
    period: str = "week",
    count: int = STREAK_PERIODS,
    now=None,
    entity: str = "artists",
) -> pd.DataFrame:
    """
    The most played entity of each of the last `count` periods.

    Returns:
        DataFrame with start, end, top and plays, most recent period first.
        Periods without plays have top None and plays 0.
    """
    columns = entity_columns(entity)
    rows = []
    for start, end in period_windows(period, count, now, frame_timezone(df)):
        ranked = group_by_key(filter_between(df, start, end, include_end=False), columns)
        if ranked.empty:
            rows.append({"start": start, "end": end, "top": None, "plays": 0})
            continue
        leader = ranked.iloc[0]
        top = leader[columns[0]] if len(columns) == 1 else tuple(leader[c] for c in columns)
        rows.append({"start": start, "end": end, "top": top, "plays": int(leader["plays"])})
    frame = pd.DataFrame(rows, columns=["start", "end", "top", "plays"])
    # object dtype so empty periods keep None rather than a string-dtype NaN
    frame["top"] = pd.Series([row["top"] for row in rows], index=frame.index, dtype=object)
    return frame


def _no_leader(top) -> bool:
    return top is None or (isinstance(top, float) and pd.isna(top))


def reign_streak(tops: list) -> int:
    """
    Consecutive periods, from the most recent, led by the most recent leader.

    A period without a leader (None or NaN) ends the streak.
    """
    if not tops or _no_leader(tops[0]):
        return 0
    streak = 0
    for top in tops:
        if _no_leader(top) or top != tops[0]:
            break
        streak += 1
    return streak


def new_artists_per_week(df: pd.DataFrame, now=None, weeks: int = 4) -> list[int]:
    """
    Artists heard in each recent week but in none of the older weeks of the
    same window. Most recent week first; the oldest week counts all its artists.
    """
    now = resolve_now(now)
    recent = filter_between(df, now - pd.Timedelta(days=7 * weeks), None)
    week_index = (now - recent["played_at"]) // pd.Timedelta(days=7)

    artists_by_week = [set(recent.loc[week_index == i, "artist_name"]) for i in range(weeks)]

    counts = []
    for i, artists in enumerate(artists_by_week):
        older = set().union(*artists_by_week[i + 1:])
        counts.append(len(artists - older))
    return counts


def artist_stats_cards(df: pd.DataFrame, now=None) -> dict:
    """
    Headline artist cards: this week's and month's top artist with their
    reign streaks, the average number of new artists per week and the
    30-day diversity score.
    """
    now = resolve_now(now)
    weekly = top_entity_per_period(df, "week", STREAK_PERIODS, now)
    monthly = top_entity_per_period(df, "month", STREAK_PERIODS, now)

    this_week = filter_between(df, now - pd.Timedelta(days=7), None)
    this_month = filter_between(df, now - pd.Timedelta(days=30), None)
    top_week = top_entity(this_week)
    top_month = top_entity(this_month)
    new_per_week = new_artists_per_week(df, now)

    return {
        "top_artist_week": top_week[0] if top_week else None,
        "top_artist_week_plays": top_week[1] if top_week else 0,
        "week_streak": reign_streak(weekly["top"].tolist()),
        "top_artist_month": top_month[0] if top_month else None,
        "top_artist_month_plays": top_month[1] if top_month else 0,
        "month_streak": reign_streak(monthly["top"].tolist()),
        "avg_new_artists_per_week": round_half_up(sum(new_per_week) / len(new_per_week)),
        "diversity_score": diversity_score(this_month),
    }
