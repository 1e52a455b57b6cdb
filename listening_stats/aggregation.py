"""Group-by aggregations and rankings over play events."""

import math
from typing import Callable, Optional, Union

import pandas as pd

from listening_stats.comparison import percent_change, round_half_up
from listening_stats.config import ENGAGEMENT_FACTOR, TRACK_LENGTH_BUCKETS
from listening_stats.timerange import split_periods

TRACK_KEY = ["track_name", "artist_name"]
ALBUM_KEY = ["album_name", "artist_name"]

Key = Union[str, list[str], Callable[[pd.DataFrame], pd.Series]]


def chronological(df: pd.DataFrame) -> pd.DataFrame:
    """Plays ordered by played_at; simultaneous plays ordered by artist and track."""
    return df.sort_values(["played_at", "artist_name", "track_name"], kind="stable")


def group_by_key(
    df: pd.DataFrame,
    key: Key,
    unique: Optional[dict[str, str]] = None,
    duration: bool = False,
) -> pd.DataFrame:
    """
    Count plays per key.

    Args:
        df: Listening history DataFrame.
        key: Column name, list of column names, or a callable returning a
             Series of keys (the result column is then named 'key').
        unique: Output column -> source column whose distinct values are
                counted within each group, e.g. {"unique_tracks": "track_name"}.
        duration: Add summed duration_ms and engagement-scaled listened_ms.

    Returns:
        DataFrame sorted by plays descending. Ties keep the order in which
        the keys were first played.
    """
    unique = unique or {}
    ordered = chronological(df)

    if callable(key):
        ordered = ordered.assign(key=key(ordered))
        keys = ["key"]
    else:
        keys = [key] if isinstance(key, str) else list(key)

    columns = keys + ["plays"] + list(unique)
    if duration:
        columns += ["duration_ms", "listened_ms"]
    if ordered.empty:
        return pd.DataFrame(columns=columns)

    aggs = {"plays": ("played_at", "count")}
    for name, column in unique.items():
        aggs[name] = (column, "nunique")
    if duration:
        aggs["duration_ms"] = ("duration_ms", "sum")

    grouped = ordered.groupby(keys, sort=False, dropna=False).agg(**aggs).reset_index()
    if duration:
        grouped["listened_ms"] = grouped["duration_ms"] * ENGAGEMENT_FACTOR

    grouped = grouped.sort_values("plays", ascending=False, kind="stable")
    return grouped.reset_index(drop=True)[columns]


def top_entity(df: pd.DataFrame, column: str = "artist_name") -> Optional[tuple[str, int]]:
    """The most played value of a column and its play count, or None without plays."""
    grouped = group_by_key(df, column)
    if grouped.empty:
        return None
    return grouped.iloc[0][column], int(grouped.iloc[0]["plays"])


def bucket_counts(values: pd.Series, buckets: list[tuple]) -> pd.DataFrame:
    """Count values falling in each [lower, upper) bucket."""
    rows = []
    for label, lower, upper in buckets:
        count = int(((values >= lower) & (values < upper)).sum())
        rows.append({"label": label, "min": lower, "max": upper, "count": count})
    return pd.DataFrame(rows, columns=["label", "min", "max", "count"])


def upper_median(values) -> Optional[float]:
    """Middle element of the sorted values (the upper one for even counts)."""
    ordered = sorted(values)
    if not ordered:
        return None
    return ordered[len(ordered) // 2]


def _cloud_sizes(plays: pd.Series) -> list[int]:
    if plays.empty:
        return []
    max_plays = plays.max()
    return [max(1, math.ceil(p / max_plays * 5)) for p in plays]


def top_artists(df: pd.DataFrame, limit: int = 10, by: str = "plays") -> pd.DataFrame:
    """
    Get top artists by play count or estimated listening time.

    Args:
        df: Listening history DataFrame.
        limit: Number of artists to return.
        by: Sort by 'plays' or 'time'.

    Returns:
        DataFrame with artist_name, plays, unique_tracks, duration_ms,
        listened_ms and listened_minutes.
    """
    if by not in ("plays", "time"):
        raise ValueError(f"Unknown ranking '{by}' (expected 'plays' or 'time')")

    grouped = group_by_key(df, "artist_name", unique={"unique_tracks": "track_name"}, duration=True)
    grouped["listened_minutes"] = [round_half_up(ms / 60000) for ms in grouped["listened_ms"]]

    if by == "time":
        grouped = grouped.sort_values("listened_minutes", ascending=False, kind="stable")

    return grouped.head(limit).reset_index(drop=True)


def _movement(rank: int, previous_rank) -> tuple[str, int]:
    if pd.isna(previous_rank):
        return "new", 0
    change = int(previous_rank) - rank
    if change > 0:
        return "up", change
    if change < 0:
        return "down", -change
    return "same", 0


def top_tracks(df: pd.DataFrame, limit: int = 20, previous: Optional[pd.DataFrame] = None) -> pd.DataFrame:
    """
    Get the most played tracks, optionally with rank movement.

    Args:
        df: Plays in the current period.
        limit: Number of tracks to return.
        previous: Plays in the previous period. When given, each track gets
                  its previous rank and a movement of new/up/down/same.

    Returns:
        DataFrame with track_name, artist_name, plays, album details and rank.
    """
    grouped = group_by_key(df, TRACK_KEY).head(limit)
    details = chronological(df).drop_duplicates(TRACK_KEY)[
        TRACK_KEY + ["album_name", "album_image_url", "duration_ms"]
    ]
    top = grouped.merge(details, on=TRACK_KEY, how="left")
    top["rank"] = range(1, len(top) + 1)

    if previous is None:
        return top

    ranked = group_by_key(previous, TRACK_KEY)
    ranked["previous_rank"] = range(1, len(ranked) + 1)
    top = top.merge(ranked[TRACK_KEY + ["previous_rank"]], on=TRACK_KEY, how="left")

    movements = [_movement(rank, prev) for rank, prev in zip(top["rank"], top["previous_rank"])]
    top["movement"] = [m[0] for m in movements]
    top["movement_value"] = [m[1] for m in movements]

    return top


def top_albums(df: pd.DataFrame, limit: int = 20, previous: Optional[pd.DataFrame] = None) -> pd.DataFrame:
    """
    Get the most played albums with a 1-5 cloud size and, when a previous
    period is given, the percent change of each album's plays.
    """
    grouped = group_by_key(df, ALBUM_KEY, unique={"unique_tracks": "track_name"}).head(limit)
    images = chronological(df).drop_duplicates(ALBUM_KEY)[ALBUM_KEY + ["album_image_url"]]
    top = grouped.merge(images, on=ALBUM_KEY, how="left")
    top["size"] = _cloud_sizes(top["plays"])

    if previous is None:
        return top

    before = group_by_key(previous, ALBUM_KEY).rename(columns={"plays": "previous_plays"})
    top = top.merge(before, on=ALBUM_KEY, how="left")
    top["previous_plays"] = top["previous_plays"].fillna(0).astype(int)
    top["change"] = [percent_change(p, prev) for p, prev in zip(top["plays"], top["previous_plays"])]
    top["is_new"] = top["previous_plays"] == 0

    return top


def compare_top_artists(df: pd.DataFrame, range_key: str = "1m", limit: int = 10, now=None) -> pd.DataFrame:
    """
    Top artists of the current window with their plays in the previous window.

    Returns:
        DataFrame with artist_name, plays, previous_plays and change. The
        previous columns are empty for 'all'.
    """
    current_df, previous_df = split_periods(df, range_key, now)
    top = group_by_key(current_df, "artist_name").head(limit).copy()

    if previous_df is None:
        top["previous_plays"] = None
        top["change"] = None
        return top

    previous_counts = previous_df.groupby("artist_name").size()
    top["previous_plays"] = top["artist_name"].map(previous_counts).fillna(0).astype(int)
    top["change"] = [percent_change(p, prev) for p, prev in zip(top["plays"], top["previous_plays"])]
    return top


def featured_artists(df: pd.DataFrame, limit: int = 20) -> pd.DataFrame:
    """
    Rank secondary artists from the comma-separated featured_artists field.

    Returns:
        DataFrame with featured_artist, plays, unique_tracks, image and size.
        The image is borrowed from plays where the artist is the primary one.
    """
    featured = df[df["featured_artists"].notna()]
    names = featured["featured_artists"].astype(str).str.split(",")
    rows = featured.assign(featured_artist=names).explode("featured_artist")
    rows["featured_artist"] = rows["featured_artist"].astype(str).str.strip()
    rows = rows[rows["featured_artist"] != ""]

    top = group_by_key(rows, "featured_artist", unique={"unique_tracks": "track_name"}).head(limit).copy()

    with_image = chronological(df)
    with_image = with_image[with_image["artist_image_url"] != ""].drop_duplicates("artist_name")
    images = with_image.set_index("artist_name")["artist_image_url"]

    top["image"] = top["featured_artist"].map(images)
    top["size"] = _cloud_sizes(top["plays"])
    return top


def repeat_ratio(df: pd.DataFrame, mode: str = "songs") -> dict:
    """
    How much of the listening goes to things already played in the window.

    Args:
        df: Listening history DataFrame.
        mode: 'songs' (track and artist) or 'artists'.

    Returns:
        Dictionary with repeat ratio, exploration rate (share of items played
        once), familiarity rate and the five most repeated items.
    """
    if mode not in ("songs", "artists"):
        raise ValueError(f"Unknown mode '{mode}' (expected 'songs' or 'artists')")

    keys = TRACK_KEY if mode == "songs" else ["artist_name"]
    counts = group_by_key(df, keys)
    total_plays = len(df)

    if total_plays == 0:
        return {
            "repeat_ratio": None,
            "unique_items": 0,
            "total_plays": 0,
            "repeat_plays": 0,
            "top_repeats": [],
            "exploration_rate": None,
            "familiarity_rate": None,
        }

    unique_items = len(counts)
    repeat_plays = total_plays - unique_items
    single_plays = int((counts["plays"] == 1).sum())
    exploration = single_plays / unique_items * 100

    top_repeats = []
    for _, row in counts[counts["plays"] > 1].head(5).iterrows():
        if mode == "songs":
            top_repeats.append({"name": row["track_name"], "subtitle": row["artist_name"], "count": int(row["plays"])})
        else:
            top_repeats.append({"name": row["artist_name"], "subtitle": f"{row['plays']} plays", "count": int(row["plays"])})

    return {
        "repeat_ratio": round_half_up(repeat_plays / total_plays * 100, 1),
        "unique_items": unique_items,
        "total_plays": total_plays,
        "repeat_plays": repeat_plays,
        "top_repeats": top_repeats,
        "exploration_rate": round_half_up(exploration, 1),
        "familiarity_rate": round_half_up(100 - exploration, 1),
    }


def track_length_distribution(df: pd.DataFrame) -> dict:
    """Histogram of track lengths with average, median and extremes in seconds."""
    seconds = df["duration_ms"] / 1000
    buckets = bucket_counts(seconds, TRACK_LENGTH_BUCKETS)

    if df.empty:
        return {"buckets": buckets, "avg": None, "median": None, "shortest": None, "longest": None}

    durations = df["duration_ms"].tolist()
    return {
        "buckets": buckets,
        "avg": round_half_up(sum(durations) / len(durations) / 1000),
        "median": round_half_up(upper_median(durations) / 1000),
        "shortest": round_half_up(min(durations) / 1000),
        "longest": round_half_up(max(durations) / 1000),
    }
