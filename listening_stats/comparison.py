"""Period-over-period comparison of listening metrics."""

import math
from typing import Optional

import pandas as pd

from listening_stats.config import ENGAGEMENT_FACTOR
from listening_stats.timerange import range_label, split_periods


def round_half_up(value: float, digits: int = 0):
    """Round halves towards positive infinity; returns an int when digits is 0."""
    scale = 10 ** digits
    rounded = math.floor(value * scale + 0.5) / scale
    return int(rounded) if digits == 0 else rounded


def percent_change(current: float, previous: float, digits: int = 0):
    """
    Percentage change from previous to current.

    A zero previous value yields 100 when current is positive and 0
    otherwise, never an infinite or undefined change.
    """
    if previous == 0:
        return 100 if current > 0 else 0
    return round_half_up((current - previous) / previous * 100, digits)


def diversity_score(df: pd.DataFrame) -> int:
    """Unique artists per 100 plays, 0 for no plays."""
    if len(df) == 0:
        return 0
    return round_half_up(df["artist_name"].nunique() / len(df) * 100)


def estimated_listening_ms(df: pd.DataFrame) -> float:
    """Summed track length scaled by the engagement factor."""
    return float(df["duration_ms"].sum()) * ENGAGEMENT_FACTOR


def period_metrics(df: pd.DataFrame) -> dict:
    """Headline metrics for one period."""
    # whole hours plus leftover minutes, so 90 minutes reads 1h 30m
    hours, minutes = divmod(round_half_up(estimated_listening_ms(df) / 60000), 60)
    return {
        "total_tracks": len(df),
        "listening_hours": hours,
        "listening_minutes": minutes,
        "unique_artists": df["artist_name"].nunique(),
        "diversity_score": diversity_score(df),
    }


def compare_metrics(current: dict, previous: Optional[dict], keys: Optional[list[str]] = None) -> dict:
    """
    Percent change for each metric present in both periods.

    Args:
        current: Metric values for the current period.
        previous: Metric values for the previous period, or None when no
                  previous period exists.
        keys: Metrics to compare. Defaults to every key in current.

    Returns:
        Dictionary of metric -> change (None when there is nothing to compare).
    """
    keys = keys or list(current)
    if previous is None:
        return {key: None for key in keys}
    return {key: percent_change(current[key], previous[key]) for key in keys}


def listening_stats(df: pd.DataFrame, range_key: str = "1m", now=None) -> dict:
    """
    Overview cards for the selected window with changes versus the
    previous window of the same length.
    """
    current_df, previous_df = split_periods(df, range_key, now)
    current = period_metrics(current_df)
    previous = period_metrics(previous_df) if previous_df is not None else None

    changes = compare_metrics(
        current,
        previous,
        keys=["listening_hours", "total_tracks", "unique_artists", "diversity_score"],
    )

    return {
        **current,
        "time_change": changes["listening_hours"],
        "tracks_change": changes["total_tracks"],
        "artists_change": changes["unique_artists"],
        "diversity_change": changes["diversity_score"],
        "previous": previous,
        "period_label": range_label(range_key),
    }


def period_totals(current: pd.DataFrame, previous: Optional[pd.DataFrame]) -> dict:
    """Play totals of two periods and their percent change."""
    previous_total = len(previous) if previous is not None else None
    return {
        "current": len(current),
        "previous": previous_total,
        "change": percent_change(len(current), previous_total) if previous_total is not None else None,
    }
