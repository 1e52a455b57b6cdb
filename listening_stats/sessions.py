"""Reconstruct listening sessions from gaps between plays."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from listening_stats.aggregation import bucket_counts, chronological, upper_median
from listening_stats.comparison import round_half_up
from listening_stats.config import MARATHON_SESSION_MS, SESSION_DEPTH_BUCKETS, SESSION_GAP_MS


@dataclass(frozen=True)
class Session:
    """A run of plays with no gap longer than SESSION_GAP_MS."""

    start: pd.Timestamp
    end: pd.Timestamp
    duration_ms: int
    artists: frozenset
    events: pd.DataFrame = field(compare=False, repr=False)

    @property
    def track_count(self) -> int:
        return len(self.events)

    @property
    def duration_minutes(self) -> float:
        return self.duration_ms / 60000

    @property
    def is_marathon(self) -> bool:
        return self.duration_ms > MARATHON_SESSION_MS


def segment_sessions(df: pd.DataFrame, gap_ms: int = SESSION_GAP_MS) -> list[Session]:
    """
    Split plays into sessions.

    Plays are sorted by played_at first; a play more than gap_ms after the
    previous one starts a new session.

    Args:
        df: Listening history DataFrame, in any order.
        gap_ms: Inactivity gap that closes a session.

    Returns:
        Sessions in chronological order. No plays gives no sessions.
    """
    if df.empty:
        return []

    ordered = chronological(df).reset_index(drop=True)
    gaps = ordered["played_at"].diff()
    session_ids = (gaps > pd.Timedelta(milliseconds=gap_ms)).cumsum()

    sessions = []
    for _, events in ordered.groupby(session_ids, sort=True):
        events = events.reset_index(drop=True)
        sessions.append(
            Session(
                start=events["played_at"].iloc[0],
                end=events["played_at"].iloc[-1],
                duration_ms=int(events["duration_ms"].sum()),
                artists=frozenset(events["artist_name"].dropna()),
                events=events,
            )
        )

    return sessions


def session_length_histogram(sessions: list[Session], buckets: list[tuple] = SESSION_DEPTH_BUCKETS) -> pd.DataFrame:
    """Count sessions per duration bucket (bounds in minutes)."""
    minutes = pd.Series([s.duration_minutes for s in sessions], dtype=float)
    return bucket_counts(minutes, buckets)


def _most_common_start_hour(sessions: list[Session]) -> Optional[int]:
    hours = Counter(s.start.hour for s in sessions)
    if not hours:
        return None
    # Counter keeps first-seen order, so ties go to the earliest session
    return max(hours, key=hours.get)


def _top_marathon_artist(marathons: list[Session]) -> Optional[str]:
    if not marathons:
        return None
    plays = pd.concat([s.events for s in marathons], ignore_index=True)
    counts = plays.groupby("artist_name", sort=False).size().sort_values(ascending=False, kind="stable")
    return counts.index[0]


def session_summary(df: pd.DataFrame, buckets: list[tuple] = SESSION_DEPTH_BUCKETS) -> dict:
    """
    Session statistics for a set of plays.

    Returns:
        Dictionary with total_sessions, avg/median/longest minutes (None
        without sessions), longest_tracks, marathon_count,
        top_marathon_artist, peak_start_hour and a bucket histogram.
    """
    sessions = segment_sessions(df)
    histogram = session_length_histogram(sessions, buckets)

    if not sessions:
        return {
            "total_sessions": 0,
            "avg_minutes": None,
            "median_minutes": None,
            "longest_minutes": None,
            "longest_tracks": 0,
            "marathon_count": 0,
            "top_marathon_artist": None,
            "peak_start_hour": None,
            "histogram": histogram,
        }

    minutes = [s.duration_minutes for s in sessions]
    longest = max(sessions, key=lambda s: s.duration_ms)
    marathons = [s for s in sessions if s.is_marathon]

    return {
        "total_sessions": len(sessions),
        "avg_minutes": round_half_up(sum(minutes) / len(minutes)),
        "median_minutes": round_half_up(upper_median(minutes)),
        "longest_minutes": round_half_up(longest.duration_minutes),
        "longest_tracks": longest.track_count,
        "marathon_count": len(marathons),
        "top_marathon_artist": _top_marathon_artist(marathons),
        "peak_start_hour": _most_common_start_hour(sessions),
        "histogram": histogram,
    }
