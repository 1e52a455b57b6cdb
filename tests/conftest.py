"""Shared fixtures for listening_stats tests."""

import pandas as pd
import pytest

from listening_stats.loader import clean_dataframe


@pytest.fixture
def now():
    return pd.Timestamp("2024-06-15T12:00:00Z")


@pytest.fixture
def make_history():
    """
    Build a cleaned history from plays given as dicts or as
    (played_at, artist, track[, duration_ms]) tuples.
    """
    def _make(plays, tz="UTC"):
        rows = []
        for play in plays:
            if isinstance(play, dict):
                rows.append(dict(play))
                continue
            played_at, artist, track, *rest = play
            rows.append({
                "played_at": played_at,
                "artist_name": artist,
                "track_name": track,
                "album_name": f"{artist} Album",
                "duration_ms": rest[0] if rest else 180000,
            })
        return clean_dataframe(pd.DataFrame(rows), tz=tz)

    return _make
