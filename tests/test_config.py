"""Tests for environment settings."""

import pandas as pd

from listening_stats.config import get_data_source, get_log_level, get_timezone
from listening_stats.loader import clean_dataframe


def test_defaults(monkeypatch):
    monkeypatch.delenv("LISTENING_TZ", raising=False)
    monkeypatch.delenv("LISTENING_LOG_LEVEL", raising=False)
    monkeypatch.delenv("LISTENING_HISTORY_CSV", raising=False)

    assert get_timezone() == "UTC"
    assert get_log_level() == "INFO"
    assert get_data_source().endswith("spotify_listening_history.csv")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LISTENING_HISTORY_CSV", "https://example.com/history.csv")
    monkeypatch.setenv("LISTENING_LOG_LEVEL", "debug")

    assert get_data_source() == "https://example.com/history.csv"
    assert get_log_level() == "DEBUG"


def test_timezone_from_environment(monkeypatch):
    """Cleaning without an explicit timezone uses LISTENING_TZ."""
    monkeypatch.setenv("LISTENING_TZ", "America/New_York")
    raw = pd.DataFrame([{"played_at": "2024-06-03T02:00:00Z", "track_name": "Song", "artist_name": "A"}])

    row = clean_dataframe(raw).iloc[0]

    assert row["hour"] == 22
    assert row["day_of_week"] == "Sunday"
