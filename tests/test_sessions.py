"""Tests for session segmentation."""

import pandas as pd

from listening_stats.sessions import segment_sessions, session_length_histogram, session_summary


def test_gap_splits_sessions(make_history):
    """A 10-minute gap keeps a session, a 25-minute gap starts a new one."""
    df = make_history([
        ("2024-01-01T10:00:00Z", "A", "One"),
        ("2024-01-01T10:10:00Z", "A", "Two"),
        ("2024-01-01T10:35:00Z", "B", "Three"),
    ])

    sessions = segment_sessions(df)

    assert len(sessions) == 2
    assert [s.track_count for s in sessions] == [2, 1]
    assert sessions[0].artists == frozenset({"A"})
    assert sessions[1].start == pd.Timestamp("2024-01-01T10:35:00Z")


def test_exact_gap_stays_in_session(make_history):
    """Only gaps strictly longer than 20 minutes split."""
    exact = make_history([
        ("2024-01-01T10:00:00Z", "A", "One"),
        ("2024-01-01T10:20:00Z", "A", "Two"),
    ])
    over = make_history([
        ("2024-01-01T10:00:00Z", "A", "One"),
        ("2024-01-01T10:20:00.001Z", "A", "Two"),
    ])

    assert len(segment_sessions(exact)) == 1
    assert len(segment_sessions(over)) == 2


def test_input_order_does_not_matter(make_history):
    df = make_history([
        ("2024-01-01T08:00:00Z", "A", "One"),
        ("2024-01-01T08:05:00Z", "A", "Two"),
        ("2024-01-01T09:00:00Z", "B", "Three"),
        ("2024-01-01T09:10:00Z", "B", "Four"),
        ("2024-01-02T09:10:00Z", "C", "Five"),
    ])
    shuffled = df.sample(frac=1, random_state=7)

    expected = [(s.start, s.track_count) for s in segment_sessions(df)]

    assert [(s.start, s.track_count) for s in segment_sessions(shuffled)] == expected


def test_single_and_empty(make_history):
    """One play is one session; no plays is no sessions."""
    assert len(segment_sessions(make_history([("2024-01-01T10:00:00Z", "A", "One")]))) == 1
    assert segment_sessions(make_history([])) == []


def test_session_summary(make_history):
    df = make_history([
        ("2024-01-01T10:00:00Z", "A", "One"),
        ("2024-01-01T10:10:00Z", "A", "Two"),
        ("2024-01-01T10:35:00Z", "B", "Three"),
    ])

    summary = session_summary(df)

    assert summary["total_sessions"] == 2
    assert summary["avg_minutes"] == 5
    assert summary["median_minutes"] == 6
    assert summary["longest_minutes"] == 6
    assert summary["longest_tracks"] == 2
    assert summary["marathon_count"] == 0
    assert summary["top_marathon_artist"] is None
    assert summary["peak_start_hour"] == 10
    assert summary["histogram"].set_index("label").loc["<15min", "count"] == 2


def test_marathon_sessions(make_history):
    """Sessions longer than two hours count as marathons."""
    start = pd.Timestamp("2024-01-01T20:00:00Z")
    plays = [(start + pd.Timedelta(minutes=10 * i), "Long Player", f"Track {i}", 30 * 60 * 1000) for i in range(5)]
    plays.append((start + pd.Timedelta(minutes=45), "Guest", "Interlude", 60000))
    df = make_history(plays)

    summary = session_summary(df)

    assert summary["total_sessions"] == 1
    assert summary["marathon_count"] == 1
    assert summary["top_marathon_artist"] == "Long Player"
    assert summary["histogram"].set_index("label").loc["2hrs+", "count"] == 1


def test_empty_summary(make_history):
    summary = session_summary(make_history([]))

    assert summary["total_sessions"] == 0
    assert summary["avg_minutes"] is None
    assert summary["peak_start_hour"] is None
    assert summary["histogram"]["count"].sum() == 0
    assert session_length_histogram([])["count"].tolist() == [0, 0, 0, 0, 0]
