"""Constants and environment settings for listening-history analysis."""

import os
from pathlib import Path

# Session segmentation
SESSION_GAP_MS = 20 * 60 * 1000
MARATHON_SESSION_MS = 2 * 60 * 60 * 1000

# Share of track length assumed to be actually listened to (net of skips)
ENGAGEMENT_FACTOR = 0.95

# Used for per-day listening minutes when a play has no duration
FALLBACK_DURATION_MS = 180000

# Lookback windows selectable in the dashboard. None means unbounded.
TIME_RANGES = {
    "7d": {"label": "Last 7 Days", "days": 7, "weeks": 1},
    "1m": {"label": "Last Month", "days": 30, "weeks": 4},
    "3m": {"label": "3 Months", "days": 90, "weeks": 12},
    "6m": {"label": "6 Months", "days": 180, "weeks": 26},
    "1y": {"label": "1 Year", "days": 365, "weeks": 52},
    "all": {"label": "All Time", "days": None, "weeks": None},
}
DEFAULT_RANGE = "1m"

DAY_ORDER = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKEND_DAYS = {5, 6}

# (name, start hour, end hour); Night wraps across midnight
TIME_OF_DAY_PERIODS = [
    ("Morning", 6, 12),
    ("Afternoon", 12, 18),
    ("Evening", 18, 22),
    ("Night", 22, 6),
]

# Four-hour windows for the weekday/weekend radar. Boundary hours are shared
# between neighbouring windows.
RADAR_WINDOWS = [
    ("Late Night (12-3AM)", [0, 1, 2, 3]),
    ("Early Morning (3-6AM)", [3, 4, 5, 6]),
    ("Morning (6-9AM)", [6, 7, 8, 9]),
    ("Late Morning (9-12PM)", [9, 10, 11, 12]),
    ("Afternoon (12-3PM)", [12, 13, 14, 15]),
    ("Late Afternoon (3-6PM)", [15, 16, 17, 18]),
    ("Evening (6-9PM)", [18, 19, 20, 21]),
    ("Night (9PM-12AM)", [21, 22, 23, 0]),
]

# Bucket tables: (label, lower bound inclusive, upper bound exclusive)
SESSION_DEPTH_BUCKETS = [
    ("<15min", 0, 15),
    ("15-30min", 15, 30),
    ("30-60min", 30, 60),
    ("1-2hrs", 60, 120),
    ("2hrs+", 120, float("inf")),
]
SESSION_LENGTH_BUCKETS = [
    ("<15m", 0, 15),
    ("15-30m", 15, 30),
    ("30-60m", 30, 60),
    ("1-2h", 60, 120),
    ("2-4h", 120, 240),
    (">4h", 240, float("inf")),
]
TRACK_LENGTH_BUCKETS = [
    ("<2m", 0, 120),
    ("2-3m", 120, 180),
    ("3-4m", 180, 240),
    ("4-5m", 240, 300),
    ("5-6m", 300, 360),
    (">6m", 360, float("inf")),
]

DISCOVERY_WINDOW_DAYS = 30
DISCOVERY_TIMELINE_MONTHS = 6
STREAK_PERIODS = 12

CSV_COLUMNS = [
    "played_at",
    "track_name",
    "artist_name",
    "artist_image_url",
    "album_name",
    "duration_ms",
    "album_image_url",
    "featured_artists",
    "album_release_year",
    "genres",
]

PROJECT_ROOT = Path(__file__).parent.parent


def get_data_source() -> str:
    """Path or URL of the listening history CSV."""
    default = PROJECT_ROOT / "data" / "spotify_listening_history.csv"
    return os.environ.get("LISTENING_HISTORY_CSV", str(default))


def get_timezone() -> str:
    """Timezone used for calendar dates, hours and weekdays."""
    return os.environ.get("LISTENING_TZ", "UTC")


def get_log_level() -> str:
    return os.environ.get("LISTENING_LOG_LEVEL", "INFO").upper()
