"""Load and clean listening history exported as CSV."""

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from listening_stats.config import CSV_COLUMNS, get_data_source, get_timezone

logger = logging.getLogger(__name__)

TEXT_DEFAULTS = {
    "track_name": "Unknown Track",
    "artist_name": "Unknown Artist",
    "album_name": "Unknown Album",
    "artist_image_url": "",
    "album_image_url": "",
}
OPTIONAL_COLUMNS = ["featured_artists", "album_release_year", "genres"]


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def load_listening_history(
    source: Optional[str | Path] = None,
    tz: Optional[str] = None,
) -> pd.DataFrame:
    """
    Load the listening history CSV and return a cleaned DataFrame.

    Args:
        source: Local path or http(s) URL of the CSV. Defaults to the
                LISTENING_HISTORY_CSV setting.
        tz: Timezone for derived calendar columns. Defaults to LISTENING_TZ.

    Returns:
        DataFrame with one row per valid play, sorted by played_at.
    """
    source = str(source) if source is not None else get_data_source()

    if not _is_url(source) and not Path(source).exists():
        raise FileNotFoundError(f"Listening history not found: {source}")

    try:
        raw = pd.read_csv(source)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Listening history is empty: {source}") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValueError(f"Could not parse {source}: {e}") from e

    if "played_at" not in raw.columns:
        raise ValueError(f"{source} has no played_at column")

    logger.info("Read %d rows from %s", len(raw), source)
    return clean_dataframe(raw, tz=tz)


def _fill_text(series: pd.Series, default: str) -> pd.Series:
    text = series.astype(object).where(series.notna(), "").astype(str).str.strip()
    return text.where(text != "", default)


def clean_dataframe(df: pd.DataFrame, tz: Optional[str] = None) -> pd.DataFrame:
    """Drop invalid plays, apply field defaults and add calendar columns."""
    tz = tz or get_timezone()
    df = df.copy()

    for column in CSV_COLUMNS:
        if column not in df.columns:
            df[column] = None

    played_at = pd.to_datetime(df["played_at"], utc=True, errors="coerce", format="ISO8601")
    valid = played_at.notna()
    dropped = int((~valid).sum())
    if dropped:
        logger.info("Dropped %d rows without a valid played_at", dropped)

    df = df.loc[valid].copy()
    df["played_at"] = played_at[valid].dt.tz_convert(tz)

    for column, default in TEXT_DEFAULTS.items():
        df[column] = _fill_text(df[column], default)

    for column in OPTIONAL_COLUMNS:
        blank = df[column].isna() | (df[column].astype(str).str.strip() == "")
        df[column] = df[column].astype(object).where(~blank, None)

    df["duration_ms"] = (
        pd.to_numeric(df["duration_ms"], errors="coerce").fillna(0).clip(lower=0).astype("int64")
    )

    # Calendar columns in the display timezone
    local = df["played_at"]
    df["date"] = local.dt.date
    df["year"] = local.dt.year
    df["month"] = local.dt.month
    df["year_month"] = local.dt.strftime("%Y-%m")
    df["hour"] = local.dt.hour
    df["minute"] = local.dt.minute
    df["weekday"] = local.dt.dayofweek
    df["day_of_week"] = local.dt.day_name()
    df["slot"] = df["hour"] * 2 + (df["minute"] >= 30).astype(int)

    df["minutes_played"] = df["duration_ms"] / 60000
    df["hours_played"] = df["duration_ms"] / 3600000

    df = df.sort_values("played_at", kind="stable").reset_index(drop=True)

    return df


def empty_history(tz: Optional[str] = None) -> pd.DataFrame:
    """An empty, fully-typed listening history."""
    return clean_dataframe(pd.DataFrame(columns=CSV_COLUMNS), tz=tz)


def get_data_summary(df: pd.DataFrame) -> dict:
    """Get a summary of the loaded data."""
    summary = {
        "total_plays": len(df),
        "total_hours": float(df["hours_played"].sum()) if len(df) else 0.0,
        "unique_tracks": df[["track_name", "artist_name"]].drop_duplicates().shape[0],
        "unique_artists": df["artist_name"].nunique(),
        "unique_albums": df["album_name"].nunique(),
        "date_range": None,
    }

    if len(df) > 0:
        summary["date_range"] = (df["played_at"].min(), df["played_at"].max())

    return summary
