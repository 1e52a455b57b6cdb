"""Chart generation for listening history reports."""

import logging
from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

logger = logging.getLogger(__name__)

ACCENT = "#1DB954"

# Set style
sns.set_theme(style="whitegrid")
plt.rcParams["figure.figsize"] = (12, 6)
plt.rcParams["figure.dpi"] = 100


def ensure_output_dir(output_dir: Path) -> Path:
    """Ensure output directory exists."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def _save(fig, output_dir: Path, name: str) -> Path:
    fig.tight_layout()
    output_path = output_dir / name
    fig.savefig(output_path, bbox_inches="tight")
    plt.close(fig)
    return output_path


def plot_top_artists(df: pd.DataFrame, output_dir: Path, limit: int = 20) -> Optional[Path]:
    """Create bar chart of top artists by play count."""
    if df.empty:
        return None
    output_dir = ensure_output_dir(output_dir)

    data = df.head(limit)
    fig, ax = plt.subplots(figsize=(12, 8))

    colors = sns.color_palette("viridis", len(data))
    bars = ax.barh(range(len(data)), data["plays"], color=colors)
    ax.set_yticks(range(len(data)))
    ax.set_yticklabels(data["artist_name"])
    ax.invert_yaxis()

    ax.set_xlabel("Plays")
    ax.set_title(f"Top {len(data)} Artists")
    ax.set_xlim(left=0)

    for bar, minutes in zip(bars, data["listened_minutes"]):
        ax.text(bar.get_width() + 0.5, bar.get_y() + bar.get_height() / 2,
                f"{minutes:,} min", va="center", fontsize=9)

    return _save(fig, output_dir, "top_artists.png")


def plot_top_tracks(df: pd.DataFrame, output_dir: Path, limit: int = 20) -> Optional[Path]:
    """Create bar chart of top tracks by play count."""
    if df.empty:
        return None
    output_dir = ensure_output_dir(output_dir)

    data = df.head(limit)
    labels = [f"{row['track_name'][:30]} - {row['artist_name'][:20]}"
              for _, row in data.iterrows()]

    fig, ax = plt.subplots(figsize=(12, 8))
    colors = sns.color_palette("magma", len(data))
    ax.barh(range(len(data)), data["plays"], color=colors)
    ax.set_yticks(range(len(data)))
    ax.set_yticklabels(labels)
    ax.invert_yaxis()

    ax.set_xlabel("Plays")
    ax.set_title(f"Top {len(data)} Tracks")
    ax.set_xlim(left=0)

    return _save(fig, output_dir, "top_tracks.png")


def plot_hour_distribution(df: pd.DataFrame, output_dir: Path) -> Path:
    """Create bar chart of plays by hour of day."""
    output_dir = ensure_output_dir(output_dir)

    fig, ax = plt.subplots(figsize=(12, 6))
    colors = sns.color_palette("coolwarm", len(df))
    ax.bar(df["hour"], df["plays"], color=colors)

    ax.set_xlabel("Hour of Day")
    ax.set_ylabel("Plays")
    ax.set_title("When Do You Listen? (Hour of Day)")
    ax.set_xticks(range(0, 24))
    ax.set_ylim(bottom=0)

    return _save(fig, output_dir, "hour_distribution.png")


def plot_day_distribution(df: pd.DataFrame, output_dir: Path) -> Path:
    """Create bar chart of plays by day of week."""
    output_dir = ensure_output_dir(output_dir)

    fig, ax = plt.subplots(figsize=(10, 6))
    colors = sns.color_palette("husl", len(df))
    ax.bar(df["day_of_week"], df["plays"], color=colors)

    ax.set_xlabel("Day of Week")
    ax.set_ylabel("Plays")
    ax.set_title("Listening by Day of Week")
    ax.set_ylim(bottom=0)
    ax.tick_params(axis="x", rotation=45)

    return _save(fig, output_dir, "day_distribution.png")


def plot_heatmap(grid: pd.DataFrame, output_dir: Path) -> Path:
    """Create heatmap of plays (day of week x hour)."""
    output_dir = ensure_output_dir(output_dir)

    fig, ax = plt.subplots(figsize=(14, 6))
    sns.heatmap(grid, cmap="YlGnBu", ax=ax, cbar_kws={"label": "Plays"})

    ax.set_xlabel("Hour of Day")
    ax.set_ylabel("Day of Week")
    ax.set_title("Listening Heatmap (Hour × Day of Week)")

    return _save(fig, output_dir, "listening_heatmap.png")


def plot_session_histogram(histogram: pd.DataFrame, output_dir: Path) -> Path:
    """Create bar chart of session counts per length bucket."""
    output_dir = ensure_output_dir(output_dir)

    fig, ax = plt.subplots(figsize=(10, 6))
    colors = sns.color_palette("crest", len(histogram))
    ax.bar(histogram["label"], histogram["count"], color=colors)

    ax.set_xlabel("Session Length")
    ax.set_ylabel("Sessions")
    ax.set_title("Session Lengths")
    ax.set_ylim(bottom=0)

    return _save(fig, output_dir, "session_lengths.png")


def plot_discovery_timeline(timeline: pd.DataFrame, output_dir: Path) -> Optional[Path]:
    """Create bar chart of new artists per month."""
    if timeline.empty:
        return None
    output_dir = ensure_output_dir(output_dir)

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.bar(timeline["month_key"], timeline["count"], color=ACCENT)

    ax.set_xlabel("Month")
    ax.set_ylabel("New Artists")
    ax.set_title("Artist Discovery")
    ax.set_ylim(bottom=0)

    return _save(fig, output_dir, "discovery_timeline.png")


def plot_velocity(velocity: dict, output_dir: Path) -> Optional[Path]:
    """Create line chart of plays per active day with the average band."""
    daily = velocity["daily"]
    if daily.empty:
        return None
    output_dir = ensure_output_dir(output_dir)

    fig, ax = plt.subplots(figsize=(16, 6))
    x = range(len(daily))
    ax.plot(x, daily["plays"], linewidth=1.5, color=ACCENT)
    ax.fill_between(x, daily["plays"], alpha=0.3, color=ACCENT)
    ax.axhspan(velocity["low_threshold"], velocity["high_threshold"], color="grey", alpha=0.15)

    # Show subset of x-labels
    step = max(1, len(daily) // 20)
    ax.set_xticks(range(0, len(daily), step))
    ax.set_xticklabels([str(d) for d in daily["date"].iloc[::step]], rotation=45, ha="right")

    ax.set_xlabel("Date")
    ax.set_ylabel("Plays")
    ax.set_title(f"Listening Velocity (avg {velocity['avg']} plays per active day)")
    ax.set_ylim(bottom=0)

    return _save(fig, output_dir, "listening_velocity.png")


CHARTS = [
    ("top_artists", plot_top_artists),
    ("top_tracks", plot_top_tracks),
    ("by_hour", plot_hour_distribution),
    ("by_day", plot_day_distribution),
    ("heatmap", plot_heatmap),
    ("session_histogram", plot_session_histogram),
    ("discovery_timeline", plot_discovery_timeline),
    ("velocity", plot_velocity),
]


def generate_all_charts(analysis_results: dict, output_dir: Path) -> list[Path]:
    """Generate a chart for every available analysis result."""
    output_dir = ensure_output_dir(output_dir)
    generated = []

    logger.info("Generating charts in %s", output_dir)

    for key, plot in CHARTS:
        if key not in analysis_results:
            continue
        path = plot(analysis_results[key], output_dir)
        if path is None:
            logger.debug("Skipped %s chart (no data)", key)
            continue
        generated.append(path)
        logger.info("Created %s", path.name)

    return generated
