#!/usr/bin/env python3
"""
Listening History Analyzer

Print listening statistics for a time range and optionally export charts.

Usage:
    python analyze.py summary                      # Overall stats
    python analyze.py top-artists [--limit N]      # Top artists with change vs previous period
    python analyze.py top-tracks [--limit N]       # Top tracks with rank movement
    python analyze.py top-albums [--limit N]       # Top albums
    python analyze.py sessions                     # Listening sessions
    python analyze.py discovery                    # New artists and tracks
    python analyze.py consistency                  # Consistency, variance and streaks
    python analyze.py velocity                     # Plays per active day
    python analyze.py time-of-day                  # When you listen
    python analyze.py all                          # Everything, with charts

Every command accepts --range (7d, 1m, 3m, 6m, 1y, all).
"""

import argparse
import logging
import sys
from pathlib import Path

from listening_stats import aggregation, discovery, sessions, summaries, temporal, visualize
from listening_stats.comparison import listening_stats
from listening_stats.config import DEFAULT_RANGE, TIME_RANGES, get_log_level
from listening_stats.loader import get_data_summary, load_listening_history
from listening_stats.timerange import range_label, resolve_now, split_periods

logger = logging.getLogger("analyze")


def format_change(change) -> str:
    """Format a percent change as +N% / -N%, or n/a when there is none."""
    if change is None:
        return "n/a"
    return f"{change:+}%"


def print_header(title: str):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60 + "\n")


def print_summary(df, range_key, now):
    """Print headline numbers for the range and overall totals."""
    stats = listening_stats(df, range_key, now)
    overall = summaries.generate_summary_stats(df, now)

    print_header(f"LISTENING SUMMARY ({range_label(range_key).upper()})")

    print(f"Listening Time:  {stats['listening_hours']}h {stats['listening_minutes']}m  ({format_change(stats['time_change'])})")
    print(f"Tracks Played:   {stats['total_tracks']:,}  ({format_change(stats['tracks_change'])})")
    print(f"Unique Artists:  {stats['unique_artists']:,}  ({format_change(stats['artists_change'])})")
    print(f"Diversity Score: {stats['diversity_score']}  ({format_change(stats['diversity_change'])})")

    print("\nAll Time:")
    if "first_play" in overall:
        print(f"  Date Range: {overall['first_play']:%Y-%m-%d} to {overall['last_play']:%Y-%m-%d}")
    print(f"  Total Plays: {overall['total_plays']:,}")
    print(f"  Unique Tracks: {overall['unique_tracks']:,}")
    print(f"  Unique Albums: {overall['unique_albums']:,}")
    print(f"  Listening Days: {overall['total_listening_days']:,}")
    print(f"  Longest Streak: {overall['longest_streak']} consecutive days")
    print(f"  Current Streak: {overall['current_streak']} days")

    print()


def print_top_artists(df, range_key, now, limit=10):
    """Print top artists with their change versus the previous period."""
    artists = aggregation.compare_top_artists(df, range_key, limit=limit, now=now)

    print_header(f"TOP {limit} ARTISTS ({range_label(range_key).upper()})")

    for i, row in artists.iterrows():
        print(f"{i+1:2}. {row['artist_name'][:40]:<40} {row['plays']:>6,} plays  {format_change(row['change']):>7}")

    print()


def print_top_tracks(df, range_key, now, limit=20):
    """Print top tracks with rank movement."""
    current, previous = split_periods(df, range_key, now)
    tracks = aggregation.top_tracks(current, limit=limit, previous=previous)

    print_header(f"TOP {limit} TRACKS ({range_label(range_key).upper()})")

    arrows = {"up": "^", "down": "v", "same": "=", "new": "*"}
    for _, row in tracks.iterrows():
        track_artist = f"{row['track_name'][:30]} - {row['artist_name'][:20]}"
        movement = ""
        if "movement" in row:
            movement = f"{arrows[row['movement']]}{row['movement_value'] or ''}"
        print(f"{row['rank']:2}. {track_artist:<52} {row['plays']:>5,}  {movement}")

    print()


def print_top_albums(df, range_key, now, limit=20):
    """Print top albums."""
    current, previous = split_periods(df, range_key, now)
    albums = aggregation.top_albums(current, limit=limit, previous=previous)

    print_header(f"TOP {limit} ALBUMS ({range_label(range_key).upper()})")

    for i, row in albums.iterrows():
        album_artist = f"{row['album_name'][:30]} - {row['artist_name'][:20]}"
        change = "new" if row.get("is_new") else format_change(row.get("change"))
        print(f"{i+1:2}. {album_artist:<52} {row['plays']:>5,}  {change}")

    print()


def print_sessions(df):
    """Print session statistics."""
    stats = sessions.session_summary(df)

    print_header("LISTENING SESSIONS")

    if stats["total_sessions"] == 0:
        print("No sessions in this range.\n")
        return

    print(f"Sessions: {stats['total_sessions']:,}")
    print(f"Average Length: {stats['avg_minutes']} min")
    print(f"Median Length: {stats['median_minutes']} min")
    print(f"Longest: {stats['longest_minutes']} min ({stats['longest_tracks']} tracks)")
    print(f"Marathons (2h+): {stats['marathon_count']}")
    if stats["top_marathon_artist"]:
        print(f"Marathon Favourite: {stats['top_marathon_artist']}")
    print(f"Usual Start: {temporal.format_hour(stats['peak_start_hour'])}")

    print()
    histogram = stats["histogram"]
    for _, row in histogram.iterrows():
        bar = "#" * int(row["count"] / max(histogram["count"].max(), 1) * 30)
        print(f"{row['label']:<10} {row['count']:>5}  {bar}")

    print()


def print_discovery(df, now):
    """Print discovery rate for artists and tracks."""
    print_header("DISCOVERY")

    for entity in ("artists", "tracks"):
        rate = discovery.discovery_rate(df, entity, now)
        print(f"{entity.title()}: {rate['total_items']:,} discovered")
        if rate["daily_rate"] is not None:
            print(f"  Per Day: {rate['daily_rate']}")
        print(f"  Last 30 Days: {rate['last_30']}  (previous 30: {rate['previous_30']}, {format_change(rate['trend'])})")
        for _, row in rate["timeline"].iterrows():
            print(f"    {row['month_key']}  {row['count']:>4}")

    cards = discovery.artist_stats_cards(df, now)
    print(f"\nTop Artist This Week: {cards['top_artist_week'] or 'N/A'} ({cards['week_streak']} week streak)")
    print(f"Top Artist This Month: {cards['top_artist_month'] or 'N/A'} ({cards['month_streak']} month streak)")
    print(f"New Artists per Week: {cards['avg_new_artists_per_week']}")

    print()


def print_consistency(df, now):
    """Print consistency, variance and the recent activity grid."""
    stats = summaries.consistency_variance(df, now)

    print_header("CONSISTENCY")

    if stats["consistency"] is None:
        print("No listening days in this range.\n")
        return

    print(f"Consistency: {stats['consistency']}% ({stats['active_days']} of {stats['total_days']} days)")
    print(f"Variance (CV): {stats['variance']}%")
    print(f"Average Plays per Active Day: {stats['avg_plays_per_day']}")
    print(f"Current Streak: {stats['current_streak']} days")

    print("\nLast 7 weeks:")
    for week in stats["weeks"]:
        print("  " + " ".join("#" if day["count"] else "." for day in week))

    print()


def print_velocity(df):
    """Print plays per active day and the recent trend."""
    velocity = summaries.listening_velocity(df)

    print_header("LISTENING VELOCITY")

    if velocity["avg"] is None:
        print("No listening days in this range.\n")
        return

    print(f"Average: {velocity['avg']} plays per active day")
    print(f"Range: {velocity['min']} - {velocity['max']}")
    print(f"Trend: {format_change(velocity['trend'])} ({velocity['trend_direction']})")

    print()


def print_time_of_day(df, previous):
    """Print time-of-day and day-of-week listening patterns."""
    by_hour = temporal.plays_by_hour(df)
    by_day = temporal.plays_by_weekday(df)
    periods = temporal.time_of_day_distribution(df, previous)

    print_header("LISTENING BY TIME OF DAY")

    if len(df) == 0:
        print("No plays in this range.\n")
        return

    peak_hour = by_hour.loc[by_hour["plays"].idxmax()]
    print(f"Peak Hour: {temporal.format_hour(int(peak_hour['hour']))} ({peak_hour['plays']:,} plays)")

    print("\nTime of Day Breakdown:")
    for _, row in periods.iterrows():
        change = f"  {format_change(row['percent_change'])}" if "percent_change" in row else ""
        print(f"  {row['period']:<10} {row['plays']:>6,} ({row['share']:>5.1f}%){change}")

    print("\n" + "-" * 40)
    print("LISTENING BY DAY OF WEEK")
    print("-" * 40 + "\n")

    for _, row in by_day.iterrows():
        bar_len = int(row["plays"] / max(by_day["plays"].max(), 1) * 30)
        bar = "#" * bar_len
        print(f"{row['day_of_week']:<10} {row['plays']:>6,}  {bar}")

    print()


def run_all(df, range_key, now, output_dir: Path, limit: int):
    """Run all analyses and generate charts."""
    current, previous = split_periods(df, range_key, now)

    print_summary(df, range_key, now)
    print_top_artists(df, range_key, now, limit=limit)
    print_top_tracks(df, range_key, now, limit=limit)
    print_top_albums(df, range_key, now, limit=limit)
    print_sessions(current)
    print_discovery(df, now)
    print_consistency(current, now)
    print_velocity(current)
    print_time_of_day(current, previous)

    # Gather analysis results for charts
    analysis_results = {
        "top_artists": aggregation.top_artists(current, limit=limit),
        "top_tracks": aggregation.top_tracks(current, limit=limit),
        "by_hour": temporal.plays_by_hour(current),
        "by_day": temporal.plays_by_weekday(current),
        "heatmap": temporal.listening_heatmap(current),
        "session_histogram": sessions.session_summary(current)["histogram"],
        "discovery_timeline": discovery.discovery_rate(df, "artists", now)["timeline"],
        "velocity": summaries.listening_velocity(current),
    }

    charts = visualize.generate_all_charts(analysis_results, output_dir)

    print(f"\n{len(charts)} charts saved to {output_dir}/")


def main():
    parser = argparse.ArgumentParser(
        description="Analyze listening history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "command",
        choices=["summary", "top-artists", "top-tracks", "top-albums", "sessions",
                 "discovery", "consistency", "velocity", "time-of-day", "all"],
        help="Analysis command to run"
    )
    parser.add_argument(
        "--range", "-r",
        dest="range_key",
        choices=list(TIME_RANGES),
        default=DEFAULT_RANGE,
        help=f"Time range to analyze (default: {DEFAULT_RANGE})"
    )
    parser.add_argument(
        "--limit", "-n",
        type=int,
        default=20,
        help="Number of results to show (default: 20)"
    )
    parser.add_argument(
        "--csv",
        default=None,
        help="Path or URL of the listening history CSV (default: $LISTENING_HISTORY_CSV)"
    )
    parser.add_argument(
        "--tz",
        default=None,
        help="Timezone for dates and hours (default: $LISTENING_TZ or UTC)"
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path(__file__).parent / "output",
        help="Directory for chart output (default: ./output)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Load data
    logger.info("Loading listening history...")
    try:
        df = load_listening_history(args.csv, tz=args.tz)
        summary = get_data_summary(df)
        logger.info("Loaded %s plays from %s artists", f"{summary['total_plays']:,}", f"{summary['unique_artists']:,}")
    except FileNotFoundError as e:
        logger.error("%s", e)
        print("\nSet LISTENING_HISTORY_CSV or pass --csv with the path to your export.")
        sys.exit(1)
    except ValueError as e:
        logger.error("Error loading data: %s", e)
        sys.exit(1)

    now = resolve_now()
    current, previous = split_periods(df, args.range_key, now)

    # Run requested analysis
    if args.command == "summary":
        print_summary(df, args.range_key, now)
    elif args.command == "top-artists":
        print_top_artists(df, args.range_key, now, args.limit)
    elif args.command == "top-tracks":
        print_top_tracks(df, args.range_key, now, args.limit)
    elif args.command == "top-albums":
        print_top_albums(df, args.range_key, now, args.limit)
    elif args.command == "sessions":
        print_sessions(current)
    elif args.command == "discovery":
        print_discovery(df, now)
    elif args.command == "consistency":
        print_consistency(current, now)
    elif args.command == "velocity":
        print_velocity(current)
    elif args.command == "time-of-day":
        print_time_of_day(current, previous)
    elif args.command == "all":
        run_all(df, args.range_key, now, args.output_dir, args.limit)


if __name__ == "__main__":
    main()
