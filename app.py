#!/usr/bin/env python3
"""
Listening History Dashboard - Streamlit App

Interactive web app for exploring personal listening history.

Usage:
    streamlit run app.py
"""

import logging

import altair as alt
import pandas as pd
import streamlit as st

from listening_stats import aggregation, discovery, sessions, summaries, temporal
from listening_stats.comparison import listening_stats, period_totals
from listening_stats.config import DEFAULT_RANGE, SESSION_LENGTH_BUCKETS, TIME_RANGES, get_data_source, get_log_level
from listening_stats.loader import empty_history, get_data_summary, load_listening_history
from listening_stats.timerange import range_label, resolve_now, split_periods

logging.basicConfig(level=get_log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("app")


st.set_page_config(
    page_title="Listening Stats",
    page_icon="🎵",
    layout="wide",
)


def format_change(change) -> str:
    """Format a percent change for st.metric deltas."""
    if change is None:
        return None
    return f"{change:+}%"


def create_bar_chart(data: pd.Series, x_title: str = "Category", y_title: str = "Plays") -> alt.Chart:
    """Create a bar chart with y-axis starting at 0."""
    chart_df = data.reset_index()
    chart_df.columns = ["category", "value"]
    return alt.Chart(chart_df).mark_bar().encode(
        x=alt.X("category:N", sort=None, title=x_title),
        y=alt.Y("value:Q", scale=alt.Scale(domain=[0, max(chart_df["value"].max(), 1) * 1.1]), title=y_title)
    ).properties(height=400)


def create_line_chart(data: pd.Series, x_title: str = "Period", y_title: str = "Plays") -> alt.Chart:
    """Create a line chart with y-axis starting at 0."""
    chart_df = data.reset_index()
    chart_df.columns = ["period", "value"]
    return alt.Chart(chart_df).mark_line(point=True).encode(
        x=alt.X("period:N", sort=None, title=x_title),
        y=alt.Y("value:Q", scale=alt.Scale(domain=[0, max(chart_df["value"].max(), 1) * 1.1]), title=y_title)
    ).properties(height=400)


def create_heatmap(grid: pd.DataFrame, x_title: str, y_title: str = "Day of Week") -> alt.Chart:
    """Create a heatmap from a grid of play counts."""
    chart_df = grid.reset_index(names="day").melt(id_vars="day", var_name="column", value_name="value")
    return alt.Chart(chart_df).mark_rect().encode(
        x=alt.X("column:O", title=x_title),
        y=alt.Y("day:N", sort=list(grid.index), title=y_title),
        color=alt.Color("value:Q", scale=alt.Scale(scheme="greens"), title="Plays"),
        tooltip=["day", "column", "value"],
    ).properties(height=300)


def artist_weeks_long(table: pd.DataFrame, value_name: str) -> pd.DataFrame:
    """Flatten a weeks-by-artists frame into week, artist, value rows."""
    return pd.DataFrame(
        [(week, artist, value) for week, row in table.iterrows() for artist, value in row.items()],
        columns=["week", "artist", value_name],
    )


# Sidebar - Data Source Selection
st.sidebar.title("Listening Stats")
st.sidebar.markdown("---")

data_source = st.sidebar.text_input("Listening history CSV (path or URL):", value=get_data_source())

if st.sidebar.button("Reload Data"):
    st.session_state.pop("df", None)
    st.session_state.pop("summary", None)

# Load data
if "df" not in st.session_state:
    try:
        with st.spinner("Loading listening history..."):
            st.session_state.df = load_listening_history(data_source)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Could not load %s: %s", data_source, e)
        st.error(f"Error loading data: {e}")
        st.session_state.df = empty_history()
    st.session_state.summary = get_data_summary(st.session_state.df)

df = st.session_state.df
summary = st.session_state.summary

# Time range selector
st.sidebar.markdown("---")
range_key = st.sidebar.selectbox(
    "Time range",
    options=list(TIME_RANGES),
    index=list(TIME_RANGES).index(DEFAULT_RANGE),
    format_func=range_label,
)

now = resolve_now()
current_df, previous_df = split_periods(df, range_key, now)

# Display data summary in sidebar
st.sidebar.markdown("---")
st.sidebar.subheader("Loaded Data")
st.sidebar.metric("Total Plays", f"{summary['total_plays']:,}")
st.sidebar.metric("Unique Artists", f"{summary['unique_artists']:,}")
if summary["date_range"]:
    start, end = summary["date_range"]
    st.sidebar.text(f"{start.strftime('%Y-%m-%d')} to {end.strftime('%Y-%m-%d')}")

# Navigation
st.sidebar.markdown("---")
page = st.sidebar.radio(
    "Navigation",
    [
        "Summary",
        "Artists",
        "Tracks & Albums",
        "Temporal",
        "Behavioral",
        "Patterns",
    ]
)


# Page: Summary
if page == "Summary":
    st.title("Listening Summary")
    st.caption(range_label(range_key))

    stats = listening_stats(df, range_key, now)

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Listening Time", f"{stats['listening_hours']}h {stats['listening_minutes']}m",
                  delta=format_change(stats["time_change"]))
    with col2:
        st.metric("Tracks Played", f"{stats['total_tracks']:,}", delta=format_change(stats["tracks_change"]))
    with col3:
        st.metric("Unique Artists", f"{stats['unique_artists']:,}", delta=format_change(stats["artists_change"]))
    with col4:
        st.metric("Diversity Score", stats["diversity_score"], delta=format_change(stats["diversity_change"]))

    st.markdown("---")

    recent = temporal.recent_plays(df, limit=15, now=now)
    st.subheader("Recently Played")
    if recent.empty:
        st.info("No plays yet.")
    else:
        st.dataframe(
            recent[["track_name", "artist_name", "ago", "plays_today", "artist_share_today"]].rename(
                columns={"track_name": "Track", "artist_name": "Artist", "ago": "When",
                         "plays_today": "Plays Today", "artist_share_today": "Artist % Today"}
            ),
            hide_index=True,
        )

    personality = summaries.listening_personality(current_df)
    if personality:
        st.subheader("Listening Personality")
        cols = st.columns(len(personality))
        for col, trait in zip(cols, personality.values()):
            with col:
                st.metric(trait["type"], f"{trait['score']:.0f}")
                st.caption(trait["description"])


# Page: Artists
elif page == "Artists":
    st.title("Artists")

    cards = discovery.artist_stats_cards(df, now)
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Top Artist This Week", cards["top_artist_week"] or "N/A",
                  delta=f"{cards['week_streak']} week streak" if cards["week_streak"] else None)
    with col2:
        st.metric("Top Artist This Month", cards["top_artist_month"] or "N/A",
                  delta=f"{cards['month_streak']} month streak" if cards["month_streak"] else None)
    with col3:
        st.metric("New Artists / Week", cards["avg_new_artists_per_week"])
    with col4:
        st.metric("Diversity (30 days)", cards["diversity_score"])

    st.markdown("---")
    col_left, col_right = st.columns(2)

    with col_left:
        st.subheader("Top Artists")
        by = st.radio("Rank by", ["plays", "time"], horizontal=True)
        top_artists = aggregation.top_artists(current_df, limit=10, by=by)
        if not top_artists.empty:
            value = "plays" if by == "plays" else "listened_minutes"
            chart_data = top_artists.set_index("artist_name")[value]
            st.altair_chart(create_bar_chart(chart_data, "Artist", value.replace("_", " ").title()),
                            use_container_width=True)

        compared = aggregation.compare_top_artists(df, range_key, limit=10, now=now)
        st.dataframe(
            compared[["artist_name", "plays", "previous_plays", "change"]].rename(
                columns={"artist_name": "Artist", "plays": "Plays", "previous_plays": "Previous", "change": "Change %"}
            ),
            hide_index=True,
        )

    with col_right:
        st.subheader("Featured Artists")
        featured = aggregation.featured_artists(current_df)
        if featured.empty:
            st.info("No featured artists in this range.")
        else:
            st.dataframe(
                featured[["featured_artist", "plays", "unique_tracks"]].rename(
                    columns={"featured_artist": "Artist", "plays": "Plays", "unique_tracks": "Tracks"}
                ),
                hide_index=True,
            )

    st.markdown("---")
    st.subheader("Artist Trends")
    trend_range = range_key if range_key != "7d" else "1m"
    trends = temporal.artist_trends(df, trend_range, now=now)
    if trends["top_artists"]:
        chart_df = artist_weeks_long(trends["plays"], "plays")
        sma_df = artist_weeks_long(trends["sma"][4], "average").dropna()
        lines = alt.Chart(chart_df).mark_line(point=True).encode(
            x=alt.X("week:N", sort=trends["weeks"], title="Week"),
            y=alt.Y("plays:Q", title="Plays"),
            color=alt.Color("artist:N", title="Artist"),
        )
        averages = alt.Chart(sma_df).mark_line(strokeDash=[4, 4]).encode(
            x=alt.X("week:N", sort=trends["weeks"]),
            y="average:Q",
            color="artist:N",
        )
        st.altair_chart((lines + averages).properties(height=400), use_container_width=True)
    else:
        st.info("No plays in this range.")


# Page: Tracks & Albums
elif page == "Tracks & Albums":
    st.title("Tracks & Albums")

    col_left, col_right = st.columns(2)

    with col_left:
        st.subheader("Top Tracks")
        top_tracks = aggregation.top_tracks(current_df, limit=20, previous=previous_df)
        columns = ["rank", "track_name", "artist_name", "plays"]
        if "movement" in top_tracks.columns:
            columns += ["movement", "movement_value"]
        st.dataframe(
            top_tracks[columns].rename(
                columns={"rank": "#", "track_name": "Track", "artist_name": "Artist", "plays": "Plays",
                         "movement": "Movement", "movement_value": "Places"}
            ),
            hide_index=True,
        )

    with col_right:
        st.subheader("Top Albums")
        top_albums = aggregation.top_albums(current_df, limit=20, previous=previous_df)
        columns = ["album_name", "artist_name", "plays", "unique_tracks"]
        if "change" in top_albums.columns:
            columns += ["change", "is_new"]
        st.dataframe(
            top_albums[columns].rename(
                columns={"album_name": "Album", "artist_name": "Artist", "plays": "Plays",
                         "unique_tracks": "Tracks", "change": "Change %", "is_new": "New"}
            ),
            hide_index=True,
        )

    st.markdown("---")
    col_left, col_right = st.columns(2)

    with col_left:
        st.subheader("Repeat Listening")
        mode = st.radio("Count repeats of", ["songs", "artists"], horizontal=True)
        repeats = aggregation.repeat_ratio(current_df, mode)
        if repeats["repeat_ratio"] is None:
            st.info("No plays in this range.")
        else:
            st.metric("Repeat Ratio", f"{repeats['repeat_ratio']}%")
            st.metric("Exploration Rate", f"{repeats['exploration_rate']}%")
            st.dataframe(pd.DataFrame(repeats["top_repeats"]), hide_index=True)

    with col_right:
        st.subheader("Track Lengths")
        lengths = aggregation.track_length_distribution(current_df)
        chart_data = lengths["buckets"].set_index("label")["count"]
        st.altair_chart(create_bar_chart(chart_data, "Length", "Plays"), use_container_width=True)
        if lengths["avg"] is not None:
            st.caption(f"Average {lengths['avg']}s, median {lengths['median']}s, "
                       f"shortest {lengths['shortest']}s, longest {lengths['longest']}s")


# Page: Temporal
elif page == "Temporal":
    st.title("When You Listen")

    totals = period_totals(current_df, previous_df)
    st.metric("Plays", f"{totals['current']:,}", delta=format_change(totals["change"]))

    col_left, col_right = st.columns(2)

    with col_left:
        st.subheader("By Hour")
        by_hour = temporal.plays_by_hour(current_df)
        chart_data = by_hour.set_index("hour")["plays"]
        st.altair_chart(create_bar_chart(chart_data, "Hour", "Plays"), use_container_width=True)

    with col_right:
        st.subheader("By Day of Week")
        by_day = temporal.plays_by_weekday(current_df)
        chart_data = by_day.set_index("day_of_week")["plays"]
        st.altair_chart(create_bar_chart(chart_data, "Day", "Plays"), use_container_width=True)

    st.subheader("Time of Day")
    periods = temporal.time_of_day_distribution(current_df, previous_df)
    st.dataframe(periods, hide_index=True)

    st.subheader("Weekday vs Weekend")
    split = temporal.weekday_weekend_comparison(current_df)
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Weekday Plays / Day", split["weekday"]["avg_per_day"])
        st.caption(f"Peak {split['weekday']['peak_time']}")
    with col2:
        st.metric("Weekend Plays / Day", split["weekend"]["avg_per_day"])
        st.caption(f"Peak {split['weekend']['peak_time']}")
    with col3:
        st.metric("Weekend vs Weekday", format_change(split["difference"]))
    radar = split["radar"].melt(id_vars="period", var_name="segment", value_name="plays")
    st.altair_chart(
        alt.Chart(radar).mark_bar().encode(
            x=alt.X("period:N", sort=None, title="Hours"),
            xOffset="segment:N",
            y=alt.Y("plays:Q", title="Plays"),
            color=alt.Color("segment:N", title=""),
        ).properties(height=300),
        use_container_width=True,
    )

    st.subheader("Year in Music")
    years = temporal.year_in_music(df)["available_years"]
    if years:
        year = st.selectbox("Year", years)
        for month in temporal.year_in_music(df, year)["months"]:
            names = ", ".join(a["artist_name"] for a in month["top_artists"])
            st.markdown(f"**{month['month_name']}** ({month['total_plays']:,} plays): {names}")


# Page: Behavioral
elif page == "Behavioral":
    st.title("Listening Behaviour")

    st.subheader("Sessions")
    session_stats = sessions.session_summary(current_df, buckets=SESSION_LENGTH_BUCKETS)
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Sessions", f"{session_stats['total_sessions']:,}")
    with col2:
        st.metric("Average Length", f"{session_stats['avg_minutes'] or 0} min")
    with col3:
        st.metric("Longest", f"{session_stats['longest_minutes'] or 0} min")
    with col4:
        st.metric("Marathons", session_stats["marathon_count"])
    chart_data = session_stats["histogram"].set_index("label")["count"]
    st.altair_chart(create_bar_chart(chart_data, "Session Length", "Sessions"), use_container_width=True)

    st.markdown("---")
    st.subheader("Discovery")
    entity = st.radio("Discover", ["artists", "tracks"], horizontal=True)
    rate = discovery.discovery_rate(df, entity, now)
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric(f"Total {entity.title()}", f"{rate['total_items']:,}")
    with col2:
        st.metric("Per Day", rate["daily_rate"] if rate["daily_rate"] is not None else "N/A")
    with col3:
        st.metric("Last 30 Days", rate["last_30"], delta=format_change(rate["trend"]))
    if not rate["has_enough_data"]:
        st.caption("Less than 30 days of history.")
    if not rate["timeline"].empty:
        chart_data = rate["timeline"].set_index("month")["count"]
        st.altair_chart(create_bar_chart(chart_data, "Month", "New"), use_container_width=True)

    st.markdown("---")
    st.subheader("Velocity")
    velocity = summaries.listening_velocity(current_df)
    if velocity["avg"] is None:
        st.info("No plays in this range.")
    else:
        col1, col2 = st.columns(2)
        with col1:
            st.metric("Plays per Active Day", velocity["avg"], delta=format_change(velocity["trend"]))
        with col2:
            st.metric("Busiest Day", velocity["max"])
        chart_data = velocity["daily"].assign(date=lambda d: d["date"].astype(str)).set_index("date")["plays"]
        st.altair_chart(create_line_chart(chart_data, "Date", "Plays"), use_container_width=True)


# Page: Patterns
elif page == "Patterns":
    st.title("Listening Patterns")

    st.subheader("Weekly Rhythm")
    rhythm = temporal.rhythm_heatmap(current_df)
    st.altair_chart(create_heatmap(rhythm["counts"], "Half Hour"), use_container_width=True)
    if rhythm["peak"]:
        st.caption(f"Peak: {rhythm['peak']['label']} ({rhythm['peak']['plays']} plays)")

    st.markdown("---")
    st.subheader("Consistency")
    consistency = summaries.consistency_variance(current_df, now)
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Consistency", f"{consistency['consistency']}%" if consistency["consistency"] is not None else "N/A")
    with col2:
        st.metric("Variance", f"{consistency['variance']}%" if consistency["variance"] is not None else "N/A")
    with col3:
        st.metric("Current Streak", f"{consistency['current_streak']} days")

    grid = pd.DataFrame(
        [[day["count"] for day in week] for week in consistency["weeks"]],
        index=[f"W{i + 1}" for i in range(len(consistency["weeks"]))],
        columns=range(1, 8),
    )
    st.altair_chart(create_heatmap(grid, "Day", "Week"), use_container_width=True)

    if not consistency["daily_details"].empty:
        st.dataframe(
            consistency["daily_details"].rename(
                columns={"date": "Date", "plays": "Plays", "unique_tracks": "Tracks",
                         "unique_artists": "Artists", "minutes": "Minutes"}
            ),
            hide_index=True,
        )
