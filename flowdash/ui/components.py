"""
Reusable Streamlit widgets for the dashboard pages.
"""

from typing import Dict, List, Sequence, Tuple

import pandas as pd
import streamlit as st

from ..core.config import PROFILE_RANGES, REVENUE_RANGES
from ..core.utils import format_currency, format_date, format_percent, format_relative
from ..data.analytics import AnalyticsEngine
from ..services.sync import SyncResult
from .charts import plot_list_size, plot_revenue_series, plot_top_flows


def render_stat_cards(stats: Sequence[Tuple[str, str]]) -> None:
    """Row of st.metric cards from (label, value) pairs."""
    columns = st.columns(len(stats))
    for col, (label, value) in zip(columns, stats):
        with col:
            st.metric(label, value)


def render_sync_result(result: SyncResult) -> None:
    notification = result.notification or {}
    if result.synced:
        st.toast(f"{notification.get('title', 'Sync complete')}: {notification.get('body', '')}")
        st.success(
            f"Synced {result.profiles_total:,} profiles "
            f"({result.profiles_active:,} active, {result.profiles_suppressed:,} suppressed)"
        )
    else:
        st.error(f"{notification.get('title', 'Sync failed')}: {result.error}")


def render_profiles_table(items: List[Dict], key: str, per_page: int = 25) -> None:
    """Paginated profile table; the page number lives in session state under `key`."""
    if not items:
        st.info("No profiles synced yet.")
        return

    page_key = f"{key}_page"
    page = st.session_state.get(page_key, 1)
    page_items, page, total_pages = AnalyticsEngine.paginate(items, page, per_page)
    st.session_state[page_key] = page

    st.dataframe(AnalyticsEngine.profiles_dataframe(page_items), use_container_width=True, hide_index=True)

    prev_col, label_col, next_col = st.columns([1, 2, 1])
    with prev_col:
        if st.button("Previous", key=f"{key}_prev", disabled=page <= 1):
            st.session_state[page_key] = page - 1
            st.rerun()
    with label_col:
        st.caption(f"Page {page} of {total_pages} ({len(items):,} profiles)")
    with next_col:
        if st.button("Next", key=f"{key}_next", disabled=page >= total_pages):
            st.session_state[page_key] = page + 1
            st.rerun()


def render_revenue_panel(rows: List[Dict], currency: str, key: str) -> None:
    """Range picker, merged total and daily series across the given snapshot rows."""
    range_key = st.selectbox(
        "Revenue range",
        list(REVENUE_RANGES.keys()),
        index=1,
        format_func=lambda k: REVENUE_RANGES[k],
        key=f"{key}_range",
    )
    revenue = AnalyticsEngine.merge_revenue(rows, range_key)
    st.metric(f"Revenue ({REVENUE_RANGES[range_key]})", format_currency(revenue['total'], currency))
    st.plotly_chart(
        plot_revenue_series(revenue['series'], currency, title=REVENUE_RANGES[range_key]),
        use_container_width=True,
    )


def render_snapshot(snapshot: Dict, currency: str, store_id: str, synced_at=None) -> None:
    """Store detail view of the latest snapshot."""
    profiles = snapshot.get('profiles') or {}
    total_profiles = profiles.get('total_profiles', 0)
    overview = snapshot.get('overview') or {}

    render_stat_cards([
        ("Active flows", f"{AnalyticsEngine.count_active_flows(snapshot):,}"),
        ("Active campaigns", f"{AnalyticsEngine.count_active_campaigns(snapshot):,}"),
        ("Profiles", f"{total_profiles:,}"),
        ("Revenue (7d)", format_currency(snapshot.get('total_revenue_7d') or 0, currency)),
        ("Revenue (90d)", format_currency(snapshot.get('total_revenue_90d') or 0, currency)),
    ])
    st.caption(f"Last synced {format_relative(synced_at or snapshot.get('synced_at'))}")

    progress = AnalyticsEngine.profile_progress(total_profiles)
    st.progress(progress / 100, text=f"{progress}% of profile goal")

    render_revenue_panel([{'store_id': store_id, 'raw': snapshot}], currency, key=f"store_{store_id}")

    flows_col, audience_col = st.columns(2)
    with flows_col:
        st.plotly_chart(plot_top_flows(AnalyticsEngine.top_flows(snapshot)), use_container_width=True)
        st.caption(
            f"Avg open rate {format_percent(overview.get('avg_open_rate_30d') or 0)} · "
            f"avg click rate {format_percent(overview.get('avg_click_rate_30d') or 0)}"
        )
    with audience_col:
        audience = snapshot.get('audience') or {}
        st.plotly_chart(plot_list_size(audience.get('list_size_timeseries') or []), use_container_width=True)

    campaigns = snapshot.get('campaigns') or []
    st.subheader("Campaigns")
    if campaigns:
        df = pd.DataFrame(campaigns)[['name', 'subject', 'status', 'send_date']]
        df['send_date'] = df['send_date'].map(format_date)
        st.dataframe(
            df.rename(columns={'name': 'Name', 'subject': 'Subject', 'status': 'Status', 'send_date': 'Sent'}),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.info("No email campaigns found.")

    st.subheader("Profiles")
    labels = [label for label, _ in PROFILE_RANGES]
    label = st.radio("Created", labels, horizontal=True, key=f"profiles_range_{store_id}")
    days = dict(PROFILE_RANGES)[label]
    items = AnalyticsEngine.filter_profiles_by_days(profiles.get('items') or [], days)
    render_profiles_table(items, key=f"profiles_{store_id}")
