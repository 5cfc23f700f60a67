"""
Flow Metrics Dashboard
Klaviyo flows, campaigns, profiles and revenue for every connected store.
Features: DynamoDB/S3 snapshot persistence, account login, per-store sync.
"""

import logging
from dataclasses import dataclass

import pandas as pd
import streamlit as st

from flowdash import (
    AppConfig,
    AnalyticsEngine,
    AuthService,
    EventRepository,
    EventTable,
    EventsFeedService,
    FlowMetricsTable,
    IntegrationNotConfiguredError,
    IntegrationTable,
    SnapshotBlobStore,
    SnapshotRepository,
    StorageError,
    StoreNotFoundError,
    StoreRepository,
    StoreTable,
    SyncLogRepository,
    SyncLogTable,
    SyncService,
    UserRepository,
    UserTable,
    check_password,
    cached_data_loader,
    clear_all_caches,
    create_dynamodb_resource,
    format_currency,
    format_date,
    format_relative,
    get_current_user,
    get_current_user_id,
    logout,
    plot_profile_status,
    render_profiles_table,
    render_revenue_panel,
    render_snapshot,
    render_stat_cards,
    render_sync_result,
    sync_overlay,
)

# =============================================================================
# CONFIGURATION
# =============================================================================

st.set_page_config(
    page_title="Flow Metrics Dashboard",
    page_icon="📬",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = logging.getLogger(__name__)

# Shared by get_services and the cache decorators below
APP_CONFIG = AppConfig.load()


@dataclass
class Services:
    config: AppConfig
    stores: StoreRepository
    snapshots: SnapshotRepository
    sync_logs: SyncLogRepository
    sync: SyncService
    events: EventsFeedService
    auth: AuthService


@st.cache_resource
def get_services() -> Services:
    """
    Build repositories and services once per server process.
    Tables are created on first use if they do not exist.
    """
    config = APP_CONFIG
    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))

    dynamodb = create_dynamodb_resource(config)
    stores = StoreRepository(StoreTable(dynamodb, config), IntegrationTable(dynamodb, config))
    blob_store = SnapshotBlobStore(config.s3_bucket, config=config) if config.s3_bucket else None
    snapshots = SnapshotRepository(FlowMetricsTable(dynamodb, config), blob_store)
    sync_logs = SyncLogRepository(SyncLogTable(dynamodb, config))

    return Services(
        config=config,
        stores=stores,
        snapshots=snapshots,
        sync_logs=sync_logs,
        sync=SyncService(stores, snapshots, sync_logs, config),
        events=EventsFeedService(EventRepository(EventTable(dynamodb, config)), config),
        auth=AuthService(UserRepository(UserTable(dynamodb, config))),
    )


@cached_data_loader(ttl_seconds=APP_CONFIG.cache_ttl_seconds)
def load_latest_snapshots(store_ids: tuple) -> list:
    """Latest snapshot row per store, cached until the next sync clears it."""
    return get_services().snapshots.latest_per_store(list(store_ids))


def run_sync(services: Services, store_id: str) -> None:
    """Sync one store behind the overlay and report the outcome."""
    try:
        with sync_overlay():
            result = services.sync.sync_store(store_id)
    except (StoreNotFoundError, IntegrationNotConfiguredError) as e:
        st.error(str(e))
        return
    render_sync_result(result)
    if result.synced:
        clear_all_caches()


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Main application entry point."""
    try:
        services = get_services()
    except StorageError as e:
        st.error(f"Storage is unavailable: {e}")
        st.stop()

    # Authentication check
    if not check_password(services.auth):
        st.stop()

    user = get_current_user() or {}

    # Sidebar
    with st.sidebar:
        st.markdown(f"**Logged in as:** {user.get('name') or user.get('email', 'Unknown')}")
        st.markdown("---")

        nav_options = [
            "📊 Dashboard",
            "🏬 Stores",
            "⚙️ Settings",
            "⚡ Klaviyo Events",
        ]
        page = st.radio("Navigation", nav_options)

        st.markdown("---")
        if st.button("🚪 Logout"):
            logout()

    st.title("📬 Flow Metrics Dashboard")

    try:
        if page == "📊 Dashboard":
            render_dashboard(services)
        elif page == "🏬 Stores":
            render_stores(services)
        elif page == "⚙️ Settings":
            render_settings(services)
        elif page == "⚡ Klaviyo Events":
            render_events(services)
    except StorageError as e:
        logger.error(f"Page render failed: {e}")
        st.error(f"Could not load data: {e}")


def render_dashboard(services: Services):
    """Totals across the user's stores from each store's latest snapshot."""
    st.header("Overview")

    stores = services.stores.list_stores(get_current_user_id())
    if not stores:
        st.info("👆 Create a store on the 'Stores' page to get started.")
        return

    rows = load_latest_snapshots(tuple(s['id'] for s in stores))
    totals = AnalyticsEngine.aggregate_snapshots(rows)
    profiles = totals['profiles']

    render_stat_cards([
        ("Stores", f"{len(stores):,}"),
        ("Profiles", f"{profiles['total']:,}"),
        ("Active profiles", f"{profiles['active']:,}"),
        ("Active flows", f"{totals['active_flows']:,}"),
        ("Active campaigns", f"{totals['active_campaigns']:,}"),
    ])

    if st.button("🔄 Sync all stores"):
        with sync_overlay(submessage=f"Syncing {len(stores)} store(s)"):
            results, skipped = [], []
            for store in stores:
                try:
                    results.append(services.sync.sync_store(store['id']))
                except (StoreNotFoundError, IntegrationNotConfiguredError) as e:
                    skipped.append(f"{store.get('name', store['id'])}: {e}")
        st.session_state.sync_results = results
        st.session_state.sync_skipped = skipped
        clear_all_caches()
        st.rerun()

    for result in st.session_state.pop("sync_results", []):
        render_sync_result(result)
    for message in st.session_state.pop("sync_skipped", []):
        st.warning(message)

    st.markdown("---")

    if not rows:
        st.info("No snapshots yet. Connect Klaviyo and run a sync.")
        return

    col1, col2 = st.columns([2, 1])
    with col1:
        render_revenue_panel(rows, services.config.currency, key="dashboard")
    with col2:
        st.plotly_chart(
            plot_profile_status(profiles['active'], profiles['suppressed'], profiles['total']),
            use_container_width=True,
        )

    st.subheader("Profiles")
    render_profiles_table(profiles['list'], key="dashboard_profiles")


def render_stores(services: Services):
    """Create stores and drill into one store's latest snapshot."""
    st.header("Stores")

    with st.expander("➕ Create store"):
        with st.form("create_store"):
            name = st.text_input("Store name")
            shop_domain = st.text_input("Shop domain (optional)")
            submitted = st.form_submit_button("Create")
        if submitted:
            try:
                store = services.stores.create_store(name, shop_domain or None, get_current_user_id())
            except ValueError as e:
                st.error(str(e))
            else:
                st.success(f"Created {store['name']}")
                st.rerun()

    stores = services.stores.list_stores(get_current_user_id())
    if not stores:
        st.info("No stores yet.")
        return

    labels = {s['id']: f"{s['name']} ({s.get('shop_domain') or 'no domain'})" for s in stores}
    store_id = st.selectbox("Store", list(labels.keys()), format_func=labels.get)
    render_store_detail(services, store_id)


def render_store_detail(services: Services, store_id: str):
    integration = services.stores.get_klaviyo_integration(store_id)
    last_log = services.sync_logs.get_latest(store_id)

    render_stat_cards([
        ("Klaviyo", "Connected" if integration and integration.get('api_key') else "Not connected"),
        ("Sync status", AnalyticsEngine.derive_status(last_log)),
        ("Last sync", format_relative(last_log.get('created_at')) if last_log else "—"),
    ])
    if last_log and last_log.get('status') == "error":
        st.caption(f"Last error: {last_log.get('message')}")

    if not integration or not integration.get('api_key'):
        with st.form(f"connect_{store_id}"):
            api_key = st.text_input("Klaviyo private API key", type="password")
            if st.form_submit_button("Connect Klaviyo"):
                if not api_key.strip():
                    st.error("API key is required")
                else:
                    services.stores.upsert_klaviyo_integration(store_id, api_key.strip())
                    st.success("Klaviyo connected")
                    st.rerun()
        return

    if st.button("🔄 Sync now", key=f"sync_{store_id}"):
        run_sync(services, store_id)

    row = services.snapshots.get_latest_row(store_id)
    if not row or not row.get('raw'):
        st.info("No snapshot yet. Run a sync to pull data from Klaviyo.")
        return

    st.markdown("---")
    render_snapshot(row['raw'], services.config.currency, store_id, synced_at=row.get('created_at'))


def render_settings(services: Services):
    """Per-store integration table with key management."""
    st.header("Settings")

    stores = services.stores.list_stores(get_current_user_id())
    if not stores:
        st.info("No stores yet.")
        return

    store_ids = [s['id'] for s in stores]
    integrations = {i['store_id']: i for i in services.stores.list_integrations(store_ids)}
    logs = services.sync_logs.latest_per_store(store_ids)
    snapshots = {r['store_id']: r for r in load_latest_snapshots(tuple(store_ids))}

    table = []
    for store in stores:
        log = logs.get(store['id'])
        flows = AnalyticsEngine.count_flows((snapshots.get(store['id']) or {}).get('raw'))
        table.append({
            'Store': store['name'],
            'Domain': store.get('shop_domain') or "—",
            'Klaviyo': "Connected" if store['id'] in integrations else "Not connected",
            'Flows': flows if flows is not None else "—",
            'Last sync': format_date(log.get('created_at')) if log else "—",
            'Status': AnalyticsEngine.derive_status(log),
        })
    st.dataframe(pd.DataFrame(table), use_container_width=True, hide_index=True)

    st.markdown("---")
    labels = {s['id']: s['name'] for s in stores}
    store_id = st.selectbox("Manage store", store_ids, format_func=labels.get)
    store = next(s for s in stores if s['id'] == store_id)

    key_col, domain_col = st.columns(2)
    with key_col:
        st.subheader("Klaviyo API key")
        with st.form(f"key_{store_id}"):
            api_key = st.text_input("Private API key", type="password")
            if st.form_submit_button("Save key"):
                if not api_key.strip():
                    st.error("API key is required")
                else:
                    services.stores.upsert_klaviyo_integration(store_id, api_key.strip())
                    st.success("Key saved")
        if store_id in integrations and st.button("Disconnect Klaviyo", key=f"disconnect_{store_id}"):
            removed = services.stores.delete_klaviyo_integration(store_id)
            st.success(f"Removed {removed} integration(s)")
            st.rerun()

    with domain_col:
        st.subheader("Shop domain")
        with st.form(f"domain_{store_id}"):
            domain = st.text_input("Domain", value=store.get('shop_domain') or "")
            if st.form_submit_button("Save domain"):
                try:
                    services.stores.update_store(store_id, shop_domain=domain)
                except ValueError as e:
                    st.error(str(e))
                else:
                    st.success("Domain updated")
                    st.rerun()


def render_events(services: Services):
    """Recent events for the operator's Klaviyo account."""
    st.header("Klaviyo Events")

    if st.button("🔄 Refresh events") or 'events_feed' not in st.session_state:
        with st.spinner("Fetching events..."):
            st.session_state.events_feed = services.events.refresh()

    feed = st.session_state.events_feed
    if feed.get('warning'):
        st.warning(feed['warning'])
    st.caption(
        f"Source: {feed['source']} · {feed['count']} event(s) · "
        f"stored {feed['storage']['stored']} ({feed['storage']['message']})"
    )

    if not feed['items']:
        st.info("No events returned.")
        return

    df = pd.DataFrame(feed['items'])
    df['value'] = df['value'].map(lambda v: format_currency(v or 0, services.config.currency))
    df['timestamp'] = df['timestamp'].map(format_relative)
    st.dataframe(
        df[['metric', 'name', 'value', 'timestamp']].rename(columns={
            'metric': 'Metric', 'name': 'Event', 'value': 'Value', 'timestamp': 'When'
        }),
        use_container_width=True,
        hide_index=True,
    )


if __name__ == "__main__":
    main()
