"""
Flow Metrics Dashboard - Consolidated Import Package

Single import point for the Klaviyo fetcher, snapshot normalizer, storage
layer, sync pipeline and Streamlit components.

Usage:
    from flowdash import (
        AppConfig,
        KlaviyoClient,
        SnapshotNormalizer,
        StoreRepository,
        SnapshotRepository,
        SyncService,
        AnalyticsEngine,
        render_snapshot,
    )
"""

# =============================================================================
# Core Configuration & Utilities
# =============================================================================
from .core.config import (
    AppConfig,
    INTEGRATION_KLAVIYO,
    PLACED_ORDER_METRIC,
    PROFILE_RANGES,
    PROFILE_TARGET,
    REVENUE_RANGES,
)
from .core.cache import (
    clear_all_caches,
    cached_data_loader,
)
from .core.utils import (
    make_json_serializable,
    safe_json_dumps,
    format_currency,
    format_date,
    format_percent,
    format_relative,
)

# =============================================================================
# Data Management
# =============================================================================
from .data import (
    StorageError,
    create_dynamodb_resource,
    SnapshotBlobStore,
    StoreTable,
    IntegrationTable,
    StoreRepository,
    FlowMetricsTable,
    SnapshotRepository,
    SyncLogTable,
    SyncLogRepository,
    UserTable,
    UserRepository,
    EventTable,
    EventRepository,
    SnapshotNormalizer,
    AnalyticsEngine,
)

# =============================================================================
# Services
# =============================================================================
from .services import (
    KlaviyoAPIError,
    KlaviyoClient,
    SyncService,
    SyncResult,
    SyncError,
    StoreNotFoundError,
    IntegrationNotConfiguredError,
    EventsFeedService,
    AuthService,
    AuthError,
)

# =============================================================================
# UI Components
# =============================================================================
from .ui import (
    plot_revenue_series,
    plot_list_size,
    plot_top_flows,
    plot_profile_status,
    check_password,
    logout,
    get_current_user,
    get_current_user_id,
    sync_overlay,
    render_stat_cards,
    render_sync_result,
    render_profiles_table,
    render_revenue_panel,
    render_snapshot,
)

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "1.0.0"

__all__ = [
    '__version__',

    # Configuration
    'AppConfig',
    'INTEGRATION_KLAVIYO',
    'PLACED_ORDER_METRIC',
    'PROFILE_RANGES',
    'PROFILE_TARGET',
    'REVENUE_RANGES',

    # Cache / formatting utilities
    'clear_all_caches',
    'cached_data_loader',
    'make_json_serializable',
    'safe_json_dumps',
    'format_currency',
    'format_date',
    'format_percent',
    'format_relative',

    # Data management
    'StorageError',
    'create_dynamodb_resource',
    'SnapshotBlobStore',
    'StoreTable',
    'IntegrationTable',
    'StoreRepository',
    'FlowMetricsTable',
    'SnapshotRepository',
    'SyncLogTable',
    'SyncLogRepository',
    'UserTable',
    'UserRepository',
    'EventTable',
    'EventRepository',
    'SnapshotNormalizer',
    'AnalyticsEngine',

    # Services
    'KlaviyoAPIError',
    'KlaviyoClient',
    'SyncService',
    'SyncResult',
    'SyncError',
    'StoreNotFoundError',
    'IntegrationNotConfiguredError',
    'EventsFeedService',
    'AuthService',
    'AuthError',

    # UI
    'plot_revenue_series',
    'plot_list_size',
    'plot_top_flows',
    'plot_profile_status',
    'check_password',
    'logout',
    'get_current_user',
    'get_current_user_id',
    'sync_overlay',
    'render_stat_cards',
    'render_sync_result',
    'render_profiles_table',
    'render_revenue_panel',
    'render_snapshot',
]
