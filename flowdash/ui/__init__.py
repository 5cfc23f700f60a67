"""
UI components for the flow metrics dashboard.
Provides visualization functions and Streamlit components.
"""

from .charts import (
    plot_revenue_series,
    plot_list_size,
    plot_top_flows,
    plot_profile_status,
)
from .auth import check_password, logout, get_current_user, get_current_user_id
from .loading import sync_overlay
from .components import (
    render_stat_cards,
    render_sync_result,
    render_profiles_table,
    render_revenue_panel,
    render_snapshot,
)

__all__ = [
    # Charts
    'plot_revenue_series',
    'plot_list_size',
    'plot_top_flows',
    'plot_profile_status',
    # Auth
    'check_password',
    'logout',
    'get_current_user',
    'get_current_user_id',
    # Loading
    'sync_overlay',
    # Components
    'render_stat_cards',
    'render_sync_result',
    'render_profiles_table',
    'render_revenue_panel',
    'render_snapshot',
]
