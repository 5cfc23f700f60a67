"""
Core utilities for the flow metrics dashboard.
Provides configuration, caching, and shared helpers.
"""

from .cache import (
    clear_all_caches,
    cached_data_loader,
)
from .config import (
    AppConfig,
    INTEGRATION_KLAVIYO,
    PLACED_ORDER_METRIC,
    PROFILE_RANGES,
    PROFILE_TARGET,
    REVENUE_RANGES,
)
from .utils import (
    make_json_serializable,
    safe_json_dumps,
    to_dynamodb,
    from_dynamodb,
    utc_now,
    to_iso,
    days_ago_iso,
    parse_datetime,
    format_date,
    format_relative,
    format_currency,
    format_percent,
)

__all__ = [
    # Cache
    'clear_all_caches',
    'cached_data_loader',
    # Config
    'AppConfig',
    'INTEGRATION_KLAVIYO',
    'PLACED_ORDER_METRIC',
    'PROFILE_RANGES',
    'PROFILE_TARGET',
    'REVENUE_RANGES',
    # Utils
    'make_json_serializable',
    'safe_json_dumps',
    'to_dynamodb',
    'from_dynamodb',
    'utc_now',
    'to_iso',
    'days_ago_iso',
    'parse_datetime',
    'format_date',
    'format_relative',
    'format_currency',
    'format_percent',
]
