"""
External service integrations for the flow metrics dashboard.
Klaviyo API access, the sync pipeline, the events feed and account auth.
"""

from .klaviyo import KlaviyoAPIError, KlaviyoClient, get_range
from .sync import (
    SyncService,
    SyncResult,
    SyncError,
    StoreNotFoundError,
    IntegrationNotConfiguredError,
    default_client_factory,
)
from .events import EventsFeedService, demo_events
from .auth import AuthService, AuthError, hash_password, verify_password

__all__ = [
    # Klaviyo
    'KlaviyoAPIError',
    'KlaviyoClient',
    'get_range',
    # Sync
    'SyncService',
    'SyncResult',
    'SyncError',
    'StoreNotFoundError',
    'IntegrationNotConfiguredError',
    'default_client_factory',
    # Events
    'EventsFeedService',
    'demo_events',
    # Auth
    'AuthService',
    'AuthError',
    'hash_password',
    'verify_password',
]
