"""
Data layer for the flow metrics dashboard.
Snapshot normalization, DynamoDB/S3 persistence and analytics.
"""

from .dynamodb import StorageError, DynamoDBTable, create_dynamodb_resource
from .s3_manager import SnapshotBlobStore
from .stores import StoreTable, IntegrationTable, StoreRepository, UNSET
from .snapshots import FlowMetricsTable, SnapshotRepository
from .sync_logs import SyncLogTable, SyncLogRepository, SYNC_STATUSES
from .users import UserTable, UserRepository
from .events import EventTable, EventRepository
from .normalizer import (
    SnapshotNormalizer,
    normalize_flows,
    normalize_campaigns,
    normalize_profile,
    normalize_profiles,
    normalize_revenue,
    normalize_events,
    build_audience,
    is_suppressed,
    parse_marketing_status,
)
from .analytics import AnalyticsEngine

__all__ = [
    # Storage
    'StorageError',
    'DynamoDBTable',
    'create_dynamodb_resource',
    'SnapshotBlobStore',
    # Repositories
    'StoreTable',
    'IntegrationTable',
    'StoreRepository',
    'UNSET',
    'FlowMetricsTable',
    'SnapshotRepository',
    'SyncLogTable',
    'SyncLogRepository',
    'SYNC_STATUSES',
    'UserTable',
    'UserRepository',
    'EventTable',
    'EventRepository',
    # Normalization
    'SnapshotNormalizer',
    'normalize_flows',
    'normalize_campaigns',
    'normalize_profile',
    'normalize_profiles',
    'normalize_revenue',
    'normalize_events',
    'build_audience',
    'is_suppressed',
    'parse_marketing_status',
    # Analytics
    'AnalyticsEngine',
]
