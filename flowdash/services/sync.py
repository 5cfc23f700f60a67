"""
Klaviyo sync pipeline.

Fetches flows, campaigns, profiles and revenue for a store, normalizes them
into a snapshot, stores it and records the outcome in the sync log.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ..core.config import AppConfig, REVENUE_RANGES
from ..data.normalizer import SnapshotNormalizer
from ..data.snapshots import SnapshotRepository
from ..data.stores import StoreRepository
from ..data.sync_logs import SyncLogRepository
from .klaviyo import KlaviyoAPIError, KlaviyoClient

logger = logging.getLogger(__name__)

SYNC_ENDPOINT = "https://a.klaviyo.com/api/flows/"


class SyncError(Exception):
    """Base class for sync request errors the caller must fix."""


class StoreNotFoundError(SyncError):
    pass


class IntegrationNotConfiguredError(SyncError):
    pass


@dataclass
class SyncResult:
    """Outcome of one sync request, shaped for a toast/notification."""
    store_id: str
    synced: bool = False
    profiles_total: int = 0
    profiles_active: int = 0
    profiles_suppressed: int = 0
    profiles_items: int = 0
    flows: int = 0
    campaigns: int = 0
    error: Optional[str] = None
    notification: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        if not self.synced:
            return {'error': self.error or "Unknown error", 'notification': self.notification}
        return {
            'synced': True,
            'storeId': self.store_id,
            'profiles': {
                'total': self.profiles_total,
                'active': self.profiles_active,
                'suppressed': self.profiles_suppressed,
                'items': self.profiles_items,
            },
            'notification': self.notification,
        }


def default_client_factory(config: AppConfig) -> Callable[[str], KlaviyoClient]:
    def factory(api_key: str) -> KlaviyoClient:
        return KlaviyoClient(
            api_key,
            base_url=config.klaviyo_base_url,
            timeout=config.klaviyo_timeout,
        )
    return factory


class SyncService:
    """Runs the fetch, normalize and save pipeline for one store at a time."""

    def __init__(
        self,
        stores: StoreRepository,
        snapshots: SnapshotRepository,
        sync_logs: SyncLogRepository,
        config: Optional[AppConfig] = None,
        client_factory: Optional[Callable[[str], KlaviyoClient]] = None
    ):
        self.stores = stores
        self.snapshots = snapshots
        self.sync_logs = sync_logs
        self.config = config or AppConfig()
        self.client_factory = client_factory or default_client_factory(self.config)
        self.normalizer = SnapshotNormalizer(currency=self.config.currency)

    def _fetch_revenue(self, client: KlaviyoClient, metric_id_override: Optional[str]):
        """Revenue per range for the Placed Order metric; ranges that fail are left out."""
        metric_id = metric_id_override
        if not metric_id:
            try:
                metric_id = client.find_placed_order_metric_id()
            except KlaviyoAPIError as e:
                logger.warning(f"[sync] Placed Order metric lookup failed: {e}")
                metric_id = None

        if not metric_id:
            logger.warning("[sync] No Placed Order metric found, revenue left at zero")
            return {}, None

        revenue_by_range = {}
        for range_key in REVENUE_RANGES:
            try:
                revenue_by_range[range_key] = client.fetch_revenue_for_range(
                    metric_id, range_key, timezone_name=self.config.revenue_timezone
                )
            except KlaviyoAPIError as e:
                logger.warning(f"[sync] Revenue for {range_key} failed, skipping: {e}")
        return revenue_by_range, metric_id

    def build_snapshot(self, store_id: str, api_key: str, metric_id_override: Optional[str] = None) -> Dict:
        """
        Fetch everything for a store and normalize it into a snapshot.

        Flow and profile failures abort the build; campaign and revenue
        failures degrade to empty data.
        """
        logger.info(f"[sync] Starting snapshot build: store={store_id} metric_override={metric_id_override}")
        client = self.client_factory(api_key)

        flows_raw = client.fetch_flows()

        try:
            campaigns_raw = client.fetch_campaigns()
        except KlaviyoAPIError as e:
            logger.warning(f"[sync] Campaigns fetch failed, continuing with empty list: {e}")
            campaigns_raw = []

        profiles_raw = client.fetch_all_profiles(
            page_size=self.config.profile_page_size,
            max_pages=self.config.profile_max_pages,
        )

        revenue_by_range, metric_id = self._fetch_revenue(client, metric_id_override)

        snapshot = self.normalizer.build_snapshot(
            store_id,
            flows_raw,
            campaigns_raw,
            profiles_raw,
            revenue_by_range=revenue_by_range,
            revenue_metric_id=metric_id,
        )
        profiles = snapshot['profiles']
        logger.info(
            f"[sync] Snapshot built: flows={len(snapshot['flows'])} "
            f"campaigns={len(snapshot['campaigns'])} profiles={profiles['total_profiles']} "
            f"active={profiles['active_profiles']} suppressed={profiles['suppressed_profiles']}"
        )
        return snapshot

    def sync_store(self, store_id: Optional[str], metric_id: Optional[str] = None) -> SyncResult:
        """
        Sync one store end to end.

        Raises:
            ValueError: store_id missing
            StoreNotFoundError: no such store
            IntegrationNotConfiguredError: store has no Klaviyo API key

        Any failure after validation is logged to the sync log and returned
        as an unsuccessful SyncResult.
        """
        if not store_id or not isinstance(store_id, str) or not store_id.strip():
            raise ValueError("storeId is required")
        store_id = store_id.strip()
        metric_id_override = metric_id.strip() if isinstance(metric_id, str) and metric_id.strip() else None
        logger.info(f"[sync] Incoming sync request: store={store_id} metric_override={metric_id_override}")

        store = self.stores.get_store(store_id)
        if not store:
            raise StoreNotFoundError("Store not found")

        integration = self.stores.get_klaviyo_integration(store_id)
        if not integration or not integration.get('api_key'):
            raise IntegrationNotConfiguredError("Klaviyo integration not configured for this store")

        try:
            snapshot = self.build_snapshot(store_id, integration['api_key'], metric_id_override)
            row = self.snapshots.save_snapshot(store_id, snapshot)
            logger.info(
                f"[sync] Snapshot saved: store={store_id} flow_count={row['flow_count']} "
                f"campaign_count={row['campaign_count']} profiles_total={row['profiles_total']} "
                f"profiles_active={row['profiles_active']} profiles_inactive={row['profiles_inactive']}"
            )
            self.sync_logs.log_sync(store_id, "success", SYNC_ENDPOINT, "Klaviyo sync successful")
        except Exception as e:
            message = str(e) or "Unknown error"
            logger.error(f"[sync] Sync failed: store={store_id} error={message}", exc_info=True)
            try:
                self.sync_logs.log_sync(store_id, "error", SYNC_ENDPOINT, message)
            except Exception as log_error:
                logger.warning(f"[sync] Could not record failed sync: {log_error}")
            return SyncResult(
                store_id=store_id,
                synced=False,
                error=message,
                notification={'title': "Sync failed", 'body': message},
            )

        profiles = snapshot.get('profiles') or {}
        return SyncResult(
            store_id=store_id,
            synced=True,
            profiles_total=profiles.get('total_profiles', 0),
            profiles_active=profiles.get('active_profiles', 0),
            profiles_suppressed=profiles.get('suppressed_profiles', 0),
            profiles_items=len(profiles.get('items') or []),
            flows=len(snapshot.get('flows') or []),
            campaigns=len(snapshot.get('campaigns') or []),
            notification={'title': "Sync complete", 'body': f"Store {store_id} synced successfully."},
        )
