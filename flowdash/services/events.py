"""
Recent Klaviyo events feed.

Pulls the legacy metric export for the operator-configured account and stores
the normalized events. Without a key, or when Klaviyo is unreachable, demo
events are returned so the page still renders.
"""

import logging
from datetime import timedelta
from typing import Callable, Dict, List, Optional

from ..core.config import AppConfig
from ..core.utils import to_iso, utc_now
from ..data.events import EventRepository
from ..data.normalizer import normalize_events
from .klaviyo import KlaviyoAPIError, KlaviyoClient

logger = logging.getLogger(__name__)


def demo_events(now=None) -> List[Dict]:
    now = now or utc_now()
    return [
        {
            'id': "demo-1",
            'metric': "Placed Order",
            'name': "Order #4821",
            'value': 482,
            'timestamp': to_iso(now),
        },
        {
            'id': "demo-2",
            'metric': "Started Checkout",
            'name': "Checkout started",
            'value': 320,
            'timestamp': to_iso(now - timedelta(minutes=10)),
        },
        {
            'id': "demo-3",
            'metric': "Email Opened",
            'name': "Flow email opened",
            'value': 1,
            'timestamp': to_iso(now - timedelta(minutes=30)),
        },
    ]


class EventsFeedService:

    def __init__(
        self,
        events: Optional[EventRepository],
        config: AppConfig,
        client_factory: Optional[Callable[[str], KlaviyoClient]] = None
    ):
        self.events = events
        self.config = config
        self.client_factory = client_factory or (
            lambda key: KlaviyoClient(key, base_url=config.klaviyo_base_url, timeout=config.klaviyo_timeout)
        )

    def fetch_snapshot(self) -> Dict:
        """
        Returns:
            {"data": [...], "source": "klaviyo"|"fallback", "warning": str|None}
        """
        api_key = self.config.klaviyo_api_key
        metric_id = self.config.klaviyo_metric_id or "metric-id"

        if not api_key:
            return {
                'data': demo_events(),
                'source': "fallback",
                'warning': "KLAVIYO_API_KEY not set. Returning mock data.",
            }

        try:
            payload = self.client_factory(api_key).fetch_metric_events(metric_id)
        except KlaviyoAPIError as e:
            logger.warning(f"Klaviyo event export failed: {e}")
            return {
                'data': demo_events(),
                'source': "fallback",
                'warning': f"Klaviyo fetch failed: {e}",
            }

        return {'data': normalize_events(payload), 'source': "klaviyo", 'warning': None}

    def refresh(self) -> Dict:
        """Fetch events and upsert them; storage problems are reported, not raised."""
        snapshot = self.fetch_snapshot()
        data = snapshot['data']

        if self.events is None:
            storage = {'stored': 0, 'message': "Skipped event storage: no table configured"}
        else:
            try:
                stored = self.events.upsert_events(data)
                storage = {'stored': stored, 'message': "Upserted into events table"}
            except Exception as e:
                logger.warning(f"Event storage failed: {e}")
                storage = {'stored': 0, 'message': f"Skipped event storage: {e}"}

        return {
            'source': snapshot['source'],
            'warning': snapshot['warning'],
            'count': len(data),
            'items': data,
            'storage': storage,
        }
