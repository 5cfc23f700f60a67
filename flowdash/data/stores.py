"""
Store and integration persistence.
"""

import uuid
from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Attr

from ..core.config import INTEGRATION_KLAVIYO
from ..core.utils import to_iso, utc_now
from .dynamodb import DynamoDBTable

# Sentinel so update_store can tell "clear the domain" from "leave it alone"
UNSET = object()

# DynamoDB caps the IN operator at 100 operands
IN_FILTER_LIMIT = 100


class StoreTable(DynamoDBTable):
    TABLE = "stores"
    HASH_KEY = "id"


class IntegrationTable(DynamoDBTable):
    TABLE = "integrations"
    HASH_KEY = "id"


class StoreRepository:
    """CRUD for stores and their Klaviyo integration."""

    def __init__(self, stores: StoreTable, integrations: IntegrationTable):
        self.stores = stores
        self.integrations = integrations

    # =========================================================================
    # Stores
    # =========================================================================

    def create_store(
        self,
        name: str,
        shop_domain: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Dict:
        name = (name or "").strip()
        if not name:
            raise ValueError("name is required")
        shop_domain = (shop_domain or "").strip() or None

        store = {
            'id': str(uuid.uuid4()),
            'user_id': user_id,
            'name': name,
            'shop_domain': shop_domain,
            'created_at': to_iso(utc_now()),
        }
        self.stores.put(store, action="Create store")
        return store

    def get_store(self, store_id: str) -> Optional[Dict]:
        store = self.stores.get({'id': store_id}, action="Fetch store")
        return self._with_defaults(store) if store else None

    def list_stores(self, user_id: Optional[str] = None) -> List[Dict]:
        """Stores newest first, optionally only those owned by user_id."""
        kwargs = {}
        if user_id:
            kwargs['FilterExpression'] = Attr('user_id').eq(user_id)
        stores = self.stores.scan_all(action="Fetch stores", **kwargs)
        stores = [self._with_defaults(s) for s in stores]
        stores.sort(key=lambda s: s.get('created_at') or '', reverse=True)
        return stores

    def update_store(self, store_id: str, name: Optional[str] = None, shop_domain=UNSET) -> Dict:
        """
        Update name and/or shop domain.

        A blank shop domain clears it. Raises ValueError when nothing is given
        or the store does not exist.
        """
        updates = {}
        if isinstance(name, str):
            updates['name'] = name.strip()
        if shop_domain is not UNSET:
            updates['shop_domain'] = (shop_domain or "").strip() or None

        if not updates:
            raise ValueError("No fields to update")

        store = self.get_store(store_id)
        if not store:
            raise ValueError(f"Store {store_id} not found")

        store.update(updates)
        self.stores.put(store, action="Update store")
        return store

    @staticmethod
    def _with_defaults(store: Dict) -> Dict:
        store.setdefault('user_id', None)
        store.setdefault('shop_domain', None)
        store.setdefault('created_at', None)
        return store

    # =========================================================================
    # Integrations
    # =========================================================================

    def get_klaviyo_integration(self, store_id: str) -> Optional[Dict]:
        matches = self.integrations.scan_all(
            action="Fetch integration",
            FilterExpression=(
                Attr('store_id').eq(store_id) & Attr('integration_type').eq(INTEGRATION_KLAVIYO)
            ),
        )
        if not matches:
            return None
        matches.sort(key=lambda i: i.get('created_at') or '')
        return self._integration_defaults(matches[0])

    def list_integrations(self, store_ids: List[str]) -> List[Dict]:
        if not store_ids:
            return []
        store_ids = list(store_ids)
        matches = []
        for start in range(0, len(store_ids), IN_FILTER_LIMIT):
            matches.extend(self.integrations.scan_all(
                action="Fetch integrations",
                FilterExpression=Attr('store_id').is_in(store_ids[start:start + IN_FILTER_LIMIT]),
            ))
        return [self._integration_defaults(i) for i in matches]

    def upsert_klaviyo_integration(self, store_id: str, api_key: str) -> Dict:
        """Replace the key on the existing integration, or create one."""
        existing = self.get_klaviyo_integration(store_id)
        if existing:
            existing.update({'api_key': api_key, 'metadata': {'provider': 'klaviyo'}})
            self.integrations.put(existing, action="Update integration")
            return existing

        integration = {
            'id': str(uuid.uuid4()),
            'store_id': store_id,
            'integration_type': INTEGRATION_KLAVIYO,
            'api_key': api_key,
            'metadata': {'provider': 'klaviyo'},
            'created_at': to_iso(utc_now()),
        }
        self.integrations.put(integration, action="Create integration")
        return integration

    def delete_klaviyo_integration(self, store_id: str) -> int:
        """Remove every Klaviyo integration for the store; returns how many."""
        matches = self.integrations.scan_all(
            action="Fetch integration",
            FilterExpression=(
                Attr('store_id').eq(store_id) & Attr('integration_type').eq(INTEGRATION_KLAVIYO)
            ),
        )
        for integration in matches:
            self.integrations.delete({'id': integration['id']}, action="Delete integration")
        return len(matches)

    @staticmethod
    def _integration_defaults(integration: Dict) -> Dict:
        integration.setdefault('api_key', None)
        integration.setdefault('metadata', None)
        integration.setdefault('created_at', None)
        return integration
