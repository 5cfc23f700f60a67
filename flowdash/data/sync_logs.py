"""
Sync log persistence.
"""

from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Key

from ..core.utils import to_iso, utc_now
from .dynamodb import DynamoDBTable

SYNC_STATUSES = ("success", "error")


class SyncLogTable(DynamoDBTable):
    TABLE = "sync-logs"
    HASH_KEY = "store_id"
    RANGE_KEY = "created_at"


class SyncLogRepository:
    """Records the outcome of every sync attempt per store."""

    def __init__(self, table: SyncLogTable):
        self.table = table

    def log_sync(self, store_id: str, status: str, endpoint: str, message: Optional[str]) -> Dict:
        if status not in SYNC_STATUSES:
            raise ValueError(f"Invalid sync status: {status}")
        row = {
            'store_id': store_id,
            'created_at': to_iso(utc_now()),
            'status': status,
            'endpoint': endpoint,
            'message': message,
        }
        self.table.put(row, action="Log sync")
        return row

    def get_latest(self, store_id: str) -> Optional[Dict]:
        rows = self.table.query_all(
            action="Fetch sync log",
            KeyConditionExpression=Key('store_id').eq(store_id),
            ScanIndexForward=False,
            Limit=1,
        )
        if not rows:
            return None
        row = rows[0]
        row.setdefault('endpoint', None)
        row.setdefault('message', None)
        return row

    def latest_per_store(self, store_ids: List[str]) -> Dict[str, Dict]:
        latest = {}
        for store_id in store_ids:
            row = self.get_latest(store_id)
            if row:
                latest[store_id] = row
        return latest

    def count(self) -> int:
        return self.table.count(action="Count sync logs")
