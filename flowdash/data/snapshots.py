"""
Flow metrics snapshot persistence.

One row per sync, keyed by store and creation time, so the newest snapshot for
a store is a single descending query.
"""

import gzip
import json
import logging
from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Key

from ..core.utils import safe_json_dumps, to_iso, utc_now
from .dynamodb import DynamoDBTable, StorageError
from .s3_manager import SnapshotBlobStore

logger = logging.getLogger(__name__)

# Serialized snapshots above this size are gzipped; DynamoDB items cap at 400 KB
INLINE_SNAPSHOT_LIMIT = 350 * 1024


class FlowMetricsTable(DynamoDBTable):
    TABLE = "flow-metrics"
    HASH_KEY = "store_id"
    RANGE_KEY = "created_at"


class SnapshotRepository:
    """Saves and loads snapshot rows; raw JSON goes to S3 when a blob store is given."""

    def __init__(self, table: FlowMetricsTable, blob_store: Optional[SnapshotBlobStore] = None):
        self.table = table
        self.blob_store = blob_store

    def save_snapshot(self, store_id: str, snapshot: Dict) -> Dict:
        """
        Persist a snapshot with its summary counters.

        Args:
            store_id: Owning store
            snapshot: Snapshot produced by SnapshotNormalizer

        Returns:
            The stored row (without the decoded raw document)
        """
        profiles = snapshot.get('profiles') or {}
        profiles_total = profiles.get('total_profiles', 0)
        profiles_active = profiles.get('active_profiles', 0)
        created_at = to_iso(utc_now())

        row = {
            'store_id': store_id,
            'created_at': created_at,
            'flow_count': len(snapshot.get('flows') or []),
            'campaign_count': len(snapshot.get('campaigns') or []),
            'profiles_total': profiles_total,
            'profiles_active': profiles_active,
            'profiles_inactive': max(0, profiles_total - profiles_active),
        }

        if self.blob_store:
            key = SnapshotBlobStore.snapshot_key(store_id, created_at)
            row['raw_s3_key'] = self.blob_store.put_json(key, snapshot)
        else:
            raw_json = safe_json_dumps(snapshot, indent=None)
            encoded = raw_json.encode('utf-8')
            if len(encoded) > INLINE_SNAPSHOT_LIMIT:
                row['raw_gzip'] = gzip.compress(encoded)
                logger.info(
                    f"Compressed snapshot for {store_id}: {len(encoded)} -> {len(row['raw_gzip'])} bytes"
                )
            else:
                row['raw_json'] = raw_json

        self.table.put(row, action="Insert snapshot")
        return row

    def _decode_raw(self, row: Dict) -> Optional[Dict]:
        if row.get('raw_gzip') is not None:
            try:
                # boto3 returns Binary on read; bytes() unwraps it
                return json.loads(gzip.decompress(bytes(row['raw_gzip'])))
            except (OSError, ValueError) as e:
                raise StorageError(f"Decode snapshot failed: {e}") from e
        if row.get('raw_json'):
            try:
                return json.loads(row['raw_json'])
            except ValueError as e:
                raise StorageError(f"Decode snapshot failed: {e}") from e
        if row.get('raw_s3_key'):
            if not self.blob_store:
                raise StorageError("Snapshot is stored in S3 but no bucket is configured")
            return self.blob_store.get_json(row['raw_s3_key'])
        return None

    def _hydrate(self, row: Dict) -> Dict:
        row = dict(row)
        row['raw'] = self._decode_raw(row)
        row.pop('raw_json', None)
        row.pop('raw_gzip', None)
        return row

    def get_latest_row(self, store_id: str) -> Optional[Dict]:
        """Newest row for the store with its raw snapshot decoded."""
        rows = self.table.query_all(
            action="Fetch flow metrics",
            KeyConditionExpression=Key('store_id').eq(store_id),
            ScanIndexForward=False,
            Limit=1,
        )
        return self._hydrate(rows[0]) if rows else None

    def get_latest_snapshot(self, store_id: str) -> Optional[Dict]:
        row = self.get_latest_row(store_id)
        return row['raw'] if row else None

    def latest_per_store(self, store_ids: List[str]) -> List[Dict]:
        """Newest row per store, in the order of store_ids; stores without data are skipped."""
        rows = []
        for store_id in store_ids:
            row = self.get_latest_row(store_id)
            if row:
                rows.append({
                    'store_id': row['store_id'],
                    'raw': row['raw'],
                    'created_at': row.get('created_at'),
                })
        return rows
