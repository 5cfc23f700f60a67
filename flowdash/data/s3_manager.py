"""
S3 storage for raw snapshot documents.

Snapshots with thousands of profiles outgrow DynamoDB's item size limit, so
when a bucket is configured the raw JSON lives in S3 and the metrics row keeps
only the key.
"""

import json
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import AppConfig
from ..core.utils import safe_json_dumps
from .dynamodb import StorageError

logger = logging.getLogger(__name__)


class SnapshotBlobStore:
    """Reads and writes snapshot JSON documents in S3."""

    def __init__(self, bucket_name: str, s3_client=None, config: Optional[AppConfig] = None):
        self.bucket_name = bucket_name
        self.s3_client = s3_client or self._create_client(config or AppConfig())

    @staticmethod
    def _create_client(config: AppConfig):
        kwargs = {'region_name': config.aws_region}
        if config.aws_access_key and config.aws_secret_key:
            kwargs['aws_access_key_id'] = config.aws_access_key
            kwargs['aws_secret_access_key'] = config.aws_secret_key
        return boto3.client('s3', **kwargs)

    @staticmethod
    def snapshot_key(store_id: str, created_at: str) -> str:
        stamp = created_at.replace(':', '-')
        return f"snapshots/{store_id}/{stamp}.json"

    def put_json(self, key: str, document: Any) -> str:
        """Upload a JSON document and return its S3 key."""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=safe_json_dumps(document, indent=None).encode('utf-8'),
                ContentType='application/json'
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Upload snapshot failed: {e}") from e
        logger.info(f"Stored snapshot at s3://{self.bucket_name}/{key}")
        return key

    def get_json(self, key: str) -> Optional[Any]:
        """Download and decode a JSON document; None when the key is missing."""
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                logger.warning(f"Snapshot key not found: {key}")
                return None
            raise StorageError(f"Download snapshot failed: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Download snapshot failed: {e}") from e
        return json.loads(response['Body'].read())
