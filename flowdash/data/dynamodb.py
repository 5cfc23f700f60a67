"""
DynamoDB access helpers shared by the repositories.
"""

import logging
from typing import Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import AppConfig
from ..core.utils import from_dynamodb, to_dynamodb

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the backing store rejects or fails an operation."""


def create_dynamodb_resource(config: AppConfig):
    """Build a DynamoDB resource with short timeouts so pages never hang."""
    boto_config = Config(
        connect_timeout=5,
        read_timeout=10,
        retries={'max_attempts': 2}
    )

    session_kwargs = {'region_name': config.aws_region, 'config': boto_config}
    if config.aws_access_key and config.aws_secret_key:
        session_kwargs['aws_access_key_id'] = config.aws_access_key
        session_kwargs['aws_secret_access_key'] = config.aws_secret_key

    return boto3.resource('dynamodb', **session_kwargs)


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Message', str(error))
    return str(error)


class DynamoDBTable:
    """
    Base class for a single-table repository.

    Subclasses declare the short table name and key schema; the table is
    created on first use when it does not exist yet.
    """

    TABLE = ""
    HASH_KEY = ""
    RANGE_KEY: Optional[str] = None

    def __init__(self, dynamodb, config: AppConfig, ensure_table: bool = True):
        self.dynamodb = dynamodb
        self.config = config
        self.table_name = config.table_name(self.TABLE)
        if ensure_table:
            self._ensure_table_exists()
        self.table = self.dynamodb.Table(self.table_name)

    def _ensure_table_exists(self) -> None:
        """Create the table if it doesn't exist."""
        key_schema = [{'AttributeName': self.HASH_KEY, 'KeyType': 'HASH'}]
        attributes = [{'AttributeName': self.HASH_KEY, 'AttributeType': 'S'}]
        if self.RANGE_KEY:
            key_schema.append({'AttributeName': self.RANGE_KEY, 'KeyType': 'RANGE'})
            attributes.append({'AttributeName': self.RANGE_KEY, 'AttributeType': 'S'})

        try:
            table = self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=key_schema,
                AttributeDefinitions=attributes,
                BillingMode='PAY_PER_REQUEST'
            )
            table.wait_until_exists()
            logger.info(f"Created DynamoDB table {self.table_name}")
        except self.dynamodb.meta.client.exceptions.ResourceInUseException:
            # Table already exists
            pass
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Create table {self.table_name} failed: {_error_message(e)}") from e

    def _fail(self, action: str, error: Exception) -> StorageError:
        logger.error(f"{action} failed on {self.table_name}: {error}")
        return StorageError(f"{action} failed: {_error_message(error)}")

    def put(self, item: Dict, action: str = "Insert") -> Dict:
        try:
            self.table.put_item(Item=to_dynamodb(item))
        except (ClientError, BotoCoreError) as e:
            raise self._fail(action, e) from e
        return item

    def get(self, key: Dict, action: str = "Fetch") -> Optional[Dict]:
        try:
            response = self.table.get_item(Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._fail(action, e) from e
        item = response.get('Item')
        return from_dynamodb(item) if item else None

    def delete(self, key: Dict, action: str = "Delete") -> None:
        try:
            self.table.delete_item(Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._fail(action, e) from e

    def scan_all(self, action: str = "Scan", **kwargs) -> List[Dict]:
        """Scan the table, following LastEvaluatedKey pagination."""
        try:
            response = self.table.scan(**kwargs)
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'], **kwargs
                )
                items.extend(response.get('Items', []))
        except (ClientError, BotoCoreError) as e:
            raise self._fail(action, e) from e

        return [from_dynamodb(item) for item in items]

    def query_all(self, action: str = "Query", **kwargs) -> List[Dict]:
        """Query the table, following LastEvaluatedKey unless a Limit is set."""
        try:
            response = self.table.query(**kwargs)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response and 'Limit' not in kwargs:
                response = self.table.query(
                    ExclusiveStartKey=response['LastEvaluatedKey'], **kwargs
                )
                items.extend(response.get('Items', []))
        except (ClientError, BotoCoreError) as e:
            raise self._fail(action, e) from e

        return [from_dynamodb(item) for item in items]

    def count(self, action: str = "Count") -> int:
        try:
            response = self.table.scan(Select='COUNT')
            total = response.get('Count', 0)
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    Select='COUNT', ExclusiveStartKey=response['LastEvaluatedKey']
                )
                total += response.get('Count', 0)
        except (ClientError, BotoCoreError) as e:
            raise self._fail(action, e) from e
        return total
