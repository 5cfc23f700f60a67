"""
Klaviyo event feed persistence.
"""

from typing import Dict, List

from botocore.exceptions import BotoCoreError, ClientError

from ..core.utils import to_dynamodb
from .dynamodb import DynamoDBTable


class EventTable(DynamoDBTable):
    TABLE = "events"
    HASH_KEY = "id"


class EventRepository:

    def __init__(self, table: EventTable):
        self.table = table

    def upsert_events(self, events: List[Dict]) -> int:
        """Write events keyed by id, replacing existing rows. Returns the count written."""
        try:
            with self.table.table.batch_writer(overwrite_by_pkeys=['id']) as batch:
                for event in events:
                    batch.put_item(Item=to_dynamodb(event))
        except (ClientError, BotoCoreError) as e:
            raise self.table._fail("Upsert events", e) from e
        return len(events)
