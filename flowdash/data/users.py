"""
User account and public profile persistence.
"""

import uuid
from typing import Dict, Optional

from boto3.dynamodb.conditions import Attr

from ..core.utils import to_iso, utc_now
from .dynamodb import DynamoDBTable


class UserTable(DynamoDBTable):
    TABLE = "users"
    HASH_KEY = "id"


class UserRepository:
    """Users are looked up by their (lowercased) email."""

    def __init__(self, table: UserTable):
        self.table = table

    def get_by_email(self, email: str) -> Optional[Dict]:
        matches = self.table.scan_all(
            action="Fetch user",
            FilterExpression=Attr('email').eq(email),
        )
        return matches[0] if matches else None

    def get_by_id(self, user_id: str) -> Optional[Dict]:
        return self.table.get({'id': user_id}, action="Fetch user")

    def create_user(self, email: str, password_hash: str, name: Optional[str] = None) -> Dict:
        user = {
            'id': str(uuid.uuid4()),
            'email': email,
            'name': name,
            'password_hash': password_hash,
            'created_at': to_iso(utc_now()),
        }
        self.table.put(user, action="Create user")
        return user

    def upsert_profile(self, user_id: str, email: str, name: Optional[str] = None) -> Dict:
        """Keep the public email/name in sync without touching credentials."""
        existing = self.get_by_id(user_id) or {'id': user_id, 'created_at': to_iso(utc_now())}
        existing.update({'email': email, 'name': name})
        self.table.put(existing, action="Upsert user profile")
        return existing
