"""
Account registration and password login.
"""

import logging
from typing import Dict, Optional

import bcrypt

from ..data.users import UserRepository

logger = logging.getLogger(__name__)


# bcrypt only hashes the first 72 bytes; newer releases reject longer input
MAX_PASSWORD_BYTES = 72


class AuthError(Exception):
    pass


def hash_password(plain_password: str) -> str:
    hashed = bcrypt.hashpw(plain_password.encode('utf-8'), bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def _clean_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AuthService:

    def __init__(self, users: UserRepository):
        self.users = users

    def email_exists(self, email: Optional[str]) -> bool:
        email = _clean_email(email)
        if not email:
            raise AuthError("email is required")
        return self.users.get_by_email(email) is not None

    def register(self, email: Optional[str], password: Optional[str], name: Optional[str] = None) -> Dict:
        """
        Create an account. Returns the stored user without its password hash.

        Raises:
            AuthError: missing fields, a password over 72 bytes, or the email is
                already registered
        """
        email = _clean_email(email)
        password = (password or "").strip()
        name = (name or "").strip() or None

        if not email or not password:
            raise AuthError("Email and password are required")

        if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise AuthError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")

        if self.users.get_by_email(email) is not None:
            raise AuthError("An account with this email already exists. Please log in instead.")

        user = self.users.create_user(email, hash_password(password), name)
        logger.info(f"Registered user {user['id']}")
        return {k: v for k, v in user.items() if k != 'password_hash'}

    def authenticate(self, email: Optional[str], password: Optional[str]) -> Optional[Dict]:
        email = _clean_email(email)
        if not email or not password:
            return None

        user = self.users.get_by_email(email)
        if not user or not user.get('password_hash'):
            return None
        if not verify_password(password, user['password_hash']):
            logger.info("Rejected login attempt")
            return None
        return {k: v for k, v in user.items() if k != 'password_hash'}
