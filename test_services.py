"""
Events feed and account auth tests.
"""

from unittest.mock import MagicMock

import pytest

from flowdash.core.config import AppConfig
from flowdash.data.dynamodb import StorageError
from flowdash.data.users import UserRepository, UserTable
from flowdash.services.auth import AuthError, AuthService, hash_password, verify_password
from flowdash.services.events import EventsFeedService, demo_events
from flowdash.services.klaviyo import KlaviyoAPIError


# ── Events feed ────────────────────────────────────────────────────────
def test_demo_events():
    events = demo_events()

    assert [e['metric'] for e in events] == ["Placed Order", "Started Checkout", "Email Opened"]
    assert [e['value'] for e in events] == [482, 320, 1]
    assert events[0]['name'] == "Order #4821"


def test_events_without_key_use_demo_data():
    repo = MagicMock()
    repo.upsert_events.return_value = 3
    service = EventsFeedService(repo, AppConfig())

    feed = service.refresh()

    assert feed['source'] == "fallback"
    assert feed['warning'] == "KLAVIYO_API_KEY not set. Returning mock data."
    assert feed['count'] == 3
    assert feed['storage'] == {'stored': 3, 'message': "Upserted into events table"}


def test_events_from_klaviyo():
    client = MagicMock()
    client.fetch_metric_events.return_value = {'data': [{'id': "e1", 'event': "Order", 'value': 10}]}
    service = EventsFeedService(
        MagicMock(), AppConfig(klaviyo_api_key="pk", klaviyo_metric_id="m1"),
        client_factory=MagicMock(return_value=client),
    )

    snapshot = service.fetch_snapshot()

    client.fetch_metric_events.assert_called_once_with("m1")
    assert snapshot['source'] == "klaviyo"
    assert snapshot['warning'] is None
    assert snapshot['data'][0]['id'] == "e1"


def test_events_fall_back_when_klaviyo_fails():
    client = MagicMock()
    client.fetch_metric_events.side_effect = KlaviyoAPIError("500: down")
    service = EventsFeedService(None, AppConfig(klaviyo_api_key="pk"), client_factory=lambda key: client)

    feed = service.refresh()

    assert feed['source'] == "fallback"
    assert feed['warning'] == "Klaviyo fetch failed: 500: down"
    assert feed['storage']['stored'] == 0


def test_event_storage_failure_is_reported():
    repo = MagicMock()
    repo.upsert_events.side_effect = StorageError("Upsert events failed: throttled")

    feed = EventsFeedService(repo, AppConfig()).refresh()

    assert feed['count'] == 3
    assert feed['storage'] == {'stored': 0, 'message': "Skipped event storage: Upsert events failed: throttled"}


# ── Auth ───────────────────────────────────────────────────────────────
@pytest.fixture
def auth(make_table):
    return AuthService(UserRepository(make_table(UserTable)))


def test_password_hashing():
    hashed = hash_password("s3cret")

    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret", "not-a-bcrypt-hash")


def test_register_normalizes_and_hides_hash(auth):
    user = auth.register("  Ada@Example.COM ", " pw ", "  Ada ")

    assert user['email'] == "ada@example.com"
    assert user['name'] == "Ada"
    assert 'password_hash' not in user
    assert auth.email_exists("ADA@example.com")


@pytest.mark.parametrize("email,password", [("", "pw"), ("a@example.com", ""), (None, None)])
def test_register_requires_email_and_password(auth, email, password):
    with pytest.raises(AuthError, match="Email and password are required"):
        auth.register(email, password)


@pytest.mark.parametrize("password", ["x" * 80, "\u00e9" * 40])
def test_register_rejects_password_over_72_bytes(auth, password):
    with pytest.raises(AuthError, match="at most 72 bytes"):
        auth.register("ada@example.com", password)

    assert auth.email_exists("ada@example.com") is False


def test_register_accepts_72_byte_password(auth):
    auth.register("ada@example.com", "x" * 72)

    assert auth.authenticate("ada@example.com", "x" * 72)["email"] == "ada@example.com"


def test_register_rejects_duplicate(auth):
    auth.register("ada@example.com", "pw")

    with pytest.raises(AuthError, match="already exists"):
        auth.register("ADA@example.com", "other")


def test_email_exists_requires_email(auth):
    with pytest.raises(AuthError, match="email is required"):
        auth.email_exists("  ")
    assert auth.email_exists("nobody@example.com") is False


def test_authenticate(auth):
    auth.register("ada@example.com", "pw")

    user = auth.authenticate("Ada@example.com", "pw")
    assert user['email'] == "ada@example.com"
    assert 'password_hash' not in user
    assert auth.authenticate("ada@example.com", "nope") is None
    assert auth.authenticate("bob@example.com", "pw") is None
    assert auth.authenticate("", "pw") is None
