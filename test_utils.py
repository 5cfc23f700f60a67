"""
Config and shared helper tests.
"""

from datetime import timedelta
from decimal import Decimal

import numpy as np

from conftest import NOW
from flowdash.core.config import AppConfig
from flowdash.core.utils import (
    days_ago_iso,
    format_currency,
    format_date,
    format_percent,
    format_relative,
    from_dynamodb,
    make_json_serializable,
    parse_datetime,
    safe_json_dumps,
    to_dynamodb,
    to_iso,
)


# ── Config ─────────────────────────────────────────────────────────────
def test_config_from_environment(monkeypatch):
    monkeypatch.setenv("FLOWDASH_TABLE_PREFIX", "acme")
    monkeypatch.setenv("KLAVIYO_TIMEOUT", "12")
    monkeypatch.setenv("REVENUE_CURRENCY", "EUR")
    monkeypatch.setenv("KLAVIYO_API_KEY", "pk_env")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "60")

    config = AppConfig.from_environment()

    assert config.table_name("stores") == "acme-stores"
    assert config.klaviyo_timeout == 12
    assert config.currency == "EUR"
    assert config.klaviyo_api_key == "pk_env"
    assert config.cache_ttl_seconds == 60


def test_config_defaults():
    config = AppConfig()
    assert config.table_name("flow-metrics") == "flowdash-flow-metrics"
    assert config.revenue_timezone == "Asia/Kolkata"
    assert config.profile_page_size == 100


# ── Serialization ──────────────────────────────────────────────────────
def test_dynamodb_conversion():
    item = to_dynamodb({'a': 1.25, 'b': None, 'c': [0.5, True], 'd': {'e': 2}})

    assert item == {'a': Decimal("1.25"), 'c': [Decimal("0.5"), True], 'd': {'e': 2}}
    assert from_dynamodb(item) == {'a': 1.25, 'c': [0.5, True], 'd': {'e': 2}}
    assert isinstance(from_dynamodb(Decimal("3")), int)


def test_json_serialization_of_library_types():
    data = {'n': np.int64(3), 'f': np.float64(1.5), 'd': Decimal("2.5"), 'when': NOW}

    assert make_json_serializable(data) == {'n': 3, 'f': 1.5, 'd': 2.5, 'when': "2024-03-15T10:00:00.000Z"}
    assert safe_json_dumps({'x': 1}, indent=None) == '{"x": 1}'


# ── Time ───────────────────────────────────────────────────────────────
def test_iso_and_parse():
    assert to_iso(NOW) == "2024-03-15T10:00:00.000Z"
    assert days_ago_iso(30, NOW) == "2024-02-14T10:00:00.000Z"
    assert parse_datetime("2024-03-15T10:00:00Z") == NOW
    assert parse_datetime("garbage") is None
    assert parse_datetime(None) is None


def test_relative_labels():
    assert format_relative(NOW - timedelta(seconds=20), NOW) == "Just now"
    assert format_relative(NOW - timedelta(minutes=5), NOW) == "5 min ago"
    assert format_relative(NOW - timedelta(hours=3), NOW) == "3 hr ago"
    assert format_relative(NOW - timedelta(days=1), NOW) == "1 day ago"
    assert format_relative(NOW - timedelta(days=4), NOW) == "4 days ago"
    assert format_relative(None, NOW) == "—"


# ── Display ────────────────────────────────────────────────────────────
def test_formatters():
    assert format_currency(1234.6) == "$1,235"
    assert format_currency(99, "eur") == "€99"
    assert format_currency(1234.6, "CAD") == "CAD 1,235"
    assert format_percent(0.46) == "46.0%"
    assert format_percent(None) == "0.0%"
    assert format_date("2024-03-15T23:59:00Z") == "2024-03-15"
    assert format_date("") == "—"
