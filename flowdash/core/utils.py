"""
Shared utility functions for the flow metrics dashboard.
"""

import json
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

import numpy as np
import pandas as pd


def make_json_serializable(obj: Any) -> Any:
    """
    Recursively convert an object to be JSON serializable.
    Handles numpy types, pandas types, Decimals, datetime objects, etc.

    Args:
        obj: Any Python object

    Returns:
        JSON-serializable version of the object
    """
    if obj is None:
        return None

    # DynamoDB hands numbers back as Decimal
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)

    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.bool_):
        return bool(obj)

    if isinstance(obj, pd.Timestamp):
        return to_iso(obj.to_pydatetime())

    if isinstance(obj, datetime):
        return to_iso(obj)
    if isinstance(obj, date):
        return obj.strftime('%Y-%m-%d')

    if isinstance(obj, dict):
        return {str(k): make_json_serializable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple, set)):
        return [make_json_serializable(item) for item in obj]

    if isinstance(obj, (str, int, float, bool)):
        return obj

    try:
        return str(obj)
    except Exception:
        return "<non-serializable>"


def safe_json_dumps(obj: Any, indent: Optional[int] = 2) -> str:
    """
    Safely convert an object to a JSON string.
    Handles non-serializable types gracefully.
    """
    try:
        return json.dumps(make_json_serializable(obj), indent=indent)
    except Exception as e:
        return json.dumps({"error": f"Could not serialize data: {str(e)}"})


def to_dynamodb(obj: Any) -> Any:
    """
    Prepare a value for boto3's DynamoDB resource layer.

    Floats become Decimal (boto3 rejects float) and None-valued map entries
    are dropped.
    """
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: to_dynamodb(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, (list, tuple)):
        return [to_dynamodb(item) for item in obj]
    return obj


def from_dynamodb(obj: Any) -> Any:
    """Convert DynamoDB items (Decimal numbers) back to plain Python values."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)
    if isinstance(obj, dict):
        return {k: from_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [from_dynamodb(item) for item in obj]
    return obj


# =============================================================================
# Time helpers
# =============================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision and a Z suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"


def days_ago_iso(days: int, now: Optional[datetime] = None) -> str:
    now = now or utc_now()
    return to_iso(now - timedelta(days=days))


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-ish timestamp into an aware UTC datetime.

    Returns None for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    try:
        ts = pd.to_datetime(value, errors='coerce', utc=True)
    except (TypeError, ValueError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


# =============================================================================
# Display formatters
# =============================================================================

def format_date(value: Any) -> str:
    """Return YYYY-MM-DD, or an em dash for missing/invalid dates."""
    parsed = parse_datetime(value)
    if parsed is None:
        return "—"
    return parsed.strftime('%Y-%m-%d')


def format_relative(value: Any, now: Optional[datetime] = None) -> str:
    """Human-friendly "time ago" label for a timestamp."""
    parsed = parse_datetime(value)
    if parsed is None:
        return "—"
    now = now or utc_now()
    diff = max(0.0, (now - parsed).total_seconds())
    mins = int(diff // 60)
    if mins < 1:
        return "Just now"
    if mins < 60:
        return f"{mins} min ago"
    hours = mins // 60
    if hours < 24:
        return f"{hours} hr ago"
    days = hours // 24
    return f"{days} day{'' if days == 1 else 's'} ago"


CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}


def format_currency(value: float, currency: str = "USD") -> str:
    """Format a whole-unit currency amount, e.g. $1,235."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    amount = f"{abs(value):,.0f}"
    sign = "-" if value < 0 and round(abs(value)) != 0 else ""
    if symbol:
        return f"{sign}{symbol}{amount}"
    return f"{sign}{currency.upper()} {amount}"


def format_percent(rate: float) -> str:
    """Format a 0-1 rate as a percentage with one decimal."""
    return f"{(rate or 0) * 100:.1f}%"
