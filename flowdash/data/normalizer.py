"""
Snapshot normalization.

Maps the loosely-typed Klaviyo JSON:API records into the fixed snapshot shape
stored per store. Every field has a default so downstream pages never have to
guard against missing keys.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..core.utils import days_ago_iso, utc_now, to_iso, parse_datetime

CONSENT_KEYWORDS = ("subscribed", "consent", "active", "opted_in", "opt-in", "opt in")
UNSUBSCRIBE_KEYWORDS = ("unsubscribed", "suppressed", "denied", "opted_out", "opt-out", "opt out")


def _first(*values, default=None):
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return default


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _records(raw: Any) -> List[dict]:
    """Accept either a list of records or a {"data": [...]} payload."""
    if isinstance(raw, dict):
        raw = raw.get("data")
    if not isinstance(raw, list):
        return []
    return [r for r in raw if isinstance(r, dict)]


# =============================================================================
# Flows & campaigns
# =============================================================================

def normalize_flows(raw: Any) -> List[Dict]:
    """Map flow records; Klaviyo's flow list carries no stats so counters are zero."""
    flows = []
    for idx, record in enumerate(_records(raw)):
        attributes = _dict(record.get("attributes"))
        flows.append({
            'flow_id': str(_first(record.get("id"), default=f"flow-{idx}")),
            'flow_name': _first(attributes.get("name"), record.get("name"), default=f"Flow {idx + 1}"),
            'emails_sent_30d': 0,
            'opens_30d': 0,
            'clicks_30d': 0,
            'placed_orders_30d': 0,
            'revenue_30d': 0,
            'open_rate_30d': 0,
            'click_rate_30d': 0,
            'placed_order_rate_30d': 0,
            'status': _first(attributes.get("status"), default="unknown"),
        })
    return flows


def normalize_campaigns(raw: Any, now_iso: Optional[str] = None) -> List[Dict]:
    """Map campaign records, defaulting the send date to now."""
    now_iso = now_iso or to_iso(utc_now())
    campaigns = []
    for idx, record in enumerate(_records(raw)):
        attributes = _dict(record.get("attributes"))
        campaigns.append({
            'campaign_id': str(_first(record.get("id"), default=f"campaign-{idx}")),
            'name': _first(attributes.get("name"), record.get("name"), default=f"Campaign {idx + 1}"),
            'subject': _first(attributes.get("subject"), default="—"),
            'send_date': _first(attributes.get("send_time"), default=now_iso),
            'emails_sent': 0,
            'opens': 0,
            'clicks': 0,
            'placed_orders': 0,
            'revenue': 0,
            'open_rate': 0,
            'click_rate': 0,
            'placed_order_rate': 0,
            'unsubscribe_rate': 0,
            'status': _first(attributes.get("status"), default="unknown"),
        })
    return campaigns


# =============================================================================
# Profiles
# =============================================================================

def is_suppressed(attributes: dict) -> bool:
    """
    True when any of Klaviyo's suppression shapes marks the profile.

    Handles the flat ``suppressed`` flag, the nested
    ``email.marketing.suppressed`` flag and the ``suppressions`` list.
    """
    suppression = attributes.get("suppression")
    if not isinstance(suppression, dict):
        return False
    if suppression.get("suppressed"):
        return True
    if _dict(_dict(suppression.get("email")).get("marketing")).get("suppressed"):
        return True
    entries = suppression.get("suppressions")
    if isinstance(entries, list):
        return any(
            (str(_dict(s).get("channel") or "")).lower() == "email"
            or _dict(s).get("suppressed") is True
            or bool(_dict(s).get("reason"))
            for s in entries
        )
    return False


def parse_marketing_status(attributes: dict) -> Dict[str, bool]:
    """
    Interpret the email marketing subscription block.

    Returns:
        Dict with consented, unsubscribed and has_status flags
    """
    marketing = _dict(_dict(_dict(attributes.get("subscriptions")).get("email")).get("marketing"))

    raw_status = _first(
        marketing.get("status"),
        marketing.get("state"),
        marketing.get("subscription_status"),
        marketing.get("consent"),
    )

    has_consent_list = isinstance(raw_status, list) and len(raw_status) > 0
    if isinstance(raw_status, str):
        status = raw_status.lower()
    elif isinstance(raw_status, list):
        status = ",".join(str(v).lower() for v in raw_status)
    else:
        status = ""

    consented = (
        marketing.get("consented") is True
        or marketing.get("unsubscribed") is False
        or has_consent_list
        or any(word in status for word in CONSENT_KEYWORDS)
    )
    unsubscribed = (
        marketing.get("unsubscribed") is True
        or any(word in status for word in UNSUBSCRIBE_KEYWORDS)
    )
    has_status = (
        raw_status is not None
        or "consented" in marketing
        or "unsubscribed" in marketing
    )

    return {'consented': consented, 'unsubscribed': unsubscribed, 'has_status': has_status}


def normalize_profile(record: dict, now_iso: Optional[str] = None) -> Dict:
    """Map one profile record into a display row."""
    now_iso = now_iso or to_iso(utc_now())
    attributes = _dict(record.get("attributes"))
    location = _dict(attributes.get("location"))

    full_name = " ".join(
        part for part in (attributes.get("first_name"), attributes.get("last_name")) if part
    ).strip()

    marketing = parse_marketing_status(attributes)
    suppressed = is_suppressed(attributes) or marketing['unsubscribed']
    active = not suppressed and (marketing['consented'] or not marketing['has_status'])

    created = _first(attributes.get("created"), default=now_iso)
    item = {
        'id': record.get("id"),
        'name': full_name or attributes.get("email") or attributes.get("phone_number") or "Unknown profile",
        'email': _first(attributes.get("email"), default="—"),
        'phone': attributes.get("phone_number"),
        'created_at': created,
        'updated_at': _first(attributes.get("updated"), attributes.get("created"), default=now_iso),
        'location': _first(location.get("city"), location.get("region"), location.get("country")),
        'is_suppressed': suppressed,
        'is_active': active,
    }
    return item


def normalize_profiles(raw: Any, now_iso: Optional[str] = None) -> Dict:
    """Map profile records and count active/suppressed ones."""
    items = [normalize_profile(record, now_iso) for record in _records(raw)]
    return {
        'total_profiles': len(items),
        'active_profiles': sum(1 for i in items if i['is_active']),
        'suppressed_profiles': sum(1 for i in items if i['is_suppressed']),
        'items': items,
    }


def build_audience(profiles: Dict, now: Optional[datetime] = None) -> Dict:
    """Derive audience counters from the normalized profile list."""
    now = now or utc_now()
    created = [parse_datetime(item.get('created_at')) for item in profiles.get('items', [])]

    def created_since(days: int) -> int:
        cutoff = now - timedelta(days=days)
        return sum(1 for c in created if c is not None and c >= cutoff)

    timeseries = []
    for idx in range(7):
        point = now - timedelta(days=7 - idx)
        timeseries.append({
            'date': to_iso(point),
            'total_profiles': sum(1 for c in created if c is None or c <= point),
        })

    return {
        'total_profiles': profiles.get('total_profiles', 0),
        'new_profiles_7d': created_since(7),
        'new_profiles_30d': created_since(30),
        'unsubscribes_7d': 0,
        'unsubscribes_30d': 0,
        'suppressed_profiles': profiles.get('suppressed_profiles', 0),
        'list_size_timeseries': timeseries,
    }


# =============================================================================
# Revenue
# =============================================================================

def normalize_revenue(payload: Any, start: str) -> Dict:
    """
    Turn a metric-aggregates response into a total and a daily series.

    Supports both per-row results (``interval_start`` + ``sum_value``) and
    Klaviyo's columnar shape where ``attributes.dates`` lines up with a
    ``measurements.sum_value`` list.

    Args:
        payload: Decoded response body
        start: Range start, used when a row carries no date

    Returns:
        {"total_revenue": float, "series": [{"date", "total_revenue"}]}
    """
    data = _dict(payload).get("data")
    if isinstance(data, list):
        node = _dict(data[0]) if data else {}
    else:
        node = _dict(data)
    attributes = _dict(node.get("attributes"))
    dates = attributes.get("dates") if isinstance(attributes.get("dates"), list) else []
    rows = attributes.get("results") if isinstance(attributes.get("results"), list) else []

    series = []
    for row in rows:
        row = _dict(row)
        measurements = _dict(row.get("measurements"))
        values = measurements.get("sum_value")
        if isinstance(values, list):
            for idx, value in enumerate(values):
                series.append({
                    'date': dates[idx] if idx < len(dates) else start,
                    'total_revenue': _to_float(value),
                })
            continue

        date_value = _first(
            row.get("interval_start"),
            row.get("date"),
            row.get("datetime"),
            row.get("time"),
            row.get("interval"),
            default=start,
        )
        total_value = _first(row.get("sum_value"), values, row.get("data"), default=0)
        series.append({'date': date_value, 'total_revenue': _to_float(total_value)})

    total = _to_float(_dict(attributes.get("total")).get("sum_value"))
    if not total:
        total = sum(point['total_revenue'] for point in series)

    return {'total_revenue': total, 'series': series}


# =============================================================================
# Legacy events feed
# =============================================================================

def normalize_events(payload: Any, now_iso: Optional[str] = None, limit: int = 10) -> List[Dict]:
    """Normalize a metric export (list or {"data": [...]}) into event rows."""
    now_iso = now_iso or to_iso(utc_now())
    items = _records(payload)[:limit]

    events = []
    for index, item in enumerate(items):
        metric = _first(item.get("metric"), item.get("metric_name"))
        metric = metric if isinstance(metric, dict) else {}
        properties = _dict(item.get("properties"))
        aggregation = _dict(metric.get("aggregation"))
        metric_name = item.get("metric_name") if isinstance(item.get("metric_name"), str) else None

        raw_value = _first(item.get("value"), properties.get("value"), aggregation.get("value"))
        value = _to_float(raw_value) if raw_value is not None else float(index + 1)

        events.append({
            'id': str(_first(item.get("id"), item.get("event_id"), default=f"klaviyo-{index}")),
            'metric': _first(metric.get("name"), metric_name, item.get("event"), item.get("name"), default="Metric"),
            'name': _first(item.get("event"), item.get("name"), default="Event"),
            'value': value,
            'timestamp': _first(item.get("timestamp"), item.get("datetime"), item.get("occurred_at"), default=now_iso),
        })
    return events


# =============================================================================
# Snapshot assembly
# =============================================================================

class SnapshotNormalizer:
    """Assembles the canonical per-store snapshot from raw API records."""

    def __init__(self, currency: str = "USD"):
        self.currency = currency

    @staticmethod
    def _mean(values: List[float]) -> float:
        return sum(values) / len(values) if values else 0

    def build_snapshot(
        self,
        store_id: str,
        flows_raw: Any,
        campaigns_raw: Any,
        profiles_raw: Any,
        revenue_by_range: Optional[Dict[str, Dict]] = None,
        revenue_metric_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict:
        """
        Build the snapshot document persisted for a store.

        Args:
            store_id: Store the snapshot belongs to
            flows_raw: Flow records (list or JSON:API payload)
            campaigns_raw: Campaign records, may be empty
            profiles_raw: Profile records
            revenue_by_range: Normalized revenue keyed by range name
            revenue_metric_id: Metric the revenue was aggregated from
            now: Sync time (defaults to current UTC time)

        Returns:
            Snapshot dictionary
        """
        now = now or utc_now()
        now_iso = to_iso(now)
        revenue_by_range = revenue_by_range or {}

        flows = normalize_flows(flows_raw)
        campaigns = normalize_campaigns(campaigns_raw, now_iso)
        profiles = normalize_profiles(profiles_raw, now_iso)

        revenue_30d = _dict(revenue_by_range.get("last_30d"))
        total_revenue_30d = _to_float(revenue_30d.get("total_revenue"))
        flow_revenue = sum(f['revenue_30d'] for f in flows)
        campaign_revenue = sum(c['revenue'] for c in campaigns)

        revenue_timeseries = [
            {
                'date': point['date'],
                'flow_revenue': 0,
                'campaign_revenue': 0,
                'total_revenue': point['total_revenue'],
            }
            for point in revenue_30d.get("series", [])
        ]

        return {
            'store_id': store_id,
            'synced_at': now_iso,
            'period': {'from': days_ago_iso(30, now), 'to': now_iso},
            'overview': {
                'total_revenue_30d': total_revenue_30d,
                'flow_revenue_30d': flow_revenue,
                'campaign_revenue_30d': campaign_revenue,
                'emails_sent_30d': sum(f['emails_sent_30d'] for f in flows),
                'avg_open_rate_30d': self._mean([f['open_rate_30d'] for f in flows]),
                'avg_click_rate_30d': self._mean([f['click_rate_30d'] for f in flows]),
            },
            'flows': flows,
            'campaigns': campaigns,
            'audience': build_audience(profiles, now),
            'deliverability': {
                'bounce_rate_30d': 0,
                'spam_complaint_rate_30d': 0,
                'unsubscribe_rate_30d': 0,
            },
            'revenue_timeseries': revenue_timeseries,
            'meta': {
                'revenue_metric_id': revenue_metric_id,
                'revenue_currency': self.currency,
            },
            'profiles': profiles,
            'revenue_by_range': revenue_by_range,
            'total_revenue_7d': _to_float(_dict(revenue_by_range.get("last_7d")).get("total_revenue")),
            'total_revenue_90d': _to_float(_dict(revenue_by_range.get("last_90d")).get("total_revenue")),
        }
