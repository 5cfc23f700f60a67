"""
Analytics over stored snapshots: dashboard totals, merged revenue and the
per-store summary figures.
"""

import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import pandas as pd

from ..core.config import PROFILE_TARGET
from ..core.utils import parse_datetime, utc_now

ACTIVE_CAMPAIGN_STATUSES = ("live", "active", "scheduled", "sending", "sent")

PROFILE_COLUMNS = ['name', 'email', 'phone', 'created_at', 'updated_at', 'location', 'store_id']


def _status(record: Dict) -> str:
    status = record.get('status')
    return status.lower() if isinstance(status, str) else ""


def _number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    return value if isinstance(value, (int, float)) else None


def _first_number(*values) -> float:
    for value in values:
        if _number(value) is not None:
            return value
    return 0


class AnalyticsEngine:
    """Derives dashboard figures from snapshot rows ({store_id, raw, created_at})."""

    @staticmethod
    def aggregate_snapshots(rows: List[Dict]) -> Dict:
        """
        Combine the latest snapshot of each store into dashboard totals.

        Profile counts come from the profile items when any snapshot has
        them; otherwise they fall back to the stored counters and then to the
        audience block.
        """
        profile_items = []
        for row in rows:
            raw = row.get('raw') or {}
            for item in (raw.get('profiles') or {}).get('items') or []:
                profile_items.append({**item, 'store_id': row.get('store_id')})

        if profile_items:
            total = len(profile_items)
            active = sum(1 for p in profile_items if p.get('is_active'))
            suppressed = sum(1 for p in profile_items if p.get('is_suppressed'))
        else:
            total = suppressed = active = 0
            for row in rows:
                raw = row.get('raw') or {}
                profiles = raw.get('profiles') or {}
                audience = raw.get('audience') or {}

                total += _first_number(profiles.get('total_profiles'), audience.get('total_profiles'))
                suppressed += _first_number(
                    profiles.get('suppressed_profiles'), audience.get('suppressed_profiles')
                )

                profile_active = _number(profiles.get('active_profiles'))
                audience_total = _number(audience.get('total_profiles'))
                audience_suppressed = _number(audience.get('suppressed_profiles'))
                if profile_active is not None:
                    active += profile_active
                elif audience_total is not None and audience_suppressed is not None:
                    active += max(0, audience_total - audience_suppressed)

        active_flows = sum(
            1 for row in rows for f in (row.get('raw') or {}).get('flows') or []
            if _status(f) == "live"
        )
        active_campaigns = sum(
            1 for row in rows for c in (row.get('raw') or {}).get('campaigns') or []
            if _status(c) == "live"
        )

        return {
            'stores': len(rows),
            'profiles': {
                'total': total,
                'active': active,
                'suppressed': suppressed,
                'list': profile_items,
            },
            'active_flows': active_flows,
            'active_campaigns': active_campaigns,
        }

    @staticmethod
    def merge_revenue(rows: List[Dict], range_key: str) -> Dict:
        """
        Sum revenue for one range across stores and merge the daily series.

        Returns:
            {"total": float, "series": [{"date": "YYYY-MM-DD", "total_revenue"}]}
        """
        total = 0.0
        merged: Dict[str, float] = {}
        for row in rows:
            revenue = ((row.get('raw') or {}).get('revenue_by_range') or {}).get(range_key)
            if not revenue:
                continue
            total += revenue.get('total_revenue') or 0
            for point in revenue.get('series') or []:
                day = str(point.get('date', ''))[:10]
                merged[day] = merged.get(day, 0) + (point.get('total_revenue') or 0)

        series = [{'date': day, 'total_revenue': value} for day, value in merged.items()]
        series.sort(key=lambda p: p['date'])
        return {'total': total, 'series': series}

    # =========================================================================
    # Store view
    # =========================================================================

    @staticmethod
    def count_active_flows(snapshot: Dict) -> int:
        return sum(1 for f in snapshot.get('flows') or [] if _status(f) in ("live", "active"))

    @staticmethod
    def count_active_campaigns(snapshot: Dict) -> int:
        """Campaigns without a status count as active."""
        return sum(
            1 for c in snapshot.get('campaigns') or []
            if not _status(c) or _status(c) in ACTIVE_CAMPAIGN_STATUSES
        )

    @staticmethod
    def filter_profiles_by_days(items: List[Dict], days: int, now: Optional[datetime] = None) -> List[Dict]:
        """Profiles created within the last `days` days; unparseable dates are dropped."""
        cutoff = (now or utc_now()) - timedelta(days=days)
        kept = []
        for item in items:
            created = parse_datetime(item.get('created_at'))
            if created is not None and created >= cutoff:
                kept.append(item)
        return kept

    @staticmethod
    def top_flows(snapshot: Dict, n: int = 5) -> List[Dict]:
        flows = list(snapshot.get('flows') or [])
        flows.sort(key=lambda f: f.get('emails_sent_30d') or 0, reverse=True)
        return flows[:n]

    @staticmethod
    def profile_progress(total_profiles: int, target: int = PROFILE_TARGET) -> int:
        """Percent of the profile target reached, capped at 100."""
        return min(100, int(math.floor(total_profiles * 100 / target + 0.5)))

    # =========================================================================
    # Settings view
    # =========================================================================

    @staticmethod
    def count_flows(raw) -> Optional[int]:
        """Flow count from a stored payload of any known shape, or None."""
        if isinstance(raw, dict):
            if isinstance(raw.get('flows'), list):
                return len(raw['flows'])
            if isinstance(raw.get('data'), list):
                return len(raw['data'])
        if isinstance(raw, list):
            return len(raw)
        return None

    @staticmethod
    def derive_status(log: Optional[Dict]) -> str:
        if not log:
            return "Never synced"
        if log.get('status') == "success":
            return "OK"
        return "Error"

    # =========================================================================
    # Tables
    # =========================================================================

    @staticmethod
    def paginate(items: List, page: int, per_page: int = 25) -> Tuple[List, int, int]:
        """
        Slice one page of items.

        Returns:
            (page_items, page, total_pages) with page clamped to a valid value
        """
        total_pages = max(1, math.ceil(len(items) / per_page))
        page = min(max(1, page), total_pages)
        start = (page - 1) * per_page
        return items[start:start + per_page], page, total_pages

    @staticmethod
    def profiles_dataframe(items: List[Dict]) -> pd.DataFrame:
        """Profile rows as a display table with parsed dates."""
        df = pd.DataFrame(items, columns=None if items else PROFILE_COLUMNS)
        for col in PROFILE_COLUMNS:
            if col not in df.columns:
                df[col] = None
        df = df[PROFILE_COLUMNS].copy()

        for col in ['created_at', 'updated_at']:
            df[col] = pd.to_datetime(df[col], errors='coerce', utc=True).dt.strftime('%Y-%m-%d')

        df = df.fillna("—")
        return df.rename(columns={
            'name': 'Name',
            'email': 'Email',
            'phone': 'Phone',
            'created_at': 'Created',
            'updated_at': 'Updated',
            'location': 'Location',
            'store_id': 'Store',
        })
