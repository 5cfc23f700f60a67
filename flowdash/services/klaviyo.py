"""
Klaviyo API client.

Thin wrapper over the Klaviyo REST API used by the sync pipeline. Handles
headers/revisions, error decoding and ``links.next`` pagination for:
- flows
- email campaigns
- profiles (with a fallback that drops the sparse fieldset)
- metrics lookup and revenue aggregates for the "Placed Order" metric
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from ..core.config import (
    KLAVIYO_BASE_URL,
    KLAVIYO_REVISION,
    CAMPAIGNS_REVISION,
    PLACED_ORDER_METRIC,
    PROFILE_FIELDS,
    REVENUE_RANGES,
    METRICS_MAX_PAGES,
    FLOWS_MAX_PAGES,
    CAMPAIGNS_MAX_PAGES,
)
from ..core.utils import utc_now, to_iso
from ..data.normalizer import normalize_revenue

logger = logging.getLogger(__name__)


class KlaviyoAPIError(Exception):
    """Raised when a Klaviyo request fails or returns unusable data."""

    def __init__(self, message: str, status: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.detail = detail


def _error_detail(response) -> Optional[str]:
    """Pull a human-readable detail out of a Klaviyo error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    if body.get("detail"):
        return str(body["detail"])
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        detail = errors[0].get("detail")
        return str(detail) if detail else None
    return None


def get_range(range_key: str, now: Optional[datetime] = None) -> Tuple[str, str]:
    """
    Resolve a named revenue window to (start, end) ISO timestamps.

    Args:
        range_key: One of REVENUE_RANGES
        now: Reference time (defaults to current UTC time)

    Returns:
        Tuple of ISO-8601 strings
    """
    if range_key not in REVENUE_RANGES:
        raise ValueError(f"Unknown revenue range: {range_key}")

    now = now or utc_now()
    start = now
    if range_key == "last_7d":
        start = now - timedelta(days=7)
    elif range_key == "last_30d":
        start = now - timedelta(days=30)
    elif range_key == "last_90d":
        start = now - timedelta(days=90)
    elif range_key == "month_to_date":
        start = now.replace(day=1)
    elif range_key == "year_to_date":
        start = now.replace(month=1, day=1)

    return to_iso(start), to_iso(now)


class KlaviyoClient:
    """Client for the subset of the Klaviyo API the dashboard needs."""

    def __init__(
        self,
        api_key: str,
        base_url: str = KLAVIYO_BASE_URL,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        if not api_key:
            raise ValueError("Klaviyo API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, revision: str) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Revision": revision,
            "Authorization": f"Klaviyo-API-Key {self.api_key}",
        }

    def _url(self, path_or_url: str) -> str:
        if path_or_url.startswith("http"):
            return path_or_url
        return f"{self.base_url}{path_or_url}"

    def _request(
        self,
        method: str,
        path_or_url: str,
        revision: str = KLAVIYO_REVISION,
        label: str = "Klaviyo",
        json_body: Optional[dict] = None
    ) -> dict:
        """Issue a request and return the decoded JSON body."""
        url = self._url(path_or_url)
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(revision),
                json=json_body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise KlaviyoAPIError(f"{label} request failed: {e}") from e

        if not response.ok:
            detail = _error_detail(response)
            message = (
                f"{response.status_code}: {detail}" if detail
                else f"{label} request failed with status {response.status_code}"
            )
            raise KlaviyoAPIError(message, status=response.status_code, detail=detail)

        try:
            payload = response.json()
        except ValueError as e:
            raise KlaviyoAPIError(f"{label} returned a non-JSON response") from e

        return payload if isinstance(payload, dict) else {"data": payload}

    def _paginate(
        self,
        path_or_url: str,
        revision: str = KLAVIYO_REVISION,
        label: str = "Klaviyo",
        max_pages: int = 1
    ) -> List[dict]:
        """Follow links.next until exhausted or max_pages pages were read."""
        collected = []
        next_url = path_or_url
        pages = 0

        while next_url and pages < max_pages:
            pages += 1
            logger.info(f"[sync] Fetching {label} page {pages}: {next_url}")
            payload = self._request("GET", next_url, revision=revision, label=label)
            data = payload.get("data")
            count = len(data) if isinstance(data, list) else 0
            next_url = (payload.get("links") or {}).get("next") or None
            logger.info(f"[sync] {label} page {pages} received: count={count} next={next_url}")
            if isinstance(data, list):
                collected.extend(data)

        return collected

    # =========================================================================
    # Flows & campaigns
    # =========================================================================

    def fetch_flows(self, max_pages: int = FLOWS_MAX_PAGES) -> List[dict]:
        """Fetch flow records."""
        return self._paginate("/flows/", label="Flows", max_pages=max_pages)

    def fetch_campaigns(self, max_pages: int = CAMPAIGNS_MAX_PAGES) -> List[dict]:
        """Fetch email campaign records."""
        try:
            return self._paginate(
                "/campaigns/?filter=equals(messages.channel,'email')",
                revision=CAMPAIGNS_REVISION,
                label="Campaigns",
                max_pages=max_pages,
            )
        except KlaviyoAPIError as e:
            logger.error(f"[sync] Campaigns fetch failed: status={e.status} detail={e.detail}")
            raise

    # =========================================================================
    # Profiles
    # =========================================================================

    def _profiles_url(self, page_size: int, with_fields: bool) -> str:
        url = f"/profiles/?page[size]={page_size}"
        if with_fields:
            url += f"&fields[profile]={','.join(PROFILE_FIELDS)}"
        return url

    def collect_profiles(self, page_size: int, max_pages: int, with_fields: bool) -> List[dict]:
        return self._paginate(
            self._profiles_url(page_size, with_fields),
            label="Profiles",
            max_pages=max_pages,
        )

    def fetch_all_profiles(self, page_size: int = 100, max_pages: int = 200) -> List[dict]:
        """
        Fetch every profile, preferring the explicit sparse fieldset.

        If the fieldset request errors or returns nothing, the listing is
        retried with Klaviyo's default schema.

        Raises:
            KlaviyoAPIError: if neither attempt returns any profile
        """
        try:
            primary = self.collect_profiles(page_size, max_pages, with_fields=True)
            if primary:
                return primary
            logger.warning("[sync] Profiles request with fields returned nothing, retrying without fields")
        except KlaviyoAPIError as e:
            logger.warning(f"[sync] Profiles request with fields failed ({e}), retrying without fields")

        fallback = self.collect_profiles(min(page_size, 100), max_pages, with_fields=False)
        if not fallback:
            raise KlaviyoAPIError("No profiles returned from Klaviyo")
        return fallback

    # =========================================================================
    # Metrics & revenue
    # =========================================================================

    def _fetch_metrics_page(self, url: str) -> dict:
        payload = self._request("GET", url, label="Metrics")
        data = payload.get("data")
        count = len(data) if isinstance(data, list) else 0
        logger.info(f"[sync] Metrics page ok: count={count} next={(payload.get('links') or {}).get('next')}")
        return payload

    @staticmethod
    def _match_metric(records) -> Optional[str]:
        target = PLACED_ORDER_METRIC.lower()
        for metric in records or []:
            if not isinstance(metric, dict):
                continue
            name = (metric.get("attributes") or {}).get("name") or ""
            if name.lower() == target and metric.get("id"):
                return metric["id"]
        return None

    def find_placed_order_metric_id(self) -> Optional[str]:
        """
        Locate the "Placed Order" metric id.

        Filtered lookups are tried first to avoid paging through every
        metric; any failure there falls through to a paged scan.
        """
        filters = [
            f'equals(name,"{PLACED_ORDER_METRIC}")',
            f'contains(name,"{PLACED_ORDER_METRIC}")',
        ]
        for metric_filter in filters:
            url = f"/metrics/?page[size]=100&filter={quote(metric_filter, safe='')}"
            logger.info(f"[sync] Fetching metrics with filter {metric_filter}")
            try:
                hit = self._match_metric(self._fetch_metrics_page(url).get("data"))
            except KlaviyoAPIError as e:
                logger.warning(f"[sync] Metric filter {metric_filter} failed: {e}")
                continue
            if hit:
                return hit

        next_url = "/metrics/?page[size]=100"
        pages = 0
        while next_url and pages < METRICS_MAX_PAGES:
            pages += 1
            try:
                payload = self._fetch_metrics_page(next_url)
            except KlaviyoAPIError as e:
                logger.warning(f"[sync] Metrics page {pages} failed, giving up: {e}")
                break
            hit = self._match_metric(payload.get("data"))
            if hit:
                return hit
            next_url = (payload.get("links") or {}).get("next") or None

        return None

    def fetch_revenue_for_range(
        self,
        metric_id: str,
        range_key: str,
        timezone_name: Optional[str] = "Asia/Kolkata",
        now: Optional[datetime] = None
    ) -> Dict:
        """
        Aggregate daily revenue (sum_value) for the metric over a window.

        When the request with a timezone is rejected it is retried once
        without one.

        Returns:
            {"total_revenue": float, "series": [{"date", "total_revenue"}]}
        """
        start, end = get_range(range_key, now)
        attributes = {
            "metric_id": metric_id,
            "measurements": ["sum_value"],
            "interval": "day",
            "filter": f"greater-or-equal(datetime,'{start}'),less-than(datetime,'{end}')",
        }
        if timezone_name:
            attributes["timezone"] = timezone_name

        def do_request(attrs: dict) -> dict:
            body = {"data": {"type": "metric-aggregate", "attributes": attrs}}
            return self._request("POST", "/metric-aggregates/", label="Revenue", json_body=body)

        try:
            payload = do_request(attributes)
        except KlaviyoAPIError as e:
            if "timezone" not in attributes:
                raise
            logger.warning(f"[sync] Revenue request for {range_key} failed ({e}), retrying without timezone")
            retry_attributes = {k: v for k, v in attributes.items() if k != "timezone"}
            payload = do_request(retry_attributes)

        return normalize_revenue(payload, start)

    # =========================================================================
    # Legacy event export
    # =========================================================================

    def fetch_metric_events(self, metric_id: str) -> dict:
        """Fetch the legacy v1 export for a metric (used by the events feed)."""
        root = self.base_url[:-len("/api")] if self.base_url.endswith("/api") else self.base_url
        return self._request(
            "GET",
            f"{root}/api/v1/metric/{metric_id}/export",
            label="Metric export",
        )
