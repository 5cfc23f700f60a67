"""
Application configuration and constants.
"""

from dataclasses import dataclass
from typing import Optional
import os


KLAVIYO_BASE_URL = "https://a.klaviyo.com/api"

# Klaviyo pins behaviour per revision; campaigns need the newer one for the
# messages.channel filter.
KLAVIYO_REVISION = "2023-07-15"
CAMPAIGNS_REVISION = "2025-10-15"

INTEGRATION_KLAVIYO = "KLAVIYO"
PLACED_ORDER_METRIC = "Placed Order"

PROFILE_FIELDS = [
    "email", "phone_number", "first_name", "last_name",
    "subscriptions", "suppression", "created", "updated", "location",
]

# Revenue windows stored on every snapshot, in display order
REVENUE_RANGES = {
    "last_7d": "Last 7 days",
    "last_30d": "Last 30 days",
    "last_90d": "Last 90 days",
    "month_to_date": "Month to date",
    "year_to_date": "Year to date",
}

# Profile filters on the store page: (label, days)
PROFILE_RANGES = [
    ("Last 7 days", 7),
    ("Last 30 days", 30),
    ("Last 90 days", 90),
    ("Year-to-date", 365),
]

PROFILE_TARGET = 4000
METRICS_MAX_PAGES = 20
FLOWS_MAX_PAGES = 10
CAMPAIGNS_MAX_PAGES = 10


@dataclass
class AppConfig:
    """Application configuration settings."""

    # AWS Settings
    aws_access_key: Optional[str] = None
    aws_secret_key: Optional[str] = None
    aws_region: str = "us-west-2"
    table_prefix: str = "flowdash"
    s3_bucket: Optional[str] = None

    # Klaviyo Settings
    klaviyo_base_url: str = KLAVIYO_BASE_URL
    klaviyo_timeout: int = 30
    profile_page_size: int = 100
    profile_max_pages: int = 200
    revenue_timezone: str = "Asia/Kolkata"
    currency: str = "USD"

    # Events feed (single account, configured by the operator)
    klaviyo_api_key: Optional[str] = None
    klaviyo_metric_id: Optional[str] = None

    # Cache / logging
    cache_ttl_seconds: int = 300
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> 'AppConfig':
        """Load configuration from environment variables."""
        return cls(
            aws_access_key=os.environ.get("AWS_ACCESS_KEY_ID"),
            aws_secret_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
            aws_region=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
            table_prefix=os.environ.get("FLOWDASH_TABLE_PREFIX", "flowdash"),
            s3_bucket=os.environ.get("S3_BUCKET_NAME"),
            klaviyo_base_url=os.environ.get("KLAVIYO_BASE_URL", KLAVIYO_BASE_URL),
            klaviyo_timeout=int(os.environ.get("KLAVIYO_TIMEOUT", "30")),
            revenue_timezone=os.environ.get("REVENUE_TIMEZONE", "Asia/Kolkata"),
            currency=os.environ.get("REVENUE_CURRENCY", "USD"),
            klaviyo_api_key=os.environ.get("KLAVIYO_API_KEY"),
            klaviyo_metric_id=os.environ.get("KLAVIYO_METRIC_ID"),
            cache_ttl_seconds=int(os.environ.get("CACHE_TTL_SECONDS", "300")),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_streamlit_secrets(cls) -> 'AppConfig':
        """Load configuration from Streamlit secrets."""
        try:
            import streamlit as st

            aws_secrets = st.secrets.get("aws", {})
            klaviyo_secrets = st.secrets.get("klaviyo", {})
            return cls(
                aws_access_key=aws_secrets.get("access_key_id"),
                aws_secret_key=aws_secrets.get("secret_access_key"),
                aws_region=aws_secrets.get("region", "us-west-2"),
                table_prefix=aws_secrets.get("table_prefix", "flowdash"),
                s3_bucket=aws_secrets.get("bucket_name"),
                klaviyo_api_key=klaviyo_secrets.get("api_key"),
                klaviyo_metric_id=klaviyo_secrets.get("metric_id"),
            )
        except Exception:
            return cls()

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration from environment first, then Streamlit secrets as fallback."""
        config = cls.from_environment()

        # Fill in missing values from Streamlit secrets
        st_config = cls.from_streamlit_secrets()

        if not config.aws_access_key:
            config.aws_access_key = st_config.aws_access_key
        if not config.aws_secret_key:
            config.aws_secret_key = st_config.aws_secret_key
        if not config.s3_bucket:
            config.s3_bucket = st_config.s3_bucket
        if "FLOWDASH_TABLE_PREFIX" not in os.environ:
            config.table_prefix = st_config.table_prefix
        if not config.klaviyo_api_key:
            config.klaviyo_api_key = st_config.klaviyo_api_key
        if not config.klaviyo_metric_id:
            config.klaviyo_metric_id = st_config.klaviyo_metric_id

        return config

    def table_name(self, name: str) -> str:
        """Return the prefixed DynamoDB table name."""
        return f"{self.table_prefix}-{name}"
