"""Configuration constants and static (dev fallback) credentials."""

from dataclasses import dataclass
from typing import Optional
import os

from .utils import logger

# Constants
META_GRAPH_API_VERSION = "v24.0"
META_GRAPH_API_BASE = f"https://graph.facebook.com/{META_GRAPH_API_VERSION}"
USER_AGENT = "meta-ad-publisher/0.1.0"
REQUEST_TIMEOUT = 30.0

# Backend that holds the real platform token for signed-in organizations
PUBLISHER_API_BASE = os.environ.get("PUBLISHER_API_BASE", "http://localhost:3000").rstrip("/")
PROXY_ROUTE = "/api/meta/proxy"
UPLOAD_ROUTE = "/api/meta/upload"
STATUS_ROUTE = "/api/meta/status"

# Propagation read-back defaults (seconds)
PROPAGATION_INITIAL_DELAY = 3.0
PROPAGATION_MAX_ATTEMPTS = 3
PROPAGATION_INTERVAL = 1.0
PROPAGATION_BACKOFF = 2.0

logger.info(f"Graph API Version: {META_GRAPH_API_VERSION}")
logger.info(f"Publisher API base URL: {PUBLISHER_API_BASE}")


def normalize_account_id(account_id: Optional[str]) -> Optional[str]:
    """Ensure an ad account id carries the 'act_' prefix."""
    if not account_id:
        return None
    account_id = account_id.strip()
    if not account_id.startswith("act_"):
        account_id = f"act_{account_id}"
    return account_id


@dataclass(frozen=True)
class StaticConfig:
    """Credentials used when no signed-in session is available."""
    access_token: Optional[str] = None
    ad_account_id: Optional[str] = None
    page_id: Optional[str] = None
    pixel_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "StaticConfig":
        config = cls(
            access_token=os.environ.get("META_ACCESS_TOKEN") or None,
            ad_account_id=normalize_account_id(os.environ.get("META_AD_ACCOUNT_ID")),
            page_id=os.environ.get("META_PAGE_ID") or None,
            pixel_id=os.environ.get("META_PIXEL_ID") or None,
        )
        logger.info(f"META_ACCESS_TOKEN env var present: {'Yes' if config.access_token else 'No'}")
        logger.info(f"META_AD_ACCOUNT_ID: {config.ad_account_id or 'Not set'}")
        return config
