"""Credential resolution for the proxy and direct transports."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import requests

from .config import PUBLISHER_API_BASE, STATUS_ROUTE, REQUEST_TIMEOUT, StaticConfig, normalize_account_id
from .errors import ConfigurationError, TransportError
from .utils import logger


class TransportKind(str, Enum):
    PROXY = "proxy"
    DIRECT = "direct"


@dataclass(frozen=True)
class Credentials:
    """Marketing-account credentials as seen by the publisher (never the access token)."""
    ad_account_id: Optional[str] = None
    page_id: Optional[str] = None
    pixel_id: Optional[str] = None
    connected: bool = False
    available_accounts: List[Dict[str, Any]] = field(default_factory=list)
    available_pages: List[Dict[str, Any]] = field(default_factory=list)

    def require_ad_account(self) -> str:
        if not self.ad_account_id:
            raise ConfigurationError(
                "No ad account configured. Connect a Meta ad account or set META_AD_ACCOUNT_ID."
            )
        return self.ad_account_id

    def require_page(self, page_id: Optional[str] = None) -> str:
        target = page_id or self.page_id
        if not target:
            raise ConfigurationError("Facebook Page ID is required. Select a Page or set META_PAGE_ID.")
        return target


@dataclass(frozen=True)
class ResolvedCredentials:
    kind: TransportKind
    credentials: Credentials


class CredentialResolver:
    """
    Decide between proxied organization credentials and static fallback credentials.

    Pure function of whether a session bearer token is available. Organization
    credentials are loaded elsewhere and passed in; nothing is fetched here.
    A missing account/page/token is not an error at this point; it surfaces as
    a ConfigurationError on the first request that needs it.
    """

    def __init__(self, static_config: StaticConfig):
        self.static_config = static_config

    def transport_for(self, bearer_token: Optional[str]) -> TransportKind:
        return TransportKind.PROXY if bearer_token else TransportKind.DIRECT

    def resolve(self, bearer_token: Optional[str] = None,
                organization_credentials: Optional[Credentials] = None) -> ResolvedCredentials:
        kind = self.transport_for(bearer_token)
        if kind == TransportKind.PROXY:
            credentials = organization_credentials or Credentials()
        else:
            static = self.static_config
            credentials = Credentials(
                ad_account_id=static.ad_account_id,
                page_id=static.page_id,
                pixel_id=static.pixel_id,
                connected=bool(static.access_token),
            )
        logger.debug(f"Resolved {kind.value} transport (account: {credentials.ad_account_id or 'none'})")
        return ResolvedCredentials(kind=kind, credentials=credentials)


def credentials_from_status(data: Dict[str, Any]) -> Credentials:
    """Map the backend's credential status payload to Credentials."""
    return Credentials(
        ad_account_id=normalize_account_id(data.get("adAccountId")),
        page_id=data.get("pageId"),
        pixel_id=data.get("pixelId"),
        connected=bool(data.get("connected")),
        available_accounts=list(data.get("availableAccounts") or []),
        available_pages=list(data.get("availablePages") or []),
    )


def fetch_organization_credentials(bearer_token: str, api_base: str = PUBLISHER_API_BASE) -> Credentials:
    """
    Load the signed-in organization's credential status from the backend.

    The backend never returns the platform access token, only the selected
    account, page and pixel ids plus the accounts/pages available to choose from.
    """
    url = f"{api_base}{STATUS_ROUTE}"
    headers = {"Authorization": f"Bearer {bearer_token}"}
    logger.debug(f"Fetching organization credentials from {url}")

    try:
        response = requests.get(url, headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.error(f"Error fetching organization credentials: {e}")
        raise TransportError(f"Could not reach credential backend: {e}")

    if response.status_code == 401:
        raise ConfigurationError("Session token was rejected by the credential backend")
    if response.status_code != 200:
        logger.error(f"Credential status endpoint failed with status {response.status_code}")
        raise TransportError(
            f"Credential backend returned HTTP {response.status_code}",
            details={"status_code": response.status_code, "text": response.text[:500]},
        )

    try:
        data = response.json()
    except ValueError:
        raise TransportError("Credential backend returned non-JSON response",
                             details={"text": response.text[:500]})

    credentials = credentials_from_status(data)
    logger.info(f"Loaded organization credentials (connected={credentials.connected}, "
                f"account={credentials.ad_account_id or 'none'})")
    return credentials
