"""Explicit per-session context: transport choice plus the credential cache."""

from typing import Callable, Optional
import asyncio
import os

from .api import ApiClient
from .config import PUBLISHER_API_BASE, StaticConfig
from .credentials import (
    CredentialResolver,
    Credentials,
    TransportKind,
    fetch_organization_credentials,
)
from .transport import DirectTransport, ProxyTransport, Transport
from .utils import logger

CredentialsLoader = Callable[[str], Credentials]


class PublishSession:
    """
    Everything a publish needs that outlives a single call.

    The transport strategy is chosen once here. Organization credentials are
    cached for the lifetime of the session and only reloaded after the caller
    calls invalidate(); the orchestrator never invalidates them.
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        bearer_token: Optional[str] = None,
        credentials_loader: Optional[CredentialsLoader] = None,
        transport: Optional[Transport] = None,
        api_base: str = PUBLISHER_API_BASE,
    ):
        self.resolver = resolver
        self.bearer_token = bearer_token
        self.kind = resolver.transport_for(bearer_token)
        self._loader = credentials_loader
        self._credentials: Optional[Credentials] = None

        if transport is None:
            if self.kind == TransportKind.PROXY:
                transport = ProxyTransport(bearer_token, api_base=api_base)
            else:
                transport = DirectTransport(resolver.static_config.access_token)
        self.transport = transport
        self.api = ApiClient(transport)
        logger.info(f"Publish session created with {self.kind.value} transport")

    @classmethod
    def from_env(cls) -> "PublishSession":
        """Build a session from PUBLISHER_SESSION_TOKEN and the META_* variables."""
        static_config = StaticConfig.from_env()
        bearer_token = os.environ.get("PUBLISHER_SESSION_TOKEN") or None
        return cls(
            CredentialResolver(static_config),
            bearer_token=bearer_token,
            credentials_loader=fetch_organization_credentials,
        )

    async def get_credentials(self) -> Credentials:
        if self._credentials is None:
            organization_credentials = None
            if self.kind == TransportKind.PROXY and self._loader is not None:
                organization_credentials = await asyncio.to_thread(self._loader, self.bearer_token)
            resolved = self.resolver.resolve(self.bearer_token, organization_credentials)
            self._credentials = resolved.credentials
        return self._credentials

    def invalidate(self) -> None:
        """Drop cached credentials; the next get_credentials() reloads them."""
        logger.info("Credential cache invalidated")
        self._credentials = None

    async def aclose(self) -> None:
        await self.transport.aclose()
