"""HTTP transports for reaching the Graph API, directly or through the credential proxy."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
import base64
import json

import httpx

from .config import (
    META_GRAPH_API_BASE,
    PROXY_ROUTE,
    PUBLISHER_API_BASE,
    REQUEST_TIMEOUT,
    UPLOAD_ROUTE,
    USER_AGENT,
)
from .errors import ApiError, ConfigurationError, TransportError
from .utils import logger, mask_token


def _encode_form(body: Dict[str, Any]) -> Dict[str, str]:
    """Form-encode a body the way the Graph API expects: nested values as JSON strings."""
    encoded = {}
    for key, value in body.items():
        if value is None:
            continue
        if isinstance(value, (list, dict)):
            encoded[key] = json.dumps(value)
        elif isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


def _parse_response(response: httpx.Response) -> Dict[str, Any]:
    """Normalize a response into JSON or raise ApiError/TransportError."""
    try:
        data = response.json()
    except ValueError:
        logger.error(f"Non-JSON response (HTTP {response.status_code}): {response.text[:500]}")
        raise TransportError(
            f"Meta returned non-JSON (HTTP {response.status_code}): {response.text[:500]}",
            details={"status_code": response.status_code},
        )

    if response.status_code >= 400 or (isinstance(data, dict) and "error" in data):
        logger.error(f"HTTP Error: {response.status_code} - {data}")
        if not isinstance(data, dict):
            data = {"error": {"message": str(data)}}
        raise ApiError.from_envelope(data, status_code=response.status_code)

    if not isinstance(data, dict):
        return {"data": data}
    return data


class Transport(ABC):
    """Strategy for dispatching Graph API calls; chosen once per session."""

    kind = ""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = REQUEST_TIMEOUT):
        self._client = client
        self.timeout = timeout

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout, headers={"User-Agent": USER_AGENT}) as client:
                yield client

    async def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        async with self._http() as client:
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                logger.error(f"Request Error: {str(e)}")
                raise TransportError(f"Network error calling {url}: {e}")
        logger.debug(f"API Response status: {response.status_code}")
        return _parse_response(response)

    @abstractmethod
    async def request(self, endpoint: str, method: str = "GET", params: Optional[Dict[str, Any]] = None,
                      body: Optional[Dict[str, Any]] = None, form_encoded: bool = False) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def upload(self, account_id: str, image_bytes: bytes, filename: str = "ad_image.jpg") -> Dict[str, Any]:
        ...

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


class ProxyTransport(Transport):
    """
    Sends every call to the backend proxy, which holds the real access token.

    The platform token never reaches this process; the session bearer token
    authenticates the caller against the backend.
    """

    kind = "proxy"

    def __init__(self, bearer_token: str, api_base: str = PUBLISHER_API_BASE, **kwargs):
        super().__init__(**kwargs)
        if not bearer_token:
            raise ConfigurationError("Proxy transport requires a session bearer token")
        self.bearer_token = bearer_token
        self.api_base = api_base.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.bearer_token}", "User-Agent": USER_AGENT}

    async def request(self, endpoint, method="GET", params=None, body=None, form_encoded=False):
        payload = {
            "method": method,
            "endpoint": endpoint,
            "params": params or {},
            "formEncoded": form_encoded,
        }
        if body is not None:
            payload["body"] = body
        logger.debug(f"Proxy Request: {method} {endpoint}")
        logger.debug(f"Request params: {params or {}}")
        return await self._send("POST", f"{self.api_base}{PROXY_ROUTE}", json=payload, headers=self._headers())

    async def upload(self, account_id, image_bytes, filename="ad_image.jpg"):
        # The upload route resolves the ad account from the organization's credentials
        payload = {
            "imageBase64": base64.b64encode(image_bytes).decode("utf-8"),
            "filename": filename,
        }
        logger.debug(f"Proxy upload: {filename} ({len(image_bytes)} bytes) for {account_id}")
        return await self._send("POST", f"{self.api_base}{UPLOAD_ROUTE}", json=payload, headers=self._headers())


class DirectTransport(Transport):
    """Calls the Graph API directly with a static token (development fallback)."""

    kind = "direct"

    def __init__(self, access_token: Optional[str], graph_base: str = META_GRAPH_API_BASE, **kwargs):
        super().__init__(**kwargs)
        self.access_token = access_token
        self.graph_base = graph_base.rstrip("/")

    def _token(self) -> str:
        if not self.access_token:
            logger.error("API request attempted with blank access token")
            raise ConfigurationError(
                "No Meta access token configured. Sign in or set META_ACCESS_TOKEN for direct mode."
            )
        return self.access_token

    async def request(self, endpoint, method="GET", params=None, body=None, form_encoded=False):
        token = self._token()
        url = f"{self.graph_base}/{endpoint}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        logger.debug(f"API Request: {method} {url}")
        logger.debug(f"Request params: {mask_token(query)}")

        if method in ("GET", "DELETE"):
            query["access_token"] = token
            return await self._send(method, url, params=query)
        if method != "POST":
            raise ValueError(f"Unsupported HTTP method: {method}")

        if form_encoded:
            data = _encode_form(body or {})
            data["access_token"] = token
            logger.debug(f"POST params (prepared): {mask_token(data)}")
            return await self._send("POST", url, params=query, data=data)

        payload = dict(body or {})
        payload["access_token"] = token
        return await self._send("POST", url, params=query, json=payload)

    async def upload(self, account_id, image_bytes, filename="ad_image.jpg"):
        token = self._token()
        url = f"{self.graph_base}/{account_id}/adimages"
        logger.debug(f"Uploading {filename} ({len(image_bytes)} bytes) to {url}")
        files = {"filename": (filename, image_bytes, "image/jpeg")}
        return await self._send("POST", url, data={"access_token": token}, files=files)
