"""Core API functionality: the single chokepoint for all platform calls."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .errors import ApiError, PublisherError, TransportError
from .models import UploadedImage
from .transport import Transport
from .utils import logger


@dataclass(frozen=True)
class ApiSuccess:
    data: Dict[str, Any]
    ok = True


@dataclass(frozen=True)
class ApiFailure:
    error: PublisherError
    ok = False

    @property
    def code(self) -> Optional[int]:
        return getattr(self.error, "code", None)

    @property
    def message(self) -> str:
        return self.error.message


ApiResult = Union[ApiSuccess, ApiFailure]


class ApiClient:
    """
    Uniform request/upload surface over whichever Transport the session chose.

    No client-side retry or rate limiting happens here; every call is billed
    and rate-limited by the platform.
    """

    def __init__(self, transport: Transport):
        self.transport = transport

    @property
    def transport_kind(self) -> str:
        return self.transport.kind

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        form_encoded: bool = False,
    ) -> Dict[str, Any]:
        """
        Make a request to the Graph API.

        Args:
            endpoint: API endpoint path (without base URL)
            method: HTTP method (GET, POST, DELETE)
            params: Query parameters
            body: Request body for POST calls
            form_encoded: Send the body form-encoded instead of as JSON

        Returns:
            API response as a dictionary

        Raises:
            ApiError: the platform (or proxy) returned an error envelope
            TransportError: network failure or a non-JSON response
            ConfigurationError: the transport has no usable credentials
        """
        logger.debug(f"Function call: request {method} {endpoint} via {self.transport_kind}")
        return await self.transport.request(endpoint, method=method, params=params, body=body,
                                            form_encoded=form_encoded)

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        form_encoded: bool = False,
    ) -> ApiResult:
        """Like request(), but returns ApiSuccess/ApiFailure instead of raising platform errors."""
        try:
            data = await self.request(endpoint, method=method, params=params, body=body,
                                      form_encoded=form_encoded)
        except (ApiError, TransportError) as e:
            return ApiFailure(error=e)
        return ApiSuccess(data=data)

    async def upload(self, account_id: str, image_bytes: bytes, filename: str = "ad_image.jpg") -> UploadedImage:
        """Upload image bytes to the account's image library and return its hash."""
        data = await self.transport.upload(account_id, image_bytes, filename)
        return UploadedImage.from_response(data)
