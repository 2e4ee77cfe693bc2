"""Error taxonomy for the ad publishing pipeline."""

from typing import Any, Dict, Optional

from .utils import logger

# Graph API error codes
PERMISSION_ERROR_CODES = (10, 100)
TOKEN_ERROR_CODE = 190


class PublisherError(Exception):
    """Base exception for everything the publisher raises."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}


class ConfigurationError(PublisherError):
    """Missing ad account, page or access token."""


class TransportError(PublisherError):
    """Network or HTTP-level failure that carries no platform error envelope."""


class ApiError(PublisherError):
    """Exception raised for errors returned by the Graph API (directly or via the proxy)."""

    def __init__(self, message: str, code: Optional[int] = None, subcode: Optional[int] = None,
                 raw: Optional[Dict[str, Any]] = None):
        super().__init__(message, details={"code": code, "subcode": subcode})
        self.code = code
        self.subcode = subcode
        self.raw = raw or {}

        logger.error(f"Graph API Error: {self.message} (code={code}, subcode={subcode})")
        logger.debug(f"Error details: {self.raw}")

    @classmethod
    def from_envelope(cls, payload: Dict[str, Any], status_code: Optional[int] = None) -> "ApiError":
        """
        Build an ApiError from either the platform's `{"error": {...}}` envelope
        or the proxy's flattened `{"error", "message", "code", "subcode"}` shape.
        """
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("error_user_msg") or error.get("message")
            code = error.get("code")
            subcode = error.get("error_subcode")
        else:
            message = payload.get("message") or (error if isinstance(error, str) else None)
            code = payload.get("code")
            subcode = payload.get("subcode")
        if not message:
            message = f"HTTP Error: {status_code}" if status_code else "Unknown Graph API error"
        return cls(message, code=code, subcode=subcode, raw=payload)

    @property
    def is_permission_error(self) -> bool:
        return self.code in PERMISSION_ERROR_CODES

    @property
    def is_token_error(self) -> bool:
        return self.code == TOKEN_ERROR_CODE


class UploadError(PublisherError):
    """An image could not be normalized or uploaded."""

    def __init__(self, message: str, index: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.index = index


class AccountInactiveError(PublisherError):
    """The ad account is not in the ACTIVE state."""


class CampaignCreationError(PublisherError):
    pass


class AdSetCreationError(PublisherError):
    pass


class CreativeCreationError(PublisherError):
    """The creative could not be created or resolved for an ad."""

    def __init__(self, message: str, ad_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.ad_id = ad_id


class AdCreationError(PublisherError):
    pass


class PropagationTimeoutError(PublisherError):
    """A freshly created campaign never became readable."""


class PageAccessWarning(UserWarning):
    """The publishing Page could not be confirmed; publishing continues."""
