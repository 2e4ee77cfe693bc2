"""Core functionality for the Meta ad publisher package."""

from .server import mcp_server, main
from .errors import (
    AccountInactiveError,
    AdCreationError,
    AdSetCreationError,
    ApiError,
    CampaignCreationError,
    ConfigurationError,
    CreativeCreationError,
    PageAccessWarning,
    PropagationTimeoutError,
    PublisherError,
    TransportError,
    UploadError,
)
from .models import PublishConfig, PublishResult
from .session import PublishSession
from .orchestrator import PublishOrchestrator, PropagationPolicy, publish_ads
from . import tools

__all__ = [
    'mcp_server',
    'main',
    'tools',
    'PublishConfig',
    'PublishResult',
    'PublishSession',
    'PublishOrchestrator',
    'PropagationPolicy',
    'publish_ads',
    'PublisherError',
    'ConfigurationError',
    'TransportError',
    'ApiError',
    'UploadError',
    'AccountInactiveError',
    'CampaignCreationError',
    'AdSetCreationError',
    'CreativeCreationError',
    'AdCreationError',
    'PropagationTimeoutError',
    'PageAccessWarning',
]
