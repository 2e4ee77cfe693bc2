"""
Meta Ad Publisher - Python Package

Publishes PAUSED campaigns, ad sets and ads to Meta through either a
credential-proxying backend or a direct access token, and exposes the
publisher as an MCP server.
"""

__version__ = "0.1.0"

from .core import (
    PublishConfig,
    PublishOrchestrator,
    PublishResult,
    PublishSession,
    PropagationPolicy,
    PublisherError,
    main,
    publish_ads,
)

__all__ = [
    'PublishConfig',
    'PublishOrchestrator',
    'PublishResult',
    'PublishSession',
    'PropagationPolicy',
    'PublisherError',
    'publish_ads',
    'main',
    'entrypoint',
]


def entrypoint():
    """Main entry point for the package when invoked as a console script."""
    return main()
