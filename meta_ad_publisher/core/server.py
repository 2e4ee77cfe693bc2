"""MCP server configuration for the ad publisher."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator
import argparse
import asyncio
import json
import sys

from mcp.server.fastmcp import FastMCP

from .errors import PublisherError
from .insights import test_connection
from .session import PublishSession
from .utils import logger


@dataclass
class AppContext:
    """Per-server state handed to every tool through the lifespan context."""
    session: PublishSession


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    session = PublishSession.from_env()
    try:
        yield AppContext(session=session)
    finally:
        await session.aclose()
        logger.info("Publish session closed")


# Initialize FastMCP server
mcp_server = FastMCP("meta-ad-publisher", lifespan=app_lifespan)


async def check_connection(session: PublishSession) -> dict:
    """Resolve credentials and read the ad account once."""
    try:
        credentials = await session.get_credentials()
        account_id = credentials.require_ad_account()
        result = await test_connection(session.api, account_id)
    except PublisherError as e:
        result = {"success": False, "message": e.message}
    finally:
        await session.aclose()
    result["transport"] = session.kind.value
    return result


def main():
    """Main entry point for the package"""
    logger.info("Meta Ad Publisher MCP server starting")
    logger.info(f"Python version: {sys.version}")
    logger.info(f"Args: {sys.argv}")

    parser = argparse.ArgumentParser(description="Meta Ad Publisher MCP Server")
    parser.add_argument("--version", action="store_true", help="Show the version of the package")
    parser.add_argument("--check", action="store_true",
                        help="Verify credentials against the ad account and exit")

    args = parser.parse_args()
    logger.info(f"Parsed args: version={args.version}, check={args.check}")

    if args.version:
        from meta_ad_publisher import __version__
        print(f"Meta Ad Publisher v{__version__}")
        return 0

    if args.check:
        result = asyncio.run(check_connection(PublishSession.from_env()))
        print(json.dumps(result, indent=2))
        return 0 if result.get("success") else 1

    logger.info("Starting MCP server with stdio transport")
    mcp_server.run(transport='stdio')
    return 0
