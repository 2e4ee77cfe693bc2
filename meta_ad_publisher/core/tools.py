"""MCP tools exposing the publisher and its read helpers."""

from dataclasses import asdict
from typing import Any, Dict, List, Optional
import functools
import json

from mcp.server.fastmcp import Context

from .adsets import fetch_adsets_for_publish
from .campaigns import fetch_campaigns_for_publish
from .errors import PublisherError
from .insights import aggregate_by_type, fetch_campaign_summaries, test_connection
from .models import PublishConfig
from .orchestrator import publish_ads as run_publish
from .pages import PageAccessValidator
from .server import mcp_server
from .session import PublishSession
from .targeting import fetch_ad_pixels, fetch_custom_audiences, search_targeting_suggestions
from .utils import logger


def publisher_tool(func):
    """Decorator for publisher tools: logging plus conversion of errors into JSON."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger.debug(f"Function call: {func.__name__}")
        safe_kwargs = {k: v for k, v in kwargs.items() if k != "ctx"}
        logger.debug(f"Kwargs: {safe_kwargs}")
        try:
            result = await func(*args, **kwargs)
        except PublisherError as e:
            logger.error(f"Error in {func.__name__}: {e.message}")
            return json.dumps({"error": {"message": e.message, "type": type(e).__name__,
                                         "details": e.details}}, indent=2, default=str)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Invalid input to {func.__name__}: {e}")
            return json.dumps({"error": f"Invalid input: {e}"}, indent=2)

        if isinstance(result, str):
            return result
        return json.dumps(result, indent=2, default=str)

    return wrapper


def _session(ctx: Context) -> PublishSession:
    return ctx.request_context.lifespan_context.session


async def _account_id(session: PublishSession) -> str:
    credentials = await session.get_credentials()
    return credentials.require_ad_account()


@mcp_server.tool()
@publisher_tool
async def publish_ads(
    ctx: Context,
    ads: List[Dict[str, Any]],
    settings: Dict[str, Any],
    mode: str = "new_campaign",
    existing_campaign_id: Optional[str] = None,
    existing_adset_id: Optional[str] = None,
) -> str:
    """
    Publish ads as a PAUSED campaign, ad set and one ad per image.

    Nothing is activated; review and enable the ads in Ads Manager.

    Args:
        ads: List of ads, each {"image": url or base64, "headline", "body", "cta"}
        settings: Publish settings. Required: landing_page_url. Optional: campaign_name,
            campaign_objective (default OUTCOME_SALES), budget_mode (CBO or ABO, default CBO),
            adset_name, daily_budget (major units, default 50), page_id, pixel_id,
            conversion_event, targeting, placements
        mode: new_campaign, new_adset (needs existing_campaign_id) or
            existing_adset (needs existing_adset_id)
        existing_campaign_id: Campaign to add a new ad set to
        existing_adset_id: Ad set to add the ads to

    Returns the publish result. On failure `success` is false, `error` explains
    what went wrong and any ids created before the failure are still listed.
    """
    config = PublishConfig.from_dict({
        "mode": mode,
        "ads": ads,
        "settings": settings,
        "existing_campaign_id": existing_campaign_id,
        "existing_adset_id": existing_adset_id,
    })
    result = await run_publish(_session(ctx), config)
    return result.to_dict()


@mcp_server.tool()
@publisher_tool
async def validate_page_access(ctx: Context, page_id: Optional[str] = None) -> str:
    """
    Check that a Facebook Page can be used to publish ads from the active ad account.

    Args:
        page_id: Page to check (defaults to the configured Page)
    """
    session = _session(ctx)
    credentials = await session.get_credentials()
    validator = PageAccessValidator(session.api, credentials.ad_account_id)
    validation = await validator.validate(page_id or credentials.page_id)
    return asdict(validation)


@mcp_server.tool()
@publisher_tool
async def get_campaigns_for_publish(ctx: Context, limit: int = 100) -> str:
    """List campaigns in the active ad account that a new ad set can be added to."""
    session = _session(ctx)
    campaigns = await fetch_campaigns_for_publish(session.api, await _account_id(session), limit=limit)
    return {"data": [asdict(c) for c in campaigns]}


@mcp_server.tool()
@publisher_tool
async def get_adsets_for_publish(ctx: Context, campaign_id: Optional[str] = None, limit: int = 100) -> str:
    """
    List ad sets that new ads can be added to.

    Args:
        campaign_id: Only list ad sets of this campaign
        limit: Maximum number of ad sets to return
    """
    session = _session(ctx)
    adsets = await fetch_adsets_for_publish(session.api, await _account_id(session),
                                            campaign_id=campaign_id, limit=limit)
    return {"data": [asdict(a) for a in adsets]}


@mcp_server.tool()
@publisher_tool
async def search_targeting(ctx: Context, query: str, search_type: str = "adinterest") -> str:
    """
    Search interests, behaviors and demographics to use in ad set targeting.

    Args:
        query: Search term, e.g. "running shoes"
        search_type: adinterest (default), adinterestsuggestion or adTargetingCategory
    """
    items = await search_targeting_suggestions(_session(ctx).api, query, search_type)
    return {"data": [asdict(i) for i in items]}


@mcp_server.tool()
@publisher_tool
async def get_custom_audiences(ctx: Context) -> str:
    """List custom audiences available to include or exclude in targeting."""
    session = _session(ctx)
    audiences = await fetch_custom_audiences(session.api, await _account_id(session))
    return {"data": [asdict(a) for a in audiences]}


@mcp_server.tool()
@publisher_tool
async def get_ad_pixels(ctx: Context) -> str:
    """List pixels (or datasets) usable for conversion optimization."""
    session = _session(ctx)
    pixels = await fetch_ad_pixels(session.api, await _account_id(session))
    return {"data": [asdict(p) for p in pixels]}


@mcp_server.tool()
@publisher_tool
async def get_campaign_type_metrics(
    ctx: Context,
    date_preset: str = "last_30d",
    since: Optional[str] = None,
    until: Optional[str] = None,
) -> str:
    """
    Campaign performance grouped into Prospecting, Retargeting, Retention and Other.

    Args:
        date_preset: Insights date preset (default last_30d); ignored when since/until are set
        since: Start date YYYY-MM-DD
        until: End date YYYY-MM-DD
    """
    session = _session(ctx)
    time_range = {"since": since, "until": until} if since and until else None
    summaries = await fetch_campaign_summaries(session.api, await _account_id(session),
                                               date_preset=date_preset, time_range=time_range)
    return {
        "campaigns": [asdict(s) for s in summaries],
        "by_type": [asdict(m) for m in aggregate_by_type(summaries)],
    }


@mcp_server.tool()
@publisher_tool
async def test_meta_connection(ctx: Context) -> str:
    """Confirm the active credentials can read the ad account."""
    session = _session(ctx)
    result = await test_connection(session.api, await _account_id(session))
    result["transport"] = session.kind.value
    return result


@mcp_server.tool()
@publisher_tool
async def refresh_credentials(ctx: Context) -> str:
    """Reload the organization's ad account, Page and pixel selection."""
    session = _session(ctx)
    session.invalidate()
    credentials = await session.get_credentials()
    return asdict(credentials)
