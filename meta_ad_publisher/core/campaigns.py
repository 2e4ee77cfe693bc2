"""Campaign-related functionality for the ad publisher."""

from typing import Any, Dict, List, Optional

from .api import ApiClient, ApiResult
from .errors import ApiError, CampaignCreationError, TransportError
from .models import PAUSED, BudgetMode, CampaignForPublish, CampaignObjective, to_minor_units
from .utils import logger


def build_campaign_payload(
    name: str,
    objective: CampaignObjective,
    budget_mode: BudgetMode,
    daily_budget: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Build the campaign creation body.

    CBO puts the daily budget on the campaign (in minor units). ABO never sends
    a campaign budget and explicitly disables budget sharing so the ad sets own it.
    """
    payload = {
        "name": name,
        "objective": CampaignObjective(objective).value,
        "status": PAUSED,
        "special_ad_categories": [],  # Required by the API, empty for non-special ads
        "bid_strategy": "LOWEST_COST_WITHOUT_CAP",
    }

    if budget_mode == BudgetMode.CBO and daily_budget:
        payload["daily_budget"] = to_minor_units(daily_budget)
    else:
        payload["is_adset_budget_sharing_enabled"] = False

    return payload


async def create_campaign(
    api: ApiClient,
    account_id: str,
    name: str,
    objective: CampaignObjective,
    budget_mode: BudgetMode,
    daily_budget: Optional[float] = None,
) -> str:
    """
    Create a new campaign in a Meta Ads account, always PAUSED.

    Returns:
        The created campaign id

    Raises:
        CampaignCreationError: the platform rejected the campaign or returned no id
    """
    payload = build_campaign_payload(name, objective, budget_mode, daily_budget)
    logger.info(f"Creating campaign: {name} (objective: {payload['objective']}, budget mode: {budget_mode.value})")

    try:
        data = await api.request(f"{account_id}/campaigns", method="POST", body=payload)
    except (ApiError, TransportError) as e:
        raise CampaignCreationError(f"Campaign creation failed: {e.message}",
                                    details={"params_sent": payload, **e.details})

    campaign_id = data.get("id")
    if not campaign_id:
        raise CampaignCreationError("Campaign creation failed: no campaign id returned",
                                    details={"response": data})

    logger.info(f"Campaign created: {campaign_id}")
    return campaign_id


async def verify_campaign(api: ApiClient, campaign_id: str) -> ApiResult:
    """Read a campaign back to confirm it is visible."""
    return await api.call(campaign_id, params={"fields": "id,name,status,objective"})


async def fetch_campaigns_for_publish(api: ApiClient, account_id: str, limit: int = 100) -> List[CampaignForPublish]:
    """Existing campaigns a new ad set can be attached to."""
    data = await api.request(f"{account_id}/campaigns", params={
        "fields": "id,name,status,objective",
        "limit": limit,
    })

    campaigns = [
        CampaignForPublish(id=c["id"], name=c.get("name", ""), status=c.get("status", ""),
                           objective=c.get("objective", ""))
        for c in data.get("data", [])
    ]
    logger.info(f"Fetched {len(campaigns)} campaigns")
    return campaigns
