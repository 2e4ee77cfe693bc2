"""Insights and reporting helpers used next to the publisher."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import json

from .api import ApiClient, ApiFailure
from .utils import logger

CAMPAIGN_TYPES = ("Prospecting", "Retargeting", "Retention", "Other")

PURCHASE_ACTION = "offsite_conversion.fb_pixel_purchase"

_TYPE_KEYWORDS = (
    ("Prospecting", ("prospecting", "prospect", "cold", "acquisition")),
    ("Retargeting", ("retargeting", "retarget", "remarketing", "warm")),
    ("Retention", ("retention", "existing", "customer", "loyalty")),
)


@dataclass(frozen=True)
class CampaignSummary:
    campaign_id: str
    campaign_name: str
    campaign_type: str
    spend: float = 0.0
    purchases: int = 0
    purchase_value: float = 0.0
    roas: float = 0.0
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0


@dataclass
class CampaignTypeMetrics:
    campaign_type: str
    total_spend: float = 0.0
    total_purchases: int = 0
    total_purchase_value: float = 0.0
    total_clicks: int = 0
    total_impressions: int = 0
    roas: float = 0.0
    cost_per_purchase: float = 0.0
    conversion_rate: float = 0.0
    aov: float = 0.0
    campaign_count: int = 0


def detect_campaign_type(campaign_name: str) -> str:
    """Classify a campaign by keywords in its name."""
    name = campaign_name.lower()
    for campaign_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return campaign_type
    return "Other"


def _action_value(actions: Optional[List[Dict[str, Any]]], action_type: str) -> str:
    for action in actions or []:
        if action.get("action_type") == action_type:
            return action.get("value", "0")
    return "0"


def summarize_campaign(row: Dict[str, Any], index: int = 0) -> CampaignSummary:
    spend = float(row.get("spend") or 0)
    purchase_value = float(_action_value(row.get("action_values"), PURCHASE_ACTION))
    name = row.get("campaign_name") or "Unknown"
    return CampaignSummary(
        campaign_id=row.get("campaign_id") or f"campaign-{index}",
        campaign_name=name,
        campaign_type=detect_campaign_type(name),
        spend=spend,
        purchases=int(float(_action_value(row.get("actions"), PURCHASE_ACTION))),
        purchase_value=purchase_value,
        roas=purchase_value / spend if spend > 0 else 0.0,
        impressions=int(row.get("impressions") or 0),
        clicks=int(row.get("clicks") or 0),
        ctr=float(row.get("ctr") or 0),
    )


async def fetch_campaign_summaries(api: ApiClient, account_id: str, date_preset: str = "last_30d",
                                   time_range: Optional[Dict[str, str]] = None) -> List[CampaignSummary]:
    """Campaign-level spend and purchase value; an empty list if insights are unavailable."""
    params = {
        "fields": "campaign_id,campaign_name,spend,impressions,clicks,ctr,actions,action_values",
        "level": "campaign",
        "limit": 100,
    }
    if time_range:
        params["time_range"] = json.dumps(time_range)
    else:
        params["date_preset"] = date_preset

    result = await api.call(f"{account_id}/insights", params=params)
    if isinstance(result, ApiFailure):
        logger.error(f"Failed to fetch campaign summaries: {result.message}")
        return []

    rows = result.data.get("data", [])
    logger.info(f"Campaign data received: {len(rows)} campaigns")
    return [summarize_campaign(row, i) for i, row in enumerate(rows)]


def aggregate_by_type(campaigns: List[CampaignSummary]) -> List[CampaignTypeMetrics]:
    """
    Aggregate summaries into the four fixed campaign types.

    Always returns one entry per type, zero-filled when no campaign matches.
    """
    metrics = {t: CampaignTypeMetrics(campaign_type=t) for t in CAMPAIGN_TYPES}

    for campaign in campaigns:
        m = metrics.get(campaign.campaign_type, metrics["Other"])
        m.total_spend += campaign.spend
        m.total_purchases += campaign.purchases
        m.total_purchase_value += campaign.purchase_value
        m.total_clicks += campaign.clicks
        m.total_impressions += campaign.impressions
        m.campaign_count += 1

    for m in metrics.values():
        m.roas = m.total_purchase_value / m.total_spend if m.total_spend > 0 else 0.0
        m.cost_per_purchase = m.total_spend / m.total_purchases if m.total_purchases > 0 else 0.0
        m.conversion_rate = (m.total_purchases / m.total_clicks) * 100 if m.total_clicks > 0 else 0.0
        m.aov = m.total_purchase_value / m.total_purchases if m.total_purchases > 0 else 0.0

    return list(metrics.values())


async def test_connection(api: ApiClient, account_id: str) -> Dict[str, Any]:
    """Read the ad account to confirm the active credentials work."""
    result = await api.call(account_id, params={"fields": "name,account_id,account_status"})
    if isinstance(result, ApiFailure):
        return {"success": False, "message": result.message}
    return {"success": True, "message": "Connected successfully", "data": result.data}
