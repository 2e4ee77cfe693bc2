"""Ad Set-related functionality for the ad publisher."""

from typing import Any, Dict, List, Optional

from .api import ApiClient
from .errors import AdSetCreationError, ApiError, TransportError
from .models import (
    PAUSED,
    AdSetForPublish,
    Gender,
    OptimizationGoal,
    PlacementConfig,
    PromotedObject,
    TargetingSpec,
    to_minor_units,
)
from .utils import logger

CONVERSION_GOALS = (OptimizationGoal.CONVERSIONS, OptimizationGoal.OFFSITE_CONVERSIONS)


def resolve_optimization_goal(requested: OptimizationGoal,
                              promoted_object: Optional[PromotedObject]) -> OptimizationGoal:
    """
    A tracking reference forces conversions optimization; a conversions request
    without one is downgraded to link clicks, which the platform accepts.
    """
    if promoted_object is not None:
        return OptimizationGoal.OFFSITE_CONVERSIONS
    if requested in CONVERSION_GOALS:
        logger.warning(f"{requested.value} requested without a pixel, using LINK_CLICKS")
        return OptimizationGoal.LINK_CLICKS
    return requested


def build_targeting(spec: TargetingSpec) -> Dict[str, Any]:
    """Translate a TargetingSpec into the platform's nested targeting shape."""
    targeting: Dict[str, Any] = {
        "geo_locations": {"countries": list(spec.geo_countries)},
        "age_min": spec.age_min,
        "age_max": spec.age_max,
    }

    if spec.genders and Gender.ALL not in spec.genders:
        targeting["genders"] = [int(g) for g in spec.genders]

    groups = []
    for group in spec.interest_groups:
        entry: Dict[str, List[Dict[str, str]]] = {}
        for item in group:
            # Anything that is not a behavior is sent as an interest
            key = "behaviors" if item.type == "behavior" else "interests"
            entry.setdefault(key, []).append({"id": item.id, "name": item.name})
        if entry:
            groups.append(entry)
    if groups:
        targeting["flexible_spec"] = groups

    if spec.included_audiences:
        targeting["custom_audiences"] = [{"id": a.id} for a in spec.included_audiences]
    if spec.excluded_audiences:
        targeting["excluded_custom_audiences"] = [{"id": a.id} for a in spec.excluded_audiences]

    return targeting


def build_adset_payload(
    name: str,
    campaign_id: str,
    optimization: OptimizationGoal,
    targeting: TargetingSpec,
    placements: PlacementConfig,
    daily_budget: Optional[float] = None,
    promoted_object: Optional[PromotedObject] = None,
) -> Dict[str, Any]:
    """Build the form-encoded ad set creation body."""
    payload: Dict[str, Any] = {
        "name": name,
        "campaign_id": campaign_id,
        "billing_event": "IMPRESSIONS",
        "optimization_goal": resolve_optimization_goal(optimization, promoted_object).value,
        "targeting": build_targeting(targeting),
        "status": PAUSED,
        "destination_type": "WEBSITE",
    }

    if daily_budget:
        payload["daily_budget"] = to_minor_units(daily_budget)

    if promoted_object is not None:
        payload["promoted_object"] = promoted_object.to_payload()

    if not placements.automatic:
        if placements.platforms:
            payload["publisher_platforms"] = list(placements.platforms)
        if placements.facebook_positions:
            payload["facebook_positions"] = list(placements.facebook_positions)
        if placements.instagram_positions:
            payload["instagram_positions"] = list(placements.instagram_positions)

    return payload


async def create_adset(
    api: ApiClient,
    account_id: str,
    name: str,
    campaign_id: str,
    optimization: OptimizationGoal,
    targeting: TargetingSpec,
    placements: PlacementConfig,
    daily_budget: Optional[float] = None,
    promoted_object: Optional[PromotedObject] = None,
) -> str:
    """
    Create a new ad set, always PAUSED.

    Args:
        api: client for the active session
        account_id: Meta Ads account ID (format: act_XXXXXXXXX)
        name: Ad set name
        campaign_id: Campaign this ad set belongs to
        optimization: Requested optimization goal (see resolve_optimization_goal)
        targeting: Audience targeting
        placements: Automatic or manual placements
        daily_budget: Daily budget in major units; only for ad set budget mode
        promoted_object: Pixel and conversion event for conversions optimization

    Raises:
        AdSetCreationError: the platform rejected the ad set or returned no id
    """
    payload = build_adset_payload(name, campaign_id, optimization, targeting, placements,
                                  daily_budget, promoted_object)
    logger.info(f"Creating ad set: {name} (optimization: {payload['optimization_goal']})")
    logger.debug(f"Ad set request body: {payload}")

    try:
        data = await api.request(f"{account_id}/adsets", method="POST", body=payload, form_encoded=True)
    except (ApiError, TransportError) as e:
        raise AdSetCreationError(f"Ad set creation failed: {e.message}",
                                 details={"params_sent": payload, **e.details})

    adset_id = data.get("id")
    if not adset_id:
        raise AdSetCreationError("Ad set creation failed: no ad set id returned", details={"response": data})

    logger.info(f"Ad set created: {adset_id}")
    return adset_id


async def fetch_adsets_for_publish(api: ApiClient, account_id: str, campaign_id: Optional[str] = None,
                                   limit: int = 100) -> List[AdSetForPublish]:
    """Existing ad sets new ads can be added to, optionally scoped to a campaign."""
    endpoint = f"{campaign_id}/adsets" if campaign_id else f"{account_id}/adsets"
    data = await api.request(endpoint, params={
        "fields": "id,name,status,campaign_id,daily_budget",
        "limit": limit,
    })

    adsets = []
    for a in data.get("data", []):
        budget = a.get("daily_budget")
        adsets.append(AdSetForPublish(
            id=a["id"],
            name=a.get("name", ""),
            status=a.get("status", ""),
            campaign_id=a.get("campaign_id", ""),
            daily_budget=int(budget) / 100 if budget else None,
        ))
    logger.info(f"Fetched {len(adsets)} ad sets")
    return adsets
