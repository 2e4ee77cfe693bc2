"""Targeting lookups: interest search, custom audiences and pixels."""

from typing import List

from .api import ApiClient, ApiFailure
from .models import AudienceRef, PixelRef, TargetingItem
from .utils import logger

SEARCH_TYPES = ("adinterest", "adinterestsuggestion", "adTargetingCategory")

_ITEM_TYPES = {"interests": "interest", "behaviors": "behavior"}


async def search_targeting_suggestions(api: ApiClient, query: str, search_type: str = "adinterest",
                                       limit: int = 25) -> List[TargetingItem]:
    """Search interests, behaviors and demographics for detailed targeting."""
    if not query.strip():
        return []
    if search_type not in SEARCH_TYPES:
        raise ValueError(f"Unsupported targeting search type: {search_type}")

    data = await api.request("search", params={"q": query, "type": search_type, "limit": limit})

    return [
        TargetingItem(
            id=item["id"],
            name=item.get("name", ""),
            type=_ITEM_TYPES.get(item.get("type"), "demographic"),
            audience_size=item.get("audience_size") or item.get("audience_size_upper_bound"),
        )
        for item in data.get("data", [])
    ]


async def fetch_custom_audiences(api: ApiClient, account_id: str, limit: int = 100) -> List[AudienceRef]:
    data = await api.request(f"{account_id}/customaudiences", params={
        "fields": "id,name,subtype,approximate_count_lower_bound,approximate_count_upper_bound",
        "limit": limit,
    })
    return [
        AudienceRef(
            id=item["id"],
            name=item.get("name", ""),
            subtype=item.get("subtype"),
            approximate_count=item.get("approximate_count_upper_bound") or item.get("approximate_count_lower_bound"),
        )
        for item in data.get("data", [])
    ]


async def fetch_ad_pixels(api: ApiClient, account_id: str, limit: int = 100) -> List[PixelRef]:
    """
    Fetch pixels for the ad account.

    Tries the adspixels endpoint first and falls back to datasets when it
    errors or comes back empty.
    """
    params = {"fields": "id,name", "limit": limit}

    result = await api.call(f"{account_id}/adspixels", params=params)
    if isinstance(result, ApiFailure):
        logger.warning(f"adspixels endpoint failed, trying datasets: {result.message}")
    elif result.data.get("data"):
        return [PixelRef(id=p["id"], name=p.get("name") or f"Pixel {p['id']}") for p in result.data["data"]]

    data = await api.request(f"{account_id}/datasets", params=params)
    return [PixelRef(id=d["id"], name=d.get("name") or f"Dataset {d['id']}") for d in data.get("data", [])]
