"""Ad and Creative-related functionality for the ad publisher."""

from typing import Any, Dict, Optional

from .api import ApiClient, ApiFailure
from .errors import AdCreationError, ApiError, CreativeCreationError, TransportError
from .models import PAUSED, CallToAction, CreatedAd
from .utils import logger


def build_object_story_spec(page_id: str, image_hash: str, headline: str, body_text: str,
                            link_url: str, cta: CallToAction) -> Dict[str, Any]:
    """Single-image link story referencing the uploaded image by hash."""
    return {
        "page_id": page_id,
        "link_data": {
            "image_hash": image_hash,
            "link": link_url,
            "message": body_text,
            "name": headline,
            "call_to_action": {
                "type": CallToAction(cta).value,
                "value": {"link": link_url},
            },
        },
    }


def build_ad_payload(
    name: str,
    adset_id: str,
    page_id: str,
    image_hash: str,
    headline: str,
    body_text: str,
    link_url: str,
    cta: CallToAction,
    pixel_id: Optional[str] = None,
    creative_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Ad creation body with the creative defined inline."""
    payload: Dict[str, Any] = {
        "name": name,
        "adset_id": adset_id,
        "status": PAUSED,
        "creative": {
            "name": creative_name or f"{name} Creative",
            "object_story_spec": build_object_story_spec(page_id, image_hash, headline, body_text,
                                                         link_url, cta),
        },
    }
    if pixel_id:
        payload["tracking_specs"] = [{"action.type": ["offsite_conversion"], "fb_pixel": [pixel_id]}]
    return payload


async def create_creative_and_ad(
    api: ApiClient,
    account_id: str,
    name: str,
    adset_id: str,
    page_id: str,
    image_hash: str,
    headline: str,
    body_text: str,
    link_url: str,
    cta: CallToAction,
    pixel_id: Optional[str] = None,
    creative_name: Optional[str] = None,
) -> CreatedAd:
    """
    Create a PAUSED ad together with its creative, then read back the creative id.

    Raises:
        AdCreationError: the platform rejected the ad
        CreativeCreationError: the ad exists but its creative id could not be
            resolved; the error carries the ad id
    """
    payload = build_ad_payload(name, adset_id, page_id, image_hash, headline, body_text, link_url,
                               cta, pixel_id, creative_name)
    logger.info(f"Creating ad: {name}")

    try:
        data = await api.request(f"{account_id}/ads", method="POST", body=payload, form_encoded=True)
    except (ApiError, TransportError) as e:
        raise AdCreationError(e.message, details={"params_sent": payload, **e.details})

    ad_id = data.get("id")
    if not ad_id:
        raise AdCreationError("No ad id returned", details={"response": data})
    logger.info(f"Ad created: {ad_id}")

    result = await api.call(ad_id, params={"fields": "creative{id}"})
    if isinstance(result, ApiFailure):
        raise CreativeCreationError(f"Could not read creative for ad {ad_id}: {result.message}", ad_id=ad_id)

    creative_id = (result.data.get("creative") or {}).get("id")
    if not creative_id:
        raise CreativeCreationError(f"No creative returned for ad {ad_id}", ad_id=ad_id,
                                    details={"response": result.data})

    logger.info(f"Ad creative created: {creative_id}")
    return CreatedAd(ad_id=ad_id, creative_id=creative_id)
