"""Tests for campaign, ad set and ad payload builders."""

import pytest

from meta_ad_publisher.core.ads import build_ad_payload, create_creative_and_ad
from meta_ad_publisher.core.adsets import (
    build_adset_payload,
    build_targeting,
    create_adset,
    fetch_adsets_for_publish,
    resolve_optimization_goal,
)
from meta_ad_publisher.core.campaigns import build_campaign_payload, create_campaign, fetch_campaigns_for_publish
from meta_ad_publisher.core.errors import (
    AdCreationError,
    AdSetCreationError,
    ApiError,
    CampaignCreationError,
)
from meta_ad_publisher.core.models import (
    AudienceRef,
    BudgetMode,
    CallToAction,
    CampaignObjective,
    Gender,
    OptimizationGoal,
    PlacementConfig,
    PromotedObject,
    TargetingItem,
    TargetingSpec,
    to_minor_units,
)


def test_to_minor_units():
    assert to_minor_units(50) == 5000
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(0.005) == 1


def test_cbo_campaign_carries_budget():
    payload = build_campaign_payload("C", CampaignObjective.TRAFFIC, BudgetMode.CBO, 12.5)

    assert payload["daily_budget"] == 1250
    assert payload["status"] == "PAUSED"
    assert payload["bid_strategy"] == "LOWEST_COST_WITHOUT_CAP"
    assert payload["special_ad_categories"] == []
    assert "is_adset_budget_sharing_enabled" not in payload


def test_abo_campaign_never_carries_budget():
    payload = build_campaign_payload("C", CampaignObjective.SALES, BudgetMode.ABO, 40)

    assert "daily_budget" not in payload
    assert payload["is_adset_budget_sharing_enabled"] is False
    assert payload["objective"] == "OUTCOME_SALES"


def test_optimization_resolution():
    pixel = PromotedObject(pixel_id="px")
    assert resolve_optimization_goal(OptimizationGoal.LINK_CLICKS, pixel) == OptimizationGoal.OFFSITE_CONVERSIONS
    assert resolve_optimization_goal(OptimizationGoal.CONVERSIONS, None) == OptimizationGoal.LINK_CLICKS
    assert resolve_optimization_goal(OptimizationGoal.OFFSITE_CONVERSIONS, None) == OptimizationGoal.LINK_CLICKS
    assert resolve_optimization_goal(OptimizationGoal.LANDING_PAGE_VIEWS, None) == OptimizationGoal.LANDING_PAGE_VIEWS


def test_default_targeting():
    targeting = build_targeting(TargetingSpec())

    assert targeting == {
        "geo_locations": {"countries": ["US", "AU", "GB", "CA"]},
        "age_min": 18,
        "age_max": 65,
    }


def test_full_targeting():
    spec = TargetingSpec(
        geo_countries=("NZ",),
        age_min=25,
        age_max=44,
        genders=(Gender.FEMALE,),
        interest_groups=(
            (TargetingItem(id="1", name="Running"), TargetingItem(id="2", name="Engaged Shoppers", type="behavior")),
            (TargetingItem(id="3", name="Yoga"),),
        ),
        included_audiences=(AudienceRef(id="aud_1"),),
        excluded_audiences=(AudienceRef(id="aud_2"),),
    )

    targeting = build_targeting(spec)

    assert targeting["genders"] == [2]
    assert targeting["flexible_spec"] == [
        {"interests": [{"id": "1", "name": "Running"}], "behaviors": [{"id": "2", "name": "Engaged Shoppers"}]},
        {"interests": [{"id": "3", "name": "Yoga"}]},
    ]
    assert targeting["custom_audiences"] == [{"id": "aud_1"}]
    assert targeting["excluded_custom_audiences"] == [{"id": "aud_2"}]


def test_automatic_placements_send_nothing():
    payload = build_adset_payload("S", "c1", OptimizationGoal.LINK_CLICKS, TargetingSpec(), PlacementConfig())

    assert "publisher_platforms" not in payload
    assert "facebook_positions" not in payload
    assert "daily_budget" not in payload
    assert payload["billing_event"] == "IMPRESSIONS"
    assert payload["destination_type"] == "WEBSITE"
    assert payload["status"] == "PAUSED"


def test_manual_placements():
    placements = PlacementConfig(automatic=False, platforms=("facebook", "instagram"),
                                 facebook_positions=("feed",), instagram_positions=("stream", "story"))
    payload = build_adset_payload("S", "c1", OptimizationGoal.LINK_CLICKS, TargetingSpec(), placements, 30)

    assert payload["publisher_platforms"] == ["facebook", "instagram"]
    assert payload["facebook_positions"] == ["feed"]
    assert payload["instagram_positions"] == ["stream", "story"]
    assert payload["daily_budget"] == 3000


def test_ad_payload_with_tracking():
    payload = build_ad_payload("Ad 1", "s1", "page_1", "h1", "Headline", "Body", "https://shop.example",
                               CallToAction.SHOP_NOW, pixel_id="px")

    story = payload["creative"]["object_story_spec"]
    assert payload["status"] == "PAUSED"
    assert story["page_id"] == "page_1"
    assert story["link_data"]["call_to_action"] == {"type": "SHOP_NOW", "value": {"link": "https://shop.example"}}
    assert payload["tracking_specs"] == [{"action.type": ["offsite_conversion"], "fb_pixel": ["px"]}]


def test_ad_payload_without_tracking():
    payload = build_ad_payload("Ad 1", "s1", "page_1", "h1", "Headline", "Body", "https://shop.example",
                               CallToAction.LEARN_MORE)
    assert "tracking_specs" not in payload


@pytest.mark.asyncio
async def test_create_campaign_sends_json(api, fake_transport):
    fake_transport.responses[("POST", "act_123/campaigns")] = {"id": "c1"}

    campaign_id = await create_campaign(api, "act_123", "C", CampaignObjective.TRAFFIC, BudgetMode.CBO, 50)

    assert campaign_id == "c1"
    assert fake_transport.calls[0]["form_encoded"] is False


@pytest.mark.asyncio
async def test_create_campaign_failure(api, fake_transport):
    fake_transport.responses[("POST", "act_123/campaigns")] = ApiError("Invalid objective", code=100)

    with pytest.raises(CampaignCreationError, match="Campaign creation failed: Invalid objective") as exc_info:
        await create_campaign(api, "act_123", "C", CampaignObjective.TRAFFIC, BudgetMode.CBO, 50)

    assert exc_info.value.details["code"] == 100
    assert exc_info.value.details["params_sent"]["name"] == "C"


@pytest.mark.asyncio
async def test_create_adset_is_form_encoded(api, fake_transport):
    fake_transport.responses[("POST", "act_123/adsets")] = {"id": "s1"}

    adset_id = await create_adset(api, "act_123", "S", "c1", OptimizationGoal.LINK_CLICKS,
                                  TargetingSpec(), PlacementConfig())

    assert adset_id == "s1"
    assert fake_transport.calls[0]["form_encoded"] is True


@pytest.mark.asyncio
async def test_create_adset_without_id(api, fake_transport):
    fake_transport.responses[("POST", "act_123/adsets")] = {}

    with pytest.raises(AdSetCreationError):
        await create_adset(api, "act_123", "S", "c1", OptimizationGoal.LINK_CLICKS,
                           TargetingSpec(), PlacementConfig())


@pytest.mark.asyncio
async def test_create_creative_and_ad(api, fake_transport):
    fake_transport.responses.update({
        ("POST", "act_123/ads"): {"id": "a1"},
        ("GET", "a1"): {"creative": {"id": "cr1"}},
    })

    created = await create_creative_and_ad(api, "act_123", "Ad 1", "s1", "page_1", "h1", "Headline", "Body",
                                           "https://shop.example", CallToAction.LEARN_MORE)

    assert (created.ad_id, created.creative_id) == ("a1", "cr1")
    assert fake_transport.sent("GET", "a1")[0]["params"] == {"fields": "creative{id}"}


@pytest.mark.asyncio
async def test_create_ad_failure(api, fake_transport):
    fake_transport.responses[("POST", "act_123/ads")] = ApiError("Invalid image hash", code=100)

    with pytest.raises(AdCreationError, match="Invalid image hash"):
        await create_creative_and_ad(api, "act_123", "Ad 1", "s1", "page_1", "h1", "Headline", "Body",
                                     "https://shop.example", CallToAction.LEARN_MORE)


@pytest.mark.asyncio
async def test_fetch_campaigns_and_adsets(api, fake_transport):
    fake_transport.responses.update({
        ("GET", "act_123/campaigns"): {"data": [{"id": "c1", "name": "Spring", "status": "PAUSED",
                                                 "objective": "OUTCOME_SALES"}]},
        ("GET", "c1/adsets"): {"data": [{"id": "s1", "name": "Set", "status": "ACTIVE", "campaign_id": "c1",
                                         "daily_budget": "2500"},
                                        {"id": "s2", "name": "CBO set", "status": "PAUSED", "campaign_id": "c1"}]},
    })

    campaigns = await fetch_campaigns_for_publish(api, "act_123")
    adsets = await fetch_adsets_for_publish(api, "act_123", campaign_id="c1")

    assert campaigns[0].objective == "OUTCOME_SALES"
    assert adsets[0].daily_budget == 25.0
    assert adsets[1].daily_budget is None
