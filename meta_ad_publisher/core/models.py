"""Value types shared by the publishing pipeline."""

from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigurationError, UploadError


class PublishMode(str, Enum):
    NEW_CAMPAIGN = "new_campaign"
    NEW_ADSET = "new_adset"
    EXISTING_ADSET = "existing_adset"


class BudgetMode(str, Enum):
    ABO = "ABO"  # budget set per ad set
    CBO = "CBO"  # budget set once on the campaign


class CampaignObjective(str, Enum):
    SALES = "OUTCOME_SALES"
    LEADS = "OUTCOME_LEADS"
    AWARENESS = "OUTCOME_AWARENESS"
    ENGAGEMENT = "OUTCOME_ENGAGEMENT"
    TRAFFIC = "OUTCOME_TRAFFIC"


class OptimizationGoal(str, Enum):
    LINK_CLICKS = "LINK_CLICKS"
    LANDING_PAGE_VIEWS = "LANDING_PAGE_VIEWS"
    CONVERSIONS = "CONVERSIONS"
    OFFSITE_CONVERSIONS = "OFFSITE_CONVERSIONS"


class CallToAction(str, Enum):
    LEARN_MORE = "LEARN_MORE"
    SHOP_NOW = "SHOP_NOW"
    SIGN_UP = "SIGN_UP"
    SUBSCRIBE = "SUBSCRIBE"
    GET_OFFER = "GET_OFFER"
    BOOK_NOW = "BOOK_NOW"
    CONTACT_US = "CONTACT_US"
    DOWNLOAD = "DOWNLOAD"
    APPLY_NOW = "APPLY_NOW"
    BUY_NOW = "BUY_NOW"


class ConversionEvent(str, Enum):
    PURCHASE = "PURCHASE"
    ADD_TO_CART = "ADD_TO_CART"
    LEAD = "LEAD"
    COMPLETE_REGISTRATION = "COMPLETE_REGISTRATION"
    INITIATE_CHECKOUT = "INITIATE_CHECKOUT"
    ADD_PAYMENT_INFO = "ADD_PAYMENT_INFO"
    SEARCH = "SEARCH"
    VIEW_CONTENT = "VIEW_CONTENT"


class Gender(IntEnum):
    ALL = 0
    MALE = 1
    FEMALE = 2


PAUSED = "PAUSED"


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount (e.g. dollars) to the platform's integer minor units."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class TargetingItem:
    """An interest, behavior or demographic used in grouped targeting."""
    id: str
    name: str
    type: str = "interest"
    audience_size: Optional[int] = None


@dataclass(frozen=True)
class AudienceRef:
    id: str
    name: str = ""
    subtype: Optional[str] = None
    approximate_count: Optional[int] = None


@dataclass(frozen=True)
class PixelRef:
    id: str
    name: str


@dataclass(frozen=True)
class TargetingSpec:
    geo_countries: Tuple[str, ...] = ("US", "AU", "GB", "CA")
    age_min: int = 18
    age_max: int = 65
    genders: Tuple[int, ...] = (Gender.ALL,)
    interest_groups: Tuple[Tuple[TargetingItem, ...], ...] = ()
    included_audiences: Tuple[AudienceRef, ...] = ()
    excluded_audiences: Tuple[AudienceRef, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TargetingSpec":
        def audiences(key):
            return tuple(_audience(a) for a in data.get(key) or ())

        return cls(
            geo_countries=tuple(data.get("geo_countries") or cls.geo_countries),
            age_min=int(data.get("age_min", cls.age_min)),
            age_max=int(data.get("age_max", cls.age_max)),
            genders=tuple(int(g) for g in data.get("genders") or (Gender.ALL,)),
            interest_groups=tuple(
                tuple(TargetingItem(**item) for item in group)
                for group in data.get("interest_groups") or ()
            ),
            included_audiences=audiences("included_audiences"),
            excluded_audiences=audiences("excluded_audiences"),
        )


def _audience(value: Any) -> AudienceRef:
    if isinstance(value, AudienceRef):
        return value
    if isinstance(value, dict):
        return AudienceRef(**value)
    return AudienceRef(id=str(value))


@dataclass(frozen=True)
class PlacementConfig:
    """When `automatic` is true, no placement fields are sent."""
    automatic: bool = True
    platforms: Tuple[str, ...] = ()
    facebook_positions: Tuple[str, ...] = ()
    instagram_positions: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlacementConfig":
        return cls(
            automatic=bool(data.get("automatic", True)),
            platforms=tuple(data.get("platforms") or ()),
            facebook_positions=tuple(data.get("facebook_positions") or ()),
            instagram_positions=tuple(data.get("instagram_positions") or ()),
        )


@dataclass(frozen=True)
class PromotedObject:
    """Binds ad set optimization to a pixel and a conversion event."""
    pixel_id: str
    custom_event_type: str = ConversionEvent.PURCHASE.value

    def to_payload(self) -> Dict[str, str]:
        return {"pixel_id": self.pixel_id, "custom_event_type": self.custom_event_type}


@dataclass(frozen=True)
class AdInput:
    """One ad to publish. `image` is an http(s) URL or base64 data (data-URI prefix allowed)."""
    image: str
    headline: str
    body: str
    cta: CallToAction = CallToAction.LEARN_MORE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdInput":
        return cls(
            image=data["image"],
            headline=data.get("headline", ""),
            body=data.get("body", ""),
            cta=CallToAction(data.get("cta", CallToAction.LEARN_MORE.value)),
        )


@dataclass(frozen=True)
class PublishSettings:
    landing_page_url: str
    campaign_name: Optional[str] = None
    campaign_objective: CampaignObjective = CampaignObjective.SALES
    budget_mode: BudgetMode = BudgetMode.CBO
    adset_name: Optional[str] = None
    daily_budget: Optional[float] = None
    page_id: Optional[str] = None
    conversion_event: Optional[ConversionEvent] = None
    pixel_id: Optional[str] = None
    targeting: Optional[TargetingSpec] = None
    placements: Optional[PlacementConfig] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PublishSettings":
        if not data.get("landing_page_url"):
            raise ConfigurationError("settings.landing_page_url is required")
        try:
            targeting = TargetingSpec.from_dict(data["targeting"]) if data.get("targeting") else None
            placements = PlacementConfig.from_dict(data["placements"]) if data.get("placements") else None
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid targeting or placements: {e}")
        return cls(
            landing_page_url=data["landing_page_url"],
            campaign_name=data.get("campaign_name"),
            campaign_objective=CampaignObjective(data.get("campaign_objective") or CampaignObjective.SALES.value),
            budget_mode=BudgetMode(data.get("budget_mode") or BudgetMode.CBO.value),
            adset_name=data.get("adset_name"),
            daily_budget=data.get("daily_budget"),
            page_id=data.get("page_id"),
            conversion_event=ConversionEvent(data["conversion_event"]) if data.get("conversion_event") else None,
            pixel_id=data.get("pixel_id"),
            targeting=targeting,
            placements=placements,
        )


@dataclass(frozen=True)
class PublishConfig:
    """The single input to the orchestrator."""
    mode: PublishMode
    ads: Tuple[AdInput, ...]
    settings: PublishSettings
    existing_campaign_id: Optional[str] = None
    existing_adset_id: Optional[str] = None

    def validate(self) -> None:
        """Check the mode-dependent invariants before any remote call is made."""
        if not self.ads:
            raise ConfigurationError("At least one ad is required to publish")
        if self.mode == PublishMode.NEW_ADSET and not self.existing_campaign_id:
            raise ConfigurationError("existing_campaign_id is required in new_adset mode")
        if self.mode == PublishMode.EXISTING_ADSET and not self.existing_adset_id:
            raise ConfigurationError("existing_adset_id is required in existing_adset mode")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PublishConfig":
        try:
            mode = PublishMode(data.get("mode", PublishMode.NEW_CAMPAIGN.value))
        except ValueError:
            raise ConfigurationError(f"Unknown publish mode: {data.get('mode')}")
        return cls(
            mode=mode,
            ads=tuple(AdInput.from_dict(ad) for ad in data.get("ads") or ()),
            settings=PublishSettings.from_dict(data.get("settings") or {}),
            existing_campaign_id=data.get("existing_campaign_id"),
            existing_adset_id=data.get("existing_adset_id"),
        )


@dataclass
class PublishResult:
    """
    Mutable accumulator filled in pipeline order.

    On failure every field populated before the failing step stays valid,
    so callers can report partial progress ("campaign created but ad set failed").
    Remote entities created before a failure are not rolled back.
    """
    success: bool = False
    campaign_id: Optional[str] = None
    adset_id: Optional[str] = None
    ad_ids: List[str] = field(default_factory=list)
    creative_ids: List[str] = field(default_factory=list)
    image_hashes: List[str] = field(default_factory=list)
    error: Optional[str] = None
    details: Optional[str] = None
    failed_step: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PageValidation:
    valid: bool
    page_name: Optional[str] = None
    error: Optional[str] = None
    diagnosis: Optional[str] = None


@dataclass(frozen=True)
class UploadedImage:
    hash: str
    url: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "UploadedImage":
        """Extract the single entry of the `{"images": {<key>: {"hash": ...}}}` response."""
        images = data.get("images") or {}
        if not isinstance(images, dict) or not images:
            raise UploadError("No image hash returned from Meta", details={"response": data})
        key = next(iter(images))
        entry = images[key] or {}
        if not entry.get("hash"):
            raise UploadError("No image hash returned from Meta", details={"response": data})
        return cls(hash=entry["hash"], url=entry.get("url"), name=key)


@dataclass(frozen=True)
class CampaignForPublish:
    id: str
    name: str
    status: str
    objective: str


@dataclass(frozen=True)
class AdSetForPublish:
    id: str
    name: str
    status: str
    campaign_id: str
    daily_budget: Optional[float] = None


@dataclass(frozen=True)
class CreatedAd:
    ad_id: str
    creative_id: str
