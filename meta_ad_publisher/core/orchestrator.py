"""Publish orchestration: campaign, ad set and one ad per image in a single pass."""

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional
import asyncio
import json
import warnings

import httpx

from .adsets import create_adset
from .ads import create_creative_and_ad
from .api import ApiFailure
from .campaigns import create_campaign, verify_campaign
from .config import (
    PROPAGATION_BACKOFF,
    PROPAGATION_INITIAL_DELAY,
    PROPAGATION_INTERVAL,
    PROPAGATION_MAX_ATTEMPTS,
)
from .errors import (
    AccountInactiveError,
    CreativeCreationError,
    PageAccessWarning,
    PropagationTimeoutError,
    PublisherError,
    UploadError,
)
from .images import ImageUploader
from .models import (
    BudgetMode,
    CampaignObjective,
    OptimizationGoal,
    PlacementConfig,
    PromotedObject,
    PublishConfig,
    PublishMode,
    PublishResult,
    TargetingSpec,
)
from .pages import PageAccessValidator
from .session import PublishSession
from .utils import logger

DEFAULT_DAILY_BUDGET = 50
DEFAULT_CAMPAIGN_NAME = "Ad Publisher Campaign"
DEFAULT_ADSET_NAME = "Ad Publisher Ad Set"

ACCOUNT_STATUS_NAMES = {
    1: "ACTIVE",
    2: "DISABLED",
    3: "UNSETTLED",
    7: "PENDING_RISK_REVIEW",
    9: "IN_GRACE_PERIOD",
    101: "CLOSED",
}

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PropagationPolicy:
    """
    Bounded read-back after creating a campaign.

    Waits `initial_delay`, then reads the campaign up to `max_attempts` times,
    sleeping `interval * backoff**n` between attempts.
    """
    initial_delay: float = PROPAGATION_INITIAL_DELAY
    max_attempts: int = PROPAGATION_MAX_ATTEMPTS
    interval: float = PROPAGATION_INTERVAL
    backoff: float = PROPAGATION_BACKOFF

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def delays(self) -> List[float]:
        """Sleep before each read attempt."""
        return [self.initial_delay] + [self.interval * self.backoff ** n for n in range(self.max_attempts - 1)]


def effective_objective(requested: CampaignObjective, pixel_id: Optional[str]) -> CampaignObjective:
    """Sales optimization needs a pixel; without one publish as traffic."""
    if requested == CampaignObjective.SALES and not pixel_id:
        logger.warning("No pixel configured, switching objective from OUTCOME_SALES to OUTCOME_TRAFFIC")
        return CampaignObjective.TRAFFIC
    return requested


class PublishOrchestrator:
    """
    Run one publish against the session's account.

    Steps run strictly in order. Every created id is recorded on the result
    before the next step starts, so a failure leaves earlier ids intact.
    Nothing created remotely is rolled back.
    """

    def __init__(
        self,
        session: PublishSession,
        propagation: Optional[PropagationPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.session = session
        self.api = session.api
        self.propagation = propagation or PropagationPolicy()
        self.sleep = sleep
        self.http_client = http_client

    async def publish(self, config: PublishConfig) -> PublishResult:
        """Publish `config`; always returns a PublishResult, never raises."""
        result = PublishResult()
        step = "validate_config"
        logger.info(f"Starting ad publish process (mode: {config.mode.value}, ads: {len(config.ads)})")

        try:
            config.validate()

            step = "credentials"
            credentials = await self.session.get_credentials()
            account_id = credentials.require_ad_account()
            page_id = credentials.require_page(config.settings.page_id)
            settings = config.settings
            pixel_id = settings.pixel_id or credentials.pixel_id

            step = "validate_page"
            await self._validate_page(page_id, account_id, result)

            step = "upload_images"
            await self._upload_images(config, account_id, result)

            step = "account_health"
            await self._collect_diagnostics(account_id, result)

            objective = effective_objective(settings.campaign_objective, pixel_id)
            budget_mode = settings.budget_mode
            daily_budget = settings.daily_budget or DEFAULT_DAILY_BUDGET

            step = "campaign"
            if config.mode == PublishMode.NEW_CAMPAIGN:
                campaign_id = await create_campaign(
                    self.api,
                    account_id,
                    name=settings.campaign_name or DEFAULT_CAMPAIGN_NAME,
                    objective=objective,
                    budget_mode=budget_mode,
                    daily_budget=daily_budget if budget_mode == BudgetMode.CBO else None,
                )
                result.campaign_id = campaign_id

                step = "propagation"
                await self._wait_for_campaign(campaign_id)
            else:
                campaign_id = config.existing_campaign_id
                result.campaign_id = campaign_id
                logger.info(f"Using existing campaign: {campaign_id}")

            step = "adset"
            if config.mode == PublishMode.EXISTING_ADSET:
                adset_id = config.existing_adset_id
                logger.info(f"Using existing ad set: {adset_id}")
            else:
                optimization = OptimizationGoal.LINK_CLICKS
                promoted_object = None
                if objective == CampaignObjective.SALES and pixel_id:
                    optimization = OptimizationGoal.OFFSITE_CONVERSIONS
                    event = settings.conversion_event
                    promoted_object = PromotedObject(pixel_id=pixel_id,
                                                     custom_event_type=event.value if event else "PURCHASE")
                adset_id = await create_adset(
                    self.api,
                    account_id,
                    name=settings.adset_name or DEFAULT_ADSET_NAME,
                    campaign_id=campaign_id,
                    optimization=optimization,
                    targeting=settings.targeting or TargetingSpec(),
                    placements=settings.placements or PlacementConfig(),
                    daily_budget=daily_budget if budget_mode == BudgetMode.ABO else None,
                    promoted_object=promoted_object,
                )
            result.adset_id = adset_id

            step = "ads"
            await self._create_ads(config, account_id, page_id, adset_id, pixel_id, result)

            result.success = True
            logger.info(f"Publish complete: campaign {result.campaign_id}, ad set {result.adset_id}, "
                        f"{len(result.ad_ids)} ads")
            return result

        except PublisherError as e:
            return self._fail(result, step, e.message, json.dumps(
                {"type": type(e).__name__, **e.details}, default=str))
        except Exception as e:
            logger.exception(f"Unexpected error during publish step {step}")
            return self._fail(result, step, str(e), json.dumps({"type": type(e).__name__}))

    def _fail(self, result: PublishResult, step: str, message: str, details: str) -> PublishResult:
        logger.error(f"Publish failed at step {step}: {message}")
        if result.campaign_id or result.adset_id or result.ad_ids:
            logger.warning(f"Created entities are left in place (campaign: {result.campaign_id}, "
                           f"ad set: {result.adset_id}, ads: {result.ad_ids})")
        diag_text = "\n\nDiagnostics:\n" + "\n".join(result.diagnostics) if result.diagnostics else ""
        result.success = False
        result.failed_step = step
        result.error = message + diag_text
        result.details = details
        return result

    async def _validate_page(self, page_id: str, account_id: str, result: PublishResult) -> None:
        # Advisory only; ad creation reports a more specific error if the Page is unusable
        validation = await PageAccessValidator(self.api, account_id).validate(page_id)
        if validation.valid:
            logger.info(f"Page \"{validation.page_name}\" validated for ad creation")
            return
        message = f"Page pre-validation failed: {validation.error}"
        if validation.diagnosis:
            message = f"{message} ({validation.diagnosis})"
        logger.warning(f"{message}; proceeding anyway")
        warnings.warn(message, PageAccessWarning)
        result.warnings.append(message)

    async def _upload_images(self, config: PublishConfig, account_id: str, result: PublishResult) -> None:
        uploader = ImageUploader(self.api, account_id, http_client=self.http_client)
        total = len(config.ads)
        for i, ad in enumerate(config.ads):
            logger.info(f"Uploading image {i + 1}/{total}")
            try:
                image_hash = await uploader.upload(ad.image)
            except UploadError as e:
                raise UploadError(f"Image upload failed for ad {i + 1}: {e.message}", index=i, details=e.details)
            result.image_hashes.append(image_hash)

    async def _collect_diagnostics(self, account_id: str, result: PublishResult) -> None:
        """Record token and account details for error reports; an inactive account is fatal."""
        permissions = await self.api.call("me/permissions")
        if isinstance(permissions, ApiFailure):
            logger.warning(f"Token permission check failed: {permissions.message}")
        else:
            granted = [p.get("permission") for p in permissions.data.get("data", []) if p.get("status") == "granted"]
            result.diagnostics.append(f"Token: transport={self.api.transport_kind}, scopes=[{', '.join(granted)}]")

        account = await self.api.call(account_id, params={
            "fields": "account_status,disable_reason,name,currency,capabilities",
        })
        if isinstance(account, ApiFailure):
            result.diagnostics.append(f"Account check error: {account.message}")
            return

        data = account.data
        status = data.get("account_status")
        status_name = ACCOUNT_STATUS_NAMES.get(status, status)
        info = (f"Account: \"{data.get('name')}\" status={status_name} "
                f"disable_reason={data.get('disable_reason')} currency={data.get('currency')} "
                f"capabilities=[{', '.join(data.get('capabilities') or [])}]")
        logger.info(info)
        result.diagnostics.append(info)

        if status != 1:
            raise AccountInactiveError(
                f"Ad account is not active (status: {status_name}). Check Business Manager > Billing.",
                details={"account_status": status},
            )

    async def _wait_for_campaign(self, campaign_id: str) -> None:
        last_error = None
        for attempt, delay in enumerate(self.propagation.delays(), start=1):
            await self.sleep(delay)
            verified = await verify_campaign(self.api, campaign_id)
            if not isinstance(verified, ApiFailure):
                data = verified.data
                logger.info(f"Campaign verified: {data.get('name')} ({data.get('status')}, {data.get('objective')})")
                return
            last_error = verified.message
            logger.warning(f"Campaign {campaign_id} not readable yet (attempt {attempt}): {last_error}")

        raise PropagationTimeoutError(
            f"Campaign {campaign_id} was created but is not readable: {last_error}",
            details={"campaign_id": campaign_id, "attempts": self.propagation.max_attempts},
        )

    async def _create_ads(self, config: PublishConfig, account_id: str, page_id: str, adset_id: str,
                          pixel_id: Optional[str], result: PublishResult) -> None:
        total = len(config.ads)
        for i, ad in enumerate(config.ads):
            label = ad.headline[:30]
            logger.info(f"Creating ad {i + 1}/{total}")
            try:
                created = await create_creative_and_ad(
                    self.api,
                    account_id,
                    name=f"Ad {i + 1} - {label}",
                    adset_id=adset_id,
                    page_id=page_id,
                    image_hash=result.image_hashes[i],
                    headline=ad.headline,
                    body_text=ad.body,
                    link_url=config.settings.landing_page_url,
                    cta=ad.cta,
                    pixel_id=pixel_id,
                    creative_name=f"Creative {i + 1} - {label}",
                )
            except CreativeCreationError as e:
                if e.ad_id:
                    result.ad_ids.append(e.ad_id)
                e.message = f"Ad creation failed for ad {i + 1}: {e.message}"
                raise
            except PublisherError as e:
                e.message = f"Ad creation failed for ad {i + 1}: {e.message}"
                raise
            result.creative_ids.append(created.creative_id)
            result.ad_ids.append(created.ad_id)


async def publish_ads(session: PublishSession, config: PublishConfig, **kwargs) -> PublishResult:
    """Convenience wrapper: publish with a fresh orchestrator over `session`."""
    return await PublishOrchestrator(session, **kwargs).publish(config)
