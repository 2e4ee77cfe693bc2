"""Page access validation for ad publishing."""

from typing import Any, Dict, List, Optional

from .api import ApiClient, ApiFailure
from .errors import TransportError
from .models import PageValidation
from .utils import logger


class PageAccessValidator:
    """
    Check that a Page is readable and linked to the ad account for promotion.

    When the Page cannot be read directly because of a permissions error
    (codes 10/100), the account's promote_pages list is used instead: an
    accounts-level grant is enough to publish on a Page the token cannot read.
    """

    def __init__(self, api: ApiClient, ad_account_id: Optional[str] = None):
        self.api = api
        self.ad_account_id = ad_account_id

    async def _promote_pages(self) -> Optional[List[Dict[str, Any]]]:
        result = await self.api.call(f"{self.ad_account_id}/promote_pages", params={"fields": "id,name"})
        if isinstance(result, ApiFailure):
            logger.warning(f"Could not verify Page via promote_pages: {result.message}")
            return None
        return result.data.get("data") or []

    async def validate(self, page_id: Optional[str]) -> PageValidation:
        if not page_id:
            return PageValidation(valid=False, error="No Facebook Page ID configured",
                                  diagnosis="Select a Page for this organization or set META_PAGE_ID.")

        result = await self.api.call(page_id, params={"fields": "name,id"})

        if isinstance(result, ApiFailure):
            error = result.error
            if isinstance(error, TransportError):
                return PageValidation(valid=False, error=error.message,
                                      diagnosis="Network error checking Page access.")

            if result.code == 190:
                return PageValidation(valid=False, error=error.message,
                                      diagnosis="Access token is expired or invalid. Generate a new token.")

            not_accessible = (f"Page ID {page_id} is not accessible. Verify the ID is correct and the "
                              f"Page is added to your Business Manager.")

            if error.is_permission_error:
                if self.ad_account_id:
                    logger.warning(f"Cannot read Page {page_id} directly (code {result.code}). "
                                   f"Falling back to promote_pages check...")
                    pages = await self._promote_pages()
                    matched = next((p for p in pages or [] if p.get("id") == page_id), None)
                    if matched:
                        logger.info(f"Page \"{matched.get('name')}\" ({page_id}) confirmed via promote_pages "
                                    f"(direct read unavailable)")
                        return PageValidation(valid=True, page_name=matched.get("name"))
                return PageValidation(valid=False, error=error.message, diagnosis=not_accessible)

            return PageValidation(
                valid=False,
                error=error.message,
                diagnosis=(f"Token cannot access Page {page_id}. In Business Manager > Settings > Pages, "
                           f"ensure this Page is added and your token has permission."),
            )

        page_name = result.data.get("name")

        if self.ad_account_id:
            pages = await self._promote_pages()
            # An unverifiable promote_pages list does not block; the Page may still work
            if pages is not None and not any(p.get("id") == page_id for p in pages):
                return PageValidation(
                    valid=False,
                    page_name=page_name,
                    error=f"Page \"{page_name}\" is not linked to ad account {self.ad_account_id} for promotion.",
                    diagnosis=(f"In Business Manager > Settings > Pages > \"{page_name}\", assign the Page to "
                               f"the ad account, or add it under Ad Account Settings > Page."),
                )

        logger.info(f"Page \"{page_name}\" ({page_id}) is accessible with ad permissions")
        return PageValidation(valid=True, page_name=page_name)
