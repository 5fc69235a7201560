"""Admin routes for offers: inspection, force delete, stats and the expiry trigger."""

import logging

from fastapi import APIRouter, Depends, Query

from b2b_market.app.deps import get_language, get_offer_service, get_stats_service, offer_query
from b2b_market.app.routes.auth import require_role
from b2b_market.domain.enums import Language, SystemRole, Timeframe
from b2b_market.domain.models import User
from b2b_market.domain.schemas import OfferQuery
from b2b_market.services.offer_service import OfferService
from b2b_market.services.offer_stats import OfferStatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/offers", tags=["admin-offers"])

require_admin = require_role(SystemRole.ADMIN.value)


@router.get("")
async def list_offers(
    query: OfferQuery = Depends(offer_query),
    _admin: User = Depends(require_admin),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.find_all_admin(query, language)


@router.get("/stats/admin")
async def offer_admin_stats(
    timeframe: Timeframe = Query(Timeframe.MONTH),
    _admin: User = Depends(require_admin),
    language: Language = Depends(get_language),
    stats: OfferStatsService = Depends(get_stats_service),
):
    return await stats.admin_stats(timeframe, language)


@router.put("/cron/expire-check")
async def run_expiry_sweep(
    admin: User = Depends(require_admin),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    """Manually trigger the sweep that the background loop runs periodically."""
    logger.info("Expiry sweep triggered by admin %s", admin.id)
    return await service.check_and_expire_offers(language)


@router.get("/{offer_id}")
async def get_offer(
    offer_id: str,
    _admin: User = Depends(require_admin),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.find_one_admin(offer_id, language)


@router.delete("/{offer_id}/force")
async def force_delete_offer(
    offer_id: str,
    admin: User = Depends(require_admin),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.force_remove(offer_id, admin.id, language)
