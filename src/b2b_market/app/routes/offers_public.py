"""Public, unauthenticated offer views for marketing pages."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from b2b_market.app.deps import get_language, get_stats_service
from b2b_market.domain.enums import Language
from b2b_market.services.offer_stats import OfferStatsService

router = APIRouter(prefix="/public/offers", tags=["public-offers"])


@router.get("/featured")
async def featured_offers(
    limit: Optional[int] = Query(None, ge=1, le=50),
    language: Language = Depends(get_language),
    stats: OfferStatsService = Depends(get_stats_service),
):
    return await stats.featured(limit, language)


@router.get("/stats/overview")
async def public_offer_stats(stats: OfferStatsService = Depends(get_stats_service)):
    return await stats.public_stats()


@router.get("/success-stories")
async def success_stories(
    limit: Optional[int] = Query(None, ge=1, le=50),
    language: Language = Depends(get_language),
    stats: OfferStatsService = Depends(get_stats_service),
):
    return await stats.success_stories(limit, language)


@router.get("/{offer_id}/preview")
async def offer_preview(
    offer_id: str,
    language: Language = Depends(get_language),
    stats: OfferStatsService = Depends(get_stats_service),
):
    return await stats.preview(offer_id, language)
