"""Seller routes: the caller's own offers under ``/offers/my``."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from b2b_market.app.deps import get_language, get_offer_service, get_stats_service, offer_query
from b2b_market.app.routes.auth import get_current_user_dep
from b2b_market.domain.enums import Language, Timeframe
from b2b_market.domain.models import User
from b2b_market.domain.schemas import OfferCreate, OfferQuery, OfferRatingRequest, OfferUpdate
from b2b_market.services.offer_service import OfferService
from b2b_market.services.offer_stats import OfferStatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offers/my", tags=["offers"])


@router.post("", status_code=201)
async def create_offer(
    data: OfferCreate,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    """Submit an offer against a buy request."""
    return await service.create(data, user.id, language)


@router.get("")
async def list_my_offers(
    query: OfferQuery = Depends(offer_query),
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.find_all_by_user(user.id, query, language)


@router.get("/stats/overview")
async def my_offer_stats(
    timeframe: Timeframe = Query(Timeframe.MONTH),
    user: User = Depends(get_current_user_dep),
    stats: OfferStatsService = Depends(get_stats_service),
):
    return await stats.user_stats(user.id, timeframe)


@router.get("/negotiations/history")
async def my_negotiation_history(
    buy_ad_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    stats: OfferStatsService = Depends(get_stats_service),
):
    return await stats.negotiation_history(user.id, buy_ad_id, page, limit, language)


@router.get("/{offer_id}")
async def get_my_offer(
    offer_id: str,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.find_one(offer_id, user.id, language)


@router.put("/{offer_id}")
async def update_my_offer(
    offer_id: str,
    data: OfferUpdate,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.update(offer_id, data, user.id, language)


@router.delete("/{offer_id}")
async def withdraw_my_offer(
    offer_id: str,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.remove(offer_id, user.id, language)


@router.put("/{offer_id}/rating")
async def rate_as_seller(
    offer_id: str,
    data: OfferRatingRequest,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.rate_offer(offer_id, data, user.id, language)
