"""Buyer routes: answering offers received on the caller's buy requests."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from b2b_market.app.deps import get_language, get_offer_service, offer_query
from b2b_market.app.routes.auth import get_current_user_dep
from b2b_market.domain.enums import Language
from b2b_market.domain.models import User
from b2b_market.domain.schemas import (
    CounterOfferRequest,
    OfferQuery,
    OfferRatingRequest,
    OfferRejectRequest,
)
from b2b_market.services.offer_service import OfferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offers/management", tags=["offers-management"])


@router.get("/buy-ad/{ad_id}")
async def list_buy_ad_offers(
    ad_id: str,
    query: OfferQuery = Depends(offer_query),
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    """Offers on one buy request. Auctions list live bids only."""
    return await service.find_by_buy_ad(ad_id, query, user.id, language)


@router.put("/{offer_id}/accept")
async def accept_offer(
    offer_id: str,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.accept_offer(offer_id, user.id, language)


@router.put("/{offer_id}/reject")
async def reject_offer(
    offer_id: str,
    data: Optional[OfferRejectRequest] = Body(None),
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    reason = data.reason if data else None
    return await service.reject_offer(offer_id, user.id, reason, language)


@router.put("/{offer_id}/counter")
async def counter_offer(
    offer_id: str,
    data: CounterOfferRequest,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.counter_offer(offer_id, data, user.id, language)


@router.put("/{offer_id}/mark-seen")
async def mark_offer_seen(
    offer_id: str,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.mark_as_seen(offer_id, user.id, language)


@router.put("/{offer_id}/rating")
async def rate_as_buyer(
    offer_id: str,
    data: OfferRatingRequest,
    user: User = Depends(get_current_user_dep),
    language: Language = Depends(get_language),
    service: OfferService = Depends(get_offer_service),
):
    return await service.rate_offer(offer_id, data, user.id, language)
