"""Shared FastAPI dependencies: request language and service factories."""

from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from b2b_market.app.config import get_settings
from b2b_market.app.routes.auth import get_optional_user_dep
from b2b_market.domain.enums import Language, OfferSort, OfferStatus, OfferType
from b2b_market.domain.models import User
from b2b_market.domain.schemas import OfferQuery
from b2b_market.infra.cache import InMemoryCache, get_cache
from b2b_market.infra.database import get_db
from b2b_market.services.offer_service import OfferService
from b2b_market.services.offer_stats import OfferStatsService


def parse_language(value: Optional[str]) -> Optional[Language]:
    """Language for a raw tag like ``en``, ``EN`` or ``en-US``; None if unsupported."""
    if not value:
        return None
    tag = value.strip().lower().split("-")[0].split("_")[0]
    try:
        return Language(tag)
    except ValueError:
        return None


def primary_accept_language(header: Optional[str]) -> Optional[str]:
    """First language tag of an Accept-Language header, without its q-value."""
    if not header:
        return None
    return header.split(",")[0].split(";")[0].strip() or None


def language_from_request(request: Request, user: Optional[User] = None) -> Language:
    """Resolve the response language.

    Order: ``?lang=`` -> ``x-app-language`` -> Accept-Language -> the user's
    stored language -> configured default. Unsupported values are skipped.
    """
    candidates = (
        request.query_params.get("lang"),
        request.headers.get("x-app-language"),
        primary_accept_language(request.headers.get("accept-language")),
        user.language if user is not None else None,
        get_settings().default_language,
    )
    for candidate in candidates:
        language = parse_language(candidate)
        if language is not None:
            return language
    return Language.FA


async def get_language(
    request: Request, user: Optional[User] = Depends(get_optional_user_dep)
) -> Language:
    language = language_from_request(request, user)
    # Read back by the exception handlers
    request.state.language = language
    return language


def offer_query(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[OfferStatus] = Query(None),
    type: Optional[OfferType] = Query(None),
    buy_ad_id: Optional[str] = Query(None),
    account_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort_by: OfferSort = Query(OfferSort.NEWEST),
) -> OfferQuery:
    """Listing filters from the query string."""
    return OfferQuery(
        page=page,
        limit=limit,
        status=status,
        type=type,
        buy_ad_id=buy_ad_id,
        account_id=account_id,
        user_id=user_id,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
    )


def get_offer_service(
    db: AsyncSession = Depends(get_db), cache: InMemoryCache = Depends(get_cache)
) -> OfferService:
    return OfferService(db, cache)


def get_stats_service(
    db: AsyncSession = Depends(get_db), cache: InMemoryCache = Depends(get_cache)
) -> OfferStatsService:
    return OfferStatsService(db, cache)
