"""Read-only views over the offers table: stats, negotiation history, public pages."""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from b2b_market.app.config import Settings, get_settings
from b2b_market.domain.enums import BuyAdStatus, Language, OfferStatus, OfferType, Timeframe
from b2b_market.domain.models import BuyAd, Offer, User
from b2b_market.i18n.translator import format_price, translate
from b2b_market.infra.cache import CacheGateway
from b2b_market.services.errors import NotFoundError
from b2b_market.services.offer_content import buy_ad_name, user_full_name
from b2b_market.services.offer_serializer import to_iso, serialize_public_offer

logger = logging.getLogger(__name__)

TIMEFRAME_DELTAS = {
    Timeframe.WEEK: timedelta(days=7),
    Timeframe.MONTH: timedelta(days=30),
    Timeframe.QUARTER: timedelta(days=90),
    Timeframe.YEAR: timedelta(days=365),
}

HISTORY_STATUSES = [
    OfferStatus.PENDING.value,
    OfferStatus.COUNTERED.value,
    OfferStatus.ACCEPTED.value,
]


def window_start(timeframe: Timeframe, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.now(timezone.utc)) - TIMEFRAME_DELTAS[timeframe]


def success_rate(accepted: int, total: int) -> int:
    return round(accepted / total * 100) if total else 0


def _chain_link(offer, link_type: str) -> dict:
    return {
        "id": offer.id,
        "price": offer.proposed_price,
        "type": link_type,
        "timestamp": to_iso(offer.created_at),
    }


def negotiation_chain(offer, parent=None, children=()) -> list[dict]:
    """Original -> current -> counters (newest first) for one offer."""
    chain = []
    if parent is not None:
        chain.append(_chain_link(parent, "original"))
    chain.append(_chain_link(offer, "current"))
    chain.extend(_chain_link(child, "counter") for child in children)
    return chain


class OfferStatsService:
    """Aggregations and public marketing views derived from offers."""

    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[CacheGateway] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.cache = cache
        self.settings = settings or get_settings()

    async def _count_by(self, column, *conditions) -> dict[str, int]:
        result = await self.db.execute(
            select(column, func.count(Offer.id)).where(*conditions).group_by(column)
        )
        return {key: count for key, count in result.all()}

    # ------------------------------------------------------------------
    # Seller-facing
    # ------------------------------------------------------------------

    async def user_stats(self, user_id: str, timeframe: Timeframe = Timeframe.MONTH) -> dict:
        """Totals and success rate of the offers a user sent in the window."""
        key = f"offer_stats:{user_id}:{timeframe.value}"
        if self.cache is not None:
            try:
                cached = await self.cache.get(key)
                if cached is not None:
                    return cached
            except Exception as exc:
                logger.warning("Cache read failed for %s: %s", key, exc)

        by_status = await self._count_by(
            Offer.status,
            Offer.seller_id == user_id,
            Offer.created_at >= window_start(timeframe),
        )
        total = sum(by_status.values())
        accepted = by_status.get(OfferStatus.ACCEPTED.value, 0)
        stats = {
            "total_offers": total,
            "accepted_offers": accepted,
            "pending_offers": by_status.get(OfferStatus.PENDING.value, 0),
            "rejected_offers": by_status.get(OfferStatus.REJECTED.value, 0),
            "expired_offers": by_status.get(OfferStatus.EXPIRED.value, 0),
            "countered_offers": by_status.get(OfferStatus.COUNTERED.value, 0),
            "success_rate": success_rate(accepted, total),
            "timeframe": timeframe.value,
        }

        if self.cache is not None:
            try:
                await self.cache.set(
                    key,
                    stats,
                    ttl=self.settings.cache_ttl_seconds,
                    tags=[f"offer_stats:{user_id}", "offers:all"],
                )
            except Exception as exc:
                logger.warning("Cache write failed for %s: %s", key, exc)
        return stats

    async def negotiation_history(
        self,
        user_id: str,
        buy_ad_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        language: Language | str = Language.FA,
    ) -> dict:
        """Offers the user sent, plus live or won offers on the user's own buy requests."""
        owned_ads = select(BuyAd.id).where(BuyAd.user_id == user_id)
        conditions = [
            or_(
                Offer.seller_id == user_id,
                Offer.buy_ad_id.in_(owned_ads) & Offer.status.in_(HISTORY_STATUSES),
            )
        ]
        if buy_ad_id:
            conditions.append(Offer.buy_ad_id == buy_ad_id)

        total = await self.db.scalar(select(func.count(Offer.id)).where(*conditions)) or 0
        result = await self.db.execute(
            select(Offer)
            .where(*conditions)
            .order_by(Offer.updated_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        offers = list(result.scalars().all())

        parent_ids = {offer.parent_offer_id for offer in offers if offer.parent_offer_id}
        parents = {}
        if parent_ids:
            rows = await self.db.execute(select(Offer).where(Offer.id.in_(parent_ids)))
            parents = {parent.id: parent for parent in rows.scalars().all()}

        negotiations = []
        for offer in offers:
            children = await self.db.execute(
                select(Offer)
                .where(Offer.parent_offer_id == offer.id)
                .order_by(Offer.created_at.desc())
                .limit(5)
            )
            negotiations.append({
                "id": offer.id,
                "type": offer.type,
                "status": offer.status,
                "proposed_price": offer.proposed_price,
                "created_at": to_iso(offer.created_at),
                "updated_at": to_iso(offer.updated_at),
                "seller": {"id": offer.seller_id, "user_name": offer.seller.user_name},
                "buy_ad": {"id": offer.buy_ad_id, "name": buy_ad_name(offer.buy_ad, language)},
                "negotiation_chain": negotiation_chain(
                    offer, parents.get(offer.parent_offer_id), children.scalars().all()
                ),
                "is_user_seller": offer.seller_id == user_id,
            })

        return {
            "negotiations": negotiations,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        }

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def admin_stats(
        self, timeframe: Timeframe = Timeframe.MONTH, language: Language | str = Language.FA
    ) -> dict:
        since = window_start(timeframe)
        by_status = await self._count_by(Offer.status, Offer.created_at >= since)
        by_type = await self._count_by(Offer.type, Offer.created_at >= since)
        recent = await self.db.execute(
            select(Offer)
            .where(Offer.created_at >= since)
            .order_by(Offer.created_at.desc())
            .limit(10)
        )
        total = sum(by_status.values())
        return {
            "overview": {
                "total_offers": total,
                "success_rate": success_rate(by_status.get(OfferStatus.ACCEPTED.value, 0), total),
                "timeframe": timeframe.value,
            },
            "by_status": {status.value: by_status.get(status.value, 0) for status in OfferStatus},
            "by_type": {kind.value: by_type.get(kind.value, 0) for kind in OfferType},
            "recent_activity": [
                {
                    "id": offer.id,
                    "status": offer.status,
                    "type": offer.type,
                    "proposed_price": offer.proposed_price,
                    "seller": {"id": offer.seller_id, "user_name": offer.seller.user_name},
                    "buy_ad": {"id": offer.buy_ad_id, "name": buy_ad_name(offer.buy_ad, language)},
                    "created_at": to_iso(offer.created_at),
                }
                for offer in recent.scalars().all()
            ],
        }

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    async def featured(self, limit: Optional[int] = None, language: Language | str = Language.FA) -> list[dict]:
        """Recently closed deals for the landing page."""
        result = await self.db.execute(
            select(Offer)
            .where(Offer.status == OfferStatus.ACCEPTED.value)
            .order_by(Offer.created_at.desc(), Offer.proposed_price.desc())
            .limit(limit or self.settings.featured_offers_limit)
        )
        return [serialize_public_offer(offer, language, 150) for offer in result.scalars().all()]

    async def public_stats(self) -> dict:
        now = datetime.now(timezone.utc)
        accepted = Offer.status == OfferStatus.ACCEPTED.value
        total_successful = await self.db.scalar(select(func.count(Offer.id)).where(accepted)) or 0
        recent_successful = await self.db.scalar(
            select(func.count(Offer.id)).where(accepted, Offer.created_at >= now - timedelta(days=30))
        ) or 0
        active_buy_ads = await self.db.scalar(
            select(func.count(BuyAd.id)).where(
                BuyAd.status == BuyAdStatus.APPROVED.value,
                or_(BuyAd.expires_at.is_(None), BuyAd.expires_at > now),
            )
        ) or 0
        sellers = await self.db.scalar(
            select(func.count(User.id)).where(User.is_seller.is_(True), User.is_blocked.is_not(True))
        ) or 0
        total_offers = await self.db.scalar(select(func.count(Offer.id))) or 0
        return {
            "overview": {
                "total_successful_offers": total_successful,
                "recent_successful_offers": recent_successful,
                "active_buy_requests": active_buy_ads,
                "registered_sellers": sellers,
            },
            "success_metrics": {
                "success_rate": success_rate(total_successful, total_offers),
            },
        }

    async def preview(self, offer_id: str, language: Language | str = Language.FA) -> dict:
        """Teaser of a closed deal; anything still under negotiation is hidden."""
        result = await self.db.execute(
            select(Offer).where(Offer.id == offer_id, Offer.status == OfferStatus.ACCEPTED.value)
        )
        offer = result.scalar_one_or_none()
        if offer is None:
            raise NotFoundError("OFFER_NOT_FOUND")

        return serialize_public_offer(offer, language, 200, buy_ad_length=150, account_length=100)

    async def success_stories(
        self, limit: Optional[int] = None, language: Language | str = Language.FA
    ) -> list[dict]:
        """Closed deals both parties rated 4 or better."""
        result = await self.db.execute(
            select(Offer)
            .where(
                Offer.status == OfferStatus.ACCEPTED.value,
                Offer.buyer_rating >= 4,
                Offer.seller_rating >= 4,
            )
            .order_by(Offer.created_at.desc())
            .limit(limit or self.settings.success_stories_limit)
        )
        stories = []
        for offer in result.scalars().all():
            seller_name = user_full_name(offer.seller, language) or offer.seller.user_name
            name = buy_ad_name(offer.buy_ad, language) or translate("DEFAULT_BUY_AD_NAME", language)
            price = format_price(offer.proposed_price)
            stories.append({
                "id": offer.id,
                "success_story": {
                    "title": translate("SUCCESS_STORY_TITLE", language, {"name": name}),
                    "description": translate(
                        "SUCCESS_STORY_DESCRIPTION", language, {"seller": seller_name, "price": price}
                    ),
                    "value": f"{price} {translate('CURRENCY', language)}",
                    "rating": {
                        "buyer": offer.buyer_rating,
                        "seller": offer.seller_rating,
                        "average": round((offer.buyer_rating + offer.seller_rating) / 2, 1),
                    },
                    "date": to_iso(offer.created_at),
                },
                "seller": {
                    "name": seller_name,
                    "is_verified": bool(offer.seller.is_verified),
                },
            })
        return stories
