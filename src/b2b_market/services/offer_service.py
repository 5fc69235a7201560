"""Offer lifecycle service.

Owns every write to the offers table: sellers create, edit and withdraw
offers; buy-request owners accept, reject or counter them; the system
expires stale ones. Multi-step transitions run inside one ``UnitOfWork``
and finish with a best-effort cache invalidation.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Iterable, Optional

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from b2b_market.app.config import Settings, get_settings
from b2b_market.domain.conditions import InvalidConditionsError, parse_conditions
from b2b_market.domain.enums import (
    BuyAdStatus,
    BuyAdType,
    Language,
    OfferActor,
    OfferPriority,
    OfferSort,
    OfferStatus,
    OfferType,
)
from b2b_market.domain.models import (
    Account,
    AccountUser,
    BuyAd,
    Conversation,
    Message,
    Offer,
    OfferContent,
    User,
)
from b2b_market.domain.schemas import (
    CounterOfferRequest,
    OfferCreate,
    OfferQuery,
    OfferRatingRequest,
    OfferUpdate,
)
from b2b_market.i18n.translator import format_price, translate
from b2b_market.infra.cache import CacheGateway
from b2b_market.infra.unit_of_work import UnitOfWork
from b2b_market.services.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidOfferError,
    NotFoundError,
)
from b2b_market.services.offer_content import (
    buy_ad_name,
    merge_offer_content,
    upsert_offer_contents,
)
from b2b_market.services.offer_serializer import (
    serialize_offer,
    serialize_offer_detail,
    serialize_offer_list_item,
)
from b2b_market.services.offer_state_machine import (
    InvalidTransitionError,
    allowed_actions,
    as_utc,
    can_counter_buy_ad_type,
    can_edit,
    can_withdraw,
    hours_remaining,
    is_expired,
    sibling_statuses_to_reject,
    status_of,
    validate_transition,
)
from b2b_market.services.offer_validation import (
    OfferProposal,
    validate_counter_offer,
    validate_offer,
)

logger = logging.getLogger(__name__)

ALL_OFFERS_TAG = "offers:all"

PRIORITY_RANK = {
    OfferPriority.LOW.value: 0,
    OfferPriority.NORMAL.value: 1,
    OfferPriority.HIGH.value: 2,
    OfferPriority.URGENT.value: 3,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _lang(language: Language | str) -> str:
    return language.value if isinstance(language, Language) else language


def offer_cache_tags(offer_id: str, seller_id: str, buy_ad_id: str) -> list[str]:
    """Every cache tag a change to this offer can make stale."""
    return [
        f"offer:{offer_id}",
        f"user_offers:{seller_id}",
        f"buy_ad_offers:{buy_ad_id}",
        f"offer_stats:{seller_id}",
    ]


def order_by_for(sort_by: OfferSort) -> list:
    """ORDER BY clauses for a listing sort key."""
    if sort_by == OfferSort.OLDEST:
        return [Offer.created_at.asc()]
    if sort_by == OfferSort.PRICE_LOW:
        return [Offer.proposed_price.asc(), Offer.created_at.desc()]
    if sort_by == OfferSort.PRICE_HIGH:
        return [Offer.proposed_price.desc(), Offer.created_at.desc()]
    if sort_by == OfferSort.DELIVERY_FAST:
        return [Offer.delivery_time.asc(), Offer.created_at.desc()]
    if sort_by == OfferSort.PRIORITY:
        rank = case(PRIORITY_RANK, value=Offer.priority, else_=1)
        return [rank.desc(), Offer.created_at.desc()]
    if sort_by == OfferSort.VALIDITY:
        return [Offer.expires_at.asc().nulls_last(), Offer.created_at.desc()]
    return [Offer.created_at.desc()]


def filter_conditions(query: OfferQuery) -> list:
    """WHERE clauses for the optional listing filters."""
    conditions = []
    if query.status is not None:
        conditions.append(Offer.status == query.status.value)
    if query.type is not None:
        conditions.append(Offer.type == query.type.value)
    if query.buy_ad_id:
        conditions.append(Offer.buy_ad_id == query.buy_ad_id)
    if query.account_id:
        conditions.append(Offer.account_id == query.account_id)
    if query.user_id:
        conditions.append(Offer.seller_id == query.user_id)
    if query.min_price is not None:
        conditions.append(Offer.proposed_price >= query.min_price)
    if query.max_price is not None:
        conditions.append(Offer.proposed_price <= query.max_price)
    return conditions


def viewer_flags(detail: dict, user_id: Optional[str]) -> dict:
    """Per-viewer permission flags for a serialized offer detail."""
    buy_ad = detail.get("buy_ad") or {}
    owner_id = buy_ad.get("user_id")
    view = SimpleNamespace(
        status=detail["status"],
        type=detail["type"],
        seller_id=detail["seller_id"],
        parent_offer_id=detail["parent_offer_id"],
    )
    actions = allowed_actions(view, user_id, owner_id, buy_ad.get("type"))
    deadline = detail.get("deadline")
    timing = SimpleNamespace(
        validity_hours=detail.get("validity_hours"),
        expires_at=datetime.fromisoformat(deadline) if deadline else None,
        created_at=None,
    )
    return {
        "user_has_access": user_id is not None and user_id in (detail["seller_id"], owner_id),
        "can_edit": "edit" in actions,
        "can_withdraw": "withdraw" in actions,
        "can_accept": "accept" in actions,
        "can_reject": "reject" in actions,
        "can_counter": "counter" in actions,
        "can_rate": "rate" in actions,
        "allowed_actions": actions,
        "time_remaining": hours_remaining(timing),
    }


class OfferService:
    """Creates offers and drives them through their lifecycle."""

    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[CacheGateway] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.cache = cache
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _load_offer(self, offer_id: str) -> Optional[Offer]:
        result = await self.db.execute(
            select(Offer)
            .where(Offer.id == offer_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_offer_or_404(self, offer_id: str) -> Offer:
        offer = await self._load_offer(offer_id)
        if offer is None:
            raise NotFoundError("OFFER_NOT_FOUND")
        return offer

    async def _load_buy_ad(self, buy_ad_id: str) -> Optional[BuyAd]:
        result = await self.db.execute(
            select(BuyAd)
            .where(BuyAd.id == buy_ad_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _children_of(self, offer_id: str, limit: Optional[int] = None) -> list[Offer]:
        stmt = (
            select(Offer)
            .where(Offer.parent_offer_id == offer_id)
            .order_by(Offer.created_at.desc())
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _check_account_access(self, account_id: str, user_id: str) -> Account:
        account = await self.db.get(Account, account_id)
        if account is None or not account.is_active:
            raise NotFoundError("ACCOUNT_NOT_FOUND")
        membership = await self.db.execute(
            select(AccountUser.id).where(
                AccountUser.account_id == account_id,
                AccountUser.user_id == user_id,
            )
        )
        if membership.scalar_one_or_none() is None:
            raise ForbiddenError("ACCOUNT_ACCESS_DENIED")
        return account

    async def _has_active_offer(self, user_id: str, buy_ad_id: str) -> bool:
        result = await self.db.execute(
            select(Offer.id)
            .where(
                Offer.seller_id == user_id,
                Offer.buy_ad_id == buy_ad_id,
                Offer.status.in_([OfferStatus.PENDING.value, OfferStatus.COUNTERED.value]),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _seller_rating(self, user_id: str) -> Optional[float]:
        result = await self.db.execute(select(User.rating).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    def _conditions(buy_ad: BuyAd):
        try:
            return parse_conditions(buy_ad.type, buy_ad.conditions)
        except InvalidConditionsError as exc:
            logger.warning("Buy ad %s has malformed conditions: %s", buy_ad.id, exc)
            raise BadRequestError("INVALID_BUY_AD_CONDITIONS") from exc

    @staticmethod
    def _require_transition(offer: Offer, target: OfferStatus, actor: OfferActor) -> None:
        try:
            validate_transition(status_of(offer), target, actor)
        except InvalidTransitionError as exc:
            logger.info("Refused transition on offer %s: %s", offer.id, exc)
            raise ConflictError("OFFER_NOT_PENDING") from exc

    async def _recount_buy_ad(self, buy_ad_id: str, now: Optional[datetime] = None) -> int:
        """Recompute the buy request's denormalised offer counter."""
        result = await self.db.execute(
            select(Offer.status, func.count(Offer.id))
            .where(Offer.buy_ad_id == buy_ad_id)
            .group_by(Offer.status)
        )
        by_status = {status: count for status, count in result.all()}
        total = sum(by_status.values())
        await self.db.execute(
            update(BuyAd)
            .where(BuyAd.id == buy_ad_id)
            .values(total_offers=total, last_offer_at=now or _now())
        )
        logger.debug("Buy ad %s offer counts: %s", buy_ad_id, by_status)
        return total

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    async def _cache_get(self, key: str) -> Optional[Any]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(key)
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    async def _cache_set(self, key: str, value: Any, tags: Iterable[str]) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(
                key,
                value,
                ttl=self.settings.cache_ttl_seconds,
                tags=[*tags, ALL_OFFERS_TAG],
            )
        except Exception as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    async def _invalidate(self, tags: Iterable[str]) -> None:
        if self.cache is None:
            return
        for tag in dict.fromkeys(tags):
            try:
                await self.cache.invalidate_tag(tag)
            except Exception as exc:
                logger.warning("Cache invalidation failed for %s: %s", tag, exc)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def _paginate(self, conditions: list, query: OfferQuery, serializer, language) -> dict:
        total = await self.db.scalar(select(func.count(Offer.id)).where(*conditions)) or 0
        result = await self.db.execute(
            select(Offer)
            .where(*conditions)
            .order_by(*order_by_for(query.sort_by))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
            .execution_options(populate_existing=True)
        )
        return {
            "offers": [serializer(offer, language) for offer in result.scalars().all()],
            "total": total,
            "page": query.page,
            "limit": query.limit,
            "total_pages": math.ceil(total / query.limit) if total else 0,
        }

    async def find_all_by_user(self, user_id: str, query: OfferQuery, language: Language | str) -> dict:
        """Offers the caller submitted, newest first by default."""
        query = query.model_copy(update={"user_id": None})
        key = f"user_offers:{user_id}:{query.fingerprint()}:{_lang(language)}"
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        conditions = [Offer.seller_id == user_id, *filter_conditions(query)]
        page = await self._paginate(conditions, query, serialize_offer_list_item, language)
        await self._cache_set(key, page, tags=[f"user_offers:{user_id}"])
        return page

    async def find_by_buy_ad(
        self, buy_ad_id: str, query: OfferQuery, user_id: str, language: Language | str
    ) -> dict:
        """Offers on one buy request, as seen by its owner or a public viewer.

        Auctions only list live PENDING bids and carry a bid summary.
        """
        buy_ad = await self._load_buy_ad(buy_ad_id)
        if buy_ad is None:
            raise NotFoundError("BUY_AD_NOT_FOUND")
        is_auction = buy_ad.type == BuyAdType.AUCTION.value
        if buy_ad.user_id != user_id and not (is_auction or buy_ad.allow_public_offers):
            raise ForbiddenError("BUY_AD_OFFERS_FORBIDDEN")

        query = query.model_copy(update={"buy_ad_id": None})
        key = f"buy_ad_offers:{buy_ad_id}:{query.fingerprint()}:{_lang(language)}"
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        conditions = [Offer.buy_ad_id == buy_ad_id, *filter_conditions(query)]
        if is_auction:
            conditions += [
                Offer.status == OfferStatus.PENDING.value,
                or_(Offer.expires_at.is_(None), Offer.expires_at > _now()),
            ]
        page = await self._paginate(conditions, query, serialize_offer, language)
        page["auction_info"] = await self._auction_info(conditions) if is_auction else None

        await self._cache_set(key, page, tags=[f"buy_ad_offers:{buy_ad_id}"])
        return page

    async def _auction_info(self, conditions: list) -> dict:
        result = await self.db.execute(
            select(
                func.count(Offer.id),
                func.max(Offer.proposed_price),
                func.min(Offer.proposed_price),
                func.avg(Offer.proposed_price),
            ).where(*conditions)
        )
        count, highest, lowest, average = result.one()
        return {
            "total_bids": count or 0,
            "highest_bid": highest or 0,
            "lowest_bid": lowest or 0,
            "average_bid": round(average, 2) if average else 0,
        }

    async def find_all_admin(self, query: OfferQuery, language: Language | str) -> dict:
        return await self._paginate(filter_conditions(query), query, serialize_offer, language)

    # ------------------------------------------------------------------
    # Detail
    # ------------------------------------------------------------------

    async def _build_detail(self, offer: Offer, language: Language | str) -> dict:
        parent = await self._load_offer(offer.parent_offer_id) if offer.parent_offer_id else None
        children = await self._children_of(offer.id)
        conversation = (
            await self.db.get(Conversation, offer.conversation_id) if offer.conversation_id else None
        )
        return serialize_offer_detail(offer, language, parent, children, conversation)

    async def find_one(self, offer_id: str, user_id: str, language: Language | str) -> dict:
        """Offer detail with the viewer's permission flags.

        The shared part is read through the cache; flags are computed per
        call. Reading as the buy-request owner marks the offer seen.
        """
        key = f"offer:{offer_id}:{_lang(language)}"
        detail = await self._cache_get(key)
        if detail is None:
            offer = await self.get_offer_or_404(offer_id)
            detail = await self._build_detail(offer, language)
            await self._cache_set(key, detail, tags=[f"offer:{offer_id}"])

        buy_ad = detail["buy_ad"] or {}
        is_party = user_id in (detail["seller_id"], buy_ad.get("user_id"))
        is_public = buy_ad.get("type") == BuyAdType.AUCTION.value
        if not is_party and not is_public:
            allow_public = await self.db.scalar(
                select(BuyAd.allow_public_offers).where(BuyAd.id == detail["buy_ad_id"])
            )
            if not allow_public:
                raise ForbiddenError()

        if user_id == buy_ad.get("user_id") and not detail["is_seen_by_buyer"]:
            seen_at = await self._mark_seen(offer_id)
            await self._invalidate(
                offer_cache_tags(offer_id, detail["seller_id"], detail["buy_ad_id"])
            )
            detail = {**detail, "is_seen_by_buyer": True, "seen_by_buyer_at": seen_at.isoformat()}

        return {**detail, **viewer_flags(detail, user_id)}

    async def find_one_admin(self, offer_id: str, language: Language | str) -> dict:
        offer = await self.get_offer_or_404(offer_id)
        detail = await self._build_detail(offer, language)
        child_count = await self.db.scalar(
            select(func.count(Offer.id)).where(Offer.parent_offer_id == offer_id)
        )
        detail["admin_info"] = {
            "can_force_delete": True,
            "has_conversation": offer.conversation_id is not None,
            "child_offers_count": child_count or 0,
        }
        return detail

    # ------------------------------------------------------------------
    # Seller operations
    # ------------------------------------------------------------------

    async def create(self, data: OfferCreate, user_id: str, language: Language | str) -> dict:
        """Submit a new PENDING offer against an approved buy request."""
        buy_ad = await self._load_buy_ad(data.buy_ad_id)
        if buy_ad is None:
            raise NotFoundError("BUY_AD_NOT_FOUND")
        now = _now()
        expired_ad = buy_ad.expires_at is not None and as_utc(buy_ad.expires_at) <= now
        if buy_ad.status != BuyAdStatus.APPROVED.value or expired_ad:
            raise NotFoundError("ACTIVE_BUY_AD_NOT_FOUND")
        if buy_ad.user_id == user_id:
            raise ForbiddenError("OWN_BUY_AD_OFFER")

        await self._check_account_access(data.account_id, user_id)

        if await self._has_active_offer(user_id, buy_ad.id):
            raise ConflictError("DUPLICATE_ACTIVE_OFFER")

        conditions = self._conditions(buy_ad)
        seller_rating = None
        if conditions.min_seller_rating is not None:
            seller_rating = await self._seller_rating(user_id)

        proposal = OfferProposal(
            unit=data.unit,
            proposed_price=data.proposed_price,
            type=data.type,
            certifications=tuple(data.certifications or ()),
        )
        issues = validate_offer(proposal, buy_ad.type, buy_ad.unit, conditions, seller_rating)
        if issues:
            logger.info(
                "Offer on buy ad %s by %s failed validation: %s",
                buy_ad.id, user_id, [issue.key for issue in issues],
            )
            raise InvalidOfferError(issues)

        validity = data.validity_hours or self.settings.offer_default_validity_hours
        offer = Offer(
            seller_id=user_id,
            account_id=data.account_id,
            buy_ad_id=buy_ad.id,
            status=OfferStatus.PENDING.value,
            type=(data.type or OfferType.DIRECT_OFFER).value,
            priority=(data.priority or OfferPriority.NORMAL).value,
            proposed_price=data.proposed_price,
            proposed_amount=data.proposed_amount,
            unit=data.unit,
            description=data.description,
            delivery_time=data.delivery_time or self.settings.offer_default_delivery_time,
            shipping_cost=data.shipping_cost,
            shipping_time=data.shipping_time,
            warranty_months=data.warranty_months,
            quality_guarantee=data.quality_guarantee,
            certifications=list(data.certifications or []),
            validity_hours=validity,
            expires_at=now + timedelta(hours=validity),
            created_at=now,
            updated_at=now,
        )
        # Last row wins when the same language is sent twice
        by_language = {content.language.value: content for content in data.contents or []}
        offer.contents = [
            OfferContent(
                language=lang,
                description=content.description,
                packaging_details=content.packaging_details,
                certifications_note=content.certifications_note,
                shipping_note=content.shipping_note,
                auto_translated=bool(content.auto_translated),
            )
            for lang, content in by_language.items()
        ]

        async with UnitOfWork(self.db):
            self.db.add(offer)
            await self.db.flush()
            await self._recount_buy_ad(buy_ad.id, now)

        logger.info(
            "Offer %s created on buy ad %s (seller=%s, price=%s)",
            offer.id, buy_ad.id, user_id, data.proposed_price,
        )
        await self._invalidate(offer_cache_tags(offer.id, user_id, buy_ad.id))
        return serialize_offer(await self.get_offer_or_404(offer.id), language)

    async def update(
        self, offer_id: str, data: OfferUpdate, user_id: str, language: Language | str
    ) -> dict:
        """Patch an editable offer's terms and upsert its content rows."""
        offer = await self.get_offer_or_404(offer_id)
        if offer.seller_id != user_id:
            raise ForbiddenError("OFFER_EDIT_FORBIDDEN")
        if not can_edit(offer):
            raise ConflictError("OFFER_NOT_EDITABLE")
        if data.certifications is not None:
            issues = validate_counter_offer(data.certifications, self._conditions(offer.buy_ad))
            if issues:
                raise InvalidOfferError(issues)

        changes = {
            name: value
            for name, value in data.model_dump(mode="json", exclude_unset=True, exclude={"contents"}).items()
            if value is not None
        }

        async with UnitOfWork(self.db):
            for name, value in changes.items():
                setattr(offer, name, value)
            offer.updated_at = _now()
            if data.contents:
                await upsert_offer_contents(self.db, offer.id, data.contents)

        logger.info("Offer %s updated by seller %s: %s", offer_id, user_id, sorted(changes))
        await self._invalidate(offer_cache_tags(offer_id, offer.seller_id, offer.buy_ad_id))
        return serialize_offer(await self.get_offer_or_404(offer_id), language)

    async def remove(self, offer_id: str, user_id: str, language: Language | str) -> dict:
        """Withdraw an offer. A withdrawn counter hands the thread back to its parent."""
        offer = await self.get_offer_or_404(offer_id)
        if offer.seller_id != user_id:
            raise ForbiddenError("OFFER_DELETE_FORBIDDEN")
        if not can_withdraw(offer):
            raise ConflictError("OFFER_NOT_WITHDRAWABLE")

        buy_ad_id = offer.buy_ad_id
        parent_id = offer.parent_offer_id
        child_ids = [child.id for child in await self._children_of(offer_id)]
        now = _now()

        async with UnitOfWork(self.db):
            if parent_id:
                await self.db.execute(
                    update(Offer)
                    .where(
                        Offer.id == parent_id,
                        Offer.status.in_([OfferStatus.PENDING.value, OfferStatus.COUNTERED.value]),
                    )
                    .values(status=OfferStatus.PENDING.value, updated_at=now)
                )
            await self._delete_offers([*child_ids, offer_id])
            await self._recount_buy_ad(buy_ad_id, now)

        logger.info(
            "Offer %s withdrawn by seller %s (parent=%s, counters removed=%d)",
            offer_id, user_id, parent_id, len(child_ids),
        )
        tags = offer_cache_tags(offer_id, user_id, buy_ad_id)
        for related_id in [parent_id, *child_ids]:
            if related_id:
                tags.append(f"offer:{related_id}")
        await self._invalidate(tags)
        return {"message": translate("OFFER_DELETED", language)}

    async def _delete_offers(self, offer_ids: list[str]) -> None:
        await self.db.execute(
            delete(OfferContent)
            .where(OfferContent.offer_id.in_(offer_ids))
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            delete(Offer)
            .where(Offer.id.in_(offer_ids))
            .execution_options(synchronize_session="fetch")
        )

    # ------------------------------------------------------------------
    # Buyer operations
    # ------------------------------------------------------------------

    async def accept_offer(self, offer_id: str, user_id: str, language: Language | str) -> dict:
        """Accept a PENDING offer and close the buy request.

        Competing offers are rejected (all of them for auctions and tenders,
        only the active ones otherwise), the buy request becomes FULFILLED
        and a conversation between buyer and seller is opened.
        """
        offer = await self.get_offer_or_404(offer_id)
        buy_ad = offer.buy_ad
        if buy_ad.user_id != user_id:
            raise ForbiddenError("ONLY_BUYER_CAN_ACCEPT")
        self._require_transition(offer, OfferStatus.ACCEPTED, OfferActor.BUYER)

        seller_id = offer.seller_id
        buy_ad_id = buy_ad.id
        statuses = sibling_statuses_to_reject(buy_ad.type)
        sibling_filter = [
            Offer.buy_ad_id == buy_ad_id,
            Offer.id != offer_id,
            Offer.status != OfferStatus.REJECTED.value,
        ]
        if statuses is not None:
            sibling_filter.append(Offer.status.in_([status.value for status in statuses]))
        siblings = (await self.db.execute(select(Offer.id, Offer.seller_id).where(*sibling_filter))).all()
        sibling_ids = [row.id for row in siblings]

        name = buy_ad_name(buy_ad, language) or translate("DEFAULT_BUY_AD_NAME", language)
        message_text = translate(
            "ACCEPTANCE_MESSAGE",
            language,
            {"name": name, "price": format_price(offer.proposed_price)},
        )
        now = _now()

        async with UnitOfWork(self.db):
            result = await self.db.execute(
                update(Offer)
                .where(Offer.id == offer_id, Offer.status == OfferStatus.PENDING.value)
                .values(status=OfferStatus.ACCEPTED.value, updated_at=now)
            )
            if result.rowcount != 1:
                raise ConflictError("OFFER_NOT_PENDING")

            if sibling_ids:
                await self.db.execute(
                    update(Offer)
                    .where(Offer.id.in_(sibling_ids))
                    .values(status=OfferStatus.REJECTED.value, updated_at=now)
                )
            await self.db.execute(
                update(BuyAd)
                .where(BuyAd.id == buy_ad_id)
                .values(status=BuyAdStatus.FULFILLED.value, fulfilled_at=now)
            )

            conversation = Conversation(
                user1_id=user_id,
                user2_id=seller_id,
                buy_ad_id=buy_ad_id,
                last_message_text=message_text,
                last_message_time=now,
            )
            self.db.add(conversation)
            await self.db.flush()
            self.db.add(Message(conversation_id=conversation.id, sender_id=user_id, content=message_text))
            await self.db.execute(
                update(Offer).where(Offer.id == offer_id).values(conversation_id=conversation.id)
            )
            await self._recount_buy_ad(buy_ad_id, now)

        logger.info(
            "Offer %s: %s -> %s (actor=%s, user=%s)",
            offer_id, OfferStatus.PENDING.value, OfferStatus.ACCEPTED.value,
            OfferActor.BUYER.value, user_id,
        )
        if sibling_ids:
            logger.info("Buy ad %s fulfilled; rejected %d competing offers", buy_ad_id, len(sibling_ids))

        tags = offer_cache_tags(offer_id, seller_id, buy_ad_id)
        for row in siblings:
            tags += offer_cache_tags(row.id, row.seller_id, buy_ad_id)
        await self._invalidate(tags)

        accepted = await self.get_offer_or_404(offer_id)
        return {
            "message": translate("OFFER_ACCEPTED", language),
            "offer": serialize_offer(accepted, language),
            "conversation_id": conversation.id,
            "rejected_offers": len(sibling_ids),
        }

    async def reject_offer(
        self, offer_id: str, user_id: str, reason: Optional[str], language: Language | str
    ) -> dict:
        offer = await self.get_offer_or_404(offer_id)
        if offer.buy_ad.user_id != user_id:
            raise ForbiddenError("ONLY_BUYER_CAN_REJECT")
        self._require_transition(offer, OfferStatus.REJECTED, OfferActor.BUYER)

        description = offer.description
        shown = merge_offer_content(offer, language)["description"]
        note = None
        if reason:
            note = translate("REJECTION_REASON", language, {"reason": reason})
            description = f"{description} - {note}" if description else note

        async with UnitOfWork(self.db):
            result = await self.db.execute(
                update(Offer)
                .where(Offer.id == offer_id, Offer.status == OfferStatus.PENDING.value)
                .values(status=OfferStatus.REJECTED.value, description=description, updated_at=_now())
            )
            if result.rowcount != 1:
                raise ConflictError("OFFER_NOT_PENDING")
            if note:
                # The response merges the content row over the scalar column
                row = await self._content_row(offer_id, language)
                row.description = f"{shown} - {note}" if shown else note
                await self.db.flush()

        logger.info(
            "Offer %s: %s -> %s (actor=%s, user=%s)",
            offer_id, OfferStatus.PENDING.value, OfferStatus.REJECTED.value,
            OfferActor.BUYER.value, user_id,
        )
        await self._invalidate(offer_cache_tags(offer_id, offer.seller_id, offer.buy_ad_id))
        return {
            "message": translate("OFFER_REJECTED", language),
            "offer": serialize_offer(await self.get_offer_or_404(offer_id), language),
        }

    async def counter_offer(
        self, offer_id: str, data: CounterOfferRequest, user_id: str, language: Language | str
    ) -> dict:
        """Answer a PENDING offer with new terms.

        The counter is a new COUNTERED offer owned by the original seller and
        linked through ``parent_offer_id``; the original stays PENDING.
        """
        offer = await self.get_offer_or_404(offer_id)
        buy_ad = offer.buy_ad
        if buy_ad.user_id != user_id:
            raise ForbiddenError("ONLY_BUYER_CAN_COUNTER")
        if not can_counter_buy_ad_type(buy_ad.type):
            raise ConflictError("COUNTER_NOT_ALLOWED")
        self._require_transition(offer, OfferStatus.PENDING, OfferActor.BUYER)

        certifications = (
            data.certifications if data.certifications is not None else offer.certifications
        ) or []
        issues = validate_counter_offer(certifications, self._conditions(buy_ad))
        if issues:
            raise InvalidOfferError(issues)

        now = _now()
        validity = data.validity_hours or self.settings.offer_default_validity_hours
        description = data.description or translate(
            "COUNTER_OFFER_DESCRIPTION", language, {"price": format_price(data.proposed_price)}
        )
        counter = Offer(
            seller_id=offer.seller_id,
            account_id=offer.account_id,
            buy_ad_id=offer.buy_ad_id,
            parent_offer_id=offer.id,
            status=OfferStatus.COUNTERED.value,
            type=OfferType.COUNTER_OFFER.value,
            priority=offer.priority,
            proposed_price=data.proposed_price,
            proposed_amount=offer.proposed_amount,
            unit=offer.unit,
            description=description,
            delivery_time=data.delivery_time or offer.delivery_time,
            shipping_cost=data.shipping_cost if data.shipping_cost is not None else offer.shipping_cost,
            shipping_time=data.shipping_time or offer.shipping_time,
            warranty_months=(
                data.warranty_months if data.warranty_months is not None else offer.warranty_months
            ),
            quality_guarantee=offer.quality_guarantee,
            certifications=list(certifications),
            validity_hours=validity,
            expires_at=now + timedelta(hours=validity),
            created_at=now,
            updated_at=now,
        )
        counter.contents = []

        async with UnitOfWork(self.db):
            self.db.add(counter)
            await self.db.execute(
                update(Offer)
                .where(Offer.id == offer_id)
                .values(status=OfferStatus.PENDING.value, updated_at=now)
            )
            await self.db.flush()
            await self._recount_buy_ad(offer.buy_ad_id, now)

        logger.info(
            "Offer %s countered by buyer %s at %s (counter=%s)",
            offer_id, user_id, data.proposed_price, counter.id,
        )
        tags = offer_cache_tags(offer_id, offer.seller_id, offer.buy_ad_id)
        tags.append(f"offer:{counter.id}")
        await self._invalidate(tags)
        return serialize_offer(await self.get_offer_or_404(counter.id), language)

    async def _mark_seen(self, offer_id: str) -> datetime:
        seen_at = _now()
        async with UnitOfWork(self.db):
            await self.db.execute(
                update(Offer)
                .where(Offer.id == offer_id, Offer.is_seen_by_buyer.is_not(True))
                .values(is_seen_by_buyer=True, seen_by_buyer_at=seen_at)
            )
        return seen_at

    async def mark_as_seen(self, offer_id: str, user_id: str, language: Language | str) -> dict:
        offer = await self.get_offer_or_404(offer_id)
        if offer.buy_ad.user_id != user_id:
            raise ForbiddenError("ONLY_BUYER_CAN_MARK_SEEN")
        if not offer.is_seen_by_buyer:
            await self._mark_seen(offer_id)
            await self._invalidate(offer_cache_tags(offer_id, offer.seller_id, offer.buy_ad_id))
        return {
            "message": translate("OFFER_MARKED_SEEN", language),
            "offer_id": offer_id,
            "is_seen_by_buyer": True,
        }

    async def rate_offer(
        self, offer_id: str, data: OfferRatingRequest, user_id: str, language: Language | str
    ) -> dict:
        """Record one party's rating of a completed deal.

        A buyer's rating also refreshes the seller's average rating, which
        feeds ``min_seller_rating`` checks on later offers.
        """
        offer = await self.get_offer_or_404(offer_id)
        if user_id == offer.buy_ad.user_id:
            side = "buyer"
        elif user_id == offer.seller_id:
            side = "seller"
        else:
            raise ForbiddenError("RATING_FORBIDDEN")
        if offer.status != OfferStatus.ACCEPTED.value:
            raise ConflictError("RATING_NOT_ALLOWED")

        async with UnitOfWork(self.db):
            await self.db.execute(
                update(Offer).where(Offer.id == offer_id).values(**{f"{side}_rating": data.rating})
            )
            if data.feedback:
                await self._set_feedback(offer_id, language, f"{side}_feedback", data.feedback)
            if side == "buyer":
                await self._refresh_seller_rating(offer.seller_id)

        logger.info("Offer %s rated %d by %s %s", offer_id, data.rating, side, user_id)
        await self._invalidate(offer_cache_tags(offer_id, offer.seller_id, offer.buy_ad_id))
        return {
            "message": translate("OFFER_RATED", language),
            "offer": serialize_offer(await self.get_offer_or_404(offer_id), language),
        }

    async def _content_row(self, offer_id: str, language) -> OfferContent:
        """The offer's content row in ``language``, created when missing."""
        result = await self.db.execute(
            select(OfferContent).where(
                OfferContent.offer_id == offer_id,
                OfferContent.language == _lang(language),
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = OfferContent(offer_id=offer_id, language=_lang(language), auto_translated=False)
            self.db.add(row)
        return row

    async def _set_feedback(self, offer_id: str, language, field: str, text: str) -> None:
        row = await self._content_row(offer_id, language)
        setattr(row, field, text)
        await self.db.flush()

    async def _refresh_seller_rating(self, seller_id: str) -> None:
        average = await self.db.scalar(
            select(func.avg(Offer.buyer_rating)).where(
                Offer.seller_id == seller_id,
                Offer.status == OfferStatus.ACCEPTED.value,
                Offer.buyer_rating.is_not(None),
            )
        )
        if average is not None:
            await self.db.execute(
                update(User).where(User.id == seller_id).values(rating=round(float(average), 2))
            )

    # ------------------------------------------------------------------
    # System / admin operations
    # ------------------------------------------------------------------

    async def check_and_expire_offers(self, language: Language | str = Language.FA) -> dict:
        """Move PENDING offers past their own deadline to EXPIRED.

        Safe to re-run: only rows still PENDING are touched.
        """
        now = _now()
        result = await self.db.execute(
            select(
                Offer.id,
                Offer.seller_id,
                Offer.buy_ad_id,
                Offer.validity_hours,
                Offer.expires_at,
                Offer.created_at,
            ).where(
                Offer.status == OfferStatus.PENDING.value,
                Offer.validity_hours.is_not(None),
            )
        )
        stale = [row for row in result.all() if is_expired(row, now)]
        if not stale:
            logger.debug("Expiry sweep: nothing to expire")
            return {"message": translate("NO_EXPIRED_OFFERS", language), "expired_count": 0}

        buy_ad_ids = {row.buy_ad_id for row in stale}
        async with UnitOfWork(self.db):
            updated = await self.db.execute(
                update(Offer)
                .where(
                    Offer.id.in_([row.id for row in stale]),
                    Offer.status == OfferStatus.PENDING.value,
                )
                .values(status=OfferStatus.EXPIRED.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            expired_count = updated.rowcount
            for buy_ad_id in buy_ad_ids:
                await self._recount_buy_ad(buy_ad_id, now)

        logger.info(
            "Expiry sweep: %d offers -> %s across %d buy ads",
            expired_count, OfferStatus.EXPIRED.value, len(buy_ad_ids),
        )
        tags: list[str] = []
        for row in stale:
            tags += offer_cache_tags(row.id, row.seller_id, row.buy_ad_id)
        await self._invalidate(tags)
        return {
            "message": translate("OFFERS_EXPIRED", language, {"count": expired_count}),
            "expired_count": expired_count,
        }

    async def force_remove(self, offer_id: str, admin_id: str, language: Language | str) -> dict:
        """Delete an offer whatever its state, with its counters and conversation."""
        offer = await self.get_offer_or_404(offer_id)
        buy_ad_id = offer.buy_ad_id
        conversation_id = offer.conversation_id
        child_ids = [child.id for child in await self._children_of(offer_id)]

        async with UnitOfWork(self.db):
            await self._delete_offers([*child_ids, offer_id])
            if conversation_id:
                await self.db.execute(delete(Message).where(Message.conversation_id == conversation_id))
                await self.db.execute(
                    delete(Conversation)
                    .where(Conversation.id == conversation_id)
                    .execution_options(synchronize_session="fetch")
                )
            await self._recount_buy_ad(buy_ad_id)

        logger.warning(
            "Admin %s force-deleted offer %s (counters=%d, conversation=%s)",
            admin_id, offer_id, len(child_ids), conversation_id,
        )
        await self._invalidate([ALL_OFFERS_TAG])
        return {
            "message": translate("OFFER_DELETED", language),
            "deleted_offers": len(child_ids) + 1,
        }
