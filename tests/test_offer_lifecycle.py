"""Offer lifecycle tests: create, edit, withdraw, accept, reject, counter, seen and rating.

Each test runs against a fresh in-memory SQLite database through the real
OfferService, so state changes are verified by re-reading rows.
"""

import pytest
from sqlalchemy import func, select

from b2b_market.domain.enums import (
    BuyAdStatus,
    BuyAdType,
    Language,
    OfferStatus,
    OfferType,
)
from b2b_market.domain.models import Conversation, Message, Offer
from b2b_market.domain.schemas import (
    CounterOfferRequest,
    OfferContentIn,
    OfferCreate,
    OfferRatingRequest,
    OfferUpdate,
)
from b2b_market.services.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidOfferError,
    NotFoundError,
)


def _create_data(m, **kwargs) -> OfferCreate:
    defaults = {
        "buy_ad_id": m.buy_ad.id,
        "account_id": m.account.id,
        "proposed_price": 1500,
        "proposed_amount": 10,
        "unit": "ton",
    }
    defaults.update(kwargs)
    return OfferCreate(**defaults)


async def _status(offer_service, offer_id: str) -> str:
    return (await offer_service.get_offer_or_404(offer_id)).status


@pytest.fixture
async def second_seller(make_user, make_account):
    """Another seller with their own account, for competing offers."""
    seller = await make_user(user_name="rival")
    account = await make_account(seller, name="Rival Metals")
    return seller, account


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreateOffer:

    async def test_creates_pending_offer_with_defaults(self, offer_service, marketplace):
        m = marketplace
        offer = await offer_service.create(_create_data(m), m.seller.id, Language.EN)

        assert offer["status"] == "PENDING"
        assert offer["type"] == "DIRECT_OFFER"
        assert offer["priority"] == "NORMAL"
        assert offer["validity_hours"] == 24
        assert offer["delivery_time"] == 1
        assert offer["expires_at"] is not None
        assert offer["seller"]["full_name"] == "Sara Karimi"
        assert offer["buy_ad"]["name"] == "میلگرد"

    async def test_buy_ad_counter_is_updated(self, offer_service, marketplace):
        m = marketplace
        await offer_service.create(_create_data(m), m.seller.id, Language.EN)
        assert m.buy_ad.total_offers == 1
        assert m.buy_ad.last_offer_at is not None

    async def test_content_rows_follow_request_language(self, offer_service, marketplace):
        m = marketplace
        data = _create_data(m, contents=[
            OfferContentIn(language=Language.FA, description="تحویل فوری"),
            OfferContentIn(language=Language.EN, description="Immediate delivery"),
        ])
        created = await offer_service.create(data, m.seller.id, Language.EN)
        assert created["description"] == "Immediate delivery"

        detail = await offer_service.find_one(created["id"], m.seller.id, Language.AR)
        assert detail["description"] == "تحویل فوری"

    @pytest.mark.parametrize("buy_ad_type,offer_type", [
        (BuyAdType.SIMPLE, OfferType.DIRECT_OFFER),
        (BuyAdType.AUCTION, OfferType.AUCTION_BID),
        (BuyAdType.TENDER, OfferType.TENDER_BID),
        (BuyAdType.NEGOTIATION, OfferType.NEGOTIATION),
    ])
    async def test_unit_mismatch_is_rejected(
        self, offer_service, marketplace, make_buy_ad, buy_ad_type, offer_type,
    ):
        m = marketplace
        buy_ad = await make_buy_ad(m.buyer, type=buy_ad_type)
        data = _create_data(m, buy_ad_id=buy_ad.id, unit="kg", type=offer_type)
        with pytest.raises(InvalidOfferError) as exc_info:
            await offer_service.create(data, m.seller.id, Language.EN)
        assert [issue.key for issue in exc_info.value.violations] == ["UNIT_MISMATCH"]
        assert exc_info.value.status_code == 400

    async def test_duplicate_active_offer_conflicts(self, offer_service, marketplace):
        m = marketplace
        await offer_service.create(_create_data(m), m.seller.id, Language.EN)
        with pytest.raises(ConflictError) as exc_info:
            await offer_service.create(_create_data(m, proposed_price=1400), m.seller.id, Language.EN)
        assert exc_info.value.message_key == "DUPLICATE_ACTIVE_OFFER"

    async def test_new_offer_allowed_after_rejection(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.REJECTED)
        offer = await offer_service.create(_create_data(m), m.seller.id, Language.EN)
        assert offer["status"] == "PENDING"

    async def test_cannot_offer_on_own_buy_ad(self, offer_service, marketplace, make_account):
        m = marketplace
        buyer_account = await make_account(m.buyer, name="Buyer Co")
        with pytest.raises(ForbiddenError) as exc_info:
            await offer_service.create(
                _create_data(m, account_id=buyer_account.id), m.buyer.id, Language.EN
            )
        assert exc_info.value.message_key == "OWN_BUY_AD_OFFER"

    async def test_account_membership_is_required(self, offer_service, marketplace, second_seller):
        m = marketplace
        _, rival_account = second_seller
        with pytest.raises(ForbiddenError) as exc_info:
            await offer_service.create(
                _create_data(m, account_id=rival_account.id), m.seller.id, Language.EN
            )
        assert exc_info.value.message_key == "ACCOUNT_ACCESS_DENIED"

    async def test_inactive_account_is_not_found(self, offer_service, marketplace, make_account):
        m = marketplace
        dormant = await make_account(m.seller, name="Dormant", is_active=False)
        with pytest.raises(NotFoundError) as exc_info:
            await offer_service.create(_create_data(m, account_id=dormant.id), m.seller.id, Language.EN)
        assert exc_info.value.message_key == "ACCOUNT_NOT_FOUND"

    async def test_unknown_buy_ad(self, offer_service, marketplace):
        m = marketplace
        with pytest.raises(NotFoundError) as exc_info:
            await offer_service.create(_create_data(m, buy_ad_id="missing"), m.seller.id, Language.EN)
        assert exc_info.value.message_key == "BUY_AD_NOT_FOUND"

    async def test_unapproved_buy_ad_is_not_active(self, offer_service, marketplace, make_buy_ad):
        m = marketplace
        draft = await make_buy_ad(m.buyer, status=BuyAdStatus.PENDING)
        with pytest.raises(NotFoundError) as exc_info:
            await offer_service.create(_create_data(m, buy_ad_id=draft.id), m.seller.id, Language.EN)
        assert exc_info.value.message_key == "ACTIVE_BUY_AD_NOT_FOUND"

    async def test_seller_rating_requirement(self, offer_service, marketplace, make_buy_ad):
        m = marketplace
        picky = await make_buy_ad(m.buyer, conditions={"min_seller_rating": 4})
        with pytest.raises(InvalidOfferError) as exc_info:
            await offer_service.create(_create_data(m, buy_ad_id=picky.id), m.seller.id, Language.EN)
        assert [issue.key for issue in exc_info.value.violations] == ["MIN_SELLER_RATING"]

    async def test_malformed_conditions_are_a_bad_request(
        self, offer_service, marketplace, make_buy_ad,
    ):
        m = marketplace
        broken = await make_buy_ad(m.buyer, conditions={"min_seller_rating": "high"})
        with pytest.raises(BadRequestError) as exc_info:
            await offer_service.create(_create_data(m, buy_ad_id=broken.id), m.seller.id, Language.EN)
        assert exc_info.value.message_key == "INVALID_BUY_AD_CONDITIONS"


class TestAuctionScenario:
    """Bids below the base price are refused; acceptance closes every other bid."""

    @pytest.fixture
    async def auction(self, make_buy_ad, marketplace):
        return await make_buy_ad(
            marketplace.buyer, type=BuyAdType.AUCTION, conditions={"base_min_price": 1000}
        )

    async def test_bid_below_base_price(self, offer_service, marketplace, auction):
        m = marketplace
        data = _create_data(m, buy_ad_id=auction.id, proposed_price=500, type=OfferType.AUCTION_BID)
        with pytest.raises(InvalidOfferError) as exc_info:
            await offer_service.create(data, m.seller.id, Language.EN)
        assert exc_info.value.violations[0].key == "AUCTION_MIN_PRICE"
        assert exc_info.value.violations[0].params == {"price": "1,000"}

    async def test_accepting_one_bid_closes_the_rest(
        self, offer_service, marketplace, auction, second_seller,
    ):
        m = marketplace
        rival, rival_account = second_seller
        winner = await offer_service.create(
            _create_data(m, buy_ad_id=auction.id, proposed_price=1500, type=OfferType.AUCTION_BID),
            m.seller.id, Language.EN,
        )
        runner_up = await offer_service.create(
            _create_data(
                m, buy_ad_id=auction.id, account_id=rival_account.id,
                proposed_price=1200, type=OfferType.AUCTION_BID,
            ),
            rival.id, Language.EN,
        )
        assert winner["status"] == "PENDING"

        result = await offer_service.accept_offer(winner["id"], m.buyer.id, Language.EN)
        assert result["rejected_offers"] == 1
        assert await _status(offer_service, runner_up["id"]) == "REJECTED"

        with pytest.raises(ConflictError) as exc_info:
            await offer_service.accept_offer(runner_up["id"], m.buyer.id, Language.EN)
        assert exc_info.value.message_key == "OFFER_NOT_PENDING"

    async def test_auction_rejects_expired_siblings_too(
        self, offer_service, marketplace, auction, make_offer,
    ):
        m = marketplace
        winner = await make_offer(m.seller, m.account, auction, type=OfferType.AUCTION_BID)
        stale = await make_offer(
            m.seller, m.account, auction, type=OfferType.AUCTION_BID, status=OfferStatus.EXPIRED,
        )
        result = await offer_service.accept_offer(winner.id, m.buyer.id, Language.EN)
        assert result["rejected_offers"] == 1
        assert await _status(offer_service, stale.id) == "REJECTED"

    async def test_auction_bids_cannot_be_edited(self, offer_service, marketplace, auction, make_offer):
        m = marketplace
        bid = await make_offer(m.seller, m.account, auction, type=OfferType.AUCTION_BID)
        with pytest.raises(ConflictError) as exc_info:
            await offer_service.update(bid.id, OfferUpdate(proposed_price=2000), m.seller.id, "en")
        assert exc_info.value.message_key == "OFFER_NOT_EDITABLE"


# ---------------------------------------------------------------------------
# Edit and withdraw
# ---------------------------------------------------------------------------


class TestUpdateOffer:

    async def test_seller_updates_terms_and_content(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, contents={"fa": "متن"})
        data = OfferUpdate(
            proposed_price=1800,
            delivery_time=3,
            contents=[OfferContentIn(language=Language.EN, description="Updated terms")],
        )

        updated = await offer_service.update(offer.id, data, m.seller.id, Language.EN)

        assert updated["proposed_price"] == 1800
        assert updated["delivery_time"] == 3
        assert updated["proposed_amount"] == 10
        assert updated["description"] == "Updated terms"

    async def test_only_the_seller_may_edit(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        with pytest.raises(ForbiddenError):
            await offer_service.update(offer.id, OfferUpdate(proposed_price=1), m.buyer.id, "en")

    async def test_answered_offer_is_not_editable(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.ACCEPTED)
        with pytest.raises(ConflictError):
            await offer_service.update(offer.id, OfferUpdate(proposed_price=5), m.seller.id, "en")

    async def test_edited_certifications_must_cover_required_ones(
        self, offer_service, marketplace, make_buy_ad, make_offer,
    ):
        m = marketplace
        strict = await make_buy_ad(m.buyer, conditions={"required_certifications": ["ISO9001"]})
        offer = await make_offer(m.seller, m.account, strict)

        with pytest.raises(InvalidOfferError) as exc_info:
            await offer_service.update(
                offer.id, OfferUpdate(certifications=["CE"]), m.seller.id, Language.EN,
            )
        assert [issue.key for issue in exc_info.value.violations] == ["REQUIRED_CERTIFICATIONS"]

        updated = await offer_service.update(
            offer.id, OfferUpdate(certifications=["ISO9001", "CE"]), m.seller.id, Language.EN,
        )
        assert updated["certifications"] == ["ISO9001", "CE"]


class TestWithdrawOffer:

    async def test_withdraw_pending_offer(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)

        result = await offer_service.remove(offer.id, m.seller.id, Language.EN)

        assert result["message"] == "Offer deleted successfully"
        with pytest.raises(NotFoundError):
            await offer_service.get_offer_or_404(offer.id)
        assert m.buy_ad.total_offers == 0

    async def test_withdrawing_counter_reverts_parent_to_pending(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        parent = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.COUNTERED)
        counter = await make_offer(
            m.seller, m.account, m.buy_ad,
            status=OfferStatus.COUNTERED, type=OfferType.COUNTER_OFFER, parent=parent,
        )

        await offer_service.remove(counter.id, m.seller.id, Language.EN)

        assert await _status(offer_service, parent.id) == "PENDING"
        with pytest.raises(NotFoundError):
            await offer_service.get_offer_or_404(counter.id)

    async def test_withdrawing_parent_removes_its_counters(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        parent = await make_offer(m.seller, m.account, m.buy_ad)
        counter = await make_offer(
            m.seller, m.account, m.buy_ad,
            status=OfferStatus.COUNTERED, type=OfferType.COUNTER_OFFER, parent=parent,
        )

        await offer_service.remove(parent.id, m.seller.id, Language.EN)

        remaining = await offer_service.db.scalar(
            select(func.count(Offer.id)).where(Offer.id.in_([parent.id, counter.id]))
        )
        assert remaining == 0

    async def test_accepted_offer_cannot_be_withdrawn(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.ACCEPTED)
        with pytest.raises(ConflictError) as exc_info:
            await offer_service.remove(offer.id, m.seller.id, Language.EN)
        assert exc_info.value.message_key == "OFFER_NOT_WITHDRAWABLE"

    async def test_only_the_seller_may_withdraw(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        with pytest.raises(ForbiddenError):
            await offer_service.remove(offer.id, m.buyer.id, Language.EN)


# ---------------------------------------------------------------------------
# Buyer answers
# ---------------------------------------------------------------------------


class TestAcceptOffer:

    async def test_accept_fulfils_buy_ad_and_opens_conversation(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, proposed_price=1500)

        result = await offer_service.accept_offer(offer.id, m.buyer.id, Language.EN)

        assert result["message"] == "Offer accepted and a new conversation was started"
        assert result["offer"]["status"] == "ACCEPTED"
        assert result["offer"]["conversation_id"] == result["conversation_id"]
        assert result["offer"]["buy_ad"]["status"] == "FULFILLED"
        assert m.buy_ad.status == BuyAdStatus.FULFILLED.value
        assert m.buy_ad.fulfilled_at is not None

        conversation = await offer_service.db.get(Conversation, result["conversation_id"])
        assert conversation.user1_id == m.buyer.id
        assert conversation.user2_id == m.seller.id
        assert "1,500" in conversation.last_message_text
        messages = await offer_service.db.scalar(
            select(func.count(Message.id)).where(Message.conversation_id == conversation.id)
        )
        assert messages == 1

    async def test_simple_buy_ad_rejects_only_active_siblings(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        chosen = await make_offer(m.seller, m.account, m.buy_ad)
        pending = await make_offer(m.seller, m.account, m.buy_ad)
        countered = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.COUNTERED)
        expired = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.EXPIRED)
        rejected = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.REJECTED)

        result = await offer_service.accept_offer(chosen.id, m.buyer.id, Language.EN)

        assert result["rejected_offers"] == 2
        assert await _status(offer_service, pending.id) == "REJECTED"
        assert await _status(offer_service, countered.id) == "REJECTED"
        assert await _status(offer_service, expired.id) == "EXPIRED"
        assert await _status(offer_service, rejected.id) == "REJECTED"

    async def test_only_the_buy_ad_owner_may_accept(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        with pytest.raises(ForbiddenError) as exc_info:
            await offer_service.accept_offer(offer.id, m.seller.id, Language.EN)
        assert exc_info.value.message_key == "ONLY_BUYER_CAN_ACCEPT"

    async def test_second_accept_conflicts(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        await offer_service.accept_offer(offer.id, m.buyer.id, Language.EN)
        with pytest.raises(ConflictError):
            await offer_service.accept_offer(offer.id, m.buyer.id, Language.EN)

    async def test_unknown_offer(self, offer_service, marketplace):
        with pytest.raises(NotFoundError) as exc_info:
            await offer_service.accept_offer("missing", marketplace.buyer.id, Language.EN)
        assert exc_info.value.message_key == "OFFER_NOT_FOUND"


class TestRejectOffer:

    async def test_reason_is_appended_to_description(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, description="Fast delivery")

        result = await offer_service.reject_offer(offer.id, m.buyer.id, "too expensive", Language.EN)

        assert result["message"] == "Offer rejected successfully"
        assert result["offer"]["status"] == "REJECTED"
        assert result["offer"]["description"] == "Fast delivery - Rejection reason: too expensive"

    async def test_reason_shows_on_translated_offer(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, contents={"fa": "تحویل سریع"})

        result = await offer_service.reject_offer(offer.id, m.buyer.id, "too expensive", Language.FA)

        assert result["offer"]["description"] == "تحویل سریع - دلیل رد: too expensive"

    async def test_reason_in_a_language_without_content_row(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, contents={"fa": "تحویل سریع"})

        result = await offer_service.reject_offer(offer.id, m.buyer.id, "late", Language.EN)
        detail = await offer_service.find_one(offer.id, m.seller.id, Language.EN)

        assert result["offer"]["description"] == "تحویل سریع - Rejection reason: late"
        assert detail["description"] == "تحویل سریع - Rejection reason: late"

    async def test_reject_without_reason_keeps_description(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, description="Fast delivery")
        result = await offer_service.reject_offer(offer.id, m.buyer.id, None, Language.EN)
        assert result["offer"]["description"] == "Fast delivery"

    async def test_cannot_reject_twice(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.REJECTED)
        with pytest.raises(ConflictError):
            await offer_service.reject_offer(offer.id, m.buyer.id, None, Language.EN)

    async def test_only_the_buy_ad_owner_may_reject(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        with pytest.raises(ForbiddenError):
            await offer_service.reject_offer(offer.id, m.seller.id, None, Language.EN)


class TestCounterOffer:

    async def test_counter_creates_linked_child(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, proposed_price=1500)

        counter = await offer_service.counter_offer(
            offer.id, CounterOfferRequest(proposed_price=1200), m.buyer.id, Language.EN,
        )

        assert counter["status"] == "COUNTERED"
        assert counter["type"] == "COUNTER_OFFER"
        assert counter["parent_offer_id"] == offer.id
        assert counter["seller_id"] == m.seller.id
        assert counter["proposed_price"] == 1200
        assert counter["proposed_amount"] == 10
        assert counter["delivery_time"] == 5
        assert counter["description"] == "Counter-offer: 1,200 IRR"
        assert await _status(offer_service, offer.id) == "PENDING"
        assert m.buy_ad.total_offers == 2

    async def test_counter_shows_up_in_parent_detail(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        counter = await offer_service.counter_offer(
            offer.id, CounterOfferRequest(proposed_price=900), m.buyer.id, Language.EN,
        )

        detail = await offer_service.find_one(offer.id, m.seller.id, Language.EN)
        assert [child["id"] for child in detail["child_offers"]] == [counter["id"]]

        counter_detail = await offer_service.find_one(counter["id"], m.seller.id, Language.EN)
        assert counter_detail["parent_offer"]["id"] == offer.id
        assert counter_detail["can_withdraw"] is True

    async def test_withdrawing_counter_leaves_parent_pending(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        counter = await offer_service.counter_offer(
            offer.id, CounterOfferRequest(proposed_price=900), m.buyer.id, Language.EN,
        )

        await offer_service.remove(counter["id"], m.seller.id, Language.EN)

        assert await _status(offer_service, offer.id) == "PENDING"
        assert m.buy_ad.total_offers == 1

    async def test_auction_bids_cannot_be_countered(
        self, offer_service, marketplace, make_buy_ad, make_offer,
    ):
        m = marketplace
        auction = await make_buy_ad(m.buyer, type=BuyAdType.AUCTION)
        bid = await make_offer(m.seller, m.account, auction, type=OfferType.AUCTION_BID)
        with pytest.raises(ConflictError) as exc_info:
            await offer_service.counter_offer(
                bid.id, CounterOfferRequest(proposed_price=900), m.buyer.id, Language.EN,
            )
        assert exc_info.value.message_key == "COUNTER_NOT_ALLOWED"

    async def test_counter_still_needs_required_certifications(
        self, offer_service, marketplace, make_buy_ad, make_offer,
    ):
        m = marketplace
        strict = await make_buy_ad(m.buyer, conditions={"required_certifications": ["ISO9001"]})
        offer = await make_offer(m.seller, m.account, strict)
        with pytest.raises(InvalidOfferError):
            await offer_service.counter_offer(
                offer.id, CounterOfferRequest(proposed_price=900), m.buyer.id, Language.EN,
            )

        counter = await offer_service.counter_offer(
            offer.id,
            CounterOfferRequest(proposed_price=900, certifications=["ISO9001"]),
            m.buyer.id, Language.EN,
        )
        assert counter["certifications"] == ["ISO9001"]

    async def test_only_the_buy_ad_owner_may_counter(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        with pytest.raises(ForbiddenError):
            await offer_service.counter_offer(
                offer.id, CounterOfferRequest(proposed_price=900), m.seller.id, Language.EN,
            )

    async def test_answered_offer_cannot_be_countered(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.ACCEPTED)
        with pytest.raises(ConflictError):
            await offer_service.counter_offer(
                offer.id, CounterOfferRequest(proposed_price=900), m.buyer.id, Language.EN,
            )


# ---------------------------------------------------------------------------
# Detail, seen flag and rating
# ---------------------------------------------------------------------------


class TestFindOne:

    async def test_buyer_view_marks_offer_seen(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)

        seller_view = await offer_service.find_one(offer.id, m.seller.id, Language.EN)
        assert seller_view["is_seen_by_buyer"] is False
        assert seller_view["allowed_actions"] == ["edit", "withdraw"]

        buyer_view = await offer_service.find_one(offer.id, m.buyer.id, Language.EN)
        assert buyer_view["is_seen_by_buyer"] is True
        assert buyer_view["can_accept"] is True
        assert buyer_view["can_edit"] is False

        again = await offer_service.find_one(offer.id, m.seller.id, Language.EN)
        assert again["is_seen_by_buyer"] is True

    async def test_time_remaining(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, validity_hours=48)
        detail = await offer_service.find_one(offer.id, m.seller.id, Language.EN)
        assert detail["time_remaining"] == 48

    async def test_stranger_is_forbidden_on_private_buy_ad(
        self, offer_service, marketplace, make_offer, make_user,
    ):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        stranger = await make_user(user_name="stranger")
        with pytest.raises(ForbiddenError):
            await offer_service.find_one(offer.id, stranger.id, Language.EN)

    async def test_stranger_may_view_auction_bids(
        self, offer_service, marketplace, make_offer, make_user, make_buy_ad,
    ):
        m = marketplace
        auction = await make_buy_ad(m.buyer, type=BuyAdType.AUCTION)
        bid = await make_offer(m.seller, m.account, auction, type=OfferType.AUCTION_BID)
        stranger = await make_user(user_name="stranger")

        detail = await offer_service.find_one(bid.id, stranger.id, Language.EN)

        assert detail["user_has_access"] is False
        assert detail["allowed_actions"] == []


class TestMarkSeen:

    async def test_buyer_marks_offer_seen(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)

        result = await offer_service.mark_as_seen(offer.id, m.buyer.id, Language.EN)

        assert result["is_seen_by_buyer"] is True
        refreshed = await offer_service.get_offer_or_404(offer.id)
        assert refreshed.is_seen_by_buyer is True
        assert refreshed.seen_by_buyer_at is not None

    async def test_seller_cannot_mark_seen(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        with pytest.raises(ForbiddenError):
            await offer_service.mark_as_seen(offer.id, m.seller.id, Language.EN)


class TestRating:

    async def test_buyer_rating_updates_seller_average(
        self, offer_service, marketplace, make_offer,
    ):
        m = marketplace
        await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.ACCEPTED, buyer_rating=3)
        offer = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.ACCEPTED)

        result = await offer_service.rate_offer(
            offer.id, OfferRatingRequest(rating=5, feedback="Great partner"), m.buyer.id, Language.EN,
        )

        assert result["offer"]["buyer_rating"] == 5
        assert result["offer"]["content"]["buyer_feedback"] == "Great partner"
        assert m.seller.rating == 4.0

    async def test_seller_rates_buyer(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.ACCEPTED)
        result = await offer_service.rate_offer(
            offer.id, OfferRatingRequest(rating=4), m.seller.id, Language.EN,
        )
        assert result["offer"]["seller_rating"] == 4
        assert result["offer"]["buyer_rating"] is None

    async def test_pending_offer_cannot_be_rated(self, offer_service, marketplace, make_offer):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad)
        with pytest.raises(ConflictError) as exc_info:
            await offer_service.rate_offer(offer.id, OfferRatingRequest(rating=4), m.buyer.id, "en")
        assert exc_info.value.message_key == "RATING_NOT_ALLOWED"

    async def test_stranger_cannot_rate(self, offer_service, marketplace, make_offer, make_user):
        m = marketplace
        offer = await make_offer(m.seller, m.account, m.buy_ad, status=OfferStatus.ACCEPTED)
        stranger = await make_user(user_name="stranger")
        with pytest.raises(ForbiddenError):
            await offer_service.rate_offer(offer.id, OfferRatingRequest(rating=4), stranger.id, "en")
