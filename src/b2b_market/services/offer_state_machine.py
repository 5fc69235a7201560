"""Offer state machine: validates status transitions and who may drive them.

Offers start PENDING. A buyer answers a PENDING offer by accepting,
rejecting or countering it; the system expires stale PENDING offers and
force-rejects siblings once one offer on a buy request is accepted.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from b2b_market.domain.enums import BuyAdType, OfferActor, OfferStatus, OfferType


class InvalidTransitionError(Exception):
    """Raised when an offer state transition is not allowed."""

    def __init__(self, current_status: OfferStatus, target_status: OfferStatus, reason: str):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        super().__init__(
            f"Invalid transition from {current_status.value} to {target_status.value}: {reason}"
        )


S = OfferStatus
A = OfferActor

# from_status -> {to_status: set_of_allowed_actors}
TRANSITION_MAP: dict[OfferStatus, dict[OfferStatus, set[OfferActor]]] = {
    S.PENDING: {
        S.ACCEPTED: {A.BUYER},
        S.REJECTED: {A.BUYER, A.SYSTEM},
        S.EXPIRED: {A.SYSTEM},
        # countering resets the answered offer to PENDING
        S.PENDING: {A.BUYER, A.SELLER},
    },
    S.COUNTERED: {
        S.REJECTED: {A.SYSTEM},
        S.PENDING: {A.SELLER},
    },
    # Auctions and tenders close every other bid, whatever its state
    S.EXPIRED: {
        S.REJECTED: {A.SYSTEM},
    },
}

ACTIVE_STATES: set[OfferStatus] = {S.PENDING, S.COUNTERED}

TERMINAL_STATES: set[OfferStatus] = {S.ACCEPTED, S.REJECTED, S.EXPIRED}

# Buy-request types that close all competing bids on acceptance
CLOSED_BIDDING_TYPES: set[BuyAdType] = {BuyAdType.AUCTION, BuyAdType.TENDER}


def status_of(offer) -> OfferStatus:
    return OfferStatus(offer.status)


def validate_transition(current: OfferStatus, target: OfferStatus, actor: OfferActor) -> bool:
    """Return True if the transition is valid. Raise InvalidTransitionError if not."""
    if actor == A.ADMIN and current not in TERMINAL_STATES:
        return True

    allowed = TRANSITION_MAP.get(current, {})
    if target not in allowed:
        raise InvalidTransitionError(current, target, "transition not defined")
    if actor not in allowed[target]:
        raise InvalidTransitionError(current, target, f"actor {actor.value} not permitted")
    return True


def can_edit(offer) -> bool:
    """Sellers may edit their offer while it is PENDING, except auction bids."""
    return offer.status == S.PENDING.value and offer.type != OfferType.AUCTION_BID.value


def can_withdraw(offer) -> bool:
    """PENDING offers, and counters still awaiting the seller, may be withdrawn."""
    if offer.status == S.PENDING.value:
        return True
    return offer.status == S.COUNTERED.value and offer.parent_offer_id is not None


def can_respond(offer) -> bool:
    """Whether the buyer may accept, reject or counter the offer."""
    return offer.status == S.PENDING.value


def can_counter_buy_ad_type(buy_ad_type: BuyAdType | str) -> bool:
    return BuyAdType(buy_ad_type) not in CLOSED_BIDDING_TYPES


def sibling_statuses_to_reject(buy_ad_type: BuyAdType | str) -> Optional[set[OfferStatus]]:
    """Statuses of sibling offers that an acceptance forces to REJECTED.

    ``None`` means every sibling regardless of status.
    """
    if BuyAdType(buy_ad_type) in CLOSED_BIDDING_TYPES:
        return None
    return set(ACTIVE_STATES)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def expiry_deadline(offer) -> Optional[datetime]:
    """The moment an offer stops being valid, or None if it never expires."""
    if not offer.validity_hours:
        return None
    if offer.expires_at is not None:
        return as_utc(offer.expires_at)
    if offer.created_at is None:
        return None
    return as_utc(offer.created_at) + timedelta(hours=offer.validity_hours)


def is_expired(offer, now: Optional[datetime] = None) -> bool:
    deadline = expiry_deadline(offer)
    if deadline is None:
        return False
    return deadline <= (now or datetime.now(timezone.utc))


def hours_remaining(offer, now: Optional[datetime] = None) -> Optional[int]:
    """Whole hours (rounded up) until expiry; 0 once passed; None if open-ended."""
    deadline = expiry_deadline(offer)
    if deadline is None:
        return None
    remaining = (deadline - (now or datetime.now(timezone.utc))).total_seconds()
    if remaining <= 0:
        return 0
    return int(-(-remaining // 3600))


def allowed_actions(
    offer,
    user_id: Optional[str],
    buy_ad_owner_id: Optional[str],
    buy_ad_type: BuyAdType | str | None = None,
) -> list[str]:
    """Actions the viewer can take on the offer right now."""
    actions: list[str] = []
    if user_id is None:
        return actions
    if user_id == offer.seller_id:
        if can_edit(offer):
            actions.append("edit")
        if can_withdraw(offer):
            actions.append("withdraw")
    if user_id == buy_ad_owner_id and can_respond(offer):
        actions.extend(["accept", "reject"])
        if buy_ad_type is None or can_counter_buy_ad_type(buy_ad_type):
            actions.append("counter")
    if offer.status == S.ACCEPTED.value and user_id in (offer.seller_id, buy_ad_owner_id):
        actions.append("rate")
    return actions
