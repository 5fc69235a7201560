"""Offer validation engine.

Pure checks run before any write. Each check appends a ``ValidationIssue``
(message key plus params) so the caller can report every violation at once
in the request language.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from b2b_market.domain.conditions import AuctionConditions, BuyAdConditions
from b2b_market.domain.enums import BuyAdType, OfferType
from b2b_market.i18n.translator import format_price


@dataclass(frozen=True)
class ValidationIssue:
    key: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OfferProposal:
    """The fields of a proposed offer that the rules look at."""

    unit: str
    proposed_price: float
    type: Optional[OfferType] = None
    certifications: tuple[str, ...] = ()


# Offer types accepted per buy-request type. ``None`` in the set means the
# seller may leave the type unset.
ALLOWED_OFFER_TYPES: dict[BuyAdType, tuple[set[Optional[OfferType]], str]] = {
    BuyAdType.SIMPLE: ({None, OfferType.DIRECT_OFFER}, "SIMPLE_DIRECT_ONLY"),
    BuyAdType.AUCTION: ({OfferType.AUCTION_BID}, "AUCTION_BID_ONLY"),
    BuyAdType.TENDER: ({OfferType.TENDER_BID}, "TENDER_BID_ONLY"),
    BuyAdType.NEGOTIATION: (
        {None, OfferType.DIRECT_OFFER, OfferType.NEGOTIATION},
        "NEGOTIATION_TYPES_ONLY",
    ),
}


def check_unit(proposal: OfferProposal, buy_ad_unit: str) -> list[ValidationIssue]:
    if proposal.unit != buy_ad_unit:
        return [ValidationIssue("UNIT_MISMATCH", {"unit": buy_ad_unit})]
    return []


def check_type(proposal: OfferProposal, buy_ad_type: BuyAdType) -> list[ValidationIssue]:
    allowed, key = ALLOWED_OFFER_TYPES[buy_ad_type]
    if proposal.type not in allowed:
        return [ValidationIssue(key)]
    return []


def check_base_price(proposal: OfferProposal, conditions: BuyAdConditions) -> list[ValidationIssue]:
    if isinstance(conditions, AuctionConditions) and conditions.base_min_price is not None:
        if proposal.proposed_price < conditions.base_min_price:
            price = format_price(conditions.base_min_price)
            return [ValidationIssue("AUCTION_MIN_PRICE", {"price": price})]
    return []


def check_seller_rating(
    conditions: BuyAdConditions, seller_rating: Optional[float]
) -> list[ValidationIssue]:
    if conditions.min_seller_rating is None:
        return []
    if (seller_rating or 0) < conditions.min_seller_rating:
        return [ValidationIssue("MIN_SELLER_RATING", {"rating": conditions.min_seller_rating})]
    return []


def check_certifications(
    certifications: Iterable[str], conditions: BuyAdConditions
) -> list[ValidationIssue]:
    required = set(conditions.required_certifications)
    if not required:
        return []
    if required.isdisjoint(certifications or ()):
        return [
            ValidationIssue(
                "REQUIRED_CERTIFICATIONS",
                {"certifications": ", ".join(conditions.required_certifications)},
            )
        ]
    return []


def validate_offer(
    proposal: OfferProposal,
    buy_ad_type: BuyAdType,
    buy_ad_unit: str,
    conditions: BuyAdConditions,
    seller_rating: Optional[float] = None,
) -> list[ValidationIssue]:
    """Run every rule against a new offer; an empty list means it is valid.

    ``seller_rating`` only matters when the conditions set
    ``min_seller_rating``; callers may skip reading it otherwise.
    """
    issues: list[ValidationIssue] = []
    issues += check_unit(proposal, buy_ad_unit)
    issues += check_type(proposal, BuyAdType(buy_ad_type))
    issues += check_base_price(proposal, conditions)
    issues += check_seller_rating(conditions, seller_rating)
    issues += check_certifications(proposal.certifications, conditions)
    return issues


def validate_counter_offer(
    certifications: Iterable[str], conditions: BuyAdConditions
) -> list[ValidationIssue]:
    """Rules that still bind a buyer's counter to its own buy request."""
    return check_certifications(certifications, conditions)
