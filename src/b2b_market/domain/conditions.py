"""Typed buy-request conditions.

A buy request stores its conditions as a JSON blob whose meaning depends on
the request's type. ``parse_conditions`` turns that blob into one closed
variant per type, once, so the validation engine works on typed values.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from b2b_market.domain.enums import BuyAdType


class _BaseConditions(BaseModel):
    """Rules shared by every buy-request type."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    min_seller_rating: Optional[float] = Field(default=None, ge=0)
    required_certifications: tuple[str, ...] = ()

    @field_validator("required_certifications", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return () if value is None else value


class SimpleConditions(_BaseConditions):
    kind: BuyAdType = BuyAdType.SIMPLE


class AuctionConditions(_BaseConditions):
    kind: BuyAdType = BuyAdType.AUCTION
    base_min_price: Optional[float] = Field(default=None, ge=0)


class TenderConditions(_BaseConditions):
    kind: BuyAdType = BuyAdType.TENDER


class NegotiationConditions(_BaseConditions):
    kind: BuyAdType = BuyAdType.NEGOTIATION


BuyAdConditions = Union[
    SimpleConditions, AuctionConditions, TenderConditions, NegotiationConditions
]

_VARIANTS: dict[BuyAdType, type[_BaseConditions]] = {
    BuyAdType.SIMPLE: SimpleConditions,
    BuyAdType.AUCTION: AuctionConditions,
    BuyAdType.TENDER: TenderConditions,
    BuyAdType.NEGOTIATION: NegotiationConditions,
}


class InvalidConditionsError(ValueError):
    """Raised when a stored conditions blob does not fit its buy-request type."""


def parse_conditions(buy_ad_type: BuyAdType | str, raw: Optional[dict[str, Any]]) -> BuyAdConditions:
    """Validate ``raw`` against the variant for ``buy_ad_type``."""
    try:
        variant = _VARIANTS[BuyAdType(buy_ad_type)]
    except ValueError as exc:
        raise InvalidConditionsError(f"Unknown buy-ad type: {buy_ad_type!r}") from exc

    data = dict(raw or {})
    data.pop("kind", None)
    try:
        return variant(**data)
    except ValidationError as exc:
        raise InvalidConditionsError(str(exc)) from exc
