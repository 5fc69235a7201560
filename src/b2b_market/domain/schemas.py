"""Pydantic v2 schemas for API request/response validation."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from b2b_market.domain.enums import (
    Language,
    OfferPriority,
    OfferSort,
    OfferStatus,
    OfferType,
    Timeframe,
)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Schema for creating a new user."""

    email: str
    password: str
    user_name: str
    language: Optional[Language] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserLogin(BaseModel):
    """Schema for user login."""

    email: str
    password: str


class UserResponse(BaseModel):
    """Schema for user API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    user_name: str
    role: str
    language: Optional[str] = None
    rating: Optional[float] = None
    is_verified: bool = False
    is_active: bool = True


class TokenResponse(BaseModel):
    """Schema for JWT token responses."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------


class OfferContentIn(BaseModel):
    """One language's free text for an offer."""

    language: Language
    description: Optional[str] = None
    packaging_details: Optional[str] = None
    certifications_note: Optional[str] = None
    shipping_note: Optional[str] = None
    auto_translated: Optional[bool] = None


class OfferCreate(BaseModel):
    """Body of ``POST /offers/my``."""

    buy_ad_id: str
    account_id: str
    proposed_price: float = Field(ge=1)
    proposed_amount: float = Field(ge=1)
    unit: str
    delivery_time: Optional[int] = Field(default=None, ge=1)
    type: Optional[OfferType] = None
    priority: Optional[OfferPriority] = None
    validity_hours: Optional[int] = Field(default=None, ge=1)
    shipping_cost: Optional[float] = Field(default=None, ge=0)
    shipping_time: Optional[int] = Field(default=None, ge=1)
    certifications: Optional[list[str]] = None
    warranty_months: Optional[int] = Field(default=None, ge=0)
    quality_guarantee: Optional[bool] = None
    description: Optional[str] = None
    contents: Optional[list[OfferContentIn]] = None


class OfferUpdate(BaseModel):
    """Body of ``PUT /offers/my/{id}``. Only scalar terms and content rows."""

    proposed_price: Optional[float] = Field(default=None, ge=1)
    proposed_amount: Optional[float] = Field(default=None, ge=1)
    delivery_time: Optional[int] = Field(default=None, ge=1)
    priority: Optional[OfferPriority] = None
    shipping_cost: Optional[float] = Field(default=None, ge=0)
    shipping_time: Optional[int] = Field(default=None, ge=1)
    certifications: Optional[list[str]] = None
    warranty_months: Optional[int] = Field(default=None, ge=0)
    quality_guarantee: Optional[bool] = None
    description: Optional[str] = None
    contents: Optional[list[OfferContentIn]] = None


class CounterOfferRequest(BaseModel):
    """Body of ``PUT /offers/management/{id}/counter``."""

    proposed_price: float = Field(ge=1)
    delivery_time: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None
    shipping_cost: Optional[float] = Field(default=None, ge=0)
    shipping_time: Optional[int] = Field(default=None, ge=1)
    warranty_months: Optional[int] = Field(default=None, ge=0)
    validity_hours: Optional[int] = Field(default=None, ge=1)
    certifications: Optional[list[str]] = None


class OfferRejectRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class OfferRatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback: Optional[str] = None


class OfferQuery(BaseModel):
    """Filters shared by the offer listings."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    status: Optional[OfferStatus] = None
    type: Optional[OfferType] = None
    buy_ad_id: Optional[str] = None
    account_id: Optional[str] = None
    user_id: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort_by: OfferSort = OfferSort.NEWEST

    def fingerprint(self) -> str:
        """Stable cache-key fragment for this query."""
        data = self.model_dump(mode="json", exclude_none=True)
        return "&".join(f"{k}={data[k]}" for k in sorted(data))


class StatsQuery(BaseModel):
    timeframe: Timeframe = Timeframe.MONTH
