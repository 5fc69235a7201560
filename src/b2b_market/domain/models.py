"""SQLAlchemy ORM models for the marketplace.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps (SQLite returns them naive; treat as UTC)

Translatable text lives in ``*Content`` rows keyed by (parent, language).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from b2b_market.domain.enums import (
    AccountRole,
    BuyAdStatus,
    BuyAdType,
    Language,
    OfferPriority,
    OfferStatus,
    OfferType,
    SystemRole,
)
from b2b_market.infra.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users / Accounts
# ---------------------------------------------------------------------------


class User(Base):
    """Platform user. Sellers and buyers are both plain users."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    user_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default=SystemRole.USER.value)
    language = Column(String(5), nullable=True)
    rating = Column(Float, default=0)
    response_rate = Column(Float, nullable=True)
    is_verified = Column(Boolean, default=False)
    is_seller = Column(Boolean, default=True)
    is_blocked = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    contents = relationship("UserContent", back_populates="user", lazy="selectin")


class UserContent(Base):
    """Localised display name of a user."""

    __tablename__ = "user_contents"
    __table_args__ = (UniqueConstraint("user_id", "language", name="uq_user_content_language"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    language = Column(String(5), nullable=False, default=Language.FA.value)
    first_name = Column(String(100))
    last_name = Column(String(100))

    user = relationship("User", back_populates="contents")


class Account(Base):
    """Business account a seller acts on behalf of."""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    activity_type = Column(String(50), nullable=True)
    profile_photo = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    contents = relationship("AccountContent", back_populates="account", lazy="selectin")


class AccountContent(Base):
    """Localised name and description of an account."""

    __tablename__ = "account_contents"
    __table_args__ = (UniqueConstraint("account_id", "language", name="uq_account_content_language"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    language = Column(String(5), nullable=False, default=Language.FA.value)
    name = Column(String(255))
    company_name = Column(String(255))
    description = Column(Text)

    account = relationship("Account", back_populates="contents")


class AccountUser(Base):
    """Membership of a user in an account."""

    __tablename__ = "account_users"
    __table_args__ = (UniqueConstraint("user_id", "account_id", name="uq_account_user"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=AccountRole.MEMBER.value)
    created_at = Column(DateTime(timezone=True), default=_now)


# ---------------------------------------------------------------------------
# Buy requests
# ---------------------------------------------------------------------------


class BuyAd(Base):
    """A posted intent to purchase. Created outside the offer module."""

    __tablename__ = "buy_ads"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False, default=BuyAdType.SIMPLE.value)
    status = Column(String(20), nullable=False, default=BuyAdStatus.APPROVED.value, index=True)
    unit = Column(String(50), nullable=False)
    amount = Column(Float, nullable=True)
    # Shape depends on type; parsed by domain.conditions
    conditions = Column(JSON, nullable=True)
    allow_public_offers = Column(Boolean, default=False)
    total_offers = Column(Integer, default=0)
    last_offer_at = Column(DateTime(timezone=True), nullable=True)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    user = relationship("User", lazy="selectin")
    contents = relationship("BuyAdContent", back_populates="buy_ad", lazy="selectin")


class BuyAdContent(Base):
    """Localised title and description of a buy request."""

    __tablename__ = "buy_ad_contents"
    __table_args__ = (UniqueConstraint("buy_ad_id", "language", name="uq_buy_ad_content_language"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    buy_ad_id = Column(String(36), ForeignKey("buy_ads.id", ondelete="CASCADE"), nullable=False, index=True)
    language = Column(String(5), nullable=False, default=Language.FA.value)
    name = Column(String(255))
    description = Column(Text)

    buy_ad = relationship("BuyAd", back_populates="contents")


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------


class Offer(Base):
    """A seller's proposal against a buy request.

    ``parent_offer_id`` links a counter-offer to the offer it answers, so the
    offers of one negotiation form a tree rooted at the first proposal.
    """

    __tablename__ = "offers"

    id = Column(String(36), primary_key=True, default=_uuid)
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    buy_ad_id = Column(String(36), ForeignKey("buy_ads.id"), nullable=False, index=True)
    parent_offer_id = Column(String(36), ForeignKey("offers.id"), nullable=True, index=True)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=True)

    status = Column(String(20), nullable=False, default=OfferStatus.PENDING.value, index=True)
    type = Column(String(20), nullable=False, default=OfferType.DIRECT_OFFER.value)
    priority = Column(String(10), nullable=False, default=OfferPriority.NORMAL.value)

    proposed_price = Column(Float, nullable=False)
    proposed_amount = Column(Float, nullable=False)
    unit = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)

    delivery_time = Column(Integer, nullable=True)  # days
    shipping_cost = Column(Float, nullable=True)
    shipping_time = Column(Integer, nullable=True)  # days
    warranty_months = Column(Integer, nullable=True)
    quality_guarantee = Column(Boolean, nullable=True)
    certifications = Column(JSON, default=list)

    validity_hours = Column(Integer, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    is_seen_by_buyer = Column(Boolean, default=False)
    seen_by_buyer_at = Column(DateTime(timezone=True), nullable=True)
    buyer_rating = Column(Integer, nullable=True)
    seller_rating = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    seller = relationship("User", foreign_keys=[seller_id], lazy="selectin")
    account = relationship("Account", lazy="selectin")
    buy_ad = relationship("BuyAd", lazy="selectin")
    contents = relationship(
        "OfferContent", back_populates="offer", lazy="selectin", cascade="all, delete-orphan"
    )


class OfferContent(Base):
    """Localised free text attached to an offer."""

    __tablename__ = "offer_contents"
    __table_args__ = (UniqueConstraint("offer_id", "language", name="uq_offer_content_language"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    offer_id = Column(String(36), ForeignKey("offers.id", ondelete="CASCADE"), nullable=False, index=True)
    language = Column(String(5), nullable=False, default=Language.FA.value)
    description = Column(Text)
    packaging_details = Column(Text)
    certifications_note = Column(Text)
    shipping_note = Column(Text)
    buyer_feedback = Column(Text)
    seller_feedback = Column(Text)
    auto_translated = Column(Boolean, default=True)

    offer = relationship("Offer", back_populates="contents")


# ---------------------------------------------------------------------------
# Conversations (created when an offer is accepted)
# ---------------------------------------------------------------------------


class Conversation(Base):
    """Two-party thread between the buyer and the winning seller."""

    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=_uuid)
    user1_id = Column(String(36), ForeignKey("users.id"), nullable=False)  # buyer
    user2_id = Column(String(36), ForeignKey("users.id"), nullable=False)  # seller
    buy_ad_id = Column(String(36), ForeignKey("buy_ads.id"), nullable=True)
    last_message_text = Column(Text)
    last_message_time = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=_now)


class Message(Base):
    """A message inside a conversation."""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)
