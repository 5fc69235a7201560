"""Domain enumerations for the marketplace.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class Language(str, Enum):
    """Languages a content row or a request can be expressed in."""

    FA = "fa"
    EN = "en"
    AR = "ar"
    TR = "tr"
    DE = "de"
    FR = "fr"
    ES = "es"
    ZH = "zh"
    RU = "ru"


class SystemRole(str, Enum):
    """Platform-wide role of a user."""

    USER = "user"
    ADMIN = "admin"


class AccountRole(str, Enum):
    """Role of a user inside a business account."""

    OWNER = "owner"
    MANAGER = "manager"
    MEMBER = "member"


class BuyAdType(str, Enum):
    """Negotiation mode of a buy request."""

    SIMPLE = "SIMPLE"
    AUCTION = "AUCTION"
    TENDER = "TENDER"
    NEGOTIATION = "NEGOTIATION"


class BuyAdStatus(str, Enum):
    """Lifecycle of a buy request."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    FULFILLED = "FULFILLED"
    EXPIRED = "EXPIRED"


class OfferStatus(str, Enum):
    """Lifecycle of an offer. Only PENDING and COUNTERED are non-terminal."""

    PENDING = "PENDING"
    COUNTERED = "COUNTERED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class OfferType(str, Enum):
    """Kind of proposal an offer represents."""

    DIRECT_OFFER = "DIRECT_OFFER"
    AUCTION_BID = "AUCTION_BID"
    TENDER_BID = "TENDER_BID"
    NEGOTIATION = "NEGOTIATION"
    COUNTER_OFFER = "COUNTER_OFFER"


class OfferPriority(str, Enum):
    """Seller-declared urgency of an offer."""

    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class OfferActor(str, Enum):
    """Who is driving an offer transition."""

    SELLER = "seller"
    BUYER = "buyer"
    SYSTEM = "system"
    ADMIN = "admin"


class OfferSort(str, Enum):
    """Sort orders accepted by offer listings."""

    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    DELIVERY_FAST = "delivery_fast"
    PRIORITY = "priority"
    VALIDITY = "validity"


class Timeframe(str, Enum):
    """Rolling windows for statistics."""

    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"
    YEAR = "1y"
