"""Shared test infrastructure for the B2B marketplace test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- cache: a fresh InMemoryCache per test
- offer_service / stats_service: services bound to the session and cache
- make_user, make_account, make_buy_ad, make_offer: row factories
- make_client: httpx client over a minimal app with only the given routers
"""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from b2b_market.infra.database import Base, get_db

import b2b_market.domain.models  # noqa: F401

from b2b_market.app.config import Settings
from b2b_market.app.errors import register_exception_handlers
from b2b_market.app.routes.auth import get_current_user_dep
from b2b_market.domain.enums import (
    AccountRole,
    BuyAdStatus,
    BuyAdType,
    OfferStatus,
    OfferType,
    SystemRole,
)
from b2b_market.domain.models import (
    Account,
    AccountContent,
    AccountUser,
    BuyAd,
    BuyAdContent,
    Offer,
    OfferContent,
    User,
    UserContent,
)
from b2b_market.infra.cache import InMemoryCache, get_cache
from b2b_market.services.offer_service import OfferService
from b2b_market.services.offer_stats import OfferStatsService


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Cache and services
# ---------------------------------------------------------------------------

@pytest.fixture
def cache():
    return InMemoryCache(default_ttl=300, max_items=1000)


@pytest.fixture
def settings():
    return Settings(offer_default_validity_hours=24, offer_default_delivery_time=1)


@pytest.fixture
def offer_service(db_session, cache, settings):
    return OfferService(db_session, cache, settings)


@pytest.fixture
def stats_service(db_session, cache, settings):
    return OfferStatsService(db_session, cache, settings)


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    """Factory for User rows, optionally with a display-name content row.

    Usage:
        seller = await make_user(rating=4.5, first_name="Sara")
    """
    async def _factory(
        user_name: str = "trader",
        email: str | None = None,
        role: str = SystemRole.USER.value,
        rating: float = 0,
        language: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        content_language: str = "fa",
        is_verified: bool = False,
    ) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            password_hash="not-a-real-hash",
            user_name=user_name,
            role=role,
            rating=rating,
            language=language,
            is_verified=is_verified,
        )
        user.contents = [
            UserContent(language=content_language, first_name=first_name, last_name=last_name)
        ] if (first_name or last_name) else []
        db_session.add(user)
        await db_session.flush()
        return user

    return _factory


@pytest.fixture
def make_account(db_session):
    """Factory for an Account with the given user as a member.

    Usage:
        account = await make_account(seller, name="Pars Steel")
    """
    async def _factory(
        member: User,
        name: str = "Pars Steel",
        role: str = AccountRole.OWNER.value,
        is_active: bool = True,
        description: str | None = None,
    ) -> Account:
        account = Account(
            id=str(uuid.uuid4()),
            name=name,
            activity_type="PRODUCER",
            is_active=is_active,
        )
        account.contents = [AccountContent(language="fa", name=name, description=description)]
        db_session.add(account)
        db_session.add(AccountUser(user_id=member.id, account_id=account.id, role=role))
        await db_session.flush()
        return account

    return _factory


@pytest.fixture
def make_buy_ad(db_session):
    """Factory for BuyAd rows with a content row per given name.

    Usage:
        ad = await make_buy_ad(buyer, type=BuyAdType.AUCTION, conditions={"base_min_price": 1000})
    """
    async def _factory(
        owner: User,
        type: BuyAdType = BuyAdType.SIMPLE,
        unit: str = "ton",
        conditions: dict | None = None,
        status: BuyAdStatus = BuyAdStatus.APPROVED,
        allow_public_offers: bool = False,
        names: dict[str, str] | None = None,
        description: str | None = None,
        expires_at: datetime | None = None,
    ) -> BuyAd:
        buy_ad = BuyAd(
            id=str(uuid.uuid4()),
            user_id=owner.id,
            type=type.value,
            status=status.value,
            unit=unit,
            amount=100,
            conditions=conditions,
            allow_public_offers=allow_public_offers,
            total_offers=0,
            expires_at=expires_at,
        )
        buy_ad.user = owner
        buy_ad.contents = [
            BuyAdContent(language=language, name=name, description=description)
            for language, name in (names or {"fa": "میلگرد"}).items()
        ]
        db_session.add(buy_ad)
        await db_session.flush()
        return buy_ad

    return _factory


@pytest.fixture
def make_offer(db_session):
    """Factory for Offer rows inserted directly, bypassing validation.

    ``expires_at`` defaults to created_at + validity_hours when validity is set.

    Usage:
        offer = await make_offer(seller, account, ad, proposed_price=1500)
    """
    async def _factory(
        seller: User,
        account: Account,
        buy_ad: BuyAd,
        status: OfferStatus = OfferStatus.PENDING,
        type: OfferType = OfferType.DIRECT_OFFER,
        proposed_price: float = 1000,
        proposed_amount: float = 10,
        validity_hours: int | None = 24,
        created_at: datetime | None = None,
        expires_at: datetime | None = None,
        parent: Offer | None = None,
        description: str | None = None,
        contents: dict[str, str] | None = None,
        buyer_rating: int | None = None,
        seller_rating: int | None = None,
        delivery_time: int | None = 5,
        priority: str = "NORMAL",
    ) -> Offer:
        created_at = created_at or datetime.now(timezone.utc)
        if expires_at is None and validity_hours:
            expires_at = created_at + timedelta(hours=validity_hours)
        offer = Offer(
            id=str(uuid.uuid4()),
            seller_id=seller.id,
            account_id=account.id,
            buy_ad_id=buy_ad.id,
            parent_offer_id=parent.id if parent else None,
            status=status.value,
            type=type.value,
            priority=priority,
            proposed_price=proposed_price,
            proposed_amount=proposed_amount,
            unit=buy_ad.unit,
            description=description,
            delivery_time=delivery_time,
            certifications=[],
            validity_hours=validity_hours,
            expires_at=expires_at,
            buyer_rating=buyer_rating,
            seller_rating=seller_rating,
            is_seen_by_buyer=False,
            created_at=created_at,
            updated_at=created_at,
        )
        offer.seller = seller
        offer.account = account
        offer.buy_ad = buy_ad
        offer.contents = [
            OfferContent(language=language, description=text)
            for language, text in (contents or {}).items()
        ]
        db_session.add(offer)
        await db_session.flush()
        return offer

    return _factory


@pytest.fixture
async def marketplace(make_user, make_account, make_buy_ad):
    """A buyer with a SIMPLE buy request and a seller with an account."""
    buyer = await make_user(user_name="buyer")
    seller = await make_user(user_name="seller", first_name="Sara", last_name="Karimi")
    account = await make_account(seller)
    buy_ad = await make_buy_ad(buyer)

    return SimpleNamespace(buyer=buyer, seller=seller, account=account, buy_ad=buy_ad)


# ---------------------------------------------------------------------------
# HTTP client factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_client(db_session, cache):
    """Factory for an AsyncClient over a minimal app.

    Only the given routers are mounted; ``get_db`` and the cache point at the
    test fixtures, and ``user`` (when given) is the authenticated caller.

    Usage:
        async with make_client(offers_my.router, user=seller) as client:
            resp = await client.get("/offers/my")
    """
    async def _override_get_db():
        yield db_session

    def _factory(*routers, user: User | None = None) -> AsyncClient:
        app = FastAPI()
        register_exception_handlers(app)
        for router in routers:
            app.include_router(router)
        app.dependency_overrides[get_db] = _override_get_db
        app.dependency_overrides[get_cache] = lambda: cache
        if user is not None:
            app.dependency_overrides[get_current_user_dep] = lambda: user
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")

    return _factory
