"""FastAPI application entry point for the B2B marketplace API."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from b2b_market.app.config import get_settings
from b2b_market.app.errors import register_exception_handlers
from b2b_market.infra.cache import get_cache
from b2b_market.infra.database import async_session, init_db
from b2b_market.services.offer_service import OfferService

logger = logging.getLogger(__name__)


async def offer_expiry_loop(interval_minutes: int):
    """Expire stale PENDING offers every ``interval_minutes``."""
    while True:
        try:
            async with async_session() as db:
                result = await OfferService(db, get_cache()).check_and_expire_offers()
                if result["expired_count"]:
                    logger.info("Offer expiry: expired %d offers", result["expired_count"])
        except Exception as e:
            logger.error("Offer expiry loop error: %s", e)
        await asyncio.sleep(interval_minutes * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database and start the expiry loop."""
    await init_db()

    settings = get_settings()
    task = None
    if settings.expiry_sweep_interval_minutes > 0:
        task = asyncio.create_task(offer_expiry_loop(settings.expiry_sweep_interval_minutes))
    yield
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="B2B Marketplace API",
    lifespan=lifespan,
    debug=settings.debug,
)

_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from b2b_market.app.routes.auth import router as auth_router  # noqa: E402
from b2b_market.app.routes.offers_admin import router as offers_admin_router  # noqa: E402
from b2b_market.app.routes.offers_management import router as offers_management_router  # noqa: E402
from b2b_market.app.routes.offers_my import router as offers_my_router  # noqa: E402
from b2b_market.app.routes.offers_public import router as offers_public_router  # noqa: E402

app.include_router(auth_router)
app.include_router(offers_my_router)
app.include_router(offers_management_router)
app.include_router(offers_admin_router)
app.include_router(offers_public_router)


@app.get("/health", tags=["health"])
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "b2b-market"}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "b2b_market.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
