"""Exception handlers that turn service errors into localised JSON responses.

Body shape: ``{"status_code", "message", "errors"?, "path", "timestamp"}``.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from b2b_market.app.deps import language_from_request
from b2b_market.domain.enums import Language
from b2b_market.i18n.translator import translate
from b2b_market.services.errors import InternalError, InvalidOfferError, MarketError
from b2b_market.services.offer_state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)


def _request_language(request: Request) -> Language:
    # Set by the get_language dependency when the route resolved it
    language = getattr(request.state, "language", None)
    return language or language_from_request(request)


def error_body(
    request: Request, status_code: int, message: str, errors: Optional[list[str]] = None
) -> dict:
    body = {
        "status_code": status_code,
        "message": message,
        "path": request.url.path,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if errors:
        body["errors"] = errors
    return body


async def market_error_handler(request: Request, exc: MarketError) -> JSONResponse:
    language = _request_language(request)
    errors = None
    if isinstance(exc, InvalidOfferError):
        errors = [translate(issue.key, language, issue.params) for issue in exc.violations]
    message = translate(exc.message_key, language, exc.params)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.status_code, message, errors),
    )


async def transition_error_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    logger.info("Invalid offer transition on %s: %s", request.url.path, exc)
    message = translate("OFFER_NOT_PENDING", _request_language(request))
    return JSONResponse(status_code=409, content=error_body(request, 409, message))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return await market_error_handler(request, InternalError())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return await market_error_handler(request, InternalError())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketError, market_error_handler)
    app.add_exception_handler(InvalidTransitionError, transition_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
