"""Bearer-token authentication and the /api/auth routes.

The dependencies defined here are shared by every role-segmented offer
router. Failures raise the catalogued service errors so the message comes
back in the caller's language.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from b2b_market.domain.models import User
from b2b_market.domain.schemas import TokenResponse, UserCreate, UserLogin, UserResponse
from b2b_market.infra.database import get_db
from b2b_market.services.auth_service import (
    create_access_token,
    create_user,
    decode_token,
    get_active_user,
    get_user_by_email,
    verify_password,
)
from b2b_market.services.errors import BadRequestError, ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _bearer_subject(request: Request) -> Optional[str]:
    """User id from a valid ``Authorization: Bearer`` header, else None."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    payload = decode_token(token)
    return payload.get("sub") if payload else None


async def get_current_user_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User:
    user_id = _bearer_subject(request)
    if user_id is None:
        raise UnauthorizedError("INVALID_TOKEN")
    user = await get_active_user(db, user_id)
    if user is None:
        raise UnauthorizedError()
    return user


async def get_optional_user_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Like ``get_current_user_dep`` but anonymous callers get None."""
    user_id = _bearer_subject(request)
    if user_id is None:
        return None
    return await get_active_user(db, user_id)


def require_role(*roles: str):
    """Dependency factory admitting only users whose system role is in ``roles``."""

    async def checker(user: User = Depends(get_current_user_dep)) -> User:
        if user.role not in roles:
            logger.info("User %s (role=%s) refused; needs one of %s", user.id, user.role, roles)
            raise ForbiddenError()
        return user

    return checker


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id, user.role),
        user=UserResponse.model_validate(user),
    )


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup(data: UserCreate, db: AsyncSession = Depends(get_db)):
    if await get_user_by_email(db, data.email):
        raise BadRequestError("EMAIL_TAKEN")
    user = await create_user(
        db,
        data.email,
        data.password,
        data.user_name,
        language=data.language,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    logger.info("User %s signed up (language=%s)", user.id, user.language)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await get_user_by_email(db, data.email)
    if not user or not verify_password(data.password, user.password_hash):
        raise UnauthorizedError("INVALID_CREDENTIALS")
    if not user.is_active or user.is_blocked:
        raise ForbiddenError("USER_DISABLED")
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user_dep)):
    return UserResponse.model_validate(user)
