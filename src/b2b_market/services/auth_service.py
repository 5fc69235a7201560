"""Authentication service: password hashing and JWT token management."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from b2b_market.app.config import get_settings
from b2b_market.domain.enums import Language, SystemRole
from b2b_market.domain.models import User, UserContent

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str, role: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_active_user(db: AsyncSession, user_id: str) -> User | None:
    """User by id, or None when missing, deactivated or blocked."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active or user.is_blocked:
        return None
    return user


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    user_name: str,
    language: Optional[Language] = None,
    first_name: str | None = None,
    last_name: str | None = None,
    role: str = SystemRole.USER.value,
) -> User:
    user = User(
        email=email,
        password_hash=hash_password(password),
        user_name=user_name,
        role=role,
        language=language.value if language else None,
    )
    db.add(user)
    await db.flush()

    # Display name is stored as a content row in the user's own language
    if first_name or last_name:
        db.add(
            UserContent(
                user_id=user.id,
                language=user.language or settings.default_language,
                first_name=first_name,
                last_name=last_name,
            )
        )

    await db.commit()
    await db.refresh(user)
    return user
