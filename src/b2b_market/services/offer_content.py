"""Merge per-language content rows into flat response fields."""

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from b2b_market.domain.enums import Language
from b2b_market.domain.models import OfferContent

OFFER_CONTENT_FIELDS = (
    "description",
    "packaging_details",
    "certifications_note",
    "shipping_note",
    "buyer_feedback",
    "seller_feedback",
)


def pick_content(rows: Iterable, language: Language | str, default: Language | str = Language.FA):
    """Row in ``language``, else the default-language row, else None."""
    rows = list(rows or [])
    lang = language.value if isinstance(language, Language) else language
    fallback = default.value if isinstance(default, Language) else default
    for row in rows:
        if row.language == lang:
            return row
    for row in rows:
        if row.language == fallback:
            return row
    return None


def merge_offer_content(offer, language: Language | str, default: Language | str = Language.FA) -> dict:
    """Flatten the offer's content for ``language`` into a dict of text fields."""
    row = pick_content(offer.contents, language, default)
    merged = {name: getattr(row, name, None) if row else None for name in OFFER_CONTENT_FIELDS}
    if not merged["description"]:
        merged["description"] = offer.description
    merged["language"] = row.language if row else None
    return merged


def buy_ad_name(buy_ad, language: Language | str) -> Optional[str]:
    row = pick_content(buy_ad.contents, language) if buy_ad else None
    return row.name if row else None


def buy_ad_description(buy_ad, language: Language | str) -> Optional[str]:
    row = pick_content(buy_ad.contents, language) if buy_ad else None
    return row.description if row else None


def account_display(account, language: Language | str) -> dict:
    row = pick_content(account.contents, language) if account else None
    return {
        "id": account.id if account else None,
        "name": (row.name or row.company_name) if row else (account.name if account else None),
        "activity_type": account.activity_type if account else None,
        "profile_photo": account.profile_photo if account else None,
        "description": row.description if row else None,
    }


def user_full_name(user, language: Language | str) -> Optional[str]:
    row = pick_content(user.contents, language) if user else None
    if not row:
        return None
    full = f"{row.first_name or ''} {row.last_name or ''}".strip()
    return full or None


def truncate(text: Optional[str], length: int) -> Optional[str]:
    """Shorten public text to ``length`` characters with an ellipsis."""
    if not text:
        return None
    if len(text) <= length:
        return text
    return text[:length] + "..."


async def upsert_offer_contents(db: AsyncSession, offer_id: str, contents: Iterable) -> None:
    """Insert or update content rows keyed by (offer_id, language)."""
    for content in contents:
        language = content.language.value if isinstance(content.language, Language) else content.language
        result = await db.execute(
            select(OfferContent).where(
                OfferContent.offer_id == offer_id,
                OfferContent.language == language,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = OfferContent(offer_id=offer_id, language=language, auto_translated=True)
            db.add(row)
        for name in ("description", "packaging_details", "certifications_note", "shipping_note"):
            value = getattr(content, name, None)
            if value is not None:
                setattr(row, name, value)
        if getattr(content, "auto_translated", None) is not None:
            row.auto_translated = content.auto_translated
    await db.flush()
