"""Turn Offer rows into response dicts.

Three shapes: the full view for the parties of a deal, the list row with
buy-request context, and the redacted public view (no contact data, text
truncated).
"""

from datetime import datetime
from typing import Iterable, Optional

from b2b_market.domain.enums import Language
from b2b_market.i18n.translator import translate
from b2b_market.services.offer_content import (
    account_display,
    buy_ad_description,
    buy_ad_name,
    merge_offer_content,
    truncate,
    user_full_name,
)
from b2b_market.services.offer_state_machine import (
    can_edit,
    can_withdraw,
    expiry_deadline,
    hours_remaining,
)


def to_iso(val) -> Optional[str]:
    """Format a datetime to ISO string, or return None."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.isoformat()
    return str(val)


def _enum(val) -> Optional[str]:
    return val.value if hasattr(val, "value") else val


def seller_summary(user, language: Language | str) -> Optional[dict]:
    if user is None:
        return None
    return {
        "id": user.id,
        "user_name": user.user_name,
        "is_verified": bool(user.is_verified),
        "full_name": user_full_name(user, language),
    }


def serialize_offer(offer, language: Language | str) -> dict:
    """Full offer view for the seller or the buy-request owner."""
    content = merge_offer_content(offer, language)
    buy_ad = offer.buy_ad
    return {
        "id": offer.id,
        "seller_id": offer.seller_id,
        "account_id": offer.account_id,
        "buy_ad_id": offer.buy_ad_id,
        "parent_offer_id": offer.parent_offer_id,
        "conversation_id": offer.conversation_id,
        "status": _enum(offer.status),
        "type": _enum(offer.type),
        "priority": _enum(offer.priority),
        "proposed_price": offer.proposed_price,
        "proposed_amount": offer.proposed_amount,
        "unit": offer.unit,
        "delivery_time": offer.delivery_time,
        "shipping_cost": offer.shipping_cost,
        "shipping_time": offer.shipping_time,
        "warranty_months": offer.warranty_months,
        "quality_guarantee": offer.quality_guarantee,
        "certifications": list(offer.certifications or []),
        "validity_hours": offer.validity_hours,
        "expires_at": to_iso(offer.expires_at),
        "deadline": to_iso(expiry_deadline(offer)),
        "is_seen_by_buyer": bool(offer.is_seen_by_buyer),
        "seen_by_buyer_at": to_iso(offer.seen_by_buyer_at),
        "buyer_rating": offer.buyer_rating,
        "seller_rating": offer.seller_rating,
        "content": content,
        "description": content["description"],
        "seller": seller_summary(offer.seller, language),
        "account": account_display(offer.account, language),
        "buy_ad": {
            "id": buy_ad.id,
            "user_id": buy_ad.user_id,
            "type": _enum(buy_ad.type),
            "status": _enum(buy_ad.status),
            "name": buy_ad_name(buy_ad, language),
        } if buy_ad else None,
        "created_at": to_iso(offer.created_at),
        "updated_at": to_iso(offer.updated_at),
    }


def serialize_offer_list_item(offer, language: Language | str) -> dict:
    data = serialize_offer(offer, language)
    buy_ad = offer.buy_ad
    data.update(
        buy_ad_status=_enum(buy_ad.status) if buy_ad else None,
        buy_ad_expires_at=to_iso(buy_ad.expires_at) if buy_ad else None,
        buy_ad_name=buy_ad_name(buy_ad, language),
        can_edit=can_edit(offer),
        can_withdraw=can_withdraw(offer),
        time_remaining=hours_remaining(offer),
    )
    return data


def serialize_chain_link(offer, language: Language | str) -> dict:
    """Compact view of a parent or child offer inside a detail response."""
    return {
        "id": offer.id,
        "status": _enum(offer.status),
        "type": _enum(offer.type),
        "proposed_price": offer.proposed_price,
        "description": merge_offer_content(offer, language)["description"],
        "seller": seller_summary(offer.seller, language),
        "created_at": to_iso(offer.created_at),
    }


def serialize_offer_detail(
    offer,
    language: Language | str,
    parent=None,
    children: Iterable = (),
    conversation=None,
) -> dict:
    data = serialize_offer(offer, language)
    data["parent_offer"] = serialize_chain_link(parent, language) if parent else None
    data["child_offers"] = [serialize_chain_link(child, language) for child in children]
    data["conversation"] = {
        "id": conversation.id,
        "user1_id": conversation.user1_id,
        "user2_id": conversation.user2_id,
        "last_message_text": conversation.last_message_text,
        "last_message_time": to_iso(conversation.last_message_time),
    } if conversation else None
    if data["buy_ad"] is not None and offer.buy_ad is not None:
        data["buy_ad"]["description"] = buy_ad_description(offer.buy_ad, language)
    if offer.seller is not None:
        data["seller"]["rating"] = offer.seller.rating
        data["seller"]["response_rate"] = offer.seller.response_rate
    return data


def serialize_public_offer(
    offer,
    language: Language | str,
    description_length: int = 150,
    buy_ad_length: int = 100,
    account_length: Optional[int] = None,
) -> dict:
    """Marketing view: price and terms, seller display name, no contact info.

    The account description is only included when ``account_length`` is given.
    """
    content = merge_offer_content(offer, language)
    account = account_display(offer.account, language)
    data = {
        "id": offer.id,
        "type": _enum(offer.type),
        "proposed_price": offer.proposed_price,
        "proposed_amount": offer.proposed_amount,
        "unit": offer.unit,
        "delivery_time": offer.delivery_time,
        "description": truncate(content["description"], description_length),
        "created_at": to_iso(offer.created_at),
        "seller": seller_summary(offer.seller, language),
        "account": {
            "id": account["id"],
            "name": account["name"],
            "activity_type": account["activity_type"],
            "profile_photo": account["profile_photo"],
        },
        "buy_ad": {
            "id": offer.buy_ad_id,
            "name": buy_ad_name(offer.buy_ad, language),
            "description": truncate(buy_ad_description(offer.buy_ad, language), buy_ad_length),
        },
        "call_to_action": {"message": translate("PUBLIC_CTA_MESSAGE", language)},
    }
    if account_length is not None:
        data["account"]["description"] = truncate(account["description"], account_length)
    return data
