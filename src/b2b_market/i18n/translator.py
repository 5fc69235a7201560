"""Message lookup with language fallback.

Lookup order: requested language -> default language (fa) -> the key
itself. A missing translation never raises.
"""

from typing import Any, Mapping, Optional

from b2b_market.domain.enums import Language
from b2b_market.i18n.messages import MESSAGES_AR, MESSAGES_EN, MESSAGES_FA

DEFAULT_LANGUAGE = Language.FA

CATALOGS: dict[Language, dict[str, str]] = {
    Language.FA: MESSAGES_FA,
    Language.EN: MESSAGES_EN,
    Language.AR: MESSAGES_AR,
    # No dedicated catalog yet; English is the closest fit
    Language.TR: MESSAGES_EN,
    Language.DE: MESSAGES_EN,
    Language.FR: MESSAGES_EN,
    Language.ES: MESSAGES_EN,
    Language.ZH: MESSAGES_EN,
    Language.RU: MESSAGES_EN,
}


def _coerce(language) -> Optional[Language]:
    if isinstance(language, Language):
        return language
    try:
        return Language(language)
    except ValueError:
        return None


def translate(
    key: str,
    language: Language | str | None = DEFAULT_LANGUAGE,
    params: Optional[Mapping[str, Any]] = None,
) -> str:
    """Return the message for ``key`` in ``language`` with ``{name}`` params filled."""
    lang = _coerce(language) or DEFAULT_LANGUAGE
    template = CATALOGS.get(lang, {}).get(key)
    if template is None:
        template = CATALOGS[DEFAULT_LANGUAGE].get(key, key)

    result = template
    for name, value in (params or {}).items():
        result = result.replace("{" + name + "}", str(value))
    return result


def format_price(value: float | int | None) -> str:
    """Thousands-separated price for generated messages."""
    if value is None:
        return "0"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"
