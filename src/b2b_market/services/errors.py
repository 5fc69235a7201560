"""Service-layer exceptions.

Services raise these with a message key from the i18n catalog; the app's
exception handler resolves the key for the request language.
"""

from typing import Any, Optional


class MarketError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400
    default_key = "BAD_REQUEST"

    def __init__(self, message_key: Optional[str] = None, params: Optional[dict[str, Any]] = None):
        self.message_key = message_key or self.default_key
        self.params = params or {}
        super().__init__(self.message_key)


class NotFoundError(MarketError):
    status_code = 404
    default_key = "NOT_FOUND"


class UnauthorizedError(MarketError):
    status_code = 401
    default_key = "UNAUTHORIZED"


class ForbiddenError(MarketError):
    status_code = 403
    default_key = "FORBIDDEN"


class ConflictError(MarketError):
    status_code = 409
    default_key = "CONFLICT"


class BadRequestError(MarketError):
    status_code = 400
    default_key = "BAD_REQUEST"


class InvalidOfferError(BadRequestError):
    """Raised when the validation engine reports one or more violations."""

    default_key = "INVALID_OFFER"

    def __init__(self, violations: list):
        # violations: list[ValidationIssue]
        self.violations = list(violations)
        super().__init__()


class InternalError(MarketError):
    status_code = 500
    default_key = "INTERNAL_SERVER_ERROR"
