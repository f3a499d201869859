"""
Domain Error Taxonomy.

Every failure the core surfaces to callers is one of these types.  Domain
services raise them; ``SessionAuthority`` and ``ServiceResult.from_error``
convert them into result envelopes at the outer boundary.
"""

from __future__ import annotations

from typing import ClassVar, Optional

from brand_connect.models.enums import ErrorCode


class MarketplaceError(Exception):
    """Base error for the marketplace core."""

    code: ClassVar[ErrorCode] = ErrorCode.UNKNOWN_ERROR
    status_code: ClassVar[int] = 500
    retryable: ClassVar[bool] = False

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class NotAuthenticated(MarketplaceError):
    """No resolved user where one is required."""

    code = ErrorCode.NOT_AUTHENTICATED
    status_code = 401


class SessionInvalid(NotAuthenticated):
    """The session's subject no longer exists or its tokens are revoked."""

    code = ErrorCode.SESSION_EXPIRED
    status_code = 401


class Forbidden(MarketplaceError):
    """Role or ownership rule violated."""

    code = ErrorCode.FORBIDDEN
    status_code = 403


class NotFound(MarketplaceError):
    """Referenced entity absent."""

    code = ErrorCode.NOT_FOUND
    status_code = 404


class InvalidTransition(MarketplaceError):
    """State change not permitted from the current state."""

    code = ErrorCode.INVALID_TRANSITION
    status_code = 409


class StaleState(MarketplaceError):
    """Conditional update found a state other than the expected one."""

    code = ErrorCode.STALE_STATE
    status_code = 409


class DuplicateEntity(MarketplaceError):
    """Uniqueness constraint hit."""

    code = ErrorCode.DUPLICATE_ENTITY
    status_code = 409


class UpstreamUnavailable(MarketplaceError):
    """Store or auth provider unreachable or timed out."""

    code = ErrorCode.NETWORK_ERROR
    status_code = 503
    retryable = True


class ValidationFailed(MarketplaceError):
    """Request rejected by client-side validation."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 422


class AuthRejected(MarketplaceError):
    """The auth provider refused the request.

    ``message`` carries the provider's raw text so the session layer can
    map known phrases to stable categories and pass the rest through.
    """

    code = ErrorCode.UNKNOWN_ERROR
    status_code = 400
