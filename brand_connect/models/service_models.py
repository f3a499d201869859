"""
Service Layer Result Envelope.

``ServiceResult`` is what the outer boundary (``SessionAuthority`` and
any caller that prefers results over exceptions) hands back.  Domain
services raise typed errors; ``ServiceResult.from_error`` converts them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, Optional, TypeVar

from pydantic import BaseModel

from brand_connect.models.enums import ErrorCode

if TYPE_CHECKING:
    from brand_connect.errors import MarketplaceError

T = TypeVar("T")

__all__ = ["ServiceResult"]


class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    Generic over ``T`` so callers can annotate return types precisely
    (e.g. ``ServiceResult[AppUser]``).  ``error_code`` is a stable
    category for programmatic handling; ``error`` is human-readable.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    status_code: int = 200

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ServiceResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: ErrorCode,
        status_code: int = 400,
    ) -> "ServiceResult[T]":
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            status_code=status_code,
        )

    @classmethod
    def from_error(cls, exc: "MarketplaceError") -> "ServiceResult[T]":
        """Convert a domain error into a failed result."""
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.code,
            status_code=exc.status_code,
        )
