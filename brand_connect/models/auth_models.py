"""
Authentication Pipeline Models.

Request models for the session layer, the provider error-phrase table,
and the field-level validation result.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

from brand_connect.models.enums import ErrorCode


# ---------------------------------------------------------------------------
# Provider error-phrase mapping
# ---------------------------------------------------------------------------

# Keys are lowercase substrings of the provider's error text.  Anything not
# matched here is passed through with its raw message.
SUPABASE_ERROR_MAP: dict[str, tuple[ErrorCode, str]] = {
    "invalid login credentials": (
        ErrorCode.INVALID_CREDENTIALS,
        "Invalid email or password",
    ),
    "email not confirmed": (
        ErrorCode.EMAIL_NOT_CONFIRMED,
        "Please verify your email address",
    ),
    "user already registered": (
        ErrorCode.EMAIL_ALREADY_EXISTS,
        "An account with this email already exists",
    ),
    "user from sub claim in jwt does not exist": (
        ErrorCode.SESSION_EXPIRED,
        "Your session has expired. Please sign in again.",
    ),
}


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a single client-side field validation check.

    Attributes
    ----------
    is_valid:
        ``True`` when the value passes the validation rule.
    error_message:
        Human-readable description of the failure, or ``None`` on success.
    """

    is_valid: bool
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class RegistrationRequest(BaseModel):
    """Sign-up form payload.  Admins are never self-registered."""

    email: str
    password: str
    name: str
    phone: Optional[str] = None
    location: Optional[str] = None
    user_type: Literal["client", "creative"] = "client"
    profession: Optional[str] = None
