"""
Shared Enumerations for Brand Connect Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents, so rows read
back from the store (plain strings) compare cleanly against members.
"""

from __future__ import annotations
from enum import StrEnum


class UserRole(StrEnum):
    """Roles an ``AppUser`` can resolve to.  Exactly one per principal."""

    CLIENT = "client"
    CREATIVE = "creative"
    ADMIN = "admin"


class ApprovalStatus(StrEnum):
    """Creative profile approval gate.

    ``APPROVED`` and ``REJECTED`` are terminal.  Only approved creatives
    are listed publicly or bookable.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AvailabilityStatus(StrEnum):
    """Creative self-reported availability."""

    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"


class BookingStatus(StrEnum):
    """Booking lifecycle states.  ``COMPLETED`` and ``CANCELLED`` are terminal."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ConversationStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class NotificationType(StrEnum):
    """Categories of in-app notifications."""

    BOOKING_REQUEST = "booking_request"
    BOOKING_UPDATE = "booking_update"
    PROFILE_APPROVAL = "profile_approval"
    NEW_MESSAGE = "new_message"
    NEW_REVIEW = "new_review"


class AuthEvent(StrEnum):
    """Auth-state change events emitted by the auth provider."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class ResolutionSource(StrEnum):
    """Which identity-resolution branch produced an ``AppUser``."""

    ADMIN_METADATA = "admin_metadata"
    CLIENT_PROFILE = "client_profile"
    CREATIVE_PROFILE = "creative_profile"
    METADATA_FALLBACK = "metadata_fallback"


class ChangeType(StrEnum):
    """Row-level change kinds delivered by a store subscription."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ErrorCode(StrEnum):
    """Stable error categories surfaced in ``ServiceResult.error_code``."""

    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    SESSION_EXPIRED = "session_expired"
    NOT_AUTHENTICATED = "not_authenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    STALE_STATE = "stale_state"
    DUPLICATE_ENTITY = "duplicate_entity"
    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"
    UNKNOWN_ERROR = "unknown_error"
