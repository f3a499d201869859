"""
Conversation, Message, Notification and Review Models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from brand_connect.models.enums import ConversationStatus, MessageType, NotificationType

# Flat payload values only; nested structures belong in their own models.
PayloadValue = str | int | float | bool | None


class Conversation(BaseModel):
    """Thread between a client and a creative, optionally tied to a booking.

    ``creative_id`` is the creative's principal id so both participants
    can be matched against ``AppUser.id``.
    """

    id: str
    booking_id: Optional[str] = None
    client_id: str
    creative_id: str
    status: ConversationStatus = ConversationStatus.ACTIVE
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.creative_id)


class Message(BaseModel):
    """A single message.  ``read_at`` moves from null to a timestamp once."""

    id: str
    conversation_id: str
    sender_id: str
    content: str
    message_type: MessageType = MessageType.TEXT
    created_at: datetime
    read_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class Notification(BaseModel):
    """In-app notification.  Same one-way read invariant as ``Message``."""

    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, PayloadValue] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class Review(BaseModel):
    """Client review of a completed booking.  At most one per booking."""

    id: str
    booking_id: str
    client_id: str
    creative_id: str  # CreativeProfile.id
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
