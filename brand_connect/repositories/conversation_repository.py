"""
Conversation and Message Repositories.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from brand_connect.models.enums import ChangeType, ConversationStatus, MessageType
from brand_connect.models.messaging import Conversation, Message
from brand_connect.repositories.base_repository import BaseRepository, utc_now
from brand_connect.store.base import ChangeCallback, OrderBy, Subscription


class ConversationRepository(BaseRepository[Conversation]):
    TABLE = "conversations"
    MODEL = Conversation

    async def find(
        self,
        client_id: str,
        creative_id: str,
        booking_id: Optional[str],
    ) -> Optional[Conversation]:
        """Exact triple lookup; a ``None`` booking matches IS NULL."""
        return await self._find_one({
            "client_id": client_id,
            "creative_id": creative_id,
            "booking_id": booking_id,
        })

    async def find_for_pair(self, client_id: str, creative_id: str) -> Optional[Conversation]:
        """Any conversation between the two parties, regardless of booking."""
        return await self._find_one({"client_id": client_id, "creative_id": creative_id})

    async def create(
        self,
        client_id: str,
        creative_id: str,
        booking_id: Optional[str],
    ) -> Conversation:
        now = utc_now()
        return await self._insert({
            "client_id": client_id,
            "creative_id": creative_id,
            "booking_id": booking_id,
            "status": ConversationStatus.ACTIVE,
            "last_message_at": now,
            "created_at": now,
        })

    async def set_last_message_at(
        self,
        conversation_id: str,
        at: datetime,
        expected: Optional[datetime],
    ) -> Conversation:
        """Write *at* only if ``last_message_at`` still equals *expected*; ``StaleState`` otherwise."""
        return await self._update(
            conversation_id,
            {"last_message_at": at},
            expected={"last_message_at": expected},
        )

    async def list_for_participant(self, user_id: str) -> list[Conversation]:
        """All conversations *user_id* takes part in, most recent activity first."""
        order = OrderBy("last_message_at", descending=True)
        as_client = await self._find({"client_id": user_id}, order=order)
        as_creative = await self._find({"creative_id": user_id}, order=order)
        merged = {conv.id: conv for conv in as_client + as_creative}
        return sorted(
            merged.values(),
            key=lambda conv: conv.last_message_at or conv.created_at or utc_now(),
            reverse=True,
        )


class MessageRepository(BaseRepository[Message]):
    TABLE = "messages"
    MODEL = Message

    async def create(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        message_type: MessageType,
        created_at: datetime,
    ) -> Message:
        return await self._insert({
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "content": content,
            "message_type": message_type,
            "created_at": created_at,
        })

    async def list_for_conversation(self, conversation_id: str) -> list[Message]:
        return await self._find(
            {"conversation_id": conversation_id},
            order=OrderBy("created_at"),
        )

    async def list_unread(self, conversation_id: str, reader_id: str) -> list[Message]:
        """Unread messages in the conversation not sent by *reader_id*."""
        unread = await self._find({"conversation_id": conversation_id, "read_at": None})
        return [message for message in unread if message.sender_id != reader_id]

    async def mark_read(self, message_id: str, at: datetime) -> Message:
        """One-way ``read_at`` stamp; ``StaleState`` if already read."""
        return await self._update(message_id, {"read_at": at}, expected={"read_at": None})

    async def subscribe_for_conversation(self, conversation_id: str, on_change: ChangeCallback) -> Subscription:
        return await self._store.subscribe(
            self.TABLE,
            {"conversation_id": conversation_id},
            on_change,
            change_type=ChangeType.INSERT,
        )
