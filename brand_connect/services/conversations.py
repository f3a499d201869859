"""
Conversation Coordinator.

Owns conversation creation and message flow.  Store faults are recovered
here: every public operation logs and returns a safe default (``None``,
an empty list, or ``0``) instead of raising, unless the caller asks for
``strict`` behaviour so it can apply its own retry policy.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from brand_connect.errors import (
    DuplicateEntity,
    Forbidden,
    MarketplaceError,
    NotFound,
    StaleState,
    ValidationFailed,
)
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import MessageType
from brand_connect.models.messaging import Conversation, Message
from brand_connect.repositories.base_repository import utc_now
from brand_connect.repositories.conversation_repository import (
    ConversationRepository,
    MessageRepository,
)
from brand_connect.services.base_service import BaseService
from brand_connect.store.base import ChangeEvent, Subscription
from brand_connect.utils.locks import KeyedLock

# Conditional-write attempts when advancing last_message_at.
_BUMP_ATTEMPTS = 5


class ConversationCoordinator(BaseService):
    """Conversation bootstrap, messaging and read receipts."""

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        message_repo: MessageRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._conversations = conversation_repo
        self._messages = message_repo
        self._locks = KeyedLock()

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def ensure_conversation(
        self,
        client_id: str,
        creative_id: str,
        booking_id: Optional[str] = None,
        *,
        strict: bool = False,
    ) -> Optional[Conversation]:
        """Return the conversation for the triple, creating it if absent.

        An existing conversation is returned unchanged.  With
        ``strict=True`` store errors propagate instead of yielding ``None``.
        """
        key = (client_id, creative_id, booking_id)
        try:
            async with self._locks.hold(key):
                existing = await self._conversations.find(client_id, creative_id, booking_id)
                if existing is not None:
                    return existing
                try:
                    created = await self._conversations.create(client_id, creative_id, booking_id)
                except DuplicateEntity:
                    # Another writer created it between the check and the insert.
                    winner = await self._conversations.find(client_id, creative_id, booking_id)
                    if winner is None:
                        raise
                    return winner
                self._logger.info(
                    "Conversation %s created for client %s / creative %s",
                    created.id,
                    client_id,
                    creative_id,
                    extra={"event": "CONVERSATION_CREATE", "booking_id": booking_id or ""},
                )
                return created
        except MarketplaceError as exc:
            if strict:
                raise
            self._logger.error("ensure_conversation failed: %s", exc.message)
            return None

    async def ensure_conversation_for_pair(
        self,
        client_id: str,
        creative_id: str,
        booking_id: Optional[str],
        *,
        strict: bool = False,
    ) -> Optional[Conversation]:
        """Reuse any conversation between the two parties; otherwise open one for *booking_id*."""
        try:
            existing = await self._conversations.find_for_pair(client_id, creative_id)
        except MarketplaceError as exc:
            if strict:
                raise
            self._logger.error("Conversation pair lookup failed: %s", exc.message)
            return None
        if existing is not None:
            return existing
        return await self.ensure_conversation(client_id, creative_id, booking_id, strict=strict)

    async def list_conversations(self, participant_id: str) -> list[Conversation]:
        try:
            return await self._conversations.list_for_participant(participant_id)
        except MarketplaceError as exc:
            self._logger.error("list_conversations failed for %s: %s", participant_id, exc.message)
            return []

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> Optional[Message]:
        """Insert a message and bump the conversation's ``last_message_at`` to its timestamp."""
        try:
            if not content or not content.strip():
                raise ValidationFailed("Message content is required")
            conversation = await self._conversations.get_by_id(conversation_id)
            if conversation is None:
                raise NotFound(f"Conversation {conversation_id} not found")
            if not conversation.has_participant(sender_id):
                raise Forbidden("Only participants can post to this conversation")

            sent_at = utc_now()
            message = await self._messages.create(
                conversation_id, sender_id, content, message_type, sent_at,
            )
        except MarketplaceError as exc:
            self._logger.error(
                "send_message to %s failed: %s", conversation_id, exc.message,
                extra={"event": "MESSAGE_FAILED"},
            )
            return None

        try:
            await self._bump_last_message_at(conversation_id, message.created_at)
        except MarketplaceError as exc:
            self._logger.error(
                "Message %s stored but last_message_at bump failed: %s",
                message.id,
                exc.message,
            )
        return message

    async def _bump_last_message_at(self, conversation_id: str, at: datetime) -> None:
        """Advance ``last_message_at`` to *at*; never move it backwards."""
        for _ in range(_BUMP_ATTEMPTS):
            conversation = await self._conversations.get_by_id(conversation_id)
            if conversation is None:
                raise NotFound(f"Conversation {conversation_id} not found")
            current = conversation.last_message_at
            if current is not None and current >= at:
                return
            try:
                await self._conversations.set_last_message_at(conversation_id, at, expected=current)
                return
            except StaleState:
                continue
        raise StaleState(f"last_message_at for {conversation_id} kept changing")

    async def get_messages(self, conversation_id: str) -> list[Message]:
        """Messages in ascending ``created_at`` order."""
        try:
            messages = await self._messages.list_for_conversation(conversation_id)
        except MarketplaceError as exc:
            self._logger.error("get_messages failed for %s: %s", conversation_id, exc.message)
            return []
        return sorted(messages, key=lambda message: message.created_at)

    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        """Stamp ``read_at`` on every unread message not sent by *reader_id*.

        Idempotent: a second call returns 0.  Messages marked concurrently
        by someone else are skipped, not counted.
        """
        try:
            unread = await self._messages.list_unread(conversation_id, reader_id)
        except MarketplaceError as exc:
            self._logger.error("mark_read lookup failed for %s: %s", conversation_id, exc.message)
            return 0

        read_at = utc_now()
        marked = 0
        for message in unread:
            try:
                await self._messages.mark_read(message.id, read_at)
            except StaleState:
                continue
            except MarketplaceError as exc:
                self._logger.error("mark_read stopped at %s: %s", message.id, exc.message)
                break
            marked += 1
        return marked

    async def subscribe_to_messages(
        self,
        conversation_id: str,
        callback: Callable[[Message], None],
    ) -> Subscription:
        """Deliver each new message in the conversation to *callback*."""
        def _on_change(event: ChangeEvent) -> None:
            callback(Message.model_validate(event.record))

        return await self._messages.subscribe_for_conversation(conversation_id, _on_change)
