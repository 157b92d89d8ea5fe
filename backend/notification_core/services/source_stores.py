"""
Upstream event stores observed by the change-propagation bridge.

ChatStore holds messages per conversation; MailStore holds an inbox of
mail records. Neither store knows about notifications: they only call
their listeners after each mutation, and the bridge works out what
changed.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from notification_core.models.base import generate_id, utc_now

logger = logging.getLogger(__name__)

MAIL_COLLECTION_KEY = "inbox"


@dataclass(frozen=True)
class ChatMessage:
    id: str
    conversation_id: str
    sender_id: str
    content: str
    timestamp: datetime
    is_read: bool = False


@dataclass(frozen=True)
class MailMessage:
    id: str
    subject: str
    sender: str
    sender_email: str
    content: str
    timestamp: datetime
    recipient_id: Optional[str] = None
    is_read: bool = False


StoreListener = Callable[["ObservableStore"], None]


class ObservableStore:
    """Minimal listener registry shared by the source stores."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._listeners: list[StoreListener] = []

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Register a mutation listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(
                    "source_store.listener_failed",
                    extra={"store": type(self).__name__, "error": str(e)},
                )

    def collection_sizes(self) -> dict[str, int]:
        raise NotImplementedError


class ChatStore(ObservableStore):
    """Chat messages keyed by conversation id."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        super().__init__(clock)
        self._messages: dict[str, list[ChatMessage]] = {}

    def send_message(self, conversation_id: str, sender_id: str, content: str) -> ChatMessage:
        message = ChatMessage(
            id=generate_id("msg"),
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            timestamp=self._clock(),
        )
        self._messages.setdefault(conversation_id, []).append(message)
        self._emit()
        return message

    def delete_message(self, conversation_id: str, message_id: str) -> bool:
        messages = self._messages.get(conversation_id, [])
        kept = [m for m in messages if m.id != message_id]
        if len(kept) == len(messages):
            return False
        self._messages[conversation_id] = kept
        self._emit()
        return True

    def mark_conversation_read(self, conversation_id: str) -> None:
        messages = self._messages.get(conversation_id)
        if not messages:
            return
        self._messages[conversation_id] = [replace(m, is_read=True) for m in messages]
        self._emit()

    def messages(self, conversation_id: str) -> list[ChatMessage]:
        return list(self._messages.get(conversation_id, []))

    def conversations(self) -> list[str]:
        return list(self._messages.keys())

    def unread_count(self, conversation_id: str) -> int:
        return sum(1 for m in self._messages.get(conversation_id, []) if not m.is_read)

    def total_unread_count(self) -> int:
        return sum(self.unread_count(cid) for cid in self._messages)

    def collection_sizes(self) -> dict[str, int]:
        return {cid: len(messages) for cid, messages in self._messages.items()}


class MailStore(ObservableStore):
    """A single inbox of mail records, oldest first."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        super().__init__(clock)
        self._messages: list[MailMessage] = []

    def receive(
        self,
        subject: str,
        sender: str,
        sender_email: str,
        content: str,
        recipient_id: Optional[str] = None,
    ) -> MailMessage:
        message = MailMessage(
            id=generate_id("mail"),
            subject=subject,
            sender=sender,
            sender_email=sender_email,
            content=content,
            timestamp=self._clock(),
            recipient_id=recipient_id,
        )
        self._messages.append(message)
        self._emit()
        return message

    def delete(self, message_id: str) -> bool:
        kept = [m for m in self._messages if m.id != message_id]
        if len(kept) == len(self._messages):
            return False
        self._messages = kept
        self._emit()
        return True

    def messages(self) -> list[MailMessage]:
        return list(self._messages)

    def collection_sizes(self) -> dict[str, int]:
        return {MAIL_COLLECTION_KEY: len(self._messages)}
