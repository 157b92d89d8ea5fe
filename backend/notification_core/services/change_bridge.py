"""
Change-propagation bridge between the source stores and the repository.

The chat and mail stores are mutated independently of the notification
repository and share no reactivity mechanism with it. The bridge links
them in two ways:

1. Mutation observation. The bridge listens to each source store. On
   every mutation it computes the size delta per sub-collection (one
   per chat conversation, one for the mail inbox) and, for every newly
   appended item whose author is not the current user, classifies it
   and inserts a notification that references the source entity.

2. Polling dirty-check. Independently, a fixed-interval loop (default
   2 seconds) recomputes the unread count and notifies subscribers only
   when it differs from the last observed value. Badge consumers may
   therefore see a stale count for up to one interval. This bounded
   staleness is accepted in exchange for keeping the stores decoupled.

LIFECYCLE:
- The bridge is constructed explicitly by the composition root
- attach() starts mutation observation only
- start() attaches and schedules the polling task on the running loop
- stop() cancels the polling task; destroy() also detaches listeners
  and clears subscribers
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from notification_core.models.base import utc_now
from notification_core.models.classification import MessageSource, RawMessage
from notification_core.models.notification import Notification, RelatedEntityType
from notification_core.services.delivery_router import DeliveryRouter
from notification_core.services.message_classifier import (
    MessageClassifier,
    notification_draft_for,
)
from notification_core.services.notification_query_service import NotificationQueryService
from notification_core.services.notification_repository import NotificationRepository
from notification_core.services.source_stores import (
    MAIL_COLLECTION_KEY,
    ChatMessage,
    ChatStore,
    MailMessage,
    MailStore,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2.0


@dataclass(frozen=True)
class BadgeState:
    """Value delivered to badge subscribers."""

    unread_count: int
    observed_at: datetime

    def to_dict(self) -> dict:
        return {
            "unread_count": self.unread_count,
            "observed_at": self.observed_at.isoformat(),
        }


BadgeSubscriber = Callable[[BadgeState], None]


class ChangePropagationBridge:
    """
    Synthesizes notifications from source-store mutations and keeps
    badge subscribers in step with the repository's unread count.
    """

    def __init__(
        self,
        repository: NotificationRepository,
        query: NotificationQueryService,
        classifier: MessageClassifier,
        current_user_id: str,
        chat_store: Optional[ChatStore] = None,
        mail_store: Optional[MailStore] = None,
        router: Optional[DeliveryRouter] = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        notification_ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize bridge.

        Args:
            repository: Notification repository to insert into
            query: Query service used for the unread-count metric
            classifier: Classifier applied to new source items
            current_user_id: User who receives bridged notifications;
                their own messages never notify
            chat_store: Chat store to observe (optional)
            mail_store: Mail store to observe (optional)
            router: Delivery router consulted after each insert (optional)
            poll_interval_seconds: Dirty-check interval
            notification_ttl: Expiry applied to bridged notifications
            clock: Callable returning the current time
        """
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")

        self.repository = repository
        self.query = query
        self.classifier = classifier
        self.current_user_id = current_user_id
        self.chat_store = chat_store
        self.mail_store = mail_store
        self.router = router
        self.poll_interval_seconds = poll_interval_seconds
        self.notification_ttl = notification_ttl
        self._clock = clock

        self._subscribers: list[BadgeSubscriber] = []
        self._detach: list[Callable[[], None]] = []
        self._chat_sizes: dict[str, int] = {}
        self._mail_size = 0
        self._last_unread: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_attached(self) -> bool:
        return bool(self._detach)

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def attach(self) -> None:
        """
        Start observing the source stores.

        Items already present are taken as the baseline and never
        produce notifications.
        """
        if self.is_attached:
            return

        if self.chat_store is not None:
            self._chat_sizes = self.chat_store.collection_sizes()
            self._detach.append(self.chat_store.add_listener(self._on_chat_change))
        if self.mail_store is not None:
            self._mail_size = self.mail_store.collection_sizes().get(MAIL_COLLECTION_KEY, 0)
            self._detach.append(self.mail_store.add_listener(self._on_mail_change))

        self._last_unread = self.query.unread_count()

        logger.info(
            "notification_bridge.attached",
            extra={
                "conversations": len(self._chat_sizes),
                "mail_count": self._mail_size,
                "unread_count": self._last_unread,
            },
        )

    def start(self) -> None:
        """
        Attach to the stores and schedule the polling loop.

        Must be called from a running event loop.

        Raises:
            RuntimeError: If no event loop is running
        """
        self.attach()
        if self.is_polling:
            return

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._poll_loop())

        logger.info(
            "notification_bridge.started",
            extra={"poll_interval_seconds": self.poll_interval_seconds},
        )

    def stop(self) -> None:
        """Cancel the polling loop. Safe to call repeatedly."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("notification_bridge.stopped")

    async def astop(self) -> None:
        """Cancel the polling loop and wait for it to finish."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def destroy(self) -> None:
        """Stop polling, detach from the stores and drop all subscribers."""
        self.stop()
        for detach in self._detach:
            detach()
        self._detach.clear()
        self._subscribers.clear()
        logger.info("notification_bridge.destroyed")

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def current_state(self) -> BadgeState:
        return BadgeState(unread_count=self.query.unread_count(), observed_at=self._clock())

    def subscribe(self, callback: BadgeSubscriber) -> Callable[[], None]:
        """
        Register a badge subscriber.

        The callback is invoked immediately with the current state.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)
        self._deliver(callback, self.current_state())

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _deliver(self, callback: BadgeSubscriber, state: BadgeState) -> None:
        try:
            callback(state)
        except Exception as e:
            logger.error(
                "notification_bridge.subscriber_failed",
                extra={"unread_count": state.unread_count, "error": str(e)},
            )

    def _notify_subscribers(self, state: BadgeState) -> None:
        for callback in list(self._subscribers):
            self._deliver(callback, state)

    # =========================================================================
    # Polling dirty-check
    # =========================================================================

    def poll_once(self) -> bool:
        """
        Run one dirty-check iteration.

        Returns:
            True if the unread count changed and subscribers were notified
        """
        state = self.current_state()
        if state.unread_count == self._last_unread:
            return False

        previous = self._last_unread
        self._last_unread = state.unread_count

        logger.debug(
            "notification_bridge.poll_changed",
            extra={"previous": previous, "unread_count": state.unread_count},
        )
        self._notify_subscribers(state)
        return True

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_seconds)
            try:
                self.poll_once()
            except Exception as e:
                logger.error("notification_bridge.poll_failed", extra={"error": str(e)})

    # =========================================================================
    # Mutation observation
    # =========================================================================

    def _expires_at(self) -> Optional[datetime]:
        if self.notification_ttl is None:
            return None
        return self._clock() + self.notification_ttl

    def _on_chat_change(self, store: ChatStore) -> None:
        sizes = store.collection_sizes()
        for conversation_id, size in sizes.items():
            previous = self._chat_sizes.get(conversation_id, 0)
            if size <= previous:
                continue
            for message in store.messages(conversation_id)[previous:]:
                if message.sender_id != self.current_user_id:
                    self._notify_chat_message(message)
        self._chat_sizes = sizes

    def _on_mail_change(self, store: MailStore) -> None:
        size = store.collection_sizes().get(MAIL_COLLECTION_KEY, 0)
        if size > self._mail_size:
            for mail in store.messages()[self._mail_size:]:
                if self.current_user_id not in (mail.sender, mail.sender_email):
                    self._notify_mail(mail)
        self._mail_size = size

    def _notify_chat_message(self, message: ChatMessage) -> Notification:
        raw = RawMessage(
            subject="",
            content=message.content,
            sender=message.sender_id,
            timestamp=message.timestamp,
            source=MessageSource.CHAT,
            source_id=message.id,
        )
        result = self.classifier.classify(raw)
        draft = notification_draft_for(
            raw,
            result,
            user_id=self.current_user_id,
            related_entity_id=message.conversation_id,
            related_entity_type=RelatedEntityType.CHAT,
            action_url=f"/chat/{message.conversation_id}",
            action_text="View Chat",
            expires_at=self._expires_at(),
        )
        return self._insert(draft)

    def _notify_mail(self, mail: MailMessage) -> Notification:
        raw = RawMessage(
            subject=mail.subject,
            content=mail.content,
            sender=mail.sender,
            sender_email=mail.sender_email,
            timestamp=mail.timestamp,
            source=MessageSource.MAIL,
            source_id=mail.id,
        )
        result = self.classifier.classify(raw)
        draft = notification_draft_for(
            raw,
            result,
            user_id=mail.recipient_id or self.current_user_id,
            related_entity_id=mail.id,
            related_entity_type=RelatedEntityType.DOCUMENT,
            action_url=f"/email/{mail.id}",
            action_text="View Email",
            expires_at=self._expires_at(),
        )
        return self._insert(draft)

    def _insert(self, draft) -> Notification:
        notification = self.repository.insert(draft)
        if self.router is not None:
            decision = self.router.route(notification)
            logger.info(
                "notification_bridge.routed",
                extra={
                    "notification_id": notification.id,
                    "delivered": decision.delivered,
                    "reason": decision.reason,
                },
            )
        return notification
