"""
Unit tests for the change-propagation bridge and source stores.

Tests cover:
- Chat/mail deltas producing notifications (own messages skipped)
- Baseline capture on attach
- Dirty-check polling and subscriber notification
- Lifecycle: start/stop/destroy and the asyncio polling task
"""

import asyncio
from datetime import timedelta
from unittest.mock import Mock

import pytest

from notification_core.models.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
)
from notification_core.services.change_bridge import ChangePropagationBridge
from notification_core.services.message_classifier import MessageClassifier
from notification_core.services.notification_query_service import NotificationQueryService
from notification_core.services.notification_repository import NotificationRepository
from notification_core.services.source_stores import ChatStore, MailStore


@pytest.fixture
def repository(clock):
    return NotificationRepository(clock=clock)


@pytest.fixture
def query(repository):
    return NotificationQueryService(repository)


@pytest.fixture
def chat_store(clock):
    return ChatStore(clock=clock)


@pytest.fixture
def mail_store(clock):
    return MailStore(clock=clock)


@pytest.fixture
def bridge(repository, query, chat_store, mail_store, clock, user_id):
    bridge = ChangePropagationBridge(
        repository=repository,
        query=query,
        classifier=MessageClassifier(),
        current_user_id=user_id,
        chat_store=chat_store,
        mail_store=mail_store,
        poll_interval_seconds=0.01,
        clock=clock,
    )
    yield bridge
    bridge.destroy()


class TestSourceStores:
    """Tests for the observable chat and mail stores."""

    def test_listener_called_and_removed(self, chat_store):
        listener = Mock()
        remove = chat_store.add_listener(listener)

        chat_store.send_message("conv-1", "user-2", "hi")
        remove()
        chat_store.send_message("conv-1", "user-2", "again")

        listener.assert_called_once_with(chat_store)

    def test_failing_listener_does_not_block_others(self, chat_store):
        healthy = Mock()
        chat_store.add_listener(Mock(side_effect=RuntimeError("boom")))
        chat_store.add_listener(healthy)

        chat_store.send_message("conv-1", "user-2", "hi")

        healthy.assert_called_once()

    def test_chat_unread_counts(self, chat_store):
        chat_store.send_message("conv-1", "user-2", "a")
        chat_store.send_message("conv-2", "user-3", "b")
        chat_store.mark_conversation_read("conv-1")

        assert chat_store.unread_count("conv-1") == 0
        assert chat_store.total_unread_count() == 1

    def test_mail_sizes(self, mail_store):
        mail = mail_store.receive("Hi", "Ann", "ann@example.com", "body")
        assert mail_store.collection_sizes() == {"inbox": 1}
        assert mail_store.delete(mail.id) is True
        assert mail_store.collection_sizes() == {"inbox": 0}


class TestChatPropagation:
    """Tests for chat mutations becoming notifications."""

    def test_new_message_creates_notification(self, bridge, chat_store, repository, user_id):
        bridge.attach()

        message = chat_store.send_message("conv-1", "user-2", "Can you check the project plan?")

        (notification,) = repository.all()
        assert notification.user_id == user_id
        assert notification.type == NotificationType.CHAT
        assert notification.category == NotificationCategory.CHAT
        assert notification.title == "New message from user-2"
        assert notification.related_entity_type == RelatedEntityType.CHAT
        assert notification.related_entity_id == "conv-1"
        assert notification.action_url == "/chat/conv-1"
        assert notification.metadata["source_id"] == message.id

    def test_own_messages_skipped(self, bridge, chat_store, repository, user_id):
        bridge.attach()
        chat_store.send_message("conv-1", user_id, "my own message")
        assert len(repository) == 0

    def test_existing_messages_are_baseline(self, bridge, chat_store, repository):
        chat_store.send_message("conv-1", "user-2", "old")
        chat_store.send_message("conv-1", "user-2", "older")

        bridge.attach()
        chat_store.send_message("conv-1", "user-3", "new")

        assert [n.message for n in repository.all()] == ["new"]

    def test_delete_resets_baseline(self, bridge, chat_store, repository):
        bridge.attach()
        first = chat_store.send_message("conv-1", "user-2", "one")
        chat_store.delete_message("conv-1", first.id)
        chat_store.send_message("conv-1", "user-2", "two")

        assert [n.message for n in repository.all()] == ["two", "one"]

    def test_mark_read_does_not_notify(self, bridge, chat_store, repository):
        chat_store.send_message("conv-1", "user-2", "one")
        bridge.attach()

        chat_store.mark_conversation_read("conv-1")

        assert len(repository) == 0

    def test_detached_bridge_ignores_changes(self, bridge, chat_store, repository):
        bridge.attach()
        bridge.destroy()

        chat_store.send_message("conv-1", "user-2", "hi")

        assert len(repository) == 0

    def test_ttl_sets_expiry(self, repository, query, chat_store, clock, user_id):
        bridge = ChangePropagationBridge(
            repository=repository,
            query=query,
            classifier=MessageClassifier(),
            current_user_id=user_id,
            chat_store=chat_store,
            notification_ttl=timedelta(days=7),
            clock=clock,
        )
        bridge.attach()

        chat_store.send_message("conv-1", "user-2", "hi")

        assert repository.all()[0].expires_at == clock.now + timedelta(days=7)


class TestMailPropagation:

    def test_urgent_mail(self, bridge, mail_store, repository):
        bridge.attach()

        mail = mail_store.receive(
            subject="URGENT: budget",
            sender="Dana",
            sender_email="dana@client.com",
            content="project overrun",
        )

        (notification,) = repository.all()
        assert notification.title == "Urgent Email Requires Attention"
        assert notification.priority == NotificationPriority.URGENT
        assert notification.type == NotificationType.WARNING
        assert notification.related_entity_type == RelatedEntityType.DOCUMENT
        assert notification.related_entity_id == mail.id
        assert notification.action_url == f"/email/{mail.id}"

    def test_routine_mail(self, bridge, mail_store, repository):
        bridge.attach()
        mail_store.receive("Hello", "Ann", "ann@example.com", "Nice weather")

        (notification,) = repository.all()
        assert notification.title == "New Email Received"
        assert notification.type == NotificationType.INFO
        assert notification.category == NotificationCategory.USER

    def test_mail_from_current_user_skipped(self, bridge, mail_store, repository, user_id):
        bridge.attach()
        mail_store.receive("Hello", user_id, "me@example.com", "note to self")
        assert len(repository) == 0


class TestPolling:
    """Tests for the dirty-check loop."""

    def test_subscribe_receives_current_state(self, bridge, repository, make_draft):
        repository.insert(make_draft())
        callback = Mock()

        bridge.subscribe(callback)

        callback.assert_called_once()
        assert callback.call_args[0][0].unread_count == 1

    def test_poll_once_notifies_only_on_change(self, bridge, repository, make_draft):
        bridge.attach()
        callback = Mock()
        bridge.subscribe(callback)
        callback.reset_mock()

        assert bridge.poll_once() is False
        callback.assert_not_called()

        notification = repository.insert(make_draft())
        assert bridge.poll_once() is True
        assert callback.call_args[0][0].unread_count == 1

        assert bridge.poll_once() is False
        assert callback.call_count == 1

        repository.mark_read(notification.id)
        assert bridge.poll_once() is True
        assert callback.call_args[0][0].unread_count == 0

    def test_unsubscribe(self, bridge, repository, make_draft):
        bridge.attach()
        callback = Mock()
        unsubscribe = bridge.subscribe(callback)
        unsubscribe()
        callback.reset_mock()

        repository.insert(make_draft())
        bridge.poll_once()

        callback.assert_not_called()
        assert bridge.subscriber_count == 0

    def test_failing_subscriber_isolated(self, bridge, repository, make_draft):
        bridge.attach()
        healthy = Mock()
        bridge.subscribe(Mock(side_effect=RuntimeError("boom")))
        bridge.subscribe(healthy)
        healthy.reset_mock()

        repository.insert(make_draft())

        assert bridge.poll_once() is True
        healthy.assert_called_once()

    def test_invalid_interval(self, repository, query, user_id):
        with pytest.raises(ValueError):
            ChangePropagationBridge(
                repository=repository,
                query=query,
                classifier=MessageClassifier(),
                current_user_id=user_id,
                poll_interval_seconds=0,
            )


class TestLifecycle:
    """Tests for start/stop/destroy."""

    def test_start_requires_running_loop(self, bridge):
        with pytest.raises(RuntimeError):
            bridge.start()

    def test_polling_loop_delivers_changes(self, bridge, chat_store):
        seen = []

        async def scenario():
            bridge.start()
            bridge.subscribe(lambda state: seen.append(state.unread_count))
            assert bridge.is_polling

            chat_store.send_message("conv-1", "user-2", "hello")
            await asyncio.sleep(0.1)

            await bridge.astop()

        asyncio.run(scenario())

        assert seen[0] == 0
        assert seen[-1] == 1
        assert not bridge.is_polling

    def test_destroy_clears_everything(self, bridge):
        bridge.attach()
        bridge.subscribe(Mock())

        bridge.destroy()

        assert bridge.is_attached is False
        assert bridge.subscriber_count == 0

    def test_stop_is_idempotent(self, bridge):
        bridge.stop()
        bridge.stop()
        assert not bridge.is_polling
