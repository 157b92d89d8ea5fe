"""
Per-channel delivery routing for classified notifications.

Decides whether and how a notification is surfaced on each channel
(in-app, email, push, sms). Routing is a decision only: transports are
not implemented here.

FLOW:
1. Resolve the recipient's settings for the category (defaults if none)
2. Permission check for the recipient role, when known
3. Category disabled or frequency "never" -> suppressed
4. Keyword gating -> suppressed
5. Quiet hours active -> out-of-app channels deferred (urgent bypasses)
6. Non-immediate frequency -> out-of-app channels batched
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from notification_core.models.base import utc_now
from notification_core.models.notification import Notification, NotificationPriority
from notification_core.models.notification_preference import (
    DeliveryChannel,
    DeliveryFrequency,
    NotificationPreference,
)
from notification_core.services.delivery_rules import (
    is_suppressed_by_keywords,
    is_within_quiet_hours,
)
from notification_core.services.permission_service import PermissionService
from notification_core.services.preference_resolver import PreferenceResolver

logger = logging.getLogger(__name__)


class RouteAction(str, Enum):
    """What happens on one channel."""
    DELIVER = "deliver"
    DEFER = "defer"
    BATCH = "batch"
    SKIP = "skip"


class SuppressionReason(str, Enum):
    CATEGORY_DISABLED = "category_disabled"
    FREQUENCY_NEVER = "frequency_never"
    KEYWORD_FILTERED = "keyword_filtered"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class ChannelRoute:
    channel: DeliveryChannel
    action: RouteAction

    def to_dict(self) -> dict:
        return {"channel": self.channel.value, "action": self.action.value}


@dataclass(frozen=True)
class DeliveryDecision:
    """Routing outcome for one notification."""

    notification_id: str
    delivered: bool
    channels: tuple[ChannelRoute, ...]
    reason: Optional[str] = None
    quiet_hours_active: bool = False

    def action_for(self, channel: DeliveryChannel) -> RouteAction:
        for route in self.channels:
            if route.channel == channel:
                return route.action
        return RouteAction.SKIP

    def to_dict(self) -> dict:
        return {
            "notification_id": self.notification_id,
            "delivered": self.delivered,
            "channels": [route.to_dict() for route in self.channels],
            "reason": self.reason,
            "quiet_hours_active": self.quiet_hours_active,
        }


def _all_skipped() -> tuple[ChannelRoute, ...]:
    return tuple(ChannelRoute(channel, RouteAction.SKIP) for channel in DeliveryChannel)


class DeliveryRouter:
    """Routes notifications to channels according to user preferences."""

    def __init__(
        self,
        preferences: PreferenceResolver,
        permissions: Optional[PermissionService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.preferences = preferences
        self.permissions = permissions
        self._clock = clock

    def _suppressed(self, notification: Notification, reason: SuppressionReason) -> DeliveryDecision:
        logger.info(
            "delivery_router.suppressed",
            extra={
                "notification_id": notification.id,
                "user_id": notification.user_id,
                "category": notification.category.value,
                "reason": reason.value,
            },
        )
        return DeliveryDecision(
            notification_id=notification.id,
            delivered=False,
            channels=_all_skipped(),
            reason=reason.value,
        )

    def route(
        self,
        notification: Notification,
        recipient_role: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DeliveryDecision:
        """
        Decide per-channel delivery for a notification.

        Args:
            notification: The notification to route
            recipient_role: Role of the recipient, for permission checks
            now: Instant used for quiet-hours evaluation

        Returns:
            DeliveryDecision with one ChannelRoute per channel
        """
        category = notification.category.value
        settings: NotificationPreference = self.preferences.get_or_default(
            notification.user_id, category
        )

        if self.permissions is not None and not self.permissions.can_receive(recipient_role, category):
            return self._suppressed(notification, SuppressionReason.PERMISSION_DENIED)

        if not settings.enabled:
            return self._suppressed(notification, SuppressionReason.CATEGORY_DISABLED)

        if settings.frequency == DeliveryFrequency.NEVER:
            return self._suppressed(notification, SuppressionReason.FREQUENCY_NEVER)

        if is_suppressed_by_keywords(
            notification.title,
            notification.message,
            settings.keywords,
            settings.exclude_keywords,
        ):
            return self._suppressed(notification, SuppressionReason.KEYWORD_FILTERED)

        quiet = settings.quiet_hours
        quiet_active = quiet.enabled and is_within_quiet_hours(
            quiet.start, quiet.end, quiet.timezone, now or self._clock()
        )
        bypass_quiet = notification.priority == NotificationPriority.URGENT

        routes = []
        for channel in DeliveryChannel:
            if not settings.channels.is_enabled(channel):
                action = RouteAction.SKIP
            elif channel == DeliveryChannel.IN_APP:
                action = RouteAction.DELIVER
            elif quiet_active and not bypass_quiet:
                action = RouteAction.DEFER
            elif settings.frequency != DeliveryFrequency.IMMEDIATE:
                action = RouteAction.BATCH
            else:
                action = RouteAction.DELIVER
            routes.append(ChannelRoute(channel, action))

        decision = DeliveryDecision(
            notification_id=notification.id,
            delivered=any(r.action != RouteAction.SKIP for r in routes),
            channels=tuple(routes),
            quiet_hours_active=quiet_active,
        )

        logger.debug(
            "delivery_router.routed",
            extra={
                "notification_id": notification.id,
                "routes": {r.channel.value: r.action.value for r in routes},
                "quiet_hours_active": quiet_active,
            },
        )
        return decision
