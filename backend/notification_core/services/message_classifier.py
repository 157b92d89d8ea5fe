"""
Rule-based classifier for inbound chat, mail and system messages.

Classification is an ordered list of (predicate, category) rules
evaluated top to bottom; the FIRST matching rule wins. Categories are
mutually exclusive, so the order of CATEGORY_RULES is part of the
contract: moving a rule changes classification outcomes. The default
order is:

    1. project / task keywords         -> project-related
    2. "client" in sender or subject,
       client/customer in content      -> client-communication
    3. invoice / payment / bill        -> invoice-payment
    4. meeting / call / schedule       -> meeting-scheduling
    5. urgent / asap in subject        -> urgent-actionable
    6. sender on the internal domain   -> internal-team
    7. anything else                   -> general

Priority comes from the additive PriorityScoringTable.

DESIGN PRINCIPLES:
- Deterministic: same message always yields the same result
- Pure: no side effects, the auto-response is returned as text only
- Tolerant: missing fields are empty strings, so malformed input falls
  through to general/low instead of failing
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from notification_core.models.classification import (
    ClassificationResult,
    MessageCategory,
    MessagePriority,
    MessageSource,
    RawMessage,
)
from notification_core.models.notification import (
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
)
from notification_core.services.priority_scoring import (
    DEFAULT_SCORING_TABLE,
    PriorityScoringTable,
)

logger = logging.getLogger(__name__)

DEFAULT_INTERNAL_DOMAIN = "constructbms.com"

# Longest notification body produced from a message
MAX_MESSAGE_LENGTH = 280


@dataclass(frozen=True)
class ClassificationRule:
    """One entry of the ordered rule list."""

    name: str
    matches: Callable[[RawMessage], bool]
    category: MessageCategory


def _mentions(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def build_category_rules(internal_domain: str = DEFAULT_INTERNAL_DOMAIN) -> tuple[ClassificationRule, ...]:
    """
    Build the ordered category rules.

    Args:
        internal_domain: Email domain of the firm's own staff

    Returns:
        Tuple of rules in evaluation order
    """
    domain_marker = "@" + internal_domain.lower().lstrip("@")

    return (
        ClassificationRule(
            name="project_keywords",
            matches=lambda m: _mentions(m.subject_text, ("project", "task"))
            or _mentions(m.content_text, ("project", "task")),
            category=MessageCategory.PROJECT_RELATED,
        ),
        ClassificationRule(
            name="client_mentions",
            matches=lambda m: "client" in m.sender_text
            or "client" in m.subject_text
            or _mentions(m.content_text, ("client", "customer")),
            category=MessageCategory.CLIENT_COMMUNICATION,
        ),
        ClassificationRule(
            name="invoice_payment",
            matches=lambda m: _mentions(m.subject_text, ("invoice", "payment", "bill"))
            or _mentions(m.content_text, ("invoice", "payment", "bill")),
            category=MessageCategory.INVOICE_PAYMENT,
        ),
        ClassificationRule(
            name="meeting_scheduling",
            matches=lambda m: _mentions(m.subject_text, ("meeting", "call", "schedule"))
            or _mentions(m.content_text, ("meeting", "call", "schedule")),
            category=MessageCategory.MEETING_SCHEDULING,
        ),
        ClassificationRule(
            name="urgent_subject",
            matches=lambda m: _mentions(m.subject_text, ("urgent", "asap")),
            category=MessageCategory.URGENT_ACTIONABLE,
        ),
        ClassificationRule(
            name="internal_sender",
            matches=lambda m: domain_marker in m.sender_text,
            category=MessageCategory.INTERNAL_TEAM,
        ),
    )


CATEGORY_RULES = build_category_rules()


AUTO_RESPONSES: dict[MessageCategory, str] = {
    MessageCategory.PROJECT_RELATED: (
        "Thanks for the project update. The project team has been notified "
        "and will follow up shortly."
    ),
    MessageCategory.CLIENT_COMMUNICATION: (
        "Thank you for getting in touch. Your account manager will respond "
        "within one business day."
    ),
    MessageCategory.INVOICE_PAYMENT: (
        "Thank you. Your message has been forwarded to our finance team, "
        "who will review the invoice or payment details."
    ),
    MessageCategory.MEETING_SCHEDULING: (
        "Thanks for the meeting request. We will confirm a time that works "
        "for everyone shortly."
    ),
    MessageCategory.URGENT_ACTIONABLE: (
        "We have received your urgent request and it has been escalated "
        "for immediate attention."
    ),
    MessageCategory.INTERNAL_TEAM: "Noted, thanks.",
    MessageCategory.GENERAL: (
        "Thank you for your message. We will get back to you as soon as possible."
    ),
}


def auto_response_for(category: MessageCategory) -> str:
    """Auto-response text for a message category."""
    return AUTO_RESPONSES.get(category, AUTO_RESPONSES[MessageCategory.GENERAL])


class MessageClassifier:
    """
    Classifies raw messages into a category and a discrete priority.

    Stateless apart from its configuration; safe to share.
    """

    def __init__(
        self,
        scoring: Optional[PriorityScoringTable] = None,
        rules: Optional[Sequence[ClassificationRule]] = None,
        internal_domain: str = DEFAULT_INTERNAL_DOMAIN,
    ):
        self.scoring = scoring if scoring is not None else DEFAULT_SCORING_TABLE
        self.rules = tuple(rules) if rules is not None else build_category_rules(internal_domain)

    def categorize(self, message: RawMessage) -> MessageCategory:
        """Return the category of the first matching rule."""
        for rule in self.rules:
            if rule.matches(message):
                return rule.category
        return MessageCategory.GENERAL

    def classify(self, message: RawMessage) -> ClassificationResult:
        """
        Classify a raw message.

        Args:
            message: Raw chat, mail or system message

        Returns:
            ClassificationResult with category, priority, score and
            auto-response text
        """
        category = self.categorize(message)
        score = self.scoring.score(message.subject_text, category)
        priority = self.scoring.priority_for_score(score)

        logger.debug(
            "message_classifier.classified",
            extra={
                "source": message.source.value,
                "source_id": message.source_id,
                "category": category.value,
                "score": score,
                "priority": priority.value,
            },
        )

        return ClassificationResult(
            category=category,
            priority=priority,
            score=score,
            auto_response=auto_response_for(category),
        )


# =============================================================================
# Mapping classifier output onto notification fields
# =============================================================================

_PRIORITY_MAP: dict[MessagePriority, NotificationPriority] = {
    MessagePriority.LOW: NotificationPriority.LOW,
    MessagePriority.MEDIUM: NotificationPriority.MEDIUM,
    MessagePriority.HIGH: NotificationPriority.HIGH,
    MessagePriority.CRITICAL: NotificationPriority.URGENT,
}

_SOURCE_DEFAULT_CATEGORY: dict[MessageSource, NotificationCategory] = {
    MessageSource.CHAT: NotificationCategory.CHAT,
    MessageSource.MAIL: NotificationCategory.USER,
    MessageSource.SYSTEM: NotificationCategory.SYSTEM,
}


def to_notification_priority(priority: MessagePriority) -> NotificationPriority:
    """Critical message priority surfaces as an urgent notification."""
    return _PRIORITY_MAP[priority]


def to_notification_category(
    category: MessageCategory,
    source: MessageSource,
) -> NotificationCategory:
    """
    Pick the preference category for a classified message.

    Chat messages always stay in the chat category so chat preferences
    apply to them. Other sources map project and billing content onto
    their categories and fall back to the source default.
    """
    if source == MessageSource.CHAT:
        return NotificationCategory.CHAT
    if category == MessageCategory.PROJECT_RELATED:
        return NotificationCategory.PROJECT
    if category == MessageCategory.INVOICE_PAYMENT:
        return NotificationCategory.BILLING
    return _SOURCE_DEFAULT_CATEGORY[source]


def to_notification_type(source: MessageSource, priority: MessagePriority) -> NotificationType:
    if source == MessageSource.CHAT:
        return NotificationType.CHAT
    if priority in (MessagePriority.HIGH, MessagePriority.CRITICAL):
        return NotificationType.WARNING
    if source == MessageSource.SYSTEM:
        return NotificationType.SYSTEM
    return NotificationType.INFO


def notification_draft_for(
    message: RawMessage,
    result: ClassificationResult,
    user_id: str,
    related_entity_id: Optional[str] = None,
    related_entity_type: Optional[RelatedEntityType] = None,
    action_url: Optional[str] = None,
    action_text: Optional[str] = None,
    expires_at: Optional[datetime] = None,
) -> NotificationDraft:
    """
    Build a notification draft for a classified message.

    Titles follow the source: chat messages name the sender, mail
    names the sender and subject, and critical mail is flagged as
    needing attention.
    """
    sender = message.sender or message.sender_email or "Unknown sender"
    subject = message.subject or ""
    content = message.content or ""

    if message.source == MessageSource.CHAT:
        title = f"New message from {sender}"
        body = content
    elif message.source == MessageSource.MAIL:
        if result.priority == MessagePriority.CRITICAL:
            title = "Urgent Email Requires Attention"
        else:
            title = "New Email Received"
        body = f"New email from {sender}: {subject}" if subject else f"New email from {sender}"
    else:
        title = subject or "System notification"
        body = content

    return NotificationDraft(
        title=title,
        message=body[:MAX_MESSAGE_LENGTH],
        user_id=user_id,
        type=to_notification_type(message.source, result.priority),
        category=to_notification_category(result.category, message.source),
        priority=to_notification_priority(result.priority),
        related_entity_id=related_entity_id,
        related_entity_type=related_entity_type,
        action_url=action_url,
        action_text=action_text,
        metadata={
            "source": message.source.value,
            "source_id": message.source_id,
            "classification": result.category.value,
            "score": result.score,
            "action_required": result.priority in (MessagePriority.HIGH, MessagePriority.CRITICAL),
        },
        expires_at=expires_at,
    )
