"""
Classification pipeline data models.

Provides:
- RawMessage: the classifier's uniform input shape for chat, mail and
  system events
- MessageCategory / MessagePriority: classifier output vocabularies
- ClassificationResult: category, priority and the score behind it
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class MessageSource(str, Enum):
    """Upstream subsystem a raw message came from."""
    CHAT = "chat"
    MAIL = "mail"
    SYSTEM = "system"


class MessageCategory(str, Enum):
    """Rule-based classification buckets for inbound messages."""
    PROJECT_RELATED = "project-related"
    CLIENT_COMMUNICATION = "client-communication"
    INVOICE_PAYMENT = "invoice-payment"
    MEETING_SCHEDULING = "meeting-scheduling"
    URGENT_ACTIONABLE = "urgent-actionable"
    INTERNAL_TEAM = "internal-team"
    GENERAL = "general"


class MessagePriority(str, Enum):
    """Discrete priority derived from the additive score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class RawMessage:
    """
    A raw inbound message in the classifier's input shape.

    Any field may be missing; missing text is treated as empty.
    """

    subject: Optional[str] = None
    content: Optional[str] = None
    sender: Optional[str] = None
    sender_email: Optional[str] = None
    timestamp: Optional[datetime] = None
    source: MessageSource = MessageSource.SYSTEM
    source_id: Optional[str] = None

    @property
    def subject_text(self) -> str:
        return (self.subject or "").lower()

    @property
    def content_text(self) -> str:
        return (self.content or "").lower()

    @property
    def sender_text(self) -> str:
        return " ".join(p for p in (self.sender, self.sender_email) if p).lower()


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one raw message."""

    category: MessageCategory
    priority: MessagePriority
    score: int
    auto_response: str

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "priority": self.priority.value,
            "score": self.score,
            "auto_response": self.auto_response,
        }
