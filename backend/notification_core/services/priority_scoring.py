"""
Additive priority scoring table for classified messages.

A message's score is the sum of every weight whose condition holds:

    subject mentions "urgent"/"asap"      +4
    category is project-related           +2
    category is client-communication      +2
    category is urgent-actionable         +3

The score maps to a priority through ordered thresholds:

    score >= 6  -> critical
    score >= 4  -> high
    score >= 2  -> medium
    otherwise   -> low

Weights are cumulative: an urgent project email scores 4 + 2 = 6.
This table is the single source of truth for message priority.
"""

from dataclasses import dataclass

from notification_core.models.classification import MessageCategory, MessagePriority

URGENT_KEYWORDS: tuple[str, ...] = ("urgent", "asap")


@dataclass(frozen=True)
class PriorityScoringTable:
    """
    Weights and thresholds for message priority scoring.

    All values are integers; thresholds are inclusive lower bounds.
    """

    # Subject keyword weight
    urgent_keyword_weight: int = 4

    # Category weights
    project_related_weight: int = 2
    client_communication_weight: int = 2
    urgent_actionable_weight: int = 3

    # Score -> priority thresholds
    critical_threshold: int = 6
    high_threshold: int = 4
    medium_threshold: int = 2

    def category_weight(self, category: MessageCategory) -> int:
        """Weight contributed by the message category (0 if unweighted)."""
        weights = {
            MessageCategory.PROJECT_RELATED: self.project_related_weight,
            MessageCategory.CLIENT_COMMUNICATION: self.client_communication_weight,
            MessageCategory.URGENT_ACTIONABLE: self.urgent_actionable_weight,
        }
        return weights.get(category, 0)

    def thresholds(self) -> tuple[tuple[int, MessagePriority], ...]:
        """Ordered (minimum score, priority) pairs, highest first."""
        return (
            (self.critical_threshold, MessagePriority.CRITICAL),
            (self.high_threshold, MessagePriority.HIGH),
            (self.medium_threshold, MessagePriority.MEDIUM),
        )

    def score(self, subject: str, category: MessageCategory) -> int:
        """
        Compute the additive score for a lower-cased subject and category.

        Args:
            subject: Message subject, already lower-cased
            category: Category assigned by the classifier

        Returns:
            Integer score (>= 0)
        """
        total = 0
        if any(keyword in subject for keyword in URGENT_KEYWORDS):
            total += self.urgent_keyword_weight
        total += self.category_weight(category)
        return total

    def priority_for_score(self, score: int) -> MessagePriority:
        for minimum, priority in self.thresholds():
            if score >= minimum:
                return priority
        return MessagePriority.LOW

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "urgent_keyword_weight": self.urgent_keyword_weight,
            "project_related_weight": self.project_related_weight,
            "client_communication_weight": self.client_communication_weight,
            "urgent_actionable_weight": self.urgent_actionable_weight,
            "critical_threshold": self.critical_threshold,
            "high_threshold": self.high_threshold,
            "medium_threshold": self.medium_threshold,
        }


# Default table reproducing the production weights
DEFAULT_SCORING_TABLE = PriorityScoringTable()

PRIORITY_WEIGHTS: dict[str, int] = {
    "urgent_keyword": DEFAULT_SCORING_TABLE.urgent_keyword_weight,
    MessageCategory.PROJECT_RELATED.value: DEFAULT_SCORING_TABLE.project_related_weight,
    MessageCategory.CLIENT_COMMUNICATION.value: DEFAULT_SCORING_TABLE.client_communication_weight,
    MessageCategory.URGENT_ACTIONABLE.value: DEFAULT_SCORING_TABLE.urgent_actionable_weight,
}

PRIORITY_THRESHOLDS: tuple[tuple[int, MessagePriority], ...] = DEFAULT_SCORING_TABLE.thresholds()
