"""
Shared helpers for in-memory record models.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: str) -> str:
    """Generate a unique record identifier, e.g. ``notif-3f2a...``."""
    return f"{prefix}-{uuid.uuid4().hex}"


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; aware values pass through."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
