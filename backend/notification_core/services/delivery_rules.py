"""
Quiet-hours and keyword gating rules used by the delivery router.

Both rules FAIL OPEN: malformed time strings, unknown timezones and
empty keyword lists never suppress a notification. Dropping something
the user should have seen is worse than delivering it during quiet
hours.
"""

import logging
import re
from datetime import datetime, time, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

_HHMM_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_hhmm(value: Optional[str]) -> Optional[time]:
    """
    Parse an "HH:MM" string.

    Returns:
        time, or None when the value is missing or malformed
    """
    if not value:
        return None
    match = _HHMM_PATTERN.match(value)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return time(hour=hours, minute=minutes)


def _zone(tz_name: Optional[str]) -> Optional[ZoneInfo]:
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # OSError: names that resolve to a tzdata directory, e.g. "America"
        return None


def is_known_timezone(tz_name: Optional[str]) -> bool:
    """True if ``tz_name`` loads as an IANA zone."""
    return bool(tz_name) and _zone(tz_name) is not None


def _local_time_of_day(at: datetime, tz_name: Optional[str]) -> Optional[time]:
    zone = _zone(tz_name)
    if zone is None:
        return None
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    local = at.astimezone(zone)
    return time(hour=local.hour, minute=local.minute, second=local.second)


def is_within_quiet_hours(
    start: Optional[str],
    end: Optional[str],
    tz_name: Optional[str],
    at: Optional[datetime] = None,
) -> bool:
    """
    Check whether an instant falls inside a quiet-hours window.

    The window is [start, end) in local time at ``tz_name``. When
    end <= start it wraps across midnight and the test becomes
    ``t >= start or t < end``.

    Args:
        start: Window start, "HH:MM"
        end: Window end, "HH:MM"
        tz_name: IANA timezone name, e.g. "Europe/London"
        at: Instant to test (defaults to now); naive values are UTC

    Returns:
        True if inside the window; False otherwise or on any bad input
    """
    start_time = parse_hhmm(start)
    end_time = parse_hhmm(end)
    if start_time is None or end_time is None:
        logger.warning(
            "delivery_rules.invalid_quiet_hours",
            extra={"start": start, "end": end},
        )
        return False

    local = _local_time_of_day(at or datetime.now(timezone.utc), tz_name)
    if local is None:
        logger.warning(
            "delivery_rules.unknown_timezone",
            extra={"timezone": tz_name},
        )
        return False

    if start_time < end_time:
        return start_time <= local < end_time
    # end <= start: window wraps midnight
    return local >= start_time or local < end_time


def _clean(keywords: Optional[Iterable[str]]) -> list[str]:
    if not keywords:
        return []
    return [k.strip().lower() for k in keywords if k and k.strip()]


def _matches(keywords: list[str], texts: list[str]) -> bool:
    return any(keyword in text for keyword in keywords for text in texts)


def is_suppressed_by_keywords(
    title: Optional[str],
    message: Optional[str],
    keywords: Optional[Iterable[str]] = None,
    exclude_keywords: Optional[Iterable[str]] = None,
) -> bool:
    """
    Apply inclusion/exclusion keyword gating to a notification's text.

    Matching is a case-insensitive substring test against title and
    message, each searched on its own. Any exclude match suppresses. A
    non-empty include list suppresses unless at least one include
    keyword matches. Exclusion takes precedence over inclusion.
    """
    texts = [(title or "").lower(), (message or "").lower()]

    excluded = _clean(exclude_keywords)
    if _matches(excluded, texts):
        return True

    included = _clean(keywords)
    if included and not _matches(included, texts):
        return True

    return False
