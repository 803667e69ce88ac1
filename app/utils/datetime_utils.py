"""
Datetime utilities.

Provides timezone-aware datetime functions and business-day boundaries.
"""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from app.config.settings import settings


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes read back from the database.

    Args:
        value: Datetime, naive values are assumed to be UTC

    Returns:
        Timezone-aware datetime in UTC
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def business_day_start(now: datetime | None = None) -> datetime:
    """
    Get start of the current business calendar day as UTC.

    The business day follows ``settings.business_timezone``.

    Args:
        now: Reference moment (defaults to current time)

    Returns:
        UTC datetime of local midnight
    """
    tz = ZoneInfo(settings.business_timezone)
    local = ensure_utc(now or utc_now()).astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(UTC)


def business_day_range(
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """
    Get [start, end) of the current business day as UTC datetimes.

    Args:
        now: Reference moment (defaults to current time)

    Returns:
        Tuple of (start, end)
    """
    start = business_day_start(now)
    return start, start + timedelta(days=1)
