"""Cron arithmetic: next run time for a 5-field expression."""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from croniter import CroniterError, croniter

from opsdispatch.config.constants import DEFAULT_TIMEZONE
from opsdispatch.errors import ScheduleError


def validate_cron(cron_expression: str) -> None:
    """Raise ScheduleError unless the expression is a valid 5-field cron string."""
    if not isinstance(cron_expression, str) or len(cron_expression.split()) != 5:
        raise ScheduleError(f"Invalid cron expression: {cron_expression!r} (expected 5 fields)")
    if not croniter.is_valid(cron_expression):
        raise ScheduleError(f"Invalid cron expression: {cron_expression!r}")


def next_execution(
    cron_expression: str,
    from_time: datetime,
    tz: str = DEFAULT_TIMEZONE,
) -> datetime:
    """Return the first time strictly after ``from_time`` matching all five fields.

    The expression is read in ``tz``; the result is an aware UTC datetime.
    Naive ``from_time`` values are taken as UTC.
    """
    validate_cron(cron_expression)
    if from_time.tzinfo is None:
        from_time = from_time.replace(tzinfo=UTC)

    local_start = from_time.astimezone(ZoneInfo(tz))
    try:
        nxt = croniter(cron_expression, local_start).get_next(datetime)
    except (CroniterError, ValueError, KeyError) as exc:
        raise ScheduleError(f"Cannot advance {cron_expression!r}: {exc}") from exc
    return nxt.astimezone(UTC)
