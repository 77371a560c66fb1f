"""Cron helpers for scheduled tests: validation and next fire time (UTC)."""

from __future__ import annotations

from datetime import datetime, timezone

from croniter import croniter

from .exceptions import ValidationError
from .models import ensure_utc


def is_valid_cron(expression: str) -> bool:
    """Return True when ``expression`` is a cron expression croniter accepts."""
    if not isinstance(expression, str) or not expression.strip():
        return False
    return croniter.is_valid(expression.strip())


def next_run_time(expression: str, now: datetime | None = None) -> datetime:
    """
    Compute the first fire time of ``expression`` strictly after ``now``.

    Raises:
        ValidationError: If the expression is not a valid cron expression.
    """
    if not is_valid_cron(expression):
        raise ValidationError("Invalid cron expression")
    start = ensure_utc(now) if now else datetime.now(timezone.utc)
    return ensure_utc(croniter(expression.strip(), start).get_next(datetime))
