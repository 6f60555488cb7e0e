"""SLA due dates and status derived from a helpdesk's policy for a priority."""

from __future__ import annotations

import datetime as dt
from typing import Any

AT_RISK_REMAINING_RATIO = 0.25


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime | None) -> dt.datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def compute_due_dates(created_at: dt.datetime, policy: Any | None) -> tuple[dt.datetime | None, dt.datetime | None]:
    """Return ``(first_response_due_at, resolution_due_at)``; ``(None, None)`` without a policy."""
    if policy is None:
        return None, None
    start = as_utc(created_at)
    return (
        start + dt.timedelta(hours=float(policy.first_response_hours)),
        start + dt.timedelta(hours=float(policy.resolution_hours)),
    )


def hours_between(start: dt.datetime | None, end: dt.datetime) -> float:
    if start is None:
        return 0.0
    return max((as_utc(end) - as_utc(start)).total_seconds() / 3600.0, 0.0)


def sla_status(ticket: Any, *, final_state_ids: set[str], now: dt.datetime | None = None) -> str:
    """One of ``ok``, ``at_risk``, ``breached``, ``completed`` or ``unknown``."""
    now = as_utc(now) or _utcnow()
    due = as_utc(ticket.resolution_due_at)
    if ticket.state_id in final_state_ids or ticket.resolved_at is not None:
        if due is not None and as_utc(ticket.resolved_at or now) > due:
            return "breached"
        return "completed"
    if due is None:
        return "unknown"
    if now > due:
        return "breached"
    first_due = as_utc(ticket.first_response_due_at)
    if first_due is not None and ticket.first_responded_at is None and now > first_due:
        return "breached"
    window = (due - as_utc(ticket.created_at)).total_seconds()
    remaining = (due - now).total_seconds()
    if window > 0 and remaining / window < AT_RISK_REMAINING_RATIO:
        return "at_risk"
    return "ok"


def remaining_minutes(ticket: Any, *, now: dt.datetime | None = None) -> int | None:
    due = as_utc(ticket.resolution_due_at)
    if due is None:
        return None
    now = as_utc(now) or _utcnow()
    return int((due - now).total_seconds() // 60)
