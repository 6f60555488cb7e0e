"""Outbound helpdesk webhooks for ticket events."""

from __future__ import annotations

import datetime as dt
import json
import logging
import time
from typing import Any

import httpx
from sqlalchemy.orm import Session

from intranet.core.config import settings
from intranet.core.exceptions import WebhookDeliveryError
from intranet.core.security import sign_payload
from intranet.services.helpdesks import list_webhooks

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Intranet-Signature"
EVENT_HEADER = "X-Intranet-Event"
RETRY_STATUSES = {408, 429, 500, 502, 503, 504}


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _plain(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def ticket_event_payload(event: str, ticket: Any) -> dict[str, Any]:
    return {
        "event": event,
        "occurred_at": _utcnow().isoformat(),
        "ticket": {
            "id": ticket.id,
            "helpdesk_id": ticket.helpdesk_id,
            "title": ticket.title,
            "description": ticket.description,
            "priority": _plain(ticket.priority),
            "state_id": ticket.state_id,
            "department_id": ticket.department_id,
            "assigned_to": ticket.assigned_to,
            "created_by": ticket.created_by,
            "ticket_type": ticket.ticket_type,
            "source": ticket.source,
            "custom_fields": ticket.custom_fields or {},
            "escalation_level": ticket.escalation_level or 0,
            "version": ticket.version,
        },
    }


def encode_body(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, default=str, separators=(",", ":"), sort_keys=True).encode("utf-8")


def deliver_webhook(
    hook: Any,
    event: str,
    payload: dict[str, Any],
    *,
    transport: httpx.BaseTransport | None = None,
) -> int:
    """POST ``payload`` to the hook; up to ``retry_count`` retries after the first attempt."""
    body = encode_body(payload)
    headers = {
        "Content-Type": "application/json",
        "User-Agent": settings.WEBHOOK_USER_AGENT,
        EVENT_HEADER: event,
    }
    if hook.secret:
        headers[SIGNATURE_HEADER] = sign_payload(hook.secret, body)

    attempts = 1 + max(0, int(hook.retry_count or 0))
    backoff = 0.5
    last_status: int | None = None
    with httpx.Client(timeout=float(hook.timeout_seconds or 30), transport=transport) as client:
        for attempt in range(1, attempts + 1):
            try:
                response = client.post(hook.url, content=body, headers=headers)
                last_status = response.status_code
                if response.is_success:
                    return response.status_code
                if response.status_code not in RETRY_STATUSES:
                    break
            except httpx.HTTPError as exc:
                logger.warning("Webhook %s attempt %s failed: %s", hook.url, attempt, exc)
            if attempt < attempts:
                time.sleep(backoff)
                backoff *= 2
    raise WebhookDeliveryError(hook.url, attempts, last_status=last_status)


def dispatch_ticket_event(db: Session, ticket: Any, event: str) -> dict[str, int]:
    """Deliver ``event`` to every enabled hook of the ticket's helpdesk; failures are logged."""
    hooks = list_webhooks(db, ticket.helpdesk_id, event=event, enabled_only=True)
    if not hooks:
        return {"delivered": 0, "failed": 0}
    payload = ticket_event_payload(event, ticket)
    delivered = 0
    failed = 0
    for hook in hooks:
        try:
            deliver_webhook(hook, event, payload)
        except WebhookDeliveryError as exc:
            failed += 1
            logger.warning("Webhook %s gave up for %s: %s", hook.id, event, exc.details)
            continue
        hook.last_triggered_at = _utcnow()
        delivered += 1
    if delivered:
        db.commit()
    return {"delivered": delivered, "failed": failed}
