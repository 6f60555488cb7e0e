"""Service helpers for ticket CRUD, comments, activity and SLA clocks."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from sqlalchemy.orm import Session

from intranet.core.concurrency import bump_version, check_version
from intranet.core.exceptions import BadRequestError, InsufficientPermissionsError, NotFoundError
from intranet.core.rbac import can_view_internal_comments, can_view_ticket
from intranet.models.enums import TicketSource
from intranet.models.ticket import Ticket, TicketActivity, TicketComment
from intranet.models.user import User
from intranet.schemas.ticket import TicketCommentCreate, TicketCreate, TicketUpdate
from intranet.services.departments import require_department
from intranet.services.embedding_queue import enqueue_embedding
from intranet.services.forms import active_fields, ensure_category_in_helpdesk, list_fields, validate_custom_fields
from intranet.services.helpdesks import (
    default_state,
    ensure_state_in_helpdesk,
    final_state_ids,
    get_helpdesk,
    list_states,
    policy_for_priority,
)
from intranet.services.notifications_service import queue_notification
from intranet.services.sla.clock import compute_due_dates, remaining_minutes, sla_status
from intranet.services.webhooks import dispatch_ticket_event

logger = logging.getLogger(__name__)

_FIELD_ACTIONS = {
    "state_id": "state_changed",
    "assigned_to": "assigned",
    "priority": "priority_changed",
    "department_id": "department_changed",
}


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _plain(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def record_activity(
    db: Session,
    ticket_id: str,
    action: str,
    *,
    actor_id: str | None = None,
    details: dict[str, Any] | None = None,
    commit: bool = True,
) -> TicketActivity:
    entry = TicketActivity(ticket_id=ticket_id, action=action, actor_id=actor_id, details=details)
    db.add(entry)
    if commit:
        db.commit()
    return entry


def list_tickets(
    db: Session,
    *,
    helpdesk_id: str | None = None,
    state_id: str | None = None,
    department_id: str | None = None,
    assigned_to: str | None = None,
) -> list[Ticket]:
    query = db.query(Ticket)
    if helpdesk_id:
        query = query.filter(Ticket.helpdesk_id == helpdesk_id)
    if state_id:
        query = query.filter(Ticket.state_id == state_id)
    if department_id:
        query = query.filter(Ticket.department_id == department_id)
    if assigned_to:
        query = query.filter(Ticket.assigned_to == assigned_to)
    return query.order_by(Ticket.created_at.desc()).all()


def list_tickets_for_user(db: Session, user: User, **filters: Any) -> list[Ticket]:
    return [ticket for ticket in list_tickets(db, **filters) if can_view_ticket(user, ticket)]


def get_ticket(db: Session, ticket_id: str) -> Ticket:
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise NotFoundError("ticket_not_found", details={"ticket_id": ticket_id})
    return ticket


def get_ticket_for_user(db: Session, ticket_id: str, user: User) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    if not can_view_ticket(user, ticket):
        raise InsufficientPermissionsError("forbidden")
    return ticket


def _validated_custom_fields(db: Session, helpdesk_id: str, category_id: str | None, values: dict[str, Any]) -> dict[str, Any]:
    fields = active_fields(list_fields(db, helpdesk_id), category_id)
    return validate_custom_fields(fields, values)


def create_ticket(
    db: Session,
    payload: TicketCreate,
    *,
    created_by: str | None,
    email_message_id: str | None = None,
    validate_fields: bool = True,
) -> Ticket:
    """Create a ticket in the helpdesk default state with SLA clocks from its policy.

    ``validate_fields=False`` is for intakes without a form (inbound email),
    which store no custom values.
    """
    helpdesk = get_helpdesk(db, payload.helpdesk_id)
    if not helpdesk.enabled:
        raise BadRequestError("helpdesk_disabled", details={"helpdesk_id": helpdesk.id})
    department_id = payload.department_id or helpdesk.department_id
    require_department(db, department_id)
    require_department(db, payload.sub_department_id, field="sub_department_id")

    states = list_states(db, helpdesk.id)
    if payload.state_id:
        state = ensure_state_in_helpdesk(db, helpdesk.id, payload.state_id)
    else:
        state = default_state(states)
    ensure_category_in_helpdesk(db, helpdesk.id, payload.form_category_id)
    custom_fields: dict[str, Any] = {}
    if validate_fields:
        custom_fields = _validated_custom_fields(db, helpdesk.id, payload.form_category_id, payload.custom_fields)

    now = _utcnow()
    first_response_due, resolution_due = compute_due_dates(now, policy_for_priority(db, helpdesk.id, payload.priority))
    ticket = Ticket(
        helpdesk_id=helpdesk.id,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        state_id=state.id if state else None,
        assigned_to=payload.assigned_to,
        created_by=created_by,
        department_id=department_id,
        sub_department_id=payload.sub_department_id,
        form_category_id=payload.form_category_id,
        ticket_type=payload.ticket_type,
        source=payload.source.value,
        custom_fields=custom_fields,
        email_message_id=email_message_id,
        ai_routing_confidence=payload.ai_routing_confidence,
        ai_suggested_assignee_id=payload.ai_suggested_assignee_id,
        first_response_due_at=first_response_due,
        resolution_due_at=resolution_due,
        state_changed_at=now,
        resolved_at=now if state is not None and state.is_final else None,
        created_at=now,
        escalated_rule_ids=[],
        version=1,
    )
    db.add(ticket)
    db.flush()
    details: dict[str, Any] = {"source": ticket.source, "state_id": ticket.state_id}
    if payload.ai_suggested_assignee_id:
        details["assignee_overridden"] = payload.assigned_to != payload.ai_suggested_assignee_id
    record_activity(
        db,
        ticket.id,
        "created",
        actor_id=created_by,
        details=details,
        commit=False,
    )
    if ticket.assigned_to and ticket.assigned_to != created_by:
        queue_notification(
            db,
            user_id=ticket.assigned_to,
            title=f"New ticket assigned: {ticket.title}",
            link=f"/helpdesk/tickets/{ticket.id}",
            source="ticket",
            target_id=ticket.id,
        )
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket created: %s in helpdesk %s (source=%s)", ticket.id, helpdesk.id, ticket.source)

    enqueue_embedding("ticket", ticket.id)
    dispatch_ticket_event(db, ticket, "ticket.created")
    return ticket


def update_ticket(
    db: Session,
    ticket_id: str,
    payload: TicketUpdate,
    *,
    actor_id: str | None,
    expected_version: int | None = None,
) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    check_version("ticket", ticket, expected_version)
    changes = payload.model_dump(exclude_unset=True, exclude={"version"})

    if "state_id" in changes:
        if changes["state_id"] is None:
            raise BadRequestError("state_required")
        ensure_state_in_helpdesk(db, ticket.helpdesk_id, changes["state_id"])
    if "form_category_id" in changes:
        ensure_category_in_helpdesk(db, ticket.helpdesk_id, changes["form_category_id"])
    if "department_id" in changes:
        require_department(db, changes["department_id"])
    if "sub_department_id" in changes:
        require_department(db, changes["sub_department_id"], field="sub_department_id")
    if "custom_fields" in changes:
        category_id = changes.get("form_category_id", ticket.form_category_id)
        changes["custom_fields"] = _validated_custom_fields(
            db, ticket.helpdesk_id, category_id, changes["custom_fields"] or {}
        )

    changed: dict[str, dict[str, Any]] = {}
    for key, value in changes.items():
        before = getattr(ticket, key)
        if _plain(before) == _plain(value):
            continue
        setattr(ticket, key, value)
        changed[key] = {"from": _plain(before), "to": _plain(value)}
    if not changed:
        return ticket

    now = _utcnow()
    if "state_id" in changed:
        ticket.state_changed_at = now
        finals = final_state_ids(list_states(db, ticket.helpdesk_id))
        if ticket.state_id in finals:
            ticket.resolved_at = ticket.resolved_at or now
        else:
            ticket.resolved_at = None
    if "priority" in changed:
        policy = policy_for_priority(db, ticket.helpdesk_id, ticket.priority)
        ticket.first_response_due_at, ticket.resolution_due_at = compute_due_dates(ticket.created_at, policy)
    bump_version(ticket)

    for key, diff in changed.items():
        record_activity(
            db,
            ticket.id,
            _FIELD_ACTIONS.get(key, "updated"),
            actor_id=actor_id,
            details={"field": key, **diff},
            commit=False,
        )
    if "assigned_to" in changed and ticket.assigned_to and ticket.assigned_to != actor_id:
        queue_notification(
            db,
            user_id=ticket.assigned_to,
            title=f"Ticket assigned to you: {ticket.title}",
            link=f"/helpdesk/tickets/{ticket.id}",
            source="ticket",
            target_id=ticket.id,
        )
    db.commit()
    db.refresh(ticket)

    if {"title", "description"} & changed.keys():
        enqueue_embedding("ticket", ticket.id)
    dispatch_ticket_event(db, ticket, "ticket.updated")
    return ticket


def delete_ticket(db: Session, ticket_id: str) -> None:
    db.delete(get_ticket(db, ticket_id))
    db.commit()


def list_comments(db: Session, ticket_id: str, *, user: User | None = None) -> list[TicketComment]:
    query = db.query(TicketComment).filter(TicketComment.ticket_id == ticket_id)
    if user is not None and not can_view_internal_comments(user):
        query = query.filter(TicketComment.is_internal.is_(False))
    return query.order_by(TicketComment.created_at.asc()).all()


def add_comment(
    db: Session,
    ticket_id: str,
    payload: TicketCommentCreate,
    *,
    user_id: str | None,
    source: TicketSource = TicketSource.web,
    email_message_id: str | None = None,
) -> TicketComment:
    ticket = get_ticket(db, ticket_id)
    now = _utcnow()
    comment = TicketComment(
        ticket_id=ticket.id,
        user_id=user_id,
        content=payload.content,
        is_internal=payload.is_internal,
        source=source.value,
        email_message_id=email_message_id,
        created_at=now,
    )
    db.add(comment)
    db.flush()
    if is_first_response(ticket, comment):
        ticket.first_responded_at = now
    record_activity(
        db,
        ticket.id,
        "commented",
        actor_id=user_id,
        details={"comment_id": comment.id, "is_internal": comment.is_internal, "source": comment.source},
        commit=False,
    )
    if not comment.is_internal and ticket.created_by and ticket.created_by != user_id:
        queue_notification(
            db,
            user_id=ticket.created_by,
            title=f"New reply on: {ticket.title}",
            body=comment.content[:280],
            link=f"/helpdesk/tickets/{ticket.id}",
            source="ticket",
            target_id=ticket.id,
        )
    db.commit()
    db.refresh(comment)
    return comment


def is_first_response(ticket: Any, comment: Any) -> bool:
    """An external comment by someone other than the requester starts the response clock."""
    if ticket.first_responded_at is not None or comment.is_internal:
        return False
    return bool(comment.user_id) and comment.user_id != ticket.created_by


def list_activity(db: Session, ticket_id: str) -> list[TicketActivity]:
    get_ticket(db, ticket_id)
    return (
        db.query(TicketActivity)
        .filter(TicketActivity.ticket_id == ticket_id)
        .order_by(TicketActivity.created_at.asc())
        .all()
    )


def ticket_sla(db: Session, ticket: Ticket, *, now: dt.datetime | None = None) -> dict[str, Any]:
    finals = final_state_ids(list_states(db, ticket.helpdesk_id))
    now = now or _utcnow()
    return {
        "ticket_id": ticket.id,
        "status": sla_status(ticket, final_state_ids=finals, now=now),
        "first_response_due_at": ticket.first_response_due_at,
        "resolution_due_at": ticket.resolution_due_at,
        "first_responded_at": ticket.first_responded_at,
        "resolved_at": ticket.resolved_at,
        "remaining_minutes": remaining_minutes(ticket, now=now),
        "escalation_level": ticket.escalation_level or 0,
    }
