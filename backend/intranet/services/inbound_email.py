"""Inbound email intake: thread replies onto tickets or open new ones."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.orm import Session

from intranet.core.exceptions import BadRequestError
from intranet.models.enums import TicketSource
from intranet.models.ticket import Ticket, TicketComment
from intranet.models.user import User
from intranet.schemas.helpdesk import InboundEmail
from intranet.schemas.ticket import TicketCommentCreate, TicketCreate
from intranet.services.helpdesks import get_email_config, get_helpdesk
from intranet.services.tickets import add_comment, create_ticket

logger = logging.getLogger(__name__)

NO_SUBJECT = "(no subject)"


def normalize_message_id(value: str | None) -> str:
    return (value or "").strip().strip("<>").strip().lower()


def thread_message_ids(email: InboundEmail) -> list[str]:
    """``In-Reply-To`` first, then ``References`` newest to oldest, without duplicates."""
    candidates: Iterable[str | None] = [email.in_reply_to, *reversed(email.references)]
    ordered = [normalize_message_id(item) for item in candidates]
    return list(dict.fromkeys(item for item in ordered if item))


def _ticket_for_message_ids(db: Session, helpdesk_id: str, ids: list[str]) -> Ticket | None:
    for message_id in ids:
        ticket = (
            db.query(Ticket)
            .filter(Ticket.helpdesk_id == helpdesk_id, Ticket.email_message_id == message_id)
            .first()
        )
        if ticket:
            return ticket
        comment = (
            db.query(TicketComment)
            .join(Ticket, Ticket.id == TicketComment.ticket_id)
            .filter(Ticket.helpdesk_id == helpdesk_id, TicketComment.email_message_id == message_id)
            .first()
        )
        if comment:
            return db.get(Ticket, comment.ticket_id)
    return None


def _already_processed(db: Session, message_id: str) -> bool:
    if not message_id:
        return False
    if db.query(Ticket.id).filter(Ticket.email_message_id == message_id).first():
        return True
    return db.query(TicketComment.id).filter(TicketComment.email_message_id == message_id).first() is not None


def process_inbound_email(db: Session, helpdesk_id: str, email: InboundEmail) -> dict[str, Any]:
    helpdesk = get_helpdesk(db, helpdesk_id)
    config = get_email_config(db, helpdesk.id)
    if not config or not config.enabled:
        raise BadRequestError("inbound_email_disabled", details={"helpdesk_id": helpdesk.id})

    message_id = normalize_message_id(email.message_id)
    if _already_processed(db, message_id):
        logger.info("Skipping duplicate inbound email %s", message_id)
        return {"action": "ignored", "reason": "duplicate", "ticket_id": None, "comment_id": None}

    sender = db.query(User).filter(User.email == str(email.from_address)).first()
    sender_id = sender.id if sender else None
    body = email.body.strip() or email.subject or NO_SUBJECT

    ticket = _ticket_for_message_ids(db, helpdesk.id, thread_message_ids(email))
    if ticket is not None:
        content = body if sender else f"From {email.from_address}:\n\n{body}"
        comment = add_comment(
            db,
            ticket.id,
            TicketCommentCreate(content=content),
            user_id=sender_id,
            source=TicketSource.email,
            email_message_id=message_id or None,
        )
        logger.info("Inbound email threaded onto ticket %s", ticket.id)
        return {"action": "commented", "reason": None, "ticket_id": ticket.id, "comment_id": comment.id}

    if not config.auto_create_tickets:
        return {"action": "ignored", "reason": "auto_create_disabled", "ticket_id": None, "comment_id": None}

    description = body if sender else f"From {email.from_address}:\n\n{body}"
    ticket = create_ticket(
        db,
        TicketCreate(
            helpdesk_id=helpdesk.id,
            title=(email.subject or NO_SUBJECT)[:255],
            description=description,
            priority=config.default_priority,
            source=TicketSource.email,
        ),
        created_by=sender_id,
        email_message_id=message_id or None,
        validate_fields=False,
    )
    return {"action": "created", "reason": None, "ticket_id": ticket.id, "comment_id": None}
