"""Ticket endpoints: CRUD, comments, activity, SLA and related documents."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from intranet.core.concurrency import resolve_expected_version
from intranet.core.deps import expected_version, get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.ticket import (
    RelatedDocumentOut,
    TicketActivityOut,
    TicketCommentCreate,
    TicketCommentOut,
    TicketCreate,
    TicketOut,
    TicketSlaOut,
    TicketUpdate,
)
from intranet.services.embeddings import related_documents_for_ticket
from intranet.services.tickets import (
    add_comment,
    create_ticket,
    delete_ticket,
    get_ticket_for_user,
    list_activity,
    list_comments,
    list_tickets_for_user,
    ticket_sla,
    update_ticket,
)

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])


@router.get("/", response_model=list[TicketOut])
def get_all_tickets(
    helpdesk_id: str | None = Query(default=None),
    state_id: str | None = Query(default=None),
    department_id: str | None = Query(default=None),
    assigned_to: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_tickets")),
) -> list[TicketOut]:
    tickets = list_tickets_for_user(
        db,
        current_user,
        helpdesk_id=helpdesk_id,
        state_id=state_id,
        department_id=department_id,
        assigned_to=assigned_to,
    )
    return [TicketOut.model_validate(ticket) for ticket in tickets]


@router.post("/", response_model=TicketOut, status_code=status.HTTP_201_CREATED)
def post_ticket(
    payload: TicketCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("create_ticket")),
) -> TicketOut:
    ticket = create_ticket(db, payload, created_by=current_user.id)
    return TicketOut.model_validate(ticket)


@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket_by_id(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_tickets")),
) -> TicketOut:
    return TicketOut.model_validate(get_ticket_for_user(db, ticket_id, current_user))


@router.patch("/{ticket_id}", response_model=TicketOut)
def patch_ticket(
    ticket_id: str,
    payload: TicketUpdate,
    if_match: int | None = Depends(expected_version),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_tickets")),
) -> TicketOut:
    get_ticket_for_user(db, ticket_id, current_user)
    ticket = update_ticket(
        db,
        ticket_id,
        payload,
        actor_id=current_user.id,
        expected_version=resolve_expected_version(payload.version, if_match),
    )
    return TicketOut.model_validate(ticket)


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_tickets")),
) -> None:
    get_ticket_for_user(db, ticket_id, current_user)
    delete_ticket(db, ticket_id)


@router.get("/{ticket_id}/comments", response_model=list[TicketCommentOut])
def get_ticket_comments(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_tickets")),
) -> list[TicketCommentOut]:
    get_ticket_for_user(db, ticket_id, current_user)
    return [TicketCommentOut.model_validate(c) for c in list_comments(db, ticket_id, user=current_user)]


@router.post("/{ticket_id}/comments", response_model=TicketCommentOut, status_code=status.HTTP_201_CREATED)
def post_ticket_comment(
    ticket_id: str,
    payload: TicketCommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("comment_ticket")),
) -> TicketCommentOut:
    get_ticket_for_user(db, ticket_id, current_user)
    comment = add_comment(db, ticket_id, payload, user_id=current_user.id)
    return TicketCommentOut.model_validate(comment)


@router.get("/{ticket_id}/activity", response_model=list[TicketActivityOut])
def get_ticket_activity(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_tickets")),
) -> list[TicketActivityOut]:
    get_ticket_for_user(db, ticket_id, current_user)
    return [TicketActivityOut.model_validate(row) for row in list_activity(db, ticket_id)]


@router.get("/{ticket_id}/sla", response_model=TicketSlaOut)
def get_ticket_sla(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_tickets")),
) -> TicketSlaOut:
    ticket = get_ticket_for_user(db, ticket_id, current_user)
    return TicketSlaOut(**ticket_sla(db, ticket))


@router.get("/{ticket_id}/related-documents", response_model=list[RelatedDocumentOut])
def get_related_documents(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_tickets")),
) -> list[RelatedDocumentOut]:
    get_ticket_for_user(db, ticket_id, current_user)
    return [RelatedDocumentOut(**doc) for doc in related_documents_for_ticket(db, ticket_id)]
