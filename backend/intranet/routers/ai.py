"""AI routing endpoints backed by embedding similarity."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.ai import AnalyzeTicketRequest, QuickTicketOut, QuickTicketRequest, RoutingSuggestionOut
from intranet.services.ai import analyze_ticket
from intranet.services.ai.quick_ticket import QuickTicketDraft, confidence_tier
from intranet.services.helpdesks import list_helpdesks
from intranet.services.tickets import create_ticket

router = APIRouter(dependencies=[Depends(rate_limit("ai")), Depends(get_current_user)])


@router.post(
    "/analyze-ticket",
    response_model=RoutingSuggestionOut,
    dependencies=[Depends(require_permission("use_ai"))],
)
def post_analyze_ticket(payload: AnalyzeTicketRequest, db: Session = Depends(get_db)) -> RoutingSuggestionOut:
    suggestion = analyze_ticket(db, payload.description)
    label, color = confidence_tier(suggestion["confidence"])
    return RoutingSuggestionOut(**suggestion, confidence_label=label, confidence_color=color)


@router.post("/quick-ticket", response_model=QuickTicketOut, status_code=status.HTTP_201_CREATED)
def post_quick_ticket(
    payload: QuickTicketRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("create_ticket")),
) -> QuickTicketOut:
    draft = QuickTicketDraft(
        description=payload.description,
        title=payload.title,
        priority=payload.priority,
        department_id=payload.department_id,
        sub_department_id=payload.sub_department_id,
        assignee_id=payload.assignee_id,
        form_category_id=payload.form_category_id,
    )
    if payload.suggestion is not None:
        draft.apply_suggestion(payload.suggestion.model_dump())
    helpdesks = [helpdesk for helpdesk in list_helpdesks(db) if helpdesk.enabled]
    ticket = create_ticket(db, draft.build_payload(helpdesks), created_by=current_user.id)
    out = QuickTicketOut.model_validate(ticket)
    out.assignee_overridden = draft.assignee_overridden
    return out
