"""Page review workflow: draft, in review, published."""

from __future__ import annotations

import logging
import random
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intranet.core.concurrency import bump_version
from intranet.core.exceptions import IntranetException, InvalidTransitionError, PageLockedError
from intranet.models.document import Page, PageComment
from intranet.models.enums import PageStatus
from intranet.models.user import User
from intranet.services.departments import department_members
from intranet.services.documents import record_document_activity
from intranet.services.notifications_service import (
    has_unread_for_target,
    queue_notification,
    resolve_target_notifications,
)

logger = logging.getLogger(__name__)

APPROVAL_COMMENT = "LGTM! Approved and Published."
REVIEW_REQUEST_TITLE = "New Page for Review"

ALLOWED_TRANSITIONS: dict[PageStatus, set[PageStatus]] = {
    PageStatus.draft: {PageStatus.in_review},
    PageStatus.in_review: {PageStatus.published, PageStatus.draft},
    PageStatus.published: {PageStatus.draft},
}


def can_transition(current: PageStatus, target: PageStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def is_editable(page: Any) -> bool:
    return page.status != PageStatus.in_review


def ensure_editable(page: Any) -> None:
    if not is_editable(page):
        raise PageLockedError(page.id)


def pick_reviewer(author_id: str | None, members: Iterable[Any], rng: random.Random | None = None) -> Any | None:
    """Random department member other than the author, or None when nobody qualifies."""
    candidates = [member for member in members if member.id != author_id and getattr(member, "is_active", True)]
    if not candidates:
        return None
    return (rng or random).choice(candidates)


def _page_link(page: Any) -> str:
    return f"/documents?pageId={page.id}"


def submit_for_review(db: Session, page: Page, *, actor_id: str | None, rng: random.Random | None = None) -> Page:
    author = db.get(User, page.author_id) if page.author_id else None
    members = department_members(db, author.department_id) if author and author.department_id else []
    reviewer = pick_reviewer(page.author_id, members, rng)

    page.status = PageStatus.in_review
    page.reviewer_id = reviewer.id if reviewer else None
    bump_version(page)
    record_document_activity(
        db,
        page.type.value,
        page.id,
        "submitted_for_review",
        user_id=actor_id,
        details={"reviewer_id": page.reviewer_id},
    )
    if reviewer and has_unread_for_target(db, user_id=reviewer.id, target_id=page.id, title=REVIEW_REQUEST_TITLE):
        logger.info("Reviewer %s already has an unread review request for page %s", reviewer.id, page.id)
    elif reviewer:
        queue_notification(
            db,
            user_id=reviewer.id,
            title=REVIEW_REQUEST_TITLE,
            body=f'"{page.title}" is waiting for your review.',
            link=_page_link(page),
            source="documents",
            target_id=page.id,
        )
    else:
        logger.info("No reviewer available for page %s", page.id)
    db.commit()
    db.refresh(page)
    return page


def request_changes(db: Session, page: Page, *, actor_id: str | None) -> Page:
    page.status = PageStatus.draft
    bump_version(page)
    record_document_activity(db, page.type.value, page.id, "changes_requested", user_id=actor_id)
    resolve_target_notifications(db, target_id=page.id, title=REVIEW_REQUEST_TITLE)
    if page.author_id and page.author_id != actor_id:
        queue_notification(
            db,
            user_id=page.author_id,
            title="Changes Requested",
            body=f'Your page "{page.title}" was sent back to draft.',
            link=_page_link(page),
            source="documents",
            target_id=page.id,
        )
    db.commit()
    db.refresh(page)
    return page


def reopen(db: Session, page: Page, *, actor_id: str | None) -> Page:
    page.status = PageStatus.draft
    bump_version(page)
    record_document_activity(db, page.type.value, page.id, "reopened", user_id=actor_id)
    db.commit()
    db.refresh(page)
    return page


def approve_and_publish(db: Session, page: Page, *, actor_id: str | None) -> Page:
    """Publish the page, then leave the approval comment.

    The two writes are separate commits. A failed comment is logged and the
    page stays published.
    """
    page.status = PageStatus.published
    bump_version(page)
    record_document_activity(db, page.type.value, page.id, "published", user_id=actor_id)
    resolve_target_notifications(db, target_id=page.id, title=REVIEW_REQUEST_TITLE)
    db.commit()
    db.refresh(page)
    logger.info("Published page %s", page.id)

    try:
        db.add(PageComment(page_id=page.id, user_id=actor_id, content=APPROVAL_COMMENT))
        db.commit()
    except (SQLAlchemyError, IntranetException) as exc:
        db.rollback()
        logger.warning("Approval comment failed for page %s: %s", page.id, exc)

    if page.author_id and page.author_id != actor_id:
        queue_notification(
            db,
            user_id=page.author_id,
            title="Page Published",
            body=f'Your page "{page.title}" has been approved and published.',
            link=_page_link(page),
            source="documents",
            target_id=page.id,
        )
        db.commit()
    return page


def transition_page(db: Session, page: Page, target: PageStatus, *, actor_id: str | None) -> Page:
    current = page.status
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)
    if target == PageStatus.in_review:
        return submit_for_review(db, page, actor_id=actor_id)
    if target == PageStatus.published:
        return approve_and_publish(db, page, actor_id=actor_id)
    if current == PageStatus.in_review:
        return request_changes(db, page, actor_id=actor_id)
    return reopen(db, page, actor_id=actor_id)
