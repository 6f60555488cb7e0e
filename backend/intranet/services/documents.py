"""Service helpers for books, pages, page comments, moves and document activity."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from sqlalchemy.orm import Session

from intranet.core.concurrency import bump_version, check_version
from intranet.core.exceptions import BadRequestError, ConflictError, NotFoundError
from intranet.models.document import Book, DocumentActivity, Page, PageComment
from intranet.models.enums import PageStatus, PageType
from intranet.schemas.document import BookCreate, BookUpdate, PageCommentCreate, PageCreate, PageUpdate
from intranet.services.embedding_queue import enqueue_embedding
from intranet.services.notifications_service import queue_notification

logger = logging.getLogger(__name__)

ROOT_NAME = "Root"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def record_document_activity(
    db: Session,
    target_type: str,
    target_id: str,
    action: str,
    *,
    user_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> DocumentActivity:
    """Add an activity row to the current unit of work; caller commits."""
    entry = DocumentActivity(target_type=target_type, target_id=target_id, action=action, user_id=user_id, details=details)
    db.add(entry)
    return entry


def list_document_activity(db: Session, target_type: str, target_id: str, *, limit: int = 100) -> list[DocumentActivity]:
    return (
        db.query(DocumentActivity)
        .filter(DocumentActivity.target_type == target_type, DocumentActivity.target_id == target_id)
        .order_by(DocumentActivity.created_at.desc())
        .limit(limit)
        .all()
    )


# ----- books -----


def list_books(db: Session) -> list[Book]:
    return db.query(Book).order_by(Book.title.asc()).all()


def get_book(db: Session, book_id: str) -> Book:
    book = db.get(Book, book_id)
    if not book:
        raise NotFoundError("book_not_found", details={"book_id": book_id})
    return book


def create_book(db: Session, payload: BookCreate, *, author_id: str | None) -> Book:
    if payload.parent_id:
        get_folder(db, payload.parent_id)
    book = Book(title=payload.title, description=payload.description, parent_id=payload.parent_id, author_id=author_id)
    db.add(book)
    db.flush()
    record_document_activity(db, "book", book.id, "created", user_id=author_id)
    db.commit()
    db.refresh(book)
    return book


def update_book(
    db: Session,
    book_id: str,
    payload: BookUpdate,
    *,
    actor_id: str | None,
    expected_version: int | None = None,
) -> Book:
    book = get_book(db, book_id)
    check_version("book", book, expected_version)
    changes = payload.model_dump(exclude_unset=True, exclude={"version"})
    if "parent_id" in changes:
        move_book(db, book.id, changes.pop("parent_id"), actor_id=actor_id, commit=False)
    for key, value in changes.items():
        setattr(book, key, value)
    if changes:
        bump_version(book)
        record_document_activity(db, "book", book.id, "updated", user_id=actor_id, details={"fields": sorted(changes)})
    db.commit()
    db.refresh(book)
    return book


def delete_book(db: Session, book_id: str, *, actor_id: str | None = None) -> None:
    book = get_book(db, book_id)
    record_document_activity(db, "book", book.id, "deleted", user_id=actor_id, details={"title": book.title})
    db.delete(book)
    db.commit()


# ----- pages -----


def list_pages(db: Session, book_id: str) -> list[Page]:
    get_book(db, book_id)
    return db.query(Page).filter(Page.book_id == book_id).order_by(Page.order.asc(), Page.title.asc()).all()


def list_standalone_pages(db: Session) -> list[Page]:
    return db.query(Page).filter(Page.book_id.is_(None)).order_by(Page.order.asc(), Page.title.asc()).all()


def list_children(db: Session, parent_id: str | None) -> list[Page]:
    query = db.query(Page)
    query = query.filter(Page.parent_id.is_(None)) if parent_id is None else query.filter(Page.parent_id == parent_id)
    return query.order_by(Page.order.asc(), Page.title.asc()).all()


def list_folders(db: Session) -> list[Page]:
    return db.query(Page).filter(Page.type == PageType.folder).order_by(Page.title.asc()).all()


def get_page(db: Session, page_id: str) -> Page:
    page = db.get(Page, page_id)
    if not page:
        raise NotFoundError("page_not_found", details={"page_id": page_id})
    return page


def get_folder(db: Session, folder_id: str) -> Page:
    folder = get_page(db, folder_id)
    if folder.type != PageType.folder:
        raise BadRequestError("destination_not_a_folder", details={"parent_id": folder_id})
    return folder


def create_page(db: Session, payload: PageCreate, *, author_id: str | None) -> Page:
    if payload.book_id:
        get_book(db, payload.book_id)
    if payload.parent_id:
        get_folder(db, payload.parent_id)
    page = Page(
        book_id=payload.book_id,
        parent_id=payload.parent_id,
        title=payload.title,
        content=payload.content,
        order=payload.order,
        type=payload.type,
        status=PageStatus.draft,
        author_id=author_id,
    )
    db.add(page)
    db.flush()
    record_document_activity(db, page.type.value, page.id, "created", user_id=author_id)
    db.commit()
    db.refresh(page)
    if payload.status != PageStatus.draft:
        from intranet.services.review import transition_page

        page = transition_page(db, page, payload.status, actor_id=author_id)
    if page.type == PageType.page:
        enqueue_embedding("page", page.id)
    return page


def update_page(
    db: Session,
    page_id: str,
    payload: PageUpdate,
    *,
    actor_id: str | None,
    expected_version: int | None = None,
) -> Page:
    """Apply content, ordering, parent and status changes.

    Title and content edits are refused while the page is under review.
    """
    from intranet.services.review import ensure_editable, transition_page

    page = get_page(db, page_id)
    check_version("page", page, expected_version)
    changes = payload.model_dump(exclude_unset=True, exclude={"version"})
    target_status = changes.pop("status", None)

    if {"title", "content"} & changes.keys():
        ensure_editable(page)
    if "parent_id" in changes:
        move_page(db, page.id, changes.pop("parent_id"), actor_id=actor_id, commit=False)
    edited = False
    for key, value in changes.items():
        if getattr(page, key) != value:
            setattr(page, key, value)
            edited = True
    if edited:
        bump_version(page)
    db.commit()
    db.refresh(page)

    if target_status is not None and target_status != page.status:
        page = transition_page(db, page, target_status, actor_id=actor_id)
    if edited and {"title", "content"} & changes.keys() and page.type == PageType.page:
        enqueue_embedding("page", page.id)
    return page


def delete_page(db: Session, page_id: str, *, actor_id: str | None = None) -> None:
    page = get_page(db, page_id)
    record_document_activity(db, page.type.value, page.id, "deleted", user_id=actor_id, details={"title": page.title})
    db.delete(page)
    db.commit()


# ----- comments -----


def list_page_comments(db: Session, page_id: str) -> list[PageComment]:
    get_page(db, page_id)
    return db.query(PageComment).filter(PageComment.page_id == page_id).order_by(PageComment.created_at.asc()).all()


def add_page_comment(db: Session, page_id: str, payload: PageCommentCreate, *, user_id: str | None) -> PageComment:
    page = get_page(db, page_id)
    comment = PageComment(page_id=page.id, user_id=user_id, content=payload.content)
    db.add(comment)
    if page.author_id and page.author_id != user_id:
        queue_notification(
            db,
            user_id=page.author_id,
            title="New Comment",
            body=f'Someone commented on your page "{page.title}".',
            link=f"/documents?pageId={page.id}",
            source="documents",
            target_id=page.id,
        )
    db.commit()
    db.refresh(comment)
    return comment


# ----- moves -----


def _folder_edges(db: Session) -> dict[str, str | None]:
    rows = db.query(Page.id, Page.parent_id).filter(Page.type == PageType.folder).all()
    return {folder_id: parent_id for folder_id, parent_id in rows}


def is_descendant_folder(folder_id: str, candidate_id: str, parents: dict[str, str | None]) -> bool:
    """True when ``candidate_id`` sits somewhere below ``folder_id``."""
    seen: set[str] = set()
    current = parents.get(candidate_id)
    while current and current not in seen:
        if current == folder_id:
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def _location_name(db: Session, folder_id: str | None) -> str:
    if not folder_id:
        return ROOT_NAME
    folder = db.get(Page, folder_id)
    return folder.title if folder else ROOT_NAME


def move_page(db: Session, page_id: str, parent_id: str | None, *, actor_id: str | None, commit: bool = True) -> Page:
    page = get_page(db, page_id)
    if (page.parent_id or None) == (parent_id or None):
        return page
    if parent_id:
        get_folder(db, parent_id)
        if parent_id == page.id or (
            page.type == PageType.folder and is_descendant_folder(page.id, parent_id, _folder_edges(db))
        ):
            raise ConflictError("move_into_own_descendant", details={"page_id": page.id, "parent_id": parent_id})
    from_id = page.parent_id
    details = {
        "from": _location_name(db, from_id),
        "to": _location_name(db, parent_id),
        "from_id": from_id,
        "to_id": parent_id,
    }
    page.parent_id = parent_id
    page.moved_at = _utcnow()
    bump_version(page)
    record_document_activity(db, page.type.value, page.id, "moved", user_id=actor_id, details=details)
    logger.info("Moved %s %s from %s to %s", page.type.value, page.id, details["from"], details["to"])
    if commit:
        db.commit()
        db.refresh(page)
    return page


def move_book(db: Session, book_id: str, parent_id: str | None, *, actor_id: str | None, commit: bool = True) -> Book:
    book = get_book(db, book_id)
    if (book.parent_id or None) == (parent_id or None):
        return book
    if parent_id:
        get_folder(db, parent_id)
    details = {
        "from": _location_name(db, book.parent_id),
        "to": _location_name(db, parent_id),
        "from_id": book.parent_id,
        "to_id": parent_id,
    }
    book.parent_id = parent_id
    bump_version(book)
    record_document_activity(db, "book", book.id, "moved", user_id=actor_id, details=details)
    if commit:
        db.commit()
        db.refresh(book)
    return book
