"""Numbered snapshots of pages and books."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from intranet.core.concurrency import bump_version
from intranet.core.exceptions import NotFoundError
from intranet.models.document import BookVersion, PageVersion
from intranet.services.documents import get_book, get_page, record_document_activity
from intranet.services.review import ensure_editable

logger = logging.getLogger(__name__)


def _next_number(db: Session, model: Any, owner_column: Any, owner_id: str) -> int:
    latest = db.query(func.max(model.version_number)).filter(owner_column == owner_id).scalar()
    return int(latest or 0) + 1


def revert_note(version_number: int) -> str:
    return f"Auto-saved before reverting to version {version_number}"


def compare_versions(first: Any, second: Any) -> dict[str, bool]:
    return {
        "title_changed": first.title != second.title,
        "content_changed": first.content != second.content,
        "status_changed": first.status != second.status,
    }


# ----- pages -----


def list_page_versions(db: Session, page_id: str, *, include_archived: bool = True) -> list[PageVersion]:
    get_page(db, page_id)
    query = db.query(PageVersion).filter(PageVersion.page_id == page_id)
    if not include_archived:
        query = query.filter(PageVersion.is_archived.is_(False))
    return query.order_by(PageVersion.version_number.desc()).all()


def get_page_version(db: Session, page_id: str, version_number: int) -> PageVersion:
    version = (
        db.query(PageVersion)
        .filter(PageVersion.page_id == page_id, PageVersion.version_number == version_number)
        .first()
    )
    if not version:
        raise NotFoundError("page_version_not_found", details={"page_id": page_id, "version_number": version_number})
    return version


def _snapshot_page(db: Session, page: Any, *, author_id: str | None, change_description: str | None) -> PageVersion:
    version = PageVersion(
        page_id=page.id,
        version_number=_next_number(db, PageVersion, PageVersion.page_id, page.id),
        title=page.title,
        content=page.content,
        status=page.status.value,
        author_id=author_id,
        change_description=change_description,
    )
    db.add(version)
    db.flush()
    return version


def create_page_version(
    db: Session, page_id: str, *, author_id: str | None, change_description: str | None = None
) -> PageVersion:
    page = get_page(db, page_id)
    version = _snapshot_page(db, page, author_id=author_id, change_description=change_description)
    record_document_activity(
        db, "page", page.id, "version_created", user_id=author_id, details={"version_number": version.version_number}
    )
    db.commit()
    db.refresh(version)
    return version


def revert_page(db: Session, page_id: str, version_number: int, *, actor_id: str | None) -> Any:
    """Snapshot the current page, then restore title and content from ``version_number``."""
    page = get_page(db, page_id)
    ensure_editable(page)
    target = get_page_version(db, page_id, version_number)
    _snapshot_page(db, page, author_id=actor_id, change_description=revert_note(version_number))
    page.title = target.title
    page.content = target.content
    bump_version(page)
    record_document_activity(
        db, "page", page.id, "reverted", user_id=actor_id, details={"version_number": version_number}
    )
    db.commit()
    db.refresh(page)
    logger.info("Reverted page %s to version %s", page.id, version_number)
    return page


def set_page_version_archived(
    db: Session, page_id: str, version_number: int, archived: bool, *, actor_id: str | None
) -> PageVersion:
    version = get_page_version(db, page_id, version_number)
    version.is_archived = archived
    record_document_activity(
        db,
        "page",
        page_id,
        "version_archived" if archived else "version_restored",
        user_id=actor_id,
        details={"version_number": version_number},
    )
    db.commit()
    db.refresh(version)
    return version


def delete_page_version(db: Session, page_id: str, version_number: int, *, actor_id: str | None) -> None:
    version = get_page_version(db, page_id, version_number)
    record_document_activity(
        db, "page", page_id, "version_deleted", user_id=actor_id, details={"version_number": version_number}
    )
    db.delete(version)
    db.commit()


def compare_page_versions(db: Session, page_id: str, first: int, second: int) -> dict[str, Any]:
    v1 = get_page_version(db, page_id, first)
    v2 = get_page_version(db, page_id, second)
    return {"version1": v1, "version2": v2, "comparison": compare_versions(v1, v2)}


# ----- books -----


def list_book_versions(db: Session, book_id: str) -> list[BookVersion]:
    get_book(db, book_id)
    return (
        db.query(BookVersion)
        .filter(BookVersion.book_id == book_id)
        .order_by(BookVersion.version_number.desc())
        .all()
    )


def get_book_version(db: Session, book_id: str, version_number: int) -> BookVersion:
    version = (
        db.query(BookVersion)
        .filter(BookVersion.book_id == book_id, BookVersion.version_number == version_number)
        .first()
    )
    if not version:
        raise NotFoundError("book_version_not_found", details={"book_id": book_id, "version_number": version_number})
    return version


def _snapshot_book(db: Session, book: Any, *, author_id: str | None, change_description: str | None) -> BookVersion:
    version = BookVersion(
        book_id=book.id,
        version_number=_next_number(db, BookVersion, BookVersion.book_id, book.id),
        title=book.title,
        description=book.description,
        author_id=author_id,
        change_description=change_description,
    )
    db.add(version)
    db.flush()
    return version


def create_book_version(
    db: Session, book_id: str, *, author_id: str | None, change_description: str | None = None
) -> BookVersion:
    book = get_book(db, book_id)
    version = _snapshot_book(db, book, author_id=author_id, change_description=change_description)
    record_document_activity(
        db, "book", book.id, "version_created", user_id=author_id, details={"version_number": version.version_number}
    )
    db.commit()
    db.refresh(version)
    return version


def revert_book(db: Session, book_id: str, version_number: int, *, actor_id: str | None) -> Any:
    book = get_book(db, book_id)
    target = get_book_version(db, book_id, version_number)
    _snapshot_book(db, book, author_id=actor_id, change_description=revert_note(version_number))
    book.title = target.title
    book.description = target.description
    bump_version(book)
    record_document_activity(
        db, "book", book.id, "reverted", user_id=actor_id, details={"version_number": version_number}
    )
    db.commit()
    db.refresh(book)
    return book


def set_book_version_archived(
    db: Session, book_id: str, version_number: int, archived: bool, *, actor_id: str | None
) -> BookVersion:
    version = get_book_version(db, book_id, version_number)
    version.is_archived = archived
    record_document_activity(
        db,
        "book",
        book_id,
        "version_archived" if archived else "version_restored",
        user_id=actor_id,
        details={"version_number": version_number},
    )
    db.commit()
    db.refresh(version)
    return version


def delete_book_version(db: Session, book_id: str, version_number: int, *, actor_id: str | None) -> None:
    version = get_book_version(db, book_id, version_number)
    record_document_activity(
        db, "book", book_id, "version_deleted", user_id=actor_id, details={"version_number": version_number}
    )
    db.delete(version)
    db.commit()
