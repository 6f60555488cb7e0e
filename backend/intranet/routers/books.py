"""Book endpoints: CRUD, pages, versions and moves."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from intranet.core.concurrency import check_version, resolve_expected_version
from intranet.core.deps import expected_version, get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.document import (
    BookCreate,
    BookOut,
    BookUpdate,
    BookVersionOut,
    DocumentActivityOut,
    MoveRequest,
    PageOut,
    VersionCreate,
)
from intranet.services import documents, versions

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])

_read = Depends(require_permission("view_documents"))


@router.get("/", response_model=list[BookOut], dependencies=[_read])
def get_books(db: Session = Depends(get_db)) -> list[BookOut]:
    return [BookOut.model_validate(book) for book in documents.list_books(db)]


@router.post("/", response_model=BookOut, status_code=status.HTTP_201_CREATED)
def post_book(
    payload: BookCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> BookOut:
    return BookOut.model_validate(documents.create_book(db, payload, author_id=current_user.id))


@router.get("/{book_id}", response_model=BookOut, dependencies=[_read])
def get_book(book_id: str, db: Session = Depends(get_db)) -> BookOut:
    return BookOut.model_validate(documents.get_book(db, book_id))


@router.patch("/{book_id}", response_model=BookOut)
def patch_book(
    book_id: str,
    payload: BookUpdate,
    if_match: int | None = Depends(expected_version),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> BookOut:
    book = documents.update_book(
        db,
        book_id,
        payload,
        actor_id=current_user.id,
        expected_version=resolve_expected_version(payload.version, if_match),
    )
    return BookOut.model_validate(book)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_book(
    book_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> None:
    documents.delete_book(db, book_id, actor_id=current_user.id)


@router.get("/{book_id}/pages", response_model=list[PageOut], dependencies=[_read])
def get_book_pages(book_id: str, db: Session = Depends(get_db)) -> list[PageOut]:
    return [PageOut.model_validate(page) for page in documents.list_pages(db, book_id)]


@router.post("/{book_id}/move", response_model=BookOut)
def move_book(
    book_id: str,
    payload: MoveRequest,
    if_match: int | None = Depends(expected_version),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> BookOut:
    check_version("book", documents.get_book(db, book_id), resolve_expected_version(payload.version, if_match))
    return BookOut.model_validate(documents.move_book(db, book_id, payload.parent_id, actor_id=current_user.id))


@router.get("/{book_id}/activity", response_model=list[DocumentActivityOut], dependencies=[_read])
def get_book_activity(
    book_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[DocumentActivityOut]:
    documents.get_book(db, book_id)
    return [DocumentActivityOut.model_validate(row) for row in documents.list_document_activity(db, "book", book_id, limit=limit)]


# ----- versions -----


@router.get("/{book_id}/versions", response_model=list[BookVersionOut], dependencies=[_read])
def get_book_versions(book_id: str, db: Session = Depends(get_db)) -> list[BookVersionOut]:
    return [BookVersionOut.model_validate(v) for v in versions.list_book_versions(db, book_id)]


@router.post("/{book_id}/versions", response_model=BookVersionOut, status_code=status.HTTP_201_CREATED)
def post_book_version(
    book_id: str,
    payload: VersionCreate = Body(default=VersionCreate()),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> BookVersionOut:
    version = versions.create_book_version(
        db, book_id, author_id=current_user.id, change_description=payload.change_description
    )
    return BookVersionOut.model_validate(version)


@router.get("/{book_id}/versions/{version_number}", response_model=BookVersionOut, dependencies=[_read])
def get_book_version(book_id: str, version_number: int, db: Session = Depends(get_db)) -> BookVersionOut:
    return BookVersionOut.model_validate(versions.get_book_version(db, book_id, version_number))


@router.post("/{book_id}/versions/{version_number}/revert", response_model=BookOut)
def revert_book(
    book_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> BookOut:
    return BookOut.model_validate(versions.revert_book(db, book_id, version_number, actor_id=current_user.id))


@router.post("/{book_id}/versions/{version_number}/archive", response_model=BookVersionOut)
def archive_book_version(
    book_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> BookVersionOut:
    version = versions.set_book_version_archived(db, book_id, version_number, True, actor_id=current_user.id)
    return BookVersionOut.model_validate(version)


@router.post("/{book_id}/versions/{version_number}/restore", response_model=BookVersionOut)
def restore_book_version(
    book_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> BookVersionOut:
    version = versions.set_book_version_archived(db, book_id, version_number, False, actor_id=current_user.id)
    return BookVersionOut.model_validate(version)


@router.delete("/{book_id}/versions/{version_number}", status_code=status.HTTP_204_NO_CONTENT)
def remove_book_version(
    book_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> None:
    versions.delete_book_version(db, book_id, version_number, actor_id=current_user.id)
