"""Page endpoints: CRUD, comments, review transitions, moves, versions and activity."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from intranet.core.concurrency import check_version, resolve_expected_version
from intranet.core.deps import expected_version, get_current_user, require_permission
from intranet.core.exceptions import InsufficientPermissionsError
from intranet.core.rate_limit import rate_limit
from intranet.core.rbac import has_permission
from intranet.db.session import get_db
from intranet.models.enums import PageStatus
from intranet.models.user import User
from intranet.schemas.document import (
    DocumentActivityOut,
    MoveRequest,
    PageCommentCreate,
    PageCommentOut,
    PageCreate,
    PageOut,
    PageTransition,
    PageUpdate,
    PageVersionOut,
    VersionCreate,
)
from intranet.services import documents, versions
from intranet.services.embeddings import update_page_embedding
from intranet.services.review import transition_page

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])

_read = Depends(require_permission("view_documents"))


@router.get("/", response_model=list[PageOut], dependencies=[_read])
def get_pages(
    parent_id: str | None = Query(default=None),
    standalone: bool = Query(default=False),
    folders_only: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[PageOut]:
    if folders_only:
        pages = documents.list_folders(db)
    elif standalone:
        pages = documents.list_standalone_pages(db)
    else:
        pages = documents.list_children(db, parent_id)
    return [PageOut.model_validate(page) for page in pages]


@router.post("/", response_model=PageOut, status_code=status.HTTP_201_CREATED)
def post_page(
    payload: PageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> PageOut:
    return PageOut.model_validate(documents.create_page(db, payload, author_id=current_user.id))


@router.get("/{page_id}", response_model=PageOut, dependencies=[_read])
def get_page(page_id: str, db: Session = Depends(get_db)) -> PageOut:
    return PageOut.model_validate(documents.get_page(db, page_id))


@router.patch("/{page_id}", response_model=PageOut)
def patch_page(
    page_id: str,
    payload: PageUpdate,
    if_match: int | None = Depends(expected_version),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> PageOut:
    if payload.status == PageStatus.published and not has_permission(current_user, "review_documents"):
        raise InsufficientPermissionsError("forbidden")
    page = documents.update_page(
        db,
        page_id,
        payload,
        actor_id=current_user.id,
        expected_version=resolve_expected_version(payload.version, if_match),
    )
    return PageOut.model_validate(page)


@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_page(
    page_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> None:
    documents.delete_page(db, page_id, actor_id=current_user.id)


@router.post("/{page_id}/transition", response_model=PageOut)
def post_transition(
    page_id: str,
    payload: PageTransition,
    if_match: int | None = Depends(expected_version),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> PageOut:
    page = documents.get_page(db, page_id)
    check_version("page", page, resolve_expected_version(payload.version, if_match))
    if payload.status == PageStatus.published and not has_permission(current_user, "review_documents"):
        raise InsufficientPermissionsError("forbidden")
    return PageOut.model_validate(transition_page(db, page, payload.status, actor_id=current_user.id))


@router.post("/{page_id}/move", response_model=PageOut)
def move_page(
    page_id: str,
    payload: MoveRequest,
    if_match: int | None = Depends(expected_version),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> PageOut:
    check_version("page", documents.get_page(db, page_id), resolve_expected_version(payload.version, if_match))
    return PageOut.model_validate(documents.move_page(db, page_id, payload.parent_id, actor_id=current_user.id))


@router.post("/{page_id}/update-embedding", dependencies=[Depends(require_permission("edit_documents"))])
def post_update_embedding(page_id: str, db: Session = Depends(get_db)) -> dict[str, bool]:
    documents.get_page(db, page_id)
    return {"updated": update_page_embedding(db, page_id)}


# ----- comments -----


@router.get("/{page_id}/comments", response_model=list[PageCommentOut], dependencies=[_read])
def get_page_comments(page_id: str, db: Session = Depends(get_db)) -> list[PageCommentOut]:
    return [PageCommentOut.model_validate(c) for c in documents.list_page_comments(db, page_id)]


@router.post("/{page_id}/comments", response_model=PageCommentOut, status_code=status.HTTP_201_CREATED)
def post_page_comment(
    page_id: str,
    payload: PageCommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_documents")),
) -> PageCommentOut:
    return PageCommentOut.model_validate(documents.add_page_comment(db, page_id, payload, user_id=current_user.id))


@router.get("/{page_id}/activity", response_model=list[DocumentActivityOut], dependencies=[_read])
def get_page_activity(
    page_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[DocumentActivityOut]:
    documents.get_page(db, page_id)
    return [DocumentActivityOut.model_validate(row) for row in documents.list_document_activity(db, "page", page_id, limit=limit)]


# ----- versions -----


@router.get("/{page_id}/versions", response_model=list[PageVersionOut], dependencies=[_read])
def get_page_versions(
    page_id: str,
    include_archived: bool = Query(default=True),
    db: Session = Depends(get_db),
) -> list[PageVersionOut]:
    rows = versions.list_page_versions(db, page_id, include_archived=include_archived)
    return [PageVersionOut.model_validate(v) for v in rows]


@router.post("/{page_id}/versions", response_model=PageVersionOut, status_code=status.HTTP_201_CREATED)
def post_page_version(
    page_id: str,
    payload: VersionCreate = Body(default=VersionCreate()),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> PageVersionOut:
    version = versions.create_page_version(
        db, page_id, author_id=current_user.id, change_description=payload.change_description
    )
    return PageVersionOut.model_validate(version)


@router.get("/{page_id}/versions/compare", dependencies=[_read])
def compare_page_versions(
    page_id: str,
    v1: int = Query(..., ge=1),
    v2: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = versions.compare_page_versions(db, page_id, v1, v2)
    return {
        "version1": PageVersionOut.model_validate(result["version1"]),
        "version2": PageVersionOut.model_validate(result["version2"]),
        "comparison": result["comparison"],
    }


@router.get("/{page_id}/versions/{version_number}", response_model=PageVersionOut, dependencies=[_read])
def get_page_version(page_id: str, version_number: int, db: Session = Depends(get_db)) -> PageVersionOut:
    return PageVersionOut.model_validate(versions.get_page_version(db, page_id, version_number))


@router.post("/{page_id}/versions/{version_number}/revert", response_model=PageOut)
def revert_page(
    page_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> PageOut:
    return PageOut.model_validate(versions.revert_page(db, page_id, version_number, actor_id=current_user.id))


@router.post("/{page_id}/versions/{version_number}/archive", response_model=PageVersionOut)
def archive_page_version(
    page_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> PageVersionOut:
    version = versions.set_page_version_archived(db, page_id, version_number, True, actor_id=current_user.id)
    return PageVersionOut.model_validate(version)


@router.post("/{page_id}/versions/{version_number}/restore", response_model=PageVersionOut)
def restore_page_version(
    page_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> PageVersionOut:
    version = versions.set_page_version_archived(db, page_id, version_number, False, actor_id=current_user.id)
    return PageVersionOut.model_validate(version)


@router.delete("/{page_id}/versions/{version_number}", status_code=status.HTTP_204_NO_CONTENT)
def remove_page_version(
    page_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_documents")),
) -> None:
    versions.delete_page_version(db, page_id, version_number, actor_id=current_user.id)
