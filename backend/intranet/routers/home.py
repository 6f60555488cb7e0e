"""Intranet home endpoints: external links, announcements and the department feed."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.intranet import (
    AnnouncementCreate,
    AnnouncementOut,
    AnnouncementUpdate,
    ExternalLinkCreate,
    ExternalLinkOut,
    ExternalLinkUpdate,
    LikeResponse,
    PostCommentCreate,
    PostCommentOut,
    PostCreate,
    PostOut,
    PostUpdate,
    ReorderRequest,
)
from intranet.services import intranet as service

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])

_manage = Depends(require_permission("manage_content"))


# ----- external links -----


@router.get("/external-links", response_model=list[ExternalLinkOut])
def get_links(db: Session = Depends(get_db)) -> list[ExternalLinkOut]:
    return [ExternalLinkOut.model_validate(link) for link in service.list_links(db)]


@router.post("/external-links", response_model=ExternalLinkOut, status_code=status.HTTP_201_CREATED, dependencies=[_manage])
def post_link(payload: ExternalLinkCreate, db: Session = Depends(get_db)) -> ExternalLinkOut:
    return ExternalLinkOut.model_validate(service.create_link(db, payload))


@router.put("/external-links/reorder", response_model=list[ExternalLinkOut], dependencies=[_manage])
def reorder_links(payload: ReorderRequest, db: Session = Depends(get_db)) -> list[ExternalLinkOut]:
    return [ExternalLinkOut.model_validate(link) for link in service.reorder_links(db, payload.ids)]


@router.patch("/external-links/{link_id}", response_model=ExternalLinkOut, dependencies=[_manage])
def patch_link(link_id: str, payload: ExternalLinkUpdate, db: Session = Depends(get_db)) -> ExternalLinkOut:
    return ExternalLinkOut.model_validate(service.update_link(db, link_id, payload))


@router.delete(
    "/external-links/{link_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    response_model=None,
    dependencies=[_manage],
)
def remove_link(link_id: str, db: Session = Depends(get_db)) -> Response:
    service.delete_link(db, link_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----- announcements -----


@router.get("/announcements", response_model=list[AnnouncementOut])
def get_announcements(department_id: str | None = Query(default=None), db: Session = Depends(get_db)) -> list[AnnouncementOut]:
    return [AnnouncementOut.model_validate(a) for a in service.list_announcements(db, department_id=department_id)]


@router.get("/announcements/active", response_model=list[AnnouncementOut])
def get_active_announcements(
    department_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[AnnouncementOut]:
    rows = service.list_active_announcements(db, department_id=department_id or current_user.department_id)
    return [AnnouncementOut.model_validate(a) for a in rows]


@router.post("/announcements", response_model=AnnouncementOut, status_code=status.HTTP_201_CREATED)
def post_announcement(
    payload: AnnouncementCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_content")),
) -> AnnouncementOut:
    return AnnouncementOut.model_validate(service.create_announcement(db, payload, author_id=current_user.id))


@router.patch("/announcements/{announcement_id}", response_model=AnnouncementOut, dependencies=[_manage])
def patch_announcement(announcement_id: str, payload: AnnouncementUpdate, db: Session = Depends(get_db)) -> AnnouncementOut:
    return AnnouncementOut.model_validate(service.update_announcement(db, announcement_id, payload))


@router.delete(
    "/announcements/{announcement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    response_model=None,
    dependencies=[_manage],
)
def remove_announcement(announcement_id: str, db: Session = Depends(get_db)) -> Response:
    service.delete_announcement(db, announcement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----- feed -----


@router.get("/posts", response_model=list[PostOut])
def get_posts(
    department_id: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> list[PostOut]:
    return [PostOut(**post) for post in service.list_posts(db, department_id=department_id, limit=limit)]


@router.post("/posts", response_model=PostOut, status_code=status.HTTP_201_CREATED)
def post_post(
    payload: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostOut:
    return PostOut(**service.post_view(service.create_post(db, payload, author=current_user)))


@router.patch("/posts/{post_id}", response_model=PostOut)
def patch_post(
    post_id: str,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostOut:
    return PostOut(**service.post_view(service.update_post(db, post_id, payload, user=current_user)))


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, response_model=None)
def remove_post(post_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> Response:
    service.delete_post(db, post_id, user=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/posts/{post_id}/like", response_model=LikeResponse)
def post_like(post_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> LikeResponse:
    return LikeResponse(**service.toggle_like(db, post_id, user_id=current_user.id))


@router.get("/posts/{post_id}/comments", response_model=list[PostCommentOut])
def get_post_comments(post_id: str, db: Session = Depends(get_db)) -> list[PostCommentOut]:
    return [PostCommentOut.model_validate(c) for c in service.list_post_comments(db, post_id)]


@router.post("/posts/{post_id}/comments", response_model=PostCommentOut, status_code=status.HTTP_201_CREATED)
def post_post_comment(
    post_id: str,
    payload: PostCommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostCommentOut:
    return PostCommentOut.model_validate(service.add_post_comment(db, post_id, payload, author_id=current_user.id))
