"""Intranet home content: external links, announcements and the department feed."""

from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from intranet.core.exceptions import BadRequestError, InsufficientPermissionsError, NotFoundError
from intranet.core.rbac import has_permission
from intranet.models.intranet import Announcement, ExternalLink, Post, PostComment, PostLike
from intranet.models.user import User
from intranet.schemas.intranet import (
    AnnouncementCreate,
    AnnouncementUpdate,
    ExternalLinkCreate,
    ExternalLinkUpdate,
    PostCommentCreate,
    PostCreate,
    PostUpdate,
)
from intranet.services.departments import require_department

logger = logging.getLogger(__name__)

_HASHTAG_RE = re.compile(r"#(\w+)")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# ----- external links -----


def list_links(db: Session) -> list[ExternalLink]:
    return db.query(ExternalLink).order_by(ExternalLink.order.asc(), ExternalLink.title.asc()).all()


def get_link(db: Session, link_id: str) -> ExternalLink:
    link = db.get(ExternalLink, link_id)
    if not link:
        raise NotFoundError("external_link_not_found", details={"link_id": link_id})
    return link


def create_link(db: Session, payload: ExternalLinkCreate) -> ExternalLink:
    link = ExternalLink(**payload.model_dump())
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def update_link(db: Session, link_id: str, payload: ExternalLinkUpdate) -> ExternalLink:
    link = get_link(db, link_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(link, key, value)
    db.commit()
    db.refresh(link)
    return link


def delete_link(db: Session, link_id: str) -> None:
    db.delete(get_link(db, link_id))
    db.commit()


def reorder_links(db: Session, ids: list[str]) -> list[ExternalLink]:
    """Set ``order`` to each id's position in ``ids``."""
    links = {link.id: link for link in db.query(ExternalLink).filter(ExternalLink.id.in_(ids)).all()}
    missing = [link_id for link_id in ids if link_id not in links]
    if missing:
        raise BadRequestError("unknown_external_links", details={"ids": missing})
    for position, link_id in enumerate(ids):
        links[link_id].order = position
    db.commit()
    return list_links(db)


# ----- announcements -----


def is_announcement_active(announcement: Any, now: dt.datetime) -> bool:
    if not announcement.is_active:
        return False
    if announcement.starts_at and announcement.starts_at > now:
        return False
    if announcement.ends_at and announcement.ends_at <= now:
        return False
    return True


def list_announcements(db: Session, *, department_id: str | None = None) -> list[Announcement]:
    query = db.query(Announcement)
    if department_id:
        query = query.filter(or_(Announcement.department_id == department_id, Announcement.department_id.is_(None)))
    return query.order_by(Announcement.created_at.desc()).all()


def list_active_announcements(
    db: Session, *, department_id: str | None = None, now: dt.datetime | None = None
) -> list[Announcement]:
    now = now or _utcnow()
    query = db.query(Announcement).filter(
        Announcement.is_active.is_(True),
        or_(Announcement.starts_at.is_(None), Announcement.starts_at <= now),
        or_(Announcement.ends_at.is_(None), Announcement.ends_at > now),
    )
    if department_id:
        query = query.filter(or_(Announcement.department_id == department_id, Announcement.department_id.is_(None)))
    return query.order_by(Announcement.created_at.desc()).all()


def get_announcement(db: Session, announcement_id: str) -> Announcement:
    announcement = db.get(Announcement, announcement_id)
    if not announcement:
        raise NotFoundError("announcement_not_found", details={"announcement_id": announcement_id})
    return announcement


def create_announcement(db: Session, payload: AnnouncementCreate, *, author_id: str | None) -> Announcement:
    require_department(db, payload.department_id)
    announcement = Announcement(**payload.model_dump(), author_id=author_id)
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    logger.info("Announcement created: %s", announcement.id)
    return announcement


def update_announcement(db: Session, announcement_id: str, payload: AnnouncementUpdate) -> Announcement:
    announcement = get_announcement(db, announcement_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(announcement, key, value)
    if announcement.starts_at and announcement.ends_at and announcement.ends_at <= announcement.starts_at:
        raise BadRequestError("ends_at_before_starts_at")
    db.commit()
    db.refresh(announcement)
    return announcement


def delete_announcement(db: Session, announcement_id: str) -> None:
    db.delete(get_announcement(db, announcement_id))
    db.commit()


# ----- feed -----


def extract_hashtags(content: str) -> list[str]:
    seen: list[str] = []
    for tag in _HASHTAG_RE.findall(content or ""):
        lowered = tag.lower()
        if lowered not in seen:
            seen.append(lowered)
    return seen


def _counts(db: Session, model: Any, post_ids: list[str]) -> dict[str, int]:
    if not post_ids:
        return {}
    rows = db.query(model.post_id, func.count(model.id)).filter(model.post_id.in_(post_ids)).group_by(model.post_id).all()
    return {post_id: int(total) for post_id, total in rows}


def post_view(post: Post, *, likes: int = 0, comments: int = 0) -> dict[str, Any]:
    return {
        "id": post.id,
        "author_id": post.author_id,
        "department_id": post.department_id,
        "content": post.content,
        "hashtags": extract_hashtags(post.content),
        "like_count": likes,
        "comment_count": comments,
        "created_at": post.created_at,
    }


def list_posts(db: Session, *, department_id: str | None = None, limit: int = 50) -> list[dict[str, Any]]:
    query = db.query(Post)
    if department_id:
        query = query.filter(Post.department_id == department_id)
    posts = query.order_by(Post.created_at.desc()).limit(limit).all()
    ids = [post.id for post in posts]
    likes = _counts(db, PostLike, ids)
    comments = _counts(db, PostComment, ids)
    return [post_view(post, likes=likes.get(post.id, 0), comments=comments.get(post.id, 0)) for post in posts]


def get_post(db: Session, post_id: str) -> Post:
    post = db.get(Post, post_id)
    if not post:
        raise NotFoundError("post_not_found", details={"post_id": post_id})
    return post


def create_post(db: Session, payload: PostCreate, *, author: User) -> Post:
    department_id = payload.department_id or author.department_id
    require_department(db, department_id)
    post = Post(author_id=author.id, department_id=department_id, content=payload.content)
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def _ensure_post_owner(post: Post, user: User) -> None:
    if post.author_id != user.id and not has_permission(user, "manage_content"):
        raise InsufficientPermissionsError("not_post_author")


def update_post(db: Session, post_id: str, payload: PostUpdate, *, user: User) -> Post:
    post = get_post(db, post_id)
    _ensure_post_owner(post, user)
    post.content = payload.content
    db.commit()
    db.refresh(post)
    return post


def delete_post(db: Session, post_id: str, *, user: User) -> None:
    post = get_post(db, post_id)
    _ensure_post_owner(post, user)
    db.delete(post)
    db.commit()


def toggle_like(db: Session, post_id: str, *, user_id: str) -> dict[str, Any]:
    post = get_post(db, post_id)
    existing = db.query(PostLike).filter(PostLike.post_id == post.id, PostLike.user_id == user_id).first()
    if existing:
        db.delete(existing)
        liked = False
    else:
        db.add(PostLike(post_id=post.id, user_id=user_id))
        liked = True
    db.commit()
    count = db.query(PostLike).filter(PostLike.post_id == post.id).count()
    return {"liked": liked, "like_count": count}


def list_post_comments(db: Session, post_id: str) -> list[PostComment]:
    get_post(db, post_id)
    return db.query(PostComment).filter(PostComment.post_id == post_id).order_by(PostComment.created_at.asc()).all()


def add_post_comment(db: Session, post_id: str, payload: PostCommentCreate, *, author_id: str) -> PostComment:
    post = get_post(db, post_id)
    comment = PostComment(post_id=post.id, author_id=author_id, content=payload.content)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment
