"""Queue, list and resolve in-app notifications about tickets and pages."""

from __future__ import annotations

import datetime as dt
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from intranet.models.notification import Notification


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def list_notifications(
    db: Session,
    *,
    user_id: str,
    unread_only: bool = False,
    source: str | None = None,
    target_id: str | None = None,
    limit: int = 20,
) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    if source:
        query = query.filter(Notification.source == source)
    if target_id:
        query = query.filter(Notification.target_id == target_id)
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def unread_counts(db: Session, *, user_id: str) -> dict[str, int]:
    """Unread totals keyed by source; alerts without a source count as ``system``."""
    rows = (
        db.query(Notification.source, func.count(Notification.id))
        .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
        .group_by(Notification.source)
        .all()
    )
    counts: dict[str, int] = {}
    for source, count in rows:
        key = source or "system"
        counts[key] = counts.get(key, 0) + int(count)
    return counts


def queue_notification(
    db: Session,
    *,
    user_id: str,
    title: str,
    body: str | None = None,
    severity: str = "info",
    link: str | None = None,
    source: str | None = None,
    target_id: str | None = None,
) -> Notification:
    """Add a notification to the current unit of work without committing."""
    record = Notification(
        user_id=user_id,
        title=title[:255],
        body=body,
        severity=severity,
        link=link,
        source=source,
        target_id=target_id,
    )
    db.add(record)
    return record


def notify_users(db: Session, user_ids: Iterable[str | None], *, title: str, **fields) -> list[Notification]:
    """Queue one notification per distinct recipient; ``None`` ids are skipped."""
    return [
        queue_notification(db, user_id=user_id, title=title, **fields)
        for user_id in dict.fromkeys(uid for uid in user_ids if uid)
    ]


def has_unread_for_target(db: Session, *, user_id: str, target_id: str, title: str) -> bool:
    return (
        db.query(Notification)
        .filter(
            Notification.user_id == user_id,
            Notification.target_id == target_id,
            Notification.title == title,
            Notification.read_at.is_(None),
        )
        .first()
        is not None
    )


def resolve_target_notifications(db: Session, *, target_id: str, title: str | None = None) -> int:
    """Mark unread alerts about ``target_id`` read once the thing they ask for is done. Caller commits."""
    query = db.query(Notification).filter(Notification.target_id == target_id, Notification.read_at.is_(None))
    if title:
        query = query.filter(Notification.title == title)
    return int(query.update({"read_at": utcnow()}, synchronize_session=False) or 0)


def mark_notification_as_read(db: Session, *, user_id: str, notification_id: str) -> Notification | None:
    record = db.get(Notification, notification_id)
    if not record or record.user_id != user_id:
        return None
    if record.read_at is None:
        record.read_at = utcnow()
        db.commit()
        db.refresh(record)
    return record


def mark_all_notifications_as_read(db: Session, *, user_id: str, source: str | None = None) -> int:
    query = db.query(Notification).filter(Notification.user_id == user_id, Notification.read_at.is_(None))
    if source:
        query = query.filter(Notification.source == source)
    updated = query.update({"read_at": utcnow()}, synchronize_session=False)
    db.commit()
    return int(updated or 0)
