"""Service helpers for user management and invitations."""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from intranet.core.config import settings
from intranet.core.exceptions import BadRequestError, ConflictError, NotFoundError
from intranet.core.security import generate_invite_token, hash_password
from intranet.models.user import User
from intranet.schemas.user import UserCreate, UserInvite, UserUpdate
from intranet.services.audit import record_audit
from intranet.services.departments import require_department
from intranet.services.email import build_invite_email, build_password_changed_email, send_email

logger = logging.getLogger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.name.asc()).all()


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("user_not_found", details={"user_id": user_id})
    return user


def find_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(func.lower(User.username) == username.lower()).first()


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.lower()).first()


def find_user_by_login(db: Session, login: str) -> User | None:
    if "@" in login:
        return find_user_by_email(db, login)
    return find_user_by_username(db, login)


def _ensure_unique(db: Session, *, username: str | None = None, email: str | None = None, exclude_id: str | None = None) -> None:
    if username:
        existing = find_user_by_username(db, username)
        if existing and existing.id != exclude_id:
            raise ConflictError("username_exists", details={"username": username})
    if email:
        existing = find_user_by_email(db, email)
        if existing and existing.id != exclude_id:
            raise ConflictError("email_exists", details={"email": email})


def create_user(db: Session, payload: UserCreate, *, actor_id: str | None = None) -> User:
    _ensure_unique(db, username=payload.username, email=payload.email)
    require_department(db, payload.department_id)
    user = User(
        username=payload.username,
        email=payload.email,
        name=payload.name,
        role=payload.role,
        department_id=payload.department_id,
        password_hash=hash_password(payload.password),
        is_active=True,
    )
    db.add(user)
    db.flush()
    record_audit(db, "user.created", "user", user.id, actor_id=actor_id, details={"username": user.username})
    db.commit()
    db.refresh(user)
    logger.info("User created: %s", user.username)
    return user


def update_user(db: Session, user_id: str, payload: UserUpdate, *, actor_id: str | None = None) -> User:
    user = get_user(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    _ensure_unique(db, username=changes.get("username"), email=changes.get("email"), exclude_id=user.id)
    if "department_id" in changes:
        require_department(db, changes["department_id"])
    for key, value in changes.items():
        setattr(user, key, value)
    if changes:
        record_audit(
            db,
            "user.updated",
            "user",
            user.id,
            actor_id=actor_id,
            details={"fields": sorted(changes)},
        )
    db.commit()
    db.refresh(user)
    return user


def invite_user(db: Session, payload: UserInvite, *, actor: User | None = None) -> User:
    """Create an inactive account holding an invite token and email the acceptance link."""
    _ensure_unique(db, email=payload.email)
    require_department(db, payload.department_id)
    token = generate_invite_token()
    placeholder = f"invite-{token[:12]}"
    user = User(
        username=placeholder,
        email=payload.email,
        name=payload.name,
        role=payload.role,
        department_id=payload.department_id,
        password_hash=None,
        is_active=False,
        invite_token=token,
        invite_expires_at=_utcnow() + dt.timedelta(hours=settings.INVITE_TOKEN_EXPIRE_HOURS),
    )
    db.add(user)
    db.flush()
    record_audit(db, "user.invited", "user", user.id, actor_id=actor.id if actor else None, details={"email": user.email})
    db.commit()
    db.refresh(user)
    subject, body, html_body = build_invite_email(user.name, token, actor.name if actor else None)
    send_email(user.email, subject, body, html_body=html_body)
    logger.info("User invited: %s", user.email)
    return user


def accept_invite(db: Session, token: str, *, username: str, password: str, now: dt.datetime | None = None) -> User:
    user = db.query(User).filter(User.invite_token == token).first()
    if not user:
        raise BadRequestError("invalid_invite_token")
    expires_at = user.invite_expires_at
    if expires_at is not None and expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=dt.timezone.utc)
    if expires_at is not None and expires_at < (now or _utcnow()):
        raise BadRequestError("invite_token_expired")
    _ensure_unique(db, username=username, exclude_id=user.id)
    user.username = username
    user.password_hash = hash_password(password)
    user.is_active = True
    user.invite_token = None
    user.invite_expires_at = None
    db.commit()
    db.refresh(user)
    logger.info("Invite accepted: %s", user.email)
    return user


def reset_password(db: Session, user_id: str, password: str, *, actor_id: str | None = None) -> User:
    user = get_user(db, user_id)
    user.password_hash = hash_password(password)
    record_audit(db, "user.password_reset", "user", user.id, actor_id=actor_id)
    db.commit()
    db.refresh(user)
    subject, body, html_body = build_password_changed_email(user.name)
    send_email(user.email, subject, body, html_body=html_body)
    logger.info("Password reset: %s", user.username)
    return user


def delete_user(db: Session, user_id: str, *, actor_id: str | None = None) -> None:
    user = get_user(db, user_id)
    record_audit(db, "user.deleted", "user", user.id, actor_id=actor_id, details={"username": user.username})
    db.delete(user)
    db.commit()
    logger.info("User deleted: %s", user.username)
