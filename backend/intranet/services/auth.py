"""Service helpers for login and access token issuing."""

from __future__ import annotations

import logging
from uuid import uuid4

from sqlalchemy.orm import Session

from intranet.core.security import create_access_token, verify_password
from intranet.models.user import User
from intranet.services.users import find_user_by_login

logger = logging.getLogger(__name__)


def _build_claims(user: User) -> dict[str, str]:
    return {"sub": str(user.id), "role": user.role.value}


def authenticate_user(db: Session, login: str, password: str) -> User | None:
    user = find_user_by_login(db, login)
    if not user or not user.password_hash:
        logger.warning("Login failed: user not found (%s)", login)
        return None
    if not verify_password(password, user.password_hash):
        logger.warning("Login failed: invalid password (%s)", login)
        return None
    if not user.is_active:
        logger.warning("Login failed: inactive user (%s)", login)
        return None
    logger.info("User authenticated: %s", user.username)
    return user


def issue_access_token(user: User) -> str:
    return create_access_token({**_build_claims(user), "jti": str(uuid4())})
