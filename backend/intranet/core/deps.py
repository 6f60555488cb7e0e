"""Common FastAPI dependencies for authentication and authorization."""

from __future__ import annotations

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from intranet.core.config import settings
from intranet.core.exceptions import AuthenticationException, BadRequestError, ExpiredTokenError, InsufficientPermissionsError
from intranet.core.rbac import has_permission
from intranet.core.security import ACCESS_TOKEN_TYPE, decode_token
from intranet.db.session import get_db
from intranet.models.enums import UserRole
from intranet.models.user import User


def _extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None


def _invalid_token() -> AuthenticationException:
    return AuthenticationException("invalid_token", error_code="INVALID_TOKEN", status_code=401)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = _extract_bearer_token(request) or request.cookies.get(settings.COOKIE_NAME)
    if not token:
        raise AuthenticationException("not_authenticated", error_code="NOT_AUTHENTICATED", status_code=401)

    try:
        payload = decode_token(token)
    except ValueError as exc:
        if str(exc) == "expired_token":
            raise ExpiredTokenError("access_token_expired")
        raise _invalid_token()
    token_type = payload.get("type")
    if token_type and token_type != ACCESS_TOKEN_TYPE:
        raise _invalid_token()
    user_id = payload.get("sub")
    if not user_id:
        raise _invalid_token()

    user = db.get(User, str(user_id))
    if not user:
        raise AuthenticationException("user_not_found", error_code="USER_NOT_FOUND", status_code=401)
    if not user.is_active:
        raise AuthenticationException("user_inactive", error_code="USER_INACTIVE", status_code=403)
    return user


def require_permission(permission: str):
    def _checker(user: User = Depends(get_current_user)) -> User:
        if not has_permission(user, permission):
            raise InsufficientPermissionsError("forbidden")
        return user

    return _checker


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.admin:
        raise InsufficientPermissionsError("forbidden")
    return user


def expected_version(if_match: str | None = Header(default=None, alias="If-Match")) -> int | None:
    """Version number carried by an ``If-Match`` header (``"3"`` or ``W/"3"``)."""
    if not if_match:
        return None
    raw = if_match.strip()
    if raw.startswith("W/"):
        raw = raw[2:]
    raw = raw.strip('"')
    try:
        return int(raw)
    except ValueError as exc:
        raise BadRequestError("invalid_if_match_header", details={"if_match": if_match}) from exc
