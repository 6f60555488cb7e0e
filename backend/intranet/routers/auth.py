"""Authentication endpoints (login, current user, logout, invite acceptance)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from intranet.core.config import settings
from intranet.core.deps import get_current_user
from intranet.core.exceptions import AuthenticationException
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.auth import AcceptInviteRequest, LoginRequest, MessageResponse, TokenResponse
from intranet.schemas.user import UserOut
from intranet.services.auth import authenticate_user, issue_access_token
from intranet.services.users import accept_invite

router = APIRouter(dependencies=[Depends(rate_limit("auth"))])
logger = logging.getLogger(__name__)


def _set_auth_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        settings.COOKIE_NAME,
        access_token,
        httponly=True,
        samesite="lax",
        secure=settings.ENV != "development",
        path="/",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def _token_response(response: Response, user: User) -> TokenResponse:
    token = issue_access_token(user)
    _set_auth_cookie(response, token)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login_user(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> TokenResponse:
    user = authenticate_user(db, payload.login, payload.password)
    if not user:
        raise AuthenticationException("invalid_credentials", error_code="INVALID_CREDENTIALS", status_code=401)
    return _token_response(response, user)


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(current_user)


@router.post("/logout", response_model=MessageResponse)
def logout_user(response: Response) -> MessageResponse:
    response.delete_cookie(settings.COOKIE_NAME, path="/")
    return MessageResponse(message="logged_out")


@router.post("/accept-invite", response_model=TokenResponse)
def post_accept_invite(payload: AcceptInviteRequest, response: Response, db: Session = Depends(get_db)) -> TokenResponse:
    user = accept_invite(db, payload.token, username=payload.username, password=payload.password)
    logger.info("Invite accepted: %s", user.username)
    return _token_response(response, user)
