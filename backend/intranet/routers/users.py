"""Admin endpoints for user management and invitations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.role import RoleAssignmentCreate, RoleAssignmentOut, RoleOut
from intranet.schemas.user import PasswordReset, UserCreate, UserInvite, UserOut, UserUpdate
from intranet.services import roles, users

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])

_manage = require_permission("manage_users")


@router.get("/", response_model=list[UserOut], dependencies=[Depends(_manage)])
def get_users(db: Session = Depends(get_db)) -> list[UserOut]:
    return [UserOut.model_validate(u) for u in users.list_users(db)]


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def post_user(payload: UserCreate, db: Session = Depends(get_db), current_user: User = Depends(_manage)) -> UserOut:
    return UserOut.model_validate(users.create_user(db, payload, actor_id=current_user.id))


@router.post("/invite", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def post_invite(payload: UserInvite, db: Session = Depends(get_db), current_user: User = Depends(_manage)) -> UserOut:
    return UserOut.model_validate(users.invite_user(db, payload, actor=current_user))


@router.get("/{user_id}", response_model=UserOut, dependencies=[Depends(_manage)])
def get_user(user_id: str, db: Session = Depends(get_db)) -> UserOut:
    return UserOut.model_validate(users.get_user(db, user_id))


@router.patch("/{user_id}", response_model=UserOut)
def patch_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(_manage),
) -> UserOut:
    return UserOut.model_validate(users.update_user(db, user_id, payload, actor_id=current_user.id))


@router.post("/{user_id}/reset-password", response_model=UserOut)
def post_reset_password(
    user_id: str,
    payload: PasswordReset,
    db: Session = Depends(get_db),
    current_user: User = Depends(_manage),
) -> UserOut:
    return UserOut.model_validate(users.reset_password(db, user_id, payload.password, actor_id=current_user.id))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, response_model=None)
def remove_user(user_id: str, db: Session = Depends(get_db), current_user: User = Depends(_manage)) -> Response:
    users.delete_user(db, user_id, actor_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----- custom role assignments -----


@router.get("/{user_id}/roles", response_model=list[RoleOut], dependencies=[Depends(require_permission("manage_roles"))])
def get_user_roles(user_id: str, db: Session = Depends(get_db)) -> list[RoleOut]:
    return [RoleOut.model_validate(role) for role in roles.list_user_roles(db, user_id)]


@router.post("/{user_id}/roles", response_model=RoleAssignmentOut, status_code=status.HTTP_201_CREATED)
def post_user_role(
    user_id: str,
    payload: RoleAssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_roles")),
) -> RoleAssignmentOut:
    return RoleAssignmentOut.model_validate(roles.assign_role(db, user_id, payload.role_id, actor_id=current_user.id))


@router.delete(
    "/{user_id}/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    response_model=None,
)
def remove_user_role(
    user_id: str,
    role_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_roles")),
) -> Response:
    roles.remove_role(db, user_id, role_id, actor_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
