"""Centralized RBAC policy: base-role matrix plus custom role grants."""

from __future__ import annotations

from intranet.models.enums import UserRole
from intranet.models.user import User

Permission = str

PERMISSION_CATALOG: dict[Permission, str] = {
    "view_documents": "Read books and pages",
    "edit_documents": "Create and edit books and pages",
    "review_documents": "Approve and publish pages under review",
    "view_tickets": "List and read helpdesk tickets",
    "create_ticket": "Open tickets through any intake",
    "comment_ticket": "Comment on tickets",
    "manage_tickets": "Assign, transition and edit tickets",
    "manage_helpdesks": "Configure helpdesks, SLA, escalation and forms",
    "manage_departments": "Edit departments, hierarchy and managers",
    "manage_users": "Invite and edit users",
    "manage_roles": "Create roles and grant permissions",
    "manage_settings": "Edit global and department settings",
    "manage_content": "Publish links and announcements",
    "use_ai": "Request AI routing suggestions",
}

ROLE_PERMISSIONS: dict[UserRole, set[Permission]] = {
    UserRole.admin: set(PERMISSION_CATALOG),
    UserRole.agent: {
        "view_documents",
        "edit_documents",
        "review_documents",
        "view_tickets",
        "create_ticket",
        "comment_ticket",
        "manage_tickets",
        "use_ai",
    },
    UserRole.user: {
        "view_documents",
        "edit_documents",
        "view_tickets",
        "create_ticket",
        "comment_ticket",
        "use_ai",
    },
    UserRole.viewer: {
        "view_documents",
        "view_tickets",
    },
}


def granted_permissions(user: User) -> set[Permission]:
    permissions = set(ROLE_PERMISSIONS.get(user.role, set()))
    for role in getattr(user, "custom_roles", None) or []:
        permissions.update(role.permission_keys)
    return permissions


def has_permission(user: User, permission: Permission) -> bool:
    return permission in granted_permissions(user)


def is_admin(user: User) -> bool:
    return user.role == UserRole.admin


def can_view_ticket(user: User, ticket) -> bool:
    if has_permission(user, "manage_tickets"):
        return True
    if str(ticket.created_by or "") == str(user.id):
        return True
    if str(ticket.assigned_to or "") == str(user.id):
        return True
    return bool(user.department_id) and ticket.department_id == user.department_id


def can_view_internal_comments(user: User) -> bool:
    return has_permission(user, "manage_tickets")
