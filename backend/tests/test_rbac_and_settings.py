from __future__ import annotations

from types import SimpleNamespace

import pytest

from intranet.core.exceptions import BadRequestError, NotFoundError
from intranet.core.rbac import can_view_internal_comments, can_view_ticket, granted_permissions, has_permission
from intranet.models.enums import UserRole
from intranet.models.settings import SettingsAudit
from intranet.services import roles, settings as settings_service


def _user(role: UserRole, *, user_id: str = "u-1", department_id: str | None = "it", custom_roles=None):
    return SimpleNamespace(id=user_id, role=role, department_id=department_id, custom_roles=custom_roles or [])


def _ticket(**overrides):
    base = dict(created_by="someone", assigned_to=None, department_id="hr")
    base.update(overrides)
    return SimpleNamespace(**base)


# ----- rbac -----


def test_base_role_matrix() -> None:
    assert has_permission(_user(UserRole.admin), "manage_roles")
    assert has_permission(_user(UserRole.agent), "review_documents")
    assert not has_permission(_user(UserRole.agent), "manage_settings")
    assert has_permission(_user(UserRole.user), "create_ticket")
    assert not has_permission(_user(UserRole.user), "review_documents")
    assert not has_permission(_user(UserRole.viewer), "create_ticket")


def test_custom_roles_extend_base_grants() -> None:
    editor = SimpleNamespace(permission_keys=["manage_content", "review_documents"])
    viewer = _user(UserRole.viewer, custom_roles=[editor])

    assert {"view_documents", "manage_content", "review_documents"} <= granted_permissions(viewer)
    assert not has_permission(viewer, "manage_users")


def test_ticket_visibility_rules() -> None:
    requester = _user(UserRole.user, user_id="req", department_id="finance")

    assert can_view_ticket(requester, _ticket(created_by="req"))
    assert can_view_ticket(requester, _ticket(assigned_to="req"))
    assert can_view_ticket(requester, _ticket(department_id="finance"))
    assert not can_view_ticket(requester, _ticket())
    assert not can_view_ticket(_user(UserRole.user, department_id=None), _ticket(department_id=None))
    assert can_view_ticket(_user(UserRole.agent), _ticket())
    assert can_view_internal_comments(_user(UserRole.agent))
    assert not can_view_internal_comments(requester)


# ----- settings -----


def test_later_layers_override_earlier_ones() -> None:
    merged = settings_service.merge_settings(
        {"companyName": "Intranet", "dateFormat": "DD/MM/YYYY"},
        {"companyName": "Acme"},
        {"dateFormat": "YYYY-MM-DD"},
    )

    assert merged == {"companyName": "Acme", "dateFormat": "YYYY-MM-DD"}


def test_setting_categories() -> None:
    assert settings_service.setting_category("emailDigestFrequency") == "notifications"
    assert settings_service.setting_category("primaryColor") == "branding"
    assert settings_service.setting_category("defaultTimezone") == "localization"
    assert settings_service.setting_category("ticketRetentionDays") == "retention"
    assert settings_service.setting_category("somethingElse") == "general"


class _SettingsDB:
    def __init__(self, rows=None):
        self.rows = rows or {}
        self.added: list = []
        self.commits = 0

    def get(self, _model, key):
        return self.rows.get(key)

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.commits += 1

    def refresh(self, _obj):
        return None


def test_unchanged_value_writes_no_audit_row() -> None:
    row = SimpleNamespace(key="companyName", value="Acme", updated_by=None)
    db = _SettingsDB({"companyName": row})

    settings_service.set_system_setting(db, "companyName", "Acme", actor_id="admin")
    assert db.added == []

    settings_service.set_system_setting(db, "companyName", "Acme Corp", actor_id="admin")
    audits = [obj for obj in db.added if isinstance(obj, SettingsAudit)]
    assert len(audits) == 1
    assert (audits[0].scope, audits[0].old_value, audits[0].new_value) == ("global", "Acme", "Acme Corp")
    assert row.value == "Acme Corp"


def test_default_is_returned_until_overridden() -> None:
    db = _SettingsDB()

    assert settings_service.get_system_setting(db, "timeFormat") == {"key": "timeFormat", "value": "24h"}
    with pytest.raises(NotFoundError):
        settings_service.get_system_setting(db, "doesNotExist")


# ----- roles -----


def test_validate_permissions_rejects_unknown_keys() -> None:
    assert roles.validate_permissions(["use_ai", "view_tickets", "use_ai"]) == ["use_ai", "view_tickets"]
    with pytest.raises(BadRequestError):
        roles.validate_permissions(["launch_rockets"])


def test_system_roles_cannot_be_renamed_deleted_or_regranted(monkeypatch) -> None:
    system_role = SimpleNamespace(id="r-sys", name="Super Admin", is_system=True, permission_keys=[])
    monkeypatch.setattr(roles, "get_role", lambda _db, _role_id: system_role)

    with pytest.raises(BadRequestError):
        roles.update_role(SimpleNamespace(), "r-sys", roles.RoleUpdate(name="Renamed"), actor_id="admin")
    with pytest.raises(BadRequestError):
        roles.delete_role(SimpleNamespace(), "r-sys", actor_id="admin")
    with pytest.raises(BadRequestError):
        roles.set_role_permissions(SimpleNamespace(), "r-sys", ["use_ai"], actor_id="admin")


def test_permission_catalog_lists_every_key() -> None:
    keys = [item["key"] for item in roles.permission_catalog()]

    assert "manage_helpdesks" in keys
    assert len(keys) == len(set(keys))
