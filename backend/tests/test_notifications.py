from __future__ import annotations

from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from intranet.core.exceptions import NotFoundError
from intranet.routers import notifications as notifications_router
from intranet.schemas.notification import NotificationBroadcast, NotificationOut
from intranet.services import notifications_service


class _InboxDB:
    def __init__(self, users=()):
        self.users = set(users)
        self.added: list = []
        self.commits = 0

    def add(self, obj):
        self.added.append(obj)

    def get(self, _model, user_id):
        return SimpleNamespace(id=user_id) if user_id in self.users else None

    def commit(self):
        self.commits += 1


def test_notify_users_skips_blank_and_repeated_recipients() -> None:
    db = _InboxDB()

    records = notifications_service.notify_users(
        db, ["u1", None, "u2", "u1"], title="Ticket escalated", source="escalation", target_id="t-1"
    )

    assert [record.user_id for record in records] == ["u1", "u2"]
    assert {record.target_id for record in db.added} == {"t-1"}
    assert db.commits == 0


def test_notification_out_reports_read_state() -> None:
    record = notifications_service.queue_notification(_InboxDB(), user_id="u1", title="x" * 300, target_id="pg-1")
    record.id = "n-1"
    record.created_at = notifications_service.utcnow()

    out = NotificationOut.model_validate(record)

    assert len(out.title) == 255
    assert out.target_id == "pg-1"
    assert out.is_read is False
    record.read_at = notifications_service.utcnow()
    assert NotificationOut.model_validate(record).is_read is True


def test_broadcast_needs_recipients() -> None:
    with pytest.raises(ValidationError):
        NotificationBroadcast(title="Office closed")

    payload = NotificationBroadcast(title="  Office closed ", severity="LOUD", department_id="dep-1")
    assert payload.title == "Office closed"
    assert payload.severity == "info"


def test_broadcast_reaches_department_members_once(monkeypatch) -> None:
    db = _InboxDB(users={"u1"})
    monkeypatch.setattr(notifications_router, "get_department", lambda _db, department_id: SimpleNamespace(id=department_id))
    monkeypatch.setattr(
        notifications_router,
        "department_members",
        lambda _db, _department_id: [SimpleNamespace(id="u1"), SimpleNamespace(id="u2")],
    )
    payload = NotificationBroadcast(title="Office closed", user_ids=["u1"], department_id="dep-1")

    result = notifications_router.broadcast_notification(payload=payload, db=db, current_user=SimpleNamespace(id="admin"))

    assert result.sent == 2
    assert sorted(record.user_id for record in db.added) == ["u1", "u2"]
    assert {record.source for record in db.added} == {"announcement"}
    assert db.commits == 1


def test_broadcast_rejects_unknown_users() -> None:
    payload = NotificationBroadcast(title="Office closed", user_ids=["ghost"])

    with pytest.raises(NotFoundError):
        notifications_router.broadcast_notification(payload=payload, db=_InboxDB(), current_user=SimpleNamespace(id="a"))
