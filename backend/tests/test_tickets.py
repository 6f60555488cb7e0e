from __future__ import annotations

import datetime as dt
from types import SimpleNamespace

import pytest

from intranet.core.exceptions import BadRequestError, VersionConflictError
from intranet.models.enums import TicketPriority, TicketSource
from intranet.schemas.ticket import TicketCreate, TicketUpdate
from intranet.services import tickets

CREATED = dt.datetime(2026, 3, 2, 8, 0, tzinfo=dt.timezone.utc)


def _ticket(**overrides):
    base = dict(
        id="tk-1",
        helpdesk_id="hd-1",
        title="Printer jammed",
        description="Floor 2",
        priority=TicketPriority.medium,
        state_id="open",
        department_id="it",
        assigned_to=None,
        created_by="req",
        created_at=CREATED,
        state_changed_at=None,
        resolved_at=None,
        first_responded_at=None,
        first_response_due_at=None,
        resolution_due_at=None,
        version=2,
    )
    base.update(overrides)
    return SimpleNamespace(**base)


class _FakeDB:
    def __init__(self):
        self.commits = 0

    def commit(self):
        self.commits += 1

    def refresh(self, _obj):
        return None


@pytest.fixture
def wired(monkeypatch):
    ticket = _ticket()
    calls = {"activity": [], "notified": [], "embedded": [], "events": []}
    states = [
        SimpleNamespace(id="open", is_final=False, is_default=True, order=0),
        SimpleNamespace(id="done", is_final=True, is_default=False, order=1),
    ]
    monkeypatch.setattr(tickets, "get_ticket", lambda _db, _ticket_id: ticket)
    monkeypatch.setattr(tickets, "ensure_state_in_helpdesk", lambda *_args: None)
    monkeypatch.setattr(tickets, "list_states", lambda _db, _helpdesk_id: states)
    monkeypatch.setattr(
        tickets,
        "policy_for_priority",
        lambda _db, _helpdesk_id, priority: SimpleNamespace(first_response_hours=1, resolution_hours=4)
        if priority == TicketPriority.urgent
        else None,
    )
    monkeypatch.setattr(
        tickets, "record_activity", lambda _db, _ticket_id, action, **kwargs: calls["activity"].append((action, kwargs))
    )
    monkeypatch.setattr(tickets, "queue_notification", lambda _db, **kwargs: calls["notified"].append(kwargs))
    monkeypatch.setattr(tickets, "enqueue_embedding", lambda kind, item_id: calls["embedded"].append((kind, item_id)))
    monkeypatch.setattr(tickets, "dispatch_ticket_event", lambda _db, _ticket, event: calls["events"].append(event))
    return ticket, calls


def test_first_response_rules() -> None:
    fresh = _ticket()

    assert tickets.is_first_response(fresh, SimpleNamespace(user_id="agent", is_internal=False))
    assert not tickets.is_first_response(fresh, SimpleNamespace(user_id="req", is_internal=False))
    assert not tickets.is_first_response(fresh, SimpleNamespace(user_id="agent", is_internal=True))
    assert not tickets.is_first_response(fresh, SimpleNamespace(user_id=None, is_internal=False))
    answered = _ticket(first_responded_at=CREATED)
    assert not tickets.is_first_response(answered, SimpleNamespace(user_id="agent", is_internal=False))


def test_unchanged_update_keeps_version(wired) -> None:
    ticket, calls = wired
    db = _FakeDB()

    tickets.update_ticket(db, "tk-1", TicketUpdate(title="Printer jammed"), actor_id="agent")

    assert ticket.version == 2
    assert db.commits == 0
    assert calls["events"] == []


def test_state_cannot_be_cleared(wired) -> None:
    with pytest.raises(BadRequestError):
        tickets.update_ticket(_FakeDB(), "tk-1", TicketUpdate(state_id=None), actor_id="agent")


def test_stale_version_is_rejected(wired) -> None:
    with pytest.raises(VersionConflictError):
        tickets.update_ticket(_FakeDB(), "tk-1", TicketUpdate(title="New"), actor_id="agent", expected_version=1)


def test_final_state_resolves_and_reopen_clears(wired) -> None:
    ticket, calls = wired
    db = _FakeDB()

    tickets.update_ticket(db, "tk-1", TicketUpdate(state_id="done"), actor_id="agent", expected_version=2)

    assert ticket.resolved_at is not None
    assert ticket.state_changed_at is not None
    assert ticket.version == 3
    assert calls["activity"][0][0] == "state_changed"
    assert calls["activity"][0][1]["details"] == {"field": "state_id", "from": "open", "to": "done"}
    assert calls["events"] == ["ticket.updated"]

    tickets.update_ticket(db, "tk-1", TicketUpdate(state_id="open"), actor_id="agent")
    assert ticket.resolved_at is None


def test_priority_change_recomputes_due_dates(wired) -> None:
    ticket, calls = wired

    tickets.update_ticket(_FakeDB(), "tk-1", TicketUpdate(priority=TicketPriority.urgent), actor_id="agent")

    assert ticket.first_response_due_at == CREATED + dt.timedelta(hours=1)
    assert ticket.resolution_due_at == CREATED + dt.timedelta(hours=4)
    assert calls["activity"][0][0] == "priority_changed"


def test_assignment_notifies_and_text_change_reembeds(wired) -> None:
    ticket, calls = wired

    tickets.update_ticket(
        _FakeDB(), "tk-1", TicketUpdate(assigned_to="agent-2", title="Printer on fire"), actor_id="agent"
    )

    assert calls["notified"][0]["user_id"] == "agent-2"
    assert calls["embedded"] == [("ticket", "tk-1")]
    assert sorted(action for action, _ in calls["activity"]) == ["assigned", "updated"]
    assert ticket.version == 3


class _CreateDB(_FakeDB):
    def __init__(self):
        super().__init__()
        self.added: list = []

    def add(self, obj):
        self.added.append(obj)

    def flush(self):
        for obj in self.added:
            obj.id = obj.id or "tk-new"


@pytest.mark.parametrize("assigned_to, overridden", [("u2", True), ("u1", False)])
def test_created_activity_records_whether_suggested_assignee_was_kept(wired, monkeypatch, assigned_to, overridden) -> None:
    _, calls = wired
    monkeypatch.setattr(tickets, "get_helpdesk", lambda _db, helpdesk_id: SimpleNamespace(id=helpdesk_id, enabled=True, department_id="it"))
    monkeypatch.setattr(tickets, "require_department", lambda *_args, **_kwargs: None)
    monkeypatch.setattr(tickets, "ensure_category_in_helpdesk", lambda *_args: None)
    payload = TicketCreate(
        helpdesk_id="hd-1",
        title="VPN keeps dropping",
        assigned_to=assigned_to,
        source=TicketSource.quick,
        ai_suggested_assignee_id="u1",
    )

    ticket = tickets.create_ticket(_CreateDB(), payload, created_by="req", validate_fields=False)

    assert ticket.state_id == "open"
    action, kwargs = calls["activity"][0]
    assert action == "created"
    assert kwargs["details"]["assignee_overridden"] is overridden
    assert calls["notified"][0]["target_id"] == ticket.id
