from __future__ import annotations

import datetime as dt
from types import SimpleNamespace

from intranet.models.enums import ConditionOperator, EscalationTrigger, LogicOperator, TicketPriority
from intranet.services.sla import clock, escalation

NOW = dt.datetime(2026, 3, 2, 12, 0, tzinfo=dt.timezone.utc)


def _ticket(**overrides):
    base = dict(
        id="tk-1",
        title="Mail relay down",
        priority=TicketPriority.high,
        ticket_type="incident",
        state_id="open",
        department_id="it",
        assigned_to=None,
        custom_fields={"site": "Paris"},
        created_at=NOW - dt.timedelta(hours=10),
        state_changed_at=None,
        first_response_due_at=NOW - dt.timedelta(hours=6),
        resolution_due_at=NOW + dt.timedelta(hours=14),
        first_responded_at=None,
        resolved_at=None,
        escalation_level=0,
        escalated_rule_ids=[],
        last_escalated_at=None,
        version=1,
    )
    base.update(overrides)
    return SimpleNamespace(**base)


def _cond(field: str, operator: ConditionOperator, value: str | None, *, logic=LogicOperator.and_, order: int = 0):
    return SimpleNamespace(field=field, operator=operator, value=value, logic_operator=logic, order=order)


def _rule(rule_id: str, **overrides):
    base = dict(
        id=rule_id,
        name=rule_id,
        enabled=True,
        trigger_type=EscalationTrigger.time_based,
        trigger_hours=4,
        priority=None,
        ticket_type=None,
        from_state_id=None,
        target_department_id=None,
        target_user_id=None,
        notify_managers=False,
        order=0,
        conditions=[],
    )
    base.update(overrides)
    return SimpleNamespace(**base)


# ----- clock -----


def test_due_dates_from_policy() -> None:
    policy = SimpleNamespace(first_response_hours=2, resolution_hours=24.5)
    created = dt.datetime(2026, 3, 1, 8, 0)

    first, resolution = clock.compute_due_dates(created, policy)

    assert first == dt.datetime(2026, 3, 1, 10, 0, tzinfo=dt.timezone.utc)
    assert resolution == dt.datetime(2026, 3, 2, 8, 30, tzinfo=dt.timezone.utc)
    assert clock.compute_due_dates(created, None) == (None, None)


def test_sla_status_transitions() -> None:
    responded = _ticket(first_responded_at=NOW - dt.timedelta(hours=9))
    assert clock.sla_status(responded, final_state_ids=set(), now=NOW) == "ok"

    assert clock.sla_status(_ticket(), final_state_ids=set(), now=NOW) == "breached"

    near_due = _ticket(first_responded_at=NOW, resolution_due_at=NOW + dt.timedelta(hours=1))
    assert clock.sla_status(near_due, final_state_ids=set(), now=NOW) == "at_risk"

    closed = _ticket(state_id="closed", resolved_at=NOW)
    assert clock.sla_status(closed, final_state_ids={"closed"}, now=NOW) == "completed"

    no_policy = _ticket(resolution_due_at=None, first_response_due_at=None)
    assert clock.sla_status(no_policy, final_state_ids=set(), now=NOW) == "unknown"


def test_remaining_minutes() -> None:
    assert clock.remaining_minutes(_ticket(), now=NOW) == 14 * 60
    assert clock.remaining_minutes(_ticket(resolution_due_at=None), now=NOW) is None


# ----- conditions -----


def test_condition_operators() -> None:
    ticket = _ticket()

    assert escalation.evaluate_condition(_cond("priority", ConditionOperator.equals, "HIGH"), ticket, now=NOW)
    assert escalation.evaluate_condition(_cond("custom_fields.site", ConditionOperator.contains, "par"), ticket, now=NOW)
    assert escalation.evaluate_condition(_cond("ticket_type", ConditionOperator.in_, "incident, problem"), ticket, now=NOW)
    assert escalation.evaluate_condition(_cond("assigned_to", ConditionOperator.is_empty, None), ticket, now=NOW)
    assert escalation.evaluate_condition(_cond("age_hours", ConditionOperator.greater_than, "8"), ticket, now=NOW)
    assert not escalation.evaluate_condition(_cond("age_hours", ConditionOperator.less_than, "abc"), ticket, now=NOW)


def test_conditions_fold_left_to_right_without_precedence() -> None:
    ticket = _ticket()
    true_ = _cond("priority", ConditionOperator.equals, "high", order=0)
    false_ = _cond("priority", ConditionOperator.equals, "low", logic=LogicOperator.or_, order=1)
    and_false = _cond("ticket_type", ConditionOperator.equals, "request", logic=LogicOperator.and_, order=2)

    # (true OR false) AND false == false; precedence would give true OR (false AND false) == true.
    assert escalation.evaluate_conditions([and_false, true_, false_], ticket, now=NOW) is False
    assert escalation.evaluate_conditions([], ticket, now=NOW) is True


# ----- rules -----


def test_first_matching_rule_by_order_wins_and_fires_once() -> None:
    ticket = _ticket()
    late = _rule("late", order=5)
    early = _rule("early", order=1, priority=TicketPriority.high)
    wrong_priority = _rule("urgent-only", order=0, priority=TicketPriority.urgent)

    chosen = escalation.select_rule([late, early, wrong_priority], ticket, now=NOW, final_states=set())
    assert chosen is early

    ticket.escalated_rule_ids = ["early"]
    assert escalation.select_rule([late, early], ticket, now=NOW, final_states=set()) is late


def test_rules_skip_final_states_and_unmet_triggers() -> None:
    ticket = _ticket(state_id="resolved")
    assert escalation.select_rule([_rule("r")], ticket, now=NOW, final_states={"resolved"}) is None

    fresh = _ticket(created_at=NOW - dt.timedelta(hours=1))
    assert escalation.select_rule([_rule("r", trigger_hours=4)], fresh, now=NOW, final_states=set()) is None


def test_breach_triggers() -> None:
    ticket = _ticket()
    first_response = _rule("fr", trigger_type=EscalationTrigger.first_response_breach)
    resolution = _rule("sla", trigger_type=EscalationTrigger.sla_breach)

    assert escalation.trigger_fires(first_response, ticket, now=NOW) is True
    assert escalation.trigger_fires(resolution, ticket, now=NOW) is False
    ticket.first_responded_at = NOW - dt.timedelta(hours=8)
    assert escalation.trigger_fires(first_response, ticket, now=NOW) is False


class _FakeDB:
    def __init__(self):
        self.flushes = 0

    def flush(self):
        self.flushes += 1


def test_apply_escalation_reassigns_and_notifies_managers(monkeypatch) -> None:
    notifications: list[dict] = []
    activities: list[tuple] = []
    monkeypatch.setattr(escalation, "manager_user_ids", lambda _db, department_id: ["mgr-1", "mgr-2"])
    monkeypatch.setattr(escalation, "queue_notification", lambda _db, **kwargs: notifications.append(kwargs))
    monkeypatch.setattr(
        escalation,
        "record_activity",
        lambda _db, ticket_id, action, **kwargs: activities.append((ticket_id, action, kwargs["details"])),
    )
    ticket = _ticket()
    rule = _rule("to-infra", target_department_id="infra", target_user_id="lead", notify_managers=True)
    db = _FakeDB()

    action = escalation.apply_escalation(db, ticket, rule, now=NOW)

    assert ticket.department_id == "infra"
    assert ticket.assigned_to == "lead"
    assert ticket.escalation_level == 1
    assert ticket.escalated_rule_ids == ["to-infra"]
    assert ticket.last_escalated_at == NOW
    assert ticket.version == 2
    assert action.notified_user_ids == ["mgr-1", "mgr-2"]
    assert {n["user_id"] for n in notifications} == {"mgr-1", "mgr-2"}
    assert activities == [
        (
            "tk-1",
            "escalated",
            {"rule_id": "to-infra", "rule_name": "to-infra", "before": {"department_id": "it", "assigned_to": None}, "level": 1},
        )
    ]
    assert db.flushes == 1


class _PagedQuery:
    def __init__(self, rows):
        self._rows = rows
        self._offset = 0
        self._limit = None

    def filter(self, *_args):
        return self

    def order_by(self, *_args):
        return self

    def offset(self, value):
        page = _PagedQuery(self._rows)
        page._offset = value
        return page

    def limit(self, value):
        self._limit = value
        return self

    def all(self):
        return self._rows[self._offset:self._offset + self._limit]


class _SweepDB:
    def __init__(self, tickets):
        self.tickets = tickets

    def query(self, _model):
        return _PagedQuery(self.tickets)


def test_sweep_reaches_tickets_beyond_the_first_page(monkeypatch) -> None:
    rule = _rule("r1")
    helpdesk = SimpleNamespace(id="hd-1", enabled=True)
    monkeypatch.setattr(escalation, "get_helpdesk", lambda _db, _helpdesk_id: helpdesk)
    monkeypatch.setattr(escalation, "list_rules", lambda _db, _helpdesk_id: [rule])
    monkeypatch.setattr(escalation, "list_states", lambda _db, _helpdesk_id: [])
    tickets = [
        _ticket(id="old-1", escalated_rule_ids=["r1"]),
        _ticket(id="old-2", escalated_rule_ids=["r1"]),
        _ticket(id="new-1"),
    ]

    result = escalation.run_escalation_sweep(_SweepDB(tickets), helpdesk_id="hd-1", dry_run=True, batch_size=2, now=NOW)

    assert result["escalated"] == 1
    assert result["evaluated"] == 1
    assert [action["ticket_id"] for action in result["actions"]] == ["new-1"]
