"""Escalation rule evaluation and application for helpdesk tickets."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Iterator

from sqlalchemy.orm import Session

from intranet.core.concurrency import bump_version
from intranet.models.enums import ConditionOperator, EscalationTrigger, LogicOperator
from intranet.models.helpdesk import EscalationRule
from intranet.models.ticket import Ticket
from intranet.services.departments import manager_user_ids
from intranet.services.helpdesks import final_state_ids, get_helpdesk, list_helpdesks, list_rules, list_states
from intranet.services.notifications_service import queue_notification
from intranet.services.sla.clock import as_utc, hours_between
from intranet.services.tickets import record_activity

logger = logging.getLogger(__name__)

_CUSTOM_FIELD_PREFIX = "custom_fields."


@dataclass
class EscalationAction:
    ticket_id: str
    rule_id: str
    rule_name: str
    target_department_id: str | None = None
    target_user_id: str | None = None
    notified_user_ids: list[str] = field(default_factory=list)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _plain(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def ticket_field_value(ticket: Any, name: str, *, now: dt.datetime) -> Any:
    if name == "age_hours":
        return hours_between(ticket.created_at, now)
    if name == "hours_in_state":
        return hours_between(ticket.state_changed_at or ticket.created_at, now)
    if name.startswith(_CUSTOM_FIELD_PREFIX):
        return (ticket.custom_fields or {}).get(name[len(_CUSTOM_FIELD_PREFIX):])
    return _plain(getattr(ticket, name, None))


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(_plain(value)).strip().lower()


def _number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def evaluate_condition(condition: Any, ticket: Any, *, now: dt.datetime) -> bool:
    actual = ticket_field_value(ticket, condition.field, now=now)
    expected = condition.value
    operator = ConditionOperator(_plain(condition.operator))

    if operator == ConditionOperator.is_empty:
        return _text(actual) == ""
    if operator == ConditionOperator.equals:
        return _text(actual) == _text(expected)
    if operator == ConditionOperator.not_equals:
        return _text(actual) != _text(expected)
    if operator == ConditionOperator.contains:
        return _text(expected) in _text(actual)
    if operator == ConditionOperator.not_contains:
        return _text(expected) not in _text(actual)
    if operator == ConditionOperator.in_:
        options = {_text(item) for item in str(expected or "").split(",") if item.strip()}
        return _text(actual) in options
    left, right = _number(actual), _number(expected)
    if left is None or right is None:
        return False
    if operator == ConditionOperator.greater_than:
        return left > right
    return left < right


def evaluate_conditions(conditions: Iterable[Any], ticket: Any, *, now: dt.datetime) -> bool:
    """Fold the chain strictly left to right: ``((c1 op2 c2) op3 c3) ...``.

    ``op_k`` is the logic operator stored on condition k; the first condition's
    operator is ignored. An empty chain is true.
    """
    ordered = sorted(conditions, key=lambda item: item.order or 0)
    if not ordered:
        return True
    result = evaluate_condition(ordered[0], ticket, now=now)
    for condition in ordered[1:]:
        current = evaluate_condition(condition, ticket, now=now)
        if LogicOperator(_plain(condition.logic_operator)) == LogicOperator.or_:
            result = result or current
        else:
            result = result and current
    return result


def trigger_fires(rule: Any, ticket: Any, *, now: dt.datetime) -> bool:
    trigger = EscalationTrigger(_plain(rule.trigger_type))
    if trigger == EscalationTrigger.sla_breach:
        due = as_utc(ticket.resolution_due_at)
        return due is not None and now > due
    if trigger == EscalationTrigger.first_response_breach:
        due = as_utc(ticket.first_response_due_at)
        return due is not None and ticket.first_responded_at is None and now > due
    threshold = float(rule.trigger_hours or 0)
    return hours_between(ticket.state_changed_at or ticket.created_at, now) >= threshold


def rule_matches(rule: Any, ticket: Any, *, now: dt.datetime, final_states: set[str]) -> bool:
    if not rule.enabled:
        return False
    if ticket.state_id in final_states:
        return False
    if rule.id in (ticket.escalated_rule_ids or []):
        return False
    if rule.priority is not None and _plain(rule.priority) != _plain(ticket.priority):
        return False
    if rule.ticket_type and rule.ticket_type != ticket.ticket_type:
        return False
    if rule.from_state_id and rule.from_state_id != ticket.state_id:
        return False
    if not trigger_fires(rule, ticket, now=now):
        return False
    return evaluate_conditions(rule.conditions or [], ticket, now=now)


def select_rule(rules: Iterable[Any], ticket: Any, *, now: dt.datetime, final_states: set[str]) -> Any | None:
    """First matching rule by ``order``."""
    for rule in sorted(rules, key=lambda item: (item.order or 0, item.name or "")):
        if rule_matches(rule, ticket, now=now, final_states=final_states):
            return rule
    return None


def apply_escalation(
    db: Session,
    ticket: Ticket,
    rule: EscalationRule,
    *,
    now: dt.datetime | None = None,
    actor_id: str | None = None,
) -> EscalationAction:
    """Apply a matched rule in place. Caller is responsible for commit."""
    now = now or _utcnow()
    before = {"department_id": ticket.department_id, "assigned_to": ticket.assigned_to}
    if rule.target_department_id:
        ticket.department_id = rule.target_department_id
    if rule.target_user_id:
        ticket.assigned_to = rule.target_user_id
    ticket.escalation_level = int(ticket.escalation_level or 0) + 1
    ticket.escalated_rule_ids = [*(ticket.escalated_rule_ids or []), rule.id]
    ticket.last_escalated_at = now
    bump_version(ticket)

    action = EscalationAction(
        ticket_id=ticket.id,
        rule_id=rule.id,
        rule_name=rule.name,
        target_department_id=rule.target_department_id,
        target_user_id=rule.target_user_id,
    )
    if rule.notify_managers and ticket.department_id:
        for user_id in manager_user_ids(db, ticket.department_id):
            queue_notification(
                db,
                user_id=user_id,
                title=f"Ticket escalated: {ticket.title}",
                body=f"Rule '{rule.name}' escalated this ticket (level {ticket.escalation_level}).",
                severity="warning",
                link=f"/helpdesk/tickets/{ticket.id}",
                source="escalation",
                target_id=ticket.id,
            )
            action.notified_user_ids.append(user_id)
    record_activity(
        db,
        ticket.id,
        "escalated",
        actor_id=actor_id,
        details={"rule_id": rule.id, "rule_name": rule.name, "before": before, "level": ticket.escalation_level},
        commit=False,
    )
    db.flush()
    logger.info("Escalated ticket %s with rule %s (level %s)", ticket.id, rule.name, ticket.escalation_level)
    return action


def _open_tickets(query: Any, batch_size: int) -> Iterator[Ticket]:
    ordered = query.order_by(Ticket.created_at.asc(), Ticket.id.asc())
    offset = 0
    while True:
        batch = ordered.offset(offset).limit(batch_size).all()
        yield from batch
        if len(batch) < batch_size:
            return
        offset += batch_size


def run_escalation_sweep(
    db: Session,
    *,
    helpdesk_id: str | None = None,
    dry_run: bool = False,
    batch_size: int = 200,
    now: dt.datetime | None = None,
) -> dict[str, Any]:
    """Evaluate every open ticket, fetched in pages of ``batch_size``."""
    now = now or _utcnow()
    helpdesks = [get_helpdesk(db, helpdesk_id)] if helpdesk_id else [h for h in list_helpdesks(db) if h.enabled]
    evaluated = 0
    actions: list[dict[str, Any]] = []
    for helpdesk in helpdesks:
        rules = [rule for rule in list_rules(db, helpdesk.id) if rule.enabled]
        if not rules:
            continue
        rule_ids = {rule.id for rule in rules}
        finals = final_state_ids(list_states(db, helpdesk.id))
        query = db.query(Ticket).filter(Ticket.helpdesk_id == helpdesk.id)
        if finals:
            query = query.filter((Ticket.state_id.is_(None)) | (Ticket.state_id.notin_(finals)))
        for ticket in _open_tickets(query, batch_size):
            # every enabled rule already fired on it
            if rule_ids <= set(ticket.escalated_rule_ids or []):
                continue
            evaluated += 1
            rule = select_rule(rules, ticket, now=now, final_states=finals)
            if rule is None:
                continue
            if dry_run:
                actions.append(asdict(EscalationAction(
                    ticket_id=ticket.id,
                    rule_id=rule.id,
                    rule_name=rule.name,
                    target_department_id=rule.target_department_id,
                    target_user_id=rule.target_user_id,
                )))
                continue
            actions.append(asdict(apply_escalation(db, ticket, rule, now=now)))
    if not dry_run and actions:
        db.commit()
    return {"dry_run": dry_run, "evaluated": evaluated, "escalated": len(actions), "actions": actions}
