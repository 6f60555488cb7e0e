"""Helpdesk CRUD with SLA states, policies, escalation rules, email intake and webhooks."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from intranet.core.exceptions import BadRequestError, ConflictError, NotFoundError
from intranet.models.helpdesk import (
    EscalationCondition,
    EscalationRule,
    Helpdesk,
    HelpdeskWebhook,
    InboundEmailConfig,
    SlaPolicy,
    SlaState,
)
from intranet.models.enums import TicketPriority
from intranet.schemas.helpdesk import (
    EscalationConditionCreate,
    EscalationConditionUpdate,
    EscalationRuleCreate,
    EscalationRuleUpdate,
    HelpdeskCreate,
    HelpdeskUpdate,
    InboundEmailConfigCreate,
    InboundEmailConfigUpdate,
    SlaPolicyCreate,
    SlaPolicyUpdate,
    SlaStateCreate,
    SlaStateUpdate,
    WebhookCreate,
    WebhookUpdate,
    normalize_webhook_events,
)
from intranet.services.departments import get_department

logger = logging.getLogger(__name__)

DEFAULT_SLA_STATES: tuple[dict[str, Any], ...] = (
    {"name": "Open", "color": "#3b82f6", "order": 0, "is_default": True, "is_final": False},
    {"name": "In Progress", "color": "#f59e0b", "order": 1, "is_default": False, "is_final": False},
    {"name": "Pending", "color": "#8b5cf6", "order": 2, "is_default": False, "is_final": False},
    {"name": "Resolved", "color": "#10b981", "order": 3, "is_default": False, "is_final": True},
    {"name": "Closed", "color": "#6b7280", "order": 4, "is_default": False, "is_final": True},
)


def default_state(states: list[Any]) -> Any | None:
    """The flagged default state, else the lowest ordered one."""
    if not states:
        return None
    flagged = [state for state in states if state.is_default]
    if flagged:
        return flagged[0]
    return sorted(states, key=lambda state: state.order or 0)[0]


def final_state_ids(states: list[Any]) -> set[str]:
    return {state.id for state in states if state.is_final}


# ----- helpdesks -----


def list_helpdesks(db: Session) -> list[Helpdesk]:
    return db.query(Helpdesk).order_by(Helpdesk.name.asc()).all()


def get_helpdesk(db: Session, helpdesk_id: str) -> Helpdesk:
    helpdesk = db.get(Helpdesk, helpdesk_id)
    if not helpdesk:
        raise NotFoundError("helpdesk_not_found", details={"helpdesk_id": helpdesk_id})
    return helpdesk


def get_helpdesk_for_department(db: Session, department_id: str) -> Helpdesk | None:
    return db.query(Helpdesk).filter(Helpdesk.department_id == department_id).first()


def create_helpdesk(db: Session, payload: HelpdeskCreate) -> tuple[Helpdesk, bool]:
    """Return ``(helpdesk, created)``; a department keeps a single helpdesk."""
    get_department(db, payload.department_id)
    existing = get_helpdesk_for_department(db, payload.department_id)
    if existing:
        return existing, False
    helpdesk = Helpdesk(**payload.model_dump())
    db.add(helpdesk)
    db.flush()
    for defaults in DEFAULT_SLA_STATES:
        db.add(SlaState(helpdesk_id=helpdesk.id, **defaults))
    db.commit()
    db.refresh(helpdesk)
    logger.info("Helpdesk created: %s for department %s", helpdesk.name, helpdesk.department_id)
    return helpdesk, True


def update_helpdesk(db: Session, helpdesk_id: str, payload: HelpdeskUpdate) -> Helpdesk:
    helpdesk = get_helpdesk(db, helpdesk_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(helpdesk, key, value)
    db.commit()
    db.refresh(helpdesk)
    return helpdesk


def delete_helpdesk(db: Session, helpdesk_id: str) -> None:
    helpdesk = get_helpdesk(db, helpdesk_id)
    db.delete(helpdesk)
    db.commit()
    logger.info("Helpdesk deleted: %s", helpdesk_id)


# ----- SLA states -----


def list_states(db: Session, helpdesk_id: str) -> list[SlaState]:
    return (
        db.query(SlaState)
        .filter(SlaState.helpdesk_id == helpdesk_id)
        .order_by(SlaState.order.asc(), SlaState.name.asc())
        .all()
    )


def get_state(db: Session, state_id: str) -> SlaState:
    state = db.get(SlaState, state_id)
    if not state:
        raise NotFoundError("sla_state_not_found", details={"state_id": state_id})
    return state


def ensure_state_in_helpdesk(db: Session, helpdesk_id: str, state_id: str | None) -> SlaState | None:
    if state_id is None:
        return None
    state = db.get(SlaState, state_id)
    if not state or state.helpdesk_id != helpdesk_id:
        raise BadRequestError("state_not_in_helpdesk", details={"state_id": state_id, "helpdesk_id": helpdesk_id})
    return state


def _clear_other_defaults(db: Session, helpdesk_id: str, keep_id: str | None) -> None:
    for state in list_states(db, helpdesk_id):
        if state.id != keep_id and state.is_default:
            state.is_default = False


def create_state(db: Session, helpdesk_id: str, payload: SlaStateCreate) -> SlaState:
    get_helpdesk(db, helpdesk_id)
    state = SlaState(helpdesk_id=helpdesk_id, **payload.model_dump())
    db.add(state)
    db.flush()
    if state.is_default:
        _clear_other_defaults(db, helpdesk_id, state.id)
    db.commit()
    db.refresh(state)
    return state


def update_state(db: Session, state_id: str, payload: SlaStateUpdate) -> SlaState:
    state = get_state(db, state_id)
    changes = payload.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(state, key, value)
    if changes.get("is_default"):
        _clear_other_defaults(db, state.helpdesk_id, state.id)
    db.commit()
    db.refresh(state)
    return state


def reorder_states(db: Session, helpdesk_id: str, ids: list[str]) -> list[SlaState]:
    states = {state.id: state for state in list_states(db, helpdesk_id)}
    if set(ids) != set(states) or len(ids) != len(states):
        raise BadRequestError("reorder_ids_mismatch", details={"expected": sorted(states), "received": ids})
    for index, state_id in enumerate(ids):
        states[state_id].order = index
    db.commit()
    return list_states(db, helpdesk_id)


def delete_state(db: Session, state_id: str) -> None:
    state = get_state(db, state_id)
    if state.is_default:
        raise ConflictError("cannot_delete_default_state", details={"state_id": state_id})
    db.delete(state)
    db.commit()


# ----- SLA policies -----


def list_policies(db: Session, helpdesk_id: str) -> list[SlaPolicy]:
    return db.query(SlaPolicy).filter(SlaPolicy.helpdesk_id == helpdesk_id).order_by(SlaPolicy.name.asc()).all()


def policy_for_priority(db: Session, helpdesk_id: str, priority: TicketPriority) -> SlaPolicy | None:
    return (
        db.query(SlaPolicy)
        .filter(
            SlaPolicy.helpdesk_id == helpdesk_id,
            SlaPolicy.priority == priority,
            SlaPolicy.enabled.is_(True),
        )
        .first()
    )


def _get_policy(db: Session, policy_id: str) -> SlaPolicy:
    policy = db.get(SlaPolicy, policy_id)
    if not policy:
        raise NotFoundError("sla_policy_not_found", details={"policy_id": policy_id})
    return policy


def create_policy(db: Session, helpdesk_id: str, payload: SlaPolicyCreate) -> SlaPolicy:
    get_helpdesk(db, helpdesk_id)
    if payload.enabled and policy_for_priority(db, helpdesk_id, payload.priority):
        raise ConflictError("sla_policy_exists_for_priority", details={"priority": payload.priority.value})
    policy = SlaPolicy(helpdesk_id=helpdesk_id, **payload.model_dump())
    db.add(policy)
    db.commit()
    db.refresh(policy)
    return policy


def update_policy(db: Session, policy_id: str, payload: SlaPolicyUpdate) -> SlaPolicy:
    policy = _get_policy(db, policy_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(policy, key, value)
    db.commit()
    db.refresh(policy)
    return policy


def delete_policy(db: Session, policy_id: str) -> None:
    db.delete(_get_policy(db, policy_id))
    db.commit()


# ----- escalation rules -----


def list_rules(db: Session, helpdesk_id: str) -> list[EscalationRule]:
    return (
        db.query(EscalationRule)
        .filter(EscalationRule.helpdesk_id == helpdesk_id)
        .order_by(EscalationRule.order.asc(), EscalationRule.name.asc())
        .all()
    )


def get_rule(db: Session, rule_id: str) -> EscalationRule:
    rule = db.get(EscalationRule, rule_id)
    if not rule:
        raise NotFoundError("escalation_rule_not_found", details={"rule_id": rule_id})
    return rule


def create_rule(db: Session, helpdesk_id: str, payload: EscalationRuleCreate) -> EscalationRule:
    get_helpdesk(db, helpdesk_id)
    ensure_state_in_helpdesk(db, helpdesk_id, payload.from_state_id)
    data = payload.model_dump(exclude={"conditions"})
    rule = EscalationRule(helpdesk_id=helpdesk_id, **data)
    for index, condition in enumerate(payload.conditions):
        values = condition.model_dump()
        values["order"] = index if values.get("order") is None else values["order"]
        rule.conditions.append(EscalationCondition(**values))
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def update_rule(db: Session, rule_id: str, payload: EscalationRuleUpdate) -> EscalationRule:
    rule = get_rule(db, rule_id)
    changes = payload.model_dump(exclude_unset=True)
    if "from_state_id" in changes:
        ensure_state_in_helpdesk(db, rule.helpdesk_id, changes["from_state_id"])
    for key, value in changes.items():
        setattr(rule, key, value)
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, rule_id: str) -> None:
    db.delete(get_rule(db, rule_id))
    db.commit()


def add_condition(db: Session, rule_id: str, payload: EscalationConditionCreate) -> EscalationCondition:
    rule = get_rule(db, rule_id)
    values = payload.model_dump()
    if values.get("order") is None:
        values["order"] = len(rule.conditions)
    condition = EscalationCondition(rule_id=rule.id, **values)
    db.add(condition)
    db.commit()
    db.refresh(condition)
    return condition


def _get_condition(db: Session, condition_id: str) -> EscalationCondition:
    condition = db.get(EscalationCondition, condition_id)
    if not condition:
        raise NotFoundError("escalation_condition_not_found", details={"condition_id": condition_id})
    return condition


def update_condition(db: Session, condition_id: str, payload: EscalationConditionUpdate) -> EscalationCondition:
    condition = _get_condition(db, condition_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(condition, key, value)
    db.commit()
    db.refresh(condition)
    return condition


def delete_condition(db: Session, condition_id: str) -> None:
    db.delete(_get_condition(db, condition_id))
    db.commit()


# ----- inbound email -----


def get_email_config(db: Session, helpdesk_id: str) -> InboundEmailConfig | None:
    return db.query(InboundEmailConfig).filter(InboundEmailConfig.helpdesk_id == helpdesk_id).first()


def create_email_config(db: Session, helpdesk_id: str, payload: InboundEmailConfigCreate) -> InboundEmailConfig:
    get_helpdesk(db, helpdesk_id)
    if get_email_config(db, helpdesk_id):
        raise ConflictError("email_config_exists", details={"helpdesk_id": helpdesk_id})
    taken = db.query(InboundEmailConfig).filter(InboundEmailConfig.email_address == str(payload.email_address)).first()
    if taken:
        raise ConflictError("email_address_in_use", details={"email_address": str(payload.email_address)})
    data = payload.model_dump()
    data["email_address"] = str(payload.email_address)
    config = InboundEmailConfig(helpdesk_id=helpdesk_id, **data)
    db.add(config)
    db.commit()
    db.refresh(config)
    return config


def update_email_config(db: Session, config_id: str, payload: InboundEmailConfigUpdate) -> InboundEmailConfig:
    config = db.get(InboundEmailConfig, config_id)
    if not config:
        raise NotFoundError("email_config_not_found", details={"config_id": config_id})
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(config, key, str(value) if key == "email_address" else value)
    db.commit()
    db.refresh(config)
    return config


# ----- webhooks -----


def list_webhooks(db: Session, helpdesk_id: str, *, event: str | None = None, enabled_only: bool = False) -> list[HelpdeskWebhook]:
    query = db.query(HelpdeskWebhook).filter(HelpdeskWebhook.helpdesk_id == helpdesk_id)
    if enabled_only:
        query = query.filter(HelpdeskWebhook.enabled.is_(True))
    hooks = query.order_by(HelpdeskWebhook.created_at.asc()).all()
    if event:
        hooks = [hook for hook in hooks if event in subscribed_events(hook)]
    return hooks


def subscribed_events(hook: Any) -> set[str]:
    return {item.strip() for item in (hook.events or "").split(",") if item.strip()}


def _get_webhook(db: Session, webhook_id: str) -> HelpdeskWebhook:
    hook = db.get(HelpdeskWebhook, webhook_id)
    if not hook:
        raise NotFoundError("webhook_not_found", details={"webhook_id": webhook_id})
    return hook


def create_webhook(db: Session, helpdesk_id: str, payload: WebhookCreate) -> HelpdeskWebhook:
    get_helpdesk(db, helpdesk_id)
    data = payload.model_dump(mode="json")
    data["events"] = ",".join(payload.events)
    hook = HelpdeskWebhook(helpdesk_id=helpdesk_id, **data)
    db.add(hook)
    db.commit()
    db.refresh(hook)
    return hook


def update_webhook(db: Session, webhook_id: str, payload: WebhookUpdate) -> HelpdeskWebhook:
    hook = _get_webhook(db, webhook_id)
    changes = payload.model_dump(exclude_unset=True, mode="json")
    if "events" in changes and changes["events"] is not None:
        changes["events"] = ",".join(normalize_webhook_events(changes["events"]))
    for key, value in changes.items():
        setattr(hook, key, value)
    db.commit()
    db.refresh(hook)
    return hook


def delete_webhook(db: Session, webhook_id: str) -> None:
    db.delete(_get_webhook(db, webhook_id))
    db.commit()
