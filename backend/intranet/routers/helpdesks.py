"""Helpdesk configuration endpoints: SLA states and policies, escalation, email config, webhooks."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.exceptions import NotFoundError
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.schemas.forms import IntakePlanOut
from intranet.schemas.helpdesk import (
    EscalationConditionCreate,
    EscalationConditionOut,
    EscalationConditionUpdate,
    EscalationRuleCreate,
    EscalationRuleOut,
    EscalationRuleUpdate,
    EscalationRunRequest,
    HelpdeskCreate,
    HelpdeskOut,
    HelpdeskUpdate,
    InboundEmailConfigCreate,
    InboundEmailConfigOut,
    InboundEmailConfigUpdate,
    SlaPolicyCreate,
    SlaPolicyOut,
    SlaPolicyUpdate,
    SlaStateCreate,
    SlaStateOut,
    SlaStateReorder,
    SlaStateUpdate,
    WebhookCreate,
    WebhookOut,
    WebhookUpdate,
)
from intranet.services import helpdesks as service
from intranet.services.sla.escalation import run_escalation_sweep
from intranet.services.wizard import intake_plan

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])

_manage = Depends(require_permission("manage_helpdesks"))


def _webhook_out(hook) -> WebhookOut:
    return WebhookOut.model_validate(hook).model_copy(update={"has_secret": bool(hook.secret)})


@router.get("/helpdesks", response_model=list[HelpdeskOut])
def get_helpdesks(db: Session = Depends(get_db)) -> list[HelpdeskOut]:
    return [HelpdeskOut.model_validate(h) for h in service.list_helpdesks(db)]


@router.post("/helpdesks", response_model=HelpdeskOut, status_code=status.HTTP_201_CREATED, dependencies=[_manage])
def post_helpdesk(payload: HelpdeskCreate, response: Response, db: Session = Depends(get_db)) -> HelpdeskOut:
    helpdesk, created = service.create_helpdesk(db, payload)
    if not created:
        response.status_code = status.HTTP_200_OK
    return HelpdeskOut.model_validate(helpdesk)


@router.get("/helpdesks/by-department/{department_id}", response_model=HelpdeskOut)
def get_helpdesk_by_department(department_id: str, db: Session = Depends(get_db)) -> HelpdeskOut:
    helpdesk = service.get_helpdesk_for_department(db, department_id)
    if not helpdesk:
        raise NotFoundError("helpdesk_not_found", details={"department_id": department_id})
    return HelpdeskOut.model_validate(helpdesk)


@router.get("/helpdesks/{helpdesk_id}", response_model=HelpdeskOut)
def get_helpdesk(helpdesk_id: str, db: Session = Depends(get_db)) -> HelpdeskOut:
    return HelpdeskOut.model_validate(service.get_helpdesk(db, helpdesk_id))


@router.patch("/helpdesks/{helpdesk_id}", response_model=HelpdeskOut, dependencies=[_manage])
def patch_helpdesk(helpdesk_id: str, payload: HelpdeskUpdate, db: Session = Depends(get_db)) -> HelpdeskOut:
    return HelpdeskOut.model_validate(service.update_helpdesk(db, helpdesk_id, payload))


@router.delete("/helpdesks/{helpdesk_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_helpdesk(helpdesk_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_helpdesk(db, helpdesk_id)


@router.get("/helpdesks/{helpdesk_id}/intake", response_model=IntakePlanOut)
def get_intake_plan(helpdesk_id: str, db: Session = Depends(get_db)) -> IntakePlanOut:
    return IntakePlanOut(**intake_plan(db, helpdesk_id))


# ----- SLA states -----


@router.get("/helpdesks/{helpdesk_id}/sla-states", response_model=list[SlaStateOut])
def get_sla_states(helpdesk_id: str, db: Session = Depends(get_db)) -> list[SlaStateOut]:
    service.get_helpdesk(db, helpdesk_id)
    return [SlaStateOut.model_validate(s) for s in service.list_states(db, helpdesk_id)]


@router.post(
    "/helpdesks/{helpdesk_id}/sla-states",
    response_model=SlaStateOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_sla_state(helpdesk_id: str, payload: SlaStateCreate, db: Session = Depends(get_db)) -> SlaStateOut:
    return SlaStateOut.model_validate(service.create_state(db, helpdesk_id, payload))


@router.patch("/helpdesks/{helpdesk_id}/sla-states/reorder", response_model=list[SlaStateOut], dependencies=[_manage])
def reorder_sla_states(helpdesk_id: str, payload: SlaStateReorder, db: Session = Depends(get_db)) -> list[SlaStateOut]:
    return [SlaStateOut.model_validate(s) for s in service.reorder_states(db, helpdesk_id, payload.ids)]


@router.patch("/sla-states/{state_id}", response_model=SlaStateOut, dependencies=[_manage])
def patch_sla_state(state_id: str, payload: SlaStateUpdate, db: Session = Depends(get_db)) -> SlaStateOut:
    return SlaStateOut.model_validate(service.update_state(db, state_id, payload))


@router.delete("/sla-states/{state_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_sla_state(state_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_state(db, state_id)


# ----- SLA policies -----


@router.get("/helpdesks/{helpdesk_id}/sla-policies", response_model=list[SlaPolicyOut])
def get_sla_policies(helpdesk_id: str, db: Session = Depends(get_db)) -> list[SlaPolicyOut]:
    service.get_helpdesk(db, helpdesk_id)
    return [SlaPolicyOut.model_validate(p) for p in service.list_policies(db, helpdesk_id)]


@router.post(
    "/helpdesks/{helpdesk_id}/sla-policies",
    response_model=SlaPolicyOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_sla_policy(helpdesk_id: str, payload: SlaPolicyCreate, db: Session = Depends(get_db)) -> SlaPolicyOut:
    return SlaPolicyOut.model_validate(service.create_policy(db, helpdesk_id, payload))


@router.patch("/sla-policies/{policy_id}", response_model=SlaPolicyOut, dependencies=[_manage])
def patch_sla_policy(policy_id: str, payload: SlaPolicyUpdate, db: Session = Depends(get_db)) -> SlaPolicyOut:
    return SlaPolicyOut.model_validate(service.update_policy(db, policy_id, payload))


@router.delete("/sla-policies/{policy_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_sla_policy(policy_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_policy(db, policy_id)


# ----- escalation -----


@router.get("/helpdesks/{helpdesk_id}/escalation-rules", response_model=list[EscalationRuleOut])
def get_escalation_rules(helpdesk_id: str, db: Session = Depends(get_db)) -> list[EscalationRuleOut]:
    service.get_helpdesk(db, helpdesk_id)
    return [EscalationRuleOut.model_validate(r) for r in service.list_rules(db, helpdesk_id)]


@router.post(
    "/helpdesks/{helpdesk_id}/escalation-rules",
    response_model=EscalationRuleOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_escalation_rule(helpdesk_id: str, payload: EscalationRuleCreate, db: Session = Depends(get_db)) -> EscalationRuleOut:
    return EscalationRuleOut.model_validate(service.create_rule(db, helpdesk_id, payload))


@router.post("/helpdesks/{helpdesk_id}/escalations/run", dependencies=[_manage])
def run_escalations(
    helpdesk_id: str,
    payload: EscalationRunRequest = Body(default=EscalationRunRequest()),
    db: Session = Depends(get_db),
) -> dict:
    return run_escalation_sweep(db, helpdesk_id=helpdesk_id, dry_run=payload.dry_run, batch_size=payload.batch_size)


@router.get("/escalation-rules/{rule_id}", response_model=EscalationRuleOut)
def get_escalation_rule(rule_id: str, db: Session = Depends(get_db)) -> EscalationRuleOut:
    return EscalationRuleOut.model_validate(service.get_rule(db, rule_id))


@router.patch("/escalation-rules/{rule_id}", response_model=EscalationRuleOut, dependencies=[_manage])
def patch_escalation_rule(rule_id: str, payload: EscalationRuleUpdate, db: Session = Depends(get_db)) -> EscalationRuleOut:
    return EscalationRuleOut.model_validate(service.update_rule(db, rule_id, payload))


@router.delete("/escalation-rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_escalation_rule(rule_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_rule(db, rule_id)


@router.post(
    "/escalation-rules/{rule_id}/conditions",
    response_model=EscalationConditionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_escalation_condition(
    rule_id: str, payload: EscalationConditionCreate, db: Session = Depends(get_db)
) -> EscalationConditionOut:
    return EscalationConditionOut.model_validate(service.add_condition(db, rule_id, payload))


@router.patch("/escalation-conditions/{condition_id}", response_model=EscalationConditionOut, dependencies=[_manage])
def patch_escalation_condition(
    condition_id: str, payload: EscalationConditionUpdate, db: Session = Depends(get_db)
) -> EscalationConditionOut:
    return EscalationConditionOut.model_validate(service.update_condition(db, condition_id, payload))


@router.delete("/escalation-conditions/{condition_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_escalation_condition(condition_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_condition(db, condition_id)


# ----- inbound email config -----


@router.get("/helpdesks/{helpdesk_id}/email-config", response_model=InboundEmailConfigOut, dependencies=[_manage])
def get_email_config(helpdesk_id: str, db: Session = Depends(get_db)) -> InboundEmailConfigOut:
    service.get_helpdesk(db, helpdesk_id)
    config = service.get_email_config(db, helpdesk_id)
    if not config:
        raise NotFoundError("email_config_not_found", details={"helpdesk_id": helpdesk_id})
    return InboundEmailConfigOut.model_validate(config)


@router.post(
    "/helpdesks/{helpdesk_id}/email-config",
    response_model=InboundEmailConfigOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_email_config(
    helpdesk_id: str, payload: InboundEmailConfigCreate, db: Session = Depends(get_db)
) -> InboundEmailConfigOut:
    return InboundEmailConfigOut.model_validate(service.create_email_config(db, helpdesk_id, payload))


@router.patch("/email-config/{config_id}", response_model=InboundEmailConfigOut, dependencies=[_manage])
def patch_email_config(config_id: str, payload: InboundEmailConfigUpdate, db: Session = Depends(get_db)) -> InboundEmailConfigOut:
    return InboundEmailConfigOut.model_validate(service.update_email_config(db, config_id, payload))


# ----- webhooks -----


@router.get("/helpdesks/{helpdesk_id}/webhooks", response_model=list[WebhookOut], dependencies=[_manage])
def get_webhooks(helpdesk_id: str, db: Session = Depends(get_db)) -> list[WebhookOut]:
    service.get_helpdesk(db, helpdesk_id)
    return [_webhook_out(hook) for hook in service.list_webhooks(db, helpdesk_id)]


@router.post(
    "/helpdesks/{helpdesk_id}/webhooks",
    response_model=WebhookOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_webhook(helpdesk_id: str, payload: WebhookCreate, db: Session = Depends(get_db)) -> WebhookOut:
    return _webhook_out(service.create_webhook(db, helpdesk_id, payload))


@router.patch("/webhooks/{webhook_id}", response_model=WebhookOut, dependencies=[_manage])
def patch_webhook(webhook_id: str, payload: WebhookUpdate, db: Session = Depends(get_db)) -> WebhookOut:
    return _webhook_out(service.update_webhook(db, webhook_id, payload))


@router.delete("/webhooks/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_webhook(webhook_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_webhook(db, webhook_id)
