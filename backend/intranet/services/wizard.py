"""Ticket creation wizard: step navigation, category skipping and payload building."""

from __future__ import annotations

import enum
from typing import Any, Callable, TypeVar

from sqlalchemy.orm import Session

from intranet.core.exceptions import BadRequestError
from intranet.models.enums import TicketPriority, TicketSource
from intranet.schemas.ticket import TicketCreate
from intranet.services.forms import active_fields, list_categories, list_fields
from intranet.services.helpdesks import get_helpdesk

T = TypeVar("T")


class WizardStep(enum.IntEnum):
    helpdesk = 0
    category = 1
    details = 2


def enabled_categories(categories: list[Any]) -> list[Any]:
    enabled = [category for category in categories if category.enabled]
    return sorted(enabled, key=lambda category: (category.order or 0, category.name))


def build_intake_plan(helpdesk: Any, categories: list[Any], fields: list[Any]) -> dict[str, Any]:
    """What the wizard shows for a helpdesk before the requester picks anything."""
    enabled = enabled_categories(categories)
    auto_selected = enabled[0].id if len(enabled) == 1 else None
    return {
        "helpdesk_id": helpdesk.id,
        "categories": enabled,
        "skip_category_step": len(enabled) <= 1,
        "auto_selected_category_id": auto_selected,
        "fields": active_fields(fields, auto_selected),
    }


def intake_plan(db: Session, helpdesk_id: str) -> dict[str, Any]:
    helpdesk = get_helpdesk(db, helpdesk_id)
    return build_intake_plan(helpdesk, list_categories(db, helpdesk.id), list_fields(db, helpdesk.id))


class TicketWizard:
    """Three-step intake: helpdesk, category (skipped with 0 or 1 enabled), details."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.step = WizardStep.helpdesk
        self.helpdesk: Any | None = None
        self.categories: list[Any] = []
        self.fields: list[Any] = []
        self.category_id: str | None = None
        self.title = ""
        self.description = ""
        self.priority = TicketPriority.medium
        self.custom_values: dict[str, Any] = {}

    @property
    def enabled_categories(self) -> list[Any]:
        return enabled_categories(self.categories)

    @property
    def skips_category_step(self) -> bool:
        return len(self.enabled_categories) <= 1

    @property
    def visible_steps(self) -> list[WizardStep]:
        if self.skips_category_step:
            return [WizardStep.helpdesk, WizardStep.details]
        return list(WizardStep)

    @property
    def active_fields(self) -> list[Any]:
        return active_fields(self.fields, self.category_id)

    def select_helpdesk(self, helpdesk: Any, *, categories: list[Any], fields: list[Any]) -> None:
        self.helpdesk = helpdesk
        self.categories = list(categories)
        self.fields = list(fields)
        self.category_id = None
        self.custom_values = {}

    def select_category(self, category_id: str | None) -> None:
        if category_id is not None and category_id not in {c.id for c in self.enabled_categories}:
            raise BadRequestError("category_not_in_helpdesk", details={"form_category_id": category_id})
        if category_id != self.category_id:
            self.custom_values = {}
        self.category_id = category_id

    def set_value(self, name: str, value: Any) -> None:
        self.custom_values[name] = value

    def next(self) -> WizardStep:
        if self.step == WizardStep.helpdesk:
            if self.helpdesk is None:
                raise BadRequestError("helpdesk_required")
            if self.skips_category_step:
                enabled = self.enabled_categories
                self.category_id = enabled[0].id if enabled else None
                self.step = WizardStep.details
            else:
                self.step = WizardStep.category
        elif self.step == WizardStep.category:
            if self.category_id is None:
                raise BadRequestError("category_required")
            self.step = WizardStep.details
        return self.step

    def back(self) -> WizardStep:
        if self.step == WizardStep.details and self.skips_category_step:
            self.step = WizardStep.helpdesk
        elif self.step > WizardStep.helpdesk:
            self.step = WizardStep(self.step - 1)
        return self.step

    def build_payload(self, *, source: TicketSource = TicketSource.web) -> TicketCreate:
        if self.helpdesk is None:
            raise BadRequestError("helpdesk_required")
        if not self.title.strip():
            raise BadRequestError("title_required")
        names = {field.name for field in self.active_fields}
        return TicketCreate(
            helpdesk_id=self.helpdesk.id,
            title=self.title,
            description=self.description or None,
            priority=self.priority or TicketPriority.medium,
            department_id=self.helpdesk.department_id,
            form_category_id=self.category_id,
            custom_fields={key: value for key, value in self.custom_values.items() if key in names},
            ticket_type="request",
            source=source,
        )

    def submit(self, create: Callable[[TicketCreate], T]) -> T:
        """Issue ``create`` once; reset on success, keep state when it raises."""
        payload = self.build_payload()
        created = create(payload)
        self.reset()
        return created
