from __future__ import annotations

from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from intranet.core.exceptions import BadRequestError, InvalidFormSubmissionError
from intranet.models.enums import FieldType, FieldWidth, TicketPriority
from intranet.schemas.forms import field_definition_adapter
from intranet.services import forms, wizard
from intranet.services.wizard import TicketWizard, WizardStep


def _field(name: str, kind: FieldType, **overrides):
    base = dict(
        name=name,
        field_type=kind,
        form_category_id=None,
        required=False,
        default_value=None,
        order=0,
        enabled=True,
        show_on_create=True,
        internal_only=False,
        options=None,
        min_value=None,
        max_value=None,
        validation_pattern=None,
        conditional_field=None,
        conditional_value=None,
    )
    base.update(overrides)
    return SimpleNamespace(**base)


def _category(cat_id: str, *, order: int = 0, enabled: bool = True):
    return SimpleNamespace(id=cat_id, name=cat_id.title(), order=order, enabled=enabled)


def test_select_definition_requires_options() -> None:
    with pytest.raises(ValidationError):
        field_definition_adapter.validate_python({"name": "os", "label": "OS", "field_type": "select", "options": []})

    parsed = field_definition_adapter.validate_python(
        {"name": "OS", "label": "Operating system", "field_type": "select", "options": ["Linux", "macOS"]}
    )
    assert parsed.options == ["Linux", "macOS"]


def test_number_definition_rejects_inverted_bounds() -> None:
    with pytest.raises(ValidationError):
        field_definition_adapter.validate_python(
            {"name": "seats", "label": "Seats", "field_type": "number", "min_value": 10, "max_value": 1}
        )


def test_validate_custom_fields_coerces_and_drops_unknown_keys() -> None:
    fields = [
        _field("seats", FieldType.number, min_value=1, max_value=50),
        _field("needed_by", FieldType.date),
        _field("urgent", FieldType.checkbox),
        _field("os", FieldType.select, options=["Linux", "Windows"]),
    ]

    cleaned = forms.validate_custom_fields(
        fields,
        {"seats": "4", "needed_by": "2026-11-02", "urgent": "yes", "os": "Linux", "extra": "ignored"},
    )

    assert cleaned == {"seats": 4, "needed_by": "2026-11-02", "urgent": True, "os": "Linux"}


def test_validate_custom_fields_reports_every_failure() -> None:
    fields = [
        _field("contact", FieldType.email, required=True),
        _field("seats", FieldType.number, max_value=5),
        _field("asset_tag", FieldType.text, validation_pattern=r"AT-\d{4}"),
        _field("summary", FieldType.text, required=True),
    ]

    with pytest.raises(InvalidFormSubmissionError) as excinfo:
        forms.validate_custom_fields(fields, {"contact": "nobody", "seats": 9, "asset_tag": "X-1"})

    assert excinfo.value.errors == {
        "contact": "invalid_email",
        "seats": "above_maximum",
        "asset_tag": "pattern_mismatch",
        "summary": "required",
    }
    assert excinfo.value.status_code == 422


def test_hidden_fields_are_never_required_and_values_are_dropped() -> None:
    fields = [
        _field("access_type", FieldType.select, options=["vpn", "badge"], order=0),
        _field("vpn_group", FieldType.text, required=True, order=1, conditional_field="access_type", conditional_value="vpn"),
    ]

    cleaned = forms.validate_custom_fields(fields, {"access_type": "badge", "vpn_group": "eng"})
    assert cleaned == {"access_type": "badge"}

    with pytest.raises(InvalidFormSubmissionError) as excinfo:
        forms.validate_custom_fields(fields, {"access_type": "vpn"})
    assert excinfo.value.errors == {"vpn_group": "required"}


def test_defaults_fill_blank_values() -> None:
    fields = [_field("location", FieldType.text, default_value="HQ", required=True)]

    assert forms.validate_custom_fields(fields, {"location": "  "}) == {"location": "HQ"}


def test_active_fields_follow_category_and_hide_internal_ones() -> None:
    fields = [
        _field("shared", FieldType.text),
        _field("laptop_model", FieldType.text, form_category_id="hardware", order=2),
        _field("serial", FieldType.text, form_category_id="hardware", order=1),
        _field("triage_notes", FieldType.text, form_category_id="hardware", internal_only=True),
        _field("disabled", FieldType.text, form_category_id="hardware", enabled=False),
    ]

    assert [f.name for f in forms.active_fields(fields, "hardware")] == ["serial", "laptop_model"]
    assert [f.name for f in forms.active_fields(fields, None)] == ["shared"]


def test_intake_plan_auto_selects_single_enabled_category() -> None:
    helpdesk = SimpleNamespace(id="hd-1", department_id="it")
    categories = [_category("hardware"), _category("legacy", enabled=False)]
    fields = [_field("serial", FieldType.text, form_category_id="hardware")]

    plan = wizard.build_intake_plan(helpdesk, categories, fields)

    assert plan["skip_category_step"] is True
    assert plan["auto_selected_category_id"] == "hardware"
    assert [f.name for f in plan["fields"]] == ["serial"]


def test_wizard_skips_category_step_and_returns_to_helpdesk() -> None:
    helpdesk = SimpleNamespace(id="hd-1", department_id="it")
    flow = TicketWizard()
    flow.select_helpdesk(helpdesk, categories=[_category("hardware")], fields=[])

    assert flow.visible_steps == [WizardStep.helpdesk, WizardStep.details]
    assert flow.next() == WizardStep.details
    assert flow.category_id == "hardware"
    assert flow.back() == WizardStep.helpdesk


def test_wizard_requires_category_when_several_exist() -> None:
    helpdesk = SimpleNamespace(id="hd-1", department_id="it")
    flow = TicketWizard()
    flow.select_helpdesk(helpdesk, categories=[_category("software", order=1), _category("hardware")], fields=[])

    assert flow.next() == WizardStep.category
    with pytest.raises(BadRequestError):
        flow.next()
    with pytest.raises(BadRequestError):
        flow.select_category("unknown")

    flow.select_category("software")
    assert flow.next() == WizardStep.details
    assert flow.back() == WizardStep.category


def test_wizard_submit_resets_only_on_success() -> None:
    helpdesk = SimpleNamespace(id="hd-1", department_id="it")
    fields = [_field("serial", FieldType.text, form_category_id="hardware")]
    flow = TicketWizard()
    flow.select_helpdesk(helpdesk, categories=[_category("hardware")], fields=fields)
    flow.next()
    flow.title = "Laptop will not boot"
    flow.priority = TicketPriority.high
    flow.set_value("serial", "SN-1")
    flow.set_value("stale", "dropped")

    def failing(_payload):
        raise RuntimeError("backend down")

    with pytest.raises(RuntimeError):
        flow.submit(failing)
    assert flow.title == "Laptop will not boot"

    seen = []
    flow.submit(lambda payload: seen.append(payload) or "ok")

    payload = seen[0]
    assert payload.helpdesk_id == "hd-1"
    assert payload.department_id == "it"
    assert payload.form_category_id == "hardware"
    assert payload.custom_fields == {"serial": "SN-1"}
    assert payload.priority == TicketPriority.high
    assert flow.step == WizardStep.helpdesk
    assert flow.title == ""


def test_fields_can_take_a_third_of_the_row() -> None:
    parsed = field_definition_adapter.validate_python(
        {"name": "serial", "label": "Serial", "field_type": "text", "width": "third"}
    )

    assert parsed.width == FieldWidth.third


def test_non_finite_numbers_are_rejected() -> None:
    fields = [_field("qty", FieldType.number, min_value=0, max_value=10, required=True)]

    for raw in ("nan", "inf", "-Infinity"):
        with pytest.raises(InvalidFormSubmissionError) as excinfo:
            forms.validate_custom_fields(fields, {"qty": raw})
        assert excinfo.value.errors == {"qty": "invalid_number"}


def test_blank_title_never_reaches_create() -> None:
    flow = TicketWizard()
    flow.select_helpdesk(SimpleNamespace(id="hd-1", department_id="it"), categories=[], fields=[])
    flow.next()
    flow.title = "   "
    calls = []

    with pytest.raises(BadRequestError):
        flow.submit(calls.append)

    assert calls == []
    assert flow.step == WizardStep.details


def test_helpdesk_without_categories_sends_helpdesk_fields_only() -> None:
    fields = [
        _field("location", FieldType.text),
        _field("serial", FieldType.text, form_category_id="hardware"),
    ]
    flow = TicketWizard()
    flow.select_helpdesk(SimpleNamespace(id="hd-1", department_id="it"), categories=[], fields=fields)

    assert flow.next() == WizardStep.details
    flow.title = "Desk phone broken"
    flow.set_value("location", "Floor 3")
    flow.set_value("serial", "SN-9")

    payload = flow.build_payload()

    assert payload.form_category_id is None
    assert payload.custom_fields == {"location": "Floor 3"}
    assert payload.priority == TicketPriority.medium
