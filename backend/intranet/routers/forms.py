"""Intake form categories and custom field definitions."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.schemas.forms import (
    FieldDefinition,
    FormCategoryCreate,
    FormCategoryOut,
    FormCategoryUpdate,
    FormFieldOut,
    FormFieldUpdate,
)
from intranet.services import forms as service
from intranet.services.helpdesks import get_helpdesk

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])

_manage = Depends(require_permission("manage_helpdesks"))


@router.get("/helpdesks/{helpdesk_id}/form-categories", response_model=list[FormCategoryOut])
def get_categories(helpdesk_id: str, db: Session = Depends(get_db)) -> list[FormCategoryOut]:
    get_helpdesk(db, helpdesk_id)
    return [FormCategoryOut.model_validate(c) for c in service.list_categories(db, helpdesk_id)]


@router.post(
    "/helpdesks/{helpdesk_id}/form-categories",
    response_model=FormCategoryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_category(helpdesk_id: str, payload: FormCategoryCreate, db: Session = Depends(get_db)) -> FormCategoryOut:
    return FormCategoryOut.model_validate(service.create_category(db, helpdesk_id, payload))


@router.get("/form-categories/{category_id}", response_model=FormCategoryOut)
def get_category(category_id: str, db: Session = Depends(get_db)) -> FormCategoryOut:
    return FormCategoryOut.model_validate(service.get_category(db, category_id))


@router.patch("/form-categories/{category_id}", response_model=FormCategoryOut, dependencies=[_manage])
def patch_category(category_id: str, payload: FormCategoryUpdate, db: Session = Depends(get_db)) -> FormCategoryOut:
    return FormCategoryOut.model_validate(service.update_category(db, category_id, payload))


@router.delete("/form-categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_category(category_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_category(db, category_id)


@router.get("/form-categories/{category_id}/fields", response_model=list[FormFieldOut])
def get_category_fields(category_id: str, db: Session = Depends(get_db)) -> list[FormFieldOut]:
    category = service.get_category(db, category_id)
    fields = service.list_fields(db, category.helpdesk_id, category_id=category.id)
    return [FormFieldOut.model_validate(f) for f in fields]


@router.post(
    "/form-categories/{category_id}/fields",
    response_model=FormFieldOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_category_field(
    category_id: str,
    definition: FieldDefinition = Body(...),
    db: Session = Depends(get_db),
) -> FormFieldOut:
    category = service.get_category(db, category_id)
    definition = definition.model_copy(update={"form_category_id": category.id})
    return FormFieldOut.model_validate(service.create_field(db, category.helpdesk_id, definition))


@router.get("/helpdesks/{helpdesk_id}/form-fields", response_model=list[FormFieldOut])
def get_helpdesk_fields(
    helpdesk_id: str,
    category_id: str | None = Query(default=None),
    helpdesk_only: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[FormFieldOut]:
    get_helpdesk(db, helpdesk_id)
    fields = service.list_fields(db, helpdesk_id, category_id=category_id, helpdesk_only=helpdesk_only)
    return [FormFieldOut.model_validate(f) for f in fields]


@router.post(
    "/helpdesks/{helpdesk_id}/form-fields",
    response_model=FormFieldOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_helpdesk_field(
    helpdesk_id: str,
    definition: FieldDefinition = Body(...),
    db: Session = Depends(get_db),
) -> FormFieldOut:
    get_helpdesk(db, helpdesk_id)
    return FormFieldOut.model_validate(service.create_field(db, helpdesk_id, definition))


@router.get("/form-fields/{field_id}", response_model=FormFieldOut)
def get_field(field_id: str, db: Session = Depends(get_db)) -> FormFieldOut:
    return FormFieldOut.model_validate(service.get_field(db, field_id))


@router.patch("/form-fields/{field_id}", response_model=FormFieldOut, dependencies=[_manage])
def patch_field(field_id: str, payload: FormFieldUpdate, db: Session = Depends(get_db)) -> FormFieldOut:
    return FormFieldOut.model_validate(service.update_field(db, field_id, payload))


@router.delete("/form-fields/{field_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_field(field_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_field(db, field_id)
