"""Inbound email endpoint called by the mail provider."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Header, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from intranet.core.config import settings
from intranet.core.exceptions import AuthenticationException, BadRequestError
from intranet.core.rate_limit import rate_limit
from intranet.core.security import verify_signature
from intranet.db.session import get_db
from intranet.schemas.helpdesk import InboundEmail
from intranet.services.inbound_email import process_inbound_email

SIGNATURE_HEADER = "X-Intranet-Signature"

router = APIRouter(dependencies=[Depends(rate_limit("inbound"))])


@router.post("/helpdesks/{helpdesk_id}/inbound-email")
async def inbound_email(
    helpdesk_id: str,
    request: Request,
    db: Session = Depends(get_db),
    x_signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
) -> dict:
    raw_body = await request.body()
    secret = settings.INBOUND_EMAIL_SECRET.strip()
    if not secret or not verify_signature(secret, raw_body, x_signature):
        raise AuthenticationException("invalid_webhook_secret", error_code="INVALID_WEBHOOK_SECRET", status_code=401)

    try:
        email = InboundEmail.model_validate_json(raw_body)
    except ValidationError as exc:
        raise BadRequestError("invalid_payload", details={"errors": exc.errors(include_url=False)}) from exc
    # ticket creation fans out to blocking webhook deliveries
    return await asyncio.to_thread(process_inbound_email, db, helpdesk_id, email)
