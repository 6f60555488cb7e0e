from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

from fastapi.testclient import TestClient

from intranet.core.security import sign_payload
from intranet.db.session import get_db
from intranet.main import app
from intranet.models.enums import TicketPriority, TicketSource
from intranet.routers import inbound_email as inbound_router
from intranet.schemas.helpdesk import InboundEmail
from intranet.services import inbound_email


class _Query:
    def __init__(self, result):
        self._result = result

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._result


class _FakeDB:
    def __init__(self, sender=None):
        self.sender = sender

    def query(self, *_args):
        return _Query(self.sender)


def _email(**overrides) -> InboundEmail:
    payload = {
        "from_address": "Jane.Doe@Example.com",
        "subject": "Printer jammed",
        "body": "The 3rd floor printer is jammed again.",
        "message_id": "<MSG-2@mail.example.com>",
    }
    payload.update(overrides)
    return InboundEmail(**payload)


def _patch_helpdesk(monkeypatch, *, enabled: bool = True, auto_create: bool = True) -> None:
    monkeypatch.setattr(inbound_email, "get_helpdesk", lambda _db, helpdesk_id: SimpleNamespace(id=helpdesk_id))
    monkeypatch.setattr(
        inbound_email,
        "get_email_config",
        lambda _db, _helpdesk_id: SimpleNamespace(
            enabled=enabled, auto_create_tickets=auto_create, default_priority=TicketPriority.low
        ),
    )
    monkeypatch.setattr(inbound_email, "_already_processed", lambda _db, _message_id: False)


def test_thread_ids_prefer_in_reply_to_then_newest_reference() -> None:
    email = _email(
        in_reply_to="<Root@mail>",
        references="<root@mail> <second@mail> <third@mail>",
    )

    assert inbound_email.thread_message_ids(email) == ["root@mail", "third@mail", "second@mail"]
    assert inbound_email.normalize_message_id(" <ABC@x> ") == "abc@x"


def test_reply_is_threaded_as_comment(monkeypatch) -> None:
    _patch_helpdesk(monkeypatch)
    seen_ids: list[list[str]] = []
    comments: list[dict] = []

    def _lookup(_db, _helpdesk_id, ids):
        seen_ids.append(ids)
        return SimpleNamespace(id="tk-9")

    def _add_comment(_db, ticket_id, payload, **kwargs):
        comments.append({"ticket_id": ticket_id, "content": payload.content, **kwargs})
        return SimpleNamespace(id="c-1")

    monkeypatch.setattr(inbound_email, "_ticket_for_message_ids", _lookup)
    monkeypatch.setattr(inbound_email, "add_comment", _add_comment)

    result = inbound_email.process_inbound_email(_FakeDB(), "hd-1", _email(in_reply_to="<orig@mail>"))

    assert result == {"action": "commented", "reason": None, "ticket_id": "tk-9", "comment_id": "c-1"}
    assert seen_ids == [["orig@mail"]]
    assert comments[0]["source"] == TicketSource.email
    assert comments[0]["email_message_id"] == "msg-2@mail.example.com"
    assert comments[0]["content"].startswith("From jane.doe@example.com:")


def test_new_email_opens_ticket_for_known_sender(monkeypatch) -> None:
    _patch_helpdesk(monkeypatch)
    created: list[tuple] = []
    monkeypatch.setattr(inbound_email, "_ticket_for_message_ids", lambda *_args: None)

    def _create(_db, payload, **kwargs):
        created.append((payload, kwargs))
        return SimpleNamespace(id="tk-new")

    monkeypatch.setattr(inbound_email, "create_ticket", _create)

    result = inbound_email.process_inbound_email(_FakeDB(sender=SimpleNamespace(id="u-jane")), "hd-1", _email())

    payload, kwargs = created[0]
    assert result["action"] == "created"
    assert payload.title == "Printer jammed"
    assert payload.priority == TicketPriority.low
    assert payload.source == TicketSource.email
    assert payload.description == "The 3rd floor printer is jammed again."
    assert kwargs["created_by"] == "u-jane"
    assert kwargs["validate_fields"] is False


def test_auto_create_disabled_ignores_unthreaded_mail(monkeypatch) -> None:
    _patch_helpdesk(monkeypatch, auto_create=False)
    monkeypatch.setattr(inbound_email, "_ticket_for_message_ids", lambda *_args: None)

    result = inbound_email.process_inbound_email(_FakeDB(), "hd-1", _email())

    assert result["action"] == "ignored"
    assert result["reason"] == "auto_create_disabled"


def test_duplicate_message_is_ignored(monkeypatch) -> None:
    _patch_helpdesk(monkeypatch)
    monkeypatch.setattr(inbound_email, "_already_processed", lambda _db, _message_id: True)

    result = inbound_email.process_inbound_email(_FakeDB(), "hd-1", _email())

    assert result["reason"] == "duplicate"


def _client(monkeypatch, secret: str) -> TestClient:
    monkeypatch.setattr(inbound_router.settings, "INBOUND_EMAIL_SECRET", secret)
    monkeypatch.setattr(inbound_router.settings, "RATE_LIMIT_ENABLED", False)
    monkeypatch.setattr(
        inbound_router,
        "process_inbound_email",
        lambda _db, helpdesk_id, email: {"action": "created", "ticket_id": helpdesk_id, "subject": email.subject},
    )
    app.dependency_overrides[get_db] = lambda: _FakeDB()
    return TestClient(app)


def test_endpoint_rejects_missing_or_bad_signature(monkeypatch) -> None:
    body = json.dumps({"from_address": "a@example.com", "subject": "Hi"}).encode()
    try:
        client = _client(monkeypatch, "shh")
        unsigned = client.post("/api/helpdesks/hd-1/inbound-email", content=body)
        forged = client.post(
            "/api/helpdesks/hd-1/inbound-email",
            content=body,
            headers={"X-Intranet-Signature": sign_payload("other", body)},
        )
    finally:
        app.dependency_overrides.clear()

    assert unsigned.status_code == 401
    assert forged.status_code == 401
    assert unsigned.json()["error_code"] == "INVALID_WEBHOOK_SECRET"


def test_endpoint_accepts_signed_payload(monkeypatch) -> None:
    body = json.dumps({"from_address": "a@example.com", "subject": "Hi"}).encode()
    try:
        client = _client(monkeypatch, "shh")
        response = client.post(
            "/api/helpdesks/hd-1/inbound-email",
            content=body,
            headers={"X-Intranet-Signature": sign_payload("shh", body)},
        )
        invalid = client.post(
            "/api/helpdesks/hd-1/inbound-email",
            content=b"{}",
            headers={"X-Intranet-Signature": sign_payload("shh", b"{}")},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json() == {"action": "created", "ticket_id": "hd-1", "subject": "Hi"}
    assert invalid.status_code == 400


def test_endpoint_refuses_when_secret_unset(monkeypatch) -> None:
    body = b'{"from_address": "a@example.com"}'
    try:
        client = _client(monkeypatch, "")
        response = client.post(
            "/api/helpdesks/hd-1/inbound-email",
            content=body,
            headers={"X-Intranet-Signature": sign_payload("", body)},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401


def test_endpoint_processes_mail_off_the_event_loop(monkeypatch) -> None:
    body = json.dumps({"from_address": "a@example.com", "subject": "Hi"}).encode()
    loops: list[bool] = []

    def _process(_db, _helpdesk_id, _email):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            loops.append(False)
        else:
            loops.append(True)
        return {"action": "created"}

    try:
        client = _client(monkeypatch, "shh")
        monkeypatch.setattr(inbound_router, "process_inbound_email", _process)
        response = client.post(
            "/api/helpdesks/hd-1/inbound-email",
            content=body,
            headers={"X-Intranet-Signature": sign_payload("shh", body)},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert loops == [False]
