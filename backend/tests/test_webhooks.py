from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest

from intranet.core.exceptions import WebhookDeliveryError
from intranet.core.security import sign_payload, verify_signature
from intranet.models.enums import TicketPriority
from intranet.services import webhooks


def _hook(**overrides):
    base = dict(id="wh-1", url="https://hooks.example.com/tickets", secret="s3cret", retry_count=2, timeout_seconds=5)
    base.update(overrides)
    return SimpleNamespace(**base)


def _ticket():
    return SimpleNamespace(
        id="tk-1",
        helpdesk_id="hd-1",
        title="VPN down",
        description=None,
        priority=TicketPriority.urgent,
        state_id="open",
        department_id="it",
        assigned_to=None,
        created_by="u-1",
        ticket_type="incident",
        source="web",
        custom_fields=None,
        escalation_level=None,
        version=3,
    )


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch):
    sleeps: list[float] = []
    monkeypatch.setattr(webhooks.time, "sleep", sleeps.append)
    return sleeps


def test_payload_flattens_enums_and_defaults() -> None:
    payload = webhooks.ticket_event_payload("ticket.created", _ticket())

    assert payload["event"] == "ticket.created"
    assert payload["ticket"]["priority"] == "urgent"
    assert payload["ticket"]["custom_fields"] == {}
    assert payload["ticket"]["escalation_level"] == 0


def test_delivery_is_signed_and_tagged() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(204)

    status = webhooks.deliver_webhook(_hook(), "ticket.created", {"a": 1}, transport=httpx.MockTransport(handler))

    request = captured[0]
    assert status == 204
    assert request.headers["X-Intranet-Event"] == "ticket.created"
    assert verify_signature("s3cret", request.content, request.headers["X-Intranet-Signature"])
    assert request.headers["X-Intranet-Signature"] == sign_payload("s3cret", b'{"a":1}')


def test_retryable_failures_back_off_then_succeed(_no_sleep) -> None:
    statuses = iter([503, 502, 200])

    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses))

    status = webhooks.deliver_webhook(_hook(), "ticket.updated", {}, transport=httpx.MockTransport(handler))

    assert status == 200
    assert _no_sleep == [0.5, 1.0]


def test_gives_up_after_retry_count_retries(_no_sleep) -> None:
    calls: list[int] = []

    def handler(_request: httpx.Request) -> httpx.Response:
        calls.append(1)
        raise httpx.ConnectError("refused")

    with pytest.raises(WebhookDeliveryError):
        webhooks.deliver_webhook(_hook(retry_count=1), "ticket.updated", {}, transport=httpx.MockTransport(handler))

    assert len(calls) == 2
    assert _no_sleep == [0.5]


def test_client_errors_are_not_retried() -> None:
    calls: list[int] = []

    def handler(_request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(404)

    with pytest.raises(WebhookDeliveryError):
        webhooks.deliver_webhook(_hook(secret=None), "ticket.updated", {}, transport=httpx.MockTransport(handler))

    assert len(calls) == 1


class _FakeDB:
    def __init__(self):
        self.commits = 0

    def commit(self):
        self.commits += 1


def test_dispatch_counts_failures_without_raising(monkeypatch) -> None:
    good, bad = _hook(id="good", last_triggered_at=None), _hook(id="bad", last_triggered_at=None)
    monkeypatch.setattr(webhooks, "list_webhooks", lambda _db, _helpdesk_id, **_kwargs: [good, bad])

    def _deliver(hook, _event, _payload):
        if hook.id == "bad":
            raise WebhookDeliveryError(hook.url, 3, last_status=500)
        return 200

    monkeypatch.setattr(webhooks, "deliver_webhook", _deliver)
    db = _FakeDB()

    result = webhooks.dispatch_ticket_event(db, _ticket(), "ticket.created")

    assert result == {"delivered": 1, "failed": 1}
    assert good.last_triggered_at is not None
    assert bad.last_triggered_at is None
    assert db.commits == 1
