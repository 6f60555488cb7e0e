from __future__ import annotations

import datetime as dt
from types import SimpleNamespace

import pytest

from intranet.core.exceptions import BadRequestError
from intranet.models.enums import TicketSource
from intranet.routers import ai as ai_router
from intranet.schemas.ai import QuickTicketRequest, RoutingSuggestionOut
from intranet.services.ai import routing
from intranet.services.ai.quick_ticket import Debouncer, QuickTicketDraft, auto_title, confidence_tier


def _similar(ticket_id: str, similarity: float, department_id: str | None, assigned_to: str | None = None):
    return {
        "id": ticket_id,
        "title": f"Ticket {ticket_id}",
        "similarity": similarity,
        "department_id": department_id,
        "assigned_to": assigned_to,
    }


def _doc(doc_id: str, similarity: float):
    return {"id": doc_id, "title": f"Doc {doc_id}", "similarity": similarity}


def test_routing_prefers_department_with_most_weighted_matches() -> None:
    tickets = [
        _similar("t1", 0.9, "it", "u1"),
        _similar("t3", 0.85, "hr", "u3"),
        _similar("t2", 0.8, "it", "u2"),
    ]
    edges = [SimpleNamespace(parent_department_id="it", child_department_id="it-support")]

    suggestion = routing.suggest_ticket_routing(tickets, [_doc("p1", 0.7)], edges)

    assert suggestion["department_id"] == "it"
    assert suggestion["sub_department_id"] == "it-support"
    assert suggestion["assignee_id"] == "u1"
    assert suggestion["confidence"] == pytest.approx(0.84)
    assert suggestion["reason"] == "Suggested based on 3 similar tickets and 1 related document"
    assert [item["id"] for item in suggestion["related_tickets"]] == ["t1", "t3", "t2"]


def test_routing_ties_keep_first_department_seen() -> None:
    tickets = [_similar("a", 0.7, "finance"), _similar("b", 0.7, "hr")]

    suggestion = routing.suggest_ticket_routing(tickets, [], [])

    assert suggestion["department_id"] == "finance"
    assert suggestion["assignee_id"] is None
    assert suggestion["reason"] == "Suggested based on 2 similar tickets"


def test_routing_with_only_documents_has_low_confidence() -> None:
    suggestion = routing.suggest_ticket_routing([], [_doc("p1", 0.6), _doc("p2", 0.5)], [])

    assert suggestion["department_id"] is None
    assert suggestion["confidence"] == pytest.approx(0.1)
    assert suggestion["reason"] == "Suggested based on 2 related documents"


def test_routing_without_matches_returns_empty_suggestion() -> None:
    suggestion = routing.suggest_ticket_routing([], [], [])

    assert suggestion["confidence"] == 0.0
    assert suggestion["reason"] == routing.NO_MATCHES_REASON
    assert suggestion["related_tickets"] == []


def test_confidence_is_capped() -> None:
    tickets = [_similar(str(i), 1.0, "it") for i in range(12)]
    assert routing.routing_confidence(tickets) == routing.MAX_CONFIDENCE


def test_analyze_ticket_short_circuits_when_embeddings_unconfigured(monkeypatch) -> None:
    monkeypatch.setattr(routing.settings, "EMBEDDING_API_KEY", "")

    def _fail(*_args, **_kwargs):
        raise AssertionError("embedding endpoint must not be called")

    monkeypatch.setattr(routing, "compute_embedding", _fail)

    suggestion = routing.analyze_ticket(SimpleNamespace(), "printer jammed on floor 3")
    assert suggestion["reason"] == "AI routing is not configured."


def test_confidence_tiers() -> None:
    assert confidence_tier(0.95) == ("confident", "green")
    assert confidence_tier(0.8) == ("confident", "green")
    assert confidence_tier(0.79) == ("moderate", "yellow")
    assert confidence_tier(0.5) == ("moderate", "yellow")
    assert confidence_tier(0.1) == ("low", "red")


def test_auto_title_truncates_long_descriptions() -> None:
    assert auto_title("VPN drops every ten minutes when on the office wifi") == "VPN drops every ten minutes when on the..."
    assert auto_title("Printer offline") == "Printer offline"


def test_auto_title_counts_words_across_any_whitespace() -> None:
    description = "Laptop  screen\nflickers\tafter   the\n\nlatest update was installed today"

    assert auto_title(description) == "Laptop screen flickers after the latest update was..."
    assert auto_title("  Printer\n\noffline  ") == "Printer offline"


def test_debouncer_sends_only_latest_text_after_quiet_period() -> None:
    now = [100.0]
    sent: list[str] = []
    debouncer = Debouncer(sent.append, delay=0.5, min_length=10, clock=lambda: now[0])

    debouncer.push("laptop won")
    now[0] += 0.3
    debouncer.push("laptop won't boot")
    now[0] += 0.3
    assert debouncer.poll() is False

    now[0] += 0.3
    assert debouncer.poll() is True
    assert sent == ["laptop won't boot"]
    assert debouncer.poll() is False


def test_debouncer_ignores_short_text_and_cancels_pending() -> None:
    now = [0.0]
    sent: list[str] = []
    debouncer = Debouncer(sent.append, clock=lambda: now[0])

    debouncer.push("a long enough description")
    debouncer.push("short")
    now[0] += 5
    assert debouncer.poll() is False
    assert debouncer.pending_text is None
    assert sent == []


def test_quick_ticket_keeps_manual_choices_over_suggestion() -> None:
    draft = QuickTicketDraft(description="Need access to the finance share drive", assignee_id="manual-user")
    draft.apply_suggestion(
        {"department_id": "it", "sub_department_id": "it-support", "assignee_id": "u1", "confidence": 0.82}
    )

    assert draft.department_id == "it"
    assert draft.sub_department_id == "it-support"
    assert draft.assignee_id == "manual-user"
    assert draft.assignee_overridden is True

    helpdesks = [SimpleNamespace(id="hd-it", department_id="it"), SimpleNamespace(id="hd-sup", department_id="it-support")]
    payload = draft.build_payload(helpdesks)

    assert payload.helpdesk_id == "hd-sup"
    assert payload.source == TicketSource.quick
    assert payload.title == "Need access to the finance share drive"
    assert payload.ai_routing_confidence == pytest.approx(0.82)
    assert payload.ai_suggested_assignee_id == "u1"


def test_quick_ticket_requires_department() -> None:
    draft = QuickTicketDraft(description="Something is broken")
    with pytest.raises(BadRequestError):
        draft.build_payload([SimpleNamespace(id="hd", department_id="it")])


def test_quick_ticket_response_flags_replaced_assignee(monkeypatch) -> None:
    created: list = []

    def fake_create_ticket(_db, payload, *, created_by):
        created.append(payload)
        return SimpleNamespace(
            id="tk-9",
            helpdesk_id=payload.helpdesk_id,
            title=payload.title,
            priority=payload.priority,
            assigned_to=payload.assigned_to,
            ticket_type="incident",
            source=payload.source.value,
            custom_fields={},
            version=1,
            created_at=dt.datetime(2026, 3, 2, tzinfo=dt.timezone.utc),
        )

    monkeypatch.setattr(ai_router, "list_helpdesks", lambda _db: [SimpleNamespace(id="hd-it", department_id="it", enabled=True)])
    monkeypatch.setattr(ai_router, "create_ticket", fake_create_ticket)
    suggestion = RoutingSuggestionOut(department_id="it", assignee_id="u1", confidence=0.7, reason="similar tickets")

    overridden = ai_router.post_quick_ticket(
        QuickTicketRequest(description="VPN keeps dropping", assignee_id="u2", suggestion=suggestion),
        db=None,
        current_user=SimpleNamespace(id="req"),
    )
    accepted = ai_router.post_quick_ticket(
        QuickTicketRequest(description="VPN keeps dropping", suggestion=suggestion),
        db=None,
        current_user=SimpleNamespace(id="req"),
    )

    assert overridden.assignee_overridden is True
    assert overridden.assigned_to == "u2"
    assert accepted.assignee_overridden is False
    assert accepted.assigned_to == "u1"
    assert [payload.ai_suggested_assignee_id for payload in created] == ["u1", "u1"]
