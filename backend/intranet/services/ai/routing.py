"""Ticket routing suggestions from similar past tickets and related documents."""

from __future__ import annotations

import logging
import math
from typing import Any

from sqlalchemy.orm import Session

from intranet.core.config import settings
from intranet.services.departments import first_subdepartment_id, list_edges
from intranet.services.embeddings import compute_embedding, find_similar_documents, find_similar_tickets

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 0.95
MAX_RELATED_TICKETS = 5
MAX_RELATED_DOCS = 3
SIMILAR_TICKETS_LIMIT = 10
SIMILAR_DOCS_LIMIT = 5
NO_MATCHES_REASON = "No similar tickets or documents found for routing analysis."


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def empty_suggestion(reason: str = NO_MATCHES_REASON, *, docs: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {
        "department_id": None,
        "sub_department_id": None,
        "assignee_id": None,
        "confidence": 0.0,
        "reason": reason,
        "related_tickets": [],
        "related_docs": [_brief(doc) for doc in (docs or [])[:MAX_RELATED_DOCS]],
    }


def _brief(item: dict[str, Any]) -> dict[str, Any]:
    return {"id": item["id"], "title": item["title"], "similarity": float(item["similarity"])}


def routing_confidence(tickets: list[dict[str, Any]]) -> float:
    if not tickets:
        return 0.1
    top = float(tickets[0]["similarity"])
    return min(MAX_CONFIDENCE, top * 0.6 + min(len(tickets) / 10, 0.4))


def suggest_ticket_routing(
    tickets: list[dict[str, Any]],
    docs: list[dict[str, Any]],
    edges: list[Any],
) -> dict[str, Any]:
    """Pick the department whose similar tickets score best.

    Department score is mean similarity times ``ln(count + 1)``; ties keep the
    first department seen. The assignee is the highest summed similarity within
    the winning department. ``tickets`` must be ordered by similarity, highest first.
    """
    if not tickets and not docs:
        return empty_suggestion()

    groups: dict[str, dict[str, Any]] = {}
    for ticket in tickets:
        department_id = ticket.get("department_id")
        if not department_id:
            continue
        group = groups.setdefault(department_id, {"count": 0, "total": 0.0, "assignees": {}})
        group["count"] += 1
        group["total"] += float(ticket["similarity"])
        assignee = ticket.get("assigned_to")
        if assignee:
            group["assignees"][assignee] = group["assignees"].get(assignee, 0.0) + float(ticket["similarity"])

    best_department_id: str | None = None
    best_assignee_id: str | None = None
    best_score = 0.0
    for department_id, group in groups.items():
        score = group["total"] / group["count"] * math.log(group["count"] + 1)
        if score > best_score:
            best_score = score
            best_department_id = department_id
            best_assignee_id = None
            top_assignee_score = 0.0
            for assignee_id, assignee_score in group["assignees"].items():
                if assignee_score > top_assignee_score:
                    top_assignee_score = assignee_score
                    best_assignee_id = assignee_id

    sub_department_id = first_subdepartment_id(best_department_id, edges) if best_department_id else None

    if tickets:
        reason = f"Suggested based on {_plural(len(tickets), 'similar ticket')}"
        if docs:
            reason += f" and {_plural(len(docs), 'related document')}"
    else:
        reason = f"Suggested based on {_plural(len(docs), 'related document')}"

    return {
        "department_id": best_department_id,
        "sub_department_id": sub_department_id,
        "assignee_id": best_assignee_id,
        "confidence": routing_confidence(tickets),
        "reason": reason,
        "related_tickets": [_brief(ticket) for ticket in tickets[:MAX_RELATED_TICKETS]],
        "related_docs": [_brief(doc) for doc in docs[:MAX_RELATED_DOCS]],
    }


def analyze_ticket(db: Session, description: str) -> dict[str, Any]:
    if not settings.embeddings_ready:
        return empty_suggestion("AI routing is not configured.")
    embedding = compute_embedding(description)
    tickets = find_similar_tickets(db, embedding, limit=SIMILAR_TICKETS_LIMIT)
    docs = find_similar_documents(db, embedding, limit=SIMILAR_DOCS_LIMIT)
    suggestion = suggest_ticket_routing(tickets, docs, list_edges(db))
    logger.info(
        "Routing suggestion: department=%s confidence=%.2f tickets=%s docs=%s",
        suggestion["department_id"],
        suggestion["confidence"],
        len(tickets),
        len(docs),
    )
    return suggestion
