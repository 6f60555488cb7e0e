"""Embedding generation and pgvector similarity search for pages and tickets."""

from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from intranet.core.config import settings
from intranet.core.exceptions import EmbeddingProviderError, NotFoundError
from intranet.core.sanitize import strip_html
from intranet.models.document import Page
from intranet.models.enums import PageType
from intranet.models.ticket import EMBEDDING_DIM, Ticket

logger = logging.getLogger(__name__)

MAX_EMBEDDING_CHARS = 8000
DEFAULT_MIN_SIMILARITY = 0.3
TICKET_DOCS_MIN_SIMILARITY = 0.25
_SPACE_RE = re.compile(r"\s+")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def clean_for_embedding(text: str | None) -> str:
    """Strip markup, collapse whitespace and cap the length sent to the provider."""
    return _SPACE_RE.sub(" ", strip_html(text or "")).strip()[:MAX_EMBEDDING_CHARS]


def _to_float_list(value: Any) -> list[float]:
    if not isinstance(value, list):
        raise EmbeddingProviderError("invalid_embedding_payload")
    try:
        vector = [float(item) for item in value]
    except (TypeError, ValueError) as exc:
        raise EmbeddingProviderError("embedding_contains_non_numeric_values") from exc
    if len(vector) != EMBEDDING_DIM:
        raise EmbeddingProviderError(f"embedding_dim_mismatch: expected={EMBEDDING_DIM} got={len(vector)}")
    return vector


def compute_embedding(text: str) -> list[float]:
    """Compute an embedding through an OpenAI-compatible ``/embeddings`` endpoint."""
    cleaned = clean_for_embedding(text)
    if not cleaned:
        raise ValueError("empty_text_for_embedding")
    if not settings.embeddings_ready:
        raise EmbeddingProviderError("embedding_provider_not_configured", status_code=503)
    if settings.EMBEDDING_DIM != EMBEDDING_DIM:
        raise EmbeddingProviderError(
            f"invalid_config_embedding_dim: expected={EMBEDDING_DIM} got={settings.EMBEDDING_DIM}"
        )

    url = f"{settings.EMBEDDING_BASE_URL.rstrip('/')}/embeddings"
    payload = {"model": settings.EMBEDDING_MODEL, "input": cleaned}
    headers = {"Authorization": f"Bearer {settings.EMBEDDING_API_KEY}"}
    timeout = httpx.Timeout(settings.EMBEDDING_TIMEOUT_SECONDS, connect=5.0)
    try:
        with httpx.Client(timeout=timeout, headers=headers) as client:
            response = client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as exc:
        raise EmbeddingProviderError("embedding_request_failed") from exc

    items = data.get("data") if isinstance(data, dict) else None
    if not items:
        raise EmbeddingProviderError("invalid_embedding_payload")
    return _to_float_list(items[0].get("embedding"))


def page_embedding_text(page: Any) -> str:
    return f"{page.title}\n\n{page.content or ''}"


def ticket_embedding_text(ticket: Any) -> str:
    return f"{ticket.title}\n\n{ticket.description or ''}"


def update_page_embedding(db: Session, page_id: str) -> bool:
    page = db.get(Page, page_id)
    if not page:
        return False
    page.embedding = compute_embedding(page_embedding_text(page))
    page.embedding_updated_at = _utcnow()
    db.commit()
    return True


def update_ticket_embedding(db: Session, ticket_id: str) -> bool:
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        return False
    ticket.embedding = compute_embedding(ticket_embedding_text(ticket))
    ticket.embedding_updated_at = _utcnow()
    db.commit()
    return True


def _similarity(distance: Any) -> float:
    return max(0.0, min(1.0, 1.0 - float(distance if distance is not None else 1.0)))


def find_similar_documents(
    db: Session,
    query_embedding: list[float],
    *,
    limit: int = 5,
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
) -> list[dict[str, Any]]:
    limit = max(1, min(int(limit), 50))
    distance_expr = Page.embedding.cosine_distance(query_embedding)
    stmt = (
        select(Page, distance_expr.label("distance"))
        .where(Page.embedding.is_not(None), Page.type == PageType.page)
        .order_by(distance_expr.asc())
        .limit(limit)
    )
    results = []
    for page, distance in db.execute(stmt).all():
        similarity = _similarity(distance)
        if similarity < min_similarity:
            continue
        results.append(
            {
                "id": page.id,
                "title": page.title,
                "content": (page.content or "")[:500],
                "book_id": page.book_id,
                "status": page.status.value if hasattr(page.status, "value") else page.status,
                "similarity": similarity,
            }
        )
    return results


def find_similar_tickets(
    db: Session,
    query_embedding: list[float],
    *,
    limit: int = 10,
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
    exclude_id: str | None = None,
) -> list[dict[str, Any]]:
    limit = max(1, min(int(limit), 50))
    distance_expr = Ticket.embedding.cosine_distance(query_embedding)
    stmt = select(Ticket, distance_expr.label("distance")).where(Ticket.embedding.is_not(None))
    if exclude_id:
        stmt = stmt.where(Ticket.id != exclude_id)
    stmt = stmt.order_by(distance_expr.asc()).limit(limit)
    results = []
    for ticket, distance in db.execute(stmt).all():
        similarity = _similarity(distance)
        if similarity < min_similarity:
            continue
        results.append(
            {
                "id": ticket.id,
                "title": ticket.title,
                "department_id": ticket.department_id,
                "assigned_to": ticket.assigned_to,
                "similarity": similarity,
            }
        )
    return results


def semantic_search(
    db: Session,
    query: str,
    *,
    limit: int = 5,
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
) -> list[dict[str, Any]]:
    if not clean_for_embedding(query):
        return []
    return find_similar_documents(db, compute_embedding(query), limit=limit, min_similarity=min_similarity)


def related_documents_for_ticket(db: Session, ticket_id: str) -> list[dict[str, Any]]:
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise NotFoundError("ticket_not_found", details={"ticket_id": ticket_id})
    embedding = ticket.embedding
    if embedding is None:
        embedding = compute_embedding(ticket_embedding_text(ticket))
        ticket.embedding = embedding
        ticket.embedding_updated_at = _utcnow()
        db.commit()
    return find_similar_documents(db, list(embedding), limit=5, min_similarity=TICKET_DOCS_MIN_SIMILARITY)


def _reindex(db: Session, ids: list[str], updater) -> dict[str, int]:
    processed = 0
    errors = 0
    for item_id in ids:
        try:
            updater(db, item_id)
            processed += 1
        except (EmbeddingProviderError, ValueError) as exc:
            db.rollback()
            errors += 1
            logger.warning("Embedding failed for %s: %s", item_id, exc)
    return {"processed": processed, "errors": errors}


def reindex_pages(db: Session) -> dict[str, int]:
    ids = list(db.execute(select(Page.id).where(Page.type == PageType.page)).scalars())
    return _reindex(db, ids, update_page_embedding)


def reindex_tickets(db: Session) -> dict[str, int]:
    ids = list(db.execute(select(Ticket.id)).scalars())
    return _reindex(db, ids, update_ticket_embedding)


def indexing_stats(db: Session) -> dict[str, int]:
    def _count(model, *criteria) -> int:
        return db.query(model).filter(*criteria).count()

    return {
        "pages_total": _count(Page, Page.type == PageType.page),
        "pages_indexed": _count(Page, Page.type == PageType.page, Page.embedding.is_not(None)),
        "tickets_total": _count(Ticket),
        "tickets_indexed": _count(Ticket, Ticket.embedding.is_not(None)),
    }
