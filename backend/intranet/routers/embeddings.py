"""Embedding queue and index administration."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_admin
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.schemas.search import IndexingStatsOut, QueueStatusOut, ReindexResultOut
from intranet.services.embedding_queue import embedding_queue
from intranet.services.embeddings import indexing_stats, reindex_pages, reindex_tickets

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user), Depends(require_admin)])


@router.get("/queue-status", response_model=QueueStatusOut)
def get_queue_status() -> QueueStatusOut:
    return QueueStatusOut(**embedding_queue.status())


@router.post("/queue-clear")
def post_queue_clear() -> dict[str, int]:
    return {"cleared": embedding_queue.clear()}


@router.post("/reindex-pages", response_model=ReindexResultOut)
def post_reindex_pages(db: Session = Depends(get_db)) -> ReindexResultOut:
    return ReindexResultOut(**reindex_pages(db))


@router.post("/reindex-tickets", response_model=ReindexResultOut)
def post_reindex_tickets(db: Session = Depends(get_db)) -> ReindexResultOut:
    return ReindexResultOut(**reindex_tickets(db))


@router.get("/stats", response_model=IndexingStatsOut)
def get_indexing_stats(db: Session = Depends(get_db)) -> IndexingStatsOut:
    return IndexingStatsOut(**indexing_stats(db))
