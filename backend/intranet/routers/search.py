"""Title search, semantic search and trending topics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.search import SearchResult, SemanticSearchRequest, SimilarDocumentOut, TrendingTopicOut
from intranet.services.embeddings import semantic_search
from intranet.services.search import global_search, record_search, trending_topics

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])


@router.get("/search", response_model=list[SearchResult])
def search(
    q: str = Query(default="", max_length=255),
    include_versions: bool = Query(default=True),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_documents")),
) -> list[SearchResult]:
    results = global_search(db, q, include_versions=include_versions)
    record_search(db, q, user_id=current_user.id, result_count=len(results))
    return [SearchResult(**result) for result in results]


@router.post(
    "/search/semantic",
    response_model=list[SimilarDocumentOut],
    dependencies=[Depends(rate_limit("ai")), Depends(require_permission("view_documents"))],
)
def search_semantic(payload: SemanticSearchRequest, db: Session = Depends(get_db)) -> list[SimilarDocumentOut]:
    docs = semantic_search(db, payload.query, limit=payload.limit, min_similarity=payload.min_similarity)
    return [SimilarDocumentOut(**doc) for doc in docs]


@router.get("/trending-topics", response_model=list[TrendingTopicOut])
def get_trending_topics(
    days: int = Query(default=7, ge=1, le=90),
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
) -> list[TrendingTopicOut]:
    return [TrendingTopicOut(**topic) for topic in trending_topics(db, days=days, limit=limit)]
