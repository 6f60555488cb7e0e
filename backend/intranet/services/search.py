"""Title search across documents and departments, plus query history."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from intranet.models.department import Department
from intranet.models.document import Book, BookVersion, Page, PageVersion
from intranet.models.enums import PageType
from intranet.models.intranet import SearchHistory

logger = logging.getLogger(__name__)

MAX_RESULTS_PER_KIND = 50
TRENDING_WINDOW_DAYS = 7
TRENDING_LIMIT = 10


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def version_label(version: Any) -> str:
    """``[Archived – Last Updated: dd/mm/yyyy]`` for archived snapshots, else ``[Legacy Version – vN]``."""
    if version.is_archived:
        return f"[Archived – Last Updated: {version.created_at.strftime('%d/%m/%Y')}]"
    return f"[Legacy Version – v{version.version_number}]"


def _version_result(version: Any, kind: str, owner_id: str, link: str) -> dict[str, Any]:
    return {
        "type": kind,
        "id": version.id,
        "title": version.title,
        "link": f"{link}?version={version.version_number}",
        "display_label": version_label(version),
        "is_legacy": True,
        "version_number": version.version_number,
        "owner_id": owner_id,
    }


def search_versions(db: Session, query: str) -> dict[str, list[Any]]:
    pattern = _pattern(query)
    pages = (
        db.query(PageVersion)
        .filter(PageVersion.title.ilike(pattern, escape="\\"))
        .order_by(PageVersion.created_at.desc())
        .limit(MAX_RESULTS_PER_KIND)
        .all()
    )
    books = (
        db.query(BookVersion)
        .filter(BookVersion.title.ilike(pattern, escape="\\"))
        .order_by(BookVersion.created_at.desc())
        .limit(MAX_RESULTS_PER_KIND)
        .all()
    )
    return {"page_versions": pages, "book_versions": books}


def global_search(db: Session, query: str, *, include_versions: bool = True) -> list[dict[str, Any]]:
    query = query.strip()
    if not query:
        return []
    pattern = _pattern(query)
    results: list[dict[str, Any]] = []
    for book in db.query(Book).filter(Book.title.ilike(pattern, escape="\\")).limit(MAX_RESULTS_PER_KIND):
        results.append({"type": "book", "id": book.id, "title": book.title, "link": f"/documents/book/{book.id}"})
    pages = (
        db.query(Page)
        .filter(Page.type != PageType.file, Page.title.ilike(pattern, escape="\\"))
        .limit(MAX_RESULTS_PER_KIND)
    )
    for page in pages:
        results.append({"type": page.type.value, "id": page.id, "title": page.title, "link": f"/documents/edit/{page.id}"})
    for department in db.query(Department).filter(Department.name.ilike(pattern, escape="\\")).limit(MAX_RESULTS_PER_KIND):
        results.append({"type": "department", "id": department.id, "title": department.name, "link": "/system-settings"})

    if include_versions:
        versions = search_versions(db, query)
        for version in versions["page_versions"]:
            results.append(_version_result(version, "page_version", version.page_id, f"/documents/edit/{version.page_id}"))
        for version in versions["book_versions"]:
            results.append(_version_result(version, "book_version", version.book_id, f"/documents/book/{version.book_id}"))
    return results


def record_search(db: Session, query: str, *, user_id: str | None, result_count: int) -> SearchHistory | None:
    normalized = " ".join(query.split()).lower()[:255]
    if not normalized:
        return None
    entry = SearchHistory(user_id=user_id, query=normalized, result_count=result_count)
    db.add(entry)
    db.commit()
    return entry


def trending_topics(
    db: Session,
    *,
    days: int = TRENDING_WINDOW_DAYS,
    limit: int = TRENDING_LIMIT,
    now: dt.datetime | None = None,
) -> list[dict[str, Any]]:
    since = (now or _utcnow()) - dt.timedelta(days=days)
    count = func.count(SearchHistory.id).label("count")
    rows = (
        db.query(SearchHistory.query, count)
        .filter(SearchHistory.created_at >= since)
        .group_by(SearchHistory.query)
        .order_by(count.desc(), SearchHistory.query.asc())
        .limit(limit)
        .all()
    )
    return [{"topic": topic, "count": int(total)} for topic, total in rows]
