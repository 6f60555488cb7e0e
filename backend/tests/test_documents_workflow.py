from __future__ import annotations

import datetime as dt
import random
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

from intranet.core.exceptions import ConflictError, InvalidTransitionError, PageLockedError
from intranet.models.enums import PageStatus, PageType
from intranet.schemas.document import PageUpdate
from intranet.services import documents, review, search, versions
from intranet.services.documents import is_descendant_folder
from intranet.services.editor import AUTOSAVE_NOTE, AutosaveScheduler, SaveStatus
from intranet.services.move import Breadcrumb, FolderBrowser, MovePlan


def _page(page_id: str = "pg-1", *, status: PageStatus = PageStatus.draft, author_id: str | None = "author"):
    return SimpleNamespace(
        id=page_id,
        title="Onboarding checklist",
        type=PageType.page,
        status=status,
        author_id=author_id,
        reviewer_id=None,
        version=1,
    )


# ----- review workflow -----


def test_allowed_transitions() -> None:
    assert review.can_transition(PageStatus.draft, PageStatus.in_review)
    assert review.can_transition(PageStatus.in_review, PageStatus.published)
    assert review.can_transition(PageStatus.in_review, PageStatus.draft)
    assert review.can_transition(PageStatus.published, PageStatus.draft)
    assert not review.can_transition(PageStatus.draft, PageStatus.published)
    assert not review.can_transition(PageStatus.published, PageStatus.in_review)


def test_invalid_transition_raises() -> None:
    with pytest.raises(InvalidTransitionError):
        review.transition_page(SimpleNamespace(), _page(), PageStatus.published, actor_id="u")


def test_pages_in_review_are_locked() -> None:
    review.ensure_editable(_page(status=PageStatus.published))
    with pytest.raises(PageLockedError):
        review.ensure_editable(_page(status=PageStatus.in_review))


def test_pick_reviewer_skips_author_and_inactive_members() -> None:
    members = [
        SimpleNamespace(id="author", is_active=True),
        SimpleNamespace(id="off", is_active=False),
        SimpleNamespace(id="peer", is_active=True),
    ]

    assert review.pick_reviewer("author", members, random.Random(1)).id == "peer"
    assert review.pick_reviewer("author", members[:2]) is None


class _FlakyCommentDB:
    """Commits succeed except the one right after a PageComment is added."""

    def __init__(self):
        self.commits = 0
        self.rollbacks = 0
        self.added: list = []
        self._fail_next = False

    def add(self, obj):
        self.added.append(obj)
        if type(obj).__name__ == "PageComment":
            self._fail_next = True

    def commit(self):
        if self._fail_next:
            self._fail_next = False
            raise SQLAlchemyError("comment insert failed")
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def refresh(self, _obj):
        return None


def test_publish_survives_failed_approval_comment(monkeypatch) -> None:
    notified: list[dict] = []
    resolved: list[dict] = []
    monkeypatch.setattr(review, "record_document_activity", lambda *_args, **_kwargs: None)
    monkeypatch.setattr(review, "queue_notification", lambda _db, **kwargs: notified.append(kwargs))
    monkeypatch.setattr(review, "resolve_target_notifications", lambda _db, **kwargs: resolved.append(kwargs))
    page = _page(status=PageStatus.in_review)
    db = _FlakyCommentDB()

    result = review.transition_page(db, page, PageStatus.published, actor_id="reviewer")

    assert result.status == PageStatus.published
    assert result.version == 2
    assert db.rollbacks == 1
    assert [n["title"] for n in notified] == ["Page Published"]
    assert notified[0]["target_id"] == "pg-1"
    assert resolved == [{"target_id": "pg-1", "title": review.REVIEW_REQUEST_TITLE}]


def test_request_changes_notifies_author(monkeypatch) -> None:
    notified: list[dict] = []
    resolved: list[dict] = []
    monkeypatch.setattr(review, "record_document_activity", lambda *_args, **_kwargs: None)
    monkeypatch.setattr(review, "queue_notification", lambda _db, **kwargs: notified.append(kwargs))
    monkeypatch.setattr(review, "resolve_target_notifications", lambda _db, **kwargs: resolved.append(kwargs))
    page = _page(status=PageStatus.in_review)

    review.transition_page(_FlakyCommentDB(), page, PageStatus.draft, actor_id="reviewer")

    assert page.status == PageStatus.draft
    assert notified[0]["user_id"] == "author"
    assert notified[0]["title"] == "Changes Requested"
    assert resolved == [{"target_id": "pg-1", "title": review.REVIEW_REQUEST_TITLE}]


class _AuthorDB(_FlakyCommentDB):
    def get(self, _model, _row_id):
        return SimpleNamespace(id="author", department_id="dep-1")


@pytest.mark.parametrize("already_unread, expected", [(False, 1), (True, 0)])
def test_resubmission_does_not_repeat_an_unread_review_request(monkeypatch, already_unread, expected) -> None:
    notified: list[dict] = []
    peer = SimpleNamespace(id="peer", is_active=True)
    monkeypatch.setattr(review, "record_document_activity", lambda *_args, **_kwargs: None)
    monkeypatch.setattr(review, "department_members", lambda _db, _department_id: [peer])
    monkeypatch.setattr(review, "has_unread_for_target", lambda _db, **_kwargs: already_unread)
    monkeypatch.setattr(review, "queue_notification", lambda _db, **kwargs: notified.append(kwargs))
    page = _page()

    review.transition_page(_AuthorDB(), page, PageStatus.in_review, actor_id="author")

    assert page.status == PageStatus.in_review
    assert page.reviewer_id == "peer"
    assert len(notified) == expected
    if notified:
        assert notified[0]["target_id"] == "pg-1"
        assert notified[0]["title"] == review.REVIEW_REQUEST_TITLE


# ----- autosave -----


def test_autosave_debounces_saves_and_snapshots() -> None:
    now = [0.0]
    saved: list[str] = []
    snapshots: list[tuple[str, str]] = []
    editor = AutosaveScheduler(saved.append, lambda content, note: snapshots.append((content, note)), clock=lambda: now[0])

    editor.edit("Hello")
    now[0] = 1.0
    editor.edit("Hello world, this is long")
    assert editor.save_status == SaveStatus.unsaved
    now[0] = 2.5
    assert editor.poll() == []

    now[0] = 3.0
    assert editor.poll() == ["save"]
    assert saved == ["Hello world, this is long"]
    assert editor.save_status == SaveStatus.saved

    now[0] = 31.0
    assert editor.poll() == ["snapshot"]
    assert snapshots == [("Hello world, this is long", AUTOSAVE_NOTE)]


def test_autosave_stops_when_page_is_locked() -> None:
    saved: list[str] = []
    editor = AutosaveScheduler(saved.append, lambda *_args: None, clock=lambda: 100.0, save_delay=0)

    editor.edit("draft content")
    editor.set_status(PageStatus.in_review)
    editor.edit("more content")

    assert editor.poll() == []
    assert editor.save_now() is False
    assert saved == []


def test_autosave_failure_marks_error() -> None:
    def _fail(_content):
        raise RuntimeError("offline")

    editor = AutosaveScheduler(_fail, lambda *_args: None, clock=lambda: 0.0)
    editor.edit("changed")

    assert editor.save_now() is False
    assert editor.save_status == SaveStatus.error


# ----- moves -----


def _folder(folder_id: str, parent_id: str | None, title: str | None = None):
    return SimpleNamespace(id=folder_id, parent_id=parent_id, title=title or folder_id.title(), type=PageType.folder)


def test_is_descendant_folder() -> None:
    parents = {"a": None, "b": "a", "c": "b", "x": None}

    assert is_descendant_folder("a", "c", parents) is True
    assert is_descendant_folder("c", "a", parents) is False
    assert is_descendant_folder("a", "x", parents) is False


def test_folder_browser_hides_moved_item_and_tracks_breadcrumbs() -> None:
    pages = [
        _folder("guides", None),
        _folder("policies", None),
        _folder("hr", "policies", "HR"),
        SimpleNamespace(id="doc", parent_id=None, title="Doc", type=PageType.page),
    ]
    browser = FolderBrowser("guides", None, pages)

    assert [f.id for f in browser.candidate_folders()] == ["policies"]
    with pytest.raises(ValueError):
        browser.browse_into(pages[0])

    browser.browse_into(pages[1])
    browser.browse_into(pages[2])
    assert browser.breadcrumbs == [Breadcrumb(None, "Root"), Breadcrumb("policies", "Policies"), Breadcrumb("hr", "HR")]
    assert browser.plan_move() == MovePlan(item_id="guides", parent_id="hr")

    browser.go_back()
    browser.select(None)
    assert browser.has_selection
    assert browser.plan_move() is None

    browser.navigate_to(0)
    assert browser.browsing_folder_id is None
    assert browser.has_selection is False


# ----- versions and search -----


def test_compare_versions_flags_changed_fields() -> None:
    first = SimpleNamespace(title="A", content="x", status="draft")
    second = SimpleNamespace(title="A", content="y", status="published")

    assert versions.compare_versions(first, second) == {
        "title_changed": False,
        "content_changed": True,
        "status_changed": True,
    }
    assert versions.revert_note(3) == "Auto-saved before reverting to version 3"


def test_version_labels() -> None:
    archived = SimpleNamespace(is_archived=True, created_at=dt.datetime(2025, 1, 9), version_number=2)
    legacy = SimpleNamespace(is_archived=False, created_at=dt.datetime(2025, 1, 9), version_number=4)

    assert search.version_label(archived) == "[Archived – Last Updated: 09/01/2025]"
    assert search.version_label(legacy) == "[Legacy Version – v4]"


class _RecordingDB:
    def __init__(self):
        self.added: list = []

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        return None


def test_record_search_normalizes_query() -> None:
    db = _RecordingDB()

    entry = search.record_search(db, "  VPN   Setup ", user_id="u-1", result_count=3)

    assert entry.query == "vpn setup"
    assert search.record_search(db, "   ", user_id="u-1", result_count=0) is None
    assert len(db.added) == 1


def test_global_search_ignores_blank_query() -> None:
    assert search.global_search(SimpleNamespace(), "   ") == []


class _TreeQuery:
    def __init__(self, pages):
        self._pages = pages

    def filter(self, *_args):
        return self

    def all(self):
        return [(page.id, page.parent_id) for page in self._pages if page.type == PageType.folder]


class _TreeDB:
    def __init__(self, pages):
        self.pages = {page.id: page for page in pages}
        self.commits = 0

    def get(self, _model, page_id):
        return self.pages.get(page_id)

    def query(self, *_columns):
        return _TreeQuery(list(self.pages.values()))

    def add(self, _obj):
        return None

    def commit(self):
        self.commits += 1

    def refresh(self, _obj):
        return None


def _tree_folder(folder_id: str, parent_id: str | None):
    return SimpleNamespace(id=folder_id, parent_id=parent_id, title=folder_id.title(), type=PageType.folder, version=1)


def test_move_into_own_subtree_is_a_conflict() -> None:
    db = _TreeDB([_tree_folder("policies", None), _tree_folder("hr", "policies"), _tree_folder("leave", "hr")])

    with pytest.raises(ConflictError) as excinfo:
        documents.move_page(db, "policies", "leave", actor_id="u-1")
    with pytest.raises(ConflictError):
        documents.move_page(db, "policies", "policies", actor_id="u-1")

    assert excinfo.value.status_code == 409
    assert db.pages["policies"].parent_id is None
    assert db.commits == 0


def test_move_to_current_parent_is_a_noop() -> None:
    db = _TreeDB([_tree_folder("policies", None), _tree_folder("hr", "policies")])

    page = documents.move_page(db, "hr", "policies", actor_id="u-1")

    assert page.version == 1
    assert db.commits == 0


def test_move_records_from_and_to(monkeypatch) -> None:
    logged: list[dict] = []
    monkeypatch.setattr(
        documents, "record_document_activity", lambda _db, _kind, _target, action, **kwargs: logged.append(kwargs["details"])
    )
    db = _TreeDB([_tree_folder("policies", None), _tree_folder("guides", None), _tree_folder("hr", "policies")])

    page = documents.move_page(db, "hr", "guides", actor_id="u-1")

    assert page.parent_id == "guides"
    assert page.version == 2
    assert logged == [{"from": "Policies", "to": "Guides", "from_id": "policies", "to_id": "guides"}]
    assert db.commits == 1


def test_update_rejects_edits_while_in_review(monkeypatch) -> None:
    page = _page(status=PageStatus.in_review)
    page.content = "original"
    monkeypatch.setattr(documents, "get_page", lambda _db, _page_id: page)

    with pytest.raises(PageLockedError):
        documents.update_page(_TreeDB([]), page.id, PageUpdate(content="sneaky edit"), actor_id="author")

    assert page.content == "original"
    assert page.version == 1
