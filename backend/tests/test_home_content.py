from __future__ import annotations

import datetime as dt
from types import SimpleNamespace

import pytest

from intranet.core.exceptions import BadRequestError, InsufficientPermissionsError
from intranet.models.enums import UserRole
from intranet.schemas.intranet import AnnouncementCreate, ExternalLinkCreate
from intranet.services import intranet as home

NOW = dt.datetime(2026, 5, 4, 9, 0, tzinfo=dt.timezone.utc)


class _Query:
    def __init__(self, rows):
        self._rows = rows

    def filter(self, *_args):
        return self

    def order_by(self, *_args):
        return self

    def all(self):
        return list(self._rows)


class _LinksDB:
    def __init__(self, links):
        self.links = links
        self.commits = 0

    def query(self, _model):
        return _Query(sorted(self.links, key=lambda link: link.order))

    def commit(self):
        self.commits += 1


def test_reorder_links_sets_positions() -> None:
    links = [SimpleNamespace(id=link_id, title=link_id, order=i) for i, link_id in enumerate(["a", "b", "c"])]
    db = _LinksDB(links)

    result = home.reorder_links(db, ["c", "a", "b"])

    assert [link.id for link in result] == ["c", "a", "b"]
    assert db.commits == 1


def test_reorder_links_rejects_unknown_ids() -> None:
    db = _LinksDB([SimpleNamespace(id="a", title="a", order=0)])

    with pytest.raises(BadRequestError):
        home.reorder_links(db, ["a", "ghost"])
    assert db.commits == 0


def test_link_urls_must_be_http() -> None:
    assert ExternalLinkCreate(title="Payroll", url=" https://payroll.example.com ").url == "https://payroll.example.com"
    with pytest.raises(ValueError):
        ExternalLinkCreate(title="Bad", url="javascript:alert(1)")


def test_announcement_window_is_half_open() -> None:
    def _announcement(**overrides):
        base = dict(is_active=True, starts_at=None, ends_at=None)
        base.update(overrides)
        return SimpleNamespace(**base)

    assert home.is_announcement_active(_announcement(), NOW)
    assert home.is_announcement_active(_announcement(starts_at=NOW), NOW)
    assert not home.is_announcement_active(_announcement(ends_at=NOW), NOW)
    assert not home.is_announcement_active(_announcement(starts_at=NOW + dt.timedelta(minutes=1)), NOW)
    assert not home.is_announcement_active(_announcement(is_active=False), NOW)


def test_announcement_rejects_inverted_window() -> None:
    with pytest.raises(ValueError):
        AnnouncementCreate(title="Outage", content="Mail down", starts_at=NOW, ends_at=NOW)


def test_hashtags_are_lowercased_and_deduplicated() -> None:
    assert home.extract_hashtags("Kickoff #Launch with #team and #launch!") == ["launch", "team"]
    assert home.extract_hashtags("") == []


def test_post_edits_need_author_or_content_permission() -> None:
    post = SimpleNamespace(author_id="author")
    stranger = SimpleNamespace(id="other", role=UserRole.user, custom_roles=[])
    admin = SimpleNamespace(id="boss", role=UserRole.admin, custom_roles=[])

    home._ensure_post_owner(post, SimpleNamespace(id="author", role=UserRole.viewer, custom_roles=[]))
    home._ensure_post_owner(post, admin)
    with pytest.raises(InsufficientPermissionsError):
        home._ensure_post_owner(post, stranger)


class _LikeQuery:
    def __init__(self, db):
        self.db = db

    def filter(self, *_args):
        return self

    def first(self):
        return self.db.likes[0] if self.db.likes else None

    def count(self):
        return len(self.db.likes)


class _LikesDB:
    def __init__(self):
        self.likes: list = []

    def get(self, _model, post_id):
        return SimpleNamespace(id=post_id)

    def query(self, _model):
        return _LikeQuery(self)

    def add(self, obj):
        self.likes.append(obj)

    def delete(self, obj):
        self.likes.remove(obj)

    def commit(self):
        return None


def test_like_toggles() -> None:
    db = _LikesDB()

    assert home.toggle_like(db, "p-1", user_id="u-1") == {"liked": True, "like_count": 1}
    assert home.toggle_like(db, "p-1", user_id="u-1") == {"liked": False, "like_count": 0}
