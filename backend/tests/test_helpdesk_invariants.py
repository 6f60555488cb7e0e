from __future__ import annotations

from types import SimpleNamespace

import pytest

from intranet.core.exceptions import BadRequestError
from intranet.schemas.helpdesk import SlaStateCreate, SlaStateUpdate
from intranet.services import forms, helpdesks


class _RowsDB:
    """Fake session keyed by primary key; ``flush`` hands out ids."""

    def __init__(self, rows=None):
        self.rows = dict(rows or {})
        self.added: list = []
        self.commits = 0

    def get(self, _model, row_id):
        return self.rows.get(row_id)

    def add(self, obj):
        self.added.append(obj)

    def flush(self):
        for index, obj in enumerate(self.added):
            if getattr(obj, "id", None) is None:
                obj.id = f"new-{index}"

    def commit(self):
        self.commits += 1

    def refresh(self, _obj):
        return None


def _state(state_id: str, *, helpdesk_id: str = "hd-1", is_default: bool = False):
    return SimpleNamespace(id=state_id, helpdesk_id=helpdesk_id, is_default=is_default)


def test_state_must_belong_to_the_ticket_helpdesk() -> None:
    db = _RowsDB({"open": _state("open"), "foreign": _state("foreign", helpdesk_id="hd-2")})

    assert helpdesks.ensure_state_in_helpdesk(db, "hd-1", "open").id == "open"
    assert helpdesks.ensure_state_in_helpdesk(db, "hd-1", None) is None
    for state_id in ("foreign", "missing"):
        with pytest.raises(BadRequestError) as excinfo:
            helpdesks.ensure_state_in_helpdesk(db, "hd-1", state_id)
        assert excinfo.value.status_code == 400
        assert excinfo.value.message == "state_not_in_helpdesk"


def test_category_must_belong_to_the_same_helpdesk() -> None:
    db = _RowsDB({"hardware": SimpleNamespace(id="hardware", helpdesk_id="hd-2")})

    with pytest.raises(BadRequestError) as excinfo:
        forms.ensure_category_in_helpdesk(db, "hd-1", "hardware")

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "category_not_in_helpdesk"
    assert forms.ensure_category_in_helpdesk(db, "hd-2", "hardware").id == "hardware"


def test_new_default_state_clears_the_previous_default(monkeypatch) -> None:
    existing = [_state("open", is_default=True), _state("pending")]
    db = _RowsDB()
    monkeypatch.setattr(helpdesks, "get_helpdesk", lambda _db, helpdesk_id: SimpleNamespace(id=helpdesk_id))
    monkeypatch.setattr(helpdesks, "list_states", lambda _db, _helpdesk_id: [*existing, *db.added])

    created = helpdesks.create_state(db, "hd-1", SlaStateCreate(name="Triage", is_default=True))

    assert created.is_default is True
    assert [state.id for state in existing if state.is_default] == []
    assert db.commits == 1


def test_marking_a_state_default_keeps_exactly_one(monkeypatch) -> None:
    states = [_state("open", is_default=True), _state("pending"), _state("closed")]
    monkeypatch.setattr(helpdesks, "get_state", lambda _db, state_id: next(s for s in states if s.id == state_id))
    monkeypatch.setattr(helpdesks, "list_states", lambda _db, _helpdesk_id: states)

    helpdesks.update_state(_RowsDB(), "pending", SlaStateUpdate(is_default=True))

    assert [state.id for state in states if state.is_default] == ["pending"]
