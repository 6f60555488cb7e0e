from __future__ import annotations

from types import SimpleNamespace

import pytest

from intranet.core.exceptions import ConflictError, HierarchyCycleError
from intranet.services import departments


def _dept(dept_id: str, name: str | None = None):
    return SimpleNamespace(id=dept_id, name=name or dept_id.upper())


def _edge(parent: str | None, child: str):
    return SimpleNamespace(parent_department_id=parent, child_department_id=child)


def test_roots_exclude_every_child_even_with_null_parent() -> None:
    depts = [_dept("it"), _dept("hr"), _dept("support"), _dept("orphan")]
    edges = [_edge("it", "support"), _edge(None, "orphan")]

    roots = departments.root_departments(depts, edges)

    assert [d.id for d in roots] == ["it", "hr"]


def test_subdepartments_keep_edge_order_and_skip_unknown_ids() -> None:
    depts = [_dept("it"), _dept("support"), _dept("infra")]
    edges = [_edge("it", "infra"), _edge("it", "ghost"), _edge("it", "support")]

    children = departments.subdepartments("it", depts, edges)

    assert [d.id for d in children] == ["infra", "support"]
    assert departments.first_subdepartment_id("it", edges) == "infra"
    assert departments.first_subdepartment_id("support", edges) is None


def test_descendants_walk_the_whole_subtree() -> None:
    edges = [_edge("a", "b"), _edge("b", "c"), _edge("c", "d"), _edge("x", "y")]

    assert departments.descendant_ids("a", edges) == {"b", "c", "d"}
    assert departments.descendant_ids("d", edges) == set()


def test_cycle_detection() -> None:
    edges = [_edge("a", "b"), _edge("b", "c")]

    assert departments.would_create_cycle("c", "a", edges) is True
    assert departments.would_create_cycle("a", "a", edges) is True
    assert departments.would_create_cycle("a", "c", edges) is False
    assert departments.would_create_cycle(None, "a", edges) is False


class _EdgeDB:
    def __init__(self):
        self.added: list = []

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        return None

    def refresh(self, _obj):
        return None


def _wire_edges(monkeypatch, edges):
    monkeypatch.setattr(departments, "get_department", lambda _db, department_id: _dept(department_id))
    monkeypatch.setattr(departments, "list_edges", lambda _db: edges)


def test_add_edge_rejects_self_duplicate_and_cyclic_edges(monkeypatch) -> None:
    _wire_edges(monkeypatch, [_edge("it", "support"), _edge("support", "desk")])
    db = _EdgeDB()

    with pytest.raises(HierarchyCycleError):
        departments.add_edge(db, parent_id="it", child_id="it")
    with pytest.raises(ConflictError) as duplicate:
        departments.add_edge(db, parent_id="it", child_id="support")
    assert duplicate.value.message == "hierarchy_edge_exists"
    with pytest.raises(HierarchyCycleError) as cycle:
        departments.add_edge(db, parent_id="desk", child_id="it")
    assert cycle.value.status_code == 409
    assert db.added == []


def test_add_edge_stores_a_valid_edge(monkeypatch) -> None:
    _wire_edges(monkeypatch, [_edge("it", "support")])
    db = _EdgeDB()

    edge = departments.add_edge(db, parent_id="hr", child_id="support")

    assert db.added == [edge]
    assert (edge.parent_department_id, edge.child_department_id) == ("hr", "support")
